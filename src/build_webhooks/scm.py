"""
build_webhooks.scm — Repository URL, branch and commit for a build.

Only the first revision (and its root) is considered; multi-root builds
report the first root alone. Change lists are not collected, so
ScmInfo.changes is always None.
"""

from __future__ import annotations

from collections.abc import Sequence

from aws_lambda_powertools import Logger

from build_webhooks.models import DEFAULT_BRANCH_SENTINEL, ScmInfo, VcsRevision, VcsRootInfo

logger = Logger(service="build-webhooks")


def _usable_branch(branch: str | None) -> str | None:
    if branch is None or branch == DEFAULT_BRANCH_SENTINEL:
        return None
    return branch


def resolve_branch(
    revision_branch: str | None,
    promotion_branch: str | None,
    root: VcsRootInfo,
) -> str | None:
    """Revision branch, else promotion branch, else the root's default branch.

    The "<default>" sentinel counts as absent. svn roots define no default
    branch, so the result may be None.
    """
    if revision_branch:
        return revision_branch

    branch = _usable_branch(promotion_branch)
    if branch is not None:
        return branch

    branch = root.default_branch
    if branch is None and root.vcs_name == "svn":
        logger.info("Couldn't find a branch name, probably because this build uses svn")
    return branch


def resolve_scm(
    revisions: Sequence[VcsRevision],
    promotion_branch: str | None = None,
) -> ScmInfo | None:
    """ScmInfo from the build's first revision, or None when it has none."""
    if not revisions:
        return None

    revision = revisions[0]
    logger.debug(
        "Resolved head revision",
        extra={"commit": revision.revision, "root": revision.root.name},
    )
    return ScmInfo(
        url=revision.root.url,
        branch=resolve_branch(revision.branch, promotion_branch, revision.root),
        commit=revision.revision,
        changes=None,
    )


def resolve_queued_scm(
    vcs_roots: Sequence[VcsRootInfo],
    promotion_branch: str | None = None,
) -> ScmInfo | None:
    """ScmInfo for a queued build: no revision yet, so no commit."""
    if not vcs_roots:
        return None

    root = vcs_roots[0]
    return ScmInfo(
        url=root.url,
        branch=resolve_branch(None, promotion_branch, root),
        commit=None,
        changes=None,
    )
