"""
build_webhooks.models — Build event inputs and webhook payload shapes.

Inputs (produced by the host build server, read-only here):
    BuildEvent    — one observed lifecycle transition of a build
    VcsRevision   — a revision the build was run against
    VcsRootInfo   — a configured VCS root (repository reference)

Outputs (built fresh per event, never persisted):
    ScmInfo, PayloadBuild, WebhookPayload

Payload shape (every key always present, explicit null where unknown):
    {
      "name": str, "url": str,
      "build": {
        "full_url": str, "build_id": str | null, "status": str,
        "started_at": date | null, "finished_at": date | null,
        "scm": {"url", "branch", "commit", "changes"} | null,
        "artifacts": {name: {"archive"|"s3": url}},
        "parameters": {str: str}
      }
    }
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from pathlib import Path
from typing import Any

# ---------------------------------------------------------------------------
# Reserved names
# ---------------------------------------------------------------------------

# Failure-reason identity reported when sources could not be checked out.
CHECKOUT_FAILURE_MARKER: str = "gitcrap"

# Branch name the host reports when a build runs on the root's default branch.
DEFAULT_BRANCH_SENTINEL: str = "<default>"

# Host-internal metadata directory inside every artifacts directory.
ARTIFACTS_METADATA_DIR: str = ".teamcity"

# Per-build metadata object uploaded next to S3 artifacts.
S3_METADATA_SUFFIX: str = "/build.json"

# Build parameter carrying the build date, surfaced as parameters.build_date.
BUILD_DATE_PARAMETER: str = "env.BuildDate"

# yyyy-MM-dd'T'HH:mm:ssZ
DATE_FORMAT: str = "%Y-%m-%dT%H:%M:%S%z"

ARCHIVE_SOURCE: str = "archive"
S3_SOURCE: str = "s3"


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class EventKind(StrEnum):
    QUEUED = "queued"
    STARTED = "started"
    FINISHED = "finished"
    INTERRUPTED = "interrupted"


class BuildStatus(StrEnum):
    """Statuses assigned by the classifier itself.

    Finished builds may also carry the host's own lower-cased status text
    (e.g. "success", "failure"), which is not enumerated here.
    """

    QUEUED = "queued"
    PENDING = "pending"
    CANCELLED = "cancelled"
    ERROR = "error"


# ---------------------------------------------------------------------------
# Host inputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class VcsRootInfo:
    """A configured VCS root.

    properties holds the root's raw settings; "url" and "branch" are the
    two this library reads. vcs_name is e.g. "jetbrains.git" or "svn".
    """

    name: str
    vcs_name: str = ""
    properties: dict[str, str] = field(default_factory=dict)

    @property
    def url(self) -> str | None:
        return self.properties.get("url")

    @property
    def default_branch(self) -> str | None:
        # Not defined for svn roots.
        return self.properties.get("branch")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VcsRootInfo:
        return cls(
            name=str(data.get("name", "")),
            vcs_name=str(data.get("vcs_name", "")),
            properties={str(k): str(v) for k, v in (data.get("properties") or {}).items()},
        )


@dataclass(frozen=True)
class VcsRevision:
    revision: str
    root: VcsRootInfo
    branch: str | None = None  # branch reported by the repository version

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VcsRevision:
        return cls(
            revision=str(data["revision"]),
            root=VcsRootInfo.from_dict(data.get("root") or {}),
            branch=data.get("branch"),
        )


@dataclass(frozen=True)
class BuildEvent:
    """Snapshot of a build at one lifecycle transition.

    build_id is the host's internal id (None while queued); queue_item_id is
    the promotion id used by the queued view. build_number is the display
    number and doubles as the payload's build_id.
    """

    full_name: str
    build_type_id: str  # external build-type id, e.g. "Echo_Build"
    project_id: str  # external project id, keys the webhook URL settings
    raw_status: str = ""
    build_id: int | None = None
    queue_item_id: int | None = None
    build_number: str | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None
    interrupted: bool = False
    cancelled: bool = False  # cancellation info present
    internal_error: bool = False
    personal: bool = False
    failure_reasons: tuple[str, ...] = ()
    parameters: dict[str, str] = field(default_factory=dict)
    revisions: tuple[VcsRevision, ...] = ()
    vcs_roots: tuple[VcsRootInfo, ...] = ()
    promotion_branch: str | None = None
    artifacts_dir: Path | None = None

    @property
    def identity(self) -> str:
        if self.build_number is None:
            return f"'{self.full_name}'"
        return f"'{self.full_name}' #{self.build_number}"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BuildEvent:
        """Build an event from its JSON form (as used by the CLI)."""
        artifacts_dir = data.get("artifacts_dir")
        return cls(
            full_name=str(data["full_name"]),
            build_type_id=str(data["build_type_id"]),
            project_id=str(data.get("project_id", "")),
            raw_status=str(data.get("raw_status", "")),
            build_id=_int_or_none(data.get("build_id")),
            queue_item_id=_int_or_none(data.get("queue_item_id")),
            build_number=_str_or_none(data.get("build_number")),
            started_at=_datetime_or_none(data.get("started_at")),
            finished_at=_datetime_or_none(data.get("finished_at")),
            interrupted=bool(data.get("interrupted", False)),
            cancelled=bool(data.get("cancelled", False)),
            internal_error=bool(data.get("internal_error", False)),
            personal=bool(data.get("personal", False)),
            failure_reasons=tuple(str(r) for r in data.get("failure_reasons") or ()),
            parameters={str(k): str(v) for k, v in (data.get("parameters") or {}).items()},
            revisions=tuple(VcsRevision.from_dict(r) for r in data.get("revisions") or ()),
            vcs_roots=tuple(VcsRootInfo.from_dict(r) for r in data.get("vcs_roots") or ()),
            promotion_branch=_str_or_none(data.get("promotion_branch")),
            artifacts_dir=Path(artifacts_dir) if artifacts_dir else None,
        )


def _str_or_none(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def _int_or_none(value: Any) -> int | None:
    if value is None or value == "":
        return None
    return int(value)


def _datetime_or_none(value: Any) -> datetime | None:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    text = str(value)
    try:
        return datetime.strptime(text, DATE_FORMAT)
    except ValueError:
        return datetime.fromisoformat(text)


# ---------------------------------------------------------------------------
# Payload
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ScmInfo:
    url: str | None
    branch: str | None = None
    commit: str | None = None
    changes: list[str] | None = None  # None = not collected

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "branch": self.branch,
            "commit": self.commit,
            "changes": self.changes,
        }


@dataclass(frozen=True)
class PayloadBuild:
    full_url: str
    build_id: str | None
    status: str
    started_at: datetime | None
    finished_at: datetime | None
    scm: ScmInfo | None
    artifacts: dict[str, dict[str, str]] = field(default_factory=dict)
    parameters: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class WebhookPayload:
    name: str
    url: str
    build: PayloadBuild

    def to_dict(self) -> dict[str, Any]:
        """Plain-dict form with dates formatted; None values kept as keys."""
        build = self.build
        return {
            "name": self.name,
            "url": self.url,
            "build": {
                "full_url": build.full_url,
                "build_id": build.build_id,
                "status": build.status,
                "started_at": format_date(build.started_at),
                "finished_at": format_date(build.finished_at),
                "scm": build.scm.to_dict() if build.scm is not None else None,
                "artifacts": {name: dict(urls) for name, urls in build.artifacts.items()},
                "parameters": dict(build.parameters),
            },
        }


def format_date(value: datetime | None) -> str | None:
    """Format as yyyy-MM-dd'T'HH:mm:ssZ. Naive datetimes are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.strftime(DATE_FORMAT)
