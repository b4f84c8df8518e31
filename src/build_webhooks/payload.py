"""
build_webhooks.payload — Compose, serialize and sanity-check webhook payloads.

One PayloadBuilder handles every event kind; the kind selects which URLs
and fields are available:

  queued   — full_url → {root}/viewQueued.html?itemId={queue item id}
             build_id, started_at, finished_at null; no artifacts
  others   — full_url → {root}/viewLog.html?buildTypeId={bt}&buildId={id}

url is always {root}/viewType.html?buildTypeId={bt}.

Resolver exceptions propagate to the caller (the listener), which logs them
against the triggering event.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from build_webhooks.artifacts import ArtifactResolver
from build_webhooks.exceptions import PayloadValidationError
from build_webhooks.models import (
    BUILD_DATE_PARAMETER,
    BuildEvent,
    EventKind,
    PayloadBuild,
    WebhookPayload,
)
from build_webhooks.scm import resolve_queued_scm, resolve_scm


class PayloadBuilder:
    def __init__(self, root_url: str, artifact_resolver: ArtifactResolver) -> None:
        self._root_url = root_url.rstrip("/")
        self._artifacts = artifact_resolver

    def type_url(self, build_type_id: str) -> str:
        return f"{self._root_url}/viewType.html?buildTypeId={build_type_id}"

    def queued_url(self, queue_item_id: int | None) -> str:
        return f"{self._root_url}/viewQueued.html?itemId={queue_item_id}"

    def log_url(self, build_type_id: str, build_id: int | None) -> str:
        return f"{self._root_url}/viewLog.html?buildTypeId={build_type_id}&buildId={build_id}"

    def build(
        self,
        event: BuildEvent,
        kind: EventKind,
        status: str,
        started_at: datetime | None = None,
        finished_at: datetime | None = None,
    ) -> WebhookPayload:
        if kind == EventKind.QUEUED:
            payload_build = PayloadBuild(
                full_url=self.queued_url(event.queue_item_id),
                build_id=None,
                status=status,
                started_at=None,
                finished_at=None,
                scm=resolve_queued_scm(event.vcs_roots, event.promotion_branch),
            )
        else:
            payload_build = PayloadBuild(
                full_url=self.log_url(event.build_type_id, event.build_id),
                build_id=event.build_number,
                status=status,
                started_at=started_at,
                finished_at=finished_at,
                scm=resolve_scm(event.revisions, event.promotion_branch),
                artifacts=self._artifacts.resolve(event),
                parameters=build_parameters(event.parameters),
            )

        return WebhookPayload(
            name=event.full_name,
            url=self.type_url(event.build_type_id),
            build=payload_build,
        )


def build_parameters(parameters: dict[str, str]) -> dict[str, str]:
    result: dict[str, str] = {}
    date = parameters.get(BUILD_DATE_PARAMETER)
    if date is not None:
        result["build_date"] = date
    return result


def serialize_payload(payload: WebhookPayload) -> str:
    return json.dumps(payload.to_dict(), indent=2)


def validate_payload_json(text: str) -> dict[str, Any]:
    """Deserialize text back into a mapping; PayloadValidationError if it isn't one."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise PayloadValidationError(f"Generated payload is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise PayloadValidationError(
            f"Generated payload is a {type(data).__name__}, expected a JSON object"
        )
    return data
