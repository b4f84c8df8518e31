"""
build_webhooks.listener — Build lifecycle callbacks that emit webhooks.

The host integration shim calls exactly one method per observed event:

    build_queued       — build type added to the queue
    build_started      — changes loaded, build is running
    build_finished     — build finished (any outcome)
    build_interrupted  — build interrupted or cancelled

Each callback derives the status, builds and validates the payload, logs it,
and POSTs it to the owning project's URLs. Personal builds get a payload
(for the log) but no POSTs. No callback ever raises into the host: any
failure is logged with the build identity and the callback name.
"""

from __future__ import annotations

import time
from datetime import UTC, datetime
from pathlib import Path
from typing import Protocol

from aws_lambda_powertools import Logger

from build_webhooks.artifacts import ArtifactResolver
from build_webhooks.config import WebhooksSettings, load_storage_config
from build_webhooks.dispatcher import DeliveryResult, Dispatcher
from build_webhooks.guard import ArtifactsGuard
from build_webhooks.models import BuildEvent, EventKind
from build_webhooks.payload import PayloadBuilder, serialize_payload, validate_payload_json
from build_webhooks.status import status_for_event

logger = Logger(service="build-webhooks")


class UrlSource(Protocol):
    def get_urls(self, project_id: str) -> list[str]: ...


_CALLBACK_NAMES = {
    EventKind.QUEUED: "build_queued",
    EventKind.STARTED: "build_started",
    EventKind.FINISHED: "build_finished",
    EventKind.INTERRUPTED: "build_interrupted",
}


class WebhooksListener:
    def __init__(
        self,
        settings: UrlSource,
        payload_builder: PayloadBuilder,
        dispatcher: Dispatcher | None = None,
    ) -> None:
        self._settings = settings
        self._builder = payload_builder
        self._dispatcher = dispatcher or Dispatcher()

    @classmethod
    def from_config(
        cls,
        root_url: str,
        *,
        config_dir: Path | None = None,
        guard: ArtifactsGuard | None = None,
        dispatcher: Dispatcher | None = None,
    ) -> WebhooksListener:
        """Load both settings files once and wire up a listener."""
        resolver = ArtifactResolver(
            root_url, storage=load_storage_config(config_dir), guard=guard
        )
        return cls(
            WebhooksSettings.load(config_dir),
            PayloadBuilder(root_url, resolver),
            dispatcher,
        )

    # -----------------------------------------------------------------------
    # Host callbacks
    # -----------------------------------------------------------------------

    def build_queued(self, event: BuildEvent) -> list[DeliveryResult]:
        return self._handle(event, EventKind.QUEUED)

    def build_started(self, event: BuildEvent) -> list[DeliveryResult]:
        return self._handle(event, EventKind.STARTED)

    def build_finished(self, event: BuildEvent) -> list[DeliveryResult]:
        return self._handle(event, EventKind.FINISHED)

    def build_interrupted(self, event: BuildEvent) -> list[DeliveryResult]:
        return self._handle(event, EventKind.INTERRUPTED)

    # -----------------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------------

    def render(self, event: BuildEvent, kind: EventKind) -> str:
        """Serialized, round-trip-checked payload for event. May raise."""
        status = status_for_event(event, kind)

        started_at = event.started_at
        finished_at = None
        if kind in (EventKind.FINISHED, EventKind.INTERRUPTED):
            finished_at = event.finished_at or datetime.now(UTC)

        payload = serialize_payload(
            self._builder.build(event, kind, status, started_at, finished_at)
        )
        validate_payload_json(payload)
        return payload

    def _handle(self, event: BuildEvent, kind: EventKind) -> list[DeliveryResult]:
        start = time.monotonic()
        callback = _CALLBACK_NAMES[kind]
        try:
            payload = self.render(event, kind)
            logger.info(
                f"Build {event.identity} {kind.value}",
                extra={"event": callback, "payload": payload},
            )

            results: list[DeliveryResult] = []
            if event.personal:
                logger.info("Skipping post for personal build", extra={"build": event.identity})
            else:
                urls = self._settings.get_urls(event.project_id)
                results = self._dispatcher.dispatch(payload, urls)

            elapsed_ms = int((time.monotonic() - start) * 1000)
            logger.info(f"Operation finished in {elapsed_ms} ms", extra={"event": callback})
            return results
        except Exception:
            logger.exception(
                f"Failed to listen on {callback}() of {event.identity}",
                extra={"event": callback, "build": event.identity},
            )
            return []
