"""
build_webhooks.status — Derive the payload status for a build event.

Precedence for finished and interrupted builds (first match wins):
  1. checkout-failure marker among failure reasons  → "error"
  2. internal error                                 → "error"
  3. interrupted with cancellation info             → "cancelled"
  4. interrupted without cancellation info          → "error"
  5. otherwise the host status text, lower-cased    (e.g. "success", "failure")

Queued builds are always "queued"; started builds are always "pending".
"""

from __future__ import annotations

from collections.abc import Iterable

from aws_lambda_powertools import Logger

from build_webhooks.models import CHECKOUT_FAILURE_MARKER, BuildEvent, BuildStatus, EventKind

logger = Logger(service="build-webhooks")


def classify_status(
    kind: EventKind,
    *,
    raw_status: str = "",
    interrupted: bool = False,
    cancelled: bool = False,
    internal_error: bool = False,
    failure_reasons: Iterable[str] = (),
) -> str:
    if kind == EventKind.QUEUED:
        return BuildStatus.QUEUED.value
    if kind == EventKind.STARTED:
        return BuildStatus.PENDING.value

    if CHECKOUT_FAILURE_MARKER in failure_reasons:
        logger.info("Setting payload status to 'error' as failure is during source checkout")
        return BuildStatus.ERROR.value
    if internal_error:
        return BuildStatus.ERROR.value

    is_interruption = interrupted or kind == EventKind.INTERRUPTED
    if is_interruption:
        return BuildStatus.CANCELLED.value if cancelled else BuildStatus.ERROR.value

    return raw_status.lower()


def status_for_event(event: BuildEvent, kind: EventKind) -> str:
    return classify_status(
        kind,
        raw_status=event.raw_status,
        interrupted=event.interrupted,
        cancelled=event.cancelled,
        internal_error=event.internal_error,
        failure_reasons=event.failure_reasons,
    )
