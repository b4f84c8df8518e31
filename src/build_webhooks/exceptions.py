"""
build_webhooks.exceptions — Errors raised by the webhooks library.

Delivery failures are never raised; they are reported per URL as
DeliveryResult values (see build_webhooks.dispatcher).
"""

from __future__ import annotations

from pathlib import Path


class WebhooksError(Exception):
    """Base class for build webhooks errors."""


class SettingsError(WebhooksError):
    """Raised when a settings file exists but cannot be read or parsed.

    Attributes:
        path: The settings file that failed to load.
    """

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to read settings file {str(path)!r}: {reason}")


class PayloadValidationError(WebhooksError):
    """Raised when a serialized payload does not deserialize back to a JSON object."""
