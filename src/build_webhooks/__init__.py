"""
build_webhooks — Normalized JSON webhooks for build lifecycle events.

Turns queued / started / finished / interrupted build events into one
payload shape and POSTs it to each URL configured for the build's project.
"""

from build_webhooks.artifacts import ArtifactResolver
from build_webhooks.config import StorageConfig, WebhooksSettings, load_storage_config
from build_webhooks.dispatcher import DeliveryResult, Dispatcher
from build_webhooks.exceptions import PayloadValidationError, SettingsError, WebhooksError
from build_webhooks.listener import WebhooksListener
from build_webhooks.models import BuildEvent, EventKind, ScmInfo, WebhookPayload
from build_webhooks.payload import PayloadBuilder

__all__ = [
    "ArtifactResolver",
    "BuildEvent",
    "DeliveryResult",
    "Dispatcher",
    "EventKind",
    "PayloadBuilder",
    "PayloadValidationError",
    "ScmInfo",
    "SettingsError",
    "StorageConfig",
    "WebhookPayload",
    "WebhooksError",
    "WebhooksListener",
    "WebhooksSettings",
    "load_storage_config",
]
