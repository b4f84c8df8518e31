"""
build_webhooks.cli — Render or send a webhook payload for a build event file,
and edit the per-project destination URLs in webhooks.json.

The event file is the JSON form of BuildEvent (see BuildEvent.from_dict).

Usage:
    build-webhooks render event.json --kind finished --root-url http://ci:8080
    build-webhooks send event.json --kind finished --url https://hooks.example/ci
    build-webhooks send event.json --kind finished --config-dir /etc/build-webhooks
    build-webhooks add-url Echo https://hooks.example/ci --config-dir /etc/build-webhooks
    build-webhooks remove-url Echo https://hooks.example/ci

send exits 1 if any delivery failed, 2 if the payload could not be built.
remove-url exits 1 if the URL was not registered.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from build_webhooks.artifacts import ArtifactResolver
from build_webhooks.config import WebhooksSettings, load_storage_config
from build_webhooks.dispatcher import Dispatcher
from build_webhooks.exceptions import WebhooksError
from build_webhooks.listener import WebhooksListener
from build_webhooks.models import BuildEvent, EventKind
from build_webhooks.payload import PayloadBuilder

_EVENT_COMMANDS = ("render", "send")
_URL_COMMANDS = ("add-url", "remove-url")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="build-webhooks", description="Render, send or configure build webhooks."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    for name in _EVENT_COMMANDS:
        sub = subparsers.add_parser(name)
        sub.add_argument("event_file", type=Path, help="BuildEvent JSON file")
        sub.add_argument(
            "--kind",
            choices=[kind.value for kind in EventKind],
            default=EventKind.FINISHED.value,
        )
        sub.add_argument("--root-url", default="http://localhost:8111")
        sub.add_argument("--config-dir", type=Path, default=None)
        if name == "send":
            sub.add_argument(
                "--url",
                action="append",
                default=[],
                help="Destination URL (repeatable); defaults to the project's configured URLs",
            )

    for name in _URL_COMMANDS:
        sub = subparsers.add_parser(name)
        sub.add_argument("project_id", help="External project id")
        sub.add_argument("url", help="Webhook destination URL")
        sub.add_argument("--config-dir", type=Path, default=None)

    return parser.parse_args(argv)


def load_event(path: Path) -> BuildEvent:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise WebhooksError(f"Failed to read event file {str(path)!r}: {exc}") from exc
    if not isinstance(data, dict):
        raise WebhooksError(f"Event file {str(path)!r} must contain a JSON object")
    return BuildEvent.from_dict(data)


def edit_urls(args: argparse.Namespace) -> int:
    try:
        settings = WebhooksSettings.load(args.config_dir)
        if args.command == "add-url":
            changed = settings.add_url(args.project_id, args.url)
        else:
            changed = settings.remove_url(args.project_id, args.url)
        if changed:
            settings.save()
    except (WebhooksError, ValueError, OSError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 2

    if args.command == "add-url":
        verb = "added to" if changed else "already registered for"
    else:
        verb = "removed from" if changed else "not registered for"
    print(f"{args.url.strip()} {verb} {args.project_id}")
    for url in settings.get_urls(args.project_id):
        print(f"  {url}")
    return 0 if changed or args.command == "add-url" else 1


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    if args.command in _URL_COMMANDS:
        return edit_urls(args)

    kind = EventKind(args.kind)
    try:
        event = load_event(args.event_file)
        resolver = ArtifactResolver(args.root_url, storage=load_storage_config(args.config_dir))
        settings = WebhooksSettings.load(args.config_dir)
        listener = WebhooksListener(settings, PayloadBuilder(args.root_url, resolver))
        payload = listener.render(event, kind)
    except (WebhooksError, KeyError, ValueError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 2

    if args.command == "render":
        print(payload)
        return 0

    urls = args.url or settings.get_urls(event.project_id)
    if not urls:
        print(f"ERROR: no webhook URLs for project {event.project_id!r}", file=sys.stderr)
        return 2

    results = Dispatcher().dispatch(payload, urls)
    for result in results:
        outcome = "ok" if result.ok else f"FAILED ({result.error})"
        print(f"{result.url}: {outcome}")
    return 0 if all(result.ok for result in results) else 1


if __name__ == "__main__":
    sys.exit(main())
