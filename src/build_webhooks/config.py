"""
build_webhooks.config — Settings files and fixed delivery constants.

Two JSON files live in the webhooks config directory:
  webhooks.json     — {"projects": {"<projectId>": {"urls": ["https://..."]}}}
  webhooks-s3.json  — {"artifactBucket": "...", "awsAccessKey": "...", "awsSecretKey": "..."}

Both are optional. A missing webhooks.json means no destinations; a missing
webhooks-s3.json (or a blank artifactBucket) disables the S3 artifact lookup.
Storage settings are loaded once and passed to ArtifactResolver explicitly.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from aws_lambda_powertools import Logger

from build_webhooks.exceptions import SettingsError

logger = Logger(service="build-webhooks")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
CONFIG_DIR_ENV = "WEBHOOKS_CONFIG_DIR"
WEBHOOKS_SETTINGS_FILE = "webhooks.json"
S3_SETTINGS_FILE = "webhooks-s3.json"

# Connect and read timeout applied to every webhook POST.
POST_TIMEOUT_SECONDS: float = float(os.environ.get("WEBHOOKS_POST_TIMEOUT_SECONDS", "10"))


def resolve_config_dir() -> Path:
    return Path(os.environ.get(CONFIG_DIR_ENV, "."))


def _is_blank(value: Any) -> bool:
    return value is None or not str(value).strip()


def read_json_file(path: Path) -> dict[str, Any]:
    """Read a JSON object from path, raising SettingsError on any failure."""
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SettingsError(path, str(exc)) from exc
    try:
        data = json.loads(content)
    except json.JSONDecodeError as exc:
        raise SettingsError(path, f"invalid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise SettingsError(path, "expected a JSON object")
    return data


# ---------------------------------------------------------------------------
# S3 artifact storage settings
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StorageConfig:
    """Object storage holding uploaded build artifacts.

    Credentials are optional; without them boto3's default credential
    chain (env vars, profile, instance role) is used.
    """

    bucket: str
    access_key: str | None = None
    secret_key: str | None = None

    @property
    def has_credentials(self) -> bool:
        return not (_is_blank(self.access_key) or _is_blank(self.secret_key))

    def __repr__(self) -> str:
        return f"StorageConfig(bucket={self.bucket!r}, has_credentials={self.has_credentials})"


def load_storage_config(config_dir: Path | None = None) -> StorageConfig | None:
    """Load webhooks-s3.json, returning None when S3 lookup is disabled."""
    path = (config_dir or resolve_config_dir()) / S3_SETTINGS_FILE
    if not path.is_file():
        logger.debug("No S3 settings file, S3 artifacts disabled", extra={"path": str(path)})
        return None

    data = read_json_file(path)
    bucket = data.get("artifactBucket")
    if _is_blank(bucket):
        logger.debug(
            "No artifactBucket configured, S3 artifacts disabled", extra={"path": str(path)}
        )
        return None

    access_key = data.get("awsAccessKey")
    secret_key = data.get("awsSecretKey")
    return StorageConfig(
        bucket=str(bucket).strip(),
        access_key=None if _is_blank(access_key) else str(access_key),
        secret_key=None if _is_blank(secret_key) else str(secret_key),
    )


# ---------------------------------------------------------------------------
# Per-project webhook URLs
# ---------------------------------------------------------------------------


class WebhooksSettings:
    """Destination URLs keyed by external project id, backed by webhooks.json."""

    def __init__(self, path: Path, projects: dict[str, list[str]] | None = None) -> None:
        self._path = path
        self._projects: dict[str, list[str]] = {
            project_id: list(urls) for project_id, urls in (projects or {}).items()
        }

    @property
    def path(self) -> Path:
        return self._path

    @classmethod
    def load(cls, config_dir: Path | None = None) -> WebhooksSettings:
        path = (config_dir or resolve_config_dir()) / WEBHOOKS_SETTINGS_FILE
        if not path.is_file():
            logger.info(
                "No webhooks settings file, no destinations configured",
                extra={"path": str(path)},
            )
            return cls(path)

        data = read_json_file(path)
        projects_raw = data.get("projects") or {}
        if not isinstance(projects_raw, dict):
            raise SettingsError(path, "'projects' must be a JSON object")

        projects: dict[str, list[str]] = {}
        for project_id, entry in projects_raw.items():
            urls = entry.get("urls") if isinstance(entry, dict) else None
            if not isinstance(urls, list):
                raise SettingsError(path, f"project {project_id!r} has no 'urls' list")
            projects[str(project_id)] = [str(u).strip() for u in urls if not _is_blank(u)]
        return cls(path, projects)

    def get_urls(self, project_id: str) -> list[str]:
        return list(self._projects.get(project_id, []))

    def add_url(self, project_id: str, url: str) -> bool:
        """Register url for project_id. Returns False if it was already registered."""
        url = url.strip()
        if not url:
            raise ValueError("url must not be blank")
        urls = self._projects.setdefault(project_id, [])
        if url in urls:
            return False
        urls.append(url)
        return True

    def remove_url(self, project_id: str, url: str) -> bool:
        """Unregister url for project_id. Returns False if it was not registered."""
        urls = self._projects.get(project_id)
        if not urls or url not in urls:
            return False
        urls.remove(url)
        if not urls:
            del self._projects[project_id]
        return True

    def to_dict(self) -> dict[str, Any]:
        return {
            "projects": {
                project_id: {"urls": list(urls)}
                for project_id, urls in sorted(self._projects.items())
            }
        }

    def save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(self.to_dict(), indent=2) + "\n", encoding="utf-8")
        logger.info("Webhooks settings saved", extra={"path": str(self._path)})
