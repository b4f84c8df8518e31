"""Unit tests for the build-webhooks CLI."""

from __future__ import annotations

import io
import json
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from build_webhooks import cli

EVENT = {
    "full_name": "Echo :: Build",
    "build_type_id": "Echo_Build",
    "project_id": "Echo",
    "raw_status": "FAILURE",
    "build_id": 90,
    "build_number": "37",
    "started_at": "2026-03-01T10:00:00+0000",
    "finished_at": "2026-03-01T10:05:00+0000",
}


@pytest.fixture(autouse=True)
def config_dir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    monkeypatch.setenv("WEBHOOKS_CONFIG_DIR", str(tmp_path))
    return tmp_path


@pytest.fixture
def event_file(tmp_path: Path) -> Path:
    path = tmp_path / "event.json"
    path.write_text(json.dumps(EVENT), encoding="utf-8")
    return path


def _response(status_code: int) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.text = ""
    return response


def test_parse_args_defaults(event_file: Path) -> None:
    args = cli.parse_args(["render", str(event_file)])
    assert args.command == "render"
    assert args.kind == "finished"
    assert args.event_file == event_file


def test_render_prints_payload(event_file: Path) -> None:
    out = io.StringIO()
    with redirect_stdout(out):
        code = cli.main(["render", str(event_file), "--root-url", "http://ci:8080"])
    assert code == 0
    payload = json.loads(out.getvalue())
    assert payload["build"]["status"] == "failure"
    assert payload["url"] == "http://ci:8080/viewType.html?buildTypeId=Echo_Build"


def test_render_queued(event_file: Path) -> None:
    out = io.StringIO()
    with redirect_stdout(out):
        code = cli.main(["render", str(event_file), "--kind", "queued"])
    assert code == 0
    assert json.loads(out.getvalue())["build"]["build_id"] is None


def test_render_bad_event_file(tmp_path: Path) -> None:
    path = tmp_path / "bad.json"
    path.write_text("[]", encoding="utf-8")
    err = io.StringIO()
    with redirect_stderr(err):
        code = cli.main(["render", str(path)])
    assert code == 2
    assert "JSON object" in err.getvalue()


def test_send_to_explicit_urls(event_file: Path) -> None:
    out = io.StringIO()
    with patch("requests.post") as mock_post, redirect_stdout(out):
        mock_post.side_effect = [_response(200), _response(503)]
        code = cli.main(
            ["send", str(event_file), "--url", "https://a.example", "--url", "https://b.example"]
        )
    assert code == 1
    assert mock_post.call_count == 2
    assert "https://a.example: ok" in out.getvalue()
    assert "https://b.example: FAILED" in out.getvalue()


def test_send_uses_project_urls(event_file: Path, config_dir: Path) -> None:
    (config_dir / "webhooks.json").write_text(
        json.dumps({"projects": {"Echo": {"urls": ["https://a.example"]}}}), encoding="utf-8"
    )
    with patch("requests.post") as mock_post, redirect_stdout(io.StringIO()):
        mock_post.return_value = _response(200)
        code = cli.main(["send", str(event_file)])
    assert code == 0
    assert mock_post.call_args.args[0] == "https://a.example"


def test_send_without_urls(event_file: Path) -> None:
    with redirect_stderr(io.StringIO()):
        assert cli.main(["send", str(event_file)]) == 2


def test_add_url_writes_settings(config_dir: Path) -> None:
    out = io.StringIO()
    with redirect_stdout(out):
        assert cli.main(["add-url", "Echo", "https://a.example"]) == 0
        assert cli.main(["add-url", "Echo", " https://b.example "]) == 0
    data = json.loads((config_dir / "webhooks.json").read_text(encoding="utf-8"))
    assert data == {"projects": {"Echo": {"urls": ["https://a.example", "https://b.example"]}}}
    assert "https://b.example added to Echo" in out.getvalue()


def test_add_url_already_registered(config_dir: Path) -> None:
    out = io.StringIO()
    with redirect_stdout(out):
        cli.main(["add-url", "Echo", "https://a.example"])
        assert cli.main(["add-url", "Echo", "https://a.example"]) == 0
    assert "already registered for Echo" in out.getvalue()


def test_add_blank_url_rejected(config_dir: Path) -> None:
    err = io.StringIO()
    with redirect_stderr(err):
        assert cli.main(["add-url", "Echo", "  "]) == 2
    assert "blank" in err.getvalue()
    assert not (config_dir / "webhooks.json").exists()


def test_remove_url(config_dir: Path) -> None:
    (config_dir / "webhooks.json").write_text(
        json.dumps({"projects": {"Echo": {"urls": ["https://a.example"]}}}), encoding="utf-8"
    )
    with redirect_stdout(io.StringIO()):
        assert cli.main(["remove-url", "Echo", "https://a.example"]) == 0
        assert cli.main(["remove-url", "Echo", "https://a.example"]) == 1
    data = json.loads((config_dir / "webhooks.json").read_text(encoding="utf-8"))
    assert data == {"projects": {}}


def test_url_commands_honour_config_dir(tmp_path: Path) -> None:
    other = tmp_path / "etc"
    with redirect_stdout(io.StringIO()):
        cli.main(["add-url", "Echo", "https://a.example", "--config-dir", str(other)])
    assert (other / "webhooks.json").is_file()


def test_url_commands_report_malformed_settings(config_dir: Path) -> None:
    (config_dir / "webhooks.json").write_text("{not json", encoding="utf-8")
    with redirect_stderr(io.StringIO()):
        assert cli.main(["add-url", "Echo", "https://a.example"]) == 2
