# tests/test_cli.py
from __future__ import annotations

import json
from pathlib import Path

import pytest

from fakes import FakeClient
from sessionstress.cli import commands, run_cli
from sessionstress.client import Image, ServiceError
from sessionstress.config import loader


def _write_config(path: Path, **fields) -> Path:
    config = {
        "api_key": "k",
        "api_secret": "s",
        "api_host": "http://service.test",
        "default_image_id": "img-1",
        "log_file": str(path.parent / "stress-test.log"),
        "poll_interval_seconds": 0,
        "status_tick_seconds": 0.01,
        **fields,
    }
    path.write_text(json.dumps(config), encoding="utf-8")
    return path


@pytest.fixture
def fake_client(monkeypatch: pytest.MonkeyPatch) -> FakeClient:
    client = FakeClient(users={"alice": "u-a", "bob": "u-b"})
    monkeypatch.setattr(commands, "SessionServiceClient", lambda config: client)
    return client


def test_run_reports_and_destroys(
    tmp_path: Path, fake_client: FakeClient, capsys: pytest.CaptureFixture[str]
) -> None:
    cfg = _write_config(tmp_path / "config.json")

    code = run_cli(
        ["--config", str(cfg), "run", "-u", "alice", "-u", "bob", "-n", "2", "--yes", "--no-live"]
    )
    out = capsys.readouterr().out

    assert code == 0
    assert "Results for user: alice" in out
    assert "Results for user: bob" in out
    assert "Successful sessions: 2" in out
    assert "All 4 session(s) have been destroyed" in out
    assert len(fake_client.calls_to("destroy")) == 4
    assert all(call[2] == "img-1" for call in fake_client.calls_to("create_session"))
    assert (tmp_path / "stress-test.log").read_text(encoding="utf-8") != ""


def test_run_with_live_view(
    tmp_path: Path, fake_client: FakeClient, capsys: pytest.CaptureFixture[str]
) -> None:
    cfg = _write_config(tmp_path / "config.json")

    code = run_cli(["--config", str(cfg), "run", "-u", "alice", "-n", "1", "--yes"])
    out = capsys.readouterr().out

    assert code == 0
    assert "Session Stress Test Status" in out
    assert "Status - Completed" in out


def test_run_asks_before_teardown(
    tmp_path: Path,
    fake_client: FakeClient,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    cfg = _write_config(tmp_path / "config.json")
    prompts: list[str] = []

    def fake_input(prompt: str = "") -> str:
        prompts.append(prompt)
        assert fake_client.calls_to("destroy") == []
        return ""

    monkeypatch.setattr("builtins.input", fake_input)

    code = run_cli(["--config", str(cfg), "run", "-u", "alice", "-n", "1", "--no-live"])
    _ = capsys.readouterr()

    assert code == 0
    assert len(prompts) == 1
    assert "Press Enter" in prompts[0]
    assert len(fake_client.calls_to("destroy")) == 1


def test_session_failures_still_exit_zero(
    tmp_path: Path, fake_client: FakeClient, capsys: pytest.CaptureFixture[str]
) -> None:
    cfg = _write_config(tmp_path / "config.json")
    fake_client.create_results = {"u-a": ["", ""]}
    fake_client.destroy_errors = set()

    code = run_cli(
        ["--config", str(cfg), "run", "-u", "alice", "-u", "ghost", "-n", "2", "--yes", "--no-live"]
    )
    out = capsys.readouterr().out

    assert code == 0
    assert "Failed sessions: 2" in out
    assert "received empty id from service" in out
    assert "Failed to get user info for ghost" in out
    assert fake_client.calls_to("destroy") == []


def test_destroy_failures_are_reported(
    tmp_path: Path, fake_client: FakeClient, capsys: pytest.CaptureFixture[str]
) -> None:
    cfg = _write_config(tmp_path / "config.json")
    fake_client.create_results = {"u-a": ["s-1"]}
    fake_client.destroy_errors = {"s-1"}

    code = run_cli(["--config", str(cfg), "run", "-u", "alice", "-n", "1", "--yes", "--no-live"])
    out = capsys.readouterr().out

    assert code == 0
    assert "1 of 1 session(s) could not be destroyed" in out
    assert "s-1" in out


def test_session_range_argument(
    tmp_path: Path, fake_client: FakeClient, capsys: pytest.CaptureFixture[str]
) -> None:
    cfg = _write_config(tmp_path / "config.json")

    code = run_cli(["--config", str(cfg), "run", "-u", "alice", "-n", "1-3", "--yes", "--no-live"])
    _ = capsys.readouterr()

    assert code == 0
    assert 1 <= len(fake_client.calls_to("create_session")) <= 3


def test_image_flag_overrides_default(
    tmp_path: Path, fake_client: FakeClient, capsys: pytest.CaptureFixture[str]
) -> None:
    cfg = _write_config(tmp_path / "config.json")

    run_cli(
        ["--config", str(cfg), "run", "-u", "alice", "-n", "1", "--image", "img-9", "--yes", "--no-live"]
    )
    _ = capsys.readouterr()

    assert fake_client.calls_to("create_session")[0][2] == "img-9"


def test_missing_image_returns_2(
    tmp_path: Path, fake_client: FakeClient, capsys: pytest.CaptureFixture[str]
) -> None:
    cfg = _write_config(tmp_path / "config.json", default_image_id="")

    code = run_cli(["--config", str(cfg), "run", "-u", "alice", "-n", "1", "--yes"])
    captured = capsys.readouterr()

    assert code == 2
    assert "default_image_id" in captured.err
    assert fake_client.calls == []


def test_invalid_config_path_returns_2(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    missing = tmp_path / "missing.json"

    code = run_cli(["--config", str(missing), "images"])
    captured = capsys.readouterr()

    assert code == 2
    assert captured.err != ""


def test_missing_credentials_returns_2(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    cfg = tmp_path / "config.json"
    cfg.write_text(json.dumps({"api_key": "k"}), encoding="utf-8")

    code = run_cli(["--config", str(cfg), "run", "-u", "alice", "-n", "1"])
    captured = capsys.readouterr()

    assert code == 2
    assert "api_secret" in captured.err


@pytest.mark.parametrize("count", ["abc", "5-2"])
def test_bad_session_count_is_rejected(
    tmp_path: Path, count: str, capsys: pytest.CaptureFixture[str]
) -> None:
    cfg = _write_config(tmp_path / "config.json")

    with pytest.raises(SystemExit) as excinfo:
        run_cli(["--config", str(cfg), "run", "-u", "alice", "-n", count])
    _ = capsys.readouterr()

    assert excinfo.value.code == 2


def test_images_lists_images(
    tmp_path: Path, fake_client: FakeClient, capsys: pytest.CaptureFixture[str]
) -> None:
    cfg = _write_config(tmp_path / "config.json")
    fake_client.images = [Image("i-1", "Ubuntu Jammy"), Image("i-2", "")]

    code = run_cli(["--config", str(cfg), "images"])
    out = capsys.readouterr().out.splitlines()

    assert code == 0
    assert out == ["i-1  Ubuntu Jammy", "i-2"]


def test_images_service_error_returns_1(
    tmp_path: Path,
    fake_client: FakeClient,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    cfg = _write_config(tmp_path / "config.json")

    def broken() -> list[Image]:
        raise ServiceError("unauthorized")

    monkeypatch.setattr(fake_client, "get_images", broken)

    code = run_cli(["--config", str(cfg), "images"])
    captured = capsys.readouterr()

    assert code == 1
    assert "unauthorized" in captured.err


def test_missing_default_config_is_logged_to_file(
    tmp_path: Path,
    fake_client: FakeClient,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(loader, "DEFAULT_CONFIG_PATH", tmp_path / "absent.json")
    monkeypatch.setenv("SESSION_STRESS_API_KEY", "k")
    monkeypatch.setenv("SESSION_STRESS_API_SECRET", "s")
    monkeypatch.setenv("SESSION_STRESS_API_HOST", "http://service.test")
    fake_client.images = [Image("i-1", "Ubuntu Jammy")]

    code = run_cli(["images"])
    _ = capsys.readouterr()

    assert code == 0
    log = (tmp_path / "stress-test.log").read_text(encoding="utf-8")
    assert "absent.json not found, using environment only" in log
