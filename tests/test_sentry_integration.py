"""Tests for the opt-in Sentry integration."""

from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import patch

import pytest

from svconform.config import SentryConfig
from svconform.telemetry import sentry_integration
from svconform.telemetry.sentry_integration import (
    _before_send,
    _scrub_event,
    init_sentry,
    is_sentry_enabled,
)

if TYPE_CHECKING:
    from collections.abc import Iterator


@pytest.fixture(autouse=True)
def _reset_sentry() -> Iterator[None]:
    sentry_integration._initialized["value"] = False
    yield
    sentry_integration._initialized["value"] = False


class TestInitSentry:
    def test_disabled_by_default(self) -> None:
        with patch.object(sentry_integration.sentry_sdk, "init") as mock_init:
            assert init_sentry(SentryConfig()) is False
        mock_init.assert_not_called()
        assert not is_sentry_enabled()

    def test_enabled_without_dsn(self) -> None:
        with patch.object(sentry_integration.sentry_sdk, "init") as mock_init:
            assert init_sentry(SentryConfig(enabled=True)) is False
        mock_init.assert_not_called()

    def test_enabled_with_dsn(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("CI", raising=False)
        with patch.object(sentry_integration.sentry_sdk, "init") as mock_init:
            assert init_sentry(SentryConfig(enabled=True, dsn="https://k@sentry.example/1"))
        kwargs = mock_init.call_args.kwargs
        assert kwargs["dsn"] == "https://k@sentry.example/1"
        assert kwargs["environment"] == "local"
        assert kwargs["send_default_pii"] is False
        assert kwargs["release"].startswith("svconform@")
        assert is_sentry_enabled()

    def test_ci_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CI", "true")
        with patch.object(sentry_integration.sentry_sdk, "init") as mock_init:
            init_sentry(SentryConfig(enabled=True, dsn="https://k@sentry.example/1"))
        assert mock_init.call_args.kwargs["environment"] == "ci"

    def test_idempotent(self) -> None:
        config = SentryConfig(enabled=True, dsn="https://k@sentry.example/1")
        with patch.object(sentry_integration.sentry_sdk, "init") as mock_init:
            init_sentry(config)
            init_sentry(config)
        mock_init.assert_called_once()


class TestScrubbing:
    def test_home_paths_and_locals_removed(self) -> None:
        event = {
            "exception": {
                "values": [
                    {
                        "stacktrace": {
                            "frames": [
                                {
                                    "filename": "/home/alice/proj/run.py",
                                    "abs_path": "/Users/bob/proj/run.py",
                                    "vars": {"source": "module secret_ip; endmodule"},
                                }
                            ]
                        }
                    }
                ]
            },
            "server_name": "build-host",
        }
        scrubbed = _scrub_event(event)
        frame = scrubbed["exception"]["values"][0]["stacktrace"]["frames"][0]
        assert frame["filename"] == "/~/proj/run.py"
        assert frame["abs_path"] == "/~/proj/run.py"
        assert "vars" not in frame
        assert "server_name" not in scrubbed

    def test_log_message_scrubbed(self) -> None:
        event = {"logentry": {"message": "Failed to read /home/alice/tests/a.sv"}}
        assert _scrub_event(event)["logentry"]["message"] == "Failed to read /~/tests/a.sv"

    def test_extra_sources_redacted(self) -> None:
        event = {"extra": {"source": "module m; endmodule", "case": "m", "dsn": "x"}}
        extra = _scrub_event(event)["extra"]
        assert extra["source"] == "[REDACTED]"
        assert extra["case"] == "m"

    def test_secrets_in_breadcrumbs(self) -> None:
        event = {"breadcrumbs": {"values": [{"message": "token=abc123 used"}]}}
        message = _scrub_event(event)["breadcrumbs"]["values"][0]["message"]
        assert "abc123" not in message

    def test_before_send_returns_event(self) -> None:
        event: dict[str, object] = {"message": "hello"}
        assert _before_send(event, {}) is event
