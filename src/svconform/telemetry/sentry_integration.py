"""Sentry SDK integration for svconform.

Strictly opt-in: nothing is sent unless ``sentry.enabled: true`` is set in
``.svconform.yml`` (or ``SVCONFORM_SENTRY_ENABLED=true``).  Once enabled,
``logger.error`` records (host failures, unreadable fixtures) become Sentry
events; fixture source text and home-directory paths are stripped first.
"""

from __future__ import annotations

import logging
import os
import re
from typing import TYPE_CHECKING, Any

import sentry_sdk
from sentry_sdk.integrations.logging import LoggingIntegration

from svconform import __version__

if TYPE_CHECKING:
    from svconform.config import SentryConfig

logger = logging.getLogger(__name__)

_initialized: dict[str, bool] = {"value": False}

_PATH_HOME_RE = re.compile(r"/(?:home|Users)/[^/]+")
_SENSITIVE_PATTERN = re.compile(r"(dsn|token|password|secret)\s*[:=]\s*\S+", re.IGNORECASE)

# Keys whose values may hold whole fixture sources.
_SOURCE_KEYS = frozenset({"source", "text", "stdout", "stderr"})


def init_sentry(config: SentryConfig) -> bool:
    """Initialize the Sentry SDK if enabled and configured.

    Idempotent; later calls are no-ops once initialization succeeded.

    Returns:
        Whether Sentry is active after the call.
    """
    if _initialized["value"]:
        return True
    if not config.enabled:
        logger.debug("Sentry disabled (sentry.enabled is false)")
        return False
    if not config.dsn:
        logger.warning("Sentry enabled but no DSN configured")
        return False

    environment = config.environment or ("ci" if os.environ.get("CI") else "local")
    sentry_sdk.init(
        dsn=config.dsn,
        release=f"svconform@{__version__}",
        environment=environment,
        send_default_pii=False,
        server_name="",
        before_send=_before_send,
        in_app_include=["svconform"],
        integrations=[LoggingIntegration(level=logging.INFO, event_level=logging.ERROR)],
    )
    _initialized["value"] = True
    logger.info("Sentry initialized (env=%s)", environment)
    return True


def is_sentry_enabled() -> bool:
    """Return whether Sentry has been successfully initialized."""
    return _initialized["value"]


# ---------------------------------------------------------------------------
# Privacy scrubbing
# ---------------------------------------------------------------------------


def _scrub_string(value: str) -> str:
    return _SENSITIVE_PATTERN.sub("[REDACTED]", _PATH_HOME_RE.sub("/~", value))


def _scrub_dict(data: dict[str, Any]) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for key, value in data.items():
        if key.lower() in _SOURCE_KEYS:
            result[key] = "[REDACTED]"
        elif isinstance(value, str):
            result[key] = _scrub_string(value)
        elif isinstance(value, dict):
            result[key] = _scrub_dict(value)
        else:
            result[key] = value
    return result


def _scrub_event(event: dict[str, Any]) -> dict[str, Any]:
    """Deep-scrub an event dict in place and return it."""
    exception = event.get("exception")
    if isinstance(exception, dict):
        for value in exception.get("values", []):
            stacktrace = value.get("stacktrace")
            if not isinstance(stacktrace, dict):
                continue
            for frame in stacktrace.get("frames", []):
                # Locals can hold the fixture source.
                frame.pop("vars", None)
                for key in ("filename", "abs_path"):
                    if isinstance(frame.get(key), str):
                        frame[key] = _scrub_string(frame[key])

    logentry = event.get("logentry")
    if isinstance(logentry, dict) and isinstance(logentry.get("message"), str):
        logentry["message"] = _scrub_string(logentry["message"])

    breadcrumbs = event.get("breadcrumbs")
    if isinstance(breadcrumbs, dict):
        for crumb in breadcrumbs.get("values", []):
            if isinstance(crumb.get("message"), str):
                crumb["message"] = _scrub_string(crumb["message"])

    extra = event.get("extra")
    if isinstance(extra, dict):
        event["extra"] = _scrub_dict(extra)

    event.pop("server_name", None)
    return event


def _before_send(event: dict[str, Any], _hint: dict[str, Any]) -> dict[str, Any] | None:
    """Scrub error events before sending."""
    return _scrub_event(event)
