"""Telemetry integrations for svconform."""

from svconform.telemetry.sentry_integration import init_sentry, is_sentry_enabled

__all__ = [
    "init_sentry",
    "is_sentry_enabled",
]
