from __future__ import annotations

import logging
from typing import Any

from app.core.config import settings

# Structured log context keys that carry donor or winner addresses.
_DONOR_PII_KEYS = frozenset({"donor_email", "to_email", "email"})
_REDACTED = "[redacted]"


def _redact(mapping: dict[str, Any] | None) -> None:
    if not mapping:
        return
    for key in _DONOR_PII_KEYS & mapping.keys():
        mapping[key] = _REDACTED


def scrub_donor_pii(event: dict[str, Any], hint: dict[str, Any] | None = None) -> dict[str, Any]:
    """Drop donor email addresses from event extras and breadcrumbs before they leave the process."""
    _redact(event.get("extra"))
    breadcrumbs = event.get("breadcrumbs") or {}
    for crumb in breadcrumbs.get("values", []) if isinstance(breadcrumbs, dict) else breadcrumbs:
        _redact(crumb.get("data"))
    return event


def init_sentry() -> None:
    if not settings.sentry_dsn:
        return

    import sentry_sdk
    from sentry_sdk.integrations import Integration
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.logging import LoggingIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    integrations: list[Integration] = [
        FastApiIntegration(),
        SqlalchemyIntegration(),
    ]
    if settings.sentry_enable_logs:
        log_level_name = str(settings.sentry_log_level or "error").strip().upper()
        event_level = getattr(logging, log_level_name, logging.ERROR)
        # Notification failures are logged at WARNING and must not page anyone.
        integrations.append(LoggingIntegration(level=logging.INFO, event_level=event_level))

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        release=f"fundsus-api@{settings.app_version}",
        traces_sample_rate=settings.sentry_traces_sample_rate,
        profiles_sample_rate=settings.sentry_profiles_sample_rate,
        integrations=integrations,
        before_send=scrub_donor_pii,
        attach_stacktrace=True,
        send_default_pii=False,
    )
    sentry_sdk.set_tag("component", "prize-draws")
    sentry_sdk.set_tag("coupon_prefix", (settings.coupon_code_prefix or "").upper())
