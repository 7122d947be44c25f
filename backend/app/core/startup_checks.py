from __future__ import annotations

import logging
import re

from app.core.config import settings

logger = logging.getLogger(__name__)

_PREFIX_RE = re.compile(r"^[A-Z0-9]{1,16}$")


def _is_production() -> bool:
    env = (settings.environment or "").strip().lower()
    return env in {"prod", "production"}


def _looks_like_localhost(url: str | None) -> bool:
    value = (url or "").strip().lower()
    if not value:
        return False
    return "localhost" in value or "127.0.0.1" in value


def _append_if(problems: list[str], *, condition: bool, message: str) -> None:
    if condition:
        problems.append(message)


def _validate_core_production_settings(problems: list[str]) -> None:
    secret = (settings.secret_key or "").strip()
    _append_if(
        problems,
        condition=secret in {"", "dev-secret-key"} or len(secret) < 32,
        message="SECRET_KEY must be set to a strong random value (not the dev default).",
    )
    _append_if(
        problems,
        condition=_looks_like_localhost(settings.frontend_origin),
        message="FRONTEND_ORIGIN must be set to the public site origin (not localhost) in production.",
    )
    _append_if(
        problems,
        condition=not (settings.sentry_dsn or "").strip(),
        message="SENTRY_DSN must be configured in production.",
    )


def _validate_smtp_settings(problems: list[str]) -> None:
    smtp_enabled = bool(settings.smtp_enabled)
    _append_if(
        problems,
        condition=smtp_enabled and not (settings.smtp_host or "").strip(),
        message="SMTP_HOST must be set when SMTP_ENABLED=1.",
    )
    _append_if(
        problems,
        condition=smtp_enabled and not (settings.smtp_from_email or "").strip(),
        message="SMTP_FROM_EMAIL must be set when SMTP_ENABLED=1.",
    )


def coupon_policy_problems() -> list[str]:
    problems: list[str] = []
    _append_if(
        problems,
        condition=not _PREFIX_RE.fullmatch((settings.coupon_code_prefix or "").strip().upper()),
        message="COUPON_CODE_PREFIX must be 1-16 letters or digits.",
    )
    _append_if(
        problems,
        condition=int(settings.coupon_expiration_days) <= 0,
        message="COUPON_EXPIRATION_DAYS must be positive.",
    )
    _append_if(
        problems,
        condition=len((settings.coupon_default_currency or "").strip()) != 3,
        message="COUPON_DEFAULT_CURRENCY must be a 3-letter currency code.",
    )
    _append_if(
        problems,
        condition=int(settings.coupon_code_max_attempts) < 1,
        message="COUPON_CODE_MAX_ATTEMPTS must be at least 1.",
    )
    return problems


def validate_startup_settings() -> None:
    """
    Fail fast on an unusable coupon policy, and on insecure defaults when running in production.
    """
    problems = coupon_policy_problems()
    if _is_production():
        _validate_core_production_settings(problems)
        _validate_smtp_settings(problems)
    elif not settings.smtp_enabled:
        logger.info("smtp_disabled", extra={"environment": settings.environment})

    if problems:
        raise RuntimeError("Startup configuration checks failed:\n- " + "\n- ".join(problems))
