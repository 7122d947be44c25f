import logging
import smtplib
from datetime import datetime
from decimal import Decimal
from email.message import EmailMessage
from pathlib import Path

import anyio
from jinja2 import Environment, FileSystemLoader, select_autoescape

from app.core import metrics
from app.core.config import settings

logger = logging.getLogger(__name__)

TEMPLATE_PATH = Path(__file__).parent.parent / "templates" / "emails"
env = Environment(loader=FileSystemLoader(TEMPLATE_PATH), autoescape=select_autoescape(["html", "xml", "html.j2"]))

_CURRENCY_SYMBOLS = {"EUR": "€", "USD": "$", "GBP": "£"}


def format_money(amount: Decimal | float | int, currency: str | None) -> str:
    code = (currency or "").upper()
    value = f"{Decimal(str(amount)):,.2f}"
    symbol = _CURRENCY_SYMBOLS.get(code)
    if symbol:
        return f"{symbol}{value}"
    return f"{code} {value}".strip()


def _frontend_url(path: str) -> str | None:
    base = (settings.frontend_origin or "").rstrip("/")
    if not base:
        return None
    return f"{base}{path}"


def _build_message(to_email: str, subject: str, text_body: str, html_body: str | None = None) -> EmailMessage:
    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = settings.smtp_from_email or "no-reply@fundsus.local"
    msg["To"] = to_email
    msg.set_content(text_body)
    if html_body:
        msg.add_alternative(html_body, subtype="html")
    return msg


def _deliver(msg: EmailMessage) -> None:
    with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=10) as smtp:
        if settings.smtp_use_tls:
            smtp.starttls()
        if settings.smtp_username and settings.smtp_password:
            smtp.login(settings.smtp_username, settings.smtp_password)
        smtp.send_message(msg)


async def send_email(to_email: str, subject: str, text_body: str, html_body: str | None = None) -> bool:
    """Best-effort delivery; returns False instead of raising when the message was not sent."""
    if not settings.smtp_enabled:
        logger.info("email_skipped_smtp_disabled", extra={"subject": subject})
        return False
    try:
        msg = _build_message(to_email, subject, text_body, html_body)
        await anyio.to_thread.run_sync(_deliver, msg)
        return True
    except Exception as exc:
        metrics.record_email_failure()
        logger.warning("Email send failed: %s", exc, extra={"subject": subject})
        return False


def render_template(template_name: str, context: dict) -> tuple[str, str]:
    base_text = env.get_template("base.txt.j2")
    base_html = env.get_template("base.html.j2")
    context = {"brand_name": settings.brand_name, **context}
    body_text = env.get_template(template_name).render(**context)
    body_html = env.get_template(template_name.replace(".txt.j2", ".html.j2")).render(**context)
    return (
        base_text.render(body=body_text, brand_name=settings.brand_name),
        base_html.render(body=body_html, brand_name=settings.brand_name),
    )


async def send_coupon_issued(
    to_email: str,
    *,
    donor_name: str,
    code: str,
    donation_amount: Decimal,
    currency: str,
    fundraiser_title: str,
    expires_at: datetime,
    has_account: bool,
) -> bool:
    subject = f"Your donation coupon code: {code}"
    text_body, html_body = render_template(
        "coupon_issued.txt.j2",
        {
            "donor_name": donor_name,
            "code": code,
            "amount": format_money(donation_amount, currency),
            "fundraiser_title": fundraiser_title,
            "expires_on": expires_at.strftime("%d %B %Y"),
            "help_url": _frontend_url("/help"),
            "coupons_url": _frontend_url("/profile/coupons") if has_account else None,
        },
    )
    return await send_email(to_email, subject, text_body, html_body)


async def send_award_announcement(
    to_email: str,
    *,
    donor_name: str | None,
    code: str,
    donation_amount: Decimal,
    currency: str,
    fundraiser_title: str | None,
    fundraiser_slug: str | None,
    selected_at: datetime,
    announced_at: datetime,
    notes: str | None = None,
) -> bool:
    winner = donor_name or "Valued Supporter"
    subject = f"{settings.brand_name} award winner: {donor_name or 'You'}!"
    text_body, html_body = render_template(
        "award_announcement.txt.j2",
        {
            "donor_name": winner,
            "code": code,
            "amount": format_money(donation_amount, currency),
            "fundraiser_title": fundraiser_title or "your supported fundraiser",
            "fundraiser_url": _frontend_url(f"/fundraisers/{fundraiser_slug}") if fundraiser_slug else None,
            "selected_on": selected_at.strftime("%d %B %Y"),
            "announced_on": announced_at.strftime("%d %B %Y"),
            "notes": notes,
            "support_email": settings.support_email or settings.smtp_from_email,
        },
    )
    return await send_email(to_email, subject, text_body, html_body)
