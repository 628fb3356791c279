from __future__ import annotations

import html
import logging
import smtplib
import ssl
from email.message import EmailMessage

from ats_optimizer.core.config import settings

logger = logging.getLogger(__name__)


def _smtp_ready() -> bool:
    return bool(settings.smtp_host and (settings.smtp_from or settings.smtp_user))


def _smtp_password() -> str | None:
    if not settings.smtp_password:
        return None
    # Gmail app passwords are often copied with spaces every 4 chars.
    return settings.smtp_password.replace(" ", "")


def _smtp_login_if_needed(server: smtplib.SMTP) -> None:
    if settings.smtp_user and _smtp_password():
        server.login(settings.smtp_user, _smtp_password())


def _send_via_smtp_with(host: str, port: int, use_tls: bool, msg: EmailMessage, context: ssl.SSLContext) -> None:
    if use_tls:
        with smtplib.SMTP(host, port, timeout=15) as server:
            server.starttls(context=context)
            _smtp_login_if_needed(server)
            server.send_message(msg)
        return

    with smtplib.SMTP_SSL(host, port, context=context, timeout=15) as server:
        _smtp_login_if_needed(server)
        server.send_message(msg)


def build_upsell_message(*, recipient: str, first_name: str, score: int, analysis_id: str) -> EmailMessage:
    checkout_url = f"{settings.frontend_url.rstrip('/')}/checkout?analysis={analysis_id}"
    sender = settings.smtp_from or settings.smtp_user or ""

    msg = EmailMessage()
    msg["Subject"] = "Improving your job chances starts here"
    msg["From"] = f"ATS Optimizer <{sender}>"
    msg["To"] = recipient

    msg.set_content(
        "\n".join(
            [
                f"Hi {first_name or 'there'},",
                "",
                f"Your scan score: {score}%",
                "There are several findings that could improve your chances with applicant tracking systems.",
                "Unlock the full report and the optimized version of your CV or LinkedIn profile:",
                checkout_url,
            ]
        )
    )
    msg.add_alternative(
        f"""
        <h2>Your scan score: {score}%</h2>
        <p>There are several findings that could improve your chances with applicant tracking systems.</p>
        <p>Unlock the full report and the optimized version of your CV or LinkedIn profile.</p>
        <a href="{html.escape(checkout_url, quote=True)}"
           style="background:#007bff;color:#fff;padding:10px 15px;text-decoration:none;">Unlock the full report</a>
        """,
        subtype="html",
    )
    return msg


def send_upsell_email(*, recipient: str, first_name: str, score: int, analysis_id: str) -> bool:
    """Nudge a free user towards a paid plan after a scan. Failures never reach the caller."""
    if not _smtp_ready():
        logger.info("Upsell email is not configured; skipping.")
        return False

    msg = build_upsell_message(recipient=recipient, first_name=first_name, score=score, analysis_id=analysis_id)
    context = ssl.create_default_context()
    primary_mode = "STARTTLS" if settings.smtp_use_tls else "SSL"
    try:
        _send_via_smtp_with(
            host=settings.smtp_host or "",
            port=settings.smtp_port,
            use_tls=settings.smtp_use_tls,
            msg=msg,
            context=context,
        )
        return True
    except Exception as exc:  # noqa: BLE001 - keep scan flow alive
        logger.exception(
            "Upsell email via SMTP failed (host=%s port=%s mode=%s): %s",
            settings.smtp_host,
            settings.smtp_port,
            primary_mode,
            exc,
        )

    if not settings.smtp_fallback_ssl:
        return False

    fallback_host = settings.smtp_host or ""
    fallback_port = 465 if settings.smtp_use_tls else 587
    fallback_tls = not settings.smtp_use_tls
    fallback_mode = "STARTTLS" if fallback_tls else "SSL"
    try:
        _send_via_smtp_with(
            host=fallback_host,
            port=fallback_port,
            use_tls=fallback_tls,
            msg=msg,
            context=context,
        )
        logger.info(
            "Upsell email sent with SMTP fallback (host=%s port=%s mode=%s).",
            fallback_host,
            fallback_port,
            fallback_mode,
        )
        return True
    except Exception as exc:  # noqa: BLE001 - keep scan flow alive
        logger.exception(
            "Upsell email SMTP fallback failed (host=%s port=%s mode=%s): %s",
            fallback_host,
            fallback_port,
            fallback_mode,
            exc,
        )
        return False
