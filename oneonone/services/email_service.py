"""
Outbound email over SMTP.

Config (in .env):
    SMTP_HOST=smtp.gmail.com
    SMTP_PORT=587                 # 465 switches to implicit SSL
    SMTP_USERNAME=you@example.com
    SMTP_PASSWORD=app-password
    SMTP_USE_TLS=true
    EMAIL_FROM_ADDRESS="One-on-One <noreply@example.com>"
"""
import asyncio
import logging
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from oneonone.config import get_settings
from oneonone.services.effects import EmailPort

logger = logging.getLogger(__name__)


# ──────────────────────────────────────────────────────
#  SMTP helpers (sync, run in executor for async usage)
# ──────────────────────────────────────────────────────

def _build_message(from_address: str, to: str, subject: str, text: str, html: Optional[str]) -> MIMEMultipart:
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = from_address
    msg["To"] = to
    msg.attach(MIMEText(text, "plain"))
    if html:
        msg.attach(MIMEText(html, "html"))
    return msg


def _send_smtp(
    host: str,
    port: int,
    username: str,
    password: str,
    use_tls: bool,
    from_address: str,
    to: str,
    msg: MIMEMultipart,
) -> None:
    if port == 465:
        server = smtplib.SMTP_SSL(host, port, context=ssl.create_default_context(), timeout=30)
    else:
        server = smtplib.SMTP(host, port, timeout=30)
        if use_tls:
            server.starttls(context=ssl.create_default_context())

    try:
        if username:
            server.login(username, password)
        # Envelope sender is the bare address from "Name <addr>"
        server.sendmail(from_address.split("<")[-1].rstrip(">"), [to], msg.as_string())
    finally:
        server.quit()


class SmtpEmailService(EmailPort):

    @property
    def is_configured(self) -> bool:
        settings = get_settings()
        return bool(settings.SMTP_HOST and settings.EMAIL_FROM_ADDRESS)

    async def send(self, to: str, subject: str, text: str, html: Optional[str] = None) -> None:
        settings = get_settings()
        if not self.is_configured:
            logger.info(f"SMTP not configured, skipping email '{subject}' to {to}")
            return

        msg = _build_message(settings.EMAIL_FROM_ADDRESS, to, subject, text, html)

        # smtplib is blocking IO
        loop = asyncio.get_event_loop()
        await loop.run_in_executor(
            None,
            _send_smtp,
            settings.SMTP_HOST,
            settings.SMTP_PORT,
            settings.SMTP_USERNAME,
            settings.SMTP_PASSWORD,
            settings.SMTP_USE_TLS,
            settings.EMAIL_FROM_ADDRESS,
            to,
            msg,
        )
        logger.info(f"Email sent via {settings.SMTP_HOST}: '{subject}' to {to}")
