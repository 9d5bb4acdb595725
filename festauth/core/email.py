"""Outgoing e-mail over SMTP.

Delivery runs in a worker thread so the event loop is never blocked by
the SMTP conversation. Without ``SMTP_HOST`` the message is logged
instead of sent (development mode).
"""

from __future__ import annotations

import asyncio
import html
import smtplib
import ssl
from datetime import datetime, timezone
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from functools import lru_cache

from festauth.core.config import Settings, get_settings
from festauth.core.logging import get_logger, redact_email

logger = get_logger(__name__)


class EmailService:
    """Send transactional mails (currently: password reset links)."""

    def __init__(
        self,
        *,
        smtp_host: str | None = None,
        smtp_port: int = 587,
        smtp_user: str | None = None,
        smtp_password: str | None = None,
        smtp_use_tls: bool = True,
        from_email: str | None = None,
        from_name: str = "Huegelfest",
        reset_ttl_minutes: int = 10,
    ) -> None:
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.smtp_use_tls = smtp_use_tls
        self.from_email = from_email or smtp_user
        self.from_name = from_name
        self.reset_ttl_minutes = reset_ttl_minutes

    @classmethod
    def from_settings(cls, settings: Settings) -> "EmailService":
        return cls(
            smtp_host=settings.smtp_host,
            smtp_port=settings.smtp_port,
            smtp_user=settings.smtp_user,
            smtp_password=settings.smtp_password,
            smtp_use_tls=settings.smtp_use_tls,
            from_email=settings.from_email,
            from_name=settings.from_name,
            reset_ttl_minutes=settings.password_reset_ttl_minutes,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.smtp_host and self.from_email)

    async def send(self, to_email: str, subject: str, html_body: str, text_body: str) -> bool:
        """Send a mail; returns False (and logs) on delivery failure."""
        if not self.is_configured:
            logger.info(
                "Email not sent, SMTP not configured",
                to=redact_email(to_email),
                subject=subject,
            )
            return True
        return await asyncio.to_thread(self._send_sync, to_email, subject, html_body, text_body)

    def _send_sync(self, to_email: str, subject: str, html_body: str, text_body: str) -> bool:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = to_email
        msg.attach(MIMEText(text_body, "plain"))
        msg.attach(MIMEText(html_body, "html"))

        context = ssl.create_default_context()
        try:
            if self.smtp_use_tls:
                with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=30) as server:
                    server.starttls(context=context)
                    if self.smtp_user and self.smtp_password:
                        server.login(self.smtp_user, self.smtp_password)
                    server.sendmail(self.from_email, to_email, msg.as_string())
            else:
                with smtplib.SMTP_SSL(
                    self.smtp_host, self.smtp_port, context=context, timeout=30
                ) as server:
                    if self.smtp_user and self.smtp_password:
                        server.login(self.smtp_user, self.smtp_password)
                    server.sendmail(self.from_email, to_email, msg.as_string())
        except smtplib.SMTPAuthenticationError as e:
            logger.error("SMTP authentication failed", host=self.smtp_host, error=str(e))
            return False
        except (smtplib.SMTPException, ssl.SSLError, OSError) as e:
            logger.error(
                "Email delivery failed",
                to=redact_email(to_email),
                host=self.smtp_host,
                port=self.smtp_port,
                error_type=type(e).__name__,
                error=str(e),
            )
            return False

        logger.info("Email sent", to=redact_email(to_email), subject=subject)
        return True

    async def send_password_reset(self, to_email: str, name: str | None, reset_url: str) -> bool:
        greeting = f"Hallo {name}," if name else "Hallo,"
        subject = "Passwort zurücksetzen - Hügelfest"
        text_body = (
            f"{greeting}\n\n"
            "Du hast eine Anfrage zum Zurücksetzen deines Passworts gestellt.\n"
            f"Öffne diesen Link, um ein neues Passwort festzulegen:\n{reset_url}\n\n"
            f"Der Link ist {self.reset_ttl_minutes} Minuten gültig und kann nur einmal "
            "verwendet werden. Falls du diese Anfrage nicht gestellt hast, ignoriere "
            "diese E-Mail.\n"
        )
        safe_url = html.escape(reset_url, quote=True)
        html_body = f"""<!DOCTYPE html>
<html lang="de">
<head><meta charset="utf-8"><title>{subject}</title></head>
<body style="font-family: -apple-system, 'Segoe UI', Roboto, sans-serif; color: #333;">
  <h1 style="color: #460b6c;">Hügelfest</h1>
  <p>{html.escape(greeting)}</p>
  <p>Du hast eine Anfrage zum Zurücksetzen deines Passworts gestellt.</p>
  <p><a href="{safe_url}" style="background: #ff9900; color: #fff; padding: 12px 24px;
     border-radius: 8px; text-decoration: none;">Passwort zurücksetzen</a></p>
  <p style="font-size: 13px; color: #666;">{safe_url}</p>
  <ul>
    <li>Dieser Link ist nur {self.reset_ttl_minutes} Minuten gültig</li>
    <li>Aus Sicherheitsgründen kannst du diesen Link nur einmal verwenden</li>
    <li>Falls du diese Anfrage nicht gestellt hast, ignoriere diese E-Mail</li>
  </ul>
  <p style="color: #460b6c;">Hügelfest {datetime.now(timezone.utc).year}</p>
</body>
</html>"""
        return await self.send(to_email, subject, html_body, text_body)


@lru_cache
def get_email_service() -> EmailService:
    return EmailService.from_settings(get_settings())
