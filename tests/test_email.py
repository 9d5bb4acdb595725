"""Tests for core/email.py (SMTP is mocked)."""

import smtplib
from unittest.mock import patch

import pytest

from festauth.core.email import EmailService


def _service(**overrides):
    kwargs = {
        "smtp_host": "smtp.example.com",
        "smtp_port": 587,
        "smtp_user": "mailer@example.com",
        "smtp_password": "pw",
        "from_email": "noreply@example.com",
    }
    kwargs.update(overrides)
    return EmailService(**kwargs)


@pytest.mark.asyncio
async def test_unconfigured_service_only_logs():
    service = EmailService()
    assert service.is_configured is False

    with patch("festauth.core.email.smtplib.SMTP") as smtp:
        sent = await service.send_password_reset("a@example.com", "Alice", "http://x/reset")

    assert sent is True
    smtp.assert_not_called()


@pytest.mark.asyncio
async def test_starttls_delivery():
    service = _service()

    with patch("festauth.core.email.smtplib.SMTP") as smtp:
        sent = await service.send_password_reset(
            "alice@example.com", "Alice", "http://app.test/auth/reset-password?token=abc"
        )

    assert sent is True
    server = smtp.return_value.__enter__.return_value
    server.starttls.assert_called_once()
    server.login.assert_called_once_with("mailer@example.com", "pw")
    from_addr, to_addr, _ = server.sendmail.call_args.args
    assert from_addr == "noreply@example.com"
    assert to_addr == "alice@example.com"


@pytest.mark.asyncio
async def test_implicit_tls_delivery():
    service = _service(smtp_port=465, smtp_use_tls=False)

    with patch("festauth.core.email.smtplib.SMTP_SSL") as smtp_ssl:
        assert await service.send("bob@example.com", "Hi", "<p>Hi</p>", "Hi") is True

    smtp_ssl.return_value.__enter__.return_value.sendmail.assert_called_once()


@pytest.mark.asyncio
async def test_delivery_failure_returns_false():
    service = _service()

    with patch("festauth.core.email.smtplib.SMTP", side_effect=OSError("connection refused")):
        assert await service.send("bob@example.com", "Hi", "<p>Hi</p>", "Hi") is False


@pytest.mark.asyncio
async def test_auth_failure_returns_false():
    service = _service()

    with patch("festauth.core.email.smtplib.SMTP") as smtp:
        server = smtp.return_value.__enter__.return_value
        server.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad credentials")
        assert await service.send("bob@example.com", "Hi", "<p>Hi</p>", "Hi") is False
