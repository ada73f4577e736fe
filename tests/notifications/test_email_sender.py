"""Tests for SMTP email delivery."""

import smtplib
from unittest import mock

import pytest

from heuly.notifications import SmtpEmailSender, SmtpSettings

SUBJECT = "Password Reset - Heuly"
BODY = "<p><a href='http://localhost/reset'>Reset Password</a></p>"


@pytest.fixture
def settings() -> SmtpSettings:
    return SmtpSettings(
        server="smtp.example.com",
        port=2525,
        username="mailer",
        password="mailer-password",  # noqa: S106
        from_address="no-reply@example.com",
    )


def test_settings_disabled_without_server() -> None:
    assert not SmtpSettings().enabled
    assert not SmtpSettings(server="smtp.example.com").enabled
    assert SmtpSettings(server="smtp.example.com", from_address="a@b.io").enabled


def test_build_message(settings: SmtpSettings) -> None:
    message = SmtpEmailSender(settings).build_message("bob@example.com", SUBJECT, BODY)

    assert message["From"] == "no-reply@example.com"
    assert message["To"] == "bob@example.com"
    assert message["Subject"] == SUBJECT
    assert message.is_multipart()

    html = message.get_body(preferencelist=("html",))
    assert html is not None
    assert "Reset Password" in html.get_content()


@pytest.mark.asyncio
async def test_send_email_delivers_over_smtp(settings: SmtpSettings) -> None:
    with mock.patch("smtplib.SMTP") as smtp_class:
        await SmtpEmailSender(settings).send_email("bob@example.com", SUBJECT, BODY)

    smtp_class.assert_called_once_with("smtp.example.com", 2525, timeout=10)
    smtp = smtp_class.return_value.__enter__.return_value
    smtp.starttls.assert_called_once()
    smtp.login.assert_called_once_with("mailer", "mailer-password")
    smtp.send_message.assert_called_once()
    assert smtp.send_message.call_args.args[0]["To"] == "bob@example.com"


@pytest.mark.asyncio
async def test_send_email_skips_tls_and_login_when_unset(
    settings: SmtpSettings,
) -> None:
    settings.use_tls = False
    settings.username = ""

    with mock.patch("smtplib.SMTP") as smtp_class:
        await SmtpEmailSender(settings).send_email("bob@example.com", SUBJECT, BODY)

    smtp = smtp_class.return_value.__enter__.return_value
    smtp.starttls.assert_not_called()
    smtp.login.assert_not_called()
    smtp.send_message.assert_called_once()


@pytest.mark.asyncio
async def test_send_email_disabled_does_not_connect() -> None:
    with mock.patch("smtplib.SMTP") as smtp_class:
        await SmtpEmailSender(SmtpSettings()).send_email(
            "bob@example.com",
            SUBJECT,
            BODY,
        )

    smtp_class.assert_not_called()


@pytest.mark.asyncio
async def test_send_email_swallows_transport_errors(settings: SmtpSettings) -> None:
    with mock.patch("smtplib.SMTP") as smtp_class:
        smtp = smtp_class.return_value.__enter__.return_value
        smtp.send_message.side_effect = smtplib.SMTPRecipientsRefused({})

        await SmtpEmailSender(settings).send_email("bob@example.com", SUBJECT, BODY)

    smtp.send_message.assert_called_once()


@pytest.mark.asyncio
async def test_send_email_swallows_connection_errors(settings: SmtpSettings) -> None:
    with mock.patch("smtplib.SMTP", side_effect=ConnectionRefusedError):
        await SmtpEmailSender(settings).send_email("bob@example.com", SUBJECT, BODY)
