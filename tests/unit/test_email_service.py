"""SMTP sending"""
import smtplib
from unittest.mock import MagicMock, patch

import pytest

from app.services.email.email_service import EmailService


def smtp_connection(sendmail_error=None):
    server = MagicMock()
    server.__enter__.return_value = server
    server.__exit__.return_value = False
    if sendmail_error:
        server.sendmail.side_effect = sendmail_error
    return server


def test_send_email_closes_connection():
    server = smtp_connection()
    with patch.object(EmailService, "_get_smtp_connection", return_value=server):
        assert EmailService.send_email("maria@example.com", "Hi", "<p>Hi</p>", plain_text="Hi")

    server.sendmail.assert_called_once()
    server.__exit__.assert_called_once()


def test_failed_send_still_closes_connection():
    server = smtp_connection(smtplib.SMTPRecipientsRefused({"maria@example.com": (550, b"no")}))
    with patch.object(EmailService, "_get_smtp_connection", return_value=server):
        with pytest.raises(smtplib.SMTPRecipientsRefused):
            EmailService.send_email("maria@example.com", "Hi", "<p>Hi</p>")

    server.__exit__.assert_called_once()
