import smtplib
import unittest
from email import message_from_string
from unittest import mock

from tenantforms.config import get_settings
from tenantforms.services.email import EmailService


class EmailServiceTests(unittest.TestCase):
    def setUp(self):
        self.settings = get_settings()
        self._smtp = (self.settings.smtp_host, self.settings.smtp_user, self.settings.smtp_password)
        self.service = EmailService()

    def tearDown(self):
        self.settings.smtp_host, self.settings.smtp_user, self.settings.smtp_password = self._smtp

    def configure_smtp(self):
        self.settings.smtp_host = "smtp.example.com"
        self.settings.smtp_user = "mailer"
        self.settings.smtp_password = "secret"

    def test_skipped_without_configuration(self):
        self.settings.smtp_host = None
        with mock.patch("tenantforms.services.email.smtplib.SMTP") as smtp:
            with self.assertLogs("tenantforms.services.email", level="WARNING"):
                sent = self.service.send_company_approved("owner@acme.io", "Olive", "Acme Corp", 3)
        self.assertFalse(sent)
        smtp.assert_not_called()

    def test_invitation_is_sent(self):
        self.configure_smtp()
        with mock.patch("tenantforms.services.email.smtplib.SMTP") as smtp:
            sent = self.service.send_team_invitation(
                "new@acme.io",
                "Nadia <b>",
                "Olive Owner",
                "Acme Corp",
                "editor",
                "http://localhost:3000/invitations/abc",
            )
        self.assertTrue(sent)
        server = smtp.return_value.__enter__.return_value
        server.login.assert_called_once_with("mailer", "secret")

        _, recipients, raw = server.sendmail.call_args[0]
        self.assertEqual(recipients, ["new@acme.io"])
        message = message_from_string(raw)
        self.assertEqual(message["Subject"], "Olive Owner invited you to join Acme Corp")
        text_part, html_part = message.get_payload()
        self.assertIn("Accept invitation: http://localhost:3000/invitations/abc", text_part.get_payload(decode=True).decode())
        html = html_part.get_payload(decode=True).decode()
        self.assertIn("Nadia &lt;b&gt;", html)
        self.assertIn('href="http://localhost:3000/invitations/abc"', html)

    def test_smtp_failures_are_logged_not_raised(self):
        self.configure_smtp()
        with mock.patch("tenantforms.services.email.smtplib.SMTP") as smtp:
            smtp.return_value.__enter__.return_value.login.side_effect = smtplib.SMTPAuthenticationError(535, b"nope")
            with self.assertLogs("tenantforms.services.email", level="ERROR"):
                sent = self.service.send_company_rejected("owner@acme.io", "Olive", "Acme Corp", "Missing documents")
        self.assertFalse(sent)


if __name__ == "__main__":
    unittest.main()
