"""Email notifications for company status changes, team invitations and password resets."""

import smtplib
import ssl
import logging
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import List, Optional

from jinja2 import Template

from tenantforms.config import get_settings

logger = logging.getLogger(__name__)


LAYOUT = Template("""
<!DOCTYPE html>
<html>
<head>
    <style>
        body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; }
        .container { max-width: 600px; margin: 0 auto; padding: 20px; }
        .header { background-color: #f8f9fa; padding: 20px; border-radius: 8px; text-align: center; }
        .content { padding: 20px 0; }
        .note { background-color: #e9ecef; padding: 15px; border-radius: 5px; margin: 15px 0; }
        .button { display: inline-block; padding: 10px 20px; background-color: #1e293b; color: #ffffff; border-radius: 5px; text-decoration: none; }
        .footer { text-align: center; font-size: 12px; color: #6c757d; margin-top: 30px; }
    </style>
</head>
<body>
    <div class="container">
        <div class="header">
            <h1>{{ title }}</h1>
        </div>
        <div class="content">
            <p>Hello {{ recipient_name }},</p>
            {% for paragraph in paragraphs %}
            <p>{{ paragraph }}</p>
            {% endfor %}
            {% if note %}
            <div class="note">{{ note }}</div>
            {% endif %}
            {% if action_url %}
            <p><a class="button" href="{{ action_url }}">{{ action_label }}</a></p>
            {% endif %}
        </div>
        <div class="footer">
            <p>This is an automated notification. Please do not reply to this email.</p>
        </div>
    </div>
</body>
</html>
""", autoescape=True)


class EmailService:
    """Sends HTML notifications over SMTP. Never raises; failures are logged."""

    def send_email(
        self,
        to_emails: List[str],
        subject: str,
        html_content: str,
        text_content: Optional[str] = None
    ) -> bool:
        """Send email with both HTML and text content."""
        settings = get_settings()

        if not all([settings.smtp_host, settings.smtp_user, settings.smtp_password]):
            logger.warning("Email configuration incomplete, skipping email '%s'", subject)
            return False

        try:
            message = MIMEMultipart("alternative")
            message["Subject"] = subject
            message["From"] = settings.from_email
            message["To"] = ", ".join(to_emails)

            if text_content:
                message.attach(MIMEText(text_content, "plain"))
            message.attach(MIMEText(html_content, "html"))

            context = ssl.create_default_context()

            with smtplib.SMTP(settings.smtp_host, settings.smtp_port) as server:
                server.starttls(context=context)
                server.login(settings.smtp_user, settings.smtp_password)
                server.sendmail(settings.from_email, to_emails, message.as_string())

            logger.info("Email '%s' sent to %s", subject, ", ".join(to_emails))
            return True

        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed to send email '%s': %s", subject, e)
            return False

    def _send(
        self,
        to_email: str,
        recipient_name: str,
        subject: str,
        title: str,
        paragraphs: List[str],
        note: Optional[str] = None,
        action_url: Optional[str] = None,
        action_label: Optional[str] = None,
    ) -> bool:
        html_content = LAYOUT.render(
            title=title,
            recipient_name=recipient_name,
            paragraphs=paragraphs,
            note=note,
            action_url=action_url,
            action_label=action_label,
        )
        text_lines = [title, "", f"Hello {recipient_name},", ""] + paragraphs
        if note:
            text_lines += ["", note]
        if action_url:
            text_lines += ["", f"{action_label}: {action_url}"]
        return self.send_email([to_email], subject, html_content, "\n".join(text_lines))

    def send_company_approved(self, to_email: str, recipient_name: str, company_name: str, company_id: int) -> bool:
        settings = get_settings()
        return self._send(
            to_email,
            recipient_name,
            subject=f"{company_name} has been approved",
            title="Your company has been approved",
            paragraphs=[
                f"Good news! {company_name} has been approved and your workspace is ready.",
                "You can now invite your team and start building forms.",
            ],
            action_url=f"{settings.app_url}/org/{company_id}",
            action_label="Open your dashboard",
        )

    def send_company_rejected(self, to_email: str, recipient_name: str, company_name: str, reason: str) -> bool:
        settings = get_settings()
        return self._send(
            to_email,
            recipient_name,
            subject=f"Update on your application for {company_name}",
            title="Your application needs changes",
            paragraphs=[
                f"We reviewed the application for {company_name} and could not approve it yet.",
                "You can update your details and resubmit the application.",
            ],
            note=f"Reason: {reason}",
            action_url=f"{settings.app_url}/onboarding",
            action_label="Update application",
        )

    def send_company_suspended(
        self,
        to_email: str,
        recipient_name: str,
        company_name: str,
        reason: Optional[str] = None
    ) -> bool:
        return self._send(
            to_email,
            recipient_name,
            subject=f"{company_name} has been suspended",
            title="Your company has been suspended",
            paragraphs=[
                f"Access to {company_name} has been suspended.",
                "Please contact support if you believe this is a mistake.",
            ],
            note=f"Reason: {reason}" if reason else None,
        )

    def send_company_activated(self, to_email: str, recipient_name: str, company_name: str, company_id: int) -> bool:
        settings = get_settings()
        return self._send(
            to_email,
            recipient_name,
            subject=f"{company_name} has been reactivated",
            title="Your company is active again",
            paragraphs=[f"Access to {company_name} has been restored."],
            action_url=f"{settings.app_url}/org/{company_id}",
            action_label="Open your dashboard",
        )

    def send_team_invitation(
        self,
        to_email: str,
        invitee_name: str,
        inviter_name: str,
        company_name: str,
        role: str,
        invite_url: str
    ) -> bool:
        settings = get_settings()
        return self._send(
            to_email,
            invitee_name,
            subject=f"{inviter_name} invited you to join {company_name}",
            title=f"Join {company_name}",
            paragraphs=[
                f"{inviter_name} has invited you to join {company_name} as {role}.",
                f"This invitation expires in {settings.invitation_expiry_days} days.",
            ],
            action_url=invite_url,
            action_label="Accept invitation",
        )

    def send_password_reset(self, to_email: str, recipient_name: str, reset_url: str) -> bool:
        settings = get_settings()
        return self._send(
            to_email,
            recipient_name,
            subject="Reset your password",
            title="Reset your password",
            paragraphs=[
                "We received a request to reset the password for your account.",
                f"This link expires in {settings.password_reset_expiry_minutes} minutes and can be used once.",
            ],
            note="If you did not ask for a new password you can ignore this email.",
            action_url=reset_url,
            action_label="Choose a new password",
        )

    def send_password_changed(self, to_email: str, recipient_name: str) -> bool:
        return self._send(
            to_email,
            recipient_name,
            subject="Your password was changed",
            title="Your password was changed",
            paragraphs=["The password for your account was just reset."],
            note="If this was not you, contact support right away.",
        )


email_service = EmailService()
