"""HTML bodies for account notification emails."""

from __future__ import annotations

from dataclasses import dataclass
from html import escape

_WRAPPER = (
    '<div style="font-family: Arial, sans-serif; max-width: 600px; '
    'margin: 0 auto; padding: 20px;">{content}</div>'
)
_HEADING = '<h2 style="color: #4F46E5;">{title}</h2>'


@dataclass(frozen=True)
class EmailMessage:
    subject: str
    html: str


def _render(title: str, name: str, paragraphs: list[str], app_name: str) -> str:
    body = [_HEADING.format(title=escape(title)), f"<p>Hello {escape(name)},</p>"]
    body += [f"<p>{p}</p>" for p in paragraphs]
    body.append(f"<p>Best regards,<br>The {escape(app_name)} Team</p>")
    return _WRAPPER.format(content="".join(body))


def welcome_email(name: str, app_name: str) -> EmailMessage:
    """First-login welcome message."""
    subject = f"Welcome to {app_name}!"
    return EmailMessage(
        subject=subject,
        html=_render(
            subject,
            name,
            [
                "Thank you for signing up to our Event Management System. "
                "We're excited to have you on board!",
                "You can now log in to your account and start exploring the platform.",
                "If you have any questions or need assistance, feel free to contact our support team.",
            ],
            app_name,
        ),
    )


def login_email(name: str, app_name: str) -> EmailMessage:
    """New-login notice for returning users."""
    return EmailMessage(
        subject=f"New Login Detected - {app_name}",
        html=_render(
            "New Login Detected",
            name,
            [
                f"We detected a new login to your {escape(app_name)} account.",
                "If this was you, you can safely ignore this email.",
                "If you didn't log in recently, please secure your account "
                "by changing your password immediately.",
            ],
            app_name,
        ),
    )
