"""Outbound notifications (password reset emails)."""

from .email_sender import EmailSender, SmtpEmailSender, SmtpSettings

__all__ = ["EmailSender", "SmtpEmailSender", "SmtpSettings"]
