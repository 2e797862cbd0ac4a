"""
SMTP email sender adapter - Implements NotificationSender protocol.

Sends the verification code as a plain-text + HTML message through an
SMTP relay. Transport failures are reported as DeliveryFailed; retrying
is left to the caller, who can simply request a new code.
"""

import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr

from src.domain.exceptions import DeliveryFailed
from src.domain.ports import Purpose

logger = logging.getLogger(__name__)

_SUBJECTS = {
    Purpose.REGISTRATION_VIEWER: "Verify Your Email - Momentum",
    Purpose.REGISTRATION_CREATOR: "Verify Your Email - Momentum",
    Purpose.PASSWORD_CHANGE: "Confirm Your Password Change - Momentum",
    Purpose.PASSWORD_RESET: "Reset Your Password - Momentum",
}

_INTROS = {
    Purpose.REGISTRATION_VIEWER: (
        "Thank you for registering as a viewer on Momentum. "
        "To complete your registration, please verify your email address "
        "using the code below."
    ),
    Purpose.REGISTRATION_CREATOR: (
        "Thank you for registering as a creator on Momentum. "
        "To complete your registration, please verify your email address "
        "using the code below."
    ),
    Purpose.PASSWORD_CHANGE: (
        "We received a request to change the password of your Momentum account. "
        "Enter the code below to confirm the change."
    ),
    Purpose.PASSWORD_RESET: (
        "We received a request to reset the password of your Momentum account. "
        "Enter the code below to choose your new password."
    ),
}

_HTML_TEMPLATE = """\
<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>{subject}</title></head>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
  <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
    <div style="text-align: center; font-size: 24px; font-weight: bold; color: #f97316;">Momentum</div>
    <p>Hello!</p>
    <p>{intro}</p>
    <div style="background: #f8f9fa; border: 2px solid #e9ecef; border-radius: 8px; padding: 20px; text-align: center;">
      <p>Your verification code is:</p>
      <div style="font-size: 32px; font-weight: bold; letter-spacing: 8px; color: #f97316;">{code}</div>
      <p><small>This code will expire in {minutes} minutes</small></p>
    </div>
    <p><strong>Security Notice:</strong> If you didn't request this code, please ignore this email.
    Do not share this code with anyone.</p>
    <p>Best regards,<br>The Momentum Team</p>
  </div>
</body>
</html>
"""


class SmtpEmailSender:
    """
    Implements NotificationSender protocol via an SMTP relay.

    Uses structural subtyping - no explicit inheritance from Protocol.
    A new connection is opened per message.
    """

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: str = "",
        password: str = "",
        use_tls: bool = True,
        timeout: float = 20,
        mail_from: str = "",
        mail_from_name: str = "Momentum",
        ttl_seconds: int = 300,
    ) -> None:
        self._host = host
        self._port = port
        self._username = username
        self._password = password
        self._use_tls = use_tls
        self._timeout = timeout
        self._mail_from = mail_from or username
        self._mail_from_name = mail_from_name
        self._ttl_minutes = max(1, ttl_seconds // 60)

    def build_message(self, email: str, code: str, purpose: Purpose) -> EmailMessage:
        """Build the multipart verification message."""
        subject = _SUBJECTS[purpose]
        intro = _INTROS[purpose]

        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = formataddr((self._mail_from_name, self._mail_from))
        message["To"] = email
        message.set_content(
            f"{intro}\n\nYour Momentum verification code is: {code}\n"
            f"This code will expire in {self._ttl_minutes} minutes.\n"
        )
        message.add_alternative(
            _HTML_TEMPLATE.format(
                subject=subject, intro=intro, code=code, minutes=self._ttl_minutes
            ),
            subtype="html",
        )
        return message

    def send_verification_code(self, email: str, code: str, purpose: Purpose) -> None:
        """
        Send the verification code through the SMTP relay.

        Args:
            email: Recipient email address (normalized by domain layer)
            code: 6-digit verification code
            purpose: What the code was issued for

        Raises:
            DeliveryFailed: If the relay could not be reached or refused the message
        """
        message = self.build_message(email, code, purpose)

        try:
            with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as server:
                server.ehlo()
                if self._use_tls:
                    server.starttls()
                    server.ehlo()
                if self._username and self._password:
                    server.login(self._username, self._password)
                server.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed to send verification email to %s: %s", email, e)
            raise DeliveryFailed(email) from e

        logger.info("Verification email sent to %s (purpose=%s)", email, purpose.value)
