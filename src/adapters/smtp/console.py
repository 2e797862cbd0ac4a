"""
Console email sender adapter - Implements NotificationSender protocol.

This module provides a console-based implementation of the domain's
notification sender port, logging verification codes for local development.
"""

import logging

from src.domain.ports import Purpose

logger = logging.getLogger(__name__)


class ConsoleEmailSender:
    """
    Implements NotificationSender protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    For development purposes - never fails to deliver.
    """

    def send_verification_code(self, email: str, code: str, purpose: Purpose) -> None:
        """
        Log verification code to console (simulates email delivery).

        The code is logged at INFO level to be visible in container logs.

        Args:
            email: Recipient email address (normalized by domain layer)
            code: 6-digit verification code
            purpose: What the code was issued for
        """
        logger.info(
            "[VERIFICATION] Email: %s Code: %s Purpose: %s", email, code, purpose.value
        )
