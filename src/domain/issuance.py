"""
Verification issuance service - issue a code, then deliver it.

The caller is responsible for checking that the email is eligible for the
purpose (for example, not already owned by an account) before calling in.
"""

import logging
from dataclasses import dataclass

from .code_store import VerificationCodeStore, normalize_email
from .exceptions import DeliveryFailed, PayloadMismatch, VerificationUnavailable
from .payloads import PendingPayload, payload_matches
from .ports import NotificationSender, Purpose

logger = logging.getLogger(__name__)


@dataclass
class VerificationIssuanceService:
    """
    Domain service that hands out verification codes.

    By default a failed delivery leaves the new record in place and the
    caller asks for a fresh code, which overwrites it. With
    `rollback_on_delivery_failure` the undeliverable record is discarded.
    """

    store: VerificationCodeStore
    sender: NotificationSender
    rollback_on_delivery_failure: bool = False

    def request_verification(
        self, email: str, purpose: Purpose, payload: PendingPayload | None = None
    ) -> str:
        """
        Issue a code for an email and send it out.

        Args:
            email: Email address (will be normalized)
            purpose: What the code is being issued for
            payload: Data to release only after successful verification

        Returns:
            Normalized email address (the code itself is never returned)

        Raises:
            PayloadMismatch: If the payload variant does not fit the purpose
            DeliveryFailed: If the sender could not deliver the code
            VerificationUnavailable: If the store or sender failed unexpectedly
        """
        if not payload_matches(purpose, payload):
            raise PayloadMismatch(f"{type(payload).__name__} cannot be issued for {purpose.value}")

        normalized_email = normalize_email(email)

        try:
            code = self.store.issue(normalized_email, purpose, payload)
        except Exception as e:
            logger.exception("Verification store failed for %s", normalized_email)
            raise VerificationUnavailable(normalized_email) from e

        self._deliver(normalized_email, code, purpose)
        return normalized_email

    def resend_verification(self, email: str, purpose: Purpose) -> str | None:
        """
        Send a fresh code for a pending verification, keeping its payload.

        Returns:
            Normalized email address, or None if nothing is pending for
            this purpose

        Raises:
            DeliveryFailed: If the sender could not deliver the code
            VerificationUnavailable: If the store or sender failed unexpectedly
        """
        normalized_email = normalize_email(email)

        try:
            code = self.store.reissue(normalized_email, purpose)
        except Exception as e:
            logger.exception("Verification store failed for %s", normalized_email)
            raise VerificationUnavailable(normalized_email) from e

        if code is None:
            return None

        self._deliver(normalized_email, code, purpose)
        return normalized_email

    def _deliver(self, email: str, code: str, purpose: Purpose) -> None:
        try:
            self.sender.send_verification_code(email, code, purpose)
        except DeliveryFailed:
            logger.warning("Verification code delivery failed for %s", email)
            self._rollback(email, code)
            raise
        except Exception as e:
            logger.exception("Verification sender failed for %s", email)
            self._rollback(email, code)
            raise VerificationUnavailable(email) from e

    def _rollback(self, email: str, code: str) -> None:
        if self.rollback_on_delivery_failure:
            self.store.discard(email, code)
