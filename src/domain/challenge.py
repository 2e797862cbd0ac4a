"""
Verification challenge handler - check a code, then finalize its effect.

Wrong, expired, exhausted and unknown codes come back as VerifyResult
values. Anything unexpected inside the store or the account service is
logged and reported as UNAVAILABLE, so callers can tell "you did
something wrong" apart from "the system had a problem". Account-level
errors (email taken, account missing) are raised for the caller to map.
"""

import logging
from dataclasses import dataclass

from .code_store import VerificationCodeStore, normalize_email
from .exceptions import AccountError
from .payloads import payload_matches
from .ports import AccountService, Purpose, VerificationOutcome, VerifyResult

logger = logging.getLogger(__name__)


@dataclass
class VerificationChallengeHandler:
    """Adapter between an inbound "verify this code" request and the store."""

    store: VerificationCodeStore
    accounts: AccountService

    def submit(self, email: str, code: str, expected_purpose: Purpose) -> VerificationOutcome:
        """
        Verify a code and hand its payload to the account service.

        Args:
            email: Email address (will be normalized)
            code: Code submitted by the caller
            expected_purpose: Purpose the caller is completing

        Returns:
            VerificationOutcome; on SUCCESS `account_id` is set when a
            payload was finalized

        Raises:
            AccountAlreadyExists: Registration confirmed for a taken email
            AccountNotFound: Password update confirmed for an unknown email
        """
        normalized_email = normalize_email(email)

        try:
            outcome = self.store.challenge(normalized_email, code, expected_purpose)
        except Exception:
            logger.exception("Verification store failed for %s", normalized_email)
            return VerificationOutcome(VerifyResult.UNAVAILABLE)

        if not outcome.accepted:
            logger.info(
                "Verification rejected for %s: %s", normalized_email, outcome.result.value
            )
            return VerificationOutcome(outcome.result)

        payload = outcome.payload
        if payload is None:
            return outcome

        if not payload_matches(expected_purpose, payload):
            logger.error(
                "Payload %s does not match purpose %s for %s",
                type(payload).__name__,
                expected_purpose.value,
                normalized_email,
            )
            return VerificationOutcome(VerifyResult.UNAVAILABLE)

        try:
            account_id = self.accounts.finalize(normalized_email, payload)
        except AccountError:
            raise
        except Exception:
            logger.exception("Account finalization failed for %s", normalized_email)
            return VerificationOutcome(VerifyResult.UNAVAILABLE)

        return VerificationOutcome(VerifyResult.SUCCESS, payload=payload, account_id=account_id)
