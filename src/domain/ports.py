"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure, plus the small value types that cross them.
Adapters implement these protocols.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from .payloads import PendingPayload


class Purpose(str, Enum):
    """
    Business context a verification code was issued for.

    The purpose scopes what happens once the code is confirmed:
    - REGISTRATION_VIEWER: create a viewer account
    - REGISTRATION_CREATOR: create a creator account
    - PASSWORD_CHANGE: replace the password of a signed-in user
    - PASSWORD_RESET: replace the password of a user who forgot it
    """

    REGISTRATION_VIEWER = "REGISTRATION_VIEWER"
    REGISTRATION_CREATOR = "REGISTRATION_CREATOR"
    PASSWORD_CHANGE = "PASSWORD_CHANGE"
    PASSWORD_RESET = "PASSWORD_RESET"


class VerifyResult(Enum):
    """
    Result of a verification attempt.

    The four rejection kinds are expected, user-facing outcomes.
    UNAVAILABLE means the system itself failed and the caller should retry.
    """

    SUCCESS = "success"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    TOO_MANY_ATTEMPTS = "too_many_attempts"
    INVALID_CODE = "invalid_code"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class VerificationOutcome:
    """
    Outcome of a challenge.

    `payload` is only set when the code was accepted by the store.
    `account_id` is only set once the account service finalized it.
    """

    result: VerifyResult
    payload: "PendingPayload | None" = None
    account_id: str | None = None

    @property
    def accepted(self) -> bool:
        return self.result is VerifyResult.SUCCESS


class NotificationSender(Protocol):
    """Port interface for verification code delivery."""

    def send_verification_code(self, email: str, code: str, purpose: Purpose) -> None:
        """
        Deliver a verification code to an email address.

        Args:
            email: Normalized recipient address
            code: Zero-padded numeric code
            purpose: What the code was issued for (drives the wording)

        Raises:
            DeliveryFailed: If the message could not be handed to the relay
        """
        ...


class AccountService(Protocol):
    """Port interface for durable account persistence."""

    def exists(self, email: str) -> bool:
        """Return True if a confirmed account already owns this email."""
        ...

    def authenticate(self, email: str, password: str) -> bool:
        """Return True if the password matches the account's stored hash."""
        ...

    def finalize(self, email: str, payload: "PendingPayload") -> str:
        """
        Persist the effect of a confirmed verification.

        Creates the account for registration payloads, or replaces the
        password hash for password change/reset payloads.

        Args:
            email: Normalized email address
            payload: Payload stored when the code was issued

        Returns:
            Identifier of the created or updated account

        Raises:
            AccountAlreadyExists: Registration for an email that is taken
            AccountNotFound: Password update for an unknown email
        """
        ...
