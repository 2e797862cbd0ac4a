"""
Domain exceptions - Semantic error types for email verification.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.

Wrong, expired or exhausted codes are not exceptions; they are
reported as VerifyResult values.
"""


class VerificationError(Exception):
    """Base class for verification domain errors."""

    pass


class DeliveryFailed(VerificationError):
    """The notification sender could not deliver the code."""

    pass


class PayloadMismatch(VerificationError):
    """Pending payload variant does not belong to the requested purpose."""

    pass


class AccountError(VerificationError):
    """Base class for errors reported by the account service."""

    pass


class AccountAlreadyExists(AccountError):
    """A confirmed account already owns this email."""

    pass


class AccountNotFound(AccountError):
    """No confirmed account owns this email."""

    pass


class VerificationUnavailable(VerificationError):
    """Unexpected internal failure; the caller should try again."""

    pass
