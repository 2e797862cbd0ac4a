"""
Domain layer - Pure business logic with zero framework imports.

This package contains the email verification workflow: the in-process
code store, the issuance service and the challenge handler. It defines
its own port interfaces for infrastructure abstraction, ensuring true
hexagonal architecture decoupling.
"""

from .challenge import VerificationChallengeHandler
from .code_store import VerificationCodeStore, VerificationRecord, normalize_email
from .exceptions import (
    AccountAlreadyExists,
    AccountError,
    AccountNotFound,
    DeliveryFailed,
    PayloadMismatch,
    VerificationError,
    VerificationUnavailable,
)
from .issuance import VerificationIssuanceService
from .payloads import (
    CreatorRegistration,
    PasswordChange,
    PasswordReset,
    PendingPayload,
    ViewerRegistration,
    payload_matches,
)
from .ports import AccountService, NotificationSender, Purpose, VerificationOutcome, VerifyResult

__all__ = [
    "AccountAlreadyExists",
    "AccountError",
    "AccountNotFound",
    "AccountService",
    "CreatorRegistration",
    "DeliveryFailed",
    "NotificationSender",
    "PasswordChange",
    "PasswordReset",
    "PayloadMismatch",
    "PendingPayload",
    "Purpose",
    "VerificationChallengeHandler",
    "VerificationCodeStore",
    "VerificationError",
    "VerificationIssuanceService",
    "VerificationOutcome",
    "VerificationRecord",
    "VerificationUnavailable",
    "VerifyResult",
    "ViewerRegistration",
    "normalize_email",
    "payload_matches",
]
