"""
Shared translation of domain results into HTTP responses.
"""

from collections.abc import Iterator
from contextlib import contextmanager

from fastapi import HTTPException, status
from fastapi.responses import JSONResponse

from src.api.models import VerificationErrorResponse, VerificationSentResponse
from src.domain.exceptions import DeliveryFailed, VerificationUnavailable
from src.domain.issuance import VerificationIssuanceService
from src.domain.payloads import PendingPayload
from src.domain.ports import Purpose, VerificationOutcome, VerifyResult

_REJECTION_MESSAGES = {
    VerifyResult.NOT_FOUND: "No verification code found for this email",
    VerifyResult.EXPIRED: "Verification code has expired",
    VerifyResult.TOO_MANY_ATTEMPTS: "Too many failed attempts. Please request a new code",
    VerifyResult.INVALID_CODE: "Invalid verification code",
}

SEND_FAILED_DETAIL = "Failed to send verification email. Please try again."
UNAVAILABLE_DETAIL = "Verification is temporarily unavailable. Please try again."


def rejection_response(outcome: VerificationOutcome) -> JSONResponse:
    """
    Build the 400 response for a rejected code.

    UNAVAILABLE is not the caller's fault and is raised as 503 instead.
    The remaining attempt count is never exposed.
    """
    if outcome.result is VerifyResult.UNAVAILABLE:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=UNAVAILABLE_DETAIL,
        )

    body = VerificationErrorResponse(
        detail=_REJECTION_MESSAGES[outcome.result],
        reason=outcome.result.value,
    )
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body.model_dump())


@contextmanager
def issuance_errors() -> Iterator[None]:
    """Translate delivery failure and unexpected issuance errors into 503."""
    try:
        yield
    except DeliveryFailed:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=SEND_FAILED_DETAIL,
        ) from None
    except VerificationUnavailable:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=UNAVAILABLE_DETAIL,
        ) from None


def send_code(
    issuance: VerificationIssuanceService,
    email: str,
    purpose: Purpose,
    payload: PendingPayload,
    expires_in_seconds: int,
) -> VerificationSentResponse:
    """Issue and deliver a code."""
    with issuance_errors():
        normalized_email = issuance.request_verification(email, purpose, payload)
    return VerificationSentResponse(
        message="Verification code sent",
        email=normalized_email,
        expires_in_seconds=expires_in_seconds,
    )


def resend_code(
    issuance: VerificationIssuanceService,
    email: str,
    purpose: Purpose,
    expires_in_seconds: int,
):
    """Send a fresh code for a pending verification; 400 not_found if none."""
    with issuance_errors():
        normalized_email = issuance.resend_verification(email, purpose)
    if normalized_email is None:
        return rejection_response(VerificationOutcome(VerifyResult.NOT_FOUND))
    return VerificationSentResponse(
        message="Verification code resent",
        email=normalized_email,
        expires_in_seconds=expires_in_seconds,
    )
