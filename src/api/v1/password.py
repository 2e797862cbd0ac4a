"""
API v1 routes - Password change and reset with email verification.

- POST /v1/password/change/request - Signed-in user asks for a change code
- POST /v1/password/change/confirm - Confirm the code, new password takes effect
- POST /v1/password/reset/request - Forgotten password, send a reset code
- POST /v1/password/reset/confirm - Confirm the code, new password takes effect

Change endpoints take the current credentials via HTTP BASIC AUTH.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from src.adapters.security.passwords import hash_password
from src.api.dependencies import (
    get_account_service,
    get_basic_auth_credentials,
    get_challenge_handler,
    get_issuance_service,
)
from src.api.models import (
    ConfirmCodeRequest,
    ErrorResponse,
    PasswordChangeRequest,
    PasswordResetConfirmRequest,
    PasswordResetRequest,
    PasswordUpdatedResponse,
    VerificationErrorResponse,
    VerificationSentResponse,
)
from src.api.v1.responses import rejection_response, send_code
from src.config.settings import Settings, get_settings
from src.domain.challenge import VerificationChallengeHandler
from src.domain.code_store import normalize_email
from src.domain.exceptions import AccountNotFound
from src.domain.issuance import VerificationIssuanceService
from src.domain.payloads import PasswordChange, PasswordReset
from src.domain.ports import AccountService, Purpose

router = APIRouter(prefix="/password", tags=["v1"])

_CONFIRM_RESPONSES = {
    400: {"model": VerificationErrorResponse, "description": "Code rejected"},
    404: {"model": ErrorResponse, "description": "Account not found"},
    422: {"description": "Validation error"},
    503: {"model": ErrorResponse, "description": "Temporary failure, try again"},
}


def _authenticate(credentials: tuple[str, str], accounts: AccountService) -> str:
    email, password = credentials
    if not accounts.authenticate(email, password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Basic"},
        )
    return email


def _confirm(
    handler: VerificationChallengeHandler,
    email: str,
    code: str,
    purpose: Purpose,
    message: str,
):
    try:
        outcome = handler.submit(email, code, purpose)
    except AccountNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        ) from None

    if not outcome.accepted:
        return rejection_response(outcome)
    return PasswordUpdatedResponse(message=message, email=email)


@router.post(
    "/change/request",
    response_model=VerificationSentResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={
        401: {"model": ErrorResponse, "description": "Invalid credentials"},
        422: {"description": "Validation error"},
        503: {"model": ErrorResponse, "description": "Verification email could not be sent"},
    },
    summary="Request a password change code",
    description="Authenticate with the current password via HTTP BASIC AUTH and "
    "submit the new password. It takes effect once the emailed code is confirmed.",
)
async def request_password_change(
    request_data: PasswordChangeRequest,
    credentials: tuple[str, str] = Depends(get_basic_auth_credentials),
    issuance: VerificationIssuanceService = Depends(get_issuance_service),
    accounts: AccountService = Depends(get_account_service),
    settings: Settings = Depends(get_settings),
) -> VerificationSentResponse:
    email = _authenticate(credentials, accounts)
    payload = PasswordChange(
        new_password_hash=hash_password(request_data.new_password, settings.bcrypt_cost)
    )
    return send_code(issuance, email, Purpose.PASSWORD_CHANGE, payload, settings.otp_ttl_seconds)


@router.post(
    "/change/confirm",
    response_model=PasswordUpdatedResponse,
    responses={401: {"model": ErrorResponse, "description": "Invalid credentials"}, **_CONFIRM_RESPONSES},
    summary="Confirm a password change",
    description="Submit the emailed code, with current credentials via HTTP BASIC AUTH.",
)
async def confirm_password_change(
    request_data: ConfirmCodeRequest,
    credentials: tuple[str, str] = Depends(get_basic_auth_credentials),
    accounts: AccountService = Depends(get_account_service),
    handler: VerificationChallengeHandler = Depends(get_challenge_handler),
):
    email = _authenticate(credentials, accounts)
    return _confirm(
        handler,
        email,
        request_data.code,
        Purpose.PASSWORD_CHANGE,
        "Password changed successfully",
    )


@router.post(
    "/reset/request",
    response_model=VerificationSentResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={
        404: {"model": ErrorResponse, "description": "No account for this email"},
        422: {"description": "Validation error"},
        503: {"model": ErrorResponse, "description": "Verification email could not be sent"},
    },
    summary="Request a password reset code",
    description="Submit the account email and the new password. "
    "The new password takes effect once the emailed code is confirmed.",
)
async def request_password_reset(
    request_data: PasswordResetRequest,
    issuance: VerificationIssuanceService = Depends(get_issuance_service),
    accounts: AccountService = Depends(get_account_service),
    settings: Settings = Depends(get_settings),
) -> VerificationSentResponse:
    email = normalize_email(request_data.email)
    if not accounts.exists(email):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No account found with this email address",
        )

    payload = PasswordReset(
        new_password_hash=hash_password(request_data.new_password, settings.bcrypt_cost)
    )
    return send_code(issuance, email, Purpose.PASSWORD_RESET, payload, settings.otp_ttl_seconds)


@router.post(
    "/reset/confirm",
    response_model=PasswordUpdatedResponse,
    responses=_CONFIRM_RESPONSES,
    summary="Confirm a password reset",
    description="Submit the emailed code to apply the new password.",
)
async def confirm_password_reset(
    request_data: PasswordResetConfirmRequest,
    handler: VerificationChallengeHandler = Depends(get_challenge_handler),
):
    return _confirm(
        handler,
        normalize_email(request_data.email),
        request_data.code,
        Purpose.PASSWORD_RESET,
        "Password reset successfully",
    )
