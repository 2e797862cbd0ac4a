"""
API v1 routes - Registration with email verification.

Defines REST endpoints for creating viewer and creator accounts:
- POST /v1/register/viewer - Send a code for a viewer sign-up
- POST /v1/register/creator - Send a code for a creator sign-up
- POST /v1/register/resend - Send a fresh code for a pending sign-up
- POST /v1/register/verify - Confirm the code and create the account
- GET /v1/verification/status - Whether a live code is pending
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import EmailStr

from src.adapters.security.passwords import hash_password
from src.api.dependencies import (
    get_account_service,
    get_challenge_handler,
    get_code_store,
    get_issuance_service,
)
from src.api.models import (
    AccountCreatedResponse,
    CreatorRegisterRequest,
    ErrorResponse,
    ResendCodeRequest,
    VerificationErrorResponse,
    VerificationSentResponse,
    VerificationStatusResponse,
    VerifyRegistrationRequest,
    ViewerRegisterRequest,
)
from src.api.v1.responses import rejection_response, resend_code, send_code
from src.config.settings import Settings, get_settings
from src.domain.challenge import VerificationChallengeHandler
from src.domain.code_store import VerificationCodeStore, normalize_email
from src.domain.exceptions import AccountAlreadyExists
from src.domain.issuance import VerificationIssuanceService
from src.domain.payloads import CreatorRegistration, ViewerRegistration
from src.domain.ports import AccountService, Purpose

router = APIRouter(tags=["v1"])

_ROLE_PURPOSES = {
    "VIEWER": Purpose.REGISTRATION_VIEWER,
    "CREATOR": Purpose.REGISTRATION_CREATOR,
}

_REGISTER_RESPONSES = {
    409: {"model": ErrorResponse, "description": "Email already registered"},
    422: {"description": "Validation error"},
    503: {"model": ErrorResponse, "description": "Verification email could not be sent"},
}


def _ensure_unregistered(email: str, accounts: AccountService) -> None:
    # Generic message prevents email enumeration
    if accounts.exists(email):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Registration failed",
        )


@router.post(
    "/register/viewer",
    response_model=VerificationSentResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses=_REGISTER_RESPONSES,
    summary="Register a new viewer",
    description="Submit the viewer sign-up form. A verification code is emailed; "
    "the account is only created once the code is confirmed.",
)
async def register_viewer(
    request_data: ViewerRegisterRequest,
    issuance: VerificationIssuanceService = Depends(get_issuance_service),
    accounts: AccountService = Depends(get_account_service),
    settings: Settings = Depends(get_settings),
) -> VerificationSentResponse:
    """
    Start a viewer registration.

    - **email**: Valid email address to register
    - **password** / **confirm_password**: Matching passwords
    - **full_name**: Letters and spaces only
    - **country**: Optional
    """
    email = normalize_email(request_data.email)
    _ensure_unregistered(email, accounts)

    payload = ViewerRegistration(
        password_hash=hash_password(request_data.password, settings.bcrypt_cost),
        full_name=request_data.full_name,
        country=request_data.country,
    )
    return send_code(issuance, email, Purpose.REGISTRATION_VIEWER, payload, settings.otp_ttl_seconds)


@router.post(
    "/register/creator",
    response_model=VerificationSentResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses=_REGISTER_RESPONSES,
    summary="Register a new creator",
    description="Submit the creator sign-up form. A verification code is emailed; "
    "the account is only created once the code is confirmed.",
)
async def register_creator(
    request_data: CreatorRegisterRequest,
    issuance: VerificationIssuanceService = Depends(get_issuance_service),
    accounts: AccountService = Depends(get_account_service),
    settings: Settings = Depends(get_settings),
) -> VerificationSentResponse:
    """Start a creator registration."""
    email = normalize_email(request_data.email)
    _ensure_unregistered(email, accounts)

    payload = CreatorRegistration(
        password_hash=hash_password(request_data.password, settings.bcrypt_cost),
        full_name=request_data.full_name,
        channel_name=request_data.channel_name,
        bio=request_data.bio,
        website_url=str(request_data.website_url) if request_data.website_url else None,
        country=request_data.country,
    )
    return send_code(issuance, email, Purpose.REGISTRATION_CREATOR, payload, settings.otp_ttl_seconds)


@router.post(
    "/register/resend",
    response_model=VerificationSentResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={
        400: {"model": VerificationErrorResponse, "description": "No pending sign-up for this email and role"},
        **_REGISTER_RESPONSES,
    },
    summary="Resend a registration code",
    description="Send a fresh code for a pending sign-up. The submitted form is kept, "
    "so only the email and role are needed. The previous code stops working.",
)
async def resend_registration_code(
    request_data: ResendCodeRequest,
    issuance: VerificationIssuanceService = Depends(get_issuance_service),
    accounts: AccountService = Depends(get_account_service),
    settings: Settings = Depends(get_settings),
):
    email = normalize_email(request_data.email)
    _ensure_unregistered(email, accounts)
    return resend_code(issuance, email, _ROLE_PURPOSES[request_data.role], settings.otp_ttl_seconds)


@router.post(
    "/register/verify",
    response_model=AccountCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": VerificationErrorResponse, "description": "Code rejected"},
        409: {"model": ErrorResponse, "description": "Email already registered"},
        422: {"description": "Validation error"},
        503: {"model": ErrorResponse, "description": "Temporary failure, try again"},
    },
    summary="Verify a registration code",
    description="Submit the code received via email to create the account.",
)
async def verify_registration(
    request_data: VerifyRegistrationRequest,
    handler: VerificationChallengeHandler = Depends(get_challenge_handler),
):
    """
    Confirm a registration code.

    - **email**: Email the code was sent to
    - **code**: Code from the email
    - **role**: VIEWER or CREATOR, must match the registration form used
    """
    email = normalize_email(request_data.email)

    try:
        outcome = handler.submit(email, request_data.code, _ROLE_PURPOSES[request_data.role])
    except AccountAlreadyExists:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Registration failed",
        ) from None

    if not outcome.accepted:
        return rejection_response(outcome)

    return AccountCreatedResponse(
        message="Account created and verified successfully",
        email=email,
        account_id=outcome.account_id,
    )


@router.get(
    "/verification/status",
    response_model=VerificationStatusResponse,
    summary="Check for a pending verification code",
    description="Report whether an unexpired registration code is waiting for this email, "
    "so clients can decide between 'enter code' and 'send a new code'. "
    "Pending password changes and resets are not reported.",
)
async def verification_status(
    email: EmailStr = Query(...),
    store: VerificationCodeStore = Depends(get_code_store),
) -> VerificationStatusResponse:
    normalized_email = normalize_email(email)
    return VerificationStatusResponse(
        email=normalized_email,
        pending=store.pending_purpose(normalized_email) in _ROLE_PURPOSES.values(),
    )
