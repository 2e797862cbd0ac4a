"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.
The verification code store and connection pool are created in the
application lifespan and read back from app.state.
"""

from fastapi import Depends, Request
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import PostgresAccountRepository
from src.adapters.smtp.console import ConsoleEmailSender
from src.adapters.smtp.smtp import SmtpEmailSender
from src.config.settings import Settings, get_settings
from src.domain.challenge import VerificationChallengeHandler
from src.domain.code_store import VerificationCodeStore
from src.domain.issuance import VerificationIssuanceService
from src.domain.ports import AccountService, NotificationSender


def get_pool(request: Request) -> ConnectionPool:
    """
    Get connection pool from app state.

    The pool is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.pool


def get_code_store(request: Request) -> VerificationCodeStore:
    """Get the process-wide verification code store from app state."""
    return request.app.state.code_store


def get_account_service(request: Request) -> AccountService:
    """Create account repository with connection pool from app state."""
    pool = get_pool(request)
    return PostgresAccountRepository(pool)


def get_email_sender(settings: Settings = Depends(get_settings)) -> NotificationSender:
    """
    Get the configured email sender.

    Both senders are cheap to build; the SMTP sender opens a connection
    per message.
    """
    if settings.email_backend == "smtp":
        return SmtpEmailSender(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
            timeout=settings.smtp_timeout_seconds,
            mail_from=settings.mail_from,
            mail_from_name=settings.mail_from_name,
            ttl_seconds=settings.otp_ttl_seconds,
        )
    return ConsoleEmailSender()


def get_issuance_service(
    store: VerificationCodeStore = Depends(get_code_store),
    sender: NotificationSender = Depends(get_email_sender),
    settings: Settings = Depends(get_settings),
) -> VerificationIssuanceService:
    """
    Create issuance service with injected dependencies.

    Wires together the code store and email sender for the domain service.
    """
    return VerificationIssuanceService(
        store=store,
        sender=sender,
        rollback_on_delivery_failure=settings.rollback_on_delivery_failure,
    )


def get_challenge_handler(
    store: VerificationCodeStore = Depends(get_code_store),
    accounts: AccountService = Depends(get_account_service),
) -> VerificationChallengeHandler:
    """Create challenge handler wired to the code store and account repository."""
    return VerificationChallengeHandler(store=store, accounts=accounts)


# HTTP BASIC AUTH security scheme for OpenAPI documentation
http_basic = HTTPBasic()


def get_basic_auth_credentials(
    credentials: HTTPBasicCredentials = Depends(http_basic),
) -> tuple[str, str]:
    """
    Extract and normalize credentials from HTTP BASIC AUTH header.

    FastAPI's HTTPBasic automatically:
    - Returns 401 for missing Authorization header
    - Returns 401 for malformed base64 encoding
    - Parses base64(email:password) format

    Args:
        credentials: HTTPBasicCredentials from FastAPI's HTTPBasic

    Returns:
        Tuple of (normalized_email, password)
        Email is stripped and lowercased for consistency.
    """
    email = credentials.username.strip().lower()
    password = credentials.password
    return email, password
