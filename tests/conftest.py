"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- A controllable clock for expiry tests
- Isolated verification code stores
- An in-memory account service standing in for PostgreSQL
- Fast settings (low bcrypt cost, console email)
"""

import pytest

from src.config.settings import Settings
from src.domain.code_store import VerificationCodeStore
from tests.fakes import FakeClock, InMemoryAccounts


@pytest.fixture
def clock() -> FakeClock:
    """Clock frozen at a fixed instant until advanced."""
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> VerificationCodeStore:
    """Fresh store with default limits (5 minutes, 3 attempts, 6 digits)."""
    return VerificationCodeStore(clock=clock)


@pytest.fixture
def accounts() -> InMemoryAccounts:
    """Empty in-memory account service."""
    return InMemoryAccounts()


@pytest.fixture
def settings() -> Settings:
    """Settings with a minimal bcrypt cost to keep tests fast."""
    return Settings(bcrypt_cost=4, email_backend="console")
