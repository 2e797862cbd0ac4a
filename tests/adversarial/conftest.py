"""
Shared fixtures for adversarial tests.

Provides common test infrastructure for race condition and brute force tests.
"""

from collections.abc import Callable
from unittest.mock import patch

import pytest

from src.domain.code_store import VerificationCodeStore
from src.domain.ports import Purpose

IssueWithCode = Callable[..., str]


@pytest.fixture
def issue_with_code(store: VerificationCodeStore) -> IssueWithCode:
    """Return a helper that issues a record whose code is known to the test."""

    def issue(email: str, code: str, purpose: Purpose = Purpose.REGISTRATION_VIEWER) -> str:
        with patch.object(store, "_generate_code", return_value=code):
            return store.issue(email, purpose)

    return issue
