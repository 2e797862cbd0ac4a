"""
Pending payloads - data held back until a code is confirmed.

Each purpose has exactly one payload variant. The challenge handler
checks the variant against the purpose before the account service
ever sees it.

Passwords are stored as bcrypt hashes, never in plaintext.
"""

from dataclasses import dataclass

from .ports import Purpose


@dataclass(frozen=True)
class ViewerRegistration:
    """Rest of the viewer sign-up form."""

    password_hash: str
    full_name: str
    country: str | None = None


@dataclass(frozen=True)
class CreatorRegistration:
    """Rest of the creator sign-up form."""

    password_hash: str
    full_name: str
    channel_name: str
    bio: str | None = None
    website_url: str | None = None
    country: str | None = None


@dataclass(frozen=True)
class PasswordChange:
    new_password_hash: str


@dataclass(frozen=True)
class PasswordReset:
    new_password_hash: str


PendingPayload = ViewerRegistration | CreatorRegistration | PasswordChange | PasswordReset

_PAYLOAD_TYPES: dict[Purpose, type] = {
    Purpose.REGISTRATION_VIEWER: ViewerRegistration,
    Purpose.REGISTRATION_CREATOR: CreatorRegistration,
    Purpose.PASSWORD_CHANGE: PasswordChange,
    Purpose.PASSWORD_RESET: PasswordReset,
}


def payload_matches(purpose: Purpose, payload: PendingPayload | None) -> bool:
    """
    Check that a payload is the variant issued for `purpose`.

    A missing payload is accepted; not every caller needs to carry data
    through the challenge.
    """
    if payload is None:
        return True
    return type(payload) is _PAYLOAD_TYPES[purpose]
