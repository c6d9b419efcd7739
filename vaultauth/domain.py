"""Defines account, code and session concepts for the vault auth flow."""

from typing import Any, NamedTuple, Optional
from datetime import datetime, timedelta
from enum import Enum

from pytz import UTC


class Role(Enum):
    """Account role. Decided once, when the account is created."""

    STUDENT = 'student'
    STANDARD = 'standard'


class RedirectTarget(Enum):
    """Landing surface classification returned after authentication."""

    STUDENT_LANDING = 'student'
    DEFAULT_LANDING = 'default'


class Account(NamedTuple):
    """A registered user of the file store."""

    account_id: str
    """Opaque, stable identifier for the account."""

    email: str
    """Normalized e-mail address. Unique across accounts."""

    full_name: str
    """Name given at sign-up."""

    role: Role
    """Fixed at creation; never re-derived from later input."""

    avatar_ref: str = ''
    """URL of the account avatar."""

    @property
    def is_student(self) -> bool:
        """Whether the account was created with the student role."""
        return self.role is Role.STUDENT


class OneTimeCode(NamedTuple):
    """The single outstanding code for an account."""

    account_id: str
    code: str
    issued_at: datetime
    consumed: bool = False
    attempts: int = 0
    """Failed submissions made against this code."""

    def expires_at(self, lifetime: int) -> datetime:
        """When this code stops verifying, given its lifetime in seconds."""
        return self.issued_at + timedelta(seconds=lifetime)

    def age(self) -> float:
        """Seconds elapsed since the code was issued."""
        return (datetime.now(tz=UTC) - self.issued_at).total_seconds()


class Session(NamedTuple):
    """An authenticated session bound to an account."""

    session_id: str
    """Unique identifier for the session."""

    account_id: str
    """The account for which the session was created."""

    created_at: datetime
    """When the session was opened."""

    expires_at: Optional[datetime] = None
    """When the session store forgets the session."""

    secret: Optional[str] = None
    """
    Only populated on the instance returned when the session is opened.

    Sessions loaded back from the store carry ``None`` here; the store keeps
    a digest of the secret, never the secret itself.
    """

    @property
    def expired(self) -> bool:
        """Expired if the current time is later than :attr:`.expires_at`."""
        return bool(self.expires_at is not None
                    and datetime.now(tz=UTC) >= self.expires_at)


def redirect_target(role: Role) -> RedirectTarget:
    """Classify the landing surface for an account role."""
    if role is Role.STUDENT:
        return RedirectTarget.STUDENT_LANDING
    return RedirectTarget.DEFAULT_LANDING


def to_dict(obj: tuple) -> dict:
    """
    Generate a dict representation of a NamedTuple instance.

    Child NamedTuples are cast recursively, :class:`.Enum` members become
    their values and datetimes become ISO-8601 strings, so that the result
    can be handed straight to ``jsonify``.
    """
    if not hasattr(obj, '_asdict'):  # NamedTuple-generated classes have this.
        return {}

    def _cast(value: Any) -> Any:
        if hasattr(value, '_asdict'):
            return to_dict(value)
        if isinstance(value, Enum):
            return value.value
        if isinstance(value, datetime):
            return value.isoformat()
        if isinstance(value, list):
            return [_cast(o) for o in value]
        return value

    return {key: _cast(value) for key, value in obj._asdict().items()}
