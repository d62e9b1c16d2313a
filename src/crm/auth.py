"""
Auth session for the CRM API
"""
from datetime import datetime, timezone
from typing import Optional, Protocol

import jwt
import structlog
from pydantic import BaseModel, ConfigDict, Field

from src.database.store import StoredCredentials

logger = structlog.get_logger()


class User(BaseModel):
    """Profile of the signed in dashboard user"""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    email: str
    profile_picture: Optional[str] = Field(default=None, alias='profilePicture')


class SessionStore(Protocol):
    def load(self) -> Optional[StoredCredentials]: ...

    def save(self, token: str, user: dict, expires_at: Optional[datetime] = None) -> None: ...

    def clear(self) -> None: ...


def token_expiry(token: str) -> Optional[datetime]:
    """Read the 'exp' claim of a JWT without verifying its signature

    Returns None for opaque tokens and tokens without a usable expiry.
    """
    try:
        claims = jwt.decode(token, options={'verify_signature': False})
    except jwt.PyJWTError:
        return None
    exp = claims.get('exp')
    if exp is None:
        return None
    try:
        return datetime.fromtimestamp(exp, tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        logger.warning("Token has an unreadable exp claim", exp=exp)
        return None


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class AuthSession:
    """Token and user holder with an injected storage lifecycle

    Nothing is read from storage until load() is called. Expired tokens are
    cleared as soon as they are seen.
    """

    def __init__(self, store: SessionStore, clock=None):
        self.store = store
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._token: Optional[str] = None
        self._user: Optional[User] = None
        self._expires_at: Optional[datetime] = None

    @property
    def user(self) -> Optional[User]:
        return self._user if self.get_token() else None

    @property
    def expires_at(self) -> Optional[datetime]:
        return self._expires_at

    @property
    def is_authenticated(self) -> bool:
        return self.get_token() is not None

    def is_expired(self) -> bool:
        return self._expires_at is not None and self._clock() >= self._expires_at

    def load(self) -> bool:
        """Restore the stored session; returns True if a valid one was found"""
        stored = self.store.load()
        if stored is None:
            return False

        self._token = stored.token
        self._user = User.model_validate(stored.user)
        self._expires_at = stored.expires_at or token_expiry(stored.token)
        if self.is_expired():
            logger.info("Stored session has expired", user=self._user.email)
            self.logout()
            return False
        logger.info("Restored session", user=self._user.email)
        return True

    def login(self, token: str, user: User, expires_at: Optional[datetime] = None) -> None:
        if expires_at is None:
            expires_at = token_expiry(token)
        self._expires_at = _as_utc(expires_at) if expires_at else None
        self._token = token
        self._user = user
        self.store.save(token, user.model_dump(by_alias=True), self._expires_at)
        logger.info("Logged in", user=user.email, expires_at=self._expires_at)

    def logout(self) -> None:
        self._token = None
        self._user = None
        self._expires_at = None
        self.store.clear()

    def get_token(self) -> Optional[str]:
        if self._token is None:
            return None
        if self.is_expired():
            logger.info("Session token expired, clearing session")
            self.logout()
            return None
        return self._token
