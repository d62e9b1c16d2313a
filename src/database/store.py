"""
Persistent storage for the auth session
"""
import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, NamedTuple, Optional

from sqlalchemy.orm import Session

from .connection import SessionLocal
from .models import StoredSession

logger = logging.getLogger(__name__)


class StoredCredentials(NamedTuple):
    token: str
    user: Dict[str, Any]
    expires_at: Optional[datetime]


class DatabaseSessionStore:
    """Keeps at most one signed in session in the database"""

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self.session_factory = session_factory

    def load(self) -> Optional[StoredCredentials]:
        with self.session_factory() as db:
            record = db.query(StoredSession).order_by(StoredSession.id.desc()).first()
            if record is None:
                return None
            expires_at = record.expires_at.replace(tzinfo=timezone.utc) if record.expires_at else None
            return StoredCredentials(token=record.token, user=json.loads(record.user), expires_at=expires_at)

    def save(self, token: str, user: Dict[str, Any], expires_at: Optional[datetime] = None) -> None:
        if expires_at is not None:
            expires_at = expires_at.astimezone(timezone.utc).replace(tzinfo=None)
        with self.session_factory() as db:
            db.query(StoredSession).delete()
            db.add(StoredSession(
                token=token,
                user=json.dumps(user),
                user_email=user.get('email'),
                expires_at=expires_at,
            ))
            db.commit()
        logger.debug(f"Stored session for {user.get('email')}")

    def clear(self) -> None:
        with self.session_factory() as db:
            db.query(StoredSession).delete()
            db.commit()
