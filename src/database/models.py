"""
Database models for the CRM rules client
"""
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class StoredSession(Base):
    """Signed in user's token and profile, kept between runs"""
    __tablename__ = 'auth_sessions'

    id = Column(Integer, primary_key=True)
    token = Column(Text, nullable=False)
    user = Column(Text, nullable=False)  # JSON encoded user profile
    user_email = Column(String(255))
    expires_at = Column(DateTime)  # naive UTC, None when the token carries no expiry
    created_at = Column(DateTime, default=_utcnow)
