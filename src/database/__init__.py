"""
Database package for the CRM rules client
"""
from .connection import init_db
from .models import Base, StoredSession
from .store import DatabaseSessionStore, StoredCredentials

__all__ = [
    'Base',
    'StoredSession',
    'DatabaseSessionStore',
    'StoredCredentials',
    'init_db',
]
