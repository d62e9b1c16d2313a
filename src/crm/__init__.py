"""
CRM REST API integration package
"""
from .auth import AuthSession, User, token_expiry
from .client import CrmClient
from .errors import ApiError, AuthenticationError, CrmError, TransportError

__all__ = [
    'ApiError',
    'AuthSession',
    'AuthenticationError',
    'CrmClient',
    'CrmError',
    'TransportError',
    'User',
    'token_expiry',
]
