"""
Errors raised by the CRM API collaborator layer
"""


class CrmError(Exception):
    """Base class for CRM API failures"""


class TransportError(CrmError):
    """The request never produced a usable response (connection, timeout, bad body)"""


class ApiError(CrmError):
    """The server answered with a non-success status"""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message

    def __str__(self) -> str:
        return f"{self.status_code}: {self.message}"


class AuthenticationError(ApiError):
    """The session token was missing, invalid or expired"""

    def __init__(self, message: str = 'Authentication required'):
        super().__init__(401, message)
