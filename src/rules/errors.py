"""
Exceptions raised by the audience rules package
"""


class RuleError(Exception):
    """Base class for rule model errors"""


class UnknownFieldError(RuleError, KeyError):
    """Raised when a field name is not in the field registry"""

    def __init__(self, field: str):
        super().__init__(field)
        self.field = field

    def __str__(self) -> str:
        return f"Unknown field: {self.field!r}"


class RuleConversionError(RuleError):
    """Raised when a rule cannot be expressed in the requested wire shape"""


class SubmissionInProgressError(RuleError):
    """Raised when a submit is attempted while another one is still in flight"""
