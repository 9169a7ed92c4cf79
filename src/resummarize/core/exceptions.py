"""
Error Taxonomy

Exceptions raised by gateways and controllers. The API layer maps each
class to an HTTP status in ``resummarize.main``.
"""


class ResummarizeError(Exception):
    """Base class for all application errors."""

    retryable: bool = False

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.__class__.__doc__ or self.__class__.__name__)
        self.message = message or str(self.args[0])


class NotAuthenticated(ResummarizeError):
    """No signed-in user."""


class ValidationError(ResummarizeError):
    """A required identifier or field is missing."""


class PersistenceError(ResummarizeError):
    """The notes store rejected or failed the operation."""

    retryable = True


class AIUnconfigured(ResummarizeError):
    """AI credential is not configured."""


class AIGenerationError(ResummarizeError):
    """The language model call failed or returned unusable output."""

    retryable = True


class NetworkError(ResummarizeError):
    """Transport failure while talking to an upstream service."""

    retryable = True
