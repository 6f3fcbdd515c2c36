"""
Generation error taxonomy.

Every failure of a generation call surfaces as one of these. All are
recoverable: the session shows the message and the user may retry.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    UNAUTHORIZED = "unauthorized"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    TIMEOUT = "timeout"
    MALFORMED_RESPONSE = "malformed_response"
    INCOMPLETE_RESPONSE = "incomplete_response"
    UNKNOWN = "unknown"


class GenerationError(Exception):
    """Base class for all generation failures."""

    kind: ErrorKind = ErrorKind.UNKNOWN
    default_message = "An unknown error occurred."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthorized(GenerationError):
    kind = ErrorKind.UNAUTHORIZED
    default_message = "Invalid API key. Please check your API key."


class RateLimited(GenerationError):
    kind = ErrorKind.RATE_LIMITED
    default_message = "API rate limit exceeded. Please try again later."


class ServerError(GenerationError):
    kind = ErrorKind.SERVER_ERROR
    default_message = "Generation server error. Please try again."


class Timeout(GenerationError):
    kind = ErrorKind.TIMEOUT
    default_message = "Request timed out. Please try again."


class MalformedResponse(GenerationError):
    kind = ErrorKind.MALFORMED_RESPONSE
    default_message = "Could not parse the AI response. Please try again."


class IncompleteResponse(GenerationError):
    kind = ErrorKind.INCOMPLETE_RESPONSE
    default_message = "Invalid response structure from AI. Missing sourceCode or previewMarkup."


class Unknown(GenerationError):
    kind = ErrorKind.UNKNOWN


class NothingToDownload(Exception):
    """Raised when the session has no generated source worth exporting."""
