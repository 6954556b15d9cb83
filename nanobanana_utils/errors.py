#!/usr/bin/env python3
"""
Error kinds raised by the Nano Banana tools.
Every error a tool call can surface derives from NanoBananaError and carries a `kind`
string so the dispatcher can tell recognized failures from unexpected ones.
"""


class NanoBananaError(Exception):
    """Base exception for all Nano Banana tool errors."""

    kind = "InternalError"


class InvalidInputError(NanoBananaError):
    """Raised when a tool argument or credential fails validation."""

    kind = "InvalidInput"

    def __init__(self, message: str, field: str = "") -> None:
        """
        Initialize validation error.

        Args:
            message: Error message
            field: Name of the argument that failed validation (optional)
        """
        self.field = field
        super().__init__(message)


class PreconditionFailedError(NanoBananaError):
    """Raised when a tool is called before the state it needs exists."""

    kind = "PreconditionFailed"


class FileAccessError(NanoBananaError):
    """Raised when an image or config file cannot be read or written."""

    kind = "IOError"

    def __init__(self, message: str, path: str = "") -> None:
        self.path = path
        super().__init__(message)


class GenerationFailedError(NanoBananaError):
    """Raised when Gemini answers without any image data."""

    kind = "GenerationFailed"


class ModelUnavailableError(NanoBananaError):
    """Raised when every candidate image model was rejected as unavailable."""

    kind = "ModelUnavailable"

    def __init__(self, message: str, tried=None) -> None:
        self.tried = list(tried or [])
        super().__init__(message)


class MethodNotFoundError(NanoBananaError):
    """Raised for a tool name the server does not expose."""

    kind = "MethodNotFound"


class InternalToolError(NanoBananaError):
    """Wraps any unexpected exception raised while running a tool."""

    kind = "InternalError"
