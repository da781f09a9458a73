# errors.py
"""Errors raised while handling an /ask turn.

Every error carries the HTTP status the API layer reports it with; the
message is what ends up in the ``{"error": ...}`` body.
"""


class AskError(Exception):
    http_status: int = 500

    def __init__(self, message: str, **extra):
        self.message = message
        self.extra = extra
        super().__init__(message)


class InvalidInputError(AskError):
    """Malformed or empty input."""

    http_status = 400


class IdentifierGenerationError(AskError):
    """A new session identifier could not be generated."""


class BackendError(AskError):
    """The language model rejected or failed the call."""


class MetadataError(Exception):
    """Project or region could not be read from the metadata server."""
