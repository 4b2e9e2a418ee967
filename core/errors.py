# /core/errors.py

from typing import Any, Optional


class StoryGraphError(Exception):
    """Base class for every error the API knows how to report."""
    status_code = 500
    public_message = "Internal server error"

    def __init__(self, message: str = "", details: Optional[Any] = None):
        super().__init__(message or self.public_message)
        self.details = details


class ValidationError(StoryGraphError):
    """Bad input shape or a missing required field. User-correctable."""
    status_code = 400
    public_message = "Invalid request"


class NotFoundError(StoryGraphError):
    status_code = 404
    public_message = "Not found"


class StorageError(StoryGraphError):
    """The graph store is unreachable or a query failed."""
    public_message = "Graph store operation failed"


class LanguageModelError(StoryGraphError):
    """An external model call failed or returned unusable output. Never retried."""
    public_message = "Language model request failed"


class ExtractionError(LanguageModelError):
    public_message = "Failed to process article"


class StoryGenerationError(LanguageModelError):
    public_message = "Failed to generate story"


class QueryError(LanguageModelError):
    public_message = "Failed to process query"


class NarrationError(LanguageModelError):
    public_message = "Failed to generate audio"
