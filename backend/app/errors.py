"""Error taxonomy for the upload / analysis flow.

Every error is terminal for the operation that raised it only: the page
controller turns it into a user-visible message and the process keeps running.
"""

from __future__ import annotations

GENERIC_ANALYSIS_MESSAGE = "Failed to analyze image. Please try again."


class TreeIdError(Exception):
    """Base class; ``str(exc)`` is the message shown to the user."""

    default_message = "Something went wrong. Please try again."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(TreeIdError):
    """Rejected locally before anything reaches the analysis service."""

    default_message = "Please upload a valid image file"

    def __init__(self, message: str | None = None, *, reason: str = "type") -> None:
        super().__init__(message)
        self.reason = reason


class LoadError(TreeIdError):
    default_message = "Failed to load default image"


class ReadError(TreeIdError):
    default_message = "Failed to read the image file. Please try again."


class AnalysisError(TreeIdError):
    default_message = GENERIC_ANALYSIS_MESSAGE
