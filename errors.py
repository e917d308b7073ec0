"""
Exceptions raised by the slicer's outer surfaces (settings loading, CLI).

The slicing core itself does not raise for malformed mesh data.
"""

from typing import Any


class SlicerError(Exception):
    """Base exception for all slicer errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


class ConfigurationError(SlicerError):
    """Raised when a settings file is invalid or missing."""

    pass
