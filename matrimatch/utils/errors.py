"""Custom exceptions for the MatriMatch matching core."""

from typing import Any, Dict, Optional


class MatrimatchError(Exception):
    """Base exception for all MatriMatch errors."""

    def __init__(self, message: str, status_code: int = 500, details: Optional[Dict[str, Any]] = None) -> None:
        """
        Initialize the error with a message and optional details.

        Args:
            message (str): Error message describing what went wrong.
            status_code (int): HTTP status code associated with the error (default 500).
            details (Optional[Dict[str, Any]]): Additional context or debug information.
        """
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ConfigurationError(MatrimatchError):
    """Raised when there's an issue with the application configuration."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, 500, details)


class DatabaseError(MatrimatchError):
    """Raised when there's an issue with the database operations."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, 500, details)


class NotFoundError(MatrimatchError):
    """Raised when a requested resource is not found."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, 404, details)


class MatchingError(MatrimatchError):
    """Raised when there's an issue with the matching pipeline."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        """
        Initialize the matching error.

        Args:
            message (str): Error message.
            details (Optional[Dict[str, Any]]): Additional details, usually the user ids involved.
        """
        super().__init__(message, 500, details)
