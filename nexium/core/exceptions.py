"""
Infrastructure exceptions for Nexium Frontier.

Purpose
-------
Define the exception hierarchy for infrastructure-level concerns:
configuration errors and database lifecycle misuse. These are
engineering problems, never shown to players verbatim.

Design Notes
------------
- All infrastructure exceptions inherit from `NexiumInfrastructureException`.
- Gameplay failures live in `nexium.domain.exceptions` instead.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from nexium.domain.exceptions import ErrorSeverity


class NexiumInfrastructureException(Exception):
    """
    Base exception for all infrastructure-level errors.

    Args:
        message: Human-readable error message
        details: Additional structured data about the error
        severity: Error severity level for logging handlers
        error_code: Optional code for programmatic handling
    """

    DEFAULT_SEVERITY: ErrorSeverity = ErrorSeverity.ERROR

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[ErrorSeverity] = None,
        error_code: Optional[str] = None,
    ) -> None:
        self.message: str = message
        self.details: Dict[str, Any] = details or {}
        self.severity: ErrorSeverity = severity or self.DEFAULT_SEVERITY
        self.error_code: str = error_code or self.__class__.__name__
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "severity": self.severity.value,
        }

    def __str__(self) -> str:
        details_str = f" | Details: {self.details}" if self.details else ""
        return f"[{self.error_code}] {self.message}{details_str}"


class ConfigurationError(NexiumInfrastructureException):
    """
    Raised when a configuration key is invalid or missing.

    Args:
        config_key: The configuration key that has issues
        message: Description of the configuration problem
    """

    DEFAULT_SEVERITY = ErrorSeverity.CRITICAL

    def __init__(self, config_key: str, message: str) -> None:
        self.config_key = config_key
        super().__init__(
            f"Configuration error for {config_key}: {message}",
            details={"config_key": config_key, "message": message},
            error_code="CONFIG_ERROR",
        )


class DatabaseNotInitializedError(NexiumInfrastructureException):
    """Raised when a session is requested before `DatabaseService.initialize()`."""

    DEFAULT_SEVERITY = ErrorSeverity.CRITICAL

    def __init__(self) -> None:
        super().__init__(
            "DatabaseService is not initialized",
            error_code="DATABASE_NOT_INITIALIZED",
        )
