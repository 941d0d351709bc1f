"""
Domain exceptions for Nexium Frontier.

Purpose
-------
Define the structured exception hierarchy raised by the simulation engines
and the orchestration service. Every gameplay failure carries a stable
classification so presentation can differ per channel (chat embed versus
HTTP JSON) without parsing free text.

Error Taxonomy
--------------
- `PreconditionError`: caller-visible, non-retryable, no state mutated
  (insufficient energy/fuel/currency, self-trade, defeated ship, bad input).
- `ConflictError`: retryable once after re-fetching current state
  (listing already purchased, sector created concurrently).
- `WorldAccessError`: storage unavailable; nothing was committed, the
  caller may retry the whole operation.
- `InvariantViolation`: programmer error, unreachable through valid input;
  never rendered to players.

Design Notes
------------
- All domain exceptions inherit from `NexiumDomainException`.
- Each exception carries:
  - `message`: short human-readable description
  - `details`: structured context (dict-like)
  - `category`: `ErrorCategory` from the taxonomy above
  - `severity`: `ErrorSeverity` value for logging/alerting
  - `is_retryable`: whether the operation can be retried
  - `error_code`: short, stable identifier for programmatic use
- Helper functions (`is_transient_error`, `get_error_severity`,
  `should_alert`) centralize common exception handling patterns.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional, Union


class ErrorSeverity(Enum):
    """Error severity levels for logging and alerting."""

    DEBUG = "debug"  # Expected, not concerning (e.g., cooldowns)
    INFO = "info"  # Normal operation (e.g., validation failures)
    WARNING = "warning"  # Concerning but handled (e.g., retryable errors)
    ERROR = "error"  # Unexpected errors requiring attention
    CRITICAL = "critical"  # System-level failures requiring immediate action


class ErrorCategory(str, Enum):
    """Top-level classification used by presentation layers."""

    PRECONDITION = "precondition"
    CONFLICT = "conflict"
    WORLD_ACCESS = "world_access"
    INVARIANT = "invariant"


class NexiumDomainException(Exception):
    """
    Base exception for all Nexium domain-level errors.

    Args:
        message: Human-readable error message
        details: Additional structured data about the error (dict-like)
        severity: Error severity level for logging handlers
        is_retryable: Whether the operation can be retried
        error_code: Optional code for programmatic handling

    Example:
        >>> raise PreconditionError(
        ...     "Ship is not ready",
        ...     {"reason": "hull destroyed"}
        ... )
    """

    CATEGORY: ErrorCategory = ErrorCategory.PRECONDITION
    DEFAULT_SEVERITY: ErrorSeverity = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[ErrorSeverity] = None,
        is_retryable: Optional[bool] = None,
        error_code: Optional[str] = None,
    ) -> None:
        self.message: str = message
        self.details: Dict[str, Any] = details or {}
        self.severity: ErrorSeverity = severity or self.DEFAULT_SEVERITY
        self.is_retryable: bool = (
            is_retryable if is_retryable is not None else self.DEFAULT_RETRYABLE
        )
        self.error_code: str = error_code or self.__class__.__name__
        super().__init__(self.message)

    @property
    def category(self) -> ErrorCategory:
        return self.CATEGORY

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "category": self.category.value,
            "message": self.message,
            "details": self.details,
            "severity": self.severity.value,
            "is_retryable": self.is_retryable,
        }

    def __str__(self) -> str:
        """String representation for logging."""
        details_str = f" | Details: {self.details}" if self.details else ""
        return f"[{self.error_code}] {self.message}{details_str}"

    def __repr__(self) -> str:
        """Detailed representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"severity={self.severity.value!r}, "
            f"is_retryable={self.is_retryable!r}"
            ")"
        )


# ============================================================================
# PRECONDITION ERRORS
# ============================================================================


class PreconditionError(NexiumDomainException):
    """
    Raised when a requested action violates a game rule.

    Surfaced verbatim to the player; no state mutation has occurred.
    """

    CATEGORY = ErrorCategory.PRECONDITION
    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False


class ValidationError(PreconditionError):
    """
    Raised when user input fails domain validation.

    Args:
        field: Name of the field that failed validation
        message: Explanation of why validation failed
    """

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.validation_message = message
        super().__init__(
            f"Invalid {field}: {message}",
            details={"field": field, "validation_message": message},
            error_code=f"VALIDATION_{field.upper()}",
        )


class InsufficientResourcesError(PreconditionError):
    """
    Raised when a player lacks required resources for an action.

    Args:
        resource: Name of the resource type (e.g., "energy", "currency")
        required: Amount required for the action
        current: Amount player currently has
    """

    def __init__(
        self,
        resource: str,
        required: Union[int, Decimal],
        current: Union[int, Decimal],
    ) -> None:
        self.resource = resource
        self.required = required
        self.current = current
        super().__init__(
            f"Insufficient {resource}: need {required:,}, have {current:,}",
            details={
                "resource": resource,
                "required": str(required),
                "current": str(current),
                "deficit": str(required - current),
            },
            error_code=f"INSUFFICIENT_{resource.upper()}",
        )


class SelfTradeError(PreconditionError):
    """Raised when a player tries to buy their own listing or fight themselves."""

    def __init__(self, action: str) -> None:
        self.action = action
        super().__init__(
            f"You cannot {action}",
            details={"action": action},
            error_code="SELF_TRADE",
        )


class ShipDefeatedError(PreconditionError):
    """Raised when a ship with no hull left is sent into action."""

    def __init__(self, ship_id: int, role: str) -> None:
        self.ship_id = ship_id
        self.role = role
        super().__init__(
            f"The {role} ship has no hull left and cannot fight",
            details={"ship_id": ship_id, "role": role},
            error_code="SHIP_DEFEATED",
        )


class CooldownActiveError(PreconditionError):
    """
    Raised when an action is on cooldown.

    Args:
        action: Name of the action on cooldown
        remaining_seconds: Time remaining until cooldown expires
    """

    DEFAULT_SEVERITY = ErrorSeverity.DEBUG

    def __init__(self, action: str, remaining_seconds: float) -> None:
        self.action = action
        self.remaining_seconds = remaining_seconds
        super().__init__(
            f"{action} is on cooldown: {remaining_seconds:.0f}s remaining",
            details={"action": action, "retry_after": remaining_seconds},
            error_code="COOLDOWN_ACTIVE",
        )


class NotFoundError(PreconditionError):
    """
    Raised when a requested game entity cannot be found.

    Args:
        resource_type: Type of resource (e.g., "Player", "Ship", "Listing")
        identifier: Optional identifier for the missing resource
    """

    def __init__(self, resource_type: str, identifier: Optional[Any] = None) -> None:
        self.resource_type = resource_type
        self.identifier = identifier
        if identifier is not None:
            message = f"{resource_type} not found: {identifier}"
        else:
            message = f"{resource_type} not found"
        super().__init__(
            message,
            details={"resource_type": resource_type, "identifier": identifier},
            error_code=f"{resource_type.upper()}_NOT_FOUND",
        )


# ============================================================================
# CONFLICT ERRORS
# ============================================================================


class ConflictError(NexiumDomainException):
    """
    Raised when concurrent activity invalidated the state an action relied on.

    Retryable once by re-fetching; persistent conflicts become user-visible.
    """

    CATEGORY = ErrorCategory.CONFLICT
    DEFAULT_SEVERITY = ErrorSeverity.WARNING
    DEFAULT_RETRYABLE = True


class ListingUnavailableError(ConflictError):
    """Raised when a listing was already sold, withdrawn or has expired."""

    def __init__(self, listing_id: str, reason: str = "sold") -> None:
        self.listing_id = listing_id
        self.reason = reason
        super().__init__(
            "Listing no longer available",
            details={"listing_id": listing_id, "reason": reason},
            error_code="LISTING_UNAVAILABLE",
            # an expired listing never comes back, re-fetching will not help
            is_retryable=reason != "expired",
        )


# ============================================================================
# WORLD ACCESS / INVARIANT ERRORS
# ============================================================================


class WorldAccessError(NexiumDomainException):
    """
    Raised when the persistent store cannot be reached or fails mid-operation.

    The surrounding transaction has been rolled back before this propagates.

    Args:
        operation: Description of the operation that failed
        original_error: The underlying storage exception, if any
    """

    CATEGORY = ErrorCategory.WORLD_ACCESS
    DEFAULT_SEVERITY = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE = True

    def __init__(self, operation: str, original_error: Optional[Exception] = None) -> None:
        self.operation = operation
        self.original_error = original_error
        details: Dict[str, Any] = {"operation": operation}
        if original_error is not None:
            details["error_type"] = type(original_error).__name__
        super().__init__(
            "The universe is unreachable right now, please try again",
            details=details,
            error_code="WORLD_ACCESS",
        )


class InvariantViolation(NexiumDomainException):
    """
    Raised when an entity invariant would be broken.

    Indicates a programming error; valid inputs must never reach it.
    """

    CATEGORY = ErrorCategory.INVARIANT
    DEFAULT_SEVERITY = ErrorSeverity.CRITICAL
    DEFAULT_RETRYABLE = False

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        self.field = field
        super().__init__(
            message,
            details={"field": field} if field else None,
            error_code="INVARIANT_VIOLATION",
        )


# Utility functions for exception handling patterns


def is_transient_error(exc: Exception) -> bool:
    """Check if an exception represents an error that can be retried."""
    if isinstance(exc, NexiumDomainException):
        return exc.is_retryable
    return False


def get_error_severity(exc: Exception) -> ErrorSeverity:
    """Get the severity level of an exception for logging."""
    if isinstance(exc, NexiumDomainException):
        return exc.severity
    return ErrorSeverity.ERROR


def should_alert(exc: Exception) -> bool:
    """Determine if an exception should trigger alerting."""
    return get_error_severity(exc) in (ErrorSeverity.ERROR, ErrorSeverity.CRITICAL)
