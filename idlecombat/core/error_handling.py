"""
Centralized error handling for the combat core.

Defines the exception taxonomy raised by the orchestrator, the error history
kept by the global handler, and small validation helpers that correct bad
input instead of failing.
"""

import logging
import traceback
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class ErrorSeverity(Enum):
    """Enumeration of error severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# ==============================================================================
# EXCEPTIONS
# ==============================================================================


class CombatError(Exception):
    """Base class of every error raised by the combat core."""

    def __init__(self, message: str, context: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = context or {}


class PreconditionError(CombatError):
    """A round cannot start; nothing was mutated and the caller must fix its input."""


class CharacterNotFoundError(PreconditionError):
    """The character does not exist."""


class MapNotSelectedError(PreconditionError):
    """The character has no map selected."""


class MapNotFoundError(PreconditionError):
    """The selected map does not exist."""


class MonsterMissingError(PreconditionError):
    """The map's monster pool yields nothing resolvable."""


class StaleStateError(CombatError):
    """The persisted roster references a monster template that no longer exists."""


class ConcurrentRoundError(CombatError):
    """Another round for the same character is already in flight."""


class StateConflictError(CombatError):
    """The combat state was saved by someone else since it was loaded."""


# ==============================================================================
# ERROR HANDLER
# ==============================================================================


@dataclass
class GameError:
    """Represents a reported error with severity, context and optional exception."""

    message: str
    severity: ErrorSeverity
    context: dict[str, Any]
    exception: Optional[Exception] = None


class ErrorHandler:
    """Centralized error reporting for the combat core."""

    def __init__(self, history_size: int = 100) -> None:
        """Initialize the ErrorHandler with a logger and empty error history."""
        self.logger = logging.getLogger("idlecombat.errors")
        self.history_size = history_size
        self.error_history: list[GameError] = []

    def handle(
        self,
        message: str,
        severity: ErrorSeverity,
        context: Optional[dict[str, Any]] = None,
        exception: Optional[Exception] = None,
    ) -> GameError:
        """Records an error and logs it according to its severity."""
        error = GameError(
            message=message,
            severity=severity,
            context=context or {},
            exception=exception,
        )
        self.error_history.append(error)
        if len(self.error_history) > self.history_size:
            del self.error_history[: len(self.error_history) - self.history_size]

        # Prefix context keys to avoid clashes with LogRecord attributes.
        safe_context = {f"ctx_{key}": value for key, value in error.context.items()}

        if error.severity == ErrorSeverity.CRITICAL:
            self.logger.critical(f"CRITICAL: {error.message}", extra=safe_context)
            if error.exception:
                self.logger.critical(
                    "".join(traceback.format_exception(error.exception))
                )
        elif error.severity == ErrorSeverity.HIGH:
            self.logger.error(f"ERROR: {error.message}", extra=safe_context)
        elif error.severity == ErrorSeverity.MEDIUM:
            self.logger.warning(f"WARNING: {error.message}", extra=safe_context)
        else:
            self.logger.info(f"INFO: {error.message}", extra=safe_context)
        return error

    def report(
        self,
        error: CombatError,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
    ) -> CombatError:
        """
        Records a combat error and hands it back so it can be raised.

        Args:
            error (CombatError): The error about to be raised.
            severity (ErrorSeverity): The severity to log it with.

        Returns:
            CombatError: The same error.

        """
        self.handle(error.message, severity, error.context, error)
        return error

    def clear(self) -> None:
        self.error_history.clear()


# Global error handler instance
ERROR_HANDLER = ErrorHandler()


# ==============================================================================
# VALIDATION HELPERS
# ==============================================================================


def ensure_int_in_range(
    value: Any,
    param_name: str,
    min_val: int,
    max_val: Optional[int] = None,
    default: Optional[int] = None,
    context: Optional[dict[str, Any]] = None,
) -> int:
    """
    Ensures a value is an integer within the specified range, correcting if needed.
    Logs a warning for out-of-range values but continues execution.

    Args:
        value: The value to validate
        param_name: Human-readable parameter name for error messages
        min_val: Minimum allowed value (inclusive)
        max_val: Maximum allowed value (inclusive), None for no maximum
        default: Default value if correction is needed, uses min_val if None
        context: Additional context for logging

    Returns:
        int: The corrected integer value
    """
    if default is None:
        default = min_val

    if (
        isinstance(value, int)
        and not isinstance(value, bool)
        and value >= min_val
        and (max_val is None or value <= max_val)
    ):
        return value

    ERROR_HANDLER.handle(
        f"{param_name} out of range, got: {value}",
        ErrorSeverity.LOW,
        {
            **(context or {}),
            "param_name": param_name,
            "value": value,
            "min_val": min_val,
            "max_val": max_val,
        },
    )
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return default
    converted = int(value)
    if converted < min_val:
        return min_val
    if max_val is not None and converted > max_val:
        return max_val
    return converted


def ensure_non_negative_int(
    value: Any, param_name: str, default: int = 0, context: Optional[dict[str, Any]] = None
) -> int:
    """
    Ensures a value is a non-negative integer, flooring negatives at zero.

    Args:
        value: The value to ensure is a non-negative integer
        param_name: Human-readable parameter name for error messages
        default: Value used when the input is not numeric
        context: Additional context for logging

    Returns:
        int: The corrected integer value
    """
    return ensure_int_in_range(value, param_name, 0, None, default, context)
