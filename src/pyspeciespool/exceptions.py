"""
Custom exceptions for PySpeciesPool.
Provides domain-specific error handling with informative messages.

Only eager validation problems are raised as exceptions. Failures that are
local to a single target plot are recorded in that plot's result instead.
"""
import numbers
from typing import Any, Iterable


class SpeciesPoolError(Exception):
    """Base exception for all PySpeciesPool errors."""
    pass


class ConfigurationError(SpeciesPoolError):
    """Raised when there are configuration-related issues."""
    pass


class ParameterError(SpeciesPoolError):
    """Raised when parameters are invalid or out of bounds."""
    pass


class InvalidParameterError(ParameterError):
    """Raised when a parameter value is invalid."""
    def __init__(self, param_name: str, value: Any, reason: str = ""):
        self.param_name = param_name
        self.value = value
        self.reason = reason
        message = f"Invalid value for parameter '{param_name}': {value}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class DataError(SpeciesPoolError):
    """Raised when there are data-related issues."""
    pass


class InvalidDataError(DataError):
    """Raised when data is malformed or invalid."""
    def __init__(self, data_description: str, reason: str):
        self.data_description = data_description
        self.reason = reason
        super().__init__(f"Invalid {data_description}: {reason}")


class EmptyPlotError(DataError):
    """Raised when one or more plots have no positive abundance."""
    def __init__(self, plot_ids: Iterable[str]):
        self.plot_ids = list(plot_ids)
        shown = self.plot_ids[:10]
        more = "..." if len(self.plot_ids) > 10 else ""
        super().__init__(f"{len(self.plot_ids)} plot(s) with no species: {shown}{more}")


class SpeciesMismatchError(DataError):
    """Raised when the species table uses species unknown to the co-occurrence matrix."""
    def __init__(self, missing: Iterable[str]):
        self.missing = sorted(missing)
        shown = self.missing[:10]
        more = "..." if len(self.missing) > 10 else ""
        super().__init__(
            f"Mismatch between species in the co-occurrence matrix and the species table: "
            f"{len(self.missing)} species not covered {shown}{more}"
        )


# Validation utilities
def validate_positive(value: float, param_name: str) -> float:
    """Validate that a value is positive.

    Args:
        value: Value to validate
        param_name: Parameter name for error message

    Returns:
        The validated value

    Raises:
        InvalidParameterError: If value is not positive
    """
    if value is None or not value > 0:
        raise InvalidParameterError(param_name, value, "must be positive")
    return value


def validate_proportion(value: float, param_name: str) -> float:
    """Validate that a value is a valid proportion (0-1).

    Args:
        value: Value to validate
        param_name: Parameter name for error message

    Returns:
        The validated value

    Raises:
        InvalidParameterError: If value is not in [0, 1]
    """
    if value is None or not 0 <= value <= 1:
        raise InvalidParameterError(param_name, value, "must be between 0 and 1")
    return value


def validate_positive_int(value: Any, param_name: str) -> int:
    """Validate that a value is a positive integer.

    Booleans are rejected even though they are ints in Python.

    Raises:
        InvalidParameterError: If value is not a positive integer
    """
    is_integral = isinstance(value, numbers.Integral) or (
        isinstance(value, float) and value.is_integer()
    )
    if isinstance(value, bool) or not is_integral:
        raise InvalidParameterError(param_name, value, "must be an integer")
    if value < 1:
        raise InvalidParameterError(param_name, value, "must be a positive integer")
    return int(value)
