"""
Error types for the story evolution engine.

Missing optional fields and unseen names are never errors here: they are
defaulted or lazily created. Only text-service failures and format misuse
surface as exceptions.
"""

from typing import Optional


class EvolutionError(Exception):
    """Base class for all story evolution errors."""
    pass


class GenerationFailure(EvolutionError):
    """Raised when the text service errored or returned unparsable output."""

    def __init__(
        self,
        message: str,
        attempts: int = 0,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.attempts = attempts
        self.cause = cause


class FormatMismatchError(EvolutionError, ValueError):
    """Raised when data for one content format reaches a tracker of another."""

    def __init__(self, expected: str, actual: str, where: str = ""):
        location = f" in {where}" if where else ""
        super().__init__(f"Format mismatch{location}: expected '{expected}', got '{actual}'")
        self.expected = expected
        self.actual = actual
