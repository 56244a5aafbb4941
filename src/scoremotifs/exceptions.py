"""Exception hierarchy shared by the scoring modules."""

from __future__ import annotations


class ScoreMotifsError(Exception):
    """Base class for all errors raised by scoremotifs."""


class ParseError(ScoreMotifsError, ValueError):
    """Malformed motif file: bad matrix row, unterminated block, etc."""

    def __init__(self, message: str, line_number: int | None = None):
        self.line_number = line_number
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)


class ModelArithmeticError(ScoreMotifsError, ArithmeticError):
    """Raised when a model cannot be normalized or log-transformed."""


class SequenceScoringFailure(ScoreMotifsError, ValueError):
    """A single sequence could not be scored. The run continues without it."""

    def __init__(self, sequence_id: str, reason: str):
        self.sequence_id = sequence_id
        self.reason = reason
        super().__init__(f"{sequence_id}: {reason}")


class DispatchError(ScoreMotifsError, RuntimeError):
    """The sequence stream changed between the counting pass and scoring."""
