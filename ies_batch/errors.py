# File: ies_batch/errors.py
from __future__ import annotations

from typing import Iterable, List, Optional


class ParseError(ValueError):
    """Fatal for a single IES text; carries the 1-based line where parsing stopped."""

    def __init__(self, reason: str, line_number: Optional[int] = None):
        self.reason = reason
        self.line_number = line_number
        msg = f"line {line_number}: {reason}" if line_number is not None else reason
        super().__init__(msg)


class ValidationError(ValueError):
    """A CSV batch rejected as a unit. `messages` holds one entry per problem."""

    def __init__(self, messages: Iterable[str]):
        self.messages: List[str] = list(messages)
        super().__init__("; ".join(self.messages) or "validation failed")


class InvalidScaleTarget(ValueError):
    def __init__(self, operation: str, value: float, detail: str = "must be > 0"):
        self.operation = operation
        self.value = value
        super().__init__(f"{operation}: {value!r} {detail}")
