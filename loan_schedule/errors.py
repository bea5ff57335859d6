"""Exceptions raised by the loan schedule engine.

Both error families are deterministic: they describe malformed input, so
callers should report them rather than retry. A batch caller can attach the
index and name of the failing loan group with :meth:`LoanScheduleError.for_group`.
"""

from __future__ import annotations

from typing import Optional


class LoanScheduleError(Exception):
    """Base class for every error raised while computing a schedule."""

    def __init__(self, message: str, *, group_index: Optional[int] = None, group_name: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.group_index = group_index
        self.group_name = group_name

    def for_group(self, index: int, name: Optional[str] = None) -> "LoanScheduleError":
        self.group_index = index
        self.group_name = name
        return self

    def __str__(self) -> str:
        if self.group_index is None:
            return self.message
        label = f"loan group {self.group_index + 1}"
        if self.group_name:
            label += f" ({self.group_name})"
        return f"{label}: {self.message}"


class ValidationError(LoanScheduleError):
    """Loan terms or payment events are out of range or unparseable."""


class DataConsistencyError(LoanScheduleError):
    """Upstream data cannot be placed on the schedule."""
