# accumulator.py
# SPDX-License-Identifier: MIT
"""The in-flight logical record buffer used during reconstruction.

A :class:`RecordAccumulator` is a small state machine::

    EMPTY --append--> ACCUMULATING --take--> EMPTY

``begin_line`` arms the pending-join flag whenever a physical line starts
while a record is already in progress; the next non-empty ``append`` splices
the placeholder token in first and disarms it. ``take`` hands the assembled
record out and returns the accumulator to EMPTY with the flag cleared.

Content is kept as a list of parts so growth is linear in the record size.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .config import DEFAULT_PLACEHOLDER

__all__ = ["AccumulatorState", "PendingRecord", "RecordAccumulator"]


class AccumulatorState(str, Enum):
    EMPTY = "empty"
    ACCUMULATING = "accumulating"


@dataclass(frozen=True, slots=True)
class PendingRecord:
    """A finalized accumulator snapshot.

    Attributes:
        text (str): Assembled record text, placeholders included.
        delimiters (int): Delimiter count of ``text``.
        first_line (int | None): Physical line number where the record
            started, when line numbers were supplied.
        last_line (int | None): Physical line number of the last appended
            content.
    """

    text: str
    delimiters: int
    first_line: Optional[int] = None
    last_line: Optional[int] = None


class RecordAccumulator:
    """Single mutable buffer holding the record being assembled."""

    __slots__ = (
        "delimiter",
        "placeholder",
        "_parts",
        "_length",
        "_delimiters",
        "_pending_join",
        "_first_line",
        "_last_line",
    )

    def __init__(self, *, delimiter: str = "\t", placeholder: str = DEFAULT_PLACEHOLDER) -> None:
        self.delimiter = delimiter
        self.placeholder = placeholder
        self._parts: list[str] = []
        self._length = 0
        self._delimiters = 0
        self._pending_join = False
        self._first_line: Optional[int] = None
        self._last_line: Optional[int] = None

    @property
    def state(self) -> AccumulatorState:
        return AccumulatorState.ACCUMULATING if self._parts else AccumulatorState.EMPTY

    @property
    def is_empty(self) -> bool:
        return not self._parts

    @property
    def length(self) -> int:
        """Characters currently buffered, placeholders included."""
        return self._length

    @property
    def delimiters(self) -> int:
        return self._delimiters

    @property
    def pending_join(self) -> bool:
        return self._pending_join

    def begin_line(self) -> None:
        """Mark the start of a new physical line."""
        self._pending_join = bool(self._parts)

    def append(self, text: str, lineno: Optional[int] = None) -> None:
        """Append physical-line content, splicing the placeholder if armed.

        Empty content is ignored and leaves the pending-join flag untouched.
        """
        if not text:
            return
        if self._pending_join:
            self._parts.append(self.placeholder)
            self._length += len(self.placeholder)
            self._pending_join = False
        if not self._parts:
            self._first_line = lineno
        self._parts.append(text)
        self._length += len(text)
        self._delimiters += text.count(self.delimiter)
        self._last_line = lineno

    def take(self) -> PendingRecord:
        """Return the assembled record and reset to EMPTY.

        Raises:
            RuntimeError: If the accumulator is empty.
        """
        if not self._parts:
            raise RuntimeError("take() called on an empty accumulator")
        record = PendingRecord(
            text="".join(self._parts),
            delimiters=self._delimiters,
            first_line=self._first_line,
            last_line=self._last_line,
        )
        self.reset()
        return record

    def reset(self) -> None:
        self._parts = []
        self._length = 0
        self._delimiters = 0
        self._pending_join = False
        self._first_line = None
        self._last_line = None
