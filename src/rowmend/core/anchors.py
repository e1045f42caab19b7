# anchors.py
# SPDX-License-Identifier: MIT
"""Anchor patterns: the structural fingerprint recurring once per record.

The default anchor is the hit timestamp plus the two hit id halves found in
web-analytics clickstream exports (columns 318-320): a 10-digit field followed
by two 10-20 digit fields. A leading tab *or* start-of-line is accepted so the
anchor still matches when a physical line split lands right before it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, Optional

__all__ = [
    "DEFAULT_ANCHOR_PATTERN",
    "DEFAULT_ANCHOR_COLUMN",
    "DEFAULT_EXPECTED_OFFSET",
    "AnchorPattern",
    "AnchorMatch",
    "iter_anchor_matches",
]

DEFAULT_ANCHOR_PATTERN = r"(?:^|\t)([0-9]{10})\t([0-9]{10,20})\t([0-9]{10,20})(?=\t|$)"
DEFAULT_ANCHOR_COLUMN = 318  # 1-based
DEFAULT_EXPECTED_OFFSET = DEFAULT_ANCHOR_COLUMN - 1


@dataclass(frozen=True, slots=True)
class AnchorMatch:
    """One anchor hit inside a physical line.

    Attributes:
        start (int): Character index where the first anchor field begins
            (after any leading delimiter consumed by the pattern).
        end (int): Character index just past the match.
        fields (tuple[str, ...]): Captured anchor field values.
    """

    start: int
    end: int
    fields: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class AnchorPattern:
    """Regex plus the expected delimiter offset of the anchor in a record.

    ``expected_offset`` is only a hint used for diagnostics; boundary
    inference relies on the distance between consecutive anchors.

    The regex is compiled per :meth:`compile` call, so concurrent file
    workers never share a compiled object.
    """

    pattern: str = DEFAULT_ANCHOR_PATTERN
    expected_offset: Optional[int] = DEFAULT_EXPECTED_OFFSET

    def compile(self) -> re.Pattern[str]:
        try:
            return re.compile(self.pattern)
        except re.error as exc:
            raise ValueError(f"Invalid anchor pattern {self.pattern!r}: {exc}") from exc

    @property
    def key(self) -> str:
        """Stable identifier used to key cached widths."""
        return f"{self.pattern}@{self.expected_offset}"


def iter_anchor_matches(regex: re.Pattern[str], line: str) -> Iterator[AnchorMatch]:
    """Yield non-overlapping anchor hits in ``line``.

    The match position is the start of the first capturing group when the
    pattern has one, so an optional leading delimiter is not part of the
    anchor position.
    """
    for m in regex.finditer(line):
        start = m.start(1) if regex.groups >= 1 and m.start(1) >= 0 else m.start()
        yield AnchorMatch(start=start, end=m.end(), fields=m.groups())

