# policy.py
# SPDX-License-Identifier: MIT
"""Finalization policy: decide what happens to a completed logical record.

Given the canonical width ``T`` (delimiters per record) a record is

* accepted unchanged when it has exactly ``T`` delimiters,
* padded with trailing empty fields when it is short by at most
  ``padding_tolerance`` columns,
* truncated to its ``T + 1`` leading fields when it is long by at most
  ``padding_tolerance`` columns,
* otherwise rejected, as a *fragment* when its delimiter count is below the
  absolute floor or below ``fragment_ratio * T``, else as *malformed*.

Records force-flushed by the size guardrails are rejected as *runaway*.
Rejected text is always the raw record, never modified.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .config import ReconstructConfig

__all__ = ["RecordKind", "Verdict", "BoundaryPolicy", "classify_record", "keep_leading_fields"]


class RecordKind(str, Enum):
    EXACT = "exact"
    PADDED = "padded"
    TRUNCATED = "truncated"
    FRAGMENT = "fragment"
    MALFORMED = "malformed"
    RUNAWAY = "runaway"

    @property
    def accepted(self) -> bool:
        return self in _ACCEPTED


_ACCEPTED = frozenset({RecordKind.EXACT, RecordKind.PADDED, RecordKind.TRUNCATED})


@dataclass(frozen=True, slots=True)
class Verdict:
    """Outcome of finalizing one record.

    Attributes:
        kind (RecordKind): Classification of the record.
        text (str): Text to write; regularized for accepted kinds, raw for
            rejected kinds.
        delimiters (int): Delimiter count of the record before repair.
    """

    kind: RecordKind
    text: str
    delimiters: int

    @property
    def accepted(self) -> bool:
        return self.kind.accepted


def keep_leading_fields(text: str, delimiter: str, count: int) -> str:
    """Return ``text`` cut after its first ``count`` fields."""
    if count <= 0:
        return ""
    pos = -1
    for _ in range(count):
        pos = text.find(delimiter, pos + 1)
        if pos < 0:
            return text
    return text[:pos]


@dataclass(frozen=True, slots=True)
class BoundaryPolicy:
    """Immutable per-file policy bound to one canonical width."""

    canonical_width: int
    delimiter: str = "\t"
    padding_tolerance: int = 3
    fragment_min_delimiters: int = 10
    fragment_ratio: float = 0.6
    max_record_chars: Optional[int] = None
    max_delimiter_multiplier: Optional[int] = None

    def __post_init__(self) -> None:
        if self.canonical_width < 1:
            raise ValueError(f"canonical_width must be >= 1; got {self.canonical_width}")

    @classmethod
    def from_config(cls, canonical_width: int, cfg: ReconstructConfig | None = None) -> "BoundaryPolicy":
        cfg = cfg or ReconstructConfig()
        return cls(
            canonical_width=int(canonical_width),
            delimiter=cfg.delimiter,
            padding_tolerance=cfg.padding_tolerance,
            fragment_min_delimiters=cfg.fragment_min_delimiters,
            fragment_ratio=cfg.fragment_ratio,
            max_record_chars=cfg.max_record_chars,
            max_delimiter_multiplier=cfg.max_delimiter_multiplier,
        )

    @property
    def delimiter_ceiling(self) -> Optional[int]:
        if self.max_delimiter_multiplier is None:
            return None
        return self.canonical_width * self.max_delimiter_multiplier

    def looks_like_fragment(self, delimiters: int) -> bool:
        if delimiters < self.fragment_min_delimiters:
            return True
        return delimiters < math.floor(self.canonical_width * self.fragment_ratio)

    def exceeds_guardrail(self, length: int, delimiters: int) -> bool:
        """True when an in-flight record must be force-flushed."""
        if self.max_record_chars is not None and length > self.max_record_chars:
            return True
        ceiling = self.delimiter_ceiling
        return ceiling is not None and delimiters > ceiling

    def classify(self, text: str, delimiters: int) -> Verdict:
        width = self.canonical_width
        if delimiters == width:
            return Verdict(RecordKind.EXACT, text, delimiters)
        drift = delimiters - width
        if drift < 0 and -drift <= self.padding_tolerance:
            return Verdict(RecordKind.PADDED, text + self.delimiter * -drift, delimiters)
        if drift > 0 and drift <= self.padding_tolerance:
            return Verdict(
                RecordKind.TRUNCATED,
                keep_leading_fields(text, self.delimiter, width + 1),
                delimiters,
            )
        if self.looks_like_fragment(delimiters):
            return Verdict(RecordKind.FRAGMENT, text, delimiters)
        return Verdict(RecordKind.MALFORMED, text, delimiters)

    def runaway(self, text: str, delimiters: int) -> Verdict:
        return Verdict(RecordKind.RUNAWAY, text, delimiters)


def classify_record(
    text: str,
    delimiters: int,
    canonical_width: int,
    cfg: ReconstructConfig | None = None,
) -> Verdict:
    """Classify one finalized record against ``canonical_width``."""
    return BoundaryPolicy.from_config(canonical_width, cfg).classify(text, delimiters)
