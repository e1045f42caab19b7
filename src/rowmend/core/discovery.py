# discovery.py
# SPDX-License-Identifier: MIT
"""Anchor discovery: infer the canonical delimiter width of a file.

One linear pass counts delimiters across the whole file and notes the
absolute delimiter count at every anchor hit. Consecutive anchors are one
record apart, so the most frequent distance between them is the number of
delimiters per record. Ties go to the larger distance because short
distances usually come from anchor-shaped data inside a corrupted field.

Only a ``Counter`` of distances is kept, so memory does not grow with the
number of records.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Optional

from .anchors import AnchorPattern, iter_anchor_matches
from .errors import FormatUnrecognizedError
from .lines import normalize_line
from .log import get_logger

__all__ = ["DiscoveryResult", "discover_canonical_width", "mode_delta", "format_top_deltas"]

log = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class DiscoveryResult:
    """Canonical width plus the evidence it was derived from.

    Attributes:
        canonical_width (int): Mode of the anchor-to-anchor delimiter
            distances.
        histogram (Mapping[int, int]): Distance -> occurrence count.
        anchors (int): Number of anchor hits (roughly the record count).
        first_anchor_offset (int | None): Absolute delimiter position of
            the first anchor.
        expected_offset (int | None): Offset hint from the anchor pattern.
        physical_lines (int): Lines scanned.
        delimiters (int): Delimiters scanned.
    """

    canonical_width: int
    histogram: Mapping[int, int] = field(default_factory=dict)
    anchors: int = 0
    first_anchor_offset: Optional[int] = None
    expected_offset: Optional[int] = None
    physical_lines: int = 0
    delimiters: int = 0

    @property
    def offset_hint_matches(self) -> Optional[bool]:
        """Whether the first anchor sits at the documented offset.

        None when no hint was configured.
        """
        if self.expected_offset is None or self.first_anchor_offset is None:
            return None
        return self.first_anchor_offset == self.expected_offset

    def top_deltas(self, n: int = 5) -> list[tuple[int, int]]:
        return _ranked(self.histogram, n)

    def as_dict(self) -> dict[str, Any]:
        return {
            "canonical_width": self.canonical_width,
            "anchors": self.anchors,
            "histogram": {str(k): v for k, v in sorted(self.histogram.items())},
            "first_anchor_offset": self.first_anchor_offset,
            "expected_offset": self.expected_offset,
            "offset_hint_matches": self.offset_hint_matches,
            "physical_lines": self.physical_lines,
            "delimiters": self.delimiters,
        }


def _ranked(histogram: Mapping[int, int], n: int) -> list[tuple[int, int]]:
    return sorted(histogram.items(), key=lambda kv: (-kv[1], -kv[0]))[: max(0, n)]


def mode_delta(histogram: Mapping[int, int]) -> int:
    """Most frequent delta; the larger delta wins a tie. 0 when empty."""
    best_delta, best_freq = 0, -1
    for delta, freq in histogram.items():
        if freq > best_freq or (freq == best_freq and delta > best_delta):
            best_delta, best_freq = delta, freq
    return best_delta


def format_top_deltas(histogram: Mapping[int, int], n: int = 5) -> str:
    """Render ``delta:count`` pairs for the ``n`` most frequent deltas."""
    return ", ".join(f"{delta}:{freq}" for delta, freq in _ranked(histogram, n))


def discover_canonical_width(
    lines: Iterable[str],
    anchor: AnchorPattern | None = None,
    *,
    delimiter: str = "\t",
    source: str | None = None,
) -> DiscoveryResult:
    """Scan ``lines`` once and infer delimiters per logical record.

    Args:
        lines (Iterable[str]): Physical lines in file order; trailing LF or
            CR+LF is ignored.
        anchor (AnchorPattern | None): Anchor fingerprint; the default
            clickstream triple when omitted.
        delimiter (str): Field delimiter.
        source (str | None): Label used in log and error messages.

    Returns:
        DiscoveryResult: Canonical width and diagnostics.

    Raises:
        FormatUnrecognizedError: If fewer than two anchors are found.
    """
    anchor = anchor or AnchorPattern()
    regex = anchor.compile()
    label = source or "<stream>"

    histogram: Counter[int] = Counter()
    abs_delims = 0
    anchors = 0
    first_offset: Optional[int] = None
    previous: Optional[int] = None
    lineno = 0

    for lineno, raw in enumerate(lines, start=1):
        line = normalize_line(raw)
        pos = 0
        for hit in iter_anchor_matches(regex, line):
            abs_delims += line.count(delimiter, pos, hit.start)
            pos = hit.start
            anchors += 1
            if previous is None:
                first_offset = abs_delims
            else:
                histogram[abs_delims - previous] += 1
            previous = abs_delims
        abs_delims += line.count(delimiter, pos)

    if anchors < 2:
        raise FormatUnrecognizedError(
            f"Found {anchors} anchor(s) in {label}; need at least 2. "
            "This does not look like a recognizable record format.",
            anchors=anchors,
            source=source,
        )

    width = mode_delta(histogram)
    if width <= 0:
        raise FormatUnrecognizedError(
            f"Failed to determine canonical width for {label}.",
            anchors=anchors,
            source=source,
        )

    result = DiscoveryResult(
        canonical_width=width,
        histogram=dict(histogram),
        anchors=anchors,
        first_anchor_offset=first_offset,
        expected_offset=anchor.expected_offset,
        physical_lines=lineno,
        delimiters=abs_delims,
    )
    if result.offset_hint_matches is False:
        log.warning(
            "First anchor in %s sits at delimiter %d, expected %d; relying on anchor spacing.",
            label,
            first_offset,
            anchor.expected_offset,
        )
    return result
