# reconstruct.py
# SPDX-License-Identifier: MIT
"""Streaming reconstruction of logical records from physical lines.

Each physical line is appended to a single :class:`RecordAccumulator`.
Once the accumulator holds at least ``canonical_width`` delimiters it is
finalized through :class:`BoundaryPolicy` and routed to the accepted or
rejected stream. The only buffered state is the one in-flight record, and
the guardrails force-flush it as rejected when it grows past the configured
ceilings, so memory stays bounded no matter how damaged the file is.

Malformed records never raise. Errors from the line iterator or the sinks
propagate unchanged.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from typing import Any, Optional

from .accumulator import PendingRecord, RecordAccumulator
from .config import ReconstructConfig
from .interfaces import LineSink
from .lines import normalize_line
from .log import get_logger
from .policy import BoundaryPolicy, RecordKind, Verdict

__all__ = [
    "RecordOutcome",
    "ReconstructionStats",
    "iter_reconstructed",
    "reconstruct",
]

log = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class RecordOutcome:
    """A finalized logical record and where it came from.

    Attributes:
        index (int): 1-based logical record number within the file.
        verdict (Verdict): Classification and text to write.
        first_line (int | None): First physical line of the record.
        last_line (int | None): Last physical line of the record.
        chars (int): Length of the raw record text.
    """

    index: int
    verdict: Verdict
    first_line: Optional[int] = None
    last_line: Optional[int] = None
    chars: int = 0

    @property
    def accepted(self) -> bool:
        return self.verdict.accepted


@dataclass(slots=True)
class ReconstructionStats:
    """Per-file counters. ``accepted + rejected == records`` always holds."""

    canonical_width: int
    records: int = 0
    accepted: int = 0
    rejected: int = 0
    exact: int = 0
    padded: int = 0
    truncated: int = 0
    fragments: int = 0
    malformed: int = 0
    runaway: int = 0
    physical_lines: int = 0

    def observe(self, outcome: RecordOutcome) -> None:
        kind = outcome.verdict.kind
        self.records += 1
        if kind.accepted:
            self.accepted += 1
        else:
            self.rejected += 1
        if kind is RecordKind.EXACT:
            self.exact += 1
        elif kind is RecordKind.PADDED:
            self.padded += 1
        elif kind is RecordKind.TRUNCATED:
            self.truncated += 1
        elif kind is RecordKind.FRAGMENT:
            self.fragments += 1
        elif kind is RecordKind.MALFORMED:
            self.malformed += 1
        elif kind is RecordKind.RUNAWAY:
            self.runaway += 1

    def as_dict(self) -> dict[str, Any]:
        return {
            "canonical_width": self.canonical_width,
            "records": self.records,
            "accepted": self.accepted,
            "rejected": self.rejected,
            "exact": self.exact,
            "padded": self.padded,
            "truncated": self.truncated,
            "fragments": self.fragments,
            "malformed": self.malformed,
            "runaway": self.runaway,
            "physical_lines": self.physical_lines,
        }


class _LineCounter:
    """Wrap a line iterable and remember how many lines were pulled."""

    __slots__ = ("_lines", "count")

    def __init__(self, lines: Iterable[str]) -> None:
        self._lines = lines
        self.count = 0

    def __iter__(self) -> Iterator[str]:
        for line in self._lines:
            self.count += 1
            yield line


def iter_reconstructed(
    lines: Iterable[str],
    canonical_width: int,
    cfg: ReconstructConfig | None = None,
    *,
    source: str | None = None,
) -> Iterator[RecordOutcome]:
    """Yield finalized logical records in input order.

    Args:
        lines (Iterable[str]): Physical lines; a trailing LF or CR+LF is
            stripped from each.
        canonical_width (int): Delimiters per well-formed record.
        cfg (ReconstructConfig | None): Placeholder, tolerance, fragment,
            and guardrail settings; defaults when omitted.
        source (str | None): Label for log messages.

    Yields:
        RecordOutcome: One per logical record, accepted or rejected.
    """
    cfg = cfg or ReconstructConfig()
    policy = BoundaryPolicy.from_config(canonical_width, cfg)
    acc = RecordAccumulator(delimiter=cfg.delimiter, placeholder=cfg.placeholder)
    label = source or "<stream>"
    index = 0

    def _finalize(pending: PendingRecord, verdict: Verdict) -> RecordOutcome:
        nonlocal index
        index += 1
        return RecordOutcome(
            index=index,
            verdict=verdict,
            first_line=pending.first_line,
            last_line=pending.last_line,
            chars=len(pending.text),
        )

    for lineno, raw in enumerate(lines, start=1):
        acc.begin_line()
        acc.append(normalize_line(raw), lineno)

        if policy.exceeds_guardrail(acc.length, acc.delimiters):
            pending = acc.take()
            log.warning(
                "Runaway record in %s (lines %s-%s, %d chars, %d delimiters, canonical width %d); "
                "force-flushed to rejects. Check the canonical width or anchor pattern.",
                label,
                pending.first_line,
                pending.last_line,
                len(pending.text),
                pending.delimiters,
                canonical_width,
            )
            yield _finalize(pending, policy.runaway(pending.text, pending.delimiters))
            continue

        if acc.delimiters >= canonical_width:
            pending = acc.take()
            yield _finalize(pending, policy.classify(pending.text, pending.delimiters))

    if not acc.is_empty:
        pending = acc.take()
        yield _finalize(pending, policy.classify(pending.text, pending.delimiters))


def reconstruct(
    lines: Iterable[str],
    canonical_width: int,
    accepted: LineSink,
    rejected: LineSink | None = None,
    cfg: ReconstructConfig | None = None,
    *,
    on_reject: Callable[[RecordOutcome], None] | None = None,
    source: str | None = None,
) -> ReconstructionStats:
    """Reconstruct ``lines`` into the accepted and rejected sinks.

    Sinks must already be open; this function never opens or closes them.
    When ``rejected`` is None rejected records are still counted (and
    passed to ``on_reject``) but not written.

    Returns:
        ReconstructionStats: Counters for the pass.
    """
    counter = _LineCounter(lines)
    stats = ReconstructionStats(canonical_width=int(canonical_width))
    for outcome in iter_reconstructed(counter, canonical_width, cfg, source=source):
        stats.observe(outcome)
        if outcome.accepted:
            accepted.write_line(outcome.verdict.text)
            continue
        if rejected is not None:
            rejected.write_line(outcome.verdict.text)
        if on_reject is not None:
            on_reject(outcome)
        if outcome.verdict.kind is not RecordKind.RUNAWAY:
            log.debug(
                "Rejected %s record #%d in %s (%d delimiters, expected %d)",
                outcome.verdict.kind.value,
                outcome.index,
                source or "<stream>",
                outcome.verdict.delimiters,
                canonical_width,
            )
    stats.physical_lines = counter.count
    return stats
