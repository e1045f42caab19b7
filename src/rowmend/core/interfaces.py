# interfaces.py
# SPDX-License-Identifier: MIT
"""Protocols and shared data types for rowmend sources and sinks."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

__all__ = ["LineSink", "InputFile", "OutputPaths"]


@runtime_checkable
class LineSink(Protocol):
    """Ordered, append-only destination for record text.

    ``write_line`` receives one record without its line terminator; the
    sink appends exactly one ``\\n``. ``abort`` discards anything written
    since ``open`` and must be safe to call after ``close``.
    """

    def open(self) -> None:  # pragma: no cover - interface
        ...

    def write_line(self, line: str) -> None:  # pragma: no cover - interface
        ...

    def close(self) -> None:  # pragma: no cover - interface
        ...

    def abort(self) -> None:  # pragma: no cover - interface
        ...


@dataclass(frozen=True, slots=True)
class InputFile:
    """One input handed to the file-set driver.

    Attributes:
        path (Path): Local path of the input.
        index (int): Position in the expanded input list; results are
            reported in this order.
    """

    path: Path
    index: int = 0

    @property
    def name(self) -> str:
        return self.path.name


@dataclass(frozen=True, slots=True)
class OutputPaths:
    """Resolved destinations for one input file.

    Attributes:
        accepted (Path): Regularized output.
        rejected (Path | None): Raw reject file, or None when rejects are
            not written.
        reject_index (Path | None): Diagnostics sidecar, when enabled.
    """

    accepted: Path
    rejected: Optional[Path] = None
    reject_index: Optional[Path] = None
