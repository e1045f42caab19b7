# fs.py
# SPDX-License-Identifier: MIT
"""Local filesystem inputs: pattern expansion and line streams.

Lines are split on ``\\n`` only. A lone ``\\r`` inside a field is content,
not a line break, so files are opened with ``newline="\\n"`` and each line
keeps its terminator for :func:`rowmend.core.lines.normalize_line` to strip.
"""

from __future__ import annotations

import glob
import gzip
import io
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import IO

from ..core.interfaces import InputFile
from ..core.log import get_logger

__all__ = [
    "GZIP_MAGIC",
    "expand_inputs",
    "is_gzip_file",
    "open_text_lines",
]

log = get_logger(__name__)

GZIP_MAGIC = b"\x1f\x8b"
_GLOB_CHARS = ("*", "?", "[")


def _has_glob(pattern: str) -> bool:
    return any(ch in pattern for ch in _GLOB_CHARS)


def expand_inputs(patterns: Sequence[str | Path]) -> list[InputFile]:
    """Expand paths and glob patterns into an ordered list of input files.

    Matches of each pattern are sorted; duplicates (by resolved path) keep
    their first position.

    Raises:
        ValueError: If ``patterns`` is empty.
        FileNotFoundError: If a plain path does not exist or a pattern
            matches no files.
    """
    if not patterns:
        raise ValueError("At least one input path or pattern is required.")
    seen: set[Path] = set()
    out: list[InputFile] = []
    for raw in patterns:
        pattern = str(raw)
        if _has_glob(pattern):
            matches = sorted(Path(p) for p in glob.glob(pattern, recursive=True))
            matches = [p for p in matches if p.is_file()]
            if not matches:
                raise FileNotFoundError(f"No files found for pattern: {pattern}")
        else:
            path = Path(pattern)
            if not path.is_file():
                raise FileNotFoundError(f"Input file not found: {pattern}")
            matches = [path]
        for path in matches:
            key = path.resolve()
            if key in seen:
                continue
            seen.add(key)
            out.append(InputFile(path=path, index=len(out)))
    log.debug("Expanded %d pattern(s) into %d input file(s)", len(patterns), len(out))
    return out


def is_gzip_file(path: str | Path) -> bool:
    """True when the name ends in .gz/.gzip or the file starts with gzip magic."""
    p = Path(path)
    if p.name.lower().endswith((".gz", ".gzip")):
        return True
    with open(p, "rb") as fp:
        return fp.read(2) == GZIP_MAGIC


@contextmanager
def open_text_lines(
    path: str | Path,
    *,
    encoding: str = "utf-8",
    errors: str = "strict",
    auto_gunzip: bool = True,
) -> Iterator[IO[str]]:
    """Open ``path`` as a text stream iterating physical lines.

    Args:
        path (str | Path): Input file.
        encoding (str): Text encoding.
        errors (str): Codec error handler.
        auto_gunzip (bool): Decompress gzip input transparently.

    Yields:
        IO[str]: Text stream; iterate it for lines ending in ``\\n``.
    """
    p = Path(path)
    if auto_gunzip and is_gzip_file(p):
        raw: IO[bytes] = gzip.open(p, "rb")
    else:
        raw = open(p, "rb")
    try:
        with io.TextIOWrapper(raw, encoding=encoding, errors=errors, newline="\n") as fp:
            yield fp
    finally:
        raw.close()
