# sinks.py
# SPDX-License-Identifier: MIT
"""Line sinks for accepted and rejected record streams."""
from __future__ import annotations

import gzip
import os
from pathlib import Path
from typing import TextIO

from ..core.log import get_logger

log = get_logger(__name__)

_GZIP_SUFFIXES = (".gz", ".gzip")


def looks_gzip_name(path: str | os.PathLike[str]) -> bool:
    return str(path).lower().endswith(_GZIP_SUFFIXES)


class _BaseLineSink:
    """Shared temp-file lifecycle: write to ``<name>.tmp``, move into place on close."""

    def __init__(self, out_path: str | os.PathLike[str], *, encoding: str = "utf-8"):
        """Configure a line sink.

        Args:
            out_path (str | os.PathLike[str]): Destination file path.
            encoding (str): Text encoding of the written file.
        """
        self._path = Path(out_path)
        self._encoding = encoding
        self._fp: TextIO | None = None
        self._tmp_path: Path | None = None
        self.lines_written = 0

    @property
    def path(self) -> Path:
        return self._path

    def open(self) -> None:
        """Create the parent directory and open a temp file for writing."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._tmp_path = self._path.parent / f"{self._path.name}.tmp"
        self._fp = self._open_handle(self._tmp_path)
        self.lines_written = 0

    def write_line(self, line: str) -> None:
        """Write one record followed by a single newline."""
        assert self._fp is not None, "sink is not open"
        self._fp.write(line)
        self._fp.write("\n")
        self.lines_written += 1

    def close(self) -> None:
        """Close the handle and move the temp file into place.

        If the handle fails to close (a full disk on the final flush, say),
        the temp file is removed and the error propagates.
        """
        fp, self._fp = self._fp, None
        if fp is None:
            return
        try:
            fp.close()
        except BaseException:
            self._discard_tmp()
            raise
        if self._tmp_path:
            os.replace(self._tmp_path, self._path)
            self._tmp_path = None

    def abort(self) -> None:
        """Close the handle and delete the temp file; the target is left untouched."""
        fp, self._fp = self._fp, None
        if fp is not None:
            try:
                fp.close()
            except OSError as exc:
                log.debug("Ignoring close error while aborting %s: %s", self._path, exc)
        self._discard_tmp()

    def _discard_tmp(self) -> None:
        tmp, self._tmp_path = self._tmp_path, None
        if tmp is not None:
            try:
                tmp.unlink()
            except FileNotFoundError:
                pass

    def __enter__(self) -> "_BaseLineSink":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        """Commit on success, discard on error."""
        if exc_type is None:
            self.close()
        else:
            self.abort()

    def _open_handle(self, path: Path) -> TextIO:
        raise NotImplementedError


class TextLineSink(_BaseLineSink):
    """Plain-text sink; lines are terminated with ``\\n`` on every platform."""

    def _open_handle(self, path: Path) -> TextIO:
        return open(path, "w", encoding=self._encoding, newline="")


class GzipLineSink(_BaseLineSink):
    """Gzip-compressed text sink."""

    def _open_handle(self, path: Path) -> TextIO:
        return gzip.open(path, "wt", encoding=self._encoding, newline="")


class ListSink:
    """In-memory sink collecting lines, for library use and tests."""

    def __init__(self) -> None:
        self.lines: list[str] = []
        self.closed = False

    def open(self) -> None:
        self.lines = []
        self.closed = False

    def write_line(self, line: str) -> None:
        self.lines.append(line)

    def close(self) -> None:
        self.closed = True

    def abort(self) -> None:
        self.lines = []
        self.closed = True


def make_line_sink(
    out_path: str | os.PathLike[str],
    *,
    compress: bool | None = None,
    encoding: str = "utf-8",
) -> _BaseLineSink:
    """Pick a sink for ``out_path``; gzip when ``compress`` or the name says so."""
    use_gzip = looks_gzip_name(out_path) if compress is None else bool(compress)
    if use_gzip:
        return GzipLineSink(out_path, encoding=encoding)
    return TextLineSink(out_path, encoding=encoding)


__all__ = ["TextLineSink", "GzipLineSink", "ListSink", "make_line_sink", "looks_gzip_name"]
