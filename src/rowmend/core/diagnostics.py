# diagnostics.py
# SPDX-License-Identifier: MIT
"""Reject index sidecars.

A reject index has one row per rejected record (no record text), so a
reviewer can find rejects in the original file without scanning the raw
reject stream. CSV is always available; Parquet needs the optional
``pyarrow`` dependency (``pip install rowmend[parquet]``).
"""

from __future__ import annotations

import csv
import os
from pathlib import Path
from typing import Any, TextIO

from .log import get_logger
from .reconstruct import RecordOutcome

__all__ = ["INDEX_FIELDS", "RejectIndexWriter", "reject_index_row"]

log = get_logger(__name__)

INDEX_FIELDS = ("record", "first_line", "last_line", "kind", "delimiters", "chars")
_PARQUET_BATCH_ROWS = 10_000


def reject_index_row(outcome: RecordOutcome) -> dict[str, Any]:
    return {
        "record": outcome.index,
        "first_line": outcome.first_line,
        "last_line": outcome.last_line,
        "kind": outcome.verdict.kind.value,
        "delimiters": outcome.verdict.delimiters,
        "chars": outcome.chars,
    }


class RejectIndexWriter:
    """Streams reject index rows to a CSV or Parquet sidecar.

    Usable directly as the ``on_reject`` callback of
    :func:`rowmend.core.reconstruct.reconstruct`. Output goes to a temp file
    that is moved into place on :meth:`close` and removed on :meth:`abort`.
    """

    def __init__(self, out_path: str | os.PathLike[str], *, fmt: str = "csv") -> None:
        fmt = (fmt or "csv").strip().lower()
        if fmt not in {"csv", "parquet"}:
            raise ValueError(f"Unsupported reject index format: {fmt!r}")
        self.path = Path(out_path)
        self.fmt = fmt
        self.rows_written = 0
        self._tmp_path = self.path.parent / f"{self.path.name}.tmp"
        self._fp: TextIO | None = None
        self._csv: Any = None
        self._pq_writer: Any = None
        self._batch: list[dict[str, Any]] = []

    def open(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if self.fmt == "csv":
            self._fp = open(self._tmp_path, "w", encoding="utf-8", newline="")
            self._csv = csv.DictWriter(self._fp, fieldnames=list(INDEX_FIELDS))
            self._csv.writeheader()
        else:
            _require_pyarrow()

    def __call__(self, outcome: RecordOutcome) -> None:
        self.write(outcome)

    def write(self, outcome: RecordOutcome) -> None:
        row = reject_index_row(outcome)
        self.rows_written += 1
        if self.fmt == "csv":
            assert self._csv is not None, "reject index is not open"
            self._csv.writerow(row)
            return
        self._batch.append(row)
        if len(self._batch) >= _PARQUET_BATCH_ROWS:
            self._flush_parquet()

    def close(self) -> None:
        if self.fmt == "csv":
            if self._fp is None:
                return
            fp, self._fp, self._csv = self._fp, None, None
            fp.close()
        else:
            self._flush_parquet(final=True)
            writer, self._pq_writer = self._pq_writer, None
            if writer is None:
                return
            writer.close()
        os.replace(self._tmp_path, self.path)

    def abort(self) -> None:
        if self._fp is not None:
            self._fp.close()
            self._fp = None
        if self._pq_writer is not None:
            self._pq_writer.close()
            self._pq_writer = None
        self._batch = []
        try:
            self._tmp_path.unlink()
        except FileNotFoundError:
            pass

    def _flush_parquet(self, *, final: bool = False) -> None:
        # An empty index still gets a file with the right schema.
        if not self._batch and not (final and self._pq_writer is None):
            return
        pa, pq = _require_pyarrow()
        table = pa.Table.from_pylist(self._batch, schema=_parquet_schema(pa))
        if self._pq_writer is None:
            self._pq_writer = pq.ParquetWriter(str(self._tmp_path), table.schema)
        self._pq_writer.write_table(table)
        self._batch = []


def _parquet_schema(pa: Any) -> Any:
    return pa.schema(
        [
            ("record", pa.int64()),
            ("first_line", pa.int64()),
            ("last_line", pa.int64()),
            ("kind", pa.string()),
            ("delimiters", pa.int64()),
            ("chars", pa.int64()),
        ]
    )


def _require_pyarrow() -> tuple[Any, Any]:
    try:
        import pyarrow as pa
        import pyarrow.parquet as pq
    except Exception as exc:
        raise RuntimeError(
            "PyArrow is required for Parquet reject indexes; install rowmend[parquet]."
        ) from exc
    return pa, pq
