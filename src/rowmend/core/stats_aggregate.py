# stats_aggregate.py
# SPDX-License-Identifier: MIT
"""
Aggregation helpers for per-file and per-run stats dictionaries.

Accepts ``FileResult.as_dict()`` entries and ``RunResult.as_dict()``
payloads (whose ``files`` list is expanded) and sums their counters.
A previous ``merge_file_stats`` result (an integer ``files`` count next to
``ok_files``) is folded in field by field, so merges can be chained.
Canonical widths are non-additive and are collected as a sorted set.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

COUNTER_KEYS = (
    "records",
    "accepted",
    "rejected",
    "exact",
    "padded",
    "truncated",
    "fragments",
    "malformed",
    "runaway",
    "physical_lines",
)

STATUS_KEYS = ("files", "ok_files", "unrecognized_files", "failed_files")


def _is_totals(data: Mapping[str, Any]) -> bool:
    files = data.get("files")
    return isinstance(files, int) and not isinstance(files, bool) and "ok_files" in data


def _iter_file_entries(data: Mapping[str, Any]):
    files = data.get("files")
    if isinstance(files, Sequence) and not isinstance(files, (str, bytes)):
        for entry in files:
            if isinstance(entry, Mapping):
                yield entry
        return
    yield data


def merge_file_stats(stats_dicts: Sequence[Mapping[str, Any]]) -> dict[str, Any]:
    """
    Merge per-file (or per-run) stats into one totals dictionary.
    """
    merged: dict[str, Any] = {
        **{key: 0 for key in STATUS_KEYS},
        **{key: 0 for key in COUNTER_KEYS},
        "canonical_widths": [],
    }
    widths: set[int] = set()

    for data in stats_dicts:
        if _is_totals(data):
            for key in STATUS_KEYS + COUNTER_KEYS:
                merged[key] += int(data.get(key, 0) or 0)
            widths.update(w for w in data.get("canonical_widths", ()) if isinstance(w, int) and w > 0)
            continue
        for entry in _iter_file_entries(data):
            merged["files"] += 1
            status = entry.get("status", "ok")
            if status == "ok":
                merged["ok_files"] += 1
            elif status == "unrecognized":
                merged["unrecognized_files"] += 1
            else:
                merged["failed_files"] += 1
            for key in COUNTER_KEYS:
                merged[key] += int(entry.get(key, 0) or 0)
            width = entry.get("canonical_width")
            if isinstance(width, int) and width > 0:
                widths.add(width)

    merged["canonical_widths"] = sorted(widths)
    return merged


__all__ = ["COUNTER_KEYS", "STATUS_KEYS", "merge_file_stats"]
