from __future__ import annotations

import json
import os
from pathlib import Path

from rowmend.core.anchors import AnchorPattern
from rowmend.core.width_cache import WidthCache, cache_key_for


def test_cache_key_changes_with_file_and_pattern(tmp_path: Path) -> None:
    path = tmp_path / "data.tsv"
    path.write_text("a\tb\n", encoding="utf-8")
    key = cache_key_for(path, AnchorPattern())
    assert key == cache_key_for(path, AnchorPattern())
    assert key != cache_key_for(path, AnchorPattern(expected_offset=3))

    path.write_text("a\tb\tc\n", encoding="utf-8")
    assert key != cache_key_for(path, AnchorPattern())


def test_save_and_load_roundtrip(tmp_path: Path) -> None:
    cache_path = tmp_path / "cache" / "widths.json"
    cache = WidthCache.load(cache_path)
    assert len(cache) == 0
    cache.put("k1", 5)
    cache.save()

    payload = json.loads(cache_path.read_text(encoding="utf-8"))
    assert payload == {"schema_version": 1, "entries": {"k1": 5}}

    reloaded = WidthCache.load(cache_path)
    assert reloaded.get("k1") == 5
    assert reloaded.snapshot() == {"k1": 5}


def test_save_skips_when_unchanged(tmp_path: Path) -> None:
    cache_path = tmp_path / "widths.json"
    cache = WidthCache(cache_path, {"k": 3})
    cache.put("k", 3)
    cache.save()
    assert not cache_path.exists()


def test_unreadable_cache_starts_empty(tmp_path: Path, caplog) -> None:
    cache_path = tmp_path / "widths.json"
    cache_path.write_text("{not json", encoding="utf-8")
    cache = WidthCache.load(cache_path)
    assert len(cache) == 0
    assert any("Ignoring" in rec.getMessage() for rec in caplog.records)

    cache_path.write_text(json.dumps({"entries": {"good": 4, "bad": "x", "zero": 0}}), encoding="utf-8")
    assert WidthCache.load(cache_path).snapshot() == {"good": 4}


def test_snapshot_is_a_copy(tmp_path: Path) -> None:
    cache = WidthCache(tmp_path / "w.json", {"a": 1})
    snap = cache.snapshot()
    snap["b"] = 2
    assert cache.get("b") is None
    assert not os.path.exists(tmp_path / "w.json")
