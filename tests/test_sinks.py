from __future__ import annotations

import errno
import gzip
from pathlib import Path

import pytest

from rowmend.core.interfaces import LineSink
from rowmend.sinks.sinks import GzipLineSink, ListSink, TextLineSink, make_line_sink


def test_text_sink_writes_lf_terminated_lines(tmp_path: Path) -> None:
    path = tmp_path / "out" / "data.tsv"
    sink = TextLineSink(path)
    sink.open()
    sink.write_line("a\tb")
    sink.write_line("c\\nd\te")
    assert not path.exists()
    sink.close()

    assert path.read_bytes() == b"a\tb\nc\\nd\te\n"
    assert sink.lines_written == 2
    assert not (tmp_path / "out" / "data.tsv.tmp").exists()


def test_gzip_sink_roundtrip(tmp_path: Path) -> None:
    path = tmp_path / "data.tsv.gz"
    with GzipLineSink(path) as sink:
        sink.write_line("x\ty")

    with gzip.open(path, "rt", encoding="utf-8") as fp:
        assert fp.read() == "x\ty\n"


def test_abort_discards_temp_and_keeps_existing_target(tmp_path: Path) -> None:
    path = tmp_path / "data.tsv"
    path.write_text("previous\n", encoding="utf-8")
    sink = TextLineSink(path)
    sink.open()
    sink.write_line("partial")
    sink.abort()

    assert path.read_text(encoding="utf-8") == "previous\n"
    assert not (tmp_path / "data.tsv.tmp").exists()


def test_context_manager_aborts_on_error(tmp_path: Path) -> None:
    path = tmp_path / "data.tsv"
    with pytest.raises(RuntimeError):
        with TextLineSink(path) as sink:
            sink.write_line("partial")
            raise RuntimeError("boom")
    assert not path.exists()
    assert list(tmp_path.iterdir()) == []


def test_make_line_sink_picks_by_name(tmp_path: Path) -> None:
    assert isinstance(make_line_sink(tmp_path / "a.tsv.gz"), GzipLineSink)
    assert isinstance(make_line_sink(tmp_path / "a.tsv"), TextLineSink)
    assert isinstance(make_line_sink(tmp_path / "a.tsv", compress=True), GzipLineSink)
    assert isinstance(make_line_sink(tmp_path / "a.gz", compress=False), TextLineSink)


def test_sinks_satisfy_protocol(tmp_path: Path) -> None:
    assert isinstance(ListSink(), LineSink)
    assert isinstance(TextLineSink(tmp_path / "x.tsv"), LineSink)


def test_list_sink_collects_lines() -> None:
    sink = ListSink()
    sink.open()
    sink.write_line("one")
    sink.close()
    assert sink.lines == ["one"]
    assert sink.closed


class _FullDiskHandle:
    def __init__(self, fp) -> None:
        self._fp = fp

    def write(self, text: str) -> int:
        return self._fp.write(text)

    def close(self) -> None:
        self._fp.close()
        raise OSError(errno.ENOSPC, "No space left on device")


class _FullDiskSink(TextLineSink):
    def _open_handle(self, path: Path):
        return _FullDiskHandle(super()._open_handle(path))


def test_failed_close_removes_temp_file(tmp_path: Path) -> None:
    path = tmp_path / "data.tsv"
    sink = _FullDiskSink(path)
    sink.open()
    sink.write_line("a\tb")

    with pytest.raises(OSError) as excinfo:
        sink.close()

    assert excinfo.value.errno == errno.ENOSPC
    assert list(tmp_path.iterdir()) == []
    sink.abort()
