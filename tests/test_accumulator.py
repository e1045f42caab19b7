from __future__ import annotations

import pytest

from rowmend.core.accumulator import AccumulatorState, RecordAccumulator


def test_starts_empty_and_take_resets():
    acc = RecordAccumulator()
    assert acc.state is AccumulatorState.EMPTY
    acc.begin_line()
    assert not acc.pending_join

    acc.append("a\tb", 1)
    assert acc.state is AccumulatorState.ACCUMULATING
    assert acc.delimiters == 1
    assert acc.length == 3

    record = acc.take()
    assert record.text == "a\tb"
    assert record.delimiters == 1
    assert (record.first_line, record.last_line) == (1, 1)
    assert acc.is_empty
    assert acc.delimiters == 0
    assert acc.length == 0


def test_pending_join_splices_placeholder_once():
    acc = RecordAccumulator(placeholder="<NL>")
    acc.begin_line()
    acc.append("alpha", 1)
    acc.begin_line()
    assert acc.pending_join
    acc.append("beta\tgamma", 2)
    assert not acc.pending_join

    record = acc.take()
    assert record.text == "alpha<NL>beta\tgamma"
    assert record.delimiters == 1
    assert (record.first_line, record.last_line) == (1, 2)


def test_empty_content_keeps_join_armed():
    acc = RecordAccumulator()
    acc.begin_line()
    acc.append("alpha", 1)
    acc.begin_line()
    acc.append("", 2)
    assert acc.pending_join
    acc.begin_line()
    acc.append("beta", 3)
    assert acc.take().text == "alpha\\nbeta"


def test_empty_line_on_empty_accumulator_is_ignored():
    acc = RecordAccumulator()
    acc.begin_line()
    acc.append("", 1)
    assert acc.is_empty
    assert not acc.pending_join


def test_take_on_empty_raises():
    with pytest.raises(RuntimeError):
        RecordAccumulator().take()


def test_placeholder_counts_towards_length_not_delimiters():
    acc = RecordAccumulator(delimiter="|", placeholder="\\n")
    acc.begin_line()
    acc.append("a|b", 1)
    acc.begin_line()
    acc.append("c", 2)
    assert acc.length == len("a|b\\nc")
    assert acc.delimiters == 1


def test_reset_clears_pending_join():
    acc = RecordAccumulator()
    acc.begin_line()
    acc.append("x", 1)
    acc.begin_line()
    acc.reset()
    assert acc.is_empty
    assert not acc.pending_join
