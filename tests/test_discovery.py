from __future__ import annotations

import logging

import pytest

from rowmend.core.anchors import AnchorPattern, iter_anchor_matches
from rowmend.core.discovery import discover_canonical_width, format_top_deltas, mode_delta
from rowmend.core.errors import FormatUnrecognizedError


def _row(i: int) -> str:
    return f"alpha{i}\tbeta\t{1700000000 + i}\t1234567890123\t9876543210987\tgamma{i}"


def _wide_row(i: int) -> str:
    fields = ["f"] * 317 + [str(1700000000 + i), "1234567890123", "9876543210987"] + ["tail"] * 10
    return "\t".join(fields)


def test_discovers_width_from_clean_rows():
    lines = [_row(i) + "\n" for i in range(10)]
    result = discover_canonical_width(lines)
    assert result.canonical_width == 5
    assert result.anchors == 10
    assert dict(result.histogram) == {5: 9}
    assert result.top_deltas(1) == [(5, 9)]
    assert result.first_anchor_offset == 2
    assert result.physical_lines == 10
    assert result.delimiters == 50


def test_split_lines_do_not_change_width():
    lines = [_row(i) + "\n" for i in range(6)]
    head, _, rest = _row(6).partition("\t")
    lines += [head + "\n", "\t" + rest + "\n"]
    lines += [_row(i) + "\r\n" for i in range(7, 10)]
    result = discover_canonical_width(lines)
    assert result.canonical_width == 5
    assert result.anchors == 10


def test_default_offset_hint_matches_wide_records():
    lines = [_wide_row(i) + "\n" for i in range(4)]
    result = discover_canonical_width(lines)
    assert result.canonical_width == 329
    assert result.first_anchor_offset == 317
    assert result.offset_hint_matches is True


def test_offset_hint_mismatch_is_only_a_warning(caplog):
    lines = [_row(i) + "\n" for i in range(3)]
    with caplog.at_level(logging.WARNING, logger="rowmend"):
        result = discover_canonical_width(lines, source="events.tsv")
    assert result.canonical_width == 5
    assert result.offset_hint_matches is False
    assert any("events.tsv" in rec.getMessage() for rec in caplog.records)


def test_noise_delta_loses_to_the_mode():
    # An anchor-shaped value inside a free-text field of record 3.
    noisy = _row(3).replace("beta", "x\t1699999999\t111111111111\t222222222222\ty")
    lines = [_row(0), _row(1), _row(2), noisy, _row(4), _row(5), _row(6)]
    result = discover_canonical_width([line + "\n" for line in lines])
    assert result.canonical_width == 5


@pytest.mark.parametrize("lines, anchors", [([], 0), (["no anchors here\n"], 0), ([_row(0) + "\n"], 1)])
def test_fewer_than_two_anchors_is_unrecognized(lines, anchors):
    with pytest.raises(FormatUnrecognizedError) as excinfo:
        discover_canonical_width(lines, source="bad.tsv")
    assert excinfo.value.anchors == anchors
    assert excinfo.value.source == "bad.tsv"


def test_custom_anchor_pattern():
    anchor = AnchorPattern(pattern=r"(?:^|\|)(ID\d+)(?=\||$)", expected_offset=0)
    lines = ["ID1|a|b\n", "ID2|c|d\n", "ID3|e|f\n"]
    result = discover_canonical_width(lines, anchor, delimiter="|")
    assert result.canonical_width == 2
    assert result.offset_hint_matches is True


def test_mode_prefers_larger_delta_on_tie():
    assert mode_delta({4: 3, 6: 3, 5: 1}) == 6
    assert mode_delta({4: 4, 6: 3}) == 4
    assert mode_delta({}) == 0


def test_format_top_deltas():
    assert format_top_deltas({5: 9, 4: 1, 7: 1}, 2) == "5:9, 7:1"
    assert format_top_deltas({}, 3) == ""


def test_anchor_position_excludes_leading_delimiter():
    regex = AnchorPattern().compile()
    line = _row(0)
    hits = list(iter_anchor_matches(regex, line))
    assert len(hits) == 1
    assert line[hits[0].start:].startswith("1700000000")
    assert hits[0].fields == ("1700000000", "1234567890123", "9876543210987")


def test_invalid_pattern_raises_value_error():
    with pytest.raises(ValueError):
        AnchorPattern(pattern="(").compile()
