import gzip
import json
from pathlib import Path

from rowmend.cli.main import main
from rowmend.core.config import RowmendConfig


def _row(i: int) -> str:
    return f"alpha{i}\tbeta\t{1700000000 + i}\t1234567890123\t9876543210987\tgamma{i}"


def _write(path: Path, lines: list[str]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("".join(line + "\n" for line in lines), encoding="utf-8")
    return path


def test_cli_file_command(tmp_path: Path, capsys):
    src = _write(tmp_path / "events.tsv", [_row(0), "al", "pha1\tx\t1700000001\t1234567890123\t9876543210987\ty"])
    out = tmp_path / "out" / "events.tsv.gz"

    rc = main(["--log-level", "WARNING", "file", str(src), str(out)])

    assert rc == 0
    stats = json.loads(capsys.readouterr().out)
    assert stats["accepted"] == 2
    assert stats["canonical_width"] == 5
    with gzip.open(out, "rt", encoding="utf-8") as fp:
        assert fp.read().splitlines()[1].startswith("al\\npha1\t")


def test_cli_file_unrecognized_exit_code(tmp_path: Path, capsys):
    src = _write(tmp_path / "events.tsv", ["no\tanchors"])

    rc = main(["file", str(src), str(tmp_path / "out.tsv")])

    assert rc == 2
    assert "Error:" in capsys.readouterr().err
    assert not (tmp_path / "out.tsv").exists()


def test_cli_file_width_override_and_reject_index(tmp_path: Path, capsys):
    src = _write(tmp_path / "events.tsv", ["a\tb\tc", "d\te\tf", "g"])
    out = tmp_path / "out" / "events.tsv"

    rc = main(["file", str(src), str(out), "--width", "2", "--tolerance", "0", "--reject-index", "csv"])

    assert rc == 0
    stats = json.loads(capsys.readouterr().out)
    assert stats["width_source"] == "override"
    assert stats["rejected"] == 1
    assert (tmp_path / "out" / "events-rejected.tsv.index.csv").exists()


def test_cli_folder_command(tmp_path: Path, capsys):
    raw = tmp_path / "raw"
    _write(raw / "a.tsv", [_row(0), _row(1)])
    _write(raw / "b.tsv", ["nothing here"])

    rc = main(["folder", str(raw / "*.tsv"), str(tmp_path / "out"), "-j", "2", "--rejects-dir", str(tmp_path / "rej")])

    assert rc == 2
    payload = json.loads(capsys.readouterr().out)
    assert [f["status"] for f in payload["files"]] == ["ok", "unrecognized"]
    assert payload["totals"]["accepted"] == 2
    assert (tmp_path / "rej" / "a-rejected.tsv").exists()


def test_cli_discover_command(tmp_path: Path, capsys):
    src = _write(tmp_path / "a.tsv", [_row(i) for i in range(4)])

    rc = main(["discover", str(src), "--top", "1"])

    assert rc == 0
    reports = json.loads(capsys.readouterr().out)
    assert reports[0]["canonical_width"] == 5
    assert reports[0]["top_deltas"] == "5:3"


def test_cli_run_from_config(tmp_path: Path, capsys):
    _write(tmp_path / "raw" / "a.tsv", [_row(0), _row(1)])
    cfg = RowmendConfig()
    cfg.sources.inputs = [str(tmp_path / "raw" / "*.tsv")]
    cfg.sinks.output_dir = tmp_path / "out"
    config_path = tmp_path / "config.json"
    cfg.to_json(config_path)

    rc = main(["run", "-c", str(config_path), "--override-max-workers", "2"])

    assert rc == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["totals"]["records"] == 2
    assert (tmp_path / "out" / "a.tsv").exists()


def test_cli_run_dry_run(tmp_path: Path, capsys):
    cfg = RowmendConfig()
    cfg.pipeline.executor_kind = "THREAD"
    config_path = tmp_path / "config.json"
    cfg.to_json(config_path)

    rc = main(["run", "-c", str(config_path), "--dry-run"])

    assert rc == 0
    printed = json.loads(capsys.readouterr().out)
    assert printed["pipeline"]["executor_kind"] == "thread"


def test_cli_reports_errors(tmp_path: Path, capsys):
    rc = main(["run", "-c", str(tmp_path / "missing.toml")])
    assert rc == 1
    assert capsys.readouterr().err.startswith("Error:")


def test_cli_merge_stats(tmp_path: Path, capsys):
    a = tmp_path / "a.json"
    b = tmp_path / "b.json"
    a.write_text(json.dumps({"files": [{"status": "ok", "records": 3, "accepted": 3, "canonical_width": 5}]}))
    b.write_text(json.dumps([{"status": "unrecognized"}, {"status": "ok", "records": 1, "rejected": 1}]))
    out = tmp_path / "merged.json"

    rc = main(["merge-stats", str(a), str(b), "-o", str(out)])

    assert rc == 0
    merged = json.loads(out.read_text(encoding="utf-8"))
    assert merged["files"] == 3
    assert merged["records"] == 4
    assert merged["unrecognized_files"] == 1
    assert capsys.readouterr().out == ""
