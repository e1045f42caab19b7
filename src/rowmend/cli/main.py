# main.py
# SPDX-License-Identifier: MIT

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Optional, Sequence

from ..core.config import RowmendConfig, load_config_from_path
from ..core.errors import FormatUnrecognizedError
from ..core.log import configure_logging
from ..core.stats_aggregate import merge_file_stats
from .runner import discover, make_folder_config, preprocess, preprocess_file

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_UNRECOGNIZED = 2


def _add_common_options(p: argparse.ArgumentParser) -> None:
    p.add_argument("--config", help="Optional base config TOML/JSON.")
    p.add_argument("--width", type=int, help="Canonical width override; skips discovery.")
    p.add_argument("--placeholder", help="Token spliced in for embedded newlines.")
    p.add_argument("--tolerance", type=int, help="Max column drift repaired by padding/truncation.")
    p.add_argument("--print-stats", action="store_true", help="Log discovery histograms at INFO.")
    p.add_argument(
        "--reject-index",
        choices=["csv", "parquet"],
        help="Write a reject index sidecar in this format.",
    )


def _build_parser() -> argparse.ArgumentParser:
    """Build the top-level rowmend CLI argument parser.

    Returns:
        argparse.ArgumentParser: Configured argument parser for the CLI.
    """
    parser = argparse.ArgumentParser(
        prog="rowmend",
        description="Repair TSV files whose records were split by embedded newlines or tabs.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (e.g., DEBUG, INFO, WARNING). Defaults to the config value or INFO.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    file_p = subparsers.add_parser("file", help="Preprocess one file to an explicit output path.")
    file_p.add_argument("input", help="Input TSV (plain or .gz).")
    file_p.add_argument("output", help="Accepted output path; gzip when it ends in .gz.")
    file_p.add_argument("--rejects", help="Reject file path (defaults beside the output).")
    _add_common_options(file_p)

    folder_p = subparsers.add_parser("folder", help="Preprocess every file matching a glob pattern.")
    folder_p.add_argument("pattern", help='Input glob, e.g. "raw/*.tsv.gz".')
    folder_p.add_argument("output_dir", help="Output directory.")
    folder_p.add_argument("--parallelism", "-j", type=int, help="Files processed concurrently (0 = CPU count).")
    folder_p.add_argument("--rejects-dir", help="Directory for reject files (defaults to the output directory).")
    folder_p.add_argument("--width-cache", help="JSON file caching discovered widths between runs.")
    folder_p.add_argument(
        "--keep-going",
        action="store_true",
        help="Record I/O failures per file instead of stopping at the first one.",
    )
    _add_common_options(folder_p)

    disc_p = subparsers.add_parser("discover", help="Run discovery only and print the canonical widths.")
    disc_p.add_argument("inputs", nargs="+", help="Input paths or glob patterns.")
    disc_p.add_argument("--config", help="Optional base config TOML/JSON.")
    disc_p.add_argument("--top", type=int, help="Number of most frequent deltas to report.")

    run_p = subparsers.add_parser("run", help="Run from a config file")
    run_p.add_argument("-c", "--config", required=True, help="Path to config file (TOML or JSON).")
    run_p.add_argument("--override-max-workers", type=int, help="Override pipeline.max_workers.")
    run_p.add_argument(
        "--override-executor-kind",
        choices=["thread", "process"],
        help="Override pipeline.executor_kind.",
    )
    run_p.add_argument("--dry-run", action="store_true", help="Validate and print config, then exit.")

    merge_p = subparsers.add_parser("merge-stats", help="Merge stats JSON files.")
    merge_p.add_argument("stats_files", nargs="+", type=Path, help="Paths to stats JSON files.")
    merge_p.add_argument("--output", "-o", type=Path, help="Output file (defaults to stdout).")

    return parser


def _load_base_config(path: Optional[str]) -> RowmendConfig:
    if not path:
        return RowmendConfig()
    return load_config_from_path(path)


def _apply_common_overrides(cfg: RowmendConfig, args: argparse.Namespace) -> None:
    """Apply reconstruction/diagnostic CLI flags to ``cfg`` in place."""
    if getattr(args, "width", None) is not None:
        cfg.reconstruct.canonical_width = int(args.width)
    if getattr(args, "placeholder", None) is not None:
        cfg.reconstruct.placeholder = args.placeholder
    if getattr(args, "tolerance", None) is not None:
        cfg.reconstruct.padding_tolerance = int(args.tolerance)
    if getattr(args, "print_stats", False):
        cfg.diagnostics.print_stats = True
    if getattr(args, "reject_index", None):
        cfg.diagnostics.reject_index = True
        cfg.diagnostics.index_format = args.reject_index


def _apply_pipeline_overrides(cfg: RowmendConfig, args: argparse.Namespace) -> None:
    if getattr(args, "override_max_workers", None) is not None:
        cfg.pipeline.max_workers = int(args.override_max_workers)
    if getattr(args, "override_executor_kind", None):
        cfg.pipeline.executor_kind = args.override_executor_kind


def _configure_logging(cfg: RowmendConfig, args: argparse.Namespace) -> None:
    if args.log_level:
        cfg.logging.level = args.log_level
    cfg.logging.apply()


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2))


def _cmd_file(args: argparse.Namespace) -> int:
    cfg = _load_base_config(args.config)
    _apply_common_overrides(cfg, args)
    _configure_logging(cfg, args)
    try:
        stats = preprocess_file(
            args.input,
            args.output,
            config=cfg,
            rejects_path=args.rejects,
        )
    except FormatUnrecognizedError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_UNRECOGNIZED
    _print_json(stats)
    return EXIT_OK


def _cmd_folder(args: argparse.Namespace) -> int:
    base = _load_base_config(args.config)
    _apply_common_overrides(base, args)
    cfg = make_folder_config(args.pattern, args.output_dir, base_config=base, max_workers=args.parallelism)
    if args.rejects_dir:
        cfg.sinks.rejects_dir = Path(args.rejects_dir)
    if args.width_cache:
        cfg.sources.width_cache_path = args.width_cache
    if args.keep_going:
        cfg.pipeline.fail_fast = False
    _configure_logging(cfg, args)
    return _run_and_report(cfg)


def _cmd_run(args: argparse.Namespace) -> int:
    cfg = load_config_from_path(args.config)
    _apply_pipeline_overrides(cfg, args)
    _configure_logging(cfg, args)
    if args.dry_run:
        cfg.validate()
        _print_json(cfg.to_dict())
        return EXIT_OK
    return _run_and_report(cfg)


def _run_and_report(cfg: RowmendConfig) -> int:
    result = preprocess(cfg)
    _print_json(result.as_dict(include_histogram=cfg.diagnostics.print_stats))
    if result.has_unrecognized:
        return EXIT_UNRECOGNIZED
    if result.has_failures:
        return EXIT_ERROR
    return EXIT_OK


def _cmd_discover(args: argparse.Namespace) -> int:
    cfg = _load_base_config(args.config)
    if args.top is not None:
        cfg.diagnostics.top_deltas = int(args.top)
    _configure_logging(cfg, args)
    reports = discover(args.inputs, config=cfg)
    _print_json(reports)
    if any(r.get("status") == "unrecognized" for r in reports):
        return EXIT_UNRECOGNIZED
    return EXIT_OK


def _cmd_merge_stats(args: argparse.Namespace) -> int:
    """Merge stats JSON files and write to stdout or a file."""
    configure_logging(level=args.log_level or "INFO")
    stats_dicts = []
    for path in args.stats_files:
        data = json.loads(path.read_text("utf-8"))
        if isinstance(data, list):
            stats_dicts.extend(data)
        else:
            stats_dicts.append(data)

    merged = merge_file_stats(stats_dicts)
    text = json.dumps(merged, indent=2, sort_keys=True)
    if args.output:
        args.output.write_text(text + "\n", encoding="utf-8")
    else:
        print(text)
    return EXIT_OK


_COMMANDS = {
    "file": _cmd_file,
    "folder": _cmd_folder,
    "discover": _cmd_discover,
    "run": _cmd_run,
    "merge-stats": _cmd_merge_stats,
}


def _dispatch(args: argparse.Namespace) -> int:
    handler = _COMMANDS.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return EXIT_ERROR
    return handler(args)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point for the rowmend command-line interface.

    Args:
        argv (Sequence[str] | None): Optional list of argument strings to
            parse instead of ``sys.argv[1:]``. Primarily useful for tests.

    Returns:
        int: Process exit code. 0 on success, 1 on errors, 2 when at least
        one input was not a recognizable record format.
    """
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    try:
        return _dispatch(args)
    except Exception as exc:  # noqa: BLE001
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
