# runner.py
# SPDX-License-Identifier: MIT

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any

from ..core.config import RowmendConfig
from ..core.discovery import format_top_deltas
from ..core.errors import FormatUnrecognizedError
from ..core.log import get_logger
from ..core.pipeline import PreprocessEngine, RunResult, discover_file, process_file
from ..sources.fs import expand_inputs

log = get_logger(__name__)


def run_engine(engine: PreprocessEngine) -> RunResult:
    """Run a prepared engine and log the totals."""
    result = engine.run()
    log.debug("preprocess complete: %s", result.totals)
    return result


# ---------- One generic entry point ----------
def preprocess(config: RowmendConfig | PreprocessEngine) -> RunResult:
    """Preprocess every input named by a config, or run a prepared engine.

    This is the main programmatic entry point. Inputs come from
    ``config.sources.inputs`` (paths or glob patterns) and outputs go to
    ``config.sinks.output_dir`` under the input file names.

    Args:
        config (RowmendConfig | PreprocessEngine): Declarative
            configuration, or an engine built from one.

    Returns:
        RunResult: Per-file results in input order plus totals.
    """
    if isinstance(config, PreprocessEngine):
        return run_engine(config)
    return run_engine(PreprocessEngine(config))


def _clone_base_config(base_config: RowmendConfig | None) -> RowmendConfig:
    """Deep-copy a base configuration or build a fresh default one."""
    return copy.deepcopy(base_config) if base_config is not None else RowmendConfig()


def preprocess_file(
    input_path: str | Path,
    output_path: str | Path,
    *,
    config: RowmendConfig | None = None,
    rejects_path: str | Path | None = None,
    canonical_width: int | None = None,
) -> dict[str, Any]:
    """Preprocess a single file to an explicit output path.

    Args:
        input_path (str | Path): Input TSV, plain or gzip.
        output_path (str | Path): Accepted output; gzip when it ends in
            ``.gz``.
        config (RowmendConfig | None): Optional base configuration.
        rejects_path (str | Path | None): Reject file; derived from the
            output name when omitted.
        canonical_width (int | None): Skip discovery and use this width.

    Returns:
        dict[str, Any]: Flat per-file stats.

    Raises:
        FormatUnrecognizedError: If discovery fails; nothing is written.
    """
    cfg = _clone_base_config(config)
    cfg.validate()
    result = process_file(
        input_path,
        output_path,
        cfg,
        rejects_path=rejects_path,
        canonical_width=canonical_width,
    )
    return result.as_dict(include_histogram=cfg.diagnostics.print_stats)


def preprocess_files(
    inputs: list[str | Path],
    output_dir: str | Path,
    cfg: RowmendConfig | None = None,
    *,
    max_workers: int | None = None,
) -> RunResult:
    """Preprocess an explicit collection of input files into ``output_dir``.

    Args:
        inputs (list[str | Path]): Input paths or glob patterns.
        output_dir (str | Path): Destination directory for accepted output.
        cfg (RowmendConfig | None): Optional base configuration.
        max_workers (int | None): Concurrency cap; overrides
            ``cfg.pipeline.max_workers`` when given.

    Returns:
        RunResult: Per-file results in input order plus totals.

    Raises:
        OSError: The first I/O error, when ``pipeline.fail_fast`` is set.
    """
    run_cfg = _clone_base_config(cfg)
    run_cfg.sinks.output_dir = Path(output_dir)
    if max_workers is not None:
        run_cfg.pipeline.max_workers = int(max_workers)
    return run_engine(PreprocessEngine(run_cfg, expand_inputs(inputs)))


def make_folder_config(
    pattern: str,
    output_dir: str | Path,
    *,
    base_config: RowmendConfig | None = None,
    max_workers: int | None = None,
) -> RowmendConfig:
    """Build a config that preprocesses every file matching ``pattern``."""
    cfg = _clone_base_config(base_config)
    cfg.sources.inputs = [str(pattern)]
    cfg.sinks.output_dir = Path(output_dir)
    if max_workers is not None:
        cfg.pipeline.max_workers = int(max_workers)
    return cfg


def preprocess_folder(
    pattern: str,
    output_dir: str | Path,
    *,
    config: RowmendConfig | None = None,
    max_workers: int | None = None,
) -> RunResult:
    """Preprocess every file matching ``pattern`` into ``output_dir``.

    Unrecognized files are reported in the result and do not stop the run.
    """
    cfg = make_folder_config(pattern, output_dir, base_config=config, max_workers=max_workers)
    return preprocess(cfg)


def discover(paths: list[str], *, config: RowmendConfig | None = None) -> list[dict[str, Any]]:
    """Run discovery only over each input matching ``paths``.

    Files without enough anchors are reported with
    ``status="unrecognized"`` instead of stopping the scan.
    """
    cfg = _clone_base_config(config)
    cfg.validate()
    reports: list[dict[str, Any]] = []
    for item in expand_inputs(paths):
        try:
            result = discover_file(item.path, cfg)
        except FormatUnrecognizedError as exc:
            log.error("Skipping %s: %s", item.path, exc)
            reports.append({"input": str(item.path), "status": "unrecognized", "error": str(exc)})
            continue
        report: dict[str, Any] = {"input": str(item.path), "status": "ok", **result.as_dict()}
        if cfg.diagnostics.top_deltas:
            report["top_deltas"] = format_top_deltas(result.histogram, cfg.diagnostics.top_deltas)
        reports.append(report)
    return reports


__all__ = [
    "discover",
    "make_folder_config",
    "preprocess",
    "preprocess_file",
    "preprocess_files",
    "preprocess_folder",
    "run_engine",
]
