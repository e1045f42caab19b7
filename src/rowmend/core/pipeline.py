# pipeline.py
# SPDX-License-Identifier: MIT
"""Per-file processing and the file-set engine.

:func:`process_file` runs discovery (unless a width is supplied or cached)
and then reconstruction for one input. :class:`PreprocessEngine` fans a set
of inputs out over a bounded pool; each worker owns its own streams,
accumulator, and counters.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from .concurrency import resolve_executor_config, run_bounded
from .config import RowmendConfig
from .diagnostics import RejectIndexWriter
from .discovery import DiscoveryResult, discover_canonical_width, format_top_deltas
from .errors import FormatUnrecognizedError
from .interfaces import InputFile, LineSink, OutputPaths
from .log import get_logger
from .naming import check_no_overlap, paths_for_output, resolve_output_paths
from .reconstruct import ReconstructionStats, reconstruct
from .stats_aggregate import merge_file_stats
from .width_cache import WidthCache, cache_key_for
from ..sinks.sinks import TextLineSink, make_line_sink
from ..sources.fs import expand_inputs, open_text_lines

log = get_logger(__name__)

__all__ = [
    "FileResult",
    "RunResult",
    "FileJob",
    "PreprocessEngine",
    "discover_file",
    "process_file",
    "run_file_job",
]

STATUS_OK = "ok"
STATUS_UNRECOGNIZED = "unrecognized"
STATUS_FAILED = "failed"


@dataclass(slots=True)
class FileResult:
    """Outcome of preprocessing one input file.

    Attributes:
        input (str): Input path.
        output (str | None): Accepted output path (None when nothing was
            written).
        rejects (str | None): Reject file path, when written.
        status (str): ``"ok"``, ``"unrecognized"``, or ``"failed"``.
        canonical_width (int | None): Width used for reconstruction.
        width_source (str | None): ``"override"``, ``"cache"``, or
            ``"discovered"``.
        stats (ReconstructionStats | None): Reconstruction counters.
        discovery (DiscoveryResult | None): Discovery diagnostics, when
            discovery ran.
        error (str | None): Error message for non-ok statuses.
        cache_key (str | None): Width cache key, when caching is enabled.
        reject_index (str | None): Reject index sidecar path.
        index (int): Position of the input in the run.
        elapsed_s (float): Wall time spent on the file.
    """
    input: str
    output: Optional[str] = None
    rejects: Optional[str] = None
    status: str = STATUS_OK
    canonical_width: Optional[int] = None
    width_source: Optional[str] = None
    stats: Optional[ReconstructionStats] = None
    discovery: Optional[DiscoveryResult] = None
    error: Optional[str] = None
    cache_key: Optional[str] = None
    reject_index: Optional[str] = None
    index: int = 0
    elapsed_s: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK

    @property
    def records(self) -> int:
        return self.stats.records if self.stats else 0

    @property
    def accepted(self) -> int:
        return self.stats.accepted if self.stats else 0

    @property
    def rejected(self) -> int:
        return self.stats.rejected if self.stats else 0

    def as_dict(self, *, include_histogram: bool = False) -> dict[str, Any]:
        data: dict[str, Any] = {
            "input": self.input,
            "output": self.output,
            "rejects": self.rejects,
            "status": self.status,
            "canonical_width": self.canonical_width,
            "width_source": self.width_source,
            "elapsed_s": round(self.elapsed_s, 3),
        }
        if self.stats is not None:
            stats = self.stats.as_dict()
            stats.pop("canonical_width", None)
            data.update(stats)
        if self.reject_index:
            data["reject_index"] = self.reject_index
        if self.error:
            data["error"] = self.error
        if include_histogram and self.discovery is not None:
            data["discovery"] = self.discovery.as_dict()
        return data


@dataclass(slots=True)
class RunResult:
    """Per-file results in input order plus aggregated totals."""

    files: list[FileResult] = field(default_factory=list)

    @property
    def totals(self) -> dict[str, Any]:
        return merge_file_stats([r.as_dict() for r in self.files])

    @property
    def has_unrecognized(self) -> bool:
        return any(r.status == STATUS_UNRECOGNIZED for r in self.files)

    @property
    def has_failures(self) -> bool:
        return any(r.status == STATUS_FAILED for r in self.files)

    def as_dict(self, *, include_histogram: bool = False) -> dict[str, Any]:
        return {
            "files": [r.as_dict(include_histogram=include_histogram) for r in self.files],
            "totals": self.totals,
        }


def discover_file(path: str | Path, cfg: RowmendConfig | None = None) -> DiscoveryResult:
    """Run discovery over one input file.

    Raises:
        FormatUnrecognizedError: If fewer than two anchors are found.
        OSError: On read failures.
    """
    cfg = cfg or RowmendConfig()
    src = cfg.sources
    with open_text_lines(path, encoding=src.encoding, errors=src.errors, auto_gunzip=src.auto_gunzip) as lines:
        return discover_canonical_width(
            lines,
            cfg.anchor.to_pattern(),
            delimiter=cfg.reconstruct.delimiter,
            source=str(path),
        )


def _resolve_width(
    path: Path,
    cfg: RowmendConfig,
    *,
    canonical_width: int | None,
    cached_widths: Mapping[str, int] | None,
) -> tuple[int, str, Optional[DiscoveryResult], Optional[str]]:
    explicit = canonical_width if canonical_width is not None else cfg.reconstruct.canonical_width
    if explicit is not None:
        return int(explicit), "override", None, None

    key: Optional[str] = None
    if cached_widths is not None:
        key = cache_key_for(path, cfg.anchor.to_pattern())
        cached = cached_widths.get(key)
        if cached:
            log.debug("Using cached canonical width %d for %s", cached, path)
            return int(cached), "cache", None, key

    result = discover_file(path, cfg)
    diag = cfg.diagnostics
    level = logging.INFO if diag.print_stats else logging.DEBUG
    log.log(
        level,
        "Discovered canonical width %d for %s (mode of anchor deltas, anchors=%d)",
        result.canonical_width,
        path,
        result.anchors,
    )
    if diag.top_deltas:
        log.log(level, "Top deltas for %s: %s", path, format_top_deltas(result.histogram, diag.top_deltas))
    return result.canonical_width, "discovered", result, key


def process_file(
    input_path: str | Path,
    output_path: str | Path | None = None,
    cfg: RowmendConfig | None = None,
    *,
    rejects_path: str | Path | None = None,
    canonical_width: int | None = None,
    cached_widths: Mapping[str, int] | None = None,
    outputs: OutputPaths | None = None,
    index: int = 0,
) -> FileResult:
    """Discover (if needed) and reconstruct one file.

    Args:
        input_path (str | Path): Input file (plain or gzip).
        output_path (str | Path | None): Accepted output path; derived
            from ``cfg.sinks.output_dir`` when omitted.
        cfg (RowmendConfig | None): Run configuration.
        rejects_path (str | Path | None): Explicit reject file path.
        canonical_width (int | None): Width override; skips discovery.
        cached_widths (Mapping[str, int] | None): Read-only width cache
            snapshot; None disables cache lookups.
        outputs (OutputPaths | None): Pre-resolved destinations; takes
            precedence over ``output_path``/``rejects_path``.
        index (int): Position of the file in a multi-file run.

    Returns:
        FileResult: Status, paths, and counters.

    Raises:
        FormatUnrecognizedError: If discovery finds fewer than two anchors.
            No output is created in that case.
        OSError: On read or write failures; partial outputs are removed.
    """
    cfg = cfg or RowmendConfig()
    started = time.perf_counter()
    src_path = Path(input_path)

    if outputs is None:
        if output_path is not None:
            outputs = paths_for_output(
                Path(output_path),
                cfg.sinks,
                diagnostics=cfg.diagnostics,
                rejected=Path(rejects_path) if rejects_path is not None else None,
            )
        else:
            outputs = resolve_output_paths(src_path, cfg.sinks, diagnostics=cfg.diagnostics)
    check_no_overlap([src_path], outputs)

    width, width_source, discovery, key = _resolve_width(
        src_path, cfg, canonical_width=canonical_width, cached_widths=cached_widths
    )

    encoding = cfg.sources.encoding
    accepted_sink = make_line_sink(outputs.accepted, encoding=encoding)
    rejected_sink: Optional[LineSink] = (
        TextLineSink(outputs.rejected, encoding=encoding) if outputs.rejected is not None else None
    )
    index_writer = (
        RejectIndexWriter(outputs.reject_index, fmt=cfg.diagnostics.index_format)
        if outputs.reject_index is not None
        else None
    )
    opened: list[Any] = []
    try:
        for sink in (accepted_sink, rejected_sink, index_writer):
            if sink is not None:
                sink.open()
                opened.append(sink)
        src = cfg.sources
        with open_text_lines(
            src_path, encoding=src.encoding, errors=src.errors, auto_gunzip=src.auto_gunzip
        ) as lines:
            stats = reconstruct(
                lines,
                width,
                accepted_sink,
                rejected_sink,
                cfg.reconstruct,
                on_reject=index_writer,
                source=str(src_path),
            )
    except BaseException:
        for sink in opened:
            sink.abort()
        raise
    for pos, sink in enumerate(opened):
        try:
            sink.close()
        except BaseException:
            for pending in opened[pos:]:
                pending.abort()
            raise

    elapsed = time.perf_counter() - started
    log.info(
        "Preprocessed %s: %d/%d records accepted, %d rejected (canonical width %d, %s)",
        src_path, stats.accepted, stats.records, stats.rejected, width, width_source)
    if stats.runaway:
        log.warning(
            "Guardrail tripped %d time(s) in %s; the canonical width or anchor pattern may be misconfigured.",
            stats.runaway,
            src_path,
        )
    return FileResult(
        input=str(src_path),
        output=str(outputs.accepted),
        rejects=str(outputs.rejected) if outputs.rejected is not None else None,
        status=STATUS_OK,
        canonical_width=width,
        width_source=width_source,
        stats=stats,
        discovery=discovery,
        cache_key=key,
        reject_index=str(outputs.reject_index) if outputs.reject_index is not None else None,
        index=index,
        elapsed_s=elapsed,
    )


@dataclass(frozen=True)
class FileJob:
    """Picklable unit of work for one input file."""

    item: InputFile
    outputs: OutputPaths
    cfg: RowmendConfig
    cached_widths: Optional[Mapping[str, int]] = None


def run_file_job(job: FileJob) -> FileResult:
    """Worker entry point. Unrecognized formats become a result, not an error."""
    try:
        return process_file(
            job.item.path,
            cfg=job.cfg,
            cached_widths=job.cached_widths,
            outputs=job.outputs,
            index=job.item.index,
        )
    except FormatUnrecognizedError as exc:
        log.error("Skipping %s: %s", job.item.path, exc)
        return FileResult(
            input=str(job.item.path),
            status=STATUS_UNRECOGNIZED,
            error=str(exc),
            index=job.item.index,
        )


class PreprocessEngine:
    """Runs discovery + reconstruction over a set of input files.

    Attributes:
        cfg (RowmendConfig): Run configuration (validated on run).
        inputs (list[InputFile] | None): Explicit inputs; expanded from
            ``cfg.sources.inputs`` when None.
    """

    def __init__(self, cfg: RowmendConfig, inputs: Sequence[InputFile] | None = None) -> None:
        self.cfg = cfg
        self.inputs = list(inputs) if inputs is not None else None

    def _plan(self, inputs: Sequence[InputFile]) -> list[FileJob]:
        cfg = self.cfg
        all_inputs = [item.path for item in inputs]
        seen_outputs: dict[Path, Path] = {}
        planned: list[tuple[InputFile, OutputPaths]] = []
        for item in inputs:
            outputs = resolve_output_paths(item.path, cfg.sinks, diagnostics=cfg.diagnostics)
            check_no_overlap(all_inputs, outputs)
            for target in (outputs.accepted, outputs.rejected):
                if target is None:
                    continue
                resolved = target.resolve()
                if resolved in seen_outputs:
                    raise ValueError(
                        f"Inputs {seen_outputs[resolved]} and {item.path} both map to output {target}."
                    )
                seen_outputs[resolved] = item.path
            planned.append((item, outputs))
        return [FileJob(item=item, outputs=outputs, cfg=cfg) for item, outputs in planned]

    def run(self) -> RunResult:
        """Process every input and return results in input order.

        Raises:
            OSError: The first I/O error, when ``pipeline.fail_fast`` is set.
            ValueError: On invalid configuration or colliding outputs.
        """
        cfg = self.cfg
        cfg.validate()
        inputs = self.inputs if self.inputs is not None else expand_inputs(cfg.sources.inputs)
        if not inputs:
            log.warning("No input files to preprocess.")
            return RunResult()
        jobs = self._plan(inputs)

        cache: Optional[WidthCache] = None
        if cfg.sources.width_cache_path and cfg.reconstruct.canonical_width is None:
            cache = WidthCache.load(cfg.sources.width_cache_path)
            snapshot = cache.snapshot()
            jobs = [FileJob(item=j.item, outputs=j.outputs, cfg=j.cfg, cached_widths=snapshot) for j in jobs]

        exec_cfg = resolve_executor_config(cfg.pipeline, n_items=len(jobs))
        log.info(
            "Preprocessing %d file(s) with %d %s worker(s)",
            len(jobs),
            exec_cfg.max_workers,
            exec_cfg.kind,
        )
        failures: list[FileResult] = []

        def _on_error(job: FileJob, exc: BaseException) -> None:
            log.error("Failed to preprocess %s: %s", job.item.path, exc)
            failures.append(
                FileResult(
                    input=str(job.item.path),
                    status=STATUS_FAILED,
                    error=f"{type(exc).__name__}: {exc}",
                    index=job.item.index,
                )
            )

        results = run_bounded(
            jobs,
            run_file_job,
            cfg=exec_cfg,
            fail_fast=cfg.pipeline.fail_fast,
            on_error=_on_error,
        )
        ordered = sorted([*results, *failures], key=lambda r: r.index)

        if cache is not None:
            for result in ordered:
                if result.width_source == "discovered" and result.cache_key and result.canonical_width:
                    cache.put(result.cache_key, result.canonical_width)
            cache.save()

        run = RunResult(files=ordered)
        totals = run.totals
        log.info(
            "Preprocessed %d file(s): %d/%d records accepted, %d rejected, %d unrecognized file(s)",
            totals["files"],
            totals["accepted"],
            totals["records"],
            totals["rejected"],
            totals["unrecognized_files"],
        )
        return run
