# naming.py
# SPDX-License-Identifier: MIT
"""Output and reject file naming."""

from __future__ import annotations

from pathlib import Path

from .config import DiagnosticsConfig, SinkConfig
from .interfaces import OutputPaths

__all__ = [
    "strip_gzip_suffix",
    "output_name_for",
    "reject_name_for",
    "resolve_output_paths",
    "paths_for_output",
    "check_no_overlap",
]

_GZIP_SUFFIXES = (".gz", ".gzip")


def strip_gzip_suffix(name: str) -> str:
    lower = name.lower()
    for suffix in _GZIP_SUFFIXES:
        if lower.endswith(suffix):
            return name[: -len(suffix)]
    return name


def output_name_for(input_name: str, *, compress: bool | None = None) -> str:
    """Accepted output name for an input: same name, gzip per ``compress``.

    ``compress=None`` keeps the input name unchanged.
    """
    if compress is None:
        return input_name
    plain = strip_gzip_suffix(input_name)
    return f"{plain}.gz" if compress else plain


def reject_name_for(name: str, *, suffix: str = "-rejected") -> str:
    """Reject file name: ``events.tsv.gz`` -> ``events-rejected.tsv``.

    Reject files are never compressed so they can be inspected directly.
    """
    plain = strip_gzip_suffix(name)
    stem, dot, ext = plain.rpartition(".")
    if not dot or not stem:
        return f"{plain}{suffix}"
    return f"{stem}{suffix}.{ext}"


def resolve_output_paths(
    input_path: Path,
    sinks: SinkConfig,
    *,
    diagnostics: DiagnosticsConfig | None = None,
    output_dir: Path | None = None,
) -> OutputPaths:
    """Resolve accepted/rejected/sidecar paths for one input.

    Raises:
        ValueError: If no output directory is configured.
    """
    out_dir = output_dir or sinks.output_dir
    if out_dir is None:
        raise ValueError("An output directory is required (sinks.output_dir).")
    out_dir = Path(out_dir)
    accepted = out_dir / output_name_for(input_path.name, compress=sinks.compress_output)
    return paths_for_output(accepted, sinks, diagnostics=diagnostics)


def paths_for_output(
    accepted: Path,
    sinks: SinkConfig,
    *,
    diagnostics: DiagnosticsConfig | None = None,
    rejected: Path | None = None,
) -> OutputPaths:
    """Derive reject and sidecar paths from an accepted output path."""
    if rejected is None and sinks.write_rejects:
        rejects_dir = Path(sinks.rejects_dir) if sinks.rejects_dir is not None else accepted.parent
        rejected = rejects_dir / reject_name_for(accepted.name, suffix=sinks.rejects_suffix)
    index_path = None
    if diagnostics is not None and diagnostics.reject_index:
        base = rejected if rejected is not None else accepted.parent / reject_name_for(
            accepted.name, suffix=sinks.rejects_suffix
        )
        index_path = base.with_name(f"{base.name}.index.{diagnostics.index_format}")
    return OutputPaths(accepted=accepted, rejected=rejected, reject_index=index_path)


def check_no_overlap(inputs: list[Path], outputs: OutputPaths) -> None:
    """Refuse to write an output on top of any input file.

    Raises:
        ValueError: If an output path resolves to an input path.
    """
    resolved_inputs = {p.resolve() for p in inputs}
    for target in (outputs.accepted, outputs.rejected, outputs.reject_index):
        if target is not None and target.resolve() in resolved_inputs:
            raise ValueError(f"Output {target} would overwrite an input file.")

