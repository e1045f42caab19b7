# __init__.py
# SPDX-License-Identifier: MIT
"""
Top-level package exports for :mod:`rowmend`.

rowmend repairs large tab-separated files whose logical records were split
by newlines or tabs embedded in free-text fields. Each file goes through
two streaming passes:

- **Discovery** (:func:`discover_canonical_width`) finds a recurring anchor
  field triple and infers the canonical number of delimiters per record
  from the distances between consecutive anchors.
- **Reconstruction** (:func:`reconstruct`) re-joins physical lines into
  logical records, splicing a placeholder token where a newline was lost,
  repairs small column drift, and routes what it cannot repair to a reject
  stream.

Public surface and stability
----------------------------
The symbols listed in :data:`PRIMARY_API` are the recommended public surface
and are exported via :data:`__all__`. In general, callers should:

- Build a configuration via :class:`RowmendConfig` or load one from
  TOML/JSON with :func:`load_config_from_path`.
- Run an orchestration helper such as :func:`preprocess`,
  :func:`preprocess_file`, or :func:`preprocess_folder`.
- Inspect the returned counters; rejects are a data-quality signal, not a
  failure.

The placeholder splice is lossy: the original line break cannot be told
apart from a literal ``\\n`` already present in the data.

Examples:
    Single file::

        >>> from rowmend import preprocess_file
        >>> stats = preprocess_file("raw/events.tsv.gz", "clean/events.tsv.gz")

    Config-driven run::

        >>> from rowmend import load_config_from_path, preprocess
        >>> result = preprocess(load_config_from_path("rowmend.toml"))
"""


from __future__ import annotations

# ---------------------------------------------------------------------------
# Package version
# ---------------------------------------------------------------------------
try:
    from importlib.metadata import version as _pkg_version

    __version__ = _pkg_version("rowmend")
except Exception:  # PackageNotFoundError or runtime env oddities
    __version__ = "0.0.0+unknown"


# ---------------------------------------------------------------------------
# Primary public API (stable; exported via __all__)
# ---------------------------------------------------------------------------
from .cli.runner import (
    discover,
    preprocess,
    preprocess_file,
    preprocess_files,
    preprocess_folder,
    run_engine,
)

# ---------------------------------------------------------------------------
# Advanced / expert API (imported for convenience; not exported via __all__)
# ---------------------------------------------------------------------------
from .core.accumulator import AccumulatorState, PendingRecord, RecordAccumulator
from .core.anchors import AnchorPattern
from .core.config import (
    AnchorConfig,
    DiagnosticsConfig,
    LoggingConfig,
    PipelineConfig,
    ReconstructConfig,
    RowmendConfig,
    SinkConfig,
    SourceConfig,
    load_config_from_path,
)
from .core.diagnostics import RejectIndexWriter
from .core.discovery import DiscoveryResult, discover_canonical_width, format_top_deltas
from .core.errors import ConfigError, FormatUnrecognizedError, RowmendError
from .core.log import configure_logging, get_logger, temp_level
from .core.pipeline import FileResult, PreprocessEngine, RunResult, discover_file, process_file
from .core.policy import BoundaryPolicy, RecordKind, Verdict, classify_record
from .core.reconstruct import ReconstructionStats, RecordOutcome, iter_reconstructed, reconstruct
from .core.stats_aggregate import merge_file_stats
from .core.width_cache import WidthCache
from .sinks.sinks import GzipLineSink, ListSink, TextLineSink, make_line_sink
from .sources.fs import expand_inputs, open_text_lines

# ---------------------------------------------------------------------------
# Stable export list
# ---------------------------------------------------------------------------
PRIMARY_API = [
    "__version__",
    "RowmendConfig",
    "load_config_from_path",
    "AnchorPattern",
    "discover_canonical_width",
    "DiscoveryResult",
    "reconstruct",
    "iter_reconstructed",
    "ReconstructionStats",
    "classify_record",
    "RecordKind",
    "preprocess",
    "preprocess_file",
    "preprocess_files",
    "preprocess_folder",
    "discover",
    "run_engine",
    "PreprocessEngine",
    "RunResult",
    "FileResult",
    "FormatUnrecognizedError",
    "RowmendError",
    "ConfigError",
    "merge_file_stats",
]

# Export the stable surface area only.
__all__ = list(PRIMARY_API)
