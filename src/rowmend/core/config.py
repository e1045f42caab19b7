# config.py
# SPDX-License-Identifier: MIT
"""Configuration models and helpers for rowmend runs.

Declarative dataclasses cover the anchor pattern, reconstruction policy,
input/output layout, worker pool, diagnostics, and logging. Configs can be
loaded from and written to JSON or TOML.
"""
from __future__ import annotations

import json
import types
try:  # pragma: no cover - optional dependency
    import tomllib  # Python 3.11+
except ModuleNotFoundError:  # pragma: no cover
    try:
        import tomli as tomllib  # type: ignore[assignment]
    except Exception:  # pragma: no cover
        tomllib = None  # type: ignore[assignment]
from collections.abc import Sequence as ABCSequence
from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar, Union, get_args, get_origin, get_type_hints

from .anchors import DEFAULT_ANCHOR_PATTERN, DEFAULT_EXPECTED_OFFSET, AnchorPattern
from .errors import ConfigError
from .log import DEFAULT_FORMAT, PACKAGE_LOGGER_NAME, configure_logging

DEFAULT_PLACEHOLDER = "\\n"  # two characters: backslash, "n"
DEFAULT_MAX_RECORD_CHARS = 64 * 1024 * 1024


# ---------------------------------------------------------------------------
# Engine configs
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class AnchorConfig:
    """Anchor fingerprint used by discovery.

    Attributes:
        pattern (str): Regular expression matching one anchor occurrence.
            The first capturing group marks the anchor position.
        expected_offset (int | None): Documented delimiter offset of the
            anchor from the start of a record. Used only as a diagnostic
            hint.
    """
    pattern: str = DEFAULT_ANCHOR_PATTERN
    expected_offset: Optional[int] = DEFAULT_EXPECTED_OFFSET

    def to_pattern(self) -> AnchorPattern:
        return AnchorPattern(pattern=self.pattern, expected_offset=self.expected_offset)


@dataclass(slots=True)
class ReconstructConfig:
    """Boundary, repair, and guardrail settings for reconstruction.

    Attributes:
        canonical_width (int | None): Delimiters per well-formed record.
            When set, discovery is skipped.
        delimiter (str): Single field delimiter character.
        placeholder (str): Token spliced in where a physical newline split
            a record. The splice is lossy by design.
        padding_tolerance (int): Maximum column drift (either direction)
            that is still repaired by padding or truncation.
        fragment_min_delimiters (int): Rejected records below this
            delimiter count are classified as fragments.
        fragment_ratio (float): Rejected records below
            ``fragment_ratio * canonical_width`` delimiters are fragments.
        max_record_chars (int): Accumulator length that force-rejects the
            in-flight record.
        max_delimiter_multiplier (int): Accumulated delimiters above
            ``canonical_width * max_delimiter_multiplier`` force-reject
            the in-flight record.
    """
    canonical_width: Optional[int] = None
    delimiter: str = "\t"
    placeholder: str = DEFAULT_PLACEHOLDER
    padding_tolerance: int = 3
    fragment_min_delimiters: int = 10
    fragment_ratio: float = 0.6
    max_record_chars: int = DEFAULT_MAX_RECORD_CHARS
    max_delimiter_multiplier: int = 8

    def validate(self) -> None:
        if self.canonical_width is not None and int(self.canonical_width) < 1:
            raise ConfigError("reconstruct.canonical_width must be >= 1 when set.")
        if len(self.delimiter) != 1:
            raise ConfigError("reconstruct.delimiter must be a single character.")
        if self.delimiter in self.placeholder or "\n" in self.placeholder:
            raise ConfigError("reconstruct.placeholder may not contain the delimiter or a newline.")
        if self.padding_tolerance < 0:
            raise ConfigError("reconstruct.padding_tolerance must be >= 0.")
        if self.fragment_min_delimiters < 0:
            raise ConfigError("reconstruct.fragment_min_delimiters must be >= 0.")
        if not 0.0 <= float(self.fragment_ratio) <= 1.0:
            raise ConfigError("reconstruct.fragment_ratio must be between 0.0 and 1.0.")
        if self.max_record_chars < 1:
            raise ConfigError("reconstruct.max_record_chars must be >= 1.")
        if self.max_delimiter_multiplier < 1:
            raise ConfigError("reconstruct.max_delimiter_multiplier must be >= 1.")


# ---------------------------------------------------------------------------
# Inputs / outputs
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class SourceConfig:
    """Where and how input files are read.

    Attributes:
        inputs (list[str]): Paths or glob patterns of input files.
        encoding (str): Text encoding of the inputs.
        errors (str): Codec error handler passed to the decoder.
        auto_gunzip (bool): Transparently decompress gzip inputs (by name
            or magic bytes).
        width_cache_path (str | None): JSON file caching discovered
            canonical widths across runs.
    """
    inputs: List[str] = field(default_factory=list)
    encoding: str = "utf-8"
    errors: str = "strict"
    auto_gunzip: bool = True
    width_cache_path: Optional[str] = None


@dataclass(slots=True)
class SinkConfig:
    """Where accepted and rejected records are written.

    Attributes:
        output_dir (Path | None): Directory for accepted output files.
        rejects_dir (Path | None): Directory for reject files; defaults
            to ``output_dir``.
        write_rejects (bool): Whether reject files are written at all.
            Rejected records are still counted when disabled.
        compress_output (bool | None): Force gzip on (True) or off
            (False) for accepted outputs; None follows the input name.
        rejects_suffix (str): Inserted before the extension of reject
            file names.
    """
    output_dir: Optional[Path] = None
    rejects_dir: Optional[Path] = None
    write_rejects: bool = True
    compress_output: Optional[bool] = None
    rejects_suffix: str = "-rejected"


@dataclass(slots=True)
class PipelineConfig:
    """
    Controls file-level concurrency.

    max_workers = 0 → one worker per file, capped at os.cpu_count()
    executor_kind ∈ {"thread", "process"}
    fail_fast = True → the first I/O error aborts the run and propagates;
      False records the file as failed and keeps going.
    """
    max_workers: int = 1
    executor_kind: str = "thread"
    fail_fast: bool = True


@dataclass(slots=True)
class DiagnosticsConfig:
    """Optional diagnostics emitted alongside each run.

    Attributes:
        print_stats (bool): Log discovery histograms and per-file stats at
            INFO instead of DEBUG.
        top_deltas (int): Number of histogram entries shown in logs.
        reject_index (bool): Write a per-file sidecar indexing rejects.
        index_format (str): ``"csv"`` or ``"parquet"`` (needs pyarrow).
    """
    print_stats: bool = False
    top_deltas: int = 5
    reject_index: bool = False
    index_format: str = "csv"


@dataclass(slots=True)
class LoggingConfig:
    """Controls the package logger; set propagate/logger_name to integrate
    with host apps.
    """
    level: int | str = "INFO"
    propagate: bool = False
    fmt: Optional[str] = DEFAULT_FORMAT
    log_file: Optional[str] = None
    logger_name: str = PACKAGE_LOGGER_NAME

    def apply(self) -> None:
        """Apply this logging configuration to the package logger."""
        configure_logging(
            level=self.level,
            propagate=self.propagate,
            fmt=self.fmt,
            log_file=self.log_file,
            logger_name=self.logger_name or PACKAGE_LOGGER_NAME,
        )


# ---------------------------------------------------------------------------
# Master config
# ---------------------------------------------------------------------------

T = TypeVar("T")


@dataclass(slots=True)
class RowmendConfig:
    """Declarative settings for a rowmend run.

    Only serializable knobs live here; sinks, executors, and caches are
    built per run by the pipeline and runner modules.
    """
    anchor: AnchorConfig = field(default_factory=AnchorConfig)
    reconstruct: ReconstructConfig = field(default_factory=ReconstructConfig)
    sources: SourceConfig = field(default_factory=SourceConfig)
    sinks: SinkConfig = field(default_factory=SinkConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    diagnostics: DiagnosticsConfig = field(default_factory=DiagnosticsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def validate(self) -> None:
        """Validate the configuration for internal consistency.

        Normalizes ``pipeline.executor_kind`` and
        ``diagnostics.index_format`` to lowercase.

        Raises:
            ConfigError: If any value is out of range.
        """
        self.reconstruct.validate()
        self.anchor.to_pattern().compile()
        kind = (self.pipeline.executor_kind or "thread").strip().lower()
        if kind not in {"thread", "process"}:
            raise ConfigError(
                f"pipeline.executor_kind must be 'thread' or 'process'; got {self.pipeline.executor_kind!r}."
            )
        self.pipeline.executor_kind = kind
        if self.pipeline.max_workers < 0:
            raise ConfigError("pipeline.max_workers must be >= 0.")
        fmt = (self.diagnostics.index_format or "csv").strip().lower()
        if fmt not in {"csv", "parquet"}:
            raise ConfigError("diagnostics.index_format must be 'csv' or 'parquet'.")
        self.diagnostics.index_format = fmt
        if self.diagnostics.top_deltas < 0:
            raise ConfigError("diagnostics.top_deltas must be >= 0.")

    # -------------------------
    # Serialization helpers
    # -------------------------
    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON-serializable representation (None fields skipped)."""
        return _dataclass_to_dict(self)

    def to_json(self, path: Path | str, *, indent: int = 2) -> str:
        """Serialize the configuration to JSON at ``path``; returns the path."""
        target = Path(path)
        target.write_text(json.dumps(self.to_dict(), indent=indent, sort_keys=True), encoding="utf-8")
        return str(target)

    @classmethod
    def from_dict(cls: Type[T], data: Mapping[str, Any]) -> T:
        """Instantiate a config from a mapping.

        Raises:
            ConfigError: If the mapping holds keys no config section knows.
        """
        return _dataclass_from_dict(cls, data)

    @classmethod
    def from_json(cls: Type[T], path: Path | str) -> T:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
        return cls.from_dict(payload)

    @classmethod
    def from_toml(cls: Type[T], path: Path | str) -> T:
        """
        Load a RowmendConfig from a TOML file.

        The layout mirrors the dataclass: top-level tables [anchor],
        [reconstruct], [sources], [sinks], [pipeline], [diagnostics], and
        [logging].
        """
        if tomllib is None:
            raise RuntimeError(
                "TOML support requires Python 3.11+ (tomllib) or installing the 'tomli' package."
            )
        data = tomllib.loads(Path(path).read_bytes().decode("utf-8"))
        if not isinstance(data, Mapping):
            raise TypeError(f"Top-level TOML document must be a mapping; got {type(data).__name__}.")
        return cls.from_dict(data)


def load_config_from_path(path: str | Path) -> RowmendConfig:
    """Load a RowmendConfig from a ``.toml`` or ``.json`` file.

    Raises:
        ValueError: If the file extension is not ``.toml`` or ``.json``.
    """
    p = Path(path)
    suffix = p.suffix.lower()
    if suffix == ".toml":
        return RowmendConfig.from_toml(p)
    if suffix == ".json":
        return RowmendConfig.from_json(p)
    raise ValueError(f"Unsupported config extension {p.suffix!r}; expected .toml or .json.")


def _dataclass_to_dict(obj: Any) -> Dict[str, Any]:
    result: Dict[str, Any] = {}
    for f in fields(obj):
        value = getattr(obj, f.name)
        if value is None:
            continue
        serialized = _serialize_value(value)
        if serialized is not None:
            result[f.name] = serialized
    return result


def _serialize_value(value: Any) -> Any:
    """Best-effort JSON-friendly coercion; drops values that cannot be serialized."""
    if value is None:
        return None
    if isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, (list, tuple, set)):
        return [_serialize_value(v) for v in value]
    if isinstance(value, dict):
        out: Dict[str, Any] = {}
        for k, v in value.items():
            serialized = _serialize_value(v)
            if serialized is not None:
                out[str(k)] = serialized
        return out
    if is_dataclass(value):
        return _dataclass_to_dict(value)
    return None


def _dataclass_from_dict(cls: Type[T], data: Mapping[str, Any] | None) -> T:
    """Instantiate dataclass ``cls`` from ``data``, recursing into sections."""
    if data is None:
        return cls()  # type: ignore[call-arg]
    if not isinstance(data, Mapping):
        raise ConfigError(f"Expected a table for {cls.__name__}; got {type(data).__name__}.")
    known = {f.name for f in fields(cls)}
    unknown = sorted(str(k) for k in data.keys() if k not in known)
    if unknown:
        raise ConfigError(
            f"Unsupported options for {cls.__name__}: {', '.join(unknown)}. "
            f"Allowed keys: {', '.join(sorted(known))}"
        )
    type_hints = get_type_hints(cls)
    kwargs: Dict[str, Any] = {}
    for f in fields(cls):
        if f.name not in data:
            continue
        kwargs[f.name] = _coerce_value(type_hints.get(f.name, f.type), data[f.name])
    return cls(**kwargs)  # type: ignore[arg-type]


def _coerce_value(expected_type: Any, value: Any) -> Any:
    """Coerce ``value`` into the shape implied by ``expected_type``."""
    base_type = _strip_optional(expected_type)
    if value is None:
        return None
    if isinstance(base_type, type) and is_dataclass(base_type):
        return _dataclass_from_dict(base_type, value)
    origin = get_origin(base_type)
    if origin in (list, tuple, ABCSequence):
        args = get_args(base_type)
        inner = args[0] if args else Any
        if isinstance(value, str):
            value = [value]
        items = [_coerce_value(inner, v) for v in value]
        return tuple(items) if origin is tuple else list(items)
    if base_type is Path:
        return Path(value)
    if base_type in {str, int, float}:
        return base_type(value)
    if base_type is bool:
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes", "on"}
        return bool(value)
    return value


def _strip_optional(typ: Any) -> Any:
    """Return the single non-None member of an Optional annotation."""
    origin = get_origin(typ)
    if origin is Union or origin is types.UnionType:
        args = [arg for arg in get_args(typ) if arg is not type(None)]
        if len(args) == 1:
            return _strip_optional(args[0])
    return typ


__all__ = [
    "AnchorConfig",
    "ReconstructConfig",
    "SourceConfig",
    "SinkConfig",
    "PipelineConfig",
    "DiagnosticsConfig",
    "LoggingConfig",
    "RowmendConfig",
    "DEFAULT_PLACEHOLDER",
    "DEFAULT_MAX_RECORD_CHARS",
    "load_config_from_path",
]
