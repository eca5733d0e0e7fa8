"""Loading of ledger source configurations from YAML/JSON."""

from __future__ import annotations

import json
import logging
from copy import deepcopy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .core.aggregator import DEFAULT_DETAIL_LIMIT
from .core.errors import ConfigError

logger = logging.getLogger(__name__)

__all__ = ["LedgerConfig", "SourceConfig", "load_config", "parse_config"]

DEFAULT_DELIMITER = ";"
LEGACY_SOURCE_ID = "default"
LEGACY_SOURCE_LABEL = "Default"


@dataclass(slots=True)
class SourceConfig:
    """One configured source file."""

    id: str
    label: str
    path: Path
    delimiter: str = DEFAULT_DELIMITER


@dataclass(slots=True)
class LedgerConfig:
    """Structured representation of a ledger configuration."""

    sources: list[SourceConfig]
    delimiter: str = DEFAULT_DELIMITER
    detail_limit: int = DEFAULT_DETAIL_LIMIT
    origin: str = "<memory>"
    metadata: dict[str, Any] = field(default_factory=dict)

    def source(self, source_id: str) -> SourceConfig:
        for entry in self.sources:
            if entry.id == source_id:
                return entry
        raise KeyError(source_id)

    def source_label(self, source_id: str) -> str:
        """Configured label of a source, or the id itself."""
        for entry in self.sources:
            if entry.id == source_id:
                return entry.label
        return source_id

    def labels(self) -> dict[str, str]:
        return {entry.id: entry.label for entry in self.sources}


def load_config(
    source: str | Path | dict[str, Any], *, format: str | None = None
) -> LedgerConfig:
    """
    Load a configuration from a YAML/JSON file or an in-memory mapping.

    Relative source paths resolve against the configuration file's directory
    (the working directory for mappings).

    Raises:
        FileNotFoundError: If the configuration file does not exist
        ConfigError: If the configuration is malformed
    """
    mapping, label, base_dir = _read_source(source, format=format)
    config = parse_config(mapping, base_dir=base_dir, origin=label)
    logger.debug("Loaded config %s with %d source(s)", label, len(config.sources))
    return config


def parse_config(
    mapping: dict[str, Any], *, base_dir: Path | None = None, origin: str = "<mapping>"
) -> LedgerConfig:
    """Normalize a raw configuration mapping."""
    if not isinstance(mapping, dict):
        raise ConfigError(f"{origin}: configuration root must be a mapping")
    base_dir = base_dir or Path.cwd()

    delimiter = _coerce_delimiter(mapping.get("delimiter"), f"{origin}::delimiter")
    detail_limit = _coerce_limit(mapping.get("detail_limit"), f"{origin}::detail_limit")

    sources = _normalize_sources(mapping.get("sources"), delimiter, base_dir, origin)
    if not sources:
        legacy = mapping.get("csvPath", mapping.get("csv_path"))
        legacy_path = str(legacy or "").strip()
        if legacy_path:
            sources = [
                SourceConfig(
                    id=LEGACY_SOURCE_ID,
                    label=LEGACY_SOURCE_LABEL,
                    path=_resolve(legacy_path, base_dir),
                    delimiter=delimiter,
                )
            ]
    if not sources:
        raise ConfigError(f"{origin}: configuration must define at least one source")

    known = {"delimiter", "detail_limit", "sources", "csvPath", "csv_path"}
    metadata = {k: deepcopy(v) for k, v in mapping.items() if k not in known}
    return LedgerConfig(
        sources=sources,
        delimiter=delimiter,
        detail_limit=detail_limit,
        origin=origin,
        metadata=metadata,
    )


def _read_source(
    source: str | Path | dict[str, Any], *, format: str | None
) -> tuple[dict[str, Any], str, Path | None]:
    if isinstance(source, dict):
        return deepcopy(source), "<mapping>", None

    path = Path(source)
    if not path.exists():
        raise FileNotFoundError(path)

    fmt = (format or path.suffix.lstrip(".")).lower()
    text = path.read_text(encoding="utf-8")
    try:
        if fmt in {"yaml", "yml", ""}:
            data = yaml.safe_load(text)
        elif fmt == "json":
            data = json.loads(text)
        else:
            raise ConfigError(f"Unsupported config format '{fmt}' for {path}")
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ConfigError(f"{path}: cannot parse configuration: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Configuration root must be a mapping (source={path})")
    return data, str(path), path.parent


def _normalize_sources(
    raw: Any, delimiter: str, base_dir: Path, label: str
) -> list[SourceConfig]:
    if raw is None:
        return []
    entries = _ensure_list(raw, f"{label}::sources")

    sources: list[SourceConfig] = []
    seen: set[str] = set()
    for idx, entry in enumerate(entries):
        ctx = f"{label}::sources[{idx}]"
        data = _ensure_dict(entry, ctx)
        source_id = _coerce_text(data.get("id"), f"{ctx}.id") or f"src{idx}"
        path = _coerce_text(data.get("path"), f"{ctx}.path")
        if not path:
            logger.warning("%s: source '%s' has no path, ignored", ctx, source_id)
            continue
        if source_id in seen:
            raise ConfigError(f"{ctx}: duplicate source id '{source_id}'")
        seen.add(source_id)

        sources.append(
            SourceConfig(
                id=source_id,
                label=_coerce_text(data.get("label"), f"{ctx}.label") or source_id,
                path=_resolve(path, base_dir),
                delimiter=_coerce_delimiter(
                    data.get("delimiter"), f"{ctx}.delimiter", default=delimiter
                ),
            )
        )
    return sources


def _resolve(path: str, base_dir: Path) -> Path:
    p = Path(path).expanduser()
    return p if p.is_absolute() else base_dir / p


def _coerce_text(value: Any, ctx: str) -> str:
    if value is None:
        return ""
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise ConfigError(f"{ctx}: expected a string")
    return str(value).strip()


def _coerce_delimiter(
    value: Any, ctx: str, *, default: str = DEFAULT_DELIMITER
) -> str:
    if value is None:
        return default
    if not isinstance(value, str) or not value:
        raise ConfigError(f"{ctx}: expected a non-empty string")
    return value


def _coerce_limit(value: Any, ctx: str) -> int:
    if value is None:
        return DEFAULT_DETAIL_LIMIT
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{ctx}: expected an integer")
    if value < 1:
        raise ConfigError(f"{ctx}: must be >= 1")
    return value


def _ensure_dict(value: Any, ctx: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ConfigError(f"{ctx}: expected a mapping")
    return deepcopy(value)


def _ensure_list(value: Any, ctx: str) -> list[Any]:
    if not isinstance(value, list):
        raise ConfigError(f"{ctx}: expected a list")
    return list(value)
