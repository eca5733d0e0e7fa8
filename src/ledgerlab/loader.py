"""
Concurrent source loading.

Every configured source is read and parsed in its own worker; there is no
shared mutable state between workers. Results are registered in configured
order whatever the completion order.
"""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field

from .config import LedgerConfig, SourceConfig
from .core.aggregator import build_aggregates
from .core.exceptions import SourceLoadError
from .core.model import Model
from .core.parser import parse_source
from .core.sources import SourceSet

logger = logging.getLogger(__name__)

__all__ = ["LoadReport", "LoadedSource", "load_source", "load_sources"]


@dataclass(slots=True)
class LoadedSource:
    """One successfully loaded source plus parse statistics."""

    config: SourceConfig
    model: Model
    rows: int
    skipped: int = 0


@dataclass(slots=True)
class LoadReport:
    """
    Outcome of :func:`load_sources`.

    Attributes:
        sources: Successfully loaded models, configured order
        failures: Source id -> error, configured order
        loaded: Per-source statistics of the successful loads
    """

    sources: SourceSet
    failures: dict[str, SourceLoadError] = field(default_factory=dict)
    loaded: dict[str, LoadedSource] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failures

    def raise_for_failures(self) -> None:
        """Raise the first failure (configured order), if any."""
        for error in self.failures.values():
            raise error


def load_source(entry: SourceConfig, *, detail_limit: int) -> LoadedSource:
    """
    Read, parse and aggregate one source.

    Raises:
        SourceLoadError: If the file cannot be read or is structurally invalid
    """
    try:
        text = entry.path.read_text(encoding="utf-8")
        parsed = parse_source(text, entry.delimiter)
        model = build_aggregates(
            parsed.records, entry.id, detail_limit=detail_limit
        )
    except Exception as exc:
        raise SourceLoadError(entry.id, str(exc), path=str(entry.path)) from exc
    return LoadedSource(
        config=entry, model=model, rows=len(parsed.records), skipped=parsed.skipped
    )


def load_sources(config: LedgerConfig, max_workers: int | None = None) -> LoadReport:
    """
    Load every configured source concurrently.

    A single configured source that fails is fatal and its
    :class:`SourceLoadError` is raised. With several sources, failures are
    returned in the report and the caller decides how to proceed.
    """
    entries = list(config.sources)
    workers = max_workers or min(len(entries), os.cpu_count() or 1) or 1

    results: dict[str, LoadedSource] = {}
    errors: dict[str, SourceLoadError] = {}
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {
            executor.submit(load_source, entry, detail_limit=config.detail_limit): entry
            for entry in entries
        }
        for future in as_completed(futures):
            entry = futures[future]
            try:
                loaded = future.result()
            except SourceLoadError as exc:
                logger.warning("%s", exc)
                errors[entry.id] = exc
                continue
            logger.info(
                "Loaded source %s: %d row(s), %d bar(s)",
                entry.id,
                loaded.rows,
                len(loaded.model.bars),
            )
            results[entry.id] = loaded

    if len(entries) == 1 and errors:
        raise errors[entries[0].id]

    sources = SourceSet()
    report = LoadReport(sources=sources)
    for entry in entries:
        if entry.id in results:
            sources.add(entry.id, results[entry.id].model, label=entry.label)
            report.loaded[entry.id] = results[entry.id]
        else:
            report.failures[entry.id] = errors[entry.id]
    return report
