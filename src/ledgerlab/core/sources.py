"""
Loaded per-source models and the rebuild token.
"""

from __future__ import annotations

from collections.abc import Iterator

from .errors import StructuralError
from .keys import clean_text
from .model import Model


class SourceSet:
    """
    Ordered collection of loaded per-source models.

    Every change to the raw data (``add``/``remove``) increments ``token``;
    merge caches bound to an older token are invalidated wholesale.
    """

    def __init__(self):
        self._models: dict[str, Model] = {}
        self._labels: dict[str, str] = {}
        self._token = 0

    @property
    def token(self) -> int:
        return self._token

    def add(self, source_id: str, model: Model, label: str | None = None) -> None:
        """Register (or replace) a source's model."""
        sid = clean_text(source_id)
        if not sid:
            raise StructuralError("source_id is required")
        if not isinstance(model, Model):
            raise StructuralError(f"Source '{sid}': model must be a Model instance")
        self._models[sid] = model
        self._labels[sid] = clean_text(label) or sid
        self._token += 1

    def remove(self, source_id: str) -> None:
        sid = clean_text(source_id)
        if sid not in self._models:
            raise KeyError(source_id)
        del self._models[sid]
        del self._labels[sid]
        self._token += 1

    def ids(self) -> list[str]:
        return list(self._models)

    def models(self) -> list[Model]:
        return list(self._models.values())

    def get(self, source_id: str) -> Model:
        return self._models[source_id]

    def label(self, source_id: str) -> str:
        return self._labels.get(source_id, source_id)

    def labels(self) -> dict[str, str]:
        return dict(self._labels)

    def items(self) -> Iterator[tuple[str, Model]]:
        return iter(self._models.items())

    def __contains__(self, source_id: object) -> bool:
        return source_id in self._models

    def __len__(self) -> int:
        return len(self._models)

    def __repr__(self) -> str:
        return f"SourceSet(ids={self.ids()!r}, token={self._token})"
