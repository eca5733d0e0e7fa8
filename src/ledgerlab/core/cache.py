"""
Merge-result cache keyed by a rebuild token and a selection signature.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from .merge import merge_models
from .model import Model

logger = logging.getLogger(__name__)


class MergeCache:
    """
    Explicit cache for merged models.

    The cache is bound to the rebuild token of a
    :class:`~ledgerlab.core.sources.SourceSet`; whenever the token changes every
    entry is dropped. Entries are keyed by a selection signature such as
    ``"base:*"`` or ``"selected:a|b"``.

    **Example Usage:**
        ```python
        cache = MergeCache()
        merged = cache.merge(sources.token, "selected:a|b", [model_a, model_b])
        ```
    """

    def __init__(self, merge_fn: Callable[[Sequence[Model]], Model] = merge_models):
        self._merge_fn = merge_fn
        self._token: int | None = None
        self._entries: dict[str, Model] = {}
        self.hits = 0
        self.misses = 0

    @property
    def token(self) -> int | None:
        return self._token

    def __len__(self) -> int:
        return len(self._entries)

    def bind(self, token: int) -> None:
        """Bind to a rebuild token, invalidating everything if it changed."""
        if self._token != token:
            if self._entries:
                logger.debug(
                    "Merge cache invalidated (token %s -> %s)", self._token, token
                )
            self._token = token
            self._entries = {}

    def clear(self) -> None:
        self._entries = {}

    def merge(self, token: int, key: str, models: Sequence[Model]) -> Model | None:
        """
        Merge ``models`` or return the cached result.

        A single model is returned as is without calling the merge function;
        an empty sequence yields None.
        """
        self.bind(token)
        models = list(models)
        if not models:
            return None
        if len(models) == 1:
            return models[0]

        cached = self._entries.get(key)
        if cached is not None:
            self.hits += 1
            logger.debug("Merge cache hit: %s", key)
            return cached

        self.misses += 1
        logger.debug("Merge cache miss: %s (%d models)", key, len(models))
        merged = self._merge_fn(models)
        self._entries[key] = merged
        return merged
