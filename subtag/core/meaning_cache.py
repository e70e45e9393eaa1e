"""Per-token cache of meaning candidates.

Keys are ``(subtitle_id, token_index)``. The cache is read-through: a miss
runs the fetcher on the task runner and stores whatever comes back.

Two limitations are kept on purpose:

* overlapping fetches for one key are not fenced, the last one to resolve
  wins;
* editing or deleting a meaning record does not update other cached lists
  that mention it. Callers holding such a list patch or refetch it.
"""
from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Tuple

from subtag.core.tasks import ImmediateTaskRunner, TaskRunner
from subtag.models.subtitle import MeaningCandidate

logger = logging.getLogger(__name__)

MeaningKey = Tuple[str, int]
Fetcher    = Callable[[str], List[MeaningCandidate]]


def meaning_key(subtitle_id: str, token_index: int) -> MeaningKey:
    return (subtitle_id, token_index)


class TokenMeaningCache:

    def __init__(self, runner: Optional[TaskRunner] = None):
        self._runner = runner or ImmediateTaskRunner()
        self._lists: Dict[MeaningKey, List[MeaningCandidate]] = {}
        self._generation = 0

    # ------------------------------------------------------------------ sync API
    def get(self, key: MeaningKey) -> Optional[List[MeaningCandidate]]:
        return self._lists.get(key)

    def set(self, key: MeaningKey, candidates: List[MeaningCandidate]) -> None:
        self._lists[key] = list(candidates)

    def invalidate_all(self) -> None:
        """Drop every list. Fetches still in flight are discarded on arrival."""
        self._lists.clear()
        self._generation += 1

    def keys(self) -> List[MeaningKey]:
        return list(self._lists)

    def __len__(self) -> int:
        return len(self._lists)

    # ------------------------------------------------------------------ read-through
    def fetch_or_get(
        self,
        key: MeaningKey,
        token_text: str,
        fetcher: Fetcher,
        on_ready: Callable[[MeaningKey, List[MeaningCandidate]], None],
        on_error: Optional[Callable[[MeaningKey, Exception], None]] = None,
    ) -> Optional[List[MeaningCandidate]]:
        """Return the cached list for ``key`` or start fetching it.

        A hit is returned and handed to ``on_ready`` synchronously. On a
        miss this returns None and ``on_ready`` runs once the fetch
        completes, unless :meth:`invalidate_all` was called meanwhile.
        """
        cached = self._lists.get(key)
        if cached is not None:
            on_ready(key, cached)
            return cached

        generation = self._generation

        def _done(result: List[MeaningCandidate]) -> None:
            if generation != self._generation:
                logger.debug("Dropping meanings for %s from a previous media load", key)
                return
            self.set(key, result or [])
            on_ready(key, self._lists[key])

        def _failed(exc: Exception) -> None:
            if generation != self._generation:
                return
            logger.warning("Meaning lookup failed for %r (%s): %s", token_text, key, exc)
            if on_error is not None:
                on_error(key, exc)

        logger.debug("Meaning cache miss %s — fetching %r", key, token_text)
        self._runner.submit(fetcher, token_text, on_success=_done, on_error=_failed)
        return None
