"""Per-widget memo of the last aggregated dataset.

Each invalidation of the whole cache starts a new epoch, and each
invalidation of a single widget bumps that widget's generation. A fetch
records both when it is issued and its result is only stored if neither
changed meanwhile, so a slow response from before a refresh or a
cross-filter change can never overwrite newer data.
"""

from __future__ import annotations

import logging

from drilldash.query.models import Row

logger = logging.getLogger(__name__)


class DataCache:
    """Widget-id keyed cache of aggregated rows with epoch tagging."""

    def __init__(self) -> None:
        self._entries: dict[str, list[Row]] = {}
        self._generations: dict[str, int] = {}
        self._epoch = 0

    @property
    def epoch(self) -> int:
        return self._epoch

    def generation(self, widget_id: str) -> int:
        return self._generations.get(widget_id, 0)

    def get(self, widget_id: str) -> list[Row] | None:
        return self._entries.get(widget_id)

    def __contains__(self, widget_id: str) -> bool:
        return widget_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def store(
        self,
        widget_id: str,
        rows: list[Row],
        epoch: int,
        generation: int | None = None,
    ) -> bool:
        """Store ``rows`` if ``epoch`` (and ``generation``, when given) are still current.

        Returns whether it was stored.
        """
        if epoch != self._epoch:
            logger.debug(
                "Discarding stale result for %s (epoch %d, current %d)",
                widget_id,
                epoch,
                self._epoch,
            )
            return False
        if generation is not None and generation != self.generation(widget_id):
            logger.debug(
                "Discarding stale result for %s (generation %d, current %d)",
                widget_id,
                generation,
                self.generation(widget_id),
            )
            return False
        self._entries[widget_id] = rows
        return True

    def invalidate(self, widget_id: str) -> None:
        """Drop one widget's entry and reject fetches issued before now."""
        self._entries.pop(widget_id, None)
        self._generations[widget_id] = self.generation(widget_id) + 1

    def invalidate_all(self) -> int:
        """Drop every entry and start a new epoch."""
        self._entries.clear()
        self._epoch += 1
        return self._epoch
