from __future__ import annotations

import logging

from parley.core.metrics import PAGE_FETCHES_TOTAL
from parley.models.turns import Cursor, TurnPage
from parley.protocols.store import TurnStore

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20


class CursorPager:
    """Keyset pagination over a turn store.

    Asks the store for one row more than the page size; the presence of that
    extra row answers "is there more?" without a second round trip.
    """

    def __init__(self, store: TurnStore, page_size: int = DEFAULT_PAGE_SIZE, namespace: str = "") -> None:
        if page_size < 1:
            raise ValueError("page_size must be >= 1")
        self._store = store
        self.page_size = page_size
        self._namespace = namespace

    async def page(
        self,
        actor_id: str,
        conversation_id: str,
        page_size: int | None = None,
        cursor: Cursor | None = None,
    ) -> TurnPage:
        size = self.page_size if page_size is None else page_size
        if size < 1:
            raise ValueError("page_size must be >= 1")

        if cursor is None:
            rows = await self._store.recent(actor_id, conversation_id, size + 1)
            direction = "latest"
        else:
            rows = await self._store.older_than(actor_id, conversation_id, cursor, size + 1)
            direction = "older"
        PAGE_FETCHES_TOTAL.labels(namespace=self._namespace, direction=direction).inc()

        has_more = len(rows) > size
        kept = rows[:size]
        kept.reverse()
        logger.debug(
            "fetched %s page for %s/%s: %d turns, has_more=%s",
            direction,
            actor_id,
            conversation_id,
            len(kept),
            has_more,
        )
        return TurnPage(turns=kept, has_more=has_more)


__all__ = ["DEFAULT_PAGE_SIZE", "CursorPager"]
