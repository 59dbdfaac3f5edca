"""
A live filtered view over a CollectionStore.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, List, Mapping, Optional, Union

from . import filters
from .config import LibrarySettings
from .debounce import Debouncer
from .entities.articles import Article
from .filters import FilterSpec, Page, SortSpec
from .store import CollectionStore

logger = logging.getLogger(__name__)


class LibraryView:
    """
    Holds the current filter spec, search query and sort, and the result
    of applying them to the store.

    Results are recomputed on every store mutation and every change of
    filters or query. Typed input goes through a Debouncer so only the
    last keystroke of a burst triggers a search.

    Example:
        >>> view = LibraryView(store)
        >>> view.set_filters(view.filter_spec.toggle_status("unread"))
        >>> view.type_query("react")   # applied after the debounce delay
        >>> view.results
    """

    def __init__(
        self,
        store: CollectionStore,
        *,
        filter_spec: Optional[FilterSpec] = None,
        sort: Optional[SortSpec] = None,
        settings: Optional[LibrarySettings] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        on_change: Optional[Callable[[List[Article]], Any]] = None,
    ) -> None:
        self.store = store
        self.settings = settings or store.settings
        self.filter_spec = filter_spec or FilterSpec()
        self.sort = sort
        self.query = ""
        self.on_change = on_change
        self.results: List[Article] = []
        self._debouncer: Debouncer[str] = Debouncer(
            self.submit_query,
            delay=self.settings.debounce_delay,
            loop=loop,
        )
        self._unsubscribe = store.subscribe(self._on_store_event)
        self.refresh()

    # ------------------------------------------------------------------ #
    # Inputs
    # ------------------------------------------------------------------ #

    def type_query(self, text: str) -> None:
        """Feed one raw keystroke-level value of the search box."""
        self._debouncer.push(text)

    def submit_query(self, text: Optional[str]) -> None:
        """Apply `text` immediately, superseding anything still pending."""
        self._debouncer.cancel()
        self.query = text or ""
        self.refresh()

    def clear_query(self) -> None:
        self.submit_query("")

    @property
    def query_pending(self) -> bool:
        return self._debouncer.pending

    def set_filters(self, spec: Union[FilterSpec, Mapping[str, Any], None]) -> None:
        if not isinstance(spec, FilterSpec):
            spec = FilterSpec.from_mapping(spec)
        self.filter_spec = spec
        self.refresh()

    def reset_filters(self) -> None:
        self.set_filters(self.filter_spec.cleared())

    def set_sort(self, sort: Optional[SortSpec]) -> None:
        self.sort = sort
        self.refresh()

    # ------------------------------------------------------------------ #
    # Output
    # ------------------------------------------------------------------ #

    def refresh(self) -> List[Article]:
        self.results = filters.apply(self.store, self.filter_spec, self.query, self.sort)
        logger.debug(
            "View refreshed: %d of %d article(s) visible",
            len(self.results),
            len(self.store),
        )
        if self.on_change is not None:
            self.on_change(self.results)
        return self.results

    def page(self, number: int = 1, limit: Optional[int] = None) -> Page:
        return filters.paginate(self.results, number, limit or self.settings.page_size)

    def _on_store_event(self, event: str, article: Optional[Article]) -> None:
        self.refresh()

    def close(self) -> None:
        """Stop following the store and drop any pending query."""
        self._debouncer.cancel()
        self._unsubscribe()

    def __len__(self) -> int:
        return len(self.results)

    def __iter__(self):
        return iter(self.results)

    def __repr__(self) -> str:
        return (
            f"<LibraryView visible={len(self.results)} query={self.query!r} "
            f"filters={self.filter_spec.active_count}>"
        )
