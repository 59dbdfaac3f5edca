"""
Seed a CollectionStore from the article backend and persist changes back.

The store stays the single writer: remote results re-enter it through its
normal operations (`load`, `insert`), and local mutations are pushed as
PATCH requests carrying only the fields that changed.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from .client import LibraryClient
from .entities.articles import Article
from .exceptions import APIError, ResourceNotFoundError
from .store import CollectionStore, SaveForm

logger = logging.getLogger(__name__)


class LibrarySync:
    """
    CRUD bridge between a store and the backend's `articles` endpoint.

    Example:
        >>> sync = LibrarySync(store, LibraryClient.from_settings(settings))
        >>> sync.pull()
        >>> store.toggle_favorite(article_id)
        >>> sync.push(article_id)
    """

    ENDPOINT = "articles"
    # Fields the backend accepts in PATCH articles/{id}
    PATCHABLE = frozenset({"status", "is_favorite", "category_id", "reading_progress"})
    PAGE_LIMIT = 100

    def __init__(self, store: CollectionStore, client: LibraryClient, *, style: str = "camel") -> None:
        self.store = store
        self.client = client
        self.style = style
        self._unwatch: Optional[Callable[[], None]] = None

    # ------------------------------------------------------------------ #
    # Read
    # ------------------------------------------------------------------ #

    def fetch_page(self, page: int = 1, limit: int = PAGE_LIMIT) -> Dict[str, Any]:
        resp = self.client.get(self.ENDPOINT, page=page, limit=limit)
        payload = resp.json()
        if not isinstance(payload, Mapping) or not isinstance(payload.get("articles"), list):
            raise ValueError(f"Unexpected list endpoint format: {payload!r}")
        return payload

    def pull(self, *, limit: int = PAGE_LIMIT) -> List[Article]:
        """Fetch every page and replace the store's collection with it."""
        items: List[Any] = []
        page = 1
        while True:
            payload = self.fetch_page(page, limit)
            batch = payload["articles"]
            items.extend(batch)
            total = payload.get("total")
            if not batch or (isinstance(total, int) and len(items) >= total) or len(batch) < limit:
                break
            page += 1
        self.store.load(items)
        logger.info("Pulled %d article(s) from %s", len(items), self.client.api_base)
        return self.store.articles()

    # ------------------------------------------------------------------ #
    # Write
    # ------------------------------------------------------------------ #

    def save(self, form: Union[SaveForm, Mapping[str, Any]]) -> Article:
        """
        Create the article on the backend, then add the stored copy.

        The backend assigns the id and scrapes metadata, so the local
        article is whatever it returns.
        """
        if not isinstance(form, SaveForm):
            form = SaveForm.from_mapping(form)
        body: Dict[str, Any] = {"url": form.url}
        if form.category_id:
            body["categoryId"] = form.category_id
        if form.tags:
            body["tags"] = list(form.tags)
        resp = self.client.post(self.ENDPOINT, json=body)
        payload = resp.json()
        article_payload = payload.get("article", payload) if isinstance(payload, Mapping) else payload
        article = self.store.insert(article_payload)
        logger.info("Saved %s as %s", form.url, article.id)
        return article

    def changes(self, article: Article) -> Dict[str, Any]:
        """Wire body for the PATCHable fields modified since the last sync."""
        keys = set(article.dirty_fields) & self.PATCHABLE
        return article.to_wire(self.style, only=keys)

    def push(self, article_id: str) -> bool:
        """Send pending changes of one article; False when nothing changed."""
        article = self.store.get(article_id)
        body = self.changes(article)
        if not body:
            return False
        self.client.patch(f"{self.ENDPOINT}/{article_id}", json=body)
        article.mark_clean(self.PATCHABLE)
        logger.info("Pushed %s for %s", ", ".join(sorted(body)), article_id)
        return True

    def push_all(self) -> int:
        return sum(1 for article in self.store if self.push(article.id))

    def delete(self, article_id: str) -> None:
        """
        Delete locally, then on the backend.

        A 404 from the backend means someone else already removed it.
        """
        self.store.delete(article_id)
        if self._unwatch is None:
            self.remove_remote(article_id)

    def remove_remote(self, article_id: str) -> None:
        try:
            self.client.delete(f"{self.ENDPOINT}/{article_id}")
        except ResourceNotFoundError:
            logger.info("Article %s was already gone on the backend", article_id)

    # ------------------------------------------------------------------ #
    # Automatic push
    # ------------------------------------------------------------------ #

    def watch(self) -> None:
        """Push every local update and deletion as soon as it happens."""
        if self._unwatch is None:
            self._unwatch = self.store.subscribe(self._on_store_event)

    def unwatch(self) -> None:
        if self._unwatch is not None:
            self._unwatch()
            self._unwatch = None

    def _on_store_event(self, event: str, article: Optional[Article]) -> None:
        if article is None:
            return
        try:
            if event == "deleted":
                self.remove_remote(article.id)
            elif event in ("status", "favorite", "progress", "category"):
                self.push(article.id)
        except APIError as exc:
            # changes stay dirty; push_all retries them
            logger.warning("Could not sync %s after %s: %s", article.id, event, exc)
