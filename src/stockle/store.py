"""
The authoritative in-memory article collection and its mutation operations.

Every mutation validates its whole input first and only then touches the
collection, so a failed call leaves the store exactly as it was. Articles
are mutated in place: any view holding an Article sees the change before
the next read.
"""

from __future__ import annotations

import logging
import math
import uuid
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone
from numbers import Real
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Union,
)

from .config import LibrarySettings
from .entities.articles import (
    Article,
    ArticleStatus,
    coerce_status,
    site_name_of,
    validate_url,
)
from .entities.base import parse_datetime
from .entities.categories import Category, CategoryCount
from .exceptions import NotFoundError, ValidationError
from .registry import TagRegistry

logger = logging.getLogger(__name__)

Listener = Callable[[str, Optional[Article]], None]


@dataclass
class SaveForm:
    """
    Input of the save operation.

    Only `url` is required; `title` and `site_name` let a caller that
    already knows the metadata skip the placeholder values.
    """

    url: str
    category_id: Optional[str] = None
    tags: Optional[List[str]] = None
    title: Optional[str] = None
    site_name: Optional[str] = None

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "SaveForm":
        """Accept the form as posted: `{url, categoryId?, tags?}`."""
        tags = payload.get("tags")
        if isinstance(tags, str):
            tags = [tags]
        return cls(
            url=payload.get("url"),
            category_id=payload.get("categoryId", payload.get("category_id")) or None,
            tags=list(tags) if tags else None,
            title=payload.get("title"),
            site_name=payload.get("siteName", payload.get("site_name")),
        )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _non_negative_int(field: str, value: Any, *, optional: bool = False) -> Optional[int]:
    if value is None and optional:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(field, f"expected a non-negative integer, got {value!r}")
    return value


def _optional_text(field: str, value: Any) -> Optional[str]:
    if value is not None and not isinstance(value, str):
        raise ValidationError(field, f"expected text, got {type(value).__name__}")
    return value


def _progress(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, Real) or math.isnan(value):
        raise ValidationError("reading_progress", f"expected a number, got {value!r}")
    return min(1.0, max(0.0, float(value)))


class CollectionStore:
    """
    Owns the article list for one user.

    Pass the same store object to every consumer; it is the single
    writer. `version` increases by one on every successful mutation and
    subscribers are called synchronously afterwards with the event name
    and the affected article (None for bulk loads).
    """

    METADATA_FIELDS = frozenset({
        "title",
        "summary",
        "thumbnail_url",
        "author",
        "site_name",
        "published_at",
        "reading_time_seconds",
        "word_count",
        "language",
    })

    def __init__(
        self,
        articles: Iterable[Union[Article, Mapping[str, Any]]] = (),
        categories: Optional[Iterable[Union[Category, Mapping[str, Any]]]] = None,
        *,
        settings: Optional[LibrarySettings] = None,
        registry: Optional[TagRegistry] = None,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ) -> None:
        self.settings = settings or LibrarySettings()
        self.tags = registry or TagRegistry(
            user_id=self.settings.user_id,
            fold_case=self.settings.fold_tag_case,
        )
        self.tags.bind(self)
        self._clock = clock
        self._id_factory = id_factory
        self._articles: List[Article] = []
        self._index: Dict[str, Article] = {}
        self._categories: Optional[Dict[str, Category]] = None
        self._listeners: List[Listener] = []
        self.version = 0

        if categories is not None:
            self.set_categories(categories)
        if articles:
            self.load(articles)

    # ------------------------------------------------------------------ #
    # Subscription
    # ------------------------------------------------------------------ #

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register `listener`; returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _commit(self, event: str, article: Optional[Article]) -> None:
        self.version += 1
        logger.debug(
            "%s %s (version %d)",
            event,
            article.id if article is not None else "*",
            self.version,
        )
        # the mutation is already applied; every listener still sees it
        for listener in list(self._listeners):
            try:
                listener(event, article)
            except Exception:
                logger.exception("Listener %r failed on %s event", listener, event)

    # ------------------------------------------------------------------ #
    # Read side
    # ------------------------------------------------------------------ #

    def find(self, article_id: str) -> Optional[Article]:
        return self._index.get(article_id)

    def get(self, article_id: str) -> Article:
        article = self._index.get(article_id)
        if article is None:
            raise NotFoundError(article_id)
        return article

    def articles(self) -> List[Article]:
        """Snapshot of the collection in display order."""
        return list(self._articles)

    def __len__(self) -> int:
        return len(self._articles)

    def __iter__(self) -> Iterator[Article]:
        return iter(list(self._articles))

    def __contains__(self, article_id: object) -> bool:
        return article_id in self._index

    def __getitem__(self, key):
        """
        Support:
          - store[0]          → article by position
          - store[1:10]       → list of articles
          - store["<id>"]     → article by id (NotFoundError if absent)
        """
        if isinstance(key, (int, slice)):
            return self._articles[key]
        if isinstance(key, str):
            return self.get(key)
        raise TypeError(f"Unsupported key type: {type(key)!r}")

    def _ipython_key_completions_(self):
        return [a.id for a in self._articles]

    # ------------------------------------------------------------------ #
    # Categories
    # ------------------------------------------------------------------ #

    def set_categories(self, categories: Iterable[Union[Category, Mapping[str, Any]]]) -> None:
        """Replace the externally supplied category list."""
        resolved = {}
        for item in categories:
            category = item if isinstance(item, Category) else Category.from_wire(item)
            resolved[category.id] = category
        self._categories = resolved

    @property
    def categories(self) -> List[Category]:
        if self._categories is None:
            return []
        return sorted(self._categories.values(), key=lambda c: (c.display_order, c.name))

    def _check_category(self, category_id: Optional[str]) -> Optional[str]:
        if category_id is None:
            return None
        if not isinstance(category_id, str) or not category_id:
            raise ValidationError("category_id", f"invalid category id {category_id!r}")
        if self._categories is not None and category_id not in self._categories:
            raise ValidationError("category_id", f"unknown category {category_id!r}")
        return category_id

    def category_counts(self) -> Counter:
        """Number of articles per category id (uncategorised ones are skipped)."""
        return Counter(a.category_id for a in self._articles if a.category_id is not None)

    def categories_with_counts(self) -> List[CategoryCount]:
        counts = self.category_counts()
        return [CategoryCount(c, counts.get(c.id, 0)) for c in self.categories]

    # ------------------------------------------------------------------ #
    # Seeding
    # ------------------------------------------------------------------ #

    def _coerce_article(self, item: Union[Article, Mapping[str, Any]]) -> Article:
        article = item if isinstance(item, Article) else Article.from_wire(item)
        data = article.data
        if not data.get("id"):
            raise ValidationError("id", "article payload has no id")
        validate_url(article.url)
        for tag in article.tags:
            self.tags.key(tag.name)

        progress = data.get("reading_progress")
        data["reading_progress"] = 0.0 if progress is None else _progress(progress)
        seconds = data.get("reading_time_seconds")
        data["reading_time_seconds"] = (
            0 if seconds is None else _non_negative_int("reading_time_seconds", seconds)
        )
        return article

    def _adopt_tags(self, article: Article) -> None:
        tags = []
        seen = set()
        for tag in article.tags:
            known = self.tags.adopt(tag)
            key = self.tags.key(known.name)
            if key not in seen:
                seen.add(key)
                tags.append(known)
        article.data["tags"] = tags

    def load(self, items: Iterable[Union[Article, Mapping[str, Any]]]) -> None:
        """
        Replace the whole collection with `items`, keeping their order.

        Payloads may be Articles or wire dicts in either key convention.
        Every row is checked before anything is stored or registered;
        reading progress is clamped into [0, 1].
        """
        articles = [self._coerce_article(item) for item in items]
        ids = Counter(a.id for a in articles)
        duplicated = [i for i, n in ids.items() if n > 1]
        if duplicated:
            raise ValidationError("id", f"duplicate article ids: {', '.join(duplicated)}")

        for article in articles:
            self._adopt_tags(article)
            if article.data.get("status") is None:
                article.data["status"] = ArticleStatus.UNREAD
            article.mark_clean()
        self._articles = articles
        self._index = {a.id: a for a in articles}
        logger.info("Loaded %d article(s)", len(articles))
        self._commit("loaded", None)

    def insert(self, item: Union[Article, Mapping[str, Any]], *, position: int = 0) -> Article:
        """
        Add an article created elsewhere (e.g. returned by the backend).

        Unlike `save`, the id and timestamps come with the article.
        """
        article = self._coerce_article(item)
        if article.id in self._index:
            raise ValidationError("id", f"article {article.id!r} already exists")
        self._adopt_tags(article)
        article.mark_clean()
        self._articles.insert(position, article)
        self._index[article.id] = article
        self._commit("inserted", article)
        return article

    # ------------------------------------------------------------------ #
    # Mutations
    # ------------------------------------------------------------------ #

    def save(self, form: Union[SaveForm, Mapping[str, Any]]) -> Article:
        """
        Create an unread article for `form.url` and put it first.

        URLs are not deduplicated here: guarding against a double submit
        is the caller's job.
        """
        if not isinstance(form, SaveForm):
            form = SaveForm.from_mapping(form)

        url = validate_url(form.url)
        category_id = self._check_category(form.category_id)
        for name in form.tags or ():
            self.tags.key(name)
        title = _optional_text("title", form.title)
        site_name = _optional_text("site_name", form.site_name) or site_name_of(url)

        tags = self.tags.resolve_many(form.tags or ())
        article = Article(data={
            "id": self._id_factory(),
            "user_id": self.settings.user_id,
            "url": url,
            "title": title or site_name,
            "site_name": site_name,
            "saved_at": self._clock(),
            "status": ArticleStatus.UNREAD,
            "is_favorite": False,
            "reading_progress": 0.0,
            "reading_time_seconds": 0,
            "language": self.settings.default_language,
            "category_id": category_id,
            "tags": tags,
        })
        self._articles.insert(0, article)
        self._index[article.id] = article
        self._commit("saved", article)
        return article

    def set_status(self, article_id: str, status: Union[ArticleStatus, str]) -> Article:
        """Any status may follow any other; NotFoundError if the id is gone."""
        status = coerce_status(status)
        article = self.get(article_id)
        article.status = status
        self._commit("status", article)
        return article

    def toggle_favorite(self, article_id: str) -> Article:
        article = self.get(article_id)
        article.is_favorite = not article.is_favorite
        self._commit("favorite", article)
        return article

    def update_progress(self, article_id: str, progress: float) -> Article:
        """Set reading progress, clamping out-of-range values into [0, 1]."""
        progress = _progress(progress)
        article = self.get(article_id)
        article.reading_progress = progress
        article.last_accessed_at = self._clock()
        self._commit("progress", article)
        return article

    def set_category(self, article_id: str, category_id: Optional[str]) -> Article:
        category_id = self._check_category(category_id)
        article = self.get(article_id)
        article.category_id = category_id
        self._commit("category", article)
        return article

    def set_tags(self, article_id: str, names: Iterable[str]) -> Article:
        names = list(names)
        for name in names:
            self.tags.key(name)
        article = self.get(article_id)
        article.tags = self.tags.resolve_many(names)
        self._commit("tags", article)
        return article

    def add_tag(self, article_id: str, name: str) -> Article:
        key = self.tags.key(name)
        article = self.get(article_id)
        if any(self.tags.key(t.name) == key for t in article.tags):
            return article
        article.tags = [*article.tags, self.tags.resolve_or_create(name)]
        self._commit("tags", article)
        return article

    def remove_tag(self, article_id: str, name: str) -> Article:
        key = self.tags.key(name)
        article = self.get(article_id)
        remaining = [t for t in article.tags if self.tags.key(t.name) != key]
        if len(remaining) == len(article.tags):
            return article
        article.tags = remaining
        self._commit("tags", article)
        return article

    def apply_metadata(self, article_id: str, **fields: Any) -> Article:
        """
        Fill in metadata fetched for an article after it was saved.

        Accepts any of METADATA_FIELDS; all values are checked before any
        is written.
        """
        unknown = set(fields) - self.METADATA_FIELDS
        if unknown:
            raise ValidationError(sorted(unknown)[0], "not a metadata field")

        values: Dict[str, Any] = {}
        for name, value in fields.items():
            if name == "reading_time_seconds":
                values[name] = _non_negative_int(name, value)
            elif name == "word_count":
                values[name] = _non_negative_int(name, value, optional=True)
            elif name == "published_at":
                try:
                    values[name] = parse_datetime(value)
                except (TypeError, ValueError):
                    raise ValidationError(name, f"invalid timestamp {value!r}") from None
            elif name == "language":
                if not isinstance(value, str) or not value.strip():
                    raise ValidationError(name, "a locale code is required")
                values[name] = value.strip()
            else:
                values[name] = _optional_text(name, value)

        article = self.get(article_id)
        for name, value in values.items():
            setattr(article, name, value)
        if "site_name" in values and not article.site_name:
            article.site_name = site_name_of(article.url)
        self._commit("metadata", article)
        return article

    def delete(self, article_id: str) -> Article:
        """Remove the article for good. Derived counts follow automatically."""
        article = self.get(article_id)
        self._articles = [a for a in self._articles if a is not article]
        del self._index[article_id]
        self._commit("deleted", article)
        return article

    def __repr__(self) -> str:
        return f"<CollectionStore articles={len(self._articles)} version={self.version}>"
