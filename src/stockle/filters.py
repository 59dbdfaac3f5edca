"""
Derive the visible subset of a collection from a filter spec and a query.

Everything here is pure: inputs are never mutated and malformed filter
values are read as "no constraint" instead of raising.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Iterable, List, Mapping, NamedTuple, Optional

from .entities.articles import Article, ArticleStatus

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def _status_or_none(value: Any) -> Optional[ArticleStatus]:
    try:
        return ArticleStatus(value)
    except (TypeError, ValueError):
        return None


def _bool_or_none(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
    return None


@dataclass(frozen=True)
class FilterSpec:
    """
    Facet constraints, combined with AND.

    None means "no constraint" for every facet; `favorite=False` is also
    no constraint (there is no "only non-favourites" filter).
    """

    status: Optional[ArticleStatus] = None
    category_id: Optional[str] = None
    favorite: Optional[bool] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "status", _status_or_none(self.status))
        if not isinstance(self.category_id, str) or not self.category_id:
            object.__setattr__(self, "category_id", None)
        object.__setattr__(self, "favorite", _bool_or_none(self.favorite))

    @classmethod
    def from_mapping(cls, payload: Optional[Mapping[str, Any]]) -> "FilterSpec":
        """Build from query-string style input (camelCase or snake_case keys)."""
        if not isinstance(payload, Mapping):
            return cls()
        category = payload.get("categoryId", payload.get("category_id"))
        if category == "all":
            category = None
        return cls(
            status=payload.get("status"),
            category_id=category,
            favorite=payload.get("favorite"),
        )

    @property
    def active_count(self) -> int:
        return sum((self.status is not None, self.category_id is not None, bool(self.favorite)))

    @property
    def is_empty(self) -> bool:
        return self.active_count == 0

    def toggle_status(self, status: Any) -> "FilterSpec":
        """Select `status`, or clear it if it is already selected."""
        status = _status_or_none(status)
        return replace(self, status=None if self.status == status else status)

    def toggle_favorite(self) -> "FilterSpec":
        return replace(self, favorite=None if self.favorite else True)

    def with_category(self, category_id: Optional[str]) -> "FilterSpec":
        """`"all"` and None both clear the category facet."""
        return replace(self, category_id=None if category_id == "all" else category_id)

    def cleared(self) -> "FilterSpec":
        return FilterSpec()

    def matches(self, article: Article) -> bool:
        if self.status is not None and article.status != self.status:
            return False
        if self.category_id is not None and article.category_id != self.category_id:
            return False
        if self.favorite and not article.is_favorite:
            return False
        return True


SORT_KEYS = ("saved_at", "published_at", "title", "reading_time", "reading_progress")


@dataclass(frozen=True)
class SortSpec:
    """
    Explicit ordering. Without one, results keep the source order.

    Articles lacking the sort value always come last, whatever the
    direction.
    """

    key: str = "saved_at"
    descending: bool = True

    def __post_init__(self) -> None:
        if self.key not in SORT_KEYS:
            object.__setattr__(self, "key", "saved_at")

    def value(self, article: Article) -> Any:
        if self.key == "title":
            return (article.title or "").casefold()
        if self.key == "reading_time":
            return article.reading_time_seconds
        if self.key == "reading_progress":
            return article.reading_progress
        return getattr(article, self.key)

    def apply(self, articles: List[Article]) -> List[Article]:
        present = [a for a in articles if self.value(a) is not None]
        missing = [a for a in articles if self.value(a) is None]
        if self.key in ("saved_at", "published_at"):
            present.sort(key=lambda a: _timestamp(self.value(a)), reverse=self.descending)
        else:
            present.sort(key=self.value, reverse=self.descending)
        return present + missing


def _timestamp(value: datetime) -> float:
    # naive datetimes are taken as UTC so mixed inputs still compare
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


def normalize_query(query: Optional[str]) -> str:
    """
    Case-folded needle for `matches_query`; "" for a blank query.

    Surrounding whitespace of a non-blank query is kept, so "hooks " only
    matches where a space follows.
    """
    if not isinstance(query, str) or not query.strip():
        return ""
    return query.casefold()


def matches_query(article: Article, needle: str) -> bool:
    """
    Case-insensitive substring match on title, summary, author and tags.

    `needle` must already be normalised; an empty needle matches all.
    """
    if not needle:
        return True
    for text in (article.title, article.summary, article.author):
        if isinstance(text, str) and needle in text.casefold():
            return True
    return any(needle in tag.name.casefold() for tag in article.tags)


def apply(
    articles: Iterable[Article],
    filter_spec: Optional[FilterSpec] = None,
    query: Optional[str] = "",
    sort: Optional[SortSpec] = None,
) -> List[Article]:
    """
    Return the articles that pass every facet and the text query.

    Order is the source order unless `sort` is given. The input is left
    untouched and an empty list is a normal result.
    """
    if not isinstance(filter_spec, FilterSpec):
        filter_spec = FilterSpec.from_mapping(filter_spec)
    needle = normalize_query(query)
    result = [
        a for a in articles
        if filter_spec.matches(a) and matches_query(a, needle)
    ]
    if sort is not None:
        result = sort.apply(result)
    return result


class Page(NamedTuple):
    articles: List[Article]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return max(1, -(-self.total // self.limit))

    @property
    def has_next(self) -> bool:
        return self.page < self.pages


def paginate(articles: List[Article], page: Any = 1, limit: Any = DEFAULT_PAGE_SIZE) -> Page:
    """Slice out one page; bad page numbers and sizes are clamped."""
    try:
        page = max(1, int(page))
    except (TypeError, ValueError):
        page = 1
    try:
        limit = min(MAX_PAGE_SIZE, max(1, int(limit)))
    except (TypeError, ValueError):
        limit = DEFAULT_PAGE_SIZE
    start = (page - 1) * limit
    return Page(list(articles[start:start + limit]), len(articles), page, limit)
