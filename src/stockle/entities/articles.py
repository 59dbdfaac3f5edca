# entities/articles.py
import math
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional
from urllib.parse import urlsplit

from ..exceptions import ValidationError
from .base import BaseEntity, Field
from .tags import Tag


class ArticleStatus(str, Enum):
    UNREAD = "unread"
    READ = "read"
    ARCHIVED = "archived"

    def __str__(self) -> str:
        return self.value


def coerce_status(value: Any) -> ArticleStatus:
    """Return the ArticleStatus for `value` or raise ValidationError."""
    try:
        return ArticleStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in ArticleStatus)
        raise ValidationError("status", f"{value!r} is not one of: {allowed}") from None


def validate_url(url: Any) -> str:
    """
    Return `url` stripped of surrounding whitespace if it is absolute.

    Absolute means a scheme and a network location; embedded whitespace
    is rejected.
    """
    if not isinstance(url, str) or not url.strip():
        raise ValidationError("url", "a URL is required")
    url = url.strip()
    if any(ch.isspace() for ch in url):
        raise ValidationError("url", f"{url!r} contains whitespace")
    try:
        parts = urlsplit(url)
        host = parts.hostname
    except ValueError as exc:
        raise ValidationError("url", f"{url!r} is not a valid URL ({exc})") from None
    if not parts.scheme or not parts.netloc or not host:
        raise ValidationError("url", f"{url!r} is not an absolute URL")
    return url


def site_name_of(url: str) -> str:
    """Hostname of `url`, or the raw string when no host can be parsed."""
    try:
        host = urlsplit(url).hostname
    except (ValueError, TypeError, AttributeError):
        host = None
    return host or url


def reading_time_minutes(article: "Article") -> int:
    return math.ceil((article.reading_time_seconds or 0) / 60)


class Article(BaseEntity):
    """
    One saved URL plus its metadata and the user's reading state.

    All attributes here are thin accessors over `self.data`. Mutate
    articles through CollectionStore so invariants and subscribers hold;
    writing a Field directly only marks it dirty.
    """

    DATETIME_FIELDS = frozenset({"saved_at", "published_at", "last_accessed_at"})

    # Identity
    id: str = Field("id", read_only=True)
    user_id: Optional[str] = Field("user_id")
    url: str = Field("url", read_only=True)

    # Source metadata
    title: str = Field("title", default="")
    summary: Optional[str] = Field("summary")
    thumbnail_url: Optional[str] = Field("thumbnail_url")
    author: Optional[str] = Field("author")
    site_name: Optional[str] = Field("site_name")
    published_at: Optional[datetime] = Field("published_at")
    word_count: Optional[int] = Field("word_count")
    language: str = Field("language", default="ja")
    reading_time_seconds: int = Field("reading_time_seconds", default=0)

    # Reading state
    saved_at: datetime = Field("saved_at", read_only=True)
    last_accessed_at: Optional[datetime] = Field("last_accessed_at")
    status: ArticleStatus = Field("status", default=ArticleStatus.UNREAD)
    is_favorite: bool = Field("is_favorite", default=False)
    reading_progress: float = Field("reading_progress", default=0.0)

    # Organisation
    category_id: Optional[str] = Field("category_id")
    tags: List[Tag] = Field("tags", default_factory=list)

    @property
    def tag_names(self) -> List[str]:
        return [t.name for t in self.tags]

    @property
    def reading_minutes(self) -> int:
        return reading_time_minutes(self)

    @classmethod
    def _normalize_payload(cls, payload):
        data = super()._normalize_payload(payload)
        if "status" in data:
            data["status"] = coerce_status(data["status"])
        tags = []
        for raw in data.get("tags") or []:
            if isinstance(raw, Tag):
                tags.append(raw)
            elif isinstance(raw, str):
                tags.append(Tag(data={"id": None, "name": raw}))
            else:
                tags.append(Tag.from_wire(raw))
        data["tags"] = tags
        # The nested category object is a display convenience of the backend
        data.pop("category", None)
        return data
