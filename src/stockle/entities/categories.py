# entities/categories.py
from typing import NamedTuple, Optional

from .base import BaseEntity, Field


class Category(BaseEntity):
    """
    Externally supplied grouping for articles.

    Categories are read-only inputs; `article_count` is derived from the
    collection (see CollectionStore.category_counts).
    """

    id: str = Field("id", read_only=True)
    user_id: Optional[str] = Field("user_id", read_only=True)
    name: str = Field("name", default="", read_only=True)
    color: str = Field("color", default="#6B7280", read_only=True)
    display_order: int = Field("display_order", default=0, read_only=True)
    is_default: bool = Field("is_default", default=False, read_only=True)

    @classmethod
    def _normalize_payload(cls, payload):
        data = super()._normalize_payload(payload)
        data.pop("article_count", None)
        data.pop("articles", None)
        return data


class CategoryCount(NamedTuple):
    """A category paired with the number of articles filed under it."""

    category: Category
    article_count: int
