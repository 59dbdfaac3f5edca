# entities/tags.py
from typing import Optional

from ..exceptions import ValidationError
from .base import BaseEntity, Field


def normalize_tag_name(name: str) -> str:
    """
    Trim a tag name and collapse internal runs of whitespace.

    Raises ValidationError when nothing is left.
    """
    if not isinstance(name, str):
        raise ValidationError("tags", f"tag name must be a string, got {type(name).__name__}")
    normalized = " ".join(name.split())
    if not normalized:
        raise ValidationError("tags", "tag name must not be empty")
    return normalized


class Tag(BaseEntity):
    """
    A user-scoped label. Identity is the (user_id, name) pair.

    `usage_count` is not stored here; ask the TagRegistry.
    """

    id: str = Field("id", read_only=True)
    user_id: Optional[str] = Field("user_id", read_only=True)
    name: str = Field("name", read_only=True)

    @classmethod
    def _normalize_payload(cls, payload):
        # usage_count is derived from the store
        data = super()._normalize_payload(payload)
        data.pop("usage_count", None)
        return data
