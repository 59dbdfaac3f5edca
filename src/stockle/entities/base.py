# entities/base.py
from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import (
    Any,
    Callable,
    ClassVar,
    Dict,
    FrozenSet,
    Generic,
    Iterable,
    Mapping,
    Optional,
    Set,
    TypeVar,
)

T = TypeVar("T")
TEntity = TypeVar("TEntity", bound="BaseEntity")

WIRE_STYLES = ("camel", "snake")

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")


def to_camel(key: str) -> str:
    """`reading_progress` → `readingProgress`."""
    head, *rest = key.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def to_snake(key: str) -> str:
    """`readingProgress` → `reading_progress`; snake keys pass through."""
    return _CAMEL_BOUNDARY.sub(r"_\1", key).lower()


def parse_datetime(value: Any) -> Optional[datetime]:
    """Accept a datetime or an ISO-8601 string (with optional trailing Z)."""
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        return datetime.fromisoformat(text)
    raise TypeError(f"Cannot interpret {value!r} as a datetime")


class Field(Generic[T]):
    """
    Descriptor mapping an attribute to a key in `entity.data`.

    Example:
        title: str = Field("title", default="")
    """

    def __init__(
        self,
        key: Optional[str] = None,
        *,
        default: Optional[T] = None,
        default_factory: Optional[Callable[[], T]] = None,
        read_only: bool = False,
    ) -> None:
        self.key = key
        self.default = default
        self.default_factory = default_factory
        self.read_only = read_only
        self.name: Optional[str] = None

    def __set_name__(self, owner, name: str) -> None:
        if self.key is None:
            self.key = name
        self.name = name

    def __get__(self, instance, owner=None) -> T:
        if instance is None:
            return self

        key = self.key
        assert key is not None

        if key in instance.data:
            return instance.data[key]

        if self.default_factory is not None:
            value = self.default_factory()
            instance.data[key] = value
            return value

        return self.default

    def __set__(self, instance, value: T) -> None:
        if self.read_only:
            raise AttributeError(f"Field '{self.name}' is read-only")

        key = self.key
        assert key is not None

        instance.data[key] = value

        # Track as dirty so the sync layer can send only changed fields
        dirty = getattr(instance, "_dirty_fields", None)
        if isinstance(dirty, set):
            dirty.add(key)


@dataclass(eq=False)
class BaseEntity:
    """
    Lightweight record backed by a plain dict of snake_case keys.

    Subclasses declare their attributes with `Field` descriptors and list
    the keys holding datetimes in `DATETIME_FIELDS` so wire conversion can
    serialise them.
    """

    data: Dict[str, Any] = field(default_factory=dict)

    _dirty_fields: Set[str] = field(default_factory=set, repr=False, compare=False)

    DATETIME_FIELDS: ClassVar[FrozenSet[str]] = frozenset()

    @property
    def dirty_fields(self) -> FrozenSet[str]:
        return frozenset(self._dirty_fields)

    def mark_clean(self, keys: Optional[Iterable[str]] = None) -> None:
        if keys is None:
            self._dirty_fields.clear()
        else:
            self._dirty_fields.difference_update(keys)

    # ------------------------------------------------------------------ #
    # Wire conversion
    # ------------------------------------------------------------------ #

    @staticmethod
    def _wire_value(value: Any, style: str) -> Any:
        if isinstance(value, datetime):
            return value.isoformat()
        if isinstance(value, Enum):
            return value.value
        if isinstance(value, BaseEntity):
            return value.to_wire(style)
        if isinstance(value, (list, tuple)):
            return [BaseEntity._wire_value(v, style) for v in value]
        return value

    def to_wire(self, style: str = "camel", *, only: Optional[Set[str]] = None) -> Dict[str, Any]:
        """
        Serialise to a JSON-ready dict using `style` key naming.

        `only` restricts the output to the given snake_case keys.
        """
        if style not in WIRE_STYLES:
            raise ValueError(f"Unknown wire style {style!r}; expected one of {WIRE_STYLES}")
        rename = to_camel if style == "camel" else (lambda k: k)
        return {
            rename(k): self._wire_value(v, style)
            for k, v in self.data.items()
            if only is None or k in only
        }

    @classmethod
    def _normalize_payload(cls, payload: Mapping[str, Any]) -> Dict[str, Any]:
        data = {to_snake(k): v for k, v in payload.items()}
        for key in cls.DATETIME_FIELDS:
            if key in data:
                data[key] = parse_datetime(data[key])
        return data

    @classmethod
    def from_wire(cls: type[TEntity], payload: Mapping[str, Any]) -> TEntity:
        """Build an entity from a camelCase or snake_case payload."""
        return cls(data=cls._normalize_payload(payload))

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.data)

    # ------------------------------------------------------------------ #
    # Representation
    # ------------------------------------------------------------------ #

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BaseEntity) or type(other) is not type(self):
            return NotImplemented
        return self.data == other.data

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.data.get("id")))

    def __repr__(self) -> str:
        """Short, machine-oriented representation."""
        return f"<{self.__class__.__name__} id='{self.data.get('id')}'>"

    def __str__(self) -> str:
        """Compact human-oriented summary."""
        title = self.data.get("title") or self.data.get("name")
        if title:
            return f"{self.__class__.__name__}(id='{self.data.get('id')}', title='{title}')"
        return f"{self.__class__.__name__}(id='{self.data.get('id')}')"
