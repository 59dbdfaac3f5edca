"""
Tag identity and derived usage counts.

The registry is the single place that decides whether a tag name already
exists. It stores tag identities only; how many articles use a tag is
always recomputed from the bound CollectionStore (memoised per store
version), so counts can never drift from the article list.
"""

from __future__ import annotations

import logging
import uuid
from collections import Counter
from typing import (
    TYPE_CHECKING,
    Callable,
    Dict,
    Iterable,
    Iterator,
    List,
    NamedTuple,
    Optional,
)

from .entities.tags import Tag, normalize_tag_name
from .exceptions import ValidationError

if TYPE_CHECKING:
    from .store import CollectionStore

logger = logging.getLogger(__name__)


class TagUsage(NamedTuple):
    tag: Tag
    usage_count: int


class TagRegistry:
    """
    Known tags for one user, keyed by normalised name.

    With `fold_case=True` (the default) "Go", " go " and "GO" resolve to
    the same Tag, which keeps the spelling it was first created with.
    """

    def __init__(
        self,
        store: Optional["CollectionStore"] = None,
        *,
        user_id: Optional[str] = None,
        fold_case: bool = True,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ) -> None:
        self.user_id = user_id
        self.fold_case = fold_case
        self._id_factory = id_factory
        self._tags: Dict[str, Tag] = {}
        self._store = store
        self._counts: Optional[Counter] = None
        self._counts_version = -1

    def bind(self, store: "CollectionStore") -> None:
        self._store = store
        self._counts = None

    # ------------------------------------------------------------------ #
    # Identity
    # ------------------------------------------------------------------ #

    def key(self, name: str) -> str:
        """Identity key for `name`; raises ValidationError if empty."""
        normalized = normalize_tag_name(name)
        return normalized.casefold() if self.fold_case else normalized

    def get(self, name: str) -> Optional[Tag]:
        """Look a tag up without creating it."""
        return self._tags.get(self.key(name))

    def resolve_or_create(self, name: str) -> Tag:
        key = self.key(name)
        tag = self._tags.get(key)
        if tag is None:
            tag = Tag(data={
                "id": self._id_factory(),
                "user_id": self.user_id,
                "name": normalize_tag_name(name),
            })
            self._tags[key] = tag
            logger.debug("Created tag %r", tag.name)
        return tag

    def resolve_many(self, names: Iterable[str]) -> List[Tag]:
        """
        Resolve a list of names, dropping duplicates under normalisation.

        Every name is validated before any tag is created.
        """
        keys: Dict[str, str] = {}
        for name in names:
            keys.setdefault(self.key(name), name)
        return [self.resolve_or_create(name) for name in keys.values()]

    def adopt(self, tag: Tag) -> Tag:
        """
        Register a tag that arrived from an external source.

        Returns the already-known Tag when the name is taken, so articles
        loaded from different pages share one identity.
        """
        key = self.key(tag.name)
        known = self._tags.get(key)
        if known is not None:
            return known
        data = {**tag.data, "name": normalize_tag_name(tag.name)}
        if not data.get("id"):
            data["id"] = self._id_factory()
        data.setdefault("user_id", self.user_id)
        adopted = Tag(data=data)
        self._tags[key] = adopted
        return adopted

    def forget(self, name: str) -> bool:
        return self._tags.pop(self.key(name), None) is not None

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        try:
            return self.key(name) in self._tags
        except ValidationError:
            return False

    def __getitem__(self, name: str) -> Tag:
        tag = self.get(name)
        if tag is None:
            raise KeyError(f"No tag named {name!r}")
        return tag

    def __len__(self) -> int:
        return len(self._tags)

    def __iter__(self) -> Iterator[Tag]:
        return iter(list(self._tags.values()))

    # ------------------------------------------------------------------ #
    # Derived counts
    # ------------------------------------------------------------------ #

    def counts(self) -> Counter:
        """Usage count per identity key, recomputed when the store changes."""
        store = self._store
        if store is None:
            return Counter()
        if self._counts is None or self._counts_version != store.version:
            counts: Counter = Counter()
            for article in store:
                for tag in article.tags:
                    counts[self.key(tag.name)] += 1
            self._counts = counts
            self._counts_version = store.version
        return self._counts

    def usage_count(self, name: str) -> int:
        return self.counts().get(self.key(name), 0)

    def _ordered(self, tags: Iterable[Tag]) -> List[TagUsage]:
        counts = self.counts()
        usages = [TagUsage(t, counts.get(self.key(t.name), 0)) for t in tags]
        usages.sort(key=lambda u: (-u.usage_count, u.tag.name.casefold(), u.tag.name))
        return usages

    def list_known(self) -> Iterator[TagUsage]:
        """Tags by usage count descending, ties by name ascending."""
        yield from self._ordered(self._tags.values())

    def popular(self, limit: int = 10) -> List[TagUsage]:
        return [u for u in self.list_known() if u.usage_count > 0][:limit]

    def search(self, query: str, limit: int = 20) -> List[TagUsage]:
        """Case-insensitive substring match on tag names."""
        needle = " ".join(query.split()).casefold()
        matches = (t for t in self._tags.values() if needle in t.name.casefold())
        return self._ordered(matches)[:limit]

    def unused(self) -> List[Tag]:
        counts = self.counts()
        return [t for key, t in self._tags.items() if counts.get(key, 0) == 0]

    def prune_unused(self) -> List[Tag]:
        """Forget every tag no article references; returns what was dropped."""
        dropped = self.unused()
        for tag in dropped:
            self.forget(tag.name)
        if dropped:
            logger.debug("Pruned %d unused tag(s)", len(dropped))
        return dropped

    # ------------------------------------------------------------------ #
    # Helpers for IPython completion
    # ------------------------------------------------------------------ #

    def names(self) -> List[str]:
        return [u.tag.name for u in self.list_known()]

    def _ipython_key_completions_(self):
        return self.names()

    def __repr__(self) -> str:
        return f"<TagRegistry tags={len(self._tags)} fold_case={self.fold_case}>"
