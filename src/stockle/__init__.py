"""stockle - state, filtering and search for a personal read-it-later article library."""

from .client import LibraryClient
from .config import LibrarySettings
from .entities.articles import Article, ArticleStatus, reading_time_minutes, site_name_of
from .entities.categories import Category
from .entities.tags import Tag
from .exceptions import LibraryError, NotFoundError, ValidationError
from .filters import FilterSpec, SortSpec, apply, paginate
from .registry import TagRegistry
from .store import CollectionStore, SaveForm
from .sync import LibrarySync
from .view import LibraryView

__all__ = [
    "Article",
    "ArticleStatus",
    "Category",
    "CollectionStore",
    "FilterSpec",
    "LibraryClient",
    "LibraryError",
    "LibrarySettings",
    "LibrarySync",
    "LibraryView",
    "NotFoundError",
    "SaveForm",
    "SortSpec",
    "Tag",
    "TagRegistry",
    "ValidationError",
    "apply",
    "paginate",
    "reading_time_minutes",
    "site_name_of",
]
__version__ = "0.1.0"
