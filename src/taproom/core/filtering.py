"""Search filtering over the catalog."""

from __future__ import annotations

from taproom.core.catalog import Catalog
from taproom.core.models import PackageKey


def match_names(catalog: Catalog, query: str) -> tuple[PackageKey, ...]:
    """Return catalog keys whose name contains ``query``, ignoring case.

    Order is always the catalog's display order.
    """
    keys = catalog.ordered()
    if not query:
        return keys

    q = query.lower()
    return tuple(k for k in keys if q in k.name.lower())


class FilterEngine:
    """Live search query plus the filtered view derived from it."""

    def __init__(self, catalog: Catalog) -> None:
        self._catalog = catalog
        self._query = ""
        self._cache_key: tuple[int, str] | None = None
        self._view: tuple[PackageKey, ...] = ()

    @property
    def query(self) -> str:
        return self._query

    def set_query(self, text: str) -> None:
        self._query = text

    def filtered_view(self) -> tuple[PackageKey, ...]:
        """Keys matching the current query, recomputed when stale."""
        cache_key = (self._catalog.revision, self._query)
        if cache_key != self._cache_key:
            self._view = match_names(self._catalog, self._query)
            self._cache_key = cache_key
        return self._view
