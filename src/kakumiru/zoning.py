"""Zoning: the user's excluded-tag list and its pending edits."""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence

from .taxonomy import tags_in
from .types import CATEGORIES, Category, TagResponse
from .utils import same_members, unique_in_order

Persist = Callable[[list[str]], Any]

_logger = logging.getLogger(__name__)


def _normalize_ids(ids: Iterable[object]) -> list[str]:
    return unique_in_order(str(tag_id) for tag_id in ids if tag_id is not None)


class ZoningFilter:
    """Committed and locally edited exclusion sets.

    ``committed`` is the last list the server acknowledged and ``local`` is
    the list being edited. Edits only ever happen on ``local``; ``save``
    pushes it through ``persist`` and promotes it to ``committed``.

    Parameters
    ----------
    persist
        Callable receiving the local id list; raising leaves both snapshots
        unchanged.
    tags
        Tag list used by the per-category bulk helpers.
    """

    def __init__(self, persist: Persist, *, tags: Optional[Sequence[TagResponse]] = None) -> None:
        self._persist = persist
        self._tags: list[TagResponse] = list(tags or [])
        self._committed: list[str] = []
        self._local: list[str] = []
        self._loaded = False

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def committed(self) -> list[str]:
        return list(self._committed)

    @property
    def local(self) -> list[str]:
        return list(self._local)

    @property
    def tags(self) -> list[TagResponse]:
        return list(self._tags)

    def set_tags(self, tags: Sequence[TagResponse]) -> None:
        self._tags = list(tags)

    def load(self, server_ids: Iterable[object]) -> None:
        """Adopt a server snapshot.

        Local edits survive a reload while they are pending; otherwise the
        local list follows the server.
        """
        incoming = _normalize_ids(server_ids)
        if not self._loaded:
            self._committed = incoming
            self._local = list(incoming)
            self._loaded = True
            return
        pending = not same_members(self._local, self._committed)
        if pending:
            added, removed = self.diff()
            _logger.debug("Keeping %d pending zoning edits over server snapshot.", len(added) + len(removed))
        elif not same_members(self._local, incoming):
            self._local = list(incoming)
        self._committed = incoming

    def toggle(self, tag_id: object) -> None:
        tag_id = str(tag_id)
        if tag_id in self._local:
            self._local = [existing for existing in self._local if existing != tag_id]
        else:
            self._local = [*self._local, tag_id]

    def is_excluded(self, tag_id: object) -> bool:
        return str(tag_id) in self._local

    def is_dirty(self) -> bool:
        return not same_members(self._committed, self._local)

    def diff(self) -> tuple[list[str], list[str]]:
        """Return ``(added, removed)`` relative to the committed list."""
        committed = set(self._committed)
        local = set(self._local)
        added = [tag_id for tag_id in self._local if tag_id not in committed]
        removed = [tag_id for tag_id in self._committed if tag_id not in local]
        return added, removed

    def save(self) -> bool:
        """Persist local edits.

        Returns
        -------
        bool
            ``False`` when there was nothing to save, ``True`` after a
            successful save. Persistence errors propagate.
        """
        if not self.is_dirty():
            return False
        snapshot = list(self._local)
        self._persist(snapshot)
        self._committed = snapshot
        self._local = list(snapshot)
        return True

    def reset(self) -> None:
        """Discard local edits."""
        self._local = list(self._committed)

    # --- Per-category helpers --- #
    def _ids_in(self, category: Category) -> list[str]:
        return [tag["id"] for tag in tags_in(category, self._tags)]

    def select_all_in(self, category: Category) -> None:
        self._local = unique_in_order([*self._local, *self._ids_in(category)])

    def clear_in(self, category: Category) -> None:
        ids = set(self._ids_in(category))
        self._local = [tag_id for tag_id in self._local if tag_id not in ids]

    def excluded_in(self, category: Category) -> list[str]:
        local = set(self._local)
        return [tag_id for tag_id in self._ids_in(category) if tag_id in local]

    def can_select_all(self, category: Category) -> bool:
        ids = self._ids_in(category)
        return bool(ids) and len(self.excluded_in(category)) < len(ids)

    def can_clear(self, category: Category) -> bool:
        return bool(self.excluded_in(category))

    def summary(self) -> dict[Category, Mapping[str, int]]:
        """Per-category tag and exclusion counts."""
        return {
            category: {"total": len(self._ids_in(category)), "excluded": len(self.excluded_in(category))}
            for category in CATEGORIES
        }


__all__ = ["Persist", "ZoningFilter"]
