"""Zoning (excluded tags) resource wrapper."""

from __future__ import annotations

from typing import Any, Optional, Sequence

from ..feed import POSTS_PATH
from ..zoning import ZoningFilter
from .base import Resource

EXCLUDE_TAGS_PATH = "/exclude-tags"


def _extract_ids(payload: Any) -> list[str]:
    """Accept an id list, a tag list, or either wrapped under ``data``/``tagIds``."""
    if isinstance(payload, dict):
        payload = next(
            (payload[field] for field in ("tagIds", "data", "tags") if isinstance(payload.get(field), list)),
            [],
        )
    if not isinstance(payload, list):
        return []
    ids: list[str] = []
    for item in payload:
        if isinstance(item, dict):
            item = item.get("id")
        if isinstance(item, (str, int)) and not isinstance(item, bool) and str(item):
            ids.append(str(item))
    return ids


class Zoning(Resource):
    """Server-backed zoning settings.

    ``filter`` is the :class:`ZoningFilter` holding the committed and local
    exclusion lists; it persists through :meth:`save_ids`.
    """

    def __init__(self, client) -> None:
        super().__init__(client)
        self.filter = ZoningFilter(self.save_ids)

    def fetch_ids(self, *, stale_time_ms: Optional[int] = None) -> list[str]:
        """Read the server exclusion list through the cache."""
        return _extract_ids(self._read(EXCLUDE_TAGS_PATH, stale_time_ms=stale_time_ms))

    def load(self, *, stale_time_ms: Optional[int] = None) -> ZoningFilter:
        """Refresh the filter from the server and the tag list."""
        self.filter.set_tags(self._client.tags.list())
        self.filter.load(self.fetch_ids(stale_time_ms=stale_time_ms))
        return self.filter

    def save_ids(self, tag_ids: Sequence[str], *, timeout: Optional[float] = None) -> Any:
        """Persist an exclusion list as-is."""
        return self._mutate(
            lambda: self._post(EXCLUDE_TAGS_PATH, json={"tagIds": list(tag_ids)}, timeout=timeout),
            invalidate=(EXCLUDE_TAGS_PATH, POSTS_PATH),
            failure="failed to save zoning settings",
        )

    def save(self) -> bool:
        """Save pending filter edits. Returns False when nothing changed."""
        saved = self.filter.save()
        if saved:
            self._client.notify("success", "zoning settings saved")
        return saved
