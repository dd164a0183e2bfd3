"""Post feed queries built from tag selection, zoning and search text."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional, Sequence, TYPE_CHECKING

from .query import QueryKey
from .taxonomy import to_tag_array
from .types import PostResponse
from .utils import unique_in_order

if TYPE_CHECKING:  # pragma: no cover
    from .cache import QueryCache
    from .zoning import ZoningFilter

POSTS_PATH = "/posts"
FEED_STALE_TIME_MS = 30_000

_logger = logging.getLogger(__name__)


def build_feed_query(
    selected_tag_ids: Sequence[str],
    excluded_tag_ids: Sequence[str],
    search_text: Optional[str] = None,
) -> QueryKey:
    """Build the ``/posts`` query key, leaving out empty filters."""
    params: dict[str, Any] = {}
    if selected_tag_ids:
        params["tagIds"] = [str(tag_id) for tag_id in selected_tag_ids]
    if excluded_tag_ids:
        params["excludeTagIds"] = [str(tag_id) for tag_id in excluded_tag_ids]
    if search_text is not None and search_text.strip():
        params["search"] = search_text.strip()
    return QueryKey(POSTS_PATH, params or None)


class TagSelection:
    """Ordered set of tag ids picked in a filter bar."""

    def __init__(self, tag_ids: Iterable[str] = ()) -> None:
        self._selected: list[str] = unique_in_order(str(tag_id) for tag_id in tag_ids)

    @property
    def selected(self) -> list[str]:
        return list(self._selected)

    def toggle(self, tag_id: object) -> None:
        tag_id = str(tag_id)
        if tag_id in self._selected:
            self._selected = [existing for existing in self._selected if existing != tag_id]
        else:
            self._selected = [*self._selected, tag_id]

    def clear_all(self) -> list[str]:
        """Toggle every selected tag off.

        Returns the ids that were toggled, in order, so the same toggles can
        be replayed to restore the selection.
        """
        toggled = list(self._selected)
        for tag_id in toggled:
            self.toggle(tag_id)
        return toggled

    def __contains__(self, tag_id: object) -> bool:
        return str(tag_id) in self._selected

    def __len__(self) -> int:
        return len(self._selected)

    def __iter__(self):
        return iter(list(self._selected))


def _normalize_post(item: Mapping[str, Any]) -> PostResponse | None:
    post_id = item.get("id")
    if post_id is None or post_id == "":
        return None
    post = dict(item)
    post["id"] = str(post_id)
    post["tags"] = to_tag_array(item.get("tags"))
    if not isinstance(post.get("user"), Mapping):
        post["user"] = {}
    post.setdefault("caption", None)
    return post  # type: ignore[return-value]


def to_post_array(raw: object) -> list[PostResponse]:
    """Normalize any post payload shape to a list of posts.

    Accepts a bare list or a dict wrapping it under ``data`` or ``posts``.
    Each post's tags go through :func:`kakumiru.taxonomy.to_tag_array`.
    """
    if isinstance(raw, list):
        items = raw
    elif isinstance(raw, Mapping):
        items = next((raw[field] for field in ("data", "posts") if isinstance(raw.get(field), list)), [])
    else:
        items = []

    posts: list[PostResponse] = []
    for item in items:
        post = _normalize_post(item) if isinstance(item, Mapping) else None
        if post is None:
            _logger.warning("Dropping malformed post entry: %r", item)
            continue
        posts.append(post)
    return posts


def visible_posts(posts: Iterable[PostResponse], excluded_tag_ids: Iterable[str]) -> list[PostResponse]:
    """Return posts that carry none of the excluded tags."""
    excluded = {str(tag_id) for tag_id in excluded_tag_ids}
    if not excluded:
        return list(posts)
    return [
        post for post in posts
        if not any(str(tag.get("id")) in excluded for tag in post.get("tags") or [])
    ]


class PostFeed:
    """Reads the post feed through the shared cache.

    Parameters
    ----------
    cache
        Query cache used for the ``/posts`` reads.
    zoning
        Optional zoning filter; its committed exclusions are sent as
        ``excludeTagIds`` and also applied client-side.
    """

    def __init__(self, cache: "QueryCache", zoning: Optional["ZoningFilter"] = None) -> None:
        self._cache = cache
        self.zoning = zoning

    def excluded_ids(self) -> list[str]:
        if self.zoning is None or not self.zoning.loaded:
            return []
        return self.zoning.committed

    def query(self, selection: Iterable[str] = (), search: Optional[str] = None) -> QueryKey:
        return build_feed_query(list(selection), self.excluded_ids(), search)

    def read(self, selection: Iterable[str] = (), search: Optional[str] = None) -> list[PostResponse]:
        """Return the visible posts for a selection. Read errors propagate."""
        excluded = self.excluded_ids()
        key = build_feed_query(list(selection), excluded, search)
        raw = self._cache.read(key, FEED_STALE_TIME_MS)
        return visible_posts(to_post_array(raw), excluded)


__all__ = [
    "FEED_STALE_TIME_MS",
    "POSTS_PATH",
    "PostFeed",
    "TagSelection",
    "build_feed_query",
    "to_post_array",
    "visible_posts",
]
