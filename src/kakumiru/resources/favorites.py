"""Favorite resource wrapper."""

from __future__ import annotations

from typing import Optional
from urllib.parse import quote

from ..errors import ValidationError
from ..feed import POSTS_PATH, to_post_array
from ..types import PostResponse
from .base import Resource

FAVORITES_PATH = "/favorites"
USER_FAVORITES_PATH = "/user/favorites"


class Favorites(Resource):
    """The current user's favorite posts."""

    def list(self, *, stale_time_ms: Optional[int] = None) -> list[PostResponse]:
        """Fetch the current user's favorited posts. Errors propagate."""
        return to_post_array(self._read(USER_FAVORITES_PATH, stale_time_ms=stale_time_ms))

    def add(self, post_id: str, *, timeout: Optional[float] = None) -> None:
        """Favorite a post."""
        self._toggle("POST", post_id, timeout, "added to favorites")

    def remove(self, post_id: str, *, timeout: Optional[float] = None) -> None:
        """Remove a post from favorites."""
        self._toggle("DELETE", post_id, timeout, "removed from favorites")

    def set_favorited(self, post_id: str, favorited: bool, *, timeout: Optional[float] = None) -> None:
        if favorited:
            self.add(post_id, timeout=timeout)
        else:
            self.remove(post_id, timeout=timeout)

    def _toggle(self, method: str, post_id: str, timeout: Optional[float], done: str) -> None:
        if not isinstance(post_id, (str, int)) or not str(post_id).strip():
            raise ValidationError("post id required")
        path = f"{FAVORITES_PATH}/{quote(str(post_id), safe='')}"
        self._mutate(
            lambda: self._request(method, path, timeout=timeout),
            invalidate=(POSTS_PATH, FAVORITES_PATH, USER_FAVORITES_PATH),
            failure="favorite update failed",
        )
        self._client.notify("success", done)
