"""Post resource wrapper."""

from __future__ import annotations

from typing import Any, Callable, Iterable, Optional, Sequence

from ..errors import ApiError, ValidationError
from ..feed import POSTS_PATH
from ..taxonomy import MISSING_CLASSIFICATION_REASON, has_required_category
from ..types import CreatePostRequest, PostResponse, TagResponse
from .base import Resource
from ._common_types import _normalize_id_sequence

IMAGE_REQUIRED_REASON = "image required"
TAG_REQUIRED_REASON = "at least one tag required"

Uploader = Callable[[Any], str]


class Posts(Resource):
    """Post feed reads and post creation."""

    def list(
        self,
        tag_ids: Iterable[str] = (),
        *,
        search: Optional[str] = None,
    ) -> list[PostResponse]:
        """Fetch the post feed for a tag selection.

        The user's committed zoning exclusions are applied automatically.
        Errors propagate; the feed is primary content.
        """
        return self._client.feed.read(tag_ids, search)

    def _validate(
        self,
        image: object,
        tag_ids: Sequence[str],
        tags: Optional[Sequence[TagResponse]],
    ) -> list[str]:
        if not image:
            raise ValidationError(IMAGE_REQUIRED_REASON)
        ids = _normalize_id_sequence(tag_ids)
        if ids is None:
            raise ValidationError(TAG_REQUIRED_REASON)
        if tags is None:
            tags = self._client.tags.list(degrade=False)
        if not has_required_category(ids, tags):
            raise ValidationError(MISSING_CLASSIFICATION_REASON)
        return ids

    def create(
        self,
        image_url: str,
        tag_ids: Sequence[str],
        *,
        caption: Optional[str] = None,
        tags: Optional[Sequence[TagResponse]] = None,
        timeout: Optional[float] = None,
    ) -> PostResponse | None:
        """Create a post from an already hosted image.

        Parameters
        ----------
        image_url
            Public URL of the uploaded image.
        tag_ids
            Tags to attach. At least one must be a classification tag.
        caption
            Optional caption; blank captions are omitted.
        tags
            Known tags used to check the classification rule. Defaults to
            the cached tag list; a failed tag read raises ``ApiError``.
        timeout
            Request timeout in seconds.

        Returns
        -------
        PostResponse or None
            The created post when the API returns it.

        Raises
        ------
        ValidationError
            Before any request, when the image or a classification tag is missing.
        ApiError
            When the API rejects the post.
        """
        ids = self._validate(image_url, tag_ids, tags)
        return self._send(image_url, ids, caption, timeout)

    def publish(
        self,
        image: Any,
        tag_ids: Sequence[str],
        uploader: Uploader,
        *,
        caption: Optional[str] = None,
        tags: Optional[Sequence[TagResponse]] = None,
        timeout: Optional[float] = None,
    ) -> PostResponse | None:
        """Upload ``image`` through ``uploader`` and create a post for it.

        Validation runs first, so an invalid post never reaches the image host.
        """
        ids = self._validate(image, tag_ids, tags)
        image_url = uploader(image)
        return self._send(image_url, ids, caption, timeout)

    def _send(
        self,
        image_url: str,
        tag_ids: list[str],
        caption: Optional[str],
        timeout: Optional[float],
    ) -> PostResponse | None:
        payload: CreatePostRequest = {"imageUrl": image_url, "tagIds": tag_ids}
        if caption is not None and caption.strip():
            payload["caption"] = caption.strip()

        def send() -> Any:
            response = self._post(POSTS_PATH, json=payload, timeout=timeout)
            if isinstance(response, dict) and response.get("ok") is False:
                raise ApiError(str(response.get("error") or "failed to create post"))
            return response

        response = self._mutate(send, invalidate=(POSTS_PATH,), failure="failed to create post")
        self._client.notify("success", "post uploaded")
        post = response.get("post") if isinstance(response, dict) else None
        if isinstance(post, dict):
            return post  # type: ignore[return-value]
        if isinstance(response, dict) and "id" in response:
            return response  # type: ignore[return-value]
        return None
