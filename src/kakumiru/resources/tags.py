"""Tag resource wrapper."""

from __future__ import annotations

from typing import Optional

from ..errors import ApiError
from ..taxonomy import category_label, group_by_category, to_tag_array
from ..types import Category, TagResponse
from .base import Resource
from ._common_types import ValidationMode

TAGS_PATH = "/tags"


class Tags(Resource):
    """Tag list and tag creation."""

    def list(self, *, degrade: bool = True, stale_time_ms: Optional[int] = None) -> list[TagResponse]:
        """Fetch all tags through the cache.

        Parameters
        ----------
        degrade
            When True a failed read is logged and returns an empty list, so
            tag pickers stay usable. When False the error propagates.
        stale_time_ms
            Cache stale time override in milliseconds.

        Returns
        -------
        list[TagResponse]
            Normalized tags.
        """
        try:
            response = self._read(TAGS_PATH, stale_time_ms=stale_time_ms)
        except ApiError as exc:
            if not degrade:
                raise
            self._logger.warning("Tag list unavailable, continuing without tags: %s", exc)
            return []
        return to_tag_array(response)

    def by_category(self, *, degrade: bool = True) -> dict[Category, list[TagResponse]]:
        """Fetch all tags grouped by category."""
        return group_by_category(self.list(degrade=degrade))

    def add(
        self,
        name: str,
        category: Category | str = "free",
        *,
        validation: ValidationMode = "warn",
        timeout: Optional[float] = None,
    ) -> TagResponse | None:
        """Create a new tag.

        Parameters
        ----------
        name
            Tag name; surrounding whitespace is stripped.
        category
            Tag category. Free-form tags created by users are ``"free"``.
        validation
            Validation mode: ``"off"`` sends inputs as-is, ``"warn"`` drops invalid
            inputs with warnings, and ``"strict"`` raises on invalid inputs.
        timeout
            Request timeout in seconds.

        Returns
        -------
        TagResponse or None
            Created tag, or ``None`` when the input was rejected or the
            response held no tag.
        """
        if validation != "off":
            if not isinstance(name, str) or not name.strip():
                if validation == "strict":
                    raise ValueError(f"Invalid tag name: {name!r}")
                self._logger.warning("Invalid tag name for add: %r", name)
                return None
            name = name.strip()

        payload = {"name": name, "category": category_label(category)}
        response = self._mutate(
            lambda: self._post(TAGS_PATH, json=payload, timeout=timeout),
            invalidate=(TAGS_PATH,),
            failure="failed to create tag",
        )
        data = response.get("data") if isinstance(response, dict) else None
        # The created tag comes back either wrapped in `data` or as the body itself.
        tags = to_tag_array([data if isinstance(data, dict) else response])
        if tags:
            return tags[0]
        self._logger.warning("Create tag response missing expected data. Response was %s", response)
        return None

