"""Tag categories and the rules built on them.

Every tag belongs to exactly one of four categories. A post must carry at
least one ``classification`` tag before it can be published.

The API speaks in Japanese category labels (``分類``, ``角度``, ``パーツ``,
``自由``); this module maps them to the English names used in Python and
back. Anything unrecognised is treated as ``free``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping

from .types import CATEGORIES, Category, TagResponse

_logger = logging.getLogger(__name__)

REQUIRED_CATEGORY: Category = "classification"
FALLBACK_CATEGORY: Category = "free"
MISSING_CLASSIFICATION_REASON = "at least one classification tag required"
DEFAULT_TAG_NAME = "タグ"

CATEGORY_LABELS: dict[Category, str] = {
    "classification": "分類",
    "angle": "角度",
    "part": "パーツ",
    "free": "自由",
}
_LABEL_TO_CATEGORY: dict[str, Category] = {label: name for name, label in CATEGORY_LABELS.items()}

# How many tags of each category the filter bar shows before "show more".
FEATURED_LIMITS: tuple[tuple[Category, int], ...] = (
    ("classification", 5),
    ("angle", 2),
    ("part", 2),
)


def normalize_category(value: object) -> Category:
    """Map a wire label or English name to a category, defaulting to ``free``."""
    if isinstance(value, str):
        stripped = value.strip()
        if stripped in _LABEL_TO_CATEGORY:
            return _LABEL_TO_CATEGORY[stripped]
        lowered = stripped.lower()
        if lowered in CATEGORIES:
            return lowered  # type: ignore[return-value]
    return FALLBACK_CATEGORY


def category_label(category: object) -> str:
    """Return the API label for a category."""
    return CATEGORY_LABELS[normalize_category(category)]


def _unwrap_list(raw: object) -> list[Any]:
    if isinstance(raw, list):
        return raw
    if isinstance(raw, Mapping):
        for field in ("data", "tags"):
            value = raw.get(field)
            if isinstance(value, list):
                return value
    return []


def _normalize_tag(item: Mapping[str, Any], now: str) -> TagResponse | None:
    tag_id = item.get("id")
    if tag_id is None or tag_id == "":
        return None
    name = item.get("name")
    created_at = item.get("createdAt")
    return {
        "id": str(tag_id),
        "name": str(name) if name is not None else DEFAULT_TAG_NAME,
        "category": normalize_category(item.get("category")),
        "createdAt": str(created_at) if created_at is not None else now,
    }


def to_tag_array(raw: object) -> list[TagResponse]:
    """Normalize any tag payload shape to a list of well-formed tags.

    Parameters
    ----------
    raw
        A bare list of tags, or a dict wrapping the list under ``data`` or
        ``tags``. Anything else normalizes to an empty list.

    Returns
    -------
    list[TagResponse]
        Tags with string ids, a known category and a ``createdAt`` value.
        Non-dict items and items without an id are dropped.
    """
    items = _unwrap_list(raw)
    now = datetime.now(timezone.utc).isoformat()
    tags: list[TagResponse] = []
    dropped = 0
    for item in items:
        tag = _normalize_tag(item, now) if isinstance(item, Mapping) else None
        if tag is None:
            dropped += 1
            continue
        tags.append(tag)
    if dropped:
        _logger.warning("Dropped %d malformed tag entries.", dropped)
    return tags


def group_by_category(tags: Iterable[Mapping[str, Any]]) -> dict[Category, list[TagResponse]]:
    """Group tags by category, keeping source order within each group.

    All four categories are always present, in canonical order.
    """
    groups: dict[Category, list[TagResponse]] = {category: [] for category in CATEGORIES}
    for tag in tags:
        groups[normalize_category(tag.get("category"))].append(tag)  # type: ignore[arg-type]
    return groups


def tags_in(category: Category, tags: Iterable[Mapping[str, Any]]) -> list[TagResponse]:
    return group_by_category(tags)[normalize_category(category)]


def has_required_category(selected_ids: Iterable[str], tags: Iterable[Mapping[str, Any]]) -> bool:
    """Return True when the selection includes at least one classification tag."""
    selected = {str(tag_id) for tag_id in selected_ids}
    if not selected:
        return False
    return any(
        str(tag.get("id")) in selected and normalize_category(tag.get("category")) == REQUIRED_CATEGORY
        for tag in tags
    )


def featured_tags(tags: Iterable[Mapping[str, Any]]) -> list[TagResponse]:
    """Return the short tag list shown before the full list is expanded."""
    groups = group_by_category(tags)
    featured: list[TagResponse] = []
    for category, limit in FEATURED_LIMITS:
        featured.extend(groups[category][:limit])
    return featured


def filter_tags_by_name(tags: Iterable[Mapping[str, Any]], text: str | None) -> list[TagResponse]:
    """Return tags whose name contains ``text``, case-insensitively."""
    needle = (text or "").lower()
    return [tag for tag in tags if needle in str(tag.get("name", "")).lower()]  # type: ignore[misc]


__all__ = [
    "CATEGORIES",
    "CATEGORY_LABELS",
    "MISSING_CLASSIFICATION_REASON",
    "REQUIRED_CATEGORY",
    "category_label",
    "featured_tags",
    "filter_tags_by_name",
    "group_by_category",
    "has_required_category",
    "normalize_category",
    "tags_in",
    "to_tag_array",
]
