"""Response shapes shared across the Kakumiru client."""

from __future__ import annotations

from typing import Literal, TypedDict, get_args
from typing_extensions import NotRequired, ReadOnly

# --- Tag Categories --- #
Category = Literal["classification", "angle", "part", "free"]
CATEGORIES: tuple[Category, ...] = get_args(Category)


class TagResponse(TypedDict):
    """Readonly tag dict, normalized by :func:`kakumiru.taxonomy.to_tag_array`."""
    id: ReadOnly[str]
    name: ReadOnly[str]
    category: ReadOnly[Category]
    createdAt: ReadOnly[str]


class UserResponse(TypedDict, total=False):
    """Readonly user dict embedded in posts and returned by ``/auth/user``."""
    id: ReadOnly[str]
    email: ReadOnly[str | None]
    firstName: ReadOnly[str | None]
    lastName: ReadOnly[str | None]
    name: ReadOnly[str]
    profileImageUrl: ReadOnly[str | None]
    avatarUrl: ReadOnly[str]
    createdAt: ReadOnly[str]
    updatedAt: ReadOnly[str]


class PostResponse(TypedDict):
    """Readonly post dict with its tags and author."""
    id: ReadOnly[str]
    userId: ReadOnly[str]
    imageUrl: ReadOnly[str]
    caption: ReadOnly[str | None]
    createdAt: ReadOnly[str]
    tags: ReadOnly[list[TagResponse]]
    user: ReadOnly[UserResponse]
    isFavorited: NotRequired[ReadOnly[bool]]


class CreatePostRequest(TypedDict):
    """Body sent to ``POST /posts``."""
    imageUrl: str
    tagIds: list[str]
    caption: NotRequired[str]


__all__ = [
    "CATEGORIES",
    "Category",
    "CreatePostRequest",
    "PostResponse",
    "TagResponse",
    "UserResponse",
]
