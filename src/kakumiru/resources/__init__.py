"""Resource module exports."""

from .auth import Auth
from .favorites import Favorites
from .posts import Posts
from .tags import Tags
from .zoning import Zoning

__all__ = [
    "Auth",
    "Favorites",
    "Posts",
    "Tags",
    "Zoning",
]
