"""Public package surface for the Kakumiru Python client."""

from .cache import QueryCache, QueryObserver
from .client import DEFAULT_BASE_URL, Kakumiru
from .errors import ApiError, ConfigurationError, KakumiruError, UnauthorizedError, UploadError, ValidationError
from .feed import PostFeed, TagSelection, build_feed_query
from .query import QueryKey, resolve
from .uploads import ImageUploader
from .zoning import ZoningFilter

__all__ = [
    "ApiError",
    "ConfigurationError",
    "DEFAULT_BASE_URL",
    "ImageUploader",
    "Kakumiru",
    "KakumiruError",
    "PostFeed",
    "QueryCache",
    "QueryKey",
    "QueryObserver",
    "TagSelection",
    "UnauthorizedError",
    "UploadError",
    "ValidationError",
    "ZoningFilter",
    "build_feed_query",
    "resolve",
]
