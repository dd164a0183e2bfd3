"""Query keys and their translation to request URLs.

A query key is a ``(path, params)`` pair. ``resolve`` turns it into the
URL that is both sent to the API and used as the cache key, so two keys are
equal exactly when they resolve to the same string.
"""

from __future__ import annotations

from typing import Any, Mapping, NamedTuple, Optional, Sequence, Union
from urllib.parse import urlencode

Scalar = Union[str, int, float, bool]
ParamValue = Union[Scalar, Sequence[Scalar], None]
Params = Mapping[str, ParamValue]


class QueryKey(NamedTuple):
    """Declarative descriptor for a cacheable read."""

    path: str
    params: Optional[Params] = None

    @property
    def url(self) -> str:
        return resolve(self.path, self.params)


KeyLike = Union[QueryKey, str, Sequence[Any]]


def _format_value(value: Scalar) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _query_pairs(params: Params) -> list[tuple[str, str]]:
    pairs: list[tuple[str, str]] = []
    for name, value in params.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            pairs.extend((name, _format_value(item)) for item in value if item is not None)
        else:
            pairs.append((name, _format_value(value)))
    return pairs


def resolve(path: str, params: Optional[Params] = None) -> str:
    """Resolve a query key to a URL.

    Parameters
    ----------
    path
        Request path, optionally carrying its own query string.
    params
        Query parameters. ``None`` values are dropped, list and tuple values
        expand to one repeated parameter per element in order.

    Returns
    -------
    str
        ``path`` when there is nothing to append, otherwise ``path`` joined
        with the encoded query by ``?`` (or ``&`` when ``path`` already has one).
    """
    if not params:
        return path
    query = urlencode(_query_pairs(params))
    if not query:
        return path
    separator = "&" if "?" in path else "?"
    return f"{path}{separator}{query}"


def normalize_key(key: KeyLike) -> QueryKey:
    """Coerce a path string or ``(path, params)`` pair into a :class:`QueryKey`."""
    if isinstance(key, QueryKey):
        return key
    if isinstance(key, str):
        return QueryKey(key)
    if isinstance(key, Sequence) and 1 <= len(key) <= 2 and isinstance(key[0], str):
        params = key[1] if len(key) == 2 else None
        if params is not None and not isinstance(params, Mapping):
            raise TypeError(f"Query params must be a mapping, got {type(params).__name__}")
        return QueryKey(key[0], params)
    raise TypeError(f"Unsupported query key: {key!r}")


__all__ = ["KeyLike", "Params", "QueryKey", "normalize_key", "resolve"]
