"""Base resource helpers."""

from __future__ import annotations

from typing import Any, Callable, Mapping, Optional, TYPE_CHECKING, TypeVar

from ..errors import ApiError
from ..query import KeyLike

if TYPE_CHECKING:  # pragma: no cover
    from ..client import Kakumiru

T = TypeVar("T")


class Resource:
    """Shared helpers for resource classes."""

    def __init__(self, client: "Kakumiru") -> None:
        self._client = client

    @property
    def _logger(self):
        return self._client._logger

    @property
    def _cache(self):
        return self._client.cache

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        return self._client.request(method, path, json=json, headers=headers, timeout=timeout)

    def _read(self, key: KeyLike, *, stale_time_ms: Optional[int] = None) -> Any:
        """Read ``key`` through the shared query cache."""
        return self._cache.read(key, stale_time_ms)

    def _post(self, path: str, *, json: Any = None, timeout: Optional[float] = None) -> Any:
        return self._request("POST", path, json=json, timeout=timeout)

    def _delete(self, path: str, *, json: Any = None, timeout: Optional[float] = None) -> Any:
        return self._request("DELETE", path, json=json, timeout=timeout)

    def _invalidate(self, *prefixes: str) -> None:
        for prefix in prefixes:
            self._cache.invalidate(prefix)

    def _mutate(self, send: Callable[[], T], *, invalidate: tuple[str, ...], failure: str) -> T:
        """Run a mutation, invalidate on success and report failures.

        The listed cache prefixes are dropped before this returns, so any
        read issued afterwards refetches.
        """
        try:
            result = send()
        except ApiError as exc:
            self._client.handle_mutation_error(exc, failure)
            raise
        self._invalidate(*invalidate)
        return result
