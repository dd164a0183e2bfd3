"""Core Kakumiru client: request gateway, shared cache and resources."""

from __future__ import annotations

import json as jsonlib
import logging
import os
import re
from typing import Any, Callable, Mapping, Optional

import requests

from .cache import QueryCache
from .errors import ApiError, UnauthorizedError
from .feed import PostFeed
from .resources.auth import Auth
from .resources.favorites import Favorites
from .resources.posts import Posts
from .resources.tags import Tags
from .resources.zoning import Zoning

DEFAULT_BASE_URL = os.environ.get("KAKUMIRU_API_BASE_URL", "http://localhost:5000").rstrip("/")
DEFAULT_STALE_TIME_MS = int(os.environ.get("KAKUMIRU_STALE_TIME_MS", "30000"))
API_PREFIX = "/api"

Notify = Callable[[str, str], None]

_ABSOLUTE_URL = re.compile(r"^https?://", re.IGNORECASE)


class Kakumiru:
    """Resource-grouped client for the Kakumiru API."""

    tags: Tags
    posts: Posts
    favorites: Favorites
    zoning: Zoning
    auth: Auth

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        session: Optional[requests.Session] = None,
        default_timeout: Optional[float] = None,
        stale_time_ms: Optional[int] = None,
        notify: Optional[Notify] = None,
        on_unauthorized: Optional[Callable[[str], None]] = None,
        max_workers: int = 4,
    ) -> None:
        """Create a Kakumiru client bound to an API instance.

        Parameters
        ----------
        base_url
            Server origin, e.g. ``https://kakumiru.example``. The ``/api``
            prefix is added per request.
        session
            Optional requests session. Its cookie jar carries the login.
        default_timeout
            Default request timeout in seconds. ``None`` waits indefinitely.
        stale_time_ms
            Default cache stale time in milliseconds.
        notify
            Callable receiving ``(kind, message)`` for user-facing outcomes,
            with ``kind`` one of ``"success"`` or ``"error"``.
        on_unauthorized
            Callable receiving the login URL when a mutation needs a login.
        max_workers
            Worker threads for background cache reads.
        """
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self.default_timeout = default_timeout
        self._logger = logging.getLogger(__name__)
        self._session = session or requests.Session()
        self._notify = notify
        self._on_unauthorized = on_unauthorized

        self.cache = QueryCache(
            self._fetch,
            stale_time_ms=DEFAULT_STALE_TIME_MS if stale_time_ms is None else stale_time_ms,
            max_workers=max_workers,
        )
        self.tags: Tags = Tags(self)
        self.zoning: Zoning = Zoning(self)
        self.feed = PostFeed(self.cache, self.zoning.filter)
        self.posts: Posts = Posts(self)
        self.favorites: Favorites = Favorites(self)
        self.auth: Auth = Auth(self)

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------
    def build_url(self, path: str) -> str:
        """Return the absolute URL for ``path``."""
        if _ABSOLUTE_URL.match(path):
            return path
        if not path.startswith("/"):
            path = "/" + path
        if path != API_PREFIX and not path.startswith(API_PREFIX + "/"):
            path = API_PREFIX + path
        return f"{self.base_url}{path}"

    @property
    def login_url(self) -> str:
        return self.build_url("/auth/google")

    def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """Send a request to the Kakumiru API.

        Parameters
        ----------
        method
            HTTP method (GET, POST, DELETE).
        path
            Endpoint path, with or without a leading ``/api``, or an absolute URL.
        json
            JSON payload. Sets ``Content-Type: application/json`` unless the
            caller supplied a content type.
        headers
            Extra request headers.
        timeout
            Timeout in seconds for this request.

        Returns
        -------
        Any
            Parsed JSON for JSON responses, the text body otherwise, or
            ``None`` for ``204 No Content``.

        Raises
        ------
        UnauthorizedError
            The API answered 401.
        ApiError
            Any other non-2xx answer, or no answer at all.
        """
        url = self.build_url(path)
        request_headers = dict(headers or {})
        body: Optional[bytes] = None
        if json is not None:
            if not any(name.lower() == "content-type" for name in request_headers):
                request_headers["Content-Type"] = "application/json"
            body = _dumps(json)

        try:
            response = self._session.request(
                method,
                url,
                data=body,
                headers=request_headers,
                timeout=timeout if timeout is not None else self.default_timeout,
            )
        except requests.RequestException as exc:
            self._logger.warning("Request failed for %s %s: %s", method, url, exc)
            raise ApiError(str(exc)) from exc

        if response.status_code == 204:
            return None

        content_type = response.headers.get("Content-Type", "")
        if not 200 <= response.status_code < 300:
            message = _error_message(response, content_type)
            self._logger.warning("Request failed for %s %s: %s", method, url, message)
            if response.status_code == 401:
                raise UnauthorizedError(message, status=401)
            raise ApiError(message, status=response.status_code)

        if "application/json" in content_type:
            try:
                return response.json()
            except ValueError as exc:
                self._logger.warning("Response from %s %s was not valid JSON", method, url)
                raise ApiError(f"Invalid JSON from {url}", status=response.status_code) from exc
        return response.text

    def _fetch(self, url: str) -> Any:
        return self.request("GET", url)

    # ------------------------------------------------------------------
    # Notification side channel
    # ------------------------------------------------------------------
    def notify(self, kind: str, message: str) -> None:
        if self._notify is not None:
            self._notify(kind, message)
        elif kind == "error":
            self._logger.warning("%s", message)
        else:
            self._logger.info("%s", message)

    def handle_mutation_error(self, exc: Exception, fallback: str) -> None:
        """Report a failed mutation to the user before it propagates."""
        if isinstance(exc, UnauthorizedError):
            self.notify("error", "login required")
            if self._on_unauthorized is not None:
                self._on_unauthorized(self.login_url)
            else:
                self._logger.info("Login required; redirect to %s", self.login_url)
            return
        message = exc.message if isinstance(exc, ApiError) and exc.message else fallback
        self.notify("error", message)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def close(self) -> None:
        self.cache.close()
        self._session.close()

    def __enter__(self) -> "Kakumiru":
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()


def _dumps(payload: Any) -> bytes:
    return jsonlib.dumps(payload, ensure_ascii=False).encode("utf-8")


def _error_message(response: requests.Response, content_type: str) -> str:
    fallback = f"{response.status_code} {response.reason}"
    if "application/json" not in content_type:
        return fallback
    try:
        error_body = response.json()
    except ValueError:  # Response wasn't JSON after all
        return fallback
    if isinstance(error_body, dict):
        # Try common error message fields
        for field in ("message", "error", "detail"):
            value = error_body.get(field)
            if isinstance(value, str) and value:
                return value
    return fallback
