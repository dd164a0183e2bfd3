"""Session identity resource wrapper."""

from __future__ import annotations

from typing import Optional

from ..errors import ApiError
from ..types import UserResponse
from .base import Resource

USER_PATH = "/auth/user"
LOGOUT_PATH = "/auth/logout"


class Auth(Resource):
    """Current user and logout. Login itself happens at the identity provider."""

    @property
    def login_url(self) -> str:
        return self._client.login_url

    def user(self, *, timeout: Optional[float] = None) -> UserResponse | None:
        """Return the logged-in user, or ``None`` when unauthenticated or unreachable."""
        try:
            response = self._request("GET", USER_PATH, timeout=timeout)
        except ApiError as exc:
            self._logger.info("No authenticated user: %s", exc)
            return None
        if isinstance(response, dict) and response:
            return response  # type: ignore[return-value]
        return None

    def is_authenticated(self) -> bool:
        return self.user() is not None

    def logout(self, *, timeout: Optional[float] = None) -> None:
        """End the session and drop every cached read."""
        self._mutate(
            lambda: self._post(LOGOUT_PATH, timeout=timeout),
            invalidate=(),
            failure="logout failed",
        )
        self._cache.clear()
