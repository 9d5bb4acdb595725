"""Auth cookie transport for the session manager."""

from __future__ import annotations

from fastapi import Request, Response

from festauth.core.config import Settings


class CookieTransport:
    """Reads the token from the request, writes it onto the response.

    A token written during the request is what later reads return, so a
    chain of operations inside one request sees its own changes.
    """

    _UNSET = object()

    def __init__(self, request: Request, response: Response, settings: Settings) -> None:
        self._request = request
        self._response = response
        self._name = settings.auth_cookie_name
        self._secure = settings.cookie_secure
        self._pending: object = self._UNSET

    def read(self) -> str | None:
        if self._pending is not self._UNSET:
            return self._pending  # type: ignore[return-value]
        return self._request.cookies.get(self._name)

    def write(self, token: str, max_age: int) -> None:
        self._pending = token
        self._response.set_cookie(
            key=self._name,
            value=token,
            max_age=max_age,
            path="/",
            httponly=True,
            secure=self._secure,
            samesite="lax",
        )

    def clear(self) -> None:
        self._pending = None
        self._response.delete_cookie(
            key=self._name,
            path="/",
            httponly=True,
            secure=self._secure,
            samesite="lax",
        )
