"""Cookie lookups and current-user helpers built on a cookie provider.

A cookie provider is anything exposing ``async get_all() -> list[Cookie]``
returning the cookies held for the platform's domain. The library only
consumes providers; ``MemoryCookieProvider`` is a minimal in-memory one.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from .errors import CookieNotFoundError, NoCookieProviderError, NoCsrfTokenError

CSRF_COOKIE = "bungled"
MEMBERSHIP_COOKIE = "bungleme"
LOCALE_COOKIE = "bungleloc"
AUTH_COOKIE = "bungleatk"

_LOCALE_RE = re.compile(r"&?lc=(.+?)(?:$|&)", re.IGNORECASE)


@dataclass(frozen=True)
class Cookie:
    name: str
    value: str
    session: bool = False


class CookieProvider(Protocol):
    async def get_all(self) -> list[Cookie]:
        ...


class MemoryCookieProvider:
    """Cookie provider backed by a plain list."""

    def __init__(self, cookies: Optional[list[Cookie]] = None):
        self.cookies = list(cookies or [])

    async def get_all(self) -> list[Cookie]:
        return list(self.cookies)


class Cookies:
    """Query the cookies exposed by a provider."""

    def __init__(self, provider: Optional[CookieProvider] = None):
        self.provider = provider

    async def get_matching(self, predicate: Callable[[Cookie], bool]) -> list[Cookie]:
        if self.provider is None:
            raise NoCookieProviderError()
        cookies = await self.provider.get_all()
        return [c for c in cookies if predicate(c)]

    async def get(self, name: str) -> Cookie:
        matches = await self.get_matching(lambda c: c.name == name)
        if not matches:
            raise CookieNotFoundError(f"No cookie named '{name}'", data=name)
        return matches[0]

    async def get_session_cookies(self) -> list[Cookie]:
        return await self.get_matching(lambda c: c.session)

    async def get_value(self, name: str) -> str:
        return (await self.get(name)).value


class CurrentUser:
    """Facts about the signed-in user, derived from cookies."""

    def __init__(self, cookies: Cookies):
        self.cookies = cookies

    async def authenticated(self) -> bool:
        """True when the auth cookie exists."""
        try:
            await self.cookies.get(AUTH_COOKIE)
        except CookieNotFoundError:
            return False
        return True

    async def exists(self) -> bool:
        """True when any platform cookie exists at all."""
        return bool(await self.cookies.get_matching(lambda c: True))

    async def get_csrf_token(self) -> str:
        """Return the X-CSRF token (value of the ``bungled`` cookie).

        Raises ``NoCsrfTokenError`` when the cookie is missing or empty and
        ``NoCookieProviderError`` when no provider is configured.
        """
        try:
            token = await self.cookies.get_value(CSRF_COOKIE)
        except CookieNotFoundError as e:
            raise NoCsrfTokenError() from e
        if not token:
            raise NoCsrfTokenError()
        return token

    async def get_membership_id(self) -> int:
        return int(await self.cookies.get_value(MEMBERSHIP_COOKIE), 10)

    async def get_locale(self) -> Optional[str]:
        """Return the locale stored in the locale cookie, or None if unknown."""
        try:
            raw = await self.cookies.get_value(LOCALE_COOKIE)
        except (CookieNotFoundError, NoCookieProviderError):
            return None
        match = _LOCALE_RE.search(raw)
        return match.group(1) if match else None
