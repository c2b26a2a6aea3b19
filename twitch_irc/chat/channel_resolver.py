"""Channel directories resolving human readable names to channel identities.

Two implementations are provided:

- ``LoginChannelDirectory`` works offline; the identity of a channel is its
  normalized login, so ``"#Foo"``, ``"foo"`` and ``" FOO "`` are one channel.
- ``HelixChannelDirectory`` asks the Twitch Helix API and uses the
  broadcaster user id as identity.

Neither caches: every call resolves afresh.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from typing import Any

import aiohttp

from ..constants import (
    CHANNEL_LOOKUP_MAX_ATTEMPTS,
    HTTP_REQUEST_TIMEOUT_SECONDS,
    IRC_OAUTH_PREFIX,
    TWITCH_HELIX_BASE_URL,
)
from ..errors.handling import handle_api_error
from ..errors.internal import ChannelLookupError, InternalError
from ..irc.models import Channel, normalize_channel_name
from ..utils.retry import RetryExhaustedError, retry_async

logger = logging.getLogger(__name__)

_LOGIN_RE = re.compile(r"^[a-z0-9_]{1,25}$")


def _checked_login(name: str) -> str:
    login = normalize_channel_name(name)
    if not _LOGIN_RE.fullmatch(login):
        raise ChannelLookupError(name, f"Invalid channel name: {name!r}")
    return login


class LoginChannelDirectory:
    """Resolves names locally, optionally restricted to a known set."""

    def __init__(self, known: Iterable[str] | None = None) -> None:
        self._known = (
            {normalize_channel_name(n) for n in known} if known is not None else None
        )

    async def resolve(self, name: str) -> Channel:
        login = _checked_login(name)
        if self._known is not None and login not in self._known:
            raise ChannelLookupError(name)
        return Channel(id=login, name=login)


class HelixChannelDirectory:
    """Resolves channel names through Helix ``GET /users``.

    Transient network failures are retried a few times; anything that still
    fails, and logins Helix does not know, surface as ``ChannelLookupError``.

    Attributes:
        BASE_URL (str): Helix API base URL.
    """

    BASE_URL = TWITCH_HELIX_BASE_URL

    def __init__(
        self,
        session: aiohttp.ClientSession,
        client_id: str,
        access_token: str,
        *,
        max_attempts: int = CHANNEL_LOOKUP_MAX_ATTEMPTS,
        retry_wait_multiplier: float = 1.0,
    ) -> None:
        """Initialize the directory.

        Args:
            session (aiohttp.ClientSession): Session used for requests.
            client_id (str): Twitch application client ID.
            access_token (str): OAuth access token, with or without ``oauth:``.
            max_attempts (int): Attempts per lookup on network errors.
            retry_wait_multiplier (float): Exponential backoff multiplier.

        Raises:
            ValueError: If session, client_id or access_token is missing.
        """
        if not session:
            raise ValueError("aiohttp session required")
        if not client_id or not access_token:
            raise ValueError("client_id and access_token are required")
        self._session = session
        self._client_id = client_id
        self._access_token = access_token.removeprefix(IRC_OAUTH_PREFIX)
        self._max_attempts = max_attempts
        self._retry_wait_multiplier = retry_wait_multiplier

    def _auth_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._access_token}",
            "Client-Id": self._client_id,
        }

    async def resolve(self, name: str) -> Channel:
        login = _checked_login(name)
        context = f"Helix GET users login={login}"

        async def _attempt() -> dict[str, Any] | None:
            return await handle_api_error(lambda: self._fetch_user(login), context)

        try:
            row = await retry_async(
                _attempt,
                self._max_attempts,
                wait_multiplier=self._retry_wait_multiplier,
            )
        except RetryExhaustedError as e:
            raise ChannelLookupError(
                name, f"Channel lookup for {name!r} failed: Twitch API unreachable"
            ) from e
        except InternalError as e:
            raise ChannelLookupError(
                name, f"Channel lookup for {name!r} failed: {str(e)}"
            ) from e

        if row is None:
            raise ChannelLookupError(name)
        logger.debug(f"Resolved channel {login} -> {row['id']}")
        return Channel(
            id=str(row["id"]),
            name=str(row.get("login", login)).lower(),
            display_name=row.get("display_name"),
        )

    async def _fetch_user(self, login: str) -> dict[str, Any] | None:
        url = f"{self.BASE_URL}/users"
        async with self._session.get(
            url,
            headers=self._auth_headers(),
            params={"login": login},
            timeout=aiohttp.ClientTimeout(total=HTTP_REQUEST_TIMEOUT_SECONDS),
        ) as resp:
            logger.debug(f"🔍 Twitch API get_users status={resp.status} login={login}")
            resp.raise_for_status()
            payload = await resp.json()
        rows = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(rows, list):
            raise ValueError("Helix users response has no data list")
        for entry in rows:
            if isinstance(entry, dict) and isinstance(entry.get("id"), str):
                if str(entry.get("login", "")).lower() == login:
                    return entry
        return None
