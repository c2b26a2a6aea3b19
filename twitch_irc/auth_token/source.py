"""Credential source backed by configured values."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..irc.models import Credential

if TYPE_CHECKING:  # pragma: no cover
    from ..config.model import ClientConfig


class StaticCredentialSource:
    """Hands out the same username/token pair on every request.

    Returns None when either part is missing, which the connection treats
    as a configuration error for the attempt at hand.
    """

    def __init__(self, username: str | None, token: str | None) -> None:
        self._username = (username or "").strip()
        self._token = (token or "").strip()

    @classmethod
    def from_config(cls, config: ClientConfig) -> StaticCredentialSource:
        return cls(config.username, config.access_token)

    async def get_chat_credential(self) -> Credential | None:
        if not self._username or not self._token:
            logging.debug("🔑 No chat credential configured")
            return None
        return Credential(token=self._token, username=self._username)
