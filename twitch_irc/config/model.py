from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, Field, field_validator

from ..constants import IRC_OAUTH_PREFIX, TWITCH_IRC_WS_URL
from ..irc.models import normalize_channel_name


class ClientConfig(BaseModel):
    """Configuration of one chat client.

    Attributes:
        username: Twitch login used as IRC nick.
        access_token: OAuth access token (chat:read / chat:edit scopes).
        client_id: Twitch application client ID, enables Helix channel lookup.
        channels: Channels joined on start.
        server_url: Chat WebSocket endpoint.
    """

    username: str | None = Field(default=None, min_length=3, max_length=25)
    access_token: str | None = None
    client_id: str | None = None
    channels: list[str] = Field(default_factory=list)
    server_url: str = TWITCH_IRC_WS_URL

    @field_validator("username", mode="before")
    @classmethod
    def validate_username(cls, v: Any) -> str | None:
        if v is None:
            return None
        stripped = str(v).strip().lower()
        return stripped or None

    @field_validator("access_token", "client_id", mode="before")
    @classmethod
    def validate_secret(cls, v: Any) -> str | None:
        if v is None:
            return None
        stripped = str(v).strip()
        return stripped or None

    @field_validator("channels", mode="before")
    @classmethod
    def validate_channels(cls, v: Any) -> list[str]:
        """Normalize channels.

        Accepts a list or a comma separated string; strips whitespace and
        leading '#', lowercases, drops empty entries and deduplicates while
        keeping the configured order.
        """
        if v is None:
            return []
        if isinstance(v, str):
            v = v.split(",")
        if not isinstance(v, list):
            raise ValueError("channels must be a list or a comma separated string")
        validated = [
            normalize_channel_name(c) for c in v if isinstance(c, str) and c.strip()
        ]
        return list(dict.fromkeys(c for c in validated if c))

    @field_validator("server_url")
    @classmethod
    def validate_server_url(cls, v: str) -> str:
        if not v.startswith(("ws://", "wss://")):
            raise ValueError("server_url must be a ws:// or wss:// URL")
        return v

    @property
    def has_credential(self) -> bool:
        return bool(self.username and self.access_token)

    @property
    def has_helix_access(self) -> bool:
        return bool(self.client_id and self.access_token)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ClientConfig:
        return cls.model_validate(dict(data))

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)

    def redacted(self) -> dict[str, Any]:
        """Dictionary form safe for logging."""
        data = self.to_dict()
        token = data.get("access_token")
        if token:
            bare = token.removeprefix(IRC_OAUTH_PREFIX)
            data["access_token"] = f"{bare[:4]}…" if len(bare) > 4 else "…"
        return data
