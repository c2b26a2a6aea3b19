"""Event logger for the chat client."""

from __future__ import annotations

import logging
import os
import sys
from typing import TextIO

_EVENT_NAME_WIDTH = 32
_PREFIX_WIDTH = 24


def _supports_color(stream: TextIO) -> bool:
    try:
        return stream.isatty()
    except Exception:  # pragma: no cover
        return False


def _debug_env_enabled() -> bool:
    return os.environ.get("DEBUG", "false").lower() in ("true", "1", "yes")


class SimpleFormatter(logging.Formatter):
    LEVEL_COLORS = {
        logging.DEBUG: "\x1b[36m",
        logging.INFO: "\x1b[32m",
        logging.WARNING: "\x1b[33m",
        logging.ERROR: "\x1b[31m",
        logging.CRITICAL: "\x1b[35m",
    }
    RESET = "\x1b[0m"

    def __init__(self) -> None:
        super().__init__()
        self.enable_color = _supports_color(sys.stdout)

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401 (simple override)
        msg = record.getMessage()
        # Longest built-in level name: 'CRITICAL' (8 chars).
        raw_level = record.levelname.ljust(8)
        if self.enable_color:
            color = self.LEVEL_COLORS.get(record.levelno, "")
            return f"{color}{raw_level}{self.RESET} {msg}"
        return f"{raw_level} {msg}"


class ClientLogger:
    """Structured event logger.

    Events are addressed by ``(domain, action)``. The human readable text
    comes from the event template catalog, formatted with the keyword
    fields; unknown events get a derived ``"domain: action"`` text. With
    ``DEBUG`` enabled the event name and every field are appended.
    """

    def __init__(self, name: str = "twitch_irc", log_file: str | None = None) -> None:
        self.logger = logging.getLogger(name)
        self.log_file = log_file
        self.logger.handlers.clear()
        self.logger.propagate = False
        self.logger.setLevel(logging.DEBUG if _debug_env_enabled() else logging.INFO)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(SimpleFormatter())
        self.logger.addHandler(console_handler)

        if log_file:
            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(
                logging.Formatter(
                    "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
                )
            )
            self.logger.addHandler(file_handler)

    def log_event(
        self,
        domain: str,
        action: str,
        level: int = logging.INFO,
        human: str | None = None,
        *,
        exc_info: bool = False,
        **kwargs: object,
    ) -> None:
        event_name = f"{domain}_{action}".lower()
        human_text = human
        derived = False
        if human_text is None:
            # Local import: the catalog may be reloaded at runtime.
            from .event_catalog import EVENT_TEMPLATES as _event_templates

            template = _event_templates.get((domain, action))
            if template:
                try:
                    human_text = template.format(**kwargs)
                except Exception:  # noqa: BLE001
                    human_text = template
            else:
                human_text = f"{domain.replace('_', ' ')}: {action.replace('_', ' ')}"
                derived = True
        kwargs.setdefault("_human_text", human_text)
        if derived:
            kwargs.setdefault("derived", True)
        self._log(level, event_name, exc_info=exc_info, **kwargs)

    def _log(
        self, level: int, event_name: str, exc_info: bool = False, **kwargs: object
    ) -> None:
        kw: dict[str, object] = dict(kwargs)
        user, channel, human_text = self._extract_reserved(kw)
        prefix = self._build_prefix(user, channel)
        msg = (
            self._build_debug_message(event_name, prefix, human_text, channel, kw)
            if _debug_env_enabled()
            else self._build_concise_message(event_name, prefix, human_text, channel)
        )
        self.logger.log(level, msg, exc_info=exc_info)

    @staticmethod
    def _extract_reserved(
        kwargs: dict[str, object],
    ) -> tuple[str | None, str | None, str | None]:
        user_o = kwargs.pop("user", None)
        channel_o = kwargs.pop("channel", None)
        human_text_o = kwargs.pop("_human_text", None)
        user = user_o if isinstance(user_o, str) else None
        channel = channel_o if isinstance(channel_o, str) else None
        human_text = human_text_o if isinstance(human_text_o, str) else None
        return user, channel, human_text

    @staticmethod
    def _build_prefix(user: str | None, channel: str | None) -> str:
        user_label = user or "anonymous"
        core = f"{user_label}#{channel}" if channel else user_label
        padded = core.ljust(_PREFIX_WIDTH)[:_PREFIX_WIDTH]
        return f"[{padded}]"

    @staticmethod
    def _chat_line(event_name: str, human_text: str | None, channel: str | None) -> str | None:
        # Chat lines read as "💬 #channel author: message".
        if event_name != "chat_privmsg" or not human_text:
            return human_text
        body = human_text[1:].lstrip() if human_text.startswith("💬") else human_text
        return f"💬 #{channel} {body}" if channel else f"💬 {body}"

    @classmethod
    def _build_debug_message(
        cls,
        event_name: str,
        prefix: str,
        human_text: str | None,
        channel: str | None,
        kwargs: dict[str, object],
    ) -> str:
        human_text = cls._chat_line(event_name, human_text, channel)
        context = ", ".join(f"{k}={v}" for k, v in kwargs.items())
        if len(event_name) <= _EVENT_NAME_WIDTH:
            ev = event_name.ljust(_EVENT_NAME_WIDTH)
        else:
            ev = event_name[: _EVENT_NAME_WIDTH - 1] + "…"
        base = f"{ev} {prefix}"
        if human_text:
            base = f"{base} {human_text}"
        if context:
            base = f"{base} ({context})"
        return base

    @classmethod
    def _build_concise_message(
        cls, event_name: str, prefix: str, human_text: str | None, channel: str | None
    ) -> str:
        human_text = cls._chat_line(event_name, human_text, channel)
        return f"{prefix} {human_text or event_name}"


logger = ClientLogger()
