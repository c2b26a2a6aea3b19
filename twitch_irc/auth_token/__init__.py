"""Chat credential sources."""

from .source import StaticCredentialSource  # noqa: F401

__all__ = ["StaticCredentialSource"]
