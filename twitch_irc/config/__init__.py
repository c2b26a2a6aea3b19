"""Client configuration: pydantic model and JSON/environment loader."""

from .loader import ConfigLoader, load_config  # noqa: F401
from .model import ClientConfig  # noqa: F401

__all__ = ["ClientConfig", "ConfigLoader", "load_config"]
