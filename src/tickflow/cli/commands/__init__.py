"""CLI command modules."""

from .config_cmd import config_app
from .demo import demo

__all__ = ["config_app", "demo"]
