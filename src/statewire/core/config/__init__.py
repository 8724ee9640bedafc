"""statewire configuration: YAML layers, env overrides and domain accessors."""
from __future__ import annotations

from .base import BaseDomainConfig
from .cache import clear_all_caches, get_cached_config
from .domains import BindingConfig, Strictness
from .manager import ConfigManager

__all__ = [
    "BaseDomainConfig",
    "BindingConfig",
    "ConfigManager",
    "Strictness",
    "clear_all_caches",
    "get_cached_config",
]
