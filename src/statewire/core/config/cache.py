"""Centralized configuration caching.

Provides a single source of truth for loaded configuration across all domain
configs. Cache keys include the repo root, ``STATEWIRE_*`` environment
variables and project overlay mtimes so mutated env/config is never served
stale.
"""
from __future__ import annotations

import hashlib
import os
from pathlib import Path
from typing import Any, Dict, Optional

from statewire.data import clear_caches as clear_data_caches

from .manager import ENV_PREFIX, PROJECT_CONFIG_DIRNAME, ConfigManager, iter_yaml_files

_config_cache: Dict[str, Dict[str, Any]] = {}


def _normalize_repo_root(repo_root: Optional[Path]) -> Path:
    return (repo_root or Path.cwd()).expanduser().resolve()


def _cache_key(repo_root: Path) -> str:
    env_items = sorted(
        (k, os.environ.get(k, "")) for k in os.environ.keys() if k.startswith(ENV_PREFIX)
    )
    env_fp = hashlib.sha256(repr(env_items).encode("utf-8")).hexdigest()[:12]

    files = []
    for p in iter_yaml_files(repo_root / PROJECT_CONFIG_DIRNAME / "config"):
        st = p.stat()
        files.append((p.name, int(st.st_mtime_ns), int(st.st_size)))
    cfg_fp = hashlib.sha256(repr(files).encode("utf-8")).hexdigest()[:12]

    return f"{repo_root}:env={env_fp}:cfg={cfg_fp}"


def get_cached_config(repo_root: Optional[Path] = None, validate: bool = True) -> Dict[str, Any]:
    """Get configuration with caching.

    Args:
        repo_root: Project root path. Uses the current directory if None.
        validate: Whether to validate against the bundled schema on a miss.

    Returns:
        Configuration dictionary (cached).
    """
    root = _normalize_repo_root(repo_root)
    key = _cache_key(root)
    if key not in _config_cache:
        _config_cache[key] = ConfigManager(repo_root=root).load_config(validate=validate)
    return _config_cache[key]


def clear_all_caches() -> None:
    """Drop every cached configuration and the bundled YAML read cache."""
    _config_cache.clear()
    clear_data_caches()


__all__ = ["get_cached_config", "clear_all_caches"]
