"""
statewire configuration management (YAML only).

Precedence (in increasing order):
  1) Bundled defaults (``statewire/data/config/*.yaml``)
  2) Project overlays (``<repo_root>/.statewire/config/*.yaml``)
  3) Environment overrides (``STATEWIRE_*``)

Environment overrides:
- Path separator: ``__`` when present, otherwise single ``_``
  (e.g., ``STATEWIRE_binding_strictness=strict``). Keys that contain an
  underscore need the double form: ``STATEWIRE_binding__log_missing=false``
  sets ``binding.log_missing``, while ``STATEWIRE_binding_log_missing`` would
  set ``binding.log.missing``.
- Case handling: case-insensitive lookup against existing keys; new keys are
  created lowercase.
- Type coercion: bool/int/float/JSON-like strings are coerced.
"""
from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

import yaml

from statewire.core.exceptions import ConfigError
from statewire.core.utils.merge import deep_merge
from statewire.data import get_data_path

logger = logging.getLogger(__name__)

ENV_PREFIX = "STATEWIRE_"
PROJECT_CONFIG_DIRNAME = ".statewire"
CONFIG_SCHEMA = "config"


def iter_yaml_files(directory: Path) -> List[Path]:
    """Return ``*.yaml``/``*.yml`` files in ``directory`` in alphabetical order."""
    if not directory.is_dir():
        return []
    files = [p for p in directory.iterdir() if p.is_file() and p.suffix in (".yaml", ".yml")]
    return sorted(files, key=lambda p: p.name)


class ConfigManager:
    """Load, merge, and validate statewire configuration.

    Typical usage:

    ```python
    from statewire.core.config import ConfigManager
    mgr = ConfigManager()
    cfg = mgr.load_config(validate=True)
    ```

    Attributes:
        repo_root: Project root used to resolve overlay files.
        core_config_dir: Bundled defaults directory.
        project_config_dir: Project overlay directory.
    """

    def __init__(self, repo_root: Optional[Path] = None) -> None:
        self.repo_root = (repo_root or Path.cwd()).expanduser().resolve()
        self.core_config_dir = get_data_path("config")
        self.project_config_dir = self.repo_root / PROJECT_CONFIG_DIRNAME / "config"

    def load_yaml(self, path: Path) -> Dict[str, Any]:
        # Fail closed: configuration must never silently ignore invalid YAML.
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {path}: {exc}", context={"path": str(path)}) from exc
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(
                f"Config file {path} must contain a mapping at the top level",
                context={"path": str(path)},
            )
        return data

    def _load_directory(self, directory: Path, cfg: Dict[str, Any]) -> Dict[str, Any]:
        for path in iter_yaml_files(directory):
            logger.debug("Loading config overlay %s", path)
            cfg = deep_merge(cfg, self.load_yaml(path))
        return cfg

    def _as_bool(self, v: str) -> Optional[bool]:
        low = v.strip().lower()
        if low in {"true", "false"}:
            return low == "true"
        return None

    def _as_int(self, v: str) -> Optional[int]:
        if re.fullmatch(r"[-+]?\d+", v.strip() or " "):
            return int(v)
        return None

    def _as_float(self, v: str) -> Optional[float]:
        s = v.strip()
        if re.fullmatch(r"[-+]?\d*\.\d+", s) or re.fullmatch(r"[-+]?\d+\.\d*", s):
            return float(s)
        return None

    def _as_json(self, v: str) -> Optional[Any]:
        s = v.strip()
        if (s.startswith("{") and s.endswith("}")) or (s.startswith("[") and s.endswith("]")):
            try:
                return json.loads(s)
            except json.JSONDecodeError:
                return None
        return None

    def _coerce_type(self, value: str) -> Any:
        for caster in (self._as_bool, self._as_int, self._as_float, self._as_json):
            result = caster(value)
            if result is not None:
                return result
        return value.strip()

    def _parse_env_key(self, raw: str) -> List[str]:
        segs = raw.split("__") if "__" in raw else raw.split("_")
        if any(seg == "" for seg in segs):
            raise ConfigError(f"Malformed {ENV_PREFIX}* key: empty segment in '{raw}'.")
        return [seg.lower() for seg in segs]

    def _iter_env_overrides(self) -> Iterator[Tuple[List[str], Any]]:
        for key in sorted(os.environ.keys()):
            if not key.startswith(ENV_PREFIX):
                continue
            raw = key[len(ENV_PREFIX):]
            if not raw:
                continue
            yield self._parse_env_key(raw), self._coerce_type(os.environ[key])

    def _set_nested(self, root: Dict[str, Any], path: List[str], value: Any) -> None:
        cur: Dict[str, Any] = root
        for part in path[:-1]:
            candidates = {k.lower(): k for k in cur.keys() if isinstance(k, str)}
            key = candidates.get(part, part)
            nxt = cur.get(key)
            if nxt is None:
                nxt = cur[key] = {}
            if not isinstance(nxt, dict):
                raise ConfigError(f"Environment override path traverses non-mapping key '{key}'")
            cur = nxt
        candidates = {k.lower(): k for k in cur.keys() if isinstance(k, str)}
        cur[candidates.get(path[-1], path[-1])] = value

    def apply_env_overrides(self, cfg: Dict[str, Any]) -> None:
        for path, typed_value in self._iter_env_overrides():
            self._set_nested(cfg, path, typed_value)

    def validate_schema(self, config: Dict[str, Any], schema_name: str = CONFIG_SCHEMA) -> None:
        from statewire.core.schemas.validation import validate_payload

        validate_payload(config, schema_name)

    def load_config(self, validate: bool = True) -> Dict[str, Any]:
        """Load and merge all configuration layers.

        Args:
            validate: Validate the merged result against the bundled schema.

        Returns:
            Merged configuration dictionary.
        """
        cfg: Dict[str, Any] = {}
        cfg = self._load_directory(self.core_config_dir, cfg)
        cfg = self._load_directory(self.project_config_dir, cfg)
        self.apply_env_overrides(cfg)
        if validate:
            self.validate_schema(cfg)
        return cfg


__all__ = ["ConfigManager", "iter_yaml_files", "ENV_PREFIX", "PROJECT_CONFIG_DIRNAME"]
