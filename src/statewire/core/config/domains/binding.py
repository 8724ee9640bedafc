"""Domain-specific configuration for machine factory binding.

This config controls:
- Whether missing action/service implementations are tolerated or fatal
- Whether missing implementations are logged as warnings

Environment overrides: ``STATEWIRE_binding_strictness=strict`` and
``STATEWIRE_binding__log_missing=false`` (double underscore, the key itself
contains one).
"""

from __future__ import annotations

from enum import Enum
from functools import cached_property

from ..base import BaseDomainConfig


class Strictness(str, Enum):
    """How connectors treat declared names without an implementation."""

    LENIENT = "lenient"
    STRICT = "strict"


class BindingConfig(BaseDomainConfig):
    def _config_section(self) -> str:
        return "binding"

    @cached_property
    def strictness(self) -> Strictness:
        return Strictness(str(self.section.get("strictness", Strictness.LENIENT.value)).lower())

    @cached_property
    def log_missing(self) -> bool:
        return bool(self.section.get("log_missing", True))


__all__ = ["BindingConfig", "Strictness"]
