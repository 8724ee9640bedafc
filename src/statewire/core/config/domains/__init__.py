"""Domain-specific configuration accessors."""
from __future__ import annotations

from .binding import BindingConfig, Strictness

__all__ = ["BindingConfig", "Strictness"]
