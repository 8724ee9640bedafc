"""Shallow context merge for machine factories."""
from __future__ import annotations

from typing import Any, Dict, Mapping, Optional


def merge_context(
    base: Optional[Mapping[str, Any]],
    extension: Optional[Mapping[str, Any]],
) -> Dict[str, Any]:
    """Return ``base`` with ``extension`` keys laid over it.

    Only top-level keys are merged: a nested mapping in ``extension`` replaces
    the one in ``base`` wholesale. Neither input is mutated.
    """
    merged: Dict[str, Any] = dict(base or {})
    for key, value in (extension or {}).items():
        merged[key] = value
    return merged


__all__ = ["merge_context"]
