"""Context-updating actions understood by the machine engine.

``assign`` produces an action that returns a new context instead of
performing a side effect. ``save_error`` is an ``assign`` that normalises
whatever error shape arrived with an event into ``{"code", "message"}``.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Union

# Event types produced by delayed ("after") transitions.
TIMEOUT_EVENT_PATTERN = re.compile(r"^(statewire\.)?after[.(]")

DEFAULT_ERROR_CODE = "UNKNOWN_ERROR"
DEFAULT_ERROR_MESSAGE = "An error occurred. Please try again."
TIMEOUT_ERROR = {"code": "TIMEOUT", "message": "Operation failed. Please try again."}

Updater = Union[
    Mapping[str, Any],
    Callable[[Mapping[str, Any], Mapping[str, Any]], Mapping[str, Any]],
]


@dataclass(frozen=True)
class AssignAction:
    """Action that produces an updated copy of the machine context."""

    updates: Updater

    def __call__(self, context: Mapping[str, Any], event: Mapping[str, Any]) -> Dict[str, Any]:
        if callable(self.updates):
            partial = self.updates(context, event)
        else:
            partial = {
                key: value(context, event) if callable(value) else value
                for key, value in self.updates.items()
            }
        return {**context, **(partial or {})}


def assign(updates: Updater) -> AssignAction:
    """Build a context update action.

    ``updates`` is either a mapping of key to value-or-``(context, event)``
    callable, or a single callable returning a partial context.
    """
    return AssignAction(updates)


def _field(source: Any, name: str) -> Any:
    if isinstance(source, Mapping):
        return source.get(name)
    return getattr(source, name, None)


def normalize_error(context: Mapping[str, Any], event: Mapping[str, Any]) -> Dict[str, str]:
    """Return ``{"code", "message"}`` describing the error carried by ``event``.

    Services that raise store the exception under ``data``; errors forwarded
    through the machine arrive under ``error``; any other event is treated as
    the error itself.
    """
    event_type = str(event.get("type") or "")
    if TIMEOUT_EVENT_PATTERN.match(event_type):
        return dict(TIMEOUT_ERROR)

    data = event.get("data")
    if isinstance(data, BaseException):
        err: Any = data
    else:
        err = event.get("error") or event

    code = _field(err, "code") or event_type or DEFAULT_ERROR_CODE
    if isinstance(err, BaseException):
        message = str(err)
    else:
        message = _field(err, "message")
    return {"code": str(code), "message": str(message or DEFAULT_ERROR_MESSAGE)}


save_error = assign({"error": normalize_error})


__all__ = [
    "AssignAction",
    "assign",
    "normalize_error",
    "save_error",
    "TIMEOUT_EVENT_PATTERN",
]
