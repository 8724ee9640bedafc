"""Per-machine registries for guards, actions and services.

Each machine instance builds its own registries from its ``MachineOptions``;
nothing is registered globally, so two machines reconfigured from the same
definition never see each other's handlers.

Example usage:
    guards = GuardRegistry({"is_ready": lambda ctx, e: ctx["ready"]})
    guards.check("is_ready", {"ready": True}, {"type": "START"})  # True

    actions = ActionRegistry()
    actions.register("notify", notify_fn)
    actions.execute("notify", ctx, event)
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Generic, Mapping, Optional, TypeVar

from statewire.core.exceptions import StateTransitionError

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Callable[..., Any])


class HandlerRegistry(Generic[T], ABC):
    """Name -> handler mapping with a typed invocation hook."""

    kind = "handler"

    def __init__(self, handlers: Optional[Mapping[str, T]] = None) -> None:
        self._handlers: Dict[str, T] = {}
        for name, handler in (handlers or {}).items():
            self.register(name, handler)

    def register(self, name: str, handler: T) -> None:
        """Register a handler function."""
        if not callable(handler):
            raise TypeError(f"{self.kind} '{name}' must be callable")
        self._handlers[str(name)] = handler

    def add(self, name: str, handler: T) -> None:
        """Add a handler function (alias for register)."""
        self.register(name, handler)

    def get(self, name: str) -> Optional[T]:
        return self._handlers.get(name)

    def has(self, name: str) -> bool:
        return name in self._handlers

    def list_handlers(self) -> Dict[str, T]:
        return dict(self._handlers)

    @abstractmethod
    def _invoke(self, name: str, context: Mapping[str, Any], event: Mapping[str, Any]) -> Any:
        """Invoke a handler. Subclasses must implement."""


class GuardRegistry(HandlerRegistry[Callable[[Mapping[str, Any], Mapping[str, Any]], bool]]):
    """Guard predicates ``(context, event) -> bool``."""

    kind = "guard"

    def check(self, name: str, context: Mapping[str, Any], event: Mapping[str, Any]) -> bool:
        return self._invoke(name, context, event)

    def _invoke(self, name: str, context: Mapping[str, Any], event: Mapping[str, Any]) -> bool:
        handler = self.get(name)
        if handler is None:
            raise StateTransitionError(f"Unknown guard: {name}", context={"guard": name})
        return bool(handler(context, event))


class ActionRegistry(HandlerRegistry[Callable[[Mapping[str, Any], Mapping[str, Any]], Any]]):
    """Action handlers ``(context, event) -> Any``.

    Executing an unregistered action is a no-op: a machine built with a
    missing external action stays usable, only that action is inert.
    """

    kind = "action"

    def execute(self, name: str, context: Mapping[str, Any], event: Mapping[str, Any]) -> Any:
        return self._invoke(name, context, event)

    def _invoke(self, name: str, context: Mapping[str, Any], event: Mapping[str, Any]) -> Any:
        handler = self.get(name)
        if handler is None:
            logger.debug("Action '%s' has no handler; skipping", name)
            return None
        return handler(context, event)


class ServiceRegistry(HandlerRegistry[Callable[[Mapping[str, Any], Mapping[str, Any]], Any]]):
    """Service creators ``(context, event) -> result``, tagged with a kind."""

    kind = "service"

    def kind_of(self, name: str) -> Optional[str]:
        handler = self.get(name)
        if handler is None:
            return None
        kind = getattr(handler, "kind", "promise")
        return str(getattr(kind, "value", kind))

    def invoke(self, name: str, context: Mapping[str, Any], event: Mapping[str, Any]) -> Any:
        return self._invoke(name, context, event)

    def _invoke(self, name: str, context: Mapping[str, Any], event: Mapping[str, Any]) -> Any:
        handler = self.get(name)
        if handler is None:
            raise StateTransitionError(f"Unknown service: {name}", context={"service": name})
        return handler(context, event)


__all__ = [
    "HandlerRegistry",
    "GuardRegistry",
    "ActionRegistry",
    "ServiceRegistry",
]
