"""Service kind tagging.

A service definition pairs an executor (which maps context/event to call
arguments) with the protocol the engine uses once the concrete service runs:

- ``promise``: a single resolved value (or awaitable)
- ``callback``: returns a callable that streams events
- ``machine``: returns a nested ``StateMachine``

```python
services = {
    "fetch_user": service_types.Promise(lambda ctx, e: [ctx["user_id"]]),
    "ticker": service_types.Callback(lambda ctx, e: [ctx["interval"]]),
}
```
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import SimpleNamespace
from typing import Any, Callable, Mapping

Executor = Callable[[Mapping[str, Any], Mapping[str, Any]], Any]


class ServiceKind(str, Enum):
    PROMISE = "promise"
    CALLBACK = "callback"
    MACHINE = "machine"


@dataclass(frozen=True)
class ServiceDefinition:
    """Kind-tagged executor; the kind is fixed at declaration."""

    kind: ServiceKind
    executor: Executor


@dataclass(frozen=True)
class ConnectedService:
    """A service handler bound to an implementation, still carrying its kind."""

    kind: ServiceKind
    handler: Callable[[Mapping[str, Any], Mapping[str, Any]], Any]

    def __call__(self, context: Mapping[str, Any], event: Mapping[str, Any]) -> Any:
        return self.handler(context, event)


def _tagger(kind: ServiceKind) -> Callable[[Executor], ServiceDefinition]:
    def tag(executor: Executor) -> ServiceDefinition:
        return ServiceDefinition(kind=kind, executor=executor)

    tag.__name__ = kind.value.capitalize()
    return tag


def get_service_types() -> SimpleNamespace:
    """Return the ``Promise``/``Callback``/``Machine`` constructors."""
    return SimpleNamespace(
        Promise=_tagger(ServiceKind.PROMISE),
        Callback=_tagger(ServiceKind.CALLBACK),
        Machine=_tagger(ServiceKind.MACHINE),
    )


service_types = get_service_types()


__all__ = [
    "ConnectedService",
    "Executor",
    "ServiceDefinition",
    "ServiceKind",
    "get_service_types",
    "service_types",
]
