"""Reconcile declared action/service definitions with supplied implementations.

Both connectors walk the *definitions*: every declared name either gets a
handler bound to its implementation or is reported missing. Implementations
with no matching definition are ignored.

Missing names are tolerated by default (``Strictness.LENIENT``): they are
left out of the handler map, listed in ``ConnectionReport.warnings`` and
logged. Under ``Strictness.STRICT`` a ``MissingImplementationError`` naming
all of them is raised instead.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from ..config.domains.binding import BindingConfig, Strictness
from ..exceptions import MalformedDefinitionError, MissingImplementationError
from .calls import Args, as_call_plan, run_call_plan
from .services import ConnectedService, ServiceDefinition

logger = logging.getLogger(__name__)

Handler = Callable[[Mapping[str, Any], Mapping[str, Any]], Any]
ActionDefinition = Callable[[Mapping[str, Any], Mapping[str, Any]], Any]


@dataclass(frozen=True)
class ConnectionReport:
    """Connected handlers plus the diagnostics produced while connecting."""

    handlers: Mapping[str, Any] = field(default_factory=dict)
    warnings: Tuple[str, ...] = ()
    missing: Tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.missing


def _resolve_policy(strictness: Optional[Strictness], log_missing: Optional[bool]) -> Tuple[Strictness, bool]:
    if strictness is not None and log_missing is not None:
        return Strictness(strictness), log_missing
    cfg = BindingConfig()
    return (
        Strictness(strictness) if strictness is not None else cfg.strictness,
        cfg.log_missing if log_missing is None else log_missing,
    )


def _report(
    kind: str,
    handlers: Dict[str, Any],
    missing: List[str],
    strictness: Optional[Strictness],
    log_missing: Optional[bool],
) -> ConnectionReport:
    if not missing:
        return ConnectionReport(handlers=handlers)

    policy, log = _resolve_policy(strictness, log_missing)
    if policy is Strictness.STRICT:
        raise MissingImplementationError(kind, missing)

    warnings = tuple(f"{kind.capitalize()} '{name}' was not provided" for name in missing)
    if log:
        for message in warnings:
            logger.warning(message)
    return ConnectionReport(handlers=handlers, warnings=warnings, missing=tuple(missing))


def _connect_action(name: str, definition: ActionDefinition, implementation: Callable[..., Any]) -> Handler:
    def handler(context: Mapping[str, Any], event: Mapping[str, Any]) -> Any:
        plan = as_call_plan(definition(context, event), name=name, kind="action")
        return run_call_plan(plan, implementation)

    handler.__name__ = name
    return handler


def _connect_service(name: str, definition: ServiceDefinition, implementation: Callable[..., Any]) -> ConnectedService:
    def handler(context: Mapping[str, Any], event: Mapping[str, Any]) -> Any:
        plan = as_call_plan(definition.executor(context, event), name=name, kind="service")
        if not isinstance(plan, Args):
            raise MalformedDefinitionError(
                f"Service '{name}' executor must return an argument list",
                context={"kind": "service", "name": name},
            )
        return run_call_plan(plan, implementation)

    handler.__name__ = name
    return ConnectedService(kind=definition.kind, handler=handler)


def connect_actions(
    definitions: Optional[Mapping[str, ActionDefinition]],
    implementations: Optional[Mapping[str, Callable[..., Any]]],
    *,
    strictness: Optional[Strictness] = None,
    log_missing: Optional[bool] = None,
) -> ConnectionReport:
    """Bind action definitions to their implementations.

    Each connected handler ``(context, event)`` evaluates the definition and
    either spreads the returned arguments into the implementation or passes
    the implementation to the returned producer.

    Args:
        definitions: name -> ``(context, event) -> Args | Producer``
        implementations: name -> concrete callable (may be partial)
        strictness: Overrides the configured ``binding.strictness``
        log_missing: Overrides the configured ``binding.log_missing``

    Returns:
        ConnectionReport with handlers for every supplied name.
    """
    implementations = implementations or {}
    handlers: Dict[str, Handler] = {}
    missing: List[str] = []
    for name, definition in (definitions or {}).items():
        implementation = implementations.get(name)
        if implementation is None:
            missing.append(name)
            continue
        handlers[name] = _connect_action(name, definition, implementation)
    return _report("action", handlers, missing, strictness, log_missing)


def connect_services(
    definitions: Optional[Mapping[str, ServiceDefinition]],
    implementations: Optional[Mapping[str, Callable[..., Any]]],
    *,
    strictness: Optional[Strictness] = None,
    log_missing: Optional[bool] = None,
) -> ConnectionReport:
    """Bind kind-tagged service definitions to their implementations.

    Service executors always produce positional arguments; each handler is a
    ``ConnectedService`` keeping the kind the definition was declared with.
    """
    implementations = implementations or {}
    handlers: Dict[str, ConnectedService] = {}
    missing: List[str] = []
    for name, definition in (definitions or {}).items():
        if not isinstance(definition, ServiceDefinition):
            raise MalformedDefinitionError(
                f"Service '{name}' must be declared with service_types.Promise/Callback/Machine",
                context={"kind": "service", "name": name},
            )
        implementation = implementations.get(name)
        if implementation is None:
            missing.append(name)
            continue
        handlers[name] = _connect_service(name, definition, implementation)
    return _report("service", handlers, missing, strictness, log_missing)


__all__ = [
    "ActionDefinition",
    "ConnectionReport",
    "Handler",
    "connect_actions",
    "connect_services",
]
