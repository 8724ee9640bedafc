"""Machine builder and factory.

A builder wraps a base ``StateMachine`` and collects what the machine does
on its own (internal actions, guards) and what it expects callers to supply
(action and service definitions). ``build()`` freezes that into a
``MachineFactory``:

```python
create_timer = (
    create_machine_factory(timer_machine)
    .actions({"reset": assign({"elapsed": 0})})
    .guards({"can_pause": lambda ctx, e: ctx["elapsed"] > 0})
    .expecting_actions({"notify": lambda ctx, e: [ctx["elapsed"]]})
    .expecting_services({"tick": service_types.Callback(lambda ctx, e: [ctx["interval"]])})
    .build()
)

machine = create_timer(actions={"notify": print}, services={"tick": ticker}, context={"interval": 5})
```

Builders are immutable: each step returns a new builder, so a shared base
builder can be specialised without affecting other users.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from ..config.domains.binding import Strictness
from ..exceptions import PayloadError
from ..state.engine import MachineOptions, StateMachine
from .connect import ActionDefinition, connect_actions, connect_services
from .context import merge_context
from .services import ServiceDefinition

PAYLOAD_KEYS = ("actions", "services", "context")


@dataclass(frozen=True)
class MachineBinding:
    """Everything a factory call computed before asking the engine for a machine."""

    options: MachineOptions
    context: Mapping[str, Any]
    warnings: Tuple[str, ...] = ()


@dataclass(frozen=True)
class MachineFactory:
    """Creates configured machines from ``{actions, services, context}`` payloads.

    Handlers are connected anew on every call and close over that call's
    implementations only.
    """

    machine: StateMachine
    internal_actions: Mapping[str, Callable[..., Any]] = field(default_factory=dict)
    internal_guards: Mapping[str, Callable[..., bool]] = field(default_factory=dict)
    action_definitions: Mapping[str, ActionDefinition] = field(default_factory=dict)
    service_definitions: Mapping[str, ServiceDefinition] = field(default_factory=dict)
    strictness: Optional[Strictness] = None

    def _unpack(
        self,
        payload: Optional[Mapping[str, Any]],
        actions: Optional[Mapping[str, Callable[..., Any]]],
        services: Optional[Mapping[str, Callable[..., Any]]],
        context: Optional[Mapping[str, Any]],
    ) -> Tuple[Mapping[str, Any], Mapping[str, Any], Mapping[str, Any]]:
        payload = payload or {}
        if not isinstance(payload, Mapping):
            raise PayloadError(f"Machine payload must be a mapping, got {type(payload).__name__}")
        unknown = sorted(str(k) for k in payload if k not in PAYLOAD_KEYS)
        if unknown:
            raise PayloadError(
                f"Unknown machine payload key(s): {', '.join(unknown)}",
                context={"unknown": unknown, "allowed": list(PAYLOAD_KEYS)},
            )
        return (
            actions if actions is not None else payload.get("actions") or {},
            services if services is not None else payload.get("services") or {},
            context if context is not None else payload.get("context") or {},
        )

    def connect(
        self,
        payload: Optional[Mapping[str, Any]] = None,
        *,
        actions: Optional[Mapping[str, Callable[..., Any]]] = None,
        services: Optional[Mapping[str, Callable[..., Any]]] = None,
        context: Optional[Mapping[str, Any]] = None,
    ) -> MachineBinding:
        """Connect a payload without creating the machine."""
        ext_actions, ext_services, ext_context = self._unpack(payload, actions, services, context)

        action_report = connect_actions(self.action_definitions, ext_actions, strictness=self.strictness)
        service_report = connect_services(self.service_definitions, ext_services, strictness=self.strictness)

        final_actions: Dict[str, Callable[..., Any]] = dict(self.internal_actions)
        final_actions.update(action_report.handlers)

        options = MachineOptions(
            actions=final_actions,
            services=dict(service_report.handlers),
            guards=dict(self.internal_guards),
        )
        return MachineBinding(
            options=options,
            context=merge_context(self.machine.context, ext_context),
            warnings=action_report.warnings + service_report.warnings,
        )

    def __call__(
        self,
        payload: Optional[Mapping[str, Any]] = None,
        *,
        actions: Optional[Mapping[str, Callable[..., Any]]] = None,
        services: Optional[Mapping[str, Callable[..., Any]]] = None,
        context: Optional[Mapping[str, Any]] = None,
    ) -> StateMachine:
        """Create a machine configured with the supplied implementations.

        Payload fields may be given as a mapping, as keywords, or both
        (keywords win). Engine errors propagate unchanged.
        """
        binding = self.connect(payload, actions=actions, services=services, context=context)
        return self.machine.with_config(binding.options, binding.context)


@dataclass(frozen=True)
class MachineBuilder:
    machine: StateMachine
    internal_actions: Mapping[str, Callable[..., Any]] = field(default_factory=dict)
    internal_guards: Mapping[str, Callable[..., bool]] = field(default_factory=dict)
    action_definitions: Mapping[str, ActionDefinition] = field(default_factory=dict)
    service_definitions: Mapping[str, ServiceDefinition] = field(default_factory=dict)
    strictness: Optional[Strictness] = None

    def actions(self, actions: Mapping[str, Callable[..., Any]]) -> "MachineBuilder":
        """Set internal actions."""
        return replace(self, internal_actions=dict(actions or {}))

    def guards(self, guards: Mapping[str, Callable[..., bool]]) -> "MachineBuilder":
        """Set guards."""
        return replace(self, internal_guards=dict(guards or {}))

    def expecting_actions(self, definitions: Mapping[str, ActionDefinition]) -> "MachineBuilder":
        """Set signatures for expected actions."""
        return replace(self, action_definitions=dict(definitions or {}))

    def expecting_services(self, definitions: Mapping[str, ServiceDefinition]) -> "MachineBuilder":
        """Set signatures for expected services."""
        return replace(self, service_definitions=dict(definitions or {}))

    def strict(self, enabled: bool = True) -> "MachineBuilder":
        """Fail factory calls that leave a declared action/service unimplemented."""
        return replace(self, strictness=Strictness.STRICT if enabled else Strictness.LENIENT)

    def build(self) -> MachineFactory:
        """Build the ``factory({actions, services, context})`` callable."""
        return MachineFactory(
            machine=self.machine,
            internal_actions=self.internal_actions,
            internal_guards=self.internal_guards,
            action_definitions=self.action_definitions,
            service_definitions=self.service_definitions,
            strictness=self.strictness,
        )


def create_machine_factory(machine: StateMachine) -> MachineBuilder:
    return MachineBuilder(machine)


__all__ = [
    "MachineBinding",
    "MachineBuilder",
    "MachineFactory",
    "create_machine_factory",
]
