"""Declarative state machine engine.

A machine is described by a plain mapping (loadable from YAML, where a bare
``on:`` key parsed as ``True`` is read back as ``on``):

```python
{
    "id": "timer",
    "initial": "idle",
    "context": {"elapsed": 0},
    "states": {
        "idle": {"entry": ["reset"], "on": {"START": "running"}},
        "running": {
            "invoke": {"src": "tick"},
            "on": {"PAUSE": {"target": "paused", "cond": "can_pause", "actions": ["log"]}},
        },
        "paused": {"on": {"STOP": "done"}},
        "done": {"type": "final"},
    },
}
```

Named actions, guards and services are resolved through the machine's
``MachineOptions``. ``with_config`` returns a new machine and never mutates
the receiver.
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from functools import cached_property
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from ..exceptions import MachineConfigError, StateTransitionError
from .actions import AssignAction
from .handlers import ActionRegistry, GuardRegistry, ServiceRegistry

INIT_EVENT_TYPE = "statewire.init"

Event = Union[str, Mapping[str, Any]]

STATE_NODE_KEYS = frozenset({"on", "entry", "exit", "invoke", "type", "meta"})


@dataclass(frozen=True)
class MachineOptions:
    """Implementations bound to the names a machine config refers to."""

    actions: Mapping[str, Callable[..., Any]] = field(default_factory=dict)
    services: Mapping[str, Callable[..., Any]] = field(default_factory=dict)
    guards: Mapping[str, Callable[..., bool]] = field(default_factory=dict)

    def merged(self, other: Optional["MachineOptions"]) -> "MachineOptions":
        """Overlay ``other`` on these options, per handler kind."""
        if other is None:
            return self
        return MachineOptions(
            actions={**self.actions, **(other.actions or {})},
            services={**self.services, **(other.services or {})},
            guards={**self.guards, **(other.guards or {})},
        )


@dataclass(frozen=True)
class State:
    value: str
    context: Mapping[str, Any]
    event: Mapping[str, Any]
    actions: Tuple[str, ...] = ()
    invoked: Tuple[str, ...] = ()
    changed: bool = False
    done: bool = False

    def matches(self, value: str) -> bool:
        return self.value == value


@dataclass(frozen=True)
class ServiceInvocation:
    src: str
    kind: str
    result: Any


def to_event(event: Event) -> Dict[str, Any]:
    """Normalise ``"E"`` or ``{"type": "E", ...}`` into an event dict."""
    if isinstance(event, str):
        return {"type": event}
    if isinstance(event, Mapping) and event.get("type"):
        return dict(event)
    raise StateTransitionError(f"Events must be a type string or a mapping with 'type', got {event!r}")


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _normalize_node(name: str, node: Any) -> Mapping[str, Any]:
    """Return ``node`` with YAML 1.1 boolean keys read back as ``on``."""
    node = node or {}
    if not isinstance(node, Mapping):
        raise MachineConfigError(f"State '{name}' must be a mapping", context={"state": name})
    normalized: Dict[str, Any] = {}
    for key, value in node.items():
        # PyYAML resolves a bare `on:` key to True
        if key is True:
            key = "on"
        if not isinstance(key, str) or key not in STATE_NODE_KEYS:
            raise MachineConfigError(
                f"State '{name}' has unknown key {key!r}",
                context={"state": name, "key": repr(key), "allowed": sorted(STATE_NODE_KEYS)},
            )
        if key in normalized:
            raise MachineConfigError(f"State '{name}' declares '{key}' twice", context={"state": name})
        normalized[key] = value
    return normalized


def _normalize_transition(candidate: Any) -> Mapping[str, Any]:
    if candidate is None or isinstance(candidate, str):
        return {"target": candidate}
    return candidate


def _action_name(action: Any) -> str:
    if isinstance(action, str):
        return action
    if isinstance(action, AssignAction):
        return "assign"
    return getattr(action, "__name__", repr(action))


class StateMachine:
    """Flat declarative state machine with guard/action/service support."""

    def __init__(
        self,
        config: Mapping[str, Any],
        options: Optional[MachineOptions] = None,
        context: Optional[Mapping[str, Any]] = None,
    ) -> None:
        if not isinstance(config, Mapping):
            raise MachineConfigError("Machine config must be a mapping")
        self.config: Mapping[str, Any] = config
        self.id = str(config.get("id") or "machine")
        states = config.get("states")
        if not isinstance(states, Mapping) or not states:
            raise MachineConfigError(
                f"Machine '{self.id}' requires a non-empty mapping of states",
                context={"machine": self.id},
            )
        self.states: Mapping[str, Mapping[str, Any]] = {
            name: _normalize_node(name, node) for name, node in states.items()
        }
        self.initial = str(config.get("initial") or "")
        self._validate()

        self.options = options or MachineOptions()
        base_context = config.get("context") if context is None else context
        self.context: Mapping[str, Any] = MappingProxyType(dict(base_context or {}))
        self.actions = ActionRegistry(self.options.actions)
        self.guards = GuardRegistry(self.options.guards)
        self.services = ServiceRegistry(self.options.services)

    def _validate(self) -> None:
        if self.initial not in self.states:
            raise MachineConfigError(
                f"Machine '{self.id}' initial state {self.initial!r} is not a declared state",
                context={"machine": self.id, "initial": self.initial},
            )
        for name, node in self.states.items():
            on = node.get("on") or {}
            if not isinstance(on, Mapping):
                raise MachineConfigError(f"State '{name}' 'on' must be a mapping", context={"state": name})
            for event_type, candidates in on.items():
                for candidate in _as_list(candidates):
                    if not isinstance(candidate, (str, Mapping)):
                        raise MachineConfigError(
                            f"Transition '{name}' --{event_type}--> must be a target or a mapping",
                            context={"state": name, "event": event_type},
                        )
                    target = _normalize_transition(candidate).get("target")
                    if target is not None and target not in self.states:
                        raise MachineConfigError(
                            f"Transition '{name}' --{event_type}--> targets unknown state {target!r}",
                            context={"state": name, "event": event_type, "target": target},
                        )
            for invoke in _as_list(node.get("invoke")):
                if not isinstance(invoke, Mapping) or not invoke.get("src"):
                    raise MachineConfigError(
                        f"State '{name}' invoke entries require a 'src'", context={"state": name}
                    )

    def with_config(
        self,
        options: Optional[MachineOptions] = None,
        context: Optional[Mapping[str, Any]] = None,
    ) -> "StateMachine":
        """Return a new machine with ``options`` overlaid and ``context`` replacing the base."""
        return StateMachine(
            self.config,
            self.options.merged(options),
            self.context if context is None else context,
        )

    def with_context(self, context: Mapping[str, Any]) -> "StateMachine":
        return self.with_config(None, context)

    def _node(self, value: str) -> Mapping[str, Any]:
        if value not in self.states:
            raise StateTransitionError(
                f"Unknown state {value!r} for machine '{self.id}'",
                context={"machine": self.id, "state": value},
            )
        return self.states[value]

    def _check_guard(self, cond: Any, context: Mapping[str, Any], event: Mapping[str, Any]) -> bool:
        try:
            if callable(cond):
                return bool(cond(context, event))
            return self.guards.check(str(cond), context, event)
        except StateTransitionError:
            raise
        except Exception as exc:
            raise StateTransitionError(
                str(exc),
                context={"machine": self.id, "guard": _action_name(cond)},
            ) from exc

    def _run_actions(
        self, actions: List[Any], context: Dict[str, Any], event: Mapping[str, Any]
    ) -> Tuple[Dict[str, Any], Tuple[str, ...]]:
        executed: List[str] = []
        for action in actions:
            handler = self.actions.get(action) if isinstance(action, str) else action
            if isinstance(handler, AssignAction):
                context = handler(context, event)
            elif isinstance(action, str):
                self.actions.execute(action, context, event)
            else:
                action(context, event)
            executed.append(_action_name(action))
        return context, tuple(executed)

    def _invoked(self, node: Mapping[str, Any]) -> Tuple[str, ...]:
        return tuple(str(i["src"]) for i in _as_list(node.get("invoke")))

    @cached_property
    def initial_state(self) -> State:
        """The machine's start state; entry actions run once, on first access."""
        event = {"type": INIT_EVENT_TYPE}
        node = self._node(self.initial)
        context, executed = self._run_actions(_as_list(node.get("entry")), dict(self.context), event)
        return State(
            value=self.initial,
            context=context,
            event=event,
            actions=executed,
            invoked=self._invoked(node),
            changed=False,
            done=node.get("type") == "final",
        )

    def transition(self, state: Union[State, str], event: Event) -> State:
        """Compute the next state for ``event`` and execute the actions along the way.

        Candidate transitions are tried in declaration order; the first whose
        guard passes is taken. Without a matching transition the state is
        returned unchanged (``changed=False``). A bare state name resumes at
        that state with the machine context; its entry actions are not re-run.
        """
        if isinstance(state, str):
            state = State(value=state, context=dict(self.context), event={"type": INIT_EVENT_TYPE})
        evt = to_event(event)
        node = self._node(state.value)
        if state.done:
            return replace(state, event=evt, actions=(), invoked=(), changed=False)

        on = node.get("on") or {}
        context = dict(state.context)
        for candidate in _as_list(on.get(evt["type"])):
            spec = _normalize_transition(candidate)
            cond = spec.get("cond")
            if cond is not None and not self._check_guard(cond, context, evt):
                continue

            target = spec.get("target")
            actions = _as_list(spec.get("actions"))
            if target is None:
                context, executed = self._run_actions(actions, context, evt)
                return State(state.value, context, evt, executed, (), changed=True, done=False)

            target_node = self._node(str(target))
            sequence = _as_list(node.get("exit")) + actions + _as_list(target_node.get("entry"))
            context, executed = self._run_actions(sequence, context, evt)
            return State(
                value=str(target),
                context=context,
                event=evt,
                actions=executed,
                invoked=self._invoked(target_node),
                changed=True,
                done=target_node.get("type") == "final",
            )

        return State(state.value, state.context, evt, (), (), changed=False, done=state.done)

    def invoke(
        self,
        src: str,
        context: Optional[Mapping[str, Any]] = None,
        event: Optional[Event] = None,
    ) -> ServiceInvocation:
        """Start service ``src`` and check its result against the service kind.

        ``promise`` results are returned as produced (a value or an awaitable),
        ``callback`` services must return a callable, and ``machine`` services
        must return a ``StateMachine``.
        """
        ctx = dict(self.context if context is None else context)
        evt = to_event(event) if event is not None else {"type": INIT_EVENT_TYPE}
        kind = self.services.kind_of(src)
        result = self.services.invoke(src, ctx, evt)
        if kind == "callback" and not callable(result):
            raise StateTransitionError(
                f"Callback service '{src}' must return a callable",
                context={"machine": self.id, "service": src},
            )
        if kind == "machine" and not isinstance(result, StateMachine):
            raise StateTransitionError(
                f"Machine service '{src}' must return a StateMachine",
                context={"machine": self.id, "service": src},
            )
        return ServiceInvocation(src=src, kind=kind or "promise", result=result)

    def start_services(self, state: State) -> Tuple[ServiceInvocation, ...]:
        """Invoke every service entered with ``state``."""
        return tuple(self.invoke(src, state.context, state.event) for src in state.invoked)

    def allowed_events(self, value: str) -> List[str]:
        return list((self._node(value).get("on") or {}).keys())

    def __repr__(self) -> str:
        return f"StateMachine(id={self.id!r}, initial={self.initial!r})"


def create_machine(config: Mapping[str, Any], options: Optional[MachineOptions] = None) -> StateMachine:
    """Build a machine from a static transition-table description."""
    return StateMachine(config, options)


__all__ = [
    "Event",
    "INIT_EVENT_TYPE",
    "MachineOptions",
    "ServiceInvocation",
    "State",
    "StateMachine",
    "create_machine",
    "to_event",
]
