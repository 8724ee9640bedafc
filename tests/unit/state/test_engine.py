"""Tests for the declarative StateMachine engine."""
from __future__ import annotations

import textwrap
from typing import Any, Dict, List

import pytest
import yaml

from statewire.core.binding import ConnectedService, ServiceKind
from statewire.core.exceptions import MachineConfigError, StateTransitionError
from statewire.core.state import (
    INIT_EVENT_TYPE,
    MachineOptions,
    State,
    StateMachine,
    assign,
    create_machine,
    to_event,
)


@pytest.fixture
def tracker() -> Dict[str, List[str]]:
    return {"calls": []}


@pytest.fixture
def door(tracker: Dict[str, List[str]]) -> StateMachine:
    def make_action(name: str):
        def action_fn(ctx: Dict[str, Any], e: Dict[str, Any]) -> None:
            tracker["calls"].append(name)

        return action_fn

    config = {
        "id": "door",
        "initial": "closed",
        "context": {"opens": 0, "locked": False},
        "states": {
            "closed": {
                "entry": ["log_closed"],
                "exit": ["log_leave_closed"],
                "on": {
                    "OPEN": [
                        {"target": "opened", "cond": "is_unlocked", "actions": ["count_open"]},
                        {"target": "alarm"},
                    ],
                    "LOCK": {"actions": [assign({"locked": True})]},
                    "UNLOCK": {"actions": [assign({"locked": False})]},
                },
            },
            "opened": {"entry": ["log_opened"], "on": {"CLOSE": "closed", "BREAK": "broken"}},
            "alarm": {"invoke": {"src": "siren"}, "on": {"RESET": "closed"}},
            "broken": {"type": "final"},
        },
    }
    options = MachineOptions(
        actions={
            "log_closed": make_action("log_closed"),
            "log_leave_closed": make_action("log_leave_closed"),
            "log_opened": make_action("log_opened"),
            "count_open": assign({"opens": lambda ctx, e: ctx["opens"] + 1}),
        },
        guards={"is_unlocked": lambda ctx, e: not ctx["locked"]},
    )
    return create_machine(config, options)


class TestTransitions:
    def test_initial_state_runs_entry_actions(self, door: StateMachine, tracker) -> None:
        state = door.initial_state

        assert state.value == "closed"
        assert state.event == {"type": INIT_EVENT_TYPE}
        assert state.actions == ("log_closed",)
        assert tracker["calls"] == ["log_closed"]
        assert not state.changed

    def test_initial_state_is_computed_once(self, door: StateMachine, tracker) -> None:
        first = door.initial_state
        second = door.initial_state

        assert first is second
        assert tracker["calls"] == ["log_closed"]

    def test_new_machine_gets_its_own_initial_state(self, door: StateMachine, tracker) -> None:
        door.initial_state
        door.with_context({"opens": 0, "locked": False}).initial_state

        assert tracker["calls"] == ["log_closed", "log_closed"]

    def test_exit_transition_entry_order(self, door: StateMachine, tracker) -> None:
        state = door.transition(door.initial_state, "OPEN")

        assert state.value == "opened"
        assert state.changed
        assert state.actions == ("log_leave_closed", "count_open", "log_opened")
        assert tracker["calls"] == ["log_closed", "log_leave_closed", "log_opened"]
        assert state.context["opens"] == 1

    def test_guard_selects_next_candidate(self, door: StateMachine) -> None:
        locked = door.transition(door.initial_state, "LOCK")
        state = door.transition(locked, {"type": "OPEN"})

        assert locked.value == "closed"
        assert locked.context["locked"] is True
        assert state.value == "alarm"
        assert state.invoked == ("siren",)

    def test_targetless_transition_keeps_state_and_skips_entry(self, door: StateMachine, tracker) -> None:
        state = door.transition(door.initial_state, "LOCK")

        assert state.value == "closed"
        assert state.changed
        assert tracker["calls"] == ["log_closed"]

    def test_unhandled_event_is_unchanged(self, door: StateMachine) -> None:
        initial = door.initial_state
        state = door.transition(initial, "CLOSE")

        assert state.value == "closed"
        assert not state.changed
        assert state.context == initial.context

    def test_final_state_ignores_events(self, door: StateMachine) -> None:
        opened = door.transition(door.initial_state, "OPEN")
        broken = door.transition(opened, "BREAK")
        after = door.transition(broken, "CLOSE")

        assert broken.done
        assert after.value == "broken"
        assert not after.changed

    def test_transition_from_state_name(self, door: StateMachine) -> None:
        state = door.transition("opened", "CLOSE")

        assert state.value == "closed"
        assert state.context == {"opens": 0, "locked": False}

    def test_missing_action_handler_is_a_noop(self) -> None:
        machine = StateMachine(
            {"initial": "a", "states": {"a": {"on": {"GO": {"target": "b", "actions": ["absent"]}}}, "b": {}}}
        )

        state = machine.transition(machine.initial_state, "GO")

        assert state.value == "b"
        assert state.actions == ("absent",)

    def test_unknown_guard_raises(self) -> None:
        machine = StateMachine(
            {"initial": "a", "states": {"a": {"on": {"GO": {"target": "b", "cond": "nope"}}}, "b": {}}}
        )

        with pytest.raises(StateTransitionError, match="Unknown guard: nope"):
            machine.transition(machine.initial_state, "GO")

    def test_guard_errors_are_wrapped(self) -> None:
        def broken(ctx, e):
            raise RuntimeError("boom")

        machine = StateMachine(
            {"initial": "a", "states": {"a": {"on": {"GO": {"target": "b", "cond": "broken"}}}, "b": {}}},
            MachineOptions(guards={"broken": broken}),
        )

        with pytest.raises(StateTransitionError, match="boom") as excinfo:
            machine.transition(machine.initial_state, "GO")

        assert isinstance(excinfo.value.__cause__, RuntimeError)

    def test_state_matches(self) -> None:
        state = State(value="a", context={}, event={"type": "X"})

        assert state.matches("a")
        assert not state.matches("b")


class TestEvents:
    def test_string_event_is_normalised(self) -> None:
        assert to_event("GO") == {"type": "GO"}

    def test_mapping_event_is_copied(self) -> None:
        event = {"type": "GO", "data": 1}

        assert to_event(event) == event
        assert to_event(event) is not event

    @pytest.mark.parametrize("event", [{}, {"data": 1}, 3])
    def test_invalid_events_raise(self, event) -> None:
        with pytest.raises(StateTransitionError):
            to_event(event)


class TestConfigValidation:
    @pytest.mark.parametrize(
        "config",
        [
            [],
            {"initial": "a"},
            {"initial": "a", "states": {}},
            {"initial": "missing", "states": {"a": {}}},
            {"initial": "a", "states": {"a": {"on": {"GO": "nowhere"}}}},
            {"initial": "a", "states": {"a": {"on": {"GO": 5}}}},
            {"initial": "a", "states": {"a": {"on": ["GO"]}}},
            {"initial": "a", "states": {"a": {"invoke": {"id": "no-src"}}}},
            {"initial": "a", "states": {"a": "not-a-mapping"}},
        ],
    )
    def test_invalid_config_raises(self, config) -> None:
        with pytest.raises(MachineConfigError):
            StateMachine(config)


class TestWithConfig:
    def test_with_config_returns_new_machine(self, door: StateMachine) -> None:
        updated = door.with_config(MachineOptions(actions={"extra": lambda ctx, e: None}), {"opens": 5})

        assert updated is not door
        assert "extra" in updated.options.actions
        assert "extra" not in door.options.actions
        assert "log_closed" in updated.options.actions
        assert dict(updated.context) == {"opens": 5}
        assert dict(door.context) == {"opens": 0, "locked": False}

    def test_with_context_keeps_options(self, door: StateMachine) -> None:
        updated = door.with_context({"opens": 1, "locked": True})

        assert updated.options == door.options
        assert updated.context["locked"] is True

    def test_context_is_read_only(self, door: StateMachine) -> None:
        with pytest.raises(TypeError):
            door.context["opens"] = 3  # type: ignore[index]

    def test_allowed_events(self, door: StateMachine) -> None:
        assert door.allowed_events("opened") == ["CLOSE", "BREAK"]


class TestInvoke:
    CONFIG = {"initial": "a", "context": {"n": 2}, "states": {"a": {"invoke": [{"src": "svc"}]}}}

    def _machine(self, kind: ServiceKind, result: Any) -> StateMachine:
        service = ConnectedService(kind=kind, handler=lambda ctx, e: result)
        return StateMachine(self.CONFIG, MachineOptions(services={"svc": service}))

    def test_promise_result_returned_as_is(self) -> None:
        invocation = self._machine(ServiceKind.PROMISE, 42).invoke("svc")

        assert invocation.kind == "promise"
        assert invocation.result == 42

    def test_callback_must_return_callable(self) -> None:
        assert self._machine(ServiceKind.CALLBACK, lambda send, receive: None).invoke("svc").kind == "callback"

        with pytest.raises(StateTransitionError):
            self._machine(ServiceKind.CALLBACK, 42).invoke("svc")

    def test_machine_must_return_state_machine(self) -> None:
        child = StateMachine({"initial": "x", "states": {"x": {}}})

        assert self._machine(ServiceKind.MACHINE, child).invoke("svc").result is child

        with pytest.raises(StateTransitionError):
            self._machine(ServiceKind.MACHINE, "not a machine").invoke("svc")

    def test_plain_callable_service_defaults_to_promise(self) -> None:
        machine = StateMachine(self.CONFIG, MachineOptions(services={"svc": lambda ctx, e: ctx["n"] * 2}))

        invocation = machine.invoke("svc")

        assert invocation.kind == "promise"
        assert invocation.result == 4

    def test_unknown_service_raises(self) -> None:
        with pytest.raises(StateTransitionError, match="Unknown service: svc"):
            StateMachine(self.CONFIG).invoke("svc")

    def test_start_services_invokes_every_entered_service(self) -> None:
        machine = self._machine(ServiceKind.PROMISE, "ok")

        invocations = machine.start_services(machine.initial_state)

        assert [i.src for i in invocations] == ["svc"]
        assert invocations[0].result == "ok"


class TestYamlConfig:
    def test_bare_on_key_keeps_transitions(self) -> None:
        config = yaml.safe_load("initial: a\nstates:\n  a:\n    on:\n      GO: b\n  b: {}\n")

        machine = create_machine(config)

        assert True in config["states"]["a"]
        assert machine.transition(machine.initial_state, "GO").value == "b"
        assert machine.allowed_events("a") == ["GO"]

    def test_guarded_yaml_transition(self) -> None:
        config = yaml.safe_load(
            textwrap.dedent(
                """
                initial: idle
                states:
                  idle:
                    on:
                      START:
                        - target: running
                          cond: ready
                        - target: failed
                  running: {}
                  failed:
                    type: final
                """
            )
        )
        machine = create_machine(config, MachineOptions(guards={"ready": lambda ctx, e: False}))

        state = machine.transition(machine.initial_state, "START")

        assert state.value == "failed"
        assert state.done

    @pytest.mark.parametrize("node", [{"onn": {"GO": "a"}}, {1: {"GO": "a"}}, {False: {"GO": "a"}}])
    def test_unknown_node_keys_are_rejected(self, node) -> None:
        with pytest.raises(MachineConfigError, match="unknown key"):
            StateMachine({"initial": "a", "states": {"a": node}})

    def test_duplicate_on_is_rejected(self) -> None:
        with pytest.raises(MachineConfigError, match="twice"):
            StateMachine({"initial": "a", "states": {"a": {"on": {}, True: {"GO": "a"}}}})
