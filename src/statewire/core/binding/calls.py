"""Call plans produced by action and service definitions.

A definition evaluates to one of two shapes:

- ``Args(values)``: spread ``values`` positionally into the implementation
- ``Producer(fn)``: hand the implementation to ``fn`` and return its result,
  letting the definition transform, curry or skip the call

Definitions may also return any non-string sequence (read as ``Args``) or
a plain callable (read as ``Producer``); ``as_call_plan`` does that reading
once so the connectors only ever match on the two explicit shapes.
"""
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Callable, Tuple, Union

from ..exceptions import MalformedDefinitionError


@dataclass(frozen=True)
class Args:
    values: Tuple[Any, ...] = ()

    def __init__(self, *values: Any) -> None:
        object.__setattr__(self, "values", tuple(values))


@dataclass(frozen=True)
class Producer:
    fn: Callable[[Callable[..., Any]], Any]


CallPlan = Union[Args, Producer]


def as_call_plan(result: Any, *, name: str, kind: str = "action") -> CallPlan:
    """Read a definition's evaluation result as a ``CallPlan``.

    Raises:
        MalformedDefinitionError: for anything that is neither a sequence of
            arguments nor a callable (strings and mappings included).
    """
    if isinstance(result, (Args, Producer)):
        return result
    if isinstance(result, Sequence) and not isinstance(result, (str, bytes, bytearray)):
        return Args(*result)
    if callable(result):
        return Producer(result)
    raise MalformedDefinitionError(
        f"{kind.capitalize()} '{name}' definition must return an argument list or a callable, "
        f"got {type(result).__name__}",
        context={"kind": kind, "name": name},
    )


def run_call_plan(plan: CallPlan, implementation: Callable[..., Any]) -> Any:
    """Invoke ``implementation`` according to ``plan`` and return its result."""
    if isinstance(plan, Producer):
        return plan.fn(implementation)
    return implementation(*plan.values)


__all__ = ["Args", "Producer", "CallPlan", "as_call_plan", "run_call_plan"]
