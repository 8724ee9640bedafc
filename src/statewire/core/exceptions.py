from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping


class StatewireError(Exception):
    """Base exception for statewire."""

    context: Dict[str, Any]

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        if context is not None:
            # Store a shallow copy to avoid accidental mutation.
            self.context = dict(context)
        else:
            self.context = {}

    def to_json_error(self) -> Dict[str, Any]:
        """Return a JSON-serializable error payload."""
        return {
            "message": str(self),
            "code": self.__class__.__name__,
            "context": self.context,
        }


class ConfigError(StatewireError, ValueError):
    """Raised when configuration cannot be loaded or fails validation."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        StatewireError.__init__(self, message, context=context)
        ValueError.__init__(self, message)


class MissingImplementationError(StatewireError, LookupError):
    """Raised in strict mode when declared actions/services were not supplied."""

    def __init__(self, kind: str, names: Iterable[str]) -> None:
        self.kind = kind
        self.names = tuple(names)
        listed = ", ".join(repr(n) for n in self.names)
        message = f"{kind.capitalize()} implementation(s) not provided: {listed}"
        StatewireError.__init__(self, message, context={"kind": kind, "missing": list(self.names)})
        LookupError.__init__(self, message)


class MalformedDefinitionError(StatewireError, TypeError):
    """Raised when a definition evaluates to something that cannot drive a call."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        StatewireError.__init__(self, message, context=context)
        TypeError.__init__(self, message)


class PayloadError(StatewireError, TypeError):
    """Raised when a machine factory receives a payload of the wrong shape."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        StatewireError.__init__(self, message, context=context)
        TypeError.__init__(self, message)


class MachineConfigError(StatewireError, ValueError):
    """Raised when a machine's transition-table description is invalid."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        StatewireError.__init__(self, message, context=context)
        ValueError.__init__(self, message)


class StateTransitionError(StatewireError, ValueError):
    """Raised when a transition cannot be evaluated."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        StatewireError.__init__(self, message, context=context)
        ValueError.__init__(self, message)


__all__ = [
    "StatewireError",
    "ConfigError",
    "MissingImplementationError",
    "MalformedDefinitionError",
    "PayloadError",
    "MachineConfigError",
    "StateTransitionError",
]
