from .actions import AssignAction, assign, normalize_error, save_error
from .engine import (
    INIT_EVENT_TYPE,
    MachineOptions,
    ServiceInvocation,
    State,
    StateMachine,
    create_machine,
    to_event,
)
from .handlers import ActionRegistry, GuardRegistry, HandlerRegistry, ServiceRegistry

__all__ = [
    # Engine
    "StateMachine",
    "MachineOptions",
    "State",
    "ServiceInvocation",
    "INIT_EVENT_TYPE",
    "create_machine",
    "to_event",
    # Registries
    "HandlerRegistry",
    "GuardRegistry",
    "ActionRegistry",
    "ServiceRegistry",
    # Actions
    "AssignAction",
    "assign",
    "normalize_error",
    "save_error",
]
