"""
statewire - dependency injection for declarative state machines

A machine declares the actions and services it needs; concrete
implementations are bound when the machine is created.
"""

from statewire.core.binding import (
    Args,
    Producer,
    Strictness,
    connect_actions,
    connect_services,
    create_machine_factory,
    get_service_types,
    service_types,
)
from statewire.core.state import (
    MachineOptions,
    State,
    StateMachine,
    assign,
    create_machine,
    save_error,
)

__version__ = "1.0.0"
__all__ = [
    "__version__",
    "Args",
    "Producer",
    "Strictness",
    "connect_actions",
    "connect_services",
    "create_machine_factory",
    "get_service_types",
    "service_types",
    "MachineOptions",
    "State",
    "StateMachine",
    "assign",
    "create_machine",
    "save_error",
]
