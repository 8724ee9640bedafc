from ..config.domains.binding import Strictness
from .builder import MachineBinding, MachineBuilder, MachineFactory, create_machine_factory
from .calls import Args, CallPlan, Producer, as_call_plan, run_call_plan
from .connect import ConnectionReport, connect_actions, connect_services
from .context import merge_context
from .services import (
    ConnectedService,
    ServiceDefinition,
    ServiceKind,
    get_service_types,
    service_types,
)

__all__ = [
    # Builder / factory
    "create_machine_factory",
    "MachineBuilder",
    "MachineFactory",
    "MachineBinding",
    # Connectors
    "connect_actions",
    "connect_services",
    "ConnectionReport",
    "Strictness",
    # Call plans
    "Args",
    "Producer",
    "CallPlan",
    "as_call_plan",
    "run_call_plan",
    # Services
    "ServiceKind",
    "ServiceDefinition",
    "ConnectedService",
    "get_service_types",
    "service_types",
    # Context
    "merge_context",
]
