from .registries import ActionRegistry, GuardRegistry, HandlerRegistry, ServiceRegistry

__all__ = ["HandlerRegistry", "GuardRegistry", "ActionRegistry", "ServiceRegistry"]
