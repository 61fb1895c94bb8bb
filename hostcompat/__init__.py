"""Backfill newer standard-library capabilities on older host releases."""

from .core import (
    CompatRuntime,
    ConfigurationError,
    DeferredTrigger,
    FormatError,
    NamespaceRegistry,
    compat_call,
    compat_function,
    compare,
    get_runtime,
)
from .engine import (
    Catalog,
    CompatEngine,
    Declaration,
    NamingStrategy,
    PlanAction,
    compute_plan,
)

__version__ = "0.1.0"

__all__ = [
    "CompatRuntime",
    "ConfigurationError",
    "DeferredTrigger",
    "FormatError",
    "NamespaceRegistry",
    "compat_call",
    "compat_function",
    "compare",
    "get_runtime",
    "Catalog",
    "CompatEngine",
    "Declaration",
    "NamingStrategy",
    "PlanAction",
    "compute_plan",
]
