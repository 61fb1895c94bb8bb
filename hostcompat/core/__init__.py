"""Core components: versions, namespace, deferred loading, settings and logging."""

from .app import CompatRuntime, compat_call, compat_function, get_runtime
from .config import Settings, get_settings
from .deferred import DeferredTrigger, ImportWatcher
from .errors import (
    CallbackError,
    CompatError,
    ConfigurationError,
    FormatError,
    ReadOnlyBindingError,
    UnboundNameError,
)
from .logger import get_logger, setup_logger
from .registry import Locality, NamespaceRegistry, Registry
from .version import Ordering, compare

__all__ = [
    "CompatRuntime",
    "compat_call",
    "compat_function",
    "get_runtime",
    "Settings",
    "get_settings",
    "DeferredTrigger",
    "ImportWatcher",
    "CallbackError",
    "CompatError",
    "ConfigurationError",
    "FormatError",
    "ReadOnlyBindingError",
    "UnboundNameError",
    "get_logger",
    "setup_logger",
    "Locality",
    "NamespaceRegistry",
    "Registry",
    "Ordering",
    "compare",
]
