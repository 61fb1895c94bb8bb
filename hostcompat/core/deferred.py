"""One-shot callbacks fired when an external unit is loaded."""

import importlib.abc
import sys
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Deque, Dict, List, Optional, Set

from .errors import CallbackError
from .logger import get_logger

logger = get_logger(__name__)


@dataclass
class PendingCallback:
    """A callback waiting for its unit."""

    unit: str
    callback: Callable[[], Any]
    registered_at: datetime = field(default_factory=datetime.now)

    @property
    def label(self) -> str:
        return getattr(self.callback, "__qualname__", None) or repr(self.callback)


class DeferredTrigger:
    """
    Fires pending callbacks on the first load notification of a unit.

    Callbacks for one unit fire in registration order, each exactly once.
    A failing callback is reported and recorded but never keeps the others
    from running.
    """

    def __init__(self):
        self._pending: Dict[str, Deque[PendingCallback]] = {}
        self._loaded: Set[str] = set()
        self._failures: List[CallbackError] = []
        self._fired: int = 0
        self.watcher: Optional["ImportWatcher"] = None

    def register(self, unit_name: str, callback: Callable[[], Any]) -> None:
        """
        Register a callback for a unit.

        If the unit is already loaded the callback runs synchronously before
        this method returns; otherwise it waits for notify_loaded(). With an
        import watcher installed, a unit that is already imported counts as
        loaded.

        Args:
            unit_name: Name of the loadable unit
            callback: Zero-argument callable
        """
        entry = PendingCallback(unit=unit_name, callback=callback)
        if unit_name in self._loaded:
            self._run(entry)
            return

        self._pending.setdefault(unit_name, deque()).append(entry)
        logger.debug("Callback deferred", unit=unit_name, callback=entry.label)

        if self.watcher is not None:
            self.watcher.poll()

    def notify_loaded(self, unit_name: str) -> int:
        """
        Mark a unit as loaded and drain its pending callbacks.

        Only the first notification fires anything; later ones are no-ops.

        Returns:
            Number of callbacks invoked
        """
        if unit_name in self._loaded:
            return 0

        self._loaded.add(unit_name)
        queue = self._pending.pop(unit_name, deque())
        logger.debug("Unit loaded", unit=unit_name, pending=len(queue))

        count = 0
        while queue:
            self._run(queue.popleft())
            count += 1
        return count

    def is_loaded(self, unit_name: str) -> bool:
        return unit_name in self._loaded

    def pending_units(self) -> List[str]:
        return list(self._pending.keys())

    def pending_count(self, unit_name: Optional[str] = None) -> int:
        if unit_name is not None:
            return len(self._pending.get(unit_name, ()))
        return sum(len(q) for q in self._pending.values())

    @property
    def failures(self) -> List[CallbackError]:
        return list(self._failures)

    def get_stats(self) -> Dict[str, Any]:
        """Get trigger statistics."""
        return {
            "loaded_units": len(self._loaded),
            "pending_units": len(self._pending),
            "pending_callbacks": self.pending_count(),
            "fired": self._fired,
            "failures": len(self._failures),
        }

    def _run(self, entry: PendingCallback) -> None:
        """Call a single callback with error handling."""
        self._fired += 1
        try:
            entry.callback()
        except Exception as e:
            error = CallbackError(
                f"Deferred callback failed for unit {entry.unit!r}: {e}",
                unit=entry.unit,
                cause=e,
                details={"callback": entry.label},
            )
            self._failures.append(error)
            logger.error(
                "Error in deferred callback",
                unit=entry.unit,
                callback=entry.label,
                error=str(e),
                exc_info=True,
            )


class _NotifyingLoader(importlib.abc.Loader):
    """Wraps a module loader and reports successful execution."""

    def __init__(self, wrapped: importlib.abc.Loader, on_loaded: Callable[[], Any]):
        self._wrapped = wrapped
        self._on_loaded = on_loaded

    def create_module(self, spec):
        return self._wrapped.create_module(spec)

    def exec_module(self, module) -> None:
        self._wrapped.exec_module(module)
        self._on_loaded()

    def __getattr__(self, name: str) -> Any:
        return getattr(self._wrapped, name)


class ImportWatcher(importlib.abc.MetaPathFinder):
    """
    Turns Python imports of pending units into load notifications.

    Installed at the front of ``sys.meta_path``; it only intercepts modules
    that have callbacks waiting, and delegates the actual finding and loading
    to the remaining finders. Only imports made on the thread that installed
    the watcher are intercepted; poll() from that thread catches up on units
    other threads imported.
    """

    def __init__(self, trigger: DeferredTrigger):
        self.trigger = trigger
        self._owner: Optional[int] = None

    def install(self) -> None:
        self._owner = threading.get_ident()
        if self not in sys.meta_path:
            sys.meta_path.insert(0, self)
        self.trigger.watcher = self
        self.poll()

    def uninstall(self) -> None:
        if self in sys.meta_path:
            sys.meta_path.remove(self)
        if self.trigger.watcher is self:
            self.trigger.watcher = None
        self._owner = None

    def poll(self) -> int:
        """
        Notify pending units that are already in ``sys.modules``.

        Returns:
            Number of callbacks invoked; always 0 off the owning thread
        """
        if threading.get_ident() != self._owner:
            return 0
        count = 0
        for unit in self.trigger.pending_units():
            if unit in sys.modules:
                count += self.trigger.notify_loaded(unit)
        return count

    def find_spec(self, fullname, path, target=None):
        if threading.get_ident() != self._owner:
            return None
        if self.trigger.is_loaded(fullname) or fullname not in self.trigger.pending_units():
            return None

        for finder in sys.meta_path:
            if finder is self or not hasattr(finder, "find_spec"):
                continue
            spec = finder.find_spec(fullname, path, target)
            if spec is not None:
                break
        else:
            return None

        if spec.loader is None or not hasattr(spec.loader, "exec_module"):
            return spec

        spec.loader = _NotifyingLoader(
            spec.loader,
            lambda: self.trigger.notify_loaded(fullname),
        )
        return spec
