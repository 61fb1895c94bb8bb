"""Process-wide namespace of callable and variable bindings."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Set, runtime_checkable

from .errors import ConfigurationError, ReadOnlyBindingError, UnboundNameError
from .logger import get_logger

logger = get_logger(__name__)


class BindingOrigin(str, Enum):
    """Who created a binding."""
    NATIVE = "native"
    COMPAT = "compat"


class Locality(str, Enum):
    """Scoping of a variable binding."""
    NONE = "none"
    BUFFER = "buffer"
    PERMANENT_BUFFER = "permanent-buffer"


@runtime_checkable
class Registry(Protocol):
    """The three namespace operations the engine relies on."""

    def exists(self, name: str) -> bool:
        ...

    def bind(self, name: str, value: Any) -> None:
        ...

    def alias(self, name: str, target: str) -> None:
        ...


@runtime_checkable
class LocalityAware(Protocol):
    """Registries that can scope variables per buffer."""

    def set_locality(self, name: str, locality: Locality) -> None:
        ...


@dataclass
class Binding:
    """One entry of the indirection table."""

    name: str
    value: Any = None
    kind: str = "function"
    origin: BindingOrigin = BindingOrigin.NATIVE
    alias_of: Optional[str] = None
    locality: Locality = Locality.NONE
    constant: bool = False

    @property
    def is_alias(self) -> bool:
        return self.alias_of is not None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "kind": self.kind,
            "origin": self.origin.value,
            "alias_of": self.alias_of,
            "locality": self.locality.value,
            "constant": self.constant,
        }


class NamespaceRegistry:
    """
    Indirection table from names to their current implementation.

    Callers resolve through this table instead of ambient global lookup, so
    an installed fallback becomes visible to every caller at once. The table
    is mutated only from the initializing thread; there is no locking.
    """

    def __init__(self, native: Optional[Dict[str, Any]] = None):
        self._bindings: Dict[str, Binding] = {}
        self._scoped: Dict[str, Dict[str, Any]] = {}  # scope -> name -> value
        for name, value in (native or {}).items():
            self.provide_native(name, value)

    # --- the engine-facing protocol ---

    def exists(self, name: str) -> bool:
        """Check whether a name is bound, directly or through an alias."""
        return name in self._bindings

    def bind(
        self,
        name: str,
        value: Any,
        kind: str = "function",
        constant: bool = False,
    ) -> None:
        """
        Bind a name to a compatibility implementation.

        Args:
            name: Name to bind
            value: Implementation or variable value
            kind: "function", "macro" or "variable"
            constant: Refuse later reassignment through set_value()
        """
        existing = self._bindings.get(name)
        if existing is not None and existing.constant:
            raise ReadOnlyBindingError(
                f"Cannot rebind constant {name!r}",
                details={"name": name},
            )

        self._bindings[name] = Binding(
            name=name,
            value=value,
            kind=kind,
            origin=BindingOrigin.COMPAT,
            constant=constant,
        )
        logger.debug(
            "Name bound",
            name=name,
            kind=kind,
            replaced=existing.origin.value if existing else None,
        )

    def alias(self, name: str, target: str) -> None:
        """Make ``name`` resolve to whatever ``target`` resolves to."""
        if name == target:
            raise ConfigurationError(
                f"Refusing to alias {name!r} to itself",
                details={"name": name},
            )
        if target not in self._bindings:
            raise UnboundNameError(
                f"Alias target {target!r} is not bound",
                details={"name": name, "target": target},
            )

        previous = self._bindings.get(name)
        self._bindings[name] = Binding(
            name=name,
            kind=self._bindings[target].kind,
            origin=BindingOrigin.COMPAT,
            alias_of=target,
        )
        # Fail now rather than on first call
        try:
            self.resolve(name)
        except ConfigurationError:
            if previous is None:
                del self._bindings[name]
            else:
                self._bindings[name] = previous
            raise
        logger.debug("Name aliased", name=name, target=target)

    # --- host side ---

    def provide_native(self, name: str, value: Any, kind: str = "function") -> None:
        """Seed a binding the host ships natively."""
        self._bindings[name] = Binding(name=name, value=value, kind=kind)

    # --- lookup ---

    def binding(self, name: str) -> Binding:
        """Get the raw binding for a name, without following aliases."""
        try:
            return self._bindings[name]
        except KeyError:
            raise UnboundNameError(f"{name!r} is not bound", details={"name": name}) from None

    def resolve(self, name: str) -> Any:
        """Follow alias chains and return the implementation behind a name."""
        seen: List[str] = []
        current = name
        while True:
            entry = self.binding(current)
            if not entry.is_alias:
                return entry.value
            if current in seen:
                raise ConfigurationError(
                    f"Alias cycle while resolving {name!r}",
                    details={"chain": seen + [current]},
                )
            seen.append(current)
            current = entry.alias_of

    def call(self, name: str, *args: Any, **kwargs: Any) -> Any:
        """Call the implementation currently bound to a name."""
        func = self.resolve(name)
        if not callable(func):
            raise TypeError(f"{name!r} is bound to a non-callable {type(func).__name__}")
        return func(*args, **kwargs)

    def names(self, origin: Optional[BindingOrigin] = None) -> List[str]:
        """List bound names, optionally filtered by origin."""
        return sorted(
            name
            for name, entry in self._bindings.items()
            if origin is None or entry.origin == origin
        )

    # --- variables ---

    def set_locality(self, name: str, locality: Locality) -> None:
        """Mark a variable as buffer-scoped (or permanently so)."""
        entry = self.binding(name)
        entry.locality = Locality(locality)

    def value(self, name: str, scope: Optional[str] = None) -> Any:
        """Read a variable, preferring the scope-local value when present."""
        entry = self.binding(name)
        if scope is not None and entry.locality is not Locality.NONE:
            local = self._scoped.get(scope, {})
            if name in local:
                return local[name]
        return self.resolve(name)

    def set_value(self, name: str, value: Any, scope: Optional[str] = None) -> None:
        """
        Assign a variable.

        Buffer-scoped variables assigned with a scope get a scope-local value;
        everything else updates the global value.
        """
        entry = self.binding(name)
        if entry.constant:
            raise ReadOnlyBindingError(
                f"Attempt to set constant {name!r}",
                details={"name": name},
            )
        if scope is not None and entry.locality is not Locality.NONE:
            self._scoped.setdefault(scope, {})[name] = value
            return
        while entry.is_alias:
            entry = self.binding(entry.alias_of)
        entry.value = value

    def reset_scope(self, scope: str) -> int:
        """
        Drop the scope-local values of a scope, keeping permanent ones.

        Returns:
            Number of values dropped
        """
        local = self._scoped.get(scope)
        if not local:
            return 0

        dropped: Set[str] = {
            name
            for name in local
            if self._bindings[name].locality is not Locality.PERMANENT_BUFFER
        }
        for name in dropped:
            del local[name]
        if not local:
            del self._scoped[scope]
        return len(dropped)

    def get_stats(self) -> Dict[str, Any]:
        """Get registry statistics."""
        entries = list(self._bindings.values())
        return {
            "total_bindings": len(entries),
            "native": sum(1 for b in entries if b.origin is BindingOrigin.NATIVE),
            "compat": sum(1 for b in entries if b.origin is BindingOrigin.COMPAT),
            "aliases": sum(1 for b in entries if b.is_alias),
            "by_kind": {
                kind: sum(1 for b in entries if b.kind == kind)
                for kind in sorted({b.kind for b in entries})
            },
            "scopes": len(self._scoped),
        }
