"""Execute install plans against the registry."""

import copy
from typing import Any, Dict, Optional, Set

from ..core.deferred import DeferredTrigger
from ..core.errors import ConfigurationError
from ..core.logger import get_logger
from ..core.registry import BindingOrigin, Locality, LocalityAware, NamespaceRegistry, Registry
from .declaration import CapabilityKind, Declaration, InstallPlan, PlanAction
from .decision import is_needed
from .guards import GuardContext

logger = get_logger(__name__)


class Installer:
    """
    Applies install plans.

    Applying a plan twice leaves the registry as the first application left
    it. A target is not rebound while it still exists and was bound either
    by this installer or, as the registry records, by any other compat
    installer. A deferred declaration is handed to the trigger only once.
    """

    def __init__(
        self,
        registry: Registry,
        trigger: Optional[DeferredTrigger] = None,
        host_version: str = "0",
    ):
        self.registry = registry
        self.trigger = trigger
        self.host_version = host_version
        self._bound: Set[str] = set()
        self._aliased: Set[str] = set()
        self._deferred: Set[int] = set()
        self._fired: Set[int] = set()
        self._fallbacks: Dict[str, str] = {}  # original name -> name holding the fallback

    def apply(self, plan: InstallPlan) -> bool:
        """
        Apply a plan.

        Returns:
            True if the registry changed or a deferral was registered
        """
        if plan.action is PlanAction.SKIP:
            logger.debug("Fallback skipped", name=plan.declaration.original_name)
            return False
        if plan.action is PlanAction.INSTALL_NOW:
            return self._install(plan)
        if plan.action is PlanAction.INSTALL_GUARDED:
            return self._install_guarded(plan)
        if plan.action is PlanAction.INSTALL_DEFERRED:
            return self._defer(plan)
        raise ConfigurationError(f"Unknown plan action: {plan.action!r}")

    def fallback_for(self, name: str) -> Optional[str]:
        """Name under which a fallback for ``name`` was installed, if any."""
        return self._fallbacks.get(name)

    def get_stats(self) -> Dict[str, Any]:
        return {
            "bound": len(self._bound),
            "aliased": len(self._aliased),
            "deferred": len(self._deferred),
            "deferred_fired": len(self._fired),
        }

    # --- internals ---

    def _context(self) -> GuardContext:
        return GuardContext(
            host_version=self.host_version,
            registry=self.registry,
            trigger=self.trigger,
        )

    def _install_guarded(self, plan: InstallPlan) -> bool:
        if not is_needed(plan.declaration, self._context()):
            logger.debug("Guard declined fallback", name=plan.declaration.original_name)
            return False
        return self._install(plan)

    def _defer(self, plan: InstallPlan) -> bool:
        declaration = plan.declaration
        key = id(declaration)
        if key in self._deferred:
            return False
        if self.trigger is None:
            raise ConfigurationError(
                f"{declaration.original_name}: deferred until "
                f"{declaration.deferred_unit!r} but no trigger is available",
                details={"name": declaration.original_name},
            )

        self._deferred.add(key)

        def install_after_load() -> None:
            if key in self._fired:
                return
            self._fired.add(key)
            self._install_guarded(plan)

        install_after_load.__qualname__ = f"install_after_load[{declaration.original_name}]"
        self.trigger.register(declaration.deferred_unit, install_after_load)
        return True

    def _install(self, plan: InstallPlan) -> bool:
        declaration = plan.declaration
        target = plan.target_name
        changed = False

        if self._already_bound(target):
            logger.debug("Fallback already installed", name=declaration.original_name)
        else:
            self._bind(declaration, target)
            changed = True

        if plan.alias_from is not None and self._should_alias(plan):
            self.registry.alias(plan.alias_from, target)
            self._aliased.add(plan.alias_from)
            changed = True

        if target != declaration.original_name:
            self._fallbacks[declaration.original_name] = target

        if changed:
            logger.info(
                "Fallback installed",
                name=declaration.original_name,
                target=target,
                alias=plan.alias_from if plan.alias_from in self._aliased else None,
                action=plan.action.value,
            )
        return changed

    def _already_bound(self, target: str) -> bool:
        if not self.registry.exists(target):
            return False
        if target in self._bound:
            return True
        if isinstance(self.registry, NamespaceRegistry):
            entry = self.registry.binding(target)
            return entry.origin is BindingOrigin.COMPAT and not entry.is_alias
        return False

    def _bind(self, declaration: Declaration, target: str) -> None:
        value = declaration.body
        # Each registry gets its own copy of a variable's initial value
        if declaration.kind is CapabilityKind.VARIABLE:
            value = copy.deepcopy(value)

        if isinstance(self.registry, NamespaceRegistry):
            self.registry.bind(
                target,
                value,
                kind=declaration.kind.value,
                constant=declaration.constant,
            )
        else:
            self.registry.bind(target, value)
        self._bound.add(target)

        if (
            declaration.kind is CapabilityKind.VARIABLE
            and declaration.locality is not Locality.NONE
            and isinstance(self.registry, LocalityAware)
        ):
            self.registry.set_locality(target, declaration.locality)

    def _should_alias(self, plan: InstallPlan) -> bool:
        name = plan.alias_from
        if name in self._aliased and self.registry.exists(name):
            return False
        if (
            isinstance(self.registry, NamespaceRegistry)
            and self.registry.exists(name)
            and self.registry.binding(name).alias_of == plan.target_name
        ):
            return False
        declaration = plan.declaration
        # Keep a native binding the host provides on its own
        if (
            self.registry.exists(name)
            and declaration.version_introduced is None
            and declaration.guard is None
        ):
            return False
        return True
