"""Decide per declaration whether, how and when to install a fallback."""

from dataclasses import dataclass
from typing import Optional

from ..core.deferred import DeferredTrigger
from ..core.registry import Registry
from ..core.version import parse_version, version_le
from .declaration import Declaration, InstallPlan, NamingStrategy, PlanAction
from .guards import GuardContext


@dataclass(frozen=True)
class PlanExplanation:
    """A plan plus the rule that produced it."""

    plan: InstallPlan
    rule: int
    reason: str


def is_needed(declaration: Declaration, context: GuardContext) -> bool:
    """
    Whether the fallback is wanted on this host right now.

    The guard (true when absent) and-ed with "the host does not already
    provide the name", the latter only for direct declarations without a
    known version.
    """
    wanted = True if declaration.guard is None else declaration.guard.evaluate(context)
    if (
        declaration.naming_strategy is NamingStrategy.DIRECT
        and declaration.version_introduced is None
        and context.registry.exists(declaration.original_name)
    ):
        return False
    return wanted


def explain_plan(
    declaration: Declaration,
    host_version: str,
    registry: Registry,
    trigger: Optional[DeferredTrigger] = None,
) -> PlanExplanation:
    """
    Compute the install plan for a declaration and say why.

    Raises:
        ConfigurationError: If the declaration is malformed.
        FormatError: If host_version cannot be parsed.
    """
    declaration.validate()
    parse_version(host_version)

    def plan(action: PlanAction, rule: int, reason: str) -> PlanExplanation:
        return PlanExplanation(
            plan=_plan(declaration, action),
            rule=rule,
            reason=reason,
        )

    if not declaration.version_range.contains(host_version):
        return plan(PlanAction.SKIP, 1, f"host {host_version} outside {declaration.version_range}")

    if declaration.naming_strategy is NamingStrategy.PREFIXED_ONLY:
        return plan(PlanAction.INSTALL_NOW, 2, "prefixed definitions are always installed")

    if (
        declaration.version_introduced is not None
        and version_le(declaration.version_introduced, host_version)
        and declaration.guard is None
    ):
        return plan(
            PlanAction.SKIP, 3,
            f"host provides it natively since {declaration.version_introduced}",
        )

    if declaration.deferred_unit is not None:
        return plan(
            PlanAction.INSTALL_DEFERRED, 5,
            f"waiting for unit {declaration.deferred_unit}",
        )

    if declaration.guard is None or declaration.guard.static:
        context = GuardContext(host_version=host_version, registry=registry, trigger=trigger)
        if is_needed(declaration, context):
            return plan(PlanAction.INSTALL_NOW, 6, "needed")
        return plan(PlanAction.SKIP, 6, "not needed")

    return plan(PlanAction.INSTALL_GUARDED, 7, "guard is checked at install time")


def compute_plan(
    declaration: Declaration,
    host_version: str,
    registry: Registry,
    trigger: Optional[DeferredTrigger] = None,
) -> InstallPlan:
    """Compute the install plan for a declaration on a host."""
    return explain_plan(declaration, host_version, registry, trigger).plan


def _plan(declaration: Declaration, action: PlanAction) -> InstallPlan:
    alias_from = None
    if declaration.naming_strategy is NamingStrategy.INDIRECT:
        alias_from = declaration.original_name
    return InstallPlan(
        action=action,
        target_name=declaration.target_name,
        declaration=declaration,
        alias_from=alias_from,
    )
