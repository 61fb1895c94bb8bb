"""Declaration model, decision engine and installer."""

from .catalog import Catalog, CompatEngine, InstallReport, load_catalog
from .declaration import (
    CapabilityKind,
    Declaration,
    InstallPlan,
    NamingStrategy,
    PlanAction,
    VersionRange,
)
from .decision import compute_plan, explain_plan
from .installer import Installer

__all__ = [
    "Catalog",
    "CompatEngine",
    "InstallReport",
    "load_catalog",
    "CapabilityKind",
    "Declaration",
    "InstallPlan",
    "NamingStrategy",
    "PlanAction",
    "VersionRange",
    "compute_plan",
    "explain_plan",
    "Installer",
]
