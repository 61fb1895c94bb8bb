"""Catalog builder and the engine that plans and installs declarations."""

import importlib
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional

from rich.console import Console
from rich.table import Table

from ..core.deferred import DeferredTrigger
from ..core.errors import ConfigurationError, FormatError
from ..core.logger import get_logger
from ..core.registry import Locality, Registry
from ..core.version import parse_version
from .declaration import (
    CapabilityKind,
    Declaration,
    InstallPlan,
    NamingStrategy,
    PlanAction,
    VersionRange,
)
from .decision import compute_plan
from .guards import Guard
from .installer import Installer

logger = get_logger(__name__)

# Marks "use the catalog's release" for version_introduced
_RELEASE = object()


class Catalog:
    """
    Declarations for the capabilities introduced by one host release.

    Payload modules build one at import time and expose it as ``CATALOG``::

        CATALOG = Catalog("29.1")

        @CATALOG.function("take", strategy=NamingStrategy.INDIRECT)
        def take(n, items):
            ...
    """

    def __init__(self, release: str):
        try:
            parse_version(release)
        except FormatError as e:
            raise ConfigurationError(
                f"Catalog release is not a version: {release!r}",
                details={"release": release},
            ) from e
        self.release = release
        self._declarations: List[Declaration] = []

    def __iter__(self) -> Iterator[Declaration]:
        return iter(self._declarations)

    def __len__(self) -> int:
        return len(self._declarations)

    @property
    def declarations(self) -> List[Declaration]:
        return list(self._declarations)

    def add(self, declaration: Declaration) -> Declaration:
        declaration.validate()
        self._declarations.append(declaration)
        return declaration

    def function(self, name: str, **options: Any) -> Callable[[Callable], Callable]:
        """Decorator declaring a function fallback."""
        return self._decorator(name, CapabilityKind.FUNCTION, options)

    def macro(self, name: str, **options: Any) -> Callable[[Callable], Callable]:
        """Decorator declaring a macro fallback."""
        return self._decorator(name, CapabilityKind.MACRO, options)

    def prefixed(self, name: str, real_name: Optional[str] = None, **options: Any) -> Callable[[Callable], Callable]:
        """Decorator declaring a function only reachable under ``compat-<name>``."""
        options.setdefault("strategy", NamingStrategy.PREFIXED_ONLY)
        return self._decorator(
            name,
            CapabilityKind.FUNCTION,
            {**options, "real_name": real_name or f"compat-{name}"},
        )

    def variable(
        self,
        name: str,
        value: Any,
        *,
        locality: Locality = Locality.NONE,
        constant: bool = False,
        **options: Any,
    ) -> Declaration:
        """Declare a variable fallback."""
        return self.add(
            self._declaration(
                name,
                CapabilityKind.VARIABLE,
                value,
                {**options, "locality": locality, "constant": constant},
            )
        )

    def _decorator(self, name: str, kind: CapabilityKind, options: Dict[str, Any]):
        def register(body: Callable) -> Callable:
            self.add(self._declaration(name, kind, body, options))
            return body
        return register

    def _declaration(
        self,
        name: str,
        kind: CapabilityKind,
        body: Any,
        options: Dict[str, Any],
    ) -> Declaration:
        strategy = NamingStrategy(options.get("strategy", NamingStrategy.DIRECT))
        version = options.get("version", _RELEASE)
        if version is _RELEASE:
            version = None if strategy is NamingStrategy.PREFIXED_ONLY else self.release

        guard: Optional[Guard] = options.get("guard")
        return Declaration(
            original_name=name,
            kind=kind,
            body=body,
            version_introduced=version,
            version_range=VersionRange(
                min=options.get("min_version"),
                max=options.get("max_version"),
            ),
            naming_strategy=strategy,
            real_name=options.get("real_name"),
            guard=guard,
            deferred_unit=options.get("unit"),
            locality=Locality(options.get("locality", Locality.NONE)),
            constant=bool(options.get("constant", False)),
            notes=options.get("notes"),
        )


def load_catalog(module_name: str) -> Catalog:
    """Import a payload module and return its ``CATALOG``."""
    module = importlib.import_module(module_name)
    catalog = getattr(module, "CATALOG", None)
    if not isinstance(catalog, Catalog):
        raise ConfigurationError(
            f"{module_name} must define CATALOG = Catalog(...)",
            details={"module": module_name},
        )
    return catalog


@dataclass
class ReportEntry:
    name: str
    action: PlanAction
    target: str
    changed: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "action": self.action.value,
            "target": self.target,
            "changed": self.changed,
        }


@dataclass
class InstallReport:
    """Outcome of one install pass."""

    host_version: str
    entries: List[ReportEntry] = field(default_factory=list)

    @property
    def counts(self) -> Dict[str, int]:
        counter = Counter(entry.action.value for entry in self.entries)
        return {action.value: counter.get(action.value, 0) for action in PlanAction}

    @property
    def installed(self) -> List[str]:
        """Names bound by this pass. Deferred entries are listed separately."""
        return [
            e.name for e in self.entries
            if e.changed and e.action not in (PlanAction.SKIP, PlanAction.INSTALL_DEFERRED)
        ]

    @property
    def deferred(self) -> List[str]:
        return [e.name for e in self.entries if e.action is PlanAction.INSTALL_DEFERRED]

    def action_for(self, name: str) -> Optional[PlanAction]:
        for entry in self.entries:
            if entry.name == name:
                return entry.action
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "host_version": self.host_version,
            "counts": self.counts,
            "entries": [e.to_dict() for e in self.entries],
        }

    def render(self, console: Optional[Console] = None) -> None:
        """Print the report as a table."""
        table = Table(title=f"hostcompat on host {self.host_version}")
        table.add_column("Name")
        table.add_column("Action")
        table.add_column("Target")
        for entry in self.entries:
            if entry.action is PlanAction.SKIP:
                continue
            table.add_row(entry.name, entry.action.value, entry.target)
        (console or Console()).print(table)


class CompatEngine:
    """
    Holds declarations in registration order and installs them.

    Two declarations may bind the same name only when their version ranges
    do not overlap; otherwise registration fails with ConfigurationError.
    """

    def __init__(
        self,
        registry: Registry,
        trigger: Optional[DeferredTrigger] = None,
        host_version: str = "",
    ):
        try:
            parse_version(host_version)
        except FormatError as e:
            raise ConfigurationError(
                f"Malformed host version: {host_version!r}",
                details={"host_version": host_version},
            ) from e

        self.registry = registry
        self.trigger = trigger if trigger is not None else DeferredTrigger()
        self.host_version = host_version
        self.installer = Installer(registry, self.trigger, host_version)
        self._declarations: List[Declaration] = []
        self._plans: Dict[int, InstallPlan] = {}

    def declare(self, declaration: Declaration) -> None:
        """
        Register a declaration.

        Raises:
            ConfigurationError: If the declaration is malformed or conflicts
                with one registered earlier.
        """
        declaration.validate()
        names = declaration.bound_names()
        for other in self._declarations:
            clash = names & other.bound_names()
            if clash and declaration.version_range.overlaps(other.version_range):
                raise ConfigurationError(
                    f"{declaration.original_name}: {', '.join(sorted(clash))} "
                    f"already declared by {other.original_name}",
                    details={
                        "name": declaration.original_name,
                        "other": other.original_name,
                        "names": sorted(clash),
                    },
                )
        self._declarations.append(declaration)

    def declare_all(self, declarations: Iterable[Declaration]) -> int:
        count = 0
        for declaration in declarations:
            self.declare(declaration)
            count += 1
        return count

    @property
    def declarations(self) -> List[Declaration]:
        return list(self._declarations)

    @property
    def plans(self) -> List[InstallPlan]:
        return [self._plans[id(d)] for d in self._declarations if id(d) in self._plans]

    def install_all(self) -> InstallReport:
        """Plan and apply every declaration not processed yet, in order."""
        report = InstallReport(host_version=self.host_version)
        for declaration in self._declarations:
            key = id(declaration)
            if key in self._plans:
                continue
            plan = compute_plan(declaration, self.host_version, self.registry, self.trigger)
            self._plans[key] = plan
            changed = self.installer.apply(plan)
            report.entries.append(
                ReportEntry(
                    name=declaration.original_name,
                    action=plan.action,
                    target=plan.target_name,
                    changed=changed,
                )
            )

        logger.info(
            "Install pass finished",
            host_version=self.host_version,
            **{k.replace("-", "_"): v for k, v in report.counts.items()},
        )
        return report

    def get_stats(self) -> Dict[str, Any]:
        by_action = Counter(plan.action.value for plan in self._plans.values())
        return {
            "declarations": len(self._declarations),
            "planned": len(self._plans),
            "by_action": dict(by_action),
            "installer": self.installer.get_stats(),
        }
