"""Static capability declarations and the plans computed from them."""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, FrozenSet, Optional

from ..core.errors import ConfigurationError, FormatError
from ..core.registry import Locality
from ..core.version import Ordering, compare, parse_version

if TYPE_CHECKING:
    from .guards import Guard


class CapabilityKind(str, Enum):
    """What a declaration binds."""
    FUNCTION = "function"
    MACRO = "macro"
    VARIABLE = "variable"


class NamingStrategy(str, Enum):
    """Under which name a fallback is installed."""
    DIRECT = "direct"
    INDIRECT = "indirect"
    PREFIXED_ONLY = "prefixed-only"


class PlanAction(str, Enum):
    """Outcome of the decision engine."""
    SKIP = "skip"
    INSTALL_NOW = "install-now"
    INSTALL_GUARDED = "install-guarded"
    INSTALL_DEFERRED = "install-deferred"


@dataclass(frozen=True)
class VersionRange:
    """Inclusive host version bounds; a missing bound is unbounded."""

    min: Optional[str] = None
    max: Optional[str] = None

    def validate(self) -> None:
        for bound in (self.min, self.max):
            if bound is not None:
                _check_version(bound, "version_range")
        if self.min is not None and self.max is not None:
            if compare(self.min, self.max) is Ordering.GREATER:
                raise ConfigurationError(
                    f"Empty version range {self.min}..{self.max}",
                    details={"min": self.min, "max": self.max},
                )

    def contains(self, version: str) -> bool:
        if self.min is not None and compare(version, self.min) is Ordering.LESS:
            return False
        if self.max is not None and compare(version, self.max) is Ordering.GREATER:
            return False
        return True

    def overlaps(self, other: "VersionRange") -> bool:
        if self.max is not None and other.min is not None:
            if compare(self.max, other.min) is Ordering.LESS:
                return False
        if other.max is not None and self.min is not None:
            if compare(other.max, self.min) is Ordering.LESS:
                return False
        return True

    def __str__(self) -> str:
        return f"{self.min or '*'}..{self.max or '*'}"


@dataclass(frozen=True)
class Declaration:
    """Metadata for one compatibility definition."""

    original_name: str
    kind: CapabilityKind = CapabilityKind.FUNCTION
    body: Any = field(default=None, compare=False)
    version_introduced: Optional[str] = None
    version_range: VersionRange = field(default_factory=VersionRange)
    naming_strategy: NamingStrategy = NamingStrategy.DIRECT
    real_name: Optional[str] = None
    guard: Optional["Guard"] = field(default=None, compare=False)
    deferred_unit: Optional[str] = None
    locality: Locality = Locality.NONE
    constant: bool = False
    notes: Optional[str] = field(default=None, compare=False)

    def __post_init__(self):
        if self.real_name is None and self.naming_strategy is NamingStrategy.INDIRECT:
            object.__setattr__(self, "real_name", f"compat--{self.original_name}")

    @property
    def target_name(self) -> str:
        """The name the body itself gets bound to."""
        if self.naming_strategy is NamingStrategy.DIRECT:
            return self.original_name
        return self.real_name

    def bound_names(self) -> FrozenSet[str]:
        """Every name an installation of this declaration may bind."""
        if self.naming_strategy is NamingStrategy.DIRECT:
            return frozenset({self.original_name})
        if self.naming_strategy is NamingStrategy.INDIRECT:
            return frozenset({self.original_name, self.real_name})
        return frozenset({self.real_name})

    def validate(self) -> None:
        """
        Check the declaration for packaging defects.

        Raises:
            ConfigurationError: On self-aliasing, a prefixed declaration with
                a version, malformed versions or misplaced variable options.
        """
        if not self.original_name:
            raise ConfigurationError("Declaration without a name")

        details = {"name": self.original_name}

        if self.naming_strategy is not NamingStrategy.DIRECT:
            if not self.real_name:
                raise ConfigurationError(
                    f"{self.original_name}: {self.naming_strategy.value} needs a real name",
                    details=details,
                )
            if self.real_name == self.original_name:
                raise ConfigurationError(
                    f"{self.original_name}: real name would alias the name to itself",
                    details=details,
                )

        if self.naming_strategy is NamingStrategy.PREFIXED_ONLY and self.version_introduced:
            raise ConfigurationError(
                f"{self.original_name}: prefixed-only definitions cannot declare a version",
                details={**details, "version": self.version_introduced},
            )

        if self.version_introduced is not None:
            _check_version(self.version_introduced, self.original_name)
        self.version_range.validate()

        if self.kind is not CapabilityKind.VARIABLE:
            if self.locality is not Locality.NONE or self.constant:
                raise ConfigurationError(
                    f"{self.original_name}: locality and constant apply to variables only",
                    details=details,
                )
        elif self.constant and self.locality is not Locality.NONE:
            raise ConfigurationError(
                f"{self.original_name}: a constant cannot be buffer-local",
                details=details,
            )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.original_name,
            "kind": self.kind.value,
            "version": self.version_introduced,
            "range": str(self.version_range),
            "strategy": self.naming_strategy.value,
            "real_name": self.real_name,
            "guarded": self.guard is not None,
            "unit": self.deferred_unit,
            "locality": self.locality.value,
            "constant": self.constant,
        }


@dataclass(frozen=True)
class InstallPlan:
    """What the installer should do for one declaration."""

    action: PlanAction
    target_name: str
    declaration: Declaration = field(repr=False)
    alias_from: Optional[str] = None

    @property
    def installs(self) -> bool:
        return self.action is not PlanAction.SKIP

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.declaration.original_name,
            "action": self.action.value,
            "target": self.target_name,
            "alias_from": self.alias_from,
        }


def _check_version(version: str, where: str) -> None:
    try:
        parse_version(version)
    except FormatError as e:
        raise ConfigurationError(
            f"{where}: malformed version identifier {version!r}",
            details={"version": version},
        ) from e
