"""Version-independent conditions that force or suppress an installation."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple

from ..core.deferred import DeferredTrigger
from ..core.registry import Registry


@dataclass(frozen=True)
class GuardContext:
    """What a guard may look at while evaluating."""

    host_version: str
    registry: Registry
    trigger: Optional[DeferredTrigger] = None


class Guard(ABC):
    """
    Boolean condition attached to a declaration.

    A static guard only depends on facts fixed before installation starts,
    so the decision engine may evaluate it while planning. A dynamic guard
    is re-checked when the installer applies the plan.
    """

    static: bool = False

    @abstractmethod
    def evaluate(self, context: GuardContext) -> bool:
        ...

    def __and__(self, other: "Guard") -> "Guard":
        return all_of(self, other)

    def __or__(self, other: "Guard") -> "Guard":
        return any_of(self, other)

    def __invert__(self) -> "Guard":
        return not_(self)


@dataclass(frozen=True)
class Constant(Guard):
    value: bool
    static = True

    def evaluate(self, context: GuardContext) -> bool:
        return bool(self.value)


@dataclass(frozen=True)
class Bound(Guard):
    """True when a name is bound in the registry at evaluation time."""

    name: str

    def evaluate(self, context: GuardContext) -> bool:
        return context.registry.exists(self.name)


@dataclass(frozen=True)
class UnitLoaded(Guard):
    unit: str

    def evaluate(self, context: GuardContext) -> bool:
        return context.trigger is not None and context.trigger.is_loaded(self.unit)


@dataclass(frozen=True, eq=False)
class When(Guard):
    """Arbitrary predicate over the guard context."""

    predicate: Callable[[GuardContext], Any]
    label: str = ""
    is_static: bool = False

    @property
    def static(self) -> bool:
        return self.is_static

    def evaluate(self, context: GuardContext) -> bool:
        return bool(self.predicate(context))


@dataclass(frozen=True)
class AllOf(Guard):
    guards: Tuple[Guard, ...]

    @property
    def static(self) -> bool:
        return all(g.static for g in self.guards)

    def evaluate(self, context: GuardContext) -> bool:
        # Every operand is evaluated, same as AnyOf
        results = [g.evaluate(context) for g in self.guards]
        return all(results)


@dataclass(frozen=True)
class AnyOf(Guard):
    guards: Tuple[Guard, ...]

    @property
    def static(self) -> bool:
        return all(g.static for g in self.guards)

    def evaluate(self, context: GuardContext) -> bool:
        results = [g.evaluate(context) for g in self.guards]
        return any(results)


@dataclass(frozen=True)
class Not(Guard):
    guard: Guard

    @property
    def static(self) -> bool:
        return self.guard.static

    def evaluate(self, context: GuardContext) -> bool:
        return not self.guard.evaluate(context)


def constant(value: bool) -> Guard:
    return Constant(value)


def bound(name: str) -> Guard:
    return Bound(name)


def unbound(name: str) -> Guard:
    return Not(Bound(name))


def unit_loaded(unit: str) -> Guard:
    return UnitLoaded(unit)


def when(predicate: Callable[[GuardContext], Any], label: str = "", static: bool = False) -> Guard:
    return When(predicate, label=label or getattr(predicate, "__name__", ""), is_static=static)


def all_of(*guards: Guard) -> Guard:
    return AllOf(tuple(guards))


def any_of(*guards: Guard) -> Guard:
    return AnyOf(tuple(guards))


def not_(guard: Guard) -> Guard:
    return Not(guard)
