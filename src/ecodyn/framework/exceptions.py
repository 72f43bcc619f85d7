"""
Errors raised by the component framework.

Every failure while adding blueprints to a system is eventually
wrapped into an :class:`AddError`, which records where in the tree
of brought blueprints the failure happened.
"""

from __future__ import annotations

from typing import List, Optional


class FrameworkError(Exception):
    """Base class for all component framework errors."""


class BlueprintArgumentError(FrameworkError, ValueError):
    """Malformed blueprint construction arguments."""


class BlueprintCheckFailure(FrameworkError):
    """Raised from within blueprint checks when input is invalid.

    Blueprint authors raise this from ``early_check`` or ``late_check``
    with a message describing the problem.
    """

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


def checkfails(message: str):
    """Raise a :class:`BlueprintCheckFailure` with the given message."""
    raise BlueprintCheckFailure(message)


class AddException(FrameworkError):
    """Base class for failures during ``System.add``."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class MissingRequiredComponent(AddException):
    """A required component is neither in the system nor brought."""

    def __init__(
        self,
        blueprint: str,
        component: str,
        miss: str,
        reason: Optional[str] = None,
        for_expansion: bool = False,
    ):
        self.blueprint = blueprint
        self.component = component
        self.miss = miss
        self.reason = reason
        self.for_expansion = for_expansion
        if for_expansion:
            head = f"Blueprint '{blueprint}' expands from '{miss}', which is missing."
        else:
            head = f"Component '{component}' requires '{miss}', neither found in the system nor brought by the blueprints."
        if reason:
            head += f"\n  {reason}"
        super().__init__(head)


class ConflictWithSystemComponent(AddException):
    """A blueprint provides a component conflicting with one already in the system."""

    def __init__(self, component: str, other: str, reason: Optional[str] = None):
        self.component = component
        self.other = other
        self.reason = reason
        message = f"Blueprint would expand into '{component}', which conflicts with '{other}' already in the system."
        if reason:
            message += f"\n  {reason}"
        super().__init__(message)


class ConflictWithBroughtComponent(AddException):
    """Two blueprints of the same batch provide conflicting components."""

    def __init__(self, component: str, other: str, reason: Optional[str] = None):
        self.component = component
        self.other = other
        self.reason = reason
        message = f"Blueprint would expand into '{component}', which conflicts with '{other}' also brought."
        if reason:
            message += f"\n  {reason}"
        super().__init__(message)


class BroughtAlreadyInValue(AddException):
    """A blueprint embeds a component the system already has."""

    def __init__(self, component: str, blueprint: str):
        self.component = component
        self.blueprint = blueprint
        super().__init__(
            f"Blueprint '{blueprint}' would bring component '{component}', "
            f"which is already in the system."
        )


class InconsistentForSameComponent(AddException):
    """Two different blueprints are brought for the same component."""

    def __init__(self, component: str, first: str, second: str):
        self.component = component
        self.first = first
        self.second = second
        super().__init__(
            f"Component '{component}' is brought twice with different blueprints: "
            f"'{first}' and '{second}'."
        )


class HookCheckFailure(AddException):
    """A blueprint check hook failed."""

    def __init__(self, blueprint: str, message: str, late: bool):
        self.blueprint = blueprint
        self.late = late
        kind = "Late" if late else "Early"
        super().__init__(f"{kind} check failed for blueprint '{blueprint}':\n  {message}")


class AddError(FrameworkError):
    """Failure to add blueprints to a system. The system is left unchanged.

    Attributes
    ----------
    error : AddException
        The underlying failure.
    path : list of (str, bool)
        Blueprint names from the failing node to its root,
        each with a flag telling whether it was implied.
    """

    def __init__(self, error: AddException, path: List[tuple]):
        self.error = error
        self.path = path
        lines = [error.message]
        for (name, implied), (parent, _) in zip(path, path[1:]):
            how = "implied by" if implied else "embedded within"
            lines.append(f"  '{name}' {how}: '{parent}'")
        super().__init__("\n".join(lines))


class PropertyError(FrameworkError, AttributeError):
    """Invalid property access on a system."""

    def __init__(self, name: str, message: str):
        self.name = name
        self.message = message
        super().__init__(f"Property '{name}': {message}")


class WriteError(PropertyError):
    """A property write violates the invariant of its component."""

    def __init__(self, name: str, message: str, index=None):
        self.index = index
        where = "" if index is None else f" at index {index}"
        super().__init__(name, f"Cannot write{where}: {message}")
