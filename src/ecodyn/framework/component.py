"""
Components and blueprints.

A :class:`Component` is a named role in a system (e.g. 'Foodweb').
It is implemented by one or several :class:`Blueprint` classes,
each describing one way to produce the component data
(e.g. a food web from a matrix or from an adjacency list).

Blueprints are lightweight, user-facing values. They are checked
then expanded into the system value by ``System.add``, after which
only their type is remembered.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, Type

import numpy as np

from ecodyn.framework.exceptions import BlueprintArgumentError


class Component:
    """A named role in the system, with its blueprints and requirements.

    Parameters
    ----------
    name : str
        Component name, also used in error messages.
    *blueprints : Blueprint subclasses
        The blueprint types implementing this component. Each one is
        made available as an attribute of the component,
        e.g. ``Foodweb.Matrix``.
    requires : iterable
        Components (or ``(component, reason)`` pairs) that must be present
        in the system for this component to make sense,
        whatever the blueprint used to bring it.
    dispatch : callable, optional
        Called with the arguments given to the component itself,
        returns a blueprint. This makes ``GrowthRate(0.5)`` a shortcut
        for ``GrowthRate.Flat(0.5)``.
    display : callable, optional
        ``display(raw) -> str``, one-line summary of the component data
        within a system.
    """

    def __init__(
        self,
        name: str,
        *blueprints: Type["Blueprint"],
        requires=(),
        dispatch: Optional[Callable[..., "Blueprint"]] = None,
        display: Optional[Callable[[Any], str]] = None,
        doc: str = "",
    ):
        self.name = name
        self.display = display
        self.requires: Dict["Component", Optional[str]] = {}
        for req in requires:
            self._add_requirement(req)
        self.conflicts: Dict["Component", Optional[str]] = {}
        self.blueprints: Dict[str, Type[Blueprint]] = {}
        self._dispatch = dispatch
        self.__doc__ = doc or f"Component {name}."
        for bp in blueprints:
            self.add_blueprint(bp)

    def _add_requirement(self, req):
        if isinstance(req, tuple):
            comp, reason = req
        else:
            comp, reason = req, None
        if not isinstance(comp, Component):
            raise TypeError(f"Component '{self.name}' cannot require {comp!r}.")
        self.requires[comp] = reason

    def add_blueprint(self, bp: Type["Blueprint"]) -> Type["Blueprint"]:
        if not (isinstance(bp, type) and issubclass(bp, Blueprint)):
            raise TypeError(f"Not a blueprint type: {bp!r}.")
        if bp.__dict__.get("component") not in (None, self):
            raise TypeError(
                f"Blueprint '{bp.__name__}' already provides "
                f"component '{bp.component.name}'."
            )
        bp.component = self
        self.blueprints[bp.__name__] = bp
        setattr(self, bp.__name__, bp)
        return bp

    def __call__(self, *args, **kwargs) -> "Blueprint":
        if self._dispatch is None:
            if len(self.blueprints) == 1:
                (bp,) = self.blueprints.values()
                return bp(*args, **kwargs)
            raise BlueprintArgumentError(
                f"Component '{self.name}' cannot be called directly, "
                f"use one of its blueprints: {', '.join(self.blueprints)}."
            )
        return self._dispatch(*args, **kwargs)

    # Components are identities: copying a system never copies them.
    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self

    def __repr__(self) -> str:
        return f"<component {self.name}>"


def declare_conflicts(*components: Component, reason: Optional[str] = None) -> None:
    """Declare every pair of the given components as mutually exclusive."""
    for a in components:
        for b in components:
            if a is b:
                continue
            a.conflicts[b] = reason
            b.conflicts[a] = reason


class Blueprint:
    """Base class for all blueprints.

    Class attributes
    ----------------
    component : Component
        Set when the blueprint type is registered with its component.
    expands_from : tuple
        Components (or ``(component, reason)`` pairs) needed to expand
        this particular blueprint.
    brings : dict
        ``{field_name: Component}``: fields which may hold sub-blueprints.
        Such a field holds either a blueprint instance (embedded),
        the component itself (implied if missing), or None.
    description : str
        Short human-readable description used for display.
    """

    component: Component = None
    expands_from: tuple = ()
    brings: Dict[str, Component] = {}
    description: str = ""

    # ------------------------------------------------------------------
    # Hooks, overriden by concrete blueprints.
    # ------------------------------------------------------------------

    def can_imply(self, component: Component) -> bool:
        """Whether this blueprint can build a default blueprint for ``component``."""
        return True

    def implied_blueprint_for(self, component: Component) -> "Blueprint":
        raise NotImplementedError(
            f"Blueprint '{self.name()}' cannot imply component '{component.name}'."
        )

    def early_check(self) -> None:
        """Check blueprint data alone, without access to the system."""

    def late_check(self, raw) -> None:
        """Check blueprint data against the system value."""

    def expand(self, raw) -> None:
        """Write blueprint data into the system value."""

    # ------------------------------------------------------------------

    @classmethod
    def name(cls) -> str:
        if cls.component is None:
            return cls.__name__
        return f"{cls.component.name}.{cls.__name__}"

    @classmethod
    def expansion_requirements(cls) -> Iterator[Tuple[Component, Optional[str]]]:
        for req in cls.expands_from:
            if isinstance(req, tuple):
                yield req
            else:
                yield req, None

    def brought(self) -> Iterator[Tuple[str, Component, Any]]:
        """Iterate over ``(field, component, value)`` for every brought field."""
        for field_name, comp in self.brings.items():
            value = getattr(self, field_name, None)
            if value is None:
                continue
            if isinstance(value, Blueprint):
                if value.component is not comp:
                    raise BlueprintArgumentError(
                        f"Field '{field_name}' of blueprint '{self.name()}' "
                        f"expects a blueprint for '{comp.name}', "
                        f"received a blueprint for '{value.component.name}'."
                    )
            elif value is not comp:
                raise BlueprintArgumentError(
                    f"Field '{field_name}' of blueprint '{self.name()}' "
                    f"must hold a blueprint for '{comp.name}', the component itself, "
                    f"or None. Received: {value!r}."
                )
            yield field_name, comp, value

    def summary(self) -> str:
        """One-line display of the blueprint data."""
        return self.description or self.__class__.__name__

    def __add__(self, other) -> "BlueprintSum":
        return BlueprintSum(self) + other

    def __radd__(self, other):
        if isinstance(other, BlueprintSum):
            return other + self
        return NotImplemented

    def __eq__(self, other) -> bool:
        if type(self) is not type(other):
            return False
        return _fields_equal(vars(self), vars(other))

    __hash__ = object.__hash__

    def __repr__(self) -> str:
        return f"blueprint for {self.component.name if self.component else '?'}: {self.summary()}"


class BlueprintSum:
    """An ordered batch of blueprints, added together as one operation."""

    def __init__(self, *blueprints: Blueprint):
        self.pack: List[Blueprint] = []
        for bp in blueprints:
            self._push(bp)

    def _push(self, item):
        if isinstance(item, BlueprintSum):
            self.pack.extend(item.pack)
        elif isinstance(item, Blueprint):
            self.pack.append(item)
        else:
            raise TypeError(f"Cannot add {item!r} to a blueprint sum.")

    def __add__(self, other) -> "BlueprintSum":
        res = BlueprintSum(*self.pack)
        res._push(other)
        return res

    def __iter__(self):
        return iter(self.pack)

    def __len__(self) -> int:
        return len(self.pack)

    def __repr__(self) -> str:
        inner = "\n".join(f"  - {bp!r}" for bp in self.pack)
        return f"BlueprintSum with {len(self.pack)} blueprints:\n{inner}"


def _fields_equal(a: Dict[str, Any], b: Dict[str, Any]) -> bool:
    if a.keys() != b.keys():
        return False
    for key in a:
        x, y = a[key], b[key]
        if isinstance(x, np.ndarray) or isinstance(y, np.ndarray):
            if not (
                isinstance(x, np.ndarray)
                and isinstance(y, np.ndarray)
                and x.shape == y.shape
                and np.array_equal(x, y)
            ):
                return False
        elif isinstance(x, dict) and isinstance(y, dict):
            if not _fields_equal(x, y):
                return False
        else:
            try:
                if not bool(x == y):
                    return False
            except (TypeError, ValueError):
                return False
    return True
