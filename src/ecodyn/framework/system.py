"""
Systems: values built up from blueprints.

A :class:`System` wraps an inner value (e.g. model parameters)
and the set of components already expanded into it.
Blueprints are added with :meth:`System.add`, which either succeeds
entirely or leaves the system exactly as it was.
"""

from __future__ import annotations

import copy
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Type

from ecodyn.framework.component import Blueprint, BlueprintSum, Component
from ecodyn.framework.exceptions import (
    AddError,
    AddException,
    BlueprintCheckFailure,
    BroughtAlreadyInValue,
    ConflictWithBroughtComponent,
    ConflictWithSystemComponent,
    FrameworkError,
    HookCheckFailure,
    InconsistentForSameComponent,
    MissingRequiredComponent,
    PropertyError,
    WriteError,
)


class _Node:
    """One blueprint within the tree of blueprints being added."""

    __slots__ = ("blueprint", "parent", "implied", "children")

    def __init__(self, blueprint: Blueprint, parent: Optional["_Node"], implied: bool):
        self.blueprint = blueprint
        self.parent = parent
        self.implied = implied
        self.children: List[_Node] = []
        if parent is not None:
            parent.children.append(self)

    @property
    def component(self) -> Component:
        return self.blueprint.component

    def path(self) -> List[Tuple[str, bool]]:
        node, res = self, []
        while node is not None:
            res.append((node.blueprint.name(), node.implied))
            node = node.parent
        return res


class Property:
    """A named accessor into the inner value of a system.

    Parameters
    ----------
    name : str
        Main property name.
    aliases : tuple of str
        Other names for the same property.
    getter : callable
        ``getter(raw) -> value``.
    depends : tuple of Component
        Components required to read (and write) the property.
    """

    def __init__(self, name: str, aliases: Tuple[str, ...], getter: Callable,
                 depends: Sequence[Component] = ()):
        self.name = name
        self.aliases = aliases
        self.getter = getter
        self.write: Optional[Callable] = None
        self.depends = tuple(depends)

    def setter(self, write: Callable) -> Callable:
        """Decorator registering ``write(raw, value)`` for this property."""
        self.write = write
        return write

    @property
    def writable(self) -> bool:
        return self.write is not None

    def __repr__(self) -> str:
        rw = "read/write" if self.writable else "read-only"
        return f"<property {self.name} ({rw})>"


class System:
    """A value built from blueprints, with checked component relations.

    Subclasses set ``value_type``, the type of the inner value,
    and register properties with :meth:`declare_property`.

    Parameters
    ----------
    *blueprints : Blueprint or BlueprintSum
        Blueprints added immediately, as one batch.
    """

    value_type: Type = dict
    _properties: Dict[str, Property] = {}

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        cls._properties = dict(cls._properties)

    def __init__(self, *blueprints):
        object.__setattr__(self, "_value", self.value_type())
        object.__setattr__(self, "_components", {})
        if blueprints:
            self.add(*blueprints)

    # ------------------------------------------------------------------
    # Components queries
    # ------------------------------------------------------------------

    def has_component(self, component: Component) -> bool:
        return component in self._components

    def components(self) -> List[Component]:
        return list(self._components)

    def blueprint_types(self) -> Dict[Component, Type[Blueprint]]:
        """Originating blueprint type of every component in the system."""
        return dict(self._components)

    @property
    def value(self):
        """The inner value. Mutating it directly bypasses every check."""
        return self._value

    def copy(self) -> "System":
        return copy.deepcopy(self)

    # ------------------------------------------------------------------
    # Adding blueprints
    # ------------------------------------------------------------------

    def add(self, *blueprints) -> "System":
        """Check then expand the given blueprints into the system.

        On failure, an :class:`AddError` is raised and the system
        is left unchanged.

        Returns
        -------
        System
            The system itself, for chaining.
        """
        batch: List[Blueprint] = []
        for bp in blueprints:
            if isinstance(bp, BlueprintSum):
                batch.extend(bp)
            elif isinstance(bp, Blueprint):
                batch.append(bp)
            else:
                raise TypeError(f"Cannot add {bp!r} to a system: not a blueprint.")

        forest, brought, refused = self._collect(batch)
        order = self._expansion_order(forest, brought)
        for node in order:
            self._check_node(node, brought, refused)

        candidate = copy.deepcopy(self._value)
        components = dict(self._components)
        for node in order:
            bp = node.blueprint
            try:
                bp.late_check(candidate)
            except BlueprintCheckFailure as e:
                raise AddError(HookCheckFailure(bp.name(), e.message, late=True), node.path()) from e
            components[node.component] = type(bp)
            bp.expand(candidate)

        object.__setattr__(self, "_value", candidate)
        object.__setattr__(self, "_components", components)
        return self

    def __add__(self, other) -> "System":
        res = self.copy()
        res.add(other)
        return res

    def _collect(self, batch: List[Blueprint]):
        """Build the forest of blueprints to add: embedded ones first, then implied."""
        brought: Dict[Component, _Node] = {}
        forest: List[_Node] = []
        pending: List[Tuple[_Node, Component]] = []
        refused: Dict[Component, str] = {}

        def visit(bp: Blueprint, parent: Optional[_Node], implied: bool) -> Optional[_Node]:
            comp = bp.component
            if comp in self._components:
                err = BroughtAlreadyInValue(comp.name, bp.name())
                path = [(bp.name(), implied)] + (parent.path() if parent else [])
                raise AddError(err, path)
            if comp in brought:
                other = brought[comp]
                if other.blueprint == bp:
                    return None
                err = InconsistentForSameComponent(comp.name, other.blueprint.name(), bp.name())
                path = [(bp.name(), implied)] + (parent.path() if parent else [])
                raise AddError(err, path)
            node = _Node(bp, parent, implied)
            brought[comp] = node
            try:
                fields = list(bp.brought())
            except FrameworkError as e:
                raise AddError(HookCheckFailure(bp.name(), str(e), late=False), node.path()) from e
            for _, sub_comp, value in fields:
                if isinstance(value, Blueprint):
                    visit(value, node, False)
                else:
                    pending.append((node, sub_comp))
            return node

        for bp in batch:
            node = visit(bp, None, False)
            if node is not None:
                forest.append(node)

        while pending:
            node, comp = pending.pop(0)
            if comp in self._components or comp in brought:
                continue
            if not node.blueprint.can_imply(comp):
                refused.setdefault(comp, node.blueprint.name())
                continue
            implied = node.blueprint.implied_blueprint_for(comp)
            visit(implied, node, True)

        return forest, brought, refused

    def _expansion_order(self, forest: List[_Node], brought: Dict[Component, _Node]) -> List[_Node]:
        """Sort nodes so that every node expands after what it depends on.

        Children (brought blueprints) come before their parents,
        and providers of required components come before their dependents.
        """
        postorder: List[_Node] = []

        def walk(node):
            for child in node.children:
                walk(child)
            postorder.append(node)

        for root in forest:
            walk(root)

        def dependencies(node: _Node) -> List[_Node]:
            deps = list(node.children)
            reqs = list(node.component.requires) + [c for c, _ in node.blueprint.expansion_requirements()]
            for comp in reqs:
                provider = brought.get(comp)
                if provider is not None and provider is not node:
                    deps.append(provider)
            return deps

        order: List[_Node] = []
        done = set()
        visiting = set()

        def place(node):
            if id(node) in done:
                return
            if id(node) in visiting:
                raise FrameworkError(
                    f"Circular requirements involving blueprint '{node.blueprint.name()}'."
                )
            visiting.add(id(node))
            for dep in dependencies(node):
                place(dep)
            visiting.discard(id(node))
            done.add(id(node))
            order.append(node)

        for node in postorder:
            place(node)
        return order

    def _check_node(self, node: _Node, brought: Dict[Component, _Node],
                    refused: Dict[Component, str]) -> None:
        bp = node.blueprint
        comp = node.component

        def present(c: Component) -> bool:
            return c in self._components or c in brought

        try:
            for req, reason in comp.requires.items():
                if not present(req):
                    if req in refused:
                        reason = (reason + "\n  " if reason else "") + (
                            f"It could not be implied by blueprint '{refused[req]}'."
                        )
                    raise MissingRequiredComponent(bp.name(), comp.name, req.name, reason)
            for req, reason in bp.expansion_requirements():
                if not present(req):
                    raise MissingRequiredComponent(
                        bp.name(), comp.name, req.name, reason, for_expansion=True
                    )
            for other, reason in comp.conflicts.items():
                if other in self._components:
                    raise ConflictWithSystemComponent(comp.name, other.name, reason)
                if other in brought:
                    raise ConflictWithBroughtComponent(comp.name, other.name, reason)
            try:
                bp.early_check()
            except BlueprintCheckFailure as e:
                raise HookCheckFailure(bp.name(), e.message, late=False) from e
        except AddException as e:
            raise AddError(e, node.path()) from e

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @classmethod
    def declare_property(cls, name: str, *aliases: str, getter: Optional[Callable] = None,
                         setter: Optional[Callable] = None, depends: Iterable[Component] = ()):
        """Register a property readable (and optionally writable) on systems.

        Used directly, or as a decorator when ``getter`` is omitted::

            @Model.declare_property('richness', 'S', depends=[Species])
            def get_richness(raw):
                return len(raw.species)
        """

        def register(getter_fn: Callable) -> Property:
            prop = Property(name, aliases, getter_fn, depends)
            if setter is not None:
                prop.setter(setter)
            for n in (name,) + tuple(aliases):
                if n in cls._properties:
                    raise FrameworkError(f"Property '{n}' is already declared on {cls.__name__}.")
                cls._properties[n] = prop
            return prop

        if getter is None:
            return register
        return register(getter)

    @classmethod
    def properties(cls) -> List[str]:
        """Names of all public properties (aliases included), sorted."""
        return sorted(n for n in cls._properties if not n.startswith("_"))

    def _property(self, name: str) -> Property:
        prop = type(self)._properties.get(name)
        if prop is None:
            raise PropertyError(name, f"Unknown property for {type(self).__name__}.")
        for comp in prop.depends:
            if comp not in self._components:
                raise PropertyError(name, f"Component {comp.name} is required to read this property.")
        return prop

    def __getattr__(self, name: str) -> Any:
        if name.startswith("__") or name in ("_value", "_components"):
            raise AttributeError(name)
        return self._property(name).getter(self._value)

    def __setattr__(self, name: str, value) -> None:
        if name.startswith("_"):
            object.__setattr__(self, name, value)
            return
        if name not in type(self)._properties:
            raise PropertyError(name, f"Unknown property for {type(self).__name__}.")
        prop = self._property(name)
        if not prop.writable:
            raise PropertyError(name, "This property is read-only.")
        try:
            prop.write(self._value, value)
        except BlueprintCheckFailure as e:
            raise WriteError(name, e.message) from e

    def __dir__(self):
        return sorted(set(super().__dir__()) | set(self.properties()))

    def __repr__(self) -> str:
        n = len(self._components)
        head = f"{type(self).__name__} with {n} component{'s' if n != 1 else ''}"
        if not n:
            return head + "."
        lines = [head + ":"]
        for comp in self._components:
            display = getattr(comp, "display", None)
            lines.append(f"  - {display(self._value) if display else comp.name}")
        return "\n".join(lines)
