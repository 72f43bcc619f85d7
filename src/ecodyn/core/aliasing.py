"""
Aliasing systems.

Users may refer to the same logical quantity with several names,
e.g. ``d``, ``mortality`` and ``natural_death`` all refer to the natural
death rate. An :class:`AliasingSystem` records, for each standard name,
every reference that designates it, and rejects ambiguous definitions
as soon as the system is built.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple


class AliasingError(ValueError):
    """Raised on invalid alias definitions or unknown references."""

    def __init__(self, name: str, message: str):
        self.name = name
        self.message = message
        super().__init__(message)


def _sort_references(refs: Iterable[str]) -> List[str]:
    # Lexicographic first, then a stable sort on length.
    return sorted(sorted(refs), key=len)


class AliasingSystem:
    """Bidirectional mapping between standard names and their aliases.

    Parameters
    ----------
    name : str
        Name of the system, used in error messages (e.g. 'rate').
    aliases : mapping
        ``{standard: [alias, alias, ...]}``. The standard name is always
        a valid reference to itself and needs not be listed.

    Attributes
    ----------
    references : dict
        Standard name -> all its references (itself included),
        ordered by (length, lexicographic).
    revmap : dict
        Any reference -> its standard name.

    Examples
    --------
    >>> rates = AliasingSystem('rate', {'d': ['mortality'], 'r': [], 'x': []})
    >>> rates.standardize('mortality')
    'd'
    >>> rates.shortest('d')
    'd'
    """

    def __init__(self, name: str, aliases: Mapping[str, Sequence[str]]):
        self.name = name
        self.references: Dict[str, List[str]] = {}
        self.revmap: Dict[str, str] = {}
        for std, refs in aliases.items():
            std = str(std)
            if std in self.references:
                raise AliasingError(name, f"Duplicated {name} standard: '{std}'.")
            seen = set()
            for ref in refs:
                ref = str(ref)
                if ref in seen or ref == std:
                    raise AliasingError(
                        name, f"Duplicated {name} alias for '{std}': '{ref}'."
                    )
                seen.add(ref)
            seen.add(std)
            for ref in seen:
                target = self.revmap.get(ref)
                if target is not None:
                    raise AliasingError(
                        name,
                        f"Ambiguous {name} reference: "
                        f"'{ref}' either means '{target}' or '{std}'.",
                    )
                self.revmap[ref] = std
            self.references[std] = _sort_references(seen)

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    def as_mapping(self) -> Dict[str, List[str]]:
        """Return the ``{standard: [aliases]}`` mapping this system was built from."""
        return {
            std: [r for r in refs if r != std] for std, refs in self.references.items()
        }

    def with_aliases(self, std: str, *aliases: str) -> "AliasingSystem":
        """Return a new system where ``std`` (possibly new) gets extra aliases."""
        mapping = self.as_mapping()
        mapping.setdefault(std, [])
        mapping[std] = list(mapping[std]) + list(aliases)
        return AliasingSystem(self.name, mapping)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def standardize(self, ref) -> str:
        """Return the standard name designated by ``ref``."""
        try:
            return self.revmap[str(ref)]
        except KeyError:
            raise AliasingError(
                self.name,
                f"Invalid {self.name} reference: '{ref}'. "
                f"Valid references: {self.cheat_sheet()}",
            ) from None

    def isref(self, ref) -> bool:
        return str(ref) in self.revmap

    def is_alias(self, ref, std: str) -> bool:
        """True if ``ref`` designates the standard ``std``."""
        return self.isref(ref) and self.standardize(ref) == self.standardize(std)

    def isin(self, ref, standards: Iterable[str]) -> bool:
        """True if ``ref`` designates any of the given standards."""
        if not self.isref(ref):
            return False
        std = self.standardize(ref)
        return any(std == self.standardize(s) for s in standards)

    def standards(self) -> Tuple[str, ...]:
        return tuple(self.references)

    def aliases(self, ref) -> List[str]:
        """All references to the standard designated by ``ref``."""
        return list(self.references[self.standardize(ref)])

    def shortest(self, ref) -> str:
        return self.references[self.standardize(ref)][0]

    def cheat_sheet(self) -> str:
        parts = []
        for std, refs in self.references.items():
            others = [r for r in refs if r != std]
            if others:
                parts.append(f"{std} ({', '.join(others)})")
            else:
                parts.append(std)
        return ", ".join(parts)

    def __len__(self) -> int:
        return len(self.references)

    def __contains__(self, ref) -> bool:
        return self.isref(ref)

    def __iter__(self):
        return iter(self.references)

    def __repr__(self) -> str:
        return f"AliasingSystem('{self.name}': {self.cheat_sheet()})"


class AliasingDict(dict):
    """A dict keyed by standard names, accepting any reference on access.

    Parameters
    ----------
    system : AliasingSystem
        System used to resolve references.
    data : mapping, optional
        Initial ``{reference: value}`` entries.
    **kwargs
        More ``reference=value`` entries.

    Raises
    ------
    AliasingError
        If the same standard is specified twice through different references.
    """

    def __init__(self, system: AliasingSystem, data: Optional[Mapping] = None, **kwargs):
        super().__init__()
        self.system = system
        given: Dict[str, str] = {}
        items = list((data or {}).items()) + list(kwargs.items())
        for ref, value in items:
            std = system.standardize(ref)
            if std in given:
                raise AliasingError(
                    system.name,
                    f"{system.name.capitalize()} type '{std}' specified twice: "
                    f"once with '{given[std]}' and once with '{ref}'.",
                )
            given[std] = str(ref)
            super().__setitem__(std, value)

    def __getitem__(self, ref):
        return super().__getitem__(self.system.standardize(ref))

    def __setitem__(self, ref, value):
        super().__setitem__(self.system.standardize(ref), value)

    def __contains__(self, ref) -> bool:
        return self.system.isref(ref) and super().__contains__(self.system.standardize(ref))

    def get(self, ref, default=None):
        if ref in self:
            return self[ref]
        return default

    def copy(self) -> "AliasingDict":
        return AliasingDict(self.system, dict(self))


# ============================================================================
# CATALOG SYSTEMS
# ============================================================================

RATE_ALIASES = AliasingSystem(
    'rate',
    {
        'd': ['mortality', 'natural_death', 'natural_death_rate'],
        'r': ['growth', 'growth_rate'],
        'x': ['metabolism', 'metabolic_rate'],
        'y': ['max_consumption', 'maximum_consumption'],
    },
)

METABOLIC_CLASS_ALIASES = AliasingSystem(
    'metabolic class',
    {
        'producer': ['p', 'prod'],
        'invertebrate': ['i', 'inv'],
        'ectotherm vertebrate': ['e', 'ect', 'ectotherm', 'ectotherm_vertebrate'],
    },
)
