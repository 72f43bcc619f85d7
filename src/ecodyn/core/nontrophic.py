"""
Non-trophic interactions.

Four kinds of non-trophic interactions can be layered over a food web:

- competition, between producers, reduces the net growth of the target;
- facilitation, from any species to a producer, increases its growth rate;
- interference, between predators sharing a prey, enters the
  denominator of the classic functional response;
- refuge, from a producer to a prey, decreases the attack rates
  of the prey predators.

This module holds the shared (read-only) defaults for these layers,
the rules deciding which links are possible, and random link drawing.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Callable, Mapping, Optional
import inspect

import numpy as np

from ecodyn.core.aliasing import AliasingDict, AliasingSystem
from ecodyn.core.constants import DEFAULT_NTI_INTENSITY


INTERACTION_ALIASES = AliasingSystem(
    'interaction',
    {
        'trophic': ['t', 'trh'],
        'competition': ['c', 'cpt'],
        'facilitation': ['f', 'fac'],
        'interference': ['i', 'itf'],
        'refuge': ['r', 'ref'],
    },
)

LAYER_PARAMETER_ALIASES = AliasingSystem(
    'layer parameter',
    {
        'adjacency_matrix': ['A', 'matrix', 'adj_matrix'],
        'intensity': ['I', 'int'],
        'functional_form': ['F', 'fn'],
        'connectance': ['C', 'conn'],
        'number_of_links': ['L', 'n_links'],
        'symmetry': ['s', 'sym', 'symmetric'],
    },
)

NONTROPHIC_INTERACTIONS = ('competition', 'facilitation', 'interference', 'refuge')


# ============================================================================
# Default functional forms
# ============================================================================

def competition_form(x: float, dx: float) -> float:
    """Competition reduces positive net growth, never below zero."""
    if x < 0:
        return x
    return max(0.0, x * (1 - dx))


def facilitation_form(x: float, dx: float) -> float:
    return x * (1 + dx)


def refuge_form(x: float, dx: float) -> float:
    return x / (1 + dx)


def _frozen(**kwargs) -> Mapping:
    return MappingProxyType(dict(kwargs))


MULTIPLEX_DEFAULTS: Mapping[str, Mapping] = MappingProxyType({
    'competition': _frozen(
        functional_form=competition_form, intensity=DEFAULT_NTI_INTENSITY, symmetry=True
    ),
    'facilitation': _frozen(
        functional_form=facilitation_form, intensity=DEFAULT_NTI_INTENSITY, symmetry=False
    ),
    'interference': _frozen(
        functional_form=None, intensity=DEFAULT_NTI_INTENSITY, symmetry=True
    ),
    'refuge': _frozen(
        functional_form=refuge_form, intensity=DEFAULT_NTI_INTENSITY, symmetry=False
    ),
})


def check_functional_form(f: Callable, interaction: str) -> Callable:
    """Check that ``f`` is a functional form ``(x, dx) -> x'`` on floats.

    Raises
    ------
    TypeError
        If ``f`` is not callable with two positional arguments.
    ValueError
        If ``f`` does not return a finite float on a sample input.
    """
    if not callable(f):
        raise TypeError(f"The {interaction} functional form must be callable, received {f!r}.")
    try:
        inspect.signature(f).bind(0.0, 0.0)
    except TypeError:
        raise TypeError(
            f"The {interaction} functional form must accept two arguments (x, dx)."
        ) from None
    except ValueError:
        pass  # Builtins without introspectable signature.
    for x, dx in ((1.0, 0.5), (0.0, 0.0)):
        out = f(x, dx)
        if not isinstance(out, (float, int, np.floating, np.integer)) or isinstance(out, bool):
            raise ValueError(
                f"The {interaction} functional form must return a number, "
                f"received {out!r} for f({x}, {dx})."
            )
    return f


# ============================================================================
# Potential links
# ============================================================================

def _producer_mask(A: np.ndarray) -> np.ndarray:
    return np.asarray(A).sum(axis=1) == 0


def potential_competition_links(A: np.ndarray) -> np.ndarray:
    """Competition is possible between any two distinct producers."""
    prod = _producer_mask(A)
    P = np.outer(prod, prod)
    np.fill_diagonal(P, False)
    return P


def potential_facilitation_links(A: np.ndarray) -> np.ndarray:
    """Any species can facilitate any other producer."""
    S = np.asarray(A).shape[0]
    prod = _producer_mask(A)
    P = np.tile(prod, (S, 1))
    np.fill_diagonal(P, False)
    return P


def potential_refuge_links(A: np.ndarray) -> np.ndarray:
    """Producers can provide refuge to any other species having predators."""
    A = np.asarray(A)
    prod = _producer_mask(A)
    is_prey = A.sum(axis=0) > 0
    P = np.outer(prod, is_prey)
    np.fill_diagonal(P, False)
    return P


def potential_interference_links(A: np.ndarray) -> np.ndarray:
    """Predators sharing at least one prey can interfere with each other."""
    A = np.asarray(A, dtype=int)
    P = (A @ A.T) > 0
    np.fill_diagonal(P, False)
    return P


POTENTIAL_LINKS = {
    'competition': potential_competition_links,
    'facilitation': potential_facilitation_links,
    'interference': potential_interference_links,
    'refuge': potential_refuge_links,
}


def potential_links(interaction: str, A: np.ndarray) -> np.ndarray:
    return POTENTIAL_LINKS[INTERACTION_ALIASES.standardize(interaction)](A)


# ============================================================================
# Random links
# ============================================================================

def draw_links(
    potential: np.ndarray,
    L: Optional[int] = None,
    C: Optional[float] = None,
    symmetric: bool = False,
    rng: Optional[np.random.Generator] = None,
) -> np.ndarray:
    """Draw a random adjacency matrix among potential links.

    Parameters
    ----------
    potential : np.ndarray
        Boolean matrix of links allowed to be drawn.
    L : int, optional
        Number of links to draw.
    C : float, optional
        Connectance, converted to ``L = round(C * Lmax)``.
        Exactly one of ``L`` and ``C`` must be given.
    symmetric : bool
        Draw links pairwise, so that ``A[i, j] == A[j, i]``.
        ``L`` must then be even.
    rng : np.random.Generator, optional
        Random generator.

    Returns
    -------
    np.ndarray
        Boolean adjacency matrix.
    """
    potential = np.asarray(potential, dtype=bool)
    if (L is None) == (C is None):
        raise ValueError("Exactly one of the number of links 'L' or the connectance 'C' must be given.")
    Lmax = int(potential.sum())
    if C is not None:
        if not 0 <= C <= 1:
            raise ValueError(f"Connectance should lie in [0, 1], received {C}.")
        L = int(round(C * Lmax))
        if symmetric and L % 2:
            L -= 1
    L = int(L)
    if L < 0:
        raise ValueError(f"Number of links should be non-negative, received {L}.")
    if L > Lmax:
        raise ValueError(f"Cannot draw {L} links: only {Lmax} potential links.")
    rng = np.random.default_rng() if rng is None else rng
    drawn = np.zeros_like(potential)
    if symmetric:
        if not np.array_equal(potential, potential.T):
            raise ValueError("Cannot draw symmetric links among asymmetric potential links.")
        if L % 2:
            raise ValueError(f"Number of links should be even for symmetric interactions, received {L}.")
        rows, cols = np.nonzero(np.triu(potential))
        chosen = rng.choice(len(rows), size=L // 2, replace=False)
        drawn[rows[chosen], cols[chosen]] = True
        drawn[cols[chosen], rows[chosen]] = True
    else:
        rows, cols = np.nonzero(potential)
        chosen = rng.choice(len(rows), size=L, replace=False)
        drawn[rows[chosen], cols[chosen]] = True
    return drawn


def check_links_within(A: np.ndarray, potential: np.ndarray, interaction: str) -> None:
    """Raise ValueError if ``A`` holds links outside the potential ones."""
    outside = np.argwhere(np.asarray(A, dtype=bool) & ~potential)
    if len(outside):
        i, j = outside[0]
        raise ValueError(
            f"Invalid {interaction} link from species {i + 1} to species {j + 1}: "
            f"this link is not allowed by the food web structure."
        )


def layer_parameters(**kwargs) -> AliasingDict:
    """Collect layer arguments given with any alias into standard names."""
    return AliasingDict(LAYER_PARAMETER_ALIASES, kwargs)
