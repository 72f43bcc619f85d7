"""
Trophic and multiplex networks.

A :class:`FoodWeb` holds the trophic adjacency matrix over species,
with species names, body masses and metabolic classes.
A :class:`MultiplexNetwork` adds non-trophic layers (competition,
facilitation, interference, refuge) over the same species set.

Adjacency convention: ``A[i, j] == 1`` means that species i eats species j.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Union
import warnings

import numpy as np
from scipy import linalg
from scipy.sparse.csgraph import connected_components

from ecodyn.core.aliasing import METABOLIC_CLASS_ALIASES
from ecodyn.core.constants import INVERTEBRATE, PRODUCER
from ecodyn.core.nontrophic import (
    INTERACTION_ALIASES,
    MULTIPLEX_DEFAULTS,
    NONTROPHIC_INTERACTIONS,
)


# ============================================================================
# Adjacency helpers
# ============================================================================

def producers(A: np.ndarray) -> np.ndarray:
    """Indices of species without prey."""
    return np.flatnonzero(np.asarray(A).sum(axis=1) == 0)


def predators(A: np.ndarray) -> np.ndarray:
    """Indices of species with at least one prey."""
    return np.flatnonzero(np.asarray(A).sum(axis=1) > 0)


def preys(A: np.ndarray) -> np.ndarray:
    """Indices of species with at least one predator."""
    return np.flatnonzero(np.asarray(A).sum(axis=0) > 0)


def preys_of(A: np.ndarray, i: int) -> np.ndarray:
    return np.flatnonzero(np.asarray(A)[i, :])


def predators_of(A: np.ndarray, i: int) -> np.ndarray:
    return np.flatnonzero(np.asarray(A)[:, i])


def trophic_levels(A: np.ndarray) -> np.ndarray:
    """Trophic level of every species.

    Producers have trophic level 1, consumers have one plus the mean
    trophic level of their preys. Solved as the linear system
    ``(I - D) tl = 1`` with D the row-normalized adjacency matrix.

    Parameters
    ----------
    A : np.ndarray
        Square adjacency matrix, ``A[i, j] = 1`` if i eats j.

    Returns
    -------
    np.ndarray
        Trophic levels, in species order.

    Examples
    --------
    >>> trophic_levels(np.array([[0, 0], [1, 0]]))
    array([1., 2.])
    """
    A = np.asarray(A, dtype=float)
    S = A.shape[0]
    if S == 0:
        return np.zeros(0)
    n_preys = A.sum(axis=1)
    D = np.zeros_like(A)
    has_prey = n_preys > 0
    D[has_prey] = A[has_prey] / n_preys[has_prey, None]
    return linalg.solve(np.eye(S) - D, np.ones(S))


def compute_mass(A: np.ndarray, Z: float) -> np.ndarray:
    """Body masses from trophic levels: ``M = Z^(tl - 1)``."""
    return Z ** (trophic_levels(A) - 1)


def default_metabolic_class(A: np.ndarray) -> List[str]:
    classes = [INVERTEBRATE] * np.asarray(A).shape[0]
    for i in producers(A):
        classes[i] = PRODUCER
    return classes


def is_connected(A: np.ndarray) -> bool:
    A = np.asarray(A)
    if A.shape[0] <= 1:
        return True
    n, _ = connected_components(A, directed=True, connection='weak')
    return n == 1


def connectance(A: np.ndarray) -> float:
    A = np.asarray(A)
    S = A.shape[0]
    return float(np.count_nonzero(A)) / S**2 if S else 0.0


# ============================================================================
# Food web
# ============================================================================

@dataclass
class FoodWeb:
    """Trophic network over species.

    Attributes
    ----------
    A : np.ndarray
        Adjacency matrix (S x S) of 0/1 integers, ``A[i, j] = 1`` if i eats j.
    species : list of str
        Species names, in reference order.
    M : np.ndarray
        Species body masses.
    metabolic_class : list of str
        Standard metabolic class of every species.
    method : str
        How the network was generated (informative only).

    Examples
    --------
    >>> fw = FoodWeb.from_matrix([[0, 0], [1, 0]])
    >>> fw.richness
    2
    >>> fw.producers().tolist()
    [0]
    """
    A: np.ndarray
    species: List[str]
    M: np.ndarray
    metabolic_class: List[str]
    method: str = "unspecified"

    @classmethod
    def from_matrix(
        cls,
        A,
        species: Optional[Sequence[str]] = None,
        Z: float = 1.0,
        M: Optional[Sequence[float]] = None,
        metabolic_class: Optional[Sequence[str]] = None,
        method: str = "unspecified",
        quiet: bool = False,
    ) -> "FoodWeb":
        """Build a food web from a square 0/1 adjacency matrix.

        Parameters
        ----------
        A : array-like
            Adjacency matrix.
        species : sequence of str, optional
            Species names, default 's1', 's2', ...
        Z : float
            Predator-prey body mass ratio, used if ``M`` is not given.
        M : sequence of float, optional
            Body masses.
        metabolic_class : sequence of str, optional
            Metabolic classes (any alias), default producer/invertebrate.
        quiet : bool
            Silence the disconnected network warning.
        """
        A = np.asarray(A)
        if A.ndim != 2 or A.shape[0] != A.shape[1]:
            raise ValueError(f"Adjacency matrix should be square, received shape {A.shape}.")
        if not np.isin(A, (0, 1)).all():
            raise ValueError("Adjacency matrix should only contain 0s and 1s.")
        A = A.astype(int)
        S = A.shape[0]
        species = default_species_names(S) if species is None else [str(s) for s in species]
        if len(species) != S:
            raise ValueError(f"Expected {S} species names, received {len(species)}.")
        if len(set(species)) != S:
            raise ValueError("Species names should be unique.")
        M = compute_mass(A, Z) if M is None else np.asarray(M, dtype=float)
        if M.shape != (S,):
            raise ValueError(f"Expected {S} body masses, received {M.shape}.")
        if metabolic_class is None:
            metabolic_class = default_metabolic_class(A)
        else:
            metabolic_class = clean_metabolic_class(metabolic_class, A)
        if not quiet and not is_connected(A):
            warnings.warn("The food web is disconnected: it contains isolated species or subnetworks.")
        return cls(A, species, M, list(metabolic_class), method)

    @property
    def richness(self) -> int:
        return self.A.shape[0]

    @property
    def n_links(self) -> int:
        return int(np.count_nonzero(self.A))

    def producers(self) -> np.ndarray:
        return producers(self.A)

    def predators(self) -> np.ndarray:
        return predators(self.A)

    def is_producer(self, i: int) -> bool:
        return not self.A[i, :].any()

    def producer_mask(self) -> np.ndarray:
        return self.A.sum(axis=1) == 0

    def trophic_levels(self) -> np.ndarray:
        return trophic_levels(self.A)

    def connectance(self) -> float:
        return connectance(self.A)

    @property
    def trophic(self) -> "FoodWeb":
        return self

    def __repr__(self) -> str:
        return f"FoodWeb(S={self.richness}, L={self.n_links})"


def default_species_names(S: int) -> List[str]:
    return [f"s{i}" for i in range(1, S + 1)]


def clean_metabolic_class(classes: Sequence[str], A: np.ndarray) -> List[str]:
    """Standardize metabolic classes and check them against the network.

    Producers must be of class producer, consumers must not.
    """
    classes = [METABOLIC_CLASS_ALIASES.standardize(c) for c in classes]
    A = np.asarray(A)
    if len(classes) != A.shape[0]:
        raise ValueError(
            f"Expected {A.shape[0]} metabolic classes, received {len(classes)}."
        )
    for i, cls in enumerate(classes):
        is_prod = not A[i, :].any()
        if is_prod and cls != PRODUCER:
            raise ValueError(
                f"Species {i + 1} has no prey but its metabolic class is '{cls}', "
                f"it should be '{PRODUCER}'."
            )
        if not is_prod and cls == PRODUCER:
            raise ValueError(
                f"Species {i + 1} has preys, so its metabolic class cannot be '{PRODUCER}'."
            )
    return classes


# ============================================================================
# Multiplex network
# ============================================================================

@dataclass
class Layer:
    """One non-trophic interaction layer.

    Attributes
    ----------
    A : np.ndarray
        Boolean adjacency matrix, ``A[k, i]`` means species k affects species i.
    intensity : float
        Interaction intensity.
    f : callable or None
        Functional form ``f(x, dx) -> x'``. None for interference,
        which enters the functional response directly.
    """
    A: np.ndarray
    intensity: float
    f: Optional[Callable[[float, float], float]]

    @property
    def n_links(self) -> int:
        return int(np.count_nonzero(self.A))

    @property
    def is_active(self) -> bool:
        return self.n_links > 0

    def __repr__(self) -> str:
        return f"Layer(L={self.n_links}, intensity={self.intensity})"


@dataclass
class MultiplexNetwork:
    """Trophic layer plus non-trophic layers over the same species.

    Attributes
    ----------
    foodweb : FoodWeb
        The trophic layer.
    layers : dict
        Standard interaction name -> :class:`Layer`, for
        'competition', 'facilitation', 'interference' and 'refuge'.
    """
    foodweb: FoodWeb
    layers: Dict[str, Layer] = field(default_factory=dict)

    @classmethod
    def from_foodweb(cls, foodweb: FoodWeb) -> "MultiplexNetwork":
        """Upgrade a food web: keep the trophic layer, empty non-trophic ones."""
        S = foodweb.richness
        layers = {}
        for name in NONTROPHIC_INTERACTIONS:
            defaults = MULTIPLEX_DEFAULTS[name]
            layers[name] = Layer(
                np.zeros((S, S), dtype=bool),
                defaults['intensity'],
                defaults['functional_form'],
            )
        return cls(foodweb, layers)

    # Delegate trophic queries to the food web.

    @property
    def A(self) -> np.ndarray:
        return self.foodweb.A

    @property
    def species(self) -> List[str]:
        return self.foodweb.species

    @property
    def M(self) -> np.ndarray:
        return self.foodweb.M

    @M.setter
    def M(self, value):
        self.foodweb.M = value

    @property
    def metabolic_class(self) -> List[str]:
        return self.foodweb.metabolic_class

    @metabolic_class.setter
    def metabolic_class(self, value):
        self.foodweb.metabolic_class = value

    @property
    def richness(self) -> int:
        return self.foodweb.richness

    @property
    def trophic(self) -> FoodWeb:
        return self.foodweb

    def producers(self) -> np.ndarray:
        return self.foodweb.producers()

    def predators(self) -> np.ndarray:
        return self.foodweb.predators()

    def is_producer(self, i: int) -> bool:
        return self.foodweb.is_producer(i)

    def producer_mask(self) -> np.ndarray:
        return self.foodweb.producer_mask()

    def trophic_levels(self) -> np.ndarray:
        return self.foodweb.trophic_levels()

    def layer(self, interaction: str) -> Layer:
        return self.layers[INTERACTION_ALIASES.standardize(interaction)]

    def active_layer(self, interaction: str) -> Optional[Layer]:
        """The layer if it holds at least one link, otherwise None."""
        layer = self.layer(interaction)
        return layer if layer.is_active else None

    def __repr__(self) -> str:
        inner = ", ".join(f"{name}: {layer.n_links}" for name, layer in self.layers.items())
        return f"MultiplexNetwork(S={self.richness}, trophic: {self.foodweb.n_links}, {inner})"


Network = Union[FoodWeb, MultiplexNetwork]


def as_multiplex(network: Network) -> MultiplexNetwork:
    if isinstance(network, MultiplexNetwork):
        return network
    return MultiplexNetwork.from_foodweb(network)
