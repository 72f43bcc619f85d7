"""
Foodweb component: trophic links between species.

Two blueprints:

- :class:`Matrix`: a square 0/1 adjacency matrix, ``A[i, j] = 1``
  if species i eats species j;
- :class:`Adjacency`: a mapping ``{predator: [preys]}``, with species
  labels or (0-based) indices.

Both imply the Species component when it is missing.
"""

from __future__ import annotations

from typing import Dict, List, Mapping
import warnings

import numpy as np

from ecodyn.components.model import Model
from ecodyn.components.species import Species
from ecodyn.core.network import default_metabolic_class, is_connected, trophic_levels
from ecodyn.framework import Blueprint, BlueprintArgumentError, Component, EdgesView, checkfails


def _species_field(species):
    if species is None or species is Species or isinstance(species, Blueprint):
        return species
    return Species(species)


def _expand_foodweb(raw, A: np.ndarray) -> None:
    if not is_connected(A):
        warnings.warn("The food web is disconnected: it contains isolated species or subnetworks.")
    network = raw.network
    network.A = A
    network.metabolic_class = default_metabolic_class(A)
    network.method = 'from component'
    raw.topology.add_edge_type('trophic', between=('species', 'species'))
    raw.topology.add_edges('trophic', A)


class Matrix(Blueprint):
    """Food web from a square adjacency matrix.

    Parameters
    ----------
    A : array-like
        ``A[i, j] = 1`` if i eats j.
    species : Species blueprint, names, or Species
        The species brought along. By default they are implied
        from the matrix size, named 's1', 's2', ...
    """

    brings = {'species': Species}

    def __init__(self, A, species=Species):
        self.A = np.asarray(A)
        self.species = _species_field(species)

    def implied_blueprint_for(self, component):
        return Species.Number(self.A.shape[0])

    def early_check(self):
        A = self.A
        if A.ndim != 2 or A.shape[0] != A.shape[1]:
            checkfails(f"The adjacency matrix should be square, received shape {A.shape}.")
        if not np.isin(A, (0, 1)).all():
            checkfails("The adjacency matrix should only contain 0s and 1s (or booleans).")

    def late_check(self, raw):
        S = raw.richness
        if self.A.shape != (S, S):
            checkfails(
                f"Invalid size for the adjacency matrix: expected {(S, S)} for {S} species, "
                f"received {self.A.shape}."
            )

    def expand(self, raw):
        _expand_foodweb(raw, self.A.astype(int))

    def summary(self) -> str:
        return f"{int(np.count_nonzero(self.A))} trophic links"


class Adjacency(Blueprint):
    """Food web from a mapping ``{predator: [preys]}``.

    References are either all species labels or all 0-based indices.
    """

    brings = {'species': Species}

    def __init__(self, adjacency: Mapping, species=Species):
        if not isinstance(adjacency, Mapping):
            raise BlueprintArgumentError(
                f"Adjacency list should be a mapping {{predator: [preys]}}, received {adjacency!r}."
            )
        self.adjacency: Dict = {}
        for pred, preys in adjacency.items():
            if isinstance(preys, (str, int, np.integer)):
                preys = [preys]
            self.adjacency[pred] = list(preys)
        self.species = _species_field(species)

    def _references(self) -> List:
        refs = []
        for pred, preys in self.adjacency.items():
            for ref in [pred] + preys:
                if ref not in refs:
                    refs.append(ref)
        return refs

    def _by_index(self) -> bool:
        return all(isinstance(ref, (int, np.integer)) for ref in self._references())

    def can_imply(self, component) -> bool:
        refs = self._references()
        return self._by_index() or all(isinstance(ref, str) for ref in refs)

    def implied_blueprint_for(self, component):
        if self._by_index():
            return Species.Number(max(self._references(), default=-1) + 1)
        return Species.Names(self._references())

    def early_check(self):
        refs = self._references()
        by_index = self._by_index()
        if not by_index and not all(isinstance(ref, str) for ref in refs):
            checkfails("Adjacency list references should be either all labels or all indices.")
        if by_index and any(ref < 0 for ref in refs):
            checkfails(f"Species indices should be non-negative, received {sorted(refs)}.")

    def _index(self, raw) -> Dict:
        names = raw.species
        if self._by_index():
            return {i: i for i in range(len(names))}
        return {name: i for i, name in enumerate(names)}

    def late_check(self, raw):
        index = self._index(raw)
        for ref in self._references():
            if ref not in index:
                what = "index" if self._by_index() else "label"
                checkfails(
                    f"Invalid species {what} in adjacency list: {ref!r}. "
                    f"Valid references: {list(index)}."
                )

    def matrix(self, raw) -> np.ndarray:
        index = self._index(raw)
        S = raw.richness
        A = np.zeros((S, S), dtype=int)
        for pred, preys in self.adjacency.items():
            for prey in preys:
                A[index[pred], index[prey]] = 1
        return A

    def expand(self, raw):
        _expand_foodweb(raw, self.matrix(raw))

    def summary(self) -> str:
        return f"{sum(len(p) for p in self.adjacency.values())} trophic links"


def _dispatch(arg, **kwargs):
    if isinstance(arg, Mapping):
        return Adjacency(arg, **kwargs)
    return Matrix(arg, **kwargs)


Foodweb = Component(
    'Foodweb',
    Matrix,
    Adjacency,
    requires=[Species],
    dispatch=_dispatch,
    display=lambda raw: f"Foodweb: {raw.network.trophic.n_links} trophic links",
    doc="Trophic links between species.",
)


# ============================================================================
# Properties
# ============================================================================

Model.declare_property(
    'trophic_links', 'A',
    getter=lambda raw: EdgesView('trophic_links', raw.network.A, raw.species, writable=False),
    depends=[Foodweb],
)

Model.declare_property(
    'n_trophic_links',
    getter=lambda raw: raw.network.trophic.n_links,
    depends=[Foodweb],
)

Model.declare_property(
    'producers_mask',
    getter=lambda raw: raw.network.producer_mask(),
    depends=[Foodweb],
)

Model.declare_property(
    'consumers_mask',
    getter=lambda raw: ~raw.network.producer_mask(),
    depends=[Foodweb],
)


@Model.declare_property('trophic_levels', depends=[Foodweb])
def get_trophic_levels(raw):
    return trophic_levels(raw.network.A)
