"""
Species component: the names of the species in the model.

Species are usually implied by the food web. Specifying them explicitly
sets their names::

    Model(Species(['grass', 'rabbit']), Foodweb([[0, 0], [1, 0]]))
"""

from __future__ import annotations

from typing import List

import numpy as np

from ecodyn.components.model import Model
from ecodyn.core.constants import PRODUCER
from ecodyn.core.network import FoodWeb, default_species_names
from ecodyn.framework import Blueprint, BlueprintArgumentError, Component, checkfails


def _expand_species(raw, names: List[str]) -> None:
    S = len(names)
    raw.topology.add_node_compartment('species', names)
    # Species without trophic links until a food web is added.
    raw.network = FoodWeb(
        A=np.zeros((S, S), dtype=int),
        species=list(names),
        M=np.ones(S),
        metabolic_class=[PRODUCER] * S,
    )


class Names(Blueprint):
    """Species given by their names."""

    def __init__(self, names):
        if isinstance(names, str):
            raise BlueprintArgumentError(
                f"Species names should be a sequence of strings, received a single string: '{names}'."
            )
        self.names = [str(name) for name in names]

    def early_check(self):
        seen = set()
        for name in self.names:
            if name in seen:
                checkfails(f"Species name '{name}' is given twice.")
            seen.add(name)

    def expand(self, raw):
        _expand_species(raw, self.names)

    def summary(self) -> str:
        return f"{len(self.names)} species: {self.names}"


class Number(Blueprint):
    """Species given by their number, named 's1', 's2', ..."""

    def __init__(self, n: int):
        if isinstance(n, bool) or not isinstance(n, (int, np.integer)):
            raise BlueprintArgumentError(f"Number of species should be an integer, received {n!r}.")
        self.n = int(n)

    def early_check(self):
        if self.n < 0:
            checkfails(f"Number of species should be non-negative, received {self.n}.")

    def expand(self, raw):
        _expand_species(raw, default_species_names(self.n))

    def summary(self) -> str:
        return f"{self.n} species"


def _dispatch(arg):
    if isinstance(arg, (int, np.integer)) and not isinstance(arg, bool):
        return Number(arg)
    return Names(arg)


Species = Component(
    'Species',
    Names,
    Number,
    dispatch=_dispatch,
    display=lambda raw: f"Species: {raw.richness} ({', '.join(raw.species[:5])}{', ...' if raw.richness > 5 else ''})",
    doc="Species compartment, names of the species.",
)


# ============================================================================
# Properties
# ============================================================================

Model.declare_property(
    'richness', 'S', 'n_species',
    getter=lambda raw: raw.richness,
    depends=[Species],
)

Model.declare_property(
    'species_names',
    getter=lambda raw: list(raw.species),
    depends=[Species],
)

Model.declare_property(
    'species_index',
    getter=lambda raw: {name: i for i, name in enumerate(raw.species)},
    depends=[Species],
)
