"""
Producer growth components.

- :data:`LogisticGrowth`: producers grow towards their carrying capacity;
- :data:`NutrientIntake`: producers feed on nutrients, which become
  additional state variables of the dynamics.

The two are mutually exclusive.
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np

from ecodyn.components.checks import nonnegative, positive
from ecodyn.components.foodweb import Foodweb
from ecodyn.components.model import Model
from ecodyn.core.constants import (
    DEFAULT_CARRYING_CAPACITY,
    DEFAULT_N_NUTRIENTS,
    DEFAULT_NUTRIENT_HALF_SATURATION,
    DEFAULT_SUPPLY,
    DEFAULT_TURNOVER,
)
from ecodyn.core import producer_growth as pg
from ecodyn.framework import (
    Blueprint,
    BlueprintArgumentError,
    Component,
    EdgesView,
    NodesView,
    checkfails,
    declare_conflicts,
)


class Logistic(Blueprint):
    """Logistic growth.

    Parameters
    ----------
    K : float or array-like
        Producers carrying capacities.
    producers_competition : float or array-like, optional
        Competition among producers, identity by default.
        A scalar sets the interspecific competition.
    """

    def __init__(self, K=DEFAULT_CARRYING_CAPACITY, producers_competition=None):
        self.K = K
        self.producers_competition = producers_competition

    def early_check(self):
        K = np.asarray(self.K, dtype=float)
        if np.any(np.isfinite(K) & (K <= 0)):
            checkfails(f"Carrying capacities should be positive, received {K.tolist()}.")
        if self.producers_competition is not None:
            a = np.asarray(self.producers_competition, dtype=float)
            if np.any(a < 0):
                checkfails("Producers competition should be non-negative.")

    def late_check(self, raw):
        try:
            pg.LogisticGrowth.default(raw.network, K=self.K, a=self.producers_competition)
        except ValueError as e:
            checkfails(str(e))

    def expand(self, raw):
        raw.producer_growth = pg.LogisticGrowth.default(
            raw.network, K=self.K, a=self.producers_competition
        )

    def summary(self) -> str:
        return f"logistic, K = {self.K}"


class Nutrients(Blueprint):
    """Nutrient intake.

    Parameters
    ----------
    n_nutrients : int
        Number of nutrients.
    turnover : float or array-like
        Nutrient turnover rates, in (0, 1].
    supply : float or array-like
        Supply concentrations.
    concentration : array-like, optional
        Producers x nutrients contents.
    half_saturation : float or array-like
        Producers x nutrients half-saturation densities.
    names : sequence of str, optional
        Nutrient names, 'n1', 'n2', ... by default.
    """

    def __init__(self, n_nutrients: int = DEFAULT_N_NUTRIENTS, turnover=DEFAULT_TURNOVER,
                 supply=DEFAULT_SUPPLY, concentration=None,
                 half_saturation=DEFAULT_NUTRIENT_HALF_SATURATION,
                 names: Optional[Sequence[str]] = None):
        if isinstance(n_nutrients, bool) or not isinstance(n_nutrients, (int, np.integer)):
            raise BlueprintArgumentError(f"Number of nutrients should be an integer, received {n_nutrients!r}.")
        self.n_nutrients = int(n_nutrients)
        self.turnover = turnover
        self.supply = supply
        self.concentration = concentration
        self.half_saturation = half_saturation
        self.names = None if names is None else [str(n) for n in names]

    def early_check(self):
        if self.n_nutrients < 1:
            checkfails(f"At least one nutrient is required, received {self.n_nutrients}.")
        if self.names is not None and len(set(self.names)) != len(self.names):
            checkfails(f"Nutrient names should be unique, received {self.names}.")

    def build(self, raw) -> pg.NutrientIntake:
        return pg.NutrientIntake.default(
            raw.network,
            n_nutrients=self.n_nutrients,
            turnover=self.turnover,
            supply=self.supply,
            concentration=self.concentration,
            half_saturation=self.half_saturation,
            names=self.names,
        )

    def late_check(self, raw):
        try:
            intake = self.build(raw)
        except ValueError as e:
            checkfails(str(e))
        clash = set(intake.names) & set(raw.species)
        if clash:
            checkfails(f"Nutrient names already used for species: {sorted(clash)}.")

    def expand(self, raw):
        intake = self.build(raw)
        raw.producer_growth = intake
        raw.topology.add_node_compartment('nutrients', intake.names)

    def summary(self) -> str:
        return f"{self.n_nutrients} nutrients"


LogisticGrowth = Component(
    'LogisticGrowth',
    Logistic,
    requires=[Foodweb],
    display=lambda raw: "LogisticGrowth",
    doc="Logistic producer growth.",
)

NutrientIntake = Component(
    'NutrientIntake',
    Nutrients,
    requires=[Foodweb],
    display=lambda raw: f"NutrientIntake: {raw.n_nutrients} nutrients",
    doc="Producer growth limited by nutrients.",
)

declare_conflicts(
    LogisticGrowth, NutrientIntake,
    reason="A model has a single producer growth model.",
)


# ============================================================================
# Properties
# ============================================================================

def _producer_pairs(raw) -> np.ndarray:
    prod = raw.network.producer_mask()
    return np.outer(prod, prod)


Model.declare_property(
    'carrying_capacity', 'K',
    getter=lambda raw: NodesView(
        'carrying_capacity', raw.producer_growth.K, raw.species,
        check=positive('carrying_capacity'), template=raw.network.producer_mask(),
    ),
    depends=[LogisticGrowth],
)

Model.declare_property(
    'producers_competition',
    getter=lambda raw: EdgesView(
        'producers_competition', raw.producer_growth.a, raw.species,
        check=nonnegative('producers_competition'), template=_producer_pairs(raw),
    ),
    depends=[LogisticGrowth],
)

Model.declare_property(
    'n_nutrients',
    getter=lambda raw: raw.n_nutrients,
    depends=[NutrientIntake],
)

Model.declare_property(
    'nutrients_names',
    getter=lambda raw: list(raw.producer_growth.names),
    depends=[NutrientIntake],
)


def _check_turnover(value: float) -> None:
    if not 0 < value <= 1:
        checkfails(f"'nutrients_turnover' should lie in (0, 1], received {value}.")


Model.declare_property(
    'nutrients_turnover',
    getter=lambda raw: NodesView(
        'nutrients_turnover', raw.producer_growth.turnover, raw.producer_growth.names,
        check=_check_turnover,
    ),
    depends=[NutrientIntake],
)

Model.declare_property(
    'nutrients_supply',
    getter=lambda raw: NodesView(
        'nutrients_supply', raw.producer_growth.supply, raw.producer_growth.names,
        check=nonnegative('nutrients_supply'),
    ),
    depends=[NutrientIntake],
)

Model.declare_property(
    'nutrients_concentration',
    getter=lambda raw: raw.producer_growth.concentration.copy(),
    depends=[NutrientIntake],
)

Model.declare_property(
    'nutrients_half_saturation',
    getter=lambda raw: raw.producer_growth.half_saturation.copy(),
    depends=[NutrientIntake],
)
