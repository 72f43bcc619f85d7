"""
BodyMass component: species body masses.

- :class:`Raw`: explicit masses, a scalar for all species or one per species;
- :class:`Z`: computed from trophic levels with a predator-prey mass
  ratio ``Z``: ``M_i = Z^(tl_i - 1)``. This requires the food web.
"""

from __future__ import annotations

import numpy as np

from ecodyn.components.checks import check_positive_values, positive
from ecodyn.components.foodweb import Foodweb
from ecodyn.components.model import Model
from ecodyn.components.species import Species
from ecodyn.core.network import compute_mass
from ecodyn.framework import (
    Blueprint,
    BlueprintArgumentError,
    Component,
    NodesView,
    checkfails,
)


class Raw(Blueprint):
    """Body masses given directly.

    A vector of masses implies the Species component when missing.
    """

    brings = {'species': Species}

    def __init__(self, M, species=Species):
        try:
            self.M = np.array(M, dtype=float)
        except (TypeError, ValueError):
            raise BlueprintArgumentError(f"Body masses should be numeric, received {M!r}.") from None
        self.species = species

    def can_imply(self, component) -> bool:
        return self.M.ndim == 1

    def implied_blueprint_for(self, component):
        return Species.Number(len(self.M))

    def early_check(self):
        if self.M.ndim > 1:
            checkfails(f"Body masses should be a scalar or a vector, received shape {self.M.shape}.")
        check_positive_values(self.M, 'M')

    def late_check(self, raw):
        S = raw.richness
        if self.M.ndim == 1 and self.M.shape != (S,):
            checkfails(f"Expected {S} body masses, received {len(self.M)}.")

    def expand(self, raw):
        raw.network.M = np.full(raw.richness, float(self.M)) if self.M.ndim == 0 else self.M.copy()

    def summary(self) -> str:
        return f"M = {self.M}"


class Z(Blueprint):
    """Body masses from trophic levels and a predator-prey mass ratio."""

    expands_from = ((Foodweb, "Trophic levels are needed to compute masses from Z."),)

    def __init__(self, Z: float):
        try:
            self.Z = float(Z)
        except (TypeError, ValueError):
            raise BlueprintArgumentError(f"Z should be a number, received {Z!r}.") from None

    def early_check(self):
        if not self.Z > 0:
            checkfails(f"Predator-prey mass ratio Z should be positive, received {self.Z}.")

    def expand(self, raw):
        raw.network.M = compute_mass(raw.network.A, self.Z)

    def summary(self) -> str:
        return f"Z = {self.Z}"


def _dispatch(M=None, *, Z=None):
    if (M is None) == (Z is None):
        raise BlueprintArgumentError("Specify body masses with exactly one of 'M' or 'Z'.")
    if M is not None:
        return BodyMass.Raw(M)
    return BodyMass.Z(Z)


BodyMass = Component(
    'BodyMass',
    Raw,
    Z,
    requires=[Species],
    dispatch=_dispatch,
    display=lambda raw: f"BodyMass: [{', '.join(f'{m:.3g}' for m in raw.network.M[:5])}{', ...' if raw.richness > 5 else ''}]",
    doc="Species body masses.",
)


Model.declare_property(
    'body_masses', 'M',
    getter=lambda raw: NodesView('body_masses', raw.network.M, raw.species, check=positive('body_masses')),
    depends=[BodyMass],
)
