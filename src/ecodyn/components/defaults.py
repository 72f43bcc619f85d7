"""
Default model.

:func:`default_model` completes a food web with every component needed
for a simulation, unless given explicitly.
"""

from __future__ import annotations

from ecodyn.components.body_mass import BodyMass
from ecodyn.components.foodweb import Foodweb
from ecodyn.components.functional_responses import (
    BioenergeticResponse,
    ClassicResponse,
)
from ecodyn.components.metabolic_class import MetabolicClass
from ecodyn.components.model import Model
from ecodyn.components.nontrophic_layers import LAYERS
from ecodyn.components.producer_growth import LogisticGrowth
from ecodyn.components.rates import GrowthRate, MaximumConsumption, Metabolism, Mortality
from ecodyn.components.temperature import Temperature
from ecodyn.core.constants import DEFAULT_TEMPERATURE
from ecodyn.framework import Blueprint, BlueprintSum
from ecodyn.logger import get_logger

logger = get_logger(__name__)


def _defaults(with_layers: bool):
    return [
        BodyMass.Z(1.0),
        MetabolicClass.Favor('invertebrate'),
        GrowthRate.Allometric(),
        Metabolism.Allometric(),
        MaximumConsumption.Allometric(),
        Mortality.Flat(0.0),
        Temperature(DEFAULT_TEMPERATURE),
        ClassicResponse.Classic() if with_layers else BioenergeticResponse.Bioenergetic(),
        LogisticGrowth.Logistic(),
    ]


def default_model(foodweb: Blueprint, *overrides) -> Model:
    """Build a complete model from a food web blueprint.

    Parameters
    ----------
    foodweb : Blueprint
        Food web blueprint, e.g. ``Foodweb([[0, 0], [1, 0]])``.
    *overrides : Blueprint
        Blueprints replacing the defaults of their components. Defaults
        conflicting with an override are dropped: a nutrient intake
        replaces the logistic growth. With non-trophic layers, the
        default functional response is the classic one.

    Returns
    -------
    Model

    Examples
    --------
    >>> m = default_model(Foodweb([[0, 0], [1, 0]]), Mortality.Flat(0.1))
    >>> m.mortality[1]
    0.1
    """
    if not isinstance(foodweb, Blueprint) or foodweb.component is not Foodweb:
        raise TypeError(f"The first argument should be a food web blueprint, received {foodweb!r}.")
    given = [foodweb]
    for bp in overrides:
        given.extend(bp if isinstance(bp, BlueprintSum) else [bp])
    components = {bp.component for bp in given}
    with_layers = any(layer in components for layer in LAYERS.values())

    blueprints = list(given)
    for bp in _defaults(with_layers):
        comp = bp.component
        if comp in components or any(other in components for other in comp.conflicts):
            logger.debug(f"Default {bp.name()} replaced by the given blueprints.")
            continue
        blueprints.append(bp)
    return Model(*blueprints)
