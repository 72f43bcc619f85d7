"""
Model components.

Each module declares one or several components of :class:`Model`,
their blueprints and the properties they make available.
Importing this package registers all of them.
"""

from ecodyn.components.model import Model
from ecodyn.components.species import Species
from ecodyn.components.foodweb import Foodweb
from ecodyn.components.body_mass import BodyMass
from ecodyn.components.metabolic_class import MetabolicClass
from ecodyn.components.rates import (
    GrowthRate,
    Metabolism,
    MaximumConsumption,
    Mortality,
)
from ecodyn.components.temperature import Temperature
from ecodyn.components.functional_responses import (
    BioenergeticResponse,
    ClassicResponse,
    LinearResponse,
)
from ecodyn.components.producer_growth import LogisticGrowth, NutrientIntake
from ecodyn.components.nontrophic_layers import (
    LAYERS,
    CompetitionLayer,
    FacilitationLayer,
    InterferenceLayer,
    RefugeLayer,
)
from ecodyn.components.defaults import default_model

__all__ = [
    "Model",
    # Structure
    "Species",
    "Foodweb",
    "BodyMass",
    "MetabolicClass",
    # Rates
    "GrowthRate",
    "Metabolism",
    "MaximumConsumption",
    "Mortality",
    "Temperature",
    # Functional responses
    "BioenergeticResponse",
    "ClassicResponse",
    "LinearResponse",
    # Producer growth
    "LogisticGrowth",
    "NutrientIntake",
    # Non-trophic layers
    "LAYERS",
    "CompetitionLayer",
    "FacilitationLayer",
    "InterferenceLayer",
    "RefugeLayer",
    "default_model",
]
