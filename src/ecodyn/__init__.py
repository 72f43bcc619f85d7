"""
ecodyn - Biomass dynamics in ecological networks

Simulate species biomasses in trophic and multiplex (non-trophic)
interaction networks, from models assembled out of checked components.
"""

__version__ = "0.1.0"
__author__ = "ecodyn Development Team"

# Model components
from ecodyn.components import (
    Model,
    Species,
    Foodweb,
    BodyMass,
    MetabolicClass,
    GrowthRate,
    Metabolism,
    MaximumConsumption,
    Mortality,
    Temperature,
    BioenergeticResponse,
    ClassicResponse,
    LinearResponse,
    LogisticGrowth,
    NutrientIntake,
    CompetitionLayer,
    FacilitationLayer,
    InterferenceLayer,
    RefugeLayer,
    default_model,
)
from ecodyn.core.model_parameters import ModelParameters, model_parameters
from ecodyn.core.network import FoodWeb, MultiplexNetwork
from ecodyn.core.specialized import generate_dbdt
from ecodyn.core.simulate import (
    Solution,
    simulate,
    find_steady_state,
    get_extinct_species,
    get_parameters,
)

__all__ = [
    # Version
    "__version__",
    "__author__",
    # Components
    "Model",
    "Species",
    "Foodweb",
    "BodyMass",
    "MetabolicClass",
    "GrowthRate",
    "Metabolism",
    "MaximumConsumption",
    "Mortality",
    "Temperature",
    "BioenergeticResponse",
    "ClassicResponse",
    "LinearResponse",
    "LogisticGrowth",
    "NutrientIntake",
    "CompetitionLayer",
    "FacilitationLayer",
    "InterferenceLayer",
    "RefugeLayer",
    "default_model",
    # Parameters
    "ModelParameters",
    "model_parameters",
    "FoodWeb",
    "MultiplexNetwork",
    # Simulation
    "generate_dbdt",
    "Solution",
    "simulate",
    "find_steady_state",
    "get_extinct_species",
    "get_parameters",
]
