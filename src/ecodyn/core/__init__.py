"""
Core module for ecodyn.

Contains the model data structures, the dynamics and the simulation driver.
"""

from ecodyn.core.aliasing import (
    AliasingError,
    AliasingSystem,
    AliasingDict,
    RATE_ALIASES,
    METABOLIC_CLASS_ALIASES,
)
from ecodyn.core.topology import Topology, TopologyError
from ecodyn.core.network import (
    FoodWeb,
    Layer,
    MultiplexNetwork,
    trophic_levels,
    compute_mass,
)
from ecodyn.core.nontrophic import (
    MULTIPLEX_DEFAULTS,
    NONTROPHIC_INTERACTIONS,
    competition_form,
    facilitation_form,
    refuge_form,
    potential_links,
    draw_links,
)
from ecodyn.core.biorates import (
    BioRates,
    Environment,
    ExponentialBA,
    NoTemperatureResponse,
    AllometricParams,
    allometric_rate,
)
from ecodyn.core.functional_response import (
    BioenergeticResponse,
    ClassicResponse,
    LinearResponse,
)
from ecodyn.core.producer_growth import LogisticGrowth, NutrientIntake
from ecodyn.core.model_parameters import ModelParameters, model_parameters
from ecodyn.core.dynamics import DynamicsParams, dudt, derivative
from ecodyn.core.specialized import generate_dbdt
from ecodyn.core.temperature import (
    ExponentialBAParams,
    default_temperature_params,
    set_temperature,
)
from ecodyn.core.solver import (
    ReturnCode,
    ODEProblem,
    DiscreteCallback,
    CallbackSet,
    solve,
)
from ecodyn.core.simulate import (
    Solution,
    SteadyState,
    TerminateSteadyState,
    extinction_callback,
    simulate,
    find_steady_state,
    get_extinct_species,
    get_parameters,
)

__all__ = [
    # Aliasing
    "AliasingError",
    "AliasingSystem",
    "AliasingDict",
    "RATE_ALIASES",
    "METABOLIC_CLASS_ALIASES",
    # Topology
    "Topology",
    "TopologyError",
    # Networks
    "FoodWeb",
    "Layer",
    "MultiplexNetwork",
    "trophic_levels",
    "compute_mass",
    "MULTIPLEX_DEFAULTS",
    "NONTROPHIC_INTERACTIONS",
    "competition_form",
    "facilitation_form",
    "refuge_form",
    "potential_links",
    "draw_links",
    # Parameters
    "BioRates",
    "Environment",
    "ExponentialBA",
    "NoTemperatureResponse",
    "AllometricParams",
    "allometric_rate",
    "BioenergeticResponse",
    "ClassicResponse",
    "LinearResponse",
    "LogisticGrowth",
    "NutrientIntake",
    "ModelParameters",
    "model_parameters",
    # Dynamics
    "DynamicsParams",
    "dudt",
    "derivative",
    "generate_dbdt",
    # Temperature
    "ExponentialBAParams",
    "default_temperature_params",
    "set_temperature",
    # Simulation
    "ReturnCode",
    "ODEProblem",
    "DiscreteCallback",
    "CallbackSet",
    "solve",
    "Solution",
    "SteadyState",
    "TerminateSteadyState",
    "extinction_callback",
    "simulate",
    "find_steady_state",
    "get_extinct_species",
    "get_parameters",
]
