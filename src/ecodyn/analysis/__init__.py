"""Measures computed on simulation results.

Functioning (richness, biomass, diversity), trophic structure
and temporal stability of the simulated communities.
"""

from .measures import (
    extract_last_timesteps,
    richness,
    species_persistence,
    biomass,
    shannon_diversity,
    simpson,
    evenness,
    living_species,
    get_alive_species,
    get_extinction_timesteps,
    producer_growth,
    min_max,
)
from .structure import (
    trophic_structure,
    max_trophic_level,
    mean_trophic_level,
    weighted_mean_trophic_level,
)
from .stability import (
    coefficient_of_variation,
    avg_cv_sp,
    synchrony,
    temporal_cv,
    foodweb_cv,
    population_stability,
)

__all__ = [
    'extract_last_timesteps',
    'richness',
    'species_persistence',
    'biomass',
    'shannon_diversity',
    'simpson',
    'evenness',
    'living_species',
    'get_alive_species',
    'get_extinction_timesteps',
    'producer_growth',
    'min_max',
    'trophic_structure',
    'max_trophic_level',
    'mean_trophic_level',
    'weighted_mean_trophic_level',
    'coefficient_of_variation',
    'avg_cv_sp',
    'synchrony',
    'temporal_cv',
    'foodweb_cv',
    'population_stability',
]
