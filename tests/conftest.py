"""
Shared fixtures for ecodyn tests.
"""

import warnings

import numpy as np
import pytest

from ecodyn.components import Foodweb, default_model
from ecodyn.core.biorates import BioRates
from ecodyn.core.model_parameters import model_parameters
from ecodyn.core.network import FoodWeb
from ecodyn.logger import configure_logging


@pytest.fixture(autouse=True)
def quiet_logging():
    """Keep extinction messages out of the test output."""
    configure_logging("WARNING")
    yield


@pytest.fixture
def chain_matrix():
    """Species 2 eats species 1."""
    return np.array([[0, 0], [1, 0]])


@pytest.fixture
def omnivory_matrix():
    """Producer s1, herbivore s2, omnivore s3 eating s1 and s2."""
    return np.array([
        [0, 0, 0],
        [1, 0, 0],
        [1, 1, 0],
    ])


@pytest.fixture
def four_species_matrix():
    """Two producers, two consumers sharing the first producer."""
    return np.array([
        [0, 0, 0, 0],
        [0, 0, 0, 0],
        [1, 1, 0, 0],
        [1, 0, 0, 0],
    ])


@pytest.fixture
def chain_foodweb(chain_matrix):
    return FoodWeb.from_matrix(chain_matrix)


@pytest.fixture
def chain_params(chain_foodweb):
    """Two species chain, allometric rates without natural death."""
    rates = BioRates.default(chain_foodweb.M, chain_foodweb.metabolic_class, d=0)
    return model_parameters(chain_foodweb, biorates=rates)


@pytest.fixture
def chain_model(chain_matrix):
    return default_model(Foodweb(chain_matrix))


@pytest.fixture
def omnivory_model(omnivory_matrix):
    return default_model(Foodweb(omnivory_matrix))


@pytest.fixture
def no_warnings():
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        yield
