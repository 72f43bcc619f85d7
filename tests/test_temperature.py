"""
Tests for temperature-dependent re-parametrization.
"""

import numpy as np
import pytest

from ecodyn.components import ClassicResponse, Foodweb, NutrientIntake, default_model
from ecodyn.core.biorates import ExponentialBA, NoTemperatureResponse, boltzmann_factor
from ecodyn.core.dynamics import derivative
from ecodyn.core.temperature import (
    default_temperature_params,
    exp_ba_matrix_rate,
    set_temperature,
)


CHAIN = [[0, 0], [1, 0]]


@pytest.fixture
def classic_params():
    return default_model(Foodweb(CHAIN), ClassicResponse()).parameters()


class TestSetTemperature:
    """Tests for set_temperature."""

    def test_reference_temperature(self, classic_params):
        """Test that at 293.15 K the rates reduce to their allometric part."""
        M = classic_params.network.M
        set_temperature(classic_params, 293.15)
        assert np.isclose(classic_params.biorates.r[0], np.exp(-15.68) * M[0] ** -0.25)
        assert classic_params.biorates.r[1] == 0.0
        assert np.isclose(classic_params.biorates.x[1], np.exp(-16.54) * M[1] ** -0.31)
        ar = classic_params.functional_response.ar
        assert np.isclose(ar[1, 0], np.exp(-13.1) * M[1] ** 0.25 * M[0] ** -0.8)
        ht = classic_params.functional_response.ht
        assert np.isclose(ht[1, 0], np.exp(9.66) * M[1] ** -0.45 * M[0] ** 0.47)
        K = classic_params.producer_growth.K
        assert np.isclose(K[0], 3 * M[0] ** 0.28)
        assert np.isnan(K[1])
        assert classic_params.environment.T == 293.15
        assert isinstance(classic_params.temperature_response, ExponentialBA)

    def test_rates_zero_outside_links(self, classic_params):
        set_temperature(classic_params, 300.0)
        ar = classic_params.functional_response.ar
        ht = classic_params.functional_response.ht
        assert ar[0, 1] == 0.0 and ar[0, 0] == 0.0
        assert ht[0, 1] == 0.0 and ht[1, 1] == 0.0

    def test_warmer_temperature(self, classic_params):
        cold = set_temperature(classic_params, 293.15).functional_response.ht[1, 0]
        x_cold = classic_params.biorates.x[1]
        set_temperature(classic_params, 303.15)
        # Negative activation energy: faster metabolism when warmer.
        assert classic_params.biorates.x[1] > x_cold
        assert np.isclose(
            classic_params.biorates.x[1] / x_cold, boltzmann_factor(-0.69, 303.15)
        )
        # Positive activation energy: shorter handling times when warmer.
        assert classic_params.functional_response.ht[1, 0] < cold

    def test_dynamics_remain_finite(self, classic_params):
        set_temperature(classic_params, 298.15)
        assert np.all(np.isfinite(derivative(classic_params, [0.5, 0.5])))

    def test_no_temperature_response(self, classic_params):
        """Test that only the temperature is recorded."""
        x = classic_params.biorates.x.copy()
        set_temperature(classic_params, 310.0, NoTemperatureResponse())
        assert classic_params.environment.T == 310.0
        assert np.array_equal(classic_params.biorates.x, x)
        assert isinstance(classic_params.temperature_response, NoTemperatureResponse)

    def test_custom_coefficients(self, classic_params):
        params = default_temperature_params()
        params['x'].E_a = 0.0
        set_temperature(classic_params, 303.15, rates={'x': params['x']})
        M = classic_params.network.M
        assert np.isclose(classic_params.biorates.x[1], np.exp(-16.54) * M[1] ** -0.31)

    def test_nutrient_intake_rejected(self):
        params = default_model(Foodweb(CHAIN), NutrientIntake(2), ClassicResponse()).parameters()
        with pytest.raises(ValueError, match="nutrient intake"):
            set_temperature(params, 300.0)

    def test_bioenergetic_rejected(self):
        params = default_model(Foodweb(CHAIN)).parameters()
        with pytest.raises(ValueError, match="Use a ClassicResponse"):
            set_temperature(params, 300.0)

    def test_negative_temperature(self, classic_params):
        with pytest.raises(ValueError, match="Kelvin"):
            set_temperature(classic_params, -5.0)


class TestRates:
    """Tests for temperature-dependent link rates."""

    def test_matrix_rate_uses_resource_class(self):
        A = np.array([[0, 0, 0], [1, 0, 0], [1, 1, 0]])
        M = np.array([1.0, 2.0, 8.0])
        classes = ['producer', 'invertebrate', 'ectotherm vertebrate']
        ar = exp_ba_matrix_rate(A, M, classes, 293.15, default_temperature_params()['ar'])
        a = np.exp(-13.1)
        assert np.isclose(ar[2, 1], a * 8.0 ** 0.25 * 2.0 ** -0.8)
        assert np.isclose(ar[2, 0], a * 8.0 ** 0.25)
        assert np.count_nonzero(ar) == 3
