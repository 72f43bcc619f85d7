"""
Tests for model parameters: rates, functional responses and producer growth.
"""

import numpy as np
import pytest

from ecodyn.core.biorates import (
    BioRates,
    Environment,
    ExponentialBA,
    allometric_rate,
    default_metabolic_params,
)
from ecodyn.core.functional_response import (
    BioenergeticResponse,
    ClassicResponse,
    LinearResponse,
    default_efficiency,
    homogeneous_preference,
)
from ecodyn.core.model_parameters import ModelParameters, model_parameters
from ecodyn.core.network import FoodWeb, Layer, MultiplexNetwork
from ecodyn.core.nontrophic import refuge_form
from ecodyn.core.producer_growth import LogisticGrowth, NutrientIntake


class TestBioRates:
    """Tests for species biological rates."""

    def test_allometric_defaults(self, chain_foodweb):
        rates = BioRates.default(chain_foodweb.M, chain_foodweb.metabolic_class)
        assert np.allclose(rates.r, [1.0, 0.0])
        assert np.allclose(rates.x, [0.0, 0.314])
        assert np.allclose(rates.y, [0.0, 8.0])
        assert np.allclose(rates.d, [0.0, 0.0])

    def test_overrides_with_aliases(self, chain_foodweb):
        rates = BioRates.default(
            chain_foodweb.M, chain_foodweb.metabolic_class, mortality=0.1, growth_rate=[2.0, 0.0]
        )
        assert np.allclose(rates.d, [0.1, 0.1])
        assert np.allclose(rates.r, [2.0, 0.0])
        assert rates.get('natural_death') is rates.d

    def test_negative_rate(self, chain_foodweb):
        with pytest.raises(ValueError, match="non-negative"):
            BioRates.default(chain_foodweb.M, chain_foodweb.metabolic_class, d=-1)

    def test_wrong_size(self, chain_foodweb):
        with pytest.raises(ValueError, match="size 2"):
            BioRates.default(chain_foodweb.M, chain_foodweb.metabolic_class, x=[0, 1, 2])

    def test_allometric_scaling(self):
        M = np.array([1.0, 16.0])
        rates = allometric_rate(M, ['invertebrate', 'ectotherm vertebrate'], default_metabolic_params())
        assert np.allclose(rates, [0.314, 0.88 * 16 ** -0.25])

    def test_temperature_dependence(self, chain_foodweb):
        """Test that rates at the reference temperature equal the plain allometric ones."""
        reference = BioRates.default(
            chain_foodweb.M, chain_foodweb.metabolic_class, ExponentialBA(), Environment(293.15)
        )
        plain = BioRates.default(chain_foodweb.M, chain_foodweb.metabolic_class)
        assert np.allclose(reference.x, plain.x)
        warmer = BioRates.default(
            chain_foodweb.M, chain_foodweb.metabolic_class, ExponentialBA(), Environment(303.15)
        )
        assert warmer.x[1] > plain.x[1]

    def test_negative_temperature(self):
        with pytest.raises(ValueError, match="Kelvin"):
            Environment(-1.0)


class TestFunctionalResponses:
    """Tests for functional responses."""

    def test_preferences_and_efficiency(self, omnivory_matrix):
        omega = homogeneous_preference(omnivory_matrix)
        assert np.allclose(omega[2], [0.5, 0.5, 0.0])
        assert np.allclose(omega[0], 0.0)
        e = default_efficiency(omnivory_matrix)
        assert e[2, 0] == 0.45
        assert e[2, 1] == 0.85
        assert e[0, 0] == 0.0

    def test_bioenergetic(self, chain_foodweb):
        response = BioenergeticResponse.default(chain_foodweb)
        F = response.matrix(np.array([1.0, 1.0]), chain_foodweb)
        assert np.isclose(F[1, 0], 0.8)
        assert F[0, 0] == 0.0

    def test_bioenergetic_interference(self, chain_foodweb):
        response = BioenergeticResponse.default(chain_foodweb, c=1.0)
        # 1 / (0.25 + 1 * 1 * 0.25 + 1)
        assert np.isclose(response(np.array([1.0, 1.0]), 1, 0, chain_foodweb), 1 / 1.5)

    def test_classic(self, chain_foodweb):
        response = ClassicResponse.default(chain_foodweb, h=1, ar=[[0, 0], [1, 0]], ht=[[0, 0], [1, 0]])
        F = response.matrix(np.array([0.5, 0.5]), chain_foodweb)
        assert np.isclose(F[1, 0], 0.5 / 1.5)

    def test_classic_parameters_outside_links(self, chain_foodweb):
        with pytest.raises(ValueError):
            ClassicResponse.default(chain_foodweb, ar=[[1, 0], [1, 0]])

    def test_linear(self, chain_foodweb):
        response = LinearResponse.default(chain_foodweb, alpha=2.0)
        assert np.allclose(response.alpha, [0.0, 2.0])
        assert np.isclose(response(np.array([0.5, 1.0]), 1, 0, chain_foodweb), 1.0)

    def test_refuge_lowers_attack_rates(self, four_species_matrix):
        fw = FoodWeb.from_matrix(four_species_matrix)
        net = MultiplexNetwork.from_foodweb(fw)
        A = np.zeros((4, 4), dtype=bool)
        A[1, 0] = True
        net.layers['refuge'] = Layer(A, 1.0, refuge_form)
        response = ClassicResponse.default(net)
        B = np.array([1.0, 3.0, 1.0, 1.0])
        ar = response.attack_rates(B, net)
        # s2 (biomass 3) shelters s1 from its predators.
        assert np.allclose(ar[:, 0], response.ar[:, 0] / 4)
        assert np.allclose(ar[:, 1], response.ar[:, 1])

    def test_interference_raises_denominator(self, four_species_matrix):
        fw = FoodWeb.from_matrix(four_species_matrix)
        net = MultiplexNetwork.from_foodweb(fw)
        A = np.zeros((4, 4), dtype=bool)
        A[2, 3] = A[3, 2] = True
        net.layers['interference'] = Layer(A, 0.5, None)
        response = ClassicResponse.default(net)
        B = np.ones(4)
        assert np.allclose(response.interference(B, net), [0, 0, 0.5, 0.5])
        assert response.matrix(B, net)[3, 0] < response.matrix(B, fw)[3, 0]


class TestProducerGrowth:
    """Tests for producer growth models."""

    def test_logistic(self, chain_foodweb):
        growth = LogisticGrowth.default(chain_foodweb, K=2.0)
        assert np.isnan(growth.K[1])
        assert np.isclose(growth.growth(0, np.array([1.0, 0.0]), 1.0), 0.5)

    def test_producers_competition(self, four_species_matrix):
        fw = FoodWeb.from_matrix(four_species_matrix)
        growth = LogisticGrowth.default(fw, a=0.5)
        assert np.allclose(growth.a[:2, :2], [[1.0, 0.5], [0.5, 1.0]])
        assert np.allclose(growth.a[2:], 0.0)
        # 1 * 1 * (1 - (1 + 0.5 * 1) / 1)
        assert np.isclose(growth.growth(0, np.ones(4), 1.0), -0.5)

    def test_invalid_carrying_capacity(self, chain_foodweb):
        with pytest.raises(ValueError, match="positive"):
            LogisticGrowth.default(chain_foodweb, K=[-1.0, 1.0])

    def test_nutrient_intake(self, chain_foodweb):
        intake = NutrientIntake.default(chain_foodweb, n_nutrients=2, half_saturation=1.0)
        assert intake.names == ['n1', 'n2']
        assert intake.n_nutrients == 2
        assert np.allclose(intake.concentration[0], [1.0, 0.5])
        assert np.allclose(intake.concentration[1], 0.0)
        N = np.array([1.0, 3.0])
        # Most limiting nutrient: 1 / (1 + 1).
        assert np.isclose(intake.growth(0, np.array([2.0, 1.0]), 1.0, N), 1.0)
        G = np.array([1.0, 0.0])
        assert np.isclose(intake.nutrient_dynamics(1, N, G), 0.25 * (10 - 3) - 0.5)

    def test_invalid_turnover(self, chain_foodweb):
        with pytest.raises(ValueError, match="turnover"):
            NutrientIntake.default(chain_foodweb, turnover=1.5)


class TestModelParameters:
    """Tests for model parameters assembly."""

    def test_defaults(self, chain_foodweb):
        p = model_parameters(chain_foodweb)
        assert isinstance(p.functional_response, BioenergeticResponse)
        assert isinstance(p.producer_growth, LogisticGrowth)
        assert p.missing() == []
        assert p.richness == 2
        assert p.species == ['s1', 's2']
        assert p.n_nutrients == 0
        assert p.topology.n_edges('trophic') == 1

    def test_incomplete(self):
        p = ModelParameters()
        assert 'network' in p.missing()
        with pytest.raises(ValueError, match="incomplete"):
            p.check_ready()

    def test_upgrade_to_multiplex(self, chain_foodweb):
        p = model_parameters(chain_foodweb)
        net = p.upgrade_to_multiplex()
        assert p.is_multiplex
        assert p.upgrade_to_multiplex() is net
        assert net.foodweb is chain_foodweb
