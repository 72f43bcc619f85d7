"""
Tests for the model components and the default model.
"""

import numpy as np
import pytest

from ecodyn.components import (
    BioenergeticResponse,
    BodyMass,
    ClassicResponse,
    CompetitionLayer,
    FacilitationLayer,
    Foodweb,
    GrowthRate,
    InterferenceLayer,
    LinearResponse,
    LogisticGrowth,
    MetabolicClass,
    Metabolism,
    Model,
    Mortality,
    NutrientIntake,
    Species,
    Temperature,
    default_model,
)
from ecodyn.core import functional_response as fr
from ecodyn.core.model_parameters import ModelParameters
from ecodyn.framework import (
    AddError,
    BlueprintArgumentError,
    MissingRequiredComponent,
    PropertyError,
    WriteError,
)


CHAIN = [[0, 0], [1, 0]]
FOUR_SPECIES = [[0, 0, 0, 0], [0, 0, 0, 0], [1, 1, 0, 0], [1, 0, 0, 0]]


class TestSpeciesAndFoodweb:
    """Tests for the Species and Foodweb components."""

    def test_add_without_requirement(self):
        """Adding body masses to an empty model fails and leaves it empty."""
        model = Model()
        with pytest.raises(AddError) as exc:
            model.add(BodyMass.Z(1.0))
        assert isinstance(exc.value.error, MissingRequiredComponent)
        assert model.components() == []

    def test_foodweb_implies_species(self):
        model = Model(Foodweb(CHAIN))
        assert model.has_component(Species)
        assert model.richness == 2
        assert model.S == 2
        assert model.species_names == ['s1', 's2']
        assert model.species_index == {'s1': 0, 's2': 1}

    def test_named_species(self):
        model = Model(Species(['grass', 'rabbit']), Foodweb(CHAIN))
        assert model.species_names == ['grass', 'rabbit']
        assert model.A['rabbit', 'grass'] == 1

    def test_species_brought_by_foodweb(self):
        model = Model(Foodweb(CHAIN, species=['grass', 'rabbit']))
        assert model.species_names == ['grass', 'rabbit']

    def test_species_errors(self):
        with pytest.raises(BlueprintArgumentError, match="single string"):
            Species('abc')
        with pytest.raises(AddError, match="given twice"):
            Model(Species(['a', 'a']))

    def test_adjacency_by_labels(self):
        """Labels of an adjacency list become the species names."""
        model = Model(Foodweb({'fox': ['rabbit'], 'rabbit': 'grass'}))
        assert model.species_names == ['fox', 'rabbit', 'grass']
        assert np.array_equal(model.A.copy(), [[0, 1, 0], [0, 0, 1], [0, 0, 0]])
        assert model.n_trophic_links == 2

    def test_adjacency_by_indices(self):
        model = Model(Foodweb({1: [0]}))
        assert model.richness == 2
        assert np.array_equal(model.A.copy(), CHAIN)

    def test_adjacency_unknown_label(self):
        with pytest.raises(AddError, match="Invalid species label"):
            Model(Species(['a', 'b']), Foodweb({'a': ['c']}))

    def test_foodweb_size_mismatch(self):
        with pytest.raises(AddError, match="Invalid size"):
            Model(Species(3), Foodweb(CHAIN))

    def test_foodweb_matrix_checks(self):
        with pytest.raises(AddError, match="square"):
            Model(Foodweb([[0, 1, 0]]))
        with pytest.raises(AddError, match="0s and 1s"):
            Model(Foodweb([[0, 2], [1, 0]]))

    def test_foodweb_views(self):
        model = Model(Foodweb(FOUR_SPECIES))
        assert list(model.producers_mask) == [True, True, False, False]
        assert list(model.consumers_mask) == [False, False, True, True]
        assert np.allclose(model.trophic_levels, [1, 1, 2, 2])
        with pytest.raises(WriteError, match="read-only"):
            model.A[0, 1] = 1

    def test_disconnected_foodweb_warns(self):
        with pytest.warns(UserWarning, match="disconnected"):
            Model(Foodweb([[0, 0, 0], [1, 0, 0], [0, 0, 0]]))


class TestBodyMassAndClasses:
    """Tests for the BodyMass and MetabolicClass components."""

    def test_body_mass_vector_implies_species(self):
        model = Model(BodyMass([1.0, 2.0]))
        assert model.richness == 2
        assert model.M[1] == 2.0

    def test_body_mass_from_trophic_levels(self):
        model = Model(Foodweb(CHAIN), BodyMass(Z=10))
        assert np.allclose(model.body_masses.copy(), [1.0, 10.0])

    def test_body_mass_arguments(self):
        with pytest.raises(BlueprintArgumentError, match="exactly one"):
            BodyMass()
        with pytest.raises(BlueprintArgumentError, match="exactly one"):
            BodyMass([1.0], Z=2)

    def test_body_mass_write(self):
        model = Model(Foodweb(CHAIN), BodyMass(Z=2))
        model.M['s2'] = 5.0
        assert model.M[1] == 5.0
        with pytest.raises(WriteError):
            model.M[0] = 0.0

    def test_metabolic_class_favor(self):
        model = Model(Foodweb(CHAIN), MetabolicClass('ectotherm'))
        assert model.metabolic_classes == ['producer', 'ectotherm vertebrate']

    def test_metabolic_class_raw(self):
        model = Model(Foodweb(CHAIN), MetabolicClass(['p', 'i']))
        assert model.metabolic_classes == ['producer', 'invertebrate']

    def test_metabolic_class_errors(self):
        with pytest.raises(AddError, match="producer"):
            Model(Foodweb(CHAIN), MetabolicClass('producer'))
        with pytest.raises(AddError):
            Model(Foodweb(CHAIN), MetabolicClass(['invertebrate', 'invertebrate']))

    def test_metabolic_class_requires_foodweb(self):
        with pytest.raises(AddError, match="Producers and consumers are known"):
            Model(Species(2), MetabolicClass('invertebrate'))


class TestRates:
    """Tests for the species rates components."""

    def test_allometric_defaults(self, chain_model):
        assert np.allclose(chain_model.r.copy(), [1.0, 0.0])
        assert np.allclose(chain_model.x.copy(), [0.0, 0.314])
        assert np.allclose(chain_model.y.copy(), [0.0, 8.0])
        assert np.allclose(chain_model.d.copy(), [0.0, 0.0])

    def test_flat_rate(self):
        model = default_model(Foodweb(CHAIN), GrowthRate(2.0))
        assert np.allclose(model.growth_rates.copy(), [2.0, 0.0])

    def test_raw_rate(self):
        model = default_model(Foodweb(CHAIN), Metabolism([0.0, 0.5]))
        assert model.metabolism[1] == 0.5

    def test_raw_rate_outside_template(self):
        with pytest.raises(AddError, match="should be zero for species 's1'"):
            default_model(Foodweb(CHAIN), Metabolism([0.5, 0.5]))

    def test_allometric_coefficients(self):
        model = default_model(Foodweb(CHAIN), Metabolism(invertebrate=(0.5, -0.25)))
        assert np.isclose(model.x[1], 0.5)

    def test_rate_arguments(self):
        with pytest.raises(BlueprintArgumentError):
            Mortality(0.1, invertebrate=(1, 0))
        with pytest.raises(BlueprintArgumentError):
            GrowthRate('quadratic')

    def test_mortality_requires_species_only(self):
        model = Model(Species(2), Mortality.Flat(0.1))
        assert np.allclose(model.mortality.copy(), [0.1, 0.1])

    def test_write_rates(self, chain_model):
        chain_model.growth_rates[0] = 2.0
        assert chain_model.r[0] == 2.0
        with pytest.raises(WriteError, match="not a valid target"):
            chain_model.r[1] = 1.0
        with pytest.raises(WriteError, match="non-negative"):
            chain_model.metabolism[1] = -1.0
        chain_model.d['s2'] = 0.1
        assert chain_model.death_rates[1] == 0.1


class TestResponses:
    """Tests for the functional response components."""

    def test_bioenergetic_default(self, chain_model):
        assert isinstance(chain_model.functional_response, fr.BioenergeticResponse)
        assert chain_model.h == 2.0
        assert np.isclose(chain_model.e[1, 0], 0.45)
        assert np.allclose(chain_model.B0.copy(), 0.5)

    def test_efficiency_write(self, chain_model):
        chain_model.efficiency[1, 0] = 0.5
        assert chain_model.e[1, 0] == 0.5
        with pytest.raises(WriteError):
            chain_model.e[1, 0] = 1.5
        with pytest.raises(WriteError, match="no edge"):
            chain_model.e[0, 1] = 0.5

    def test_classic_requires_body_mass(self):
        with pytest.raises(AddError, match="Body masses enter"):
            Model(Foodweb(CHAIN), ClassicResponse())

    def test_classic_parameters(self):
        model = default_model(Foodweb(CHAIN), ClassicResponse(h=1))
        assert isinstance(model.functional_response, fr.ClassicResponse)
        assert model.hill_exponent == 1
        assert model.ar[1, 0] > 0
        assert model.ar[0, 1] == 0
        assert model.ht[1, 0] > 0

    def test_linear_parameters(self):
        model = default_model(Foodweb(CHAIN), LinearResponse(alpha=2.0))
        assert model.alpha[1] == 2.0
        with pytest.raises(PropertyError, match="is required to read this property"):
            model.h

    def test_classic_properties_need_classic(self, chain_model):
        with pytest.raises(PropertyError, match="Component ClassicResponse is required"):
            chain_model.ar

    def test_single_response(self):
        with pytest.raises(AddError, match="single functional response"):
            Model(Foodweb(CHAIN), BioenergeticResponse(), LinearResponse())


class TestProducerGrowth:
    """Tests for the logistic growth and nutrient intake components."""

    def test_logistic(self, chain_model):
        assert chain_model.K[0] == 1.0
        chain_model.K[0] = 2.0
        assert chain_model.carrying_capacity[0] == 2.0
        with pytest.raises(WriteError):
            chain_model.K[1] = 1.0

    def test_producers_competition(self):
        model = default_model(Foodweb(FOUR_SPECIES), LogisticGrowth(producers_competition=0.5))
        assert model.producers_competition[0, 1] == 0.5
        assert model.producers_competition[0, 0] == 1.0

    def test_nutrients_replace_logistic(self):
        model = default_model(Foodweb(CHAIN), NutrientIntake(2))
        assert model.has_component(NutrientIntake)
        assert not model.has_component(LogisticGrowth)
        assert model.n_nutrients == 2
        assert model.nutrients_names == ['n1', 'n2']
        assert np.allclose(model.nutrients_turnover.copy(), 0.25)
        assert np.allclose(model.nutrients_supply.copy(), 10.0)

    def test_nutrients_conflict_with_logistic(self):
        with pytest.raises(AddError):
            default_model(Foodweb(CHAIN), NutrientIntake(2), LogisticGrowth())

    def test_nutrients_turnover_check(self):
        with pytest.raises(AddError, match="turnover"):
            default_model(Foodweb(CHAIN), NutrientIntake(2, turnover=2.0))


class TestTemperature:
    """Tests for the Temperature component."""

    def test_temperature_write(self, chain_model):
        chain_model.temperature = 300.0
        assert chain_model.T == 300.0
        with pytest.raises(WriteError, match="Kelvin"):
            chain_model.T = -1.0

    def test_temperature_without_component(self):
        with pytest.raises(PropertyError, match="Component Temperature is required"):
            Model(Foodweb(CHAIN)).temperature

    def test_explicit_temperature(self):
        model = default_model(Foodweb(CHAIN), Temperature(303.15))
        assert model.T == 303.15


class TestLayers:
    """Tests for the non-trophic layer components."""

    def _competition(self, **params):
        A = np.zeros((4, 4), dtype=int)
        A[0, 1] = A[1, 0] = 1
        return default_model(Foodweb(FOUR_SPECIES), CompetitionLayer(A, **params))

    def test_layer_switches_to_classic(self):
        model = self._competition()
        assert isinstance(model.functional_response, fr.ClassicResponse)
        assert model.n_competition_links == 2
        assert model.competition_links['s1', 's2'] == 1

    def test_layer_intensity(self):
        model = self._competition(I=0.5)
        assert model.competition_intensity == 0.5
        model.competition_intensity = 1.0
        assert model.parameters().network.layers['competition'].intensity == 1.0
        with pytest.raises(WriteError):
            model.competition_intensity = -1.0

    def test_layer_functional_form(self):
        model = self._competition()
        model.competition_functional_form = lambda x, dx: x
        assert model.competition_functional_form(2.0, 1.0) == 2.0
        with pytest.raises(WriteError):
            model.competition_functional_form = "linear"

    def test_interference_has_no_form(self):
        model = default_model(Foodweb(FOUR_SPECIES), InterferenceLayer(L=2, seed=1))
        assert model.n_interference_links == 2
        assert not hasattr(model, 'interference_functional_form')

    def test_drawn_links(self):
        model = default_model(Foodweb(FOUR_SPECIES), FacilitationLayer(L=2, seed=3))
        assert model.n_facilitation_links == 2
        A = model.facilitation_links.copy()
        # Only producers are facilitated.
        assert not A[:, 2:].any()

    def test_too_many_links(self):
        with pytest.raises(AddError, match="only 2 are allowed"):
            default_model(Foodweb(FOUR_SPECIES), CompetitionLayer(L=4))

    def test_links_outside_potential(self):
        A = np.zeros((4, 4), dtype=int)
        A[2, 3] = A[3, 2] = 1
        with pytest.raises(AddError):
            default_model(Foodweb(FOUR_SPECIES), CompetitionLayer(A))

    def test_links_given_twice(self):
        with pytest.raises(AddError, match="at most one"):
            default_model(Foodweb(FOUR_SPECIES), CompetitionLayer(C=0.5, L=2))

    def test_conflict_with_bioenergetic(self):
        with pytest.raises(AddError, match="classic functional response"):
            default_model(Foodweb(FOUR_SPECIES), BioenergeticResponse(), CompetitionLayer(L=2))

    def test_conflict_with_nutrients(self):
        with pytest.raises(AddError, match="nutrient intake"):
            default_model(Foodweb(FOUR_SPECIES), NutrientIntake(2), CompetitionLayer(L=2))

    def test_layer_requires_body_mass(self):
        with pytest.raises(AddError, match="requires"):
            Model(Foodweb(FOUR_SPECIES), CompetitionLayer(L=2))


class TestModel:
    """Tests for the Model system and default_model."""

    def test_default_model_complete(self, chain_model):
        assert chain_model.missing() == []
        chain_model.check_ready()
        assert isinstance(chain_model.value, ModelParameters)

    def test_missing(self):
        model = Model(Foodweb(CHAIN))
        missing = model.missing()
        assert 'BodyMass' in missing
        assert 'MetabolicClass' in missing
        with pytest.raises(ValueError, match="The model is incomplete"):
            model.check_ready()

    def test_default_model_overrides(self):
        model = default_model(Foodweb(CHAIN), Mortality.Flat(0.1), BodyMass(Z=100))
        assert model.mortality[1] == 0.1
        assert model.M[1] == 100.0

    def test_default_model_type_error(self):
        with pytest.raises(TypeError, match="food web blueprint"):
            default_model(BodyMass.Z(1.0))
        with pytest.raises(TypeError):
            default_model(CHAIN)

    def test_parameters_copy(self, chain_model):
        params = chain_model.parameters()
        params.biorates.r[0] = 5.0
        assert chain_model.r[0] == 1.0

    def test_model_copy(self, chain_model):
        other = chain_model.copy()
        other.r[0] = 3.0
        assert chain_model.r[0] == 1.0

    def test_unknown_property(self, chain_model):
        with pytest.raises(PropertyError, match="Unknown property"):
            chain_model.carrying_capcity
        with pytest.raises(PropertyError, match="read-only"):
            chain_model.richness = 3

    def test_repr(self, chain_model):
        text = repr(chain_model)
        assert text.startswith("Model with")
        assert "Foodweb: 1 trophic links" in text
