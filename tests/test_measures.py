"""
Tests for the measures computed on simulation outputs.
"""

import numpy as np
import pytest

from ecodyn.analysis import (
    avg_cv_sp,
    biomass,
    coefficient_of_variation,
    evenness,
    extract_last_timesteps,
    foodweb_cv,
    get_alive_species,
    get_extinction_timesteps,
    living_species,
    max_trophic_level,
    mean_trophic_level,
    min_max,
    population_stability,
    producer_growth,
    richness,
    shannon_diversity,
    simpson,
    species_persistence,
    synchrony,
    temporal_cv,
    trophic_structure,
    weighted_mean_trophic_level,
)
from ecodyn.analysis.measures import process_idxs
from ecodyn.core.simulate import simulate


TRAJECTORIES = np.array([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]])


@pytest.fixture
def chain_solution(chain_params):
    """Chain simulated without callbacks, on fixed save times."""
    return simulate(chain_params, [0.5, 0.5], tmax=20, saveat=np.linspace(0, 20, 41), callback=None)


class TestDiversity:
    """Tests for richness, biomass and diversity indices."""

    def test_richness_vector(self):
        assert richness([0, 1]) == 1
        assert richness([1, 1]) == 2
        assert richness([0.5, 2.0], threshold=1.0) == 1

    def test_richness_matrix(self):
        mat = np.array([[1.0, 0.0], [1.0, 1.0]])
        assert richness(mat) == 1.0
        assert richness(mat, last=2) == 1.5

    def test_species_persistence(self):
        assert species_persistence([0, 1, 1, 1]) == 0.75
        assert species_persistence(np.array([[1.0, 0.0], [1.0, 1.0]]), last=2) == 0.75

    def test_biomass(self):
        total, per_species = biomass([1.0, 2.0])
        assert total == 3.0
        assert np.allclose(per_species, [1.0, 2.0])
        result = biomass(np.array([[2, 1], [4, 2]]))
        assert np.isclose(result.total, 4.5)
        assert np.allclose(result.species, [1.5, 3.0])

    def test_shannon(self):
        assert np.isclose(shannon_diversity([1, 1]), np.log(2))
        assert np.isclose(shannon_diversity([1, 0]), 0.0)
        assert np.isnan(shannon_diversity([0, 0]))

    def test_simpson(self):
        assert np.isclose(simpson([1, 1, 1, 1]), 4.0)
        assert np.isclose(simpson([3, 1]), 1 / (0.75 ** 2 + 0.25 ** 2))
        assert np.isnan(simpson([0, 0]))

    def test_evenness(self):
        assert np.isclose(evenness([2, 2, 2]), 1.0)
        assert evenness([3, 1]) < 1.0
        assert np.isnan(evenness([1, 0]))

    def test_diversity_on_solution(self, chain_solution):
        last = chain_solution[-1]
        assert richness(chain_solution) == 2
        assert np.isclose(shannon_diversity(chain_solution), shannon_diversity(last))
        assert np.isclose(biomass(chain_solution).total, last.sum())


class TestTimestepsSelection:
    """Tests for extract_last_timesteps and its argument checks."""

    def test_extract(self):
        out = extract_last_timesteps(TRAJECTORIES, last=2, idxs=[1])
        assert np.array_equal(out, [[5.0, 6.0]])

    def test_extract_percentage(self):
        mat = np.arange(20, dtype=float).reshape(2, 10) + 1
        out = extract_last_timesteps(mat, last="30%")
        assert out.shape == (2, 3)
        assert np.array_equal(out[0], [8.0, 9.0, 10.0])

    def test_extract_by_name(self, chain_solution):
        out = extract_last_timesteps(chain_solution, last=3, idxs='s2')
        assert np.allclose(out, chain_solution.u[1:, -3:])

    def test_extract_copy(self):
        mat = TRAJECTORIES.copy()
        out = extract_last_timesteps(mat, last=1)
        out[:] = 0.0
        assert mat[0, -1] == 3.0

    def test_last_float(self):
        with pytest.raises(TypeError, match="Did you mean"):
            extract_last_timesteps(TRAJECTORIES, last=1.5)

    def test_last_string_without_percent(self):
        with pytest.raises(ValueError, match="should end with character '%'"):
            extract_last_timesteps(TRAJECTORIES, last="10")

    @pytest.mark.parametrize("last", ["0%", "150%", "-5%"])
    def test_last_percentage_range(self, last):
        with pytest.raises(ValueError, match="0% < `last` <= 100%"):
            extract_last_timesteps(TRAJECTORIES, last=last)

    def test_last_too_large(self):
        with pytest.raises(ValueError, match="only 3 timesteps"):
            extract_last_timesteps(TRAJECTORIES, last=4)

    def test_last_nonpositive(self):
        with pytest.raises(ValueError, match="positive integer"):
            extract_last_timesteps(TRAJECTORIES, last=0)

    def test_small_percentage_warns(self):
        with pytest.warns(UserWarning, match="0 output lines"):
            out = extract_last_timesteps(TRAJECTORIES, last="10%")
        assert out.shape == (2, 0)

    def test_extinction_in_window_warns(self):
        mat = np.array([[1.0, 1.0, 1.0, 1.0], [1.0, 1.0, 0.0, 0.0]])
        with pytest.warns(UserWarning, match="went extinct"):
            extract_last_timesteps(mat, last=3)

    def test_extinction_in_window_quiet(self, no_warnings):
        mat = np.array([[1.0, 1.0, 1.0, 1.0], [1.0, 1.0, 0.0, 0.0]])
        extract_last_timesteps(mat, last=3, quiet=True)
        extract_last_timesteps(mat, last=2)

    def test_process_idxs(self, chain_solution):
        assert list(process_idxs(chain_solution)) == [0, 1]
        assert list(process_idxs(chain_solution, ['s2', 's1'])) == [1, 0]
        assert list(process_idxs(chain_solution, 1)) == [1]
        with pytest.raises(ValueError, match="Any misspelling"):
            process_idxs(chain_solution, ['s3'])
        with pytest.raises(ValueError, match="Cannot extract idxs"):
            process_idxs(chain_solution, [2])
        with pytest.raises(TypeError):
            process_idxs(chain_solution, ['s1', 0])

    def test_not_a_matrix(self):
        with pytest.raises(ValueError, match="species x time matrix"):
            extract_last_timesteps(np.zeros((2, 2, 2)))


class TestAliveSpecies:
    """Tests for the selection of living species."""

    def test_extinction_timesteps(self):
        mat = np.array([[1.0, 1.0, 1.0], [1.0, 0.0, 0.0], [2.0, 1.0, 0.0]])
        ext = get_extinction_timesteps(mat)
        assert ext.species == ['s2', 's3']
        assert list(ext.idxs) == [1, 2]
        assert list(ext.timesteps) == [1, 2]
        assert get_extinction_timesteps([1.0, 0.5, 0.0]) == 2
        assert get_extinction_timesteps([1.0, 0.5]) is None

    def test_living_species(self):
        assert list(living_species([0.0, 1.0, 2.0])) == [1, 2]
        mat = np.array([[1.0, 1.0], [0.0, 0.0], [2.0, 0.0]])
        assert list(living_species(mat)) == [0, 2]
        selection = living_species(mat, last=1)
        assert selection.species == ['s1']
        assert list(selection.idxs) == [0]

    def test_get_alive_species(self):
        mat = np.array([[1.0, 1.0], [1.0, 0.0]])
        alive = get_alive_species(mat)
        assert alive.species == ['s1']
        assert list(alive.idxs) == [0]
        assert list(get_alive_species([0.0, 3.0])) == [1]

    def test_min_max(self):
        result = min_max(TRAJECTORIES)
        assert np.allclose(result.min, [1.0, 4.0])
        assert np.allclose(result.max, [3.0, 6.0])
        result = min_max(TRAJECTORIES, last=2)
        assert np.allclose(result.min, [2.0, 5.0])


class TestProducerGrowth:
    """Tests for the producer growth measure."""

    def test_producer_growth(self, chain_solution):
        result = producer_growth(chain_solution, last=5)
        assert result.species == ['s1']
        assert result.all.shape == (1, 5)
        B = chain_solution.u[0, -1]
        # Logistic growth with r = 1 and K = 1.
        assert np.isclose(result.all[0, -1], B * (1 - B))
        assert np.isclose(result.mean[0], result.all[0].mean())

    def test_producer_growth_errors(self, chain_solution):
        with pytest.raises(TypeError, match="Solution"):
            producer_growth(TRAJECTORIES)
        with pytest.raises(ValueError, match="idxs"):
            producer_growth(chain_solution, idxs=[0])


class TestTrophicStructure:
    """Tests for the trophic structure measures."""

    A = np.array([[0, 0, 0], [0, 0, 0], [1, 1, 0]])

    def test_max_trophic_level(self):
        chain = np.array([[0, 0], [1, 0]])
        assert max_trophic_level(chain) == 2.0
        assert max_trophic_level([0, 1], chain) == 1.0

    def test_mean_trophic_level(self):
        assert np.isclose(mean_trophic_level([1, 1, 1], self.A), 4 / 3)
        assert np.isnan(mean_trophic_level([0, 0, 0], self.A))

    def test_weighted_mean_trophic_level(self):
        assert np.isclose(weighted_mean_trophic_level([1, 1, 2], self.A), (1 + 1 + 4) / 4)
        with pytest.raises(TypeError):
            weighted_mean_trophic_level([1, 1, 2])

    def test_trophic_structure(self):
        result = trophic_structure([1, 1, 1], self.A)
        assert result.max == 2.0
        assert np.isclose(result.mean, 4 / 3)
        assert list(result.alive_species) == [0, 1, 2]
        assert np.array_equal(result.alive_A, self.A)

    def test_dead_consumer(self):
        result = trophic_structure([1, 1, 0], self.A)
        assert result.max == 1.0
        assert list(result.alive_species) == [0, 1]

    def test_consumer_without_prey_is_basal(self):
        result = trophic_structure([0, 0, 1], self.A)
        assert result.max == 1.0

    def test_trophic_structure_idxs(self):
        with pytest.raises(ValueError, match="whole network"):
            trophic_structure([1, 1, 1], self.A, idxs=[0])

    def test_trophic_structure_on_solution(self, chain_solution):
        result = trophic_structure(chain_solution, last=3)
        assert result.max == 2.0
        assert np.isclose(result.mean, 1.5)


class TestStability:
    """Tests for the temporal stability measures."""

    def test_coefficient_of_variation(self):
        x = np.array([1.0, 2.0, 3.0])
        expected = (1 + 1 / 12) * np.std(x, ddof=1) / 2.0
        assert np.isclose(coefficient_of_variation(x), expected)

    def test_synchrony(self):
        # Perfectly synchronous species.
        mat = np.array([[1.0, 2.0, 3.0], [2.0, 4.0, 6.0]])
        assert np.isclose(synchrony(mat), 1.0)
        # Perfectly compensatory species.
        mat = np.array([[1.0, 2.0, 3.0], [3.0, 2.0, 1.0]])
        assert np.isclose(synchrony(mat), 0.0)

    def test_temporal_cv_partition(self):
        """Community CV squared is synchrony times the squared population variability."""
        mat = np.array([[1.0, 2.0, 1.5, 2.5], [2.0, 3.0, 2.5, 1.0]])
        assert np.isclose(temporal_cv(mat) ** 2, synchrony(mat) * avg_cv_sp(mat) ** 2)

    def test_constant_trajectories(self):
        mat = np.ones((2, 5))
        assert np.isclose(temporal_cv(mat), 0.0)
        assert np.isclose(avg_cv_sp(mat), 0.0)

    def test_foodweb_cv(self, chain_solution):
        result = foodweb_cv(chain_solution, last=10)
        mat = chain_solution.u[:, -10:]
        assert np.isclose(result.stability, temporal_cv(mat))
        assert np.isclose(result.avg_cv_sp, avg_cv_sp(mat))
        assert np.isclose(result.synchrony, synchrony(mat))

    def test_population_stability(self):
        mat = np.array([[1.0, 2.0, 3.0], [0.0, 0.0, 0.0]])
        expected = -coefficient_of_variation([1.0, 2.0, 3.0])
        assert np.isclose(population_stability(mat, last=3), expected)
        assert np.isnan(population_stability(np.zeros((2, 3)), last=3))
