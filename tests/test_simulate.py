"""
Tests for the ODE solver wrapper and the simulation driver.
"""

import numpy as np
import pytest

from ecodyn.components import (
    Foodweb,
    LinearResponse,
    Model,
    Mortality,
    NutrientIntake,
    default_model,
)
from ecodyn.core.simulate import (
    Solution,
    TerminateSteadyState,
    extinction_callback,
    find_steady_state,
    get_extinct_species,
    get_parameters,
    out_of_domain,
    simulate,
)
from ecodyn.core.solver import (
    CallbackSet,
    DiscreteCallback,
    ODEProblem,
    ReturnCode,
    solve,
)
from ecodyn.core.specialized import generate_dbdt


CHAIN = [[0, 0], [1, 0]]


def _decay(du, u, p, t):
    du[:] = -u


def _constant_loss(du, u, p, t):
    du[:] = -1.0


def _starving_consumer():
    """Consumer that cannot eat and dies at rate x + d."""
    return default_model(Foodweb(CHAIN), LinearResponse(alpha=0.0), Mortality.Raw([0.0, 1.0]))


class TestSolve:
    """Tests for the solver wrapper."""

    def test_exponential_decay(self):
        """Integrating du = -u gives exp(-t)."""
        sol = solve(ODEProblem(_decay, [1.0], (0, 2)), rtol=1e-8, atol=1e-10)
        assert sol.retcode is ReturnCode.SUCCESS
        assert sol.t[0] == 0.0
        assert np.isclose(sol.t[-1], 2.0)
        assert np.allclose(sol.u[0], np.exp(-sol.t), rtol=1e-5)

    @pytest.mark.parametrize("alg", ['RK45', 'RK23', 'DOP853', 'BDF', 'Radau', 'LSODA'])
    def test_algorithms(self, alg):
        """Every registered algorithm integrates the decay."""
        sol = solve(ODEProblem(_decay, [2.0], (0, 1)), alg=alg, rtol=1e-8, atol=1e-10)
        assert np.isclose(sol.u[0, -1], 2 * np.exp(-1), rtol=1e-4)

    def test_unknown_algorithm(self):
        """Unknown algorithm names are rejected."""
        with pytest.raises(ValueError, match="Unknown integration algorithm"):
            solve(ODEProblem(_decay, [1.0], (0, 1)), alg='Euler')

    def test_saveat(self):
        """Only requested times are saved, from the dense output."""
        times = [0.0, 0.5, 1.0, 1.5]
        sol = solve(ODEProblem(_decay, [1.0], (0, 1.5)), saveat=times, rtol=1e-8, atol=1e-10)
        assert np.allclose(sol.t, times)
        assert np.allclose(sol.u[0], np.exp(-np.array(times)), rtol=1e-5)

    def test_saveat_outside_span(self):
        """Save times must lie within the time span."""
        with pytest.raises(ValueError, match="saveat"):
            solve(ODEProblem(_decay, [1.0], (0, 1)), saveat=[0.5, 2.0])

    def test_callback_terminates(self):
        """A callback calling terminate stops the integration."""
        stop = DiscreteCallback(lambda u, t, integ: t >= 1.0, lambda integ: integ.terminate())
        sol = solve(ODEProblem(_decay, [1.0], (0, 10)), alg='RK45', callback=stop)
        assert sol.retcode is ReturnCode.TERMINATED
        assert 1.0 <= sol.t[-1] < 10.0

    def test_callback_modifies_state(self):
        """The saved state is the one left by callbacks."""
        def reset(integ):
            integ.u[:] = 0.0

        cb = DiscreteCallback(lambda u, t, integ: u[0] < 0.5, reset)
        sol = solve(ODEProblem(_decay, [1.0], (0, 5)), alg='RK45', callback=cb)
        hit = np.flatnonzero(sol.u[0] == 0.0)
        assert len(hit)
        assert np.all(sol.u[0, hit[0]:] == 0.0)
        assert sol.n_restarts >= 1

    def test_domain_rejection(self):
        """Steps leaving the domain are retried until the step is too small."""
        problem = ODEProblem(_constant_loss, [1.0], (0, 5))
        sol = solve(problem, alg='RK45', isoutofdomain=out_of_domain)
        assert sol.retcode is ReturnCode.DT_LESS_THAN_MIN
        assert np.all(sol.u >= 0)
        assert sol.t[-1] <= 1.0 + 1e-9

    def test_max_steps(self):
        """Integration stops after max_steps."""
        sol = solve(ODEProblem(_decay, [1.0], (0, 100)), alg='RK45', max_steps=3)
        assert sol.retcode is ReturnCode.MAX_ITERS
        assert sol.n_steps == 3

    def test_callback_set(self):
        """Callback sets flatten and reject other objects."""
        cb = DiscreteCallback(lambda u, t, integ: False, lambda integ: None)
        assert len(CallbackSet(cb, None, CallbackSet(cb, cb))) == 3
        with pytest.raises(TypeError, match="Not a callback"):
            CallbackSet(cb, "cb")


class TestSimulate:
    """Tests for the simulation driver."""

    def test_chain_steady_state(self, chain_params):
        """The default chain reaches its steady state."""
        sol = simulate(chain_params, [0.5, 0.5], verbose=False)
        assert isinstance(sol, Solution)
        assert sol.is_terminated()
        assert np.allclose(sol[-1], [0.189, 0.2197], atol=1e-2)
        assert sol.extinct_species == {}

    def test_model_input(self, chain_model):
        """A model and its parameters give the same trajectory."""
        from_model = simulate(chain_model, 0.5, verbose=False)
        from_params = simulate(chain_model.parameters(), [0.5, 0.5], verbose=False)
        assert np.allclose(from_model[-1], from_params[-1])
        assert np.allclose(from_model[-1], [0.189, 0.2197], atol=1e-2)

    @pytest.mark.parametrize("alg", ['LSODA', 'BDF', 'Radau'])
    def test_consumer_extinction(self, alg):
        """A starving consumer is set to zero at its extinction time and stays there."""
        sol = simulate(_starving_consumer(), [0.5, 0.5], alg=alg, verbose=False)
        extinct = sol.extinct_species
        assert list(extinct) == [1]
        t_ext = extinct[1]
        k = int(np.flatnonzero(sol.t == t_ext)[0])
        assert sol.u[1, k] == 0.0
        assert np.all(sol.u[1, k:] == 0.0)
        assert sol.u[1, k - 1] > 1e-5
        # The consumer decays at rate 1.314 from 0.5.
        t_cross = np.log(0.5 / 1e-5) / 1.314
        assert t_cross - 0.01 <= t_ext < t_cross + 3
        assert np.isclose(sol[-1][0], 1.0, atol=1e-3)
        assert sol.is_terminated()

    def test_extinction_threshold_per_species(self):
        """Thresholds can be given per species."""
        sol = simulate(_starving_consumer(), [0.5, 0.5], extinction_threshold=[1e-5, 1e-2],
                       verbose=False)
        t_cross = np.log(0.5 / 1e-2) / 1.314
        assert t_cross - 0.01 <= sol.extinct_species[1] < t_cross + 3

    def test_zero_initial_biomass(self, chain_params):
        """Species starting at zero are extinct from t0 and stay at zero."""
        sol = simulate(chain_params, [0.5, 0.0], verbose=False)
        assert sol.extinct_species == {1: 0.0}
        assert np.all(sol.u[1] == 0.0)

    def test_biomasses_nonnegative(self, omnivory_model):
        """Trajectories never go below zero."""
        sol = simulate(omnivory_model, [0.5, 0.1, 0.01], tmax=200, verbose=False)
        assert np.all(sol.u >= 0)

    def test_no_callbacks(self, chain_params):
        """Without callbacks the integration runs to tmax."""
        sol = simulate(chain_params, [0.5, 0.5], tmax=20, callback=None)
        assert sol.is_success()
        assert np.isclose(sol.t[-1], 20.0)

    def test_saveat(self, chain_params):
        """saveat is forwarded to the solver."""
        times = np.linspace(0, 10, 11)
        sol = simulate(chain_params, [0.5, 0.5], tmax=10, saveat=times, verbose=False)
        assert np.allclose(sol.t, times)
        assert sol.u.shape == (2, 11)

    @pytest.mark.parametrize("style", ['raw', 'compact'])
    def test_specialized_code(self, omnivory_model, style):
        """Specialized derivatives follow the generic trajectory."""
        params = omnivory_model.parameters()
        times = np.linspace(0, 20, 21)
        generic = simulate(params, [0.5, 0.2, 0.1], tmax=20, saveat=times, callback=None)
        specialized = simulate(params, [0.5, 0.2, 0.1], tmax=20, saveat=times, callback=None,
                               diff_code_data=generate_dbdt(params, style))
        assert np.allclose(generic.u, specialized.u, rtol=1e-6, atol=1e-8)

    def test_nutrients(self):
        """Nutrient concentrations are part of the state."""
        model = default_model(Foodweb(CHAIN), NutrientIntake(2))
        sol = simulate(model, [0.5, 0.5], N0=[1.0, 1.0], tmax=50, verbose=False)
        assert sol.nutrients == ['n1', 'n2']
        assert sol.species_trajectories.shape[0] == 2
        assert sol.nutrient_trajectories.shape == (2, len(sol))
        assert np.all(sol.u >= 0)

    def test_to_dataframe(self, chain_params):
        """The data frame has the time column first and one column per species."""
        sol = simulate(chain_params, [0.5, 0.5], tmax=10, verbose=False)
        df = sol.to_dataframe()
        assert list(df.columns) == ['t', 's1', 's2']
        assert len(df) == len(sol)
        assert np.allclose(df['s2'], sol.u[1])

    def test_model_copy(self, chain_params):
        """The solution keeps a copy of the parameters."""
        sol = simulate(chain_params, [0.5, 0.5], tmax=10, verbose=False)
        model = get_parameters(sol)
        assert model is not chain_params
        assert np.array_equal(model.network.A, chain_params.network.A)
        assert get_extinct_species(sol) == sol.extinct_species

    def test_model_edited_after_simulation(self):
        """Editing the model afterwards leaves the solution parameters untouched."""
        model = default_model(Foodweb(CHAIN), Mortality.Flat(0.0))
        sol = simulate(model, [0.5, 0.5], tmax=5, verbose=False)
        model.d[1] = 0.7
        assert np.allclose(sol.get_model().biorates.d, [0.0, 0.0])
        assert sol.p.params.biorates.d[1] == 0.0

    def test_accessors_return_copies(self, chain_params):
        sol = simulate(chain_params, [0.5, 0.5], tmax=5, verbose=False)
        before = sol.u.copy()
        state = sol[-1]
        state[:] = -1.0
        trajectories = sol.species_trajectories
        trajectories[:] = -1.0
        assert np.array_equal(sol.u, before)

    def test_find_steady_state(self, chain_params):
        """find_steady_state returns the final state when terminated."""
        result = find_steady_state(chain_params, [0.5, 0.5], verbose=False)
        assert result.terminated
        assert np.allclose(result.steady_state, [0.189, 0.2197], atol=1e-2)

    def test_no_steady_state(self, chain_params):
        """Without termination the steady state is None."""
        result = find_steady_state(chain_params, [0.5, 0.5], tmax=1, verbose=False)
        assert not result.terminated
        assert result.steady_state is None


class TestSimulatePreconditions:
    """Tests for the input checks of simulate."""

    def test_B0_length(self, chain_params):
        with pytest.raises(ValueError, match="B0 should be of length"):
            simulate(chain_params, [0.5, 0.5, 0.5])

    def test_negative_B0(self, chain_params):
        with pytest.raises(ValueError, match="non-negative"):
            simulate(chain_params, [0.5, -0.1])

    def test_N0_without_nutrients(self, chain_params):
        with pytest.raises(ValueError, match="only relevant"):
            simulate(chain_params, [0.5, 0.5], N0=[1.0])

    def test_N0_required(self):
        model = default_model(Foodweb(CHAIN), NutrientIntake(2))
        with pytest.raises(ValueError, match="N0 is required"):
            simulate(model, [0.5, 0.5])

    def test_time_span(self, chain_params):
        with pytest.raises(ValueError, match="t0 should be smaller than tmax"):
            simulate(chain_params, [0.5, 0.5], t0=10, tmax=10)

    def test_threshold_shape(self, chain_params):
        with pytest.raises(ValueError, match="Extinction threshold"):
            simulate(chain_params, [0.5, 0.5], extinction_threshold=[1e-5, 1e-5, 1e-5])

    def test_unknown_callback(self, chain_params):
        with pytest.raises(ValueError, match="Unknown callback"):
            simulate(chain_params, [0.5, 0.5], callback='extinctions')

    def test_incomplete_model(self):
        with pytest.raises(ValueError, match="The model is incomplete"):
            simulate(Model(Foodweb(CHAIN)), [0.5, 0.5])

    def test_not_a_model(self):
        with pytest.raises(TypeError, match="Cannot simulate"):
            simulate({'A': CHAIN}, [0.5, 0.5])


class TestCallbacks:
    """Tests for the extinction and steady state callbacks."""

    def test_extinction_callback_records_times(self, chain_params):
        """Species crossing the threshold are zeroed and recorded once."""
        sol = simulate(chain_params, [0.5, 0.5], tmax=200,
                       callback=extinction_callback(2, 0.3, verbose=False))
        assert len(sol.extinct_species) >= 1
        for i, t_ext in sol.extinct_species.items():
            assert np.all(sol.u[i, sol.t >= t_ext] == 0.0)
            assert np.all(sol.u[i, sol.t < t_ext] > 0.3)

    def test_steady_state_callback(self, chain_params):
        """TerminateSteadyState alone stops at the fixed point."""
        sol = simulate(chain_params, [0.5, 0.5], callback=TerminateSteadyState())
        assert sol.is_terminated()
        assert sol.extinct_species == {}
