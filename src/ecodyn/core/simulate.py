"""
Simulation driver.

:func:`simulate` checks its inputs, assembles the derivative (generic or
specialized), sets up the extinction and steady-state callbacks and
integrates the dynamics with :func:`ecodyn.core.solver.solve`.

The result is a :class:`Solution`, which keeps track of the model,
extinction times and how the integration ended.
"""

from __future__ import annotations

import copy
from typing import Dict, List, NamedTuple, Optional, Union

import numpy as np
import pandas as pd

from ecodyn.core.constants import (
    DEFAULT_ALGORITHM,
    DEFAULT_EXTINCTION_THRESHOLD,
    DEFAULT_T0_SIMULATION,
    DEFAULT_TMAX,
    STEADY_STATE_ABSTOL,
    STEADY_STATE_RELTOL,
)
from ecodyn.core.dynamics import DynamicsParams, dudt
from ecodyn.core.model_parameters import ModelParameters
from ecodyn.core.producer_growth import NutrientIntake
from ecodyn.core.solver import (
    CallbackSet,
    DiscreteCallback,
    Integrator,
    ODEProblem,
    ODESolution,
    ReturnCode,
    solve,
)
from ecodyn.framework.system import System
from ecodyn.logger import get_logger

logger = get_logger(__name__)


# ============================================================================
# Solution
# ============================================================================

class Solution:
    """Result of a simulation.

    Attributes
    ----------
    t : np.ndarray
        Saved times.
    u : np.ndarray
        States, one row per species (then per nutrient), one column per time.
    retcode : ReturnCode
        How the integration ended.
    """

    def __init__(self, raw: ODESolution, p: DynamicsParams):
        self.raw = raw
        self.p = p
        self.t = raw.t
        self.u = raw.u
        self.retcode = raw.retcode

    @property
    def richness(self) -> int:
        return self.p.params.richness

    @property
    def species(self) -> List[str]:
        return self.p.params.species

    @property
    def nutrients(self) -> List[str]:
        growth = self.p.params.producer_growth
        if isinstance(growth, NutrientIntake):
            return list(growth.names)
        return []

    @property
    def extinct_species(self) -> Dict[int, float]:
        """Species index -> extinction time, ordered by time."""
        return dict(sorted(self.p.extinct.items(), key=lambda kv: (kv[1], kv[0])))

    @property
    def species_trajectories(self) -> np.ndarray:
        return self.u[:self.richness].copy()

    @property
    def nutrient_trajectories(self) -> np.ndarray:
        return self.u[self.richness:].copy()

    def get_model(self) -> ModelParameters:
        """Copy of the simulated model parameters."""
        return copy.deepcopy(self.p.params)

    def is_success(self) -> bool:
        return self.retcode is ReturnCode.SUCCESS

    def is_terminated(self) -> bool:
        return self.retcode is ReturnCode.TERMINATED

    def to_dataframe(self) -> pd.DataFrame:
        """Trajectories as a table, one row per saved time."""
        columns = self.species + self.nutrients
        df = pd.DataFrame(self.u.T, columns=columns)
        df.insert(0, 't', self.t)
        return df

    def __getitem__(self, idx) -> np.ndarray:
        """State at the saved time of index ``idx``."""
        return self.u[:, idx].copy()

    def __len__(self) -> int:
        return len(self.t)

    def __repr__(self) -> str:
        return (
            f"Solution(retcode={self.retcode}, {len(self.t)} timesteps, "
            f"t=[{self.t[0] if len(self.t) else 'nan'}, {self.t[-1] if len(self.t) else 'nan'}], "
            f"{len(self.p.extinct)} extinct species)"
        )


# ============================================================================
# Callbacks
# ============================================================================

def extinction_callback(S: int, threshold, verbose: bool = True) -> DiscreteCallback:
    """Set to zero species whose biomass falls below ``threshold``.

    Extinction times are recorded in the ``extinct`` dict of the
    integrator parameters.

    Parameters
    ----------
    S : int
        Number of species, leading entries of the state.
    threshold : float or np.ndarray
        Extinction threshold, for all species or one per species.
    verbose : bool
        Log extinctions.
    """
    threshold = np.broadcast_to(np.asarray(threshold, dtype=float), (S,))

    def crossed(u: np.ndarray, extinct: Dict[int, float]) -> np.ndarray:
        B = u[:S]
        below = np.flatnonzero(B <= threshold)
        return np.array([i for i in below if i not in extinct], dtype=int)

    def condition(u: np.ndarray, t: float, integrator: Integrator) -> bool:
        return len(crossed(u, integrator.p.extinct)) > 0

    def affect(integrator: Integrator) -> None:
        extinct = integrator.p.extinct
        newly = crossed(integrator.u, extinct)
        integrator.u[newly] = 0.0
        for i in newly:
            extinct[int(i)] = integrator.t
        if verbose:
            names = [integrator.p.params.species[i] for i in newly]
            logger.info(f"Species {names} went extinct at time t = {integrator.t}.")
            logger.info(f"{len(extinct)} out of {S} species are extinct.")

    return DiscreteCallback(condition, affect)


class TerminateSteadyState(DiscreteCallback):
    """Terminate the integration once the derivative vanishes.

    Every component must satisfy ``|du| <= abstol`` or ``|du| <= reltol |u|``.
    """

    def __init__(self, abstol: float = STEADY_STATE_ABSTOL,
                 reltol: float = STEADY_STATE_RELTOL, verbose: bool = False):
        self.abstol = abstol
        self.reltol = reltol
        self.verbose = verbose
        super().__init__(self._condition, self._affect)

    def _condition(self, u: np.ndarray, t: float, integrator: Integrator) -> bool:
        du = np.abs(integrator.get_du())
        return bool(np.all((du <= self.abstol) | (du <= self.reltol * np.abs(u))))

    def _affect(self, integrator: Integrator) -> None:
        if self.verbose:
            logger.info(f"Steady state reached at time t = {integrator.t}.")
        integrator.terminate()


def out_of_domain(u: np.ndarray, p, t: float) -> bool:
    """True when the state is out of the domain: some component is negative."""
    return bool(np.any(u < 0))


# ============================================================================
# Simulate
# ============================================================================

def _as_parameters(params) -> ModelParameters:
    if isinstance(params, System):
        check_ready = getattr(params, "check_ready", None)
        if callable(check_ready):
            check_ready()
        params = params.value
    if not isinstance(params, ModelParameters):
        raise TypeError(
            f"Cannot simulate {type(params).__name__}, "
            "expected a Model or ModelParameters."
        )
    params.check_ready()
    return params


def _initial_state(params: ModelParameters, B0, N0) -> np.ndarray:
    S = params.richness
    B0 = np.asarray(B0, dtype=float)
    if B0.ndim == 0 or B0.shape == (1,):
        B0 = np.full(S, float(B0.reshape(-1)[0]))
    if B0.shape != (S,):
        raise ValueError(
            f"B0 should be of length richness (S = {S}) or 1, received {B0.shape[0] if B0.ndim else 0}."
        )
    if np.any(B0 < 0):
        raise ValueError(f"Initial biomasses should be non-negative, received {B0.tolist()}.")

    n = params.n_nutrients
    if n == 0:
        if N0 is not None:
            raise ValueError("N0 is only relevant when producers grow on nutrients.")
        return B0.copy()
    if N0 is None:
        raise ValueError(f"N0 is required: producers grow on {n} nutrients.")
    N0 = np.asarray(N0, dtype=float)
    if N0.ndim == 0 or N0.shape == (1,):
        N0 = np.full(n, float(N0.reshape(-1)[0]))
    if N0.shape != (n,):
        raise ValueError(f"N0 should be of length {n} (number of nutrients), received {N0.shape}.")
    if np.any(N0 < 0):
        raise ValueError(f"Initial nutrient concentrations should be non-negative, received {N0.tolist()}.")
    return np.concatenate([B0, N0])


def _threshold(value, S: int) -> np.ndarray:
    thr = np.asarray(value, dtype=float)
    if thr.ndim == 0:
        return np.full(S, float(thr))
    if thr.shape != (S,):
        raise ValueError(
            f"Extinction threshold should be a scalar or a vector of length {S}, received shape {thr.shape}."
        )
    return thr


def simulate(
    params: Union[ModelParameters, System],
    B0,
    N0=None,
    t0: float = DEFAULT_T0_SIMULATION,
    tmax: float = DEFAULT_TMAX,
    extinction_threshold=DEFAULT_EXTINCTION_THRESHOLD,
    verbose: bool = True,
    callback='default',
    alg=DEFAULT_ALGORITHM,
    diff_code_data=None,
    **kwargs,
) -> Solution:
    """Simulate the biomass dynamics of a model.

    Parameters
    ----------
    params : Model or ModelParameters
        The model to simulate.
    B0 : float or array-like
        Initial biomasses, a single value is used for every species.
    N0 : float or array-like, optional
        Initial nutrient concentrations, required with nutrient intake.
    t0, tmax : float
        Time span.
    extinction_threshold : float or array-like
        Species whose biomass falls below this value are set to zero.
    verbose : bool
        Log extinctions.
    callback : 'default', None, DiscreteCallback or CallbackSet
        'default' combines the extinction callback with
        :class:`TerminateSteadyState`. None disables both.
    alg : str
        Integration algorithm, see :data:`ecodyn.core.solver.ALGORITHMS`.
    diff_code_data : tuple, optional
        ``(fn, data)`` as returned by
        :func:`ecodyn.core.specialized.generate_dbdt`, used instead of
        the generic derivative.
    **kwargs
        Forwarded to :func:`ecodyn.core.solver.solve`
        (``saveat``, ``rtol``, ``atol``, ``dtmin``, ``max_steps``).

    Returns
    -------
    Solution

    Examples
    --------
    >>> fw = FoodWeb.from_matrix([[0, 0], [1, 0]])
    >>> br = BioRates.default(fw.M, fw.metabolic_class, d=0)
    >>> sol = simulate(model_parameters(fw, biorates=br), [0.5, 0.5])
    >>> sol.is_terminated()
    True
    """
    params = _as_parameters(params)
    S = params.richness
    u0 = _initial_state(params, B0, N0)
    if not t0 < tmax:
        raise ValueError(f"t0 should be smaller than tmax, received t0 = {t0} and tmax = {tmax}.")
    threshold = _threshold(extinction_threshold, S)

    extinct = {int(i): float(t0) for i in np.flatnonzero(u0[:S] == 0)}
    # The solution keeps the parameters as simulated, whatever happens to the model.
    p = DynamicsParams(copy.deepcopy(params), extinct)

    if diff_code_data is None:
        f = dudt
    else:
        fn, data = diff_code_data
        data.extinct = p.extinct

        def f(du, u, _p, t):
            return fn(du, u, data, t)

    if isinstance(callback, str):
        if callback != 'default':
            raise ValueError(f"Unknown callback '{callback}', expected 'default', None or callbacks.")
        callback = CallbackSet(
            extinction_callback(S, threshold, verbose),
            TerminateSteadyState(verbose=verbose),
        )

    problem = ODEProblem(f, u0, (t0, tmax), p)
    raw = solve(problem, alg, callback=callback, isoutofdomain=out_of_domain, **kwargs)
    if raw.retcode not in (ReturnCode.SUCCESS, ReturnCode.TERMINATED):
        logger.warning(f"Simulation ended with return code {raw.retcode}: {raw.message}")
    return Solution(raw, p)


class SteadyState(NamedTuple):
    steady_state: Optional[np.ndarray]
    terminated: bool


def find_steady_state(params, B0, **kwargs) -> SteadyState:
    """Simulate until a steady state is found.

    Returns
    -------
    SteadyState
        ``steady_state`` is the final state, or None when the simulation
        did not terminate at a steady state.
    """
    sol = simulate(params, B0, **kwargs)
    terminated = sol.is_terminated()
    return SteadyState(sol[-1] if terminated else None, terminated)


def get_extinct_species(sol: Solution) -> Dict[int, float]:
    """Species index -> extinction time."""
    return sol.extinct_species


def get_parameters(sol: Solution) -> ModelParameters:
    return sol.get_model()
