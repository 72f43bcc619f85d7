"""
ODE solving with discrete callbacks.

A thin stepping loop around the :mod:`scipy.integrate` ``OdeSolver``
classes which adds what the simulation driver needs:

- domain rejection: a step ending out of the domain is retried from the
  previous state with half the step size;
- discrete callbacks run after every accepted step, and may modify the
  state or terminate the integration;
- return codes describing how the integration ended.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterator, List, Optional, Sequence, Tuple

import numpy as np
from scipy.integrate import BDF, DOP853, LSODA, RK23, RK45, Radau

from ecodyn.core.constants import (
    DEFAULT_ALGORITHM,
    INTEGRATION_ATOL,
    INTEGRATION_RTOL,
    MIN_STEP_SIZE,
)
from ecodyn.logger import get_logger

logger = get_logger(__name__)

ALGORITHMS = {
    'LSODA': LSODA,
    'RK45': RK45,
    'RK23': RK23,
    'DOP853': DOP853,
    'BDF': BDF,
    'Radau': Radau,
}

DEFAULT_MAX_STEPS = 1_000_000


class ReturnCode(Enum):
    """How an integration ended."""
    SUCCESS = 'Success'
    TERMINATED = 'Terminated'
    DT_LESS_THAN_MIN = 'DtLessThanMin'
    MAX_ITERS = 'MaxIters'
    FAILURE = 'Failure'

    def __str__(self) -> str:
        return self.value


@dataclass
class ODEProblem:
    """Initial value problem ``du/dt = f(u, p, t)``.

    Attributes
    ----------
    f : callable
        In-place derivative ``f(du, u, p, t)``.
    u0 : np.ndarray
        Initial state.
    tspan : tuple of float
        ``(t0, tmax)``.
    p : Any
        Parameters passed to ``f``.
    """
    f: Callable
    u0: np.ndarray
    tspan: Tuple[float, float]
    p: Any = None

    def __post_init__(self):
        self.u0 = np.array(self.u0, dtype=float)
        t0, tmax = self.tspan
        self.tspan = (float(t0), float(tmax))

    def rhs(self, t: float, u: np.ndarray) -> np.ndarray:
        """Out-of-place derivative with the ``(t, y)`` signature of scipy."""
        du = np.zeros_like(u)
        self.f(du, u, self.p, t)
        return du


class Integrator:
    """Integration state handed to callbacks.

    Callbacks may modify ``u`` in place: the integration then restarts
    from the modified state. Calling :meth:`terminate` stops it.
    """

    def __init__(self, problem: ODEProblem):
        self.problem = problem
        self.p = problem.p
        self.t = problem.tspan[0]
        self.u = problem.u0.copy()
        self.dt: Optional[float] = None
        self.terminated = False

    def terminate(self) -> None:
        self.terminated = True

    def get_du(self) -> np.ndarray:
        """Derivative at the current state."""
        return self.problem.rhs(self.t, self.u)


@dataclass
class DiscreteCallback:
    """Run ``affect(integrator)`` after a step when ``condition(u, t, integrator)`` holds."""
    condition: Callable[[np.ndarray, float, Integrator], bool]
    affect: Callable[[Integrator], None]

    def __call__(self, integrator: Integrator) -> bool:
        if self.condition(integrator.u, integrator.t, integrator):
            self.affect(integrator)
            return True
        return False


class CallbackSet:
    """Ordered collection of callbacks, flattened when nested."""

    def __init__(self, *callbacks):
        self.callbacks: List[DiscreteCallback] = []
        for cb in callbacks:
            if cb is None:
                continue
            if isinstance(cb, CallbackSet):
                self.callbacks.extend(cb.callbacks)
            elif isinstance(cb, DiscreteCallback):
                self.callbacks.append(cb)
            else:
                raise TypeError(f"Not a callback: {cb!r}.")

    def __iter__(self) -> Iterator[DiscreteCallback]:
        return iter(self.callbacks)

    def __len__(self) -> int:
        return len(self.callbacks)


@dataclass
class ODESolution:
    """Raw output of :func:`solve`."""
    t: np.ndarray
    u: np.ndarray
    retcode: ReturnCode
    n_steps: int = 0
    n_restarts: int = 0
    message: str = ''
    problem: Optional[ODEProblem] = field(default=None, repr=False)


def _solver_class(alg):
    if isinstance(alg, str):
        try:
            return ALGORITHMS[alg]
        except KeyError:
            raise ValueError(
                f"Unknown integration algorithm '{alg}', "
                f"expected one of {', '.join(ALGORITHMS)}."
            ) from None
    return alg


def solve(
    problem: ODEProblem,
    alg=DEFAULT_ALGORITHM,
    callback=None,
    isoutofdomain: Optional[Callable[[np.ndarray, Any, float], bool]] = None,
    saveat: Optional[Sequence[float]] = None,
    rtol: float = INTEGRATION_RTOL,
    atol: float = INTEGRATION_ATOL,
    dtmin: float = MIN_STEP_SIZE,
    max_steps: int = DEFAULT_MAX_STEPS,
) -> ODESolution:
    """Integrate an ODE problem.

    Parameters
    ----------
    problem : ODEProblem
        Problem to solve.
    alg : str or OdeSolver subclass
        Integration algorithm. Default 'LSODA'.
    callback : DiscreteCallback or CallbackSet, optional
        Callbacks run after every accepted step.
    isoutofdomain : callable, optional
        ``isoutofdomain(u, p, t) -> bool``. Steps ending out of the domain
        are rejected and retried with half the step size.
    saveat : sequence of float, optional
        Save the solution at these times only (from the dense output).
        By default every accepted step is saved.
    rtol, atol : float
        Integration tolerances.
    dtmin : float
        Smallest step size allowed when rejecting steps.
    max_steps : int
        Maximum number of steps.

    Returns
    -------
    ODESolution
    """
    solver_cls = _solver_class(alg)
    callbacks = CallbackSet(callback) if callback is not None else CallbackSet()
    t0, tmax = problem.tspan
    integrator = Integrator(problem)

    if saveat is not None:
        save_times = np.sort(np.asarray(saveat, dtype=float))
        if save_times.size and (save_times[0] < t0 or save_times[-1] > tmax):
            raise ValueError(f"'saveat' times should lie within {problem.tspan}.")
    else:
        save_times = None
    ts: List[float] = []
    us: List[np.ndarray] = []
    next_save = 0
    if save_times is None or (save_times.size and save_times[0] == t0):
        ts.append(t0)
        us.append(integrator.u.copy())
        next_save = 1

    def start(t, u, first_step=None):
        return solver_cls(problem.rhs, t, u, tmax, rtol=rtol, atol=atol,
                          first_step=first_step)

    solver = start(t0, integrator.u)
    retcode = ReturnCode.SUCCESS
    message = ''
    n_steps = 0
    n_restarts = 0

    while True:
        if solver.status == 'finished':
            retcode = ReturnCode.SUCCESS
            break
        if n_steps >= max_steps:
            retcode = ReturnCode.MAX_ITERS
            message = f"Reached the maximum number of steps ({max_steps})."
            logger.warning(message)
            break

        t_prev, u_prev = solver.t, solver.y.copy()
        step_message = solver.step()
        n_steps += 1
        if solver.status == 'failed':
            retcode = ReturnCode.FAILURE
            message = str(step_message)
            logger.warning(f"Integration failed at t = {t_prev}: {message}")
            break

        t_new = solver.t
        if isoutofdomain is not None and isoutofdomain(solver.y, problem.p, t_new):
            h = (t_new - t_prev) / 2
            if h < dtmin:
                retcode = ReturnCode.DT_LESS_THAN_MIN
                message = f"Step size fell below {dtmin} at t = {t_prev}."
                logger.warning(message)
                break
            solver = start(t_prev, u_prev, first_step=h)
            n_restarts += 1
            continue

        if save_times is not None:
            dense = solver.dense_output()
            while next_save < len(save_times) and save_times[next_save] <= t_new:
                ts.append(float(save_times[next_save]))
                us.append(np.asarray(dense(save_times[next_save]), dtype=float))
                next_save += 1

        integrator.t = t_new
        integrator.u = solver.y.copy()
        integrator.dt = t_new - t_prev
        before = integrator.u.copy()
        for cb in callbacks:
            cb(integrator)
        modified = not np.array_equal(before, integrator.u)

        if save_times is None:
            ts.append(t_new)
            us.append(integrator.u.copy())
        elif modified and ts and ts[-1] == t_new:
            us[-1] = integrator.u.copy()

        if integrator.terminated:
            retcode = ReturnCode.TERMINATED
            break
        if modified and solver.status != 'finished':
            solver = start(t_new, integrator.u)
            n_restarts += 1

    u = np.array(us).T if us else np.zeros((len(problem.u0), 0))
    return ODESolution(
        t=np.asarray(ts, dtype=float),
        u=u,
        retcode=retcode,
        n_steps=n_steps,
        n_restarts=n_restarts,
        message=message,
        problem=problem,
    )
