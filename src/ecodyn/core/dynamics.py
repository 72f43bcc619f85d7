"""
Generic right-hand side of the biomass dynamics.

For every species i::

    dB_i/dt = G_i + eating_i - x_i B_i - being_eaten_i - d_i B_i

where ``G_i`` is the producer growth (zero for consumers), ``eating_i``
and ``being_eaten_i`` come from the functional response, ``x_i B_i`` is
the metabolic loss and ``d_i B_i`` the natural death loss.

With a multiplex network, non-trophic interactions modulate these terms:
facilitation changes producer growth rates, competition reduces producer
positive net growth, interference and refuge act on the classic
functional response.

The generic evaluator below dispatches on the active functional response
and producer growth model for each species. See
:mod:`ecodyn.core.specialized` for the precomputed equivalent.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Tuple

import numpy as np

from ecodyn.core.functional_response import (
    BioenergeticResponse,
    ClassicResponse,
    LinearResponse,
)
from ecodyn.core.model_parameters import ModelParameters
from ecodyn.core.network import MultiplexNetwork, Network
from ecodyn.core.producer_growth import LogisticGrowth, NutrientIntake


@dataclass
class DynamicsParams:
    """Parameters passed to the derivative during a simulation.

    Attributes
    ----------
    params : ModelParameters
        The model.
    extinct : dict
        Species index -> extinction time. Filled by the extinction callback,
        read by the derivative to keep extinct species at zero.
    """
    params: ModelParameters
    extinct: Dict[int, float] = field(default_factory=dict)


# ============================================================================
# Terms
# ============================================================================

def consumption(i: int, B: np.ndarray, params: ModelParameters,
                F: np.ndarray) -> Tuple[float, float]:
    """Biomass gained by eating and lost by being eaten, for species i.

    Parameters
    ----------
    i : int
        Species index.
    B : np.ndarray
        Species biomasses.
    params : ModelParameters
        Model parameters.
    F : np.ndarray
        Functional response matrix for the current biomasses.

    Returns
    -------
    (eating, being_eaten) : tuple of float
    """
    response = params.functional_response
    A = params.network.A
    preys = np.flatnonzero(A[i, :])
    predators = np.flatnonzero(A[:, i])
    if isinstance(response, BioenergeticResponse):
        x, y = params.biorates.x, params.biorates.y
        eating = x[i] * y[i] * B[i] * F[i, preys].sum()
        being_eaten = 0.0
        for c in predators:
            being_eaten += x[c] * y[c] * B[c] * F[c, i] / response.e[c, i]
        return eating, being_eaten
    if isinstance(response, (ClassicResponse, LinearResponse)):
        eating = B[i] * (response.e[i, preys] * F[i, preys]).sum()
        being_eaten = 0.0
        for c in predators:
            being_eaten += B[c] * F[c, i]
        return eating, being_eaten
    raise TypeError(f"Unknown functional response: {type(response).__name__}.")


def metabolic_loss(i: int, B: np.ndarray, params: ModelParameters) -> float:
    return params.biorates.x[i] * B[i]


def natural_death_loss(i: int, B: np.ndarray, params: ModelParameters) -> float:
    return params.biorates.d[i] * B[i]


def facilitated_growth_rates(B: np.ndarray, params: ModelParameters) -> np.ndarray:
    """Producer growth rates, increased by facilitation when present."""
    r = params.biorates.r
    network = params.network
    if not isinstance(network, MultiplexNetwork):
        return r
    layer = network.active_layer('facilitation')
    if layer is None:
        return r
    delta = layer.intensity * (layer.A.T.astype(float) @ B)
    r = r.copy()
    for i in network.producers():
        r[i] = layer.f(r[i], delta[i])
    return r


def producer_growth(i: int, B: np.ndarray, N: np.ndarray, params: ModelParameters,
                    r: np.ndarray) -> float:
    """Growth of species i, zero for consumers."""
    if not params.network.is_producer(i):
        return 0.0
    model = params.producer_growth
    if isinstance(model, (LogisticGrowth, NutrientIntake)):
        return model.growth(i, B, r[i], N)
    raise TypeError(f"Unknown producer growth: {type(model).__name__}.")


def effect_competition(net: float, i: int, B: np.ndarray, network: Network) -> float:
    """Apply producer competition to a positive net growth."""
    if not isinstance(network, MultiplexNetwork):
        return net
    layer = network.active_layer('competition')
    if layer is None or not network.is_producer(i) or not net > 0:
        return net
    delta = layer.intensity * float(layer.A[:, i].astype(float) @ B)
    return layer.f(net, delta)


def nutrient_dynamics(params: ModelParameters, N: np.ndarray, G: np.ndarray) -> np.ndarray:
    model = params.producer_growth
    return np.array([model.nutrient_dynamics(l, N, G) for l in range(len(N))])


# ============================================================================
# Derivative
# ============================================================================

def dudt(du: np.ndarray, u: np.ndarray, p: DynamicsParams, t: float) -> np.ndarray:
    """Fill ``du`` with the time derivative of the state ``u``.

    The state holds species biomasses, followed by nutrient
    concentrations when producers grow on nutrients.

    Returns
    -------
    np.ndarray
        ``du``, for convenience.
    """
    params = p.params
    S = params.richness
    B = u[:S]
    N = u[S:]
    network = params.network
    F = params.functional_response.matrix(B, network)
    r = facilitated_growth_rates(B, params)
    G = np.zeros(S)

    for i in range(S):
        growth = producer_growth(i, B, N, params, r)
        eating, being_eaten = consumption(i, B, params, F)
        net = growth + eating - metabolic_loss(i, B, params)
        net = effect_competition(net, i, B, network)
        du[i] = net - being_eaten - natural_death_loss(i, B, params)
        G[i] = growth

    if len(N):
        du[S:] = nutrient_dynamics(params, N, G)

    for i in p.extinct:
        du[i] = 0.0
    return du


def derivative(params: ModelParameters, u: np.ndarray, t: float = 0.0,
               extinct=None) -> np.ndarray:
    """Convenience: time derivative of state ``u`` as a new array."""
    u = np.asarray(u, dtype=float)
    du = np.zeros_like(u)
    return dudt(du, u, DynamicsParams(params, dict(extinct or {})), t)
