"""
Trophic structure of the living part of a community.

Trophic levels are recomputed on the sub-network of the species alive
at each timestep, so that a consumer whose preys all went extinct
counts as a basal species.
"""

from __future__ import annotations

from typing import List, NamedTuple

import numpy as np

from ecodyn.analysis.measures import extract_last_timesteps
from ecodyn.core.network import trophic_levels
from ecodyn.core.simulate import Solution


class AliveNetwork(NamedTuple):
    species: np.ndarray
    biomass: np.ndarray
    trophic_level: np.ndarray
    A: np.ndarray


class TrophicStructure(NamedTuple):
    max: float
    mean: float
    weighted_mean: float
    alive_species: np.ndarray
    alive_trophic_level: np.ndarray
    alive_A: np.ndarray


def alive_trophic_network(n, A, threshold: float = 0.0) -> AliveNetwork:
    """Sub-network of the species with a biomass above ``threshold``."""
    n = np.asarray(n, dtype=float)
    A = np.asarray(A)
    alive = np.flatnonzero(n > threshold)
    sub = A[np.ix_(alive, alive)]
    return AliveNetwork(alive, n[alive], trophic_levels(sub), sub)


def max_trophic_level(n, A=None, threshold: float = 0.0, **kwargs) -> float:
    """Maximum trophic level among living species.

    Accepts a solution, a biomass vector with its adjacency matrix,
    or an adjacency matrix alone (all species alive).

    Examples
    --------
    >>> A = np.array([[0, 0], [1, 0]])
    >>> max_trophic_level(A)
    2.0
    >>> max_trophic_level([0, 1], A)
    1.0
    """
    return _aggregate(np.max, n, A, threshold, **kwargs)


def mean_trophic_level(n, A=None, threshold: float = 0.0, **kwargs) -> float:
    return _aggregate(np.mean, n, A, threshold, **kwargs)


def weighted_mean_trophic_level(n, A=None, threshold: float = 0.0, **kwargs) -> float:
    """Mean trophic level weighted by species biomass."""
    if isinstance(n, Solution):
        return _over_solution(weighted_mean_trophic_level, n, threshold, **kwargs)
    if A is None:
        raise TypeError("Weighting trophic levels requires both biomasses and the adjacency matrix.")
    alive = alive_trophic_network(n, A, threshold)
    return _weighted_mean(alive.biomass, alive.trophic_level)


def _weighted_mean(biomass: np.ndarray, levels: np.ndarray) -> float:
    if not len(levels):
        return float('nan')
    return float(np.sum(levels * biomass / biomass.sum()))


def _aggregate(op, n, A, threshold: float, **kwargs) -> float:
    if isinstance(n, Solution):
        return _over_solution(lambda b, a, threshold: _aggregate(op, b, a, threshold),
                              n, threshold, **kwargs)
    if A is None:
        # Adjacency matrix alone.
        levels = trophic_levels(np.asarray(n))
    elif np.ndim(n) == 2:
        values = [_aggregate(op, col, A, threshold) for col in np.asarray(n, dtype=float).T]
        return float(np.mean(values)) if values else float('nan')
    else:
        levels = alive_trophic_network(n, A, threshold).trophic_level
    return float(op(levels)) if len(levels) else float('nan')


def _over_solution(measure, sol: Solution, threshold: float, **kwargs) -> float:
    measure_on = extract_last_timesteps(sol, **kwargs)
    A = sol.p.params.network.A
    values = [measure(col, A, threshold=threshold) for col in measure_on.T]
    return float(np.mean(values)) if values else float('nan')


def trophic_structure(sol, A=None, threshold: float = 0.0, idxs=None, **kwargs) -> TrophicStructure:
    """Maximum, mean and weighted mean trophic levels of living species.

    For a solution, levels are averaged over the last timesteps,
    and the alive network is the one of the last timestep.
    All levels are NaN when no species is alive.

    Parameters
    ----------
    sol : Solution or array-like
        Simulation output, or a biomass vector given with ``A``.
    A : array-like, optional
        Adjacency matrix, required with a biomass vector.
    threshold : float
        Species at or below this biomass are dead.
    **kwargs
        Forwarded to :func:`extract_last_timesteps`.

    Examples
    --------
    >>> A = np.array([[0, 0, 0], [0, 0, 0], [1, 1, 0]])
    >>> trophic_structure([1, 1, 1], A)[:2]
    (2.0, 1.3333333333333333)
    """
    if idxs is not None:
        raise ValueError(
            "trophic_structure operates at the whole network level, "
            "particular species cannot be selected with `idxs`."
        )
    if not isinstance(sol, Solution):
        if A is None:
            raise TypeError("trophic_structure needs the adjacency matrix along with biomasses.")
        if np.ndim(sol) == 1:
            alive = alive_trophic_network(sol, A, threshold)
            return _structure([alive], alive)
        measure_on = extract_last_timesteps(sol, **kwargs) if kwargs else np.asarray(sol, dtype=float)
    else:
        measure_on = extract_last_timesteps(sol, **kwargs)
        A = sol.p.params.network.A
    networks: List[AliveNetwork] = [alive_trophic_network(col, A, threshold) for col in measure_on.T]
    return _structure(networks, networks[-1])


def _structure(networks: List[AliveNetwork], last: AliveNetwork) -> TrophicStructure:
    def average(values):
        values = list(values)
        return float(np.mean(values)) if values else float('nan')

    def level_or_nan(op, net):
        return float(op(net.trophic_level)) if len(net.trophic_level) else float('nan')

    return TrophicStructure(
        average(level_or_nan(np.max, net) for net in networks),
        average(level_or_nan(np.mean, net) for net in networks),
        average(_weighted_mean(net.biomass, net.trophic_level) for net in networks),
        last.species,
        last.trophic_level,
        last.A,
    )
