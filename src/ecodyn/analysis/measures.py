"""
Measures of community functioning.

Every measure accepts either:

- a :class:`~ecodyn.core.simulate.Solution`, measured over its ``last``
  saved timesteps and averaged;
- a species x time biomass matrix, handled the same way;
- a vector of species biomasses, a single snapshot.

Timesteps are selected with :func:`extract_last_timesteps`, which
warns when the selected window contains an extinction.
"""

from __future__ import annotations

import warnings
from typing import List, NamedTuple, Union

import numpy as np

from ecodyn.core.dynamics import facilitated_growth_rates, producer_growth as _growth
from ecodyn.core.network import default_species_names
from ecodyn.core.simulate import Solution

Trajectories = Union[Solution, np.ndarray]


class Biomass(NamedTuple):
    total: float
    species: np.ndarray


class SpeciesSelection(NamedTuple):
    species: List[str]
    idxs: np.ndarray


class ExtinctionTimesteps(NamedTuple):
    species: List[str]
    idxs: np.ndarray
    timesteps: np.ndarray


class MinMax(NamedTuple):
    min: np.ndarray
    max: np.ndarray


class ProducerGrowth(NamedTuple):
    species: List[str]
    mean: np.ndarray
    std: np.ndarray
    all: np.ndarray


# =============================================================================
# TIMESTEPS SELECTION
# =============================================================================


def _trajectories(sol: Trajectories):
    """Species x time biomass matrix and species names."""
    if isinstance(sol, Solution):
        return sol.species_trajectories, sol.species
    mat = np.asarray(sol, dtype=float)
    if mat.ndim != 2:
        raise ValueError(
            f"Expected a solution or a species x time matrix, received an array of shape {mat.shape}."
        )
    return mat, default_species_names(mat.shape[0])


def process_idxs(sol: Trajectories, idxs=None) -> np.ndarray:
    """Check species indices or names, return 0-based indices.

    Parameters
    ----------
    idxs : int, str or sequence of either, optional
        Species to select, all of them by default.
    """
    _, species = _trajectories(sol)
    S = len(species)
    if idxs is None:
        return np.arange(S)
    if isinstance(idxs, (str, int, np.integer)):
        idxs = [idxs]
    idxs = list(idxs)
    if all(isinstance(i, str) for i in idxs):
        absent = [name for name in idxs if name not in species]
        if absent:
            raise ValueError(f"Species {absent} are not found in the network. Any misspelling?")
        return np.array([species.index(name) for name in idxs], dtype=int)
    if all(isinstance(i, (int, np.integer)) and not isinstance(i, bool) for i in idxs):
        out_of_bounds = [int(i) for i in idxs if not 0 <= i < S]
        if out_of_bounds:
            raise ValueError(f"Cannot extract idxs {out_of_bounds} when there are {S} species.")
        return np.array(idxs, dtype=int)
    raise TypeError(
        "`idxs` should be a vector of integers (species indices) or strings (species names)."
    )


def process_last_timesteps(sol: Trajectories, last: Union[int, str] = 1,
                           quiet: bool = False) -> int:
    """Number of timesteps described by ``last``, an integer or a percentage such as ``"10%"``."""
    mat, _ = _trajectories(sol)
    n_timesteps = mat.shape[1]

    if isinstance(last, str):
        if not last.endswith('%'):
            raise ValueError(
                "The `last` argument, when given as a string, should end with character '%'."
            )
        try:
            perc = float(last[:-1])
        except ValueError:
            raise ValueError(f"Cannot read a percentage from `last` = '{last}'.") from None
        if not 0.0 < perc <= 100.0:
            raise ValueError(
                f"Cannot extract {perc}% of the solution's timesteps: 0% < `last` <= 100% must hold."
            )
        last = int(round(n_timesteps * perc / 100))
        if last == 0 and not quiet:
            warnings.warn(
                f"{perc}% of {n_timesteps} timesteps correspond to 0 output lines: "
                "an empty table has been extracted."
            )
    elif isinstance(last, (int, np.integer)) and not isinstance(last, bool):
        if last <= 0:
            raise ValueError(f"Cannot extract {last} timesteps. `last` should be a positive integer.")
    elif isinstance(last, float):
        raise TypeError(f"Cannot extract `last` from a floating point number. Did you mean '{last}%'?")
    else:
        raise TypeError(
            f"Cannot extract timesteps with `last` = {last!r}. "
            "`last` should be a positive integer or a string representing a percentage."
        )

    if last > n_timesteps:
        raise ValueError(
            f"Cannot extract {last} timesteps from a trajectory with only {n_timesteps} timesteps. "
            "Consider decreasing the `last` argument value and/or specifying it "
            "as a percentage instead (e.g. '10%')."
        )
    return int(last)


def get_extinction_timesteps(sol, idxs=None, threshold: float = 0.0):
    """First timestep at which each species reaches zero biomass.

    For a vector, returns the first index at or below ``threshold``,
    or None.

    Returns
    -------
    ExtinctionTimesteps
        Only the species which went extinct.
    """
    if _is_vector(sol):
        below = np.flatnonzero(np.asarray(sol, dtype=float) <= threshold)
        return int(below[0]) if len(below) else None
    mat, species = _trajectories(sol)
    idxs = process_idxs(sol, idxs)
    sub = mat[idxs] <= threshold
    extinct = sub.any(axis=1)
    timesteps = sub.argmax(axis=1)[extinct]
    return ExtinctionTimesteps(
        [species[i] for i in idxs[extinct]], idxs[extinct], timesteps
    )


def _check_last_extinction(sol, idxs: np.ndarray, last: int) -> None:
    mat, _ = _trajectories(sol)
    n_timesteps = mat.shape[1]
    ext = get_extinction_timesteps(sol, idxs)
    if not len(ext.idxs):
        return
    within = ext.timesteps > n_timesteps - last
    if within.any():
        species = [s for s, w in zip(ext.species, within) if w]
        suggest = n_timesteps - int(ext.timesteps.max())
        warnings.warn(
            f"With `last` = {last}, a table has been extracted with the species {species}, "
            f"that went extinct at timesteps = {ext.timesteps[within].tolist()}. "
            f"Set `last` <= {suggest} to get rid of them."
        )


def extract_last_timesteps(sol: Trajectories, last: Union[int, str] = 1,
                           idxs=None, quiet: bool = False) -> np.ndarray:
    """Biomass matrix of species x time over the ``last`` timesteps.

    Parameters
    ----------
    sol : Solution or np.ndarray
        Simulation output, or a species x time matrix.
    last : int or str
        Number of last timesteps, or a percentage of them as ``"10%"``.
    idxs : int, str or sequence, optional
        Species indices or names, all species by default.
    quiet : bool
        Do not warn when the window includes an extinction.

    Returns
    -------
    np.ndarray
        A copy, so that the solution is never modified.

    Examples
    --------
    >>> extract_last_timesteps(np.array([[1., 2., 3.], [4., 5., 6.]]), last=2, idxs=[1])
    array([[5., 6.]])
    """
    mat, _ = _trajectories(sol)
    last = process_last_timesteps(sol, last, quiet)
    idxs = process_idxs(sol, idxs)
    n_timesteps = mat.shape[1]
    out = mat[idxs, n_timesteps - last:]
    if not quiet:
        _check_last_extinction(sol, idxs, last)
    return out.copy()


# =============================================================================
# DIVERSITY
# =============================================================================


def _is_vector(x) -> bool:
    return not isinstance(x, Solution) and np.ndim(x) == 1


def _over_timesteps(measure, sol, threshold: float, **kwargs) -> float:
    measure_on = extract_last_timesteps(sol, **kwargs)
    if measure_on.shape[1] == 0:
        return float('nan')
    return float(np.mean([measure(col, threshold=threshold) for col in measure_on.T]))


def richness(sol, threshold: float = 0.0, **kwargs) -> float:
    """Number of species with a biomass above ``threshold``.

    Averaged over the last timesteps for a solution or a matrix.
    Extra keyword arguments go to :func:`extract_last_timesteps`.

    Examples
    --------
    >>> richness([0, 1])
    1
    >>> richness([1, 1])
    2
    """
    if _is_vector(sol):
        return int(np.sum(np.asarray(sol, dtype=float) > threshold))
    return _over_timesteps(richness, sol, threshold, **kwargs)


def species_persistence(sol, threshold: float = 0.0, **kwargs) -> float:
    """Proportion of species with a biomass above ``threshold``."""
    if _is_vector(sol):
        n = np.asarray(sol, dtype=float)
        return richness(n, threshold) / len(n)
    idxs = process_idxs(sol, kwargs.get('idxs'))
    return richness(sol, threshold, **kwargs) / len(idxs)


def biomass(sol, **kwargs) -> Biomass:
    """Total and per species biomass, averaged over the last timesteps.

    Examples
    --------
    >>> biomass(np.array([[2, 1], [4, 2]]))
    Biomass(total=4.5, species=array([1.5, 3. ]))
    """
    if _is_vector(sol):
        n = np.asarray(sol, dtype=float)
        return Biomass(float(n.sum()), n.copy())
    if isinstance(sol, Solution):
        mat = extract_last_timesteps(sol, **kwargs)
    elif kwargs:
        mat = extract_last_timesteps(sol, **kwargs)
    else:
        mat = np.asarray(sol, dtype=float)
    return Biomass(float(np.mean(mat.sum(axis=0))), mat.mean(axis=1))


def _relative_abundances(n, threshold: float) -> np.ndarray:
    x = np.asarray(n, dtype=float)
    x = x[x > threshold]
    return x / x.sum() if len(x) else x


def shannon_diversity(sol, threshold: float = 0.0, **kwargs) -> float:
    """Shannon entropy, the first Hill number.

    NaN when no species is above ``threshold``.
    """
    if _is_vector(sol):
        p = _relative_abundances(sol, threshold)
        if not len(p):
            return float('nan')
        return float(-np.sum(p * np.log(p)))
    return _over_timesteps(shannon_diversity, sol, threshold, **kwargs)


def simpson(sol, threshold: float = 0.0, **kwargs) -> float:
    """Inverse Simpson index ``1 / Σ p²``, the second Hill number."""
    if _is_vector(sol):
        p = _relative_abundances(sol, threshold)
        if not len(p):
            return float('nan')
        return float(1.0 / np.sum(p ** 2))
    return _over_timesteps(simpson, sol, threshold, **kwargs)


def evenness(sol, threshold: float = 0.0, **kwargs) -> float:
    """Pielou evenness: Shannon entropy over its maximum ``log(n)``.

    NaN with less than two species above ``threshold``.
    """
    if _is_vector(sol):
        p = _relative_abundances(sol, threshold)
        if len(p) < 2:
            return float('nan')
        return float(-np.sum(p * np.log(p)) / np.log(len(p)))
    return _over_timesteps(evenness, sol, threshold, **kwargs)


# =============================================================================
# ALIVE SPECIES
# =============================================================================


def living_species(sol, threshold: float = 0.0, idxs=None, **kwargs):
    """Species whose mean biomass over the last timesteps is above ``threshold``.

    Returns
    -------
    SpeciesSelection
        Names and indices in the original network. For a bare matrix
        or vector, only the indices are returned.
    """
    if _is_vector(sol):
        return np.flatnonzero(np.asarray(sol, dtype=float) > threshold)
    if not isinstance(sol, Solution) and idxs is None and not kwargs:
        mat = np.asarray(sol, dtype=float)
        return np.flatnonzero(mat.mean(axis=1) > threshold)
    measure_on = extract_last_timesteps(sol, idxs=idxs, **kwargs)
    alive = measure_on.mean(axis=1) > threshold
    _, species = _trajectories(sol)
    selected = process_idxs(sol, idxs)[alive]
    return SpeciesSelection([species[i] for i in selected], selected)


def get_alive_species(sol, idxs=None, threshold: float = 0.0):
    """Species with a biomass above ``threshold`` at the last timestep."""
    if _is_vector(sol):
        return np.flatnonzero(np.asarray(sol, dtype=float) > threshold)
    mat, species = _trajectories(sol)
    idxs = process_idxs(sol, idxs)
    alive = idxs[mat[idxs, -1] > threshold]
    return SpeciesSelection([species[i] for i in alive], alive)


def min_max(sol, **kwargs) -> MinMax:
    """Minimum and maximum biomass of each species over the last timesteps."""
    if isinstance(sol, Solution) or kwargs:
        mat = extract_last_timesteps(sol, **kwargs)
    else:
        mat = np.atleast_2d(np.asarray(sol, dtype=float))
    return MinMax(mat.min(axis=1), mat.max(axis=1))


# =============================================================================
# PRODUCTION
# =============================================================================


def producer_growth(sol: Solution, **kwargs) -> ProducerGrowth:
    """Growth of the producers over the last timesteps.

    The growth is the producer growth term of the dynamics, facilitation
    included.

    Returns
    -------
    ProducerGrowth
        Producer names, mean and standard deviation of their growth,
        and all growth values as a producers x timesteps matrix.
    """
    if not isinstance(sol, Solution):
        raise TypeError(f"Producer growth is measured on a Solution, received {type(sol).__name__}.")
    if kwargs.get('idxs') is not None:
        raise ValueError("Producer growth is measured on all producers, `idxs` cannot be given.")
    params = sol.get_model()
    S = sol.richness
    producers = params.network.producers()

    last = process_last_timesteps(sol, kwargs.get('last', 1), kwargs.get('quiet', False))
    if not kwargs.get('quiet', False):
        _check_last_extinction(sol, producers, last)
    window = sol.u[:, sol.u.shape[1] - last:]

    growth = np.zeros((len(producers), last))
    for j, u in enumerate(window.T):
        B, N = u[:S], u[S:]
        r = facilitated_growth_rates(B, params)
        for k, i in enumerate(producers):
            growth[k, j] = _growth(i, B, N, params, r)

    return ProducerGrowth(
        [sol.species[i] for i in producers],
        growth.mean(axis=1),
        growth.std(axis=1, ddof=1) if last > 1 else np.zeros(len(producers)),
        growth,
    )
