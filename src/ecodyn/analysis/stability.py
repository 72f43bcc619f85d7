"""
Temporal stability of biomass trajectories.

Matrices are species x time, as returned by
:func:`~ecodyn.analysis.measures.extract_last_timesteps`. The community
coefficient of variation partitions into the average population
variability and the species synchrony.
"""

from __future__ import annotations

from typing import NamedTuple, Union

import numpy as np

from ecodyn.analysis.measures import extract_last_timesteps


class FoodwebCV(NamedTuple):
    stability: float
    avg_cv_sp: float
    synchrony: float


def coefficient_of_variation(x) -> float:
    """Coefficient of variation, corrected for the sample size.

    ``(1 + 1 / 4n) * std(x) / mean(x)``, with the sample standard deviation.
    """
    x = np.asarray(x, dtype=float)
    cv = np.std(x, ddof=1) / np.mean(x)
    return float((1 + 1 / (4 * len(x))) * cv)


def avg_cv_sp(mat) -> float:
    """Average population variability, species CVs weighted by mean biomass."""
    mat = np.asarray(mat, dtype=float)
    avg_sp = mat.mean(axis=1)
    std_sp = mat.std(axis=1, ddof=1)
    rel_sp = avg_sp / avg_sp.sum()
    return float(np.sum(rel_sp * std_sp / avg_sp))


def synchrony(mat) -> float:
    """Loreau & de Mazancourt synchrony: community variance over the squared sum of species std."""
    mat = np.asarray(mat, dtype=float)
    com_var = np.sum(np.cov(mat))
    std_sp = np.sum(mat.std(axis=1, ddof=1))
    return float(com_var / std_sp ** 2)


def temporal_cv(mat) -> float:
    """Coefficient of variation of the total community biomass."""
    total = np.asarray(mat, dtype=float).sum(axis=0)
    return float(np.std(total, ddof=1) / np.mean(total))


def foodweb_cv(sol, last: Union[int, str] = "10%") -> FoodwebCV:
    """Community stability and its partition.

    Returns
    -------
    FoodwebCV
        Community CV (``stability``), average population variability
        (``avg_cv_sp``) and species synchrony (``synchrony``).
    """
    mat = extract_last_timesteps(sol, last=last)
    return FoodwebCV(temporal_cv(mat), avg_cv_sp(mat), synchrony(mat))


def population_stability(sol, threshold: float = np.finfo(float).eps,
                         last: Union[int, str] = "10%") -> float:
    """Mean of the negative CVs of the species alive at the end.

    Species with a final biomass at or below ``threshold`` are ignored.
    NaN when no biomass is left.
    """
    mat = extract_last_timesteps(sol, last=last)
    alive = mat[:, -1] > threshold
    measure_on = mat[alive]
    if measure_on.sum() == 0:
        return float('nan')
    stability = [-coefficient_of_variation(row) for row in measure_on]
    return float(np.mean(stability))
