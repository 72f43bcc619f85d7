"""
Producer growth models.

- :class:`LogisticGrowth`: producers grow logistically towards their
  carrying capacity, possibly competing with each other.
- :class:`NutrientIntake`: producers grow by consuming nutrients,
  whose concentrations are additional state variables.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Union

import numpy as np

from ecodyn.core.constants import (
    DEFAULT_CARRYING_CAPACITY,
    DEFAULT_CONCENTRATION_RANGE,
    DEFAULT_N_NUTRIENTS,
    DEFAULT_NUTRIENT_HALF_SATURATION,
    DEFAULT_SUPPLY,
    DEFAULT_TURNOVER,
)
from ecodyn.core.network import Network


@dataclass
class LogisticGrowth:
    """Logistic producer growth.

    ``G_i = r_i B_i (1 - Σ_j a[i, j] B_j / K_i)``

    Attributes
    ----------
    K : np.ndarray
        Carrying capacities, NaN for consumers.
    a : np.ndarray
        Producer competition matrix, identity among producers by default.
    """
    K: np.ndarray
    a: np.ndarray

    @classmethod
    def default(cls, network: Network, K=DEFAULT_CARRYING_CAPACITY,
                a=None) -> "LogisticGrowth":
        prod = network.producer_mask()
        S = len(prod)
        K_arr = np.asarray(K, dtype=float)
        if K_arr.ndim == 0:
            K_arr = np.full(S, float(K_arr))
        if K_arr.shape != (S,):
            raise ValueError(f"Carrying capacity should be a scalar or a vector of size {S}, received shape {K_arr.shape}.")
        K_arr = np.where(prod, K_arr, np.nan)
        if np.any(K_arr[prod] <= 0):
            raise ValueError("Carrying capacities of producers should be positive.")
        if a is None:
            a_arr = np.diag(prod.astype(float))
        else:
            a_arr = np.asarray(a, dtype=float)
            if a_arr.ndim == 0:
                a_arr = np.where(np.outer(prod, prod), float(a_arr), 0.0)
                np.fill_diagonal(a_arr, prod.astype(float))
            if a_arr.shape != (S, S):
                raise ValueError(f"Producer competition should be a matrix of shape {(S, S)}, received {a_arr.shape}.")
        return cls(K_arr, a_arr)

    def growth(self, i: int, B: np.ndarray, r: float, N=None) -> float:
        """Growth of producer i given its (possibly facilitated) rate ``r``."""
        s = float(self.a[i] @ B)
        return r * B[i] * (1 - s / self.K[i])

    def __repr__(self) -> str:
        return "LogisticGrowth()"


@dataclass
class NutrientIntake:
    """Nutrient-dependent producer growth.

    ``G_i = r_i B_i min_l N_l / (N_l + k[i, l])``

    and nutrients follow

    ``dN_l/dt = D (S_l - N_l) - Σ_i c[i, l] G_i``

    Attributes
    ----------
    turnover : np.ndarray
        Nutrient turnover rates D, in (0, 1].
    supply : np.ndarray
        Nutrient supply concentrations S.
    concentration : np.ndarray
        Producers x nutrients content c.
    half_saturation : np.ndarray
        Producers x nutrients half-saturation densities k.
    names : list of str
        Nutrient names.
    """
    turnover: np.ndarray
    supply: np.ndarray
    concentration: np.ndarray
    half_saturation: np.ndarray
    names: Sequence[str]

    @classmethod
    def default(cls, network: Network, n_nutrients: int = DEFAULT_N_NUTRIENTS,
                turnover=DEFAULT_TURNOVER, supply=DEFAULT_SUPPLY,
                concentration=None, half_saturation=DEFAULT_NUTRIENT_HALF_SATURATION,
                names: Optional[Sequence[str]] = None) -> "NutrientIntake":
        S = network.richness
        n = int(n_nutrients)
        if n < 1:
            raise ValueError(f"At least one nutrient is required, received {n}.")
        names = [f"n{l}" for l in range(1, n + 1)] if names is None else [str(x) for x in names]
        if len(names) != n:
            raise ValueError(f"Expected {n} nutrient names, received {len(names)}.")
        turnover = _nutrient_vector(turnover, n, 'turnover')
        if np.any(turnover <= 0) or np.any(turnover > 1):
            raise ValueError(f"Nutrient turnover rates should lie in (0, 1], received {turnover.tolist()}.")
        supply = _nutrient_vector(supply, n, 'supply')
        prod = network.producer_mask()
        if concentration is None:
            row = np.linspace(*DEFAULT_CONCENTRATION_RANGE, n)
            concentration = np.tile(row, (S, 1))
        concentration = _nutrient_matrix(concentration, S, n, 'concentration')
        half_saturation = _nutrient_matrix(half_saturation, S, n, 'half_saturation')
        concentration = np.where(prod[:, None], concentration, 0.0)
        half_saturation = np.where(prod[:, None], half_saturation, 0.0)
        return cls(turnover, supply, concentration, half_saturation, names)

    @property
    def n_nutrients(self) -> int:
        return len(self.supply)

    def growth(self, i: int, B: np.ndarray, r: float, N: np.ndarray) -> float:
        """Growth of producer i, limited by its most limiting nutrient."""
        limits = []
        for l, N_l in enumerate(N):
            k = self.half_saturation[i, l]
            denom = N_l + k
            limits.append(N_l / denom if denom != 0 else 0.0)
        return r * B[i] * min(limits)

    def nutrient_dynamics(self, l: int, N: np.ndarray, G: np.ndarray) -> float:
        """Rate of change of nutrient l given producers growth ``G``."""
        return float(self.turnover[l] * (self.supply[l] - N[l]) - self.concentration[:, l] @ G)

    def __repr__(self) -> str:
        return f"NutrientIntake({self.n_nutrients} nutrients)"


def _nutrient_vector(value, n: int, name: str) -> np.ndarray:
    arr = np.asarray(value, dtype=float)
    if arr.ndim == 0:
        arr = np.full(n, float(arr))
    if arr.shape != (n,):
        raise ValueError(f"'{name}' should be a scalar or a vector of size {n}, received shape {arr.shape}.")
    if np.any(arr < 0):
        raise ValueError(f"'{name}' should be non-negative.")
    return arr


def _nutrient_matrix(value, S: int, n: int, name: str) -> np.ndarray:
    arr = np.asarray(value, dtype=float)
    if arr.ndim == 0:
        arr = np.full((S, n), float(arr))
    elif arr.ndim == 1 and arr.shape == (n,):
        arr = np.tile(arr, (S, 1))
    if arr.shape != (S, n):
        raise ValueError(f"'{name}' should have shape {(S, n)}, received {arr.shape}.")
    if np.any(arr < 0):
        raise ValueError(f"'{name}' should be non-negative.")
    return arr


ProducerGrowth = Union[LogisticGrowth, NutrientIntake]
