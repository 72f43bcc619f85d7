"""
Functional responses.

A functional response gives ``F[i, j]``, the rate at which consumer i
feeds on resource j given current biomasses. Three flavours are
available:

- :class:`BioenergeticResponse` (Yodzis & Innes, Williams & Martinez),
  dimensionless and scaled by metabolic rates;
- :class:`ClassicResponse`, with attack rates and handling times,
  the only one affected by interference and refuge interactions;
- :class:`LinearResponse`, type I response.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Union

import numpy as np

from ecodyn.core.constants import (
    ATTACK_RATE_A,
    ATTACK_RATE_B_PREDATOR,
    ATTACK_RATE_B_PREY,
    DEFAULT_HALF_SATURATION,
    DEFAULT_HILL_EXPONENT,
    DEFAULT_INTERFERENCE,
    EFFICIENCY_CARNIVORY,
    EFFICIENCY_HERBIVORY,
    HANDLING_TIME_A,
    HANDLING_TIME_B_PREDATOR,
    HANDLING_TIME_B_PREY,
)
from ecodyn.core.network import FoodWeb, MultiplexNetwork, Network


# ============================================================================
# Default parameters
# ============================================================================

def homogeneous_preference(A: np.ndarray) -> np.ndarray:
    """Consumers split their preference evenly among their preys."""
    A = np.asarray(A, dtype=float)
    n_preys = A.sum(axis=1)
    omega = np.zeros_like(A)
    has_prey = n_preys > 0
    omega[has_prey] = A[has_prey] / n_preys[has_prey, None]
    return omega


def default_efficiency(A: np.ndarray, e_herbivore: float = EFFICIENCY_HERBIVORY,
                       e_carnivore: float = EFFICIENCY_CARNIVORY) -> np.ndarray:
    """Assimilation efficiency of every trophic link.

    Links towards producers get ``e_herbivore``, others ``e_carnivore``.
    """
    A = np.asarray(A)
    is_producer = A.sum(axis=1) == 0
    e = np.where(is_producer[None, :], e_herbivore, e_carnivore)
    return np.where(A > 0, e, 0.0)


def allometric_handling_time(A: np.ndarray, M: np.ndarray) -> np.ndarray:
    """``hₜ[i, j] = 0.3 * M_i^-0.48 * M_j^-0.66`` on trophic links."""
    M = np.asarray(M, dtype=float)
    ht = HANDLING_TIME_A * np.outer(M ** HANDLING_TIME_B_PREDATOR, M ** HANDLING_TIME_B_PREY)
    return np.where(np.asarray(A) > 0, ht, 0.0)


def allometric_attack_rate(A: np.ndarray, M: np.ndarray) -> np.ndarray:
    """``aᵣ[i, j] = 50 * M_i^0.45 * M_j^0.15`` on trophic links."""
    M = np.asarray(M, dtype=float)
    ar = ATTACK_RATE_A * np.outer(M ** ATTACK_RATE_B_PREDATOR, M ** ATTACK_RATE_B_PREY)
    return np.where(np.asarray(A) > 0, ar, 0.0)


def _vector(value, S: int, name: str) -> np.ndarray:
    arr = np.asarray(value, dtype=float)
    if arr.ndim == 0:
        arr = np.full(S, float(arr))
    if arr.shape != (S,):
        raise ValueError(f"'{name}' should be a scalar or a vector of size {S}, received shape {arr.shape}.")
    return arr


def _matrix(value, A: np.ndarray, name: str) -> np.ndarray:
    A = np.asarray(A)
    arr = np.asarray(value, dtype=float)
    if arr.ndim == 0:
        return np.where(A > 0, float(arr), 0.0)
    if arr.shape != A.shape:
        raise ValueError(f"'{name}' should be a scalar or a matrix of shape {A.shape}, received shape {arr.shape}.")
    if np.any((arr != 0) & ~(A > 0)):
        raise ValueError(f"'{name}' should be zero outside trophic links.")
    return arr


# ============================================================================
# Responses
# ============================================================================

@dataclass
class BioenergeticResponse:
    """Bioenergetic functional response.

    ``F[i, j] = ω[i, j] B_j^h / (B0_i^h + c_i B_i B0_i^h + Σ_k ω[i, k] B_k^h)``

    Attributes
    ----------
    h : float
        Hill exponent.
    B0 : np.ndarray
        Half-saturation densities.
    c : np.ndarray
        Intraspecific predator interference.
    omega : np.ndarray
        Consumer preferences, rows sum to 1 for consumers.
    e : np.ndarray
        Assimilation efficiencies.

    Examples
    --------
    >>> fw = FoodWeb.from_matrix([[0, 0], [1, 0]])
    >>> F = BioenergeticResponse.default(fw)
    >>> round(F.matrix(np.array([1.0, 1.0]), fw)[1, 0], 3)
    0.8
    """
    h: float
    B0: np.ndarray
    c: np.ndarray
    omega: np.ndarray
    e: np.ndarray

    @classmethod
    def default(cls, network: Network, h: float = DEFAULT_HILL_EXPONENT,
                B0=DEFAULT_HALF_SATURATION, c=DEFAULT_INTERFERENCE,
                omega=None, e=None) -> "BioenergeticResponse":
        A = network.A
        S = A.shape[0]
        omega = homogeneous_preference(A) if omega is None else _matrix(omega, A, 'omega')
        e = default_efficiency(A) if e is None else _matrix(e, A, 'e')
        return cls(float(h), _vector(B0, S, 'B0'), _vector(c, S, 'c'), omega, e)

    def matrix(self, B: np.ndarray, network: Network) -> np.ndarray:
        """Functional response matrix for biomasses ``B``."""
        Bh = np.abs(B) ** self.h
        B0h = self.B0 ** self.h
        numerator = self.omega * Bh[None, :]
        denominator = B0h + self.c * B * B0h + numerator.sum(axis=1)
        F = np.zeros_like(self.omega)
        consumers = denominator > 0
        F[consumers] = numerator[consumers] / denominator[consumers, None]
        return F

    def __call__(self, B: np.ndarray, i: int, j: int, network: Network) -> float:
        return float(self.matrix(B, network)[i, j])

    def __repr__(self) -> str:
        return f"BioenergeticResponse(h={self.h})"


@dataclass
class ClassicResponse:
    """Classic (Holling type II/III) functional response.

    ``F[i, j] = ω[i, j] aᵣ[i, j] B_j^h / (M_i (1 + c_i B_i + Σ_k ω[i, k] aᵣ[i, k] hₜ[i, k] B_k^h))``

    With a multiplex network, the attack rates are decreased by refuge
    interactions and the denominator is increased by interference.

    Attributes
    ----------
    h : float
        Hill exponent.
    c : np.ndarray
        Intraspecific predator interference.
    omega : np.ndarray
        Consumer preferences.
    ar : np.ndarray
        Attack rates.
    ht : np.ndarray
        Handling times.
    e : np.ndarray
        Assimilation efficiencies.
    """
    h: float
    c: np.ndarray
    omega: np.ndarray
    ar: np.ndarray
    ht: np.ndarray
    e: np.ndarray

    @classmethod
    def default(cls, network: Network, h: float = DEFAULT_HILL_EXPONENT,
                c=DEFAULT_INTERFERENCE, omega=None, ar=None, ht=None,
                e=None) -> "ClassicResponse":
        A = network.A
        S = A.shape[0]
        omega = homogeneous_preference(A) if omega is None else _matrix(omega, A, 'omega')
        ar = allometric_attack_rate(A, network.M) if ar is None else _matrix(ar, A, 'aᵣ')
        ht = allometric_handling_time(A, network.M) if ht is None else _matrix(ht, A, 'hₜ')
        e = default_efficiency(A) if e is None else _matrix(e, A, 'e')
        return cls(float(h), _vector(c, S, 'c'), omega, ar, ht, e)

    def attack_rates(self, B: np.ndarray, network: Network) -> np.ndarray:
        """Attack rates, decreased by refuge links when present."""
        if not isinstance(network, MultiplexNetwork):
            return self.ar
        layer = network.active_layer('refuge')
        if layer is None:
            return self.ar
        delta = layer.intensity * (layer.A.T.astype(float) @ B)
        ar = self.ar.copy()
        rows, cols = np.nonzero(ar)
        for i, j in zip(rows, cols):
            ar[i, j] = layer.f(ar[i, j], delta[j])
        return ar

    def interference(self, B: np.ndarray, network: Network) -> np.ndarray:
        """Extra denominator term due to interspecific predator interference."""
        if not isinstance(network, MultiplexNetwork):
            return np.zeros_like(B)
        layer = network.active_layer('interference')
        if layer is None:
            return np.zeros_like(B)
        return layer.intensity * (layer.A.T.astype(float) @ B)

    def matrix(self, B: np.ndarray, network: Network) -> np.ndarray:
        ar = self.attack_rates(B, network)
        Bh = np.abs(B) ** self.h
        numerator = self.omega * ar * Bh[None, :]
        handling = (numerator * self.ht).sum(axis=1)
        denominator = network.M * (1 + self.c * B + self.interference(B, network) + handling)
        return numerator / denominator[:, None]

    def __call__(self, B: np.ndarray, i: int, j: int, network: Network) -> float:
        return float(self.matrix(B, network)[i, j])

    def __repr__(self) -> str:
        return f"ClassicResponse(h={self.h})"


@dataclass
class LinearResponse:
    """Linear (type I) functional response: ``F[i, j] = ω[i, j] α_i B_j``.

    Attributes
    ----------
    alpha : np.ndarray
        Consumption rates, 0 for producers.
    omega : np.ndarray
        Consumer preferences.
    e : np.ndarray
        Assimilation efficiencies.
    """
    alpha: np.ndarray
    omega: np.ndarray
    e: np.ndarray

    @classmethod
    def default(cls, network: Network, alpha=1.0, omega=None, e=None) -> "LinearResponse":
        A = network.A
        S = A.shape[0]
        consumers = np.asarray(A).sum(axis=1) > 0
        alpha = np.where(consumers, _vector(alpha, S, 'alpha'), 0.0)
        omega = homogeneous_preference(A) if omega is None else _matrix(omega, A, 'omega')
        e = default_efficiency(A) if e is None else _matrix(e, A, 'e')
        return cls(alpha, omega, e)

    def matrix(self, B: np.ndarray, network: Network) -> np.ndarray:
        return self.omega * self.alpha[:, None] * B[None, :]

    def __call__(self, B: np.ndarray, i: int, j: int, network: Network) -> float:
        return float(self.omega[i, j] * self.alpha[i] * B[j])

    def __repr__(self) -> str:
        return "LinearResponse()"


FunctionalResponse = Union[BioenergeticResponse, ClassicResponse, LinearResponse]
