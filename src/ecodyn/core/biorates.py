"""
Biological rates and environment.

Species-level rates used by the dynamics:

- ``r``: intrinsic growth rate (producers),
- ``x``: metabolic demand per unit of biomass (consumers),
- ``y``: maximum consumption rate relative to metabolic demand (consumers),
- ``d``: natural death rate (all species).

Default values follow allometric scaling ``a * M^b``, with coefficients
depending on the species metabolic class. Rates can optionally depend
on temperature through Boltzmann-Arrhenius scaling.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence, Union

import numpy as np

from ecodyn.core.aliasing import METABOLIC_CLASS_ALIASES, RATE_ALIASES, AliasingDict
from ecodyn.core.constants import (
    BOLTZMANN,
    DEFAULT_T0,
    DEFAULT_TEMPERATURE,
    ECTOTHERM,
    GROWTH_ACTIVATION_ENERGY,
    GROWTH_RATE_A,
    GROWTH_RATE_B,
    INVERTEBRATE,
    MAX_CONSUMPTION_A,
    MAX_CONSUMPTION_ACTIVATION_ENERGY,
    MAX_CONSUMPTION_B,
    METABOLIC_ACTIVATION_ENERGY,
    METABOLIC_RATE_A,
    METABOLIC_RATE_B,
    MORTALITY_A,
    MORTALITY_B,
    PRODUCER,
)

_CLASS_ORDER = (PRODUCER, INVERTEBRATE, ECTOTHERM)


@dataclass
class AllometricParams:
    """Allometric coefficients ``rate = a * M^b`` by metabolic class.

    Attributes
    ----------
    a : dict
        Metabolic class -> scaling constant.
    b : dict
        Metabolic class -> scaling exponent.
    """
    a: Dict[str, float]
    b: Dict[str, float]

    @classmethod
    def from_tuples(cls, a: Sequence[float], b: Sequence[float]) -> "AllometricParams":
        """Coefficients given in the order (producer, invertebrate, ectotherm vertebrate)."""
        return cls(dict(zip(_CLASS_ORDER, a)), dict(zip(_CLASS_ORDER, b)))

    def coefficients(self, metabolic_class: str):
        cls = METABOLIC_CLASS_ALIASES.standardize(metabolic_class)
        return self.a[cls], self.b[cls]


def default_growth_params() -> AllometricParams:
    return AllometricParams.from_tuples(GROWTH_RATE_A, GROWTH_RATE_B)


def default_metabolic_params() -> AllometricParams:
    return AllometricParams.from_tuples(METABOLIC_RATE_A, METABOLIC_RATE_B)


def default_max_consumption_params() -> AllometricParams:
    return AllometricParams.from_tuples(MAX_CONSUMPTION_A, MAX_CONSUMPTION_B)


def default_mortality_params() -> AllometricParams:
    return AllometricParams.from_tuples(MORTALITY_A, MORTALITY_B)


def allometric_rate(M: np.ndarray, metabolic_class: Sequence[str],
                    params: AllometricParams) -> np.ndarray:
    """Compute ``a * M^b`` for every species, with class-dependent coefficients."""
    M = np.asarray(M, dtype=float)
    rates = np.zeros_like(M)
    for i, cls in enumerate(metabolic_class):
        a, b = params.coefficients(cls)
        rates[i] = a * M[i] ** b
    return rates


# ============================================================================
# Temperature dependence
# ============================================================================

@dataclass
class Environment:
    """Environmental conditions of the model.

    Attributes
    ----------
    T : float
        Temperature in Kelvin.
    """
    T: float = DEFAULT_TEMPERATURE

    def __post_init__(self):
        if self.T < 0:
            raise ValueError(f"Temperature should be non-negative (Kelvin), received {self.T}.")


@dataclass
class ExponentialBA:
    """Boltzmann-Arrhenius temperature scaling of allometric rates.

    ``rate = a * M^b * exp(E_a * (T0 - T) / (k * T * T0))``

    Attributes
    ----------
    params : dict
        Rate name ('r', 'x', 'y') -> :class:`AllometricParams`.
    activation_energy : dict
        Rate name -> activation energy (eV).
    T0 : float
        Normalization temperature (K).
    """
    params: Dict[str, AllometricParams] = field(default_factory=lambda: {
        'r': default_growth_params(),
        'x': default_metabolic_params(),
        'y': default_max_consumption_params(),
    })
    activation_energy: Dict[str, float] = field(default_factory=lambda: {
        'r': GROWTH_ACTIVATION_ENERGY,
        'x': METABOLIC_ACTIVATION_ENERGY,
        'y': MAX_CONSUMPTION_ACTIVATION_ENERGY,
    })
    T0: float = DEFAULT_T0

    def rate(self, name: str, M, metabolic_class, T: float) -> np.ndarray:
        name = RATE_ALIASES.standardize(name)
        base = allometric_rate(M, metabolic_class, self.params[name])
        return base * boltzmann_factor(self.activation_energy[name], T, self.T0)


def boltzmann_factor(E_a: float, T: float, T0: float = DEFAULT_T0) -> float:
    return float(np.exp(E_a * (T0 - T) / (BOLTZMANN * T * T0)))


@dataclass
class NoTemperatureResponse:
    """Rates do not depend on temperature."""

    def rate(self, name, M, metabolic_class, T):
        return None


TemperatureResponse = Union[NoTemperatureResponse, ExponentialBA]


# ============================================================================
# Rates container
# ============================================================================

@dataclass
class BioRates:
    """Species biological rates.

    Attributes
    ----------
    r : np.ndarray
        Intrinsic growth rates.
    x : np.ndarray
        Metabolic rates.
    y : np.ndarray
        Maximum consumption rates.
    d : np.ndarray
        Natural death rates.
    """
    r: np.ndarray
    x: np.ndarray
    y: np.ndarray
    d: np.ndarray

    @classmethod
    def default(
        cls,
        M: np.ndarray,
        metabolic_class: Sequence[str],
        temperature_response: Optional[TemperatureResponse] = None,
        environment: Optional[Environment] = None,
        **rates,
    ) -> "BioRates":
        """Allometric default rates, overridable with any rate alias.

        Parameters
        ----------
        M : np.ndarray
            Body masses.
        metabolic_class : sequence of str
            Metabolic classes.
        temperature_response : ExponentialBA, optional
            If given, growth, metabolism and maximum consumption
            scale with the environment temperature.
        environment : Environment, optional
            Provides the temperature.
        **rates
            Overrides, e.g. ``d=0`` or ``mortality=[0, 0.1]``.
            Scalars are broadcast to all species.

        Examples
        --------
        >>> rates = BioRates.default(np.ones(2), ['producer', 'invertebrate'], d=0)
        >>> rates.d.tolist()
        [0.0, 0.0]
        """
        S = len(metabolic_class)
        given = AliasingDict(RATE_ALIASES, rates)
        defaults = {
            'r': default_growth_params(),
            'x': default_metabolic_params(),
            'y': default_max_consumption_params(),
        }
        T = (environment or Environment()).T
        values = {}
        for name in ('r', 'x', 'y', 'd'):
            if name in given:
                values[name] = broadcast_rate(given[name], S, name)
            elif name == 'd':
                values[name] = np.zeros(S)
            elif isinstance(temperature_response, ExponentialBA):
                values[name] = temperature_response.rate(name, M, metabolic_class, T)
            else:
                values[name] = allometric_rate(M, metabolic_class, defaults[name])
        return cls(**values)

    def get(self, ref) -> np.ndarray:
        return getattr(self, RATE_ALIASES.standardize(ref))

    def set(self, ref, value) -> None:
        name = RATE_ALIASES.standardize(ref)
        setattr(self, name, broadcast_rate(value, len(self.r), name))

    def __repr__(self) -> str:
        def show(value):
            return "missing" if value is None else np.array2string(value, precision=3)
        return "BioRates(" + ", ".join(
            f"{name}={show(getattr(self, name))}" for name in ('r', 'x', 'y', 'd')
        ) + ")"


def broadcast_rate(value, S: int, name: str = "rate") -> np.ndarray:
    """Broadcast a scalar rate to all species, or check a vector size."""
    arr = np.asarray(value, dtype=float)
    if arr.ndim == 0:
        arr = np.full(S, float(arr))
    if arr.shape != (S,):
        raise ValueError(f"Rate '{name}' should be a scalar or a vector of size {S}, received shape {arr.shape}.")
    if (arr < 0).any():
        raise ValueError(f"Rate '{name}' should be non-negative, received {arr.tolist()}.")
    return arr
