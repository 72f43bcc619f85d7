"""
Temperature-dependent re-parametrization of classic-response models.

Under an :class:`~ecodyn.core.biorates.ExponentialBA` response, the
growth rate, metabolic rate and carrying capacity become

``a_i * M_i^b_i * exp(E_a * (T0 - T) / (k * T * T0))``

and the attack rates and handling times of every trophic link ``i -> j``

``a_i * M_i^b_i * M_j^c_j * exp(E_a * (T0 - T) / (k * T * T0))``

where ``a`` and ``b`` follow the consumer metabolic class and ``c`` the
resource metabolic class.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Sequence

import numpy as np

from ecodyn.core.aliasing import METABOLIC_CLASS_ALIASES
from ecodyn.core.biorates import (
    Environment,
    ExponentialBA,
    NoTemperatureResponse,
    TemperatureResponse,
    boltzmann_factor,
)
from ecodyn.core.constants import DEFAULT_T0, ECTOTHERM, INVERTEBRATE, PRODUCER
from ecodyn.core.functional_response import ClassicResponse
from ecodyn.core.model_parameters import ModelParameters
from ecodyn.core.producer_growth import LogisticGrowth, NutrientIntake
from ecodyn.logger import get_logger

logger = get_logger(__name__)

_CLASS_ORDER = (PRODUCER, INVERTEBRATE, ECTOTHERM)


@dataclass
class ExponentialBAParams:
    """Coefficients of one temperature-dependent rate.

    Attributes
    ----------
    a : dict
        Metabolic class -> scaling constant, None where the rate is undefined.
    b : dict
        Metabolic class -> body mass exponent of the consumer (or species).
    c : dict
        Metabolic class -> body mass exponent of the resource.
    E_a : float
        Activation energy (eV).
    """
    a: Dict[str, Optional[float]]
    b: Dict[str, float]
    c: Dict[str, float]
    E_a: float

    @classmethod
    def from_tuples(cls, a: Sequence, b: Sequence[float], c: Sequence[float],
                    E_a: float) -> "ExponentialBAParams":
        """Coefficients given in the order (producer, invertebrate, ectotherm vertebrate)."""
        return cls(
            dict(zip(_CLASS_ORDER, a)),
            dict(zip(_CLASS_ORDER, b)),
            dict(zip(_CLASS_ORDER, c)),
            float(E_a),
        )

    def vectors(self, metabolic_class: Sequence[str]):
        classes = [METABOLIC_CLASS_ALIASES.standardize(cls) for cls in metabolic_class]
        a = np.array([np.nan if self.a[cls] is None else self.a[cls] for cls in classes], dtype=float)
        b = np.array([self.b[cls] for cls in classes], dtype=float)
        c = np.array([self.c[cls] for cls in classes], dtype=float)
        return a, b, c


def default_temperature_params() -> Dict[str, ExponentialBAParams]:
    """Default coefficients of the temperature-dependent rates.

    Growth and carrying capacity after Savage et al. (2004) and Meehan
    (2006), metabolism after Ehnes et al. (2011), attack rates and
    handling times after Rall et al. (2012), as compiled by Binzer
    et al. (2016).
    """
    return {
        'r': ExponentialBAParams.from_tuples(
            (np.exp(-15.68), 0.0, 0.0), (-0.25, -0.25, -0.25), (0.0, 0.0, 0.0), -0.84),
        'x': ExponentialBAParams.from_tuples(
            (0.0, np.exp(-16.54), np.exp(-16.54)), (-0.31, -0.31, -0.31), (0.0, 0.0, 0.0), -0.69),
        'ht': ExponentialBAParams.from_tuples(
            (0.0, np.exp(9.66), np.exp(9.66)), (-0.45, -0.45, -0.45), (0.47, 0.47, 0.47), 0.26),
        'ar': ExponentialBAParams.from_tuples(
            (0.0, np.exp(-13.1), np.exp(-13.1)), (0.25, 0.25, 0.25), (-0.8, -0.8, -0.8), -0.38),
        'K': ExponentialBAParams.from_tuples(
            (3.0, None, None), (0.28, 0.28, 0.28), (0.0, 0.0, 0.0), 0.71),
    }


def exp_ba_vector_rate(M: np.ndarray, metabolic_class: Sequence[str], T: float,
                       params: ExponentialBAParams, T0: float = DEFAULT_T0) -> np.ndarray:
    """One value per species, NaN where the class coefficient is undefined."""
    a, b, _ = params.vectors(metabolic_class)
    M = np.asarray(M, dtype=float)
    return a * M ** b * boltzmann_factor(params.E_a, T, T0)


def exp_ba_matrix_rate(A: np.ndarray, M: np.ndarray, metabolic_class: Sequence[str],
                       T: float, params: ExponentialBAParams,
                       T0: float = DEFAULT_T0) -> np.ndarray:
    """One value per trophic link, zero elsewhere."""
    a, b, c = params.vectors(metabolic_class)
    M = np.asarray(M, dtype=float)
    consumer = np.nan_to_num(a * M ** b)
    resource = M ** c
    rates = np.outer(consumer, resource) * boltzmann_factor(params.E_a, T, T0)
    return np.where(np.asarray(A) > 0, rates, 0.0)


def set_temperature(params: ModelParameters, T: float,
                    response: Optional[TemperatureResponse] = None,
                    rates: Optional[Dict[str, ExponentialBAParams]] = None) -> ModelParameters:
    """Set the temperature of a model and rescale its temperature-dependent rates.

    With :class:`NoTemperatureResponse` only the temperature is recorded.
    With :class:`ExponentialBA`, growth rates, metabolic rates, carrying
    capacities, attack rates and handling times are recomputed in place.

    Parameters
    ----------
    params : ModelParameters
        A complete model with a classic functional response
        and logistic producer growth.
    T : float
        Temperature in Kelvin.
    response : TemperatureResponse, optional
        Defaults to ``ExponentialBA()``.
    rates : dict, optional
        Rate name ('r', 'x', 'ar', 'ht', 'K') -> :class:`ExponentialBAParams`,
        completing :func:`default_temperature_params`.

    Returns
    -------
    ModelParameters
        The same, modified, parameters.

    Raises
    ------
    ValueError
        If the model grows on nutrients or does not use a classic response.
    """
    response = ExponentialBA() if response is None else response
    environment = Environment(float(T))
    if isinstance(response, NoTemperatureResponse):
        params.environment = environment
        params.temperature_response = response
        return params

    params.check_ready()
    if isinstance(params.producer_growth, NutrientIntake):
        raise ValueError(
            "Temperature dependence is not compatible with nutrient intake dynamics. "
            "Use logistic producer growth instead."
        )
    if not isinstance(params.functional_response, ClassicResponse):
        name = type(params.functional_response).__name__
        raise ValueError(
            f"Temperature dependence is not implemented for {name}. Use a ClassicResponse."
        )

    coefficients = default_temperature_params()
    coefficients.update(rates or {})
    network = params.network
    M, classes, A = network.M, network.metabolic_class, network.A
    T0 = response.T0

    params.biorates.r = np.nan_to_num(exp_ba_vector_rate(M, classes, environment.T, coefficients['r'], T0))
    params.biorates.x = np.nan_to_num(exp_ba_vector_rate(M, classes, environment.T, coefficients['x'], T0))
    params.functional_response.ar = exp_ba_matrix_rate(A, M, classes, environment.T, coefficients['ar'], T0)
    params.functional_response.ht = exp_ba_matrix_rate(A, M, classes, environment.T, coefficients['ht'], T0)
    if isinstance(params.producer_growth, LogisticGrowth):
        K = exp_ba_vector_rate(M, classes, environment.T, coefficients['K'], T0)
        params.producer_growth.K = np.where(network.producer_mask(), K, np.nan)

    params.environment = environment
    params.temperature_response = response
    logger.debug(f"Rates rescaled to T = {environment.T} K.")
    return params
