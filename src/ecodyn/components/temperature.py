"""
Temperature component: the environment temperature, in Kelvin.
"""

from __future__ import annotations

from ecodyn.components.model import Model
from ecodyn.core.biorates import Environment
from ecodyn.core.constants import DEFAULT_TEMPERATURE
from ecodyn.framework import Blueprint, BlueprintArgumentError, Component, checkfails


class Flat(Blueprint):
    """Constant temperature."""

    def __init__(self, T: float = DEFAULT_TEMPERATURE):
        try:
            self.T = float(T)
        except (TypeError, ValueError):
            raise BlueprintArgumentError(f"Temperature should be a number, received {T!r}.") from None

    def early_check(self):
        if not self.T >= 0:
            checkfails(f"Temperature should be non-negative (Kelvin), received {self.T}.")

    def expand(self, raw):
        raw.environment = Environment(self.T)

    def summary(self) -> str:
        return f"T = {self.T} K"


Temperature = Component(
    'Temperature',
    Flat,
    display=lambda raw: f"Temperature: {raw.environment.T} K",
    doc="Environment temperature.",
)


def _set_temperature(raw, value):
    try:
        T = float(value)
    except (TypeError, ValueError):
        checkfails(f"expected a number, received {value!r}.")
    if not T >= 0:
        checkfails(f"temperature should be non-negative (Kelvin), received {T}.")
    raw.environment.T = T


Model.declare_property(
    'temperature', 'T',
    getter=lambda raw: raw.environment.T,
    setter=_set_temperature,
    depends=[Temperature],
)
