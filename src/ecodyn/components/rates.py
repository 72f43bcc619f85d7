"""
Species rates components.

=====================  =====  ==========  ===============
Component              Rate   Species     Property
=====================  =====  ==========  ===============
GrowthRate             r      producers   growth_rates
Metabolism             x      consumers   metabolism
MaximumConsumption     y      consumers   maximum_consumption
Mortality              d      all         mortality
=====================  =====  ==========  ===============

Each one comes with three blueprints:

- ``Raw``: one value per species, zero outside the species concerned;
- ``Flat``: the same value for every species concerned;
- ``Allometric``: ``a * M^b`` with coefficients depending on the
  metabolic class, overridable per class as ``(a, b)`` tuples.
"""

from __future__ import annotations

from typing import Callable, Dict, Tuple

import numpy as np

from ecodyn.components.body_mass import BodyMass
from ecodyn.components.checks import (
    check_nonnegative_values,
    check_template,
    nonnegative,
)
from ecodyn.components.foodweb import Foodweb
from ecodyn.components.metabolic_class import MetabolicClass
from ecodyn.components.model import Model
from ecodyn.components.species import Species
from ecodyn.core.aliasing import METABOLIC_CLASS_ALIASES, AliasingError, AliasingDict
from ecodyn.core.biorates import (
    AllometricParams,
    BioRates,
    allometric_rate,
    default_growth_params,
    default_max_consumption_params,
    default_metabolic_params,
    default_mortality_params,
)
from ecodyn.framework import (
    Blueprint,
    BlueprintArgumentError,
    Component,
    NodesView,
    checkfails,
)


def biorates(raw) -> BioRates:
    """The rates container of the model, created empty on first use."""
    if raw.biorates is None:
        raw.biorates = BioRates(r=None, x=None, y=None, d=None)
    return raw.biorates


def template_mask(raw, template: str) -> np.ndarray:
    prod = raw.network.producer_mask()
    if template == 'producers':
        return prod
    if template == 'consumers':
        return ~prod
    return np.ones(raw.richness, dtype=bool)


class RateBlueprint(Blueprint):
    """Common base of rate blueprints.

    Class attributes
    ----------------
    rate : str
        Rate field in :class:`~ecodyn.core.biorates.BioRates`.
    template : str
        'producers', 'consumers' or 'all'.
    """

    rate: str = ''
    template: str = 'all'
    default_params: Callable[[], AllometricParams] = None

    def values(self, raw) -> np.ndarray:
        raise NotImplementedError

    def expand(self, raw):
        setattr(biorates(raw), self.rate, self.values(raw))


class RawRate(RateBlueprint):

    def __init__(self, values):
        try:
            self.values_ = np.array(values, dtype=float)
        except (TypeError, ValueError):
            raise BlueprintArgumentError(f"Rate '{self.rate}' should be numeric, received {values!r}.") from None

    def early_check(self):
        if self.values_.ndim != 1:
            checkfails(f"Rate '{self.rate}' should be a vector, received shape {self.values_.shape}.")
        check_nonnegative_values(self.values_, self.rate)

    def late_check(self, raw):
        S = raw.richness
        if self.values_.shape != (S,):
            checkfails(f"Rate '{self.rate}' should have {S} values, received {len(self.values_)}.")
        check_template(
            self.values_, template_mask(raw, self.template), raw.species,
            self.rate, self.template.rstrip('s'),
        )

    def values(self, raw):
        return self.values_.copy()

    def summary(self) -> str:
        return f"{self.rate} = {self.values_}"


class FlatRate(RateBlueprint):

    def __init__(self, value):
        try:
            self.value = float(value)
        except (TypeError, ValueError):
            raise BlueprintArgumentError(f"Flat rate '{self.rate}' should be a number, received {value!r}.") from None

    def early_check(self):
        if not self.value >= 0:
            checkfails(f"Rate '{self.rate}' should be non-negative, received {self.value}.")

    def values(self, raw):
        return np.where(template_mask(raw, self.template), self.value, 0.0)

    def summary(self) -> str:
        return f"{self.rate} = {self.value} for {self.template}"


class AllometricRate(RateBlueprint):
    """``a * M^b``, with per-class coefficients given as ``class=(a, b)``."""

    expands_from = (BodyMass, MetabolicClass)

    def __init__(self, **coefficients: Tuple[float, float]):
        try:
            self.coefficients = dict(AliasingDict(METABOLIC_CLASS_ALIASES, coefficients))
        except AliasingError as e:
            raise BlueprintArgumentError(e.message) from None
        for cls, ab in self.coefficients.items():
            if not (isinstance(ab, tuple) and len(ab) == 2):
                raise BlueprintArgumentError(
                    f"Allometric coefficients for '{cls}' should be an (a, b) tuple, received {ab!r}."
                )

    def params(self) -> AllometricParams:
        params = type(self).default_params()
        a: Dict[str, float] = dict(params.a)
        b: Dict[str, float] = dict(params.b)
        for cls, (ca, cb) in self.coefficients.items():
            a[cls], b[cls] = float(ca), float(cb)
        return AllometricParams(a, b)

    def early_check(self):
        for cls, (a, _) in self.coefficients.items():
            if a < 0:
                checkfails(f"Allometric constant 'a' for '{cls}' should be non-negative, received {a}.")

    def values(self, raw):
        network = raw.network
        rates = allometric_rate(network.M, network.metabolic_class, self.params())
        return np.where(template_mask(raw, self.template), rates, 0.0)

    def summary(self) -> str:
        if not self.coefficients:
            return f"allometric {self.rate} (default coefficients)"
        return f"allometric {self.rate} {self.coefficients}"


def _rate_blueprints(rate: str, template: str, params: Callable[[], AllometricParams]):
    attrs = {'rate': rate, 'template': template, 'default_params': staticmethod(params)}
    return (
        type('Raw', (RawRate,), dict(attrs, __module__=__name__)),
        type('Flat', (FlatRate,), dict(attrs, __module__=__name__)),
        type('Allometric', (AllometricRate,), dict(attrs, __module__=__name__)),
    )


def _rate_component(name: str, rate: str, template: str, params, requires) -> Component:
    raw_bp, flat_bp, allometric_bp = _rate_blueprints(rate, template, params)

    def dispatch(arg=None, **coefficients):
        if arg is None:
            return allometric_bp(**coefficients)
        if coefficients:
            raise BlueprintArgumentError(f"Cannot give both values and allometric coefficients to {name}.")
        if isinstance(arg, str):
            if arg != 'allometric':
                raise BlueprintArgumentError(f"Invalid {name} specification: '{arg}'.")
            return allometric_bp()
        if np.ndim(arg) == 0:
            return flat_bp(arg)
        return raw_bp(arg)

    def display(raw):
        values = getattr(raw.biorates, rate)
        return f"{name}: [{', '.join(f'{v:.3g}' for v in values[:5])}{', ...' if len(values) > 5 else ''}]"

    return Component(
        name, raw_bp, flat_bp, allometric_bp,
        requires=requires, dispatch=dispatch, display=display,
        doc=f"Species rate '{rate}' ({template}).",
    )


GrowthRate = _rate_component('GrowthRate', 'r', 'producers', default_growth_params, [Foodweb])
Metabolism = _rate_component('Metabolism', 'x', 'consumers', default_metabolic_params, [Foodweb])
MaximumConsumption = _rate_component(
    'MaximumConsumption', 'y', 'consumers', default_max_consumption_params, [Foodweb]
)
Mortality = _rate_component('Mortality', 'd', 'all', default_mortality_params, [Species])


# ============================================================================
# Properties
# ============================================================================

def _rate_property(component: Component, name: str, *aliases: str, rate: str, template: str):
    def getter(raw):
        return NodesView(
            name,
            getattr(raw.biorates, rate),
            raw.species,
            check=nonnegative(name),
            template=template_mask(raw, template),
        )

    Model.declare_property(name, *aliases, getter=getter, depends=[component])


_rate_property(GrowthRate, 'growth_rates', 'r', rate='r', template='producers')
_rate_property(Metabolism, 'metabolism', 'x', 'metabolic_rates', rate='x', template='consumers')
_rate_property(MaximumConsumption, 'maximum_consumption', 'y', rate='y', template='consumers')
_rate_property(Mortality, 'mortality', 'd', 'death_rates', rate='d', template='all')
