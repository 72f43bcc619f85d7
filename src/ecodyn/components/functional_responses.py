"""
Functional response components.

Exactly one of :data:`BioenergeticResponse`, :data:`ClassicResponse`
or :data:`LinearResponse` can be part of a model. Parameters left
unspecified get the usual defaults: homogeneous consumer preferences,
efficiencies depending on whether the prey is a producer, allometric
attack rates and handling times for the classic response.
"""

from __future__ import annotations

import numpy as np

from ecodyn.components.body_mass import BodyMass
from ecodyn.components.checks import nonnegative, proportion
from ecodyn.components.foodweb import Foodweb
from ecodyn.components.model import Model
from ecodyn.core import functional_response as fr
from ecodyn.core.constants import (
    DEFAULT_HALF_SATURATION,
    DEFAULT_HILL_EXPONENT,
    DEFAULT_INTERFERENCE,
)
from ecodyn.framework import (
    Blueprint,
    Component,
    EdgesView,
    NodesView,
    PropertyError,
    checkfails,
    declare_conflicts,
)


class ResponseBlueprint(Blueprint):
    """Common checks of functional response blueprints.

    Subclasses implement :meth:`build`, which may raise ValueError
    on inconsistent parameters.
    """

    def build(self, raw):
        raise NotImplementedError

    def early_check(self):
        h = getattr(self, 'h', None)
        if h is not None and not h > 0:
            checkfails(f"Hill exponent should be positive, received {h}.")
        for name in ('e', 'w'):
            value = getattr(self, name, None)
            if value is not None and np.any((np.asarray(value) < 0) | (np.asarray(value) > 1)):
                checkfails(f"'{name}' should lie in [0, 1].")

    def late_check(self, raw):
        try:
            self.build(raw)
        except ValueError as e:
            checkfails(str(e))

    def expand(self, raw):
        raw.functional_response = self.build(raw)


class Bioenergetic(ResponseBlueprint):
    """Bioenergetic response parameters.

    Parameters
    ----------
    h : float
        Hill exponent.
    B0 : float or array-like
        Half-saturation densities.
    c : float or array-like
        Intraspecific interference.
    w : array-like, optional
        Consumer preferences, homogeneous by default.
    e : float or array-like, optional
        Assimilation efficiencies, 0.45 on producers and 0.85 on consumers by default.
    """

    def __init__(self, h=DEFAULT_HILL_EXPONENT, B0=DEFAULT_HALF_SATURATION,
                 c=DEFAULT_INTERFERENCE, w=None, e=None):
        self.h = float(h)
        self.B0 = B0
        self.c = c
        self.w = w
        self.e = e

    def early_check(self):
        super().early_check()
        if np.any(np.asarray(self.B0, dtype=float) < 0):
            checkfails("Half-saturation densities 'B0' should be non-negative.")

    def build(self, raw):
        return fr.BioenergeticResponse.default(
            raw.network, h=self.h, B0=self.B0, c=self.c, omega=self.w, e=self.e
        )

    def summary(self) -> str:
        return f"bioenergetic, h = {self.h}"


class Classic(ResponseBlueprint):
    """Classic response parameters: attack rates ``ar`` and handling times ``ht``."""

    def __init__(self, h=DEFAULT_HILL_EXPONENT, c=DEFAULT_INTERFERENCE,
                 w=None, ar=None, ht=None, e=None):
        self.h = float(h)
        self.c = c
        self.w = w
        self.ar = ar
        self.ht = ht
        self.e = e

    def early_check(self):
        super().early_check()
        for name in ('ar', 'ht'):
            value = getattr(self, name)
            if value is not None and np.any(np.asarray(value, dtype=float) < 0):
                checkfails(f"'{name}' should be non-negative.")

    def build(self, raw):
        return fr.ClassicResponse.default(
            raw.network, h=self.h, c=self.c, omega=self.w, ar=self.ar, ht=self.ht, e=self.e
        )

    def summary(self) -> str:
        return f"classic, h = {self.h}"


class Linear(ResponseBlueprint):
    """Linear response with consumption rates ``alpha``."""

    def __init__(self, alpha=1.0, w=None, e=None):
        self.alpha = alpha
        self.w = w
        self.e = e

    def early_check(self):
        super().early_check()
        if np.any(np.asarray(self.alpha, dtype=float) < 0):
            checkfails("Consumption rates 'alpha' should be non-negative.")

    def build(self, raw):
        return fr.LinearResponse.default(raw.network, alpha=self.alpha, omega=self.w, e=self.e)

    def summary(self) -> str:
        return "linear"


BioenergeticResponse = Component(
    'BioenergeticResponse',
    Bioenergetic,
    requires=[Foodweb],
    display=lambda raw: "BioenergeticResponse",
    doc="Bioenergetic functional response.",
)

ClassicResponse = Component(
    'ClassicResponse',
    Classic,
    requires=[Foodweb, (BodyMass, "Body masses enter the classic response denominator.")],
    display=lambda raw: "ClassicResponse",
    doc="Classic functional response.",
)

LinearResponse = Component(
    'LinearResponse',
    Linear,
    requires=[Foodweb],
    display=lambda raw: "LinearResponse",
    doc="Linear functional response.",
)

declare_conflicts(
    BioenergeticResponse, ClassicResponse, LinearResponse,
    reason="A model has a single functional response.",
)

RESPONSES = (BioenergeticResponse, ClassicResponse, LinearResponse)


# ============================================================================
# Properties
# ============================================================================

def _response(raw, name: str, *types):
    response = raw.functional_response
    if response is None or (types and not isinstance(response, types)):
        kinds = " or ".join(t.__name__ for t in types) if types else "A functional response"
        raise PropertyError(name, f"{kinds} is required to read this property.")
    return response


def _links(raw):
    return np.asarray(raw.network.A) > 0


Model.declare_property(
    'functional_response',
    getter=lambda raw: raw.functional_response,
)

Model.declare_property(
    'hill_exponent', 'h',
    getter=lambda raw: _response(raw, 'hill_exponent', fr.BioenergeticResponse, fr.ClassicResponse).h,
)

Model.declare_property(
    'efficiency', 'e',
    getter=lambda raw: EdgesView(
        'efficiency', _response(raw, 'efficiency').e, raw.species,
        check=proportion('efficiency'), template=_links(raw),
    ),
)

Model.declare_property(
    'consumers_preferences', 'w',
    getter=lambda raw: EdgesView(
        'consumers_preferences', _response(raw, 'consumers_preferences').omega, raw.species,
        check=proportion('consumers_preferences'), template=_links(raw),
    ),
)

Model.declare_property(
    'intraspecific_interference', 'c',
    getter=lambda raw: NodesView(
        'intraspecific_interference',
        _response(raw, 'intraspecific_interference', fr.BioenergeticResponse, fr.ClassicResponse).c,
        raw.species, check=nonnegative('intraspecific_interference'),
    ),
)

Model.declare_property(
    'half_saturation_density', 'B0',
    getter=lambda raw: NodesView(
        'half_saturation_density', raw.functional_response.B0, raw.species,
        check=nonnegative('half_saturation_density'),
    ),
    depends=[BioenergeticResponse],
)

Model.declare_property(
    'attack_rates', 'ar',
    getter=lambda raw: EdgesView(
        'attack_rates', raw.functional_response.ar, raw.species,
        check=nonnegative('attack_rates'), template=_links(raw),
    ),
    depends=[ClassicResponse],
)

Model.declare_property(
    'handling_times', 'ht',
    getter=lambda raw: EdgesView(
        'handling_times', raw.functional_response.ht, raw.species,
        check=nonnegative('handling_times'), template=_links(raw),
    ),
    depends=[ClassicResponse],
)

Model.declare_property(
    'consumption_rates', 'alpha',
    getter=lambda raw: NodesView(
        'consumption_rates', raw.functional_response.alpha, raw.species,
        check=nonnegative('consumption_rates'), template=~raw.network.producer_mask(),
    ),
    depends=[LinearResponse],
)
