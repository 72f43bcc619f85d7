"""
Specialized derivative.

:func:`generate_dbdt` analyses the model structure once and returns a
derivative closure that only visits the terms that can be nonzero:
existing trophic links, producers, species with nonzero metabolism or
death rate, and existing non-trophic links.

Two styles are available:

- ``'raw'`` loops over precomputed link lists;
- ``'compact'`` evaluates the same link lists with vectorized numpy.

Both compute the same derivative as :func:`ecodyn.core.dynamics.dudt`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Tuple
import warnings

import numpy as np

from ecodyn.core.dynamics import DynamicsParams
from ecodyn.core.functional_response import (
    BioenergeticResponse,
    ClassicResponse,
    LinearResponse,
)
from ecodyn.core.model_parameters import ModelParameters
from ecodyn.core.network import MultiplexNetwork
from ecodyn.core.producer_growth import LogisticGrowth, NutrientIntake

STYLES = ('raw', 'compact')


@dataclass
class _Links:
    """Nonzero entries of a (source, target) matrix as index arrays."""
    src: np.ndarray
    tgt: np.ndarray

    @classmethod
    def of(cls, M: np.ndarray) -> "_Links":
        src, tgt = np.nonzero(M)
        return cls(src, tgt)

    def __len__(self) -> int:
        return len(self.src)


@dataclass
class _NtiLayer:
    links: _Links
    intensity: float
    f: Optional[Callable]


@dataclass
class DbdtData:
    """Structural data precomputed from the model parameters.

    Attributes
    ----------
    S : int
        Number of species.
    producers : np.ndarray
        Producer indices.
    metabolizers : np.ndarray
        Indices of species with nonzero metabolic rate.
    dying : np.ndarray
        Indices of species with nonzero death rate.
    trophic : _Links
        Trophic links (predator, prey).
    """
    S: int
    response: str
    growth: str
    producers: np.ndarray
    metabolizers: np.ndarray
    dying: np.ndarray
    trophic: _Links
    omega: np.ndarray
    e: np.ndarray
    x: np.ndarray
    y: np.ndarray
    d: np.ndarray
    r: np.ndarray
    M: np.ndarray
    h: float
    B0h: np.ndarray
    c: np.ndarray
    ar: np.ndarray
    ht: np.ndarray
    alpha: np.ndarray
    K: np.ndarray
    competition_a: _Links
    competition_a_values: np.ndarray
    turnover: np.ndarray
    supply: np.ndarray
    concentration: np.ndarray
    half_saturation: np.ndarray
    facilitation: Optional[_NtiLayer]
    competition: Optional[_NtiLayer]
    interference: Optional[_NtiLayer]
    refuge: Optional[_NtiLayer]
    extinct: dict


def _nti(network, name) -> Optional[_NtiLayer]:
    if not isinstance(network, MultiplexNetwork):
        return None
    layer = network.active_layer(name)
    if layer is None:
        return None
    return _NtiLayer(_Links.of(layer.A), float(layer.intensity), layer.f)


def prepare_data(params: ModelParameters) -> DbdtData:
    """Extract the structural data the specialized derivative relies on."""
    params.check_ready()
    network = params.network
    S = network.richness
    trophic = _Links.of(network.A)
    rates = params.biorates
    response = params.functional_response
    n_links = len(trophic)
    zeros_links = np.zeros(n_links)
    zeros_S = np.zeros(S)

    h, B0h, c, ar, ht, alpha = 1.0, zeros_S, zeros_S, zeros_links, zeros_links, zeros_S
    if isinstance(response, BioenergeticResponse):
        kind = 'bioenergetic'
        h, B0h, c = response.h, response.B0 ** response.h, response.c.copy()
    elif isinstance(response, ClassicResponse):
        kind = 'classic'
        h, c = response.h, response.c.copy()
        ar = response.ar[trophic.src, trophic.tgt]
        ht = response.ht[trophic.src, trophic.tgt]
    elif isinstance(response, LinearResponse):
        kind = 'linear'
        alpha = np.array(response.alpha, dtype=float)
    else:
        raise TypeError(f"Unknown functional response: {type(response).__name__}.")

    growth_model = params.producer_growth
    K = zeros_S
    comp_a = _Links(np.zeros(0, dtype=int), np.zeros(0, dtype=int))
    comp_a_values = np.zeros(0)
    turnover = supply = np.zeros(0)
    concentration = half_saturation = np.zeros((S, 0))
    if isinstance(growth_model, LogisticGrowth):
        growth = 'logistic'
        K = growth_model.K.copy()
        comp_a = _Links.of(growth_model.a)
        comp_a_values = growth_model.a[comp_a.src, comp_a.tgt]
    elif isinstance(growth_model, NutrientIntake):
        growth = 'nutrients'
        turnover = growth_model.turnover.copy()
        supply = growth_model.supply.copy()
        concentration = growth_model.concentration.copy()
        half_saturation = growth_model.half_saturation.copy()
    else:
        raise TypeError(f"Unknown producer growth: {type(growth_model).__name__}.")

    return DbdtData(
        S=S,
        response=kind,
        growth=growth,
        producers=network.producers(),
        metabolizers=np.flatnonzero(rates.x != 0),
        dying=np.flatnonzero(rates.d != 0),
        trophic=trophic,
        omega=response.omega[trophic.src, trophic.tgt],
        e=response.e[trophic.src, trophic.tgt],
        x=rates.x.copy(),
        y=rates.y.copy(),
        d=rates.d.copy(),
        r=rates.r.copy(),
        M=np.array(network.M, dtype=float),
        h=h,
        B0h=B0h,
        c=c,
        ar=ar,
        ht=ht,
        alpha=alpha,
        K=K,
        competition_a=comp_a,
        competition_a_values=comp_a_values,
        turnover=turnover,
        supply=supply,
        concentration=concentration,
        half_saturation=half_saturation,
        facilitation=_nti(network, 'facilitation'),
        competition=_nti(network, 'competition'),
        interference=_nti(network, 'interference'),
        refuge=_nti(network, 'refuge'),
        extinct={},
    )


# ============================================================================
# Raw style: explicit loops over link lists
# ============================================================================

def _dbdt_raw(du: np.ndarray, u: np.ndarray, data: DbdtData, t: float) -> np.ndarray:
    S = data.S
    B = u[:S]
    N = u[S:]
    links = data.trophic
    n_links = len(links)

    # Functional response on every trophic link.
    ar = data.ar.copy()
    if data.refuge is not None:
        delta = np.zeros(S)
        nti = data.refuge
        for k, j in zip(nti.links.src, nti.links.tgt):
            delta[j] += B[k]
        delta *= nti.intensity
        for l in range(n_links):
            ar[l] = nti.f(ar[l], delta[links.tgt[l]])

    numerator = np.zeros(n_links)
    denominator = np.zeros(S)
    for l in range(n_links):
        i, j = links.src[l], links.tgt[l]
        if data.response == 'bioenergetic':
            numerator[l] = data.omega[l] * abs(B[j]) ** data.h
            denominator[i] += numerator[l]
        elif data.response == 'classic':
            numerator[l] = data.omega[l] * ar[l] * abs(B[j]) ** data.h
            denominator[i] += numerator[l] * data.ht[l]
        else:
            numerator[l] = data.omega[l] * data.alpha[i] * B[j]

    if data.response == 'bioenergetic':
        for i in range(S):
            denominator[i] += data.B0h[i] + data.c[i] * B[i] * data.B0h[i]
    elif data.response == 'classic':
        interference = np.zeros(S)
        if data.interference is not None:
            nti = data.interference
            for k, i in zip(nti.links.src, nti.links.tgt):
                interference[i] += B[k]
            interference *= nti.intensity
        for i in range(S):
            denominator[i] = data.M[i] * (1 + data.c[i] * B[i] + interference[i] + denominator[i])

    eating = np.zeros(S)
    being_eaten = np.zeros(S)
    for l in range(n_links):
        i, j = links.src[l], links.tgt[l]
        if data.response == 'linear':
            F = numerator[l]
        else:
            F = numerator[l] / denominator[i]
        if data.response == 'bioenergetic':
            flux = data.x[i] * data.y[i] * B[i] * F
            eating[i] += flux
            being_eaten[j] += flux / data.e[l]
        else:
            eating[i] += B[i] * data.e[l] * F
            being_eaten[j] += B[i] * F

    # Producer growth.
    r = data.r
    if data.facilitation is not None:
        nti = data.facilitation
        delta = np.zeros(S)
        for k, i in zip(nti.links.src, nti.links.tgt):
            delta[i] += B[k]
        delta *= nti.intensity
        r = r.copy()
        for i in data.producers:
            r[i] = nti.f(r[i], delta[i])

    G = np.zeros(S)
    if data.growth == 'logistic':
        s = np.zeros(S)
        for l in range(len(data.competition_a)):
            s[data.competition_a.src[l]] += data.competition_a_values[l] * B[data.competition_a.tgt[l]]
        for i in data.producers:
            G[i] = r[i] * B[i] * (1 - s[i] / data.K[i])
    else:
        for i in data.producers:
            limits = []
            for l in range(len(N)):
                denom = N[l] + data.half_saturation[i, l]
                limits.append(N[l] / denom if denom != 0 else 0.0)
            G[i] = r[i] * B[i] * min(limits)

    net = G + eating
    for i in data.metabolizers:
        net[i] -= data.x[i] * B[i]

    if data.competition is not None:
        nti = data.competition
        delta = np.zeros(S)
        for k, i in zip(nti.links.src, nti.links.tgt):
            delta[i] += B[k]
        delta *= nti.intensity
        for i in data.producers:
            if net[i] > 0:
                net[i] = nti.f(net[i], delta[i])

    dB = net - being_eaten
    for i in data.dying:
        dB[i] -= data.d[i] * B[i]
    du[:S] = dB

    for l in range(len(N)):
        uptake = 0.0
        for i in data.producers:
            uptake += data.concentration[i, l] * G[i]
        du[S + l] = data.turnover[l] * (data.supply[l] - N[l]) - uptake

    for i in data.extinct:
        du[i] = 0.0
    return du


# ============================================================================
# Compact style: vectorized over link lists
# ============================================================================

def _incoming_sum(nti: _NtiLayer, B: np.ndarray, S: int) -> np.ndarray:
    return nti.intensity * np.bincount(nti.links.tgt, weights=B[nti.links.src], minlength=S)


def _dbdt_compact(du: np.ndarray, u: np.ndarray, data: DbdtData, t: float) -> np.ndarray:
    S = data.S
    B = u[:S]
    N = u[S:]
    src, tgt = data.trophic.src, data.trophic.tgt

    if data.response == 'bioenergetic':
        numerator = data.omega * np.abs(B[tgt]) ** data.h
        denominator = data.B0h + data.c * B * data.B0h + np.bincount(src, weights=numerator, minlength=S)
        F = numerator / denominator[src]
        flux = data.x[src] * data.y[src] * B[src] * F
        eating = np.bincount(src, weights=flux, minlength=S)
        being_eaten = np.bincount(tgt, weights=flux / data.e, minlength=S)
    else:
        if data.response == 'classic':
            ar = data.ar
            if data.refuge is not None:
                delta = _incoming_sum(data.refuge, B, S)
                f = data.refuge.f
                ar = np.array([f(a, dl) for a, dl in zip(ar, delta[tgt])])
            numerator = data.omega * ar * np.abs(B[tgt]) ** data.h
            interference = np.zeros(S)
            if data.interference is not None:
                interference = _incoming_sum(data.interference, B, S)
            handling = np.bincount(src, weights=numerator * data.ht, minlength=S)
            denominator = data.M * (1 + data.c * B + interference + handling)
            F = numerator / denominator[src]
        else:
            F = data.omega * data.alpha[src] * B[tgt]
        eating = np.bincount(src, weights=B[src] * data.e * F, minlength=S)
        being_eaten = np.bincount(tgt, weights=B[src] * F, minlength=S)

    r = data.r
    prod = data.producers
    if data.facilitation is not None:
        delta = _incoming_sum(data.facilitation, B, S)
        f = data.facilitation.f
        r = r.copy()
        r[prod] = [f(r[i], delta[i]) for i in prod]

    G = np.zeros(S)
    if data.growth == 'logistic':
        a = data.competition_a
        s = np.bincount(a.src, weights=data.competition_a_values * B[a.tgt], minlength=S)
        G[prod] = r[prod] * B[prod] * (1 - s[prod] / data.K[prod])
    elif len(N):
        denom = N[None, :] + data.half_saturation[prod]
        safe = np.where(denom != 0, denom, 1.0)
        limits = np.where(denom != 0, N[None, :] / safe, 0.0)
        G[prod] = r[prod] * B[prod] * limits.min(axis=1)

    net = G + eating
    met = data.metabolizers
    net[met] -= data.x[met] * B[met]

    if data.competition is not None:
        delta = _incoming_sum(data.competition, B, S)
        f = data.competition.f
        for i in prod:
            if net[i] > 0:
                net[i] = f(net[i], delta[i])

    dB = net - being_eaten
    dying = data.dying
    dB[dying] -= data.d[dying] * B[dying]
    du[:S] = dB

    if len(N):
        du[S:] = data.turnover * (data.supply - N) - data.concentration[prod].T @ G[prod]

    if data.extinct:
        du[list(data.extinct)] = 0.0
    return du


def generate_dbdt(params: ModelParameters, style: str = 'raw') -> Tuple[Callable, DbdtData]:
    """Generate a specialized derivative for the given model.

    Parameters
    ----------
    params : ModelParameters
        Complete model parameters.
    style : str
        'raw' or 'compact'.

    Returns
    -------
    (fn, data)
        ``fn(du, u, data, t)`` fills ``du`` with the derivative. ``data``
        holds the precomputed structure, and its ``extinct`` dict is shared
        with the simulation extinction callback.

    Notes
    -----
    The returned function captures the parameter values at generation time:
    changing the model afterwards requires generating it again.
    """
    if style not in STYLES:
        raise ValueError(f"Invalid style '{style}', expected one of {STYLES}.")
    data = prepare_data(params)
    if style == 'raw' and data.S > 200:
        warnings.warn(
            f"Looping over {data.S} species in pure Python may be slow, "
            "consider the 'compact' style."
        )
    fn = _dbdt_raw if style == 'raw' else _dbdt_compact
    return fn, data


def specialized_dudt(du: np.ndarray, u: np.ndarray, p: DynamicsParams, t: float,
                     style: str = 'compact') -> np.ndarray:
    """One-shot specialized derivative with the same signature as ``dudt``."""
    fn, data = generate_dbdt(p.params, style)
    data.extinct = p.extinct
    return fn(du, u, data, t)
