"""
Non-trophic interaction layers.

Adding any of :data:`CompetitionLayer`, :data:`FacilitationLayer`,
:data:`InterferenceLayer` or :data:`RefugeLayer` turns the model food web
into a multiplex network. Other layers are then present but empty.

Links are given explicitly with ``A``, or drawn at random among the
links allowed by the food web with a number of links ``L`` or
a connectance ``C``::

    m += CompetitionLayer(C=0.5, intensity=0.2, seed=12)

Layer parameters accept aliases, e.g. ``I`` for ``intensity``
or ``F`` for ``functional_form``.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from ecodyn.components.body_mass import BodyMass
from ecodyn.components.checks import nonnegative
from ecodyn.components.foodweb import Foodweb
from ecodyn.components.functional_responses import BioenergeticResponse, LinearResponse
from ecodyn.components.metabolic_class import MetabolicClass
from ecodyn.components.model import Model
from ecodyn.components.producer_growth import NutrientIntake
from ecodyn.core.aliasing import AliasingError
from ecodyn.core.network import Layer
from ecodyn.core.nontrophic import (
    MULTIPLEX_DEFAULTS,
    NONTROPHIC_INTERACTIONS,
    check_functional_form,
    check_links_within,
    draw_links,
    layer_parameters,
    potential_links,
)
from ecodyn.framework import (
    Blueprint,
    BlueprintArgumentError,
    BlueprintCheckFailure,
    Component,
    EdgesView,
    checkfails,
)


class LayerBlueprint(Blueprint):
    """Links and parameters of one non-trophic layer.

    Parameters
    ----------
    A : array-like, optional
        Adjacency matrix, ``A[k, i]`` means k affects i.
    **parameters
        ``C`` (connectance) or ``L`` (number of links) to draw links,
        ``intensity``, ``functional_form``, ``symmetry``, and ``seed``
        for the random generator.
    """

    interaction: str = ''

    def __init__(self, A=None, seed: Optional[int] = None, **parameters):
        try:
            params = layer_parameters(**parameters)
        except AliasingError as e:
            raise BlueprintArgumentError(e.message) from None
        if 'adjacency_matrix' in params:
            if A is not None:
                raise BlueprintArgumentError(f"The {self.interaction} links are given twice.")
            A = params['adjacency_matrix']
        defaults = MULTIPLEX_DEFAULTS[self.interaction]
        self.A = None if A is None else np.asarray(A)
        self.C = params.get('connectance')
        self.L = params.get('number_of_links')
        self.intensity = float(params.get('intensity', defaults['intensity']))
        self.functional_form = params.get('functional_form', defaults['functional_form'])
        self.symmetry = bool(params.get('symmetry', defaults['symmetry']))
        self.seed = seed

    # ------------------------------------------------------------------

    def early_check(self):
        given = [name for name in ('A', 'C', 'L') if getattr(self, name) is not None]
        if len(given) > 1:
            checkfails(
                f"The {self.interaction} links should be given with at most one of "
                f"'A', 'C' or 'L', received {', '.join(given)}."
            )
        if not self.intensity >= 0:
            checkfails(f"The {self.interaction} intensity should be non-negative, received {self.intensity}.")
        if self.A is not None:
            if self.A.ndim != 2 or self.A.shape[0] != self.A.shape[1]:
                checkfails(f"The {self.interaction} adjacency matrix should be square, received shape {self.A.shape}.")
            if not np.isin(self.A, (0, 1)).all():
                checkfails(f"The {self.interaction} adjacency matrix should only contain 0s and 1s.")
            if self.symmetry and not np.array_equal(self.A, self.A.T):
                checkfails(f"The {self.interaction} adjacency matrix should be symmetric.")
        if self.interaction == 'interference':
            if self.functional_form is not None:
                checkfails("Interference has no functional form: it enters the functional response directly.")
        else:
            try:
                check_functional_form(self.functional_form, self.interaction)
            except (TypeError, ValueError) as e:
                checkfails(str(e))

    def late_check(self, raw):
        S = raw.richness
        potential = potential_links(self.interaction, raw.network.A)
        if self.A is not None:
            if self.A.shape != (S, S):
                checkfails(
                    f"Invalid size for the {self.interaction} adjacency matrix: "
                    f"expected {(S, S)}, received {self.A.shape}."
                )
            try:
                check_links_within(self.A, potential, self.interaction)
            except ValueError as e:
                checkfails(str(e))
            return
        if self.C is None and self.L is None:
            return
        Lmax = int(potential.sum())
        L = self.L if self.L is not None else int(round(self.C * Lmax))
        if self.C is not None and not 0 <= self.C <= 1:
            checkfails(f"Connectance should lie in [0, 1], received {self.C}.")
        if L < 0 or L > Lmax:
            checkfails(
                f"Cannot draw {L} {self.interaction} links: "
                f"only {Lmax} are allowed by the food web."
            )
        if self.symmetry and self.L is not None and L % 2:
            checkfails(f"The number of {self.interaction} links should be even (symmetric), received {L}.")

    def links(self, raw) -> np.ndarray:
        S = raw.richness
        if self.A is not None:
            return self.A.astype(bool)
        if self.C is None and self.L is None:
            return np.zeros((S, S), dtype=bool)
        potential = potential_links(self.interaction, raw.network.A)
        rng = np.random.default_rng(self.seed)
        return draw_links(potential, L=self.L, C=self.C, symmetric=self.symmetry, rng=rng)

    def expand(self, raw):
        network = raw.upgrade_to_multiplex()
        A = self.links(raw)
        network.layers[self.interaction] = Layer(A, self.intensity, self.functional_form)
        raw.topology.add_edge_type(self.interaction, between=('species', 'species'))
        raw.topology.add_edges(self.interaction, A)

    def summary(self) -> str:
        if self.A is not None:
            links = f"{int(np.count_nonzero(self.A))} links"
        elif self.L is not None:
            links = f"L = {self.L}"
        elif self.C is not None:
            links = f"C = {self.C}"
        else:
            links = "no links"
        return f"{self.interaction}: {links}, intensity = {self.intensity}"


def _layer_component(interaction: str) -> Component:
    bp = type('Raw', (LayerBlueprint,), {'interaction': interaction, '__module__': __name__})
    name = f"{interaction.capitalize()}Layer"

    def display(raw):
        layer = raw.network.layers[interaction]
        return f"{name}: {layer.n_links} links, intensity = {layer.intensity}"

    return Component(
        name,
        bp,
        requires=[Foodweb, BodyMass, MetabolicClass],
        display=display,
        doc=f"Non-trophic {interaction} layer.",
    )


LAYERS = {interaction: _layer_component(interaction) for interaction in NONTROPHIC_INTERACTIONS}

CompetitionLayer = LAYERS['competition']
FacilitationLayer = LAYERS['facilitation']
InterferenceLayer = LAYERS['interference']
RefugeLayer = LAYERS['refuge']

for _layer in LAYERS.values():
    for _other, _reason in (
        (BioenergeticResponse, "Non-trophic layers require the classic functional response."),
        (LinearResponse, "Non-trophic layers require the classic functional response."),
        (NutrientIntake, "Non-trophic layers are not supported with nutrient intake."),
    ):
        _layer.conflicts[_other] = _reason
        _other.conflicts[_layer] = _reason


# ============================================================================
# Properties
# ============================================================================

def _layer_properties(interaction: str, component: Component) -> None:

    def links(raw):
        return EdgesView(
            f"{interaction}_links", raw.network.layers[interaction].A, raw.species, writable=False
        )

    def get_intensity(raw):
        return raw.network.layers[interaction].intensity

    def set_intensity(raw, value):
        try:
            value = float(value)
        except (TypeError, ValueError):
            checkfails(f"expected a number, received {value!r}.")
        nonnegative(f"{interaction}_intensity")(value)
        raw.network.layers[interaction].intensity = value

    Model.declare_property(f"{interaction}_links", getter=links, depends=[component])
    Model.declare_property(
        f"n_{interaction}_links",
        getter=lambda raw: raw.network.layers[interaction].n_links,
        depends=[component],
    )
    Model.declare_property(
        f"{interaction}_intensity", getter=get_intensity, setter=set_intensity, depends=[component]
    )
    if interaction == 'interference':
        return

    def get_form(raw):
        return raw.network.layers[interaction].f

    def set_form(raw, f):
        try:
            check_functional_form(f, interaction)
        except (TypeError, ValueError) as e:
            raise BlueprintCheckFailure(str(e)) from e
        raw.network.layers[interaction].f = f

    Model.declare_property(
        f"{interaction}_functional_form", getter=get_form, setter=set_form, depends=[component]
    )


for _name, _component in LAYERS.items():
    _layer_properties(_name, _component)
