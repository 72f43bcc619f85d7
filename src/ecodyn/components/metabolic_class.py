"""
MetabolicClass component.

Producers are always of class 'producer'. Consumers are either
'invertebrate' or 'ectotherm vertebrate', which selects their
allometric rate coefficients.
"""

from __future__ import annotations

from typing import Sequence

from ecodyn.components.foodweb import Foodweb
from ecodyn.components.model import Model
from ecodyn.core.aliasing import METABOLIC_CLASS_ALIASES, AliasingError
from ecodyn.core.constants import PRODUCER
from ecodyn.core.network import clean_metabolic_class
from ecodyn.framework import Blueprint, BlueprintArgumentError, Component, checkfails


class Raw(Blueprint):
    """One metabolic class per species, any alias accepted."""

    def __init__(self, classes: Sequence[str]):
        if isinstance(classes, str):
            raise BlueprintArgumentError(
                f"Expected one metabolic class per species, received a single string: '{classes}'. "
                "Use MetabolicClass.Favor to give all consumers the same class."
            )
        self.classes = [str(c) for c in classes]

    def early_check(self):
        for c in self.classes:
            try:
                METABOLIC_CLASS_ALIASES.standardize(c)
            except AliasingError as e:
                checkfails(e.message)

    def late_check(self, raw):
        try:
            clean_metabolic_class(self.classes, raw.network.A)
        except ValueError as e:
            checkfails(str(e))

    def expand(self, raw):
        raw.network.metabolic_class = clean_metabolic_class(self.classes, raw.network.A)

    def summary(self) -> str:
        return f"{self.classes}"


class Favor(Blueprint):
    """All consumers share the same metabolic class."""

    def __init__(self, favourite: str = 'invertebrate'):
        self.favourite = str(favourite)

    def early_check(self):
        try:
            std = METABOLIC_CLASS_ALIASES.standardize(self.favourite)
        except AliasingError as e:
            checkfails(e.message)
        if std == PRODUCER:
            checkfails("Consumers cannot be of class 'producer'.")

    def expand(self, raw):
        std = METABOLIC_CLASS_ALIASES.standardize(self.favourite)
        prod = raw.network.producer_mask()
        raw.network.metabolic_class = [PRODUCER if p else std for p in prod]

    def summary(self) -> str:
        return f"all consumers are {METABOLIC_CLASS_ALIASES.standardize(self.favourite)}"


def _dispatch(arg='invertebrate'):
    if isinstance(arg, str):
        return MetabolicClass.Favor(arg)
    return MetabolicClass.Raw(arg)


MetabolicClass = Component(
    'MetabolicClass',
    Raw,
    Favor,
    requires=[(Foodweb, "Producers and consumers are known from the food web.")],
    dispatch=_dispatch,
    display=lambda raw: f"MetabolicClass: [{', '.join(raw.network.metabolic_class[:5])}{', ...' if raw.richness > 5 else ''}]",
    doc="Metabolic class of every species.",
)


Model.declare_property(
    'metabolic_classes', 'metabolic_class',
    getter=lambda raw: list(raw.network.metabolic_class),
    depends=[MetabolicClass],
)
