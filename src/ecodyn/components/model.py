"""
The community model.

:class:`Model` is the system assembled from the component blueprints
of :mod:`ecodyn.components`. Its inner value is a
:class:`~ecodyn.core.model_parameters.ModelParameters`, read and written
through the properties the components declare.

Examples
--------
>>> m = Model(Foodweb([[0, 0], [1, 0]]))
>>> m.richness
2
>>> m.has_component(Species)
True
"""

from __future__ import annotations

from typing import List

from ecodyn.core.model_parameters import ModelParameters
from ecodyn.framework import System

# Components that every simulated model needs on top of complete parameters.
STRUCTURAL_COMPONENTS = ('Species', 'Foodweb', 'BodyMass', 'MetabolicClass')


class Model(System):
    """Community model built from component blueprints."""

    value_type = ModelParameters

    def missing(self) -> List[str]:
        """Names of what is still needed before the model can be simulated."""
        present = {comp.name for comp in self.components()}
        missing = [name for name in STRUCTURAL_COMPONENTS if name not in present]
        missing += [name for name in self._value.missing() if name not in missing]
        return missing

    def check_ready(self) -> None:
        """Raise ValueError if the model cannot be simulated yet."""
        missing = self.missing()
        if missing:
            raise ValueError(f"The model is incomplete, missing: {', '.join(missing)}.")

    def parameters(self) -> ModelParameters:
        """Copy of the model parameters."""
        return self.copy().value


@Model.declare_property('topology')
def get_topology(raw):
    return raw.topology


@Model.declare_property('environment')
def get_environment(raw):
    return raw.environment
