"""
Model parameters aggregate.

:class:`ModelParameters` gathers everything the dynamics need:
the network, biological rates, environment, functional response,
producer growth model and temperature response. It is either
assembled piece by piece by model components, or built at once
with :func:`model_parameters`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from ecodyn.core.biorates import (
    BioRates,
    Environment,
    NoTemperatureResponse,
    TemperatureResponse,
)
from ecodyn.core.functional_response import (
    BioenergeticResponse,
    FunctionalResponse,
)
from ecodyn.core.network import FoodWeb, MultiplexNetwork, Network
from ecodyn.core.producer_growth import LogisticGrowth, NutrientIntake, ProducerGrowth
from ecodyn.core.topology import Topology


@dataclass
class ModelParameters:
    """All parameters of a community model.

    Attributes
    ----------
    network : FoodWeb or MultiplexNetwork, optional
        Trophic (and non-trophic) structure.
    biorates : BioRates, optional
        Species growth, metabolic, consumption and death rates.
    environment : Environment
        Temperature.
    functional_response : optional
        One of the functional responses.
    producer_growth : optional
        LogisticGrowth or NutrientIntake.
    temperature_response : TemperatureResponse
        How rates scale with temperature.
    topology : Topology
        Node compartments and edge types of the model.
    """
    network: Optional[Network] = None
    biorates: Optional[BioRates] = None
    environment: Environment = field(default_factory=Environment)
    functional_response: Optional[FunctionalResponse] = None
    producer_growth: Optional[ProducerGrowth] = None
    temperature_response: TemperatureResponse = field(default_factory=NoTemperatureResponse)
    topology: Topology = field(default_factory=Topology)

    @property
    def richness(self) -> int:
        return 0 if self.network is None else self.network.richness

    @property
    def species(self) -> List[str]:
        return [] if self.network is None else list(self.network.species)

    @property
    def n_nutrients(self) -> int:
        if isinstance(self.producer_growth, NutrientIntake):
            return self.producer_growth.n_nutrients
        return 0

    @property
    def is_multiplex(self) -> bool:
        return isinstance(self.network, MultiplexNetwork)

    def upgrade_to_multiplex(self) -> MultiplexNetwork:
        """Switch the network to a multiplex one, keeping the trophic layer."""
        if not isinstance(self.network, MultiplexNetwork):
            self.network = MultiplexNetwork.from_foodweb(self.network)
        return self.network

    def missing(self) -> List[str]:
        """Names of the parameters still missing before a simulation can run."""
        missing = []
        for name in ('network', 'biorates', 'functional_response', 'producer_growth'):
            if getattr(self, name) is None:
                missing.append(name)
        if self.biorates is not None:
            for name in ('r', 'x', 'y', 'd'):
                if getattr(self.biorates, name) is None:
                    missing.append(f"biorates.{name}")
        return missing

    def check_ready(self) -> None:
        """Raise ValueError if the parameters are incomplete."""
        missing = self.missing()
        if missing:
            raise ValueError(
                f"Model parameters are incomplete, missing: {', '.join(missing)}."
            )

    def __repr__(self) -> str:
        lines = ["ModelParameters:"]
        lines.append(f"  network: {self.network!r}")
        lines.append(f"  environment: {self.environment!r}")
        lines.append(f"  biorates: {self.biorates!r}")
        lines.append(f"  functional_response: {self.functional_response!r}")
        lines.append(f"  producer_growth: {self.producer_growth!r}")
        return "\n".join(lines)


def model_parameters(
    network: Network,
    biorates: Optional[BioRates] = None,
    environment: Optional[Environment] = None,
    functional_response: Optional[FunctionalResponse] = None,
    producer_growth: Optional[ProducerGrowth] = None,
    temperature_response: Optional[TemperatureResponse] = None,
) -> ModelParameters:
    """Build complete model parameters, with defaults for what is not given.

    Parameters
    ----------
    network : FoodWeb or MultiplexNetwork
        Network structure.
    biorates : BioRates, optional
        Default: allometric rates with zero mortality.
    environment : Environment, optional
        Default temperature 293.15 K.
    functional_response : optional
        Default: bioenergetic response.
    producer_growth : optional
        Default: logistic growth with unit carrying capacity.
    temperature_response : optional
        Default: no temperature dependence.

    Returns
    -------
    ModelParameters

    Examples
    --------
    >>> fw = FoodWeb.from_matrix([[0, 0], [1, 0]])
    >>> p = model_parameters(fw, biorates=BioRates.default(fw.M, fw.metabolic_class, d=0))
    >>> p.richness
    2
    """
    environment = environment or Environment()
    temperature_response = temperature_response or NoTemperatureResponse()
    if biorates is None:
        biorates = BioRates.default(
            network.M, network.metabolic_class, temperature_response, environment
        )
    if functional_response is None:
        functional_response = BioenergeticResponse.default(network)
    if producer_growth is None:
        producer_growth = LogisticGrowth.default(network)

    topology = Topology()
    topology.add_node_compartment('species', network.species)
    topology.add_edge_type('trophic', between=('species', 'species'))
    topology.add_edges('trophic', np.asarray(network.A))
    if isinstance(producer_growth, NutrientIntake):
        topology.add_node_compartment('nutrients', producer_growth.names)

    return ModelParameters(
        network=network,
        biorates=biorates,
        environment=environment,
        functional_response=functional_response,
        producer_growth=producer_growth,
        temperature_response=temperature_response,
        topology=topology,
    )
