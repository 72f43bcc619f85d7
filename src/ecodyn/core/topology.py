"""
Typed multi-partite topology.

A :class:`Topology` holds named node compartments (e.g. 'species',
'nutrients') and named edge types (e.g. 'trophic', 'competition'),
each edge type connecting a source compartment to a target compartment.
The topology only grows: there are no removal operations.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from scipy.sparse import csr_matrix, lil_matrix


class TopologyError(ValueError):
    """Raised on invalid topology construction or queries."""


class Topology:
    """Named node compartments and typed edges between them.

    Node labels are global: the same label cannot appear in two
    compartments, so that edges can be given as label pairs.

    Examples
    --------
    >>> top = Topology()
    >>> top.add_node_compartment('species', ['a', 'b'])
    >>> top.add_edge_type('trophic', between=('species', 'species'))
    >>> top.add_edges('trophic', [('b', 'a')])
    >>> top.n_edges('trophic')
    1
    """

    def __init__(self):
        self._compartments: Dict[str, List[str]] = {}
        self._labels: Dict[str, Tuple[str, int]] = {}
        self._edge_types: Dict[str, Tuple[str, str]] = {}
        self._edges: Dict[str, lil_matrix] = {}

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    def add_node_compartment(self, name: str, labels: Sequence) -> None:
        """Add a new compartment of nodes with the given labels."""
        name = str(name)
        if name in self._compartments:
            raise TopologyError(f"Node compartment '{name}' already exists.")
        if name in self._edge_types:
            raise TopologyError(
                f"Node compartment '{name}' would clash with the edge type of the same name."
            )
        labels = [str(label) for label in labels]
        seen = set()
        for label in labels:
            if label in seen:
                raise TopologyError(
                    f"Duplicated label '{label}' in node compartment '{name}'."
                )
            seen.add(label)
            if label in self._labels:
                other, _ = self._labels[label]
                raise TopologyError(
                    f"Label '{label}' in node compartment '{name}' "
                    f"already refers to a node in compartment '{other}'."
                )
        self._compartments[name] = labels
        for i, label in enumerate(labels):
            self._labels[label] = (name, i)

    def has_node_compartment(self, name: str) -> bool:
        return str(name) in self._compartments

    def node_compartments(self) -> List[str]:
        return list(self._compartments)

    def n_nodes(self, compartment: Optional[str] = None) -> int:
        if compartment is None:
            return len(self._labels)
        return len(self._get_compartment(compartment))

    def node_labels(self, compartment: str) -> List[str]:
        return list(self._get_compartment(compartment))

    def node_index(self, compartment: str, label) -> int:
        """Index of ``label`` within its compartment."""
        self._get_compartment(compartment)
        found = self._labels.get(str(label))
        if found is None or found[0] != compartment:
            raise TopologyError(
                f"Invalid node label in compartment '{compartment}': '{label}'."
            )
        return found[1]

    def _get_compartment(self, name: str) -> List[str]:
        try:
            return self._compartments[str(name)]
        except KeyError:
            raise TopologyError(f"Invalid node compartment: '{name}'.") from None

    # ------------------------------------------------------------------
    # Edges
    # ------------------------------------------------------------------

    def add_edge_type(self, name: str, between: Tuple[str, str]) -> None:
        """Declare a new edge type from compartment ``between[0]`` to ``between[1]``."""
        name = str(name)
        if name in self._edge_types:
            raise TopologyError(f"Edge type '{name}' already exists.")
        if name in self._compartments:
            raise TopologyError(
                f"Edge type '{name}' would clash with the node compartment of the same name."
            )
        try:
            source, target = between
        except (TypeError, ValueError):
            raise TopologyError(
                f"Edge type '{name}' must be declared between two compartments, "
                f"received: {between!r}."
            ) from None
        n_source = len(self._get_compartment(source))
        n_target = len(self._get_compartment(target))
        self._edge_types[name] = (str(source), str(target))
        self._edges[name] = lil_matrix((n_source, n_target), dtype=bool)

    def has_edge_type(self, name: str) -> bool:
        return str(name) in self._edge_types

    def edge_types(self) -> List[str]:
        return list(self._edge_types)

    def edge_compartments(self, edge_type: str) -> Tuple[str, str]:
        return self._edge_types[self._check_edge_type(edge_type)]

    def add_edges(self, edge_type: str, adjacency) -> None:
        """Add edges of the given type.

        Parameters
        ----------
        edge_type : str
            A declared edge type.
        adjacency : array-like or iterable of pairs
            Either a boolean matrix of shape (n_source, n_target),
            dense (array or nested lists) or scipy.sparse, or an
            iterable of ``(source, target)`` tuples of labels or indices.

        Raises
        ------
        TopologyError
            If endpoints are invalid or an edge already exists.
            In that case no edge is added.
        """
        edge_type = self._check_edge_type(edge_type)
        source, target = self._edge_types[edge_type]
        shape = (len(self._compartments[source]), len(self._compartments[target]))
        pairs = self._edge_pairs(edge_type, adjacency, shape)
        current = self._edges[edge_type]
        seen = set()
        for i, j in pairs:
            if current[i, j] or (i, j) in seen:
                src = self._compartments[source][i]
                tgt = self._compartments[target][j]
                raise TopologyError(
                    f"There is already an edge of type '{edge_type}' "
                    f"between '{src}' and '{tgt}'."
                )
            seen.add((i, j))
        for i, j in seen:
            current[i, j] = True

    def _edge_pairs(self, edge_type, adjacency, shape) -> List[Tuple[int, int]]:
        source, target = self._edge_types[edge_type]
        if hasattr(adjacency, 'tocoo'):
            adjacency = adjacency.toarray()
        elif isinstance(adjacency, list) and adjacency and not any(isinstance(p, tuple) for p in adjacency):
            # Nested lists are matrices, pairs are tuples.
            adjacency = np.asarray(adjacency)
        if isinstance(adjacency, np.ndarray):
            matrix = np.asarray(adjacency)
            if matrix.shape != shape:
                raise TopologyError(
                    f"Invalid adjacency matrix for edge type '{edge_type}': "
                    f"expected shape {shape}, received {matrix.shape}."
                )
            rows, cols = np.nonzero(matrix)
            return list(zip(rows.tolist(), cols.tolist()))
        pairs = []
        for pair in adjacency:
            try:
                src, tgt = pair
            except (TypeError, ValueError):
                raise TopologyError(
                    f"Edges of type '{edge_type}' must be (source, target) pairs, "
                    f"received: {pair!r}."
                ) from None
            pairs.append((self._endpoint(source, src), self._endpoint(target, tgt)))
        return pairs

    def _endpoint(self, compartment: str, ref) -> int:
        if isinstance(ref, (int, np.integer)) and not isinstance(ref, bool):
            n = len(self._compartments[compartment])
            if not 0 <= ref < n:
                raise TopologyError(
                    f"Invalid node index in compartment '{compartment}': {ref} "
                    f"(there are {n} nodes)."
                )
            return int(ref)
        return self.node_index(compartment, ref)

    def _check_edge_type(self, name: str) -> str:
        name = str(name)
        if name not in self._edge_types:
            raise TopologyError(f"Invalid edge type: '{name}'.")
        return name

    def edges(self, edge_type: str) -> csr_matrix:
        """Adjacency of the given edge type, as a (copied) CSR matrix."""
        return csr_matrix(self._edges[self._check_edge_type(edge_type)])

    def n_edges(self, edge_type: Optional[str] = None) -> int:
        if edge_type is None:
            return sum(m.nnz for m in self._edges.values())
        return self._edges[self._check_edge_type(edge_type)].nnz

    def outgoing(self, edge_type: str, label) -> List[str]:
        """Labels of the targets of edges leaving ``label``."""
        edge_type = self._check_edge_type(edge_type)
        source, target = self._edge_types[edge_type]
        i = self.node_index(source, label)
        cols = self._edges[edge_type].rows[i]
        return [self._compartments[target][j] for j in sorted(cols)]

    def incoming(self, edge_type: str, label) -> List[str]:
        """Labels of the sources of edges reaching ``label``."""
        edge_type = self._check_edge_type(edge_type)
        source, target = self._edge_types[edge_type]
        j = self.node_index(target, label)
        column = self.edges(edge_type)[:, j].nonzero()[0]
        return [self._compartments[source][i] for i in sorted(column)]

    def __repr__(self) -> str:
        lines = ["Topology:"]
        for name, labels in self._compartments.items():
            lines.append(f"  nodes '{name}': {len(labels)}")
        for name, (source, target) in self._edge_types.items():
            lines.append(
                f"  edges '{name}' ({source} -> {target}): {self._edges[name].nnz}"
            )
        return "\n".join(lines)

