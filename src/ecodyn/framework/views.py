"""
Checked views into system data.

Vector and matrix properties are not handed out as raw arrays:
a view reads through to the live data and validates every write
against the invariant of the component that produced the data.
"""

from __future__ import annotations

from typing import Callable, Dict, List, Optional, Sequence

import numpy as np

from ecodyn.framework.exceptions import BlueprintCheckFailure, WriteError


class _CheckedView:
    """Common machinery for nodes and edges views."""

    def __init__(
        self,
        name: str,
        data: np.ndarray,
        labels: Sequence[str],
        check: Optional[Callable[[float], None]] = None,
        template: Optional[np.ndarray] = None,
        writable: bool = True,
    ):
        self._name = name
        self._data = data
        self._labels = list(labels)
        self._index: Dict[str, int] = {label: i for i, label in enumerate(self._labels)}
        self._check = check
        self._template = template
        self._writable = writable

    def _resolve(self, ref) -> int:
        if isinstance(ref, (int, np.integer)) and not isinstance(ref, bool):
            n = len(self._labels)
            i = int(ref)
            if i < 0:
                i += n
            if not 0 <= i < n:
                raise IndexError(
                    f"Invalid index for '{self._name}': {ref} (there are {n} entries)."
                )
            return i
        try:
            return self._index[str(ref)]
        except KeyError:
            raise KeyError(f"Invalid label for '{self._name}': '{ref}'.") from None

    def _check_value(self, value, index) -> float:
        try:
            value = float(value)
        except (TypeError, ValueError):
            raise WriteError(self._name, f"expected a number, received {value!r}.", index) from None
        if self._check is not None:
            try:
                self._check(value)
            except BlueprintCheckFailure as e:
                raise WriteError(self._name, e.message, index) from e
        return value

    def _ensure_writable(self):
        if not self._writable:
            raise WriteError(self._name, "this view is read-only.")

    def copy(self) -> np.ndarray:
        return self._data.copy()

    def __array__(self, dtype=None, copy=None):
        return np.array(self._data, dtype=dtype, copy=True)

    def __len__(self) -> int:
        return len(self._data)

    def __iter__(self):
        return iter(self._data.copy())

    def __eq__(self, other):
        return np.asarray(self) == np.asarray(other)

    __hash__ = None

    @property
    def shape(self):
        return self._data.shape


class NodesView(_CheckedView):
    """View into a vector indexed by nodes (e.g. species).

    Parameters
    ----------
    name : str
        Property name, for error messages.
    data : np.ndarray
        The live vector. Writes go straight into it once checked.
    labels : sequence of str
        Node labels, usable as indices.
    check : callable, optional
        ``check(value)`` raising ``BlueprintCheckFailure`` on invalid values.
    template : np.ndarray of bool, optional
        Nodes allowed to hold a value. Writing elsewhere fails.
    writable : bool
        Whether the view accepts writes at all.

    Examples
    --------
    >>> m.growth_rates['s1'] = 2.0
    >>> m.growth_rates[2] = -1
    Traceback (most recent call last):
    WriteError: ...
    """

    def __getitem__(self, key):
        if isinstance(key, (slice, list, np.ndarray)):
            return self._data[key].copy()
        return self._data[self._resolve(key)].item()

    def __setitem__(self, key, value):
        self._ensure_writable()
        i = self._resolve(key)
        if self._template is not None and not self._template[i]:
            raise WriteError(
                self._name,
                f"node '{self._labels[i]}' is not a valid target for this value.",
                i,
            )
        self._data[i] = self._check_value(value, i)

    def __repr__(self) -> str:
        return f"{self._name}: {np.array2string(self._data, precision=6)}"


class EdgesView(_CheckedView):
    """View into a square matrix indexed by pairs of nodes.

    Same parameters as :class:`NodesView`, with a boolean matrix template
    (e.g. the trophic links, for the consumption efficiency).
    """

    def __getitem__(self, key):
        if not isinstance(key, tuple) or len(key) != 2:
            return self._data[key].copy()
        i, j = key
        if isinstance(i, (slice, list, np.ndarray)) or isinstance(j, (slice, list, np.ndarray)):
            return self._data[i, j].copy()
        return self._data[self._resolve(i), self._resolve(j)].item()

    def __setitem__(self, key, value):
        self._ensure_writable()
        if not isinstance(key, tuple) or len(key) != 2:
            raise WriteError(self._name, "edges are written one at a time, as m[i, j] = value.")
        i, j = self._resolve(key[0]), self._resolve(key[1])
        if self._template is not None and not self._template[i, j]:
            raise WriteError(
                self._name,
                f"there is no edge from '{self._labels[i]}' to '{self._labels[j]}'.",
                (i, j),
            )
        self._data[i, j] = self._check_value(value, (i, j))

    def nonzero_entries(self) -> List[tuple]:
        """List of ``(source, target, value)`` for all nonzero entries."""
        rows, cols = np.nonzero(self._data)
        return [
            (self._labels[i], self._labels[j], self._data[i, j].item())
            for i, j in zip(rows, cols)
        ]

    def __repr__(self) -> str:
        return f"{self._name}:\n{np.array2string(self._data, precision=6)}"
