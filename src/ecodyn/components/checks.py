"""
Input checks shared by component blueprints.

Helpers here raise :class:`~ecodyn.framework.BlueprintCheckFailure`
so that failures surface as early or late check failures,
or as write errors when used to guard property writes.
"""

from __future__ import annotations

from typing import Callable, List

import numpy as np

from ecodyn.framework import checkfails


def as_array(value, name: str) -> np.ndarray:
    try:
        return np.asarray(value, dtype=float)
    except (TypeError, ValueError):
        checkfails(f"'{name}' should be numeric, received {value!r}.")


def species_vector(value, S: int, name: str) -> np.ndarray:
    """Broadcast a scalar to all species, or check a vector size."""
    arr = as_array(value, name)
    if arr.ndim == 0:
        return np.full(S, float(arr))
    if arr.shape != (S,):
        checkfails(f"'{name}' should be a scalar or a vector of size {S}, received shape {arr.shape}.")
    return arr.copy()


def square_matrix(value, S: int, name: str) -> np.ndarray:
    arr = as_array(value, name)
    if arr.shape != (S, S):
        checkfails(f"'{name}' should be a matrix of shape {(S, S)}, received shape {arr.shape}.")
    return arr


def check_nonnegative_values(arr: np.ndarray, name: str) -> None:
    if np.any(arr < 0):
        checkfails(f"'{name}' should be non-negative, received {np.asarray(arr).tolist()}.")


def check_positive_values(arr: np.ndarray, name: str) -> None:
    if np.any(arr <= 0):
        checkfails(f"'{name}' should be positive, received {np.asarray(arr).tolist()}.")


def nonnegative(name: str) -> Callable[[float], None]:
    """Value check for views: reject negative numbers."""

    def check(value: float) -> None:
        if not value >= 0:
            checkfails(f"'{name}' should be non-negative, received {value}.")

    return check


def positive(name: str) -> Callable[[float], None]:

    def check(value: float) -> None:
        if not value > 0:
            checkfails(f"'{name}' should be positive, received {value}.")

    return check


def proportion(name: str) -> Callable[[float], None]:
    """Value check for views: numbers in [0, 1]."""

    def check(value: float) -> None:
        if not 0 <= value <= 1:
            checkfails(f"'{name}' should lie in [0, 1], received {value}.")

    return check


def check_template(arr: np.ndarray, template: np.ndarray, labels: List[str],
                   name: str, what: str) -> None:
    """Values outside the template must be zero."""
    outside = np.flatnonzero((arr != 0) & ~template)
    if len(outside):
        i = outside[0]
        checkfails(
            f"'{name}' should be zero for species '{labels[i]}', "
            f"which is not a {what} (received {arr[i]})."
        )
