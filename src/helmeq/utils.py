"""Contains utility functions for the package, as well as the custom exception classes
:class:`InvalidArgumentError` and :class:`EquilibriumModellingError`."""

from __future__ import annotations

import logging
from typing import Sequence

import numpy as np

__all__ = [
    "InvalidArgumentError",
    "EquilibriumModellingError",
    "common_length",
    "check_bulk_composition",
]

logger = logging.getLogger(__name__)


class InvalidArgumentError(ValueError):
    """Custom exception class raised when arguments passed to the equilibrium framework
    are inconsistent.

    Such arguments include for example:

    - per-phase concentration arrays of different length,
    - a number of phase fractions different from the number of phases,
    - a number of specification equations other than two,
    - a vector of independent variables with the wrong size.

    """


class EquilibriumModellingError(Exception):
    """Custom exception class to alert the user when the modelling helpers are used in a
    setting they do not support.

    Such usage includes for example:

    - asking for a vapor-liquid split with K-values which do not admit one,
    - evaluating a cubic EoS where no physical root exists.

    """


def common_length(arrays: Sequence[np.ndarray], name: str = "arrays") -> int:
    """Returns the common, non-zero length of a sequence of 1D arrays.

    Parameters:
        arrays: A non-empty sequence of 1D arrays.
        name: Name used in error messages.

    Raises:
        InvalidArgumentError: If the sequence is empty, if the arrays have different
            lengths, or if the common length is zero.

    Returns:
        The length shared by all arrays.

    """
    if len(arrays) == 0:
        raise InvalidArgumentError(f"No {name} given.")
    sizes = sorted(set(np.asarray(a).size for a in arrays))
    if len(sizes) != 1:
        raise InvalidArgumentError(
            f"All {name} must be of the same size, got sizes {sizes}."
        )
    if sizes[0] == 0:
        raise InvalidArgumentError(f"The {name} must not be empty.")
    return sizes[0]


def check_bulk_composition(z: np.ndarray, tol: float = 1e-10) -> None:
    """Logs a warning if the bulk fractions do not sum up to 1 within ``tol``.

    The material balance assumes normalized bulk fractions, but rejecting them is left
    to the caller.

    """
    total = float(np.sum(z))
    if abs(total - 1.0) > tol:
        logger.warning(f"Bulk composition sums up to {total}, expected 1.")
