"""Module containing functionality for testing the implementation of derivatives of a
vector-valued function ``f(x)`` with a single array argument."""

from __future__ import annotations

import logging
from typing import Callable, Optional

import numpy as np

from .._core import FD_STEP_DEFAULT

__all__ = [
    "central_difference_jacobian",
    "assert_jacobian_close",
    "get_EOC_taylor",
    "assert_order_at_least",
]

logger = logging.getLogger(__name__)


def central_difference_jacobian(
    func: Callable[[np.ndarray], np.ndarray | float],
    x0: np.ndarray,
    dx: Optional[np.ndarray] = None,
) -> np.ndarray:
    """Approximates the Jacobian of ``func`` at ``x0`` with central differences.

    Parameters:
        func: A function of a 1D array, returning an array of shape ``(m,)`` or a
            scalar.
        x0: ``shape=(n,)``

            Point of evaluation.
        dx: ``default=None``

            Step sizes per component of ``x0``. Zero entries and a missing argument
            default to :data:`~helmeq._core.FD_STEP_DEFAULT`.

    Returns:
        The Jacobian with shape ``(m, n)``, or ``(n,)`` if ``func`` is scalar.

    """
    x0 = np.array(x0, dtype=np.float64)
    n = x0.size
    dx = np.zeros(n) if dx is None else np.array(dx, dtype=np.float64)
    dx[dx == 0.0] = FD_STEP_DEFAULT

    columns = []
    for i in range(n):
        xp = x0.copy()
        xp[i] += dx[i]
        xm = x0.copy()
        xm[i] -= dx[i]
        columns.append(
            (np.array(func(xp), dtype=np.float64) - np.array(func(xm))) / (2 * dx[i])
        )

    return np.stack(columns, axis=-1)


def assert_jacobian_close(
    J: np.ndarray, J_approx: np.ndarray, rtol: float = 1e-5, err_msg: str = ""
) -> None:
    """Asserts that two Jacobians agree row-wise relative to the largest entry of the
    row, i.e. :math:`|J_{ij} - \\tilde{J}_{ij}| \\leq rtol \\max_k |J_{ik}|`.

    Rows of the equilibrium system are of very different magnitude (fugacities vs.
    pressures), hence a global tolerance is not meaningful.

    """
    J = np.atleast_2d(J)
    J_approx = np.atleast_2d(J_approx)
    assert J.shape == J_approx.shape, f"Shapes differ: {J.shape} {J_approx.shape}"

    scale = np.abs(J).max(axis=1, keepdims=True)
    scale[scale == 0.0] = 1.0
    error = np.abs(J - J_approx) / scale
    worst = np.unravel_index(np.argmax(error), error.shape)
    assert np.all(error <= rtol), (
        f"Jacobians differ with relative error {error[worst]} at {worst}: {err_msg}"
    )


def get_EOC_taylor(
    func: Callable[[np.ndarray], np.ndarray | float],
    dfunc: Callable[[np.ndarray], np.ndarray],
    x0: np.ndarray,
    d: np.ndarray,
    h: np.ndarray,
    tol: float = 1e-14,
) -> np.ndarray:
    """Estimate the order of convergence (EOC) of the derivative
    computation of ``func`` at point ``x0`` along direction ``d`` using Taylor
    expansion.

    The EOC is estimated by computing the error between the exact function value and
    the first-order Taylor approximation for a sequence of step sizes. For a correct
    derivative, the order is 2.

    Parameters:
        func: Function for which the derivative is computed.
        dfunc: Function computing the derivative of ``func``, with shape ``(m, n)``
            or ``(n,)`` for scalar functions.
        x0: Point at which the derivative is computed.
        d: Direction along which the derivative is computed.
        h: Array of decreasing step sizes to use for the Taylor expansion.
        tol: Tolerance below which errors are considered zero
            (i.e., exact approximation).

    Returns:
        Estimated EOC values for each consecutive pair of step sizes.

    """
    # Norming direction for sensible scaling.
    d = d / np.linalg.norm(d)

    errorlist = []
    for h_ in h:
        approx = func(x0) + h_ * (dfunc(x0) @ d)
        exact = func(x0 + h_ * d)
        error = float(np.linalg.norm(exact - approx))
        # If errors are small, their ratios can falsely indicate order loss due to
        # floating point arithmetics.
        if error < tol:
            error = 0.0
        errorlist.append(error)

    errors = np.array(errorlist)
    h_ratios = h[1:] / h[:-1]

    error_ratios = np.full_like(errors[1:], np.nan)
    mask = errors[:-1] > tol
    error_ratios[mask] = errors[1:][mask] / errors[:-1][mask]

    orders = np.full_like(error_ratios, np.inf)
    finite_mask = np.isfinite(error_ratios) & (error_ratios > tol)
    orders[finite_mask] = np.log(error_ratios[finite_mask]) / np.log(
        h_ratios[finite_mask]
    )

    logger.debug(f"Taylor errors {errors} with estimated orders {orders}")
    return orders


def assert_order_at_least(
    orders: np.ndarray,
    expected_order: float,
    tol: float = 0.1,
    err_msg: str = "",
    asymptotic: int | None = None,
) -> None:
    """Asserts that the average of the estimated orders are at least the expected order
    minus a tolerance.

    If orders are negative or nan, an error is raised.
    Order values of + infinity are treated as an exact approximation and treated as the
    expected order.

    Parameters:
        orders: List of order values, error ratios divided by refinement ratios.
        expected_order: The value of the expected (average) order value.
        tol: Tolerance for expected order for numerical reasons.
        asymptotic: If given as an integer ``n``, uses only the last ``n`` values for
            order checks, for derivatives which are polluted by round-off errors for
            small step sizes or by higher-order terms for large ones.

    """
    orders = np.array(orders, dtype=np.float64)
    if asymptotic is not None:
        orders = orders[-asymptotic:]

    if np.any(orders < 0):
        raise ValueError(f"Negative orders, derivative INCORRECT: {err_msg}")
    if np.any(np.isnan(orders)):
        raise ValueError(f"Estimated orders contain NAN values: {err_msg}")

    # If order all inf, we have an exact approximation.
    if not np.all(np.isinf(orders)):
        orders[np.isinf(orders)] = expected_order
        order_avg = np.mean(orders)
        assert order_avg >= expected_order - tol, (
            f"Expected all orders to be at least {expected_order - tol}, "
            f"but got {order_avg}: {err_msg}"
        )
