"""Module containing functionality to provide initial guesses for the equilibrium
problem.

The initial guess is computed for a vapor-liquid system at given pressure and
temperature:

1. K-values are estimated using the Wilson correlation.
2. The vapor fraction is obtained from the Rachford-Rice equation.
3. K-values are updated with fugacity coefficients of the phases
   (successive substitution), followed again by step 2.

Note:
    This is not a flash. A fixed number of substitutions is performed and no
    convergence is claimed. The result is meant to be polished by a Newton-type method
    using :class:`~helmeq.equilibrium.phase_equilibrium.GeneralizedPhaseEquilibrium`.

"""

from __future__ import annotations

import logging
import time
from typing import Sequence

import numpy as np
from scipy.optimize import brentq

from .._core import PhysicalState
from ..materials import FluidComponent
from ..peng_robinson.eos import PengRobinsonResidual
from ..utils import EquilibriumModellingError
from .phase_equilibrium import UnpackedVariables

__all__ = [
    "wilson_K_values",
    "rachford_rice_residual",
    "solve_rachford_rice",
    "pT_initial_guess",
]

logger = logging.getLogger(__name__)


def wilson_K_values(
    components: Sequence[FluidComponent], T: float, p: float
) -> np.ndarray:
    """Estimates K-values (vapor over liquid fractions) with the Wilson correlation

    :math:`K_i = \\frac{p_{c,i}}{p}\\exp(5.373(1 + \\omega_i)(1 - \\frac{T_{c,i}}{T}))`.

    """
    return np.array(
        [
            comp.critical_pressure
            / p
            * np.exp(
                5.373
                * (1 + comp.acentric_factor)
                * (1 - comp.critical_temperature / T)
            )
            for comp in components
        ]
    )


def rachford_rice_residual(beta: float, z: np.ndarray, K: np.ndarray) -> float:
    """:math:`\\sum_i \\frac{z_i (K_i - 1)}{1 + \\beta (K_i - 1)}` for a vapor
    fraction ``beta``."""
    return float(np.sum(z * (K - 1) / (1 + beta * (K - 1))))


def solve_rachford_rice(z: np.ndarray, K: np.ndarray) -> float:
    """Solves the Rachford-Rice equation for the vapor fraction.

    The root is bracketed between the two poles enclosing the interval ``[0, 1]``,
    hence the result is not necessarily in ``[0, 1]`` (negative flash).

    Parameters:
        z: ``shape=(num_components,)``

            Vector of feed fractions.
        K: ``shape=(num_components,)``

            K-values per component.

    Raises:
        EquilibriumModellingError: If the K-values do not admit a vapor-liquid split,
            i.e. they are not both larger and smaller than 1.

    Returns:
        The vapor fraction.

    """
    z = np.asarray(z, dtype=np.float64)
    K = np.asarray(K, dtype=np.float64)
    K_max = K.max()
    K_min = K.min()
    if not (K_max > 1.0 and K_min < 1.0):
        raise EquilibriumModellingError(
            f"K-values in [{K_min}, {K_max}] do not admit a vapor-liquid split."
        )

    lower = 1.0 / (1.0 - K_max)
    upper = 1.0 / (1.0 - K_min)
    eps = 1e-10 * (upper - lower)
    lower += eps
    upper -= eps

    f_lower = rachford_rice_residual(lower, z, K)
    f_upper = rachford_rice_residual(upper, z, K)
    if f_lower * f_upper > 0:
        raise EquilibriumModellingError(
            f"Rachford-Rice equation not bracketed in [{lower}, {upper}]."
        )

    return float(brentq(rachford_rice_residual, lower, upper, args=(z, K)))


def _split(z: np.ndarray, K: np.ndarray) -> tuple[float, np.ndarray, np.ndarray]:
    """Vapor fraction and normalized liquid and vapor compositions for given K."""
    beta = solve_rachford_rice(z, K)
    x = z / (1 + beta * (K - 1))
    y = K * x
    return beta, x / x.sum(), y / y.sum()


def pT_initial_guess(
    model: PengRobinsonResidual,
    components: Sequence[FluidComponent],
    z: np.ndarray,
    T: float,
    p: float,
    num_iter: int = 50,
) -> UnpackedVariables:
    """Computes an initial guess for a vapor-liquid system at given pressure and
    temperature.

    Parameters:
        model: A cubic EoS providing molar densities at given pressure and
            temperature, and fugacity coefficients.
        components: Components modelled by ``model``, in the same order.
        z: ``shape=(num_components,)``

            Vector of feed fractions.
        T: Temperature.
        p: Pressure.
        num_iter: ``default=50``

            Number of successive substitutions of K-values.

    Raises:
        EquilibriumModellingError: If the K-values do not admit a vapor-liquid split in
            any iteration.

    Returns:
        Independent variables with the liquid as phase 0 and the vapor as phase 1.

    """
    start = time.time()
    z = np.asarray(z, dtype=np.float64)
    K = wilson_K_values(components, T, p)

    for n in range(num_iter):
        _, x, y = _split(z, K)
        rho_l = model.molar_density(T, p, x, PhysicalState.liquid)
        rho_g = model.molar_density(T, p, y, PhysicalState.gas)
        lnphi_l = model.ln_fugacity_coefficients(T, rho_l * x)
        lnphi_g = model.ln_fugacity_coefficients(T, rho_g * y)

        lnK = lnphi_l - lnphi_g
        change = float(np.max(np.abs(lnK - np.log(K))))
        K = np.exp(lnK)
        logger.debug(f"Successive substitution {n + 1}: max change in ln K {change}")

    beta, x, y = _split(z, K)
    rho_l = model.molar_density(T, p, x, PhysicalState.liquid)
    rho_g = model.molar_density(T, p, y, PhysicalState.gas)

    logger.debug(
        f"Initial guess at T={T}, p={p} with vapor fraction {beta} computed"
        + " (elapsed time: %.5f (s))." % (time.time() - start)
    )
    return UnpackedVariables(
        T=float(T),
        rhovecs=[rho_l * x, rho_g * y],
        betas=np.array([1.0 - beta, beta]),
    )
