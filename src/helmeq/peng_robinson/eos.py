"""Module containing the Peng-Robinson residual Helmholtz energy model, implementing
the interface :class:`~helmeq.base.ResidualHelmholtzModel` with numeric functions
generated from :class:`~helmeq.peng_robinson.eos_symbolic.PengRobinsonSymbolic`.

Additionally, it solves the cubic polynomial in terms of the compressibility factor

.. math::

    Z^3 + (B - 1) Z^2 + (A - 2B - 3B^2) Z + (B^3 + B^2 - AB) = 0,

with the dimensionless cohesion :math:`A = \\frac{a p}{R^2 T^2}` and covolume
:math:`B = \\frac{b p}{R T}`, to obtain the molar density of a phase at given
pressure and temperature.

"""

from __future__ import annotations

import logging
import time
from typing import Optional, Sequence

import numpy as np

from .._core import R_IDEAL_MOL, PhysicalState
from ..base import ResidualHelmholtzModel
from ..materials import FluidComponent
from ..utils import EquilibriumModellingError
from .eos_symbolic import PengRobinsonSymbolic

__all__ = [
    "PengRobinsonResidual",
]

logger = logging.getLogger(__name__)


class PengRobinsonResidual(ResidualHelmholtzModel):
    """Residual Helmholtz energy model based on the Peng-Robinson EoS.

    Expressions are derived and lambdified at instantiation, which takes a moment for
    larger number of components.

    Parameters:
        components: A sequence of ``num_comp`` components.
        bip_matrix: ``default=None``

            See :class:`~helmeq.peng_robinson.eos_symbolic.PengRobinsonSymbolic`.

    """

    def __init__(
        self,
        components: Sequence[FluidComponent],
        bip_matrix: Optional[np.ndarray] = None,
    ) -> None:
        start = time.time()

        self.components: tuple[FluidComponent, ...] = tuple(components)
        """Components passed at instantiation."""

        self.symbolic: PengRobinsonSymbolic = PengRobinsonSymbolic(
            components, bip_matrix
        )
        """Symbolic representation of the model."""

        self.funcs = self.symbolic.compile()
        """Numeric functions generated from :attr:`symbolic`.
        See :meth:`~helmeq.peng_robinson.eos_symbolic.PengRobinsonSymbolic.compile`."""

        logger.debug(
            f"{self.num_components}-component Peng-Robinson model compiled"
            + " (elapsed time: %.5f (s))." % (time.time() - start)
        )

    @property
    def num_components(self) -> int:
        """Number of components passed at instantiation."""
        return len(self.components)

    def _check_size(self, vec: np.ndarray) -> np.ndarray:
        vec = np.asarray(vec, dtype=np.float64)
        if vec.shape != (self.num_components,):
            raise ValueError(
                f"Expecting an array of shape ({self.num_components},),"
                + f" got {vec.shape}."
            )
        return vec

    def get_R(self, molefrac: np.ndarray) -> float:
        return R_IDEAL_MOL

    def psir_fgrad_hessian(
        self, T: float, rhovec: np.ndarray
    ) -> tuple[float, np.ndarray, np.ndarray]:
        rhovec = self._check_size(rhovec)
        return (
            float(self.funcs["Psir"](T, rhovec)),
            np.array(self.funcs["grad_Psir"](T, rhovec), dtype=np.float64),
            np.array(self.funcs["hess_Psir"](T, rhovec), dtype=np.float64),
        )

    def get_Ar10(self, T: float, rho: float, molefrac: np.ndarray) -> float:
        molefrac = self._check_size(molefrac)
        return float(self.funcs["Ar10"](T, rho * molefrac))

    def d2psir_dT_drhoi(self, T: float, rhovec: np.ndarray) -> np.ndarray:
        rhovec = self._check_size(rhovec)
        return np.array(self.funcs["dT_grad_Psir"](T, rhovec), dtype=np.float64)

    def alphar(self, T: float, rhovec: np.ndarray) -> float:
        """Reduced residual Helmholtz energy :math:`\\Psi^r / (\\rho R T)`."""
        rhovec = self._check_size(rhovec)
        return float(self.funcs["alphar"](T, rhovec))

    def ln_fugacity_coefficients(self, T: float, rhovec: np.ndarray) -> np.ndarray:
        """Logarithmic fugacity coefficients of the components in a phase.

        :math:`\\ln\\varphi_i = \\frac{1}{RT}\\frac{\\partial \\Psi^r}{\\partial \\rho_i}
        - \\ln Z`, with :math:`Z = \\frac{p}{\\rho R T}`.

        """
        rhovec = self._check_size(rhovec)
        _, grad, _ = self.psir_fgrad_hessian(T, rhovec)
        Z = self.pressure(T, rhovec) / (rhovec.sum() * R_IDEAL_MOL * T)
        return grad / (R_IDEAL_MOL * T) - np.log(Z)

    def compressibility_factor(
        self, T: float, p: float, molefrac: np.ndarray, state: PhysicalState
    ) -> float:
        """Root of the cubic polynomial for a given physical state.

        The liquid-like root is the smallest, the gas-like root the largest real root
        above the dimensionless covolume. In the 1-root region both coincide.

        Raises:
            EquilibriumModellingError: If no real root above the dimensionless covolume
                exists.
            ValueError: If ``state`` is not a :class:`~helmeq._core.PhysicalState`.

        """
        molefrac = self._check_size(molefrac)
        if not isinstance(state, PhysicalState):
            raise ValueError(f"Unknown physical state {state}.")

        RT = R_IDEAL_MOL * T
        A = float(self.funcs["a"](T, molefrac)) * p / RT**2
        B = float(self.funcs["b"](T, molefrac)) * p / RT

        roots = np.roots([1.0, B - 1.0, A - 2.0 * B - 3.0 * B**2, B**3 + B**2 - A * B])
        real = roots[np.abs(roots.imag) < 1e-10].real
        physical = real[real > B]
        if physical.size == 0:
            raise EquilibriumModellingError(
                f"No physical root of the cubic polynomial at T={T}, p={p}."
            )

        if state == PhysicalState.liquid:
            return float(physical.min())
        return float(physical.max())

    def molar_density(
        self, T: float, p: float, molefrac: np.ndarray, state: PhysicalState
    ) -> float:
        """Total molar concentration ``[mol / m^3]`` of a phase at given pressure,
        temperature and composition, :math:`\\rho = \\frac{p}{Z R T}`.

        See :meth:`compressibility_factor` for the choice of root.

        """
        Z = self.compressibility_factor(T, p, molefrac, state)
        return p / (Z * R_IDEAL_MOL * T)
