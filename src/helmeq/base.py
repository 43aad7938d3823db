"""This module contains the interface between the equilibrium assembly and models for
the residual Helmholtz energy.

The equilibrium problem is formulated in terms of temperature and molar
concentrations per phase. The only thermodynamic input it requires is the residual
Helmholtz energy density :math:`\\Psi^r(T, \\rho_1, \\ldots, \\rho_n)` and a few of its
derivatives, which are requested through :class:`ResidualHelmholtzModel`.

Important:
    The physical units used here are SI units. Concentrations are in ``[mol / m^3]``,
    Helmholtz energy densities in ``[J / m^3]`` (equivalently ``[Pa]``).

"""

from __future__ import annotations

import abc

import numpy as np

__all__ = [
    "ResidualHelmholtzModel",
]


class ResidualHelmholtzModel(abc.ABC):
    """Abstract residual Helmholtz energy model, defining the capability consumed by
    :class:`~helmeq.equilibrium.phase_equilibrium.GeneralizedPhaseEquilibrium`.

    Implementations are evaluated read-only. If instances are shared between several
    equilibrium problems running in parallel, the evaluation must be free of side
    effects.

    """

    @abc.abstractmethod
    def get_R(self, molefrac: np.ndarray) -> float:
        """Returns the gas constant ``[J / K mol]`` for a given composition."""

    @abc.abstractmethod
    def psir_fgrad_hessian(
        self, T: float, rhovec: np.ndarray
    ) -> tuple[float, np.ndarray, np.ndarray]:
        """Evaluates the residual Helmholtz energy density and its derivatives with
        respect to the molar concentrations.

        Parameters:
            T: Temperature.
            rhovec: ``shape=(num_components,)``

                Molar concentrations of the components.

        Returns:
            A 3-tuple containing

            1. :math:`\\Psi^r`,
            2. the gradient ``shape=(num_components,)``,
            3. the Hessian ``shape=(num_components, num_components)``.

        """

    @abc.abstractmethod
    def get_Ar10(self, T: float, rho: float, molefrac: np.ndarray) -> float:
        """Returns the dimensionless derivative
        :math:`A^r_{10} = -T \\frac{\\partial \\alpha^r}{\\partial T}` at fixed density
        and composition, with :math:`\\alpha^r = \\Psi^r / (\\rho R T)`.

        Parameters:
            T: Temperature.
            rho: Total molar concentration.
            molefrac: ``shape=(num_components,)``

                Mole fractions.

        """

    @abc.abstractmethod
    def d2psir_dT_drhoi(self, T: float, rhovec: np.ndarray) -> np.ndarray:
        """Returns the temperature derivative of the gradient of :math:`\\Psi^r`
        w.r.t. the molar concentrations, ``shape=(num_components,)``."""

    def pressure(self, T: float, rhovec: np.ndarray) -> float:
        """Pressure of a phase with given temperature and molar concentrations.

        :math:`p = \\rho R T - \\Psi^r + \\sum_i \\rho_i \\frac{\\partial \\Psi^r}
        {\\partial \\rho_i}`

        """
        rhovec = np.asarray(rhovec, dtype=np.float64)
        rho = float(rhovec.sum())
        R = self.get_R(rhovec / rho)
        psir, grad, _ = self.psir_fgrad_hessian(T, rhovec)
        return rho * R * T - psir + float(np.dot(rhovec, grad))
