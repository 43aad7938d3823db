"""Module containing the equilibrium specifications, i.e. the two additional equations
closing the equilibrium system.

Each specification represents one physical constraint and provides one scalar residual
together with its derivatives with respect to all independent variables
``[T, rho_phase0, ..., rho_phaseK, beta_0, ..., beta_K]``.

New specifications can be introduced by implementing :class:`AbstractSpecification`.

"""

from __future__ import annotations

import abc
from dataclasses import dataclass

import numpy as np

__all__ = [
    "SpecificationSidecar",
    "AbstractSpecification",
    "TemperatureSpec",
    "PressureSpec",
    "PhaseFractionSpec",
    "MolarVolumeSpec",
]


@dataclass(frozen=True)
class SpecificationSidecar:
    """Read-only bundle of quantities computed during an assembly, which specification
    equations may need.

    A sidecar is created anew in every call to
    :meth:`~helmeq.equilibrium.phase_equilibrium.GeneralizedPhaseEquilibrium.call` and
    is only valid for the values of the independent variables passed there.

    """

    Nphases: int
    """Number of phases."""

    Ncomponents: int
    """Number of components."""

    Nindependent: int
    """Number of independent variables."""

    p_phase0: float
    """Pressure of the reference phase (phase 0)."""

    dpdT_phase0: float
    """Derivative of :attr:`p_phase0` w.r.t. temperature."""

    dpdrho_phase0: np.ndarray
    """Derivatives of :attr:`p_phase0` w.r.t. the molar concentrations in phase 0,
    ``shape=(Ncomponents,)``."""


class AbstractSpecification(abc.ABC):
    """Abstract specification equation.

    Parameters are set at instantiation and remain constant afterwards.

    """

    @abc.abstractmethod
    def r_jacobian(
        self, x: np.ndarray, sidecar: SpecificationSidecar
    ) -> tuple[float, np.ndarray]:
        """Evaluates the specification equation.

        Parameters:
            x: ``shape=(Nindependent,)``

                Vector of independent variables.
            sidecar: Quantities of the reference phase, computed during the assembly.

        Returns:
            A 2-tuple containing the residual of the specification and its derivatives
            w.r.t. ``x``, ``shape=(Nindependent,)``.

        """


class TemperatureSpec(AbstractSpecification):
    """Fixes the temperature to a target value ``T``."""

    def __init__(self, T: float) -> None:
        self._T = float(T)

    @property
    def T(self) -> float:
        """Target temperature."""
        return self._T

    def r_jacobian(
        self, x: np.ndarray, sidecar: SpecificationSidecar
    ) -> tuple[float, np.ndarray]:
        jac = np.zeros(sidecar.Nindependent)
        jac[0] = 1.0
        return float(x[0]) - self._T, jac


class PressureSpec(AbstractSpecification):
    """Fixes the pressure of phase 0 to a target value ``p``.

    At equilibrium, all phases have the same pressure, hence the choice of phase is
    arbitrary.

    """

    def __init__(self, p: float) -> None:
        self._p = float(p)

    @property
    def p(self) -> float:
        """Target pressure."""
        return self._p

    def r_jacobian(
        self, x: np.ndarray, sidecar: SpecificationSidecar
    ) -> tuple[float, np.ndarray]:
        jac = np.zeros(sidecar.Nindependent)
        jac[0] = sidecar.dpdT_phase0
        jac[1 : 1 + sidecar.Ncomponents] = sidecar.dpdrho_phase0
        return sidecar.p_phase0 - self._p, jac


class PhaseFractionSpec(AbstractSpecification):
    """Fixes the molar fraction of phase ``iphase`` to a target value ``beta``.

    With ``beta=0`` this gives for example a bubble- or dew-point specification.

    Raises:
        IndexError: If ``iphase`` exceeds the number of phases when evaluated.

    """

    def __init__(self, beta: float, iphase: int) -> None:
        self._beta = float(beta)
        self._iphase = int(iphase)

    @property
    def beta(self) -> float:
        """Target phase fraction."""
        return self._beta

    @property
    def iphase(self) -> int:
        """Index of the phase whose fraction is fixed."""
        return self._iphase

    def r_jacobian(
        self, x: np.ndarray, sidecar: SpecificationSidecar
    ) -> tuple[float, np.ndarray]:
        if not 0 <= self._iphase < sidecar.Nphases:
            raise IndexError(
                f"Phase index {self._iphase} out of range for"
                + f" {sidecar.Nphases} phases."
            )
        idx = sidecar.Nindependent - sidecar.Nphases + self._iphase
        jac = np.zeros(sidecar.Nindependent)
        jac[idx] = 1.0
        return float(x[idx]) - self._beta, jac


class MolarVolumeSpec(AbstractSpecification):
    """Fixes the molar volume of the mixture to a target value ``v``.

    The molar volume of the mixture is :math:`\\sum_k \\beta_k / \\rho_k`, with
    :math:`\\rho_k` being the total molar concentration of phase ``k``.

    """

    def __init__(self, v: float) -> None:
        self._v = float(v)

    @property
    def v(self) -> float:
        """Target molar volume."""
        return self._v

    def r_jacobian(
        self, x: np.ndarray, sidecar: SpecificationSidecar
    ) -> tuple[float, np.ndarray]:
        nc = sidecar.Ncomponents
        nphase = sidecar.Nphases
        betas = x[-nphase:]
        jac = np.zeros(sidecar.Nindependent)

        v = 0.0
        for k in range(nphase):
            start = 1 + k * nc
            rho = float(x[start : start + nc].sum())
            v += betas[k] / rho
            jac[sidecar.Nindependent - nphase + k] = 1.0 / rho
            jac[start : start + nc] = -betas[k] / rho**2

        return v - self._v, jac
