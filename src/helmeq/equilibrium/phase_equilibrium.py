"""Module containing the assembly of the generalized multiphase, multicomponent
equilibrium problem.

The independent variables are ordered as

.. code-block:: text

    x = [T, rho_phase0 (Ncomponents), ..., rho_phaseK (Ncomponents),
         beta_0, ..., beta_K]

with ``T`` the temperature, ``rho_phasek`` the molar concentrations of all components
in phase ``k`` and ``beta_k`` the molar phase fractions. Hence there are
``1 + (Ncomponents + 1) * Nphases`` independent variables.

The equations are assembled in the following order:

1. ``Ncomponents * (Nphases - 1)`` equalities of fugacities between phase 0 and every
   other phase,
2. ``Nphases - 1`` equalities of pressures between phase 0 and every other phase,
3. ``Ncomponents - 1`` material balances (the last component is omitted),
4. the sum of phase fractions,
5. two specification equations
   (see :mod:`~helmeq.equilibrium.specifications`).

The residual Helmholtz energy model is consumed only through the interface
:class:`~helmeq.base.ResidualHelmholtzModel`. Phase-wise quantities are evaluated
with NJIT-compiled functions.

Important:
    All phases use the gas constant of the bulk composition.

"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Optional, Sequence

import numba
import numpy as np

from .._core import FD_STEP_DEFAULT, NUMBA_CACHE, NUMBA_FAST_MATH
from ..base import ResidualHelmholtzModel
from ..utils import InvalidArgumentError, check_bulk_composition, common_length
from .specifications import AbstractSpecification, SpecificationSidecar

__all__ = [
    "RequiredPhaseDerivatives",
    "UnpackedVariables",
    "CallResult",
    "GeneralizedPhaseEquilibrium",
]

logger = logging.getLogger(__name__)


_COMPILE_KWARGS: dict[str, Any] = {
    "fastmath": NUMBA_FAST_MATH,
    "cache": NUMBA_CACHE,
    # zero concentrations result in non-finite values instead of exceptions
    "error_model": "numpy",
}


@numba.njit(
    "Tuple((float64[:],float64[:],float64[:,:]))"
    + "(float64,float64,float64[:],float64[:],float64[:],float64[:,:])",
    **_COMPILE_KWARGS,
)
def ln_fugacity_c(
    R: float,
    T: float,
    rhovec: np.ndarray,
    grad: np.ndarray,
    dgrad_dT: np.ndarray,
    hessian: np.ndarray,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Logarithmic fugacities of components in a phase and their derivatives.

    :math:`\\ln f_i = \\ln(\\rho_i R T) + \\frac{1}{RT}
    \\frac{\\partial \\Psi^r}{\\partial \\rho_i}`

    Parameters:
        R: Gas constant.
        T: Temperature.
        rhovec: Molar concentrations in the phase.
        grad: Gradient of the residual Helmholtz energy density w.r.t. ``rhovec``.
        dgrad_dT: Temperature derivative of ``grad``.
        hessian: Hessian of the residual Helmholtz energy density w.r.t. ``rhovec``.

    Returns:
        A 3-tuple containing the log-fugacities, their temperature derivatives and
        their derivatives w.r.t. ``rhovec`` (row-wise per component).

    """
    RT = R * T
    lnf = np.log(rhovec * RT) + grad / RT
    dlnf_dT = 1.0 / T + dgrad_dT / RT - grad / (RT * T)
    dlnf_drho = hessian / RT
    for i in range(rhovec.shape[0]):
        dlnf_drho[i, i] += 1.0 / rhovec[i]
    return lnf, dlnf_dT, dlnf_drho


@numba.njit(
    "Tuple((float64,float64,float64[:]))"
    + "(float64,float64,float64[:],float64,float64[:],float64,float64[:],float64[:,:])",
    **_COMPILE_KWARGS,
)
def pressure_c(
    R: float,
    T: float,
    rhovec: np.ndarray,
    psir: float,
    grad: np.ndarray,
    dpsir_dT: float,
    dgrad_dT: np.ndarray,
    hessian: np.ndarray,
) -> tuple[float, float, np.ndarray]:
    """Pressure of a phase and its derivatives.

    :math:`p = \\rho R T - \\Psi^r + \\sum_i \\rho_i
    \\frac{\\partial \\Psi^r}{\\partial \\rho_i}`

    Returns:
        A 3-tuple containing the pressure, its temperature derivative and its
        derivatives w.r.t. ``rhovec``.

    """
    n = rhovec.shape[0]
    rho = np.sum(rhovec)
    p = rho * R * T - psir + np.sum(rhovec * grad)
    dpdT = rho * R - dpsir_dT + np.sum(rhovec * dgrad_dT)
    dpdrho = np.full(n, R * T)
    for j in range(n):
        for i in range(n):
            dpdrho[j] += rhovec[i] * hessian[i, j]
    return p, dpdT, dpdrho


@numba.njit("float64[:](float64[:,:],float64[:],float64[:,:])", **_COMPILE_KWARGS)
def material_balance_c(
    rhovecs: np.ndarray, betas: np.ndarray, jac: np.ndarray
) -> np.ndarray:
    """Assembles the material balance for all but the last component, without the
    bulk fractions.

    Parameters:
        rhovecs: ``shape=(Nphases, Ncomponents)``

            Row-wise molar concentrations per phase.
        betas: ``shape=(Nphases,)``

            Molar phase fractions.
        jac: ``shape=(Ncomponents - 1, Nindependent)``

            Rows of the Jacobian belonging to the material balance. Entries w.r.t.
            concentrations and phase fractions are overwritten.

    Returns:
        :math:`\\sum_k \\beta_k x_{k,c}` for components ``c = 0 .. Ncomponents - 2``.

    """
    nphase, ncomp = rhovecs.shape
    vals = np.zeros(ncomp - 1)
    for k in range(nphase):
        rho = np.sum(rhovecs[k])
        start = 1 + k * ncomp
        for c in range(ncomp - 1):
            x_kc = rhovecs[k, c] / rho
            vals[c] += betas[k] * x_kc
            jac[c, 1 + nphase * ncomp + k] = x_kc
            for j in range(ncomp):
                delta = 1.0 if c == j else 0.0
                jac[c, start + j] = betas[k] * (delta - x_kc) / rho
    return vals


@dataclass
class RequiredPhaseDerivatives:
    """Quantities of a single phase required for the assembly, evaluated once per
    phase and call."""

    psir: float
    """Residual Helmholtz energy density."""

    grad: np.ndarray
    """Gradient of :attr:`psir` w.r.t. molar concentrations."""

    hessian: np.ndarray
    """Hessian of :attr:`psir` w.r.t. molar concentrations."""

    dpsir_dT: float
    """Temperature derivative of :attr:`psir` at fixed concentrations."""

    dgrad_dT: np.ndarray
    """Temperature derivative of :attr:`grad`."""


@dataclass(frozen=True)
class UnpackedVariables:
    """Structured representation of the independent variables."""

    T: float
    """Temperature."""

    rhovecs: list[np.ndarray]
    """Molar concentrations per phase."""

    betas: np.ndarray
    """Molar phase fractions."""

    def pack(self) -> np.ndarray:
        """Returns the vector of independent variables
        ``[T, rho_phase0, ..., rho_phaseK, beta_0, ..., beta_K]``."""
        return np.concatenate(
            [np.array([self.T], dtype=np.float64)]
            + [np.asarray(rhovec, dtype=np.float64) for rhovec in self.rhovecs]
            + [np.asarray(self.betas, dtype=np.float64)]
        )


@dataclass
class CallResult:
    """Buffer for the residual and the Jacobian of the equilibrium system."""

    r: np.ndarray
    """Residual vector, ``shape=(Nindependent,)``."""

    J: np.ndarray
    """Jacobian, ``shape=(Nindependent, Nindependent)``."""

    @classmethod
    def zeros(cls, n: int) -> CallResult:
        """Creates a zero-initialized buffer for ``n`` independent variables."""
        return cls(r=np.zeros(n), J=np.zeros((n, n)))


class GeneralizedPhaseEquilibrium:
    """Assembler of the residual and the Jacobian of the equilibrium conditions for an
    arbitrary number of phases and components.

    The numbers of phases and components are deduced from the initial state ``init``.

    Supported parameters:

    - ``'finite_difference_step'``: Default step size for :meth:`num_jacobian`.
      Defaults to :data:`~helmeq._core.FD_STEP_DEFAULT`.

    Parameters:
        residmodel: Model of the residual Helmholtz energy, shared by all phases.
        zbulk: ``shape=(Ncomponents,)``

            Bulk composition (overall mole fractions), which should sum up to 1.
        init: Initial state, defining the number of phases and components.
        specifications: Exactly two specification equations, assembled in the given
            order.
        params: ``default=None``

            Dictionary with parameters for the assembler.

    Raises:
        InvalidArgumentError: If the number of phase fractions and per-phase
            concentration arrays differ, if there are no phases, if the concentration
            arrays have different or zero length, if ``zbulk`` does not match their
            length, or if the number of specifications is not two.

    """

    def __init__(
        self,
        residmodel: ResidualHelmholtzModel,
        zbulk: np.ndarray,
        init: UnpackedVariables,
        specifications: Sequence[AbstractSpecification],
        params: Optional[dict] = None,
    ) -> None:
        if params is None:
            params = {}

        if len(init.betas) != len(init.rhovecs):
            raise InvalidArgumentError(
                f"Number of phase fractions ({len(init.betas)}) and number of"
                + f" per-phase concentration arrays ({len(init.rhovecs)}) differ."
            )
        if len(specifications) != 2:
            raise InvalidArgumentError(
                f"Two specifications required, got {len(specifications)}."
            )
        ncomp = common_length(init.rhovecs, "per-phase concentration arrays")

        zbulk = np.array(zbulk, dtype=np.float64)
        if zbulk.shape != (ncomp,):
            raise InvalidArgumentError(
                f"Bulk composition of shape {zbulk.shape} does not match the number"
                + f" of components {ncomp}."
            )
        check_bulk_composition(zbulk)
        zbulk.flags.writeable = False

        self.residmodel: ResidualHelmholtzModel = residmodel
        """Residual Helmholtz energy model passed at instantiation."""

        self.zbulk: np.ndarray = zbulk
        """Read-only copy of the bulk composition passed at instantiation."""

        self.Nphases: int = len(init.rhovecs)
        """Number of phases."""

        self.Ncomponents: int = ncomp
        """Number of components."""

        self.Nindependent: int = 1 + (ncomp + 1) * self.Nphases
        """Number of independent variables (and equations)."""

        self.specifications: tuple[AbstractSpecification, ...] = tuple(specifications)
        """The two specification equations."""

        self.params: dict = params
        """Parameters passed at instantiation."""

        self.res: CallResult = CallResult.zeros(self.Nindependent)
        """Buffer filled by :meth:`call` if no other buffer is given."""

        self._fd_res: CallResult = CallResult.zeros(self.Nindependent)
        """Private buffer for :meth:`num_jacobian`."""

        logger.debug(
            f"Equilibrium problem with {self.Nphases} phases and {ncomp} components"
            + f" ({self.Nindependent} unknowns) created."
        )

    def _as_independent(self, x: np.ndarray) -> np.ndarray:
        """Returns a float copy of ``x`` after checking its size."""
        x = np.array(x, dtype=np.float64)
        if x.shape != (self.Nindependent,):
            raise InvalidArgumentError(
                f"x should be of size {self.Nindependent}; is of size {x.size}"
            )
        return x

    def unpack(self, x: np.ndarray) -> UnpackedVariables:
        """Splits the vector of independent variables into temperature, per-phase
        concentrations and phase fractions.

        Raises:
            InvalidArgumentError: If ``x`` has the wrong size.

        """
        x = self._as_independent(x)
        nc = self.Ncomponents
        return UnpackedVariables(
            T=float(x[0]),
            rhovecs=[x[1 + k * nc : 1 + (k + 1) * nc] for k in range(self.Nphases)],
            betas=x[1 + self.Nphases * nc :],
        )

    def _phase_derivatives(
        self, T: float, rhovec: np.ndarray, R: float
    ) -> RequiredPhaseDerivatives:
        rho = float(rhovec.sum())
        psir, grad, hessian = self.residmodel.psir_fgrad_hessian(T, rhovec)
        Ar10 = self.residmodel.get_Ar10(T, rho, rhovec / rho)
        psir = float(psir)
        return RequiredPhaseDerivatives(
            psir=psir,
            grad=np.array(grad, dtype=np.float64),
            hessian=np.array(hessian, dtype=np.float64),
            dpsir_dT=rho * R * (-Ar10) + psir / T,
            dgrad_dT=np.array(
                self.residmodel.d2psir_dT_drhoi(T, rhovec), dtype=np.float64
            ),
        )

    def call(self, x: np.ndarray, out: Optional[CallResult] = None) -> CallResult:
        """Assembles the residual and the Jacobian of the equilibrium system.

        Parameters:
            x: ``shape=(Nindependent,)``

                Vector of independent variables.
            out: ``default=None``

                A buffer to be filled. If not given, :attr:`res` is filled.

        Raises:
            InvalidArgumentError: If ``x`` or ``out`` have the wrong size.

        Returns:
            The filled buffer.

        """
        x = self._as_independent(x)
        res = self.res if out is None else out
        N = self.Nindependent
        if res.r.shape != (N,) or res.J.shape != (N, N):
            raise InvalidArgumentError(
                f"Output buffer must be of shapes {(N,)} and {(N, N)}, got"
                + f" {res.r.shape} and {res.J.shape}."
            )

        r = res.r
        J = res.J
        r[:] = 0.0
        J[:] = 0.0

        nc = self.Ncomponents
        nphase = self.Nphases
        T = float(x[0])
        rhovecs = x[1 : 1 + nphase * nc].reshape((nphase, nc))
        betas = x[1 + nphase * nc :]
        R = float(self.residmodel.get_R(self.zbulk))

        derivs = [self._phase_derivatives(T, rhovecs[k], R) for k in range(nphase)]
        lnfs = [
            ln_fugacity_c(R, T, rhovecs[k], d.grad, d.dgrad_dT, d.hessian)
            for k, d in enumerate(derivs)
        ]
        pressures = [
            pressure_c(
                R, T, rhovecs[k], d.psir, d.grad, d.dpsir_dT, d.dgrad_dT, d.hessian
            )
            for k, d in enumerate(derivs)
        ]

        row = 0
        lnf0, dlnf0_dT, dlnf0_drho = lnfs[0]
        for i in range(1, nphase):
            lnf, dlnf_dT, dlnf_drho = lnfs[i]
            rows = slice(row, row + nc)
            r[rows] = lnf0 - lnf
            J[rows, 0] = dlnf0_dT - dlnf_dT
            J[rows, 1 : 1 + nc] = dlnf0_drho
            J[rows, 1 + i * nc : 1 + (i + 1) * nc] = -dlnf_drho
            row += nc

        p0, dp0_dT, dp0_drho = pressures[0]
        for i in range(1, nphase):
            p, dp_dT, dp_drho = pressures[i]
            r[row] = p0 - p
            J[row, 0] = dp0_dT - dp_dT
            J[row, 1 : 1 + nc] = dp0_drho
            J[row, 1 + i * nc : 1 + (i + 1) * nc] = -dp_drho
            row += 1

        r[row : row + nc - 1] = (
            material_balance_c(rhovecs, betas, J[row : row + nc - 1])
            - self.zbulk[:-1]
        )
        row += nc - 1

        r[row] = betas.sum() - 1.0
        J[row, N - nphase :] = 1.0
        row += 1

        sidecar = SpecificationSidecar(
            Nphases=nphase,
            Ncomponents=nc,
            Nindependent=N,
            p_phase0=float(p0),
            dpdT_phase0=float(dp0_dT),
            dpdrho_phase0=dp0_drho.copy(),
        )
        for spec in self.specifications:
            r[row], J[row] = spec.r_jacobian(x, sidecar)
            row += 1

        return res

    def num_jacobian(
        self, x: np.ndarray, dx: Optional[np.ndarray] = None
    ) -> np.ndarray:
        """Approximates the Jacobian with central finite differences.

        The buffer :attr:`res` is not touched.

        Parameters:
            x: ``shape=(Nindependent,)``

                Vector of independent variables.
            dx: ``default=None``

                Step sizes per independent variable. Zero entries are replaced by the
                parameter ``'finite_difference_step'``. If not given, it is used for
                all variables.

        Raises:
            InvalidArgumentError: If ``x`` or ``dx`` have the wrong size.

        Returns:
            The approximated Jacobian, ``shape=(Nindependent, Nindependent)``.

        """
        start = time.time()
        x = self._as_independent(x)
        N = self.Nindependent
        step = float(self.params.get("finite_difference_step", FD_STEP_DEFAULT))

        if dx is None:
            dx = np.zeros(N)
        dx = np.array(dx, dtype=np.float64)
        if dx.shape != (N,):
            raise InvalidArgumentError(
                f"dx should be of size {N}; is of size {dx.size}"
            )
        dx[dx == 0.0] = step

        J = np.zeros((N, N))
        for i in range(N):
            xp = x.copy()
            xp[i] += dx[i]
            rp = self.call(xp, out=self._fd_res).r.copy()
            xm = x.copy()
            xm[i] -= dx[i]
            rm = self.call(xm, out=self._fd_res).r
            J[:, i] = (rp - rm) / (2.0 * dx[i])

        logger.debug(
            f"Numerical Jacobian of size {N} evaluated"
            + " (elapsed time: %.5f (s))." % (time.time() - start)
        )
        return J
