"""Module containing the symbolic representation of the residual Helmholtz energy
density of the standard Peng-Robinson EoS.

It concerns itself with *analytic* expressions depending on temperature and molar
concentrations of components.

We use ``sympy`` to produce symbols and expressions, which are subsequently turned
into numeric functions using :func:`sympy.lambdify`.

We use the naming convention ``<name>_<type>``, where the name represents the
quantity, and type how the quantity is represented:

- ``_s``: A symbol representing an independent quantity. Created using
  :class:`sympy.Symbol`.
- ``_e``: A symbolic expression depending on some symbols.
- ``_f``: A lambdify-generated function, based on an expression. The arguments of the
  function reflect the dependency on symbols.

The following standard names are used for thermodynamic quantities:

- ``T`` temperature
- ``rho`` molar concentrations (partial molar densities)
- ``a`` cohesion
- ``b`` covolume
- ``A`` cohesion term of the mixture in concentration form, :math:`\\rho^2 a`
- ``B`` covolume term of the mixture in concentration form, :math:`\\rho b`
- ``Psir`` residual Helmholtz energy density
- ``alphar`` reduced residual Helmholtz energy :math:`\\Psi^r / (\\rho R T)`

"""

from __future__ import annotations

import math
from typing import Callable, Optional, Sequence

import numpy as np
import sympy as sp

from .._core import R_IDEAL_MOL
from ..materials import FluidComponent
from ..utils import EquilibriumModellingError

__all__ = [
    "A_CRIT",
    "B_CRIT",
    "Z_CRIT",
    "PengRobinsonSymbolic",
]


A_CRIT: float = (
    1
    / 512
    * (
        -59
        + 3 * np.cbrt(276231 - 192512 * np.sqrt(2))
        + 3 * np.cbrt(276231 + 192512 * np.sqrt(2))
    )
)
"""Critical, non-dimensional cohesion value in the Peng-Robinson EoS,
~ 0.457235529."""


B_CRIT: float = (
    1
    / 32
    * (-1 - 3 * np.cbrt(16 * np.sqrt(2) - 13) + 3 * np.cbrt(16 * np.sqrt(2) + 13))
)
"""Critical, non-dimensional covolume in the Peng-Robinson EoS, ~ 0.077796073."""


Z_CRIT: float = (
    1 / 32 * (11 + np.cbrt(16 * np.sqrt(2) - 13) - np.cbrt(16 * np.sqrt(2) + 13))
)
"""Critical compressibility factor in the Peng-Robinson EoS, ~ 0.307401308."""


_SQRT2: float = math.sqrt(2.0)


class PengRobinsonSymbolic:
    """A class providing the residual Helmholtz energy density of the Peng-Robinson
    EoS and its derivatives, based on a symbolic representation using ``sympy``.

    Van der Waals mixing rules are applied in concentration form, i.e.
    :math:`B = \\sum_i b_i \\rho_i` and
    :math:`A = \\sum_i \\sum_j \\rho_i \\rho_j \\sqrt{a_i a_j}(1 - k_{ij})`, with which

    .. math::

        \\Psi^r = -\\rho R T \\ln(1 - B) - \\frac{A}{2\\sqrt{2} B}
        \\ln\\left(\\frac{1 + (1 + \\sqrt{2})B}{1 + (1 - \\sqrt{2})B}\\right).

    Note:
        The functions are generated using :func:`sympy.lambdify` and are *sourceless*.

    Parameters:
        components: A sequence of ``num_comp`` components.
        bip_matrix: ``default=None``

            A 2D array containing binary interaction parameters for ``components``.
            Note that only the upper triangle of this matrix is used. Zero if not given.

    Raises:
        EquilibriumModellingError: If no components are given.
        ValueError: If the shape of ``bip_matrix`` does not match the number of
            components.

    """

    T_s: sp.Symbol = sp.Symbol("T")
    """Symbolic representation of temperature."""

    def __init__(
        self,
        components: Sequence[FluidComponent],
        bip_matrix: Optional[np.ndarray] = None,
    ) -> None:
        ncomp = len(components)
        if ncomp == 0:
            raise EquilibriumModellingError("Cannot create an EoS with no components.")

        if bip_matrix is None:
            bip_matrix = np.zeros((ncomp, ncomp))
        bip_matrix = np.asarray(bip_matrix, dtype=np.float64)
        if bip_matrix.shape != (ncomp, ncomp):
            raise ValueError(
                f"BIP matrix must be of shape {(ncomp, ncomp)},"
                + f" got {bip_matrix.shape}."
            )

        self.rho_s: list[sp.Symbol] = [sp.Symbol(f"rho_{i}") for i in range(ncomp)]
        """List of molar concentrations per component.

        Symbols are indexed and not named after components, for the generated code to
        have valid argument names."""

        self.thd_arg: tuple[sp.Symbol, list[sp.Symbol]] = (self.T_s, self.rho_s)
        """General representation of the thermodynamic argument:

        1. a temperature value,
        2. an array of molar concentrations per component.

        """

        self.T_i_crit: list[float] = [comp.critical_temperature for comp in components]
        """List of critical temperatures per component."""

        self.p_i_crit: list[float] = [comp.critical_pressure for comp in components]
        """List of critical pressures per component."""

        self.b_i_crit: list[float] = [
            float(B_CRIT * (R_IDEAL_MOL * T_c) / p_c)
            for T_c, p_c in zip(self.T_i_crit, self.p_i_crit)
        ]
        """List of covolumes per component.

        :math:`B_{c}R\\frac{T_{i,c}}{p_{i,c}}`, using :data:`B_CRIT`.

        """

        self.a_i_crit: list[float] = [
            float(A_CRIT * (R_IDEAL_MOL**2 * T_c**2) / p_c)
            for T_c, p_c in zip(self.T_i_crit, self.p_i_crit)
        ]
        """List of critical cohesion values per component.

        :math:`A_c \\frac{R^2 T_{i,c}^2}{p_{i,c}}`, using :data:`A_CRIT`.

        """

        self.k_i: list[float] = [
            self.a_correction_weight(comp.acentric_factor) for comp in components
        ]
        """List of corrective weights for cohesion terms per components."""

        self.bip_matrix: np.ndarray = bip_matrix
        """Matrix of binary interaction parameters passed at instantiation."""

    @staticmethod
    def a_correction_weight(omega: float) -> float:
        """
        Parameters:
            omega: Acentric factor of a component.

        Returns:
            The weight :math:`\\kappa` in the temperature correction of the cohesion
            :math:`(1 + \\kappa(1 - \\sqrt{T / T_c}))^2`.

        """
        return 0.37464 + 1.54226 * omega - 0.26992 * omega**2

    def bip(self, i: int, j: int) -> float:
        """Binary interaction parameter between components ``i`` and ``j``, read from
        the upper triangle of :attr:`bip_matrix`."""
        if i == j:
            return 0.0
        return float(self.bip_matrix[min(i, j), max(i, j)])

    @property
    def sqrt_a_i(self) -> list[sp.Expr]:
        """Square roots of the temperature-dependent cohesion values per component."""
        return [
            math.sqrt(a_c) * (1 + k * (1 - sp.sqrt(self.T_s / T_c)))
            for a_c, k, T_c in zip(self.a_i_crit, self.k_i, self.T_i_crit)
        ]

    @property
    def B(self) -> sp.Expr:
        """Covolume term of the mixture in concentration form :math:`\\rho b`.

        Evaluated with mole fractions instead of concentrations, this is the covolume of
        the mixture."""
        return sp.Add(*[b * rho for b, rho in zip(self.b_i_crit, self.rho_s)])

    @property
    def A(self) -> sp.Expr:
        """Cohesion term of the mixture in concentration form :math:`\\rho^2 a`.

        Evaluated with mole fractions instead of concentrations, this is the cohesion of
        the mixture."""
        sqrt_a = self.sqrt_a_i
        ncomp = len(self.rho_s)
        terms = []
        for i in range(ncomp):
            for j in range(ncomp):
                terms.append(
                    self.rho_s[i]
                    * self.rho_s[j]
                    * sqrt_a[i]
                    * sqrt_a[j]
                    * (1 - self.bip(i, j))
                )
        return sp.Add(*terms)

    @property
    def rho(self) -> sp.Expr:
        """Total molar concentration."""
        return sp.Add(*self.rho_s)

    @property
    def Psir(self) -> sp.Expr:
        """Residual Helmholtz energy density."""
        A = self.A
        B = self.B
        return -self.rho * R_IDEAL_MOL * self.T_s * sp.log(1 - B) - A / (
            2 * _SQRT2 * B
        ) * sp.log((1 + (1 + _SQRT2) * B) / (1 + (1 - _SQRT2) * B))

    @property
    def alphar(self) -> sp.Expr:
        """Reduced residual Helmholtz energy :math:`\\frac{\\Psi^r}{\\rho R T}`."""
        return self.Psir / (self.rho * R_IDEAL_MOL * self.T_s)

    def _lambdify(self, expr: sp.Expr | sp.Matrix | list) -> Callable:
        """Lambdifies an expression (a list or matrix of expressions) with signature
        ``(T, rhovec)``."""
        return sp.lambdify(self.thd_arg, expr, modules="numpy", cse=True)

    def compile(self) -> dict[str, Callable]:
        """Derives the expressions required by the equilibrium framework and turns them
        into numeric functions.

        Returns:
            A dictionary containing functions with signature ``(T, rhovec)`` under the
            keys

            - ``'Psir'``: residual Helmholtz energy density,
            - ``'grad_Psir'``: gradient w.r.t. concentrations as a list,
            - ``'hess_Psir'``: Hessian w.r.t. concentrations as a 2D array,
            - ``'dT_grad_Psir'``: temperature derivative of the gradient as a list,
            - ``'Ar10'``: :math:`-T \\partial_T \\alpha^r`,
            - ``'alphar'``: reduced residual Helmholtz energy,

            and functions of ``(T, x)`` under the keys ``'a'`` and ``'b'``, returning the
            cohesion and covolume of the mixture for mole fractions ``x``.

        """
        Psir_e = self.Psir
        grad_e = [Psir_e.diff(rho) for rho in self.rho_s]
        hess_e = sp.Matrix([[g.diff(rho) for rho in self.rho_s] for g in grad_e])
        dT_grad_e = [g.diff(self.T_s) for g in grad_e]
        alphar_e = self.alphar
        Ar10_e = -self.T_s * alphar_e.diff(self.T_s)

        return {
            "Psir": self._lambdify(Psir_e),
            "grad_Psir": self._lambdify(grad_e),
            "hess_Psir": self._lambdify(hess_e),
            "dT_grad_Psir": self._lambdify(dT_grad_e),
            "Ar10": self._lambdify(Ar10_e),
            "alphar": self._lambdify(alphar_e),
            "a": self._lambdify(self.A),
            "b": self._lambdify(self.B),
        }
