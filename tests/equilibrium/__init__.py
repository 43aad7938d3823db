"""Contains some fixtures and helpers shared by different testing modules."""

from __future__ import annotations

from threading import Lock

import numpy as np
import pytest

import helmeq

COMPONENT_NAMES: tuple[str, ...] = (
    "methane",
    "nitrogen",
    "ethane",
    "propane",
    "n-butane",
    "carbon dioxide",
)
"""Components used for testing, in the order in which they are added to a mixture."""

_pr_model_cache: dict[int, helmeq.PengRobinsonResidual] = {}
"""Caching expensive to create Peng-Robinson models per number of components."""
_cache_lock = Lock()
"""Threading lock in case of parallel test execution, to avoid race conditions between
different test processes."""


def get_model(ncomp: int) -> helmeq.PengRobinsonResidual:
    """Returns a cached Peng-Robinson model for the first ``ncomp`` components of
    :data:`COMPONENT_NAMES`."""
    assert 0 < ncomp <= len(COMPONENT_NAMES), "Failure in test setup."
    with _cache_lock:
        if ncomp not in _pr_model_cache:
            components = helmeq.load_fluid_components(*COMPONENT_NAMES[:ncomp])
            _pr_model_cache[ncomp] = helmeq.PengRobinsonResidual(components)
    return _pr_model_cache[ncomp]


@pytest.fixture(scope="module")
def methane_nitrogen() -> helmeq.PengRobinsonResidual:
    """Peng-Robinson model for methane and nitrogen."""
    return get_model(2)


def random_state(
    rng: np.random.Generator, nphase: int, ncomp: int
) -> helmeq.UnpackedVariables:
    """Random, physically admissible state (positive concentrations, covolume term
    below 1 and normalized phase fractions)."""
    betas = rng.uniform(0.1, 1.0, nphase)
    return helmeq.UnpackedVariables(
        T=float(rng.uniform(150.0, 300.0)),
        rhovecs=[rng.uniform(50.0, 1500.0, ncomp) for _ in range(nphase)],
        betas=betas / betas.sum(),
    )


def residual_scale(
    nphase: int, ncomp: int, p_scale: float, spec_scales: tuple[float, float]
) -> np.ndarray:
    """Row scaling of the equilibrium residual, making all rows dimensionless.

    Pressure equalities are scaled with ``p_scale``, specifications with
    ``spec_scales``. Other rows are dimensionless already.

    """
    return np.concatenate(
        [
            np.ones(ncomp * (nphase - 1)),
            np.full(nphase - 1, p_scale),
            np.ones(ncomp),
            np.array(spec_scales, dtype=np.float64),
        ]
    )


def newton_solve(
    eq: helmeq.GeneralizedPhaseEquilibrium,
    x0: np.ndarray,
    scale: np.ndarray,
    tol: float = 1e-9,
    max_iter: int = 30,
) -> tuple[np.ndarray, int, float]:
    """Plain Newton iterations on the assembled equilibrium system.

    Returns:
        The last iterate, the number of performed updates and the maximum norm of the
        scaled residual at the last iterate.

    """
    x = np.array(x0, dtype=np.float64)
    for n in range(max_iter + 1):
        res = eq.call(x)
        norm = float(np.max(np.abs(res.r / scale)))
        if norm < tol or n == max_iter:
            break
        x = x + np.linalg.solve(res.J, -res.r)
    return x, n, norm


def ln_fugacities(
    model: helmeq.ResidualHelmholtzModel, T: float, rhovec: np.ndarray
) -> np.ndarray:
    """Logarithmic fugacities :math:`\\ln(\\rho_i R T) + \\nabla\\Psi^r / (RT)`."""
    R = model.get_R(rhovec / rhovec.sum())
    _, grad, _ = model.psir_fgrad_hessian(T, rhovec)
    return np.log(rhovec * R * T) + grad / (R * T)
