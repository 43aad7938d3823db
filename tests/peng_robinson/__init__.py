"""Contains some fixtures shared by different testing modules."""

from __future__ import annotations

import pytest

import helmeq
from tests.equilibrium import get_model


@pytest.fixture(scope="session")
def ncomp(request) -> int:
    """Indirect parametrization of the number of components."""
    return request.param


@pytest.fixture(scope="session")
def pr_model(ncomp: int) -> helmeq.PengRobinsonResidual:
    """Peng-Robinson model, cached for each number of components for all tests in a
    session."""
    return get_model(ncomp)
