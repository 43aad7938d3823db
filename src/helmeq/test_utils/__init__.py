"""Utilities shared by the test suite, for checking derivatives of vector-valued
functions against finite differences and Taylor expansions."""

__all__ = []

from . import derivative_testing
from .derivative_testing import *

__all__.extend(derivative_testing.__all__)
