"""This subpackage implements the standard Peng-Robinson equation of state as a
residual Helmholtz energy model, for use in the equilibrium framework.

The residual Helmholtz energy density and its derivatives are obtained symbolically
(:mod:`~helmeq.peng_robinson.eos_symbolic`) and evaluated numerically by
:class:`~helmeq.peng_robinson.eos.PengRobinsonResidual`.

"""

__all__ = []

from . import eos, eos_symbolic
from .eos import *
from .eos_symbolic import *

__all__.extend(eos.__all__)
__all__.extend(eos_symbolic.__all__)
