"""The equilibrium subpackage assembles the residual and the Jacobian of the
multiphase, multicomponent equilibrium problem in terms of temperature, molar
concentrations per phase and molar phase fractions.

The entry point is
:class:`~helmeq.equilibrium.phase_equilibrium.GeneralizedPhaseEquilibrium`, which is
closed by two equations from :mod:`~helmeq.equilibrium.specifications`.
Solving the system (e.g. with a Newton method) is left to the user. A vapor-liquid
initial guess can be obtained with
:func:`~helmeq.equilibrium.initialization.pT_initial_guess`.

"""

__all__ = []

from . import initialization, phase_equilibrium, specifications
from .initialization import *
from .phase_equilibrium import *
from .specifications import *

__all__.extend(specifications.__all__)
__all__.extend(phase_equilibrium.__all__)
__all__.extend(initialization.__all__)
