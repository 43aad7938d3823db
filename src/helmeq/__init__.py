"""helmeq.

Root directory for the helmeq package, assembling multiphase, multicomponent
equilibrium problems from residual Helmholtz energy models. Contains the following
sub-packages:

equilibrium: Residual and Jacobian of the equilibrium conditions, specifications and
    initial guesses.

peng_robinson: Peng-Robinson EoS as a reference residual Helmholtz energy model.

test_utils: Utilities for testing derivatives.

Configurations are read from a ``helmeq.cfg`` file in the directory where the python
process was launched (see :mod:`helmeq._core`).

isort:skip_file

"""

__version__ = "0.1.0"

__all__ = []

from . import _core, base, materials, utils
from ._core import *
from ._core import config
from .base import *
from .materials import *
from .utils import *

from . import equilibrium, peng_robinson
from .equilibrium import *
from .peng_robinson import *

__all__.extend(_core.__all__)
__all__.extend(base.__all__)
__all__.extend(materials.__all__)
__all__.extend(utils.__all__)
__all__.extend(equilibrium.__all__)
__all__.extend(peng_robinson.__all__)
