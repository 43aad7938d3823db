"""This private module contains central assumptions and data for the entire package.

Flags can be overridden by a ``helmeq.cfg`` file in the directory where the python
process was launched, e.g.

.. code-block:: ini

    [numba]
    cache = False
    fastmath = False

    [numerics]
    finite_difference_step = 1e-7

Changes here should be done with much care.

"""

from __future__ import annotations

import configparser
from enum import Enum
from pathlib import Path

__all__ = [
    "R_IDEAL_MOL",
    "FD_STEP_DEFAULT",
    "PhysicalState",
]


def _read_config() -> configparser.ConfigParser:
    """Reads ``helmeq.cfg`` from the current working directory, if present.

    A missing file results in an empty configuration.

    """
    cfg = configparser.ConfigParser()
    cfg.read(Path.cwd() / Path("helmeq.cfg"))
    return cfg


config: configparser.ConfigParser = _read_config()
"""Configuration parsed at import time."""


NUMBA_CACHE: bool = config.getboolean("numba", "cache", fallback=True)
"""Flag to instruct the numba compiler to cache (!and use cached!) functions.

Numba does not recognize changes in nested functions and hence does not trigger
re-compilation. Use with care during development.

See Also:
    https://numba.readthedocs.io/en/stable/user/jit.html#cache

"""

NUMBA_FAST_MATH: bool = config.getboolean("numba", "fastmath", fallback=False)
"""Flag to instruct the numba compiler to use it's ``fastmath`` functions.

To be used with care, due to loss in precision. The assembled Jacobian is compared
against finite differences in the test suite, which is sensitive to it.

"""

R_IDEAL_MOL: float = 8.31446261815324
"""Universal gas constant in ``[J / K mol]``."""

FD_STEP_DEFAULT: float = config.getfloat(
    "numerics", "finite_difference_step", fallback=1e-6
)
"""Default step size for central finite differences, used wherever a given step is
zero or no step is given."""


class PhysicalState(Enum):
    """Enum object for characterizing the physical states of a phase.

    - :attr:`liquid`: liquid-like state (value 0)
    - ``gas: int = 1``: gas-like state (value 1)

    Used to select a root of a cubic EoS when computing densities from pressure.

    """

    liquid: int = 0
    gas: int = 1
