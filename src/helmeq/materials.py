"""Storage class for fluid component constants.

Component constants are values representing constant physical properties (critical
temperature and pressure, acentric factor), which are used to parametrize cubic
equations of state. They must be given in base SI units.

"""

from __future__ import annotations

from dataclasses import dataclass

__all__ = [
    "FluidComponent",
    "FLUID_COMPONENT_DATA",
    "load_fluid_components",
]


# By using keyword_only arguments, the user is forced to instantiate the constants with
# the right names. Frozen instances cannot be changed once given to an EoS.
@dataclass(kw_only=True, frozen=True)
class FluidComponent:
    """Constants of a fluid component required by a cubic EoS."""

    name: str = ""
    """Name of the component."""

    critical_temperature: float = 1.0
    """Critical temperature in ``[K]``."""

    critical_pressure: float = 1.0
    """Critical pressure in ``[Pa]``."""

    acentric_factor: float = 0.0
    """Acentric factor ``[-]``."""


FLUID_COMPONENT_DATA: dict[str, dict[str, float]] = {
    "methane": {
        "critical_temperature": 190.564,
        "critical_pressure": 4599200.0,
        "acentric_factor": 0.011,
    },
    "nitrogen": {
        "critical_temperature": 126.192,
        "critical_pressure": 3395800.0,
        "acentric_factor": 0.037,
    },
    "ethane": {
        "critical_temperature": 305.322,
        "critical_pressure": 4872200.0,
        "acentric_factor": 0.0995,
    },
    "propane": {
        "critical_temperature": 369.89,
        "critical_pressure": 4251200.0,
        "acentric_factor": 0.1521,
    },
    "n-butane": {
        "critical_temperature": 425.125,
        "critical_pressure": 3796000.0,
        "acentric_factor": 0.201,
    },
    "carbon dioxide": {
        "critical_temperature": 304.1282,
        "critical_pressure": 7377300.0,
        "acentric_factor": 0.22394,
    },
}
"""Built-in table of constants for some light components, in SI units."""


def load_fluid_components(*names: str) -> list[FluidComponent]:
    """Creates fluid components from the built-in table :data:`FLUID_COMPONENT_DATA`.

    Parameters:
        *names: Names of components (case-insensitive).

    Raises:
        KeyError: If a name is not in the table.

    Returns:
        A list of components in the order of ``names``.

    """
    components = []
    for name in names:
        key = name.lower()
        if key not in FLUID_COMPONENT_DATA:
            raise KeyError(
                f"Unknown component {name}. "
                + f"Available: {list(FLUID_COMPONENT_DATA.keys())}."
            )
        components.append(FluidComponent(name=key, **FLUID_COMPONENT_DATA[key]))
    return components
