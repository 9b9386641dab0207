"""
Neuron parameter sets and the named phenotype presets.

Units follow the Hodgkin-Huxley convention: mV, ms, uA/cm^2, mS/cm^2, uF/cm^2.
"""

import math
import numbers
from dataclasses import dataclass, fields, asdict, replace
from typing import Dict

from .errors import ConfigurationError


CONDUCTANCE_FIELDS = ('g_Na', 'g_K', 'g_KCa', 'g_leak')


def temperature_factor(temperature: float, reference: float, q10: float) -> float:
    """
    Rate multiplier for running kinetics away from their reference temperature.

    phi = Q10 ** ((T - T0) / 10)
    """
    return q10 ** ((temperature - reference) / 10.0)


@dataclass(frozen=True)
class NeuronConfig:
    """
    Parameters for a single-compartment Hodgkin-Huxley cell.

    Default values are the squid giant axon of the 1952 paper, shifted so the
    resting potential sits near -65 mV.
    """
    # Maximal conductances (mS/cm^2)
    g_Na: float = 120.0
    g_K: float = 36.0
    g_KCa: float = 0.0
    g_leak: float = 0.3

    # Reversal potentials (mV)
    E_Na: float = 50.0
    E_K: float = -77.0
    E_leak: float = -54.387

    # Membrane capacitance (uF/cm^2)
    C_m: float = 1.0

    # Kinetics are quoted at T0; rates are scaled by Q10 to `temperature`
    T0: float = 6.3
    Q10: float = 3.0
    temperature: float = 6.3

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool) or not isinstance(value, numbers.Real):
                raise ConfigurationError(
                    f"{f.name} must be a real number, got {value!r}")
            if not math.isfinite(value):
                raise ConfigurationError(f"{f.name} must be finite, got {value}")
            # Store plain floats
            object.__setattr__(self, f.name, float(value))

        for name in CONDUCTANCE_FIELDS:
            if getattr(self, name) < 0.0:
                raise ConfigurationError(
                    f"Conductance {name} must be non-negative, got {getattr(self, name)}")
        if self.C_m <= 0.0:
            raise ConfigurationError(f"C_m must be positive, got {self.C_m}")
        if self.Q10 <= 0.0:
            raise ConfigurationError(f"Q10 must be positive, got {self.Q10}")

    @property
    def rate_factor(self) -> float:
        """Multiplier applied to every alpha/beta at the current temperature."""
        return temperature_factor(self.temperature, self.T0, self.Q10)

    def with_temperature(self, temperature: float) -> 'NeuronConfig':
        """Copy of this config simulated at another temperature (deg C)."""
        return replace(self, temperature=temperature)

    def to_dict(self) -> Dict[str, float]:
        """Convert parameters to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, float]) -> 'NeuronConfig':
        """Create parameters from dictionary."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(d) - known)
        if unknown:
            raise ConfigurationError(f"Unknown parameter(s): {', '.join(unknown)}")
        return cls(**d)

    @classmethod
    def preset(cls, name: str, **overrides) -> 'NeuronConfig':
        """
        Look up a named phenotype, optionally overriding some of its fields.

        Example:
            NeuronConfig.preset('regular_spiking', g_KCa=2.0)
        """
        key = name.lower().replace('-', '_').replace(' ', '_')
        try:
            base = PRESETS[key]
        except KeyError:
            raise ConfigurationError(
                f"Unknown preset '{name}'. Valid options are: {', '.join(PRESETS)}"
            ) from None
        if not overrides:
            return base
        params = base.to_dict()
        params.update(overrides)
        return cls.from_dict(params)


# Cortical phenotypes reuse the squid-axon channel kinetics; their rates are
# taken as quoted at body temperature, so they run with phi = 1.
_CORTICAL = dict(T0=36.0, Q10=3.0, temperature=36.0)

PRESETS: Dict[str, NeuronConfig] = {
    'squid_axon': NeuronConfig(),
    'regular_spiking': NeuronConfig(
        g_Na=120.0, g_K=36.0, g_KCa=1.0, g_leak=0.3,
        E_Na=50.0, E_K=-77.0, E_leak=-54.387, C_m=1.0, **_CORTICAL),
    'fast_spiking': NeuronConfig(
        g_Na=120.0, g_K=50.0, g_KCa=0.0, g_leak=0.3,
        E_Na=50.0, E_K=-77.0, E_leak=-54.387, C_m=0.8, **_CORTICAL),
    'intrinsically_bursting': NeuronConfig(
        g_Na=120.0, g_K=36.0, g_KCa=3.0, g_leak=0.2,
        E_Na=50.0, E_K=-77.0, E_leak=-58.0, C_m=1.0, **_CORTICAL),
    'low_threshold_spiking': NeuronConfig(
        g_Na=120.0, g_K=36.0, g_KCa=0.5, g_leak=0.15,
        E_Na=50.0, E_K=-77.0, E_leak=-52.0, C_m=1.0, **_CORTICAL),
    'chattering': NeuronConfig(
        g_Na=120.0, g_K=36.0, g_KCa=2.0, g_leak=0.3,
        E_Na=55.0, E_K=-77.0, E_leak=-54.387, C_m=1.0, **_CORTICAL),
}
