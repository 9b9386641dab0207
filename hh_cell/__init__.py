"""
hh_cell - Single-cell Hodgkin-Huxley simulation engine.

Channel kinetics, membrane currents, RK4 and exponential-Euler integrators,
a fixed-step simulation driver and spike / firing-rate analysis.
"""

import logging

from .errors import (
    HHCellError,
    ConfigurationError,
    SimulationParameterError,
    DomainError,
    RestStateError,
    NumericalInstabilityError,
    StepSizeWarning,
)

from .config import (
    NeuronConfig,
    PRESETS,
    temperature_factor,
)

from .kinetics import (
    GATES,
    alpha_m,
    alpha_h,
    alpha_n,
    alpha_a,
    alpha_b,
    beta_m,
    beta_h,
    beta_n,
    beta_a,
    beta_b,
    steady_state,
    time_constant,
    gating_rates,
)

from .models import (
    NeuronState,
    STATE_VARIABLES,
    compute_currents,
    derivatives,
    find_rest_potential,
    rest_state,
)

from .integrators import (
    IntegratorBase,
    ForwardEuler,
    RK4,
    ExponentialEuler,
    get_integrator,
)

from .simulator import (
    Simulator,
    SimulationTrace,
)

from .neuron import Neuron

from .utils import Stimulus

from .analysis import (
    SpikeEvent,
    detect_spikes,
    firing_rate,
    isi_statistics,
    fi_curve,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = '0.1.0'

__all__ = [
    # Errors
    'HHCellError',
    'ConfigurationError',
    'SimulationParameterError',
    'DomainError',
    'RestStateError',
    'NumericalInstabilityError',
    'StepSizeWarning',

    # Configuration
    'NeuronConfig',
    'PRESETS',
    'temperature_factor',

    # Kinetics
    'GATES',
    'alpha_m',
    'alpha_h',
    'alpha_n',
    'alpha_a',
    'alpha_b',
    'beta_m',
    'beta_h',
    'beta_n',
    'beta_a',
    'beta_b',
    'steady_state',
    'time_constant',
    'gating_rates',

    # Models
    'NeuronState',
    'STATE_VARIABLES',
    'compute_currents',
    'derivatives',
    'find_rest_potential',
    'rest_state',

    # Integrators
    'IntegratorBase',
    'ForwardEuler',
    'RK4',
    'ExponentialEuler',
    'get_integrator',

    # Simulation
    'Simulator',
    'SimulationTrace',
    'Neuron',
    'Stimulus',

    # Analysis
    'SpikeEvent',
    'detect_spikes',
    'firing_rate',
    'isi_statistics',
    'fi_curve',
]
