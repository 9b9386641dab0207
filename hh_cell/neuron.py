"""
Neuron handle: one configuration plus the state it owns.
"""

import logging
from typing import Optional, Union

from .config import NeuronConfig
from .errors import ConfigurationError
from .models import NeuronState, find_rest_potential
from .simulator import Simulator, SimulationTrace

logger = logging.getLogger(__name__)


class Neuron:
    """
    A single Hodgkin-Huxley cell.

    Owns one NeuronState. simulate() continues from the current state and
    leaves the neuron at the end of the run, so consecutive calls chain.

    Example:
        >>> neuron = Neuron('squid_axon')
        >>> trace = neuron.simulate(50.0, dt=0.01, I_ext=10.0)
        >>> len(trace.spikes(threshold=-20.0))
    """

    def __init__(self, config: Union[NeuronConfig, str, None] = None):
        """
        Args:
            config: NeuronConfig, preset name, or None for the squid axon
        """
        if config is None:
            config = NeuronConfig()
        elif isinstance(config, str):
            config = NeuronConfig.preset(config)
        elif not isinstance(config, NeuronConfig):
            raise ConfigurationError(
                f"Expected a NeuronConfig or preset name, got {type(config).__name__}")
        self.config = config
        self._state: Optional[NeuronState] = None

    def __repr__(self):
        return f"Neuron(config={self.config!r}, t={self.t})"

    @property
    def state(self) -> NeuronState:
        """Current state; initialised at rest on first access."""
        if self._state is None:
            self.initialize_rest()
        return self._state

    @property
    def t(self) -> float:
        return self._state.t if self._state is not None else 0.0

    def set_state(self, state: NeuronState):
        """Replace the current state with a copy of state."""
        self._state = state.copy()

    def initialize_rest(self, I_ext: float = 0.0) -> NeuronState:
        """
        Put the neuron at its steady point and reset the clock.

        V solves I_ion(V, x_inf(V)) = I_ext and every gate sits at x_inf(V).

        Raises:
            RestStateError: the steady-state solve did not converge
        """
        V_rest = find_rest_potential(self.config, I_ext)
        self._state = NeuronState.at_steady_state(V_rest)
        logger.debug("Initialised at rest: V = %.4f mV", V_rest)
        return self._state.copy()

    def simulate(self,
                 duration: float,
                 dt: float = 0.01,
                 I_ext=0.0,
                 integrator: str = 'rk4',
                 record_every: int = 1,
                 record_state: bool = True,
                 backend: str = 'numpy') -> SimulationTrace:
        """
        Advance the neuron by duration ms and return the recorded trace.

        Args:
            duration: Simulation time (ms, > 0)
            dt: Time step (ms, > 0). RK4 expects dt <= 0.025 ms at the
                reference temperature
            I_ext: Injected current (uA/cm^2): scalar, per-step array or I(t)
            integrator: 'rk4', 'exponential_euler' or 'euler'
            record_every: Sampling stride for the trace
            record_state: Record gating variables as well as V
            backend: 'numpy' or 'numba'

        Raises:
            SimulationParameterError: invalid duration, dt or stimulus
            NumericalInstabilityError: the run produced a non-finite value;
                the neuron state is left unchanged
        """
        simulator = Simulator(self.config, integrator=integrator, backend=backend)
        trace = simulator.run(
            duration, dt, state0=self.state, I_ext=I_ext,
            record_every=record_every, record_state=record_state
        )
        self._state = trace.final_state.copy()
        return trace
