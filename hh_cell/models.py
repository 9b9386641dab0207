"""
Membrane state, ionic currents, the state derivative and the resting point.
"""

import logging
from dataclasses import dataclass

import numpy as np
from scipy.optimize import brentq

from .config import NeuronConfig
from .errors import ConfigurationError, RestStateError
from .kinetics import GATES, gating_rates, steady_state

logger = logging.getLogger(__name__)

STATE_VARIABLES = ('V',) + GATES
N_STATE = len(STATE_VARIABLES)


def _component(index: int, doc: str):
    def getter(self):
        return self.data[..., index]

    def setter(self, value):
        self.data[..., index] = value

    return property(getter, setter, doc=doc)


@dataclass
class NeuronState:
    """
    State variables of one neuron.

    data holds [V, m, h, n, a, b]: membrane potential (mV) followed by the
    five gating variables, each in [0, 1]. t is the elapsed time (ms).
    """
    data: np.ndarray
    t: float = 0.0

    def __post_init__(self):
        self.data = np.array(self.data, dtype=np.float64)
        if self.data.shape != (N_STATE,):
            raise ConfigurationError(
                f"State must have shape ({N_STATE},), got {self.data.shape}")
        self.t = float(self.t)

    V = _component(0, "Membrane potential (mV).")
    m = _component(1, "Sodium activation gating variable.")
    h = _component(2, "Sodium inactivation gating variable.")
    n = _component(3, "Potassium activation gating variable.")
    a = _component(4, "Adaptation current activation gating variable.")
    b = _component(5, "Adaptation current inactivation gating variable.")

    @property
    def gates(self) -> np.ndarray:
        """View of the gating variables (m, h, n, a, b)."""
        return self.data[1:]

    def copy(self) -> 'NeuronState':
        return NeuronState(self.data.copy(), self.t)

    def as_dict(self):
        values = {name: float(v) for name, v in zip(STATE_VARIABLES, self.data)}
        values['t'] = self.t
        return values

    @classmethod
    def from_values(cls, V, m, h, n, a=0.0, b=1.0, t=0.0) -> 'NeuronState':
        """Build a state from explicit values, rejecting gates outside [0, 1]."""
        state = cls(np.array([V, m, h, n, a, b], dtype=np.float64), t)
        if not np.all(np.isfinite(state.data)):
            raise ConfigurationError(f"State values must be finite: {state.as_dict()}")
        for name, value in zip(GATES, state.gates):
            if not 0.0 <= value <= 1.0:
                raise ConfigurationError(
                    f"Gating variable {name} must lie in [0, 1], got {value}")
        return state

    @classmethod
    def at_steady_state(cls, V: float, t: float = 0.0) -> 'NeuronState':
        """State at potential V with every gate at its x_inf(V)."""
        gates = [steady_state(g, V) for g in GATES]
        return cls(np.array([V] + gates, dtype=np.float64), t)


def _as_array(state) -> np.ndarray:
    return state.data if isinstance(state, NeuronState) else state


def compute_currents(state, config: NeuronConfig):
    """
    Compute ionic currents for given state and parameters.

    Args:
        state: NeuronState or array of shape (..., 6)
        config: Neuron parameters

    Returns:
        Dictionary with keys: 'I_Na', 'I_K', 'I_KCa', 'I_leak', 'I_ion'
        (uA/cm^2, positive outward)
    """
    y = _as_array(state)
    V = y[..., 0]
    m = y[..., 1]
    h = y[..., 2]
    n = y[..., 3]
    a = y[..., 4]
    b = y[..., 5]

    I_Na = config.g_Na * (m ** 3) * h * (V - config.E_Na)
    I_K = config.g_K * (n ** 4) * (V - config.E_K)
    I_KCa = config.g_KCa * a * b * (V - config.E_K)
    I_leak = config.g_leak * (V - config.E_leak)

    # Fixed summation order keeps runs bit-reproducible
    I_ion = ((I_Na + I_K) + I_KCa) + I_leak

    return {
        'I_Na': I_Na,
        'I_K': I_K,
        'I_KCa': I_KCa,
        'I_leak': I_leak,
        'I_ion': I_ion,
    }


def derivatives(state, I_ext, config: NeuronConfig, out=None) -> np.ndarray:
    """
    Compute time derivatives of all state variables.

    dV/dt = (I_ext - I_ion) / C_m
    dx/dt = alpha_x * (1 - x) - beta_x * x  ( = (x_inf - x) / tau_x )

    Args:
        state: NeuronState or array of shape (..., 6)
        I_ext: External current injection (uA/cm^2)
        config: Neuron parameters
        out: Optional array to write the result into

    Returns:
        Array of derivatives with the same shape as the state data
    """
    y = _as_array(state)
    if out is None:
        out = np.empty_like(y)

    alpha, beta = gating_rates(y[..., 0], config.rate_factor)
    gates = np.moveaxis(y[..., 1:], -1, 0)
    out[..., 1:] = np.moveaxis(alpha * (1.0 - gates) - beta * gates, 0, -1)

    I_ion = compute_currents(y, config)['I_ion']
    out[..., 0] = (I_ext - I_ion) / config.C_m
    return out


def exponential_gating_step(y: np.ndarray, dt: float, phi: float) -> np.ndarray:
    """
    Advance the gating variables with rates frozen at the current voltage.

    x(t+dt) = x_inf + (x(t) - x_inf) * exp(-dt / tau_x)

    Exact for frozen coefficients, so each gate moves monotonically towards
    x_inf and never leaves [0, 1].

    Returns:
        Array of shape (..., 5) with the new gate values
    """
    alpha, beta = gating_rates(y[..., 0], phi)
    total = alpha + beta
    x_inf = alpha / total
    gates = np.moveaxis(y[..., 1:], -1, 0)
    new_gates = x_inf + (gates - x_inf) * np.exp(-dt * total)
    return np.moveaxis(new_gates, 0, -1)


def exponential_voltage_step(y: np.ndarray, dt: float, I_ext, config: NeuronConfig):
    """
    Advance V with every channel conductance frozen at its current value.

    The voltage equation is then linear, dV/dt = (V_inf - V) / tau_V with
    V_inf = (I_ext + sum g_i E_i) / sum g_i and tau_V = C_m / sum g_i.
    With no open conductance the step reduces to V + dt * I_ext / C_m.
    """
    V = y[..., 0]
    m = y[..., 1]
    h = y[..., 2]
    n = y[..., 3]
    a = y[..., 4]
    b = y[..., 5]

    g_Na = config.g_Na * (m ** 3) * h
    g_K = config.g_K * (n ** 4)
    g_KCa = config.g_KCa * a * b
    g_total = ((g_Na + g_K) + g_KCa) + config.g_leak
    drive = (((g_Na * config.E_Na + g_K * config.E_K)
              + g_KCa * config.E_K) + config.g_leak * config.E_leak)

    open_ = g_total > 0.0
    g_safe = np.where(open_, g_total, 1.0)
    V_inf = (I_ext + drive) / g_safe
    decay = np.exp(-dt * g_safe / config.C_m)
    return np.where(open_, V_inf + (V - V_inf) * decay, V + dt * I_ext / config.C_m)


def steady_state_current(V, config: NeuronConfig):
    """
    Net ionic current with every gate at its steady state for potential V.

    Zeros of steady_state_current(V) - I_ext are the equilibria of the cell.
    """
    V = np.asarray(V, dtype=np.float64)
    y = np.empty(V.shape + (N_STATE,))
    y[..., 0] = V
    for i, gate in enumerate(GATES, start=1):
        y[..., i] = steady_state(gate, V)
    I_ion = compute_currents(y, config)['I_ion']
    return I_ion if np.ndim(I_ion) else float(I_ion)


def find_rest_potential(config: NeuronConfig, I_ext: float = 0.0,
                        v_min: float = -120.0, v_max: float = 20.0,
                        resolution: float = 0.5) -> float:
    """
    Locate the resting potential for a constant injected current.

    Scans [v_min, v_max] for the first upward zero crossing of the steady-state
    current balance and refines it with Brent's method.

    Raises:
        RestStateError: no equilibrium in the scan window, or the root
            refinement failed to converge
    """
    n_points = int(round((v_max - v_min) / resolution)) + 1
    grid = np.linspace(v_min, v_max, n_points)
    balance = steady_state_current(grid, config) - I_ext
    if not np.all(np.isfinite(balance)):
        raise RestStateError("Steady-state current is not finite over the scan window")

    exact = np.flatnonzero(balance == 0.0)
    crossings = np.flatnonzero((balance[:-1] < 0.0) & (balance[1:] > 0.0))
    if exact.size and (not crossings.size or exact[0] <= crossings[0]):
        return float(grid[exact[0]])
    if not crossings.size:
        raise RestStateError(
            f"No equilibrium between {v_min} and {v_max} mV for I_ext = {I_ext} uA/cm^2")

    lo = grid[crossings[0]]
    hi = grid[crossings[0] + 1]
    V_rest, info = brentq(
        lambda v: steady_state_current(v, config) - I_ext,
        lo, hi, xtol=1e-12, full_output=True, disp=False
    )
    if not info.converged:
        raise RestStateError(
            f"Rest potential search did not converge ({info.flag}) in [{lo}, {hi}] mV")

    logger.debug("Rest potential %.6f mV after %d iterations", V_rest, info.iterations)
    return float(V_rest)


def rest_state(config: NeuronConfig, I_ext: float = 0.0, t: float = 0.0) -> NeuronState:
    """Steady state of the cell: V at rest and every gate at x_inf(V_rest)."""
    return NeuronState.at_steady_state(find_rest_potential(config, I_ext), t)
