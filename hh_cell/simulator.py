"""
Fixed-step simulation driver and the trace it produces.
"""

import logging
import math
import numbers
import warnings
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .config import NeuronConfig, PRESETS
from .errors import NumericalInstabilityError, SimulationParameterError, StepSizeWarning
from .integrators import get_integrator
from .models import N_STATE, STATE_VARIABLES, NeuronState, rest_state

logger = logging.getLogger(__name__)

BACKENDS = ('numpy', 'numba')


def step_count(duration: float, dt: float) -> int:
    """
    Number of steps needed to cover duration with steps of dt.

    A ratio within floating-point noise of an integer is taken as that integer
    (100 / 0.01 gives 10000 steps, not 10001); otherwise it is rounded up.

    Raises:
        SimulationParameterError: duration or dt not a positive finite number,
            or the ratio overflows
    """
    for name, value in (('duration', duration), ('dt', dt)):
        if (isinstance(value, bool) or not isinstance(value, numbers.Real)
                or not math.isfinite(value) or value <= 0):
            raise SimulationParameterError(
                f"{name} must be a positive, finite number of ms, got {value!r}")

    ratio = duration / dt
    if not math.isfinite(ratio):
        raise SimulationParameterError(
            f"duration / dt = {duration} / {dt} is not representable as a step count")
    nearest = round(ratio)
    if nearest >= 1 and abs(ratio - nearest) <= 1e-9 * nearest:
        return int(nearest)
    return max(1, math.ceil(ratio))


def stimulus_array(I_ext, n_steps: int, t0: float, dt: float) -> np.ndarray:
    """
    Expand I_ext into one current value per step.

    Args:
        I_ext: Scalar current, per-step array (at least n_steps long) or a
            callable I(t) sampled at the start of each step (uA/cm^2)
        n_steps: Number of steps
        t0: Start time (ms)
        dt: Time step (ms)
    """
    if callable(I_ext):
        stimulus = np.array([I_ext(t0 + i * dt) for i in range(n_steps)], dtype=np.float64)
    elif np.ndim(I_ext) == 0:
        stimulus = np.full(n_steps, I_ext, dtype=np.float64)
    else:
        stimulus = np.asarray(I_ext, dtype=np.float64)
        if stimulus.ndim != 1:
            raise SimulationParameterError(
                f"Stimulus array must be 1-D, got shape {stimulus.shape}")
        if len(stimulus) < n_steps:
            raise SimulationParameterError(
                f"Stimulus has {len(stimulus)} samples, {n_steps} steps required")
        stimulus = stimulus[:n_steps]

    if not np.all(np.isfinite(stimulus)):
        raise SimulationParameterError("Stimulus contains non-finite values")
    return stimulus


def record_indices(n_steps: int, record_every: int) -> np.ndarray:
    """Step indices kept in the trace: every record_every-th step plus the last."""
    indices = np.arange(0, n_steps + 1, record_every)
    if indices[-1] != n_steps:
        indices = np.append(indices, n_steps)
    return indices


@dataclass(frozen=True)
class SimulationTrace:
    """
    Recorded output of one simulation run.

    Arrays are read-only. states has shape (n_samples, 6) in the order
    (V, m, h, n, a, b) when the full state was recorded, otherwise None.
    """
    time: np.ndarray
    V: np.ndarray
    dt: float
    integrator: str
    config: NeuronConfig
    final_state: NeuronState
    states: Optional[np.ndarray] = None

    def __post_init__(self):
        for name in ('time', 'V', 'states'):
            array = getattr(self, name)
            if array is not None:
                array.setflags(write=False)

    def __len__(self):
        return len(self.time)

    def _variable(self, name: str):
        if self.states is None:
            return None
        return self.states[:, STATE_VARIABLES.index(name)]

    @property
    def m(self):
        """Sodium activation gating variable."""
        return self._variable('m')

    @property
    def h(self):
        """Sodium inactivation gating variable."""
        return self._variable('h')

    @property
    def n(self):
        """Potassium activation gating variable."""
        return self._variable('n')

    @property
    def a(self):
        """Adaptation current activation gating variable."""
        return self._variable('a')

    @property
    def b(self):
        """Adaptation current inactivation gating variable."""
        return self._variable('b')

    @property
    def duration(self) -> float:
        """Simulated time span (ms)."""
        return float(self.time[-1] - self.time[0])

    def spikes(self, threshold: float = 0.0):
        """Spike events in this trace (see hh_cell.analysis.detect_spikes)."""
        from .analysis import detect_spikes
        return detect_spikes(self, threshold)

    def firing_rate(self, threshold: float = 0.0) -> float:
        """Mean firing rate over the trace (Hz)."""
        from .analysis import firing_rate
        return firing_rate(self.spikes(threshold), self.duration)

    def summary(self, threshold: float = 0.0) -> str:
        """
        Get text summary of simulation results.

        Returns:
            Summary string
        """
        lines = ["Simulation Results Summary"]
        lines.append("=" * 40)
        lines.append(f"Duration: {self.duration:.2f} ms")
        lines.append(f"Time step: {self.dt:.4f} ms ({self.integrator})")
        lines.append(f"Samples: {len(self)}")
        lines.append(f"V range: [{self.V.min():.2f}, {self.V.max():.2f}] mV")

        spikes = self.spikes(threshold)
        lines.append(f"Spikes (> {threshold:g} mV): {len(spikes)}")
        if spikes and self.duration > 0:
            lines.append(f"Firing rate: {self.firing_rate(threshold):.2f} Hz")

        return "\n".join(lines)


class Simulator:
    """
    Fixed-step simulator for one neuron.

    Integrates the shared derivative model with the chosen scheme, either
    step by step in NumPy or in a compiled Numba loop.
    """

    def __init__(self,
                 config: Optional[NeuronConfig] = None,
                 integrator: str = 'rk4',
                 backend: str = 'numpy'):
        """
        Initialize simulator.

        Args:
            config: Neuron parameters (squid axon if None)
            integrator: 'rk4', 'exponential_euler' or 'euler'
            backend: 'numpy' or 'numba' (the latter for 'rk4' and
                'exponential_euler' only)
        """
        self.config = config if config is not None else PRESETS['squid_axon']
        self.integrator = get_integrator(integrator, self.config)

        backend = backend.lower()
        if backend not in BACKENDS:
            raise SimulationParameterError(
                f"Unknown backend: '{backend}'. Valid options are: {', '.join(BACKENDS)}")
        if backend == 'numba':
            from .kernels import METHODS
            if self.integrator.name not in METHODS:
                raise SimulationParameterError(
                    f"Integrator '{self.integrator.name}' is not available on the numba backend")
        self.backend = backend

    def run(self,
            duration: float,
            dt: float = 0.01,
            state0: Optional[NeuronState] = None,
            I_ext=0.0,
            record_every: int = 1,
            record_state: bool = True) -> SimulationTrace:
        """
        Run simulation.

        The step count is duration / dt rounded up when the ratio is not an
        integer, so trace.duration may exceed duration by less than one dt.

        Args:
            duration: Total simulation time (ms)
            dt: Time step (ms)
            state0: Initial state (resting state if None); not modified
            I_ext: External current, scalar, per-step array or callable I(t)
            record_every: Keep every record_every-th step (the last step is
                always kept)
            record_state: Record gating variables as well as V

        Returns:
            SimulationTrace

        Raises:
            SimulationParameterError: invalid duration, dt, stimulus or stride
            NumericalInstabilityError: a step produced NaN or infinity
        """
        n_steps = step_count(duration, dt)
        if (isinstance(record_every, bool) or not isinstance(record_every, numbers.Integral)
                or record_every < 1):
            raise SimulationParameterError(
                f"record_every must be a positive integer, got {record_every!r}")

        limit = self.integrator.max_stable_dt(self.config)
        if dt > limit:
            warnings.warn(
                f"dt = {dt} ms exceeds the {self.integrator.name} bound of {limit:.4g} ms "
                f"for this neuron; expect spurious oscillation or divergence.",
                StepSizeWarning, stacklevel=2)

        if state0 is None:
            state0 = rest_state(self.config)
        t0 = state0.t
        stimulus = stimulus_array(I_ext, n_steps, t0, dt)
        indices = record_indices(n_steps, int(record_every))

        logger.debug("Running %d steps of %s (dt=%g ms, backend=%s)",
                     n_steps, self.integrator.name, dt, self.backend)

        if self.backend == 'numba':
            records, final = self._run_numba(state0.data, stimulus, dt, n_steps,
                                             int(record_every), len(indices), t0)
        else:
            records, final = self._run_numpy(state0.data, stimulus, dt, n_steps,
                                             int(record_every), len(indices), t0)

        time = t0 + indices * dt
        return SimulationTrace(
            time=time,
            V=records[:, 0].copy(),
            dt=float(dt),
            integrator=self.integrator.name,
            config=self.config,
            final_state=NeuronState(final, t0 + n_steps * dt),
            states=records if record_state else None,
        )

    def _run_numpy(self, y0, stimulus, dt, n_steps, record_every, n_records, t0):
        records = np.empty((n_records, N_STATE))
        y = y0.copy()
        records[0] = y
        r = 1
        advance = self.integrator.advance

        for i in range(n_steps):
            y = advance(y, dt, stimulus[i])
            step = i + 1
            if not np.isfinite(y).all():
                self._fail(step, t0 + step * dt, y)
            if step % record_every == 0 or step == n_steps:
                records[r] = y
                r += 1

        return records, y

    def _run_numba(self, y0, stimulus, dt, n_steps, record_every, n_records, t0):
        from .kernels import METHODS, integrate, pack_config

        records = np.empty((n_records, N_STATE))
        final = np.empty(N_STATE)
        bad_step = integrate(
            np.ascontiguousarray(y0, dtype=np.float64), stimulus, float(dt), n_steps,
            record_every, pack_config(self.config), self.config.rate_factor,
            METHODS[self.integrator.name], records, final
        )
        if bad_step:
            self._fail(bad_step, t0 + bad_step * dt, final)
        return records, final

    def _fail(self, step: int, time: float, y: np.ndarray):
        bad = [name for name, value in zip(STATE_VARIABLES, y) if not math.isfinite(value)]
        logger.warning("Non-finite %s at step %d (t=%.6g ms) with %s",
                       ", ".join(bad), step, time, self.integrator.name)
        raise NumericalInstabilityError(step, time, bad)
