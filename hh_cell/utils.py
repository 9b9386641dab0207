"""
Stimulus generation: injected-current waveforms sampled on the step grid.
"""

from typing import Optional

import numpy as np

from .simulator import step_count


def _step_times(duration: float, dt: float) -> np.ndarray:
    """Start time of every step (ms)."""
    return np.arange(step_count(duration, dt)) * dt


class Stimulus:
    """
    Stimulus generator for neuron simulations.

    Each method returns one current value per integration step, ready to pass
    as I_ext to Neuron.simulate / Simulator.run with the same duration and dt.
    """

    @staticmethod
    def constant(amplitude: float, duration: float, dt: float) -> np.ndarray:
        """
        Generate constant current injection.

        Args:
            amplitude: Current amplitude (uA/cm^2)
            duration: Total duration (ms)
            dt: Time step (ms)
        """
        return np.full(step_count(duration, dt), float(amplitude))

    @staticmethod
    def step(amplitude: float, t_start: float, t_end: float,
             duration: float, dt: float) -> np.ndarray:
        """
        Generate step current (zero, then amplitude, then zero).

        Args:
            amplitude: Current amplitude during step (uA/cm^2)
            t_start: Time when step starts (ms)
            t_end: Time when step ends (ms)
            duration: Total duration (ms)
            dt: Time step (ms)
        """
        time = _step_times(duration, dt)
        # Half-step tolerance so t_start / t_end land on the intended sample
        mask = (time >= t_start - 0.5 * dt) & (time < t_end - 0.5 * dt)
        return np.where(mask, float(amplitude), 0.0)

    @staticmethod
    def pulse(amplitude: float, t_start: float, width: float,
              duration: float, dt: float) -> np.ndarray:
        """Single rectangular pulse of the given width (ms)."""
        return Stimulus.step(amplitude, t_start, t_start + width, duration, dt)

    @staticmethod
    def pulse_train(amplitude: float, pulse_duration: float,
                    pulse_period: float, n_pulses: int,
                    t_start: float, duration: float, dt: float) -> np.ndarray:
        """
        Generate train of current pulses.

        Args:
            amplitude: Pulse amplitude (uA/cm^2)
            pulse_duration: Duration of each pulse (ms)
            pulse_period: Period between pulse starts (ms)
            n_pulses: Number of pulses
            t_start: Time of first pulse (ms)
            duration: Total duration (ms)
            dt: Time step (ms)
        """
        active = np.zeros(step_count(duration, dt), dtype=bool)
        for i in range(n_pulses):
            pulse_start = t_start + i * pulse_period
            active |= Stimulus.pulse(1.0, pulse_start, pulse_duration, duration, dt) > 0.0
        return np.where(active, float(amplitude), 0.0)

    @staticmethod
    def ramp(start_amplitude: float, end_amplitude: float,
             duration: float, dt: float) -> np.ndarray:
        """Linearly ramping current from start_amplitude to end_amplitude."""
        return np.linspace(start_amplitude, end_amplitude, step_count(duration, dt))

    @staticmethod
    def noisy(mean: float, std: float, duration: float, dt: float,
              seed: Optional[int] = None) -> np.ndarray:
        """
        Gaussian white-noise current, reproducible for a given seed.

        Args:
            mean: Mean current (uA/cm^2)
            std: Standard deviation (uA/cm^2)
            duration: Total duration (ms)
            dt: Time step (ms)
            seed: Random seed for reproducibility
        """
        rng = np.random.default_rng(seed)
        return rng.normal(mean, std, step_count(duration, dt))
