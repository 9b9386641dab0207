"""
Spike detection and firing-rate analysis of voltage traces.

These functions only need the (time, V) samples of a trace; they hold no
state between calls, so the same trace can be analysed any number of times.
"""

import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np

from .config import NeuronConfig
from .errors import DomainError
from .neuron import Neuron


@dataclass(frozen=True)
class SpikeEvent:
    """
    One action potential.

    Attributes:
        peak_time: Time of the voltage maximum (ms)
        peak_voltage: Voltage at the maximum (mV)
        onset_time: Interpolated upward threshold crossing (ms)
        index: Sample index of the peak in the trace
    """
    peak_time: float
    peak_voltage: float
    onset_time: float
    index: int


def _samples(trace):
    if hasattr(trace, 'time') and hasattr(trace, 'V'):
        time, voltage = trace.time, trace.V
    else:
        time, voltage = trace
    time = np.asarray(time, dtype=np.float64)
    voltage = np.asarray(voltage, dtype=np.float64)
    if time.ndim != 1 or time.shape != voltage.shape:
        raise DomainError(
            f"time and V must be 1-D arrays of equal length, got {time.shape} and {voltage.shape}")
    return time, voltage


def threshold_crossings(voltage: np.ndarray, threshold: float):
    """
    Indices of upward and downward threshold crossings.

    Upward: V[i-1] < threshold <= V[i]; downward: V[i-1] >= threshold > V[i].
    Each returned index is the first sample on the new side.
    """
    above = voltage >= threshold
    rising = np.flatnonzero(~above[:-1] & above[1:]) + 1
    falling = np.flatnonzero(above[:-1] & ~above[1:]) + 1
    return rising, falling


def interpolate_crossing(time: np.ndarray, voltage: np.ndarray,
                         index: int, threshold: float) -> float:
    """Linearly interpolate the threshold crossing between samples index-1 and index."""
    if index == 0:
        return float(time[0])
    v0 = voltage[index - 1]
    v1 = voltage[index]
    t0 = time[index - 1]
    t1 = time[index]
    if abs(v1 - v0) > 1e-10:
        return float(t0 + (threshold - v0) / (v1 - v0) * (t1 - t0))
    return float(t0)


def detect_spikes(trace, threshold: float = 0.0,
                  min_interval: Optional[float] = None) -> List[SpikeEvent]:
    """
    Detect action potentials by threshold crossing.

    A spike is an excursion that rises through threshold and falls back
    below it; its event is placed at the voltage maximum of the excursion.
    An excursion already above threshold at the first sample, or still above
    it at the last sample, is not reported.

    Args:
        trace: SimulationTrace or a (time, V) pair of arrays
        threshold: Detection threshold (mV)
        min_interval: Minimum time (ms) between the onsets of two reported
            spikes; later events inside the window are dropped

    Returns:
        List of SpikeEvent in time order (possibly empty)
    """
    time, voltage = _samples(trace)
    if len(voltage) < 2:
        return []

    rising, falling = threshold_crossings(voltage, threshold)
    spikes = []
    for r in rising:
        j = np.searchsorted(falling, r, side='right')
        if j == len(falling):
            break
        f = falling[j]
        peak = r + int(np.argmax(voltage[r:f]))
        onset = interpolate_crossing(time, voltage, r, threshold)

        if min_interval is not None and spikes and onset - spikes[-1].onset_time < min_interval:
            continue
        spikes.append(SpikeEvent(
            peak_time=float(time[peak]),
            peak_voltage=float(voltage[peak]),
            onset_time=onset,
            index=peak,
        ))
    return spikes


def firing_rate(spikes: Sequence, duration: float) -> float:
    """
    Compute mean firing rate.

    Args:
        spikes: Spike events (or spike times)
        duration: Total duration of recording (ms)

    Returns:
        Mean firing rate (Hz)

    Raises:
        DomainError: duration is not a positive finite number
    """
    if not math.isfinite(duration) or duration <= 0:
        raise DomainError(f"Firing rate needs a positive duration, got {duration} ms")

    # Convert ms to seconds for Hz
    return len(spikes) / (duration / 1000.0)


def spike_times(spikes: Sequence[SpikeEvent]) -> np.ndarray:
    """Peak times of the given events (ms)."""
    return np.array([s.peak_time for s in spikes], dtype=np.float64)


def isi_statistics(spikes: Sequence[SpikeEvent]) -> Dict[str, float]:
    """
    Compute basic spike train statistics.

    Returns:
        Dictionary with:
            - 'count': number of spikes
            - 'isi_mean': mean inter-spike interval (ms)
            - 'isi_std': standard deviation of ISI (ms)
            - 'isi_cv': coefficient of variation of ISI
        ISI entries are NaN with fewer than two spikes.
    """
    stats = {'count': len(spikes)}

    if len(spikes) < 2:
        stats['isi_mean'] = np.nan
        stats['isi_std'] = np.nan
        stats['isi_cv'] = np.nan
    else:
        isis = np.diff(spike_times(spikes))
        stats['isi_mean'] = float(np.mean(isis))
        stats['isi_std'] = float(np.std(isis))
        stats['isi_cv'] = stats['isi_std'] / stats['isi_mean'] if stats['isi_mean'] > 0 else np.nan

    return stats


def fi_curve(config: NeuronConfig,
             currents: Sequence[float],
             duration: float = 1000.0,
             dt: float = 0.025,
             threshold: float = 0.0,
             integrator: str = 'exponential_euler',
             backend: str = 'numpy') -> np.ndarray:
    """
    Firing rate as a function of constant injected current.

    Each current gets an independent run from the zero-current resting state.

    Args:
        config: Neuron parameters
        currents: Injected currents (uA/cm^2)
        duration: Length of each run (ms)
        dt: Time step (ms)
        threshold: Spike detection threshold (mV)
        integrator: Integration method
        backend: 'numpy' or 'numba'

    Returns:
        Array of firing rates (Hz), one per current
    """
    rates = []
    for I in currents:
        neuron = Neuron(config)
        trace = neuron.simulate(duration, dt, I_ext=float(I), integrator=integrator,
                                record_state=False, backend=backend)
        rates.append(firing_rate(detect_spikes(trace, threshold), trace.duration))
    return np.array(rates)
