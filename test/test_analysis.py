"""
Tests for spike detection and firing-rate analysis.
"""

import math

import numpy as np
import pytest

from hh_cell import DomainError, Neuron, SpikeEvent
from hh_cell.analysis import (
    detect_spikes, fi_curve, firing_rate, isi_statistics, spike_times,
    threshold_crossings,
)


TIME = np.arange(9.0)
VOLTAGE = np.array([-65.0, -10.0, 30.0, 10.0, -70.0, -65.0, 0.0, 20.0, -50.0])


class TestDetectSpikes:

    def test_synthetic_trace(self):
        spikes = detect_spikes((TIME, VOLTAGE), threshold=-20.0)

        assert len(spikes) == 2
        assert all(isinstance(s, SpikeEvent) for s in spikes)
        assert [s.index for s in spikes] == [2, 7]
        assert [s.peak_voltage for s in spikes] == [30.0, 20.0]
        assert [s.peak_time for s in spikes] == [2.0, 7.0]
        assert spikes[0].onset_time == pytest.approx(45.0 / 55.0)
        assert spikes[1].onset_time == pytest.approx(5.0 + 45.0 / 65.0)

    def test_crossing_indices(self):
        rising, falling = threshold_crossings(VOLTAGE, -20.0)
        assert list(rising) == [1, 6]
        assert list(falling) == [4, 8]

    def test_threshold_above_peaks(self):
        assert detect_spikes((TIME, VOLTAGE), threshold=40.0) == []

    def test_starting_above_threshold_is_not_a_spike(self):
        V = np.array([0.0, 10.0, -50.0, -60.0])
        assert detect_spikes((np.arange(4.0), V), threshold=-20.0) == []

    def test_unfinished_excursion_is_not_a_spike(self):
        V = np.array([-60.0, 0.0, 10.0])
        assert detect_spikes((np.arange(3.0), V), threshold=-20.0) == []

    def test_short_input(self):
        assert detect_spikes((np.array([0.0]), np.array([10.0]))) == []

    def test_min_interval(self):
        assert len(detect_spikes((TIME, VOLTAGE), -20.0, min_interval=6.0)) == 1
        assert len(detect_spikes((TIME, VOLTAGE), -20.0, min_interval=4.0)) == 2

    def test_repeatable(self):
        first = detect_spikes((TIME, VOLTAGE), threshold=-20.0)
        second = detect_spikes((TIME, VOLTAGE), threshold=-20.0)
        assert first == second

    def test_mismatched_arrays(self):
        with pytest.raises(DomainError):
            detect_spikes((np.arange(3.0), np.zeros(4)))

    def test_on_simulated_trace(self, squid_neuron):
        trace = squid_neuron.simulate(100.0, dt=0.01, I_ext=10.0, record_state=False)
        spikes = trace.spikes(threshold=0.0)

        assert len(spikes) >= 5
        assert all(s.peak_voltage > 0.0 for s in spikes)
        assert np.all(np.diff(spike_times(spikes)) > 5.0)
        assert 40.0 < trace.firing_rate() < 100.0


class TestRates:

    def test_firing_rate(self):
        assert firing_rate([0.0] * 5, 500.0) == pytest.approx(10.0)
        assert firing_rate([], 1000.0) == 0.0

    @pytest.mark.parametrize("duration", [0.0, -10.0, float('nan'), float('inf')])
    def test_firing_rate_domain(self, duration):
        with pytest.raises(DomainError):
            firing_rate([1.0], duration)

    def test_isi_statistics(self):
        spikes = detect_spikes((TIME, VOLTAGE), threshold=-20.0)
        stats = isi_statistics(spikes)
        assert stats['count'] == 2
        assert stats['isi_mean'] == pytest.approx(5.0)
        assert stats['isi_std'] == 0.0
        assert stats['isi_cv'] == 0.0

    def test_isi_statistics_single_spike(self):
        stats = isi_statistics(detect_spikes((TIME[:5], VOLTAGE[:5]), threshold=-20.0))
        assert stats['count'] == 1
        assert math.isnan(stats['isi_mean'])
        assert math.isnan(stats['isi_cv'])

    def test_fi_curve_shape(self, squid_config):
        rates = fi_curve(squid_config, [0.0, 15.0], duration=100.0, dt=0.025)
        assert rates.shape == (2,)
        assert rates[0] == 0.0
        assert rates[1] > 0.0

    def test_fi_curve_leaves_no_state_behind(self, squid_config):
        first = fi_curve(squid_config, [15.0], duration=50.0, dt=0.025)
        second = fi_curve(squid_config, [15.0], duration=50.0, dt=0.025)
        np.testing.assert_array_equal(first, second)
        assert Neuron(squid_config).t == 0.0
