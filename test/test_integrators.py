"""
Tests for the fixed-step integrators.
"""

import numpy as np
import pytest

from hh_cell import (
    ExponentialEuler, ForwardEuler, NeuronConfig, NeuronState, RK4,
    SimulationParameterError, get_integrator, steady_state,
)
from hh_cell.kinetics import GATES, gating_rates


PASSIVE = NeuronConfig(g_Na=0.0, g_K=0.0, g_KCa=0.0, g_leak=0.5, E_leak=-60.0, C_m=2.0)


def passive_voltage(V0, I_ext, t, config=PASSIVE):
    """Closed-form membrane potential of a leak-only membrane."""
    V_inf = config.E_leak + I_ext / config.g_leak
    return V_inf + (V0 - V_inf) * np.exp(-t * config.g_leak / config.C_m)


def run(integrator, state, dt, n_steps, I_ext):
    y = state.data.copy()
    for _ in range(n_steps):
        y = integrator.advance(y, dt, I_ext)
    return y


class TestRegistry:

    def test_lookup_by_name(self, squid_config):
        assert isinstance(get_integrator('rk4', squid_config), RK4)
        assert isinstance(get_integrator('RK4', squid_config), RK4)
        assert isinstance(get_integrator('exponential_euler', squid_config), ExponentialEuler)
        assert isinstance(get_integrator('expeuler', squid_config), ExponentialEuler)
        assert isinstance(get_integrator('euler', squid_config), ForwardEuler)

    @pytest.mark.parametrize("name", ['rk45', '', None])
    def test_unknown_integrator(self, squid_config, name):
        with pytest.raises(SimulationParameterError, match="Unknown integrator"):
            get_integrator(name, squid_config)

    def test_step_size_bounds_scale_with_temperature(self, squid_config):
        assert RK4.max_stable_dt(squid_config) == pytest.approx(0.025)
        assert ExponentialEuler.max_stable_dt(squid_config) == pytest.approx(0.1)
        warm = squid_config.with_temperature(16.3)
        assert RK4.max_stable_dt(warm) == pytest.approx(0.025 / 3.0)


class TestStepContract:

    def test_step_returns_new_state(self, squid_config, integrator_name):
        integrator = get_integrator(integrator_name, squid_config)
        state = NeuronState.at_steady_state(-65.0, t=3.0)
        before = state.data.copy()

        new = integrator.step(state, 0.01, 10.0)

        assert isinstance(new, NeuronState)
        assert new.t == pytest.approx(3.01)
        np.testing.assert_array_equal(state.data, before)
        assert new.V > state.V

    def test_batched_states(self, squid_config, integrator_name):
        integrator = get_integrator(integrator_name, squid_config)
        batch = np.stack([NeuronState.at_steady_state(V).data for V in (-70.0, -60.0, -50.0)])
        stepped = integrator.advance(batch, 0.01, 5.0)

        single = get_integrator(integrator_name, squid_config)
        for k in range(3):
            np.testing.assert_allclose(
                stepped[k], single.advance(batch[k], 0.01, 5.0), rtol=1e-13)


class TestRK4:

    def test_passive_membrane_accuracy(self):
        state = NeuronState.at_steady_state(-70.0)
        y = run(RK4(PASSIVE), state, 0.01, 1000, 2.0)
        assert y[0] == pytest.approx(passive_voltage(-70.0, 2.0, 10.0), abs=1e-10)

    def test_fourth_order_on_passive_membrane(self):
        state = NeuronState.at_steady_state(-70.0)
        exact = passive_voltage(-70.0, 2.0, 20.0)
        err_coarse = abs(run(RK4(PASSIVE), state, 1.0, 20, 2.0)[0] - exact)
        err_fine = abs(run(RK4(PASSIVE), state, 0.5, 40, 2.0)[0] - exact)
        assert 12.0 < err_coarse / err_fine < 20.0

    def test_rest_is_fixed_point(self, squid_config):
        from hh_cell import rest_state
        state = rest_state(squid_config)
        y = run(RK4(squid_config), state, 0.01, 500, 0.0)
        assert y[0] == pytest.approx(state.V, abs=1e-6)


class TestExponentialEuler:

    def test_passive_membrane_exact(self):
        state = NeuronState.at_steady_state(-70.0)
        y = run(ExponentialEuler(PASSIVE), state, 0.5, 20, 2.0)
        assert y[0] == pytest.approx(passive_voltage(-70.0, 2.0, 10.0), abs=1e-10)

    def test_no_open_conductance(self):
        config = NeuronConfig(g_Na=0.0, g_K=0.0, g_KCa=0.0, g_leak=0.0, C_m=2.0)
        state = NeuronState.from_values(-65.0, 0.1, 0.5, 0.3)
        y = ExponentialEuler(config).advance(state.data, 0.1, 5.0)
        assert y[0] == pytest.approx(-65.0 + 0.1 * 5.0 / 2.0)

    def test_gate_update_is_exact_relaxation(self, squid_config):
        warm = squid_config.with_temperature(16.3)
        state = NeuronState.from_values(-40.0, 0.2, 0.5, 0.4, 0.3, 0.8)
        y = ExponentialEuler(warm).advance(state.data, 0.05, 0.0)

        alpha, beta = gating_rates(-40.0, warm.rate_factor)
        for i, gate in enumerate(GATES):
            x_inf = steady_state(gate, -40.0)
            expected = x_inf + (state.gates[i] - x_inf) * np.exp(-0.05 * (alpha[i] + beta[i]))
            assert y[i + 1] == pytest.approx(expected, rel=1e-12)

    @pytest.mark.parametrize("dt", [0.5, 5.0, 50.0])
    def test_gates_bounded_for_any_step(self, squid_config, dt):
        state = NeuronState.from_values(20.0, 0.0, 1.0, 0.0, 0.0, 1.0)
        y = ExponentialEuler(squid_config).advance(state.data, dt, 0.0)
        assert np.all(np.isfinite(y))
        assert np.all((y[1:] >= 0.0) & (y[1:] <= 1.0))


class TestForwardEuler:

    def test_first_order_on_passive_membrane(self):
        state = NeuronState.at_steady_state(-70.0)
        exact = passive_voltage(-70.0, 2.0, 10.0)
        err_coarse = abs(run(ForwardEuler(PASSIVE), state, 0.1, 100, 2.0)[0] - exact)
        err_fine = abs(run(ForwardEuler(PASSIVE), state, 0.05, 200, 2.0)[0] - exact)
        assert 1.8 < err_coarse / err_fine < 2.2
