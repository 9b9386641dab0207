"""
Gating kinetics: voltage-dependent opening (alpha) and closing (beta) rates.

All rates are in 1/ms at the reference temperature of the config; V is in mV.
Every function accepts scalars or numpy arrays.
"""

import numpy as np


GATES = ('m', 'h', 'n', 'a', 'b')

# Below this |x/y| the rational term is replaced by its series expansion
VTRAP_EPS = 1e-7


def vtrap(x, y):
    """
    Evaluate x / (1 - exp(-x/y)) without the removable singularity at x = 0.

    Uses expm1 for accuracy near zero and the limit y * (1 + x/(2y)) inside
    |x/y| < VTRAP_EPS.
    """
    x = np.asarray(x, dtype=np.float64)
    u = x / y
    small = np.abs(u) < VTRAP_EPS
    u_safe = np.where(small, 1.0, u)
    result = np.where(
        small,
        y * (1.0 + 0.5 * u),
        x / -np.expm1(-u_safe)
    )
    return result if result.ndim else float(result)


# Following Hodgkin & Huxley 1952 formulation (m, h, n)

def alpha_m(V):
    """
    Sodium activation rate (m gate).

    alpha_m = 0.1 * (V + 40) / (1 - exp(-(V + 40) / 10)), -> 1.0 at V = -40
    """
    return 0.1 * vtrap(V + 40.0, 10.0)


def beta_m(V):
    """beta_m = 4.0 * exp(-(V + 65) / 18)"""
    return 4.0 * np.exp(-(V + 65.0) / 18.0)


def alpha_h(V):
    """
    Sodium inactivation rate (h gate).

    alpha_h = 0.07 * exp(-(V + 65) / 20)
    """
    return 0.07 * np.exp(-(V + 65.0) / 20.0)


def beta_h(V):
    """beta_h = 1.0 / (1 + exp(-(V + 35) / 10))"""
    return 1.0 / (1.0 + np.exp(-(V + 35.0) / 10.0))


def alpha_n(V):
    """
    Potassium activation rate (n gate).

    alpha_n = 0.01 * (V + 55) / (1 - exp(-(V + 55) / 10)), -> 0.1 at V = -55
    """
    return 0.01 * vtrap(V + 55.0, 10.0)


def beta_n(V):
    """beta_n = 0.125 * exp(-(V + 65) / 80)"""
    return 0.125 * np.exp(-(V + 65.0) / 80.0)


# Slow adaptation current: a activates over tens of ms, b inactivates over
# hundreds of ms.

def alpha_a(V):
    """
    Adaptation current activation rate (a gate).

    alpha_a = 0.002 * (V + 30) / (1 - exp(-(V + 30) / 10)), -> 0.02 at V = -30
    """
    return 0.002 * vtrap(V + 30.0, 10.0)


def beta_a(V):
    """beta_a = 0.025 * exp(-(V + 65) / 80)"""
    return 0.025 * np.exp(-(V + 65.0) / 80.0)


def alpha_b(V):
    """
    Adaptation current inactivation rate (b gate).

    alpha_b = 0.001 * exp(-(V + 65) / 20)
    """
    return 0.001 * np.exp(-(V + 65.0) / 20.0)


def beta_b(V):
    """beta_b = 0.005 / (1 + exp(-(V + 30) / 10))"""
    return 0.005 / (1.0 + np.exp(-(V + 30.0) / 10.0))


RATE_FUNCTIONS = {
    'm': (alpha_m, beta_m),
    'h': (alpha_h, beta_h),
    'n': (alpha_n, beta_n),
    'a': (alpha_a, beta_a),
    'b': (alpha_b, beta_b),
}


def steady_state(gate: str, V):
    """x_inf(V) = alpha / (alpha + beta); independent of temperature."""
    alpha, beta = RATE_FUNCTIONS[gate]
    a = alpha(V)
    b = beta(V)
    return a / (a + b)


def time_constant(gate: str, V, phi: float = 1.0):
    """tau_x(V) = 1 / (phi * (alpha + beta)) in ms."""
    alpha, beta = RATE_FUNCTIONS[gate]
    return 1.0 / (phi * (alpha(V) + beta(V)))


def gating_rates(V, phi: float = 1.0):
    """
    Temperature-scaled rates for every gate.

    Args:
        V: Membrane potential (scalar or array)
        phi: Temperature factor from NeuronConfig.rate_factor

    Returns:
        Tuple (alpha, beta) of arrays with a leading axis of length 5 in
        state order (m, h, n, a, b)
    """
    alpha = np.stack([np.asarray(RATE_FUNCTIONS[g][0](V), dtype=np.float64) for g in GATES])
    beta = np.stack([np.asarray(RATE_FUNCTIONS[g][1](V), dtype=np.float64) for g in GATES])
    return phi * alpha, phi * beta
