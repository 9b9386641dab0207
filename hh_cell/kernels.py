"""
Numba-compiled single-neuron kernels.

Scalar re-implementations of hh_cell.kinetics / hh_cell.models used by the
'numba' backend of the Simulator, where per-step Python overhead dominates.
Formulas and summation order match the NumPy path.
"""

import math

import numpy as np
from numba import njit

from .config import NeuronConfig


METHOD_RK4 = 0
METHOD_EXPONENTIAL_EULER = 1

METHODS = {
    'rk4': METHOD_RK4,
    'exponential_euler': METHOD_EXPONENTIAL_EULER,
    'expeuler': METHOD_EXPONENTIAL_EULER,
}


def pack_config(config: NeuronConfig) -> np.ndarray:
    """Flatten the electrical parameters into the array layout the kernels expect."""
    return np.array([
        config.g_Na, config.g_K, config.g_KCa, config.g_leak,
        config.E_Na, config.E_K, config.E_leak, config.C_m,
    ], dtype=np.float64)


@njit
def vtrap(x, y):
    u = x / y
    if abs(u) < 1e-7:
        return y * (1.0 + 0.5 * u)
    return x / -math.expm1(-u)


@njit
def rates(V, phi, alpha, beta):
    """Fill alpha/beta (length 5, order m, h, n, a, b) at potential V."""
    alpha[0] = phi * 0.1 * vtrap(V + 40.0, 10.0)
    beta[0] = phi * 4.0 * math.exp(-(V + 65.0) / 18.0)
    alpha[1] = phi * 0.07 * math.exp(-(V + 65.0) / 20.0)
    beta[1] = phi * 1.0 / (1.0 + math.exp(-(V + 35.0) / 10.0))
    alpha[2] = phi * 0.01 * vtrap(V + 55.0, 10.0)
    beta[2] = phi * 0.125 * math.exp(-(V + 65.0) / 80.0)
    alpha[3] = phi * 0.002 * vtrap(V + 30.0, 10.0)
    beta[3] = phi * 0.025 * math.exp(-(V + 65.0) / 80.0)
    alpha[4] = phi * 0.001 * math.exp(-(V + 65.0) / 20.0)
    beta[4] = phi * 0.005 / (1.0 + math.exp(-(V + 30.0) / 10.0))


@njit
def derivatives_single(y, I_ext, p, phi, alpha, beta, out):
    V = y[0]
    rates(V, phi, alpha, beta)
    for i in range(5):
        x = y[i + 1]
        out[i + 1] = alpha[i] * (1.0 - x) - beta[i] * x

    I_Na = p[0] * (y[1] ** 3) * y[2] * (V - p[4])
    I_K = p[1] * (y[3] ** 4) * (V - p[5])
    I_KCa = p[2] * y[4] * y[5] * (V - p[5])
    I_leak = p[3] * (V - p[6])
    I_ion = ((I_Na + I_K) + I_KCa) + I_leak
    out[0] = (I_ext - I_ion) / p[7]


@njit
def rk4_step(y, I_ext, dt, p, phi, alpha, beta, k, tmp):
    derivatives_single(y, I_ext, p, phi, alpha, beta, k[0])
    for j in range(6):
        tmp[j] = y[j] + 0.5 * dt * k[0, j]
    derivatives_single(tmp, I_ext, p, phi, alpha, beta, k[1])
    for j in range(6):
        tmp[j] = y[j] + 0.5 * dt * k[1, j]
    derivatives_single(tmp, I_ext, p, phi, alpha, beta, k[2])
    for j in range(6):
        tmp[j] = y[j] + dt * k[2, j]
    derivatives_single(tmp, I_ext, p, phi, alpha, beta, k[3])
    for j in range(6):
        y[j] = y[j] + (dt / 6.0) * (k[0, j] + 2.0 * k[1, j] + 2.0 * k[2, j] + k[3, j])


@njit
def exponential_euler_step(y, I_ext, dt, p, phi, alpha, beta):
    V = y[0]
    g_Na = p[0] * (y[1] ** 3) * y[2]
    g_K = p[1] * (y[3] ** 4)
    g_KCa = p[2] * y[4] * y[5]
    g_total = ((g_Na + g_K) + g_KCa) + p[3]
    drive = ((g_Na * p[4] + g_K * p[5]) + g_KCa * p[5]) + p[3] * p[6]
    if g_total > 0.0:
        V_inf = (I_ext + drive) / g_total
        V_new = V_inf + (V - V_inf) * math.exp(-dt * g_total / p[7])
    else:
        V_new = V + dt * I_ext / p[7]

    rates(V, phi, alpha, beta)
    for i in range(5):
        total = alpha[i] + beta[i]
        x_inf = alpha[i] / total
        y[i + 1] = x_inf + (y[i + 1] - x_inf) * math.exp(-dt * total)
    y[0] = V_new


@njit
def integrate(y0, stimulus, dt, n_steps, record_every, p, phi, method, out, final):
    """
    Run n_steps of the chosen method from y0.

    Args:
        y0: Initial state (6,)
        stimulus: External current for each step (n_steps,)
        dt: Time step (ms)
        n_steps: Number of steps
        record_every: Sampling stride; the final step is always recorded
        p: Packed parameters from pack_config
        phi: Temperature factor
        method: METHOD_RK4 or METHOD_EXPONENTIAL_EULER
        out: Preallocated (n_records, 6) output
        final: Preallocated (6,) array receiving the last computed state

    Returns:
        0 on success, otherwise the index of the first step that produced a
        non-finite state (out holds the records up to the previous sample)
    """
    y = y0.copy()
    alpha = np.empty(5)
    beta = np.empty(5)
    k = np.empty((4, 6))
    tmp = np.empty(6)

    out[0, :] = y
    r = 1
    for i in range(n_steps):
        if method == METHOD_RK4:
            rk4_step(y, stimulus[i], dt, p, phi, alpha, beta, k, tmp)
        else:
            exponential_euler_step(y, stimulus[i], dt, p, phi, alpha, beta)
        for j in range(6):
            if not math.isfinite(y[j]):
                final[:] = y
                return i + 1
        step = i + 1
        if step % record_every == 0 or step == n_steps:
            out[r, :] = y
            r += 1
    final[:] = y
    return 0
