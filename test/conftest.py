"""
Pytest fixtures and configuration for hh_cell tests.
"""

import pytest

from hh_cell import Neuron, NeuronConfig, PRESETS, Stimulus


@pytest.fixture
def squid_config():
    """Fixture providing the squid-axon parameter set."""
    return NeuronConfig.preset('squid_axon')


@pytest.fixture
def squid_neuron(squid_config):
    """Fixture providing a squid-axon neuron at rest."""
    neuron = Neuron(squid_config)
    neuron.initialize_rest()
    return neuron


@pytest.fixture
def step_stimulus():
    """Fixture providing a 10 uA/cm^2 step from 10 to 40 ms over 50 ms."""
    return Stimulus.step(10.0, 10.0, 40.0, 50.0, 0.01)


@pytest.fixture(params=sorted(PRESETS))
def preset_name(request):
    """Fixture iterating over every named preset."""
    return request.param


@pytest.fixture(params=['rk4', 'exponential_euler', 'euler'])
def integrator_name(request):
    """Fixture providing all available integrators."""
    return request.param


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "physiological: mark test as checking physiological behavior"
    )
    config.addinivalue_line(
        "markers", "numerical: mark test as checking numerical properties"
    )
    config.addinivalue_line(
        "markers", "accuracy: mark test as checking numerical accuracy"
    )
    config.addinivalue_line(
        "markers", "numba: mark test as requiring numba"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )
