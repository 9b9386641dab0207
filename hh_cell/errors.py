"""
Exception and warning types raised by the simulation engine.
"""


class HHCellError(Exception):
    """Base class for all errors raised by hh_cell."""


class ConfigurationError(HHCellError, ValueError):
    """Malformed neuron configuration or initial state."""


class SimulationParameterError(HHCellError, ValueError):
    """Invalid run parameters (duration, dt, stimulus, integrator name)."""


class DomainError(HHCellError, ValueError):
    """Analysis query outside its mathematical domain."""


class RestStateError(HHCellError, RuntimeError):
    """The resting steady state could not be located."""


class NumericalInstabilityError(HHCellError, ArithmeticError):
    """
    Non-finite value produced during integration.

    Attributes:
        step_index: Index of the step that produced the bad state (1-based,
            step 0 being the initial state)
        time: Simulation time at the end of that step (ms)
        variables: Names of the state variables that are not finite
    """

    def __init__(self, step_index: int, time: float, variables=()):
        self.step_index = step_index
        self.time = time
        self.variables = tuple(variables)
        names = ", ".join(self.variables) if self.variables else "state"
        super().__init__(
            f"Non-finite {names} at step {step_index} (t = {time:.6g} ms). "
            f"Retry with a smaller dt or the exponential_euler integrator."
        )


class StepSizeWarning(UserWarning):
    """Time step exceeds the documented bound for the chosen integrator."""
