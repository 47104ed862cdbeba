from .base import SimulatorException, SimulationError, SimulationResult
from .scipyode import ScipyOdeSimulator
from .gillespie import GillespieSimulator
from .tauleap import TauLeapingSimulator

__all__ = ['ScipyOdeSimulator', 'GillespieSimulator', 'TauLeapingSimulator',
           'SimulationResult', 'SimulatorException', 'SimulationError']
