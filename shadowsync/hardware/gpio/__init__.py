"""
GPIO output drivers
"""

from .output import GPIOOutput, OutputHandle, OutputProvider, RPiGPIOProvider
from .simulated import SimulatedOutput, SimulatedOutputProvider

__all__ = [
    "GPIOOutput",
    "OutputHandle",
    "OutputProvider",
    "RPiGPIOProvider",
    "SimulatedOutput",
    "SimulatedOutputProvider",
]
