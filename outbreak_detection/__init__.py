"""
Outbreak Detection Package

Monte Carlo estimation of the probability that periodic testing of staff,
with imperfect test sensitivity, detects an outbreak spreading over a contact
network. Outbreaks are simulated first; the sample paths are then replayed
against a daily testing schedule.
"""

__version__ = "0.1.0"
__author__ = "Author"

from outbreak_detection.config import ExperimentConfig, SimulationParameters
from outbreak_detection.network import Network, NetworkView
from outbreak_detection.simulation import (
    EpidemicSimulator,
    SimulationOutput,
    SimulationRuns,
    simulate,
)
from outbreak_detection.analysis import (
    DetectionAnalyzer,
    StatisticalOutput,
    TestingOrder,
    build_schedule,
)
from outbreak_detection.errors import (
    PolicyMismatchWarning,
    UnsupportedPolicyError,
    ValidationError,
)

__all__ = [
    "ExperimentConfig",
    "SimulationParameters",
    "Network",
    "NetworkView",
    "EpidemicSimulator",
    "SimulationOutput",
    "SimulationRuns",
    "simulate",
    "DetectionAnalyzer",
    "StatisticalOutput",
    "TestingOrder",
    "build_schedule",
    "PolicyMismatchWarning",
    "UnsupportedPolicyError",
    "ValidationError",
]
