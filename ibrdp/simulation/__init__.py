# Simulation Package
from .simulator import CacheSimulator, ComparativeSimulator, SimulationConfig
from .metrics import MetricsCollector, SimulationResults, ResultsExporter

__all__ = [
    'CacheSimulator',
    'ComparativeSimulator',
    'SimulationConfig',
    'MetricsCollector',
    'SimulationResults',
    'ResultsExporter'
]
