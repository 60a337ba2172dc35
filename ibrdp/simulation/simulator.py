"""
Cache Replacement Simulator

Main simulation engine for evaluating replacement policies.
"""

import logging
import time
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Union
from dataclasses import dataclass, asdict
import numpy as np
from tqdm import tqdm

from ..components.block_store import SetAssociativeCache
from ..policies.base import BaseReplacementPolicy
from ..trace.parser import TraceParser
from ..trace.formats import MemoryAccessRecord
from .metrics import MetricsCollector, SimulationResults

logger = logging.getLogger(__name__)


@dataclass
class SimulationConfig:
    """Configuration for simulation run."""
    warmup_accesses: int = 100000
    simulation_accesses: int = 1000000
    cache_size_kb: float = 1024
    line_size: int = 64
    associativity: int = 16
    verbose: bool = True
    log_interval: int = 100000
    collect_per_pc_stats: bool = False


class CacheSimulator:
    """
    Cache Replacement Simulator.

    Replays a memory access trace through one cache per policy. All caches
    share the same geometry and see the same access stream.
    """

    def __init__(self, config: Union[SimulationConfig, dict]):
        """
        Initialize simulator.

        Args:
            config: Simulation configuration
        """
        if isinstance(config, dict):
            self.config = SimulationConfig(**config)
        else:
            self.config = config

        # Policies to evaluate, each with its own cache
        self.policies: Dict[str, BaseReplacementPolicy] = {}
        self.caches: Dict[str, SetAssociativeCache] = {}

        # Metrics collector
        self.metrics = MetricsCollector()

        # Trace parser
        self.parser = TraceParser()

        # State
        self.accesses_processed = 0
        self.warmup_complete = False

    def add_policy(self, name: str, policy: BaseReplacementPolicy) -> None:
        """Add a policy to evaluate."""
        self.policies[name] = policy
        self.caches[name] = SetAssociativeCache(
            policy,
            size_kb=self.config.cache_size_kb,
            line_size=self.config.line_size,
            associativity=self.config.associativity
        )
        self.metrics.register_policy(name)

    def run(self, trace_path: Union[str, Path],
            trace_format: Optional[str] = None) -> SimulationResults:
        """
        Run simulation on a trace file.

        Args:
            trace_path: Path to trace file
            trace_format: Optional format hint

        Returns:
            SimulationResults with all metrics
        """
        trace_path = Path(trace_path)

        if trace_format:
            self.parser = TraceParser(format_name=trace_format)

        trace_info = self.parser.get_trace_info(trace_path)

        if self.config.verbose:
            print(f"\n{'='*60}")
            print(f"Cache Replacement Simulation")
            print(f"{'='*60}")
            print(f"Trace: {trace_path.name}")
            print(f"Format: {trace_info.format}")
            print(f"Estimated accesses: {trace_info.estimated_accesses:,}")
            print(f"Cache: {self.config.cache_size_kb} KB, "
                  f"{self.config.associativity}-way, {self.config.line_size} B lines")
            print(f"Policies: {list(self.policies.keys())}")
            print(f"{'='*60}\n")

        total_accesses = (self.config.warmup_accesses +
                          self.config.simulation_accesses)
        records = self.parser.parse_file(trace_path, max_accesses=total_accesses)

        results = self._simulate(records, total_accesses, str(trace_path))

        if self.config.verbose:
            self._print_results(results)

        return results

    def run_on_trace(self, trace: Iterable[MemoryAccessRecord],
                     name: str = "memory") -> SimulationResults:
        """
        Run simulation on pre-loaded accesses.

        Args:
            trace: AccessTrace or any iterable of MemoryAccessRecord
            name: Trace name reported in the results

        Returns:
            SimulationResults
        """
        total = self.config.warmup_accesses + self.config.simulation_accesses
        if hasattr(trace, '__len__'):
            total = min(len(trace), total)

        return self._simulate(trace, total, name)

    def _simulate(self, records: Iterable[MemoryAccessRecord],
                  total: int, trace_name: str) -> SimulationResults:
        self._reset()
        start_time = time.time()

        if self.config.verbose:
            progress = tqdm(records, total=total, desc="Simulating", unit="accesses")
        else:
            progress = records

        try:
            for record in progress:
                if self.accesses_processed >= total:
                    break
                self._process_access(record)

                if (self.config.verbose and self.config.log_interval and
                        self.accesses_processed % self.config.log_interval == 0):
                    self._log_progress(trace_name)

        except KeyboardInterrupt:
            logger.warning("Simulation interrupted by user after %d accesses",
                           self.accesses_processed)

        elapsed_time = time.time() - start_time
        return self._compile_results(trace_name, elapsed_time)

    def _process_access(self, record: MemoryAccessRecord) -> None:
        """Process a single memory access."""
        self.accesses_processed += 1

        in_warmup = self.accesses_processed <= self.config.warmup_accesses

        if not in_warmup and not self.warmup_complete:
            self.warmup_complete = True
            # Reset metrics after warmup; replacement state is kept
            self.metrics.reset()
            logger.info("Warmup complete after %d accesses",
                        self.config.warmup_accesses)

        for name, cache in self.caches.items():
            evictions = cache.evictions
            hit = cache.access(record.address, record.pc, record.is_write)

            if not in_warmup:
                self.metrics.record_access(
                    name, record.pc, hit,
                    evicted=cache.evictions > evictions,
                    is_write=record.is_write,
                    collect_per_pc=self.config.collect_per_pc_stats
                )

    def _reset(self) -> None:
        """Reset simulator state."""
        self.metrics.reset()
        self.accesses_processed = 0
        self.warmup_complete = False

        # Reset caches (and their policies)
        for cache in self.caches.values():
            cache.reset()

    def _compile_results(self, trace_source: Union[str, Path],
                         elapsed_time: float) -> SimulationResults:
        """Compile simulation results."""
        policy_results = {}
        for name, policy in self.policies.items():
            stats = self.metrics.get_policy_stats(name)
            stats['policy_stats'] = policy.get_statistics()
            policy_results[name] = stats

        return SimulationResults(
            trace_name=str(trace_source),
            accesses_simulated=max(0, self.accesses_processed - self.config.warmup_accesses),
            warmup_accesses=self.config.warmup_accesses,
            elapsed_time=elapsed_time,
            policy_results=policy_results,
            hardware_costs={
                name: policy.get_hardware_cost()
                for name, policy in self.policies.items()
            },
            config=asdict(self.config)
        )

    def _log_progress(self, trace_name: str) -> None:
        """Log progress during simulation."""
        if not self.warmup_complete or not self.policies:
            return

        measured = self.accesses_processed - self.config.warmup_accesses
        if measured <= 0:
            return

        # Quick stats for first policy
        first = next(iter(self.policies))
        stats = self.metrics.get_policy_stats(first)

        tqdm.write(f"Accesses: {measured:,} | "
                   f"{first} hit rate: {stats.get('hit_rate', 0)*100:.2f}% | "
                   f"MPKA: {stats.get('mpka', 0):.2f} | {trace_name}")

    def _print_results(self, results: SimulationResults) -> None:
        """Print final results."""
        print(f"\n{'='*60}")
        print("SIMULATION RESULTS")
        print(f"{'='*60}")
        print(f"Accesses simulated: {results.accesses_simulated:,}")
        print(f"Time elapsed: {results.elapsed_time:.2f}s")
        if results.elapsed_time > 0:
            print(f"Speed: {results.accesses_simulated/results.elapsed_time:,.0f} accesses/sec")
        print()

        for name, stats in results.policy_results.items():
            print(f"\n{name}:")
            print(f"  Hit rate: {stats.get('hit_rate', 0)*100:.4f}%")
            print(f"  MPKA: {stats.get('mpka', 0):.4f}")
            print(f"  Misses: {stats.get('misses', 0):,}")

            hw = results.hardware_costs.get(name, {})
            print(f"  Hardware: {hw.get('total_kb', 0):.2f} KB")
            print(f"  Policy: {self.policies[name].get_stats()}")

        print(f"\n{'='*60}")


class ComparativeSimulator:
    """
    Run comparative simulations across multiple traces and policies.
    """

    def __init__(self, config: SimulationConfig):
        self.config = config
        self.results: List[SimulationResults] = []

    def run_comparison(self,
                       traces: List[Union[str, Path]],
                       policy_factories: Dict[str, Callable[[], BaseReplacementPolicy]]) -> Dict:
        """
        Run comparison across traces.

        Args:
            traces: List of trace file paths
            policy_factories: Policy name -> callable building a fresh policy

        Returns:
            Aggregated results
        """
        self.results = []

        for trace in traces:
            sim = CacheSimulator(self.config)

            for name, factory in policy_factories.items():
                sim.add_policy(name, factory())

            self.results.append(sim.run(trace))

        return self._aggregate_results(self.results)

    def _aggregate_results(self,
                           results: List[SimulationResults]) -> Dict:
        """Aggregate results across traces."""
        if not results:
            return {}

        policy_names = list(results[0].policy_results.keys())

        aggregated = {
            'traces': [r.trace_name for r in results],
            'total_accesses': sum(r.accesses_simulated for r in results),
            'total_time': sum(r.elapsed_time for r in results),
            'per_policy': {}
        }

        for name in policy_names:
            hit_rates = [r.policy_results[name].get('hit_rate', 0)
                         for r in results]
            mpka_values = [r.policy_results[name].get('mpka', 0)
                           for r in results]

            aggregated['per_policy'][name] = {
                'avg_hit_rate': float(np.mean(hit_rates)),
                'std_hit_rate': float(np.std(hit_rates)),
                'avg_mpka': float(np.mean(mpka_values)),
                'per_trace_hit_rate': dict(zip(aggregated['traces'], hit_rates))
            }

        return aggregated
