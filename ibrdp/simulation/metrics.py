"""
Metrics Collection and Analysis

Collects and analyzes cache replacement performance metrics.
"""

import csv
import json
from dataclasses import dataclass
from typing import Dict, List, Any


@dataclass
class SimulationResults:
    """Container for simulation results."""
    trace_name: str
    accesses_simulated: int
    warmup_accesses: int
    elapsed_time: float
    policy_results: Dict[str, Dict[str, Any]]
    hardware_costs: Dict[str, Dict[str, Any]]
    config: Dict[str, Any]

    def to_dict(self) -> Dict:
        """Convert to dictionary for serialization."""
        return {
            'trace_name': self.trace_name,
            'accesses_simulated': self.accesses_simulated,
            'warmup_accesses': self.warmup_accesses,
            'elapsed_time': self.elapsed_time,
            'policy_results': self.policy_results,
            'hardware_costs': self.hardware_costs,
            'config': self.config
        }

    def get_summary(self) -> str:
        """Get text summary of results."""
        lines = [
            f"Trace: {self.trace_name}",
            f"Accesses: {self.accesses_simulated:,}",
            f"Time: {self.elapsed_time:.2f}s",
            ""
        ]

        for name, stats in self.policy_results.items():
            lines.append(f"{name}:")
            lines.append(f"  Hit rate: {stats.get('hit_rate', 0)*100:.4f}%")
            lines.append(f"  MPKA: {stats.get('mpka', 0):.4f}")

        return "\n".join(lines)


class MetricsCollector:
    """
    Collects and computes cache hit/miss metrics per policy.
    """

    def __init__(self):
        self._policies: Dict[str, PolicyMetrics] = {}
        self._per_pc_stats: Dict[str, Dict[int, PCMetrics]] = {}

    def register_policy(self, name: str) -> None:
        """Register a policy for metrics collection."""
        self._policies[name] = PolicyMetrics()
        self._per_pc_stats[name] = {}

    def record_access(self, policy_name: str, pc: int, hit: bool,
                      evicted: bool = False, is_write: bool = False,
                      collect_per_pc: bool = False) -> None:
        """
        Record an access outcome.

        Args:
            policy_name: Name of policy
            pc: Program counter
            hit: Whether the access hit
            evicted: Whether the miss evicted a valid line
            is_write: Whether the access was a store
            collect_per_pc: Whether to collect per-instruction stats
        """
        if policy_name not in self._policies:
            self.register_policy(policy_name)

        metrics = self._policies[policy_name]
        metrics.total += 1
        if hit:
            metrics.hits += 1
        else:
            metrics.misses += 1
            if evicted:
                metrics.evictions += 1
        if is_write:
            metrics.writes += 1

        if collect_per_pc:
            pc_stats = self._per_pc_stats[policy_name]
            if pc not in pc_stats:
                pc_stats[pc] = PCMetrics()
            pc_stats[pc].total += 1
            if hit:
                pc_stats[pc].hits += 1

    def get_policy_stats(self, policy_name: str) -> Dict[str, Any]:
        """Get statistics for a policy."""
        if policy_name not in self._policies:
            return {}

        metrics = self._policies[policy_name]
        return {
            'total': metrics.total,
            'hits': metrics.hits,
            'misses': metrics.misses,
            'evictions': metrics.evictions,
            'writes': metrics.writes,
            'hit_rate': metrics.hit_rate,
            'miss_rate': metrics.miss_rate,
            'mpka': metrics.mpka,
        }

    def get_per_pc_stats(self, policy_name: str) -> Dict[int, Dict]:
        """Get per-instruction statistics."""
        if policy_name not in self._per_pc_stats:
            return {}

        return {
            pc: {
                'total': m.total,
                'hits': m.hits,
                'hit_rate': m.hits / m.total if m.total > 0 else 0
            }
            for pc, m in self._per_pc_stats[policy_name].items()
        }

    def get_missing_pcs(self, policy_name: str,
                        threshold: float = 0.9,
                        min_samples: int = 10) -> List[int]:
        """
        Get instructions that almost always miss.

        Args:
            policy_name: Policy to analyze
            threshold: Miss rate threshold
            min_samples: Minimum accesses for a PC to be considered

        Returns:
            List of PCs, worst first
        """
        per_pc = self._per_pc_stats.get(policy_name, {})

        missing = []
        for pc, metrics in per_pc.items():
            if metrics.total >= min_samples:
                miss_rate = 1.0 - (metrics.hits / metrics.total)
                if miss_rate >= threshold:
                    missing.append((miss_rate, pc))

        return [pc for _, pc in sorted(missing, reverse=True)]

    def reset(self) -> None:
        """Reset all metrics."""
        for metrics in self._policies.values():
            metrics.reset()

        for name in self._per_pc_stats:
            self._per_pc_stats[name].clear()

    def get_comparison_table(self) -> str:
        """Get comparison table as formatted string."""
        if not self._policies:
            return "No policies registered"

        lines = [
            "Policy Comparison:",
            "-" * 60,
            f"{'Policy':<20} {'Hit rate':>12} {'MPKA':>10} {'Misses':>12}",
            "-" * 60
        ]

        for name, metrics in self._policies.items():
            lines.append(
                f"{name:<20} {metrics.hit_rate*100:>11.4f}% {metrics.mpka:>10.4f} "
                f"{metrics.misses:>12,}"
            )

        lines.append("-" * 60)
        return "\n".join(lines)


@dataclass
class PolicyMetrics:
    """Metrics for a single policy."""
    total: int = 0
    hits: int = 0
    misses: int = 0
    evictions: int = 0
    writes: int = 0

    @property
    def hit_rate(self) -> float:
        if self.total == 0:
            return 0.0
        return self.hits / self.total

    @property
    def miss_rate(self) -> float:
        if self.total == 0:
            return 0.0
        return self.misses / self.total

    @property
    def mpka(self) -> float:
        """Misses per 1000 accesses."""
        if self.total == 0:
            return 0.0
        return (self.misses / self.total) * 1000

    def reset(self) -> None:
        self.total = 0
        self.hits = 0
        self.misses = 0
        self.evictions = 0
        self.writes = 0


@dataclass
class PCMetrics:
    """Metrics for a single instruction."""
    total: int = 0
    hits: int = 0


class ResultsExporter:
    """Export simulation results to various formats."""

    @staticmethod
    def to_csv(results: SimulationResults, filepath: str) -> None:
        """Export results to CSV."""
        with open(filepath, 'w', newline='') as f:
            writer = csv.writer(f)

            writer.writerow(['Metric', 'Value'])
            writer.writerow(['Trace', results.trace_name])
            writer.writerow(['Accesses', results.accesses_simulated])
            writer.writerow(['Time (s)', results.elapsed_time])
            writer.writerow([])

            for name, stats in results.policy_results.items():
                writer.writerow([f'{name} - Hit rate', stats.get('hit_rate', 0)])
                writer.writerow([f'{name} - MPKA', stats.get('mpka', 0)])
                writer.writerow([f'{name} - Misses', stats.get('misses', 0)])

    @staticmethod
    def to_json(results: SimulationResults, filepath: str) -> None:
        """Export results to JSON."""
        with open(filepath, 'w') as f:
            json.dump(results.to_dict(), f, indent=2, default=str)

    @staticmethod
    def to_latex_table(results: List[SimulationResults]) -> str:
        """Generate LaTeX table of hit rates from results."""
        if not results:
            return ""

        policy_names = list(results[0].policy_results.keys())

        lines = [
            r"\begin{table}[htbp]",
            r"\centering",
            r"\caption{Cache Hit Rates}",
            r"\begin{tabular}{l" + "c" * len(policy_names) + "}",
            r"\hline",
            "Trace & " + " & ".join(policy_names) + r" \\",
            r"\hline"
        ]

        for result in results:
            values = [
                f"{result.policy_results[name].get('hit_rate', 0)*100:.2f}"
                for name in policy_names
            ]
            lines.append(
                f"{result.trace_name} & " + " & ".join(values) + r" \\"
            )

        lines.extend([
            r"\hline",
            r"\end{tabular}",
            r"\end{table}"
        ])

        return "\n".join(lines)
