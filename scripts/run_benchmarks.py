#!/usr/bin/env python3
"""
Multi-trace benchmark runner for cache replacement evaluation.

Runs simulations across all traces in a directory and generates a
comparison report.

Usage:
    python run_benchmarks.py --trace-dir data/traces --config config/default.yaml
"""

import sys
from pathlib import Path
import argparse
import json
import time
from datetime import datetime
from concurrent.futures import ProcessPoolExecutor, as_completed
import multiprocessing

# Add project to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from ibrdp.simulation.simulator import CacheSimulator, SimulationConfig
from ibrdp.trace.parser import TraceParser
from ibrdp.utils.helpers import (
    load_config, setup_logging, create_policy_from_config, format_number
)


TRACE_PATTERNS = ('*.trace', '*.txt', '*.bin', '*.gz', '*.xz', '*.bz2')


def find_traces(base_dir: Path) -> dict:
    """Find all trace files organized by category (sub-directory)."""
    traces = {}

    for path in sorted(base_dir.rglob('*')):
        if not path.is_file():
            continue
        if not any(path.match(pattern) for pattern in TRACE_PATTERNS):
            continue
        category = path.parent.name if path.parent != base_dir else 'default'
        traces.setdefault(category, []).append(path)

    return traces


def create_policies(config: dict) -> dict:
    """Create all policy instances listed in the configuration."""
    names = config.get('policies') or ['ibrdp', 'lru']
    return {name: create_policy_from_config(config, name) for name in names}


def run_benchmark(trace_path: Path, config: dict,
                  verbose: bool = False) -> dict:
    """Run benchmark on a single trace."""
    sim_settings = dict(config.get('simulation') or {})
    sim_settings['verbose'] = verbose
    sim_config = SimulationConfig(**sim_settings)

    simulator = CacheSimulator(sim_config)
    for name, policy in create_policies(config).items():
        simulator.add_policy(name, policy)

    results = simulator.run(trace_path)

    return {
        'trace': trace_path.name,
        'accesses': results.accesses_simulated,
        'time': results.elapsed_time,
        'policies': {
            name: {
                'hit_rate': metrics.get('hit_rate', 0) * 100,
                'mpka': metrics.get('mpka', 0),
                'misses': metrics.get('misses', 0)
            }
            for name, metrics in results.policy_results.items()
        },
        'hardware_kb': {
            name: cost.get('total_kb', 0)
            for name, cost in results.hardware_costs.items()
        }
    }


def _run_benchmark_worker(args: tuple) -> dict:
    """Worker function for parallel benchmark execution.

    Args:
        args: Tuple of (trace_path, category, config, verbose)

    Returns:
        Dictionary with benchmark results or error info
    """
    trace_path, category, config, verbose = args
    try:
        result = run_benchmark(trace_path, config, verbose)
        result['category'] = category
        result['success'] = True
        return result
    except (OSError, ValueError, RuntimeError) as e:
        return {
            'trace': trace_path.name,
            'category': category,
            'success': False,
            'error': str(e)
        }


def run_all_benchmarks(trace_dir: Path,
                       config: dict,
                       max_traces_per_category: int = None,
                       verbose: bool = False,
                       num_workers: int = None) -> dict:
    """Run benchmarks on all available traces in parallel.

    Args:
        trace_dir: Directory containing trace files
        config: Full run configuration
        max_traces_per_category: Maximum traces per category (None for all)
        verbose: Enable verbose output
        num_workers: Number of parallel workers (None for auto)

    Returns:
        Dictionary with all benchmark results
    """
    traces = find_traces(trace_dir)

    if not traces:
        print(f"No traces found in {trace_dir}")
        print(f"Supported formats: {TraceParser.list_supported_formats()}")
        return {}

    if num_workers is None:
        num_workers = max(1, multiprocessing.cpu_count() - 1)

    all_results = {
        'timestamp': datetime.now().isoformat(),
        'config': config,
        'num_workers': num_workers,
        'categories': {}
    }

    all_trace_args = []
    for category, trace_files in traces.items():
        if max_traces_per_category:
            trace_files = trace_files[:max_traces_per_category]

        for trace_path in trace_files:
            all_trace_args.append((trace_path, category, config, verbose))

        all_results['categories'][category] = []

    total_traces = len(all_trace_args)
    print(f"\nRunning {total_traces} traces with {num_workers} parallel workers...")
    print("="*60)

    completed = 0
    start_time = time.time()

    with ProcessPoolExecutor(max_workers=num_workers) as executor:
        future_to_trace = {
            executor.submit(_run_benchmark_worker, args): args[0]
            for args in all_trace_args
        }

        for future in as_completed(future_to_trace):
            completed += 1
            result = future.result()
            category = result['category']

            if result['success']:
                all_results['categories'][category].append(result)
                best = max(result['policies'].items(),
                           key=lambda x: x[1]['hit_rate'])
                print(f"[{completed}/{total_traces}] {result['trace']}: "
                      f"{format_number(result['accesses'])} accesses | "
                      f"Best: {best[0]} ({best[1]['hit_rate']:.2f}% hits)")
            else:
                print(f"[{completed}/{total_traces}] {result['trace']}: Error - {result['error']}")

    elapsed = time.time() - start_time
    print(f"\nCompleted {completed} traces in {elapsed:.1f}s ({elapsed/max(completed,1):.1f}s avg)")

    return all_results


def print_summary(results: dict):
    """Print summary of all benchmark results."""

    print("\n" + "="*80)
    print("BENCHMARK SUMMARY")
    print("="*80)

    policy_totals = {}

    for category, traces in results.get('categories', {}).items():
        print(f"\n{category.upper()}:")
        print("-"*40)

        for trace_result in traces:
            print(f"  {trace_result['trace']}:")
            for name, stats in trace_result['policies'].items():
                print(f"    {name}: {stats['hit_rate']:.2f}% (MPKA: {stats['mpka']:.2f})")

                totals = policy_totals.setdefault(
                    name, {'mpka_sum': 0, 'hit_sum': 0, 'count': 0})
                totals['mpka_sum'] += stats['mpka']
                totals['hit_sum'] += stats['hit_rate']
                totals['count'] += 1

    print("\n" + "="*80)
    print("OVERALL AVERAGES")
    print("="*80)

    for name, totals in sorted(policy_totals.items(),
                               key=lambda x: x[1]['mpka_sum']):
        if totals['count'] > 0:
            avg_mpka = totals['mpka_sum'] / totals['count']
            avg_hit = totals['hit_sum'] / totals['count']
            print(f"{name:12}: Avg MPKA: {avg_mpka:7.2f} | Avg Hit rate: {avg_hit:.2f}%")


def main():
    parser = argparse.ArgumentParser(description='Run multi-trace cache benchmarks')
    parser.add_argument('--trace-dir', '-d', type=str,
                        default='data/traces',
                        help='Directory containing trace files')
    parser.add_argument('--config', '-c', type=str,
                        default='config/default.yaml',
                        help='YAML run configuration')
    parser.add_argument('--warmup', '-w', type=int, default=None,
                        help='Warmup accesses (overrides config)')
    parser.add_argument('--accesses', '-n', type=int, default=None,
                        help='Simulated accesses (overrides config)')
    parser.add_argument('--max-traces', '-m', type=int, default=None,
                        help='Max traces per category')
    parser.add_argument('--workers', '-j', type=int, default=None,
                        help='Number of parallel workers (default: CPU count - 1)')
    parser.add_argument('--output', '-o', type=str, default='results/benchmark.json',
                        help='Output JSON file')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Verbose output')

    args = parser.parse_args()

    config = load_config(args.config)
    log_settings = config.get('logging') or {}
    setup_logging(log_settings.get('level', 'INFO'), log_settings.get('file'))

    sim_settings = config.setdefault('simulation', {})
    if args.warmup is not None:
        sim_settings['warmup_accesses'] = args.warmup
    if args.accesses is not None:
        sim_settings['simulation_accesses'] = args.accesses

    trace_dir = Path(args.trace_dir)

    if not trace_dir.exists():
        print(f"Error: Trace directory not found: {trace_dir}")
        sys.exit(1)

    print(f"Running benchmarks from: {trace_dir}")
    print(f"Warmup: {sim_settings.get('warmup_accesses', 0):,} | "
          f"Accesses: {sim_settings.get('simulation_accesses', 0):,}")

    results = run_all_benchmarks(
        trace_dir,
        config,
        args.max_traces,
        args.verbose,
        args.workers
    )

    if results:
        print_summary(results)

        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, 'w') as f:
            json.dump(results, f, indent=2)

        print(f"\nResults saved to: {output_path}")


if __name__ == '__main__':
    main()
