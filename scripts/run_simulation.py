#!/usr/bin/env python3
"""
Run a single trace through IbRDP and the baseline policies.

Usage:
    python run_simulation.py --trace data/traces/mixed.trace
    python run_simulation.py --trace t.bin.gz --format champsim --policies ibrdp lru
"""

import sys
from pathlib import Path
import argparse

sys.path.insert(0, str(Path(__file__).parent.parent))

from ibrdp.simulation.metrics import ResultsExporter
from ibrdp.simulation.simulator import CacheSimulator, SimulationConfig
from ibrdp.utils.helpers import (
    load_config, save_results, setup_logging, create_policy_from_config
)


def main():
    parser = argparse.ArgumentParser(description='Simulate one memory access trace')
    parser.add_argument('--trace', '-t', type=str, required=True,
                        help='Trace file (optionally gz/xz/bz2 compressed)')
    parser.add_argument('--format', '-f', type=str, default=None,
                        help='Trace format (text, champsim); auto-detected if omitted')
    parser.add_argument('--config', '-c', type=str, default='config/default.yaml',
                        help='YAML run configuration')
    parser.add_argument('--policies', '-p', nargs='+', default=None,
                        help='Policies to simulate (overrides config)')
    parser.add_argument('--output', '-o', type=str, default='results',
                        help='Output directory')
    parser.add_argument('--latex', action='store_true',
                        help='Print a LaTeX table of hit rates')

    args = parser.parse_args()

    config = load_config(args.config)
    log_settings = config.get('logging') or {}
    setup_logging(log_settings.get('level', 'INFO'), log_settings.get('file'))

    simulator = CacheSimulator(SimulationConfig(**(config.get('simulation') or {})))
    for name in args.policies or config.get('policies') or ['ibrdp', 'lru']:
        simulator.add_policy(name, create_policy_from_config(config, name))

    results = simulator.run(args.trace, trace_format=args.format)

    print(simulator.metrics.get_comparison_table())
    if args.latex:
        print(ResultsExporter.to_latex_table([results]))

    paths = save_results(results.to_dict(), args.output,
                         name=Path(args.trace).stem, formats=('json',))
    print(f"\nResults saved to: {paths['json']}")


if __name__ == '__main__':
    main()
