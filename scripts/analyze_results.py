#!/usr/bin/env python3
"""
Analyze simulation results and generate visualizations.

Usage:
    python analyze_results.py --results results/
    python analyze_results.py --results "results/results_*.json" --compare --plot
"""

import argparse
import json
from pathlib import Path
from typing import List, Dict
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))


def load_results(results_dir: Path) -> List[Dict]:
    """Load all SimulationResults JSON files from directory."""
    results = []

    for result_file in sorted(results_dir.glob("*.json")):
        with open(result_file) as f:
            data = json.load(f)
        if 'policy_results' not in data:
            continue
        data['_filename'] = result_file.name
        results.append(data)

    return results


def _policy_names(results: List[Dict]) -> List[str]:
    names = set()
    for r in results:
        names.update(r.get('policy_results', {}).keys())
    return sorted(names)


def print_summary(results: List[Dict]) -> None:
    """Print summary of results."""
    print("\n" + "="*70)
    print("RESULTS SUMMARY")
    print("="*70)

    for result in results:
        print(f"\n{result.get('trace_name', 'Unknown')}:")
        print(f"  Accesses: {result.get('accesses_simulated', 0):,}")
        print(f"  Time: {result.get('elapsed_time', 0):.2f}s")

        for name, stats in result.get('policy_results', {}).items():
            print(f"\n  {name}:")
            print(f"    Hit rate: {stats.get('hit_rate', 0)*100:.4f}%")
            print(f"    MPKA: {stats.get('mpka', 0):.4f}")

            sampler = stats.get('policy_stats', {}).get('sampler')
            if sampler:
                print(f"    Sampler: {sampler.get('matches', 0):,} matches, "
                      f"{sampler.get('censored', 0):,} censored")


def generate_comparison_table(results: List[Dict]) -> str:
    """Generate hit rate comparison table in markdown format."""
    if not results:
        return "No results to compare"

    names = _policy_names(results)

    lines = [
        "| Trace | " + " | ".join(names) + " |",
        "|" + "---|" * (len(names) + 1)
    ]

    for result in results:
        trace_name = Path(result.get('trace_name', 'Unknown')).stem
        values = []
        for name in names:
            stats = result.get('policy_results', {}).get(name, {})
            hit_rate = stats.get('hit_rate', float('nan'))
            values.append(f"{hit_rate*100:.2f}%")

        lines.append(f"| {trace_name} | " + " | ".join(values) + " |")

    return "\n".join(lines)


def plot_results(results: List[Dict], output_dir: Path) -> None:
    """Generate hit rate bar chart from results."""
    import matplotlib.pyplot as plt
    import numpy as np

    if not results:
        return

    output_dir.mkdir(parents=True, exist_ok=True)
    names = _policy_names(results)

    fig, ax = plt.subplots(figsize=(12, 6))

    x = np.arange(len(results))
    width = 0.8 / len(names)

    for i, name in enumerate(names):
        values = [
            result.get('policy_results', {}).get(name, {}).get('hit_rate', 0) * 100
            for result in results
        ]
        offset = (i - len(names)/2 + 0.5) * width
        ax.bar(x + offset, values, width, label=name)

    ax.set_xlabel('Trace')
    ax.set_ylabel('Hit rate (%)')
    ax.set_title('Cache Hit Rate Comparison')
    ax.set_xticks(x)
    ax.set_xticklabels([Path(r.get('trace_name', '')).stem for r in results],
                       rotation=45, ha='right')
    ax.legend()
    ax.grid(axis='y', alpha=0.3)

    plt.tight_layout()
    plt.savefig(output_dir / 'hit_rate_comparison.png', dpi=150)
    plt.close()

    print(f"Plot saved to {output_dir / 'hit_rate_comparison.png'}")


def main():
    parser = argparse.ArgumentParser(description="Analyze simulation results")
    parser.add_argument('--results', '-r', type=str, required=True,
                        help='Results directory or file pattern')
    parser.add_argument('--output', '-o', type=str, default='results/analysis',
                        help='Output directory for analysis')
    parser.add_argument('--compare', '-c', action='store_true',
                        help='Generate comparison table')
    parser.add_argument('--plot', '-p', action='store_true',
                        help='Generate plots (requires matplotlib)')

    args = parser.parse_args()

    results_path = Path(args.results)
    output_dir = Path(args.output)

    if results_path.is_dir():
        results = load_results(results_path)
    else:
        results = []
        for f in sorted(Path('.').glob(args.results)):
            with open(f) as fp:
                results.append(json.load(fp))

    if not results:
        print("No results found")
        return

    print(f"Loaded {len(results)} result file(s)")

    print_summary(results)

    if args.compare:
        print("\n" + "="*70)
        print("COMPARISON TABLE (Markdown)")
        print("="*70)
        print(generate_comparison_table(results))

    if args.plot:
        plot_results(results, output_dir)


if __name__ == "__main__":
    main()
