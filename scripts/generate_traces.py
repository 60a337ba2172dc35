#!/usr/bin/env python3
"""
Generate synthetic memory access traces.

Usage:
    python generate_traces.py --output data/traces/synthetic --accesses 200000
"""

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from ibrdp.trace.parser import create_sample_trace

PATTERNS = ('random', 'loop', 'scan', 'mixed')


def main():
    parser = argparse.ArgumentParser(description="Generate synthetic traces")
    parser.add_argument('--output', '-o', type=str, required=True,
                        help='Output directory')
    parser.add_argument('--accesses', '-n', type=int, default=100000,
                        help='Accesses per trace')
    parser.add_argument('--patterns', nargs='+', default=list(PATTERNS),
                        choices=PATTERNS, help='Patterns to generate')
    parser.add_argument('--seed', '-s', type=int, default=0,
                        help='Random seed')

    args = parser.parse_args()

    output_dir = Path(args.output)
    for pattern in args.patterns:
        path = output_dir / f"{pattern}.trace"
        create_sample_trace(path, args.accesses, pattern, args.seed)
        print(f"Wrote {args.accesses:,} accesses to {path}")


if __name__ == "__main__":
    main()
