"""
Trace Parser

Unified trace parser supporting multiple formats.
Handles compressed traces and provides streaming interface.
"""

import gzip
import lzma
import bz2
from pathlib import Path
from typing import Iterator, Optional, List, Union
from dataclasses import dataclass

import numpy as np

from .formats import (
    TraceFormat, MemoryAccessRecord,
    SimpleTextFormat, ChampSimLoadFormat
)


@dataclass
class TraceInfo:
    """Information about a trace file."""
    path: str
    format: str
    compression: Optional[str]
    size_bytes: int
    estimated_accesses: int


class AccessTrace:
    """
    Container for memory access trace data.

    Used to replay the same trace through several simulations.
    """

    def __init__(self, records: Optional[List[MemoryAccessRecord]] = None):
        self._records = records or []

    def add(self, record: MemoryAccessRecord) -> None:
        """Add an access record."""
        self._records.append(record)

    def __iter__(self) -> Iterator[MemoryAccessRecord]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __getitem__(self, idx: int) -> MemoryAccessRecord:
        return self._records[idx]

    def get_statistics(self, line_size: int = 64) -> dict:
        """Get trace statistics."""
        if not self._records:
            return {'count': 0}

        writes = sum(1 for r in self._records if r.is_write)
        unique_pcs = len(set(r.pc for r in self._records))
        unique_lines = len(set(r.address // line_size for r in self._records))

        return {
            'count': len(self._records),
            'reads': len(self._records) - writes,
            'writes': writes,
            'write_ratio': writes / len(self._records),
            'unique_pcs': unique_pcs,
            'unique_lines': unique_lines,
            'footprint_kb': unique_lines * line_size / 1024,
        }


class TraceParser:
    """
    Unified trace parser with format detection and decompression.
    """

    # Supported formats
    FORMATS = {
        'text': SimpleTextFormat,
        'champsim': ChampSimLoadFormat,
    }

    # Compression handlers
    COMPRESSION = {
        '.gz': gzip.open,
        '.gzip': gzip.open,
        '.xz': lzma.open,
        '.bz2': bz2.open,
        '.lzma': lzma.open,
    }

    def __init__(self, format_name: Optional[str] = None):
        """
        Initialize parser.

        Args:
            format_name: Force specific format (auto-detect if None)
        """
        if format_name and format_name.lower() not in self.FORMATS:
            raise ValueError(f"Unknown trace format: {format_name}")
        self.format_name = format_name

    def parse_file(self, filepath: Union[str, Path],
                   max_accesses: Optional[int] = None,
                   skip_accesses: int = 0) -> Iterator[MemoryAccessRecord]:
        """
        Parse a trace file.

        Args:
            filepath: Path to trace file
            max_accesses: Maximum accesses to read (None = all)
            skip_accesses: Number of accesses to skip

        Yields:
            MemoryAccessRecord for each access
        """
        filepath = Path(filepath)
        compression_ext = self._compression_of(filepath)
        format_obj = self._get_format(filepath)

        # Text mode for text formats, binary for others
        if compression_ext:
            mode = 'rt' if format_obj.is_text else 'rb'
            file_handle = self.COMPRESSION[compression_ext](filepath, mode)
        elif format_obj.is_text:
            file_handle = open(filepath, 'r')
        else:
            file_handle = open(filepath, 'rb')

        try:
            count = 0
            skipped = 0

            for record in format_obj.parse(file_handle):
                if skipped < skip_accesses:
                    skipped += 1
                    continue

                yield record
                count += 1

                if max_accesses and count >= max_accesses:
                    break

        finally:
            file_handle.close()

    def load_trace(self, filepath: Union[str, Path],
                   max_accesses: Optional[int] = None,
                   skip_accesses: int = 0) -> AccessTrace:
        """
        Load entire trace into memory.

        Args:
            filepath: Path to trace file
            max_accesses: Maximum accesses to load
            skip_accesses: Accesses to skip

        Returns:
            AccessTrace with all records
        """
        records = list(self.parse_file(filepath, max_accesses, skip_accesses))
        return AccessTrace(records)

    def get_trace_info(self, filepath: Union[str, Path]) -> TraceInfo:
        """Get information about a trace file."""
        filepath = Path(filepath)

        compression = self._compression_of(filepath)
        size = filepath.stat().st_size
        format_name = self.format_name or self._detect_format(filepath)

        # Rough estimate: ~24 bytes per text line, 16 per binary record,
        # ~10x compression ratio
        bytes_per_record = 24 if format_name == 'text' else 16
        estimated = size // bytes_per_record
        if compression:
            estimated *= 10

        return TraceInfo(
            path=str(filepath),
            format=format_name,
            compression=compression[1:] if compression else None,
            size_bytes=size,
            estimated_accesses=estimated
        )

    def _compression_of(self, filepath: Path) -> Optional[str]:
        suffix = filepath.suffix.lower()
        return suffix if suffix in self.COMPRESSION else None

    def _get_format(self, filepath: Path) -> TraceFormat:
        """Get format parser for file."""
        format_name = (self.format_name or self._detect_format(filepath)).lower()
        return self.FORMATS[format_name]()

    def _detect_format(self, filepath: Path) -> str:
        """Detect trace format from filename."""
        name = filepath.name.lower()

        # Remove compression extension for detection
        for ext in self.COMPRESSION:
            if name.endswith(ext):
                name = name[:-len(ext)]
                break

        if 'champsim' in name or name.endswith(('.bin', '.champsimtrace')):
            return 'champsim'
        return 'text'

    @classmethod
    def list_supported_formats(cls) -> List[str]:
        """List supported trace formats."""
        return list(cls.FORMATS.keys())

    @classmethod
    def list_supported_compressions(cls) -> List[str]:
        """List supported compression formats."""
        return [ext[1:] for ext in cls.COMPRESSION.keys()]


def generate_accesses(num_accesses: int = 10000,
                      pattern: str = 'mixed',
                      seed: Optional[int] = 0,
                      line_size: int = 64) -> List[MemoryAccessRecord]:
    """
    Generate a synthetic access stream.

    Patterns:
        random: uniform accesses over a large footprint
        loop:   a few instructions cycling over a fixed working set
        scan:   one instruction streaming through never-reused lines
        mixed:  loop traffic randomly interleaved with a streaming scan,
                the case where reuse prediction beats LRU

    Loop lines are spread over an odd number of instructions so that
    power-of-two sampling periods still see every one of them.
    """
    rng = np.random.default_rng(seed)
    base = 0x10000000
    records = []

    loop_lines = 256
    loop_pcs = 3
    loop_next = 0
    scan_next = 0

    for i in range(num_accesses):
        if pattern == 'random':
            pc = 0x400000 + 4 * int(rng.integers(64))
            line = int(rng.integers(1 << 16))
        elif pattern == 'loop':
            line = i % loop_lines
            pc = 0x400100 + 4 * (line % loop_pcs)
        elif pattern == 'scan':
            pc = 0x400200
            line = (1 << 20) + i
        elif pattern == 'mixed':
            if rng.random() < 0.5:
                pc = 0x400200
                line = (1 << 20) + scan_next
                scan_next += 1
            else:
                line = loop_next % loop_lines
                pc = 0x400100 + 4 * (line % loop_pcs)
                loop_next += 1
        else:
            raise ValueError(f"Unknown pattern: {pattern}")

        records.append(MemoryAccessRecord(
            pc=pc,
            address=base + line * line_size,
            is_write=bool(rng.random() < 0.1)
        ))

    return records


def create_sample_trace(filepath: Union[str, Path],
                        num_accesses: int = 10000,
                        pattern: str = 'mixed',
                        seed: Optional[int] = 0) -> None:
    """
    Create a sample trace file in the simple text format.

    Args:
        filepath: Output path
        num_accesses: Number of accesses to generate
        pattern: Pattern type ('random', 'loop', 'scan', 'mixed')
        seed: Random seed
    """
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    with open(filepath, 'w') as f:
        f.write("# Sample memory access trace\n")
        f.write("# Format: PC ADDRESS R|W\n")

        for record in generate_accesses(num_accesses, pattern, seed):
            kind = 'W' if record.is_write else 'R'
            f.write(f"0x{record.pc:x} 0x{record.address:x} {kind}\n")
