"""
Trace Format Definitions

Defines the memory access trace formats accepted by the cache simulator.
"""

import logging
import struct
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterator, Optional, BinaryIO, TextIO

logger = logging.getLogger(__name__)


@dataclass
class MemoryAccessRecord:
    """Single memory access from a trace."""
    pc: int              # Program counter of the load/store
    address: int         # Byte address accessed
    is_write: bool = False

    # Optional metadata
    instruction_count: Optional[int] = None

    @property
    def is_read(self) -> bool:
        return not self.is_write


def _parse_int(text: str) -> int:
    """Parse a hex (0x-prefixed) or decimal integer."""
    if text.lower().startswith('0x'):
        return int(text, 16)
    return int(text)


class TraceFormat(ABC):
    """Abstract base class for trace formats."""

    @abstractmethod
    def parse(self, file_handle) -> Iterator[MemoryAccessRecord]:
        """
        Parse trace file and yield access records.

        Args:
            file_handle: Open file handle

        Yields:
            MemoryAccessRecord for each memory access in trace
        """
        pass

    @abstractmethod
    def get_format_name(self) -> str:
        """Return format name."""
        pass

    @property
    def is_text(self) -> bool:
        return False


class SimpleTextFormat(TraceFormat):
    """
    Simple text trace format.

    Format: PC ADDRESS [R|W]
    Example:
        0x400100 0x7fff0040 R
        0x400108 0x7fff0080 W
    """

    WRITE_MARKERS = ('W', 'S', 'STORE', 'WRITE', '1')

    def get_format_name(self) -> str:
        return "SimpleText"

    @property
    def is_text(self) -> bool:
        return True

    def parse(self, file_handle: TextIO) -> Iterator[MemoryAccessRecord]:
        """Parse simple text format."""
        for line_num, line in enumerate(file_handle, 1):
            line = line.strip()

            # Skip empty lines and comments
            if not line or line.startswith('#'):
                continue

            parts = line.split()
            if len(parts) < 2:
                logger.debug("line %d: expected 'PC ADDRESS [R|W]', skipped", line_num)
                continue

            try:
                pc = _parse_int(parts[0])
                address = _parse_int(parts[1])
            except ValueError:
                logger.debug("line %d: malformed record %r, skipped", line_num, line)
                continue

            is_write = len(parts) >= 3 and parts[2].upper() in self.WRITE_MARKERS

            yield MemoryAccessRecord(
                pc=pc,
                address=address,
                is_write=is_write
            )


class ChampSimLoadFormat(TraceFormat):
    """
    Load trace of (ip, address) pairs.

    Binary format: 16-byte little-endian records, two uint64 values each.
    Records with a zero ip, zero address, or an address beyond 48 bits are
    skipped.
    """

    RECORD_SIZE = 16
    MAX_ADDRESS = 1 << 48

    def get_format_name(self) -> str:
        return "ChampSimLoad"

    def parse(self, file_handle: BinaryIO) -> Iterator[MemoryAccessRecord]:
        count = 0
        while True:
            data = file_handle.read(self.RECORD_SIZE)
            if len(data) < self.RECORD_SIZE:
                break

            ip, address = struct.unpack('<QQ', data)
            count += 1

            if ip == 0 or address == 0 or address >= self.MAX_ADDRESS:
                continue

            yield MemoryAccessRecord(
                pc=ip,
                address=address,
                instruction_count=count
            )

    @classmethod
    def pack(cls, pc: int, address: int) -> bytes:
        """Encode one record."""
        return struct.pack('<QQ', pc, address)
