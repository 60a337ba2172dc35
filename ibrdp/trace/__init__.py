# Trace Package
from .parser import TraceParser, AccessTrace, create_sample_trace, generate_accesses
from .formats import TraceFormat, MemoryAccessRecord, SimpleTextFormat, ChampSimLoadFormat

__all__ = [
    'TraceParser',
    'AccessTrace',
    'create_sample_trace',
    'generate_accesses',
    'TraceFormat',
    'MemoryAccessRecord',
    'SimpleTextFormat',
    'ChampSimLoadFormat'
]
