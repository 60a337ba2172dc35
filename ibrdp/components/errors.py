"""
Error Types

Errors raised by the replacement-policy components.
"""


class InvariantViolation(RuntimeError):
    """
    Internal bookkeeping of a hardware structure has been corrupted.

    Raised when an LRU stack or FIFO position permutation is broken.
    The simulation cannot continue meaningfully after this.
    """
