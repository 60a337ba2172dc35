# Policies Package
from .base import BaseReplacementPolicy, PolicyStats, LRUPolicy, RandomPolicy

from .ibrdp import (
    IbRDPPolicy,
    GlobalAccessState,
    IBRDP_DEFAULT,
    IBRDP_SMALL,
)


__all__ = [
    'BaseReplacementPolicy',
    'PolicyStats',
    'LRUPolicy',
    'RandomPolicy',

    'IbRDPPolicy',
    'GlobalAccessState',
    'IBRDP_DEFAULT',
    'IBRDP_SMALL',
]
