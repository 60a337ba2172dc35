# Components Package
from .block_store import CacheBlock, SetAssociativeCache
from .errors import InvariantViolation
from .predictor import ReuseDistancePredictor
from .quantization import Quantizer, QUANTIZATION_DEFAULT, QUANTIZATION_SMALL
from .sampler import ReuseDistanceSampler

__all__ = [
    'CacheBlock',
    'SetAssociativeCache',
    'InvariantViolation',
    'ReuseDistancePredictor',
    'Quantizer',
    'QUANTIZATION_DEFAULT',
    'QUANTIZATION_SMALL',
    'ReuseDistanceSampler'
]
