"""
Quantization and Transform Functions

Converts wide magnitudes (access counts, reuse distances, addresses,
program counters) into the narrow codes stored in hardware fields.
"""

from typing import Optional


# ============================================================================
# Configuration Presets
# ============================================================================

# 8-bit timestamps and predictions, 512-access quanta (~128K access window)
QUANTIZATION_DEFAULT = {
    'quantum_timestamp': 512,
    'max_value_timestamp': 255,
    'quantum_prediction': 512,
    'max_value_prediction': 255,
    'pc_bits': 16,
    'address_bits': 24,
}

# Narrow fields for small caches and unit tests
QUANTIZATION_SMALL = {
    'quantum_timestamp': 16,
    'max_value_timestamp': 63,
    'quantum_prediction': 16,
    'max_value_prediction': 63,
    'pc_bits': 12,
    'address_bits': 16,
}


def fold_bits(value: int, bits: int) -> int:
    """
    XOR-fold an arbitrarily wide value down to `bits` bits.

    Every chunk of `bits` bits is XORed into the result, so high-order
    bits still influence the code.
    """
    mask = (1 << bits) - 1
    value = abs(int(value))
    folded = 0
    while value:
        folded ^= value & mask
        value >>= bits
    return folded


def bits_for(max_value: int) -> int:
    """Number of bits needed to store values in [0, max_value]."""
    return max(1, int(max_value).bit_length())


class Quantizer:
    """
    Linear quantizer for timestamps and reuse-distance predictions.

    quantize(x)   = min(x // quantum, max_value)
    unquantize(q) = q * quantum

    Round-tripping loses at most one quantum of resolution for values
    below the saturation point.
    """

    def __init__(self, config: Optional[dict] = None):
        config = config or QUANTIZATION_DEFAULT

        self.quantum_timestamp = config.get('quantum_timestamp', 512)
        self.max_value_timestamp = config.get('max_value_timestamp', 255)
        self.quantum_prediction = config.get('quantum_prediction', 512)
        self.max_value_prediction = config.get('max_value_prediction', 255)
        self.pc_bits = config.get('pc_bits', 16)
        self.address_bits = config.get('address_bits', 24)

        for key in ('quantum_timestamp', 'max_value_timestamp',
                    'quantum_prediction', 'max_value_prediction',
                    'pc_bits', 'address_bits'):
            if getattr(self, key) <= 0:
                raise ValueError(f"{key} must be positive, got {getattr(self, key)}")

        # Field widths
        self.timestamp_bits = bits_for(self.max_value_timestamp)
        self.prediction_bits = bits_for(self.max_value_prediction)

    @property
    def max_reuse_distance(self) -> int:
        """One larger than the longest reuse distance stored without truncation."""
        return (self.max_value_prediction + 1) * self.quantum_prediction

    # --- Timestamps ---

    def quantize_timestamp(self, value: int) -> int:
        return min(value // self.quantum_timestamp, self.max_value_timestamp)

    def unquantize_timestamp(self, code: int) -> int:
        # Codes above max_value_timestamp are legal here: the victim search
        # un-quantizes a wrapped "now" of up to 2 * (max + 1).
        return int(code) * self.quantum_timestamp

    # --- Predictions ---

    def quantize_prediction(self, value: int) -> int:
        return min(value // self.quantum_prediction, self.max_value_prediction)

    def unquantize_prediction(self, code: int) -> int:
        return int(code) * self.quantum_prediction

    # --- Transforms ---

    def transform_pc(self, pc: int) -> int:
        """Reduce a program counter to the predictor's key space."""
        return fold_bits(pc, self.pc_bits)

    def transform_address(self, address: int) -> int:
        """Reduce a block address to the sampler's key space."""
        return fold_bits(address, self.address_bits)

    def to_dict(self) -> dict:
        return {
            'quantum_timestamp': self.quantum_timestamp,
            'max_value_timestamp': self.max_value_timestamp,
            'quantum_prediction': self.quantum_prediction,
            'max_value_prediction': self.max_value_prediction,
            'pc_bits': self.pc_bits,
            'address_bits': self.address_bits,
        }
