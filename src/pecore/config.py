"""
PE Core Configuration Module

This module defines the configuration dataclass for the Processing Element (PE)
model. All build parameters are specified here and propagate through the
codec, the functional units and the pipeline.

Note: a PE build uses exactly one element format. The integer format models
the truncating fixed-width datapath; the floating format models IEEE-754
single precision with every element occupying a 32-bit bus slot.
"""

from dataclasses import dataclass
from enum import Enum

DEFAULT_NORM_EPSILON = 1e-5
"""Stabilizing constant added to the variance before the square root."""

LEGACY_NORM_EPSILON = 1e-8
"""Epsilon of the first-generation integer normalization datapath."""

NATIVE_INT_BITS = 32
"""Width of the native integer the integer datapath assembles elements into."""


class ElementFormat(Enum):
    """Numeric encoding of one element on the packed vector bus."""

    INTEGER = 0  # low DATA_WIDTH bits, native truncation
    FLOAT32 = 1  # IEEE-754 single precision, 32-bit slots


class MacMode(Enum):
    """
    Reduction performed by the MAC array on each enabled tick.

    - ROW_SCALED_WEIGHT_SUM: acc[r] = B[r] * sum(W). This is the literal
      behaviour of the hardware datapath and the default.
    - TEMPORAL_DOT_PRODUCT: acc[r] += B[r] * W[r]. Streaming K operand pairs
      over K enabled ticks accumulates a K-term dot product per row.
    """

    ROW_SCALED_WEIGHT_SUM = 0
    TEMPORAL_DOT_PRODUCT = 1


@dataclass
class PEConfig:
    """
    Configuration for the Processing Element model.

    Example:
        >>> config = PEConfig(data_width=8, element_format=ElementFormat.INTEGER)
        >>> print(config.bus_width)  # 64 (8 elements * 8 bits)
        >>> print(config.acc_bits)  # 24 (2 * 8 + 8)
    """

    # =========================================================================
    # Bus Geometry
    # =========================================================================
    data_width: int = 32
    """Bit width of one element slot on the packed bus (DATA_WIDTH)."""

    vector_width: int = 8
    """Number of elements on each external bus (VECTOR_WIDTH)."""

    # =========================================================================
    # MAC Array Geometry
    # =========================================================================
    mac_rows: int = 8
    """Number of MAC output rows; also the internal stage vector length."""

    mac_cols: int = 8
    """Number of weight elements reduced per row."""

    mac_mode: MacMode = MacMode.ROW_SCALED_WEIGHT_SUM
    """Reduction performed by the MAC array (see MacMode)."""

    # =========================================================================
    # Numerics
    # =========================================================================
    element_format: ElementFormat = ElementFormat.FLOAT32
    """Element encoding on the bus (mutually exclusive per build)."""

    norm_epsilon: float = DEFAULT_NORM_EPSILON
    """Epsilon added to the variance by the normalization unit."""

    # =========================================================================
    # Computed Properties
    # =========================================================================
    @property
    def bus_width(self) -> int:
        """Width in bits of each packed external vector."""
        return self.data_width * self.vector_width

    @property
    def mac_output_bits(self) -> int:
        """Width in bits of the packed MAC/stage output vector."""
        return self.data_width * self.mac_rows

    @property
    def acc_bits(self) -> int:
        """Signed accumulator width used by the integer MAC array."""
        return 2 * self.data_width + 8

    @property
    def is_float(self) -> bool:
        """True if elements are IEEE-754 single precision."""
        return self.element_format is ElementFormat.FLOAT32

    def __post_init__(self):
        """Validate configuration parameters."""
        assert self.data_width > 0, "data_width must be positive"
        assert self.vector_width > 0, "vector_width must be positive"
        assert self.mac_rows > 0, "mac_rows must be positive"
        assert self.mac_cols > 0, "mac_cols must be positive"
        assert self.norm_epsilon >= 0, "norm_epsilon must be non-negative"
        if self.element_format is ElementFormat.FLOAT32:
            assert self.data_width == 32, "FLOAT32 elements require data_width == 32"
        else:
            assert self.data_width <= NATIVE_INT_BITS, (
                f"INTEGER elements are at most {NATIVE_INT_BITS} bits wide"
            )


# Pre-defined configurations
FP32_CONFIG = PEConfig()
"""IEEE-754 single precision, 8 elements, 8x8 MAC array."""

DEFAULT_CONFIG = FP32_CONFIG
"""Default configuration."""

INT8_CONFIG = PEConfig(
    data_width=8,
    element_format=ElementFormat.INTEGER,
)
"""8-bit truncating integer datapath."""

INT16_CONFIG = PEConfig(
    data_width=16,
    element_format=ElementFormat.INTEGER,
)
"""16-bit truncating integer datapath."""

LEGACY_INT8_CONFIG = PEConfig(
    data_width=8,
    element_format=ElementFormat.INTEGER,
    norm_epsilon=LEGACY_NORM_EPSILON,
)
"""8-bit integer datapath with the first-generation normalization epsilon."""
