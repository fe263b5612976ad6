"""
PE Core - a cycle-level model of an instruction-driven Processing Element.

The PE chains a MAC array, an activation unit and a normalization unit
behind a packed vector bus and a valid/ready handshake. Behavioural models
are written with NumPy; the integer decoder and MAC array also exist as
Amaranth HDL components.
"""

from .config import (
    DEFAULT_CONFIG,
    DEFAULT_NORM_EPSILON,
    FP32_CONFIG,
    INT8_CONFIG,
    INT16_CONFIG,
    LEGACY_INT8_CONFIG,
    ElementFormat,
    MacMode,
    PEConfig,
)
from .core import PEInputs, PEOutputs, PESim, PEState

__version__ = "0.1.0"
__all__ = [
    "PEConfig",
    "ElementFormat",
    "MacMode",
    "DEFAULT_CONFIG",
    "DEFAULT_NORM_EPSILON",
    "FP32_CONFIG",
    "INT8_CONFIG",
    "INT16_CONFIG",
    "LEGACY_INT8_CONFIG",
    "PESim",
    "PEInputs",
    "PEOutputs",
    "PEState",
    "__version__",
]
