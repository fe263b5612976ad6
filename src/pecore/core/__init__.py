"""
Processing Element building blocks.

This module contains the PE datapath:
- InstructionDecoder / decode_instruction: opcode and subtype decode
- MACArray / MACArraySim: accumulate-and-hold MAC array
- ActivationUnitSim: per-element nonlinearity
- NormalizationUnitSim: per-vector layer/RMS normalization
- PESim: the composed pipeline with its output mux

Components named *Sim are behavioural models; the others are Amaranth RTL.
"""

from .activation import ActivationUnitSim, apply_activation
from .decoder import DecodedInstruction, InstructionDecoder, Stage, decode_instruction
from .mac_array import MACArray, MACArraySim, row_scaled_weight_sum, temporal_dot_product
from .normalization import NormalizationUnitSim, normalize, vector_statistics
from .pe import PEInputs, PEOutputs, PESim, PEState

__all__ = [
    # Pipeline
    "PESim",
    "PEInputs",
    "PEOutputs",
    "PEState",
    # Decoder
    "InstructionDecoder",
    "DecodedInstruction",
    "Stage",
    "decode_instruction",
    # MAC array
    "MACArray",
    "MACArraySim",
    "row_scaled_weight_sum",
    "temporal_dot_product",
    # Activation
    "ActivationUnitSim",
    "apply_activation",
    # Normalization
    "NormalizationUnitSim",
    "normalize",
    "vector_statistics",
]
