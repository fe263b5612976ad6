"""
PE instruction set definitions.

Instruction Format (32 bits):
    Bits    Field
    31:28   opcode   - Stage to enable (IDLE, MAC, ACTIVATION, NORMALIZATION)
    27:8    reserved - Ignored by the decoder
    7:0     subtype  - Activation function or normalization mode

A single subtype field serves both the activation unit and the
normalization unit; whichever stage the opcode enables interprets it.
Opcodes 4-15 are undefined and behave like IDLE (raw passthrough).
"""

from enum import IntEnum

OPCODE_SHIFT = 28
OPCODE_MASK = 0xF
SUBTYPE_MASK = 0xFF
INSTRUCTION_BITS = 32


class Opcode(IntEnum):
    """PE opcodes (instruction bits 31:28)."""

    IDLE = 0  # Passthrough of vector A
    MAC = 1  # MAC array recomputes its accumulators
    ACTIVATION = 2  # Activation unit transforms the MAC output
    NORMALIZATION = 3  # Normalization unit rescales the activation output


class ActivationType(IntEnum):
    """Activation function selected by the subtype field."""

    IDENTITY = 0  # Any value outside 1..4 also means identity
    RELU = 1
    GELU = 2
    SIGMOID = 3
    TANH = 4


class NormType(IntEnum):
    """Normalization mode selected by the subtype field."""

    LAYER = 0  # Any value other than RMS also means LAYER
    RMS = 1


def encode_instruction(opcode: int, subtype: int = 0) -> int:
    """
    Build a 32-bit instruction word.

    Args:
        opcode: Opcode value (0-15; only 0-3 are defined)
        subtype: Subtype value (0-255)

    Returns:
        Instruction word with opcode in bits 31:28 and subtype in bits 7:0.
    """
    if not 0 <= opcode <= OPCODE_MASK:
        raise ValueError(f"opcode must be in 0..{OPCODE_MASK}, got {opcode}")
    if not 0 <= subtype <= SUBTYPE_MASK:
        raise ValueError(f"subtype must be in 0..{SUBTYPE_MASK}, got {subtype}")
    return (opcode << OPCODE_SHIFT) | subtype


def make_idle() -> int:
    """Create an IDLE (passthrough) instruction."""
    return encode_instruction(Opcode.IDLE)


def make_mac() -> int:
    """Create a MAC instruction."""
    return encode_instruction(Opcode.MAC)


def make_activation(kind: int = ActivationType.RELU) -> int:
    """Create an ACTIVATION instruction selecting `kind`."""
    return encode_instruction(Opcode.ACTIVATION, kind)


def make_normalization(kind: int = NormType.LAYER) -> int:
    """Create a NORMALIZATION instruction selecting `kind`."""
    return encode_instruction(Opcode.NORMALIZATION, kind)
