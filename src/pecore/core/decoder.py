"""
Instruction Decoder - maps an instruction word to the PE stage selection.

The decoder is pure combinational logic: it holds no state and is
re-evaluated on every tick, so an opcode change takes effect on the same
tick it is presented.

    instruction[31:28] ──▶ opcode ──┬──▶ mac_enable        (opcode == 1)
                                    ├──▶ activation_enable (opcode == 2)
                                    └──▶ norm_enable       (opcode == 3)
    instruction[7:0]   ──▶ subtype ─┬──▶ activation_type
                                    └──▶ norm_type
    rst_n ───────────────────────────▶ ready

The behavioural model decodes into a tagged Stage; the three one-hot enables
are derived from it. InstructionDecoder is the synthesizable equivalent.
"""

from dataclasses import dataclass
from enum import Enum

from amaranth import Module, Signal, unsigned
from amaranth.lib.wiring import Component, In, Out

from ..isa import INSTRUCTION_BITS, OPCODE_MASK, OPCODE_SHIFT, SUBTYPE_MASK, Opcode


class Stage(Enum):
    """Functional unit selected by an instruction."""

    IDLE = 0
    MAC = 1
    ACTIVATION = 2
    NORMALIZATION = 3


_OPCODE_STAGE = {
    Opcode.IDLE: Stage.IDLE,
    Opcode.MAC: Stage.MAC,
    Opcode.ACTIVATION: Stage.ACTIVATION,
    Opcode.NORMALIZATION: Stage.NORMALIZATION,
}


@dataclass(frozen=True)
class DecodedInstruction:
    """
    Result of decoding one instruction word.

    Attributes:
        stage: Enabled functional unit (IDLE if none)
        subtype: Shared activation/normalization selector (0-255)
        opcode: Raw opcode field, kept for tracing undefined opcodes
    """

    stage: Stage = Stage.IDLE
    subtype: int = 0
    opcode: int = 0

    @property
    def mac_enable(self) -> bool:
        return self.stage is Stage.MAC

    @property
    def activation_enable(self) -> bool:
        return self.stage is Stage.ACTIVATION

    @property
    def norm_enable(self) -> bool:
        return self.stage is Stage.NORMALIZATION

    @property
    def enables(self) -> tuple[bool, bool, bool]:
        """(mac_enable, activation_enable, norm_enable)."""
        return (self.mac_enable, self.activation_enable, self.norm_enable)


def decode_instruction(instruction: int) -> DecodedInstruction:
    """
    Decode a 32-bit instruction word.

    Undefined opcodes (4-15) decode to Stage.IDLE.

    Args:
        instruction: Instruction word

    Returns:
        DecodedInstruction with the selected stage and subtype.
    """
    if not 0 <= instruction < (1 << INSTRUCTION_BITS):
        raise ValueError(f"instruction must be a {INSTRUCTION_BITS}-bit word, got {instruction:#x}")
    opcode = (instruction >> OPCODE_SHIFT) & OPCODE_MASK
    stage = _OPCODE_STAGE.get(opcode, Stage.IDLE)
    return DecodedInstruction(stage=stage, subtype=instruction & SUBTYPE_MASK, opcode=opcode)


def ready_out(rst_n: bool) -> bool:
    """PE readiness: asserted whenever reset is released, regardless of occupancy."""
    return bool(rst_n)


class InstructionDecoder(Component):
    """
    RTL instruction decoder.

    Ports:
        instruction: 32-bit instruction word
        rst_n: Active-low reset

        mac_enable: Opcode selects the MAC array
        activation_enable: Opcode selects the activation unit
        norm_enable: Opcode selects the normalization unit
        activation_type: Subtype routed to the activation unit
        norm_type: Subtype routed to the normalization unit
        ready: PE can accept an operation (reset released)
    """

    def __init__(self):
        super().__init__(
            {
                # Inputs
                "instruction": In(unsigned(INSTRUCTION_BITS)),
                "rst_n": In(1),
                # Outputs
                "mac_enable": Out(1),
                "activation_enable": Out(1),
                "norm_enable": Out(1),
                "activation_type": Out(unsigned(8)),
                "norm_type": Out(unsigned(8)),
                "ready": Out(1),
            }
        )

    def elaborate(self, _platform):
        m = Module()

        opcode = Signal(unsigned(4), name="opcode")
        subtype = Signal(unsigned(8), name="subtype")

        m.d.comb += [
            opcode.eq(self.instruction[OPCODE_SHIFT:INSTRUCTION_BITS]),
            subtype.eq(self.instruction[:8]),
        ]

        # One-hot stage enables; undefined opcodes leave all three low
        m.d.comb += [
            self.mac_enable.eq(opcode == Opcode.MAC.value),
            self.activation_enable.eq(opcode == Opcode.ACTIVATION.value),
            self.norm_enable.eq(opcode == Opcode.NORMALIZATION.value),
        ]

        # Shared subtype field broadcast to both stages
        m.d.comb += [
            self.activation_type.eq(subtype),
            self.norm_type.eq(subtype),
        ]

        m.d.comb += self.ready.eq(self.rst_n)

        return m
