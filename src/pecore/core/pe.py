"""
Processing Element (PE) - composition of the decoder and the three units.

Datapath for one tick:

    instruction ──▶ [decoder] ──▶ stage, subtype (to every unit and the mux)

    B, W ──▶ [MAC array] ──┬──▶ [Activation] ──┬──▶ [Normalization] ──┐
                           │                   │                      │
                        mac_out             act_out               norm_out
                           │                   │                      │
                           ▼                   ▼                      ▼
    A ───────────────▶ [output mux: NORM > ACT > MAC > A] ──▶ result, valid_out

The forwarding chain is always connected: a disabled unit passes its input
through unchanged, so the activation unit always sees the MAC output and the
normalization unit always sees the activation output. Units are evaluated in
chain order within a tick.

Handshake:
- rst_n low: accumulators cleared, result all zeros, valid_out and
  ready_out low. Reset dominates every other input.
- valid_in low: valid_out low and the result bus holds its previous value.
  The MAC accumulators still update if the MAC stage is enabled; enable and
  valid are independent gates.
- ready_out is high whenever reset is released.

The PE is expressed as a pure function step(state, inputs) -> (state,
outputs). PESim keeps the current state and is driven one tick() per clock.
"""

import logging
from dataclasses import dataclass, field

import numpy as np

from ..codec import make_codec, resize
from ..config import PEConfig
from .activation import ActivationUnitSim
from .decoder import Stage, decode_instruction, ready_out
from .mac_array import MACArraySim
from .normalization import NormalizationUnitSim

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PEInputs:
    """
    Signals driven into the PE for one tick.

    Attributes:
        rst_n: Active-low synchronous reset
        valid_in: Caller presents an operation this tick
        instruction: 32-bit instruction word
        a: Packed A vector (passthrough operand)
        b: Packed B vector (MAC row operand)
        weight: Packed weight vector (MAC reduction operand)
    """

    rst_n: bool = True
    valid_in: bool = False
    instruction: int = 0
    a: int = 0
    b: int = 0
    weight: int = 0

    @classmethod
    def from_vectors(
        cls,
        config: PEConfig,
        *,
        instruction: int = 0,
        a=None,
        b=None,
        weight=None,
        valid_in: bool = True,
        rst_n: bool = True,
    ) -> "PEInputs":
        """
        Build inputs from numeric vectors, packing them through the codec.

        Vectors shorter than vector_width are zero-padded; omitted vectors
        are driven as zeros.
        """
        codec = make_codec(config)

        def pack(vector) -> int:
            if vector is None:
                return 0
            vector = np.asarray(vector, dtype=codec.dtype)
            if len(vector) < config.vector_width:
                vector = resize(vector, config.vector_width)
            return codec.encode(vector, config.data_width, config.vector_width)

        return cls(
            rst_n=rst_n,
            valid_in=valid_in,
            instruction=instruction,
            a=pack(a),
            b=pack(b),
            weight=pack(weight),
        )


@dataclass(frozen=True)
class PEOutputs:
    """Signals observed from the PE after a tick."""

    result: int = 0
    valid_out: bool = False
    ready_out: bool = False


@dataclass
class PEState:
    """
    State carried between ticks.

    Attributes:
        accumulators: MAC accumulator vector (the only datapath state)
        result: Last driven result bus, held while valid_in is low
    """

    accumulators: np.ndarray
    result: int = 0


@dataclass
class PESim:
    """
    Behavioural simulation model of one Processing Element.

    The three functional units are owned directly by the PE. The datapath
    itself is the pure step() function; tick() applies it to the stored
    state and collects statistics.

    Example:
        >>> pe = PESim(INT8_CONFIG)
        >>> pe.reset()
        >>> out = pe.tick(PEInputs.from_vectors(INT8_CONFIG, instruction=make_mac(),
        ...                                     b=[2] * 8, weight=[1] * 8))
        >>> pe.result_vector(out)  # array([16, 16, 16, 16, 16, 16, 16, 16])
    """

    config: PEConfig = field(default_factory=PEConfig)

    # Components
    mac: MACArraySim = field(init=False)
    activation: ActivationUnitSim = field(init=False)
    normalization: NormalizationUnitSim = field(init=False)
    codec: object = field(init=False)

    # Simulation state
    state: PEState = field(init=False)
    cycle: int = 0

    # Statistics
    total_resets: int = 0
    total_valid_results: int = 0
    stage_ticks: dict = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Initialize functional units and state."""
        self.codec = make_codec(self.config)
        self.mac = MACArraySim(self.config)
        self.activation = ActivationUnitSim(self.config)
        self.normalization = NormalizationUnitSim(self.config)
        self.state = self.initial_state()
        self.stage_ticks = {stage: 0 for stage in Stage}

    def initial_state(self) -> PEState:
        """State of a freshly constructed or reset PE."""
        return PEState(accumulators=self.mac.zero_accumulators(), result=0)

    # =========================================================================
    # Datapath
    # =========================================================================

    def step(self, state: PEState, inputs: PEInputs) -> tuple[PEState, PEOutputs]:
        """
        Evaluate one tick.

        Args:
            state: State before the tick (not modified)
            inputs: Signals driven this tick

        Returns:
            Tuple of (state after the tick, observed outputs).
        """
        cfg = self.config
        decoded = decode_instruction(inputs.instruction)

        if not inputs.rst_n:
            return self.initial_state(), PEOutputs(result=0, valid_out=False, ready_out=False)

        if not 0 <= inputs.a < (1 << cfg.bus_width):
            raise ValueError(f"A bus does not fit in {cfg.bus_width} bits")
        b = self.codec.decode(inputs.b, cfg.data_width, cfg.vector_width)
        w = self.codec.decode(inputs.weight, cfg.data_width, cfg.vector_width)

        accumulators = self.mac.step(state.accumulators, b, w, enable=decoded.mac_enable)
        mac_out = self.mac.output(accumulators)
        act_out = self.activation.evaluate(
            mac_out, enable=decoded.activation_enable, subtype=decoded.subtype
        )
        norm_out = self.normalization.evaluate(
            act_out, enable=decoded.norm_enable, subtype=decoded.subtype
        )

        ready = ready_out(inputs.rst_n)
        if not inputs.valid_in:
            return (
                PEState(accumulators=accumulators, result=state.result),
                PEOutputs(result=state.result, valid_out=False, ready_out=ready),
            )

        stage_outputs = {
            Stage.NORMALIZATION: norm_out,
            Stage.ACTIVATION: act_out,
            Stage.MAC: mac_out,
        }
        if decoded.stage is Stage.IDLE:
            result = inputs.a
        else:
            result = self.pack_result(stage_outputs[decoded.stage])

        return (
            PEState(accumulators=accumulators, result=result),
            PEOutputs(result=result, valid_out=True, ready_out=ready),
        )

    def pack_result(self, vector: np.ndarray) -> int:
        """Pack a stage output onto the external bus, truncating or zero-padding."""
        cfg = self.config
        vector = resize(vector, cfg.vector_width)
        return self.codec.encode(vector, cfg.data_width, cfg.vector_width)

    # =========================================================================
    # Driver
    # =========================================================================

    def tick(self, inputs: PEInputs) -> PEOutputs:
        """
        Advance the PE by one clock tick.

        Returns:
            Outputs observed after the tick.
        """
        self.state, outputs = self.step(self.state, inputs)
        self._update_statistics(inputs, outputs)

        if logger.isEnabledFor(logging.DEBUG):
            decoded = decode_instruction(inputs.instruction)
            logger.debug(
                "cycle %d: rst_n=%d valid_in=%d stage=%s subtype=%d -> valid_out=%d",
                self.cycle,
                inputs.rst_n,
                inputs.valid_in,
                decoded.stage.name,
                decoded.subtype,
                outputs.valid_out,
            )

        self.cycle += 1
        return outputs

    def reset(self) -> PEOutputs:
        """Apply one reset tick."""
        logger.info("PE reset at cycle %d", self.cycle)
        return self.tick(PEInputs(rst_n=False))

    def run(self, sequence) -> list[PEOutputs]:
        """Drive a sequence of PEInputs, one per tick."""
        return [self.tick(inputs) for inputs in sequence]

    def result_vector(self, outputs: PEOutputs | int) -> np.ndarray:
        """Decode a result bus (or PEOutputs) into its element vector."""
        cfg = self.config
        bits = outputs.result if isinstance(outputs, PEOutputs) else outputs
        return self.codec.decode(bits, cfg.data_width, cfg.vector_width)

    # =========================================================================
    # Statistics
    # =========================================================================

    def _update_statistics(self, inputs: PEInputs, outputs: PEOutputs) -> None:
        if not inputs.rst_n:
            self.total_resets += 1
            return
        self.stage_ticks[decode_instruction(inputs.instruction).stage] += 1
        if outputs.valid_out:
            self.total_valid_results += 1

    def get_statistics(self) -> dict:
        """
        Get execution statistics.

        Returns:
            Dictionary with cycle count, reset count, valid result count and
            per-stage tick counts.
        """
        return {
            "cycles": self.cycle,
            "resets": self.total_resets,
            "valid_results": self.total_valid_results,
            "stage_ticks": {stage.name: count for stage, count in self.stage_ticks.items()},
        }
