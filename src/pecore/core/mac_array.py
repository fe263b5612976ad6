"""
MAC Array - the accumulate-and-hold unit at the head of the PE pipeline.

The array owns one accumulator per output row. On every tick the MAC stage
is enabled the accumulators are recomputed from the B and W operand
vectors; while disabled they hold their value. Reset clears them.

Reductions (see MacMode):

    ROW_SCALED_WEIGHT_SUM (default)
        acc[r] = B[r] * (W[0] + W[1] + ... + W[COLS-1])

        This is the literal behaviour of the hardware datapath: every row
        sees the same scalar weight sum and B does not vary per column. It
        is probably a simplification of a systolic dot product, but it is
        the observable behaviour and is kept as-is.

    TEMPORAL_DOT_PRODUCT
        acc[r] = acc[r] + B[r] * W[r]

        A conventional multiply-accumulate. Streaming K operand pairs over
        K enabled ticks leaves a K-term dot product in each row.

Numerics:
    FLOAT32  - float32 arithmetic, columns reduced left to right so
               rounding matches a sequential float32 loop bit-for-bit.
    INTEGER  - exact products, wrapped into a signed accumulator of
               2 * DATA_WIDTH + 8 bits. Only the low DATA_WIDTH bits of each
               accumulator are visible on the output bus.
"""

from dataclasses import dataclass, field

import numpy as np
from amaranth import Module, Signal, signed, unsigned
from amaranth.lib.wiring import Component, In, Out

from ..codec import make_codec, resize
from ..config import NATIVE_INT_BITS, MacMode, PEConfig


def wrap_signed(value: int, bits: int) -> int:
    """Wrap a Python int into a two's-complement range of `bits` bits."""
    value &= (1 << bits) - 1
    if value >> (bits - 1):
        value -= 1 << bits
    return value


def row_scaled_weight_sum(b: np.ndarray, w: np.ndarray, config: PEConfig) -> np.ndarray:
    """
    Compute acc[r] = B[r] * sum(W) for every row.

    Args:
        b: Row operand, length mac_rows
        w: Weight operand, length mac_cols
        config: PE configuration (selects float32 or wrapped integer math)

    Returns:
        New accumulator vector, length mac_rows.
    """
    if config.is_float:
        acc = np.zeros(len(b), dtype=np.float32)
        with np.errstate(all="ignore"):
            for weight in w:
                acc = acc + b * weight
        return acc

    acc = []
    for b_val in b:
        total = 0
        for w_val in w:
            total = wrap_signed(total + int(b_val) * int(w_val), config.acc_bits)
        acc.append(total)
    return np.array(acc, dtype=object)


def temporal_dot_product(
    acc: np.ndarray, b: np.ndarray, w: np.ndarray, config: PEConfig
) -> np.ndarray:
    """
    Compute acc[r] + B[r] * W[r] for every row.

    Rows beyond the weight vector's length see a zero weight.
    """
    w = resize(w, len(b))
    if config.is_float:
        with np.errstate(all="ignore"):
            return (acc + b * w).astype(np.float32)
    return np.array(
        [
            wrap_signed(int(a) + int(b_val) * int(w_val), config.acc_bits)
            for a, b_val, w_val in zip(acc, b, w, strict=True)
        ],
        dtype=object,
    )


# =============================================================================
# Simulation Model
# =============================================================================


@dataclass
class MACArraySim:
    """
    Behavioural model of the MAC array.

    The model is stateless itself: accumulators are passed in and a new
    vector is returned, so the owning pipeline keeps the only copy of the
    state.
    """

    config: PEConfig
    codec: object = field(init=False)

    def __post_init__(self):
        self.codec = make_codec(self.config)

    def zero_accumulators(self) -> np.ndarray:
        """Accumulator vector after reset."""
        if self.config.is_float:
            return np.zeros(self.config.mac_rows, dtype=np.float32)
        return np.array([0] * self.config.mac_rows, dtype=object)

    def step(
        self,
        accumulators: np.ndarray,
        b: np.ndarray,
        w: np.ndarray,
        *,
        enable: bool,
        reset: bool = False,
    ) -> np.ndarray:
        """
        Advance the accumulators by one tick.

        Args:
            accumulators: Current accumulator vector
            b: Decoded B bus vector (truncated/padded to mac_rows)
            w: Decoded weight bus vector (truncated/padded to mac_cols)
            enable: MAC stage enabled this tick
            reset: Synchronous reset asserted this tick

        Returns:
            Accumulator vector after the tick.
        """
        cfg = self.config
        if reset:
            return self.zero_accumulators()
        if not enable:
            return accumulators.copy()

        b = resize(np.asarray(b, dtype=self.codec.dtype), cfg.mac_rows)
        w = resize(np.asarray(w, dtype=self.codec.dtype), cfg.mac_cols)
        if cfg.mac_mode is MacMode.TEMPORAL_DOT_PRODUCT:
            return temporal_dot_product(accumulators, b, w, cfg)
        return row_scaled_weight_sum(b, w, cfg)

    def output(self, accumulators: np.ndarray) -> np.ndarray:
        """Accumulator vector as seen on the MAC result bus."""
        return self.codec.quantize(accumulators, self.config.data_width)


# =============================================================================
# RTL Component
# =============================================================================


class MACArray(Component):
    """
    RTL MAC array for the INTEGER element format.

    Accumulators are registered; result is the low DATA_WIDTH bits of each
    accumulator, packed row 0 lowest.

    Ports:
        rst_n: Active-low synchronous clear of all accumulators
        enable: Recompute accumulators this cycle
        b_in: mac_rows x DATA_WIDTH packed B operand
        w_in: mac_cols x DATA_WIDTH packed weight operand
        result: mac_rows x DATA_WIDTH packed accumulator output

    Parameters:
        config: PEConfig with an INTEGER element format
    """

    def __init__(self, config: PEConfig):
        assert not config.is_float, "MACArray RTL implements the INTEGER format only"
        self.config = config

        super().__init__(
            {
                "rst_n": In(1),
                "enable": In(1),
                "b_in": In(unsigned(config.data_width * config.mac_rows)),
                "w_in": In(unsigned(config.data_width * config.mac_cols)),
                "result": Out(unsigned(config.mac_output_bits)),
            }
        )

    def _element(self, bus, index):
        width = self.config.data_width
        value = bus[index * width : (index + 1) * width]
        if width >= NATIVE_INT_BITS:
            return value.as_signed()
        return value

    def elaborate(self, _platform):
        m = Module()
        cfg = self.config
        width = cfg.data_width

        accumulators = [
            Signal(signed(cfg.acc_bits), name=f"acc_{r}") for r in range(cfg.mac_rows)
        ]
        b_vals = [self._element(self.b_in, r) for r in range(cfg.mac_rows)]
        w_vals = [self._element(self.w_in, c) for c in range(cfg.mac_cols)]

        # =================================================================
        # Reduction
        # =================================================================

        next_acc = [
            Signal(signed(cfg.acc_bits), name=f"next_acc_{r}") for r in range(cfg.mac_rows)
        ]

        if cfg.mac_mode is MacMode.TEMPORAL_DOT_PRODUCT:
            for r in range(cfg.mac_rows):
                if r < cfg.mac_cols:
                    m.d.comb += next_acc[r].eq(accumulators[r] + b_vals[r] * w_vals[r])
                else:
                    m.d.comb += next_acc[r].eq(accumulators[r])
        else:
            weight_sum = Signal(signed(width + cfg.mac_cols.bit_length() + 1), name="weight_sum")
            m.d.comb += weight_sum.eq(sum(w_vals))
            for r in range(cfg.mac_rows):
                m.d.comb += next_acc[r].eq(b_vals[r] * weight_sum)

        # =================================================================
        # Accumulator Registers
        # =================================================================

        with m.If(~self.rst_n):
            m.d.sync += [acc.eq(0) for acc in accumulators]
        with m.Elif(self.enable):
            m.d.sync += [acc.eq(nxt) for acc, nxt in zip(accumulators, next_acc, strict=True)]

        # =================================================================
        # Output Packing
        # =================================================================

        for r, acc in enumerate(accumulators):
            m.d.comb += self.result[r * width : (r + 1) * width].eq(acc[:width])

        return m
