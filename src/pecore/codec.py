"""
Element Codec - packs numeric vectors onto the flat PE data bus and back.

The bus is modelled as a Python int: element i occupies bits
[i * width, (i + 1) * width), least-significant bit first within its slot.

Two interchangeable encodings exist:
- IntegerCodec: each element is the low `width` bits of an integer. On
  decode the bits are assembled into a native 32-bit int, so widths below 32
  come back as the unsigned bit pattern (no sign extension) while width 32
  comes back as two's complement. Encoding silently wraps.
- Float32Codec: each element is a 32-bit IEEE-754 single. Patterns are
  reinterpreted with NumPy views, so NaN payloads, infinities and subnormals
  survive a round trip bit-for-bit.

Internally the PE works on NumPy arrays (int64 for integers, float32 for
floats); the codec is the only place bit layout is handled.
"""

import numpy as np

from .config import NATIVE_INT_BITS, ElementFormat, PEConfig


def _check_bus(bits: int, width: int, count: int) -> None:
    if bits < 0:
        raise ValueError(f"bus value must be non-negative, got {bits}")
    if bits >> (width * count):
        raise ValueError(f"bus value does not fit in {width * count} bits ({count} x {width})")


def unpack_patterns(bits: int, width: int, count: int) -> list[int]:
    """
    Split a packed bus into per-element bit patterns.

    Args:
        bits: Packed bus value
        width: Bits per element slot
        count: Number of elements

    Returns:
        List of `count` unsigned patterns, element 0 first.
    """
    _check_bus(bits, width, count)
    mask = (1 << width) - 1
    return [(bits >> (i * width)) & mask for i in range(count)]


def pack_patterns(patterns, width: int) -> int:
    """Pack unsigned per-element patterns into a bus value (element 0 lowest)."""
    mask = (1 << width) - 1
    bits = 0
    for i, pattern in enumerate(patterns):
        bits |= (int(pattern) & mask) << (i * width)
    return bits


def _check_length(vector, count: int) -> None:
    if len(vector) != count:
        raise ValueError(f"expected a vector of {count} elements, got {len(vector)}")


class IntegerCodec:
    """Truncating integer element codec."""

    format = ElementFormat.INTEGER
    dtype = np.int64

    def decode(self, bits: int, width: int, count: int) -> np.ndarray:
        patterns = unpack_patterns(bits, width, count)
        values = np.array(patterns, dtype=np.int64)
        if width >= NATIVE_INT_BITS:
            # bit 31 lands in the sign bit of the native int
            sign = 1 << (NATIVE_INT_BITS - 1)
            values = np.where(values >= sign, values - (1 << NATIVE_INT_BITS), values)
        return values

    def encode(self, vector, width: int, count: int) -> int:
        _check_length(vector, count)
        # int() truncates toward zero and keeps arbitrary precision
        return pack_patterns((int(v) for v in vector), width)

    def quantize(self, vector, width: int) -> np.ndarray:
        """Value of `vector` after crossing the bus (encode then decode)."""
        count = len(vector)
        return self.decode(self.encode(vector, width, count), width, count)

    def zeros(self, count: int) -> np.ndarray:
        return np.zeros(count, dtype=self.dtype)


class Float32Codec:
    """IEEE-754 single precision element codec (32-bit slots only)."""

    format = ElementFormat.FLOAT32
    dtype = np.float32

    @staticmethod
    def _check_width(width: int) -> None:
        if width != 32:
            raise ValueError(f"FLOAT32 elements occupy 32-bit slots, got width={width}")

    def decode(self, bits: int, width: int, count: int) -> np.ndarray:
        self._check_width(width)
        patterns = np.array(unpack_patterns(bits, width, count), dtype=np.uint32)
        return patterns.view(np.float32)

    def encode(self, vector, width: int, count: int) -> int:
        self._check_width(width)
        _check_length(vector, count)
        patterns = np.asarray(vector, dtype=np.float32).view(np.uint32)
        return pack_patterns(patterns.tolist(), width)

    def quantize(self, vector, width: int) -> np.ndarray:
        """Value of `vector` after crossing the bus (encode then decode)."""
        count = len(vector)
        return self.decode(self.encode(vector, width, count), width, count)

    def zeros(self, count: int) -> np.ndarray:
        return np.zeros(count, dtype=self.dtype)


def make_codec(config: PEConfig) -> IntegerCodec | Float32Codec:
    """Return the codec selected by `config.element_format`."""
    if config.element_format is ElementFormat.FLOAT32:
        return Float32Codec()
    return IntegerCodec()


def resize(vector: np.ndarray, count: int) -> np.ndarray:
    """Truncate or zero-pad `vector` to `count` elements."""
    if len(vector) >= count:
        return vector[:count].copy()
    padded = np.zeros(count, dtype=vector.dtype)
    padded[: len(vector)] = vector
    return padded
