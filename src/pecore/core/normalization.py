"""
Normalization Unit - per-vector rescaling of the activation output.

Every enabled tick the unit computes fresh population statistics over the
current input vector only (no running or windowed state):

    mean     = (1/N) * sum(x_i)
    variance = (1/N) * sum((x_i - mean)^2)

and rescales each element according to the instruction subtype:

    1 RMS    x_i / sqrt(variance + eps)
    * LAYER  (x_i - mean) / sqrt(variance + eps)

The RMS mode divides by the deviation of the mean-centred values rather
than by the root of the mean of squares, as the hardware datapath does.

Sums are accumulated left to right (np.add.accumulate), so FLOAT32 results
round exactly as a sequential single-precision loop does. INTEGER builds
compute in double precision and truncate toward zero.
"""

from dataclasses import dataclass, field

import numpy as np

from ..codec import make_codec
from ..config import PEConfig
from ..isa import NormType


def _sequential_sum(values: np.ndarray):
    return np.add.accumulate(values)[-1]


def vector_statistics(x: np.ndarray) -> tuple:
    """
    Population mean and variance of `x`.

    The arithmetic precision follows the dtype of `x`.

    Returns:
        Tuple of (mean, variance) as scalars of x's dtype.
    """
    count = x.dtype.type(len(x))
    mean = _sequential_sum(x) / count
    diff = x - mean
    variance = _sequential_sum(diff * diff) / count
    return mean, variance


def normalize(x: np.ndarray, kind: int, config: PEConfig) -> np.ndarray:
    """
    Normalize `x` with the mode selected by `kind`.

    Returns:
        float32 array for FLOAT32 builds, int64 array for INTEGER builds.
    """
    dtype = np.float32 if config.is_float else np.float64
    values = np.asarray(x, dtype=dtype)
    eps = dtype(config.norm_epsilon)

    with np.errstate(all="ignore"):
        mean, variance = vector_statistics(values)
        scale = np.sqrt(variance + eps)
        if kind == NormType.RMS:
            result = values / scale
        else:
            result = (values - mean) / scale

        if config.is_float:
            return result.astype(np.float32)

        # a zero epsilon over a constant vector divides by zero; such
        # elements have no integer value and are driven as zero
        result = np.where(np.isfinite(result), result, 0.0)
        return np.trunc(result).astype(np.int64)


@dataclass
class NormalizationUnitSim:
    """Behavioural model of the normalization unit (stateless)."""

    config: PEConfig
    codec: object = field(init=False)

    def __post_init__(self):
        self.codec = make_codec(self.config)

    def evaluate(
        self,
        x: np.ndarray,
        *,
        enable: bool,
        subtype: int = NormType.LAYER,
        reset: bool = False,
    ) -> np.ndarray:
        """
        Compute the unit's output vector for one tick.

        A disabled unit forwards its input unchanged; reset forces zeros.
        """
        if reset:
            return self.codec.zeros(self.config.mac_rows)
        if not enable:
            return np.array(x, dtype=self.codec.dtype)
        result = normalize(x, subtype, self.config)
        return self.codec.quantize(result, self.config.data_width)
