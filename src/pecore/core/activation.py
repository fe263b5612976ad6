"""
Activation Unit - per-element nonlinearity applied to the MAC output.

Functions (selected by the instruction subtype):
    1 RELU     x if x > 0 else 0
    2 GELU     0.5 * x * (1 + tanh(0.797885 * (x + 0.044715 * x^3)))
    3 SIGMOID  1 / (1 + exp(-x))
    4 TANH     tanh(x)
    * other    identity

FLOAT32 builds evaluate in single precision. INTEGER builds evaluate in
double precision and truncate the result toward zero before it is packed
back onto the bus. NaN and infinities propagate without clamping.
"""

from dataclasses import dataclass, field

import numpy as np

from ..codec import make_codec
from ..config import PEConfig
from ..isa import ActivationType

GELU_TANH_SCALE = 0.797885
"""sqrt(2 / pi), as used by the tanh approximation of GELU."""

GELU_CUBIC_COEFF = 0.044715


def relu(x: np.ndarray) -> np.ndarray:
    return np.where(x > 0, x, np.zeros_like(x))


def gelu(x: np.ndarray) -> np.ndarray:
    dtype = x.dtype.type
    half, one = dtype(0.5), dtype(1.0)
    scale, cubic = dtype(GELU_TANH_SCALE), dtype(GELU_CUBIC_COEFF)
    return half * x * (one + np.tanh(scale * (x + cubic * x * x * x)))


def sigmoid(x: np.ndarray) -> np.ndarray:
    one = x.dtype.type(1.0)
    return one / (one + np.exp(-x))


ACTIVATIONS = {
    ActivationType.RELU: relu,
    ActivationType.GELU: gelu,
    ActivationType.SIGMOID: sigmoid,
    ActivationType.TANH: np.tanh,
}


def apply_activation(x: np.ndarray, kind: int, config: PEConfig) -> np.ndarray:
    """
    Apply the activation selected by `kind` to every element of `x`.

    Unknown kinds (including 0) are the identity.

    Returns:
        float32 array for FLOAT32 builds, int64 array for INTEGER builds.
    """
    func = ACTIVATIONS.get(kind)
    if config.is_float:
        x = np.asarray(x, dtype=np.float32)
        if func is None:
            return x.copy()
        with np.errstate(all="ignore"):
            return func(x).astype(np.float32)

    values = np.asarray(x, dtype=np.int64)
    if func is None:
        return values.copy()
    if func is relu:
        return relu(values)
    with np.errstate(all="ignore"):
        result = func(values.astype(np.float64))
    return np.trunc(result).astype(np.int64)


@dataclass
class ActivationUnitSim:
    """Behavioural model of the activation unit (stateless)."""

    config: PEConfig
    codec: object = field(init=False)

    def __post_init__(self):
        self.codec = make_codec(self.config)

    def evaluate(
        self,
        x: np.ndarray,
        *,
        enable: bool,
        subtype: int = ActivationType.IDENTITY,
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
        result = apply_activation(x, subtype, self.config)
        return self.codec.quantize(result, self.config.data_width)
