#!/usr/bin/env python3
"""
PE Regression Sequence.

Replays the PE bring-up regression against the behavioural PE model:

    0. MAC        B = 3.0, W = 1.0      -> 3 * 8 = 24 in every row
    1. ReLU       of the MAC output
    2. LayerNorm  of the MAC output (constant vector -> zeros)
    3. GELU
    4. Sigmoid
    5. Tanh

Each operation is presented for one tick with valid_in high, followed by
one idle tick with valid_in low (the result bus holds). The A vector is
driven as in the bring-up sequence but, as on the real datapath, only
reaches the output for IDLE instructions: the activation and normalization
units always see the MAC output.

Every result is checked against an independent NumPy evaluation.

Usage:
    python 01_pe_regression.py [--format {fp32,int8}] [--verbose]

    --format    Element format (default: fp32)
    --verbose   Log every tick
"""

import argparse
import logging
import sys
from pathlib import Path

import numpy as np

# Add src to path if running from examples/
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from pecore import FP32_CONFIG, INT8_CONFIG, PEInputs, PESim  # noqa: E402
from pecore.isa import (  # noqa: E402
    ActivationType,
    NormType,
    make_activation,
    make_mac,
    make_normalization,
)

CONFIGS = {"fp32": FP32_CONFIG, "int8": INT8_CONFIG}


def reference(name: str, mac_value: float, width: int, is_float: bool) -> np.ndarray:
    """Expected result vector for one regression step, computed directly."""
    x = np.full(width, mac_value, dtype=np.float64)
    if name == "MAC":
        y = x
    elif name == "ReLU":
        y = np.maximum(x, 0.0)
    elif name == "LayerNorm":
        y = (x - x.mean()) / np.sqrt(x.var() + 1e-5)
    elif name == "GELU":
        y = 0.5 * x * (1.0 + np.tanh(0.797885 * (x + 0.044715 * x**3)))
    elif name == "Sigmoid":
        y = 1.0 / (1.0 + np.exp(-x))
    else:
        y = np.tanh(x)
    if is_float:
        return y.astype(np.float32)
    return np.trunc(y).astype(np.int64)


def build_sequence(config):
    """List of (name, instruction, PEInputs) for the regression."""
    fill = 3.0 if config.is_float else 3
    one = 1.0 if config.is_float else 1
    ramp = np.arange(1, config.vector_width + 1)

    return [
        (
            "MAC",
            PEInputs.from_vectors(
                config,
                instruction=make_mac(),
                a=[2 * one] * config.vector_width,
                b=[fill] * config.vector_width,
                weight=[one] * config.vector_width,
            ),
        ),
        (
            "ReLU",
            PEInputs.from_vectors(
                config, instruction=make_activation(ActivationType.RELU), a=[5 * one]
            ),
        ),
        (
            "LayerNorm",
            PEInputs.from_vectors(
                config, instruction=make_normalization(NormType.LAYER), a=ramp
            ),
        ),
        (
            "GELU",
            PEInputs.from_vectors(
                config, instruction=make_activation(ActivationType.GELU), a=[one]
            ),
        ),
        (
            "Sigmoid",
            PEInputs.from_vectors(config, instruction=make_activation(ActivationType.SIGMOID)),
        ),
        (
            "Tanh",
            PEInputs.from_vectors(config, instruction=make_activation(ActivationType.TANH)),
        ),
    ]


def main():
    parser = argparse.ArgumentParser(description="PE regression sequence")
    parser.add_argument("--format", choices=sorted(CONFIGS), default="fp32")
    parser.add_argument("--verbose", action="store_true", help="Log every tick")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    config = CONFIGS[args.format]
    pe = PESim(config)
    pe.reset()

    print("=" * 60)
    print(f"PE Core Regression ({args.format.upper()})")
    print("=" * 60)

    mac_value = None
    passed = 0
    sequence = build_sequence(config)
    for index, (name, inputs) in enumerate(sequence):
        out = pe.tick(inputs)
        held = pe.tick(PEInputs(valid_in=False))

        result = pe.result_vector(out)
        if name == "MAC":
            mac_value = float(result[0])
        expected = reference(name, mac_value, config.vector_width, config.is_float)
        if not config.is_float:
            expected = pe.codec.quantize(expected, config.data_width)

        ok = (
            out.valid_out
            and not held.valid_out
            and held.result == out.result
            and np.allclose(result, expected, rtol=1e-5, atol=1e-6)
        )
        passed += ok

        print(f"\n--- Test {index}: {name} ---")
        print(f"  result:   {result}")
        print(f"  expected: {expected}")
        print(f"  {'PASS' if ok else 'FAIL'}")

    total = len(sequence)
    stats = pe.get_statistics()
    print()
    print("=" * 60)
    print("REGRESSION RESULTS")
    print("=" * 60)
    print(f"Total Tests:  {total}")
    print(f"Passed:       {passed}")
    print(f"Failed:       {total - passed}")
    print(f"Pass Rate:    {passed * 100 // total}%")
    print(f"Cycles:       {stats['cycles']}")
    print("=" * 60)

    return 0 if passed == total else 1


if __name__ == "__main__":
    sys.exit(main())
