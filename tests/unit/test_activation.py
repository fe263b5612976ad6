"""
Unit tests for the activation unit.

These tests verify:
1. Each activation function at known points
2. Identity for unknown subtypes
3. Integer truncation toward zero
4. NaN handling
5. Enable and reset behaviour of the unit model
"""

import numpy as np
import pytest

from pecore.config import FP32_CONFIG, INT8_CONFIG, ElementFormat, PEConfig
from pecore.core.activation import ActivationUnitSim, apply_activation
from pecore.isa import ActivationType

INT32_CONFIG = PEConfig(data_width=32, element_format=ElementFormat.INTEGER)


class TestFloatActivations:
    """Test single precision activation functions."""

    def test_relu(self):
        x = np.array([-2.0, -0.0, 0.0, 3.5], dtype=np.float32)
        result = apply_activation(x, ActivationType.RELU, FP32_CONFIG)
        np.testing.assert_array_equal(result, [0.0, 0.0, 0.0, 3.5])

    def test_sigmoid_at_zero(self):
        result = apply_activation(np.zeros(4, np.float32), ActivationType.SIGMOID, FP32_CONFIG)
        np.testing.assert_array_equal(result, [0.5] * 4)

    def test_sigmoid_saturates(self):
        x = np.array([-100.0, 100.0], dtype=np.float32)
        result = apply_activation(x, ActivationType.SIGMOID, FP32_CONFIG)
        np.testing.assert_allclose(result, [0.0, 1.0], atol=1e-6)

    def test_tanh(self):
        x = np.array([0.0, 1.0], dtype=np.float32)
        result = apply_activation(x, ActivationType.TANH, FP32_CONFIG)
        np.testing.assert_allclose(result, [0.0, np.tanh(1.0)], rtol=1e-6)

    def test_gelu(self):
        x = np.array([0.0, 1.0, -1.0], dtype=np.float32)
        result = apply_activation(x, ActivationType.GELU, FP32_CONFIG)
        np.testing.assert_allclose(result, [0.0, 0.841192, -0.158808], atol=1e-4)

    @pytest.mark.parametrize("kind", [0, 5, 7, 255])
    def test_unknown_kind_is_identity(self, kind):
        x = np.array([-1.5, 2.0], dtype=np.float32)
        np.testing.assert_array_equal(apply_activation(x, kind, FP32_CONFIG), x)

    @pytest.mark.parametrize("kind", list(ActivationType))
    def test_result_is_float32(self, kind):
        x = np.array([0.25, -0.25], dtype=np.float32)
        assert apply_activation(x, kind, FP32_CONFIG).dtype == np.float32

    def test_nan_propagates_through_smooth_functions(self):
        x = np.array([np.nan], dtype=np.float32)
        for kind in (ActivationType.GELU, ActivationType.SIGMOID, ActivationType.TANH):
            assert np.isnan(apply_activation(x, kind, FP32_CONFIG)[0])

    def test_relu_of_nan_is_zero(self):
        # NaN > 0 is false, so the comparison selects the zero branch
        x = np.array([np.nan], dtype=np.float32)
        assert apply_activation(x, ActivationType.RELU, FP32_CONFIG)[0] == 0.0


class TestIntegerActivations:
    """Test integer builds: double precision evaluation, truncated result."""

    def test_sigmoid_truncates(self):
        result = apply_activation(np.array([0, 10]), ActivationType.SIGMOID, INT8_CONFIG)
        np.testing.assert_array_equal(result, [0, 0])

    def test_tanh_truncates(self):
        result = apply_activation(np.array([5]), ActivationType.TANH, INT8_CONFIG)
        np.testing.assert_array_equal(result, [0])

    def test_gelu_truncates(self):
        # gelu(3) is about 2.996
        result = apply_activation(np.array([3]), ActivationType.GELU, INT8_CONFIG)
        np.testing.assert_array_equal(result, [2])

    def test_relu_on_signed_values(self):
        result = apply_activation(np.array([-7, 7]), ActivationType.RELU, INT32_CONFIG)
        np.testing.assert_array_equal(result, [0, 7])

    def test_gelu_of_negative_truncates_to_zero(self):
        # gelu(-3) is about -0.004
        result = apply_activation(np.array([-3]), ActivationType.GELU, INT32_CONFIG)
        np.testing.assert_array_equal(result, [0])

    def test_result_is_int64(self):
        result = apply_activation(np.array([1, 2]), ActivationType.TANH, INT8_CONFIG)
        assert result.dtype == np.int64


class TestActivationUnitSim:
    """Test the unit's enable and reset handling."""

    @pytest.fixture
    def unit(self):
        return ActivationUnitSim(FP32_CONFIG)

    def test_disabled_forwards_input(self, unit):
        x = np.array([-1.0] * 8, dtype=np.float32)
        result = unit.evaluate(x, enable=False, subtype=ActivationType.RELU)
        np.testing.assert_array_equal(result, x)

    def test_enabled_applies_subtype(self, unit):
        x = np.array([-1.0, 1.0] * 4, dtype=np.float32)
        result = unit.evaluate(x, enable=True, subtype=ActivationType.RELU)
        np.testing.assert_array_equal(result, [0.0, 1.0] * 4)

    def test_reset_forces_zero(self, unit):
        x = np.ones(8, dtype=np.float32)
        result = unit.evaluate(x, enable=True, subtype=ActivationType.SIGMOID, reset=True)
        np.testing.assert_array_equal(result, [0.0] * 8)

    def test_integer_output_is_quantized(self):
        unit = ActivationUnitSim(INT8_CONFIG)
        result = unit.evaluate(np.array([300] * 8), enable=True, subtype=ActivationType.RELU)
        np.testing.assert_array_equal(result, [300 & 0xFF] * 8)
