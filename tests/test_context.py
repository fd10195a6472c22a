"""Tests for the ring context and its factorization."""

import numpy as np
import pytest

from slotgemm import FactorDescriptor, RingConfig, RingContext
from slotgemm.utils.polynomial import poly_mul, poly_trim


class TestRingConfig:

    def test_defaults(self):
        config = RingConfig()

        assert config.ring_degree == 4096
        assert config.plaintext_modulus == 70913
        assert config.slot_count == 128
        assert config.slot_degree == 32

    @pytest.mark.parametrize("m,p,l,d", [
        (32, 113, 8, 4),
        (16, 17, 8, 2),
        (8, 97, 8, 1),
        (4, 17, 4, 1),
    ])
    def test_slot_layout(self, m, p, l, d):
        config = RingConfig(ring_degree=m, plaintext_modulus=p)

        assert config.slot_count == l
        assert config.slot_degree == d

    def test_rejects_non_power_of_two(self):
        with pytest.raises(ValueError, match="power of two"):
            RingConfig(ring_degree=24, plaintext_modulus=113)

    def test_rejects_composite_modulus(self):
        with pytest.raises(ValueError, match="prime"):
            RingConfig(ring_degree=32, plaintext_modulus=117)

    def test_rejects_modulus_three_mod_four(self):
        with pytest.raises(ValueError, match="1 mod 4"):
            RingConfig(ring_degree=32, plaintext_modulus=103)


class TestFactorDescriptor:

    def test_binomial(self):
        f = FactorDescriptor.from_coeffs([5, 0, 0, 1], 17)

        assert f.degree == 3
        assert f.beta == 5
        assert f.root == 12
        assert f.is_restricted()

    def test_not_restricted(self):
        f = FactorDescriptor.from_coeffs([1, 2, 0, 1], 17)

        assert not f.is_restricted()

    def test_trims_and_reduces(self):
        f = FactorDescriptor.from_coeffs([-1, 17, 1, 0], 17)

        assert f.coeffs == (16, 0, 1)

    def test_rejects_non_monic(self):
        with pytest.raises(ValueError, match="monic"):
            FactorDescriptor.from_coeffs([1, 0, 2], 17)

    def test_rejects_constant(self):
        with pytest.raises(ValueError, match="positive degree"):
            FactorDescriptor.from_coeffs([3], 17)


class TestRingContext:

    def test_from_config_parameters(self, small_ctx):
        assert (small_ctx.m, small_ctx.p, small_ctx.l, small_ctx.d) == (32, 113, 8, 4)
        assert small_ctx.slot_count == 8
        assert small_ctx.slot_degree == 4
        assert small_ctx.is_negacyclic
        assert small_ctx.all_factors_restricted()

    def test_factors_multiply_to_ring_polynomial(self, small_ctx):
        product = np.array([1])
        for f in small_ctx.factors:
            product = poly_mul(product, f.as_array(), small_ctx.p)

        expected = np.zeros(33, dtype=np.int64)
        expected[0] = expected[32] = 1
        np.testing.assert_array_equal(poly_trim(product, small_ctx.p), expected)

    def test_factor_roots_are_distinct(self, small_ctx):
        roots = [f.root for f in small_ctx.factors]

        assert len(set(roots)) == small_ctx.l
        for r in roots:
            assert pow(r, small_ctx.l, small_ctx.p) == small_ctx.p - 1

    def test_default_context(self):
        ctx = RingContext.from_config()

        assert (ctx.m, ctx.l, ctx.d) == (4096, 128, 32)
        assert ctx.config == RingConfig()

    def test_general_factors(self, crt_ctx):
        assert (crt_ctx.m, crt_ctx.l, crt_ctx.d) == (6, 3, 2)
        assert not crt_ctx.is_negacyclic
        assert not crt_ctx.all_factors_restricted()

    def test_rejects_mixed_degrees(self):
        with pytest.raises(ValueError, match="one degree"):
            RingContext(17, [[1, 1], [1, 0, 1]])

    def test_rejects_wrong_modulus(self):
        with pytest.raises(ValueError, match="does not equal"):
            RingContext(17, [[1, 1], [2, 1]], modulus=[1, 0, 1])

    def test_rejects_composite(self):
        with pytest.raises(ValueError, match="prime"):
            RingContext(15, [[1, 1]])

    def test_multiply_wraps_negacyclically(self, tiny_ctx):
        x15 = np.zeros(16, dtype=np.int64)
        x15[15] = 1
        x1 = np.array([0, 1])

        product = tiny_ctx.multiply(x15, x1)

        expected = np.zeros(16, dtype=np.int64)
        expected[0] = 16
        np.testing.assert_array_equal(product, expected)

    def test_reduce_length(self, small_ctx):
        assert small_ctx.reduce([1, 2, 3]).shape == (32,)
        assert small_ctx.zero().shape == (32,)

    def test_hashable_and_equal(self):
        a = RingContext.from_config(RingConfig(ring_degree=32, plaintext_modulus=113))
        b = RingContext.from_config(RingConfig(ring_degree=32, plaintext_modulus=113))

        assert a == b
        assert hash(a) == hash(b)
        assert len({a, b}) == 1

    def test_repr(self, small_ctx):
        assert repr(small_ctx) == "RingContext(m=32, p=113, l=8, d=4)"
