"""Tests for GMM tables and inner-product extraction."""

import numpy as np
import pytest

from slotgemm import (
    DegreeOverflow,
    InvalidFactorForm,
    RingContext,
    SlotCodec,
    SlotCountMismatch,
    build_gmm_table,
    build_gmm_tables,
    check_restricted_form,
    extract_inner_product,
    extract_inner_products,
    get_gmm_tables,
    weighted_coefficients,
)


def _packed_product(ctx, a_slots, b_slots):
    """Ring product of ``a`` packed as-is and ``b`` packed with reversed slots."""
    codec = SlotCodec(ctx)
    packed_a = codec.encode(a_slots)
    packed_b = codec.encode([np.asarray(b)[::-1] for b in b_slots])
    return ctx.multiply(packed_a, packed_b)


class TestGMMTable:

    def test_weights_alternate_sign(self):
        table = build_gmm_table(5, 17, 4)

        assert table.beta_powers == (1, 12, 8, 11)
        assert table.weights == table.beta_powers

    def test_weights_are_powers_of_root(self, small_ctx):
        p = small_ctx.p
        for factor, table in zip(small_ctx.factors, build_gmm_tables(small_ctx)):
            assert table.beta == factor.beta
            assert table.modulus == p
            assert list(table.beta_powers) == [pow(factor.root, i, p) for i in range(small_ctx.l)]

    def test_barrett_multiplication(self):
        table = build_gmm_table(5, 70913, 2)

        for a, b in [(0, 7), (70912, 70912), (12345, 54321), (1, 70912)]:
            assert table.mul_mod(a, b) == a * b % 70913

    def test_tables_are_cached(self, small_ctx):
        first = get_gmm_tables(small_ctx)

        assert len(first) == small_ctx.l
        assert all(x is y for x, y in zip(first, get_gmm_tables(small_ctx)))


class TestRestrictedForm:

    def test_rejects_middle_coefficient(self):
        ctx = RingContext(17, [[1, 2, 0, 1]])

        with pytest.raises(InvalidFactorForm):
            check_restricted_form(ctx.factors[0])
        with pytest.raises(InvalidFactorForm):
            build_gmm_tables(ctx)

    def test_rejects_if_any_factor_fails(self, crt_ctx):
        with pytest.raises(InvalidFactorForm):
            get_gmm_tables(crt_ctx)

    def test_accepts_binomials(self, small_ctx):
        for factor in small_ctx.factors:
            check_restricted_form(factor)


class TestExtraction:

    @pytest.mark.parametrize("ctx_name", ["small_ctx", "tiny_ctx", "linear_ctx"])
    def test_inner_products(self, ctx_name, rng, request):
        ctx = request.getfixturevalue(ctx_name)
        a = rng.integers(0, ctx.p, size=(ctx.l, ctx.d))
        b = rng.integers(0, ctx.p, size=(ctx.l, ctx.d))

        product = _packed_product(ctx, list(a), list(b))
        values = extract_inner_products(product, build_gmm_tables(ctx), ctx)

        expected = [int(x) for x in (a * b).sum(axis=1) % ctx.p]
        assert values == expected

    def test_matches_full_decode(self, small_ctx, rng):
        product = rng.integers(0, small_ctx.p, size=small_ctx.m)
        tables = build_gmm_tables(small_ctx)

        values = extract_inner_products(product, tables, small_ctx)
        slots = SlotCodec(small_ctx).decode(product)

        assert values == [int(s[small_ctx.d - 1]) for s in slots]
        for k, table in enumerate(tables):
            assert extract_inner_product(product, table, small_ctx) == values[k]

    def test_weighted_coefficients(self, tiny_ctx):
        product = np.zeros(tiny_ctx.m, dtype=np.int64)
        product[1] = 3
        product[3] = 2
        table = build_gmm_tables(tiny_ctx)[0]

        terms = weighted_coefficients(product, table, tiny_ctx)

        assert len(terms) == tiny_ctx.l
        assert terms[0] == 3
        assert terms[1] == 2 * table.beta_powers[1] % tiny_ctx.p
        assert terms[2:] == [0] * (tiny_ctx.l - 2)

    def test_zero_product(self, small_ctx):
        values = extract_inner_products(small_ctx.zero(), get_gmm_tables(small_ctx), small_ctx)

        assert values == [0] * small_ctx.l

    def test_short_product_is_padded(self, small_ctx):
        values = extract_inner_products([0, 0, 0, 5], get_gmm_tables(small_ctx), small_ctx)

        assert values == [5] * small_ctx.l

    def test_unreduced_product(self, small_ctx):
        product = np.zeros(2 * small_ctx.m, dtype=np.int64)
        product[-1] = 1

        with pytest.raises(DegreeOverflow):
            extract_inner_products(product, get_gmm_tables(small_ctx), small_ctx)

    def test_wrong_table_count(self, small_ctx):
        tables = get_gmm_tables(small_ctx)[:-1]

        with pytest.raises(SlotCountMismatch):
            extract_inner_products(small_ctx.zero(), tables, small_ctx)
