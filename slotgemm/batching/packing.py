"""
Slot packing codec for CRT-batched plaintexts.

This module packs ``l`` slot polynomials (each of degree ``< d``) into a
single ring element of degree ``< m`` and back, enabling SIMD-style batch
processing of matrix blocks.
"""

from __future__ import annotations

import functools
import logging
from typing import List, Sequence

import numpy as np

from ..context import RingContext
from ..errors import DegreeOverflow, SlotCountMismatch
from ..utils.modular import as_residues, inverse_matrix_mod, matmul_mod
from ..utils.polynomial import (
    coefficients,
    poly_add,
    poly_divmod,
    poly_degree,
    poly_inverse_mod,
    poly_mod,
    poly_mul,
)

logger = logging.getLogger(__name__)

__all__ = ["SlotCodec", "get_codec", "encode", "decode"]


class SlotCodec:
    """Packs slot polynomials into ring elements by CRT reconstruction.

    For every slot ``i`` the packed element ``r`` satisfies
    ``r mod F_i == slots[i]``, where ``F_i`` is factor ``i`` of the context.

    When every factor has the restricted form ``X^d - beta_i`` the codec works
    on the ``l x d`` coefficient grid of ``r``: since ``X^(k*d + j)`` reduces
    to ``beta_i^k * X^j``, slot ``i`` coefficient ``j`` is
    ``sum_k beta_i^k * r[k*d + j]``. Decoding is one product with the power
    matrix ``V[i][k] = beta_i^k`` and encoding one product with its inverse
    (Lagrange interpolation in ``Y = X^d``). Other factorizations fall back
    to the general CRT formula with one idempotent per factor.

    Example:
        >>> codec = SlotCodec(ctx)
        >>> packed = codec.encode([np.array([1, 2, 3, 4])] * ctx.l)
        >>> recovered = codec.decode(packed)  # l arrays of d coefficients
    """

    def __init__(self, context: RingContext):
        """Initialize the SlotCodec.

        Args:
            context: The ring and its factorization.

        Raises:
            ValueError: If the factors are not pairwise coprime.
        """
        self.context = context
        p, l = context.p, context.l

        if context.all_factors_restricted():
            self.strategy = "binomial"
            roots = [f.root for f in context.factors]
            self._powers = as_residues([[pow(r, k, p) for k in range(l)] for r in roots], p)
            self._powers_inv = inverse_matrix_mod(self._powers, p)
            self._idempotents: List[np.ndarray] = []
        else:
            self.strategy = "crt"
            self._idempotents = [self._idempotent(i) for i in range(l)]
        logger.debug("SlotCodec for %r uses the %s strategy", context, self.strategy)

    def _idempotent(self, i: int) -> np.ndarray:
        """``e_i`` with ``e_i = 1 mod F_i`` and ``e_i = 0 mod F_j`` for ``j != i``."""
        ctx = self.context
        p = ctx.p
        factor = ctx.factors[i].as_array()
        cofactor, rem = poly_divmod(ctx.modulus, factor, p)
        if poly_degree(rem) >= 0:
            raise ValueError(f"Factor {i} does not divide the ring polynomial")
        weight = poly_inverse_mod(poly_mod(cofactor, factor, p), factor, p)
        return ctx.reduce(poly_mul(cofactor, weight, p))

    @property
    def slot_count(self) -> int:
        return self.context.l

    @property
    def slot_degree(self) -> int:
        return self.context.d

    def _check_slots(self, slots: Sequence) -> List[np.ndarray]:
        ctx = self.context
        if len(slots) != ctx.l:
            raise SlotCountMismatch(
                f"Expected {ctx.l} slot polynomials, got {len(slots)}"
            )
        checked = []
        for i, slot in enumerate(slots):
            values = as_residues(np.asarray(slot).reshape(-1), ctx.p)
            if poly_degree(values) >= ctx.d:
                raise DegreeOverflow(
                    f"Slot {i} has degree {poly_degree(values)}, must be < d={ctx.d}"
                )
            checked.append(coefficients(values[: ctx.d], ctx.d, ctx.p))
        return checked

    def encode(self, slots: Sequence) -> np.ndarray:
        """Pack ``l`` slot polynomials into one ring element.

        Args:
            slots: ``l`` coefficient sequences, each of degree ``< d``.
                Integer lifts are reduced mod ``p``.

        Returns:
            The ring element as an array of ``m`` residues.

        Raises:
            SlotCountMismatch: If ``len(slots) != l``.
            DegreeOverflow: If a slot has degree ``>= d``.
        """
        ctx = self.context
        checked = self._check_slots(slots)

        if self.strategy == "binomial":
            grid = np.stack(checked)
            return matmul_mod(self._powers_inv, grid, ctx.p).reshape(ctx.m)

        packed = ctx.zero()
        for slot, idem in zip(checked, self._idempotents):
            packed = poly_add(packed, poly_mul(slot, idem, ctx.p), ctx.p)
        return ctx.reduce(packed)

    def decode(self, poly) -> List[np.ndarray]:
        """Split a ring element into its ``l`` slot polynomials.

        Args:
            poly: Ring element coefficients (``m`` or fewer). Integer lifts,
                including negative values, are reduced mod ``p``.

        Returns:
            ``l`` arrays of exactly ``d`` residues.

        Raises:
            DegreeOverflow: If ``poly`` has degree ``>= m``.
        """
        ctx = self.context
        values = as_residues(np.asarray(poly).reshape(-1), ctx.p)
        if poly_degree(values) >= ctx.m:
            raise DegreeOverflow(
                f"Ring element has degree {poly_degree(values)}, must be < m={ctx.m}"
            )
        values = coefficients(values[: ctx.m], ctx.m, ctx.p)

        if self.strategy == "binomial":
            grid = values.reshape(ctx.l, ctx.d)
            return list(matmul_mod(self._powers, grid, ctx.p))

        return [poly_mod(values, f.as_array(), ctx.p) for f in ctx.factors]

    def __repr__(self) -> str:
        return (
            f"SlotCodec(slots={self.slot_count}, slot_degree={self.slot_degree}, "
            f"strategy={self.strategy!r})"
        )


@functools.lru_cache(maxsize=None)
def get_codec(context: RingContext) -> SlotCodec:
    """Return the cached codec for ``context``."""
    return SlotCodec(context)


def encode(slots: Sequence, context: RingContext) -> np.ndarray:
    """Pack ``slots`` into a ring element of ``context``."""
    return get_codec(context).encode(slots)


def decode(poly, context: RingContext) -> List[np.ndarray]:
    """Split a ring element of ``context`` into its slot polynomials."""
    return get_codec(context).decode(poly)
