"""
GMM tables and inner-product extraction.

After the server multiplies a packed row block by packed (reversed) column
segments, slot ``k`` of the product holds, at degree ``d - 1``, the inner
product of the two coefficient vectors. Reducing the whole product by each
factor would cost ``O(l * m)``; instead, for a factor ``X^d - r`` the degree
``d - 1`` coefficient of ``P mod (X^d - r)`` is

    sum_i P[(i + 1) * d - 1] * r^i

so only the ``l`` coefficients at positions ``d-1, 2d-1, ..., m-1`` of the
decrypted product are read and weighted by precomputed powers of the root.
The weights are stored as ``(-beta)^i`` where ``beta`` is the factor's
constant coefficient (``r = -beta``); the sign is applied by alternating
``beta`` and ``p - beta`` with the parity of ``i``.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from typing import List, Sequence

import numpy as np

from .context import FactorDescriptor, RingContext
from .errors import DegreeOverflow, InvalidFactorForm, SlotCountMismatch
from .utils.modular import as_residues, barrett_constants, barrett_mul
from .utils.polynomial import poly_degree

logger = logging.getLogger(__name__)

__all__ = [
    "GMMTable",
    "check_restricted_form",
    "build_gmm_table",
    "build_gmm_tables",
    "get_gmm_tables",
    "weighted_coefficients",
    "extract_inner_product",
    "extract_inner_products",
]


@dataclass(frozen=True)
class GMMTable:
    """Precomputed weights for one factor.

    Attributes:
        beta: The factor's constant coefficient.
        modulus: The plaintext modulus ``p``.
        beta_powers: ``(-beta)^i mod p`` for ``0 <= i < l``.
        barrett_shift: Shift of the Barrett constant for ``p``.
        barrett_factor: ``floor(2^barrett_shift / p)``.
    """
    beta: int
    modulus: int
    beta_powers: tuple
    barrett_shift: int
    barrett_factor: int

    @property
    def weights(self) -> tuple:
        return self.beta_powers

    def mul_mod(self, a: int, b: int) -> int:
        return barrett_mul(a, b, self.modulus, self.barrett_shift, self.barrett_factor)


def check_restricted_form(factor: FactorDescriptor) -> None:
    """Reject factors with a nonzero coefficient strictly between degree 0 and ``d``.

    Raises:
        InvalidFactorForm: If ``factor`` is not ``X^d - beta``.
    """
    if not factor.is_restricted():
        raise InvalidFactorForm(
            f"{factor!r} is not of the form X^d - beta; inner products cannot "
            "be read from fixed coefficient positions"
        )


def build_gmm_table(beta: int, p: int, slots: int) -> GMMTable:
    """Build the weight table for a factor with constant coefficient ``beta``."""
    shift, factor = barrett_constants(p)
    powers = tuple(pow(p - beta if i & 1 else beta, i, p) for i in range(slots))
    return GMMTable(
        beta=beta,
        modulus=p,
        beta_powers=powers,
        barrett_shift=shift,
        barrett_factor=factor,
    )


def build_gmm_tables(context: RingContext) -> List[GMMTable]:
    """Build one table per factor, in factor order.

    Raises:
        InvalidFactorForm: If any factor is not of the form ``X^d - beta``.
            No table is returned in that case.
    """
    for factor in context.factors:
        check_restricted_form(factor)
    tables = [build_gmm_table(f.beta, context.p, context.l) for f in context.factors]
    logger.info("Built %d GMM tables for %r", len(tables), context)
    return tables


@functools.lru_cache(maxsize=None)
def _cached_tables(context: RingContext) -> tuple:
    return tuple(build_gmm_tables(context))


def get_gmm_tables(context: RingContext) -> List[GMMTable]:
    """Return the tables for ``context``, building them once per context."""
    return list(_cached_tables(context))


def _product_coefficients(product, context: RingContext) -> np.ndarray:
    values = as_residues(np.asarray(product).reshape(-1), context.p)
    if poly_degree(values) >= context.m:
        raise DegreeOverflow(
            f"Product has degree {poly_degree(values)}; reduce it modulo the "
            f"ring polynomial (m={context.m}) before extraction"
        )
    d = context.d
    positions = np.arange(1, context.l + 1) * d - 1
    out = as_residues(np.zeros(context.l, dtype=np.int64), context.p)
    inside = positions < values.shape[0]
    out[inside] = values[positions[inside]]
    return out


def weighted_coefficients(product, table: GMMTable, context: RingContext) -> List[int]:
    """Coefficient ``(i+1)*d - 1`` of ``product`` times ``table.beta_powers[i]``, per ``i``."""
    coeffs = _product_coefficients(product, context)
    return [table.mul_mod(int(c), w) for c, w in zip(coeffs, table.beta_powers)]


def extract_inner_product(product, table: GMMTable, context: RingContext) -> int:
    """Degree ``d - 1`` coefficient of ``product`` reduced by the table's factor."""
    p = context.p
    acc = 0
    for term in weighted_coefficients(product, table, context):
        acc += term
        if acc >= p:
            acc -= p
    return acc


def extract_inner_products(
    product,
    tables: Sequence[GMMTable],
    context: RingContext,
) -> List[int]:
    """Recover the ``l`` per-slot inner products from a decrypted product.

    Args:
        product: Decrypted ring element, reduced modulo the ring polynomial.
        tables: One table per factor, as returned by :func:`build_gmm_tables`.
        context: The ring context.

    Returns:
        ``l`` scalars in ``[0, p)``; entry ``k`` belongs to slot ``k``.

    Raises:
        SlotCountMismatch: If ``len(tables) != l``.
        DegreeOverflow: If ``product`` is not reduced.
    """
    if len(tables) != context.l:
        raise SlotCountMismatch(f"Expected {context.l} GMM tables, got {len(tables)}")
    coeffs = [int(c) for c in _product_coefficients(product, context)]
    p = context.p
    out = []
    for tbl in tables:
        acc = 0
        for c, w in zip(coeffs, tbl.beta_powers):
            acc += tbl.mul_mod(c, w)
            if acc >= p:
                acc -= p
        out.append(acc)
    return out
