"""
Coefficient extraction constants and merging of shifted ciphertexts.

The server isolates one slot-internal coefficient at a time: with ``theta``
chosen so that ``Tr(theta * x) = x_{d-1}`` for every slot value ``x``, the
linearized polynomial

    L(x) = sum_j sigma^j(theta) * sigma^j(x)      (sigma = Frobenius)

moves the degree ``d - 1`` coefficient of each slot to degree 0. Only
``alpha_0 = theta`` has to be shipped; the other terms are its Frobenius
images. Extracted coefficients are later recombined by shifting ciphertext
``j`` by ``X^j`` and summing.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np

from .batching.packing import get_codec
from .ciphertext import Ciphertext
from .context import FactorDescriptor, RingContext
from .errors import DegreeOverflow, EmptyMergeInput
from .utils.modular import as_residues, solve_mod
from .utils.polynomial import monomial, poly_mod

logger = logging.getLogger(__name__)

__all__ = [
    "CoeffExtractorAux",
    "trace_form",
    "solve_alpha",
    "build_coeff_extractor_aux",
    "get_coeff_extractor_aux",
    "merge_by_shift",
]


@dataclass(frozen=True, eq=False)
class CoeffExtractorAux:
    """Packed constants for coefficient extraction and merging.

    Attributes:
        alpha: ``alpha_0`` of every slot, packed into one ring element.
        merge_offsets: ``X^j`` packed into every slot, for ``j = 1 .. d-1``.
        m: Ring degree.
        p: Plaintext modulus.
        d: Slot degree.
    """
    alpha: np.ndarray
    merge_offsets: Tuple[np.ndarray, ...]
    m: int
    p: int
    d: int

    def offset(self, shift: int) -> np.ndarray:
        """Packed ``X^shift`` for ``1 <= shift < d``."""
        if shift < 1:
            raise ValueError(f"shift must be at least 1, got {shift}")
        if shift >= self.d:
            raise DegreeOverflow(f"shift {shift} exceeds slot degree d={self.d}")
        return self.merge_offsets[shift - 1]


def trace_form(factor: FactorDescriptor) -> np.ndarray:
    """Gram matrix ``G[i][k] = Tr(X^(i+k))`` of the trace form of ``F_p[X]/(factor)``.

    ``Tr(g)`` is the trace of multiplication by ``g``: the sum over ``i`` of
    coefficient ``i`` of ``g * X^i mod factor``.
    """
    p, d = factor.modulus, factor.degree
    f = factor.as_array()
    powers = [poly_mod(monomial(n, p), f, p) for n in range(3 * d - 2)]
    traces = [sum(int(powers[a + i][i]) for i in range(d)) % p for a in range(2 * d - 1)]
    return as_residues([[traces[i + k] for k in range(d)] for i in range(d)], p)


def solve_alpha(factor: FactorDescriptor) -> np.ndarray:
    """Solve for ``theta`` with ``Tr(theta * X^i) = [i == d - 1]``.

    Raises:
        ValueError: If the trace form is degenerate (``p`` divides ``d`` or
            the factor has repeated roots).
    """
    d = factor.degree
    rhs = [0] * d
    rhs[d - 1] = 1
    return solve_mod(trace_form(factor), rhs, factor.modulus)


def build_coeff_extractor_aux(context: RingContext) -> CoeffExtractorAux:
    """Derive the packed ``alpha_0`` and the merge offsets for ``context``."""
    codec = get_codec(context)
    p, l, d = context.p, context.l, context.d

    alpha_slots: List[np.ndarray] = [solve_alpha(f) for f in context.factors]
    alpha = codec.encode(alpha_slots)

    offsets = tuple(codec.encode([monomial(j, p)] * l) for j in range(1, d))
    logger.info("Built coefficient extractor for %r (%d merge offsets)", context, len(offsets))
    return CoeffExtractorAux(alpha=alpha, merge_offsets=offsets, m=context.m, p=p, d=d)


@functools.lru_cache(maxsize=None)
def get_coeff_extractor_aux(context: RingContext) -> CoeffExtractorAux:
    """Return the aux data for ``context``, building it once per context."""
    return build_coeff_extractor_aux(context)


def merge_by_shift(ciphertexts: Sequence[Ciphertext], aux: CoeffExtractorAux) -> Ciphertext:
    """Combine ``cnt`` extracted ciphertexts into ``ct_0 + sum_j ct_j * X^j``.

    Args:
        ciphertexts: Ciphertexts each carrying one coefficient at degree 0
            of every slot. At most ``d`` of them.
        aux: Merge offsets from :func:`build_coeff_extractor_aux`.

    Returns:
        The merged ciphertext. A single input is returned unchanged.

    Raises:
        EmptyMergeInput: If ``ciphertexts`` is empty.
        DegreeOverflow: If more than ``d`` ciphertexts are given.
    """
    if not ciphertexts:
        raise EmptyMergeInput("merge_by_shift needs at least one ciphertext")
    if len(ciphertexts) > aux.d:
        raise DegreeOverflow(
            f"Cannot merge {len(ciphertexts)} ciphertexts into slots of degree d={aux.d}"
        )
    merged = ciphertexts[0]
    for shift, ct in enumerate(ciphertexts[1:], start=1):
        merged = merged + ct.multiply_by_constant(aux.offset(shift))
    return merged
