"""
Polynomial arithmetic over ``F_p``.

Polynomials are 1-D numpy arrays of coefficients, lowest degree first
(``a[i]`` multiplies ``X^i``), the same layout ``numpy.polynomial`` uses.
Every function returns residues in ``[0, p)``.
"""

from __future__ import annotations

from typing import Sequence, Tuple

import numpy as np

from .modular import as_residues, matmul_mod, modinv

__all__ = [
    "poly_degree",
    "poly_trim",
    "monomial",
    "poly_add",
    "poly_sub",
    "poly_mul",
    "poly_divmod",
    "poly_mod",
    "poly_mod_binomial",
    "poly_inverse_mod",
    "poly_pow_mod",
    "is_binomial",
    "coefficients",
]


def poly_degree(a) -> int:
    """Degree of ``a``; the zero polynomial has degree ``-1``."""
    nz = np.flatnonzero(np.asarray(a))
    return int(nz[-1]) if nz.size else -1


def poly_trim(a, p: int) -> np.ndarray:
    """Reduce coefficients mod ``p`` and drop leading zero coefficients."""
    a = as_residues(a, p)
    return a[: poly_degree(a) + 1]


def monomial(degree: int, p: int, coeff: int = 1) -> np.ndarray:
    """Return ``coeff * X^degree``."""
    out = as_residues(np.zeros(degree + 1, dtype=np.int64), p)
    out[degree] = coeff % p
    return out


def _pad(a: np.ndarray, length: int) -> np.ndarray:
    if a.shape[0] >= length:
        return a
    pad = np.zeros(length - a.shape[0], dtype=a.dtype)
    return np.concatenate([a, pad])


def poly_add(a, b, p: int) -> np.ndarray:
    a = as_residues(a, p)
    b = as_residues(b, p)
    n = max(a.shape[0], b.shape[0])
    return np.mod(_pad(a, n) + _pad(b, n), p)


def poly_sub(a, b, p: int) -> np.ndarray:
    a = as_residues(a, p)
    b = as_residues(b, p)
    n = max(a.shape[0], b.shape[0])
    return np.mod(_pad(a, n) - _pad(b, n), p)


def poly_mul(a, b, p: int) -> np.ndarray:
    """Full (unreduced) product of two polynomials."""
    a = np.asarray(a)
    b = np.asarray(b)
    if a.size == 0 or b.size == 0:
        return as_residues(np.zeros(0, dtype=np.int64), p)
    terms = min(a.shape[0], b.shape[0])
    a = as_residues(a, p, terms)
    b = as_residues(b, p, terms)
    return np.mod(np.convolve(a, b), p)


def poly_divmod(a, f, p: int) -> Tuple[np.ndarray, np.ndarray]:
    """Long division ``a = q * f + r`` with ``deg r < deg f``.

    Raises:
        ZeroDivisionError: If ``f`` is the zero polynomial.
    """
    f = poly_trim(f, p)
    if f.shape[0] == 0:
        raise ZeroDivisionError("polynomial division by zero")
    r = poly_trim(a, p).copy()
    df = f.shape[0] - 1
    if r.shape[0] <= df:
        return as_residues(np.zeros(0, dtype=np.int64), p), _pad(r, df)[:df]

    lead_inv = modinv(int(f[-1]), p)
    q = as_residues(np.zeros(r.shape[0] - df, dtype=np.int64), p)
    for shift in range(r.shape[0] - 1 - df, -1, -1):
        c = int(r[shift + df]) * lead_inv % p
        if c == 0:
            continue
        q[shift] = c
        r[shift : shift + df + 1] = np.mod(r[shift : shift + df + 1] - c * f, p)
    return q, r[:df]


def is_binomial(f, p: int) -> bool:
    """True when ``f`` is monic with only a leading and a constant term."""
    f = poly_trim(f, p)
    if f.shape[0] < 2 or int(f[-1]) != 1:
        return False
    return not np.any(f[1:-1])


def poly_mod_binomial(a, d: int, root: int, p: int) -> np.ndarray:
    """Reduce ``a`` modulo ``X^d - root``; returns exactly ``d`` coefficients.

    Since ``X^(i*d + j) == root^i * X^j``, the remainder is a weighted sum of
    the length-``d`` chunks of ``a``.
    """
    a = as_residues(a, p)
    if a.shape[0] <= d:
        return _pad(a, d)
    chunks = -(-a.shape[0] // d)
    rows = _pad(a, chunks * d).reshape(chunks, d)
    powers = as_residues([pow(root, i, p) for i in range(chunks)], p).reshape(1, chunks)
    return matmul_mod(powers, rows, p).reshape(d)


def poly_mod(a, f, p: int) -> np.ndarray:
    """Remainder of ``a`` modulo ``f``, padded to ``deg f`` coefficients."""
    f = poly_trim(f, p)
    if is_binomial(f, p):
        return poly_mod_binomial(a, f.shape[0] - 1, (-int(f[0])) % p, p)
    return poly_divmod(a, f, p)[1]


def poly_inverse_mod(a, f, p: int) -> np.ndarray:
    """Inverse of ``a`` in ``F_p[X]/(f)``.

    Raises:
        ValueError: If ``a`` and ``f`` are not coprime.
    """
    f = poly_trim(f, p)
    r0, r1 = f, poly_trim(poly_mod(a, f, p), p)
    s0 = as_residues(np.zeros(0, dtype=np.int64), p)
    s1 = as_residues(np.ones(1, dtype=np.int64), p)
    while r1.shape[0] > 0:
        q, r = poly_divmod(r0, r1, p)
        r0, r1 = r1, poly_trim(r, p)
        s0, s1 = s1, poly_trim(poly_sub(s0, poly_mul(q, s1, p), p), p)
    if r0.shape[0] != 1:
        raise ValueError("polynomial is not invertible modulo f")
    inv = poly_mul(s0, [modinv(int(r0[0]), p)], p)
    return poly_mod(inv, f, p)


def poly_pow_mod(a, e: int, f, p: int) -> np.ndarray:
    """``a^e mod f`` by square-and-multiply."""
    f = poly_trim(f, p)
    result = poly_mod([1], f, p)
    base = poly_mod(a, f, p)
    while e > 0:
        if e & 1:
            result = poly_mod(poly_mul(result, base, p), f, p)
        base = poly_mod(poly_mul(base, base, p), f, p)
        e >>= 1
    return result


def coefficients(values: Sequence[int], length: int, p: int) -> np.ndarray:
    """Residues of ``values`` zero-padded to ``length`` coefficients."""
    return _pad(as_residues(values, p), length)
