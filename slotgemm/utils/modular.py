"""
Modular arithmetic helpers over a prime field ``F_p``.

Scalars are plain Python ints. Vectors and matrices are numpy arrays whose
dtype is ``int64`` when every intermediate value provably fits, and
``object`` (Python ints) otherwise.
"""

from __future__ import annotations

from typing import Sequence, Set, Tuple

import numpy as np

__all__ = [
    "modinv",
    "prime_factors",
    "is_prime",
    "find_generator",
    "primitive_root_of_unity",
    "barrett_constants",
    "barrett_reduce",
    "barrett_mul",
    "accumulator_dtype",
    "as_residues",
    "matmul_mod",
    "inverse_matrix_mod",
    "solve_mod",
]

_INT64_LIMIT = 1 << 63


def modinv(x: int, p: int) -> int:
    """Return the inverse of ``x`` mod ``p``.

    Raises:
        ValueError: If ``x`` is not invertible mod ``p``.
    """
    return int(pow(int(x) % p, -1, p))


def prime_factors(n: int) -> Set[int]:
    """Return the set of prime factors of ``n``."""
    factors = set()
    while n % 2 == 0:
        factors.add(2)
        n //= 2
    q = 3
    while q * q <= n:
        while n % q == 0:
            factors.add(q)
            n //= q
        q += 2
    if n > 1:
        factors.add(n)
    return factors


def is_prime(n: int) -> bool:
    """Deterministic Miller-Rabin test, exact for ``n < 2^64``."""
    if n < 2:
        return False
    small_primes = (2, 3, 5, 7, 11, 13, 17, 19, 23, 29, 31, 37)
    for q in small_primes:
        if n == q:
            return True
        if n % q == 0:
            return False

    d = n - 1
    s = 0
    while d % 2 == 0:
        d //= 2
        s += 1

    for a in small_primes:
        x = pow(a, d, n)
        if x == 1 or x == n - 1:
            continue
        for _ in range(s - 1):
            x = pow(x, 2, n)
            if x == n - 1:
                break
        else:
            return False
    return True


def find_generator(p: int) -> int:
    """Return the smallest generator of ``F_p^*``.

    Raises:
        ValueError: If no generator exists, i.e. ``p`` is not prime.
    """
    phi = p - 1
    factors = prime_factors(phi)
    for g in range(2, p):
        if all(pow(g, phi // q, p) != 1 for q in factors):
            return g
    raise ValueError(f"No generator found, check that {p} is prime")


def primitive_root_of_unity(n: int, p: int) -> int:
    """Return a primitive ``n``-th root of unity mod the prime ``p``.

    Raises:
        ValueError: If ``n`` does not divide ``p - 1``.
    """
    if (p - 1) % n != 0:
        raise ValueError(f"n={n} must divide p-1={p - 1} for a primitive n-th root to exist")
    omega = pow(find_generator(p), (p - 1) // n, p)
    if any(pow(omega, n // q, p) == 1 for q in prime_factors(n)):
        raise ValueError(f"{omega} is not a primitive {n}-th root of unity mod {p}")
    return omega


# ── Barrett reduction ────────────────────────────────────────────────────────

def barrett_constants(p: int) -> Tuple[int, int]:
    """Return ``(shift, factor)`` with ``factor = floor(2^shift / p)``.

    ``shift`` is twice the bit length of ``p`` so that any product of two
    residues reduces with at most two corrective subtractions.
    """
    shift = 2 * p.bit_length()
    return shift, (1 << shift) // p


def barrett_reduce(x: int, p: int, shift: int, factor: int) -> int:
    """Reduce ``0 <= x < p^2`` modulo ``p`` without a division."""
    q = (x * factor) >> shift
    r = x - q * p
    while r >= p:
        r -= p
    return r


def barrett_mul(a: int, b: int, p: int, shift: int, factor: int) -> int:
    """Return ``a * b mod p`` for residues ``a, b``."""
    return barrett_reduce(a * b, p, shift, factor)


# ── Vectors and matrices ─────────────────────────────────────────────────────

def accumulator_dtype(p: int, terms: int = 1):
    """Pick a dtype able to hold a sum of ``terms`` products of residues."""
    if max(terms, 1) * (p - 1) ** 2 < _INT64_LIMIT:
        return np.int64
    return object


def as_residues(values, p: int, terms: int = 1) -> np.ndarray:
    """Convert ``values`` (any integer lift) to an array of residues mod ``p``."""
    dtype = accumulator_dtype(p, terms)
    if dtype is object:
        arr = np.array([int(v) % p for v in np.asarray(values, dtype=object).reshape(-1)], dtype=object)
        return arr.reshape(np.shape(values))
    return np.mod(np.asarray(values, dtype=np.int64), p)


def matmul_mod(a: np.ndarray, b: np.ndarray, p: int) -> np.ndarray:
    """Matrix product of residue arrays mod ``p``."""
    inner = a.shape[-1]
    a = as_residues(a, p, inner)
    b = as_residues(b, p, inner)
    return np.mod(a @ b, p)


def _row_reduce(augmented: np.ndarray, n: int, p: int) -> np.ndarray:
    """Gauss-Jordan elimination on the first ``n`` columns, in place."""
    for col in range(n):
        pivot = next((r for r in range(col, n) if augmented[r, col] % p != 0), None)
        if pivot is None:
            raise ValueError("Matrix is singular modulo p")
        if pivot != col:
            augmented[[col, pivot]] = augmented[[pivot, col]]
        inv = modinv(int(augmented[col, col]), p)
        augmented[col] = np.mod(augmented[col] * inv, p)
        for r in range(n):
            if r == col:
                continue
            factor = int(augmented[r, col])
            if factor:
                augmented[r] = np.mod(augmented[r] - factor * augmented[col], p)
    return augmented


def inverse_matrix_mod(matrix: Sequence[Sequence[int]], p: int) -> np.ndarray:
    """Invert a square matrix over ``F_p``.

    Raises:
        ValueError: If the matrix is not square or is singular mod ``p``.
    """
    m = as_residues(matrix, p)
    if m.ndim != 2 or m.shape[0] != m.shape[1]:
        raise ValueError(f"Expected a square matrix, got shape {m.shape}")
    n = m.shape[0]
    eye = as_residues(np.eye(n, dtype=np.int64), p)
    augmented = np.concatenate([m, eye], axis=1)
    return _row_reduce(augmented, n, p)[:, n:]


def solve_mod(matrix: Sequence[Sequence[int]], rhs: Sequence[int], p: int) -> np.ndarray:
    """Solve ``matrix @ x == rhs`` over ``F_p`` for a non-singular square matrix."""
    m = as_residues(matrix, p)
    n = m.shape[0]
    b = as_residues(rhs, p).reshape(n, 1)
    augmented = np.concatenate([m, b], axis=1)
    return _row_reduce(augmented, n, p)[:, n]
