"""
Integer matrix helpers over ``Z_p`` for the client's operands and results.
"""

from __future__ import annotations

from typing import Optional

import torch

__all__ = ["zeros", "randomize", "matmul_mod", "is_same"]


def zeros(rows: int, cols: int) -> torch.Tensor:
    """Zero ``rows x cols`` int64 matrix, the starting point of a result."""
    return torch.zeros(rows, cols, dtype=torch.int64)


def randomize(
    rows: int,
    cols: int,
    p: int,
    generator: Optional[torch.Generator] = None,
) -> torch.Tensor:
    """Matrix with entries drawn uniformly from ``[0, p)``."""
    return torch.randint(0, p, (rows, cols), dtype=torch.int64, generator=generator)


def matmul_mod(a: torch.Tensor, b: torch.Tensor, p: int) -> torch.Tensor:
    """``a @ b mod p`` without int64 overflow.

    The inner dimension is processed in chunks small enough that each partial
    sum of products of residues stays below ``2^63``.
    """
    if a.shape[1] != b.shape[0]:
        raise ValueError(f"Cannot multiply {tuple(a.shape)} by {tuple(b.shape)}")
    a = torch.remainder(a.to(torch.int64), p)
    b = torch.remainder(b.to(torch.int64), p)
    if (p - 1) ** 2 >= (1 << 62):
        raise ValueError(f"Modulus {p} is too large for int64 matrix products")
    chunk = (1 << 62) // max(1, (p - 1) ** 2)
    out = torch.zeros(a.shape[0], b.shape[1], dtype=torch.int64)
    for start in range(0, a.shape[1], chunk):
        stop = start + chunk
        out = torch.remainder(out + a[:, start:stop] @ b[start:stop], p)
    return out


def is_same(expected: torch.Tensor, actual: torch.Tensor, p: int) -> bool:
    """True when both matrices agree entrywise modulo ``p``."""
    if expected.shape != actual.shape:
        return False
    diff = torch.remainder(expected.to(torch.int64) - actual.to(torch.int64), p)
    return bool(torch.all(diff == 0))
