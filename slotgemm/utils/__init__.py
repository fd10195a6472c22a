"""
Utility functions for slotgemm.
"""

from .matrix import is_same, matmul_mod, randomize, zeros
from .modular import (
    barrett_constants,
    barrett_mul,
    inverse_matrix_mod,
    is_prime,
    modinv,
    primitive_root_of_unity,
    solve_mod,
)

__all__ = [
    "zeros",
    "randomize",
    "matmul_mod",
    "is_same",
    "modinv",
    "is_prime",
    "primitive_root_of_unity",
    "barrett_constants",
    "barrett_mul",
    "inverse_matrix_mod",
    "solve_mod",
]
