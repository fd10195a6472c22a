"""
Ring context - the plaintext ring and its CRT factorization.

This module provides the parameters the packing codec works against: the
ring ``F_p[X]/(Phi)`` with ``deg Phi = m`` and an ordered factorization
``Phi = F_0 * ... * F_{l-1}`` into ``l`` factors of common degree ``d``.
Slot ``i`` of a packed ring element is its residue modulo ``F_i``.

The HE library normally owns this object; :class:`RingContext` is a
self-contained implementation exposing the same surface, so the codec can
be driven (and tested) without one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple, Union

import numpy as np

from .utils.modular import as_residues, is_prime, primitive_root_of_unity
from .utils.polynomial import is_binomial, poly_mod, poly_mul, poly_trim

logger = logging.getLogger(__name__)

__all__ = ["RingConfig", "FactorDescriptor", "RingContext"]


def _two_adic_valuation(n: int) -> int:
    e = 0
    while n % 2 == 0:
        n //= 2
        e += 1
    return e


@dataclass(frozen=True)
class RingConfig:
    """Parameters of the negacyclic plaintext ring ``F_p[X]/(X^m + 1)``.

    Attributes:
        ring_degree: ``m``, a power of two. The defaults correspond to the
            cyclotomic index 8192 used by the reference deployment.
        plaintext_modulus: ``p``, a prime with ``p = 1 (mod 4)`` so that
            ``X^m + 1`` splits into binomials ``X^d - beta``.
    """
    ring_degree: int = 4096
    plaintext_modulus: int = 70913

    def __post_init__(self) -> None:
        m, p = self.ring_degree, self.plaintext_modulus
        if m <= 0 or m & (m - 1):
            raise ValueError(f"ring_degree must be a power of two, got {m}")
        if not is_prime(p):
            raise ValueError(f"plaintext_modulus must be prime, got {p}")
        if p % 4 != 1:
            raise ValueError(
                f"plaintext_modulus must be 1 mod 4 for X^{m}+1 to split into "
                f"binomial factors, got {p}"
            )

    @property
    def slot_count(self) -> int:
        """Number of slots ``l``: ``min(m, 2^(e-1))`` where ``2^e`` exactly divides ``p - 1``."""
        return min(self.ring_degree, 2 ** (_two_adic_valuation(self.plaintext_modulus - 1) - 1))

    @property
    def slot_degree(self) -> int:
        """Degree ``d`` of every factor, ``m / l``."""
        return self.ring_degree // self.slot_count


@dataclass(frozen=True)
class FactorDescriptor:
    """One monic factor of the ring polynomial, coefficients lowest degree first."""
    coeffs: Tuple[int, ...]
    modulus: int

    @classmethod
    def from_coeffs(cls, coeffs: Sequence[int], modulus: int) -> "FactorDescriptor":
        trimmed = poly_trim(coeffs, modulus)
        if trimmed.shape[0] < 2:
            raise ValueError(f"A factor must have positive degree, got {list(coeffs)}")
        if int(trimmed[-1]) != 1:
            raise ValueError(f"Factors must be monic, got leading coefficient {int(trimmed[-1])}")
        return cls(tuple(int(c) for c in trimmed), modulus)

    @property
    def degree(self) -> int:
        return len(self.coeffs) - 1

    @property
    def beta(self) -> int:
        """The constant coefficient, as stored in the factor table."""
        return self.coeffs[0]

    @property
    def root(self) -> int:
        """``-beta mod p``: the factor reads ``X^d - root`` when restricted."""
        return (-self.coeffs[0]) % self.modulus

    def is_restricted(self) -> bool:
        """True when all coefficients strictly between degree 0 and ``d`` vanish."""
        return is_binomial(self.coeffs, self.modulus)

    def as_array(self) -> np.ndarray:
        return as_residues(self.coeffs, self.modulus)

    def __repr__(self) -> str:
        terms = [f"{c}*X^{i}" if i else str(c) for i, c in enumerate(self.coeffs) if c]
        return f"FactorDescriptor({' + '.join(reversed(terms))} mod {self.modulus})"


class RingContext:
    """Plaintext ring with an ordered factorization into ``l`` slot factors.

    Attributes exposed to the codec: ``m``, ``p``, ``l``, ``d`` and the
    ordered ``factors``. Instances are immutable and hashable, so derived
    tables can be cached per context.

    Example:
        >>> ctx = RingContext.from_config(RingConfig(ring_degree=32, plaintext_modulus=113))
        >>> ctx.l, ctx.d
        (8, 4)
    """

    def __init__(
        self,
        plaintext_modulus: int,
        factors: Sequence[Union[FactorDescriptor, Sequence[int]]],
        modulus: Optional[Sequence[int]] = None,
        config: Optional[RingConfig] = None,
    ):
        """Initialize a RingContext.

        Args:
            plaintext_modulus: The prime ``p``.
            factors: Ordered factors; each a :class:`FactorDescriptor` or a
                coefficient sequence (lowest degree first).
            modulus: The ring polynomial. Defaults to the product of ``factors``.
            config: The config this context was built from, if any.

        Raises:
            ValueError: If ``p`` is not prime, the factors have different
                degrees, or their product differs from ``modulus``.
        """
        p = int(plaintext_modulus)
        if not is_prime(p):
            raise ValueError(f"plaintext_modulus must be prime, got {p}")
        if not factors:
            raise ValueError("At least one factor is required")

        descs = tuple(
            f if isinstance(f, FactorDescriptor) else FactorDescriptor.from_coeffs(f, p)
            for f in factors
        )
        degrees = {f.degree for f in descs}
        if len(degrees) != 1:
            raise ValueError(f"All factors must share one degree, got degrees {sorted(degrees)}")

        product = np.array([1], dtype=np.int64)
        for f in descs:
            product = poly_mul(product, f.as_array(), p)
        product = poly_trim(product, p)
        if modulus is None:
            ring_poly = product
        else:
            ring_poly = poly_trim(modulus, p)
            if ring_poly.shape != product.shape or np.any(ring_poly != product):
                raise ValueError("The product of the factors does not equal the ring polynomial")

        self._p = p
        self._factors = descs
        self._modulus = tuple(int(c) for c in ring_poly)
        self._config = config
        self._key = (p, self._modulus, tuple(f.coeffs for f in descs))

    @classmethod
    def from_config(cls, config: Optional[RingConfig] = None) -> "RingContext":
        """Factor ``X^m + 1`` over ``F_p`` into ``l`` binomials ``X^d - zeta^(2k+1)``.

        ``zeta`` is a primitive ``2l``-th root of unity, so the roots
        ``zeta^(2k+1)`` are exactly the roots of ``Y^l + 1``; substituting
        ``Y = X^d`` gives ``X^m + 1``. With ``l`` chosen as in
        :attr:`RingConfig.slot_count` the binomials are irreducible.
        """
        config = config or RingConfig()
        m, p = config.ring_degree, config.plaintext_modulus
        l, d = config.slot_count, config.slot_degree
        zeta = primitive_root_of_unity(2 * l, p)

        factors = []
        for k in range(l):
            root = pow(zeta, 2 * k + 1, p)
            factors.append(FactorDescriptor(((-root) % p,) + (0,) * (d - 1) + (1,), p))

        modulus = [1] + [0] * (m - 1) + [1]
        ctx = cls(p, factors, modulus=modulus, config=config)
        logger.info("Ring context: m=%d p=%d -> %d slots of degree %d", m, p, l, d)
        return ctx

    # -------------------------------------------------------------------------
    # Parameters
    # -------------------------------------------------------------------------

    @property
    def p(self) -> int:
        """Plaintext modulus."""
        return self._p

    @property
    def m(self) -> int:
        """Degree of the ring polynomial."""
        return len(self._modulus) - 1

    @property
    def l(self) -> int:  # noqa: E743
        """Number of slots (factors)."""
        return len(self._factors)

    @property
    def d(self) -> int:
        """Degree of every factor."""
        return self._factors[0].degree

    slot_count = l
    slot_degree = d

    @property
    def factors(self) -> Tuple[FactorDescriptor, ...]:
        return self._factors

    @property
    def modulus(self) -> np.ndarray:
        """The ring polynomial as a coefficient array."""
        return as_residues(self._modulus, self._p)

    @property
    def config(self) -> Optional[RingConfig]:
        return self._config

    @property
    def is_negacyclic(self) -> bool:
        """True when the ring polynomial is ``X^m + 1``."""
        return self._modulus == (1,) + (0,) * (self.m - 1) + (1,)

    def all_factors_restricted(self) -> bool:
        return all(f.is_restricted() for f in self._factors)

    # -------------------------------------------------------------------------
    # Ring arithmetic
    # -------------------------------------------------------------------------

    def reduce(self, poly) -> np.ndarray:
        """Reduce a polynomial into the ring; returns exactly ``m`` coefficients."""
        return poly_mod(poly, self._modulus, self._p)

    def multiply(self, a, b) -> np.ndarray:
        """Ring product ``a * b mod (Phi, p)``."""
        return self.reduce(poly_mul(a, b, self._p))

    def zero(self) -> np.ndarray:
        return as_residues(np.zeros(self.m, dtype=np.int64), self._p)

    # -------------------------------------------------------------------------
    # Identity
    # -------------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RingContext):
            return NotImplemented
        return self._key == other._key

    def __hash__(self) -> int:
        return hash(self._key)

    def __repr__(self) -> str:
        return f"RingContext(m={self.m}, p={self.p}, l={self.l}, d={self.d})"
