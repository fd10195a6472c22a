import pytest
import sys
from pathlib import Path

import numpy as np

sys.path.insert(0, str(Path(__file__).parent))

from slotgemm import RingConfig, RingContext


@pytest.fixture
def small_ctx():
    """X^32 + 1 over F_113: 8 slots of degree 4."""
    return RingContext.from_config(RingConfig(ring_degree=32, plaintext_modulus=113))


@pytest.fixture
def tiny_ctx():
    """X^16 + 1 over F_17: 8 slots of degree 2."""
    return RingContext.from_config(RingConfig(ring_degree=16, plaintext_modulus=17))


@pytest.fixture
def linear_ctx():
    """X^8 + 1 over F_97: the ring splits into 8 linear factors."""
    return RingContext.from_config(RingConfig(ring_degree=8, plaintext_modulus=97))


@pytest.fixture
def crt_ctx():
    """Three coprime quadratics over F_17 with middle terms."""
    return RingContext(17, [[1, 1, 1], [3, 2, 1], [5, 3, 1]])


@pytest.fixture
def rng():
    return np.random.default_rng(2024)


def random_slots(ctx, rng):
    """``l`` random slot polynomials of degree ``< d``."""
    return [rng.integers(0, ctx.p, size=ctx.d) for _ in range(ctx.l)]
