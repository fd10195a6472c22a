"""Mock HE backend for testing without an encryption library."""

from .mock_backend import (
    MockCiphertext,
    MockHEBackend,
    MockServerTransport,
)

__all__ = [
    "MockCiphertext",
    "MockHEBackend",
    "MockServerTransport",
]
