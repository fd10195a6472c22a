"""
Interfaces to the homomorphic encryption layer and the transport.

The packing core never touches a concrete HE library. It only needs a
ciphertext handle that can be added, scaled by a plaintext ring element and
decrypted, plus a backend able to encrypt. Any library wrapped behind these
interfaces can drive :class:`~slotgemm.client.ClientProtocolDriver`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, List, Protocol, Sequence

import numpy as np

from .context import RingContext

__all__ = ["Ciphertext", "HEBackend", "Transport"]


class Ciphertext(ABC):
    """Opaque handle to an encrypted ring element.

    Operations return new handles; the receiver is never modified.
    """

    @abstractmethod
    def add(self, other: "Ciphertext") -> "Ciphertext":
        """Homomorphic addition."""

    @abstractmethod
    def multiply_by_constant(self, constant: np.ndarray) -> "Ciphertext":
        """Multiply by a plaintext ring element."""

    @abstractmethod
    def decrypt(self) -> np.ndarray:
        """Decrypt to a ring element reduced modulo the ring polynomial."""

    def is_correct(self) -> bool:
        """Noise check: False when decryption may have failed."""
        return True

    def __add__(self, other: "Ciphertext") -> "Ciphertext":
        return self.add(other)


class HEBackend(Protocol):
    """Key holder of the client: encrypts packed plaintexts."""

    @property
    def context(self) -> RingContext:
        ...

    def encrypt(self, poly: np.ndarray) -> Ciphertext:
        ...

    def evaluation_key(self) -> Any:
        ...


class Transport(Protocol):
    """Connection to the evaluating server.

    Result ciphertexts must arrive in the server's emission order: matrix
    results row-major over ``(row_block, col)``.
    """

    def send_evaluation_key(self, key: Any) -> None:
        ...

    def send_ciphertexts(self, ciphertexts: Sequence[Ciphertext]) -> None:
        ...

    def receive_count(self) -> int:
        ...

    def receive_ciphertexts(self, count: int) -> List[Ciphertext]:
        ...

    def receive_eval_time(self) -> float:
        ...
