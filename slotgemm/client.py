"""
Client side of the secure matrix multiplication protocol.

The client owns the secret key and the left operand ``A`` (``n1 x n2``).
It packs ``A`` tile by tile, encrypts and uploads the tiles, and receives
one result ciphertext per ``(row_block, col)`` of ``C = A @ B``. Each
result is decrypted and its ``l`` inner products are read off with the GMM
tables.

Example:
    >>> driver = ClientProtocolDriver(backend, transport)
    >>> computed, report = driver.play(A, B)
    >>> print(report)
"""

from __future__ import annotations

import contextlib
import logging
import math
import time
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple

import torch

from .batching.packing import get_codec
from .batching.partition import fill_result, iter_blocks, result_position
from .ciphertext import Ciphertext, HEBackend, Transport
from .gmm import extract_inner_products, get_gmm_tables
from .utils.matrix import is_same, matmul_mod, randomize, zeros

logger = logging.getLogger(__name__)

__all__ = ["ClientReport", "ClientProtocolDriver"]


@dataclass
class ClientReport:
    """Timings (seconds) and counters of one protocol run."""

    n1: int
    n2: int
    n3: int
    pack_time: float = 0.0
    encrypt_time: float = 0.0
    decrypt_time: float = 0.0
    unpack_time: float = 0.0
    total_time: float = 0.0
    server_eval_time: float = 0.0
    ciphertexts_sent: int = 0
    ciphertexts_received: int = 0
    decryption_ok: bool = True
    verified: Optional[bool] = None

    def __str__(self) -> str:
        return (
            f"{self.n1}x{self.n2} @ {self.n2}x{self.n3}: "
            f"pack={self.pack_time * 1000:.2f}ms, "
            f"enc={self.encrypt_time * 1000:.2f}ms, "
            f"dec={self.decrypt_time * 1000:.2f}ms, "
            f"unpack={self.unpack_time * 1000:.2f}ms, "
            f"total={self.total_time * 1000:.2f}ms, "
            f"sent={self.ciphertexts_sent}, recv={self.ciphertexts_received}"
        )


@contextlib.contextmanager
def _timed(report: ClientReport, name: str) -> Iterator[None]:
    start = time.perf_counter()
    try:
        yield
    finally:
        setattr(report, name, getattr(report, name) + time.perf_counter() - start)


class ClientProtocolDriver:
    """Drives partition, encode, upload, download, decrypt, extract and assemble.

    Args:
        backend: Key holder; supplies the ring context, encryption and the
            evaluation key for the server.
        transport: Connection to the server.
    """

    def __init__(self, backend: HEBackend, transport: Transport):
        self.backend = backend
        self.transport = transport
        self.context = backend.context

    def expected_results(self, n1: int, n3: int) -> int:
        """Number of result ciphertexts the server emits for an ``n1 x n3`` output."""
        if n1 == 1:
            return math.ceil(n3 / self.context.l)
        return math.ceil(n1 / self.context.l) * n3

    def _upload(self, a: torch.Tensor, report: ClientReport) -> None:
        codec = get_codec(self.context)
        uploading: List[Ciphertext] = []
        for blk, slots in iter_blocks(a, self.context):
            with _timed(report, "pack_time"):
                packed = codec.encode(slots)
            with _timed(report, "encrypt_time"):
                uploading.append(self.backend.encrypt(packed))
            logger.debug("Packed and encrypted block %s", blk)
        self.transport.send_ciphertexts(uploading)
        report.ciphertexts_sent = len(uploading)

    def _download(self, n1: int, n3: int, report: ClientReport) -> torch.Tensor:
        ctx = self.context
        tables = get_gmm_tables(ctx)

        count = self.transport.receive_count()
        report.ciphertexts_received = count
        expected = self.expected_results(n1, n3)
        if count != expected:
            logger.warning("Server announced %d result ciphertexts, expected %d", count, expected)
        results = self.transport.receive_ciphertexts(count)
        report.server_eval_time = self.transport.receive_eval_time()

        computed = zeros(n1, n3)
        vector = n1 == 1
        for idx, ct in enumerate(results):
            with _timed(report, "decrypt_time"):
                report.decryption_ok &= ct.is_correct()
                product = ct.decrypt()
            with _timed(report, "unpack_time"):
                scalars = extract_inner_products(product, tables, ctx)
            row_blk, col = result_position(idx, n3, vector=vector)
            fill_result(computed, row_blk, col, scalars, ctx.l)
        return computed

    def play(
        self,
        a: torch.Tensor,
        b: Optional[torch.Tensor] = None,
        n3: Optional[int] = None,
    ) -> Tuple[torch.Tensor, ClientReport]:
        """Run one product ``A @ B`` against the server.

        Args:
            a: Left operand, ``n1 x n2`` integers.
            b: Right operand. The server holds its own copy; when given here it
                is only used to check the result.
            n3: Number of output columns. Required when ``b`` is omitted.

        Returns:
            The ``n1 x n3`` result modulo ``p`` and the run's report.
        """
        if b is None and n3 is None:
            raise ValueError("Either b or n3 must be given")
        n1, n2 = int(a.shape[0]), int(a.shape[1])
        if b is not None:
            if int(b.shape[0]) != n2:
                raise ValueError(f"Cannot multiply {tuple(a.shape)} by {tuple(b.shape)}")
            n3 = int(b.shape[1])
        report = ClientReport(n1=n1, n2=n2, n3=n3)

        with _timed(report, "total_time"):
            self.transport.send_evaluation_key(self.backend.evaluation_key())
            self._upload(a, report)
            computed = self._download(n1, n3, report)

        p = self.context.p
        if b is not None:
            report.verified = is_same(matmul_mod(a, b, p), computed, p)
            if not report.verified:
                logger.warning("The computation seems wrong for %dx%d @ %dx%d", n1, n2, n2, n3)
        if not report.decryption_ok:
            logger.warning("Decryption might fail: a result ciphertext failed its noise check")
        logger.info("%s", report)
        return computed, report

    def play_random(
        self, n1: int, n2: int, n3: int, seed: int = 123
    ) -> Tuple[torch.Tensor, ClientReport]:
        """Run ``A @ B`` on random operands drawn from ``seed``."""
        gen = torch.Generator().manual_seed(seed)
        p = self.context.p
        a = randomize(n1, n2, p, generator=gen)
        b = randomize(n2, n3, p, generator=gen)
        return self.play(a, b)

    def play_many(
        self, shapes: Sequence[Tuple[int, int, int]], seed: int = 123
    ) -> List[Tuple[torch.Tensor, ClientReport]]:
        """Run several random products over the same session, in order."""
        return [self.play_random(n1, n2, n3, seed=seed) for n1, n2, n3 in shapes]
