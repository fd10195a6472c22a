"""
Batching utilities for slot-packed matrix multiplication.

This module provides the tools that move matrix data in and out of CRT
slots of a single ring element.

Classes:
    SlotCodec: Pack/unpack ``l`` slot polynomials into one ring element.
    BlockId: Address of an ``l x d`` matrix tile.
"""

from .packing import SlotCodec, decode, encode, get_codec
from .partition import (
    BlockId,
    block_grid,
    fill_result,
    iter_blocks,
    partition,
    result_position,
)

__all__ = [
    "SlotCodec",
    "get_codec",
    "encode",
    "decode",
    "BlockId",
    "block_grid",
    "partition",
    "iter_blocks",
    "result_position",
    "fill_result",
]
