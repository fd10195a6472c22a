"""
Block partitioning of matrices into ring-element sized tiles.

A matrix operand is cut into ``l x d`` tiles: tile ``(row, col)`` covers
rows ``row*l .. row*l + l - 1`` and columns ``col*d .. col*d + d - 1``, and
row ``i`` of the tile becomes slot polynomial ``i``. Results come back as
``l`` scalars per ciphertext and are written into one column (or, for a
single-row output, one run of columns) of the result matrix.
"""

from __future__ import annotations

import math
from typing import Iterator, List, NamedTuple, Sequence, Tuple, Union

import numpy as np
import torch

from ..context import RingContext
from ..errors import SlotCountMismatch
from ..utils.modular import as_residues

__all__ = [
    "BlockId",
    "block_grid",
    "partition",
    "iter_blocks",
    "result_position",
    "fill_result",
]

MatrixLike = Union[torch.Tensor, np.ndarray]


class BlockId(NamedTuple):
    """Address of one ``l x d`` tile: row block and column block."""
    row: int
    col: int


def _as_numpy(matrix: MatrixLike) -> np.ndarray:
    if isinstance(matrix, torch.Tensor):
        matrix = matrix.detach().cpu().numpy()
    matrix = np.asarray(matrix)
    if matrix.ndim != 2:
        raise ValueError(f"Expected a 2-D matrix, got shape {tuple(matrix.shape)}")
    return matrix


def block_grid(rows: int, cols: int, context: RingContext) -> Tuple[int, int]:
    """Number of row blocks and column blocks covering a ``rows x cols`` matrix."""
    return math.ceil(rows / context.l), math.ceil(cols / context.d)


def _segment(row: np.ndarray, start: int, d: int, p: int) -> np.ndarray:
    out = as_residues(np.zeros(d, dtype=np.int64), p)
    chunk = row[start : start + d]
    out[: chunk.shape[0]] = as_residues(chunk, p)
    return out


def partition(
    matrix: MatrixLike,
    block: BlockId,
    context: RingContext,
    transpose: bool = False,
) -> List[np.ndarray]:
    """Read one tile of ``matrix`` as a slot vector ready for encoding.

    Args:
        matrix: 2-D integer matrix (torch tensor or numpy array).
        block: Tile address.
        context: Supplies ``l``, ``d`` and ``p``.
        transpose: Read ``matrix.T`` instead of ``matrix``.

    Returns:
        ``l`` arrays of ``d`` residues. Entries past the matrix boundary are
        zero. A single-row matrix is a vector operand: its ``1 x d`` segment
        is copied into every slot.
    """
    mat = _as_numpy(matrix)
    if transpose:
        mat = mat.T
    l, d, p = context.l, context.d, context.p
    rows = mat.shape[0]
    col_start = block.col * d

    if rows == 1:
        segment = _segment(mat[0], col_start, d, p)
        return [segment.copy() for _ in range(l)]

    slots = []
    for i in range(l):
        row = block.row * l + i
        if row < rows:
            slots.append(_segment(mat[row], col_start, d, p))
        else:
            slots.append(as_residues(np.zeros(d, dtype=np.int64), p))
    return slots


def iter_blocks(
    matrix: MatrixLike,
    context: RingContext,
    transpose: bool = False,
) -> Iterator[Tuple[BlockId, List[np.ndarray]]]:
    """Yield ``(BlockId, slots)`` for every tile in row-major block order."""
    mat = _as_numpy(matrix)
    if transpose:
        mat = mat.T
    row_blocks, col_blocks = block_grid(mat.shape[0], mat.shape[1], context)
    for x in range(row_blocks):
        for k in range(col_blocks):
            blk = BlockId(x, k)
            yield blk, partition(mat, blk, context)


def result_position(index: int, num_cols: int, vector: bool = False) -> Tuple[int, int]:
    """Map the index of a result ciphertext to ``(row_block, col)``.

    Matrix results arrive row-major: ``(index // num_cols, index % num_cols)``.
    Vector results carry ``l`` consecutive columns each, so ciphertext
    ``index`` is block ``index`` of the single output row.
    """
    if vector:
        return index, 0
    return divmod(index, num_cols)


def fill_result(
    output: MatrixLike,
    row_block: int,
    col: int,
    scalars: Sequence[int],
    l: int,  # noqa: E741
) -> int:
    """Write the ``l`` scalars of one result ciphertext into ``output``.

    Matrix outputs receive ``scalars[i]`` at ``(row_block*l + i, col)``; a
    single-row output receives them at ``(0, row_block*l + i)``. Writing stops
    silently at the matrix boundary.

    Returns:
        Number of values written.

    Raises:
        SlotCountMismatch: If ``len(scalars) != l``.
    """
    if len(scalars) != l:
        raise SlotCountMismatch(f"Expected {l} scalars, got {len(scalars)}")
    rows, cols = output.shape[0], output.shape[1]
    is_vec = rows == 1
    written = 0
    for i, value in enumerate(scalars):
        if is_vec:
            target = (0, row_block * l + i)
            if target[1] >= cols:
                break
        else:
            target = (row_block * l + i, col)
            if target[0] >= rows:
                break
        output[target] = int(value)
        written += 1
    return written
