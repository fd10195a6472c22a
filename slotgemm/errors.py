"""
Exceptions raised by the packing and extraction routines.

All of them derive from :class:`ValueError` so callers that already guard
argument errors keep working, and from :class:`SlotGemmError` so the
protocol-specific failures can be caught as a group.
"""

from __future__ import annotations

__all__ = [
    "SlotGemmError",
    "InvalidFactorForm",
    "SlotCountMismatch",
    "DegreeOverflow",
    "EmptyMergeInput",
]


class SlotGemmError(Exception):
    """Base class for slotgemm failures."""


class InvalidFactorForm(SlotGemmError, ValueError):
    """A factor of the ring polynomial is not of the form ``X^d - beta``.

    Inner-product extraction reads fixed coefficient positions, which is only
    sound when every factor has nothing but a leading and a constant term.
    """


class SlotCountMismatch(SlotGemmError, ValueError):
    """A slot vector (or table list, or scalar list) does not have ``l`` entries."""


class DegreeOverflow(SlotGemmError, ValueError):
    """A slot polynomial has degree ``>= d`` or a ring element degree ``>= m``."""


class EmptyMergeInput(SlotGemmError, ValueError):
    """``merge_by_shift`` was called without any ciphertext."""
