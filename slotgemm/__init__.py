"""
slotgemm: slot-packed secure matrix multiplication, client side.

This library packs blocks of an integer matrix into the CRT slots of a
ring element, and reads matrix-product entries back out of the ring element
the server returns after a homomorphic multiplication.

Quick Start:
    >>> import slotgemm
    >>>
    >>> # 1. Build the ring and its slot factorization
    >>> ctx = slotgemm.RingContext.from_config(slotgemm.RingConfig())
    >>>
    >>> # 2. Pack and unpack slots
    >>> codec = slotgemm.SlotCodec(ctx)
    >>> packed = codec.encode(slots)
    >>> slots = codec.decode(packed)
    >>>
    >>> # 3. Recover inner products from a decrypted product
    >>> tables = slotgemm.build_gmm_tables(ctx)
    >>> values = slotgemm.extract_inner_products(product, tables, ctx)
    >>>
    >>> # 4. Or run the whole client against a server
    >>> driver = slotgemm.ClientProtocolDriver(backend, transport)
    >>> computed, report = driver.play(A, B)

The encryption library and the network are not part of this package; they
plug in through :class:`Ciphertext`, :class:`HEBackend` and :class:`Transport`.
"""

__version__ = "0.1.0"

# Core classes
from .context import FactorDescriptor, RingConfig, RingContext
from .errors import (
    DegreeOverflow,
    EmptyMergeInput,
    InvalidFactorForm,
    SlotCountMismatch,
    SlotGemmError,
)
from .ciphertext import Ciphertext, HEBackend, Transport
from .gmm import (
    GMMTable,
    build_gmm_table,
    build_gmm_tables,
    check_restricted_form,
    extract_inner_product,
    extract_inner_products,
    get_gmm_tables,
    weighted_coefficients,
)
from .coeff_extract import (
    CoeffExtractorAux,
    build_coeff_extractor_aux,
    get_coeff_extractor_aux,
    merge_by_shift,
)
from .client import ClientProtocolDriver, ClientReport

# Submodules
from . import batching
from . import utils
from .batching import BlockId, SlotCodec, fill_result, partition

__all__ = [
    # Version
    "__version__",
    # Ring
    "RingConfig",
    "RingContext",
    "FactorDescriptor",
    # Errors
    "SlotGemmError",
    "InvalidFactorForm",
    "SlotCountMismatch",
    "DegreeOverflow",
    "EmptyMergeInput",
    # Codec and partitioning
    "SlotCodec",
    "BlockId",
    "partition",
    "fill_result",
    # Extraction
    "GMMTable",
    "check_restricted_form",
    "build_gmm_table",
    "build_gmm_tables",
    "get_gmm_tables",
    "weighted_coefficients",
    "extract_inner_product",
    "extract_inner_products",
    "CoeffExtractorAux",
    "build_coeff_extractor_aux",
    "get_coeff_extractor_aux",
    "merge_by_shift",
    # Protocol
    "Ciphertext",
    "HEBackend",
    "Transport",
    "ClientProtocolDriver",
    "ClientReport",
    # Submodules
    "batching",
    "utils",
]
