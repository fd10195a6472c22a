"""
setup.py for slotgemm, the client side of slot-packed secure matrix
multiplication.

The HE library that encrypts packed plaintexts is not a dependency; it is
plugged in through ``slotgemm.ciphertext.HEBackend``. Only the numeric stack
(numpy for ring elements, torch for the integer matrices) is required.

Environment variable overrides:
    SLOTGEMM_TORCH_SPEC=torch==2.4.1    Pin a specific torch requirement
"""

import os

from setuptools import find_packages, setup


def _get_torch_dependency() -> list[str]:
    """Return the torch requirement, honouring ``SLOTGEMM_TORCH_SPEC``."""
    forced = os.environ.get("SLOTGEMM_TORCH_SPEC", "").strip()
    if forced:
        return [forced]
    return ["torch>=2.0"]


setup(
    name="slotgemm",
    version="0.1.0",
    description="Slot-packed secure matrix multiplication over F_p[X]/(X^m + 1)",
    packages=find_packages(include=["slotgemm", "slotgemm.*"]),
    python_requires=">=3.9",
    install_requires=["numpy>=1.22"] + _get_torch_dependency(),
    extras_require={
        "test": ["pytest>=7.0"],
    },
)
