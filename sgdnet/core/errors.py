"""Error taxonomy shared by the network, the trainer and the loaders."""

from __future__ import annotations


class SgdNetError(Exception):
    """Base class for errors raised by sgdnet."""


class ShapeMismatchError(SgdNetError, ValueError):
    """Raised when a matrix or vector does not have the expected dimensions."""


class TopologyMismatchError(SgdNetError, ValueError):
    """Raised when stored parameters declare different layer sizes than the network."""


class FormatError(SgdNetError, ValueError):
    """Raised when a parameter or data file is truncated or corrupt."""


__all__ = [
    "SgdNetError",
    "ShapeMismatchError",
    "TopologyMismatchError",
    "FormatError",
]
