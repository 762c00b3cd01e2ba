"""Core numerical primitives for sgdnet."""

from . import activations, errors, serialization, types
from .network import Network, TrainingView

__all__ = ["Network", "TrainingView", "activations", "errors", "serialization", "types"]
