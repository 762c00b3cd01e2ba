"""sgdnet public API."""

from .core import activations  # noqa: F401
from .core import types  # noqa: F401
from .core.errors import FormatError, SgdNetError, ShapeMismatchError, TopologyMismatchError
from .core.network import Network
from .training.losses import COSTS, CROSS_ENTROPY, QUADRATIC, CostFunction
from .training.pipelines import load_preset, presets, run_pipeline
from .training.trainer import GradientDescent, GradientDescentParams

__all__ = [
    "Network",
    "GradientDescent",
    "GradientDescentParams",
    "CostFunction",
    "COSTS",
    "CROSS_ENTROPY",
    "QUADRATIC",
    "SgdNetError",
    "ShapeMismatchError",
    "TopologyMismatchError",
    "FormatError",
    "activations",
    "types",
    "load_preset",
    "presets",
    "run_pipeline",
]
