"""Training engine, cost functions and run pipelines."""

from .callbacks import HeldOutEvaluator
from .losses import COSTS, CROSS_ENTROPY, QUADRATIC, CostFunction
from .trainer import GradientDescent, GradientDescentParams

__all__ = [
    "COSTS",
    "CROSS_ENTROPY",
    "QUADRATIC",
    "CostFunction",
    "GradientDescent",
    "GradientDescentParams",
    "HeldOutEvaluator",
]
