"""Cost function registry used by the gradient-descent trainer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable

import numpy as np

from ..core.activations import sigmoid_prime
from ..core.types import Array

LossFn = Callable[[Array, Array], float]
DeltaFn = Callable[[Array, Array, Array], Array]

_TINY = np.finfo(np.float64).tiny
_HUGE = np.finfo(np.float64).max


@dataclass(frozen=True)
class CostFunction:
    """Pair of a scalar batch loss and the output-layer error signal."""

    name: str
    loss_fn: LossFn
    delta_fn: DeltaFn

    def loss(self, predicted: Array, expected: Array) -> float:
        return self.loss_fn(predicted, expected)

    def output_delta(self, predicted: Array, expected: Array, pre_activation: Array) -> Array:
        return self.delta_fn(predicted, expected, pre_activation)


class CostRegistry:
    """Central registry for cost functions."""

    def __init__(self) -> None:
        self._registry: Dict[str, CostFunction] = {}

    def register(self, name: str, cost: CostFunction) -> None:
        self._registry[name] = cost

    def get(self, name: str) -> CostFunction:
        if name not in self._registry:
            available = ", ".join(self.names())
            raise KeyError(f"Unknown cost {name!r}. Available costs: {available}")
        return self._registry[name]

    def names(self) -> Iterable[str]:
        return sorted(self._registry)

    def resolve(self, cost: str | CostFunction) -> CostFunction:
        if isinstance(cost, CostFunction):
            return cost
        return self.get(str(cost))


COSTS = CostRegistry()


def trunc_log(x: Array) -> Array:
    """Natural log clamped to the finite float64 range.

    ``trunc_log(0)`` is ``log(tiny) ~ -708.4`` rather than ``-inf`` so a
    saturated activation never turns the loss into ``nan``.
    """

    return np.log(np.clip(x, _TINY, _HUGE))


def _cross_entropy_loss(predicted: Array, expected: Array) -> float:
    total = np.sum(
        expected * trunc_log(predicted) + (1.0 - expected) * trunc_log(1.0 - predicted)
    )
    return float(-total)


def _cross_entropy_delta(predicted: Array, expected: Array, pre_activation: Array) -> Array:
    # Valid only for a sigmoid output layer: the sigmoid derivative cancels
    # against the cross-entropy gradient, leaving a - y.  Any other output
    # activation needs the full chain rule through ``pre_activation``.
    return predicted - expected


def _quadratic_loss(predicted: Array, expected: Array) -> float:
    return float(0.5 * np.sum(np.square(predicted - expected)))


def _quadratic_delta(predicted: Array, expected: Array, pre_activation: Array) -> Array:
    return (predicted - expected) * sigmoid_prime(predicted)


CROSS_ENTROPY = CostFunction("cross_entropy", _cross_entropy_loss, _cross_entropy_delta)
QUADRATIC = CostFunction("quadratic", _quadratic_loss, _quadratic_delta)

COSTS.register("cross_entropy", CROSS_ENTROPY)
COSTS.register("quadratic", QUADRATIC)
# Short aliases
COSTS.register("ce", CROSS_ENTROPY)
COSTS.register("mse", QUADRATIC)

__all__ = ["CostFunction", "CostRegistry", "COSTS", "CROSS_ENTROPY", "QUADRATIC", "trunc_log"]
