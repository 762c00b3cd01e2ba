"""Activation utilities for sgdnet."""

from __future__ import annotations

import numpy as np

from .types import Array


def sigmoid(x: Array) -> Array:
    """Return the logistic sigmoid ``1 / (1 + e^-x)`` element-wise."""

    with np.errstate(over="ignore"):
        return 1.0 / (1.0 + np.exp(-x))


def sigmoid_prime(activation: Array) -> Array:
    """Derivative of the sigmoid expressed through its output.

    ``activation`` must already be ``sigmoid(x)``; the result equals
    ``sigmoid'(x) = sigmoid(x) * (1 - sigmoid(x))``.
    """

    return activation * (1.0 - activation)
