"""Classification metrics for column-major network outputs."""

from __future__ import annotations

import numpy as np

from ..core.errors import ShapeMismatchError
from ..core.types import Array


def predicted_classes(outputs: Array) -> Array:
    """Index of the most active output neuron for every sample (column)."""

    outputs = np.asarray(outputs)
    if outputs.ndim == 1:
        outputs = outputs.reshape(-1, 1)
    return np.argmax(outputs, axis=0)


def label_indices(labels: Array, num_classes: int | None = None) -> Array:
    """Normalise ``labels`` to a vector of class indices.

    ``labels`` is either a vector of integer class indices or a one-hot
    matrix with samples as columns.
    """

    labels = np.asarray(labels)
    if labels.ndim == 2:
        if num_classes is not None and labels.shape[0] != num_classes:
            raise ShapeMismatchError(
                f"One-hot labels have {labels.shape[0]} rows, expected {num_classes}"
            )
        return np.argmax(labels, axis=0)
    return labels.reshape(-1).astype(int)


def count_correct(outputs: Array, labels: Array) -> int:
    predictions = predicted_classes(outputs)
    targets = label_indices(labels, num_classes=np.asarray(outputs).shape[0])
    if predictions.shape != targets.shape:
        raise ShapeMismatchError(
            f"Got {predictions.shape[0]} predictions for {targets.shape[0]} labels"
        )
    return int(np.sum(predictions == targets))


def accuracy(outputs: Array, labels: Array) -> float:
    total = predicted_classes(outputs).shape[0]
    if total == 0:
        return 0.0
    return count_correct(outputs, labels) / total


__all__ = ["predicted_classes", "label_indices", "count_correct", "accuracy"]
