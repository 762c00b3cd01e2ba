"""Pure in-memory synthetic datasets."""

from __future__ import annotations

from pathlib import Path

import numpy as np

from ..core.types import TrainingSet
from .registry import DatasetSpec, register_dataset
from .utils import one_hot_columns


def make_blobs(
    n_points: int, *, spread: float = 0.35, seed: int = 0
) -> tuple[np.ndarray, np.ndarray]:
    """Two Gaussian clusters on either side of the line ``x0 + x1 = 0``.

    Returns ``(inputs, labels)`` with inputs of shape ``(2, n_points)`` and
    labels ``1`` for points above the line, ``0`` below.  Classes alternate so
    every contiguous mini-batch sees both.
    """

    rng = np.random.default_rng(seed)
    labels = np.arange(n_points) % 2
    centers = np.where(labels == 1, 1.0, -1.0)
    inputs = centers + spread * rng.standard_normal((2, n_points))
    # Points that drifted across the boundary take the label of their side.
    labels = (inputs.sum(axis=0) > 0).astype(int)
    return inputs, labels


@register_dataset("synthetic_blobs")
def load_synthetic_blobs(
    n_points: int = 200,
    test_points: int = 50,
    spread: float = 0.35,
    seed: int = 0,
    *,
    offline: bool = True,
    cache_dir: str | Path | None = None,
    **_: object,
) -> DatasetSpec:
    """Linearly separable two-class problem with one-hot outputs."""

    train_x, train_y = make_blobs(n_points, spread=spread, seed=seed)
    test_x, test_y = make_blobs(test_points, spread=spread, seed=seed + 1)
    provenance = {
        "type": "synthetic_blobs",
        "n_points": n_points,
        "test_points": test_points,
        "spread": spread,
        "seed": seed,
    }
    return DatasetSpec(
        name="synthetic_blobs",
        train=TrainingSet(inputs=train_x, outputs=one_hot_columns(train_y, 2)),
        test_inputs=test_x,
        test_labels=test_y,
        provenance=provenance,
    )


__all__ = ["make_blobs", "load_synthetic_blobs"]
