"""Utility helpers for dataset loaders."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

import numpy as np

from ..core.types import Array

DEFAULT_CACHE_SUBDIR = Path.home() / ".cache" / "sgdnet"


def resolve_cache_dir(cache_dir: str | Path | None = None) -> Path:
    """Resolve the effective cache directory for dataset fixtures."""

    env_dir = os.environ.get("SGDNET_CACHE_DIR")
    base = Path(cache_dir or env_dir or DEFAULT_CACHE_SUBDIR)
    base.mkdir(parents=True, exist_ok=True)
    return base


def one_hot_columns(labels: Array, num_classes: int) -> Array:
    """Return a ``(num_classes, n)`` one-hot matrix for integer ``labels``."""

    labels = np.asarray(labels).reshape(-1).astype(int)
    if labels.size and (labels.min() < 0 or labels.max() >= num_classes):
        raise ValueError(f"Labels must lie in [0, {num_classes}), got {labels.min()}..{labels.max()}")
    out = np.zeros((num_classes, labels.shape[0]), dtype=np.float64)
    out[labels, np.arange(labels.shape[0])] = 1.0
    return out


@dataclass(frozen=True)
class SplitIndices:
    """Indices for train/test partitions."""

    train: np.ndarray
    test: np.ndarray

    @property
    def sizes(self) -> Mapping[str, int]:
        return {"train": int(self.train.size), "test": int(self.test.size)}


def deterministic_split(
    n_samples: int,
    *,
    test_split: float = 0.2,
    seed: int = 0,
) -> SplitIndices:
    """Return deterministic shuffled indices for the requested test ratio."""

    if not 0 <= test_split < 1:
        raise ValueError("test_split must be in [0, 1)")

    rng = np.random.default_rng(seed)
    indices = np.arange(n_samples)
    rng.shuffle(indices)

    test_size = int(round(n_samples * test_split))
    # Ensure at least one test sample when a test split was requested
    test_size = min(max(test_size, 1 if test_split > 0 else 0), n_samples)
    if n_samples - test_size <= 0:
        raise ValueError("Not enough samples for the requested split")
    return SplitIndices(train=indices[test_size:], test=indices[:test_size])


def half_scale_parameters(features: Array) -> tuple[Array, Array]:
    """Per-row mean and sample standard deviation of a column-major matrix."""

    mean = features.mean(axis=1)
    std = features.std(axis=1, ddof=1) if features.shape[1] > 1 else np.zeros_like(mean)
    std = np.where(std == 0, 1.0, std)
    return mean, std


def half_scale(features: Array, mean: Array, std: Array) -> Array:
    """Map z-scores into roughly ``[0, 1]``: ``0.5 + (x - mean) / (2 * std)``."""

    return 0.5 + (features - mean[:, np.newaxis]) / (2.0 * std[:, np.newaxis])


__all__ = [
    "resolve_cache_dir",
    "one_hot_columns",
    "SplitIndices",
    "deterministic_split",
    "half_scale_parameters",
    "half_scale",
]
