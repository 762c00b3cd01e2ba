"""Generic CSV loader for classification tables."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pandas as pd
from sklearn.preprocessing import LabelEncoder

from ..core.errors import FormatError
from ..core.types import TrainingSet
from .registry import DatasetSpec, register_dataset
from .utils import deterministic_split, half_scale, half_scale_parameters, one_hot_columns


def _load_csv(path: Path, target_col: str) -> tuple[np.ndarray, np.ndarray]:
    df = pd.read_csv(path)
    if target_col not in df.columns:
        raise KeyError(f"Target column {target_col!r} not found in CSV")
    y = df.pop(target_col).to_numpy()
    try:
        X = df.to_numpy(dtype=np.float64)
    except ValueError as exc:
        raise FormatError(f"{path}: feature columns must be numeric") from exc
    return X.T, y


@register_dataset("csv_classification")
def load_csv_classification(
    csv_path: str | Path | None = None,
    target_col: str = "target",
    test_split: float = 0.2,
    seed: int = 0,
    normalize: bool = True,
    *,
    offline: bool = True,
    cache_dir: str | Path | None = None,
    **_: object,
) -> DatasetSpec:
    """Load a classification dataset from a CSV file with a header row."""

    if csv_path is None:
        raise ValueError("csv_classification requires `csv_path`")
    path = Path(csv_path)
    X, y_raw = _load_csv(path, target_col)
    encoder = LabelEncoder()
    y = encoder.fit_transform(y_raw)
    num_classes = int(len(encoder.classes_))

    normalization: dict[str, list[float]] = {}
    if normalize:
        means, stddevs = half_scale_parameters(X)
        X = half_scale(X, means, stddevs)
        normalization = {"means": means.tolist(), "stddevs": stddevs.tolist()}

    splits = deterministic_split(X.shape[1], test_split=test_split, seed=seed)

    provenance = {
        "path": str(path),
        "test_split": test_split,
        "seed": seed,
        "target_col": target_col,
        "classes": [str(c) for c in encoder.classes_.tolist()],
    }
    return DatasetSpec(
        name="csv_classification",
        train=TrainingSet(
            inputs=X[:, splits.train],
            outputs=one_hot_columns(y[splits.train], num_classes),
        ),
        test_inputs=X[:, splits.test],
        test_labels=y[splits.test],
        provenance=provenance,
        extras={"normalization": normalization} if normalization else {},
    )


__all__ = ["load_csv_classification"]
