"""Voice gender recognition from precomputed acoustic features.

The data file is a whitespace separated table: 20 acoustic properties per
recording followed by the label (0 = male, 1 = female).  Only the first
:data:`PROPERTY_COUNT` properties are used because those are the ones a
feature extractor can compute from a raw recording (mean frequency, standard
deviation, median, Q25, Q75, IQR, skew, kurtosis, spectral entropy, spectral
flatness, mode and centroid).
"""

from __future__ import annotations

from pathlib import Path
from typing import IO, Sequence, Tuple

import numpy as np
import pandas as pd

from ..core.errors import FormatError, ShapeMismatchError
from ..core.network import Network
from ..core.serialization import open_for_read, open_for_write
from ..core.types import Array, TrainingSet
from .registry import DatasetSpec, register_dataset
from .utils import half_scale, half_scale_parameters, one_hot_columns, resolve_cache_dir

PROPERTY_COUNT = 12
PROPERTIES_IN_DATA = 20
NUM_SEXES = 2
HIDDEN_SIZE = 10


def read_voice_table(path: str | Path) -> Tuple[Array, Array]:
    """Return ``(features, labels)``; features are ``(PROPERTY_COUNT, n)``."""

    try:
        frame = pd.read_csv(path, sep=r"\s+", header=None)
    except (pd.errors.EmptyDataError, pd.errors.ParserError) as exc:
        raise FormatError(f"{path}: cannot parse voice table") from exc
    if frame.shape[1] != PROPERTIES_IN_DATA + 1:
        raise FormatError(
            f"{path}: expected {PROPERTIES_IN_DATA + 1} columns, got {frame.shape[1]}"
        )
    try:
        features = frame.iloc[:, :PROPERTY_COUNT].to_numpy(dtype=np.float64).T
        labels = frame.iloc[:, PROPERTIES_IN_DATA].to_numpy(dtype=np.float64)
    except ValueError as exc:
        raise FormatError(f"{path}: non-numeric value in voice table") from exc
    if not np.all(np.isin(labels, (0.0, 1.0))):
        raise FormatError(f"{path}: labels must be 0 (male) or 1 (female)")
    return features, labels.astype(int)


def save_normalization(target: str | Path | IO[str], means: Array, stddevs: Array) -> None:
    """Write means on the first line and standard deviations on the second."""

    with open_for_write(target) as handle:
        handle.write(" ".join(repr(float(m)) for m in means) + "\n")
        handle.write(" ".join(repr(float(s)) for s in stddevs) + "\n")


def load_normalization(
    source: str | Path | IO[str], count: int = PROPERTY_COUNT
) -> Tuple[Array, Array]:
    with open_for_read(source) as handle:
        tokens = handle.read().split()
    if len(tokens) < 2 * count:
        raise FormatError("Bad normalization parameters file: too few values")
    try:
        values = np.array([float(tok) for tok in tokens[: 2 * count]], dtype=np.float64)
    except ValueError as exc:
        raise FormatError("Bad normalization parameters file: non-numeric value") from exc
    return values[:count], values[count:]


def _build_offline_fixture(path: Path, rows: int = 400, seed: int = 0) -> None:
    """Write a synthetic voice table where the two sexes differ in pitch features."""

    rng = np.random.default_rng(seed)
    labels = np.arange(rows) % 2
    base = rng.normal(0.15, 0.03, size=(rows, PROPERTIES_IN_DATA))
    # Female voices sit higher in the frequency-derived properties.
    base[:, :PROPERTY_COUNT] += labels[:, np.newaxis] * 0.06
    table = np.column_stack([base, labels])
    path.parent.mkdir(parents=True, exist_ok=True)
    frame = pd.DataFrame(table)
    frame[PROPERTIES_IN_DATA] = frame[PROPERTIES_IN_DATA].astype(int)
    frame.to_csv(path, sep=" ", header=False, index=False, float_format="%.6f")


@register_dataset("voice_gender")
def load_voice_gender(
    data_path: str | Path | None = None,
    train_size: int | None = None,
    *,
    offline: bool = True,
    cache_dir: str | Path | None = None,
    **_: object,
) -> DatasetSpec:
    """Load the voice table, normalise it and split train/test by position.

    Normalisation statistics are computed over the whole table.  The first
    ``train_size`` rows train (default: all but the last 168 rows, or 80% of
    small tables), the rest are held out.
    """

    mode = "file"
    if data_path is None:
        if not offline:
            raise ValueError("voice_gender requires `data_path` when offline=False")
        path = resolve_cache_dir(cache_dir) / "offline" / "voice" / "voice_gender.txt"
        if not path.exists():
            _build_offline_fixture(path)
        mode = "offline"
    else:
        path = Path(data_path)

    features, labels = read_voice_table(path)
    n = features.shape[1]
    if train_size is None:
        train_size = n - 168 if n > 840 else int(n * 0.8)
    train_size = int(train_size)
    if not 0 < train_size < n:
        raise ValueError(f"train_size must be in (0, {n}), got {train_size}")

    means, stddevs = half_scale_parameters(features)
    normalized = half_scale(features, means, stddevs)

    provenance = {"path": str(path), "mode": mode, "train_size": train_size, "rows": n}
    return DatasetSpec(
        name="voice_gender",
        train=TrainingSet(
            inputs=normalized[:, :train_size],
            outputs=one_hot_columns(labels[:train_size], NUM_SEXES),
        ),
        test_inputs=normalized[:, train_size:],
        test_labels=labels[train_size:],
        provenance=provenance,
        extras={"normalization": {"means": means.tolist(), "stddevs": stddevs.tolist()}},
    )


class VoiceGenderClassifier:
    """A trained 12-10-2 network together with its input normalisation."""

    def __init__(self, network: Network, means: Sequence[float], stddevs: Sequence[float]):
        self.network = network
        self.means = np.asarray(means, dtype=np.float64)
        self.stddevs = np.asarray(stddevs, dtype=np.float64)
        if self.means.shape != (network.input_size,) or self.stddevs.shape != self.means.shape:
            raise ShapeMismatchError(
                f"Normalization parameters must have {network.input_size} entries"
            )

    @classmethod
    def from_files(
        cls,
        weights: str | Path | IO[str],
        normalization: str | Path | IO[str],
        layer_sizes: Sequence[int] = (PROPERTY_COUNT, HIDDEN_SIZE, NUM_SEXES),
    ) -> "VoiceGenderClassifier":
        network = Network.from_file(layer_sizes, weights)
        means, stddevs = load_normalization(normalization, count=network.input_size)
        return cls(network, means, stddevs)

    def save(
        self, weights: str | Path | IO[str], normalization: str | Path | IO[str]
    ) -> None:
        self.network.save(weights)
        save_normalization(normalization, self.means, self.stddevs)

    def identify_voice(self, properties: Sequence[float]) -> Tuple[float, float]:
        """Return how strongly the network rates the voice as (male, female)."""

        features = np.asarray(properties, dtype=np.float64)
        if features.shape != (self.network.input_size,):
            raise ShapeMismatchError(
                f"Expected {self.network.input_size} voice properties, got {features.shape}"
            )
        normalized = half_scale(features.reshape(-1, 1), self.means, self.stddevs)[:, 0]
        male, female = self.network.feed_forward(normalized)
        return float(male), float(female)


__all__ = [
    "PROPERTY_COUNT",
    "read_voice_table",
    "save_normalization",
    "load_normalization",
    "load_voice_gender",
    "VoiceGenderClassifier",
]
