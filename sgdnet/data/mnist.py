"""MNIST digits read from the original IDX files.

See http://yann.lecun.com/exdb/mnist/ for the file layout: a big-endian
header (magic number, item count and, for images, rows and columns) followed
by one unsigned byte per pixel or label.
"""

from __future__ import annotations

import struct
import warnings
from pathlib import Path

import numpy as np

from ..core.errors import FormatError
from ..core.types import TrainingSet
from .registry import DatasetSpec, register_dataset
from .utils import one_hot_columns, resolve_cache_dir

IMAGE_MAGIC = 2051
LABEL_MAGIC = 2049
NUM_DIGITS = 10

TRAIN_IMAGES = "train-images.idx3-ubyte"
TRAIN_LABELS = "train-labels.idx1-ubyte"
TEST_IMAGES = "t10k-images.idx3-ubyte"
TEST_LABELS = "t10k-labels.idx1-ubyte"


def read_idx_images(path: str | Path, limit: int | None = None) -> np.ndarray:
    """Return images as a ``(rows * cols, n)`` float matrix scaled to ``[0, 1]``."""

    raw = Path(path).read_bytes()
    if len(raw) < 16:
        raise FormatError(f"{path}: truncated IDX image header")
    magic, count, rows, cols = struct.unpack(">IIII", raw[:16])
    if magic != IMAGE_MAGIC:
        raise FormatError(f"{path}: bad magic number {magic}, expected {IMAGE_MAGIC}")
    if limit is not None:
        count = min(count, int(limit))
    pixels = rows * cols
    needed = 16 + count * pixels
    if len(raw) < needed:
        raise FormatError(f"{path}: expected {count} images of {pixels} bytes, file is truncated")
    data = np.frombuffer(raw, dtype=np.uint8, count=count * pixels, offset=16)
    return data.reshape(count, pixels).T.astype(np.float64) / 255.0


def read_idx_labels(path: str | Path, limit: int | None = None) -> np.ndarray:
    raw = Path(path).read_bytes()
    if len(raw) < 8:
        raise FormatError(f"{path}: truncated IDX label header")
    magic, count = struct.unpack(">II", raw[:8])
    if magic != LABEL_MAGIC:
        raise FormatError(f"{path}: bad magic number {magic}, expected {LABEL_MAGIC}")
    if limit is not None:
        count = min(count, int(limit))
    if len(raw) < 8 + count:
        raise FormatError(f"{path}: expected {count} labels, file is truncated")
    labels = np.frombuffer(raw, dtype=np.uint8, count=count, offset=8).astype(int)
    if labels.size and labels.max() >= NUM_DIGITS:
        raise FormatError(f"{path}: label {labels.max()} is not a digit")
    return labels


def write_idx_images(path: str | Path, images: np.ndarray) -> None:
    """Write ``(n, rows, cols)`` uint8 images in IDX format."""

    images = np.asarray(images, dtype=np.uint8)
    count, rows, cols = images.shape
    with Path(path).open("wb") as handle:
        handle.write(struct.pack(">IIII", IMAGE_MAGIC, count, rows, cols))
        handle.write(images.tobytes())


def write_idx_labels(path: str | Path, labels: np.ndarray) -> None:
    labels = np.asarray(labels, dtype=np.uint8)
    with Path(path).open("wb") as handle:
        handle.write(struct.pack(">II", LABEL_MAGIC, labels.shape[0]))
        handle.write(labels.tobytes())


def _build_offline_fixture(directory: Path, train_items: int = 200, test_items: int = 50) -> None:
    """Write a small deterministic MNIST-like IDX fixture.

    Each digit ``d`` lights up the ``d``-th horizontal band of a 28x28 image,
    with a pixel pattern derived from integer arithmetic only so the files are
    identical on every platform.
    """

    directory.mkdir(parents=True, exist_ok=True)

    def _images(count: int, offset: int) -> tuple[np.ndarray, np.ndarray]:
        labels = (np.arange(count) + offset) % NUM_DIGITS
        images = np.zeros((count, 28, 28), dtype=np.uint8)
        texture = (np.arange(28 * 28).reshape(28, 28) * 37 % 64).astype(np.uint8)
        for idx, digit in enumerate(labels):
            band = slice(2 + 2 * digit, 5 + 2 * digit)
            images[idx, band, 4:24] = 191 + texture[band, 4:24]
        return images, labels

    train_x, train_y = _images(train_items, 0)
    test_x, test_y = _images(test_items, 3)
    write_idx_images(directory / TRAIN_IMAGES, train_x)
    write_idx_labels(directory / TRAIN_LABELS, train_y)
    write_idx_images(directory / TEST_IMAGES, test_x)
    write_idx_labels(directory / TEST_LABELS, test_y)


@register_dataset("mnist")
def load_mnist(
    data_dir: str | Path | None = None,
    max_train: int | None = None,
    max_test: int | None = None,
    *,
    offline: bool = True,
    cache_dir: str | Path | None = None,
    **_: object,
) -> DatasetSpec:
    """Load MNIST from ``data_dir`` or from the offline fixture."""

    mode = "files"
    if data_dir is None:
        if not offline:
            raise ValueError("MNIST requires `data_dir` pointing at the IDX files when offline=False")
        directory = resolve_cache_dir(cache_dir) / "offline" / "mnist"
        if not (directory / TRAIN_IMAGES).exists():
            _build_offline_fixture(directory)
        mode = "offline"
    else:
        directory = Path(data_dir)

    train_x = read_idx_images(directory / TRAIN_IMAGES, limit=max_train)
    train_y = read_idx_labels(directory / TRAIN_LABELS, limit=max_train)
    test_x = read_idx_images(directory / TEST_IMAGES, limit=max_test)
    test_y = read_idx_labels(directory / TEST_LABELS, limit=max_test)
    if train_x.shape[1] != train_y.shape[0] or test_x.shape[1] != test_y.shape[0]:
        raise FormatError(f"{directory}: image and label files hold different sample counts")
    if max_train is not None and train_x.shape[1] < max_train:
        warnings.warn(
            f"Requested {max_train} training images but only {train_x.shape[1]} are available",
            RuntimeWarning,
            stacklevel=2,
        )

    provenance = {
        "path": str(directory),
        "mode": mode,
        "max_train": max_train,
        "max_test": max_test,
    }
    return DatasetSpec(
        name="mnist",
        train=TrainingSet(inputs=train_x, outputs=one_hot_columns(train_y, NUM_DIGITS)),
        test_inputs=test_x,
        test_labels=test_y,
        provenance=provenance,
    )


__all__ = [
    "read_idx_images",
    "read_idx_labels",
    "write_idx_images",
    "write_idx_labels",
    "load_mnist",
]
