"""Dataset registry and metadata contracts."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, MutableMapping

import numpy as np

from ..core.types import Array, TrainingSet


@dataclass(frozen=True)
class DatasetSpec:
    """A loaded dataset ready for the trainer.

    Attributes
    ----------
    name:
        Registry identifier of the loader that produced the dataset.
    train:
        Training matrices with samples as columns; ``train.outputs`` is one-hot.
    test_inputs:
        Held-out inputs with samples as columns, used by the epoch callback.
    test_labels:
        Integer class index of every held-out sample.
    provenance:
        Where the data came from and which options were used.
    extras:
        Loader specific metadata, e.g. normalisation parameters.
    """

    name: str
    train: TrainingSet
    test_inputs: Array
    test_labels: Array
    provenance: Dict[str, Any] = field(default_factory=dict)
    extras: Dict[str, Any] = field(default_factory=dict)

    @property
    def input_size(self) -> int:
        return int(self.train.inputs.shape[0])

    @property
    def num_classes(self) -> int:
        return int(self.train.outputs.shape[0])

    @property
    def splits(self) -> Dict[str, int]:
        return {"train": self.train.num_samples, "test": int(self.test_labels.shape[0])}


DatasetFactory = Callable[..., DatasetSpec]


_REGISTRY: MutableMapping[str, DatasetFactory] = {}


def register_dataset(
    name: str | None = None,
    factory: DatasetFactory | None = None,
) -> Callable[[DatasetFactory], DatasetFactory] | DatasetFactory:
    """Register a dataset factory.

    ``register_dataset`` can be used both as a decorator::

        @register_dataset("mnist")
        def load_mnist(**kwargs):
            ...

    or directly::

        register_dataset("mnist", load_mnist)
    """

    def _decorator(func: DatasetFactory) -> DatasetFactory:
        _REGISTRY[str(name or func.__name__)] = func
        return func

    if factory is not None:
        return _decorator(factory)
    if name is None:
        raise TypeError("register_dataset requires a name when used without a decorator")
    return _decorator


def get_dataset(
    dataset: str,
    /,
    *,
    offline: bool = True,
    cache_dir: str | Path | None = None,
    **options: Any,
) -> DatasetSpec:
    """Return the :class:`DatasetSpec` for ``dataset``."""

    if dataset not in _REGISTRY:
        available = ", ".join(available_datasets())
        raise KeyError(f"Unknown dataset: {dataset}. Available datasets: {available}")

    factory = _REGISTRY[dataset]
    spec = factory(offline=offline, cache_dir=cache_dir, **options)
    _validate_spec(spec)
    return spec


def available_datasets() -> Iterable[str]:
    """Return the sorted list of available dataset identifiers."""

    return sorted(_REGISTRY)


def _validate_spec(spec: DatasetSpec) -> None:
    outputs = spec.train.outputs
    if not np.all((outputs == 0.0) | (outputs == 1.0)):
        raise ValueError(f"Dataset {spec.name!r} must provide one-hot training outputs")
    if spec.test_inputs.ndim != 2 or spec.test_inputs.shape[0] != spec.input_size:
        raise ValueError(
            f"Dataset {spec.name!r} test inputs have shape {spec.test_inputs.shape}, "
            f"expected ({spec.input_size}, n)"
        )
    if spec.test_inputs.shape[1] != spec.test_labels.shape[0]:
        raise ValueError(f"Dataset {spec.name!r} test inputs and labels are not aligned")


__all__ = [
    "DatasetSpec",
    "available_datasets",
    "get_dataset",
    "register_dataset",
]
