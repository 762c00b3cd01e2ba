"""Core typing contracts for sgdnet."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from .errors import ShapeMismatchError

Array = np.ndarray


@dataclass(frozen=True)
class TrainingSet:
    """Aligned input/expected-output matrices with samples as columns."""

    inputs: Array
    outputs: Array

    def __post_init__(self) -> None:
        inputs = np.asarray(self.inputs, dtype=np.float64)
        outputs = np.asarray(self.outputs, dtype=np.float64)
        if inputs.ndim != 2 or outputs.ndim != 2:
            raise ShapeMismatchError(
                "Training inputs and outputs must be 2-D matrices with samples as columns"
            )
        if inputs.shape[1] != outputs.shape[1]:
            raise ShapeMismatchError(
                f"Training inputs have {inputs.shape[1]} samples but outputs have "
                f"{outputs.shape[1]}"
            )
        object.__setattr__(self, "inputs", inputs)
        object.__setattr__(self, "outputs", outputs)

    @property
    def num_samples(self) -> int:
        return int(self.inputs.shape[1])

    def columns(self, start: int, stop: int) -> tuple[Array, Array]:
        """Return the ``[start, stop)`` column slice of both matrices."""

        return self.inputs[:, start:stop], self.outputs[:, start:stop]


@dataclass
class ForwardPass:
    """Per-layer state captured during one forward pass.

    ``activations[0]`` is the input batch and ``activations[-1]`` the network
    output.  ``pre_activations[0]`` is ``None`` because the input layer has no
    weighted input.
    """

    activations: List[Array]
    pre_activations: List[Optional[Array]]

    @property
    def output(self) -> Array:
        return self.activations[-1]

    @property
    def batch_width(self) -> int:
        return int(self.activations[0].shape[1])


@dataclass(frozen=True)
class ModelDescription:
    """Description of the feed-forward network architecture."""

    layer_sizes: List[int]

    @property
    def input_size(self) -> int:
        return self.layer_sizes[0]

    @property
    def output_size(self) -> int:
        return self.layer_sizes[-1]


@dataclass(frozen=True)
class TrainingResult:
    """Summary returned by :meth:`sgdnet.training.trainer.GradientDescent.train`."""

    epochs_run: int
    stopped_early: bool
    epoch_losses: List[float] = field(default_factory=list)


@dataclass(frozen=True)
class RunResult:
    """Summary returned by :func:`sgdnet.training.pipelines.run_pipeline`."""

    epochs: int
    stopped_early: bool
    metrics_path: str
    manifest_path: str
    parameters_path: str = ""
    final_accuracy: float | None = None
