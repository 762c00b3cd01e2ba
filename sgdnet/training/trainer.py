"""Mini-batch stochastic gradient descent with backpropagation."""

from __future__ import annotations

import warnings
from dataclasses import dataclass
from typing import Callable, List, Mapping, Sequence

import numpy as np

from ..core.activations import sigmoid_prime
from ..core.errors import ShapeMismatchError
from ..core.network import Network
from ..core.types import Array, TrainingResult, TrainingSet
from .losses import CROSS_ENTROPY, CostFunction

EpochCallback = Callable[[Network, int], bool]


@dataclass(frozen=True)
class GradientDescentParams:
    """Hyperparameters of a training run.

    ``regularization`` is the L2 coefficient (lambda); the weight decay factor
    applied each mini-batch is ``1 - learning_rate * regularization / n`` with
    ``n`` the full training-set size.
    """

    epochs: int = 30
    batch_size: int = 10
    learning_rate: float = 0.5
    regularization: float = 0.1
    cost: CostFunction = CROSS_ENTROPY

    def __post_init__(self) -> None:
        if self.epochs < 1:
            raise ValueError(f"epochs must be positive, got {self.epochs}")
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")
        if self.learning_rate < 0:
            raise ValueError(f"learning_rate must be non-negative, got {self.learning_rate}")
        if self.regularization < 0:
            raise ValueError(
                f"regularization must be non-negative, got {self.regularization}"
            )


class GradientDescent:
    """Train a :class:`Network` on a fixed training set.

    The epoch callback passed to :meth:`train` receives the live network and
    the 1-based epoch index and returns ``True`` to stop.  It may read the
    network (for example run a held-out evaluation) but must not modify its
    parameters.
    """

    def __init__(
        self,
        network: Network,
        params: GradientDescentParams | None = None,
        training_data: TrainingSet | None = None,
        callbacks: Sequence[object] | None = None,
    ) -> None:
        self.network = network
        self.params = params or GradientDescentParams()
        self.callbacks = list(callbacks or [])
        self.training_data: TrainingSet | None = None
        self.epoch_loss = 0.0
        self.epoch_losses: List[float] = []
        if training_data is not None:
            self.set_training_data(training_data.inputs, training_data.outputs)

    # ------------------------------------------------------------------
    # Dataset

    def set_training_data(self, inputs: Array, outputs: Array) -> None:
        """Replace the training set; samples are columns of both matrices."""

        data = TrainingSet(inputs=inputs, outputs=outputs)
        self._check_shapes(data)
        self.training_data = data

    @property
    def dataset_size(self) -> int:
        return self.training_data.num_samples if self.training_data is not None else 0

    @property
    def batches_per_epoch(self) -> int:
        return self.dataset_size // self.params.batch_size

    def _check_shapes(self, data: TrainingSet) -> None:
        if data.inputs.shape[0] != self.network.input_size:
            raise ShapeMismatchError(
                f"Training inputs have {data.inputs.shape[0]} rows but the network "
                f"input layer has {self.network.input_size} neurons"
            )
        if data.outputs.shape[0] != self.network.output_size:
            raise ShapeMismatchError(
                f"Training outputs have {data.outputs.shape[0]} rows but the network "
                f"output layer has {self.network.output_size} neurons"
            )

    # ------------------------------------------------------------------
    # Training loop

    def train(self, on_epoch_end: EpochCallback | None = None) -> TrainingResult:
        if self.training_data is None:
            raise RuntimeError("Training data must be set before calling train()")
        data = self.training_data
        self._check_shapes(data)

        batch_size = self.params.batch_size
        batches = self.batches_per_epoch
        if batches == 0:
            warnings.warn(
                f"Training set of {data.num_samples} samples is smaller than one batch "
                f"of {batch_size}; no updates will be made",
                RuntimeWarning,
                stacklevel=2,
            )

        self.epoch_losses = []
        epochs_run = 0
        stopped_early = False
        for epoch in range(1, self.params.epochs + 1):
            self.epoch_loss = 0.0
            for batch_idx in range(batches):
                start = batch_idx * batch_size
                batch_inputs, batch_outputs = data.columns(start, start + batch_size)
                self.process_mini_batch(batch_inputs, batch_outputs)
            self.epoch_losses.append(self.epoch_loss)
            epochs_run = epoch

            seen = batches * batch_size
            self._emit_epoch(
                epoch,
                {
                    "loss": self.epoch_loss,
                    "mean_loss": self.epoch_loss / seen if seen else 0.0,
                    "batches": float(batches),
                },
            )
            if on_epoch_end is not None and on_epoch_end(self.network, epoch):
                stopped_early = epoch < self.params.epochs
                break

        return TrainingResult(
            epochs_run=epochs_run,
            stopped_early=stopped_early,
            epoch_losses=list(self.epoch_losses),
        )

    def process_mini_batch(self, batch_inputs: Array, batch_outputs: Array) -> None:
        """Backpropagate one mini-batch and apply the regularised update."""

        if self.training_data is None:
            raise RuntimeError("Training data must be set before processing mini-batches")
        cost = self.params.cost
        forward = self.network.forward(batch_inputs)
        activations = forward.activations
        output = forward.output
        if batch_outputs.shape != output.shape:
            raise ShapeMismatchError(
                f"Expected outputs of shape {output.shape}, got {batch_outputs.shape}"
            )

        delta = cost.output_delta(output, batch_outputs, forward.pre_activations[-1])
        self.epoch_loss += cost.loss(output, batch_outputs)

        view = self.network.training_view()
        transitions = len(view.weights)
        nabla_b: List[Array] = [np.empty(0)] * transitions
        nabla_w: List[Array] = [np.empty(0)] * transitions

        # delta @ a.T sums the per-sample outer products over the batch.
        nabla_b[-1] = delta.sum(axis=1)
        nabla_w[-1] = delta @ activations[-2].T

        # Walk the hidden layers backwards; sigmoid_prime takes the stored
        # activation, not the pre-activation.
        for layer in range(transitions - 1, 0, -1):
            delta = (view.weights[layer].T @ delta) * sigmoid_prime(activations[layer])
            nabla_b[layer - 1] = delta.sum(axis=1)
            nabla_w[layer - 1] = delta @ activations[layer - 1].T

        self._apply_update(view.weights, view.biases, nabla_w, nabla_b)

    def _apply_update(
        self,
        weights: Sequence[Array],
        biases: Sequence[Array],
        nabla_w: Sequence[Array],
        nabla_b: Sequence[Array],
    ) -> None:
        lr = self.params.learning_rate
        step = lr / self.params.batch_size
        decay = 1.0 - lr * self.params.regularization / self.dataset_size
        for b, grad in zip(biases, nabla_b):
            b -= step * grad
        for W, grad in zip(weights, nabla_w):
            W *= decay
            W -= step * grad

    def _emit_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        for callback in self.callbacks:
            if hasattr(callback, "on_epoch"):
                callback.on_epoch(epoch, metrics)  # type: ignore[attr-defined]
            elif callable(callback):
                callback(epoch, metrics)


__all__ = ["GradientDescentParams", "GradientDescent", "EpochCallback"]
