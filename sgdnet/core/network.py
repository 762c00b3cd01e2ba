"""Fully-connected sigmoid network with a runtime topology."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, List, Mapping, MutableSequence, Sequence

import numpy as np

from .activations import sigmoid
from .errors import ShapeMismatchError
from .serialization import open_for_read, open_for_write, read_parameters, write_parameters
from .types import Array, ForwardPass, ModelDescription


@dataclass
class TrainingView:
    """Live parameter lists handed to the trainer.

    ``weights[i]`` and ``biases[i]`` are the network's own arrays, so in-place
    updates through the view change the network.  Callers outside the
    training loop should use :meth:`Network.state_dict` instead.
    """

    layer_sizes: Sequence[int]
    weights: MutableSequence[Array]
    biases: MutableSequence[Array]


@dataclass(eq=False)
class Network:
    """Feed-forward network ``input -> hidden... -> output`` with sigmoid units.

    Parameters
    ----------
    layer_sizes:
        Width of every layer, input first.  Fixed for the lifetime of the
        network.
    seed:
        Seed for the random initialisation.  ``None`` draws fresh entropy, so
        two unseeded networks are independent; pass an integer for
        reproducible runs.

    ``weights[i]`` has shape ``(layer_sizes[i + 1], layer_sizes[i])`` and
    ``weights[i][j, k]`` connects neuron ``k`` of layer ``i`` to neuron ``j``
    of layer ``i + 1``.  ``biases[i]`` is the bias vector of layer ``i + 1``;
    the input layer has none.
    """

    layer_sizes: Sequence[int]
    seed: int | None = None
    weights: List[Array] = field(init=False, repr=False)
    biases: List[Array] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        sizes = tuple(int(size) for size in self.layer_sizes)
        if len(sizes) < 2:
            raise ValueError("A network needs at least an input and an output layer")
        if any(size <= 0 for size in sizes):
            raise ValueError(f"Layer sizes must be positive, got {list(sizes)}")
        self.layer_sizes = sizes
        self.randomize(self.seed)

    @classmethod
    def from_file(
        cls, layer_sizes: Sequence[int], source: str | Path | IO[str]
    ) -> "Network":
        """Build a network of ``layer_sizes`` and fill it from a parameter file."""

        network = cls(layer_sizes)
        network.load(source)
        return network

    # ------------------------------------------------------------------
    # Topology

    @property
    def num_layers(self) -> int:
        return len(self.layer_sizes)

    @property
    def input_size(self) -> int:
        return self.layer_sizes[0]

    @property
    def output_size(self) -> int:
        return self.layer_sizes[-1]

    def describe(self) -> ModelDescription:
        return ModelDescription(layer_sizes=list(self.layer_sizes))

    def parameter_count(self) -> int:
        return int(sum(W.size + b.size for W, b in zip(self.weights, self.biases)))

    # ------------------------------------------------------------------
    # Initialisation

    def randomize(self, seed: int | None = None) -> None:
        """Draw Gaussian biases and ``N(0, 1/fan_in)`` weights."""

        rng = np.random.default_rng(seed)
        sizes = self.layer_sizes
        self.biases = [rng.standard_normal(size) for size in sizes[1:]]
        self.weights = [
            rng.normal(0.0, 1.0 / np.sqrt(in_dim), size=(out_dim, in_dim))
            for in_dim, out_dim in zip(sizes[:-1], sizes[1:])
        ]

    # ------------------------------------------------------------------
    # Forward computation

    def forward(self, inputs: Array) -> ForwardPass:
        """Run a batch (samples as columns) and keep every layer's state."""

        inputs = np.asarray(inputs, dtype=np.float64)
        if inputs.ndim != 2:
            raise ShapeMismatchError(
                f"Expected a 2-D batch with samples as columns, got shape {inputs.shape}"
            )
        if inputs.shape[0] != self.input_size:
            raise ShapeMismatchError(
                f"Wrong input size: got {inputs.shape[0]} rows, expected {self.input_size}"
            )
        activations: List[Array] = [inputs]
        pre_activations: List[Array | None] = [None]
        a = inputs
        for W, b in zip(self.weights, self.biases):
            z = W @ a + b[:, np.newaxis]
            a = sigmoid(z)
            pre_activations.append(z)
            activations.append(a)
        return ForwardPass(activations=activations, pre_activations=pre_activations)

    def feed_forward(self, inputs: Array) -> Array:
        """Return the output activations for ``inputs``.

        A 2-D array is a batch with one sample per column and yields an
        ``(output_size, batch)`` matrix.  A 1-D array is a single sample and
        yields a 1-D vector of length ``output_size``.
        """

        inputs = np.asarray(inputs, dtype=np.float64)
        if inputs.ndim == 1:
            if inputs.shape[0] != self.input_size:
                raise ShapeMismatchError(
                    f"Wrong input size: got {inputs.shape[0]} features, expected "
                    f"{self.input_size}"
                )
            return self.forward(inputs.reshape(-1, 1)).output[:, 0]
        return self.forward(inputs).output

    def feed_forward_samples(self, samples: Sequence[Sequence[float]]) -> List[List[float]]:
        """Row-per-sample convenience wrapper around :meth:`feed_forward`."""

        if len(samples) == 0:
            return []
        width = len(samples[0])
        if any(len(sample) != width for sample in samples):
            raise ShapeMismatchError("The sizes of single inputs do not match")
        batch = np.asarray(samples, dtype=np.float64).T
        outputs = self.feed_forward(batch)
        return [outputs[:, idx].tolist() for idx in range(outputs.shape[1])]

    # ------------------------------------------------------------------
    # Parameter access

    def training_view(self) -> TrainingView:
        return TrainingView(
            layer_sizes=self.layer_sizes, weights=self.weights, biases=self.biases
        )

    def state_dict(self) -> Mapping[str, Array]:
        state = {f"W{idx}": W.copy() for idx, W in enumerate(self.weights)}
        state.update({f"b{idx + 1}": b.copy() for idx, b in enumerate(self.biases)})
        return state

    def load_state_dict(self, state: Mapping[str, Array]) -> None:
        weights: List[Array] = []
        biases: List[Array] = []
        for idx, (W, b) in enumerate(zip(self.weights, self.biases)):
            w_key, b_key = f"W{idx}", f"b{idx + 1}"
            for key in (w_key, b_key):
                if key not in state:
                    raise KeyError(f"Missing parameter {key} in state dict")
            new_W = np.array(state[w_key], dtype=np.float64)
            new_b = np.array(state[b_key], dtype=np.float64).reshape(-1)
            if new_W.shape != W.shape:
                raise ShapeMismatchError(
                    f"{w_key} has shape {new_W.shape}, expected {W.shape}"
                )
            if new_b.shape != b.shape:
                raise ShapeMismatchError(
                    f"{b_key} has shape {new_b.shape}, expected {b.shape}"
                )
            weights.append(new_W)
            biases.append(new_b)
        self.weights = weights
        self.biases = biases

    # ------------------------------------------------------------------
    # Persistence

    def save(self, target: str | Path | IO[str]) -> None:
        """Write the topology and parameters in the text format."""

        with open_for_write(target) as handle:
            write_parameters(handle, self.layer_sizes, self.weights, self.biases)

    def load(self, source: str | Path | IO[str]) -> None:
        """Replace the parameters with those stored in ``source``.

        The stream is parsed completely before anything is assigned, so a
        failed load leaves the network untouched.
        """

        with open_for_read(source) as handle:
            weights, biases = read_parameters(handle, self.layer_sizes)
        self.weights = weights
        self.biases = biases


__all__ = ["Network", "TrainingView"]
