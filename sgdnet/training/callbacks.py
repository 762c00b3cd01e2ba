"""End-of-epoch callbacks for :meth:`GradientDescent.train`."""

from __future__ import annotations

from typing import List, Mapping, Sequence, Tuple

import numpy as np

from ..core.network import Network
from ..core.types import Array
from .metrics import count_correct, label_indices


class HeldOutEvaluator:
    """Classify a held-out set after every epoch.

    Prints ``After epoch #<n>: classified <k> / <N>``, forwards
    ``accuracy``/``correct``/``total`` to ``sinks`` and asks the trainer to
    stop once accuracy has not improved for ``patience`` consecutive epochs.
    The network is only read.
    """

    def __init__(
        self,
        inputs: Array,
        labels: Array,
        *,
        patience: int | None = None,
        sinks: Sequence[object] | None = None,
        verbose: bool = True,
    ) -> None:
        self.inputs = np.asarray(inputs, dtype=np.float64)
        self.labels = label_indices(labels)
        if self.inputs.ndim != 2 or self.inputs.shape[1] != self.labels.shape[0]:
            raise ValueError(
                f"Held-out inputs of shape {self.inputs.shape} do not match "
                f"{self.labels.shape[0]} labels"
            )
        if patience is not None and patience < 1:
            raise ValueError("patience must be a positive number of epochs")
        self.patience = patience
        self.sinks = list(sinks or [])
        self.verbose = verbose
        self.history: List[Tuple[int, Mapping[str, float]]] = []
        self.best_accuracy = -1.0
        self._epochs_no_improve = 0

    @property
    def total(self) -> int:
        return int(self.labels.shape[0])

    @property
    def last(self) -> Mapping[str, float]:
        return self.history[-1][1] if self.history else {}

    def __call__(self, network: Network, epoch: int) -> bool:
        outputs = network.feed_forward(self.inputs)
        correct = count_correct(outputs, self.labels)
        total = self.total
        acc = correct / total if total else 0.0
        metrics = {"accuracy": acc, "correct": float(correct), "total": float(total)}
        self.history.append((int(epoch), metrics))
        if self.verbose:
            print(f"After epoch #{epoch}: classified {correct} / {total}")
        for sink in self.sinks:
            if hasattr(sink, "on_epoch"):
                sink.on_epoch(epoch, metrics)  # type: ignore[attr-defined]
            elif callable(sink):
                sink(epoch, metrics)

        if acc > self.best_accuracy + 1e-12:
            self.best_accuracy = acc
            self._epochs_no_improve = 0
            return False
        self._epochs_no_improve += 1
        return bool(self.patience and self._epochs_no_improve >= self.patience)


__all__ = ["HeldOutEvaluator"]
