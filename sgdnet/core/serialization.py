"""Self-describing text format for network parameters.

Layout (whitespace separated)::

    <layer_count>
    <size_0> <size_1> ... <size_{L-1}>
    <rows> <cols>
    <weights[0], one row per line>
    <length>
    <bias of layer 1>
    ...

Every weight matrix is followed by the bias vector of the layer it feeds.
"""

from __future__ import annotations

import io
from contextlib import nullcontext
from pathlib import Path
from typing import IO, Iterator, List, Sequence, Tuple

import numpy as np

from .errors import FormatError, TopologyMismatchError
from .types import Array

_FLOAT_FMT = "%.17g"


def write_parameters(
    handle: IO[str],
    layer_sizes: Sequence[int],
    weights: Sequence[Array],
    biases: Sequence[Array],
) -> None:
    """Write the topology header followed by every weight/bias pair."""

    handle.write(f"{len(layer_sizes)}\n")
    handle.write(" ".join(str(int(size)) for size in layer_sizes) + "\n")
    for W, b in zip(weights, biases):
        rows, cols = W.shape
        handle.write(f"{rows} {cols}\n")
        np.savetxt(handle, W, fmt=_FLOAT_FMT)
        handle.write(f"{b.shape[0]}\n")
        np.savetxt(handle, b.reshape(1, -1), fmt=_FLOAT_FMT)


def dumps(layer_sizes: Sequence[int], weights: Sequence[Array], biases: Sequence[Array]) -> str:
    buffer = io.StringIO()
    write_parameters(buffer, layer_sizes, weights, biases)
    return buffer.getvalue()


class _TokenReader:
    """Sequential reader over whitespace separated tokens."""

    def __init__(self, text: str) -> None:
        self._tokens: Iterator[str] = iter(text.split())
        self.position = 0

    def _next(self, what: str) -> str:
        try:
            token = next(self._tokens)
        except StopIteration:
            raise FormatError(
                f"Unexpected end of parameter stream while reading {what}"
            ) from None
        self.position += 1
        return token

    def next_int(self, what: str) -> int:
        token = self._next(what)
        try:
            value = int(token)
        except ValueError:
            raise FormatError(
                f"Expected an integer for {what} at token {self.position}, got {token!r}"
            ) from None
        if value < 0:
            raise FormatError(f"Negative value {value} for {what}")
        return value

    def next_floats(self, count: int, what: str) -> Array:
        values = np.empty(count, dtype=np.float64)
        for idx in range(count):
            token = self._next(what)
            try:
                values[idx] = float(token)
            except ValueError:
                raise FormatError(
                    f"Expected a number in {what} at token {self.position}, got {token!r}"
                ) from None
        return values


def read_parameters(
    source: IO[str] | str,
    layer_sizes: Sequence[int],
) -> Tuple[List[Array], List[Array]]:
    """Parse a parameter stream for a network with ``layer_sizes``.

    Returns freshly allocated ``(weights, biases)`` lists.  Raises
    :class:`TopologyMismatchError` when the stored topology differs from
    ``layer_sizes`` and :class:`FormatError` when the stream is truncated,
    non-numeric or internally inconsistent.
    """

    text = source if isinstance(source, str) else source.read()
    reader = _TokenReader(text)
    expected = [int(size) for size in layer_sizes]

    stored_count = reader.next_int("layer count")
    if stored_count != len(expected):
        raise TopologyMismatchError(
            f"Stored network has {stored_count} layers, expected {len(expected)}"
        )
    for idx, size in enumerate(expected):
        stored = reader.next_int(f"size of layer {idx}")
        if stored != size:
            raise TopologyMismatchError(
                f"Stored layer {idx} has {stored} neurons, expected {size}"
            )

    weights: List[Array] = []
    biases: List[Array] = []
    for idx, (in_dim, out_dim) in enumerate(zip(expected[:-1], expected[1:])):
        rows = reader.next_int(f"row count of weights[{idx}]")
        cols = reader.next_int(f"column count of weights[{idx}]")
        if (rows, cols) != (out_dim, in_dim):
            raise FormatError(
                f"weights[{idx}] is stored as {rows}x{cols}, expected {out_dim}x{in_dim}"
            )
        W = reader.next_floats(rows * cols, f"weights[{idx}]").reshape(rows, cols)
        length = reader.next_int(f"length of bias for layer {idx + 1}")
        if length != out_dim:
            raise FormatError(
                f"Bias of layer {idx + 1} is stored with length {length}, expected {out_dim}"
            )
        b = reader.next_floats(length, f"bias of layer {idx + 1}")
        weights.append(W)
        biases.append(b)
    return weights, biases


def open_for_write(target: str | Path | IO[str]):
    if hasattr(target, "write"):
        return nullcontext(target)
    path = Path(target)  # type: ignore[arg-type]
    path.parent.mkdir(parents=True, exist_ok=True)
    return path.open("w", encoding="utf-8")


def open_for_read(source: str | Path | IO[str]):
    if hasattr(source, "read"):
        return nullcontext(source)
    return Path(source).open("r", encoding="utf-8")  # type: ignore[arg-type]


__all__ = ["write_parameters", "read_parameters", "dumps", "open_for_read", "open_for_write"]
