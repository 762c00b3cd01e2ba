import io

import numpy as np
import pytest

from sgdnet.core.errors import FormatError, SgdNetError, TopologyMismatchError
from sgdnet.core.network import Network
from sgdnet.core.serialization import dumps, read_parameters


def _assert_same_parameters(left: Network, right: Network) -> None:
    for W_a, W_b in zip(left.weights, right.weights):
        np.testing.assert_array_equal(W_a, W_b)
    for b_a, b_b in zip(left.biases, right.biases):
        np.testing.assert_array_equal(b_a, b_b)


def test_save_load_round_trip_through_stream():
    source = Network([4, 5, 3], seed=1)
    buffer = io.StringIO()
    source.save(buffer)
    buffer.seek(0)

    target = Network([4, 5, 3], seed=2)
    target.load(buffer)
    _assert_same_parameters(source, target)
    batch = np.random.default_rng(0).normal(size=(4, 7))
    np.testing.assert_array_equal(source.feed_forward(batch), target.feed_forward(batch))


def test_save_load_round_trip_through_file(tmp_path):
    source = Network([3, 2, 2, 2], seed=9)
    path = tmp_path / "nested" / "params.txt"
    source.save(path)
    restored = Network.from_file([3, 2, 2, 2], path)
    _assert_same_parameters(source, restored)


def test_file_starts_with_topology_header():
    network = Network([2, 3, 2], seed=0)
    text = dumps(network.layer_sizes, network.weights, network.biases)
    lines = text.splitlines()
    assert lines[0] == "3"
    assert lines[1] == "2 3 2"
    assert lines[2] == "3 2"


def test_read_parameters_returns_fresh_arrays():
    network = Network([2, 2], seed=0)
    weights, biases = read_parameters(
        dumps(network.layer_sizes, network.weights, network.biases), [2, 2]
    )
    weights[0][:] = 0.0
    assert not np.all(network.weights[0] == 0.0)
    assert biases[0].shape == (2,)


@pytest.mark.parametrize("stored_sizes", [[4, 5, 3, 3], [4, 6, 3], [5, 5, 3]])
def test_topology_mismatch_leaves_network_untouched(stored_sizes):
    stored = Network(stored_sizes, seed=3)
    buffer = io.StringIO()
    stored.save(buffer)
    buffer.seek(0)

    network = Network([4, 5, 3], seed=4)
    before = network.state_dict()
    with pytest.raises(TopologyMismatchError):
        network.load(buffer)
    for key, value in network.state_dict().items():
        np.testing.assert_array_equal(value, before[key])


def test_truncated_stream_is_a_format_error():
    network = Network([3, 4, 2], seed=0)
    text = dumps(network.layer_sizes, network.weights, network.biases)
    truncated = "\n".join(text.splitlines()[:4])
    before = network.state_dict()
    with pytest.raises(FormatError, match="Unexpected end"):
        network.load(io.StringIO(truncated))
    for key, value in network.state_dict().items():
        np.testing.assert_array_equal(value, before[key])


def test_non_numeric_token_is_a_format_error():
    network = Network([2, 2], seed=0)
    text = dumps(network.layer_sizes, network.weights, network.biases)
    lines = text.splitlines()
    lines[3] = "abc " + lines[3].split(" ", 1)[1]
    with pytest.raises(FormatError, match="Expected a number"):
        network.load(io.StringIO("\n".join(lines)))


def test_inconsistent_matrix_header_is_a_format_error():
    text = "2\n2 2\n1 4\n0 0 0 0\n2\n0 0\n"
    with pytest.raises(FormatError):
        read_parameters(text, [2, 2])


def test_errors_share_a_base_class():
    assert issubclass(FormatError, SgdNetError)
    assert issubclass(TopologyMismatchError, ValueError)
