import numpy as np
import pytest

from sgdnet.core.activations import sigmoid, sigmoid_prime
from sgdnet.core.errors import ShapeMismatchError
from sgdnet.core.network import Network
from sgdnet.core.types import TrainingSet
from sgdnet.training.losses import COSTS, CROSS_ENTROPY, QUADRATIC, trunc_log
from sgdnet.training.metrics import accuracy, count_correct, label_indices, predicted_classes


def test_sigmoid_values_and_saturation():
    assert sigmoid(np.array([0.0]))[0] == pytest.approx(0.5)
    out = sigmoid(np.array([-1000.0, 1000.0]))
    assert out[0] == 0.0
    assert out[1] == 1.0
    assert sigmoid_prime(np.array([0.5]))[0] == pytest.approx(0.25)


def test_sigmoid_prime_matches_numeric_derivative():
    x = np.linspace(-4, 4, 9)
    eps = 1e-6
    numeric = (sigmoid(x + eps) - sigmoid(x - eps)) / (2 * eps)
    np.testing.assert_allclose(sigmoid_prime(sigmoid(x)), numeric, rtol=1e-6, atol=1e-9)


def test_cross_entropy_is_zero_for_perfect_one_hot_predictions():
    expected = np.eye(3)
    assert CROSS_ENTROPY.loss(expected, expected) == pytest.approx(0.0, abs=1e-12)


def test_cross_entropy_delta_is_output_error():
    predicted = np.array([[0.2, 0.9], [0.7, 0.1]])
    expected = np.array([[0.0, 1.0], [1.0, 0.0]])
    delta = CROSS_ENTROPY.output_delta(predicted, expected, np.zeros_like(predicted))
    np.testing.assert_array_equal(delta, predicted - expected)


def test_cross_entropy_stays_finite_when_saturated():
    predicted = np.array([[0.0], [1.0]])
    expected = np.array([[1.0], [0.0]])
    loss = CROSS_ENTROPY.loss(predicted, expected)
    assert np.isfinite(loss)
    assert loss > 1000
    assert np.isfinite(trunc_log(np.array([0.0])))[0]


def test_quadratic_cost_and_delta():
    predicted = np.array([[0.5], [0.25]])
    expected = np.array([[1.0], [0.0]])
    assert QUADRATIC.loss(predicted, expected) == pytest.approx(0.5 * (0.25 + 0.0625))
    delta = QUADRATIC.output_delta(predicted, expected, np.zeros_like(predicted))
    np.testing.assert_allclose(delta, (predicted - expected) * predicted * (1 - predicted))


def test_cost_registry_aliases_and_unknown_names():
    assert COSTS.get("ce") is CROSS_ENTROPY
    assert COSTS.get("mse") is QUADRATIC
    assert COSTS.resolve(QUADRATIC) is QUADRATIC
    assert "cross_entropy" in list(COSTS.names())
    with pytest.raises(KeyError, match="Available costs"):
        COSTS.get("hinge")


def test_training_set_validates_shapes():
    data = TrainingSet(inputs=np.zeros((3, 5)), outputs=np.zeros((2, 5)))
    assert data.num_samples == 5
    inputs, outputs = data.columns(1, 3)
    assert inputs.shape == (3, 2)
    assert outputs.shape == (2, 2)
    with pytest.raises(ShapeMismatchError):
        TrainingSet(inputs=np.zeros((3, 5)), outputs=np.zeros((2, 4)))
    with pytest.raises(ShapeMismatchError):
        TrainingSet(inputs=np.zeros(5), outputs=np.zeros((2, 5)))


def test_classification_metrics_accept_indices_and_one_hot():
    outputs = np.array([[0.9, 0.2, 0.4], [0.1, 0.8, 0.6]])
    assert predicted_classes(outputs).tolist() == [0, 1, 1]
    assert count_correct(outputs, np.array([0, 1, 0])) == 2
    one_hot = np.array([[1, 0, 0], [0, 1, 1]])
    assert label_indices(one_hot).tolist() == [0, 1, 1]
    assert accuracy(outputs, one_hot) == pytest.approx(1.0)
    with pytest.raises(ShapeMismatchError):
        count_correct(outputs, np.array([0, 1]))


def test_model_description_matches_network():
    network = Network([4, 3, 2], seed=0)
    description = network.describe()
    assert description.layer_sizes == [4, 3, 2]
    assert description.input_size == 4
    assert description.output_size == 2
    assert network.parameter_count() == 4 * 3 + 3 + 3 * 2 + 2
