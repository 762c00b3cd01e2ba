import numpy as np
import pytest

from sgdnet.core.errors import ShapeMismatchError
from sgdnet.core.network import Network
from sgdnet.core.types import TrainingSet
from sgdnet.data.utils import one_hot_columns
from sgdnet.training.losses import CROSS_ENTROPY, QUADRATIC
from sgdnet.training.trainer import GradientDescent, GradientDescentParams


class _RecordingDescent(GradientDescent):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.seen_batches = []

    def process_mini_batch(self, batch_inputs, batch_outputs):
        self.seen_batches.append(batch_inputs.copy())
        super().process_mini_batch(batch_inputs, batch_outputs)


def _toy_data(n, *, inputs=3, classes=2, seed=0):
    rng = np.random.default_rng(seed)
    x = rng.normal(size=(inputs, n))
    y = one_hot_columns(np.arange(n) % classes, classes)
    return x, y


def test_default_hyperparameters():
    params = GradientDescentParams()
    assert params.epochs == 30
    assert params.batch_size == 10
    assert params.learning_rate == pytest.approx(0.5)
    assert params.regularization == pytest.approx(0.1)
    assert params.cost is CROSS_ENTROPY


@pytest.mark.parametrize(
    "overrides",
    [{"epochs": 0}, {"batch_size": 0}, {"learning_rate": -0.1}, {"regularization": -1.0}],
)
def test_invalid_hyperparameters_are_rejected(overrides):
    with pytest.raises(ValueError):
        GradientDescentParams(**overrides)


def test_train_without_data_raises():
    trainer = GradientDescent(Network([3, 2], seed=0))
    with pytest.raises(RuntimeError):
        trainer.train()
    with pytest.raises(RuntimeError):
        trainer.process_mini_batch(np.ones((3, 1)), np.ones((2, 1)))


def test_training_data_must_match_topology():
    trainer = GradientDescent(Network([3, 4, 2], seed=0))
    with pytest.raises(ShapeMismatchError):
        trainer.set_training_data(np.ones((4, 5)), np.ones((2, 5)))
    with pytest.raises(ShapeMismatchError):
        trainer.set_training_data(np.ones((3, 5)), np.ones((3, 5)))
    with pytest.raises(ShapeMismatchError):
        trainer.set_training_data(np.ones((3, 5)), np.ones((2, 4)))
    assert trainer.training_data is None


def test_mini_batch_rejects_mismatched_outputs():
    x, y = _toy_data(4)
    trainer = GradientDescent(Network([3, 2], seed=0), training_data=TrainingSet(x, y))
    with pytest.raises(ShapeMismatchError):
        trainer.process_mini_batch(x, y[:, :3])


def test_partial_final_batch_is_skipped():
    x = np.arange(25, dtype=float).reshape(1, 25)
    y = one_hot_columns(np.arange(25) % 2, 2)
    params = GradientDescentParams(epochs=3, batch_size=10)
    trainer = _RecordingDescent(Network([1, 2], seed=0), params, TrainingSet(x, y))
    assert trainer.batches_per_epoch == 2

    trainer.train()

    assert len(trainer.seen_batches) == 6
    seen = np.concatenate(trainer.seen_batches, axis=1)
    assert seen.max() == 19.0
    assert seen[0, :10].tolist() == list(range(10))


def test_trailing_samples_do_not_influence_training():
    x, y = _toy_data(25)
    x_other = x.copy()
    x_other[:, 20:] = 50.0
    params = GradientDescentParams(epochs=2, batch_size=10)

    first = Network([3, 4, 2], seed=1)
    second = Network([3, 4, 2], seed=1)
    GradientDescent(first, params, TrainingSet(x, y)).train()
    GradientDescent(second, params, TrainingSet(x_other, y)).train()
    for W_a, W_b in zip(first.weights, second.weights):
        np.testing.assert_array_equal(W_a, W_b)


def test_dataset_smaller_than_a_batch_warns_and_keeps_parameters():
    x, y = _toy_data(5)
    network = Network([3, 2], seed=0)
    before = network.state_dict()
    trainer = GradientDescent(network, GradientDescentParams(epochs=2), TrainingSet(x, y))
    with pytest.warns(RuntimeWarning):
        result = trainer.train()
    assert result.epochs_run == 2
    assert result.epoch_losses == [0.0, 0.0]
    for key, value in network.state_dict().items():
        np.testing.assert_array_equal(value, before[key])


def test_weight_decay_shrinks_weights_when_gradients_vanish():
    network = Network([3, 4, 2], seed=2)
    x = np.random.default_rng(0).normal(size=(3, 10))
    params = GradientDescentParams(batch_size=10, learning_rate=0.5, regularization=0.2)
    trainer = GradientDescent(network, params)
    decay = 1.0 - 0.5 * 0.2 / 10

    for _ in range(3):
        # Targets equal to the current outputs make every gradient zero.
        targets = network.feed_forward(x)
        trainer.set_training_data(x, targets)
        before = network.state_dict()
        trainer.process_mini_batch(x, targets)
        after = network.state_dict()
        for idx in range(2):
            np.testing.assert_allclose(after[f"W{idx}"], decay * before[f"W{idx}"])
            np.testing.assert_array_equal(after[f"b{idx + 1}"], before[f"b{idx + 1}"])
            assert np.abs(after[f"W{idx}"]).sum() < np.abs(before[f"W{idx}"]).sum()


@pytest.mark.parametrize("cost", [CROSS_ENTROPY, QUADRATIC], ids=lambda c: c.name)
@pytest.mark.parametrize("sizes", [[3, 4, 2], [3, 5, 4, 2]])
def test_backprop_matches_numerical_gradient(cost, sizes):
    x, y = _toy_data(5, inputs=sizes[0], classes=sizes[-1], seed=3)
    network = Network(sizes, seed=4)
    reference = Network(sizes)
    reference.load_state_dict(network.state_dict())
    before = network.state_dict()

    params = GradientDescentParams(batch_size=5, learning_rate=1.0, regularization=0.0, cost=cost)
    trainer = GradientDescent(network, params, TrainingSet(x, y))
    trainer.process_mini_batch(x, y)
    after = network.state_dict()

    def _loss():
        return cost.loss(reference.feed_forward(x), y)

    eps = 1e-6
    for key in before:
        analytic = (before[key] - after[key]) * params.batch_size
        param = reference.weights[int(key[1:])] if key.startswith("W") else reference.biases[int(key[1:]) - 1]
        numeric = np.zeros_like(param)
        for idx in np.ndindex(param.shape):
            original = param[idx]
            param[idx] = original + eps
            upper = _loss()
            param[idx] = original - eps
            lower = _loss()
            param[idx] = original
            numeric[idx] = (upper - lower) / (2 * eps)
        np.testing.assert_allclose(analytic, numeric, rtol=1e-4, atol=1e-7)


def test_epoch_callback_can_stop_training():
    x, y = _toy_data(20)
    network = Network([3, 2], seed=0)
    calls = []

    def _stop_after_two(net, epoch):
        calls.append((net, epoch))
        return epoch == 2

    trainer = GradientDescent(network, GradientDescentParams(epochs=5), TrainingSet(x, y))
    result = trainer.train(_stop_after_two)

    assert [epoch for _, epoch in calls] == [1, 2]
    assert all(net is network for net, _ in calls)
    assert result.epochs_run == 2
    assert result.stopped_early
    assert len(result.epoch_losses) == 2


def test_stop_request_on_last_epoch_is_not_early():
    x, y = _toy_data(20)
    trainer = GradientDescent(
        Network([3, 2], seed=0), GradientDescentParams(epochs=3), TrainingSet(x, y)
    )
    result = trainer.train(lambda net, epoch: epoch == 3)
    assert result.epochs_run == 3
    assert not result.stopped_early


def test_metric_callbacks_receive_epoch_losses():
    x, y = _toy_data(20)
    plain = []

    class _Sink:
        def __init__(self):
            self.records = []

        def on_epoch(self, epoch, metrics):
            self.records.append((epoch, dict(metrics)))

    sink = _Sink()
    trainer = GradientDescent(
        Network([3, 2], seed=0),
        GradientDescentParams(epochs=2),
        TrainingSet(x, y),
        callbacks=[sink, lambda epoch, metrics: plain.append(epoch)],
    )
    result = trainer.train()

    assert plain == [1, 2]
    assert [epoch for epoch, _ in sink.records] == [1, 2]
    assert sink.records[0][1]["batches"] == 2.0
    assert sink.records[1][1]["loss"] == pytest.approx(result.epoch_losses[1])
    assert sink.records[1][1]["mean_loss"] == pytest.approx(result.epoch_losses[1] / 20)
