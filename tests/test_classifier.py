import numpy as np
import pytest

from batchlearn.classifier import (
    LogisticRegressionClassifier,
    decode_matrix,
    decode_vector,
    encode_matrix,
    encode_vector,
)
from batchlearn.exceptions import NotFittedError

from conftest import separable_rows

QUERY = np.array([[-2.0, -2.0], [2.0, 2.0], [-1.5, -2.5], [2.5, 1.5]])
QUERY_LABELS = [0, 1, 0, 1]


def split(rows):
    data = np.array(rows, dtype=np.float64)
    return data[:, :-1], data[:, -1].astype(np.int64)


def test_train_and_predict_separable():
    X, y = split(separable_rows(30))
    classifier = LogisticRegressionClassifier()
    classifier.train(X, y)

    assert (classifier.predict(X) == y).all()
    assert classifier.predict(QUERY).tolist() == QUERY_LABELS


def test_partial_train_over_batches():
    X, y = split(separable_rows(30))
    classifier = LogisticRegressionClassifier()
    for start in range(0, len(X), 20):
        classifier.partial_train(X[start:start + 20], y[start:start + 20], [0, 1])

    assert classifier.classes_.tolist() == [0, 1]
    assert classifier.predict(QUERY).tolist() == QUERY_LABELS


@pytest.mark.parametrize("batch_size", [1, 3, 40])
def test_partial_train_does_not_depend_on_batch_size(batch_size):
    X, y = split(separable_rows(20))
    whole = LogisticRegressionClassifier()
    whole.partial_train(X, y, [0, 1])

    batched = LogisticRegressionClassifier()
    for start in range(0, len(X), batch_size):
        batched.partial_train(X[start:start + batch_size], y[start:start + batch_size], [0, 1])

    assert batched.seen_ == whole.seen_ == len(X)
    assert np.allclose(batched.model.weight.detach().numpy(), whole.model.weight.detach().numpy())
    assert np.allclose(batched.model.bias.detach().numpy(), whole.model.bias.detach().numpy())


def test_partial_train_remembers_earlier_batches():
    X, y = split(separable_rows(50))
    classifier = LogisticRegressionClassifier()
    classifier.partial_train(X, y, [0, 1])
    classifier.partial_train([[-2.0, -2.0], [2.0, 2.0]], [1, 0], [0, 1])

    assert classifier.predict(QUERY).tolist() == QUERY_LABELS
    assert classifier.predict(QUERY).tolist() == QUERY_LABELS


def test_partial_train_keeps_declared_classes():
    classifier = LogisticRegressionClassifier(iterations=5)
    classifier.partial_train([[0.0, 1.0], [1.0, 0.0]], [3, 3], [1, 3, 5])
    assert classifier.classes_.tolist() == [1, 3, 5]
    assert set(classifier.predict([[0.0, 0.0]]).tolist()) <= {1, 3, 5}


def test_partial_train_rejects_other_classes():
    classifier = LogisticRegressionClassifier(iterations=5)
    classifier.partial_train([[0.0], [1.0]], [0, 1], [0, 1])
    with pytest.raises(ValueError):
        classifier.partial_train([[0.0], [1.0]], [0, 1], [0, 1, 2])
    with pytest.raises(ValueError):
        classifier.partial_train([[0.0, 1.0]], [0], [0, 1])


def test_unknown_target_rejected():
    classifier = LogisticRegressionClassifier(iterations=5)
    with pytest.raises(ValueError):
        classifier.partial_train([[0.0], [1.0]], [0, 7], [0, 1])


def test_predict_before_training():
    with pytest.raises(NotFittedError):
        LogisticRegressionClassifier().predict([[1.0]])


def test_gradient_descent_solver():
    X, y = split(separable_rows(20))
    classifier = LogisticRegressionClassifier(solver="gd", iterations=200)
    classifier.train(X, y)
    assert classifier.predict(QUERY).tolist() == QUERY_LABELS


def test_invalid_solver():
    with pytest.raises(ValueError):
        LogisticRegressionClassifier(solver="newton")


def test_state_restores_predictions():
    X, y = split(separable_rows(20, nfeatures=3))
    classifier = LogisticRegressionClassifier(alpha=0.01)
    classifier.train(X, y)

    restored = LogisticRegressionClassifier.from_state(classifier.get_params(), classifier.get_state())

    assert restored.get_params() == classifier.get_params()
    assert (restored.predict(X) == classifier.predict(X)).all()


def test_untrained_state_is_none():
    classifier = LogisticRegressionClassifier(iterations=10)
    assert classifier.get_state() is None
    restored = LogisticRegressionClassifier.from_state(classifier.get_params(), None)
    assert restored.iterations == 10
    assert restored.model is None


def test_partial_state_keeps_sample_count():
    X, y = split(separable_rows(10))
    classifier = LogisticRegressionClassifier()
    classifier.partial_train(X, y, [0, 1])

    restored = LogisticRegressionClassifier.from_state(classifier.get_params(), classifier.get_state())
    assert restored.seen_ == 20
    assert restored.eta0 == classifier.eta0


@pytest.mark.parametrize("key, value", [("weights", 5), ("weights", None), ("bias", [0.0, 0.0])])
def test_state_values_must_be_text(key, value):
    state = {"classes": "0,1", "nfeatures": 2, "weights": "0.0,0.0;0.0,0.0", "bias": "0.0,0.0"}
    state[key] = value
    with pytest.raises(ValueError):
        LogisticRegressionClassifier.from_state({}, state)


def test_state_shape_mismatch():
    state = {"classes": "0,1", "nfeatures": 2, "weights": "1.0,2.0", "bias": "0.0,0.0"}
    with pytest.raises(ValueError):
        LogisticRegressionClassifier.from_state({}, state)


def test_vector_encoding():
    values = np.array([[1.5, -2e-05], [3.0, 1e16]])
    assert np.array_equal(decode_matrix(encode_matrix(values)), values)
    assert decode_vector(encode_vector([0.25, -1.0])).tolist() == [0.25, -1.0]
    assert decode_vector("").size == 0
