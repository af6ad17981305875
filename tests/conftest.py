"""
Shared pytest fixtures.
"""

import csv

import numpy as np
import pytest

from batchlearn.classifier import Classifier
from batchlearn.config import ProcessorConfig


class SignClassifier(Classifier):
    """
    Test double: predicts 1 when the first feature is positive, 0 otherwise.

    Records every partial_train call so tests can inspect the batches the
    pipeline produced. The number of trained batches is part of its state.
    """

    def __init__(self):
        self.batches = 0
        self.calls = []

    def train(self, samples, targets):
        self.calls.append(("train", len(samples), None))

    def partial_train(self, samples, targets, classes):
        self.batches += 1
        self.calls.append(("partial_train", len(samples), list(classes)))

    def predict(self, samples):
        return (np.asarray(samples)[:, 0] > 0).astype(np.int64)

    def get_params(self):
        return {}

    def get_state(self):
        return {"batches": self.batches}

    @classmethod
    def from_state(cls, params, state):
        classifier = cls(**params)
        if state is not None:
            classifier.batches = int(state["batches"])
        return classifier


def separable_rows(n_per_class, nfeatures=2, seed=0):
    """Rows alternating between class 0 around -2 and class 1 around +2."""
    rng = np.random.RandomState(seed)
    rows = []
    for _ in range(n_per_class):
        for target, center in ((0, -2.0), (1, 2.0)):
            features = rng.normal(center, 0.5, size=nfeatures)
            rows.append([round(float(v), 6) for v in features] + [target])
    return rows


@pytest.fixture
def write_dataset(tmp_path):
    """
    Factory writing a dataset file and returning its path.

    Example:
        path = write_dataset(rows, nfeatures=2)
    """
    counter = {"n": 0}

    def _write(rows, nfeatures=2, targetclasses="[0,1]", header=None, name=None):
        counter["n"] += 1
        path = tmp_path / (name or f"dataset{counter['n']}.csv")
        if header is None:
            header = [f"f{i}" for i in range(nfeatures)] + ["target"]
        with open(path, "w", newline="") as fh:
            writer = csv.writer(fh)
            writer.writerow(["nfeatures", "targetclasses"])
            writer.writerow([nfeatures, targetclasses])
            writer.writerow(header)
            writer.writerows(rows)
        return path

    return _write


@pytest.fixture
def prediction_rows():
    """Sample id + 2 features, sign of the first feature decides the class."""
    return [[f"s{i}", (-1.0) ** i * (i + 1), 0.5] for i in range(23)]


@pytest.fixture
def config():
    return ProcessorConfig(random_state=0)
