"""
Classifier capability used by the batchlearn pipeline.

The pipeline only needs an object that can train, partially train and
predict, and that can describe itself as plain parameters + state for the
model store. Classifier is that contract; LogisticRegressionClassifier is the
production implementation, a softmax linear model on torch fitted with
full-batch L-BFGS (or plain gradient descent) on the log-loss.

State is exported as short text fields (comma separated vectors, semicolon
separated matrix rows) so the serialized model only uses characters the
import filter in batchlearn.store accepts.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Sequence

import numpy as np
import torch
import torch.nn as nn

from .exceptions import NotFittedError

TRAIN_ITERATIONS = 500

SOLVERS = ("lbfgs", "gd")


class Classifier(ABC):
    """Abstract trainable / predictable classifier."""

    @abstractmethod
    def train(self, samples, targets) -> None:
        """Fit from scratch on the given samples."""

    @abstractmethod
    def partial_train(self, samples, targets, classes: Sequence[int]) -> None:
        """Update the current model with one more batch."""

    @abstractmethod
    def predict(self, samples) -> np.ndarray:
        """Return one label per sample."""

    @abstractmethod
    def get_params(self) -> Dict[str, Any]:
        """Constructor arguments, as JSON-compatible values."""

    @abstractmethod
    def get_state(self) -> Optional[Dict[str, Any]]:
        """Learned state as JSON-compatible values, None when untrained."""

    @classmethod
    @abstractmethod
    def from_state(cls, params: Dict[str, Any], state: Optional[Dict[str, Any]]) -> "Classifier":
        """Rebuild an instance from get_params() / get_state() output."""


def encode_vector(values) -> str:
    return ",".join(repr(float(v)) for v in np.ravel(values))


def encode_matrix(values) -> str:
    return ";".join(encode_vector(row) for row in np.atleast_2d(values))


def decode_vector(text: str) -> np.ndarray:
    if not text:
        return np.empty(0, dtype=np.float64)
    return np.array([float(v) for v in text.split(",")], dtype=np.float64)


def decode_matrix(text: str) -> np.ndarray:
    return np.vstack([decode_vector(row) for row in text.split(";")])


def _as_samples(samples) -> np.ndarray:
    X = np.asarray(samples, dtype=np.float64)
    if X.ndim != 2:
        raise ValueError(f"samples must be 2-dimensional, got shape {X.shape}")
    return X


class LogisticRegressionClassifier(Classifier):
    """
    Multinomial logistic regression with L2 penalty.

    train() fits the whole sample set with a full-batch solver.

    partial_train() makes one online pass over the batch: one SGD step per
    sample with step size eta0 / sqrt(t), where t counts every sample seen so
    far, across calls. The sequence of updates only depends on the order of
    the samples, so splitting a dataset into batches of any size gives the
    same model as one partial_train over the whole dataset.

    Args:
        iterations: Solver iterations per train() call.
        solver: "lbfgs" (default) or "gd" for plain gradient descent, used by
                train().
        lr: Solver step size. Defaults to 1.0 for lbfgs and 0.1 for gd.
        alpha: L2 penalty strength.
        eta0: Initial step size of the partial_train() updates.
    """

    def __init__(
        self,
        iterations: int = TRAIN_ITERATIONS,
        solver: str = "lbfgs",
        lr: Optional[float] = None,
        alpha: float = 1e-4,
        eta0: float = 0.5,
    ):
        if solver not in SOLVERS:
            raise ValueError(f"Unknown solver {solver!r}, expected one of {SOLVERS}")
        if iterations < 1:
            raise ValueError("iterations must be positive")
        self.iterations = int(iterations)
        self.solver = solver
        self.lr = float(lr) if lr is not None else (1.0 if solver == "lbfgs" else 0.1)
        self.alpha = float(alpha)
        self.eta0 = float(eta0)

        self.classes_: Optional[np.ndarray] = None
        self.model: Optional[nn.Linear] = None
        self.seen_ = 0

    @property
    def n_features(self) -> Optional[int]:
        return None if self.model is None else self.model.in_features

    def _build(self, n_features: int, classes: Sequence[int]):
        self.classes_ = np.asarray(classes, dtype=np.int64)
        self.model = nn.Linear(n_features, len(self.classes_), dtype=torch.float64)
        nn.init.zeros_(self.model.weight)
        nn.init.zeros_(self.model.bias)
        self.seen_ = 0

    def _target_indices(self, targets) -> np.ndarray:
        lookup = {int(c): i for i, c in enumerate(self.classes_)}
        try:
            return np.array([lookup[int(t)] for t in targets], dtype=np.int64)
        except KeyError as e:
            raise ValueError(f"Target {e.args[0]} is not one of the classes {self.classes_.tolist()}") from None

    def _objective(self, X_tensor: torch.Tensor, y_tensor: torch.Tensor) -> torch.Tensor:
        loss = nn.functional.cross_entropy(self.model(X_tensor), y_tensor)
        return loss + 0.5 * self.alpha * self.model.weight.pow(2).sum()

    def _fit(self, X: np.ndarray, y: np.ndarray) -> float:
        """Minimize penalized log-loss over X."""
        X_tensor = torch.as_tensor(X, dtype=torch.float64)
        y_tensor = torch.as_tensor(y, dtype=torch.long)
        model = self.model

        def objective():
            return self._objective(X_tensor, y_tensor)

        model.train()
        if self.solver == "lbfgs":
            optimizer = torch.optim.LBFGS(
                model.parameters(),
                lr=self.lr,
                max_iter=self.iterations,
                line_search_fn="strong_wolfe",
            )

            def closure():
                optimizer.zero_grad()
                loss = objective()
                loss.backward()
                return loss

            loss = optimizer.step(closure)
        else:
            optimizer = torch.optim.SGD(model.parameters(), lr=self.lr)
            for _ in range(self.iterations):
                optimizer.zero_grad()
                loss = objective()
                loss.backward()
                optimizer.step()

        return loss.item()

    def _online_pass(self, X: np.ndarray, y: np.ndarray):
        """One SGD step per sample, in order."""
        X_tensor = torch.as_tensor(X, dtype=torch.float64)
        y_tensor = torch.as_tensor(y, dtype=torch.long)
        optimizer = torch.optim.SGD(self.model.parameters(), lr=self.eta0)

        self.model.train()
        for i in range(len(X_tensor)):
            self.seen_ += 1
            optimizer.param_groups[0]["lr"] = self.eta0 / self.seen_ ** 0.5
            optimizer.zero_grad()
            self._objective(X_tensor[i:i + 1], y_tensor[i:i + 1]).backward()
            optimizer.step()

    def train(self, samples, targets) -> None:
        X = _as_samples(samples)
        self._build(X.shape[1], np.unique(np.asarray(targets, dtype=np.int64)))
        self._fit(X, self._target_indices(targets))

    def partial_train(self, samples, targets, classes: Sequence[int]) -> None:
        X = _as_samples(samples)
        classes = [int(c) for c in classes]
        if self.model is None:
            self._build(X.shape[1], classes)
        else:
            if self.classes_.tolist() != classes:
                raise ValueError(
                    f"Classes {classes} differ from the trained classes {self.classes_.tolist()}"
                )
            if X.shape[1] != self.n_features:
                raise ValueError(f"Expected {self.n_features} features, got {X.shape[1]}")
        self._online_pass(X, self._target_indices(targets))

    def predict(self, samples) -> np.ndarray:
        if self.model is None:
            raise NotFittedError("Classifier has not been trained yet")
        X = _as_samples(samples)
        if X.shape[1] != self.n_features:
            raise ValueError(f"Expected {self.n_features} features, got {X.shape[1]}")

        self.model.eval()
        with torch.no_grad():
            logits = self.model(torch.as_tensor(X, dtype=torch.float64))
        return self.classes_[logits.argmax(dim=1).numpy()]

    def get_params(self) -> Dict[str, Any]:
        return {
            "iterations": self.iterations,
            "solver": self.solver,
            "lr": self.lr,
            "alpha": self.alpha,
            "eta0": self.eta0,
        }

    def get_state(self) -> Optional[Dict[str, Any]]:
        if self.model is None:
            return None
        return {
            "classes": ",".join(str(int(c)) for c in self.classes_),
            "nfeatures": self.n_features,
            "weights": encode_matrix(self.model.weight.detach().numpy()),
            "bias": encode_vector(self.model.bias.detach().numpy()),
            "seen": self.seen_,
        }

    @classmethod
    def from_state(cls, params: Dict[str, Any], state: Optional[Dict[str, Any]]) -> "LogisticRegressionClassifier":
        classifier = cls(**params)
        if state is None:
            return classifier

        for key in ("classes", "weights", "bias"):
            if not isinstance(state[key], str):
                raise ValueError(f"Stored {key} must be text")

        classes = [int(c) for c in state["classes"].split(",")]
        n_features = int(state["nfeatures"])
        weights = decode_matrix(state["weights"])
        bias = decode_vector(state["bias"])
        if weights.shape != (len(classes), n_features) or bias.shape != (len(classes),):
            raise ValueError("Stored weights do not match the stored classes and features")

        classifier._build(n_features, classes)
        with torch.no_grad():
            classifier.model.weight.copy_(torch.as_tensor(weights))
            classifier.model.bias.copy_(torch.as_tensor(bias))
        classifier.seen_ = int(state.get("seen", 0))
        return classifier
