"""
Repeated train/test evaluation of the classifier.

Evaluation needs random splits over the whole dataset, so unlike training it
buffers every row in memory. A byte budget (ProcessorConfig.
evaluation_memory_limit) caps how much is buffered; rows past the budget are
not evaluated and the result says so.

Each iteration trains a fresh classifier on a random 80% of the samples and
scores it on the remaining 20% with the weighted-average F1 score. The mean
score is the model score; the population standard deviation across
iterations tells whether there was enough data for the score to be stable.
"""

import logging
import struct
import sys
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np
from sklearn.metrics import classification_report
from sklearn.model_selection import train_test_split
from sklearn.utils import check_random_state
from tqdm import tqdm

from .classifier import Classifier
from .config import ProcessorConfig
from .reader import DatasetReader, open_dataset, training_row
from .results import Result, Status
from .store import ModelStore

logger = logging.getLogger(__name__)

MIN_SCORE = 0.7
ACCEPTED_DEVIATION = 0.05
EVALUATION_ITERATIONS = 10
TEST_SIZE = 0.2

# A boxed float plus the list slot pointing to it.
FLOAT_SIZE = sys.getsizeof(0.0) + struct.calcsize("P")

NOT_ENOUGH_DATA_MESSAGE = (
    "There is not enough data to evaluate this model, every target class "
    "needs at least 2 samples."
)
DEVIATION_MESSAGE = (
    "The evaluation results varied too much, more data is needed to confirm "
    "the model is valid. Evaluation results standard deviation = {deviation}, "
    "maximum accepted standard deviation = {accepteddeviation}"
)
LOW_SCORE_MESSAGE = (
    "The model prediction accuracy is not very high, some predictions may "
    "not be accurate. Model score = {score}, minimum score = {minscore}"
)
SIZE_LIMITED_MESSAGE = (
    "Only part of the evaluation dataset ({size}) was evaluated due to its "
    "size. Enable no_evaluation_limits if the server can cope with the load."
)


def weighted_f1(y_true, y_pred) -> float:
    """Weighted-average F1 score from a classification report."""
    report = classification_report(y_true, y_pred, output_dict=True, zero_division=0)
    return float(report["weighted avg"]["f1-score"])


def has_enough_data(targets: Sequence[int], n_target_classes: int) -> bool:
    """
    Every observed class needs at least 2 samples, and every declared class
    must be observed.
    """
    classes, counts = np.unique(np.asarray(targets, dtype=np.int64), return_counts=True)
    if (counts < 2).any():
        return False
    return len(classes) == n_target_classes


def get_evaluation_result(
    scores: Sequence[float],
    max_deviation: float,
    limited_size: bool = False,
    dataset_size: Optional[int] = None,
) -> Result:
    """
    Turn per-iteration scores into a verdict.

    Args:
        scores: Weighted F1 score of each iteration.
        max_deviation: Highest acceptable population standard deviation.
        limited_size: True if only part of the dataset was evaluated.
        dataset_size: Dataset file size in bytes, reported when limited_size.

    Returns:
        Result with the mean score and the status flags that apply.
    """
    if len(scores) == 1:
        score = float(scores[0])
        deviation = 0.0
    else:
        score = float(np.mean(scores))
        deviation = float(np.std(scores))

    result = Result(status=Status.OK, score=score)

    if deviation > max_deviation:
        result.add_status(
            Status.NOT_ENOUGH_DATA,
            DEVIATION_MESSAGE.format(deviation=deviation, accepteddeviation=max_deviation),
        )

    if score < MIN_SCORE:
        result.add_status(
            Status.LOW_SCORE,
            LOW_SCORE_MESSAGE.format(score=score, minscore=MIN_SCORE),
        )

    if limited_size:
        size = tqdm.format_sizeof(dataset_size or 0, "B", 1024)
        result.info.append(SIZE_LIMITED_MESSAGE.format(size=size))

    return result


class Evaluator:
    """
    Estimates how good the classifier is on a labelled dataset.

    Args:
        store: ModelStore used to load a pre-trained model.
        classifier_factory: Callable returning a fresh, untrained Classifier.
        config: ProcessorConfig with the memory guard and random state.
    """

    def __init__(
        self,
        store: ModelStore,
        classifier_factory: Callable[[], Classifier],
        config: Optional[ProcessorConfig] = None,
    ):
        self.store = store
        self.classifier_factory = classifier_factory
        self.config = config or ProcessorConfig()

    def load_samples(self, reader: DatasetReader, nfeatures: int) -> Tuple[List[List[float]], List[int], bool]:
        """
        Buffer the dataset rows, stopping at the memory budget.

        Returns:
            (samples, targets, limited) where limited is True if the budget
            stopped buffering before the end of the dataset.
        """
        check_limit = not self.config.no_evaluation_limits
        limit = self.config.evaluation_memory_limit
        samplessize = 0

        samples = []
        targets = []
        for fields in reader:
            features, target = training_row(fields, nfeatures)
            samples.append(features)
            targets.append(target)

            if check_limit:
                # Missing values are charged as full floats, so this errs high.
                samplessize += len(fields) * FLOAT_SIZE
                if samplessize >= limit:
                    logger.warning(
                        "Evaluation dataset exceeds %d bytes, only the first %d samples are used",
                        limit, len(samples),
                    )
                    return samples, targets, True

        return samples, targets, False

    def evaluate(
        self,
        dataset,
        max_deviation: float = ACCEPTED_DEVIATION,
        n_iterations: int = EVALUATION_ITERATIONS,
        trained_model_dir=None,
    ) -> Result:
        """
        Evaluate on dataset.

        Args:
            dataset: Path of the labelled dataset file.
            max_deviation: Highest acceptable score standard deviation.
            n_iterations: Number of random train/test splits.
            trained_model_dir: Evaluate the model stored there instead of
                               training new ones. Forces a single iteration,
                               the outcome would always be the same.

        Returns:
            Result with the mean score and status flags.
        """
        classifier = None
        if trained_model_dir:
            n_iterations = 1
            classifier = self.store.load(trained_model_dir)
        elif n_iterations < 1:
            raise ValueError(f"n_iterations must be positive, got {n_iterations}")

        with open_dataset(dataset) as fh:
            reader = DatasetReader(fh)
            metadata = reader.extract_metadata()
            reader.skip_header()
            samples, targets, limited = self.load_samples(reader, metadata.nfeatures)

        if not has_enough_data(targets, metadata.n_target_classes):
            logger.info("Not enough data to evaluate (%d samples)", len(targets))
            return Result(status=Status.NOT_ENOUGH_DATA, score=0.0, info=[NOT_ENOUGH_DATA_MESSAGE])

        X = np.array(samples, dtype=np.float64)
        y = np.array(targets, dtype=np.int64)
        del samples, targets

        rng = check_random_state(self.config.random_state)
        scores = []
        for i in range(n_iterations):
            if classifier is None:
                X_train, X_test, y_train, y_test = train_test_split(X, y, test_size=TEST_SIZE, random_state=rng)
                model = self.classifier_factory()
                model.train(X_train, y_train)
                scores.append(weighted_f1(y_test, model.predict(X_test)))
            else:
                scores.append(weighted_f1(y, classifier.predict(X)))
            logger.debug("Evaluation iteration %d score %.4f", i + 1, scores[-1])

        result = get_evaluation_result(
            scores, max_deviation, limited_size=limited, dataset_size=Path(dataset).stat().st_size,
        )
        logger.info("Evaluated %d samples over %d iterations, score %.4f", len(y), n_iterations, result.score)
        return result
