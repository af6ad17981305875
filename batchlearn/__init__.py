"""
batchlearn — Memory-bounded batch training, prediction and evaluation of a
linear classifier on CSV datasets.

Datasets too large for memory are streamed in batches: training feeds each
batch to an incremental (partial) fit, prediction keeps every sample id next
to its label, and evaluation repeats random train/test splits to produce a
score together with a pass / not-enough-data / low-score verdict.

Quick start:
    from batchlearn import Processor, Status

    processor = Processor()
    result = processor.train_classification("model-1", "train.csv", "models/1")
    result = processor.evaluate_classification(
        "model-1", maxdeviation=0.05, niterations=10,
        dataset="eval.csv", outputdir="models/1",
    )
    if result.status == Status.OK:
        predictions = processor.classify("model-1", "predict.csv", "models/1").predictions
"""

__version__ = "0.1.0"

from .core import Processor
from .config import ProcessorConfig, BATCH_SIZE
from .results import Result, Status
from .classifier import Classifier, LogisticRegressionClassifier
from .store import ModelStore, MODEL_FILENAME
from .reader import DatasetReader, DatasetMetadata, open_dataset
from .batching import accumulate, iter_batches
from .training import Trainer
from .prediction import Predictor
from .evaluation import Evaluator, get_evaluation_result, MIN_SCORE
from .exceptions import (
    BatchLearnError,
    ConfigError,
    DatasetError,
    ModelLoadError,
    ModelNotFoundError,
    NotFittedError,
    UnsupportedOperationError,
)
