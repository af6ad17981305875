"""
Processor — the entry point of batchlearn.

Exposes the operations a host application calls on a prediction backend:

    train_classification  stream dataset -> partial_train per batch -> save
    classify              load model -> stream dataset -> predict per batch
    evaluate_classification
                          buffer dataset -> repeated 80/20 splits -> verdict
    export / import_model / clear_model / delete_output_dir

Regression is not supported; those operations always raise.
"""

import functools
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Type, Union

from .classifier import Classifier, LogisticRegressionClassifier
from .config import ProcessorConfig
from .evaluation import Evaluator
from .exceptions import UnsupportedOperationError
from .prediction import Predictor
from .results import Result
from .store import ModelStore, remove
from .training import Trainer

logger = logging.getLogger(__name__)

MIN_PYTHON = (3, 8)

REGRESSION_UNSUPPORTED = "This predictor does not support regression yet."


class Processor:
    """
    Batch training, prediction and evaluation of a classifier on streamed
    CSV datasets.

    All operations are synchronous and hold no state between calls. The
    caller must not run two operations on the same model directory at the
    same time.

    Args:
        config: ProcessorConfig. Defaults to ProcessorConfig().
        classifier_class: Classifier implementation to train. It is also the
                          only type the model store will restore.
        classifier_params: Keyword arguments for classifier_class.

    Example:
        processor = Processor()
        result = processor.train_classification("model-1", "train.csv", "models/1")
        if result.ok:
            result = processor.classify("model-1", "predict.csv", "models/1")
            for index, (sampleid, label) in result.predictions.items():
                ...
    """

    def __init__(
        self,
        config: Optional[ProcessorConfig] = None,
        classifier_class: Type[Classifier] = LogisticRegressionClassifier,
        classifier_params: Optional[Dict[str, Any]] = None,
    ):
        self.config = config or ProcessorConfig()
        self.classifier_class = classifier_class
        self.classifier_params = dict(classifier_params or {})
        self.store = ModelStore([classifier_class])

        factory = functools.partial(classifier_class, **self.classifier_params)
        self.trainer = Trainer(
            self.store, factory, batch_size=self.config.batch_size, progress=self.config.progress,
        )
        self.predictor = Predictor(
            self.store, batch_size=self.config.batch_size, progress=self.config.progress,
        )
        self.evaluator = Evaluator(self.store, factory, self.config)

    def is_ready(self) -> Union[bool, str]:
        """True if the processor can run, otherwise the reason it can not."""
        if sys.version_info < MIN_PYTHON:
            return "Python {}.{} or later is required.".format(*MIN_PYTHON)
        return True

    def clear_model(self, uniqueid: str, modelversionoutputdir) -> None:
        """Delete the stored model of one model version."""
        logger.info("Clearing model %s", uniqueid)
        remove(modelversionoutputdir)

    def delete_output_dir(self, modeloutputdir, uniqueid: str) -> None:
        """Delete every stored version of a model."""
        logger.info("Deleting output directory of model %s", uniqueid)
        remove(modeloutputdir)

    def train_classification(self, uniqueid: str, dataset, outputdir) -> Result:
        logger.info("Training classification model %s", uniqueid)
        return self.trainer.train(dataset, outputdir)

    def classify(self, uniqueid: str, dataset, outputdir) -> Result:
        logger.info("Classifying samples with model %s", uniqueid)
        return self.predictor.predict(dataset, outputdir)

    def evaluate_classification(
        self,
        uniqueid: str,
        maxdeviation: float,
        niterations: int,
        dataset,
        outputdir,
        trainedmodeldir=None,
    ) -> Result:
        """
        Evaluate the classifier on dataset.

        outputdir is part of the host interface; evaluation writes nothing
        to it. When trainedmodeldir is given the model stored there is
        evaluated once instead of training niterations new models.
        """
        logger.info("Evaluating classification model %s", uniqueid)
        return self.evaluator.evaluate(
            dataset,
            max_deviation=maxdeviation,
            n_iterations=niterations,
            trained_model_dir=trainedmodeldir,
        )

    def export(self, uniqueid: str, modeldir) -> Path:
        """Directory to archive for exporting the model."""
        return self.store.export(modeldir)

    def import_model(self, uniqueid: str, modeldir, importdir) -> bool:
        """Validate and install the model found in importdir. False if rejected."""
        logger.info("Importing model %s from %s", uniqueid, importdir)
        return self.store.import_model(modeldir, importdir)

    def train_regression(self, uniqueid: str, dataset, outputdir) -> Result:
        raise UnsupportedOperationError(REGRESSION_UNSUPPORTED)

    def estimate(self, uniqueid: str, dataset, outputdir) -> Result:
        raise UnsupportedOperationError(REGRESSION_UNSUPPORTED)

    def evaluate_regression(
        self,
        uniqueid: str,
        maxdeviation: float,
        niterations: int,
        dataset,
        outputdir,
        trainedmodeldir=None,
    ) -> Result:
        raise UnsupportedOperationError(REGRESSION_UNSUPPORTED)
