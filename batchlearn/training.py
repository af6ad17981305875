"""
Incremental classifier training over a streamed dataset.

The dataset is read in batches of batch_size rows and each batch is fed to
Classifier.partial_train(), so memory use does not depend on the dataset
size. The model is written to the output directory only after the last
batch has been trained.
"""

import itertools
import logging
from typing import Callable

import numpy as np

from .batching import accumulate
from .classifier import Classifier
from .config import BATCH_SIZE
from .reader import DatasetReader, open_dataset, training_row
from .results import Result, Status
from .store import ModelStore, has_model

logger = logging.getLogger(__name__)


class Trainer:
    """
    Trains a classifier batch by batch and persists it.

    Args:
        store: ModelStore used to restore and save the classifier.
        classifier_factory: Callable returning a fresh, untrained Classifier.
        batch_size: Rows per partial_train call.
        progress: Show a tqdm progress bar.
    """

    def __init__(
        self,
        store: ModelStore,
        classifier_factory: Callable[[], Classifier],
        batch_size: int = BATCH_SIZE,
        progress: bool = False,
    ):
        self.store = store
        self.classifier_factory = classifier_factory
        self.batch_size = batch_size
        self.progress = progress

    def _get_classifier(self, outputdir) -> Classifier:
        if has_model(outputdir):
            logger.info("Resuming training of the model in %s", outputdir)
            return self.store.load(outputdir)
        return self.classifier_factory()

    def train(self, dataset, outputdir) -> Result:
        """
        Train on every row of dataset and save the model into outputdir.

        Args:
            dataset: Path of the training dataset file.
            outputdir: Model directory. An existing model there is trained
                       further instead of starting from scratch.

        Returns:
            Result with Status.OK, or Status.NO_DATASET when the dataset has
            fewer than 2 samples (nothing is saved in that case).
        """
        classifier = self._get_classifier(outputdir)

        with open_dataset(dataset) as fh:
            reader = DatasetReader(fh)
            metadata = reader.extract_metadata()
            reader.skip_header()

            nfeatures = metadata.nfeatures
            classes = metadata.target_classes
            nbatches = 0

            # A single sample is not worth training on; look ahead before
            # the first batch goes out.
            rows = iter(reader)
            head = list(itertools.islice(rows, 2))
            if len(head) <= 1:
                logger.info("Not enough samples to train (%d), the model was not saved", len(head))
                return Result(status=Status.NO_DATASET)

            def train_batch(batch):
                nonlocal nbatches
                samples = np.array([features for features, _ in batch], dtype=np.float64)
                targets = np.array([target for _, target in batch], dtype=np.int64)
                classifier.partial_train(samples, targets, classes)
                nbatches += 1
                logger.debug("Trained batch %d (%d samples)", nbatches, len(batch))

            nsamples = accumulate(
                itertools.chain(head, rows),
                lambda fields: training_row(fields, nfeatures),
                train_batch,
                batch_size=self.batch_size,
                progress=self.progress,
                desc="training",
            )

        self.store.save(classifier, outputdir)
        logger.info("Trained on %d samples in %d batches", nsamples, nbatches)
        return Result(status=Status.OK)
