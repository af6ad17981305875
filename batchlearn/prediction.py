"""
Batched prediction over a streamed dataset.

Each row carries a sample identifier in its first column. Predictions are
appended batch after batch so row i of the dataset always maps to label i of
the result, whatever the batch size.
"""

import logging

import numpy as np

from .batching import accumulate
from .config import BATCH_SIZE
from .reader import DatasetReader, open_dataset, prediction_row
from .results import Result, Status
from .store import ModelStore

logger = logging.getLogger(__name__)


class Predictor:
    """Predicts labels with the model stored in a model directory."""

    def __init__(self, store: ModelStore, batch_size: int = BATCH_SIZE, progress: bool = False):
        self.store = store
        self.batch_size = batch_size
        self.progress = progress

    def predict(self, dataset, outputdir) -> Result:
        """
        Args:
            dataset: Path of the dataset to classify.
            outputdir: Model directory of a trained model.

        Returns:
            Result whose predictions map row index -> (sample_id, label).

        Raises:
            ModelNotFoundError: if outputdir holds no trained model.
        """
        classifier = self.store.load(outputdir)

        sampleids = []
        predictions = []

        with open_dataset(dataset) as fh:
            reader = DatasetReader(fh)
            metadata = reader.extract_metadata()
            reader.skip_header()
            nfeatures = metadata.nfeatures

            def predict_batch(batch):
                sampleids.extend(sampleid for sampleid, _ in batch)
                samples = np.array([features for _, features in batch], dtype=np.float64)
                predictions.extend(np.asarray(classifier.predict(samples)).tolist())

            accumulate(
                reader,
                lambda fields: prediction_row(fields, nfeatures),
                predict_batch,
                batch_size=self.batch_size,
                progress=self.progress,
                desc="predicting",
            )

        logger.info("Predicted %d samples", len(predictions))
        return Result(
            status=Status.OK,
            predictions={
                index: (sampleid, label)
                for index, (sampleid, label) in enumerate(zip(sampleids, predictions))
            },
        )
