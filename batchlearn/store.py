"""
Model persistence for batchlearn.

One model directory holds exactly one file, MODEL_FILENAME, with the
classifier serialized as compact JSON:

    {"class":"LogisticRegressionClassifier","params":{...},"state":{...}}

Only classifier types registered with the store can be restored, so a model
file can never name an arbitrary class to construct. Files coming from
outside (import_model) additionally go through a character whitelist before
being decoded.
"""

import json
import logging
import re
import shutil
from pathlib import Path
from typing import Dict, Iterable, Optional, Type, Union

from .classifier import Classifier, LogisticRegressionClassifier
from .exceptions import ModelLoadError, ModelNotFoundError

logger = logging.getLogger(__name__)

MODEL_FILENAME = "model.json"

# Anything outside the serialized-object alphabet is dropped from imported
# files before they are decoded.
UNSAFE_CHARS = re.compile(rb'[^a-zA-Z0-9{}%.;,:"\-\x00\\]')

PathLike = Union[str, Path]


def model_filepath(modeldir: PathLike) -> Path:
    """Path of the serialized model inside a model directory."""
    return Path(modeldir) / MODEL_FILENAME


def has_model(modeldir: PathLike) -> bool:
    return model_filepath(modeldir).is_file()


def remove(directory: PathLike):
    """Delete a directory tree. A missing directory is not an error."""
    shutil.rmtree(directory, ignore_errors=True)


class ModelStore:
    """
    Saves, loads, exports and imports classifiers.

    Args:
        classifier_types: Classifier classes that may be restored from disk.
                          Defaults to LogisticRegressionClassifier only.
    """

    def __init__(self, classifier_types: Optional[Iterable[Type[Classifier]]] = None):
        types = classifier_types or (LogisticRegressionClassifier,)
        self.allowed: Dict[str, Type[Classifier]] = {t.__name__: t for t in types}

    def dumps(self, classifier: Classifier) -> bytes:
        document = {
            "class": type(classifier).__name__,
            "params": classifier.get_params(),
            "state": classifier.get_state(),
        }
        return json.dumps(document, separators=(",", ":")).encode("utf-8")

    def loads(self, data: bytes) -> Classifier:
        """
        Restore a classifier from serialized bytes.

        Raises:
            ModelLoadError: if the bytes are not a model document or name a
                            classifier type that is not allowed.
        """
        try:
            document = json.loads(data.decode("utf-8"))
        except ValueError as e:
            raise ModelLoadError("Model data is not valid JSON", {"error": str(e)}) from None

        if not isinstance(document, dict) or not {"class", "params", "state"} <= document.keys():
            raise ModelLoadError("Model data is not a model document")

        name = document["class"]
        if not isinstance(name, str) or name not in self.allowed:
            raise ModelLoadError("Model class is not allowed", {"class": name})
        if not isinstance(document["params"], dict):
            raise ModelLoadError("Model params are malformed")
        if document["state"] is not None and not isinstance(document["state"], dict):
            raise ModelLoadError("Model state is malformed")

        try:
            return self.allowed[name].from_state(document["params"], document["state"])
        except (KeyError, TypeError, ValueError) as e:
            raise ModelLoadError("Model data is incomplete", {"class": name, "error": str(e)}) from None

    def save(self, classifier: Classifier, modeldir: PathLike) -> Path:
        path = model_filepath(modeldir)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(self.dumps(classifier))
        logger.debug("Saved %s to %s", type(classifier).__name__, path)
        return path

    def load(self, modeldir: PathLike) -> Classifier:
        path = model_filepath(modeldir)
        if not path.is_file():
            raise ModelNotFoundError("Can not load the model, the model file does not exist", {"path": str(path)})
        return self.loads(path.read_bytes())

    def export(self, modeldir: PathLike) -> Path:
        """
        Return the directory to export. The directory is not modified, the
        caller archives it.

        Raises:
            ModelNotFoundError: if there is no trained model in modeldir.
        """
        path = model_filepath(modeldir)
        if not path.is_file():
            raise ModelNotFoundError("There is no trained model to export", {"path": str(path)})
        return Path(modeldir)

    def import_model(self, modeldir: PathLike, importdir: PathLike) -> bool:
        """
        Validate the model in importdir and copy it into modeldir.

        The imported bytes are stripped of anything outside the whitelist and
        decoded with the allowed classifier types only. If that fails nothing
        is written and False is returned. Otherwise the model is loaded and
        saved again through the regular path, replacing any existing model.

        Returns:
            True on success, False if the import was rejected.
        """
        source = model_filepath(importdir)
        try:
            raw = source.read_bytes()
        except OSError as e:
            logger.warning("Model import rejected, can not read %s: %s", source, e)
            return False

        try:
            self.loads(UNSAFE_CHARS.sub(b"", raw))
            classifier = self.load(importdir)
        except ModelLoadError as e:
            logger.warning("Model import rejected for %s: %s", source, e)
            return False

        self.save(classifier, modeldir)
        return True
