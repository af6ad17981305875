"""
Streaming reader for batchlearn dataset files.

Dataset layout (comma separated, double-quote enclosed fields, backslash
escape character):

    row 1   metadata keys            e.g. nfeatures,targetclasses
    row 2   metadata values          e.g. 3,"[0,1]"
    row 3   column names             (discarded)
    row 4+  one sample per row

Training / evaluation rows hold nfeatures feature values followed by the
integer target. Prediction rows hold a sample identifier followed by
nfeatures feature values.

The reader never loads the whole file: rows are produced one at a time from
the underlying stream, and closing the stream is left to the caller.
"""

import csv
import json
from typing import IO, Iterator, List, Tuple

from .exceptions import DatasetError

CSV_OPTIONS = {"delimiter": ",", "quotechar": '"', "escapechar": "\\"}


def open_dataset(path) -> IO[str]:
    """Open a dataset file for reading. Use it as a context manager."""
    return open(path, "r", newline="", encoding="utf-8")


class DatasetMetadata(dict):
    """Metadata key/value pairs from the first two rows of a dataset."""

    def _require(self, key: str) -> str:
        if key not in self:
            raise DatasetError("Dataset metadata is missing a required field", {"field": key})
        return self[key]

    @property
    def nfeatures(self) -> int:
        value = self._require("nfeatures")
        try:
            nfeatures = int(value)
        except ValueError:
            raise DatasetError("nfeatures is not an integer", {"nfeatures": value}) from None
        if nfeatures < 1:
            raise DatasetError("nfeatures must be positive", {"nfeatures": nfeatures})
        return nfeatures

    @property
    def target_classes(self) -> List[int]:
        value = self._require("targetclasses")
        try:
            classes = json.loads(value)
        except ValueError:
            raise DatasetError("targetclasses is not a JSON array", {"targetclasses": value}) from None
        if not isinstance(classes, list):
            raise DatasetError("targetclasses is not a JSON array", {"targetclasses": value})
        return [int(c) for c in classes]

    @property
    def n_target_classes(self) -> int:
        # Counted on the raw text, the way the host encodes the class list.
        return len(self._require("targetclasses").split(","))


class DatasetReader:
    """
    Forward-only reader over an open dataset stream.

    Call extract_metadata() first, then skip_header(), then iterate to get the
    raw field lists of the data rows.

    Example:
        with open_dataset(path) as fh:
            reader = DatasetReader(fh)
            metadata = reader.extract_metadata()
            reader.skip_header()
            for fields in reader:
                ...
    """

    def __init__(self, stream: IO[str]):
        self._rows = csv.reader(stream, **CSV_OPTIONS)

    def _next_row(self, what: str) -> List[str]:
        try:
            return next(self._rows)
        except StopIteration:
            raise DatasetError(f"Dataset ended before the {what} row") from None

    def extract_metadata(self) -> DatasetMetadata:
        """
        Consume the two metadata rows and pair keys with values.

        The stream must be positioned at the start of the file.

        Raises:
            DatasetError: if a metadata row is missing or the key and value
                          rows have different lengths.
        """
        keys = self._next_row("metadata keys")
        values = self._next_row("metadata values")
        if len(keys) != len(values):
            raise DatasetError(
                "Metadata keys and values do not match",
                {"keys": len(keys), "values": len(values)},
            )
        return DatasetMetadata(zip(keys, values))

    def skip_header(self) -> List[str]:
        """Discard the column names row and return it."""
        return self._next_row("column names")

    def __iter__(self) -> Iterator[List[str]]:
        for row in self._rows:
            if not row:
                continue
            yield row


def to_float(value: str) -> float:
    """Parse a numeric field. Missing values count as 0."""
    value = value.strip()
    if not value:
        return 0.0
    try:
        return float(value)
    except ValueError:
        raise DatasetError("Non numeric value in dataset", {"value": value}) from None


def _check_width(fields: List[str], width: int):
    if len(fields) < width:
        raise DatasetError(
            "Dataset row is too short", {"expected": width, "found": len(fields)}
        )


def training_row(fields: List[str], nfeatures: int) -> Tuple[List[float], int]:
    """Split a training row into (features, target)."""
    _check_width(fields, nfeatures + 1)
    features = [to_float(v) for v in fields[:nfeatures]]
    target = int(to_float(fields[nfeatures]))
    return features, target


def prediction_row(fields: List[str], nfeatures: int) -> Tuple[str, List[float]]:
    """Split a prediction row into (sample_id, features)."""
    _check_width(fields, nfeatures + 1)
    return fields[0], [to_float(v) for v in fields[1:nfeatures + 1]]
