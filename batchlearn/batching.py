"""
Batch accumulation for streamed dataset rows.

Rows are transformed one at a time and grouped into fixed-size batches so
training and prediction never hold more than batch_size rows in memory.
"""

from typing import Any, Callable, Iterable, Iterator, List

from tqdm import tqdm

from .config import BATCH_SIZE


def iter_batches(items: Iterable[Any], batch_size: int = BATCH_SIZE) -> Iterator[List[Any]]:
    """
    Group an iterable into lists of at most batch_size items.

    Full batches are yielded as soon as they fill up; the trailing partial
    batch, if any, is yielded once at the end. Order is preserved.

    Args:
        items: Any iterable (consumed lazily).
        batch_size: Maximum number of items per batch.

    Returns:
        Generator of non-empty lists.
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be positive, got {batch_size}")

    batch = []
    for item in items:
        batch.append(item)
        if len(batch) >= batch_size:
            yield batch
            batch = []

    if batch:  # Yield remainder
        yield batch


def accumulate(
    rows: Iterable[Any],
    transform: Callable[[Any], Any],
    handler: Callable[[List[Any]], None],
    batch_size: int = BATCH_SIZE,
    progress: bool = False,
    desc: str = "batches",
) -> int:
    """
    Transform rows, hand each batch to handler and count the rows seen.

    Args:
        rows: Raw rows, e.g. a DatasetReader.
        transform: Callable applied to each raw row before batching.
        handler: Called once per batch with the list of transformed rows.
        batch_size: Rows per batch.
        progress: Show a tqdm progress bar over the batches.
        desc: Progress bar label.

    Returns:
        Total number of rows delivered to handler.
    """
    nrows = 0

    def transformed():
        nonlocal nrows
        for row in rows:
            item = transform(row)
            nrows += 1
            yield item

    for batch in tqdm(
        iter_batches(transformed(), batch_size),
        desc=desc,
        unit="batch",
        disable=not progress,
    ):
        handler(batch)

    return nrows
