import pytest

from batchlearn.batching import accumulate, iter_batches


def test_iter_batches_flushes_remainder():
    assert list(iter_batches(range(7), 3)) == [[0, 1, 2], [3, 4, 5], [6]]


def test_iter_batches_exact_multiple():
    assert list(iter_batches(range(6), 3)) == [[0, 1, 2], [3, 4, 5]]


def test_iter_batches_empty():
    assert list(iter_batches([], 3)) == []


def test_iter_batches_rejects_bad_size():
    with pytest.raises(ValueError):
        list(iter_batches([1], 0))


def test_accumulate_transforms_in_order():
    batches = []
    count = accumulate(range(10), lambda x: x * 10, batches.append, batch_size=4)

    assert count == 10
    assert batches == [[0, 10, 20, 30], [40, 50, 60, 70], [80, 90]]


def test_accumulate_no_rows():
    batches = []
    assert accumulate([], str, batches.append, batch_size=4) == 0
    assert batches == []
