"""Batch accumulator — partition a row sequence into fixed-size batches."""

from __future__ import annotations

from typing import Generic, Iterable, Iterator, TypeVar

T = TypeVar("T")


class BatchAccumulator(Generic[T]):
    """Collect rows in insertion order and hand them out in fixed-size batches.

    Has no side effects besides its own buffer, so it can be exercised
    without any store.
    """

    def __init__(self, batch_size: int) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        self.batch_size = batch_size
        self._buffer: list[T] = []

    def __len__(self) -> int:
        return len(self._buffer)

    def append(self, row: T) -> list[T] | None:
        """Add *row*; return the full batch once ``batch_size`` is reached."""
        self._buffer.append(row)
        if len(self._buffer) >= self.batch_size:
            batch, self._buffer = self._buffer, []
            return batch
        return None

    def flush(self) -> list[T] | None:
        """Return the undersized remainder, or ``None`` when empty."""
        if not self._buffer:
            return None
        batch, self._buffer = self._buffer, []
        return batch


def iter_batches(rows: Iterable[T], batch_size: int) -> Iterator[list[T]]:
    """Pull-based form of :class:`BatchAccumulator`.

    The next row is only requested after the previous batch has been
    consumed, which keeps upstream reads paused while a batch is written.
    """
    accumulator: BatchAccumulator[T] = BatchAccumulator(batch_size)
    for row in rows:
        batch = accumulator.append(row)
        if batch is not None:
            yield batch
    remainder = accumulator.flush()
    if remainder is not None:
        yield remainder
