"""Transaction/checkpoint controller for one file's ingestion run.

States::

    IDLE -> TX_OPEN -> (BATCH_COMMITTED -> TX_OPEN)* -> FINAL_COMMITTED -> CLOSED
                 \\
                  -> ROLLED_BACK

A transaction is always open between :meth:`TransactionController.begin`
and :meth:`TransactionController.finish`, so the pipeline never writes
outside one. Failures inside an open transaction are rolled back and
re-raised; a failed checkpoint after a commit is only re-raised. Retrying is
up to the caller.
"""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import Callable, TypeVar

from ingestion.loaders.base import Store

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TxState(StrEnum):
    IDLE = "idle"
    TX_OPEN = "tx_open"
    BATCH_COMMITTED = "batch_committed"
    FINAL_COMMITTED = "final_committed"
    ROLLED_BACK = "rolled_back"
    CLOSED = "closed"


class TransactionStateError(RuntimeError):
    """An operation was attempted in a state that does not allow it."""


class TransactionController:
    """Own the transaction boundaries and checkpoint cadence for one run."""

    def __init__(self, store: Store, checkpoint_every: int = 10) -> None:
        """
        Args:
            store: Open store handle; its lifecycle belongs to the caller.
            checkpoint_every: Committed batches between checkpoints. ``1``
                checkpoints after every batch.
        """
        if checkpoint_every < 1:
            raise ValueError("checkpoint_every must be >= 1")
        self.store = store
        self.checkpoint_every = checkpoint_every
        self.state = TxState.IDLE
        self.batches_committed = 0
        self.checkpoints = 0

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def begin(self) -> None:
        self._expect(TxState.IDLE)
        self.store.begin()
        self.state = TxState.TX_OPEN

    def commit_batch(self) -> None:
        """Commit the open transaction, checkpoint if due, reopen."""
        self._commit()
        self.reopen()

    def reopen(self) -> None:
        """After a batch commit: checkpoint if due, then open the next transaction.

        A failure here leaves the controller in ``BATCH_COMMITTED``; the
        batch is already durable and there is nothing to roll back.
        """
        self._expect(TxState.BATCH_COMMITTED)
        if self.batches_committed % self.checkpoint_every == 0:
            self._checkpoint()
        self.store.begin()
        self.state = TxState.TX_OPEN

    def finish(self) -> None:
        """Commit whatever is left and checkpoint once more."""
        self._expect(TxState.TX_OPEN)
        self.store.commit()
        self.state = TxState.FINAL_COMMITTED
        self._checkpoint()
        self.state = TxState.CLOSED

    def rollback(self) -> None:
        """Roll back the open transaction; a no-op when none is open."""
        if self.state is not TxState.TX_OPEN:
            return
        try:
            self.store.rollback()
        finally:
            self.state = TxState.ROLLED_BACK
            logger.warning(
                "Transaction rolled back after %d committed batches", self.batches_committed
            )

    def write_batch(self, write: Callable[[], T]) -> T:
        """Run *write* inside the open transaction and commit it.

        Any exception from *write* or from the commit rolls the transaction
        back and is re-raised unchanged. On return the batch is committed and
        the controller is in ``BATCH_COMMITTED``; call :meth:`reopen` next.
        """
        self._expect(TxState.TX_OPEN)
        try:
            result = write()
            self._commit()
        except BaseException:
            self.rollback()
            raise
        return result

    def run_batch(self, write: Callable[[], T]) -> T:
        """:meth:`write_batch` followed by :meth:`reopen`."""
        result = self.write_batch(write)
        self.reopen()
        return result

    # ------------------------------------------------------------------
    # Context manager support
    # ------------------------------------------------------------------

    def __enter__(self) -> TransactionController:
        self.begin()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None:
            self.rollback()
        elif self.state is TxState.TX_OPEN:
            self.finish()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _commit(self) -> None:
        self._expect(TxState.TX_OPEN)
        self.store.commit()
        self.state = TxState.BATCH_COMMITTED
        self.batches_committed += 1

    def _checkpoint(self) -> None:
        self.store.checkpoint()
        self.checkpoints += 1
        logger.debug(
            "Checkpoint %d after %d committed batches", self.checkpoints, self.batches_committed
        )

    def _expect(self, state: TxState) -> None:
        if self.state is not state:
            raise TransactionStateError(
                f"expected state {state.value}, controller is {self.state.value}"
            )
