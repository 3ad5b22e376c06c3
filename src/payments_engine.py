import logging
import threading
from typing import Dict, Iterable, List

from csv_io import TransactionReader
from ledger import LedgerStore
from message_queue import PartitionedQueue
from models import AccountSnapshot, ProcessingStats, Transaction
from transaction_processor import TransactionProcessor

logger = logging.getLogger(__name__)


class PaymentsEngine:
    """
    Orchestrates transaction processing against a single ledger.

    With one worker every record is applied in the calling thread, in arrival
    order. With more, records are partitioned by client and each partition is
    drained by its own worker thread, which keeps per-client ordering intact.
    """

    def __init__(self, num_workers: int = 1):
        if num_workers < 1:
            raise ValueError(f"num_workers must be at least 1, got {num_workers}")
        self._num_workers = num_workers
        self._ledger = LedgerStore()
        self._processor = TransactionProcessor(self._ledger)
        self._stats = ProcessingStats()

    @property
    def ledger(self) -> LedgerStore:
        return self._ledger

    @property
    def stats(self) -> ProcessingStats:
        return self._stats

    def process_file(self, filepath: str) -> Dict[int, AccountSnapshot]:
        """Process CSV file and return final account states."""
        with open(filepath, "r", newline="") as f:
            reader = TransactionReader(f)
            accounts = self.process_transactions(reader)
        self._stats.record_skipped(reader.rows_skipped)
        return accounts

    def process_transactions(self, transactions: Iterable[Transaction]) -> Dict[int, AccountSnapshot]:
        """Apply every transaction and return account snapshots keyed by client, in discovery order."""
        logger.info(f"Starting processing with {self._num_workers} worker(s)")

        if self._num_workers == 1:
            for transaction in transactions:
                self._apply(transaction)
        else:
            self._process_partitioned(transactions)

        logger.info(
            f"Processing complete: {self._stats.applied} applied, "
            f"{self._stats.rejected} rejected, {len(self._ledger)} account(s)"
        )
        return {snapshot.client_id: snapshot for snapshot in self._ledger.snapshot_all()}

    def _apply(self, transaction: Transaction) -> None:
        result = self._processor.process_transaction(transaction)
        self._stats.record_result(result)

    def _process_partitioned(self, transactions: Iterable[Transaction]) -> None:
        queue = PartitionedQueue(self._num_workers)
        errors: List[BaseException] = []

        workers = []
        for partition in range(queue.num_partitions):
            worker = threading.Thread(
                target=self._consume_partition,
                args=(queue, partition, errors),
                name=f"payments-worker-{partition}",
            )
            worker.start()
            workers.append(worker)

        # Publishing happens on the calling thread so the source is read exactly once, in order.
        try:
            for transaction in transactions:
                queue.publish_message(transaction)
        finally:
            queue.shutdown()
            for worker in workers:
                worker.join()

        if errors:
            raise errors[0]

    def _consume_partition(self, queue: PartitionedQueue, partition: int, errors: List[BaseException]) -> None:
        """Consumer loop: drain one partition until shutdown and empty."""
        try:
            while True:
                transaction = queue.consume_message(partition)
                if transaction is None:
                    if queue.is_shutdown() and queue.is_empty(partition):
                        break
                    continue
                self._apply(transaction)
        except Exception as e:
            logger.exception(f"Worker for partition {partition} failed")
            errors.append(e)
