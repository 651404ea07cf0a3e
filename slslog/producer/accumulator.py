"""Gathers logs into batches keyed by their destination."""

from __future__ import annotations

import logging
import threading
from typing import Any

from slslog.model import Log
from slslog.producer.batch import CallBack, ProducerBatch
from slslog.producer.config import DELIMITER, ProducerConfig
from slslog.producer.io_worker import IoWorker
from slslog.producer.thread_pool import IoThreadPool
from slslog.producer.utils import get_log_list_size, get_log_size

_MAX_SEND_SIZE = 5 * 1024 * 1024


def _data_size(log_data: Any) -> int:
    if isinstance(log_data, Log):
        return get_log_size(log_data)
    if isinstance(log_data, (list, tuple)) and all(isinstance(log, Log) for log in log_data):
        return get_log_list_size(log_data)
    raise TypeError("Invalid logType")


class LogAccumulator:
    """Holds open batches and hands full ones to the thread pool.

    ``producer`` must offer ``add_pending_size(delta)``.
    """

    def __init__(
        self,
        config: ProducerConfig,
        io_worker: IoWorker,
        logger: logging.Logger,
        thread_pool: IoThreadPool,
        producer: Any,
    ):
        self.config = config
        self.io_worker = io_worker
        self.logger = logger
        self.thread_pool = thread_pool
        self.producer = producer
        self.lock = threading.Lock()
        self.log_group_data: dict[str, ProducerBatch] = {}
        self.shutdown = threading.Event()

    def key_for(self, project: str, logstore: str, topic: str, shard_hash: str, source: str) -> str:
        return DELIMITER.join((project, logstore, topic, shard_hash, source))

    def add_log_to_producer_batch(
        self,
        project: str,
        logstore: str,
        shard_hash: str,
        topic: str,
        source: str,
        log_data: Log | list[Log],
        callback: CallBack | None,
    ) -> None:
        """Add a log or a list of logs to the batch for its destination."""
        if self.shutdown.is_set():
            self.logger.warning("Producer has started and shut down and cannot write to new logs")
            raise RuntimeError("Producer has started and shut down and cannot write to new logs")
        key = self.key_for(project, logstore, topic, shard_hash, source)
        with self.lock:
            try:
                size = _data_size(log_data)
            except TypeError:
                self.logger.error("Invalid logType")
                raise
            batch = self.log_group_data.get(key)
            if batch is None:
                self._create_batch(key, log_data, callback, project, logstore, topic, source, shard_hash)
                return
            batch.total_data_size += size
            self.producer.add_pending_size(size)
            self._add_or_send(key, batch, log_data, callback, project, logstore, topic, source, shard_hash)

    def _add_or_send(
        self,
        key: str,
        batch: ProducerBatch,
        log_data: Log | list[Log],
        callback: CallBack | None,
        project: str,
        logstore: str,
        topic: str,
        source: str,
        shard_hash: str,
    ) -> None:
        count_fits = batch.log_count() + 1 <= self.config.max_batch_count
        size = batch.total_data_size
        if size > self.config.max_batch_size and size < _MAX_SEND_SIZE and count_fits:
            self._append(batch, log_data, callback)
            self._send(key, batch)
        elif size <= self.config.max_batch_size and count_fits:
            self._append(batch, log_data, callback)
        else:
            self._send(key, batch)
            self._create_batch(key, log_data, callback, project, logstore, topic, source, shard_hash)

    @staticmethod
    def _append(batch: ProducerBatch, log_data: Log | list[Log], callback: CallBack | None) -> None:
        batch.add_logs(log_data)
        if callback is not None:
            batch.add_callback(callback)

    def _create_batch(
        self,
        key: str,
        log_data: Log | list[Log],
        callback: CallBack | None,
        project: str,
        logstore: str,
        topic: str,
        source: str,
        shard_hash: str,
    ) -> None:
        self.logger.debug("Create a new ProducerBatch")
        self.log_group_data[key] = ProducerBatch(
            log_data, callback, project, logstore, topic, source, shard_hash, self.config
        )

    def _send(self, key: str, batch: ProducerBatch) -> None:
        self.logger.debug("Send producerBatch to IoWorker from logAccumulator")
        self.thread_pool.add_task(batch)
        del self.log_group_data[key]