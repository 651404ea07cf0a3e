"""The producer: buffers logs in batches and sends them in the background."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any

from slslog.model import Log
from slslog.producer.accumulator import LogAccumulator
from slslog.producer.adjusthash import adjust_hash
from slslog.producer.batch import CallBack
from slslog.producer.config import ProducerConfig
from slslog.producer.io_worker import IoWorker
from slslog.producer.logger import configure_logger
from slslog.producer.mover import Mover
from slslog.producer.retry_queue import RetryQueue
from slslog.producer.thread_pool import IoThreadPool

TIMEOUT_EXCEPTION = "TimeoutExecption"
ILLEGAL_STATE_EXCEPTION = "IllegalStateException"

_MAX_BATCH_COUNT = 40960
_MAX_BATCH_SIZE = 5 * 1024 * 1024
_DEFAULT_TOTAL_SIZE = 100 * 1024 * 1024
_CLOSE_POLL = 0.1


class ProducerTimeoutError(TimeoutError):
    """Raised when the producer could not accept or flush data in time."""

    def __init__(self) -> None:
        super().__init__(TIMEOUT_EXCEPTION)


def validate_producer_config(config: ProducerConfig, logger: logging.Logger) -> ProducerConfig:
    """Replace out-of-range settings with their defaults, in place, and return the config."""
    if config.max_reserved_attempts <= 0:
        logger.warning("MaxReservedAttempts must be greater than zero, reset to the default value")
        config.max_reserved_attempts = 11
    if config.max_batch_count > _MAX_BATCH_COUNT or config.max_batch_count <= 0:
        logger.warning("MaxBatchCount is out of range and has been reset to 40960")
        config.max_batch_count = _MAX_BATCH_COUNT
    if config.max_batch_size > _MAX_BATCH_SIZE or config.max_batch_size <= 0:
        logger.warning("MaxBatchSize is out of range and has been reset to 5M")
        config.max_batch_size = _MAX_BATCH_SIZE
    if config.max_io_worker_count <= 0:
        logger.warning("MaxIoWorkerCount must be positive and has been reset to 50")
        config.max_io_worker_count = 50
    if config.base_retry_backoff_ms <= 0:
        logger.warning("BaseRetryBackoffMs must be positive and has been reset to 100 milliseconds")
        config.base_retry_backoff_ms = 100
    if config.total_size_in_bytes <= 0:
        logger.warning("TotalSizeLnBytes must be positive and has been reset to 100M")
        config.total_size_in_bytes = _DEFAULT_TOTAL_SIZE
    if config.linger_ms < 100:
        logger.warning("LingerMs cannot be less than 100 milliseconds and has been reset to 2000")
        config.linger_ms = 2000
    return config


def _configure_client(client: Any, config: ProducerConfig) -> None:
    settings = (
        ("set_region", config.region),
        ("set_auth_version", config.auth_version),
        ("set_http_client", config.http_client),
        ("set_user_agent", config.user_agent),
    )
    for method, value in settings:
        if value:
            getattr(client, method)(value)


class Producer:
    """Buffers logs per destination and sends them through ``client``.

    The client must offer ``post_log_store_logs_v2(project, logstore, request)``
    and ``put_logs_with_metric_store_url(project, logstore, log_group)``.
    """

    def __init__(
        self,
        config: ProducerConfig,
        client: Any,
        logger: logging.Logger | None = None,
    ):
        self.logger = logger if logger is not None else configure_logger(config)
        self.config = validate_producer_config(config, self.logger)
        self.client = client
        _configure_client(client, self.config)
        self.buckets = self.config.buckets
        self._pending_size = 0
        self._pending_lock = threading.Lock()

        self.retry_queue = RetryQueue()
        self.io_worker = IoWorker(
            client,
            self.retry_queue,
            self.logger,
            self.config.max_io_worker_count,
            self.config.no_retry_status_code_list,
            self,
        )
        self.thread_pool = IoThreadPool(self.io_worker, self.logger)
        self.accumulator = LogAccumulator(
            self.config, self.io_worker, self.logger, self.thread_pool, self
        )
        self.mover = Mover(
            self.accumulator, self.retry_queue, self.io_worker, self.logger,
            self.thread_pool, self.config,
        )
        self._mover_thread: threading.Thread | None = None
        self._pool_thread: threading.Thread | None = None

    @property
    def pending_size(self) -> int:
        with self._pending_lock:
            return self._pending_size

    def add_pending_size(self, delta: int) -> None:
        with self._pending_lock:
            self._pending_size += delta

    def __enter__(self) -> "Producer":
        self.start()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.safe_close()

    def start(self) -> None:
        self.logger.info("producer mover start")
        self._mover_thread = threading.Thread(target=self.mover.run, daemon=True)
        self._mover_thread.start()
        self._pool_thread = threading.Thread(target=self.thread_pool.run, daemon=True)
        self._pool_thread.start()

    def _wait_for_room(self) -> None:
        block = self.config.max_block_sec
        limit = self.config.total_size_in_bytes
        if block > 0:
            for _ in range(block):
                if self.pending_size <= limit:
                    return
                time.sleep(1)
            self.logger.error("Over producer set maximum blocking time")
            raise ProducerTimeoutError()
        if block == 0:
            if self.pending_size > limit:
                self.logger.error("Over producer set maximum blocking time")
                raise ProducerTimeoutError()
            return
        while self.pending_size > limit:
            time.sleep(1)

    def _shard(self, shard_hash: str) -> str:
        if self.config.adjust_shard_hash:
            return adjust_hash(shard_hash, self.buckets)
        return shard_hash

    def send_log(
        self, project: str, logstore: str, topic: str, source: str,
        log: Log, callback: CallBack | None = None,
    ) -> None:
        self._wait_for_room()
        self.accumulator.add_log_to_producer_batch(
            project, logstore, "", topic, source, log, callback
        )

    def send_log_list(
        self, project: str, logstore: str, topic: str, source: str,
        log_list: list[Log], callback: CallBack | None = None,
    ) -> None:
        self._wait_for_room()
        self.accumulator.add_log_to_producer_batch(
            project, logstore, "", topic, source, log_list, callback
        )

    def hash_send_log(
        self, project: str, logstore: str, shard_hash: str, topic: str, source: str,
        log: Log, callback: CallBack | None = None,
    ) -> None:
        self._wait_for_room()
        self.accumulator.add_log_to_producer_batch(
            project, logstore, self._shard(shard_hash), topic, source, log, callback
        )

    def hash_send_log_list(
        self, project: str, logstore: str, shard_hash: str, topic: str, source: str,
        log_list: list[Log], callback: CallBack | None = None,
    ) -> None:
        self._wait_for_room()
        self.accumulator.add_log_to_producer_batch(
            project, logstore, self._shard(shard_hash), topic, source, log_list, callback
        )

    def _signal_close(self) -> None:
        self.logger.info("producer start closing")
        if self.config.sts_token_shutdown is not None:
            self.config.sts_token_shutdown.set()
            self.logger.info("producer closed ststoken")
        self.mover.shutdown.set()
        self.accumulator.shutdown.set()
        self.io_worker.retry_queue_shutdown.set()

    def _stop_mover(self) -> None:
        if self._mover_thread is not None:
            self._mover_thread.join()
        else:
            self.mover.run()
        self.thread_pool.shutdown.set()

    def close(self, timeout_ms: int) -> None:
        """Stop and wait up to ``timeout_ms`` for cached data to be sent."""
        started = time.monotonic()
        self._signal_close()
        self._stop_mover()
        while True:
            if self.io_worker.task_count == 0 and not self.thread_pool.has_task():
                self.logger.info("All threads of producer have been shutdown")
                return
            if (time.monotonic() - started) * 1000 > timeout_ms:
                self.logger.warning(
                    "The producer timeout closes, and some of the cached data may not be sent properly"
                )
                raise ProducerTimeoutError()
            time.sleep(_CLOSE_POLL)

    def safe_close(self) -> None:
        """Stop and wait until every cached batch has been handled."""
        self._signal_close()
        self._stop_mover()
        if self._pool_thread is not None:
            self._pool_thread.join()
        else:
            self.thread_pool.run()
        self.logger.info("Producer close finish")