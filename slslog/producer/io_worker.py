"""Sends batches to the service and decides what happens when that fails."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Iterable
from typing import Any

from slslog.model import LogServiceError, PostLogStoreLogsRequest
from slslog.producer.batch import ProducerBatch
from slslog.producer.result import Attempt
from slslog.producer.retry_queue import RetryQueue
from slslog.producer.utils import get_time_ms


def _now_ms() -> int:
    return get_time_ms(time.time_ns())


def _error_details(err: BaseException) -> tuple[str, str, str]:
    """Return (code, message, request id) of an error."""
    if isinstance(err, LogServiceError):
        return err.code, err.message, err.request_id
    return "", str(err), ""


class IoWorker:
    """Sends batches, records attempts and hands failed batches to the retry queue.

    ``producer`` must offer a ``config`` attribute and ``add_pending_size(delta)``.
    """

    def __init__(
        self,
        client: Any,
        retry_queue: RetryQueue,
        logger: logging.Logger,
        max_io_worker_count: int,
        no_retry_status_codes: Iterable[int],
        producer: Any,
    ):
        self.client = client
        self.retry_queue = retry_queue
        self.logger = logger
        self.no_retry_status_codes = frozenset(no_retry_status_codes)
        self.producer = producer
        self.retry_queue_shutdown = threading.Event()
        self.task_count = 0
        self._count_lock = threading.Lock()
        self._slots = threading.BoundedSemaphore(max_io_worker_count)

    def send_to_server(self, batch: ProducerBatch) -> None:
        self.logger.debug("ioworker send data to server")
        begin_ms = _now_ms()
        try:
            if batch.use_metric_store_url:
                self.client.put_logs_with_metric_store_url(
                    batch.project, batch.logstore, batch.log_group
                )
            else:
                request = PostLogStoreLogsRequest(
                    log_group=batch.log_group,
                    hash_key=batch.shard_hash,
                    compress_type=self.producer.config.compress_type,
                )
                self.client.post_log_store_logs_v2(batch.project, batch.logstore, request)
        except Exception as err:  # noqa: BLE001 - every failure goes through retry handling
            self._on_failure(batch, err, begin_ms)
        else:
            self._on_success(batch, begin_ms)

    def _on_success(self, batch: ProducerBatch, begin_ms: int) -> None:
        self.logger.debug("sendToServer succeeded, executing success callbacks")
        if batch.attempt_count < batch.max_reserved_attempts:
            now = _now_ms()
            batch.result.add_attempt(Attempt(True, "", "", "", now, now - begin_ms))
        batch.result.successful = True
        self.producer.add_pending_size(-batch.total_data_size)
        for callback in batch.callbacks:
            callback.success(batch.result)

    def _on_failure(self, batch: ProducerBatch, err: BaseException, begin_ms: int) -> None:
        if self.retry_queue_shutdown.is_set():
            for callback in batch.callbacks:
                self._record_error(batch, err, False, begin_ms)
                callback.fail(batch.result)
            return
        self.logger.info("sendToServer failed", extra={"fields": {"error": str(err)}})
        if isinstance(err, LogServiceError) and err.http_code in self.no_retry_status_codes:
            self._record_error(batch, err, False, begin_ms)
            self._execute_failed_callbacks(batch)
            return
        if batch.attempt_count < batch.max_retry_times:
            self._record_error(batch, err, True, begin_ms)
            wait_ms = batch.base_retry_backoff_ms * int(2 ** (batch.attempt_count - 1))
            wait_ms = min(wait_ms, batch.max_retry_interval_ms)
            batch.next_retry_ms = _now_ms() + wait_ms
            self.logger.debug("Submit to the retry queue after meeting the retry criteria")
            self.retry_queue.push(batch)
        else:
            self._execute_failed_callbacks(batch)

    def _record_error(
        self, batch: ProducerBatch, err: BaseException, retrying: bool, begin_ms: int
    ) -> None:
        if batch.attempt_count < batch.max_reserved_attempts:
            code, message, request_id = _error_details(err)
            if retrying:
                self.logger.info(
                    "sendToServer failed,start retrying",
                    extra={"fields": {
                        "retry times": batch.attempt_count,
                        "requestId": request_id,
                        "error code": code,
                        "error message": message,
                    }},
                )
            now = _now_ms()
            batch.result.add_attempt(
                Attempt(False, request_id, code, message, now, now - begin_ms)
            )
        batch.result.successful = False
        batch.attempt_count += 1

    def _execute_failed_callbacks(self, batch: ProducerBatch) -> None:
        self.logger.info("sendToServer failed,Execute failed callback function")
        self.producer.add_pending_size(-batch.total_data_size)
        for callback in batch.callbacks:
            callback.fail(batch.result)

    def start_send_task(self) -> None:
        """Claim a sending slot, waiting while all of them are busy."""
        with self._count_lock:
            self.task_count += 1
        self._slots.acquire()

    def close_send_task(self) -> None:
        """Give back a sending slot."""
        self._slots.release()
        with self._count_lock:
            self.task_count -= 1