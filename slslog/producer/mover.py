"""Moves batches that have waited long enough, and due retries, to the thread pool."""

from __future__ import annotations

import logging
import threading
import time

from slslog.producer.accumulator import LogAccumulator
from slslog.producer.config import ProducerConfig
from slslog.producer.io_worker import IoWorker
from slslog.producer.retry_queue import RetryQueue
from slslog.producer.thread_pool import IoThreadPool
from slslog.producer.utils import get_time_ms


class Mover:
    """Background loop that sends lingering batches and re-queues due retries."""

    def __init__(
        self,
        log_accumulator: LogAccumulator,
        retry_queue: RetryQueue,
        io_worker: IoWorker,
        logger: logging.Logger,
        thread_pool: IoThreadPool,
        config: ProducerConfig,
    ):
        self.log_accumulator = log_accumulator
        self.retry_queue = retry_queue
        self.io_worker = io_worker
        self.logger = logger
        self.thread_pool = thread_pool
        self.config = config
        self.shutdown = threading.Event()

    def flush_expired(self) -> int:
        """Send every batch older than the linger time; return how long to sleep, in ms."""
        linger_ms = self.config.linger_ms
        sleep_ms = linger_ms
        now_ms = get_time_ms(time.time_ns())
        accumulator = self.log_accumulator
        with accumulator.lock:
            if not accumulator.log_group_data:
                self.logger.debug(
                    "No data time in map waiting for user configured RemainMs parameter values"
                )
                return linger_ms
            for key, batch in list(accumulator.log_group_data.items()):
                time_left = batch.create_time_ms + linger_ms - now_ms
                if time_left <= 0:
                    self.logger.debug("mover thread sends producerBatch to IoWorker")
                    self.thread_pool.add_task(batch)
                    del accumulator.log_group_data[key]
                else:
                    sleep_ms = min(sleep_ms, time_left)
        return sleep_ms

    def run(self) -> None:
        """Loop until shut down, then hand every remaining batch to the thread pool."""
        while not self.shutdown.is_set():
            sleep_ms = self.flush_expired()
            retries = self.retry_queue.get_retry_batch(self.shutdown.is_set())
            if retries:
                for batch in retries:
                    self.thread_pool.add_task(batch)
            else:
                self.shutdown.wait(sleep_ms / 1000)

        accumulator = self.log_accumulator
        with accumulator.lock:
            for batch in accumulator.log_group_data.values():
                self.thread_pool.add_task(batch)
            accumulator.log_group_data.clear()

        for batch in self.retry_queue.get_retry_batch(self.shutdown.is_set()):
            self.thread_pool.add_task(batch)
        self.logger.info("mover thread closure complete")