"""Batches waiting for their next retry, ordered by when it is due."""

from __future__ import annotations

import heapq
import itertools
import logging
import threading
import time

from slslog.producer.batch import ProducerBatch
from slslog.producer.utils import get_time_ms

_log = logging.getLogger(__name__)


class RetryQueue:
    def __init__(self) -> None:
        self._heap: list[tuple[int, int, ProducerBatch]] = []
        self._order = itertools.count()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._heap)

    def push(self, batch: ProducerBatch | None) -> None:
        """Queue ``batch`` for retry; None is ignored."""
        _log.debug("Send to retry queue")
        if batch is None:
            return
        with self._lock:
            heapq.heappush(self._heap, (batch.next_retry_ms, next(self._order), batch))

    def get_retry_batch(self, shutting_down: bool) -> list[ProducerBatch]:
        """Take the batches whose retry time has passed, or all of them when shutting down."""
        ready: list[ProducerBatch] = []
        with self._lock:
            while self._heap and (
                shutting_down or self._heap[0][0] < get_time_ms(time.time_ns())
            ):
                ready.append(heapq.heappop(self._heap)[2])
        return ready