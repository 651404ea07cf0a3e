"""Queue of batches ready to send, drained by one thread per batch."""

from __future__ import annotations

import logging
import threading
import time
from collections import deque

from slslog.producer.batch import ProducerBatch
from slslog.producer.io_worker import IoWorker

_IDLE_SLEEP = 0.1


class IoThreadPool:
    """Hands queued batches to the io worker until shut down and empty."""

    def __init__(self, io_worker: IoWorker, logger: logging.Logger):
        self.io_worker = io_worker
        self.logger = logger
        self.shutdown = threading.Event()
        self._queue: deque[ProducerBatch] = deque()
        self._lock = threading.Lock()

    def add_task(self, batch: ProducerBatch) -> None:
        with self._lock:
            self._queue.append(batch)

    def pop_task(self) -> ProducerBatch | None:
        with self._lock:
            return self._queue.popleft() if self._queue else None

    def has_task(self) -> bool:
        with self._lock:
            return bool(self._queue)

    def _send(self, batch: ProducerBatch) -> None:
        try:
            self.io_worker.send_to_server(batch)
        except Exception:  # noqa: BLE001 - a failing callback must not kill the sender
            self.logger.exception("sending a batch raised")
        finally:
            self.io_worker.close_send_task()

    def run(self) -> None:
        """Send queued batches; return once shut down, drained and every send finished."""
        senders: list[threading.Thread] = []
        while True:
            task = self.pop_task()
            if task is not None:
                self.io_worker.start_send_task()
                sender = threading.Thread(target=self._send, args=(task,), daemon=True)
                sender.start()
                senders = [thread for thread in senders if thread.is_alive()]
                senders.append(sender)
            elif not self.shutdown.is_set():
                time.sleep(_IDLE_SLEEP)
            else:
                self.logger.info("All cache tasks in the thread pool have been successfully sent")
                break
        for sender in senders:
            sender.join()