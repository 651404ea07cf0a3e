"""A group of logs waiting to be sent together."""

from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Iterable

from slslog.model import Log, LogGroup, LogTag
from slslog.producer.config import ProducerConfig
from slslog.producer.result import Result
from slslog.producer.utils import get_log_list_size, get_time_ms


class CallBack(ABC):
    """Told the outcome of each batch a log was sent in."""

    @abstractmethod
    def success(self, result: Result) -> None:
        """Called once the batch has been delivered."""

    @abstractmethod
    def fail(self, result: Result) -> None:
        """Called once the batch has finally failed."""


def _as_log_list(log_data: Log | Iterable[Log]) -> list[Log]:
    if isinstance(log_data, Log):
        return [log_data]
    if isinstance(log_data, (list, tuple)) and all(isinstance(log, Log) for log in log_data):
        return list(log_data)
    raise TypeError("Invalid logType")


def _estimated_size(group: LogGroup) -> int:
    size = get_log_list_size(group.logs)
    size += sum(len(tag.key.encode("utf-8")) + len(tag.value.encode("utf-8")) for tag in group.log_tags)
    size += len((group.topic or "").encode("utf-8")) + len((group.source or "").encode("utf-8"))
    return size


class ProducerBatch:
    """Logs for one project, logstore, topic, source and shard hash."""

    def __init__(
        self,
        log_data: Log | Iterable[Log],
        callback: CallBack | None,
        project: str,
        logstore: str,
        topic: str,
        source: str,
        shard_hash: str,
        config: ProducerConfig,
    ):
        tags = list(config.log_tags)
        if config.generate_pack_id:
            tags.append(LogTag(key="__pack_id__", value=config.next_pack_id(source)))
        self.log_group = LogGroup(
            logs=_as_log_list(log_data), topic=topic, source=source, log_tags=tags
        )
        self._lock = threading.RLock()
        self.project = project
        self.logstore = logstore
        self.shard_hash: str | None = shard_hash or None
        self.attempt_count = 0
        self.base_retry_backoff_ms = config.base_retry_backoff_ms
        self.max_retry_interval_ms = config.max_retry_backoff_ms
        self.max_retry_times = config.retries
        self.max_reserved_attempts = config.max_reserved_attempts
        self.use_metric_store_url = config.use_metric_store_url
        self.next_retry_ms = 0
        self.create_time_ms = get_time_ms(time.time_ns())
        self.result = Result()
        self.callbacks: list[CallBack] = [callback] if callback is not None else []
        self.total_data_size = _estimated_size(self.log_group)

    def log_count(self) -> int:
        with self._lock:
            return len(self.log_group.logs)

    def add_logs(self, logs: Log | Iterable[Log]) -> None:
        new_logs = _as_log_list(logs)
        with self._lock:
            self.log_group.logs.extend(new_logs)

    def add_callback(self, callback: CallBack) -> None:
        with self._lock:
            self.callbacks.append(callback)