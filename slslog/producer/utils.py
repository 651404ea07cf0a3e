"""Helpers for building logs and measuring their size."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from slslog.model import Log, LogContent


def generate_log(log_time: int, add_log_map: Mapping[str, str]) -> Log:
    """Build a log at ``log_time`` with one content per mapping item."""
    return Log(
        time=log_time,
        contents=[LogContent(key=key, value=value) for key, value in add_log_map.items()],
    )


def get_time_ms(t: int) -> int:
    """Convert nanoseconds to milliseconds, truncating toward zero."""
    millis = abs(t) // 1_000_000
    return millis if t >= 0 else -millis


def get_log_size(log: Log) -> int:
    """Approximate size of a log: four bytes of time plus its keys and values."""
    return 4 + sum(
        len(content.key.encode("utf-8")) + len(content.value.encode("utf-8"))
        for content in log.contents
    )


def get_log_list_size(log_list: Iterable[Log]) -> int:
    return sum(get_log_size(log) for log in log_list)