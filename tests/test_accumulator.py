import logging

import pytest

from slslog.model import Log, LogContent
from slslog.producer.accumulator import LogAccumulator
from slslog.producer.batch import CallBack
from slslog.producer.config import get_default_producer_config
from slslog.producer.io_worker import IoWorker
from slslog.producer.retry_queue import RetryQueue
from slslog.producer.thread_pool import IoThreadPool
from slslog.producer.utils import get_log_size


class FakeClient:
    def post_log_store_logs_v2(self, project, logstore, request):
        pass


class FakeProducer:
    def __init__(self, config):
        self.config = config
        self.pending = 0

    def add_pending_size(self, delta):
        self.pending += delta


class Recorder(CallBack):
    def success(self, result):
        pass

    def fail(self, result):
        pass


def _make(**overrides):
    config = get_default_producer_config()
    for name, value in overrides.items():
        setattr(config, name, value)
    producer = FakeProducer(config)
    logger = logging.getLogger("test-accumulator")
    worker = IoWorker(FakeClient(), RetryQueue(), logger, 2, [], producer)
    pool = IoThreadPool(worker, logger)
    return LogAccumulator(config, worker, logger, pool, producer), pool, producer


def _log(value="logtest"):
    return Log(time=1554880724, contents=[LogContent(key="content", value=value)])


ARGS = ("project", "logstore", "hash", "topic", "source")


def test_key_joins_fields_with_delimiter():
    acc, _, _ = _make()
    assert acc.key_for("p", "l", "t", "h", "s") == "p|l|t|h|s"


def test_first_log_creates_batch():
    acc, pool, _ = _make()
    acc.add_log_to_producer_batch(*ARGS, _log(), None)
    key = acc.key_for("project", "logstore", "topic", "hash", "source")
    batch = acc.log_group_data[key]
    assert batch.log_count() == 1
    assert batch.shard_hash == "hash"
    assert not pool.has_task()


def test_second_log_is_appended_and_counted():
    acc, pool, producer = _make()
    second = _log("more")
    callback = Recorder()
    acc.add_log_to_producer_batch(*ARGS, _log(), None)
    acc.add_log_to_producer_batch(*ARGS, second, callback)
    (batch,) = acc.log_group_data.values()
    assert batch.log_count() == 2
    assert batch.callbacks == [callback]
    assert producer.pending == get_log_size(second)
    assert not pool.has_task()


def test_log_list_is_accepted():
    acc, _, _ = _make()
    acc.add_log_to_producer_batch(*ARGS, [_log("a"), _log("b")], None)
    acc.add_log_to_producer_batch(*ARGS, [_log("c")], None)
    (batch,) = acc.log_group_data.values()
    assert [log.contents[0].value for log in batch.log_group.logs] == ["a", "b", "c"]


def test_count_limit_sends_and_starts_new_batch():
    acc, pool, _ = _make(max_batch_count=1)
    acc.add_log_to_producer_batch(*ARGS, _log("a"), None)
    acc.add_log_to_producer_batch(*ARGS, _log("b"), None)
    sent = pool.pop_task()
    assert sent.log_count() == 1
    assert sent.log_group.logs[0].contents[0].value == "a"
    (current,) = acc.log_group_data.values()
    assert current is not sent
    assert current.log_group.logs[0].contents[0].value == "b"


def test_size_limit_adds_then_sends():
    acc, pool, _ = _make(max_batch_size=1)
    acc.add_log_to_producer_batch(*ARGS, _log("a"), None)
    acc.add_log_to_producer_batch(*ARGS, _log("b"), None)
    sent = pool.pop_task()
    assert sent.log_count() == 2
    assert acc.log_group_data == {}


def test_different_destinations_get_different_batches():
    acc, _, _ = _make()
    acc.add_log_to_producer_batch("project", "logstore", "", "topic", "source", _log(), None)
    acc.add_log_to_producer_batch("project", "other", "", "topic", "source", _log(), None)
    assert len(acc.log_group_data) == 2


def test_invalid_log_type_raises():
    acc, _, _ = _make()
    with pytest.raises(TypeError, match="Invalid logType"):
        acc.add_log_to_producer_batch(*ARGS, "not a log", None)
    assert acc.log_group_data == {}


def test_shut_down_accumulator_rejects_logs():
    acc, _, _ = _make()
    acc.shutdown.set()
    with pytest.raises(RuntimeError, match="shut down"):
        acc.add_log_to_producer_batch(*ARGS, _log(), None)
    assert acc.log_group_data == {}