import logging

from slslog.producer.batch import ProducerBatch
from slslog.producer.config import get_default_producer_config
from slslog.producer.producer import Producer
from slslog.producer.utils import generate_log


class FakeClient:
    def __init__(self):
        self.requests = []

    def post_log_store_logs_v2(self, project, logstore, request):
        self.requests.append((project, logstore, request))

    def put_logs_with_metric_store_url(self, project, logstore, log_group):
        self.requests.append((project, logstore, log_group))


def make_producer():
    config = get_default_producer_config()
    config.adjust_shard_hash = False
    return Producer(config, FakeClient(), logging.getLogger("test-mover"))


def add_log(producer, source="127.0.0.1"):
    log = generate_log(1554880724, {"name": "sls"})
    producer.accumulator.add_log_to_producer_batch(
        "project", "logstore", "", "topic", source, log, None
    )
    key = producer.accumulator.key_for("project", "logstore", "topic", "", source)
    return key


def test_flush_expired_with_no_batches_returns_linger():
    producer = make_producer()
    assert producer.mover.flush_expired() == producer.config.linger_ms


def test_flush_expired_keeps_fresh_batch():
    producer = make_producer()
    key = add_log(producer)
    sleep_ms = producer.mover.flush_expired()
    assert 0 < sleep_ms <= producer.config.linger_ms
    assert key in producer.accumulator.log_group_data
    assert not producer.thread_pool.has_task()


def test_flush_expired_sends_old_batch():
    producer = make_producer()
    key = add_log(producer)
    batch = producer.accumulator.log_group_data[key]
    batch.create_time_ms = 0
    producer.mover.flush_expired()
    assert key not in producer.accumulator.log_group_data
    assert producer.thread_pool.pop_task() is batch
    assert producer.thread_pool.pop_task() is None


def test_run_after_shutdown_drains_batches_and_retries():
    producer = make_producer()
    key = add_log(producer)
    pending = producer.accumulator.log_group_data[key]
    retry_batch = ProducerBatch(
        generate_log(1554880724, {"a": "b"}),
        None,
        "project",
        "logstore",
        "topic",
        "other",
        "",
        producer.config,
    )
    retry_batch.next_retry_ms = 2**62
    producer.retry_queue.push(retry_batch)

    producer.mover.shutdown.set()
    producer.mover.run()

    sent = [producer.thread_pool.pop_task(), producer.thread_pool.pop_task()]
    assert sent == [pending, retry_batch]
    assert producer.accumulator.log_group_data == {}
    assert len(producer.retry_queue) == 0