import logging

from slslog.model import Log, LogContent, LogServiceError, PostLogStoreLogsRequest
from slslog.producer.batch import CallBack, ProducerBatch
from slslog.producer.config import get_default_producer_config
from slslog.producer.io_worker import IoWorker
from slslog.producer.retry_queue import RetryQueue
from slslog.producer.utils import get_time_ms

import time


class FakeClient:
    def __init__(self, error=None):
        self.error = error
        self.posted = []
        self.metric = []

    def post_log_store_logs_v2(self, project, logstore, request):
        self.posted.append((project, logstore, request))
        if self.error is not None:
            raise self.error

    def put_logs_with_metric_store_url(self, project, logstore, log_group):
        self.metric.append((project, logstore, log_group))
        if self.error is not None:
            raise self.error


class FakeProducer:
    def __init__(self, config):
        self.config = config
        self.pending = 0

    def add_pending_size(self, delta):
        self.pending += delta


class Recorder(CallBack):
    def __init__(self):
        self.successes = []
        self.failures = []

    def success(self, result):
        self.successes.append(result)

    def fail(self, result):
        self.failures.append(result)


def _log():
    return Log(time=1554880724, contents=[LogContent(key="name", value="sls")])


def _setup(error=None, **overrides):
    config = get_default_producer_config()
    for name, value in overrides.items():
        setattr(config, name, value)
    producer = FakeProducer(config)
    client = FakeClient(error)
    queue = RetryQueue()
    worker = IoWorker(client, queue, logging.getLogger("test-io-worker"), 2,
                      config.no_retry_status_code_list, producer)
    recorder = Recorder()
    batch = ProducerBatch(_log(), recorder, "project", "logstore", "topic", "source", "hash", config)
    return worker, client, queue, producer, recorder, batch


def test_success_records_attempt_and_calls_back():
    worker, client, queue, producer, recorder, batch = _setup()
    worker.send_to_server(batch)
    project, logstore, request = client.posted[0]
    assert (project, logstore) == ("project", "logstore")
    assert isinstance(request, PostLogStoreLogsRequest)
    assert request.hash_key == "hash"
    assert request.log_group is batch.log_group
    assert batch.result.is_successful()
    assert [a.success for a in batch.result.reserved_attempts()] == [True]
    assert recorder.successes == [batch.result]
    assert producer.pending == -batch.total_data_size
    assert len(queue) == 0


def test_metric_store_url_is_used():
    worker, client, _, _, recorder, batch = _setup(use_metric_store_url=True)
    worker.send_to_server(batch)
    assert client.posted == []
    assert client.metric[0][2] is batch.log_group
    assert len(recorder.successes) == 1


def test_no_retry_status_fails_immediately():
    error = LogServiceError(code="InvalidParam", message="bad", request_id="rid", http_code=400)
    worker, _, queue, producer, recorder, batch = _setup(error)
    worker.send_to_server(batch)
    assert recorder.failures == [batch.result]
    assert batch.result.error_code() == "InvalidParam"
    assert batch.result.error_message() == "bad"
    assert batch.result.request_id() == "rid"
    assert batch.attempt_count == 1
    assert len(queue) == 0
    assert producer.pending == -batch.total_data_size


def test_server_error_goes_to_retry_queue():
    error = LogServiceError(code="ServerBusy", message="busy", http_code=500)
    worker, _, queue, producer, recorder, batch = _setup(error)
    before = get_time_ms(time.time_ns())
    worker.send_to_server(batch)
    after = get_time_ms(time.time_ns())
    assert recorder.failures == []
    assert batch.attempt_count == 1
    assert before + batch.base_retry_backoff_ms <= batch.next_retry_ms <= after + batch.base_retry_backoff_ms
    assert queue.get_retry_batch(True) == [batch]
    assert producer.pending == 0


def test_retry_wait_is_capped():
    error = LogServiceError(code="ServerBusy", message="busy", http_code=500)
    worker, _, _, _, _, batch = _setup(error, max_retry_backoff_ms=1)
    batch.attempt_count = 5
    before = get_time_ms(time.time_ns())
    worker.send_to_server(batch)
    assert batch.next_retry_ms <= get_time_ms(time.time_ns()) + 1
    assert batch.next_retry_ms >= before + 1


def test_exhausted_retries_fail_without_new_attempt():
    error = LogServiceError(code="ServerBusy", message="busy", http_code=500)
    worker, _, queue, _, recorder, batch = _setup(error, retries=0)
    worker.send_to_server(batch)
    assert recorder.failures == [batch.result]
    assert batch.result.reserved_attempts() == []
    assert len(queue) == 0


def test_shutdown_fails_without_retry():
    error = LogServiceError(code="ServerBusy", message="busy", http_code=500)
    worker, _, queue, _, recorder, batch = _setup(error)
    worker.retry_queue_shutdown.set()
    worker.send_to_server(batch)
    assert recorder.failures == [batch.result]
    assert batch.result.error_code() == "ServerBusy"
    assert not batch.result.is_successful()
    assert len(queue) == 0


def test_plain_exception_is_recorded_by_message():
    worker, _, queue, _, _, batch = _setup(OSError("connection refused"))
    worker.send_to_server(batch)
    assert batch.result.error_message() == "connection refused"
    assert batch.result.error_code() == ""
    assert queue.get_retry_batch(True) == [batch]


def test_no_reserved_attempts_kept():
    worker, _, _, _, recorder, batch = _setup(max_reserved_attempts=0)
    worker.send_to_server(batch)
    assert batch.result.reserved_attempts() == []
    assert recorder.successes[0].is_successful()


def test_task_count_follows_start_and_close():
    worker, *_ = _setup()
    worker.start_send_task()
    worker.start_send_task()
    assert worker.task_count == 2
    worker.close_send_task()
    worker.close_send_task()
    assert worker.task_count == 0