# slslog

`slslog` holds the client-side pieces for writing logs to, and reading query
results from, a hosted log service:

- **Data models** (`slslog.model`): log records and groups, query requests and
  responses, index configuration, the errors the service reports, and the
  cursor encoding used by pull responses.
- **Resource descriptions** (`slslog.resources`): machine groups, sorted sub
  stores with their validation rules, and OSS shipper configuration with JSON
  round trips.
- **Retry helpers** (`slslog.retry`): exponential back-off and retry loops
  bounded by a timeout or a number of attempts.
- **Logging setup** (`slslog.logsetup`): builds the package's internal logger
  from string settings or from `SLSLOG_*` environment variables.
- **Producer** (`slslog.producer`): gathers logs into batches per project,
  logstore, topic, source and shard hash, sends them from background threads,
  retries failed sends with back-off and reports each outcome to callbacks.

Only the Python standard library is used; Python 3.10 or later is required.

## Installation

Install the project directory with your usual installer; the `test` extra adds
pytest.

## Building log records

```python
from slslog.producer.utils import generate_log, get_log_size

log = generate_log(1554880724, {"name": "sls"})
get_log_size(log)  # 4 bytes for the time plus the UTF-8 length of keys and values
```

`get_log_list_size` sums the sizes of several logs, and `get_time_ms` turns a
nanosecond timestamp into milliseconds.

## Shard hashes

With `adjust_shard_hash` on, the producer maps each shard hash onto one of
`buckets` ranges. The mapping is available on its own:

```python
from slslog.producer.adjusthash import adjust_hash, bit_count

adjust_hash("127.0.0.1", 64)   # 'f4000000000000000000000000000000'
bit_count(256)                 # 8
```

`bit_count` raises `ValueError` unless its argument is a positive power of two.
`to_md5`, `md5_to_bin`, `fill_zero` and `adjust_hash_old` are the helpers of an
earlier form of the mapping.

## Cursors

```python
from slslog.model import encode_cursor, decode_cursor

encode_cursor(0)        # 'MA=='
decode_cursor("MA==")   # 0
```

`decode_cursor` raises `ValueError` for a malformed cursor. After a pull,
`LogGroupList.add_cursor_if_possible(read_last_cursor)` gives every `LogGroup`
its own `cursor`, counting back from the last cursor read.

## Queries and indexes

`GetLogRequest.to_url_params()` and `to_json()` render a query request, and
`PullLogRequest.to_url_params()` a pull request. `GetLogsV3Response.from_dict`
reads a v3 query response; `GetLogsV3ResponseMeta.construct_query_info()`
renders its metadata as the compact query-information JSON of the older format,
for example `{"isAccurate":1}` for metadata that only says the result is
accurate. `GetLogsResponse.get_keys()` reads the keys back from that JSON.

```python
from slslog.model import create_default_index, Index

index = create_default_index()
text = index.to_json()
same = Index.from_dict(index.to_dict())
```

## Resources

`new_sub_store(name, ttl, sorted_key_count, time_index, keys)` returns a
`SubStore`, or `None` when the definition breaks the rules checked by
`SubStore.is_valid()`. `Shipper.from_json` / `Shipper.from_dict` parse a
shipper whose target type is `"oss"` into an `OSSShipperConfig` and raise
`ValueError` for any other target; `to_json` / `to_dict` write it back.

## Retrying

```python
from slslog.retry import retry, retry_with_attempt

value = retry(fetch, timeout=30)            # re-runs fetch until it stops raising
retry_with_attempt(step, max_attempt=5)     # step() returns (need_retry, error)
```

`retry_with_backoff` and `retry_with_condition` take an explicit
`ExponentialBackOff`. When the timeout passes, `RetryTimeoutError` is raised;
otherwise the last error of the operation is re-raised.

## Logging setup

`generate_inner_logger(log_file_name, is_json_type, log_max_size,
log_file_backup_count, allow_log_level)` builds a `logging.Logger`.
`default_logger()` does the same from `SLSLOG_LOG_FILE_NAME`,
`SLSLOG_IS_JSON_TYPE`, `SLSLOG_LOG_MAX_SIZE`, `SLSLOG_LOG_FILE_BACKUP_COUNT` and
`SLSLOG_ALLOW_LOG_LEVEL`. With no file name every record goes to standard output
in logfmt. Records are otherwise written as logfmt or JSON, and levels below
`allow_log_level` (`debug`, `info`, `warn`, `error`; default `info`) are dropped.

## The producer

`slslog.producer.config.get_default_producer_config()` returns a
`ProducerConfig` with a 100 MiB total buffer, 512 KiB and 4096 logs per batch,
2000 ms linger, 60 s maximum blocking, 10 retries, 100 ms base and 50 s maximum
retry back-off, shard-hash adjustment over 64 buckets, and no retry for HTTP 400
and 404. `validate_producer_config(config, logger)` resets out-of-range values
in place.

```python
from slslog.producer.config import get_default_producer_config
from slslog.producer.producer import Producer
from slslog.producer.utils import generate_log

with Producer(get_default_producer_config(), client) as producer:
    producer.send_log("project", "logstore", "topic", "127.0.0.1",
                      generate_log(1554880724, {"content": "test"}))
```

`Producer(config, client, logger=None)` offers:

- `start()` starts the mover and the sending thread pool.
- `send_log`, `send_log_list`, `hash_send_log` and `hash_send_log_list` queue
  logs, each with an optional callback. They raise `ProducerTimeoutError` when
  the buffer stays full longer than `max_block_sec` allows, and `RuntimeError`
  once the producer is closing.
- `close(timeout_ms)` stops and waits at most `timeout_ms` for buffered data,
  raising `ProducerTimeoutError` if that runs out.
- `safe_close()` stops and waits until every batch has been sent or has failed.
  Using the producer as a context manager calls `start()` and `safe_close()`.

Callbacks subclass `slslog.producer.batch.CallBack` and define
`success(result)` and `fail(result)`. The `Result` gives `is_successful()`,
`reserved_attempts()`, `error_code()`, `error_message()`, `request_id()`,
`time_stamp_ms()` and `last_attempt_cost_ms()`.

## What the package does not do

There is no HTTP client, request signing or compression here. The producer
sends through the `client` object you pass in, which must provide
`post_log_store_logs_v2(project, logstore, request)` and
`put_logs_with_metric_store_url(project, logstore, log_group)`, and may provide
`set_region`, `set_auth_version`, `set_http_client` and `set_user_agent`. A
failure raised as `LogServiceError` with an `http_code` in
`no_retry_status_code_list` is not retried. The package has no command-line
tool.