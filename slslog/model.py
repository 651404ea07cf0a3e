"""Request, response and index models of the log service."""

from __future__ import annotations

import base64
import binascii
import json
import logging
from dataclasses import dataclass, field
from typing import Any

_log = logging.getLogger(__name__)

CHARGE_BY_FUNCTION = "ChargeByFunction"
CHARGE_BY_DATA_INGEST = "ChargeByDataIngest"

STORE_VIEW_STORE_TYPE_LOGSTORE = "logstore"
STORE_VIEW_STORE_TYPE_METRICSTORE = "metricstore"

_HTML_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def _dumps(obj: Any) -> str:
    """Serialise compactly, escaping the characters the service's encoder escapes."""
    text = json.dumps(obj, separators=(",", ":"), ensure_ascii=False)
    for char, escaped in _HTML_ESCAPES.items():
        text = text.replace(char, escaped)
    return text


def _bool_str(value: bool) -> str:
    return "true" if value else "false"


class LogServiceError(Exception):
    """An error reported by the log service."""

    def __init__(self, code: str = "", message: str = "", request_id: str = "", http_code: int = 0):
        super().__init__(f"{code}: {message}")
        self.code = code
        self.message = message
        self.request_id = request_id
        self.http_code = http_code

    @classmethod
    def from_dict(cls, data: dict[str, Any], http_code: int = 0) -> "LogServiceError":
        return cls(
            code=data.get("errorCode", ""),
            message=data.get("errorMessage", ""),
            request_id=data.get("requestID", ""),
            http_code=http_code,
        )


class BadResponseError(Exception):
    """A response from the service that could not be understood."""

    def __init__(self, body: str, header: dict[str, Any] | None = None, http_code: int = 0):
        super().__init__(f"bad response (HTTP {http_code}): {body}")
        self.body = body
        self.header = dict(header or {})
        self.http_code = http_code


@dataclass
class LogContent:
    key: str
    value: str


@dataclass
class Log:
    time: int
    contents: list[LogContent] = field(default_factory=list)
    time_ns: int | None = None


@dataclass
class LogTag:
    key: str
    value: str


@dataclass
class LogGroup:
    """A group of logs; ``cursor`` is empty when it is unknown."""

    logs: list[Log] = field(default_factory=list)
    topic: str | None = None
    source: str | None = None
    log_tags: list[LogTag] = field(default_factory=list)
    cursor: str = ""


def encode_cursor(cursor: int) -> str:
    """Encode a numeric cursor in the service's base64 form."""
    return base64.b64encode(str(cursor).encode("ascii")).decode("ascii")


def decode_cursor(cursor: str) -> int:
    """Decode a base64 cursor into its number; raises ValueError if malformed."""
    try:
        raw = base64.b64decode(cursor.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise ValueError(f"invalid cursor {cursor!r}") from exc
    return int(raw.decode("ascii"))


@dataclass
class LogGroupList:
    log_groups: list[LogGroup] = field(default_factory=list)

    def add_cursor_if_possible(self, read_last_cursor: str) -> None:
        """Give each group its cursor, counting back from the last one read."""
        try:
            last = int(read_last_cursor)
        except ValueError:
            _log.debug("decode readLastCursor failed: %r", read_last_cursor)
            raise
        cursor = last - len(self.log_groups) + 1
        for offset, group in enumerate(self.log_groups):
            group.cursor = encode_cursor(cursor + offset)


@dataclass
class GetLogRequest:
    from_time: int = 0
    to_time: int = 0
    topic: str = ""
    lines: int = 0
    offset: int = 0
    reverse: bool = False
    query: str = ""
    power_sql: bool = False
    from_ns_part: int = 0
    to_ns_part: int = 0
    need_highlight: bool = False
    is_accurate: bool = False

    def to_url_params(self) -> dict[str, str]:
        return {
            "type": "log",
            "from": str(self.from_time),
            "to": str(self.to_time),
            "topic": self.topic,
            "line": str(self.lines),
            "offset": str(self.offset),
            "reverse": _bool_str(self.reverse),
            "powerSql": _bool_str(self.power_sql),
            "query": self.query,
            "fromNs": str(self.from_ns_part),
            "toNs": str(self.to_ns_part),
            "highlight": _bool_str(self.need_highlight),
            "accurate": _bool_str(self.is_accurate),
        }

    def to_json(self) -> str:
        return _dumps({
            "from": self.from_time,
            "to": self.to_time,
            "topic": self.topic,
            "line": self.lines,
            "offset": self.offset,
            "reverse": self.reverse,
            "query": self.query,
            "powerSql": self.power_sql,
            "fromNs": self.from_ns_part,
            "toNs": self.to_ns_part,
            "highlight": self.need_highlight,
            "accurate": self.is_accurate,
        })


@dataclass
class PullLogRequest:
    project: str = ""
    logstore: str = ""
    shard_id: int = 0
    cursor: str = ""
    end_cursor: str = ""
    log_group_max_count: int = 0
    query: str = ""
    pull_mode: str = ""
    query_id: str = ""
    compress_type: int = 0

    def to_url_params(self) -> dict[str, str]:
        params = {
            "type": "logs",
            "cursor": self.cursor,
            "count": str(self.log_group_max_count),
        }
        if self.end_cursor:
            params["end_cursor"] = self.end_cursor
        if self.query:
            params["query"] = self.query
            params["pullMode"] = "scan_on_stream"
            if self.query_id:
                params["queryId"] = self.query_id
        return params


@dataclass
class PullLogMeta:
    next_cursor: str = ""
    netflow: int = 0
    raw_size: int = 0
    count: int = 0
    read_last_cursor: str = ""
    raw_size_before_query: int = 0
    lines: int = 0
    lines_before_query: int = 0
    failed_lines: int = 0
    data_count_before_query: int = 0


@dataclass
class SingleHistogram:
    progress: str = ""
    count: int = 0
    from_time: int = 0
    to_time: int = 0


@dataclass
class GetHistogramsResponse:
    progress: str = ""
    count: int = 0
    histograms: list[SingleHistogram] = field(default_factory=list)

    def is_complete(self) -> bool:
        return self.progress.lower() == "complete"


@dataclass
class GetLogsResponse:
    progress: str = ""
    count: int = 0
    logs: list[dict[str, str]] | None = None
    contents: str = ""
    has_sql: bool = False
    header: dict[str, list[str]] = field(default_factory=dict)

    def is_complete(self) -> bool:
        return self.progress.lower() == "complete"

    def get_keys(self) -> list[str]:
        """Return the keys named in the query information."""
        content = json.loads(self.contents)
        if not isinstance(content, dict):
            raise ValueError("query information is not a JSON object")
        keys = content.get("keys") or []
        if not all(isinstance(key, str) for key in keys):
            raise TypeError("query information keys must be strings")
        return list(keys)


@dataclass
class MetaTerm:
    key: str = ""
    term: str = ""


@dataclass
class PhraseQueryInfoV2:
    scan_all: str = ""
    begin_offset: str = ""
    end_offset: str = ""
    end_time: str = ""

    def to_dict(self) -> dict[str, str]:
        items = {
            "scanAll": self.scan_all,
            "beginOffset": self.begin_offset,
            "endOffset": self.end_offset,
            "endTime": self.end_time,
        }
        return {key: value for key, value in items.items() if value}


def _optional_str(value: int | None) -> str:
    return "" if value is None else str(value)


@dataclass
class PhraseQueryInfoV3:
    scan_all: bool | None = None
    begin_offset: int | None = None
    end_offset: int | None = None
    end_time: int | None = None

    def to_v2(self) -> PhraseQueryInfoV2:
        return PhraseQueryInfoV2(
            scan_all="" if self.scan_all is None else ("1" if self.scan_all else "0"),
            begin_offset=_optional_str(self.begin_offset),
            end_offset=_optional_str(self.end_offset),
            end_time=_optional_str(self.end_time),
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PhraseQueryInfoV3":
        return cls(
            scan_all=data.get("scanAll"),
            begin_offset=data.get("beginOffset"),
            end_offset=data.get("endOffset"),
            end_time=data.get("endTime"),
        )


@dataclass
class GetLogsV3ResponseMeta:
    progress: str = ""
    agg_query: str = ""
    where_query: str = ""
    has_sql: bool = False
    processed_rows: int = 0
    elapsed_millisecond: int = 0
    cpu_sec: float = 0.0
    cpu_cores: float = 0.0
    limited: int = 0
    count: int = 0
    processed_bytes: int = 0
    telemetry_type: str = ""
    power_sql: bool = False
    inserted_sql: str = ""
    keys: list[str] | None = None
    terms: list[MetaTerm] | None = None
    marker: str | None = None
    mode: int | None = None
    phrase_query_info: PhraseQueryInfoV3 | None = None
    shard: int | None = None
    scan_bytes: int | None = None
    is_accurate: bool | None = None
    column_types: list[str] | None = None
    highlights: list[dict[str, str]] | None = None

    def construct_query_info(self) -> str:
        """Build the legacy query-information JSON from this metadata."""
        info: dict[str, Any] = {}
        if self.keys:
            info["keys"] = list(self.keys)
        if self.terms:
            info["terms"] = [[term.term, term.key] for term in self.terms]
        if self.limited:
            info["limited"] = str(self.limited)
        if self.marker is not None:
            info["marker"] = self.marker
        if self.mode is not None:
            info["mode"] = self.mode
        if self.phrase_query_info is not None:
            info["phraseQueryInfo"] = self.phrase_query_info.to_v2().to_dict()
        if self.shard is not None:
            info["shard"] = self.shard
        if self.scan_bytes is not None:
            info["scanBytes"] = self.scan_bytes
        if self.is_accurate is not None:
            info["isAccurate"] = 1 if self.is_accurate else 0
        if self.column_types:
            info["columnTypes"] = list(self.column_types)
        if self.highlights:
            info["highlight"] = [dict(sorted(item.items())) for item in self.highlights]
        return _dumps(info)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GetLogsV3ResponseMeta":
        terms = data.get("terms")
        phrase = data.get("phraseQueryInfo")
        return cls(
            progress=data.get("progress", ""),
            agg_query=data.get("aggQuery", ""),
            where_query=data.get("whereQuery", ""),
            has_sql=data.get("hasSQL", False),
            processed_rows=data.get("processedRows", 0),
            elapsed_millisecond=data.get("elapsedMillisecond", 0),
            cpu_sec=data.get("cpuSec", 0.0),
            cpu_cores=data.get("cpuCores", 0.0),
            limited=data.get("limited", 0),
            count=data.get("count", 0),
            processed_bytes=data.get("processedBytes", 0),
            telemetry_type=data.get("telementryType", ""),
            power_sql=data.get("powerSql", False),
            inserted_sql=data.get("insertedSQL", ""),
            keys=data.get("keys"),
            terms=None if terms is None else [
                MetaTerm(key=t.get("key", ""), term=t.get("term", "")) for t in terms
            ],
            marker=data.get("marker"),
            mode=data.get("mode"),
            phrase_query_info=None if phrase is None else PhraseQueryInfoV3.from_dict(phrase),
            shard=data.get("shard"),
            scan_bytes=data.get("scanBytes"),
            is_accurate=data.get("isAccurate"),
            column_types=data.get("columnTypes"),
            highlights=data.get("highlights"),
        )


@dataclass
class GetLogsV3Response:
    meta: GetLogsV3ResponseMeta = field(default_factory=GetLogsV3ResponseMeta)
    logs: list[dict[str, str]] | None = None

    def is_complete(self) -> bool:
        return self.meta.progress.lower() == "complete"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GetLogsV3Response":
        return cls(
            meta=GetLogsV3ResponseMeta.from_dict(data.get("meta") or {}),
            logs=data.get("data"),
        )


@dataclass
class GetLogLinesResponse(GetLogsResponse):
    """Query result whose logs are kept as raw JSON lines."""

    lines: list[str] = field(default_factory=list)


@dataclass
class GetContextLogsResponse:
    progress: str = ""
    total_lines: int = 0
    back_lines: int = 0
    forward_lines: int = 0
    logs: list[dict[str, str]] = field(default_factory=list)

    def is_complete(self) -> bool:
        return self.progress.lower() == "complete"


@dataclass
class JsonKey:
    type: str = ""
    alias: str = ""
    doc_value: bool = False

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"type": self.type}
        if self.alias:
            out["alias"] = self.alias
        if self.doc_value:
            out["doc_value"] = True
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "JsonKey":
        return cls(
            type=data.get("type", ""),
            alias=data.get("alias", ""),
            doc_value=data.get("doc_value", False),
        )


@dataclass
class IndexKey:
    token: list[str] | None = None
    case_sensitive: bool = False
    type: str = ""
    doc_value: bool = False
    alias: str = ""
    chn: bool = False
    json_keys: dict[str, JsonKey] | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "token": self.token,
            "caseSensitive": self.case_sensitive,
            "type": self.type,
        }
        if self.doc_value:
            out["doc_value"] = True
        if self.alias:
            out["alias"] = self.alias
        out["chn"] = self.chn
        if self.json_keys:
            out["json_keys"] = {
                name: key.to_dict() for name, key in sorted(self.json_keys.items())
            }
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "IndexKey":
        json_keys = data.get("json_keys")
        return cls(
            token=data.get("token"),
            case_sensitive=data.get("caseSensitive", False),
            type=data.get("type", ""),
            doc_value=data.get("doc_value", False),
            alias=data.get("alias", ""),
            chn=data.get("chn", False),
            json_keys=None if json_keys is None else {
                name: JsonKey.from_dict(value) for name, value in json_keys.items()
            },
        )


@dataclass
class IndexLine:
    token: list[str] | None = None
    case_sensitive: bool = False
    include_keys: list[str] | None = None
    exclude_keys: list[str] | None = None
    chn: bool = False

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"token": self.token, "caseSensitive": self.case_sensitive}
        if self.include_keys:
            out["include_keys"] = list(self.include_keys)
        if self.exclude_keys:
            out["exclude_keys"] = list(self.exclude_keys)
        out["chn"] = self.chn
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "IndexLine":
        return cls(
            token=data.get("token"),
            case_sensitive=data.get("caseSensitive", False),
            include_keys=data.get("include_keys"),
            exclude_keys=data.get("exclude_keys"),
            chn=data.get("chn", False),
        )


@dataclass
class Index:
    """Index configuration of a log store."""

    keys: dict[str, IndexKey] | None = None
    line: IndexLine | None = None
    ttl: int = 0
    max_text_len: int = 0
    log_reduce: bool = False
    log_reduce_white_list: list[str] | None = None
    log_reduce_black_list: list[str] | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.keys:
            out["keys"] = {name: key.to_dict() for name, key in sorted(self.keys.items())}
        if self.line is not None:
            out["line"] = self.line.to_dict()
        if self.ttl:
            out["ttl"] = self.ttl
        if self.max_text_len:
            out["max_text_len"] = self.max_text_len
        out["log_reduce"] = self.log_reduce
        if self.log_reduce_white_list:
            out["log_reduce_white_list"] = list(self.log_reduce_white_list)
        if self.log_reduce_black_list:
            out["log_reduce_black_list"] = list(self.log_reduce_black_list)
        return out

    def to_json(self) -> str:
        return _dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Index":
        keys = data.get("keys")
        line = data.get("line")
        return cls(
            keys=None if keys is None else {
                name: IndexKey.from_dict(value) for name, value in keys.items()
            },
            line=None if line is None else IndexLine.from_dict(line),
            ttl=data.get("ttl", 0),
            max_text_len=data.get("max_text_len", 0),
            log_reduce=data.get("log_reduce", False),
            log_reduce_white_list=data.get("log_reduce_white_list"),
            log_reduce_black_list=data.get("log_reduce_black_list"),
        )


def create_default_index() -> Index:
    """Return a full-text index configuration."""
    return Index(
        line=IndexLine(
            token=[" ", "\n", "\t", "\r", ",", ";", "[", "]", "{", "}", "(", ")", "&", "^",
                   "*", "#", "@", "~", "=", "<", ">", "/", "\\", "?", ":", "'", "\""],
            case_sensitive=False,
        )
    )


@dataclass
class GetMeteringModeResponse:
    metering_mode: str = ""


@dataclass
class PostLogStoreLogsRequest:
    log_group: LogGroup | None = None
    hash_key: str | None = None
    compress_type: int = 0


@dataclass
class StoreViewStore:
    project: str = ""
    store_name: str = ""
    query: str = ""


@dataclass
class StoreView:
    name: str = ""
    store_type: str = ""
    stores: list[StoreViewStore] = field(default_factory=list)


@dataclass
class ListStoreViewsRequest:
    offset: int = 0
    size: int = 0


@dataclass
class ListStoreViewsResponse:
    total: int = 0
    count: int = 0
    store_views: list[str] = field(default_factory=list)