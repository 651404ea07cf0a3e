"""Machine groups, sorted sub stores and OSS shipper configuration."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields, is_dataclass
from typing import Any, ClassVar

MACHINE_ID_TYPE_IP = "ip"
MACHINE_ID_TYPE_USER_DEFINED = "userdefined"

OSS_SHIPPER_TYPE = "oss"

_SUB_STORE_KEY_TYPES = frozenset({"text", "long", "double"})
_MAX_SUB_STORE_TTL = 3650


@dataclass
class MachineGroupAttribute:
    external_name: str = ""
    topic_name: str = ""


@dataclass
class MachineGroup:
    name: str = ""
    type: str = ""
    machine_id_type: str = ""
    machine_id_list: list[str] = field(default_factory=list)
    attribute: MachineGroupAttribute = field(default_factory=MachineGroupAttribute)
    create_time: int = 0
    last_modify_time: int = 0


@dataclass
class Machine:
    ip: str = ""
    unique_id: str = ""
    userdefined_id: str = ""
    last_heartbeat_time: int = 0


@dataclass
class MachineList:
    total: int = 0
    machines: list[Machine] = field(default_factory=list)


@dataclass
class SubStoreKey:
    name: str = ""
    type: str = ""

    def is_valid(self) -> bool:
        return bool(self.name) and self.type in _SUB_STORE_KEY_TYPES


@dataclass
class SubStore:
    """A sorted sub store of a log store."""

    name: str = ""
    ttl: int = 0
    sorted_key_count: int = 0
    time_index: int = 0
    keys: list[SubStoreKey] = field(default_factory=list)

    def is_valid(self) -> bool:
        key_count = len(self.keys)
        if not 0 < self.sorted_key_count < key_count:
            return False
        if not self.sorted_key_count <= self.time_index < key_count:
            return False
        if not 0 < self.ttl <= _MAX_SUB_STORE_TTL:
            return False
        for index, key in enumerate(self.keys):
            if not key.is_valid():
                return False
            if index == self.time_index and key.type != "long":
                return False
            if index < self.sorted_key_count and key.type == "double":
                return False
        return True


def new_sub_store(
    name: str,
    ttl: int,
    sorted_key_count: int,
    time_index: int,
    keys: list[SubStoreKey],
) -> SubStore | None:
    """Return a sub store, or None when the definition is not valid."""
    store = SubStore(
        name=name,
        ttl=ttl,
        sorted_key_count=sorted_key_count,
        time_index=time_index,
        keys=list(keys),
    )
    return store if store.is_valid() else None


@dataclass
class OssStorageCsvDetail:
    delimiter: str = ""
    header: bool = False
    line_feed: str = ""
    columns: list[str] | None = None
    null_identifier: str = ""
    quote: str = ""

    _JSON_NAMES: ClassVar[dict[str, str]] = {
        "delimiter": "delemiter",
        "header": "header",
        "line_feed": "lineFeed",
        "columns": "columns",
        "null_identifier": "nullIdentfifier",
        "quote": "quote",
    }


@dataclass
class ParquetConfig:
    name: str = ""
    type: str = ""

    _JSON_NAMES: ClassVar[dict[str, str]] = {"name": "name", "type": "type"}


@dataclass
class OssStorageParquet:
    columns: list[ParquetConfig] | None = None

    _JSON_NAMES: ClassVar[dict[str, str]] = {"columns": "columns"}


@dataclass
class OssStorageJsonDetail:
    enable_tag: bool = False

    _JSON_NAMES: ClassVar[dict[str, str]] = {"enable_tag": "enableTag"}


@dataclass
class ShipperStorage:
    """Storage format of shipped data; ``detail`` holds any JSON-like value."""

    format: str = ""
    detail: Any = None

    _JSON_NAMES: ClassVar[dict[str, str]] = {"format": "format", "detail": "detail"}


@dataclass
class OSSShipperConfig:
    oss_bucket: str = ""
    oss_prefix: str = ""
    role_arn: str = ""
    buffer_interval: int = 0
    buffer_size: int = 0
    compress_type: str = ""
    path_format: str = ""
    format: str = ""
    storage: ShipperStorage = field(default_factory=ShipperStorage)

    _JSON_NAMES: ClassVar[dict[str, str]] = {
        "oss_bucket": "ossBucket",
        "oss_prefix": "ossPrefix",
        "role_arn": "roleArn",
        "buffer_interval": "bufferInterval",
        "buffer_size": "bufferSize",
        "compress_type": "compressType",
        "path_format": "pathFormat",
        "format": "format",
        "storage": "storage",
    }


def _encode(value: Any) -> Any:
    """Turn the dataclasses of this module into JSON-ready values."""
    if is_dataclass(value) and not isinstance(value, type):
        names = type(value)._JSON_NAMES
        return {names[f.name]: _encode(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, (list, tuple)):
        return [_encode(item) for item in value]
    if isinstance(value, dict):
        return {key: _encode(item) for key, item in value.items()}
    return value


def _oss_config_from_dict(data: Any) -> OSSShipperConfig:
    if data is None:
        return OSSShipperConfig()
    if not isinstance(data, dict):
        raise ValueError("OSS target configuration must be a JSON object")
    storage = data.get("storage")
    if storage is None:
        storage = {}
    if not isinstance(storage, dict):
        raise ValueError("OSS storage must be a JSON object")
    return OSSShipperConfig(
        oss_bucket=data.get("ossBucket", ""),
        oss_prefix=data.get("ossPrefix", ""),
        role_arn=data.get("roleArn", ""),
        buffer_interval=data.get("bufferInterval", 0),
        buffer_size=data.get("bufferSize", 0),
        compress_type=data.get("compressType", ""),
        path_format=data.get("pathFormat", ""),
        format=data.get("format", ""),
        storage=ShipperStorage(format=storage.get("format", ""), detail=storage.get("detail")),
    )


@dataclass
class Shipper:
    """A shipper that copies a log store's data to another target."""

    shipper_name: str = ""
    target_type: str = ""
    target_configuration: Any = None
    raw_target_configuration: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "shipperName": self.shipper_name,
            "targetType": self.target_type,
            "targetConfiguration": _encode(self.target_configuration),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"), ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Shipper":
        """Parse a shipper; only OSS targets are understood."""
        if not isinstance(data, dict):
            raise ValueError("shipper must be a JSON object")
        target_type = data.get("targetType", "")
        if target_type != OSS_SHIPPER_TYPE:
            raise ValueError(f"unknown target type {target_type}")
        if "targetConfiguration" not in data:
            raise ValueError("missing target configuration")
        raw = data["targetConfiguration"]
        return cls(
            shipper_name=data.get("shipperName", ""),
            target_type=target_type,
            target_configuration=_oss_config_from_dict(raw),
            raw_target_configuration=raw,
        )

    @classmethod
    def from_json(cls, text: str | bytes) -> "Shipper":
        return cls.from_dict(json.loads(text))