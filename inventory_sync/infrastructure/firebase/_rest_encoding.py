"""Encode/decode Python values to/from Firestore REST API 'fields' format."""

import base64
import re
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from inventory_sync.domain.entities.document import ServerTimestamp
from inventory_sync.shared.utils.datetime import ensure_utc

_SIMPLE_FIELD_PATH = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
# Firestore returns up to nanosecond precision; datetime holds microseconds.
_FRACTION = re.compile(r"\.(\d{6})\d+")


def _encode_value(v: Any) -> dict:
    if v is None:
        return {"nullValue": None}
    if isinstance(v, bool):
        return {"booleanValue": v}
    if isinstance(v, int):
        return {"integerValue": str(v)}
    if isinstance(v, float):
        return {"doubleValue": v}
    if isinstance(v, datetime):
        return {"timestampValue": ensure_utc(v).strftime("%Y-%m-%dT%H:%M:%S.%fZ")}
    if isinstance(v, str):
        return {"stringValue": v}
    if isinstance(v, bytes):
        return {"bytesValue": base64.standard_b64encode(v).decode("ascii")}
    if isinstance(v, (list, tuple)):
        return {"arrayValue": {"values": [_encode_value(x) for x in v]}}
    if isinstance(v, Mapping):
        return {"mapValue": {"fields": {k: _encode_value(x) for k, x in v.items()}}}
    if isinstance(v, ServerTimestamp):
        raise TypeError("SERVER_TIMESTAMP is only supported as a top-level field value")
    raise TypeError(f"Unsupported Firestore value type: {type(v)}")


def field_path(name: str) -> str:
    """Quote a top-level field name for updateMask/transforms when needed."""
    if _SIMPLE_FIELD_PATH.match(name):
        return name
    escaped = name.replace("\\", "\\\\").replace("`", "\\`")
    return f"`{escaped}`"


def split_server_timestamps(data: Mapping[str, Any]) -> tuple[dict[str, Any], list[str]]:
    """Separate SERVER_TIMESTAMP fields (written as transforms) from plain values."""
    plain: dict[str, Any] = {}
    timestamps: list[str] = []
    for key, value in data.items():
        if isinstance(value, ServerTimestamp):
            timestamps.append(key)
        else:
            plain[key] = value
    return plain, timestamps


def encode_document(data: Mapping[str, Any]) -> dict:
    """Convert a Python mapping to Firestore REST Document.fields format."""
    return {"fields": {k: _encode_value(v) for k, v in data.items()}}


def _decode_value(obj: dict) -> Any:
    if "nullValue" in obj:
        return None
    if "booleanValue" in obj:
        return obj["booleanValue"]
    if "integerValue" in obj:
        return int(obj["integerValue"])
    if "doubleValue" in obj:
        return float(obj["doubleValue"])
    if "timestampValue" in obj:
        return parse_timestamp(obj["timestampValue"])
    if "stringValue" in obj:
        return obj["stringValue"]
    if "bytesValue" in obj:
        return base64.standard_b64decode(obj["bytesValue"])
    if "referenceValue" in obj:
        return obj["referenceValue"]
    if "arrayValue" in obj:
        vals = obj.get("arrayValue", {}).get("values") or []
        return [_decode_value(x) for x in vals]
    if "mapValue" in obj:
        fields = obj["mapValue"].get("fields") or {}
        return {k: _decode_value(x) for k, x in fields.items()}
    return None


def decode_document(doc: dict | None) -> dict:
    """Convert a Firestore REST Document (with 'fields') to a Python dict."""
    if not doc:
        return {}
    return {k: _decode_value(v) for k, v in (doc.get("fields") or {}).items()}


def parse_timestamp(value: str) -> datetime:
    """Parse an RFC 3339 timestamp as returned by Firestore (Z suffix, up to 9 fraction digits)."""
    return datetime.fromisoformat(_FRACTION.sub(r".\1", value).replace("Z", "+00:00"))
