from __future__ import annotations

import hashlib
import json
from typing import Any, Mapping

GENESIS_HASH = "0" * 64

# Every DeedEvent field except self_hash, in encoding order.
CANONICAL_FIELDS: tuple[str, ...] = (
    "event_id",
    "timestamp",
    "prev_hash",
    "actor_id",
    "target_ids",
    "deed_type",
    "tags",
    "context_json",
    "ethics_flags",
    "life_harm_flag",
)


def _json_dumps(obj: Any) -> str:
    return json.dumps(obj, ensure_ascii=False, sort_keys=True, separators=(",", ":"))


def canonical_bytes(fields: Mapping[str, Any]) -> bytes:
    missing = [name for name in CANONICAL_FIELDS if name not in fields]
    if missing:
        raise ValueError(f"Cannot encode event, missing fields: {', '.join(missing)}")
    payload = {name: fields[name] for name in CANONICAL_FIELDS}
    return _json_dumps(payload).encode("utf-8")


def digest(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def event_digest(fields: Mapping[str, Any]) -> str:
    """SHA-256 hex digest of an event's canonical encoding (self_hash excluded)."""
    return digest(canonical_bytes(fields))
