"""SHA-256 helpers for measurement digests and run identifiers."""

from __future__ import annotations

import hashlib
import json
from typing import Any


def sha256_hex(data: bytes) -> str:
    """Return the SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def content_address(data: bytes) -> str:
    """Return ``sha256:<hex>`` for raw bytes."""
    return f"sha256:{sha256_hex(data)}"


def canonical_json_bytes(obj: Any) -> bytes:
    """Produce canonical JSON bytes — deterministic, sorted, compact."""
    return json.dumps(
        obj, sort_keys=True, separators=(",", ":"), ensure_ascii=True
    ).encode("utf-8")


def configuration_fingerprint(config: dict[str, Any]) -> str:
    """Short stable fingerprint of a configuration dump, for log lines."""
    return sha256_hex(canonical_json_bytes(config))[:12]
