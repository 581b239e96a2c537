"""Canonical JSON and SHA-256 helpers for exported dialogue documents."""

import hashlib
import json
from pathlib import Path


def canonical_json_bytes(data) -> bytes:
    """Stable serialisation: sorted keys, no extra whitespace, UTF-8.

    Accepts any JSON value (record lists as well as dicts).
    """
    return json.dumps(
        data, sort_keys=True, separators=(",", ":"), ensure_ascii=False
    ).encode("utf-8")


def hash_records(records: list[dict]) -> str:
    """SHA-256 hex digest of a record list in canonical JSON form."""
    return hashlib.sha256(canonical_json_bytes(records)).hexdigest()


def hash_file_bytes(path: Path) -> str:
    """SHA-256 hex digest of raw file bytes (not canonical JSON).

    Used by ExportIndex.json to fingerprint each figure file as written.
    """
    h = hashlib.sha256()
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(65536), b""):
            h.update(chunk)
    return h.hexdigest()


def short_hash(text: str, length: int = 8) -> str:
    """Leading hex digits of the SHA-256 of a UTF-8 string."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:length]
