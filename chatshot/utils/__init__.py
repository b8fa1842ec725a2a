"""Utility modules for chatshot.

This package provides the concurrency gate for chat captures and the
sidecar record codec used to append metadata to image files.
"""

from .locks import ConcurrencyGate, LockError, LockInfo
from .sidecar import append_record, decode_model, decode_record, encode_record, split_payload

__all__ = [
    "ConcurrencyGate",
    "LockError",
    "LockInfo",
    "append_record",
    "decode_model",
    "decode_record",
    "encode_record",
    "split_payload",
]
