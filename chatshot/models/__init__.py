"""Data models shared by the capture core and the HTTP layer."""

from .capture import (
    INT16_MAX,
    INT16_MIN,
    CaptureShape,
    ChatCaptureRequest,
    GenericCaptureRequest,
    MessageRecord,
    RegionRectangle,
    SubstitutionSpec,
    clamp,
)

__all__ = [
    "INT16_MAX",
    "INT16_MIN",
    "CaptureShape",
    "ChatCaptureRequest",
    "GenericCaptureRequest",
    "MessageRecord",
    "RegionRectangle",
    "SubstitutionSpec",
    "clamp",
]
