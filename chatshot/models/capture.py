"""Pydantic models for capture requests, regions and chat message records.

This module defines the validated data types that flow through the capture
core: region rectangles (also the sidecar payload schema), substitution
specs, the two tagged request variants and cached chat message records.
"""

import math
import re
from enum import Enum
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


INT16_MIN = -(2 ** 15)
INT16_MAX = 2 ** 15 - 1

# Ids are interpolated into CSS selectors and in-app paths
ID_PATTERN = r"^[A-Za-z0-9_-]+$"


def clamp(value: float, low: float, high: float) -> float:
    """Clamp value into [low, high]."""
    return max(min(value, high), low)


class CaptureShape(str, Enum):
    """How a generic capture selects the pixels to keep."""
    CLIP = "clip"
    ELEMENT = "element"
    FULL_PAGE = "full_page"


class RegionRectangle(BaseModel):
    """Integer capture or highlight area.

    Field order is significant: it is the order in which the sidecar
    encoder writes the fields.
    """

    x: int = Field(default=0, ge=INT16_MIN, le=INT16_MAX, description="Left edge in CSS pixels")
    y: int = Field(default=0, ge=INT16_MIN, le=INT16_MAX, description="Top edge in CSS pixels")
    width: int = Field(default=0, ge=0, le=INT16_MAX, description="Width in CSS pixels")
    height: int = Field(default=0, ge=0, le=INT16_MAX, description="Height in CSS pixels")

    @classmethod
    def from_box(cls, x: float, y: float, width: float, height: float) -> "RegionRectangle":
        """Floor and clamp a floating point box into a valid rectangle."""
        return cls(
            x=math.floor(clamp(x, INT16_MIN, INT16_MAX)),
            y=math.floor(clamp(y, INT16_MIN, INT16_MAX)),
            width=math.floor(clamp(width, 0, INT16_MAX)),
            height=math.floor(clamp(height, 0, INT16_MAX)),
        )

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    def to_clip(self) -> dict:
        """Convert to a Playwright screenshot clip argument."""
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


class SubstitutionSpec(BaseModel):
    """Ephemeral find-and-replace applied to one chat message."""

    model_config = ConfigDict(populate_by_name=True)

    pattern: str = Field(..., alias="regex", min_length=1, description="RE2 pattern")
    replacement: str = Field(default="", alias="replace", description="Replacement text ($1, $& supported)")
    flags: str = Field(default="", description="Pattern flags (i, m, s, g); empty means 'i'")


class GenericCaptureRequest(BaseModel):
    """Capture of an arbitrary web page."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    url: str = Field(..., min_length=1, description="Page URL (http or https)")
    clip: Optional[Union[RegionRectangle, Literal["element"]]] = Field(
        default=None,
        description="Clip rectangle, or 'element' to capture the scroll_to element"
    )
    scroll_to: Optional[str] = Field(
        default=None,
        alias="scrollTo",
        min_length=1,
        description="CSS selector to scroll into view before capture"
    )

    @model_validator(mode="after")
    def validate_element_capture(self):
        if self.clip == "element" and self.scroll_to is None:
            raise ValueError("clip 'element' requires a scrollTo selector")
        return self

    @property
    def shape(self) -> CaptureShape:
        if isinstance(self.clip, RegionRectangle):
            return CaptureShape.CLIP
        if self.clip == "element":
            return CaptureShape.ELEMENT
        return CaptureShape.FULL_PAGE


class ChatCaptureRequest(BaseModel):
    """Capture of one or more messages in the shared chat document."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    server_id: str = Field(..., alias="serverId", pattern=ID_PATTERN)
    channel_id: str = Field(..., alias="channelId", pattern=ID_PATTERN)
    message_id: Union[str, List[str]] = Field(..., alias="messageId")
    trim: bool = Field(default=True, description="Trim background around the message")
    sed: Optional[SubstitutionSpec] = Field(default=None, description="Ephemeral content substitution")
    window: int = Field(
        default=1,
        ge=1,
        le=25,
        description="Expand a single anchor id into up to this many grouped messages"
    )

    @field_validator("message_id")
    @classmethod
    def validate_message_ids(cls, v):
        ids = [v] if isinstance(v, str) else list(v)
        if not ids:
            raise ValueError("At least one message id is required")
        for message_id in ids:
            if not isinstance(message_id, str) or not re.fullmatch(ID_PATTERN, message_id):
                raise ValueError(f"Invalid message id: {message_id!r}")
        return v

    @property
    def message_ids(self) -> List[str]:
        """Ordered message ids, anchor first."""
        return [self.message_id] if isinstance(self.message_id, str) else list(self.message_id)

    @property
    def anchor_id(self) -> str:
        return self.message_ids[0]


class MessageRecord(BaseModel):
    """Minimal view of a cached chat message used for window expansion."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    author_id: Optional[str] = Field(default=None, alias="authorId")
