"""Capture and highlight rectangles for chat messages.

For several target messages the capture rectangle is the tightest box
enclosing all of their bounding boxes; it must already fit inside the
viewport because nothing scrolls while the screenshot is taken. The
profile-picture rectangle is expressed relative to the primary message.
"""

import logging
import math
from typing import Dict, Optional, Sequence

from playwright.async_api import ElementHandle

from ..errors import NoBoundingBoxesError, RegionTooTallError
from ..models.capture import RegionRectangle
from .chat_driver import ChatDriver

logger = logging.getLogger(__name__)

Box = Dict[str, float]


def enclosing_rect(boxes: Sequence[Box], viewport_height: Optional[int] = None) -> RegionRectangle:
    """Smallest integer rectangle containing every box.

    Args:
        boxes: Bounding boxes with x, y, width and height
        viewport_height: Bottom limit; exceeding it raises

    Raises:
        NoBoundingBoxesError: No boxes were given
        RegionTooTallError: The enclosing box extends below viewport_height
    """
    if not boxes:
        raise NoBoundingBoxesError()

    min_x = min(box['x'] for box in boxes)
    min_y = min(box['y'] for box in boxes)
    max_x = max(box['x'] + box['width'] for box in boxes)
    max_y = max(box['y'] + box['height'] for box in boxes)

    if viewport_height is not None and max_y > viewport_height:
        raise RegionTooTallError(max_y, viewport_height)

    return RegionRectangle.from_box(
        math.floor(min_x),
        math.floor(min_y),
        math.floor(max_x - min_x),
        math.floor(max_y - min_y)
    )


def relative_rect(inner: Optional[Box], outer: Box) -> RegionRectangle:
    """Position of ``inner`` relative to ``outer``, zero if ``inner`` is missing."""
    if inner is None or outer is None:
        return RegionRectangle()

    return RegionRectangle.from_box(
        inner['x'] - outer['x'],
        inner['y'] - outer['y'],
        inner['width'],
        inner['height']
    )


class RegionCompositor:
    """Computes capture and profile-picture rectangles through a chat driver."""

    def __init__(self, driver: ChatDriver, viewport_height: int):
        self.driver = driver
        self.viewport_height = viewport_height

    async def messages_rect(
        self,
        anchor: ElementHandle,
        channel_id: str,
        message_ids: Sequence[str]
    ) -> RegionRectangle:
        """Rectangle enclosing the anchor and the other target messages.

        Targets that cannot be located or have no box are skipped.
        """
        elements = [anchor]
        for message_id in message_ids[1:]:
            elements.append(await self.driver.locate_message(channel_id, message_id))

        boxes = []
        for element in elements:
            if element is None:
                continue
            box = await self.driver.bounding_box(element)
            if box is not None:
                boxes.append(box)

        if not boxes:
            raise NoBoundingBoxesError(message_ids)

        logger.debug(f"Composing rectangle from {len(boxes)}/{len(message_ids)} message boxes")
        return enclosing_rect(boxes, self.viewport_height)

    async def profile_picture_rect(self, message: ElementHandle) -> RegionRectangle:
        """Profile picture rectangle relative to the message element.

        Messages grouped under a previous one have no picture and yield a
        zero rectangle.
        """
        picture_box = await self.driver.profile_picture_box(message)
        if picture_box is None:
            return RegionRectangle()

        message_box = await self.driver.bounding_box(message)
        return relative_rect(picture_box, message_box)
