"""Chat message capture orchestration.

ChatCaptureEngine drives the shared chat document for one request:
expand the anchor into a message window, navigate, isolate the targets,
optionally substitute content, capture, trim, and append the
profile-picture rectangle as a sidecar record. Callers hold the
ConcurrencyGate around capture_messages; the engine itself does not lock.
"""

import asyncio
import logging
from contextlib import AsyncExitStack
from pathlib import Path
from typing import Optional

import aiofiles

from ..errors import MessageNotFoundError
from ..imaging.trim import ImageTrimEngine
from ..models.capture import ChatCaptureRequest
from ..utils.sidecar import append_record
from .browser_session import BrowserSession
from .message_window import MessageWindowResolver
from .regions import RegionCompositor
from .substitution import ContentSubstitutionEngine

logger = logging.getLogger(__name__)

MULTI_MESSAGE_SETTLE_MS = 300


class ChatCaptureEngine:
    """Captures chat messages from the session's shared chat document."""

    def __init__(
        self,
        session: BrowserSession,
        resolver: Optional[MessageWindowResolver] = None,
        trimmer: Optional[ImageTrimEngine] = None
    ):
        self.session = session
        self.resolver = resolver or MessageWindowResolver()
        trim_config = session.config.trim
        self.trimmer = trimmer or ImageTrimEngine(
            threshold=trim_config.threshold,
            min_width=trim_config.min_width
        )

    async def capture_messages(self, request: ChatCaptureRequest) -> Path:
        """Capture the requested message(s).

        Returns:
            Path of a PNG file followed by the profile-picture sidecar record

        Raises:
            NotInitializedError: Chat automation is not running
            MessageNotFoundError: The anchor message did not render in time
        """
        driver = self.session.require_chat_driver()
        channel_id = request.channel_id
        message_ids = request.message_ids

        if len(message_ids) == 1 and request.window > 1:
            message_ids = await self.resolver.resolve(
                request.anchor_id,
                lambda: driver.fetch_channel_messages(channel_id),
                window=request.window
            )

        anchor_id = message_ids[0]
        multiple = len(message_ids) > 1

        logger.info(f"Locating message with ID: {anchor_id}...")
        message = await driver.navigate_to_message(
            request.server_id,
            channel_id,
            anchor_id,
            scroll_to_top=multiple
        )

        if message is None:
            raise MessageNotFoundError(anchor_id)
        logger.info(f"Message with ID {anchor_id} was found.")

        if self.session.config.use_new_nav:
            await driver.hide_except(channel_id, message_ids)

        compositor = RegionCompositor(driver, self.session.viewport['height'])

        async with AsyncExitStack() as stack:
            if request.sed is not None:
                substitution = ContentSubstitutionEngine(driver)
                await stack.enter_async_context(
                    substitution.substituted(channel_id, anchor_id, request.sed)
                )

            await driver.apply_zoom()

            if multiple:
                await asyncio.sleep(MULTI_MESSAGE_SETTLE_MS / 1000)
                rect = await compositor.messages_rect(message, channel_id, message_ids)
                image_data = await driver.screenshot_clip(rect)
            else:
                image_data = await driver.screenshot_element(message)

        if request.trim:
            image_data = self.trimmer.trim_png(image_data)

        picture_rect = await compositor.profile_picture_rect(message)

        file_path = self.session.screenshot_path()
        try:
            async with aiofiles.open(file_path, 'wb') as f:
                await f.write(image_data)
            await append_record(file_path, picture_rect)
        except BaseException:
            file_path.unlink(missing_ok=True)
            raise
        logger.info(f"Screenshot saved at {file_path}")

        return file_path
