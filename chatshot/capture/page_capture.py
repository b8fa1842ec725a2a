"""Screenshots of arbitrary web pages.

Each capture runs in its own browser context and page, so generic captures
share no state with each other or with the chat document and may run
concurrently. The page is closed on every exit path.
"""

import asyncio
import logging
import re
from pathlib import Path
from typing import Optional, Union

from playwright.async_api import Page, Route
from pydantic import ValidationError

from ..errors import BlockedNavigationError, ElementNotFoundError, NotInitializedError, ScreenshotError
from ..models.capture import CaptureShape, GenericCaptureRequest, RegionRectangle
from .browser_session import BrowserSession
from .dom import instant_scroll, set_zoom

logger = logging.getLogger(__name__)

WEB_URL_PATTERN = re.compile(r"^https?://")


def is_web_url(url: str) -> bool:
    return bool(WEB_URL_PATTERN.match(url))


async def block_file_requests(route: Route) -> None:
    """Abort requests for local files, let everything else through."""
    url = route.request.url

    if url.startswith("file://"):
        logger.warning(f"Blocked file URL: {url}")
        await route.abort()
    else:
        await route.continue_()


class GenericCaptureEngine:
    """Captures web pages into PNG files."""

    def __init__(self, session: BrowserSession):
        self.session = session

    async def capture(self, request: GenericCaptureRequest) -> Path:
        """Capture a page described by a validated request."""
        return await self.capture_screenshot(request.url, clip=request.clip, scroll_to=request.scroll_to)

    async def capture_screenshot(
        self,
        url: str,
        clip: Optional[Union[RegionRectangle, str]] = None,
        scroll_to: Optional[str] = None
    ) -> Path:
        """Capture a page.

        Args:
            url: http(s) URL to load
            clip: Rectangle to capture, or "element" for the scroll_to element;
                the whole page when omitted
            scroll_to: Selector scrolled into view before capture

        Returns:
            Path of the written PNG file

        Raises:
            NotInitializedError: No browser session
            BlockedNavigationError: URL is not http(s)
            ElementNotFoundError: scroll_to matched nothing
        """
        if not self.session.is_initialized:
            raise NotInitializedError()
        if not is_web_url(url):
            raise BlockedNavigationError(url)

        try:
            request = GenericCaptureRequest(url=url, clip=clip, scroll_to=scroll_to)
        except ValidationError as e:
            raise ScreenshotError("Invalid capture options", {"reason": str(e)}) from e

        file_path = self.session.screenshot_path()

        logger.info(f"Capturing page: {url}")

        async with self.session.page() as page:
            await page.route("**/*", block_file_requests)
            await page.goto(url, wait_until="load", timeout=self.session.config.timeouts.navigation_ms)
            await set_zoom(page, self.session.config.window.zoom)

            element = None
            if request.scroll_to is not None:
                element = await page.query_selector(request.scroll_to)
                if element is None:
                    raise ElementNotFoundError(request.scroll_to)

                await instant_scroll(page, request.scroll_to)
                await asyncio.sleep(self.session.config.timeouts.element_settle_ms / 1000)

            await self._screenshot(page, request, element, file_path)

        logger.info(f"Screenshot saved at {file_path}")
        return file_path

    async def _screenshot(self, page: Page, request: GenericCaptureRequest, element, file_path: Path) -> None:
        shape = request.shape

        if shape == CaptureShape.ELEMENT:
            logger.info("Capturing specific element based on scrollTo...")
            await element.screenshot(path=file_path, type="png")
        elif shape == CaptureShape.CLIP:
            logger.info("Capturing specific area based on clip dimensions...")
            await page.screenshot(path=file_path, type="png", clip=request.clip.to_clip())
        else:
            logger.info("Capturing the whole page as no clip was provided...")
            await page.screenshot(path=file_path, type="png", full_page=True)
