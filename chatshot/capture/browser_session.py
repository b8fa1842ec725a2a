"""Browser session lifecycle for the capture service.

BrowserSession owns the one browser process, the reference viewport size,
and, when a chat token is configured, the authenticated chat document and
its periodic crash check. It is created once at startup, handed to the
capture engines explicitly, and closed at shutdown.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncGenerator, Callable, Dict, Iterable, List, Optional
from uuid import uuid4

from playwright.async_api import (
    Browser,
    BrowserContext,
    Page,
    Playwright,
    async_playwright,
)

from ..config.settings import CaptureConfig
from ..errors import AlreadyInitializedError, NotInitializedError
from .chat_driver import ChatDriver, DiscordChatDriver
from .dom import inner_size

logger = logging.getLogger(__name__)


BASE_ARGS = ["--disable-gpu", "--no-sandbox"]

DriverFactory = Callable[[BrowserContext, CaptureConfig], ChatDriver]


def get_launch_args(extra_args: Optional[Iterable[str]] = None) -> List[str]:
    """Base flags plus extra flags, trimmed and de-duplicated in order."""
    args = []
    for arg in BASE_ARGS + list(extra_args or []):
        arg = arg.strip()
        if arg and arg not in args:
            args.append(arg)
    return args


class BrowserSession:
    """The process-wide browser and shared chat document."""

    def __init__(self, config: CaptureConfig, driver_factory: Optional[DriverFactory] = None):
        """Initialize the session.

        Args:
            config: Service configuration
            driver_factory: Builds the chat driver for the chat context
        """
        self.config = config
        self.driver_factory = driver_factory or DiscordChatDriver
        self.playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None
        self.chat_context: Optional[BrowserContext] = None
        self.chat_driver: Optional[ChatDriver] = None
        self.viewport: Dict[str, int] = {
            'width': config.window.width,
            'height': config.window.height,
        }
        self.screenshot_dir = Path(config.screenshot_dir).resolve()
        self.launch_args: List[str] = []
        self._crash_check_task: Optional[asyncio.Task] = None

    @property
    def is_initialized(self) -> bool:
        return self.browser is not None

    @property
    def chat_enabled(self) -> bool:
        return self.config.chat_enabled

    @property
    def crash_check_active(self) -> bool:
        return self._crash_check_task is not None and not self._crash_check_task.done()

    async def init(self) -> None:
        """Launch the browser and, if configured, log into the chat client.

        Raises:
            AlreadyInitializedError: If the session is already running
        """
        if self.is_initialized:
            raise AlreadyInitializedError()

        try:
            await self._launch()
            await self._init_inner_size()
            logger.info("Browser launched.")

            self.screenshot_dir.mkdir(parents=True, exist_ok=True)

            if self.chat_enabled:
                await self._chat_login()
                self.start_crash_check()
        except Exception as e:
            logger.error(f"Failed to initialize browser session: {e}")
            await self.close()
            raise

    async def close(self) -> None:
        """Close the browser and clear all handles. No-op when not running."""
        if not self.is_initialized and self.playwright is None:
            return

        self.stop_crash_check()

        try:
            if self.chat_driver:
                await self.chat_driver.close()
            if self.browser:
                await self.browser.close()
        finally:
            self.browser = None
            self.chat_context = None
            self.chat_driver = None

            if self.playwright:
                await self.playwright.stop()
                self.playwright = None

        logger.info("Browser closed.")

    async def _launch(self) -> None:
        args = get_launch_args(self.config.extra_args)

        if not self.config.headless:
            window = self.config.window
            args.append(
                "--start-maximized"
                if window.maximized
                else f"--window-size={window.width},{window.height}"
            )

        self.launch_args = args
        self.playwright = await async_playwright().start()
        self.browser = await self.playwright.chromium.launch(
            headless=self.config.headless,
            args=args
        )

    async def _init_inner_size(self) -> None:
        """Resolve the viewport size used for region-fit checks."""
        if self.config.headless:
            self.viewport = {
                'width': self.config.window.width,
                'height': self.config.window.height,
            }
            return

        async with self.page() as page:
            size = await inner_size(page)

        self.viewport = {'width': int(size['width']), 'height': int(size['height'])}
        logger.debug(f"Resolved inner viewport: {self.viewport}")

    def context_options(self) -> Dict[str, Any]:
        """Per-document defaults applied to every context."""
        options: Dict[str, Any] = {}

        if self.config.headless:
            options['viewport'] = {
                'width': self.config.window.width,
                'height': self.config.window.height,
            }
        else:
            options['no_viewport'] = True

        if self.config.user_agent:
            options['user_agent'] = self.config.user_agent

        if self.config.timezone:
            options['timezone_id'] = self.config.timezone

        return options

    async def new_context(self, **overrides) -> BrowserContext:
        if not self.is_initialized:
            raise NotInitializedError()

        options = self.context_options()
        options.update(overrides)
        return await self.browser.new_context(**options)

    @asynccontextmanager
    async def page(self, **context_overrides) -> AsyncGenerator[Page, None]:
        """Ephemeral isolated document, closed on every exit path."""
        context = await self.new_context(**context_overrides)
        try:
            page = await context.new_page()
            try:
                yield page
            finally:
                await page.close()
        finally:
            await context.close()

    async def _chat_login(self) -> None:
        self.chat_context = await self.new_context()
        logger.info("Created chat context.")

        driver = self.driver_factory(self.chat_context, self.config)
        await driver.login()
        self.chat_driver = driver

    def require_chat_driver(self) -> ChatDriver:
        if self.chat_driver is None:
            raise NotInitializedError("Chat automation is not initialized")
        return self.chat_driver

    def screenshot_path(self) -> Path:
        """Fresh, unique output path in the screenshot directory."""
        filename = f"screenshot_{int(time.time() * 1000)}_{uuid4().hex[:8]}.png"
        return self.screenshot_dir / filename

    def start_crash_check(self) -> None:
        if self.crash_check_active or self.chat_driver is None:
            return
        self._crash_check_task = asyncio.create_task(self._crash_check_loop())

    def stop_crash_check(self) -> None:
        if self._crash_check_task is not None:
            self._crash_check_task.cancel()
            self._crash_check_task = None

    async def _crash_check_loop(self) -> None:
        """Reload the chat document whenever it shows its error page.

        A failed reload ends the loop for good; the session keeps serving
        but no further recovery is attempted.
        """
        interval = self.config.timeouts.crash_check_interval_ms / 1000

        while True:
            await asyncio.sleep(interval)

            driver = self.chat_driver
            if driver is None:
                return

            try:
                crashed = await driver.is_crashed()
            except Exception as e:
                logger.warning(f"Chat crash check failed: {e}")
                continue

            if not crashed:
                continue

            logger.info("Chat page crashed.")
            try:
                await driver.reload()
            except Exception as e:
                logger.error(f"Chat page reload failed, crash checks disabled: {e}")
                return

    def __repr__(self) -> str:
        return (
            f"BrowserSession(running={self.is_initialized}, "
            f"chat={self.chat_driver is not None}, "
            f"viewport={self.viewport['width']}x{self.viewport['height']})"
        )
