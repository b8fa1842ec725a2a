"""Chat client automation behind a narrow capability interface.

ChatDriver lists what the capture orchestration needs from the chat client:
log in, navigate to a message, isolate messages in the DOM, read and
substitute cached message content, locate message geometry, take
screenshots and detect and recover from client crashes. DiscordChatDriver
implements it with Playwright against the web client, keeping every
brittle selector and internal-module lookup in this module and in
ChatSelectors.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from playwright.async_api import (
    BrowserContext,
    ElementHandle,
    Page,
    TimeoutError as PlaywrightTimeoutError,
)

from ..config.settings import CaptureConfig
from ..errors import CachedMessageNotFoundError, LoginTimeoutError, NotInitializedError
from ..models.capture import MessageRecord, RegionRectangle
from .dom import hide_except, instant_scroll, set_zoom

logger = logging.getLogger(__name__)


SETTLE_MS = 1500
NEW_NAV_SETTLE_MS = 500
LOADING_POLL_MS = 100

# Keeps a handle on localStorage even if the client later shadows it
PRESERVE_STORAGE_JS = """
Object.defineProperty(window, "__s_localStorage", {
    value: localStorage,
    configurable: false,
    enumerable: false,
    writable: true
});
"""

SET_TOKEN_JS = """
({ key, token }) => {
    window.__s_localStorage.setItem(key, `"${token}"`);
}
"""

REGISTRY_READY_JS = """
(registry) => typeof window[registry] !== "undefined"
"""

EXPOSE_REQUIRE_JS = """
(registry) => {
    const chunk = window[registry];
    const wpRequire = chunk.push([[Symbol()], {}, r => r]);
    chunk.pop();

    window.__s_wpRequire = id => {
        if (id == null) return undefined;
        else return wpRequire(id);
    };

    window.__s_findModule = cb => {
        const cache = Object.entries(wpRequire.c),
            _module = cache.find(([, value]) => Boolean(cb(value?.exports)));

        return _module?.[0] ?? null;
    };
}
"""

EXPOSE_HOOKS_JS = """
(cacheModule) => {
    const dispatcher = __s_wpRequire(__s_findModule(_exports => _exports?.Wb?._handleDispatch))?.Wb;
    if (dispatcher != null) window.__s_handleDispatch = dispatcher._handleDispatch.bind(dispatcher);

    window.__s_channelCache = __s_wpRequire(cacheModule)?.Z;
}
"""

NAVIGATE_JS = """
(targetPath) => {
    if (window.location.pathname !== targetPath) {
        window.history.pushState(null, "", targetPath);
        window.history.pushState(null, "", null);

        window.history.go(-1);
    }
}
"""

HIDE_CHAT_ELEMENTS_JS = """
({ newMessagesBar, messagesWrapper }) => {
    const newMessages = document.querySelector(newMessagesBar);
    if (newMessages) newMessages.style.display = "none";

    const wrapper = document.querySelector(messagesWrapper),
        chatBox = wrapper?.nextElementSibling;

    if (chatBox) chatBox.style.display = "none";
}
"""

UNWRAP_FLASHES_JS = """
(flashSelector) => {
    const flashes = document.querySelectorAll(flashSelector);

    for (const flash of flashes) {
        const message = flash.firstElementChild;

        if (message) {
            flash.parentNode.insertBefore(message, flash.nextElementSibling);

            flash.removeChild = () => {};
            flash.appendChild(document.createElement("div"));
        }
    }
}
"""

FETCH_CACHED_MESSAGE_JS = """
({ channelId, messageId }) => {
    const messageCache = window.__s_channelCache?.get(channelId);
    return messageCache?.get(messageId) ?? null;
}
"""

FETCH_CHANNEL_MESSAGES_JS = """
(channelId) => {
    const messageCache = window.__s_channelCache?.get(channelId);
    if (!messageCache) return [];

    const messages = typeof messageCache.toArray === "function"
        ? messageCache.toArray()
        : (messageCache._array ?? []);

    return messages.map(message => ({ id: message.id, authorId: message.author?.id ?? null }));
}
"""

SET_MESSAGE_CONTENT_JS = """
({ data, content }) => {
    data.content = content;
    __s_handleDispatch(data, "MESSAGE_UPDATE", {});
}
"""


class ChatDriver(ABC):
    """Capabilities the chat capture flow needs from a chat client."""

    @abstractmethod
    async def login(self) -> None:
        """Authenticate the shared chat document."""
        pass

    @abstractmethod
    async def navigate_to_message(
        self,
        server_id: str,
        channel_id: str,
        message_id: str,
        scroll_to_top: bool = False
    ) -> Optional[ElementHandle]:
        """Show a message and prepare the DOM for capture.

        Returns:
            The message element, or None if it did not appear in time
        """
        pass

    @abstractmethod
    async def locate_message(self, channel_id: str, message_id: str) -> Optional[ElementHandle]:
        pass

    @abstractmethod
    async def hide_except(self, channel_id: str, message_ids: Sequence[str]) -> None:
        pass

    @abstractmethod
    async def fetch_cached_message(self, channel_id: str, message_id: str) -> Dict[str, Any]:
        pass

    @abstractmethod
    async def set_message_content(self, message_data: Dict[str, Any], content: str) -> None:
        pass

    @abstractmethod
    async def fetch_channel_messages(self, channel_id: str) -> List[MessageRecord]:
        pass

    @abstractmethod
    async def bounding_box(self, element: ElementHandle) -> Optional[Dict[str, float]]:
        pass

    @abstractmethod
    async def profile_picture_box(self, element: ElementHandle) -> Optional[Dict[str, float]]:
        pass

    @abstractmethod
    async def screenshot_element(self, element: ElementHandle) -> bytes:
        pass

    @abstractmethod
    async def screenshot_clip(self, rect: RegionRectangle) -> bytes:
        pass

    @abstractmethod
    async def apply_zoom(self) -> None:
        pass

    @abstractmethod
    async def is_crashed(self) -> bool:
        pass

    @abstractmethod
    async def reload(self) -> None:
        pass

    async def close(self) -> None:
        pass


class DiscordChatDriver(ChatDriver):
    """Playwright driver for the Discord web client."""

    def __init__(self, context: BrowserContext, config: CaptureConfig):
        self.context = context
        self.config = config
        self.selectors = config.chat
        self.timeouts = config.timeouts
        self.page: Optional[Page] = None

    def _require_page(self) -> Page:
        if self.page is None:
            raise NotInitializedError("Chat document is not initialized")
        return self.page

    async def login(self) -> None:
        """Log in by writing the token into localStorage and reloading."""
        self.page = await self.context.new_page()
        await self.page.add_init_script(PRESERVE_STORAGE_JS)

        await self._navigate_to_login()
        await self._set_token()

        logger.info("Reloading page to authenticate...")
        await self.reload()
        await self._wait_for_login()

    async def _navigate_to_login(self) -> None:
        logger.info("Navigating to chat login page...")
        timeout = self.timeouts.login_ms

        try:
            await self.page.goto(self.selectors.login_url, wait_until="networkidle", timeout=timeout)
        except PlaywrightTimeoutError as e:
            logger.error(f"Chat login page did not load within {timeout}ms")
            raise LoginTimeoutError(timeout, likely_invalid_token=False, reason=str(e)) from e
        except Exception as e:
            logger.error(f"Chat navigation failed with error: {e}")
            raise

    async def _set_token(self) -> None:
        logger.debug("Setting chat token in localStorage...")
        await self.page.evaluate(
            SET_TOKEN_JS,
            {"key": self.selectors.token_key, "token": self.config.chat_token}
        )

    async def _wait_for_login(self) -> None:
        logger.info("Waiting for homepage...")
        timeout = self.timeouts.login_ms

        try:
            await self.page.wait_for_selector(self.selectors.home_marker, timeout=timeout)
        except PlaywrightTimeoutError as e:
            error = LoginTimeoutError(timeout, likely_invalid_token=True)
            logger.error(error.message)
            raise error from e
        except Exception as e:
            logger.error(f"Chat login failed with error: {e}")
            raise LoginTimeoutError(timeout, likely_invalid_token=False, reason=str(e)) from e

        logger.info("Logged into chat successfully.")

    async def _wait_for_loading(self) -> bool:
        try:
            await self.page.wait_for_function(
                REGISTRY_READY_JS,
                arg=self.selectors.module_registry,
                timeout=self.timeouts.loading_ms,
                polling=LOADING_POLL_MS
            )
            return True
        except PlaywrightTimeoutError:
            return False

    async def _apply_loading_patches(self) -> None:
        if not await self._wait_for_loading():
            logger.warning("Chat client modules did not load, content substitution is unavailable")
            return

        logger.debug("Applying chat loading patches...")
        await self.page.evaluate(EXPOSE_REQUIRE_JS, self.selectors.module_registry)
        await self.page.evaluate(EXPOSE_HOOKS_JS, self.selectors.channel_cache_module)

    async def reload(self) -> None:
        """Reload the chat document and re-expose its internal hooks."""
        page = self._require_page()
        logger.info("Reloading chat page...")

        try:
            await page.reload(timeout=self.timeouts.login_ms)
        except Exception as e:
            logger.error(f"Chat navigation failed with error: {e}")
            raise

        await self._apply_loading_patches()

    async def is_crashed(self) -> bool:
        page = self._require_page()
        return await page.query_selector(self.selectors.error_page) is not None

    async def navigate_to_message(
        self,
        server_id: str,
        channel_id: str,
        message_id: str,
        scroll_to_top: bool = False
    ) -> Optional[ElementHandle]:
        page = self._require_page()
        target_path = self.selectors.message_url_path(server_id, channel_id, message_id)
        selector = self.selectors.message_css(channel_id, message_id)

        logger.info(f"Navigating to server: {server_id}, channel: {channel_id}, message: {message_id}")
        await page.evaluate(NAVIGATE_JS, target_path)

        try:
            await page.wait_for_selector(selector, state="attached", timeout=self.timeouts.message_ms)
        except PlaywrightTimeoutError:
            return None

        if not self.config.use_new_nav:
            await self._hide_chat_elements()
        await self._unwrap_flashes()

        if scroll_to_top:
            await instant_scroll(page, selector)

        settle_ms = NEW_NAV_SETTLE_MS if self.config.use_new_nav else SETTLE_MS
        await asyncio.sleep(settle_ms / 1000)

        return await page.query_selector(selector)

    async def _hide_chat_elements(self) -> None:
        await self.page.evaluate(
            HIDE_CHAT_ELEMENTS_JS,
            {
                "newMessagesBar": self.selectors.new_messages_bar,
                "messagesWrapper": self.selectors.messages_wrapper,
            }
        )

    async def _unwrap_flashes(self) -> None:
        await self.page.evaluate(UNWRAP_FLASHES_JS, self.selectors.flash_banner)

    async def locate_message(self, channel_id: str, message_id: str) -> Optional[ElementHandle]:
        page = self._require_page()
        return await page.query_selector(self.selectors.message_css(channel_id, message_id))

    async def hide_except(self, channel_id: str, message_ids: Sequence[str]) -> None:
        page = self._require_page()
        selectors = [self.selectors.message_css(channel_id, message_id) for message_id in message_ids]
        await hide_except(page, selectors)

    async def fetch_cached_message(self, channel_id: str, message_id: str) -> Dict[str, Any]:
        page = self._require_page()
        data = await page.evaluate(
            FETCH_CACHED_MESSAGE_JS,
            {"channelId": channel_id, "messageId": message_id}
        )

        if data is None:
            raise CachedMessageNotFoundError(channel_id, message_id)
        return data

    async def set_message_content(self, message_data: Dict[str, Any], content: str) -> None:
        page = self._require_page()
        if message_data is None:
            return
        await page.evaluate(SET_MESSAGE_CONTENT_JS, {"data": message_data, "content": content})
        message_data["content"] = content

    async def fetch_channel_messages(self, channel_id: str) -> List[MessageRecord]:
        page = self._require_page()
        messages = await page.evaluate(FETCH_CHANNEL_MESSAGES_JS, channel_id)
        return [MessageRecord(**message) for message in messages]

    async def bounding_box(self, element: ElementHandle) -> Optional[Dict[str, float]]:
        if element is None:
            return None
        return await element.bounding_box()

    async def profile_picture_box(self, element: ElementHandle) -> Optional[Dict[str, float]]:
        picture = await element.query_selector(self.selectors.profile_picture)
        if picture is None:
            return None
        return await picture.bounding_box()

    async def screenshot_element(self, element: ElementHandle) -> bytes:
        return await element.screenshot(type="png")

    async def screenshot_clip(self, rect: RegionRectangle) -> bytes:
        page = self._require_page()
        return await page.screenshot(type="png", clip=rect.to_clip())

    async def apply_zoom(self) -> None:
        await set_zoom(self._require_page(), self.config.window.zoom)

    async def close(self) -> None:
        if self.page is not None:
            try:
                await self.page.close()
            except Exception as e:
                logger.warning(f"Error closing chat page: {e}")
            self.page = None
