"""Unit tests for the browser session lifecycle."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from chatshot.capture.browser_session import BASE_ARGS, BrowserSession, get_launch_args
from chatshot.config import CaptureConfig
from chatshot.errors import AlreadyInitializedError, LoginTimeoutError, NotInitializedError

from conftest import FakeChatDriver


def mock_playwright():
    """Playwright entry point mock returning a browser with mock contexts."""
    context = AsyncMock()
    context.new_page = AsyncMock(return_value=AsyncMock())

    browser = AsyncMock()
    browser.new_context = AsyncMock(return_value=context)

    playwright = AsyncMock()
    playwright.chromium.launch = AsyncMock(return_value=browser)

    entry = MagicMock()
    entry.return_value.start = AsyncMock(return_value=playwright)
    return entry, playwright, browser, context


class TestLaunchArgs:
    """Tests for launch flag assembly."""

    def test_base_args(self):
        assert get_launch_args() == BASE_ARGS

    def test_extra_args_trimmed_and_deduplicated(self):
        args = get_launch_args([" --lang=en ", "--no-sandbox", "", "--lang=en"])

        assert args == ["--disable-gpu", "--no-sandbox", "--lang=en"]


class TestContextOptions:
    """Tests for per-document defaults."""

    def test_headless_uses_configured_viewport(self, tmp_path):
        config = CaptureConfig(
            screenshot_dir=tmp_path,
            window={"width": 800, "height": 600},
            user_agent="Custom UA",
            timezone="Europe/Berlin"
        )

        options = BrowserSession(config).context_options()

        assert options == {
            'viewport': {'width': 800, 'height': 600},
            'user_agent': "Custom UA",
            'timezone_id': "Europe/Berlin",
        }

    def test_headful_uses_real_window(self, tmp_path):
        config = CaptureConfig(screenshot_dir=tmp_path, headless=False)

        options = BrowserSession(config).context_options()

        assert options == {'no_viewport': True}

    def test_blank_user_agent_is_omitted(self, tmp_path):
        config = CaptureConfig(screenshot_dir=tmp_path, user_agent="  ")

        assert 'user_agent' not in BrowserSession(config).context_options()


class TestBrowserSessionInit:
    """Tests for BrowserSession.init and close."""

    @pytest.mark.asyncio
    async def test_init_without_chat(self, tmp_path):
        config = CaptureConfig(screenshot_dir=tmp_path / "out")
        session = BrowserSession(config)
        entry, playwright, browser, _ = mock_playwright()

        with patch('chatshot.capture.browser_session.async_playwright', entry):
            await session.init()

        assert session.is_initialized
        assert session.chat_driver is None
        assert not session.crash_check_active
        assert session.viewport == {'width': 1920, 'height': 1080}
        assert (tmp_path / "out").is_dir()
        playwright.chromium.launch.assert_called_once_with(headless=True, args=BASE_ARGS)

        await session.close()

        browser.close.assert_called_once()
        playwright.stop.assert_called_once()
        assert not session.is_initialized

    @pytest.mark.asyncio
    async def test_headful_window_flags(self, tmp_path):
        config = CaptureConfig(
            screenshot_dir=tmp_path,
            headless=False,
            window={"width": 1280, "height": 720}
        )
        session = BrowserSession(config)
        entry, playwright, _, _ = mock_playwright()

        with patch('chatshot.capture.browser_session.async_playwright', entry), \
             patch('chatshot.capture.browser_session.inner_size',
                   AsyncMock(return_value={'width': 1280, 'height': 650})):
            await session.init()

        assert "--window-size=1280,720" in session.launch_args
        assert session.viewport == {'width': 1280, 'height': 650}

        await session.close()

    @pytest.mark.asyncio
    async def test_init_with_chat_logs_in(self, capture_config):
        driver = FakeChatDriver()
        session = BrowserSession(capture_config, driver_factory=lambda context, config: driver)
        entry, _, _, _ = mock_playwright()

        with patch('chatshot.capture.browser_session.async_playwright', entry):
            await session.init()

        try:
            assert session.chat_driver is driver
            assert driver.call_names() == ["login"]
            assert session.crash_check_active
        finally:
            await session.close()

        assert not session.crash_check_active
        assert session.chat_driver is None

    @pytest.mark.asyncio
    async def test_init_twice(self, tmp_path):
        session = BrowserSession(CaptureConfig(screenshot_dir=tmp_path))
        entry, _, _, _ = mock_playwright()

        with patch('chatshot.capture.browser_session.async_playwright', entry):
            await session.init()
            with pytest.raises(AlreadyInitializedError):
                await session.init()

        await session.close()

    @pytest.mark.asyncio
    async def test_failed_login_closes_browser(self, capture_config):
        driver = FakeChatDriver()
        driver.login = AsyncMock(side_effect=LoginTimeoutError(30000))
        session = BrowserSession(capture_config, driver_factory=lambda context, config: driver)
        entry, playwright, browser, _ = mock_playwright()

        with patch('chatshot.capture.browser_session.async_playwright', entry):
            with pytest.raises(LoginTimeoutError):
                await session.init()

        assert not session.is_initialized
        browser.close.assert_called_once()
        playwright.stop.assert_called_once()

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, tmp_path):
        session = BrowserSession(CaptureConfig(screenshot_dir=tmp_path))

        await session.close()
        await session.close()

        assert not session.is_initialized

    @pytest.mark.asyncio
    async def test_page_requires_initialized_session(self, tmp_path):
        session = BrowserSession(CaptureConfig(screenshot_dir=tmp_path))

        with pytest.raises(NotInitializedError):
            async with session.page():
                pass

    def test_require_chat_driver(self, tmp_path):
        session = BrowserSession(CaptureConfig(screenshot_dir=tmp_path))

        with pytest.raises(NotInitializedError):
            session.require_chat_driver()

    def test_screenshot_paths_are_unique(self, tmp_path):
        session = BrowserSession(CaptureConfig(screenshot_dir=tmp_path))

        first, second = session.screenshot_path(), session.screenshot_path()

        assert first != second
        assert first.parent == tmp_path.resolve()
        assert first.name.startswith("screenshot_") and first.suffix == ".png"


class TestCrashCheck:
    """Tests for the periodic chat crash check."""

    def session_with(self, tmp_path, driver):
        config = CaptureConfig(
            screenshot_dir=tmp_path,
            chat_token="token",
            timeouts={"crash_check_interval_ms": 1}
        )
        session = BrowserSession(config)
        session.chat_driver = driver
        return session

    @pytest.mark.asyncio
    async def test_reloads_crashed_page(self, tmp_path):
        driver = FakeChatDriver()
        driver.crashed = True
        session = self.session_with(tmp_path, driver)

        session.start_crash_check()
        for _ in range(50):
            await asyncio.sleep(0.01)
            if "reload" in driver.call_names():
                break

        assert driver.call_names().count("reload") == 1
        assert session.crash_check_active
        session.stop_crash_check()

    @pytest.mark.asyncio
    async def test_failed_reload_disables_check(self, tmp_path):
        driver = FakeChatDriver()
        driver.crashed = True
        driver.reload_error = RuntimeError("page gone")
        session = self.session_with(tmp_path, driver)

        session.start_crash_check()
        for _ in range(50):
            await asyncio.sleep(0.01)
            if not session.crash_check_active:
                break

        assert not session.crash_check_active
        assert driver.call_names() == ["reload"]

    @pytest.mark.asyncio
    async def test_check_errors_do_not_stop_loop(self, tmp_path):
        driver = FakeChatDriver()
        driver.is_crashed = AsyncMock(side_effect=RuntimeError("evaluate failed"))
        session = self.session_with(tmp_path, driver)

        session.start_crash_check()
        await asyncio.sleep(0.05)

        assert driver.is_crashed.await_count > 1
        assert session.crash_check_active
        session.stop_crash_check()
