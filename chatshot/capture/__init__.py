"""Browser capture core for chatshot.

Main Components:
- BrowserSession: browser process, reference viewport and chat document lifecycle
- GenericCaptureEngine: isolated captures of arbitrary web pages
- ChatDriver / DiscordChatDriver: chat client automation behind a capability interface
- MessageWindowResolver: anchor message to grouped message window
- ContentSubstitutionEngine: ephemeral, always-reverted message edits
- RegionCompositor: composite capture and profile-picture rectangles
- ChatCaptureEngine: chat capture orchestration

Usage:
    from chatshot.capture import BrowserSession, GenericCaptureEngine

    session = BrowserSession(config)
    await session.init()
    path = await GenericCaptureEngine(session).capture_screenshot("https://example.com")
"""

from .browser_session import BrowserSession, get_launch_args, BASE_ARGS
from .chat_capture import ChatCaptureEngine
from .chat_driver import ChatDriver, DiscordChatDriver
from .message_window import MessageWindowResolver, expand_message_window
from .page_capture import GenericCaptureEngine, is_web_url
from .regions import RegionCompositor, enclosing_rect, relative_rect
from .substitution import ContentSubstitutionEngine, compile_pattern

__all__ = [
    "BASE_ARGS",
    "BrowserSession",
    "ChatCaptureEngine",
    "ChatDriver",
    "ContentSubstitutionEngine",
    "DiscordChatDriver",
    "GenericCaptureEngine",
    "MessageWindowResolver",
    "RegionCompositor",
    "compile_pattern",
    "enclosing_rect",
    "expand_message_window",
    "get_launch_args",
    "is_web_url",
    "relative_rect",
]
