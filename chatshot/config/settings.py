"""Configuration models for the capture service.

The configuration object exposes everything the capture core reads at
runtime: browser window and launch settings, per-document defaults, the
chat credential token (whose presence turns chat automation on), timeouts,
trim parameters and the DOM selectors used by the chat driver.
"""

from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class WindowConfig(BaseModel):
    """Browser window geometry."""
    width: int = Field(default=1920, gt=0, description="Window width in pixels")
    height: int = Field(default=1080, gt=0, description="Window height in pixels")
    zoom: float = Field(default=1.0, gt=0, description="CSS zoom applied to captured documents")
    maximized: bool = Field(default=False, description="Start maximized instead of sized (headful only)")


class TimeoutConfig(BaseModel):
    """Bounded waits used against rendered documents, in milliseconds."""
    navigation_ms: int = Field(default=2000, gt=0, description="Generic capture page load")
    message_ms: int = Field(default=2000, gt=0, description="Chat message element wait")
    login_ms: int = Field(default=30000, gt=0, description="Chat login page load and home marker wait")
    loading_ms: int = Field(default=5000, gt=0, description="Chat client module registry wait")
    crash_check_interval_ms: int = Field(default=5000, gt=0, description="Crash-check period")
    element_settle_ms: int = Field(default=500, ge=0, description="Delay after scrolling to an element")


class TrimConfig(BaseModel):
    """Background trimming parameters."""
    threshold: int = Field(default=10, ge=0, description="Manhattan RGB distance counted as content")
    min_width: int = Field(default=500, gt=0, description="Minimum output width in pixels")


class ChatSelectors(BaseModel):
    """DOM hooks into the chat client.

    These are the environment-specific parts of chat automation; they are
    kept in configuration so they can change without touching the driver.
    """
    login_url: str = "https://discord.com/login"
    home_marker: str = '[data-list-item-id="guildsnav___home"]'
    error_page: str = '[class*="errorPage"]'
    new_messages_bar: str = '[class^="newMessagesBar"]'
    messages_wrapper: str = '[class^="messagesWrapper"]'
    flash_banner: str = '[class^="flash"]'
    profile_picture: str = 'img[class*="avatar_"]'
    message_selector: str = "#chat-messages-{channel_id}-{message_id}"
    message_path: str = "/channels/{server_id}/{channel_id}/{message_id}"
    module_registry: str = "webpackChunkdiscord_app"
    channel_cache_module: int = 89892
    token_key: str = "token"

    def message_css(self, channel_id: str, message_id: str) -> str:
        return self.message_selector.format(channel_id=channel_id, message_id=message_id)

    def message_url_path(self, server_id: str, channel_id: str, message_id: str) -> str:
        return self.message_path.format(
            server_id=server_id, channel_id=channel_id, message_id=message_id
        )


class ServerConfig(BaseModel):
    """HTTP listener settings."""
    host: str = "0.0.0.0"
    port: int = Field(default=3000, gt=0, lt=65536)
    log_level: str = "info"


class CaptureConfig(BaseModel):
    """Root configuration for the capture service."""

    headless: bool = Field(default=True, description="Run the browser without a window")
    window: WindowConfig = Field(default_factory=WindowConfig)
    user_agent: Optional[str] = Field(default=None, description="Custom User-Agent")
    timezone: Optional[str] = Field(default=None, description="Timezone ID, e.g. 'Europe/Berlin'")
    chat_token: Optional[str] = Field(default=None, description="Chat client credential token")
    screenshot_dir: Path = Field(default=Path("./screenshots"), description="Output directory")
    extra_args: List[str] = Field(default_factory=list, description="Extra browser launch flags")
    use_new_nav: bool = Field(default=False, description="Chat client uses the new navigation layout")
    timeouts: TimeoutConfig = Field(default_factory=TimeoutConfig)
    trim: TrimConfig = Field(default_factory=TrimConfig)
    chat: ChatSelectors = Field(default_factory=ChatSelectors)
    server: ServerConfig = Field(default_factory=ServerConfig)

    @field_validator("user_agent", "timezone", "chat_token", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def chat_enabled(self) -> bool:
        """Chat automation runs only when a credential token is configured."""
        return self.chat_token is not None
