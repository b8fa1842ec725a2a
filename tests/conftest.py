"""Shared test fixtures for chatshot tests."""

import pytest
from pathlib import Path
import sys
from typing import Any, Dict, List, Optional, Sequence

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

from chatshot.capture.browser_session import BrowserSession
from chatshot.capture.chat_driver import ChatDriver
from chatshot.config import CaptureConfig
from chatshot.errors import CachedMessageNotFoundError
from chatshot.imaging.raster import RasterImage, encode_png
from chatshot.models.capture import MessageRecord, RegionRectangle


WHITE = (255, 255, 255, 255)
BLACK = (0, 0, 0, 255)


def make_image(width: int, height: int, background=WHITE, blocks=()) -> RasterImage:
    """Solid image with filled (left, top, right, bottom) blocks, right/bottom exclusive."""
    image = RasterImage.blank(width, height, background)
    for left, top, right, bottom, *color in blocks:
        image.pixels[top:bottom, left:right] = color[0] if color else BLACK
    return image


class FakeElement:
    """Stand-in for a Playwright ElementHandle of a chat message."""

    def __init__(self, message_id: str):
        self.message_id = message_id

    def __repr__(self) -> str:
        return f"FakeElement({self.message_id})"


class FakeChatDriver(ChatDriver):
    """In-memory chat driver recording every interaction."""

    def __init__(
        self,
        contents: Optional[Dict[str, str]] = None,
        boxes: Optional[Dict[str, Dict[str, float]]] = None,
        picture_boxes: Optional[Dict[str, Dict[str, float]]] = None,
        channel_messages: Optional[List[MessageRecord]] = None,
        image: Optional[RasterImage] = None,
    ):
        self.contents = dict(contents or {})
        self.boxes = dict(boxes or {})
        self.picture_boxes = dict(picture_boxes or {})
        self.channel_messages = list(channel_messages or [])
        self.image = image or make_image(600, 40, blocks=[(10, 5, 110, 30)])
        self.rendered = set(self.boxes) | set(self.contents)
        self.calls: List[tuple] = []
        self.content_history: List[tuple] = []
        self.crashed = False
        self.reload_error: Optional[Exception] = None

    async def login(self) -> None:
        self.calls.append(("login",))

    async def navigate_to_message(self, server_id, channel_id, message_id, scroll_to_top=False):
        self.calls.append(("navigate", server_id, channel_id, message_id, scroll_to_top))
        if message_id not in self.rendered:
            return None
        return FakeElement(message_id)

    async def locate_message(self, channel_id, message_id):
        self.calls.append(("locate", channel_id, message_id))
        if message_id not in self.rendered:
            return None
        return FakeElement(message_id)

    async def hide_except(self, channel_id, message_ids: Sequence[str]) -> None:
        self.calls.append(("hide_except", channel_id, list(message_ids)))

    async def fetch_cached_message(self, channel_id, message_id) -> Dict[str, Any]:
        if message_id not in self.contents:
            raise CachedMessageNotFoundError(channel_id, message_id)
        return {"id": message_id, "channel_id": channel_id, "content": self.contents[message_id]}

    async def set_message_content(self, message_data, content) -> None:
        self.content_history.append((message_data["id"], content))
        self.contents[message_data["id"]] = content

    async def fetch_channel_messages(self, channel_id) -> List[MessageRecord]:
        self.calls.append(("fetch_channel_messages", channel_id))
        return self.channel_messages

    async def bounding_box(self, element):
        self.calls.append(("bounding_box", element.message_id))
        return self.boxes.get(element.message_id)

    async def profile_picture_box(self, element):
        return self.picture_boxes.get(element.message_id)

    async def screenshot_element(self, element) -> bytes:
        self.calls.append(("screenshot_element", element.message_id))
        return encode_png(self.image)

    async def screenshot_clip(self, rect: RegionRectangle) -> bytes:
        self.calls.append(("screenshot_clip", rect))
        return encode_png(self.image)

    async def apply_zoom(self) -> None:
        self.calls.append(("apply_zoom",))

    async def is_crashed(self) -> bool:
        return self.crashed

    async def reload(self) -> None:
        self.calls.append(("reload",))
        if self.reload_error is not None:
            raise self.reload_error
        self.crashed = False

    def call_names(self) -> List[str]:
        return [call[0] for call in self.calls]


@pytest.fixture
def capture_config(tmp_path):
    """Configuration writing screenshots into a temporary directory."""
    return CaptureConfig(screenshot_dir=tmp_path / "screenshots", chat_token="test-token")


@pytest.fixture
def fake_driver():
    return FakeChatDriver(
        contents={"100": "hello world"},
        boxes={"100": {"x": 20.0, "y": 100.0, "width": 600.0, "height": 40.0}},
        picture_boxes={"100": {"x": 36.0, "y": 104.0, "width": 40.0, "height": 40.0}},
    )


@pytest.fixture
def chat_session(capture_config, fake_driver):
    """Browser session with a fake chat driver attached and no browser."""
    session = BrowserSession(capture_config)
    session.screenshot_dir.mkdir(parents=True, exist_ok=True)
    session.chat_driver = fake_driver
    return session
