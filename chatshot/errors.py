"""Capture error hierarchy for chatshot.

Every failure raised by the capture core derives from ScreenshotError and
carries a machine-readable error code plus a details dictionary, so the
HTTP layer can render a structured ``{message, details}`` body without
inspecting exception types.
"""

from typing import Any, Dict, Optional


class ScreenshotError(Exception):
    """Base capture error."""

    error_code = "screenshot_error"

    def __init__(
        self,
        message: str = "Screenshot capture failed",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the structured error payload."""
        return {"message": self.message, "details": self.details}


class NotInitializedError(ScreenshotError):
    """Raised when a capture is requested before the session is started."""

    error_code = "not_initialized"

    def __init__(self, message: str = "Browser session is not initialized"):
        super().__init__(message)


class AlreadyInitializedError(ScreenshotError):
    """Raised when init() is called on a live session."""

    error_code = "already_initialized"

    def __init__(self, message: str = "Browser session is already initialized"):
        super().__init__(message)


class BlockedNavigationError(ScreenshotError):
    """Raised for URLs outside the http/https schemes."""

    error_code = "blocked_navigation"

    def __init__(self, url: str):
        super().__init__("Blocked navigation to non-web URL", {"url": url})


class ElementNotFoundError(ScreenshotError):
    """Raised when a capture selector matches nothing."""

    error_code = "element_not_found"

    def __init__(self, selector: Optional[str] = None):
        super().__init__(
            "Element not found",
            {"selector": selector} if selector else {}
        )


class MessageNotFoundError(ScreenshotError):
    """Raised when a chat message does not render within the wait timeout."""

    error_code = "message_not_found"

    def __init__(self, message_id: str):
        super().__init__(
            f"Message with ID {message_id} not found",
            {"message_id": message_id}
        )


class CachedMessageNotFoundError(ScreenshotError):
    """Raised when a message is missing from the client's message cache."""

    error_code = "cached_message_not_found"

    def __init__(self, channel_id: str, message_id: str):
        super().__init__(
            "Cached message not found",
            {"channel_id": channel_id, "message_id": message_id}
        )


class InvalidPatternError(ScreenshotError):
    """Raised when a substitution pattern or its flags fail to compile."""

    error_code = "invalid_pattern"

    def __init__(self, pattern: str, flags: str, reason: Optional[str] = None):
        details = {"pattern": pattern, "flags": flags}
        if reason:
            details["reason"] = reason
        super().__init__("Invalid regex or flags", details)


class NoMatchFoundError(ScreenshotError):
    """Raised when a substitution pattern does not match the content."""

    error_code = "no_match_found"

    def __init__(self, pattern: str, content: str):
        super().__init__(
            "No matching text found",
            {"pattern": pattern, "content": content}
        )


class EmptyResultError(ScreenshotError):
    """Raised when a substitution would leave the message blank."""

    error_code = "empty_result"

    def __init__(self):
        super().__init__("Can't edit with empty content")


class NoBoundingBoxesError(ScreenshotError):
    """Raised when none of the target messages has a bounding box."""

    error_code = "no_bounding_boxes"

    def __init__(self, message_ids=None):
        super().__init__(
            "No valid bounding boxes found for the messages",
            {"message_ids": list(message_ids or [])}
        )


class RegionTooTallError(ScreenshotError):
    """Raised when a composite region extends past the viewport."""

    error_code = "region_too_tall"

    def __init__(self, max_y: float, window_height: int):
        super().__init__(
            "Messages too tall, they don't fit in the browser window",
            {"max_y": max_y, "window_height": window_height}
        )


class LoginTimeoutError(ScreenshotError):
    """Raised when the chat client never reaches its home view after login."""

    error_code = "login_timeout"

    def __init__(self, timeout_ms: int, likely_invalid_token: bool = True, reason: Optional[str] = None):
        self.likely_invalid_token = likely_invalid_token
        if likely_invalid_token:
            message = (
                f"Chat login failed ({timeout_ms / 1000:g}s timeout exceeded). "
                "The provided chat token is likely invalid. Try updating it then restarting."
            )
        else:
            message = "Chat login failed"
        details: Dict[str, Any] = {
            "timeout_ms": timeout_ms,
            "likely_invalid_token": likely_invalid_token,
        }
        if reason:
            details["reason"] = reason
        super().__init__(message, details)
