"""Expansion of an anchor message into a window of grouped messages.

The chat client visually merges consecutive messages from one author into
a single block. A capture centred on one message of such a block can
include its neighbours: starting from the anchor, the window grows by
alternately taking the next older and the next newer message of the block
until it is full or the block is exhausted.
"""

import logging
from typing import Awaitable, Callable, List, Sequence, Tuple

from ..models.capture import MessageRecord

logger = logging.getLogger(__name__)

MessageFetcher = Callable[[], Awaitable[Sequence[MessageRecord]]]

DEFAULT_MAX_WINDOW = 3


def grouped_block(messages: Sequence[MessageRecord], index: int) -> Tuple[int, int]:
    """Inclusive bounds of the same-author run around ``messages[index]``."""
    author_id = messages[index].author_id
    start = end = index

    while start > 0 and messages[start - 1].author_id == author_id:
        start -= 1
    while end < len(messages) - 1 and messages[end + 1].author_id == author_id:
        end += 1

    return start, end


def expand_message_window(
    messages: Sequence[MessageRecord],
    anchor_id: str,
    window: int
) -> List[str]:
    """Compute the ordered id list for a capture.

    Args:
        messages: Channel messages ordered oldest first
        anchor_id: Id the capture is centred on
        window: Maximum number of ids to return

    Returns:
        Ids beginning with the anchor, then alternating older and newer
        members of the anchor's grouped block
    """
    if window < 1:
        raise ValueError(f"window must be at least 1, got {window}")

    index = next((i for i, message in enumerate(messages) if message.id == anchor_id), None)
    if index is None:
        return [anchor_id]

    start, end = grouped_block(messages, index)
    result = [anchor_id]
    older, newer = index - 1, index + 1

    while len(result) < window:
        progressed = False

        if older >= start:
            result.append(messages[older].id)
            older -= 1
            progressed = True

        if len(result) < window and newer <= end:
            result.append(messages[newer].id)
            newer += 1
            progressed = True

        if not progressed:
            break

    return result


class MessageWindowResolver:
    """Resolves anchor ids against a cached message list."""

    def __init__(self, max_window: int = DEFAULT_MAX_WINDOW):
        self.max_window = max_window

    async def resolve(
        self,
        anchor_id: str,
        fetch_messages: MessageFetcher,
        window: int = None
    ) -> List[str]:
        """Fetch the cached list and expand the anchor.

        Args:
            anchor_id: Anchor message id
            fetch_messages: Coroutine function returning messages oldest first
            window: Requested size, defaults to the resolver's maximum
        """
        size = self.max_window if window is None else window
        messages = await fetch_messages()
        ids = expand_message_window(messages, anchor_id, size)

        logger.debug(f"Expanded message {anchor_id} into {len(ids)} message(s)")
        return ids
