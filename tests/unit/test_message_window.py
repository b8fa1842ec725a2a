"""Unit tests for anchor message window expansion."""

import pytest

from chatshot.capture.message_window import (
    MessageWindowResolver,
    expand_message_window,
    grouped_block,
)
from chatshot.models.capture import MessageRecord


def history(*authors):
    """Messages 1..n, oldest first, with the given author ids."""
    return [MessageRecord(id=str(i + 1), author_id=author) for i, author in enumerate(authors)]


class TestGroupedBlock:
    """Tests for same-author run detection."""

    def test_block_bounds(self):
        messages = history("a", "b", "b", "b", "c")

        assert grouped_block(messages, 2) == (1, 3)

    def test_single_message_block(self):
        messages = history("a", "b", "c")

        assert grouped_block(messages, 1) == (1, 1)


class TestExpandMessageWindow:
    """Tests for expand_message_window."""

    def test_anchor_missing_returns_anchor_only(self):
        messages = history("a", "a", "a")

        assert expand_message_window(messages, "999", 3) == ["999"]

    def test_empty_history(self):
        assert expand_message_window([], "5", 3) == ["5"]

    def test_alternates_older_first(self):
        messages = history("a", "a", "a", "a", "a")

        assert expand_message_window(messages, "3", 5) == ["3", "2", "4", "1", "5"]

    def test_stops_at_window_size(self):
        messages = history("a", "a", "a", "a", "a")

        assert expand_message_window(messages, "3", 2) == ["3", "2"]

    def test_stays_within_grouped_block(self):
        messages = history("x", "a", "a", "a", "y")

        result = expand_message_window(messages, "2", 10)

        assert result == ["2", "3", "4"]

    def test_continues_in_one_direction_when_other_is_exhausted(self):
        messages = history("a", "a", "a", "a")

        assert expand_message_window(messages, "1", 3) == ["1", "2", "3"]

    def test_window_of_one(self):
        messages = history("a", "a")

        assert expand_message_window(messages, "2", 1) == ["2"]

    @pytest.mark.parametrize("window", [1, 2, 3, 4, 5])
    def test_window_within_run_is_exact(self, window):
        messages = history("z", "a", "a", "a", "a", "a", "q")
        run_ids = {"2", "3", "4", "5", "6"}

        result = expand_message_window(messages, "4", window)

        assert len(result) == window
        assert result[0] == "4"
        assert set(result) <= run_ids
        assert len(set(result)) == window

    def test_invalid_window(self):
        with pytest.raises(ValueError):
            expand_message_window(history("a"), "1", 0)


class TestMessageWindowResolver:
    """Tests for the async resolver."""

    @pytest.mark.asyncio
    async def test_resolve_uses_fetcher(self):
        messages = history("a", "a", "a")
        calls = []

        async def fetch():
            calls.append(True)
            return messages

        resolver = MessageWindowResolver(max_window=3)
        result = await resolver.resolve("2", fetch)

        assert result == ["2", "1", "3"]
        assert calls == [True]

    @pytest.mark.asyncio
    async def test_resolve_window_override(self):
        async def fetch():
            return history("a", "a", "a")

        result = await MessageWindowResolver(max_window=3).resolve("2", fetch, window=2)

        assert result == ["2", "1"]
