"""Unit tests for the chat capture concurrency gate."""

import pytest

from chatshot.utils.locks import ConcurrencyGate, LockError, LockInfo


class TestConcurrencyGate:
    """Test ConcurrencyGate functionality."""

    def test_acquire_free_lock(self):
        gate = ConcurrencyGate()

        assert gate.acquire("/messageScreenshot") is True
        assert gate.is_locked("/messageScreenshot") is True

    def test_second_acquire_fails(self):
        gate = ConcurrencyGate()
        gate.acquire("/messageScreenshot")

        assert gate.acquire("/messageScreenshot") is False

    def test_release_allows_reacquire(self):
        gate = ConcurrencyGate()
        gate.acquire("/messageScreenshot")
        gate.release("/messageScreenshot")

        assert gate.is_locked("/messageScreenshot") is False
        assert gate.acquire("/messageScreenshot") is True

    def test_release_unheld_lock_is_noop(self):
        gate = ConcurrencyGate()
        gate.release("never-acquired")

        assert gate.list_locks() == []

    def test_names_are_independent(self):
        gate = ConcurrencyGate()

        assert gate.acquire("a") is True
        assert gate.acquire("b") is True
        assert {lock.key for lock in gate.list_locks()} == {"a", "b"}

    def test_lock_info_metadata(self):
        gate = ConcurrencyGate()
        gate.acquire("route", message_id="123")

        info = gate.get_lock_info("route")
        assert isinstance(info, LockInfo)
        assert info.metadata == {"message_id": "123"}
        assert info.to_dict()["key"] == "route"

    def test_hold_releases_on_exit(self):
        gate = ConcurrencyGate()

        with gate.hold("route") as info:
            assert info.key == "route"
            assert gate.is_locked("route")

        assert not gate.is_locked("route")

    def test_hold_releases_on_error(self):
        gate = ConcurrencyGate()

        with pytest.raises(RuntimeError):
            with gate.hold("route"):
                raise RuntimeError("capture failed")

        assert not gate.is_locked("route")

    def test_hold_rejects_held_lock(self):
        gate = ConcurrencyGate()
        gate.acquire("route")

        with pytest.raises(LockError) as exc_info:
            with gate.hold("route"):
                pass

        assert exc_info.value.key == "route"
        assert "try again later" in str(exc_info.value)
        # The original holder still owns it
        assert gate.is_locked("route")
