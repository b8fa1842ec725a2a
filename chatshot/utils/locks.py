"""Named, non-reentrant locks that serialize chat captures.

Chat captures drive one shared document, so at most one may run at a time.
A request that finds the lock held is turned away immediately with a
"retry later" response; nothing is queued. All operations run on the event
loop thread without awaiting, which makes check-and-set atomic.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional


logger = logging.getLogger(__name__)


class LockError(Exception):
    """Exception raised when a lock is already held."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f'The "{key}" route is currently locked. Please try again later.')


@dataclass
class LockInfo:
    """Information about a held lock."""

    key: str
    acquired_at: datetime
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            'key': self.key,
            'acquired_at': self.acquired_at.isoformat(),
            'metadata': self.metadata
        }


class ConcurrencyGate:
    """In-memory named lock registry."""

    def __init__(self):
        self._locks: Dict[str, LockInfo] = {}

    def is_locked(self, key: str) -> bool:
        return key in self._locks

    def acquire(self, key: str, **metadata: Any) -> bool:
        """Try to take the lock.

        Returns:
            True if acquired, False if the name is already held
        """
        if key in self._locks:
            logger.debug(f"Lock busy: {key}")
            return False

        self._locks[key] = LockInfo(
            key=key,
            acquired_at=datetime.now(timezone.utc),
            metadata=metadata
        )
        logger.debug(f"Lock acquired: {key}")
        return True

    def release(self, key: str) -> None:
        """Release the lock unconditionally."""
        if self._locks.pop(key, None) is not None:
            logger.debug(f"Lock released: {key}")

    def get_lock_info(self, key: str) -> Optional[LockInfo]:
        return self._locks.get(key)

    def list_locks(self) -> List[LockInfo]:
        return list(self._locks.values())

    @contextmanager
    def hold(self, key: str, **metadata: Any) -> Iterator[LockInfo]:
        """Hold a lock for the duration of the block.

        Raises:
            LockError: If the lock is already held
        """
        if not self.acquire(key, **metadata):
            raise LockError(key)
        try:
            yield self._locks[key]
        finally:
            self.release(key)
