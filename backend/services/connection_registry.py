"""
Connection Registry - identity -> active connection handle.

One instance lives for the process and is injected into every realtime
session. All access happens on the event loop thread, so no locking is
needed; a multi-process deployment would need an external pub/sub layer.
"""

import logging
from typing import Any, Dict, Iterator, Optional

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """Tracks at most one active handle per identity (last writer wins)."""

    def __init__(self):
        self._handles: Dict[str, Any] = {}

    def put(self, identity: str, handle: Any) -> None:
        previous = self._handles.get(identity)
        if previous is not None and previous is not handle:
            logger.debug(f"Registry: {identity} replaced an older connection")
        self._handles[identity] = handle

    def remove(self, identity: str, handle: Any = None) -> bool:
        """Remove an identity. No-op if absent.

        When ``handle`` is given, the entry is only removed if it still points
        at that handle, so a stale connection closing does not evict the newer
        one that replaced it.

        Returns:
            True if an entry was removed
        """
        current = self._handles.get(identity)
        if current is None:
            return False
        if handle is not None and current is not handle:
            return False
        del self._handles[identity]
        return True

    def get(self, identity: str) -> Optional[Any]:
        return self._handles.get(identity)

    def is_online(self, identity: str) -> bool:
        return identity in self._handles

    def __len__(self) -> int:
        return len(self._handles)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._handles))
