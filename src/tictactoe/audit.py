"""Bounded audit trail of game events (start, moves, resets, errors)."""

from __future__ import annotations

import threading
from collections import deque
from datetime import datetime, timezone
from typing import Any, Deque, Dict, List, Literal, Optional

from loguru import logger

MAX_LOGS = 100

AuditAction = Literal["START", "MOVE", "RESET", "ERROR"]


class AuditLog:
    """Ring buffer holding the most recent ``max_logs`` events.

    A single log is shared by every game in the process, so reads and writes
    are serialized.
    """

    def __init__(self, max_logs: int = MAX_LOGS) -> None:
        self._buffer: Deque[Dict[str, Any]] = deque(maxlen=max_logs)
        self._lock = threading.Lock()

    def log_event(
        self,
        action: AuditAction,
        before: Any,
        after: Any,
        reason: Optional[str] = None,
        user_id: str = "anonymous",
        metadata: Optional[Dict[str, Any]] = None,
        timestamp: Optional[str] = None,
    ) -> Dict[str, Any]:
        event: Dict[str, Any] = {
            "action": action,
            "before": before,
            "after": after,
            "reason": reason,
            "userId": user_id,
            "timestamp": timestamp or datetime.now(timezone.utc).isoformat(),
        }
        if metadata is not None:
            event["metadata"] = metadata
        with self._lock:
            self._buffer.append(event)
        logger.info("audit {}: {}", action, reason or "-")
        return event

    def entries(self) -> List[Dict[str, Any]]:
        with self._lock:
            return list(self._buffer)

    def for_game(self, game_id: str) -> List[Dict[str, Any]]:
        """Events whose metadata names ``game_id``."""
        return [
            event
            for event in self.entries()
            if (event.get("metadata") or {}).get("gameId") == game_id
        ]

    def clear(self) -> None:
        with self._lock:
            self._buffer.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._buffer)
