"""Application error type and a guard for unexpected failures."""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional, TypeVar

from fastapi import HTTPException
from loguru import logger

from .audit import AuditLog

T = TypeVar("T")


class AppError(Exception):
    """Error carrying a user-facing message and a short type slug."""

    def __init__(
        self, type: str, message: str, meta: Optional[Dict[str, Any]] = None
    ) -> None:
        super().__init__(message)
        self.type = type
        self.message = message
        self.meta = meta


def safe_guard(
    fn: Callable[[], T],
    friendly_message: str = "Something went wrong",
    audit: Optional[AuditLog] = None,
    context: Optional[Dict[str, Any]] = None,
) -> T:
    """Run ``fn``; unexpected failures are logged and re-raised as :class:`AppError`.

    Technical details go to the log and the audit trail, never into the
    message surfaced to the player. ``context`` is merged into the audit
    metadata.
    """

    try:
        return fn()
    except (AppError, HTTPException):
        raise
    except Exception as exc:
        logger.exception("Unhandled exception: {}", friendly_message)
        if audit is not None:
            audit.log_event(
                "ERROR",
                before=None,
                after=None,
                reason="Unhandled exception",
                metadata={
                    **(context or {}),
                    "name": type(exc).__name__,
                    "message": str(exc),
                },
            )
        raise AppError("unexpected", friendly_message) from exc
