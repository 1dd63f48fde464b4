"""
Race-against-timeout wrapper for remote calls.

Every suspension point that talks to the remote store goes through
call_remote. A timeout or transport error becomes RemoteUnavailable; local
state is never touched by this module, so an aborted call fails closed to
local-only mode.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, TypeVar

from domain.errors import RemoteUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def call_remote(awaitable: Awaitable[T], *, timeout: float, operation: str) -> T:
    """
    Await a remote operation with a deadline.

    Raises:
        RemoteUnavailable: the call timed out or failed.
    """

    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as exc:
        logger.warning(
            "Remote call timed out",
            extra={"operation": operation, "timeout_seconds": timeout},
        )
        raise RemoteUnavailable(f"{operation} timed out after {timeout}s") from exc
    except RemoteUnavailable:
        raise
    except Exception as exc:
        logger.warning(
            "Remote call failed",
            extra={"operation": operation, "error": str(exc)},
        )
        raise RemoteUnavailable(f"{operation} failed: {exc}") from exc


__all__ = ["call_remote"]
