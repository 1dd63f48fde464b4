"""
Request dependencies: caller identity and per-user sessions.

Identity is supplied by the upstream auth layer through the X-User-Id,
X-User-Name and X-User-Role headers. Each user id maps to one SalesSession,
created on first request and kept for the life of the process.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional

from fastapi import Depends, Header, HTTPException

from domain.user import Actor, UserRole
from repositories.kv_store import FileKeyValueStore, KeyValueStore
from repositories.remote_repository import RemoteStore, SupabaseRemoteStore
from services.config import EngineConfig, load_config
from services.session_service import SalesSession

logger = logging.getLogger(__name__)


class SessionRegistry:
    def __init__(self, store: KeyValueStore, remote: RemoteStore, config: EngineConfig) -> None:
        self.store = store
        self.remote = remote
        self.config = config
        self._sessions: Dict[str, SalesSession] = {}

    def session_for(self, actor: Actor) -> SalesSession:
        """Return the actor's session, replacing it when the identity changed."""

        session = self._sessions.get(actor.user_id)
        if session is not None and session.actor != actor:
            logger.info("Identity changed; resetting session", extra={"user_id": actor.user_id})
            session.reset()
            session = None

        if session is None:
            session = SalesSession(actor, self.store, self.remote, config=self.config)
            self._sessions[actor.user_id] = session
        return session

    def sessions(self) -> Dict[str, SalesSession]:
        return dict(self._sessions)


_registry: Optional[SessionRegistry] = None


def get_registry() -> SessionRegistry:
    global _registry
    if _registry is None:
        config = load_config()
        _registry = SessionRegistry(
            FileKeyValueStore(config.storage_dir),
            SupabaseRemoteStore(),
            config,
        )
    return _registry


def get_actor(
    x_user_id: str = Header(..., description="Authenticated user id"),
    x_user_name: str = Header(..., description="Display name recorded in status history"),
    x_user_role: str = Header(..., description="ADMIN, MANAGER or SELLER"),
) -> Actor:
    try:
        role = UserRole(x_user_role.strip().upper())
    except ValueError:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid role. Must be ADMIN, MANAGER or SELLER, got '{x_user_role}'"
        )
    if not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing user id")
    return Actor(user_id=x_user_id.strip(), name=x_user_name.strip(), role=role)


def get_session(
    actor: Actor = Depends(get_actor),
    registry: SessionRegistry = Depends(get_registry),
) -> SalesSession:
    return registry.session_for(actor)


__all__ = ["SessionRegistry", "get_registry", "get_actor", "get_session"]
