"""FastAPI dependency injection providers.

These are used with Depends() in route handlers to inject the engine, the
calling actor, and configuration.

Actor identity comes from the X-Actor-Role / X-Actor-Id headers, which the
upstream gateway sets after authenticating the user.
"""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Depends, Header, Request

from engagement_engine.bootstrap import EngagementEngine
from engagement_engine.config import Settings, get_settings
from engagement_engine.domain.enums import ActorRole
from engagement_engine.domain.exceptions import UnauthorizedError


@dataclass(frozen=True)
class Actor:
    role: ActorRole
    id: str


def get_engine(request: Request) -> EngagementEngine:
    """Provide the engine built at startup."""
    return request.app.state.engine


def get_actor(
    x_actor_role: str | None = Header(default=None),
    x_actor_id: str | None = Header(default=None),
) -> Actor:
    """Provide the calling actor, rejecting requests without one."""
    if not x_actor_role or not x_actor_id:
        raise UnauthorizedError(x_actor_role or "anonymous", "request", reason="missing_actor")
    try:
        role = ActorRole(x_actor_role)
    except ValueError:
        raise UnauthorizedError(x_actor_role, "request", reason="unknown_role") from None
    return Actor(role=role, id=x_actor_id)


def get_admin(actor: Actor = Depends(get_actor)) -> Actor:
    if actor.role != ActorRole.ADMIN:
        raise UnauthorizedError(actor.role.value, "admin")
    return actor


async def get_viewer(
    engagement_id: str,
    actor: Actor = Depends(get_actor),
    engine: EngagementEngine = Depends(get_engine),
) -> Actor:
    """Provide the actor if they may read this engagement (its parties or an admin)."""
    await engine.transitions.authorize_viewer(engagement_id, actor.role, actor.id)
    return actor


def get_app_settings() -> Settings:
    """Provide the application settings."""
    return get_settings()
