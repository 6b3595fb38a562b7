"""
Service Context

The collaborators every lifecycle operation needs, built once at startup
and passed explicitly into services and jobs.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from research_engine.core.clock import Clock
from research_engine.core.config import Settings
from research_engine.core.storage import ResumeStorage

if TYPE_CHECKING:
    from research_engine.modules.notifications.dispatcher import NotificationDispatcher


@dataclass
class ServiceContext:
    settings: Settings
    clock: Clock
    storage: ResumeStorage
    notifier: "NotificationDispatcher"
    session_factory: async_sessionmaker[AsyncSession]


def get_context(request: Request) -> ServiceContext:
    """FastAPI dependency returning the application's service context."""
    return request.app.state.context
