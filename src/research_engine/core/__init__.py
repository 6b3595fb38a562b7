"""
Core module - Configuration, database, errors, infrastructure adapters.
"""

from research_engine.core.clock import Clock, SystemClock
from research_engine.core.config import Settings, get_settings, settings
from research_engine.core.context import ServiceContext, get_context
from research_engine.core.database import Base, close_db, get_db, init_db

__all__ = [
    # Config
    "Settings",
    "settings",
    "get_settings",
    # Clock
    "Clock",
    "SystemClock",
    # Context
    "ServiceContext",
    "get_context",
    # Database
    "Base",
    "get_db",
    "init_db",
    "close_db",
]
