"""BitHab: activities, calendar logs and goals synced to a per-user document."""

from .controller import Intent, InteractionController
from .session import Session, SessionRegistry
from .store import EntityStore
from .sync import SyncEngine

__all__ = [
    "EntityStore",
    "Intent",
    "InteractionController",
    "Session",
    "SessionRegistry",
    "SyncEngine",
]
