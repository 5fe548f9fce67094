# src/bithab/session.py
import asyncio
import time
from datetime import date
from pydantic import BaseModel

from .calendar_math import clamp_month
from .errors import SessionNotOpen
from .logger import get_logger
from .models import UiCursor
from .store import EntityStore
from .sync import SyncEngine

logger = get_logger(__name__)


class Notice(BaseModel):
    message: str
    level: str = "info"
    expires_at: float


class Session:
    """
    Everything one signed-in user works with: the entity store, the UI
    cursor and the sync engine writing it back. Opened on sign-in,
    closed on sign-out.
    """

    def __init__(self, user_id: str, store: EntityStore, cursor: UiCursor,
                 sync: SyncEngine, notice_ttl: float = 3.0, clock=time.monotonic):
        self.user_id = user_id
        self.store = store
        self.cursor = cursor
        self.sync = sync
        self.notice_ttl = notice_ttl
        self.clock = clock
        self.notices: list[Notice] = []
        self.closed = False

    @classmethod
    async def open(cls, user_id: str, sync: SyncEngine, notice_ttl: float = 3.0,
                   today: date | None = None, clock=time.monotonic) -> "Session":
        today = today or date.today()
        result = await sync.load(user_id, today=today)
        if result.snapshot.ui is not None:
            cursor = result.snapshot.ui
        else:
            year, month = clamp_month(today.year, today.month - 1)
            cursor = UiCursor(visible_year=year, visible_month=month)
        session = cls(user_id, EntityStore.from_snapshot(result.snapshot), cursor, sync,
                      notice_ttl=notice_ttl, clock=clock)
        session.heal_cursor()
        if result.failed:
            session.notify("Could not load your data. Changes will be saved once the connection recovers.", "error")
        logger.info(f"Session opened for {user_id} ({len(session.store.activities)} activities)")
        return session

    async def close(self):
        if self.closed:
            return
        self.closed = True
        await self.sync.close(self.user_id)
        logger.info(f"Session closed for {self.user_id}")

    # -------------------------------
    # CURSOR
    # -------------------------------
    def heal_cursor(self):
        """Point the selection at an existing activity (the first one) or at nothing."""
        cursor = self.cursor
        selected = cursor.selected_activity_id
        if not (selected and self.store.get_activity(selected)):
            if self.store.activities:
                cursor.selected_activity_id = self.store.activities[0].id
                cursor.expanded_activity_ids.add(cursor.selected_activity_id)
            else:
                cursor.selected_activity_id = None
        existing = {a.id for a in self.store.activities}
        cursor.expanded_activity_ids &= existing

    # -------------------------------
    # PERSISTENCE
    # -------------------------------
    def save(self):
        """Queue a write of the current state; failures turn into a notice."""
        snapshot = self.store.to_snapshot()
        snapshot.ui = self.cursor.model_copy(deep=True)
        future = self.sync.save(self.user_id, snapshot)
        future.add_done_callback(self._on_saved)
        return future

    def _on_saved(self, future):
        if future.cancelled():
            return
        outcome = future.result()
        if not outcome.ok:
            self.notify("Error saving!", "error")

    # -------------------------------
    # NOTICES
    # -------------------------------
    def notify(self, message: str, level: str = "info"):
        self.notices.append(Notice(message=message, level=level, expires_at=self.clock() + self.notice_ttl))

    def active_notices(self) -> list[Notice]:
        now = self.clock()
        self.notices = [n for n in self.notices if n.expires_at > now]
        return list(self.notices)


class SessionRegistry:
    """Open sessions by user id."""

    def __init__(self, sync: SyncEngine, notice_ttl: float = 3.0):
        self.sync = sync
        self.notice_ttl = notice_ttl
        self._sessions: dict[str, Session] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    async def open(self, user_id: str) -> Session:
        # concurrent opens for one user share a single load
        async with self._locks.setdefault(user_id, asyncio.Lock()):
            session = self._sessions.get(user_id)
            if session is None:
                session = await Session.open(user_id, self.sync, notice_ttl=self.notice_ttl)
                self._sessions[user_id] = session
            return session

    def get(self, user_id: str) -> Session:
        session = self._sessions.get(user_id)
        if session is None or session.closed:
            raise SessionNotOpen(f"No open session for {user_id}")
        return session

    async def close(self, user_id: str) -> bool:
        session = self._sessions.pop(user_id, None)
        if session is None:
            return False
        await session.close()
        return True

    async def close_all(self):
        for user_id in list(self._sessions):
            await self.close(user_id)
