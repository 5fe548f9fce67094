# src/bithab/sync.py
# per-user document <-> snapshot, with one ordered save queue per user.
# every write replaces the whole document
import asyncio
import contextlib
from datetime import date, datetime
from pydantic import BaseModel

from .calendar_math import clamp_month, normalize_date_key
from .db import DocumentStore
from .errors import InvalidDateKey
from .logger import get_logger
from .models import DEFAULT_COLOR, Activity, Goal, Snapshot, SubActivity, UiCursor, is_hex_color

logger = get_logger(__name__)

SCHEMA_VERSION = 2
UNTITLED = "Untitled"


class LoadResult(BaseModel):
    snapshot: Snapshot
    existed: bool = False
    failed: bool = False
    error: str | None = None


class SaveOutcome(BaseModel):
    ok: bool
    error: str | None = None


# -------------------------------
# DOCUMENT <-> SNAPSHOT
# -------------------------------
def snapshot_to_document(snapshot: Snapshot, include_ui: bool = True) -> dict:
    document = {
        "schemaVersion": SCHEMA_VERSION,
        "activities": [a.model_dump(by_alias=True) for a in snapshot.activities],
        "goals": [g.model_dump(by_alias=True) for g in snapshot.goals],
        "logs": {key: sorted(ids) for key, ids in sorted(snapshot.logs.items()) if ids},
    }
    if include_ui and snapshot.ui is not None:
        ui = snapshot.ui
        document["ui"] = {
            "selectedActivityId": ui.selected_activity_id,
            "visibleMonth": f"{ui.visible_year:04d}-{ui.visible_month + 1:02d}",
            "expandedActivities": sorted(ui.expanded_activity_ids),
        }
    return document


def _as_list(value, field: str) -> list:
    if value is None:
        return []
    if not isinstance(value, list):
        logger.warning(f"Document field {field!r} is not a list, ignoring it")
        return []
    return value


def _name_of(item: dict) -> str:
    name = item.get("name")
    return name.strip() if isinstance(name, str) and name.strip() else UNTITLED


def _parse_sub_activities(raw, seen: set[str]) -> list[SubActivity]:
    subs = []
    for item in _as_list(raw, "subActivities"):
        if not isinstance(item, dict) or not isinstance(item.get("id"), str) or item["id"] in seen:
            logger.warning(f"Dropping malformed sub-activity: {item!r}")
            continue
        color = item.get("color")
        if not is_hex_color(color):
            color = DEFAULT_COLOR
        seen.add(item["id"])
        subs.append(SubActivity(id=item["id"], name=_name_of(item), color=color))
    return subs


def _parse_activities(raw) -> list[Activity]:
    activities = []
    seen: set[str] = set()
    for item in _as_list(raw, "activities"):
        if not isinstance(item, dict) or not isinstance(item.get("id"), str) or item["id"] in seen:
            logger.warning(f"Dropping malformed activity: {item!r}")
            continue
        seen.add(item["id"])
        activities.append(Activity(
            id=item["id"],
            name=_name_of(item),
            sub_activities=_parse_sub_activities(item.get("subActivities"), seen),
        ))
    return activities


def _parse_goals(raw) -> list[Goal]:
    goals = []
    seen: set[str] = set()
    for item in _as_list(raw, "goals"):
        if not isinstance(item, dict) or not isinstance(item.get("id"), str) or item["id"] in seen:
            logger.warning(f"Dropping malformed goal: {item!r}")
            continue
        seen.add(item["id"])
        goals.append(Goal(id=item["id"], name=_name_of(item), completed=bool(item.get("completed", False))))
    return goals


def _parse_logs(raw, known_ids: set[str]) -> dict[str, list[str]]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        logger.warning("Document field 'logs' is not a mapping, ignoring it")
        return {}
    logs: dict[str, set[str]] = {}
    for key, ids in raw.items():
        try:
            canonical = normalize_date_key(key)
        except InvalidDateKey:
            logger.warning(f"Dropping log entry with bad date key {key!r}")
            continue
        if isinstance(ids, str):
            ids = [ids]
        # entries whose referent was deleted without pruning are dropped here
        kept = {i for i in _as_list(ids, f"logs.{key}") if i in known_ids}
        if kept:
            logs.setdefault(canonical, set()).update(kept)
    return {key: sorted(ids) for key, ids in sorted(logs.items())}


def _parse_month(ui: dict, today: date) -> tuple[int, int]:
    visible = ui.get("visibleMonth")
    if isinstance(visible, str):
        try:
            year, month = (int(p) for p in visible.split("-"))
            if date.min.year <= year <= date.max.year and 1 <= month <= 12:
                return clamp_month(year, month - 1)
            logger.warning(f"Ignoring out-of-range visibleMonth {visible!r}")
        except ValueError:
            pass
    current = ui.get("currentDate")
    if isinstance(current, str):
        try:
            parsed = datetime.fromisoformat(current.replace("Z", "+00:00"))
            return clamp_month(parsed.year, parsed.month - 1)
        except ValueError:
            pass
    return today.year, today.month - 1


def _parse_ui(raw, activity_ids: set[str], today: date) -> UiCursor | None:
    if not isinstance(raw, dict):
        return None
    selected = raw.get("selectedActivityId")
    year, month = _parse_month(raw, today)
    expanded = {i for i in _as_list(raw.get("expandedActivities"), "ui.expandedActivities") if i in activity_ids}
    return UiCursor(
        selected_activity_id=selected if isinstance(selected, str) else None,
        visible_year=year,
        visible_month=month,
        expanded_activity_ids=expanded,
    )


def document_to_snapshot(document, today: date | None = None) -> Snapshot:
    """Rebuild a snapshot, defaulting whatever fields are missing or malformed."""
    today = today or date.today()
    if not isinstance(document, dict):
        logger.warning(f"Remote document is not a mapping ({type(document).__name__}), using defaults")
        return Snapshot()
    activities = _parse_activities(document.get("activities"))
    activity_ids = {a.id for a in activities}
    known_ids = set(activity_ids)
    for activity in activities:
        known_ids.update(activity.sub_activity_ids())
    return Snapshot(
        activities=activities,
        goals=_parse_goals(document.get("goals")),
        logs=_parse_logs(document.get("logs"), known_ids),
        ui=_parse_ui(document.get("ui"), activity_ids, today),
    )


# -------------------------------
# SAVE QUEUE
# -------------------------------
class SaveQueue:
    """
    Writes documents for one user strictly in submission order.
    Documents still waiting when a newer one arrives are coalesced into it.
    """

    def __init__(self, user_id: str, documents: DocumentStore):
        self.user_id = user_id
        self.documents = documents
        self._pending: list[tuple[dict, asyncio.Future]] = []
        self._wakeup = asyncio.Event()
        self._idle = asyncio.Event()
        self._idle.set()
        self._task: asyncio.Task | None = None

    def submit(self, document: dict) -> asyncio.Future:
        future = asyncio.get_running_loop().create_future()
        self._pending.append((document, future))
        self._idle.clear()
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run())
        self._wakeup.set()
        return future

    async def _run(self):
        while True:
            await self._wakeup.wait()
            self._wakeup.clear()
            while self._pending:
                batch, self._pending = self._pending, []
                if len(batch) > 1:
                    logger.debug(f"Coalescing {len(batch)} saves for {self.user_id}")
                outcome = await self._write(batch[-1][0])
                for _, future in batch:
                    if not future.done():
                        future.set_result(outcome)
            self._idle.set()

    async def _write(self, document: dict) -> SaveOutcome:
        try:
            await asyncio.to_thread(self.documents.set, self.user_id, document)
        except Exception as e:
            logger.warning(f"Save failed for {self.user_id}: {e}")
            return SaveOutcome(ok=False, error=str(e))
        logger.debug(f"Saved document for {self.user_id}")
        return SaveOutcome(ok=True)

    async def flush(self):
        await self._idle.wait()

    async def close(self):
        await self.flush()
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None


# -------------------------------
# ENGINE
# -------------------------------
class SyncEngine:
    def __init__(self, documents: DocumentStore, persist_ui_cursor: bool = True):
        self.documents = documents
        self.persist_ui_cursor = persist_ui_cursor
        self._queues: dict[str, SaveQueue] = {}

    async def load(self, user_id: str, today: date | None = None) -> LoadResult:
        """Fetch the user's document. Absent or unreadable documents give an empty store."""
        try:
            document = await asyncio.to_thread(self.documents.get, user_id)
        except Exception as e:
            logger.error(f"Error loading state for {user_id}: {e}")
            return LoadResult(snapshot=Snapshot(), failed=True, error=str(e))
        if document is None:
            logger.info(f"No data found for {user_id}, starting fresh")
            return LoadResult(snapshot=Snapshot())
        snapshot = document_to_snapshot(document, today=today)
        if not self.persist_ui_cursor:
            snapshot.ui = None
        return LoadResult(snapshot=snapshot, existed=True)

    def save(self, user_id: str, snapshot: Snapshot) -> asyncio.Future:
        """Queue a whole-document write; the returned future resolves to a SaveOutcome."""
        document = snapshot_to_document(snapshot, include_ui=self.persist_ui_cursor)
        queue = self._queues.get(user_id)
        if queue is None:
            queue = self._queues[user_id] = SaveQueue(user_id, self.documents)
        return queue.submit(document)

    async def flush(self, user_id: str):
        queue = self._queues.get(user_id)
        if queue is not None:
            await queue.flush()

    async def close(self, user_id: str):
        queue = self._queues.pop(user_id, None)
        if queue is not None:
            await queue.close()
