# src/bithab/controller.py
from datetime import date
from pydantic import BaseModel, Field

from .calendar_math import clamp_month, shift_month
from .logger import get_logger
from .projector import project_log_modal, selected_activity
from .session import Session

logger = get_logger(__name__)


class Intent(BaseModel):
    kind: str
    payload: dict = Field(default_factory=dict)


def _confirmed(payload: dict) -> bool:
    return payload.get("confirmed") is True


class InteractionController:
    """
    Applies user intents to a session: mutate the store, queue a save,
    and let the caller re-project the view.
    """

    def __init__(self, session: Session, today=date.today):
        self.session = session
        self.today = today
        self.handlers = {
            "select-activity": self.select_activity,
            "toggle-expand": self.toggle_expand,
            "add-activity": self.add_activity,
            "remove-activity": self.remove_activity,
            "add-sub-activity": self.add_sub_activity,
            "remove-sub-activity": self.remove_sub_activity,
            "add-goal": self.add_goal,
            "toggle-goal": self.toggle_goal,
            "remove-goal": self.remove_goal,
            "open-day": self.open_day,
            "toggle-log": self.toggle_log,
            "prev-month": self.prev_month,
            "next-month": self.next_month,
            "today": self.go_to_today,
            "sign-out": self.sign_out,
        }

    @property
    def store(self):
        return self.session.store

    @property
    def cursor(self):
        return self.session.cursor

    async def dispatch(self, intent: Intent) -> dict:
        handler = self.handlers.get(intent.kind)
        if handler is None:
            return {"success": False, "error": f"Unknown intent: {intent.kind}"}
        if self.session.closed:
            return {"success": False, "error": "Session is closed."}
        try:
            return await handler(intent.payload)
        except ValueError as e:
            return {"success": False, "error": str(e)}

    def _changed(self, **extra) -> dict:
        """Heal the cursor after a business mutation and queue the write."""
        self.session.heal_cursor()
        self.session.save()
        return {"success": True, **extra}

    def _cursor_moved(self, **extra) -> dict:
        if self.session.sync.persist_ui_cursor:
            self.session.save()
        return {"success": True, **extra}

    # -------------------------------
    # ACTIVITIES
    # -------------------------------
    async def select_activity(self, payload: dict) -> dict:
        activity_id = payload.get("activity_id")
        if self.store.get_activity(activity_id) is None:
            return {"success": False, "error": "Activity not found."}
        if self.cursor.selected_activity_id != activity_id:
            self.cursor.selected_activity_id = activity_id
        else:
            self.cursor.expanded_activity_ids ^= {activity_id}
        return self._cursor_moved()

    async def toggle_expand(self, payload: dict) -> dict:
        activity_id = payload.get("activity_id")
        if self.store.get_activity(activity_id) is None:
            return {"success": False, "error": "Activity not found."}
        self.cursor.expanded_activity_ids ^= {activity_id}
        return self._cursor_moved()

    async def add_activity(self, payload: dict) -> dict:
        activity = self.store.add_activity(payload.get("name", ""))
        self.cursor.selected_activity_id = activity.id
        self.cursor.expanded_activity_ids.add(activity.id)
        return self._changed(activity_id=activity.id)

    async def remove_activity(self, payload: dict) -> dict:
        activity = self.store.get_activity(payload.get("activity_id"))
        if activity is None:
            return {"success": False, "error": "Activity not found."}
        if not _confirmed(payload):
            return {"success": False,
                    "confirm": f'Are you sure you want to delete "{activity.name}" and all its data? '
                               "This action cannot be undone."}
        self.store.remove_activity(activity.id)
        self.cursor.expanded_activity_ids.discard(activity.id)
        return self._changed()

    async def add_sub_activity(self, payload: dict) -> dict:
        sub = self.store.add_sub_activity(payload.get("activity_id"), payload.get("name", ""),
                                          payload.get("color", "#3B82F6"))
        if sub is None:
            return {"success": False, "error": "Activity not found."}
        return self._changed(sub_activity_id=sub.id)

    async def remove_sub_activity(self, payload: dict) -> dict:
        activity = self.store.get_activity(payload.get("activity_id"))
        sub_id = payload.get("sub_activity_id")
        sub = next((s for s in activity.sub_activities if s.id == sub_id), None) if activity else None
        if sub is None:
            return {"success": False, "error": "Sub-activity not found."}
        if not _confirmed(payload):
            return {"success": False,
                    "confirm": f'Are you sure you want to delete sub-activity "{sub.name}" and its logged data? '
                               "This action cannot be undone."}
        self.store.remove_sub_activity(activity.id, sub.id)
        return self._changed()

    # -------------------------------
    # GOALS
    # -------------------------------
    async def add_goal(self, payload: dict) -> dict:
        goal = self.store.add_goal(payload.get("name", ""))
        return self._changed(goal_id=goal.id)

    async def toggle_goal(self, payload: dict) -> dict:
        goal = self.store.toggle_goal(payload.get("goal_id"))
        if goal is None:
            return {"success": False, "error": "Goal not found."}
        return self._changed(completed=goal.completed)

    async def remove_goal(self, payload: dict) -> dict:
        goal = self.store.get_goal(payload.get("goal_id"))
        if goal is None:
            return {"success": False, "error": "Goal not found."}
        if not _confirmed(payload):
            return {"success": False, "confirm": f'Are you sure you want to delete goal "{goal.name}"?'}
        self.store.remove_goal(goal.id)
        return self._changed()

    # -------------------------------
    # CALENDAR
    # -------------------------------
    async def open_day(self, payload: dict) -> dict:
        modal = project_log_modal(self.store, self.cursor, payload.get("date_key", ""))
        if modal is None:
            return {"success": False, "error": "Select an activity to log."}
        return {"success": True, "modal": modal.model_dump()}

    async def toggle_log(self, payload: dict) -> dict:
        activity = selected_activity(self.store, self.cursor)
        entity_id = payload.get("entity_id")
        if activity is None:
            return {"success": False, "error": "Select an activity to log."}
        if entity_id != activity.id and entity_id not in activity.sub_activity_ids():
            return {"success": False, "error": "Nothing to log with that id for this activity."}
        logged = self.store.toggle_log(payload.get("date_key", ""), entity_id)
        if logged is None:
            return {"success": False, "error": "Nothing to log with that id for this activity."}
        return self._changed(logged=logged)

    async def _move_month(self, delta: int) -> dict:
        year, month = shift_month(self.cursor.visible_year, self.cursor.visible_month, delta)
        self.cursor.visible_year, self.cursor.visible_month = year, month
        return self._cursor_moved()

    async def prev_month(self, payload: dict) -> dict:
        return await self._move_month(-1)

    async def next_month(self, payload: dict) -> dict:
        return await self._move_month(1)

    async def go_to_today(self, payload: dict) -> dict:
        today = self.today()
        self.cursor.visible_year, self.cursor.visible_month = clamp_month(today.year, today.month - 1)
        return self._cursor_moved()

    # -------------------------------
    # SESSION
    # -------------------------------
    async def sign_out(self, payload: dict) -> dict:
        if not _confirmed(payload):
            return {"success": False, "confirm": "Are you sure you want to logout?"}
        await self.session.close()
        logger.info(f"{self.session.user_id} signed out")
        return {"success": True, "signed_out": True}
