# src/bithab/store.py
import uuid

from .calendar_math import normalize_date_key
from .models import Activity, Goal, Snapshot, SubActivity


def _clean_name(name: str, what: str) -> str:
    name = (name or "").strip()
    if not name:
        raise ValueError(f"{what} name cannot be empty.")
    return name


class EntityStore:
    """
    In-memory activities, goals and the log index (date key -> set of ids).

    Every method runs to completion without I/O; persisting the result is
    the sync engine's job.
    """

    def __init__(self):
        self.activities: list[Activity] = []
        self.goals: list[Goal] = []
        self.logs: dict[str, set[str]] = {}

    # -------------------------------
    # IDS & LOOKUPS
    # -------------------------------
    def _all_ids(self) -> set[str]:
        ids = {g.id for g in self.goals}
        for activity in self.activities:
            ids.add(activity.id)
            ids.update(activity.sub_activity_ids())
        return ids

    def _new_id(self, prefix: str) -> str:
        taken = self._all_ids()
        while True:
            candidate = f"{prefix}_{uuid.uuid4().hex[:12]}"
            if candidate not in taken:
                return candidate

    def get_activity(self, activity_id: str) -> Activity | None:
        return next((a for a in self.activities if a.id == activity_id), None)

    def get_goal(self, goal_id: str) -> Goal | None:
        return next((g for g in self.goals if g.id == goal_id), None)

    def find_sub_activity(self, sub_id: str) -> tuple[Activity, SubActivity] | None:
        for activity in self.activities:
            for sub in activity.sub_activities:
                if sub.id == sub_id:
                    return activity, sub
        return None

    def is_loggable(self, entity_id: str) -> bool:
        """Sub-activities are loggable, and so are activities without any."""
        if self.find_sub_activity(entity_id):
            return True
        activity = self.get_activity(entity_id)
        return activity is not None and not activity.sub_activities

    def logged_ids(self, date_key: str) -> frozenset[str]:
        return frozenset(self.logs.get(normalize_date_key(date_key), ()))

    # -------------------------------
    # ACTIVITIES
    # -------------------------------
    def add_activity(self, name: str) -> Activity:
        activity = Activity(id=self._new_id("act"), name=_clean_name(name, "Activity"))
        self.activities.append(activity)
        return activity

    def remove_activity(self, activity_id: str) -> bool:
        activity = self.get_activity(activity_id)
        if activity is None:
            return False
        self.activities = [a for a in self.activities if a.id != activity_id]
        self._prune_logs({activity.id} | activity.sub_activity_ids())
        return True

    def add_sub_activity(self, activity_id: str, name: str, color: str) -> SubActivity | None:
        activity = self.get_activity(activity_id)
        if activity is None:
            return None
        sub = SubActivity(id=self._new_id("sub"), name=_clean_name(name, "Sub-activity"), color=color)
        activity.sub_activities.append(sub)
        return sub

    def remove_sub_activity(self, activity_id: str, sub_id: str) -> bool:
        activity = self.get_activity(activity_id)
        if activity is None or sub_id not in activity.sub_activity_ids():
            return False
        activity.sub_activities = [s for s in activity.sub_activities if s.id != sub_id]
        self._prune_logs({sub_id})
        return True

    # -------------------------------
    # GOALS
    # -------------------------------
    def add_goal(self, name: str) -> Goal:
        goal = Goal(id=self._new_id("goal"), name=_clean_name(name, "Goal"))
        self.goals.append(goal)
        return goal

    def toggle_goal(self, goal_id: str) -> Goal | None:
        goal = self.get_goal(goal_id)
        if goal is not None:
            goal.completed = not goal.completed
        return goal

    def remove_goal(self, goal_id: str) -> bool:
        before = len(self.goals)
        self.goals = [g for g in self.goals if g.id != goal_id]
        return len(self.goals) != before

    # -------------------------------
    # LOG INDEX
    # -------------------------------
    def toggle_log(self, date_key: str, entity_id: str) -> bool | None:
        """
        Flip membership of entity_id on the given day.
        Returns the new membership, or None when the id cannot be logged.
        """
        key = normalize_date_key(date_key)
        logged = self.logs.get(key, set())
        if entity_id in logged:
            logged.discard(entity_id)
            if not logged:
                del self.logs[key]
            return False
        if not self.is_loggable(entity_id):
            return None
        self.logs.setdefault(key, set()).add(entity_id)
        return True

    def _prune_logs(self, ids: set[str]) -> None:
        pruned = {}
        for key, logged in self.logs.items():
            remaining = logged - ids
            if remaining:
                pruned[key] = remaining
        self.logs = pruned

    # -------------------------------
    # SNAPSHOTS
    # -------------------------------
    def to_snapshot(self) -> Snapshot:
        return Snapshot(
            activities=[a.model_copy(deep=True) for a in self.activities],
            goals=[g.model_copy() for g in self.goals],
            logs={key: sorted(self.logs[key]) for key in sorted(self.logs)},
        )

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot) -> "EntityStore":
        store = cls()
        store.activities = [a.model_copy(deep=True) for a in snapshot.activities]
        store.goals = [g.model_copy() for g in snapshot.goals]
        for key, ids in snapshot.logs.items():
            if ids:
                store.logs.setdefault(normalize_date_key(key), set()).update(ids)
        return store
