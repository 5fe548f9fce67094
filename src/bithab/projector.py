# src/bithab/projector.py
# store + UI cursor -> plain records for the presentation layer; read-only
from pydantic import BaseModel, Field, computed_field

from .calendar_math import WEEKDAY_NAMES, clamp_month, month_grid, month_title, normalize_date_key
from .models import Activity, UiCursor
from .store import EntityStore


class SubActivityRow(BaseModel):
    id: str
    name: str
    color: str


class ActivityRow(BaseModel):
    id: str
    name: str
    expanded: bool
    selected: bool
    sub_activities: list[SubActivityRow] = Field(default_factory=list)


class Dot(BaseModel):
    entity_id: str
    color: str | None = None

    @computed_field
    @property
    def logged_marker(self) -> bool:
        """A dot without color marks an activity logged on its own."""
        return self.color is None


class DayView(BaseModel):
    date_key: str
    day: int
    in_current_month: bool
    dots: list[Dot] = Field(default_factory=list)


class CalendarView(BaseModel):
    year: int
    month: int
    title: str
    activity_id: str
    activity_name: str
    weekdays: list[str] = Field(default_factory=lambda: list(WEEKDAY_NAMES))
    days: list[DayView]

    def day(self, date_key: str) -> DayView | None:
        key = normalize_date_key(date_key)
        return next((d for d in self.days if d.date_key == key), None)


class Pill(BaseModel):
    id: str
    name: str
    color: str | None = None
    selected: bool = False


class LogModal(BaseModel):
    date_key: str
    activity_id: str
    activity_name: str
    pills: list[Pill]


class GoalRow(BaseModel):
    id: str
    name: str
    completed: bool


class NoticeRow(BaseModel):
    message: str
    level: str


class View(BaseModel):
    user_id: str
    activities: list[ActivityRow]
    calendar: CalendarView | None = None
    goals: list[GoalRow]
    notices: list[NoticeRow] = Field(default_factory=list)


# -------------------------------
# PROJECTIONS
# -------------------------------
def selected_activity(store: EntityStore, cursor: UiCursor) -> Activity | None:
    if not cursor.selected_activity_id:
        return None
    return store.get_activity(cursor.selected_activity_id)


def project_activity_list(store: EntityStore, cursor: UiCursor) -> list[ActivityRow]:
    return [
        ActivityRow(
            id=activity.id,
            name=activity.name,
            expanded=activity.id in cursor.expanded_activity_ids,
            selected=activity.id == cursor.selected_activity_id,
            sub_activities=[SubActivityRow(id=s.id, name=s.name, color=s.color) for s in activity.sub_activities],
        )
        for activity in store.activities
    ]


def dots_for_date(store: EntityStore, activity: Activity, date_key: str) -> list[Dot]:
    """Dots follow the activity's sub-activity order, never the order things were logged."""
    logged = store.logged_ids(date_key)
    if not logged:
        return []
    if activity.sub_activities:
        return [Dot(entity_id=s.id, color=s.color) for s in activity.sub_activities if s.id in logged]
    if activity.id in logged:
        return [Dot(entity_id=activity.id)]
    return []


def project_calendar(store: EntityStore, cursor: UiCursor) -> CalendarView | None:
    activity = selected_activity(store, cursor)
    if activity is None:
        return None
    year, month = clamp_month(cursor.visible_year, cursor.visible_month)
    days = [
        DayView(
            date_key=cell.date_key,
            day=cell.day,
            in_current_month=cell.in_current_month,
            dots=dots_for_date(store, activity, cell.date_key),
        )
        for cell in month_grid(year, month)
    ]
    return CalendarView(
        year=year,
        month=month,
        title=month_title(year, month),
        activity_id=activity.id,
        activity_name=activity.name,
        days=days,
    )


def project_log_modal(store: EntityStore, cursor: UiCursor, date_key: str) -> LogModal | None:
    activity = selected_activity(store, cursor)
    if activity is None:
        return None
    key = normalize_date_key(date_key)
    logged = store.logged_ids(key)
    if activity.sub_activities:
        pills = [Pill(id=s.id, name=s.name, color=s.color, selected=s.id in logged)
                 for s in activity.sub_activities]
    else:
        pills = [Pill(id=activity.id, name=activity.name, selected=activity.id in logged)]
    return LogModal(date_key=key, activity_id=activity.id, activity_name=activity.name, pills=pills)


def project_goals(store: EntityStore) -> list[GoalRow]:
    return [GoalRow(id=g.id, name=g.name, completed=g.completed) for g in store.goals]


def project_view(session) -> View:
    return View(
        user_id=session.user_id,
        activities=project_activity_list(session.store, session.cursor),
        calendar=project_calendar(session.store, session.cursor),
        goals=project_goals(session.store),
        notices=[NoticeRow(message=n.message, level=n.level) for n in session.active_notices()],
    )
