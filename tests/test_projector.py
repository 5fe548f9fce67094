"""
Tests for the view projections: activity rows, calendar dots, log modal.
"""

from bithab.models import UiCursor
from bithab.projector import (
    dots_for_date,
    project_activity_list,
    project_calendar,
    project_goals,
    project_log_modal,
)
from bithab.store import EntityStore


def june_2025(selected=None, expanded=()):
    return UiCursor(selected_activity_id=selected, visible_year=2025, visible_month=5,
                    expanded_activity_ids=set(expanded))


def test_single_logged_sub_activity_renders_one_dot():
    store = EntityStore()
    reading = store.add_activity("Reading")
    fiction = store.add_sub_activity(reading.id, "Fiction", "#3B82F6")
    store.toggle_log("2025-6-15", fiction.id)

    calendar_view = project_calendar(store, june_2025(reading.id))

    day = calendar_view.day("2025-06-15")
    assert day.in_current_month
    assert [d.color for d in day.dots] == ["#3B82F6"]
    assert calendar_view.title == "June 2025"
    assert calendar_view.activity_name == "Reading"


def test_dots_follow_sub_activity_order_not_log_order():
    store = EntityStore()
    activity = store.add_activity("A")
    x = store.add_sub_activity(activity.id, "X", "#FF0000")
    y = store.add_sub_activity(activity.id, "Y", "#00FF00")
    store.toggle_log("2025-06-10", y.id)
    store.toggle_log("2025-06-10", x.id)

    assert [d.entity_id for d in dots_for_date(store, activity, "2025-06-10")] == [x.id, y.id]


def test_removing_sub_activity_removes_its_dot():
    store = EntityStore()
    activity = store.add_activity("A")
    x = store.add_sub_activity(activity.id, "X", "#FF0000")
    y = store.add_sub_activity(activity.id, "Y", "#00FF00")
    store.toggle_log("2025-06-10", x.id)
    store.toggle_log("2025-06-10", y.id)

    store.remove_sub_activity(activity.id, x.id)

    day = project_calendar(store, june_2025(activity.id)).day("2025-06-10")
    assert [d.color for d in day.dots] == ["#00FF00"]


def test_activity_without_sub_activities_gets_marker_dot():
    store = EntityStore()
    meditate = store.add_activity("Meditate")
    store.toggle_log("2025-06-03", meditate.id)

    dots = project_calendar(store, june_2025(meditate.id)).day("2025-06-03").dots

    assert len(dots) == 1
    assert dots[0].color is None
    assert dots[0].logged_marker
    assert dots[0].model_dump()["logged_marker"] is True


def test_logged_activity_id_hidden_while_it_has_sub_activities():
    store = EntityStore()
    activity = store.add_activity("Run")
    store.toggle_log("2025-06-03", activity.id)
    sub = store.add_sub_activity(activity.id, "Trail", "#123456")

    assert dots_for_date(store, activity, "2025-06-03") == []
    store.remove_sub_activity(activity.id, sub.id)
    assert dots_for_date(store, activity, "2025-06-03")[0].logged_marker


def test_only_selected_activity_contributes_dots():
    store = EntityStore()
    a = store.add_activity("A")
    b = store.add_activity("B")
    xa = store.add_sub_activity(a.id, "X", "#FF0000")
    store.toggle_log("2025-06-10", xa.id)
    store.toggle_log("2025-06-10", b.id)

    day = project_calendar(store, june_2025(b.id)).day("2025-06-10")
    assert [d.entity_id for d in day.dots] == [b.id]


def test_padding_days_carry_dots():
    store = EntityStore()
    activity = store.add_activity("A")
    store.toggle_log("2025-05-31", activity.id)

    calendar_view = project_calendar(store, june_2025(activity.id))

    # June 2025 starts on a Sunday, so May 31 is not on the grid; July 1 is
    assert calendar_view.day("2025-05-31") is None
    store.toggle_log("2025-07-01", activity.id)
    calendar_view = project_calendar(store, june_2025(activity.id))
    july_first = calendar_view.day("2025-07-01")
    assert not july_first.in_current_month
    assert len(july_first.dots) == 1


def test_no_selection_means_no_calendar():
    store = EntityStore()
    store.add_activity("A")
    assert project_calendar(store, june_2025()) is None
    assert project_calendar(store, june_2025("act_missing")) is None


def test_calendar_days_and_weekdays():
    store = EntityStore()
    activity = store.add_activity("A")
    calendar_view = project_calendar(store, june_2025(activity.id))
    assert len(calendar_view.days) == 42
    assert calendar_view.weekdays[0] == "Sun"
    assert calendar_view.days[0].date_key == "2025-06-01"


def test_calendar_past_the_last_drawable_month():
    store = EntityStore()
    activity = store.add_activity("A")
    cursor = UiCursor(selected_activity_id=activity.id, visible_year=9999, visible_month=11)

    calendar_view = project_calendar(store, cursor)

    assert (calendar_view.year, calendar_view.month) == (9999, 10)
    assert calendar_view.title == "November 9999"


def test_activity_list_flags():
    store = EntityStore()
    a = store.add_activity("A")
    b = store.add_activity("B")
    store.add_sub_activity(b.id, "X", "#FF0000")

    rows = project_activity_list(store, june_2025(b.id, expanded=[a.id]))

    assert [(r.name, r.selected, r.expanded) for r in rows] == [("A", False, True), ("B", True, False)]
    assert rows[1].sub_activities[0].color == "#FF0000"


def test_log_modal_pills():
    store = EntityStore()
    activity = store.add_activity("Reading")
    fiction = store.add_sub_activity(activity.id, "Fiction", "#3B82F6")
    poetry = store.add_sub_activity(activity.id, "Poetry", "#F59E0B")
    store.toggle_log("2025-06-15", poetry.id)

    modal = project_log_modal(store, june_2025(activity.id), "2025-6-15")

    assert modal.date_key == "2025-06-15"
    assert [(p.id, p.selected) for p in modal.pills] == [(fiction.id, False), (poetry.id, True)]


def test_log_modal_for_activity_without_sub_activities():
    store = EntityStore()
    activity = store.add_activity("Meditate")
    modal = project_log_modal(store, june_2025(activity.id), "2025-06-15")
    assert [(p.id, p.color, p.selected) for p in modal.pills] == [(activity.id, None, False)]


def test_goals_projection():
    store = EntityStore()
    goal = store.add_goal("Run 5k")
    store.toggle_goal(goal.id)
    assert [(g.name, g.completed) for g in project_goals(store)] == [("Run 5k", True)]
