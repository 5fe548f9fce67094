"""
Tests for the in-memory entity store.
"""

import pytest

from bithab.store import EntityStore


@pytest.fixture
def store():
    return EntityStore()


@pytest.fixture
def reading(store):
    activity = store.add_activity("Reading")
    fiction = store.add_sub_activity(activity.id, "Fiction", "#3B82F6")
    essays = store.add_sub_activity(activity.id, "Essays", "#10B981")
    return activity, fiction, essays


def test_add_activity_generates_unique_ids(store):
    ids = {store.add_activity(f"Habit {i}").id for i in range(50)}
    assert len(ids) == 50
    assert all(i.startswith("act_") for i in ids)
    assert [a.name for a in store.activities][:2] == ["Habit 0", "Habit 1"]


def test_names_are_stripped_and_required(store):
    assert store.add_activity("  Running ").name == "Running"
    with pytest.raises(ValueError):
        store.add_activity("   ")
    with pytest.raises(ValueError):
        store.add_goal("")


def test_add_sub_activity_unknown_parent_is_noop(store):
    assert store.add_sub_activity("act_missing", "Fiction", "#3B82F6") is None
    assert store.activities == []


def test_add_sub_activity_rejects_bad_color(store):
    activity = store.add_activity("Reading")
    with pytest.raises(ValueError):
        store.add_sub_activity(activity.id, "Fiction", "blue")
    assert activity.sub_activities == []


def test_toggle_log_parity(store, reading):
    _, fiction, essays = reading
    store.toggle_log("2025-06-15", essays.id)
    before = store.logged_ids("2025-06-15")

    for _ in range(4):
        store.toggle_log("2025-06-15", fiction.id)
    assert store.logged_ids("2025-06-15") == before

    for _ in range(3):
        store.toggle_log("2025-06-15", fiction.id)
    assert store.logged_ids("2025-06-15") == before | {fiction.id}


def test_empty_dates_are_removed(store, reading):
    _, fiction, _ = reading
    assert store.toggle_log("2025-06-15", fiction.id) is True
    assert "2025-06-15" in store.logs
    assert store.toggle_log("2025-06-15", fiction.id) is False
    assert "2025-06-15" not in store.logs


def test_toggle_log_canonicalizes_legacy_keys(store, reading):
    _, fiction, _ = reading
    store.toggle_log("2025-6-5", fiction.id)
    assert list(store.logs) == ["2025-06-05"]
    store.toggle_log("2025-06-05", fiction.id)
    assert store.logs == {}


def test_toggle_log_ignores_unloggable_ids(store, reading):
    activity, _, _ = reading
    # an activity with sub-activities is logged through them
    assert store.toggle_log("2025-06-15", activity.id) is None
    assert store.toggle_log("2025-06-15", "sub_missing") is None
    assert store.logs == {}


def test_activity_without_sub_activities_logs_itself(store):
    activity = store.add_activity("Meditate")
    assert store.toggle_log("2025-06-15", activity.id) is True
    assert store.logged_ids("2025-06-15") == {activity.id}


def test_remove_activity_cascades(store, reading):
    activity, fiction, essays = reading
    other = store.add_activity("Gym")
    store.toggle_log("2025-06-01", fiction.id)
    store.toggle_log("2025-06-01", other.id)
    store.toggle_log("2025-06-02", essays.id)

    assert store.remove_activity(activity.id) is True

    assert store.get_activity(activity.id) is None
    assert store.logs == {"2025-06-01": {other.id}}
    for ids in store.logs.values():
        assert not ids & {activity.id, fiction.id, essays.id}


def test_remove_sub_activity_cascades(store, reading):
    activity, fiction, essays = reading
    store.toggle_log("2025-06-01", fiction.id)
    store.toggle_log("2025-06-01", essays.id)
    store.toggle_log("2025-06-02", fiction.id)

    assert store.remove_sub_activity(activity.id, fiction.id) is True

    assert [s.id for s in activity.sub_activities] == [essays.id]
    assert store.logs == {"2025-06-01": {essays.id}}


def test_removals_of_unknown_ids_are_noops(store, reading):
    activity, fiction, _ = reading
    assert store.remove_activity("act_missing") is False
    assert store.remove_sub_activity("act_missing", fiction.id) is False
    assert store.remove_sub_activity(activity.id, "sub_missing") is False
    assert store.remove_goal("goal_missing") is False
    assert store.toggle_goal("goal_missing") is None
    assert len(activity.sub_activities) == 2


def test_goal_toggles(store):
    goal = store.add_goal("Run 5k")
    assert goal.completed is False
    assert store.toggle_goal(goal.id).completed is True
    assert store.toggle_goal(goal.id).completed is False
    assert store.remove_goal(goal.id) is True
    assert store.goals == []


def test_snapshot_round_trip(store, reading):
    _, fiction, essays = reading
    store.add_goal("Run 5k")
    store.toggle_log("2025-06-01", essays.id)
    store.toggle_log("2025-06-01", fiction.id)

    snapshot = store.to_snapshot()
    assert snapshot.logs == {"2025-06-01": sorted([fiction.id, essays.id])}

    copy = EntityStore.from_snapshot(snapshot)
    assert copy.to_snapshot() == snapshot
    # snapshots do not share entities with the live store
    copy.activities[0].name = "Changed"
    assert store.activities[0].name == "Reading"
