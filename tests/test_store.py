from backup_scheduler.database import create_store_engine
from backup_scheduler.models import HistoryRecord
from backup_scheduler.store import ConfigStore


def test_collections_survive_a_new_store(settings, connections, make_schedule):
    first = ConfigStore(create_store_engine(settings["data_dir"]))
    first.set("schedules", [make_schedule()])

    reopened = ConfigStore(create_store_engine(settings["data_dir"]))

    assert [c.id for c in reopened.get("connections")] == ["conn-mysql", "conn-pg", "conn-mongo"]
    assert reopened.get_schedule("sch-1").database == "shop"


def test_upsert_replaces_in_place(store, make_schedule):
    store.set("schedules", [make_schedule(id="a"), make_schedule(id="b")])

    store.upsert("schedules", make_schedule(id="a", database="renamed"))
    store.upsert("schedules", make_schedule(id="c"))

    assert [s.id for s in store.get("schedules")] == ["a", "b", "c"]
    assert store.get_schedule("a").database == "renamed"


def test_remove_reports_whether_anything_was_deleted(store, connections):
    assert store.remove("connections", "conn-pg") is True
    assert store.remove("connections", "conn-pg") is False
    assert store.get_connection("conn-pg") is None


def test_history_filter_and_clear(store):
    for schedule_id in ("a", "b", "a"):
        store.append_history(HistoryRecord(schedule_id=schedule_id, connection_id="c",
                                           backup_file="/tmp/x.sql", status="success"))

    assert len(store.list_history()) == 3
    assert {r.schedule_id for r in store.list_history("a")} == {"a"}
    assert len(store.list_history("a")) == 2

    store.clear_history()
    assert store.list_history() == []
