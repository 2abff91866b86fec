import pytest

from backup_scheduler.config import load_settings, read_config_file, sync_static_config
from backup_scheduler.models import Connection

CONFIG = {
    "global": {"retention_days": 14, "compress": True, "destination_directory": "/srv/backups"},
    "connections": [
        {"id": "main-pg", "name": "Main", "kind": "postgres", "host": "db", "port": 5432,
         "username_var": "PG_USER", "password_var": "PG_PASS"},
        {"name": "No id", "kind": "mysql", "host": "db", "port": 3306},
    ],
    "schedules": [
        {"id": "nightly", "connection_id": "main-pg", "database": "app", "name": "Nightly",
         "frequency": "daily", "times": ["01:00", "13:00"]},
        {"id": "weekly", "connection_id": "main-pg", "database": "app", "name": "Weekly",
         "frequency": "weekly", "time": "03:00", "day_of_week": 0, "retention_days": 60,
         "destination_directory": "/srv/weekly"},
        {"id": "broken", "connection_id": "main-pg", "database": "app", "name": "Broken",
         "frequency": "yearly"},
    ],
}


def test_settings_defaults_and_overrides(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("settings:\n  data_dir: /var/lib/backups\n  restore_mode: true\n")

    settings = load_settings(str(config_file))

    assert settings["data_dir"] == "/var/lib/backups"
    assert settings["restore_mode"] is True
    assert settings["maintenance_time"] == "00:00"


def test_missing_or_broken_config_file_is_empty(tmp_path):
    broken = tmp_path / "broken.yaml"
    broken.write_text("settings: [unclosed\n")

    assert read_config_file(str(tmp_path / "absent.yaml")) == {}
    assert read_config_file(str(broken)) == {}


def test_sync_resolves_credentials_and_applies_global_defaults(store, monkeypatch):
    monkeypatch.setenv("PG_USER", "replicator")
    monkeypatch.setenv("PG_PASS", "s3cret")

    sync_static_config(store, CONFIG)

    connections = store.get("connections")
    assert [c.id for c in connections] == ["main-pg"]
    assert connections[0].username == "replicator"
    assert connections[0].password == "s3cret"

    nightly = store.get_schedule("nightly")
    assert nightly.retention_days == 14
    assert nightly.compress is True
    assert nightly.destination_directory == "/srv/backups"
    assert nightly.run_times() == ["01:00", "13:00"]

    weekly = store.get_schedule("weekly")
    assert weekly.retention_days == 60
    assert weekly.destination_directory == "/srv/weekly"

    assert store.get_schedule("broken") is None


def test_sync_overwrites_by_id_and_keeps_store_only_entries(store):
    store.set("connections", [
        Connection(id="main-pg", name="Old", kind="postgres", host="old", port=5432),
        Connection(id="manual", name="Added through the API", kind="mysql", host="m", port=3306),
    ])

    sync_static_config(store, {"connections": [CONFIG["connections"][0]]})

    connections = {c.id: c for c in store.get("connections")}
    assert connections["main-pg"].host == "db"
    assert "manual" in connections


def test_duplicate_ids_halt_the_sync(store):
    schedule = CONFIG["schedules"][0]

    with pytest.raises(ValueError, match="Duplicate schedules IDs"):
        sync_static_config(store, {"schedules": [schedule, dict(schedule)]})

    assert store.get("schedules") == []
