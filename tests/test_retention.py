import os
import time

from backup_scheduler import retention
from backup_scheduler.retention import sweep_old_backups, SECONDS_PER_DAY

NOW = time.time()


def _age(path, days):
    stamp = NOW - days * SECONDS_PER_DAY
    os.utime(path, (stamp, stamp))


def _backup_dir(tmp_path):
    directory = tmp_path / "backups"
    directory.mkdir()
    return directory


def test_young_backup_survives_and_old_one_is_deleted(tmp_path, make_schedule):
    directory = _backup_dir(tmp_path)
    young = directory / "shop_young.sql"
    old = directory / "shop_old.sql"
    young.write_text("x")
    old.write_text("x")
    _age(young, 2)
    _age(old, 10)

    deleted = sweep_old_backups(make_schedule(retention_days=7), now=NOW)

    assert young.exists()
    assert not old.exists()
    assert deleted == [str(old)]


def test_zero_retention_keeps_everything(tmp_path, make_schedule):
    directory = _backup_dir(tmp_path)
    ancient = directory / "shop_ancient.sql.gz"
    ancient.write_text("x")
    _age(ancient, 400)

    assert sweep_old_backups(make_schedule(retention_days=0), now=NOW) == []
    assert ancient.exists()


def test_only_backup_artifacts_are_considered(tmp_path, make_schedule):
    directory = _backup_dir(tmp_path)
    notes = directory / "notes.txt"
    archive = directory / "mongo_2020.zip"
    mongo_dir = directory / "mongo_2020-01-01T00-00-00"
    other_dir = directory / "keep"
    notes.write_text("x")
    archive.write_text("x")
    (mongo_dir / "events").mkdir(parents=True)
    (mongo_dir / "events" / "a.bson").write_text("x")
    other_dir.mkdir()
    for path in (notes, archive, mongo_dir, other_dir):
        _age(path, 30)

    sweep_old_backups(make_schedule(retention_days=7), now=NOW)

    assert notes.exists()
    assert other_dir.exists()
    assert not archive.exists()
    assert not mongo_dir.exists()


def test_failure_on_one_entry_does_not_stop_the_sweep(tmp_path, make_schedule, monkeypatch):
    directory = _backup_dir(tmp_path)
    stuck = directory / "a_stuck.sql"
    stale = directory / "b_stale.sql"
    for path in (stuck, stale):
        path.write_text("x")
        _age(path, 30)

    real_remove = os.remove

    def flaky_remove(path):
        if path.endswith("a_stuck.sql"):
            raise PermissionError("locked")
        real_remove(path)

    monkeypatch.setattr(retention.os, "remove", flaky_remove)

    deleted = sweep_old_backups(make_schedule(retention_days=7), now=NOW)

    assert stuck.exists()
    assert not stale.exists()
    assert deleted == [str(stale)]


def test_missing_directory_is_not_an_error(tmp_path, make_schedule):
    schedule = make_schedule(retention_days=7, destination_directory=str(tmp_path / "nowhere"))

    assert sweep_old_backups(schedule, now=NOW) == []
