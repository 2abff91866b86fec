import os
import pytest
from types import SimpleNamespace

from backup_scheduler.database import create_store_engine
from backup_scheduler.models import Connection, Schedule
from backup_scheduler.process import ProcessResult
from backup_scheduler.store import ConfigStore


@pytest.fixture
def settings(tmp_path):
    return {
        "data_dir": str(tmp_path / "data"),
        "tools_dir": str(tmp_path / "bin"),
        "timezone": "UTC",
        "maintenance_time": "00:00",
        "restore_mode": True,
        "log_level": "DEBUG",
    }


@pytest.fixture
def store(settings):
    return ConfigStore(create_store_engine(settings["data_dir"]))


@pytest.fixture
def connections(store):
    """One saved connection per database kind."""
    items = {
        "mysql": Connection(id="conn-mysql", name="Shop MySQL", kind="mysql", host="mysql.local",
                            port=3306, username="backup", password="my-secret"),
        "postgres": Connection(id="conn-pg", name="Billing", kind="postgres", host="pg.local",
                               port=5432, username="postgres", password="pg-secret"),
        "mongo": Connection(id="conn-mongo", name="Events", kind="mongo", host="mongo.local",
                            port=27017, username="root", password="mongo-secret"),
    }
    store.set("connections", list(items.values()))
    return items


@pytest.fixture
def make_schedule(tmp_path):
    def _make(**overrides):
        values = {
            "id": "sch-1",
            "connection_id": "conn-mysql",
            "database": "shop",
            "name": "Shop nightly",
            "frequency": "daily",
            "time": "00:00",
            "destination_directory": str(tmp_path / "backups"),
            "retention_days": 0,
            "compress": False,
        }
        values.update(overrides)
        return Schedule(**values)
    return _make


class FakeRunner:
    """Stands in for run_process and fakes what each dump tool writes to disk."""

    def __init__(self, returncode=0, stderr="", output=b"-- dump\nCREATE TABLE t (id int);\n", partial=False):
        self.returncode = returncode
        self.stderr = stderr
        self.output = output
        # a failing tool may still leave output behind
        self.partial = partial
        self.calls = []

    async def __call__(self, args, env=None, stdout_path=None, secrets=()):
        args = [str(arg) for arg in args]
        self.calls.append(SimpleNamespace(args=args, env=env, stdout_path=stdout_path, secrets=secrets))
        if self.returncode == 0 or self.partial:
            if stdout_path:
                with open(stdout_path, "wb") as f:
                    f.write(self.output)
            elif "-f" in args:
                with open(args[args.index("-f") + 1], "wb") as f:
                    f.write(self.output)
            elif "--out" in args:
                db_dir = os.path.join(args[args.index("--out") + 1], args[args.index("--db") + 1])
                os.makedirs(db_dir)
                with open(os.path.join(db_dir, "events.bson"), "wb") as f:
                    f.write(b"\x16\x00\x00\x00")
        return ProcessResult(args=args, returncode=self.returncode, stderr=self.stderr)


@pytest.fixture
def fake_runner():
    return FakeRunner()
