import re
from datetime import datetime, timezone

ARTIFACT_SUFFIXES = (".sql", ".zip", ".gz")
MONGO_DIR_PREFIX = "mongo_"
MONGO_AUTH_DATABASE = "admin"


def filename_timestamp(now: datetime = None) -> str:
    """
    Renders an instant as a filesystem-safe, sortable string such as
    ``2024-05-01T13-45-07``. Sub-second precision is dropped.
    """
    now = now or datetime.now(timezone.utc)
    return re.sub(r"[:.]", "-", now.replace(microsecond=0).isoformat())[:19]


def is_backup_artifact(name: str, is_dir: bool) -> bool:
    if is_dir:
        return name.startswith(MONGO_DIR_PREFIX)
    return name.endswith(ARTIFACT_SUFFIXES)


def redact(args, secrets) -> str:
    """Joins a command line for logging with every secret replaced."""
    secrets = [s for s in secrets if s]
    rendered = []
    for arg in args:
        for secret in secrets:
            arg = arg.replace(secret, "<REDACTED>")
        rendered.append(arg)
    return " ".join(rendered)


def mongo_auth_args(username: str, password: str, auth_database: str = MONGO_AUTH_DATABASE) -> list:
    """mongodump/mongorestore credential flags; empty when no username is configured."""
    if not username:
        return []
    return ["--username", username, "--password", password or "", "--authenticationDatabase", auth_database]
