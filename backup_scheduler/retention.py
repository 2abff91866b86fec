import os
import shutil
import time
from typing import List

from .logger import get_logger
from .metrics import RETENTION_FILES_DELETED_TOTAL
from .models import Schedule
from .utils import is_backup_artifact

logger = get_logger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60


def sweep_old_backups(schedule: Schedule, now: float = None) -> List[str]:
    """
    Deletes backup artifacts in the schedule's destination directory whose
    modification time is older than ``retention_days``. Only ``*.sql``,
    ``*.zip``, ``*.gz`` files and ``mongo_*`` directories are considered.

    Cleanup is best-effort: failures are logged and never raised. Returns the
    paths that were deleted.
    """
    if schedule.retention_days <= 0:
        return []  # Keep forever

    logger.info(f"Cleaning up backups older than {schedule.retention_days} days for schedule: {schedule.name}")
    now = time.time() if now is None else now
    cutoff = now - schedule.retention_days * SECONDS_PER_DAY
    deleted = []

    try:
        entries = list(os.scandir(schedule.destination_directory))
    except OSError as e:
        logger.error(f"Cleanup failed for schedule '{schedule.name}': {e}")
        return deleted

    for entry in entries:
        try:
            is_dir = entry.is_dir(follow_symlinks=False)
            if not is_backup_artifact(entry.name, is_dir):
                continue

            mtime = entry.stat(follow_symlinks=False).st_mtime
            if mtime >= cutoff:
                continue

            if is_dir:
                shutil.rmtree(entry.path)
            else:
                os.remove(entry.path)
            deleted.append(entry.path)
            logger.info(f"Deleted old backup: {entry.name} ({int((now - mtime) // SECONDS_PER_DAY)} days old)")
        except OSError as e:
            logger.error(f"Failed to process {entry.path}: {e}")

    if deleted:
        RETENTION_FILES_DELETED_TOTAL.labels(schedule_name=schedule.name).inc(len(deleted))
        logger.info(f"Cleanup completed: deleted {len(deleted)} old backup(s)")
    else:
        logger.info("No old backups to delete")
    return deleted
