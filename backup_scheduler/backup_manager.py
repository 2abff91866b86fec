import asyncio
import os
import shutil
import time
from typing import Optional

from .archive import gzip_file, zip_directory, GZIP_SUFFIX, ZIP_SUFFIX
from .binaries import resolve_binary
from .errors import ConnectionNotFound, UnsupportedDatabaseKind, DumpFailed, CompressionFailed
from .error_parser import parse_backup_error
from .logger import get_logger
from .metrics import BACKUPS_TOTAL, BACKUP_DURATION_SECONDS, BACKUP_SIZE_BYTES, BACKUP_LAST_STATUS
from .models import BackupStatus, Connection, DatabaseKind, HistoryRecord, Schedule
from .process import run_process, ProcessResult
from .utils import filename_timestamp, mongo_auth_args, MONGO_DIR_PREFIX

logger = get_logger(__name__)


def artifact_size(path: str) -> Optional[int]:
    if os.path.isfile(path):
        return os.path.getsize(path)
    if os.path.isdir(path):
        total = 0
        for root, _, files in os.walk(path):
            total += sum(os.path.getsize(os.path.join(root, name)) for name in files)
        return total
    return None


def discard_partial(path: str) -> None:
    try:
        if os.path.isdir(path):
            shutil.rmtree(path)
        elif os.path.exists(path):
            os.remove(path)
        else:
            return
    except OSError as e:
        logger.warning(f"Could not remove partial backup output {path}: {e}")
        return
    logger.info(f"Removed partial backup output {path}")


class BackupManager:
    """
    Runs one backup for a schedule: dumps the database with the tool matching
    the connection kind, optionally compresses the artifact and appends exactly
    one history record, whether the run succeeds or fails.
    """

    def __init__(self, store, settings: dict = None):
        self.store = store
        self.settings = settings or {}
        self._strategies = {
            DatabaseKind.MYSQL: self._dump_mysql,
            DatabaseKind.POSTGRES: self._dump_postgres,
            DatabaseKind.MONGO: self._dump_mongo,
        }

    def _binary(self, tool: str, connection: Connection) -> str:
        return resolve_binary(tool, connection.tools_directory, self.settings.get("tools_dir"))

    async def run_backup(self, schedule: Schedule) -> HistoryRecord:
        logger.info(f"Starting backup for schedule: {schedule.name}")
        start_time = time.time()
        timestamp = filename_timestamp()
        backup_file = os.path.join(schedule.destination_directory, f"{schedule.database}_{timestamp}.sql")
        kind = None

        try:
            connection = await asyncio.to_thread(self.store.get_connection, schedule.connection_id)
            if connection is None:
                raise ConnectionNotFound(schedule.connection_id)

            try:
                kind = DatabaseKind(connection.kind)
            except ValueError:
                raise UnsupportedDatabaseKind(connection.kind) from None

            try:
                await asyncio.to_thread(os.makedirs, schedule.destination_directory, exist_ok=True)
            except OSError as e:
                logger.error(f"Failed to create backup directory {schedule.destination_directory}: {e}")
                raise

            logger.info(f"Backing up '{schedule.database}' ({kind.value}) to: {schedule.destination_directory}")
            backup_file = await self._strategies[kind](connection, schedule, backup_file, timestamp)

            if schedule.compress:
                backup_file = await self._compress(backup_file)

        except Exception as e:
            logger.error(f"Backup failed for schedule '{schedule.name}': {e}")
            await self._record(schedule, backup_file, BackupStatus.FAILED, time.time() - start_time, error=e, kind=kind)
            raise

        record = await self._record(schedule, backup_file, BackupStatus.SUCCESS, time.time() - start_time)
        logger.info(f"Backup completed successfully: {backup_file} ({record.duration_seconds:.2f}s)")
        return record

    async def _record(self, schedule: Schedule, backup_file: str, status: BackupStatus, duration: float,
                      error: Exception = None, kind: DatabaseKind = None) -> HistoryRecord:
        size_bytes = await asyncio.to_thread(artifact_size, backup_file) if status == BackupStatus.SUCCESS else None
        record = HistoryRecord(
            schedule_id=schedule.id,
            connection_id=schedule.connection_id,
            backup_file=backup_file,
            status=status,
            error=str(error) if error else None,
            error_summary=parse_backup_error(getattr(error, "stderr", str(error)), kind) if error else None,
            size_bytes=size_bytes,
            duration_seconds=round(duration, 3),
        )
        await asyncio.to_thread(self.store.append_history, record)

        BACKUPS_TOTAL.labels(schedule_name=schedule.name, status=status.value).inc()
        BACKUP_DURATION_SECONDS.labels(schedule_name=schedule.name).observe(duration)
        BACKUP_LAST_STATUS.labels(schedule_name=schedule.name).set(1 if status == BackupStatus.SUCCESS else 0)
        if size_bytes is not None:
            BACKUP_SIZE_BYTES.labels(schedule_name=schedule.name).set(size_bytes)
        return record

    async def _check(self, result: ProcessResult, partial: str) -> None:
        if result.ok:
            return
        # drop whatever the tool managed to write
        await asyncio.to_thread(discard_partial, partial)
        raise DumpFailed(result.tool, result.returncode, result.stderr)

    async def _dump_mysql(self, connection: Connection, schedule: Schedule, backup_file: str, timestamp: str) -> str:
        args = [self._binary("mysqldump", connection), "-h", connection.host, "-P", str(connection.port)]
        if connection.username:
            args += ["-u", connection.username]
        args += ["--single-transaction", "--quick", "--lock-tables=false", schedule.database]

        # mysqldump writes the dump to stdout
        result = await run_process(args, env={"MYSQL_PWD": connection.password or ""}, stdout_path=backup_file)
        await self._check(result, backup_file)
        return backup_file

    async def _dump_postgres(self, connection: Connection, schedule: Schedule, backup_file: str, timestamp: str) -> str:
        args = [self._binary("pg_dump", connection), "-h", connection.host, "-p", str(connection.port)]
        if connection.username:
            args += ["-U", connection.username]
        args += ["-d", schedule.database, "-f", backup_file]

        # pg_dump reads the password from PGPASSWORD, never from the command line
        result = await run_process(args, env={"PGPASSWORD": connection.password or ""})
        await self._check(result, backup_file)
        return backup_file

    async def _dump_mongo(self, connection: Connection, schedule: Schedule, backup_file: str, timestamp: str) -> str:
        output_dir = os.path.join(schedule.destination_directory, f"{MONGO_DIR_PREFIX}{timestamp}")
        args = [
            self._binary("mongodump", connection),
            "--host", connection.host,
            "--port", str(connection.port),
            "--db", schedule.database,
            "--out", output_dir,
            *mongo_auth_args(connection.username, connection.password),
        ]

        result = await run_process(args, secrets=[connection.password])
        await self._check(result, output_dir)
        return output_dir

    async def _compress(self, artifact: str) -> str:
        is_dir = await asyncio.to_thread(os.path.isdir, artifact)
        target = artifact + (ZIP_SUFFIX if is_dir else GZIP_SUFFIX)
        logger.info(f"Compressing {artifact} to {target}")

        try:
            if is_dir:
                await asyncio.to_thread(zip_directory, artifact, target)
            else:
                await asyncio.to_thread(gzip_file, artifact, target)
        except Exception as e:
            await asyncio.to_thread(discard_partial, target)
            raise CompressionFailed(artifact, str(e)) from e

        try:
            if is_dir:
                await asyncio.to_thread(shutil.rmtree, artifact)
            else:
                await asyncio.to_thread(os.remove, artifact)
        except OSError as e:
            logger.warning(f"Compressed backup written but the original {artifact} could not be removed: {e}")

        return target
