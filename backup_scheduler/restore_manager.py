import asyncio
import gzip
import os
import shutil
import tempfile
import zipfile
import zlib

import mysql.connector

from .archive import extract_zip, gunzip_file, is_compressed, GZIP_SUFFIX
from .binaries import resolve_binary
from .errors import ArtifactNotFound, CorruptArchive, EmptyArchive, RestoreFailed, UnsupportedDatabaseKind
from .logger import get_logger
from .metrics import RESTORES_TOTAL
from .models import Connection, DatabaseKind
from .mysql_import import SqlImporter
from .process import run_process
from .utils import mongo_auth_args, MONGO_DIR_PREFIX

logger = get_logger(__name__)

IGNORED_ARCHIVE_ENTRIES = ("__MACOSX",)


def _valid_entries(directory: str):
    return sorted(
        name for name in os.listdir(directory)
        if not name.startswith(".") and name not in IGNORED_ARCHIVE_ENTRIES
    )


def extract_artifact(artifact_path: str, temp_dir: str) -> str:
    """
    Extracts a compressed backup into ``temp_dir`` and returns the path of the
    file or directory that should be restored.
    """
    try:
        if artifact_path.endswith(GZIP_SUFFIX):
            name = os.path.basename(artifact_path)[:-len(GZIP_SUFFIX)] or "backup.sql"
            return gunzip_file(artifact_path, os.path.join(temp_dir, name))

        extract_zip(artifact_path, temp_dir)
    except (zipfile.BadZipFile, gzip.BadGzipFile, EOFError, zlib.error) as e:
        raise CorruptArchive(artifact_path, str(e) or type(e).__name__) from e

    entries = _valid_entries(temp_dir)
    if not entries:
        raise EmptyArchive(artifact_path)

    if len(entries) == 1:
        return os.path.join(temp_dir, entries[0])

    sql_file = next((name for name in entries if name.endswith(".sql")), None)
    if sql_file:
        return os.path.join(temp_dir, sql_file)

    # mongodump output folders have no extension
    dump_dir = next(
        (name for name in entries
         if os.path.isdir(os.path.join(temp_dir, name))
         and (name.startswith(MONGO_DIR_PREFIX) or not os.path.splitext(name)[1])),
        None,
    )
    if dump_dir:
        return os.path.join(temp_dir, dump_dir)

    return os.path.join(temp_dir, entries[0])


def mongo_dump_root(path: str) -> str:
    # mongodump --out writes one sub folder per database; descend into it when it is the only one
    entries = _valid_entries(path)
    if any(name.endswith((".bson", ".bson.gz")) for name in entries):
        return path
    subdirs = [name for name in entries if os.path.isdir(os.path.join(path, name))]
    if len(subdirs) == 1:
        return os.path.join(path, subdirs[0])
    return path


class RestoreManager:
    """
    Restores a backup artifact into a target database. Compressed artifacts are
    extracted into a temporary directory that is always removed afterwards.

    This overwrites data in the target database; callers are responsible for
    obtaining explicit confirmation first.
    """

    def __init__(self, settings: dict = None):
        self.settings = settings or {}
        self._strategies = {
            DatabaseKind.MYSQL: self._restore_mysql,
            DatabaseKind.POSTGRES: self._restore_postgres,
            DatabaseKind.MONGO: self._restore_mongo,
        }

    def _binary(self, tool: str, connection: Connection) -> str:
        return resolve_binary(tool, connection.tools_directory, self.settings.get("tools_dir"))

    async def restore(self, artifact_path: str, connection: Connection, database: str) -> None:
        logger.info(f"Starting restore for {database} from {artifact_path}")

        if not await asyncio.to_thread(os.path.exists, artifact_path):
            raise ArtifactNotFound(artifact_path)

        try:
            kind = DatabaseKind(connection.kind)
        except ValueError:
            raise UnsupportedDatabaseKind(connection.kind) from None

        status = "failed"
        temp_dir = None
        try:
            target = artifact_path
            if is_compressed(artifact_path):
                logger.info("Detected compressed archive, extracting...")
                temp_dir = await asyncio.to_thread(tempfile.mkdtemp, prefix="db-restore-")
                target = await asyncio.to_thread(extract_artifact, artifact_path, temp_dir)
                logger.info(f"Extracted to {target}")

            await self._strategies[kind](connection, database, target)
            status = "completed"
            logger.info("Restore completed successfully")
        finally:
            RESTORES_TOTAL.labels(kind=kind.value, status=status).inc()
            if temp_dir:
                try:
                    await asyncio.to_thread(shutil.rmtree, temp_dir)
                except OSError as e:
                    logger.warning(f"Failed to clean up temp directory {temp_dir}: {e}")

    async def _restore_mysql(self, connection: Connection, database: str, target: str) -> None:
        importer = SqlImporter(
            host=connection.host,
            port=connection.port,
            user=connection.username,
            password=connection.password,
            database=database,
        )
        try:
            statements = await asyncio.to_thread(importer.import_file, target)
        except mysql.connector.Error as e:
            raise RestoreFailed("mysql-import", getattr(e, "errno", None), str(e)) from e

        logger.info(f"{len(importer.get_imported())} SQL file(s) imported ({statements} statements).")

    async def _restore_postgres(self, connection: Connection, database: str, target: str) -> None:
        args = [self._binary("psql", connection), "-h", connection.host, "-p", str(connection.port)]
        if connection.username:
            args += ["-U", connection.username]
        args += ["-d", database, "-v", "ON_ERROR_STOP=1", "-f", target]
        result = await run_process(args, env={"PGPASSWORD": connection.password or ""})
        if not result.ok:
            raise RestoreFailed(result.tool, result.returncode, result.stderr)

    async def _restore_mongo(self, connection: Connection, database: str, target: str) -> None:
        args = [
            self._binary("mongorestore", connection),
            "--host", connection.host,
            "--port", str(connection.port),
            *mongo_auth_args(connection.username, connection.password),
            "--db", database,
            "--drop",
        ]

        if await asyncio.to_thread(os.path.isdir, target):
            args.append(await asyncio.to_thread(mongo_dump_root, target))
        else:
            args.append(f"--archive={target}")

        result = await run_process(args, secrets=[connection.password])
        if not result.ok:
            raise RestoreFailed(result.tool, result.returncode, result.stderr)
