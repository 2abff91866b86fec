import asyncio

import mysql.connector
import psycopg2

from .binaries import resolve_binary
from .logger import get_logger
from .models import Connection, DatabaseKind
from .process import run_process
from .schemas import ConnectionTestResult
from .utils import mongo_auth_args

logger = get_logger(__name__)

CONNECT_TIMEOUT_SECONDS = 5

SERVER_LABELS = {
    DatabaseKind.MYSQL: "MySQL",
    DatabaseKind.POSTGRES: "PostgreSQL",
    DatabaseKind.MONGO: "MongoDB",
}

# (substrings of the driver or shell error, readable reason); first match wins
FAILURE_REASONS = (
    (("access denied", "authentication failed", "password authentication"),
     "Authentication failed. Please check your username and password."),
    (("could not translate host name", "unknown mysql server host", "name or service not known",
      "nodename nor servname", "enotfound", "getaddrinfo"),
     'Host "{host}" not found. Please verify the hostname.'),
    (("timed out", "timeout expired", "etimedout", "server selection timeout"),
     "Connection timed out. The server may be unreachable or too slow to respond."),
    (("connection refused", "can't connect", "econnrefused"),
     "Cannot reach database server at {host}:{port}. Please check if the server is running."),
)


def describe_failure(error_text: str, connection: Connection) -> str:
    lowered = (error_text or "").lower()
    for needles, reason in FAILURE_REASONS:
        if any(needle in lowered for needle in needles):
            return "Connection failed: " + reason.format(host=connection.host, port=connection.port)
    detail = (error_text or "").strip() or "Unknown error occurred."
    return f"Connection failed: {detail}"


def _connect_mysql(connection: Connection) -> None:
    conn = mysql.connector.connect(
        host=connection.host,
        port=int(connection.port),
        user=connection.username or None,
        password=connection.password or "",
        connection_timeout=CONNECT_TIMEOUT_SECONDS,
    )
    conn.close()


def _connect_postgres(connection: Connection) -> None:
    conn = psycopg2.connect(
        host=connection.host,
        port=connection.port,
        user=connection.username or None,
        password=connection.password or None,
        dbname="postgres",
        connect_timeout=CONNECT_TIMEOUT_SECONDS,
    )
    conn.close()


async def _ping_mongo(connection: Connection, tools_dir: str = None) -> None:
    uri = f"mongodb://{connection.host}:{connection.port}/?serverSelectionTimeoutMS={CONNECT_TIMEOUT_SECONDS * 1000}"
    args = [
        resolve_binary("mongosh", connection.tools_directory, tools_dir),
        uri,
        *mongo_auth_args(connection.username, connection.password),
        "--quiet",
        "--eval", "db.adminCommand('ping')",
    ]
    result = await run_process(args, secrets=[connection.password])
    if not result.ok:
        raise ConnectionError(result.stderr)


async def check_connection(connection: Connection, tools_dir: str = None) -> ConnectionTestResult:
    """
    Opens and closes one short client session against the connection's server.
    Failures are reported in the result, never raised.
    """
    try:
        kind = DatabaseKind(connection.kind)
    except ValueError:
        return ConnectionTestResult(success=False, message="Unsupported database type.")

    logger.info(f"Testing {kind.value} connection to {connection.host}:{connection.port}")
    try:
        if kind == DatabaseKind.MYSQL:
            await asyncio.to_thread(_connect_mysql, connection)
        elif kind == DatabaseKind.POSTGRES:
            await asyncio.to_thread(_connect_postgres, connection)
        else:
            await _ping_mongo(connection, tools_dir)
    except (mysql.connector.Error, psycopg2.Error, OSError) as e:
        logger.warning(f"Connection test to {connection.host}:{connection.port} failed: {e}")
        return ConnectionTestResult(success=False, message=describe_failure(str(e), connection))

    return ConnectionTestResult(success=True, message=f"Successfully connected to {SERVER_LABELS[kind]} server.")
