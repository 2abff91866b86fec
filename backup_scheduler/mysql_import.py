"""Sequential SQL importer for MySQL restores.

Reads a dump file statement by statement and executes each one over a regular
client connection, so restoring does not depend on the ``mysql`` command-line
client being installed. The splitter understands quoted strings, ``--``/``#``
line comments, block comments (``/*! ... */`` conditional comments are kept,
since the server executes them) and ``DELIMITER`` directives.
"""
from typing import Iterable, Iterator, List, Optional

import mysql.connector

from .logger import get_logger

logger = get_logger(__name__)


class StatementSplitter:
    def __init__(self, delimiter: str = ";"):
        self.delimiter = delimiter
        self._buf: List[str] = []
        self._has_content = False
        self._quote: Optional[str] = None
        self._in_comment = False
        self._keep_comment = False

    def _append(self, text: str) -> None:
        self._buf.append(text)
        if not self._has_content and text.strip():
            self._has_content = True

    def _flush(self) -> Optional[str]:
        statement = "".join(self._buf).strip()
        self._buf = []
        self._has_content = False
        return statement or None

    def feed(self, line: str) -> Iterator[str]:
        if self._quote is None and not self._in_comment and not self._has_content:
            stripped = line.strip()
            if stripped.upper().startswith("DELIMITER "):
                self.delimiter = stripped.split(None, 1)[1].strip()
                return

        i, n = 0, len(line)
        while i < n:
            if self._in_comment:
                end = line.find("*/", i)
                stop = n if end == -1 else end + 2
                if self._keep_comment:
                    self._append(line[i:stop])
                if end != -1:
                    self._in_comment = False
                i = stop
                continue

            ch = line[i]
            if self._quote:
                if ch == "\\" and self._quote != "`":
                    self._append(line[i:i + 2])
                    i += 2
                    continue
                self._append(ch)
                if ch == self._quote:
                    self._quote = None
                i += 1
                continue

            if ch in ("'", '"', "`"):
                self._quote = ch
                self._append(ch)
                i += 1
            elif line.startswith("/*", i):
                self._in_comment = True
                self._keep_comment = line.startswith("/*!", i)
                if self._keep_comment:
                    self._append("/*")
                i += 2
            elif ch == "#" or (line.startswith("--", i) and line[i + 2:i + 3] in ("", " ", "\t", "\r", "\n")):
                self._append("\n")
                break
            elif line.startswith(self.delimiter, i):
                statement = self._flush()
                if statement:
                    yield statement
                i += len(self.delimiter)
            else:
                self._append(ch)
                i += 1

    def finish(self) -> Optional[str]:
        return self._flush()


def iter_statements(lines: Iterable[str]) -> Iterator[str]:
    splitter = StatementSplitter()
    for line in lines:
        yield from splitter.feed(line)
    trailing = splitter.finish()
    if trailing:
        yield trailing


class SqlImporter:
    def __init__(self, host: str, port: int, user: str, password: Optional[str], database: str):
        self.connect_args = {
            "host": host,
            "port": port,
            "user": user,
            "password": password or "",
            "database": database,
            "autocommit": True,
        }
        self._imported: List[str] = []

    def import_file(self, path: str) -> int:
        """Executes every statement of ``path`` in order and returns how many ran."""
        executed = 0
        conn = mysql.connector.connect(**self.connect_args)
        try:
            cursor = conn.cursor()
            with open(path, "r", encoding="utf-8", errors="replace") as f:
                for statement in iter_statements(f):
                    cursor.execute(statement)
                    if cursor.with_rows:
                        cursor.fetchall()
                    executed += 1
            cursor.close()
        finally:
            conn.close()

        self._imported.append(path)
        logger.debug(f"Executed {executed} statement(s) from {path}")
        return executed

    def get_imported(self) -> List[str]:
        return list(self._imported)
