from __future__ import annotations
from pathlib import Path
from typing import Dict, List
import logging
import sqlite3

from .errors import MalformedRecord, SchemaIncompatible
from .models import EntryType, ManifestRecord

logger = logging.getLogger(__name__)

# column name -> declared SQLite type of the `files` table
REQUIRED_COLUMNS: Dict[str, str] = {
    "fileID": "TEXT",
    "domain": "TEXT",
    "relativePath": "TEXT",
    "flags": "INTEGER",
    "file": "BLOB",
}

CREATE_FILES_TABLE = (
    "CREATE TABLE IF NOT EXISTS files "
    "(fileID TEXT, domain TEXT, relativePath TEXT, flags INTEGER, file BLOB)"
)


def check_schema(conn: sqlite3.Connection) -> None:
    to_check = dict(REQUIRED_COLUMNS)
    for row in conn.execute("PRAGMA table_info('files')"):
        name, typ = row[1], (row[2] or "").upper()
        expected = to_check.get(name)
        if expected is None:
            continue
        if typ != expected:
            raise SchemaIncompatible(
                f"column type is not matched for `{name}`, expected `{expected}` but got `{typ}`"
            )
        del to_check[name]
    if to_check:
        raise SchemaIncompatible(
            f"table schema is not compatible, missing columns: {', '.join(sorted(to_check))}"
        )


def row_to_record(content_id, relative_path, flags, blob) -> ManifestRecord:
    if content_id is None or relative_path is None:
        raise MalformedRecord(f"row has no fileID/relativePath: {content_id!r}, {relative_path!r}")
    try:
        entry_type = EntryType(flags)
    except ValueError as e:
        raise MalformedRecord(f"unknown file type {flags!r} for {relative_path!r}") from e
    return ManifestRecord(
        content_id=content_id,
        relative_path=relative_path,
        entry_type=entry_type,
        raw_metadata=bytes(blob) if blob is not None else b"",
    )


class ManifestDB:
    """
    The `files` table of a backup's Manifest.db.

    `open` validates the schema before anything is read. Every mutation is
    committed as its own statement; there is no multi-row transaction.
    """

    def __init__(self, conn: sqlite3.Connection, path: Path | None = None):
        self.conn = conn
        self.path = path

    @classmethod
    def open(cls, path: str | Path) -> "ManifestDB":
        path = Path(path)
        if not path.is_file():
            raise SchemaIncompatible(f"manifest database not found: {path}")
        try:
            conn = sqlite3.connect(f"{path.resolve().as_uri()}?mode=rw", uri=True, isolation_level=None)
        except sqlite3.Error as e:
            raise SchemaIncompatible(f"cannot open manifest database: {path}") from e
        try:
            check_schema(conn)
        except sqlite3.DatabaseError as e:
            conn.close()
            raise SchemaIncompatible(f"not a manifest database: {path}") from e
        except SchemaIncompatible:
            conn.close()
            raise
        return cls(conn, path)

    @classmethod
    def create(cls, path: str | Path) -> "ManifestDB":
        """Create an empty manifest (or open an existing one) with the expected schema."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(path), isolation_level=None)
        conn.execute(CREATE_FILES_TABLE)
        conn.close()
        return cls.open(path)

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> "ManifestDB":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def list_domains(self) -> List[str]:
        rows = self.conn.execute("SELECT domain FROM files GROUP BY domain ORDER BY domain")
        return [r[0] for r in rows if r[0] is not None]

    def query_rows(self, domain: str) -> List[ManifestRecord]:
        """All parseable rows of `domain`; corrupt rows are logged and skipped."""
        cur = self.conn.execute(
            "SELECT fileID, relativePath, flags, file FROM files WHERE domain = ?", (domain,)
        )
        records: List[ManifestRecord] = []
        for content_id, relative_path, flags, blob in cur:
            try:
                records.append(row_to_record(content_id, relative_path, flags, blob))
            except MalformedRecord as e:
                logger.warning("skipping manifest row in %s: %s", domain, e)
        return records

    def delete_rows(self, domain: str) -> None:
        self.conn.execute("DELETE FROM files WHERE domain = ?", (domain,))

    def insert_row(self, domain: str, record: ManifestRecord) -> None:
        self.conn.execute(
            "INSERT INTO files (fileID, domain, relativePath, flags, file) VALUES (?, ?, ?, ?, ?)",
            (
                record.content_id,
                domain,
                record.relative_path,
                int(record.entry_type),
                record.raw_metadata,
            ),
        )
