"""Shared SQLite helpers: WAL mode, row_factory defaults, JSON blob columns."""

import json
import sqlite3
from pathlib import Path
from typing import Any

from errors import ConflictError


def wal_connect(db_path: str | Path, row_factory: bool = False) -> sqlite3.Connection:
    """Open SQLite connection with WAL journal mode.

    Args:
        db_path: Path to database file.
        row_factory: If True, set conn.row_factory = sqlite3.Row.
    """
    conn = sqlite3.connect(str(db_path))
    conn.execute("PRAGMA journal_mode=WAL")
    if row_factory:
        conn.row_factory = sqlite3.Row
    return conn


def ensure_db_path(db_path: str | Path) -> Path:
    """Expand ~ and create the parent directory."""
    path = Path(db_path).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def execute_write(db_path: Path, sql: str, params: tuple | list = ()) -> int:
    """Run one write statement in its own transaction.

    Returns the number of rows changed. Integrity violations surface as
    ConflictError.
    """
    try:
        with wal_connect(db_path) as conn:
            cur = conn.execute(sql, params)
            return cur.rowcount
    except sqlite3.IntegrityError as e:
        raise ConflictError(str(e)) from e


def encode_blob(value: Any) -> str | None:
    """Serialize a nested map/array for a TEXT column."""
    if value is None:
        return None
    return json.dumps(value, sort_keys=True)


def decode_blob(text: str | None, default: Any = None) -> Any:
    if text is None or text == "":
        return default
    return json.loads(text)
