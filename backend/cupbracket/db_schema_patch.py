from __future__ import annotations

import logging
from typing import Dict, List, Tuple

from sqlalchemy import text
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

# Columns added after the first release; create_all does not alter existing tables.
# (name, sqlite_type, postgres_type, default)
REQUIRED_TOURNAMENT_COLUMNS: List[Tuple[str, str, str, str]] = [
    ("groups_version", "INTEGER", "INTEGER", "DEFAULT 0"),
    ("bracket_version", "INTEGER", "INTEGER", "DEFAULT 0"),
    ("started_at", "DATETIME", "TIMESTAMP", "DEFAULT NULL"),
    ("completed_at", "DATETIME", "TIMESTAMP", "DEFAULT NULL"),
]

REQUIRED_MATCH_COLUMNS: List[Tuple[str, str, str, str]] = [
    ("matchday", "INTEGER", "INTEGER", "DEFAULT NULL"),
    ("is_bye", "INTEGER", "BOOLEAN", "DEFAULT 0"),
    ("bracket_version", "INTEGER", "INTEGER", "DEFAULT NULL"),
    ("confirmed_at", "DATETIME", "TIMESTAMP", "DEFAULT NULL"),
]


def _is_sqlite(engine: Engine) -> bool:
    return engine.dialect.name.lower() == "sqlite"


def _table_exists(engine: Engine, table_name: str) -> bool:
    if _is_sqlite(engine):
        sql = "SELECT name FROM sqlite_master WHERE type='table' AND name=:table_name"
    else:
        sql = """
        SELECT 1 FROM information_schema.tables
        WHERE table_schema = 'public' AND table_name = :table_name
        """
    with engine.connect() as conn:
        return conn.execute(text(sql), {"table_name": table_name}).fetchone() is not None


def _get_existing_columns(engine: Engine, table_name: str) -> Dict[str, str]:
    cols: Dict[str, str] = {}
    with engine.connect() as conn:
        if _is_sqlite(engine):
            # PRAGMA table_info returns rows: (cid, name, type, notnull, dflt_value, pk)
            for row in conn.execute(text(f'PRAGMA table_info("{table_name}");')).fetchall():
                cols[str(row[1])] = str(row[2])
        else:
            sql = """
            SELECT column_name, data_type
            FROM information_schema.columns
            WHERE table_schema = 'public' AND table_name = :table_name;
            """
            for row in conn.execute(text(sql), {"table_name": table_name}).fetchall():
                cols[str(row[0])] = str(row[1])
    return cols


def _ensure_columns(engine: Engine, table: str, required: List[Tuple[str, str, str, str]]) -> List[str]:
    """Add any missing columns; returns the names added."""
    if not _table_exists(engine, table):
        # create_all builds it with every column
        return []

    existing = _get_existing_columns(engine, table)
    added: List[str] = []
    with engine.begin() as conn:
        for name, sqlite_type, pg_type, default in required:
            if name in existing:
                continue
            if _is_sqlite(engine):
                conn.execute(text(f'ALTER TABLE "{table}" ADD COLUMN {name} {sqlite_type} {default};'))
            else:
                pg_default = default.replace("DEFAULT 0", "DEFAULT FALSE") if pg_type == "BOOLEAN" else default
                conn.execute(text(f'ALTER TABLE "{table}" ADD COLUMN IF NOT EXISTS {name} {pg_type} {pg_default};'))
            added.append(name)
    return added


def ensure_tournament_columns(engine: Engine) -> None:
    """
    Idempotently adds required columns to the 'tournament' table if missing.
    Safe to run at every startup.
    """
    from cupbracket.models.tournament import Tournament

    try:
        added = _ensure_columns(engine, Tournament.__table__.name, REQUIRED_TOURNAMENT_COLUMNS)
    except Exception as e:
        logger.warning(f"Failed to ensure tournament columns: {e}")
        return
    if added:
        logger.info("Added tournament columns: %s", ", ".join(added))


def ensure_match_columns(engine: Engine) -> None:
    """
    Idempotently adds required columns to the 'match' table if missing.
    Safe to run at every startup.
    """
    from cupbracket.models.match import Match

    try:
        added = _ensure_columns(engine, Match.__table__.name, REQUIRED_MATCH_COLUMNS)
    except Exception as e:
        logger.warning(f"Failed to ensure match columns: {e}")
        return
    if added:
        logger.info("Added match columns: %s", ", ".join(added))
