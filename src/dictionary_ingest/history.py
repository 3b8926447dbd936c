"""Ingest history recording and querying for dictionary-ingest."""

from __future__ import annotations

import sqlite3

from dictionary_ingest.models import IngestRecord

COMMITTED = "COMMITTED"
FAILED = "FAILED"


def record_run(
    conn: sqlite3.Connection,
    word: str,
    status: str,
    started_at: str,
    *,
    source_entity_id: str | None = None,
    message: str | None = None,
) -> int:
    """Record one document attempt and commit it; return the run's rowid."""
    cur = conn.execute(
        "INSERT INTO ingest_runs (source_entity_id, word, status, message, started_at) "
        "VALUES (?, ?, ?, ?, ?)",
        (source_entity_id, word, status, message, started_at),
    )
    conn.commit()
    return cur.lastrowid


def now(conn: sqlite3.Connection) -> str:
    """Current timestamp in the format the history table stores."""
    return conn.execute("SELECT strftime('%Y-%m-%dT%H:%M:%f', 'now')").fetchone()[0]


def query_history(
    conn: sqlite3.Connection,
    *,
    word: str | None = None,
    status: str | None = None,
    since: str | None = None,
    limit: int | None = None,
) -> list[IngestRecord]:
    """Query ingest history with optional filters, oldest first."""
    clauses: list[str] = []
    params: list[str | int] = []

    if word is not None:
        clauses.append("word = ?")
        params.append(word)
    if status is not None:
        clauses.append("status = ?")
        params.append(status)
    if since is not None:
        clauses.append("finished_at > ?")
        params.append(since)

    where = " AND ".join(clauses) if clauses else "1=1"
    sql = f"SELECT rowid, * FROM ingest_runs WHERE {where} ORDER BY finished_at ASC, rowid ASC"
    if limit is not None:
        sql += " LIMIT ?"
        params.append(limit)

    rows = conn.execute(sql, params).fetchall()
    return [
        IngestRecord(
            id=row["rowid"],
            source_entity_id=row["source_entity_id"],
            word=row["word"],
            status=row["status"],
            message=row["message"],
            started_at=row["started_at"],
            finished_at=row["finished_at"],
        )
        for row in rows
    ]
