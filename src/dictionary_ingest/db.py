"""Database connection, DDL, and natural-key upsert helpers for dictionary-ingest."""

from __future__ import annotations

import sqlite3
from pathlib import Path

from dictionary_ingest.exceptions import DatabaseError

SCHEMA_VERSION = "1.0"

# Tables whose row counts make up an ingestion's footprint.
COUNTED_TABLES = (
    "words",
    "senses",
    "definitions",
    "sense_definitions",
    "examples",
    "word_relations",
    "sense_relations",
    "audio",
    "images",
)

# ---------------------------------------------------------------------------
# DDL statements
# ---------------------------------------------------------------------------

_DDL = """
-- Meta table
CREATE TABLE IF NOT EXISTS meta (
    key TEXT NOT NULL,
    value TEXT,
    UNIQUE (key)
);

-- Lookup tables
CREATE TABLE IF NOT EXISTS relation_types (
    rowid INTEGER PRIMARY KEY,
    type TEXT NOT NULL,
    UNIQUE (type)
);
CREATE INDEX IF NOT EXISTS relation_type_index ON relation_types (type);

-- Words
CREATE TABLE IF NOT EXISTS words (
    rowid INTEGER PRIMARY KEY,
    text TEXT NOT NULL,
    language TEXT NOT NULL,
    variant TEXT NOT NULL DEFAULT '',
    phonetic TEXT,
    etymology TEXT,
    frequency INTEGER,
    is_highlighted BOOLEAN NOT NULL DEFAULT 0 CHECK( is_highlighted IN (0, 1) ),
    source_entity_id TEXT,
    UNIQUE (text, language, variant)
);
CREATE INDEX IF NOT EXISTS word_text_index ON words (text);

-- Senses (word details)
CREATE TABLE IF NOT EXISTS senses (
    rowid INTEGER PRIMARY KEY,
    word_rowid INTEGER NOT NULL REFERENCES words (rowid) ON DELETE CASCADE,
    part_of_speech TEXT NOT NULL,
    variant TEXT NOT NULL DEFAULT '',
    is_plural BOOLEAN NOT NULL DEFAULT 0 CHECK( is_plural IN (0, 1) ),
    phonetic TEXT,
    frequency INTEGER,
    source TEXT NOT NULL,
    UNIQUE (word_rowid, part_of_speech, variant, is_plural)
);
CREATE INDEX IF NOT EXISTS sense_word_index ON senses (word_rowid);

-- Images
CREATE TABLE IF NOT EXISTS images (
    rowid INTEGER PRIMARY KEY,
    url TEXT NOT NULL,
    description TEXT,
    UNIQUE (url)
);

-- Definitions, shared between senses
CREATE TABLE IF NOT EXISTS definitions (
    rowid INTEGER PRIMARY KEY,
    text TEXT NOT NULL,
    language TEXT NOT NULL,
    source TEXT NOT NULL,
    subject_status_labels TEXT,
    general_labels TEXT,
    grammatical_note TEXT,
    usage_note TEXT,
    is_in_short_def BOOLEAN NOT NULL DEFAULT 0 CHECK( is_in_short_def IN (0, 1) ),
    image_rowid INTEGER REFERENCES images (rowid) ON DELETE SET NULL,
    UNIQUE (text, language, source)
);

CREATE TABLE IF NOT EXISTS sense_definitions (
    sense_rowid INTEGER NOT NULL REFERENCES senses (rowid) ON DELETE CASCADE,
    definition_rowid INTEGER NOT NULL REFERENCES definitions (rowid) ON DELETE CASCADE,
    is_primary BOOLEAN NOT NULL DEFAULT 0 CHECK( is_primary IN (0, 1) ),
    UNIQUE (sense_rowid, definition_rowid)
);
CREATE INDEX IF NOT EXISTS sense_definition_definition_index
    ON sense_definitions (definition_rowid);

-- Examples, scoped to one definition
CREATE TABLE IF NOT EXISTS examples (
    rowid INTEGER PRIMARY KEY,
    definition_rowid INTEGER NOT NULL REFERENCES definitions (rowid) ON DELETE CASCADE,
    text TEXT NOT NULL,
    language TEXT NOT NULL,
    grammatical_note TEXT,
    UNIQUE (definition_rowid, text)
);

-- Relationships
CREATE TABLE IF NOT EXISTS word_relations (
    rowid INTEGER PRIMARY KEY,
    source_rowid INTEGER NOT NULL REFERENCES words (rowid) ON DELETE CASCADE,
    target_rowid INTEGER NOT NULL REFERENCES words (rowid) ON DELETE CASCADE,
    type_rowid INTEGER NOT NULL REFERENCES relation_types (rowid),
    description TEXT,
    UNIQUE (source_rowid, target_rowid, type_rowid)
);
CREATE INDEX IF NOT EXISTS word_relation_source_index ON word_relations (source_rowid);
CREATE INDEX IF NOT EXISTS word_relation_target_index ON word_relations (target_rowid);

CREATE TABLE IF NOT EXISTS sense_relations (
    rowid INTEGER PRIMARY KEY,
    source_rowid INTEGER NOT NULL REFERENCES senses (rowid) ON DELETE CASCADE,
    target_rowid INTEGER NOT NULL REFERENCES senses (rowid) ON DELETE CASCADE,
    type_rowid INTEGER NOT NULL REFERENCES relation_types (rowid),
    description TEXT,
    UNIQUE (source_rowid, target_rowid, type_rowid)
);
CREATE INDEX IF NOT EXISTS sense_relation_source_index ON sense_relations (source_rowid);
CREATE INDEX IF NOT EXISTS sense_relation_target_index ON sense_relations (target_rowid);

-- Audio
CREATE TABLE IF NOT EXISTS audio (
    rowid INTEGER PRIMARY KEY,
    url TEXT NOT NULL,
    UNIQUE (url)
);

CREATE TABLE IF NOT EXISTS sense_audio (
    sense_rowid INTEGER NOT NULL REFERENCES senses (rowid) ON DELETE CASCADE,
    audio_rowid INTEGER NOT NULL REFERENCES audio (rowid) ON DELETE CASCADE,
    UNIQUE (sense_rowid, audio_rowid)
);

-- Ingest history
CREATE TABLE IF NOT EXISTS ingest_runs (
    rowid INTEGER PRIMARY KEY,
    source_entity_id TEXT,
    word TEXT NOT NULL,
    status TEXT NOT NULL CHECK( status IN ('COMMITTED', 'FAILED') ),
    message TEXT,
    started_at TEXT NOT NULL,
    finished_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%f', 'now'))
);
CREATE INDEX IF NOT EXISTS ingest_run_word_index ON ingest_runs (word);
CREATE INDEX IF NOT EXISTS ingest_run_finished_index ON ingest_runs (finished_at);
"""


def connect(
    db_path: str | Path = ":memory:",
    timeout: float = 60.0,
) -> sqlite3.Connection:
    """Open a database connection with ingester PRAGMA settings.

    The connection may be shared with worker threads; callers serialize
    statement groups themselves.
    """
    db_path_str = str(db_path)
    conn = sqlite3.connect(
        db_path_str,
        timeout=timeout,
        detect_types=sqlite3.PARSE_DECLTYPES,
        check_same_thread=False,
    )
    conn.execute("PRAGMA foreign_keys = ON")
    if db_path_str != ":memory:":
        conn.execute("PRAGMA journal_mode = WAL")
    conn.row_factory = sqlite3.Row
    return conn


def init_db(conn: sqlite3.Connection) -> None:
    """Initialize all tables if they don't exist. Set schema version."""
    conn.executescript(_DDL)
    conn.execute(
        "INSERT OR IGNORE INTO meta (key, value) VALUES ('schema_version', ?)",
        (SCHEMA_VERSION,),
    )
    conn.execute(
        "INSERT OR IGNORE INTO meta (key, value) "
        "VALUES ('created_at', strftime('%Y-%m-%dT%H:%M:%f', 'now'))",
    )
    conn.commit()


def check_schema_version(conn: sqlite3.Connection) -> None:
    """Verify the database schema version is compatible."""
    try:
        row = conn.execute(
            "SELECT value FROM meta WHERE key = 'schema_version'"
        ).fetchone()
    except sqlite3.OperationalError:
        # meta table doesn't exist - uninitialized DB
        return
    if row is None:
        return
    version = row[0]
    if version != SCHEMA_VERSION:
        raise DatabaseError(
            f"Incompatible schema version: {version} "
            f"(expected {SCHEMA_VERSION})"
        )


# ---------------------------------------------------------------------------
# Lookup table helpers
# ---------------------------------------------------------------------------

def get_or_create_relation_type(conn: sqlite3.Connection, rel_type: str) -> int:
    """Get the rowid for a relation type, inserting if needed."""
    conn.execute(
        "INSERT OR IGNORE INTO relation_types (type) VALUES (?)",
        (rel_type,),
    )
    row = conn.execute(
        "SELECT rowid FROM relation_types WHERE type = ?",
        (rel_type,),
    ).fetchone()
    return row[0]


def get_or_create_image(
    conn: sqlite3.Connection, url: str, description: str | None = None
) -> int:
    """Get the rowid for an image URL, inserting if needed."""
    conn.execute(
        "INSERT INTO images (url, description) VALUES (?, ?) "
        "ON CONFLICT (url) DO UPDATE SET "
        "description = COALESCE(excluded.description, images.description)",
        (url, description),
    )
    row = conn.execute(
        "SELECT rowid FROM images WHERE url = ?", (url,)
    ).fetchone()
    return row[0]


def get_or_create_audio(conn: sqlite3.Connection, url: str) -> int:
    """Get the rowid for a stored audio URL, inserting if needed."""
    conn.execute("INSERT OR IGNORE INTO audio (url) VALUES (?)", (url,))
    row = conn.execute("SELECT rowid FROM audio WHERE url = ?", (url,)).fetchone()
    return row[0]


# ---------------------------------------------------------------------------
# Upserts keyed on natural keys
#
# Descriptive columns merge with COALESCE(new, old): a value that is
# already set is only replaced by another non-null value, never by NULL.
# ---------------------------------------------------------------------------

def upsert_word(
    conn: sqlite3.Connection,
    text: str,
    language: str,
    variant: str = "",
    *,
    phonetic: str | None = None,
    etymology: str | None = None,
    frequency: int | None = None,
    is_highlighted: bool = False,
    source_entity_id: str | None = None,
) -> int:
    """Create or merge a word on (text, language, variant); return its rowid."""
    conn.execute(
        """
        INSERT INTO words (text, language, variant, phonetic, etymology,
                           frequency, is_highlighted, source_entity_id)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT (text, language, variant) DO UPDATE SET
            phonetic = COALESCE(excluded.phonetic, words.phonetic),
            etymology = COALESCE(excluded.etymology, words.etymology),
            frequency = COALESCE(excluded.frequency, words.frequency),
            is_highlighted = MAX(excluded.is_highlighted, words.is_highlighted),
            source_entity_id = COALESCE(excluded.source_entity_id,
                                        words.source_entity_id)
        """,
        (text, language, variant, phonetic, etymology, frequency,
         int(is_highlighted), source_entity_id),
    )
    row = conn.execute(
        "SELECT rowid FROM words WHERE text = ? AND language = ? AND variant = ?",
        (text, language, variant),
    ).fetchone()
    return row[0]


def upsert_sense(
    conn: sqlite3.Connection,
    word_rowid: int,
    part_of_speech: str,
    variant: str = "",
    is_plural: bool = False,
    *,
    source: str,
    phonetic: str | None = None,
    frequency: int | None = None,
) -> int:
    """Create or merge a sense on (word, category, variant, plural); return its rowid."""
    conn.execute(
        """
        INSERT INTO senses (word_rowid, part_of_speech, variant, is_plural,
                            phonetic, frequency, source)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT (word_rowid, part_of_speech, variant, is_plural) DO UPDATE SET
            phonetic = COALESCE(excluded.phonetic, senses.phonetic),
            frequency = COALESCE(excluded.frequency, senses.frequency)
        """,
        (word_rowid, part_of_speech, variant, int(is_plural),
         phonetic, frequency, source),
    )
    row = conn.execute(
        "SELECT rowid FROM senses WHERE word_rowid = ? AND part_of_speech = ? "
        "AND variant = ? AND is_plural = ?",
        (word_rowid, part_of_speech, variant, int(is_plural)),
    ).fetchone()
    return row[0]


def upsert_definition(
    conn: sqlite3.Connection,
    text: str,
    language: str,
    source: str,
    *,
    subject_status_labels: str | None = None,
    general_labels: str | None = None,
    grammatical_note: str | None = None,
    usage_note: str | None = None,
    is_in_short_def: bool = False,
) -> int:
    """Create or merge a definition on (text, language, source); return its rowid."""
    conn.execute(
        """
        INSERT INTO definitions (text, language, source, subject_status_labels,
                                 general_labels, grammatical_note, usage_note,
                                 is_in_short_def)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT (text, language, source) DO UPDATE SET
            subject_status_labels = COALESCE(excluded.subject_status_labels,
                                             definitions.subject_status_labels),
            general_labels = COALESCE(excluded.general_labels,
                                      definitions.general_labels),
            grammatical_note = COALESCE(excluded.grammatical_note,
                                        definitions.grammatical_note),
            usage_note = COALESCE(excluded.usage_note, definitions.usage_note),
            is_in_short_def = MAX(excluded.is_in_short_def,
                                  definitions.is_in_short_def)
        """,
        (text, language, source, subject_status_labels, general_labels,
         grammatical_note, usage_note, int(is_in_short_def)),
    )
    row = conn.execute(
        "SELECT rowid FROM definitions WHERE text = ? AND language = ? AND source = ?",
        (text, language, source),
    ).fetchone()
    return row[0]


def link_sense_definition(
    conn: sqlite3.Connection,
    sense_rowid: int,
    definition_rowid: int,
    is_primary: bool = False,
) -> None:
    """Attach a definition to a sense; a primary flag once set stays set."""
    conn.execute(
        """
        INSERT INTO sense_definitions (sense_rowid, definition_rowid, is_primary)
        VALUES (?, ?, ?)
        ON CONFLICT (sense_rowid, definition_rowid) DO UPDATE SET
            is_primary = MAX(excluded.is_primary, sense_definitions.is_primary)
        """,
        (sense_rowid, definition_rowid, int(is_primary)),
    )


def upsert_example(
    conn: sqlite3.Connection,
    definition_rowid: int,
    text: str,
    language: str,
    grammatical_note: str | None = None,
) -> int:
    """Create or merge an example on (definition, text); return its rowid.

    An example that already carries a grammatical note keeps it when the
    same text arrives again without one.
    """
    conn.execute(
        """
        INSERT INTO examples (definition_rowid, text, language, grammatical_note)
        VALUES (?, ?, ?, ?)
        ON CONFLICT (definition_rowid, text) DO UPDATE SET
            grammatical_note = COALESCE(excluded.grammatical_note,
                                        examples.grammatical_note)
        """,
        (definition_rowid, text, language, grammatical_note),
    )
    row = conn.execute(
        "SELECT rowid FROM examples WHERE definition_rowid = ? AND text = ?",
        (definition_rowid, text),
    ).fetchone()
    return row[0]


def set_definition_image(
    conn: sqlite3.Connection, definition_rowid: int, image_rowid: int
) -> None:
    """Attach an image to a definition that has none yet."""
    conn.execute(
        "UPDATE definitions SET image_rowid = ? "
        "WHERE rowid = ? AND image_rowid IS NULL",
        (image_rowid, definition_rowid),
    )


def link_sense_audio(
    conn: sqlite3.Connection, sense_rowid: int, audio_rowid: int
) -> None:
    """Attach a stored audio file to a sense."""
    conn.execute(
        "INSERT OR IGNORE INTO sense_audio (sense_rowid, audio_rowid) VALUES (?, ?)",
        (sense_rowid, audio_rowid),
    )


def insert_word_relation(
    conn: sqlite3.Connection,
    source_rowid: int,
    target_rowid: int,
    rel_type: str,
    description: str | None = None,
) -> bool:
    """Insert a word-to-word relation; return False if it already existed."""
    type_rowid = get_or_create_relation_type(conn, rel_type)
    cur = conn.execute(
        "INSERT OR IGNORE INTO word_relations "
        "(source_rowid, target_rowid, type_rowid, description) VALUES (?, ?, ?, ?)",
        (source_rowid, target_rowid, type_rowid, description),
    )
    return cur.rowcount > 0


def insert_sense_relation(
    conn: sqlite3.Connection,
    source_rowid: int,
    target_rowid: int,
    rel_type: str,
    description: str | None = None,
) -> bool:
    """Insert a sense-to-sense relation; return False if it already existed."""
    type_rowid = get_or_create_relation_type(conn, rel_type)
    cur = conn.execute(
        "INSERT OR IGNORE INTO sense_relations "
        "(source_rowid, target_rowid, type_rowid, description) VALUES (?, ?, ?, ?)",
        (source_rowid, target_rowid, type_rowid, description),
    )
    return cur.rowcount > 0


# ---------------------------------------------------------------------------
# Read helpers
# ---------------------------------------------------------------------------

def get_word_row(
    conn: sqlite3.Connection, text: str, language: str, variant: str = ""
) -> sqlite3.Row | None:
    """Get a full word row by natural key."""
    return conn.execute(
        "SELECT rowid, * FROM words WHERE text = ? AND language = ? AND variant = ?",
        (text, language, variant),
    ).fetchone()


def get_word_row_by_rowid(conn: sqlite3.Connection, rowid: int) -> sqlite3.Row | None:
    """Get a full word row by rowid."""
    return conn.execute(
        "SELECT rowid, * FROM words WHERE rowid = ?", (rowid,)
    ).fetchone()


def get_sense_rows(conn: sqlite3.Connection, word_rowid: int) -> list[sqlite3.Row]:
    """Get every sense row of a word."""
    return conn.execute(
        "SELECT rowid, * FROM senses WHERE word_rowid = ? ORDER BY rowid",
        (word_rowid,),
    ).fetchall()


def get_sense_row(conn: sqlite3.Connection, rowid: int) -> sqlite3.Row | None:
    """Get a full sense row by rowid."""
    return conn.execute(
        "SELECT rowid, * FROM senses WHERE rowid = ?", (rowid,)
    ).fetchone()


def count_rows(conn: sqlite3.Connection, table: str) -> int:
    """Count rows in one of the known tables."""
    if table not in COUNTED_TABLES:
        raise ValueError(f"Unknown table: {table!r}")
    return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
