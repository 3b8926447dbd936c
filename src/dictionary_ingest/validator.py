"""Consistency checks over the stored dictionary graph."""

from __future__ import annotations

import sqlite3

from dictionary_ingest.models import ValidationResult


def validate_all(conn: sqlite3.Connection) -> list[ValidationResult]:
    """Run all validation rules."""
    results: list[ValidationResult] = []
    results.extend(_val_rel_001(conn))
    results.extend(_val_rel_002(conn))
    results.extend(_val_def_001(conn))
    results.extend(_val_sen_001(conn))
    results.extend(_val_exm_001(conn))
    return results


def _val_rel_001(conn: sqlite3.Connection) -> list[ValidationResult]:
    """Word relations that point back at their source."""
    sql = (
        "SELECT wr.rowid AS rowid, w.text, rt.type FROM word_relations wr "
        "JOIN words w ON w.rowid = wr.source_rowid "
        "JOIN relation_types rt ON rt.rowid = wr.type_rowid "
        "WHERE wr.source_rowid = wr.target_rowid"
    )
    return [
        ValidationResult(
            rule_id="VAL-REL-001",
            severity="ERROR",
            entity_type="word_relation",
            entity_id=row["rowid"],
            message=f"Word {row['text']!r} has a {row['type']} relation to itself",
        )
        for row in conn.execute(sql).fetchall()
    ]


def _val_rel_002(conn: sqlite3.Connection) -> list[ValidationResult]:
    """Sense relations that point back at their source."""
    sql = (
        "SELECT sr.rowid AS rowid, w.text, s.part_of_speech, rt.type FROM sense_relations sr "
        "JOIN senses s ON s.rowid = sr.source_rowid "
        "JOIN words w ON w.rowid = s.word_rowid "
        "JOIN relation_types rt ON rt.rowid = sr.type_rowid "
        "WHERE sr.source_rowid = sr.target_rowid"
    )
    return [
        ValidationResult(
            rule_id="VAL-REL-002",
            severity="ERROR",
            entity_type="sense_relation",
            entity_id=row["rowid"],
            message=(
                f"Sense {row['text']!r} ({row['part_of_speech']}) has a "
                f"{row['type']} relation to itself"
            ),
        )
        for row in conn.execute(sql).fetchall()
    ]


def _val_def_001(conn: sqlite3.Connection) -> list[ValidationResult]:
    """Definitions no sense uses."""
    sql = (
        "SELECT d.rowid AS rowid, d.text FROM definitions d WHERE NOT EXISTS "
        "(SELECT 1 FROM sense_definitions sd WHERE sd.definition_rowid = d.rowid)"
    )
    return [
        ValidationResult(
            rule_id="VAL-DEF-001",
            severity="WARNING",
            entity_type="definition",
            entity_id=row["rowid"],
            message=f"Definition is not linked to any sense: {row['text'][:60]!r}",
        )
        for row in conn.execute(sql).fetchall()
    ]


def _val_sen_001(conn: sqlite3.Connection) -> list[ValidationResult]:
    """Senses of ingested headwords that have no definitions."""
    sql = (
        "SELECT s.rowid AS rowid, w.text, s.part_of_speech FROM senses s "
        "JOIN words w ON w.rowid = s.word_rowid "
        "WHERE w.source_entity_id IS NOT NULL "
        "AND NOT EXISTS "
        "(SELECT 1 FROM sense_definitions sd WHERE sd.sense_rowid = s.rowid)"
    )
    return [
        ValidationResult(
            rule_id="VAL-SEN-001",
            severity="WARNING",
            entity_type="sense",
            entity_id=row["rowid"],
            message=f"Sense {row['text']!r} ({row['part_of_speech']}) has no definitions",
        )
        for row in conn.execute(sql).fetchall()
    ]


def _val_exm_001(conn: sqlite3.Connection) -> list[ValidationResult]:
    """Examples whose text is empty."""
    sql = "SELECT rowid, definition_rowid FROM examples WHERE TRIM(text) = ''"
    return [
        ValidationResult(
            rule_id="VAL-EXM-001",
            severity="ERROR",
            entity_type="example",
            entity_id=row["rowid"],
            message=f"Example of definition {row['definition_rowid']} has empty text",
        )
        for row in conn.execute(sql).fetchall()
    ]
