"""Tests for transactional storage of a document's entity graph."""

import threading
import time

import pytest

from dictionary_ingest import db
from dictionary_ingest.candidates import (
    MAIN_SENSE,
    MAIN_WORD,
    SELF_SENSE,
    SELF_WORD,
    CandidateEntity,
    DefinitionDraft,
    MainEntry,
)
from dictionary_ingest.collaborators import NullFrequencyLookup
from dictionary_ingest.config import IngestConfig
from dictionary_ingest.exceptions import DatabaseError, TransactionTimeoutError
from dictionary_ingest.models import PartOfSpeech, RelationshipType, SourceType
from dictionary_ingest.persistence import PersistenceCoordinator
from dictionary_ingest.walker import ExtractedExample

RT = RelationshipType
POS = PartOfSpeech


class SlowFrequency:
    def get_frequency(self, word, language, category):
        time.sleep(0.1)
        return None


class FixedFrequency:
    def get_frequency(self, word, language, category):
        return {"walk": 120, "went": 900}.get(word)


def _coordinator(conn, config=None, frequency=None):
    return PersistenceCoordinator(
        conn, threading.Lock(), config or IngestConfig(), frequency or NullFrequencyLookup(),
    )


def _main(text="walk", pos=POS.VERB, definitions=None, **kwargs):
    return MainEntry(
        text=text,
        part_of_speech=pos,
        variant="",
        source=SourceType.MERRIAM_LEARNERS,
        source_entity_id=f"merriam_learners-{text}-uuid",
        definitions=definitions if definitions is not None else [
            DefinitionDraft(
                "to move on foot",
                examples=(ExtractedExample("We walked home."),),
            ),
        ],
        **kwargs,
    )


def _walked():
    c = CandidateEntity(
        "walked", POS.VERB, "ins",
        definitions=[DefinitionDraft("Past tense form of the verb {it}walk{/it}")],
    )
    c.relate(MAIN_WORD, SELF_WORD, RT.RELATED)
    c.relate(SELF_SENSE, MAIN_SENSE, RT.PAST_TENSE)
    return c


class TestCommit:

    def test_stores_graph(self, db_conn):
        result = _coordinator(db_conn).commit(_main(), [_walked()])
        assert result.candidate_count == 1
        assert result.relationship_count == 2
        assert [d.text for d in result.definitions] == ["to move on foot"]
        assert db.count_rows(db_conn, "words") == 2
        assert db.count_rows(db_conn, "examples") == 1
        assert db.count_rows(db_conn, "sense_relations") == 1

    def test_first_definition_is_primary(self, db_conn):
        main = _main(definitions=[DefinitionDraft("first"), DefinitionDraft("second")])
        result = _coordinator(db_conn).commit(main, [])
        rows = db_conn.execute(
            "SELECT definition_rowid, is_primary FROM sense_definitions WHERE sense_rowid = ?",
            (result.sense_id,),
        ).fetchall()
        flags = {r["definition_rowid"]: r["is_primary"] for r in rows}
        assert flags == {result.definitions[0].id: 1, result.definitions[1].id: 0}

    def test_idempotent(self, db_conn):
        coordinator = _coordinator(db_conn)
        coordinator.commit(_main(), [_walked()])
        first = {t: db.count_rows(db_conn, t) for t in db.COUNTED_TABLES}
        coordinator.commit(_main(), [_walked()])
        second = {t: db.count_rows(db_conn, t) for t in db.COUNTED_TABLES}
        assert first == second

    def test_example_note_is_not_lost(self, db_conn):
        coordinator = _coordinator(db_conn)
        noted = _main(definitions=[DefinitionDraft(
            "to move on foot", examples=(ExtractedExample("We walked home.", "+ obj"),),
        )])
        coordinator.commit(noted, [])
        coordinator.commit(_main(), [])
        row = db_conn.execute("SELECT grammatical_note FROM examples").fetchone()
        assert row["grammatical_note"] == "+ obj"

    def test_frequency_stored(self, db_conn):
        result = _coordinator(db_conn, frequency=FixedFrequency()).commit(_main(), [])
        assert db.get_sense_row(db_conn, result.sense_id)["frequency"] == 120

    def test_audio_links_only_for_stored_urls(self, db_conn):
        main = _main(audio_urls=["https://a/walk.mp3", "https://a/missing.mp3"])
        result = _coordinator(db_conn).commit(
            main, [], {"https://a/walk.mp3": "https://cdn/walk.mp3"},
        )
        rows = db_conn.execute(
            "SELECT a.url FROM sense_audio sa JOIN audio a ON a.rowid = sa.audio_rowid "
            "WHERE sa.sense_rowid = ?",
            (result.sense_id,),
        ).fetchall()
        assert [r["url"] for r in rows] == ["https://cdn/walk.mp3"]

    def test_small_batches(self, db_conn):
        config = IngestConfig(write_batch_size=1, relationship_batch_size=1, max_workers=2)
        candidates = []
        for word in ("stroll", "amble", "hike", "march"):
            c = CandidateEntity(word, POS.VERB, "syn")
            c.relate(MAIN_WORD, SELF_WORD, RT.SYNONYM)
            candidates.append(c)
        examples = tuple(ExtractedExample(f"example {i}") for i in range(5))
        main = _main(definitions=[DefinitionDraft("to move on foot", examples=examples)])
        result = _coordinator(db_conn, config).commit(main, candidates)
        assert result.relationship_count == 4
        assert db.count_rows(db_conn, "examples") == 5
        assert db.count_rows(db_conn, "word_relations") == 4

    def test_inferred_sense_for_undefined_candidate(self, db_conn):
        main = _main(text="went", pos=POS.UNDEFINED, definitions=[])
        go = CandidateEntity("go", POS.UNDEFINED, "cxs")
        go.relate(MAIN_SENSE, SELF_SENSE, RT.PAST_TENSE)
        _coordinator(db_conn).commit(main, [go])
        row = db_conn.execute(
            "SELECT s1.part_of_speech AS src, s2.part_of_speech AS tgt FROM sense_relations sr "
            "JOIN senses s1 ON s1.rowid = sr.source_rowid "
            "JOIN senses s2 ON s2.rowid = sr.target_rowid"
        ).fetchone()
        assert (row["src"], row["tgt"]) == ("verb", "verb")


class TestTransactionBudget:

    def test_timeout_rolls_back(self, db_conn):
        config = IngestConfig(transaction_timeout=-1.0)
        with pytest.raises(TransactionTimeoutError):
            _coordinator(db_conn, config).commit(_main(), [_walked()])
        assert db.count_rows(db_conn, "words") == 0
        assert db.count_rows(db_conn, "definitions") == 0
        assert not db_conn.in_transaction


class TestFailedDocument:

    def _synonyms(self, *words):
        candidates = []
        for word in words:
            c = CandidateEntity(word, POS.VERB, "syn")
            c.relate(MAIN_WORD, SELF_WORD, RT.SYNONYM)
            candidates.append(c)
        return candidates

    def test_failing_candidate_leaves_nothing_behind(self, db_conn):
        coordinator = _coordinator(db_conn, frequency=SlowFrequency())
        candidates = self._synonyms("bad\ud800", "good0", "good1", "good2", "good3", "good4")

        with pytest.raises(DatabaseError):
            coordinator.commit(_main(), candidates)

        assert not db_conn.in_transaction
        assert db.count_rows(db_conn, "words") == 0
        assert db.count_rows(db_conn, "senses") == 0

    def test_next_document_commits_after_failure(self, db_conn):
        coordinator = _coordinator(db_conn, frequency=SlowFrequency())
        with pytest.raises(DatabaseError):
            coordinator.commit(_main(), self._synonyms("bad\ud800", "good0", "good1"))

        result = coordinator.commit(_main(text="amble"), self._synonyms("stroll"))
        assert result.relationship_count == 1
        words = {r["text"] for r in db_conn.execute("SELECT text FROM words")}
        assert words == {"amble", "stroll"}
