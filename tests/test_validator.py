"""Tests for the validation engine."""

from dictionary_ingest import db


class TestValidateClean:

    def test_validate_clean(self, ingester, walk_document):
        ingester.ingest(walk_document)
        results = ingester.validate()
        errors = [r for r in results if r.severity == "ERROR"]
        assert len(errors) == 0


class TestSelfLoops:

    def test_word_self_loop_detected(self, ingester, walk_document):
        summary = ingester.ingest(walk_document)
        # Manually insert a self relation (bypass API)
        db.insert_word_relation(ingester._conn, summary.word_id, summary.word_id, "synonym")
        ingester._conn.commit()
        results = ingester.validate()
        assert any(r.rule_id == "VAL-REL-001" for r in results)

    def test_sense_self_loop_detected(self, ingester, walk_document):
        summary = ingester.ingest(walk_document)
        db.insert_sense_relation(ingester._conn, summary.sense_id, summary.sense_id, "past_tense_en")
        ingester._conn.commit()
        results = ingester.validate()
        assert any(r.rule_id == "VAL-REL-002" and r.entity_type == "sense_relation" for r in results)


class TestOrphans:

    def test_unlinked_definition(self, ingester):
        db.upsert_definition(ingester._conn, "nobody uses this", "en", "user")
        ingester._conn.commit()
        results = ingester.validate()
        assert any(r.rule_id == "VAL-DEF-001" for r in results)

    def test_ingested_sense_without_definitions(self, ingester, make_document):
        ingester.ingest(make_document("hmm", fl="interjection"))
        results = ingester.validate()
        assert any(r.rule_id == "VAL-SEN-001" and r.severity == "WARNING" for r in results)

    def test_candidate_sense_without_definitions_is_fine(self, ingester, walk_document):
        ingester.ingest(walk_document)
        # 'stroll' has no definitions, but it was never ingested as a headword
        assert not any(r.rule_id == "VAL-SEN-001" for r in ingester.validate())

    def test_blank_example(self, ingester, walk_document):
        summary = ingester.ingest(walk_document)
        db.upsert_example(ingester._conn, summary.definitions[0].id, "  ", "en")
        ingester._conn.commit()
        assert any(r.rule_id == "VAL-EXM-001" for r in ingester.validate())
