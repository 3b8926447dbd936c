"""Tests for symbolic relationship resolution."""

from dictionary_ingest.candidates import (
    MAIN_SENSE,
    MAIN_WORD,
    SELF_SENSE,
    SELF_WORD,
    CandidateEntity,
    Endpoint,
)
from dictionary_ingest.models import PartOfSpeech, RelationshipType
from dictionary_ingest.resolver import (
    EntityIndex,
    StoredEntity,
    infer_category,
    resolve_relationships,
)

RT = RelationshipType
POS = PartOfSpeech

MAIN = StoredEntity(word_id=1, sense_id=10, part_of_speech=POS.VERB, text="walk")


def _index(*entities):
    index = EntityIndex(MAIN)
    for position, entity in enumerate(entities):
        index.add(position, entity)
    return index


class TestLevels:

    def test_word_level_type_uses_word_ids(self):
        c = CandidateEntity("stroll", POS.VERB, "syn")
        c.relate(MAIN_WORD, SELF_WORD, RT.SYNONYM)
        resolution = resolve_relationships([c], _index(StoredEntity(2, 20, POS.VERB, "stroll")))
        assert [(r.source_id, r.target_id) for r in resolution.word_level] == [(1, 2)]
        assert resolution.sense_level == []
        assert resolution.word_level[0].description == "Synonym relationship"

    def test_sense_level_type_uses_sense_ids(self):
        c = CandidateEntity("walked", POS.VERB, "ins")
        c.relate(SELF_SENSE, MAIN_SENSE, RT.PAST_TENSE)
        resolution = resolve_relationships([c], _index(StoredEntity(2, 20, POS.VERB, "walked")))
        assert [(r.source_id, r.target_id) for r in resolution.sense_level] == [(20, 10)]

    def test_type_decides_level_not_endpoint(self):
        c = CandidateEntity("stroll", POS.VERB, "syn")
        c.relate(MAIN_SENSE, SELF_SENSE, RT.SYNONYM)
        resolution = resolve_relationships([c], _index(StoredEntity(2, 20, POS.VERB, "stroll")))
        assert len(resolution.word_level) == 1
        assert resolution.word_level[0].target_id == 2


class TestSurfaceLookup:

    def test_surface_resolves_to_candidate(self):
        phrase = CandidateEntity("walk out", POS.PHRASAL_VERB, "dro")
        variant = CandidateEntity("walk out on", POS.PHRASAL_VERB, "pva")
        variant.relate(Endpoint.sense_of("walk out"), SELF_SENSE, RT.VARIANT_FORM_PHRASAL_VERB)
        index = _index(
            StoredEntity(2, 20, POS.PHRASAL_VERB, "walk out"),
            StoredEntity(3, 30, POS.PHRASAL_VERB, "walk out on"),
        )
        resolution = resolve_relationships([phrase, variant], index)
        assert [(r.source_id, r.target_id) for r in resolution.sense_level] == [(20, 30)]

    def test_surface_of_main_text_is_main(self):
        c = CandidateEntity("amble", POS.VERB, "pattern")
        c.relate(Endpoint.word_of("walk"), SELF_WORD, RT.SYNONYM)
        resolution = resolve_relationships([c], _index(StoredEntity(2, 20, POS.VERB, "amble")))
        assert resolution.word_level[0].source_id == 1

    def test_missing_surface_is_dropped(self, caplog):
        c = CandidateEntity("amble", POS.VERB, "pattern")
        c.relate(Endpoint.word_of("nowhere"), SELF_WORD, RT.SYNONYM)
        c.relate(MAIN_WORD, SELF_WORD, RT.RELATED)
        resolution = resolve_relationships([c], _index(StoredEntity(2, 20, POS.VERB, "amble")))
        assert resolution.skipped == 1
        assert len(resolution) == 1
        assert "nowhere" in caplog.text

    def test_first_candidate_wins_surface(self):
        index = _index(
            StoredEntity(2, 20, POS.VERB, "stroll"),
            StoredEntity(2, 21, POS.NOUN, "stroll"),
        )
        assert index.surface("stroll").sense_id == 20


class TestSelfLoopsAndDuplicates:

    def test_self_loop_dropped(self):
        c = CandidateEntity("walk", POS.VERB, "syn")
        c.relate(MAIN_WORD, SELF_WORD, RT.SYNONYM)
        resolution = resolve_relationships([c], _index(StoredEntity(1, 10, POS.VERB, "walk")))
        assert len(resolution) == 0
        assert resolution.skipped == 1

    def test_duplicates_collapsed(self):
        c1 = CandidateEntity("stroll", POS.VERB, "syn")
        c1.relate(MAIN_WORD, SELF_WORD, RT.SYNONYM)
        c2 = CandidateEntity("stroll", POS.VERB, "pattern")
        c2.relate(MAIN_WORD, SELF_WORD, RT.SYNONYM)
        stroll = StoredEntity(2, 20, POS.VERB, "stroll")
        resolution = resolve_relationships([c1, c2], _index(stroll, stroll))
        assert len(resolution.word_level) == 1


class TestCategoryInference:

    def test_infer_category(self):
        assert infer_category(RT.PAST_TENSE) is POS.VERB
        assert infer_category(RT.PLURAL) is POS.NOUN
        assert infer_category(RT.ALTERNATIVE_SPELLING) is POS.UNDEFINED

    def test_undefined_sense_endpoint_gets_inferred_sense(self):
        calls = []

        def ensure_sense(word_id, pos, entity):
            calls.append((word_id, pos, entity.text))
            return 99

        c = CandidateEntity("went", POS.UNDEFINED, "ins")
        c.relate(SELF_SENSE, MAIN_SENSE, RT.PAST_TENSE)
        index = _index(StoredEntity(2, 20, POS.UNDEFINED, "went"))
        resolution = resolve_relationships([c], index, ensure_sense=ensure_sense)
        assert calls == [(2, POS.VERB, "went")]
        assert resolution.sense_level[0].source_id == 99

    def test_word_endpoint_is_not_inferred(self):
        def ensure_sense(word_id, pos, entity):
            raise AssertionError("should not be called")

        c = CandidateEntity("went", POS.UNDEFINED, "ins")
        c.relate(SELF_WORD, MAIN_SENSE, RT.PAST_TENSE)
        index = _index(StoredEntity(2, 20, POS.UNDEFINED, "went"))
        resolution = resolve_relationships([c], index, ensure_sense=ensure_sense)
        assert resolution.sense_level[0].source_id == 20
