"""Relationship type tables for dictionary-ingest."""

from __future__ import annotations

from dictionary_ingest.models import PartOfSpeech, RelationshipType

# Relations that hold between words regardless of grammatical category.
# Every other type is category-specific and links senses.
WORD_LEVEL_RELATIONS: frozenset[RelationshipType] = frozenset({
    RelationshipType.SYNONYM,
    RelationshipType.ANTONYM,
    RelationshipType.RELATED,
    RelationshipType.STEM,
    RelationshipType.COMPOSITION,
    RelationshipType.TRANSLATION,
})

SENSE_LEVEL_RELATIONS: frozenset[RelationshipType] = frozenset(
    t for t in RelationshipType if t not in WORD_LEVEL_RELATIONS
)

# Category implied by a sense-level relation type when an endpoint sense
# carries none. Types not listed imply nothing.
POS_FOR_RELATION: dict[RelationshipType, PartOfSpeech] = {
    RelationshipType.PAST_TENSE: PartOfSpeech.VERB,
    RelationshipType.PAST_PARTICIPLE: PartOfSpeech.VERB,
    RelationshipType.PRESENT_PARTICIPLE: PartOfSpeech.VERB,
    RelationshipType.THIRD_PERSON: PartOfSpeech.VERB,
    RelationshipType.PLURAL: PartOfSpeech.NOUN,
    RelationshipType.PHRASAL_VERB: PartOfSpeech.PHRASAL_VERB,
    RelationshipType.VARIANT_FORM_PHRASAL_VERB: PartOfSpeech.PHRASAL_VERB,
    RelationshipType.PHRASE: PartOfSpeech.PHRASE,
}

RELATION_DESCRIPTIONS: dict[RelationshipType, str] = {
    RelationshipType.SYNONYM: "Synonym relationship",
    RelationshipType.ANTONYM: "Antonym relationship",
    RelationshipType.RELATED: "Related term",
    RelationshipType.PAST_TENSE: "Past tense form",
    RelationshipType.PAST_PARTICIPLE: "Past participle form",
    RelationshipType.PRESENT_PARTICIPLE: "Present participle form",
    RelationshipType.THIRD_PERSON: "Third person singular form",
    RelationshipType.PLURAL: "Plural form",
    RelationshipType.STEM: "Stem relationship",
    RelationshipType.PHRASAL_VERB: "Phrasal verb",
    RelationshipType.PHRASE: "Phrase",
    RelationshipType.VARIANT_FORM_PHRASAL_VERB: "Variant form of phrasal verb",
    RelationshipType.ALTERNATIVE_SPELLING: "Alternative spelling",
}


def is_word_level(relation_type: RelationshipType) -> bool:
    """Check if a relation type links words rather than senses."""
    return relation_type in WORD_LEVEL_RELATIONS


def get_description(relation_type: RelationshipType) -> str | None:
    """Get the human-readable description stored with a relationship."""
    return RELATION_DESCRIPTIONS.get(relation_type)
