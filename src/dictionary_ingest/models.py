"""Domain model dataclasses and enums for dictionary-ingest."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class PartOfSpeech(str, Enum):
    """Grammatical categories a sense can carry."""

    NOUN = "noun"
    VERB = "verb"
    PHRASAL_VERB = "phrasal_verb"
    ADJECTIVE = "adjective"
    ADVERB = "adverb"
    PRONOUN = "pronoun"
    PREPOSITION = "preposition"
    CONJUNCTION = "conjunction"
    INTERJECTION = "interjection"
    NUMERAL = "numeral"
    ARTICLE = "article"
    EXCLAMATION = "exclamation"
    ABBREVIATION = "abbreviation"
    SUFFIX = "suffix"
    PHRASE = "phrase"
    SENTENCE = "sentence"
    UNDEFINED = "undefined"


class RelationshipType(str, Enum):
    """Typed edges between words or senses."""

    SYNONYM = "synonym"
    ANTONYM = "antonym"
    RELATED = "related"
    STEM = "stem"
    COMPOSITION = "composition"
    PHRASAL_VERB = "phrasal_verb"
    PHRASE = "phrase"
    ALTERNATIVE_SPELLING = "alternative_spelling"
    ABBREVIATION = "abbreviation"
    DERIVED_FORM = "derived_form"
    DIALECT_VARIANT = "dialect_variant"
    TRANSLATION = "translation"
    PLURAL = "plural_en"
    PAST_TENSE = "past_tense_en"
    PAST_PARTICIPLE = "past_participle_en"
    PRESENT_PARTICIPLE = "present_participle_en"
    THIRD_PERSON = "third_person_en"
    VARIANT_FORM_PHRASAL_VERB = "variant_form_phrasal_verb_en"


class SourceType(str, Enum):
    """Provenance of words, senses and definitions."""

    AI_GENERATED = "ai-generated"
    MERRIAM_LEARNERS = "merriam_learners"
    MERRIAM_INTERMEDIATE = "merriam_intermediate"
    USER = "user"
    ADMIN = "admin"


# ---------------------------------------------------------------------------
# Persisted entities
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class WordModel:
    """A canonical word, unique per (text, language, variant)."""

    id: int
    text: str
    language: str
    variant: str
    phonetic: str | None
    etymology: str | None
    frequency: int | None
    is_highlighted: bool
    source_entity_id: str | None


@dataclass(frozen=True, slots=True)
class SenseModel:
    """A word in one grammatical category/variant combination."""

    id: int
    word_id: int
    part_of_speech: str
    variant: str
    is_plural: bool
    phonetic: str | None
    frequency: int | None
    source: str


@dataclass(frozen=True, slots=True)
class ImageRef:
    """A stored image attached to a definition."""

    id: int
    url: str
    description: str | None


@dataclass(frozen=True, slots=True)
class DefinitionModel:
    """A definition shared between senses through the join table."""

    id: int
    text: str
    language: str
    source: str
    subject_status_labels: str | None
    general_labels: str | None
    grammatical_note: str | None
    usage_note: str | None
    is_in_short_def: bool
    is_primary: bool
    image: ImageRef | None


@dataclass(frozen=True, slots=True)
class ExampleModel:
    """A usage example scoped to one definition."""

    id: int
    definition_id: int
    text: str
    language: str
    grammatical_note: str | None


@dataclass(frozen=True, slots=True)
class RelationModel:
    """A typed, directed relationship between two words or two senses."""

    source_id: int
    target_id: int
    relation_type: str
    description: str | None


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class DefinitionSummary:
    """A created or merged definition as returned to the caller."""

    id: int
    text: str
    image: ImageRef | None


@dataclass(frozen=True, slots=True)
class IngestSummary:
    """What one committed document produced."""

    word_id: int
    sense_id: int
    word: str
    definitions: tuple[DefinitionSummary, ...]
    candidate_count: int
    relationship_count: int
    skipped_relationships: int


@dataclass(frozen=True, slots=True)
class IngestRecord:
    """A single ingest-history entry for one document attempt."""

    id: int
    source_entity_id: str | None
    word: str
    status: str
    message: str | None
    started_at: str
    finished_at: str


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """A single validation finding (error or warning)."""

    rule_id: str
    severity: str
    entity_type: str
    entity_id: int
    message: str
