"""Candidate entities built from the sections of a provider document.

Each section of a document (variants, cross-references, inflections,
synonym lists, run-on phrases) yields provisional word+sense bundles.
Their relationships name endpoints symbolically (the main word, the
candidate itself, or another candidate by surface text); ids are filled
in by :mod:`dictionary_ingest.resolver` after everything is stored.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from dictionary_ingest.document import (
    ProviderDocument,
    map_part_of_speech,
    pronunciation_audio,
    pronunciation_phonetic,
)
from dictionary_ingest.markup import (
    clean_headword,
    clean_text,
    italic,
    is_reference_only,
    strip_homograph,
    strip_markup,
    strip_trailing_star,
)
from dictionary_ingest.models import PartOfSpeech, RelationshipType, SourceType
from dictionary_ingest.synonyms import extract_pattern_synonyms
from dictionary_ingest.walker import (
    ExtractedDefinition,
    ExtractedExample,
    mining_texts,
    walk_definitions,
)

logger = logging.getLogger(__name__)

RT = RelationshipType


# ---------------------------------------------------------------------------
# Symbolic endpoints
# ---------------------------------------------------------------------------

class EndpointKind(str, Enum):
    MAIN_WORD = "main_word"
    MAIN_SENSE = "main_sense"
    SELF_WORD = "self_word"
    SELF_SENSE = "self_sense"
    SURFACE_WORD = "surface_word"
    SURFACE_SENSE = "surface_sense"


_SENSE_KINDS = frozenset({
    EndpointKind.MAIN_SENSE, EndpointKind.SELF_SENSE, EndpointKind.SURFACE_SENSE,
})


@dataclass(frozen=True, slots=True)
class Endpoint:
    """A relationship endpoint that is not yet an id."""

    kind: EndpointKind
    surface: str | None = None

    @property
    def is_sense_level(self) -> bool:
        return self.kind in _SENSE_KINDS

    @classmethod
    def word_of(cls, surface: str) -> Endpoint:
        return cls(EndpointKind.SURFACE_WORD, surface)

    @classmethod
    def sense_of(cls, surface: str) -> Endpoint:
        return cls(EndpointKind.SURFACE_SENSE, surface)

    def __str__(self) -> str:
        if self.surface is not None:
            return f"{self.kind.value}({self.surface})"
        return self.kind.value


MAIN_WORD = Endpoint(EndpointKind.MAIN_WORD)
MAIN_SENSE = Endpoint(EndpointKind.MAIN_SENSE)
SELF_WORD = Endpoint(EndpointKind.SELF_WORD)
SELF_SENSE = Endpoint(EndpointKind.SELF_SENSE)


@dataclass(frozen=True, slots=True)
class SymbolicRelationship:
    source: Endpoint
    target: Endpoint
    relation_type: RelationshipType


# ---------------------------------------------------------------------------
# Candidate data
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class DefinitionDraft:
    """A definition not yet stored."""

    text: str
    subject_status_labels: str | None = None
    general_labels: str | None = None
    grammatical_note: str | None = None
    usage_note: str | None = None
    is_in_short_def: bool = False
    examples: tuple[ExtractedExample, ...] = ()

    @classmethod
    def from_extracted(
        cls, d: ExtractedDefinition, is_in_short_def: bool = False
    ) -> DefinitionDraft:
        return cls(
            text=d.text,
            subject_status_labels=d.subject_status_labels,
            general_labels=d.general_labels,
            grammatical_note=d.grammatical_note,
            usage_note=d.usage_note,
            is_in_short_def=is_in_short_def,
            examples=d.examples,
        )


@dataclass
class CandidateEntity:
    """A provisional word+sense bundle with symbolic relationships."""

    text: str
    part_of_speech: PartOfSpeech
    origin: str
    is_plural: bool = False
    phonetic: str | None = None
    etymology: str | None = None
    audio_urls: list[str] = field(default_factory=list)
    definitions: list[DefinitionDraft] = field(default_factory=list)
    relationships: list[SymbolicRelationship] = field(default_factory=list)

    def relate(
        self, source: Endpoint, target: Endpoint, relation_type: RelationshipType
    ) -> None:
        self.relationships.append(SymbolicRelationship(source, target, relation_type))


@dataclass
class MainEntry:
    """The document's own headword, sense and definitions."""

    text: str
    part_of_speech: PartOfSpeech
    variant: str
    source: SourceType
    source_entity_id: str
    phonetic: str | None = None
    etymology: str | None = None
    is_highlighted: bool = False
    audio_urls: list[str] = field(default_factory=list)
    definitions: list[DefinitionDraft] = field(default_factory=list)
    stems: list[str] = field(default_factory=list)
    mining_texts: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Classification helpers
# ---------------------------------------------------------------------------

def synonym_category(main_pos: PartOfSpeech, word: str) -> PartOfSpeech:
    """Category for a synonym of an entry in *main_pos*.

    Verb-like entries split by word count: one word is a verb, more than
    one is a phrasal verb. Other entries pass their category through.
    """
    if main_pos in (PartOfSpeech.VERB, PartOfSpeech.PHRASAL_VERB):
        return PartOfSpeech.VERB if len(word.split()) == 1 else PartOfSpeech.PHRASAL_VERB
    return main_pos


def classify_inflection(
    form: str,
    label: str | None,
    pos: PartOfSpeech,
    base: str,
) -> tuple[RelationshipType | None, str | None]:
    """Decide the relation type and definition text of an inflected form.

    Verb forms are judged by suffix first, then by the inflection label;
    noun forms by the plural label, then by suffix. Anything else returns
    ``(None, None)`` and the form is only "related" to its base.
    """
    label = (label or "").strip().lower()
    b = italic(base)
    if pos in (PartOfSpeech.VERB, PartOfSpeech.PHRASAL_VERB):
        if form.endswith("ing"):
            return RT.PRESENT_PARTICIPLE, f"Present participle form of the verb {b}"
        if form.endswith("ed"):
            return RT.PAST_TENSE, f"Past tense and past participle form of the verb {b}"
        if form.endswith("s"):
            return RT.THIRD_PERSON, f"Third person singular form of the verb {b}"
        if label in ("past", "past tense"):
            return RT.PAST_TENSE, f"Past tense form of the verb {b}"
        if label == "past participle":
            return RT.PAST_PARTICIPLE, f"Past participle form of the verb {b}"
        if label == "present participle":
            return RT.PRESENT_PARTICIPLE, f"Present participle form of the verb {b}"
        if label == "third person singular":
            return RT.THIRD_PERSON, f"Third person singular form of the verb {b}"
    elif pos is PartOfSpeech.NOUN:
        if label == "plural" or (not label and form.endswith("s")):
            return RT.PLURAL, f"Plural form of {b}"
    return None, None


# cxl label -> (relation type, definition prefix); checked in order
_CROSS_REFERENCE_LABELS = (
    ("past tense and past participle", RT.PAST_TENSE, "Past tense and past participle of"),
    ("past participle", RT.PAST_PARTICIPLE, "Past participle of"),
    ("past tense", RT.PAST_TENSE, "Past tense of"),
    ("present participle", RT.PRESENT_PARTICIPLE, "Present participle of"),
    ("third person singular", RT.THIRD_PERSON, "Third person singular of"),
    ("less common spelling of", RT.ALTERNATIVE_SPELLING, "Less common spelling of"),
)


@dataclass(frozen=True, slots=True)
class CrossReference:
    base: str
    relation_type: RelationshipType
    definition: str


def parse_cross_references(doc: ProviderDocument) -> list[CrossReference]:
    """Cross-references of the entry with a recognised relation label."""
    found = []
    for cx in doc.section("cxs"):
        if not isinstance(cx, dict):
            logger.warning(f"Skipping malformed cross-reference in {doc.headword!r}")
            continue
        label = cx.get("cxl")
        targets = cx.get("cxtis")
        if not isinstance(label, str) or not isinstance(targets, list) or not targets:
            continue
        target = targets[0].get("cxt") if isinstance(targets[0], dict) else None
        if not isinstance(target, str) or not strip_homograph(target):
            continue
        base = clean_headword(strip_homograph(target))
        label = label.lower()
        for needle, rel_type, prefix in _CROSS_REFERENCE_LABELS:
            if needle in label:
                found.append(CrossReference(base, rel_type, f"{prefix} {italic(base)}"))
                break
        else:
            logger.debug(f"Ignoring cross-reference label {label!r} in {doc.headword!r}")
    return found


# ---------------------------------------------------------------------------
# Main entry
# ---------------------------------------------------------------------------

def extract_main_entry(doc: ProviderDocument, audio_base_url: str) -> MainEntry:
    """Pull the headword, its definitions and metadata out of *doc*."""
    short_keys = doc.short_definition_keys()
    extracted = walk_definitions(doc.data.get("def"), doc.gram, doc.labels)
    definitions = [
        DefinitionDraft.from_extracted(d, strip_markup(d.text) in short_keys)
        for d in extracted
    ]
    entry = MainEntry(
        text=doc.headword,
        part_of_speech=doc.part_of_speech,
        variant=doc.homograph,
        source=doc.source,
        source_entity_id=doc.source_entity_id,
        phonetic=doc.phonetic,
        etymology=doc.etymology,
        is_highlighted=doc.is_highlighted,
        audio_urls=doc.audio_urls(audio_base_url),
        definitions=definitions,
        stems=doc.stems,
        mining_texts=mining_texts(extracted),
    )
    for xref in parse_cross_references(doc):
        if all(d.text != xref.definition for d in entry.definitions):
            entry.definitions.append(DefinitionDraft(xref.definition))
        entry.etymology = xref.base
    return entry


# ---------------------------------------------------------------------------
# Candidate sections
# ---------------------------------------------------------------------------

class _Builder:
    """Accumulates candidates for one document."""

    def __init__(self, doc: ProviderDocument, main: MainEntry, audio_base_url: str):
        self.doc = doc
        self.main = main
        self.audio_base_url = audio_base_url
        self.candidates: list[CandidateEntity] = []

    def add(self, candidate: CandidateEntity) -> CandidateEntity:
        self.candidates.append(candidate)
        return candidate

    # -- variants ----------------------------------------------------------

    def variants(self) -> None:
        for vr in self.doc.section("vrs"):
            va = vr.get("va") if isinstance(vr, dict) else None
            if not isinstance(va, str) or not clean_headword(va):
                continue
            form = clean_headword(va)
            if form == self.main.text:
                continue
            vl = vr.get("vl") if isinstance(vr.get("vl"), str) else None
            c = self.add(CandidateEntity(
                text=form,
                part_of_speech=self.main.part_of_speech,
                origin="vrs",
                phonetic=pronunciation_phonetic(vr.get("prs")),
                etymology=self.main.text,
                audio_urls=pronunciation_audio(self.audio_base_url, vr.get("prs")),
                definitions=[DefinitionDraft(
                    f"Variant form of {italic(self.main.text)}", general_labels=vl,
                )],
            ))
            c.relate(MAIN_WORD, SELF_WORD, RT.RELATED)
            c.relate(MAIN_SENSE, SELF_SENSE, RT.ALTERNATIVE_SPELLING)

    # -- cross-references --------------------------------------------------

    def cross_references(self) -> None:
        for xref in parse_cross_references(self.doc):
            if xref.base == self.main.text:
                continue
            c = self.add(CandidateEntity(
                text=xref.base,
                part_of_speech=self.main.part_of_speech,
                origin="cxs",
            ))
            # form to base: this entry is the inflected form, the referenced word its base
            c.relate(MAIN_SENSE, SELF_SENSE, xref.relation_type)
            c.relate(MAIN_WORD, SELF_WORD, RT.RELATED)

    # -- inflections -------------------------------------------------------

    def inflections(self) -> None:
        for item in self.doc.section("ins"):
            if not isinstance(item, dict) or not isinstance(item.get("if"), str):
                logger.debug(f"Skipping inflection without a form in {self.main.text!r}")
                continue
            form = clean_headword(item["if"])
            if not form or form == self.main.text:
                continue
            rel_type, definition = classify_inflection(
                form, item.get("il"), self.main.part_of_speech, self.main.text,
            )
            c = self.add(CandidateEntity(
                text=form,
                part_of_speech=self.main.part_of_speech,
                origin="ins",
                is_plural=rel_type is RT.PLURAL,
                phonetic=pronunciation_phonetic(item.get("prs")),
                etymology=self.main.text,
                audio_urls=pronunciation_audio(self.audio_base_url, item.get("prs")),
                definitions=[DefinitionDraft(definition)] if definition else [],
            ))
            c.relate(MAIN_WORD, SELF_WORD, RT.RELATED)
            if rel_type is not None:
                c.relate(SELF_SENSE, MAIN_SENSE, rel_type)

    # -- synonyms and antonyms ---------------------------------------------

    def word_lists(self) -> None:
        listed: set[str] = set()
        for key, rel_type in (("syns", RT.SYNONYM), ("ants", RT.ANTONYM)):
            for word in self.doc.word_lists(key):
                if not word or word == self.main.text:
                    continue
                listed.add(word)
                c = self.add(CandidateEntity(
                    text=word,
                    part_of_speech=synonym_category(self.main.part_of_speech, word),
                    origin=key[:-1],
                ))
                c.relate(MAIN_WORD, SELF_WORD, rel_type)

        for word in self._mine(self.main.mining_texts, self.main.text):
            if word in listed:
                continue
            c = self.add(CandidateEntity(
                text=word,
                part_of_speech=synonym_category(self.main.part_of_speech, word),
                origin="pattern",
            ))
            c.relate(MAIN_WORD, SELF_WORD, RT.SYNONYM)

    @staticmethod
    def _mine(texts: list[str], own: str) -> list[str]:
        words: list[str] = []
        for text in texts:
            for word in extract_pattern_synonyms(text, exclude=own):
                if word not in words:
                    words.append(word)
        return words

    def _mined_synonyms(
        self, texts: list[str], owner: str, owner_pos: PartOfSpeech
    ) -> None:
        for word in self._mine(texts, owner):
            c = self.add(CandidateEntity(
                text=word,
                part_of_speech=synonym_category(owner_pos, word),
                origin="pattern",
            ))
            c.relate(Endpoint.word_of(owner), SELF_WORD, RT.SYNONYM)

    # -- defined run-ons: phrasal verbs and phrases ------------------------

    def run_on_phrases(self) -> None:
        for dro in self.doc.section("dros"):
            drp = dro.get("drp") if isinstance(dro, dict) else None
            if not isinstance(drp, str) or not strip_trailing_star(drp):
                continue
            phrase = strip_trailing_star(drp)
            extracted = walk_definitions(dro.get("def"), self.doc.gram)
            drafts = [DefinitionDraft.from_extracted(d) for d in extracted]

            if dro.get("gram") == "phrasal verb":
                c = self.add(CandidateEntity(
                    text=phrase,
                    part_of_speech=PartOfSpeech.PHRASAL_VERB,
                    origin="dro",
                    definitions=drafts,
                ))
                c.relate(MAIN_WORD, SELF_WORD, RT.RELATED)
                c.relate(MAIN_SENSE, SELF_SENSE, RT.PHRASAL_VERB)
                self._phrasal_variants(phrase, extracted, drafts)
            else:
                c = self.add(CandidateEntity(
                    text=phrase,
                    part_of_speech=PartOfSpeech.PHRASE,
                    origin="dro_phrase",
                    definitions=drafts,
                ))
                c.relate(MAIN_WORD, SELF_WORD, RT.RELATED)
                c.relate(MAIN_SENSE, SELF_SENSE, RT.PHRASE)
            self._mined_synonyms(mining_texts(extracted), phrase, c.part_of_speech)

    def _phrasal_variants(
        self,
        phrase: str,
        extracted: list[ExtractedDefinition],
        drafts: list[DefinitionDraft],
    ) -> None:
        by_form: dict[str, CandidateEntity] = {}
        for definition, draft in zip(extracted, drafts):
            for form in definition.phrasal_variants:
                if form == phrase:
                    continue
                c = by_form.get(form)
                if c is None:
                    c = by_form[form] = self.add(CandidateEntity(
                        text=form,
                        part_of_speech=PartOfSpeech.PHRASAL_VERB,
                        origin="pva",
                    ))
                    c.relate(MAIN_WORD, SELF_WORD, RT.RELATED)
                    c.relate(Endpoint.sense_of(phrase), SELF_SENSE,
                             RT.VARIANT_FORM_PHRASAL_VERB)
                c.definitions.append(draft)

    # -- undefined run-ons -------------------------------------------------

    def run_on_words(self) -> None:
        for uro in self.doc.section("uros"):
            ure = uro.get("ure") if isinstance(uro, dict) else None
            if not isinstance(ure, str) or not clean_headword(ure):
                continue
            form = clean_headword(ure)
            if form == self.main.text:
                continue
            pos = map_part_of_speech(uro.get("fl"))
            gram = uro.get("gram") if isinstance(uro.get("gram"), str) else None
            c = self.add(CandidateEntity(
                text=form,
                part_of_speech=pos,
                origin="uro",
                phonetic=pronunciation_phonetic(uro.get("prs")),
                etymology=self.main.text,
                audio_urls=pronunciation_audio(self.audio_base_url, uro.get("prs")),
                definitions=[DefinitionDraft(
                    f"Form of {italic(self.main.text)}",
                    grammatical_note=gram,
                    examples=tuple(_utxt_examples(uro.get("utxt"), gram)),
                )],
            ))
            c.relate(MAIN_WORD, SELF_WORD, RT.RELATED)
            c.relate(MAIN_WORD, SELF_WORD, RT.STEM)
            self._run_on_inflections(form, pos, uro.get("ins"))

    def _run_on_inflections(self, base: str, pos: PartOfSpeech, items: Any) -> None:
        if not isinstance(items, list):
            return
        for item in items:
            if not isinstance(item, dict) or not isinstance(item.get("if"), str):
                logger.debug(f"Skipping run-on inflection without a form under {base!r}")
                continue
            form = clean_headword(item["if"])
            if not form or form in (self.main.text, base):
                continue
            rel_type, definition = classify_inflection(form, item.get("il"), pos, base)
            ifc = item.get("ifc")
            c = self.add(CandidateEntity(
                text=form,
                part_of_speech=pos,
                origin="uro_ins",
                is_plural=rel_type is RT.PLURAL,
                phonetic=pronunciation_phonetic(item.get("prs")),
                etymology=base,
                audio_urls=pronunciation_audio(self.audio_base_url, item.get("prs")),
                definitions=[DefinitionDraft(
                    definition or f"Inflected form of {italic(base)}",
                    grammatical_note=(
                        f"Inflection category: {ifc}" if isinstance(ifc, str) and ifc else None
                    ),
                )],
            ))
            c.relate(MAIN_WORD, SELF_WORD, RT.RELATED)
            if rel_type is not None:
                c.relate(SELF_SENSE, Endpoint.sense_of(base), rel_type)
            else:
                c.relate(Endpoint.word_of(base), SELF_WORD, RT.RELATED)


def _utxt_examples(utxt: Any, note: str | None) -> list[ExtractedExample]:
    examples: list[ExtractedExample] = []
    if not isinstance(utxt, list):
        return examples
    for item in utxt:
        if not isinstance(item, list) or len(item) != 2 or item[0] != "vis":
            continue
        if not isinstance(item[1], list):
            continue
        for vis in item[1]:
            text = vis.get("t") if isinstance(vis, dict) else None
            if isinstance(text, str) and not is_reference_only(text):
                cleaned = clean_text(text)
                if cleaned and all(e.text != cleaned for e in examples):
                    examples.append(ExtractedExample(cleaned, note))
    return examples


def build_candidates(
    doc: ProviderDocument, main: MainEntry, audio_base_url: str
) -> list[CandidateEntity]:
    """Build every candidate entity of *doc*, section by section.

    A section with nothing usable contributes nothing. A section that fails
    outright is logged and skipped; the others still contribute.
    """
    builder = _Builder(doc, main, audio_base_url)
    sections = (
        ("vrs", builder.variants),
        ("cxs", builder.cross_references),
        ("ins", builder.inflections),
        ("syns", builder.word_lists),
        ("dros", builder.run_on_phrases),
        ("uros", builder.run_on_words),
    )
    for name, build in sections:
        before = len(builder.candidates)
        try:
            build()
        except (AttributeError, KeyError, TypeError, ValueError, IndexError):
            logger.warning(
                f"Section {name!r} of {doc.headword!r} is malformed; skipped",
                exc_info=True,
            )
            del builder.candidates[before:]
    return builder.candidates
