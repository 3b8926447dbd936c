"""Second pass: turn symbolic relationship endpoints into stored ids."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from dictionary_ingest.candidates import (
    CandidateEntity,
    Endpoint,
    EndpointKind,
)
from dictionary_ingest.models import PartOfSpeech, RelationshipType
from dictionary_ingest.relations import POS_FOR_RELATION, get_description, is_word_level

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StoredEntity:
    """Ids and category of a word+sense pair already upserted."""

    word_id: int
    sense_id: int
    part_of_speech: PartOfSpeech
    text: str


@dataclass(frozen=True, slots=True)
class ResolvedRelationship:
    source_id: int
    target_id: int
    relation_type: RelationshipType
    description: str | None = None


@dataclass
class Resolution:
    """Concrete relationships, split by the kind of row they become."""

    word_level: list[ResolvedRelationship] = field(default_factory=list)
    sense_level: list[ResolvedRelationship] = field(default_factory=list)
    skipped: int = 0

    def __len__(self) -> int:
        return len(self.word_level) + len(self.sense_level)


# word id, inferred category, entity -> id of the sense in that category
EnsureSense = Callable[[int, PartOfSpeech, StoredEntity], int]


class EntityIndex:
    """Stored ids of the main entry and of every candidate, by position and text."""

    def __init__(self, main: StoredEntity):
        self.main = main
        self._by_position: dict[int, StoredEntity] = {}
        self._by_surface: dict[str, StoredEntity] = {}

    def add(self, position: int, entity: StoredEntity) -> None:
        self._by_position[position] = entity
        # first candidate with a given text wins surface lookups
        self._by_surface.setdefault(entity.text, entity)

    def candidate(self, position: int) -> StoredEntity | None:
        return self._by_position.get(position)

    def surface(self, text: str) -> StoredEntity | None:
        if text == self.main.text:
            return self.main
        return self._by_surface.get(text)

    def __len__(self) -> int:
        return len(self._by_position)


def infer_category(relation_type: RelationshipType) -> PartOfSpeech:
    """Category implied by a relation type, or undefined."""
    return POS_FOR_RELATION.get(relation_type, PartOfSpeech.UNDEFINED)


def _lookup(endpoint: Endpoint, position: int, index: EntityIndex) -> StoredEntity | None:
    kind = endpoint.kind
    if kind in (EndpointKind.MAIN_WORD, EndpointKind.MAIN_SENSE):
        return index.main
    if kind in (EndpointKind.SELF_WORD, EndpointKind.SELF_SENSE):
        return index.candidate(position)
    return index.surface(endpoint.surface or "")


def _sense_id(
    endpoint: Endpoint,
    entity: StoredEntity,
    relation_type: RelationshipType,
    ensure_sense: EnsureSense | None,
) -> int:
    if (
        endpoint.is_sense_level
        and entity.part_of_speech is PartOfSpeech.UNDEFINED
        and ensure_sense is not None
    ):
        inferred = infer_category(relation_type)
        if inferred is not PartOfSpeech.UNDEFINED:
            return ensure_sense(entity.word_id, inferred, entity)
    return entity.sense_id


def resolve_relationships(
    candidates: Sequence[CandidateEntity],
    index: EntityIndex,
    ensure_sense: EnsureSense | None = None,
) -> Resolution:
    """Resolve every candidate's symbolic relationships against *index*.

    An endpoint that cannot be found drops that one relationship with a
    warning. Whether a relationship links words or senses depends only on
    its type.
    """
    resolution = Resolution()
    seen: set[tuple[bool, int, int, RelationshipType]] = set()
    for position, candidate in enumerate(candidates):
        for rel in candidate.relationships:
            source = _lookup(rel.source, position, index)
            target = _lookup(rel.target, position, index)
            if source is None or target is None:
                missing = rel.source if source is None else rel.target
                logger.warning(
                    f"Dropping {rel.relation_type.value} relationship of "
                    f"{candidate.text!r}: endpoint {missing} not found"
                )
                resolution.skipped += 1
                continue

            word_level = is_word_level(rel.relation_type)
            if word_level:
                source_id, target_id = source.word_id, target.word_id
            else:
                source_id = _sense_id(rel.source, source, rel.relation_type, ensure_sense)
                target_id = _sense_id(rel.target, target, rel.relation_type, ensure_sense)

            if source_id == target_id:
                logger.warning(
                    f"Dropping {rel.relation_type.value} relationship of "
                    f"{candidate.text!r}: both endpoints are the same entity"
                )
                resolution.skipped += 1
                continue

            key = (word_level, source_id, target_id, rel.relation_type)
            if key in seen:
                continue
            seen.add(key)
            resolved = ResolvedRelationship(
                source_id, target_id, rel.relation_type,
                get_description(rel.relation_type),
            )
            if word_level:
                resolution.word_level.append(resolved)
            else:
                resolution.sense_level.append(resolved)
    return resolution
