"""Transactional storage of one document's entity graph."""

from __future__ import annotations

import logging
import sqlite3
import threading
import time
from collections.abc import Callable, Iterable, Iterator, Sequence
from concurrent.futures import ThreadPoolExecutor, wait
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TypeVar

from dictionary_ingest import db as _db
from dictionary_ingest.candidates import CandidateEntity, DefinitionDraft, MainEntry
from dictionary_ingest.collaborators import FrequencyLookup, safe_frequency
from dictionary_ingest.config import IngestConfig
from dictionary_ingest.exceptions import (
    DatabaseError,
    TransactionConflictError,
    TransactionTimeoutError,
)
from dictionary_ingest.models import DefinitionSummary, ImageRef, PartOfSpeech
from dictionary_ingest.resolver import (
    EntityIndex,
    ResolvedRelationship,
    StoredEntity,
    resolve_relationships,
)

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


@dataclass(frozen=True, slots=True)
class CommitResult:
    """Ids produced by one committed document."""

    word_id: int
    sense_id: int
    definitions: tuple[DefinitionSummary, ...]
    candidate_count: int
    relationship_count: int
    skipped_relationships: int


def _batched(items: Sequence[_T], size: int) -> Iterator[Sequence[_T]]:
    for i in range(0, len(items), size):
        yield items[i:i + size]


def _is_conflict(error: sqlite3.OperationalError) -> bool:
    message = str(error).lower()
    return "locked" in message or "busy" in message


class PersistenceCoordinator:
    """Stores a main entry and its candidates inside one transaction.

    The connection is shared with a bounded worker pool; *lock* serializes
    each group of statements. Batches run one after another, so ids from
    one batch exist before the next starts.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        lock: threading.Lock,
        config: IngestConfig,
        frequency: FrequencyLookup,
    ) -> None:
        self._conn = conn
        self._lock = lock
        self._config = config
        self._frequency = frequency
        self._deadline = 0.0

    # ------------------------------------------------------------------
    # Transaction handling
    # ------------------------------------------------------------------

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        with self._lock:
            self._conn.execute("BEGIN IMMEDIATE")
        try:
            yield
        except BaseException:
            with self._lock:
                self._conn.rollback()
            raise
        else:
            with self._lock:
                self._conn.commit()

    def _check_deadline(self) -> None:
        if time.monotonic() > self._deadline:
            raise TransactionTimeoutError(
                f"Transaction exceeded {self._config.transaction_timeout}s budget"
            )

    def _run_batches(
        self,
        pool: ThreadPoolExecutor,
        fn: Callable[[_T], object],
        items: Sequence[_T],
        size: int,
    ) -> list:
        results: list = []
        for batch in _batched(items, size):
            # every task of the batch finishes before a failure propagates
            futures = [pool.submit(fn, item) for item in batch]
            wait(futures)
            results.extend(f.result() for f in futures)
            self._check_deadline()
        return results

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def commit(
        self,
        main: MainEntry,
        candidates: Sequence[CandidateEntity],
        audio_links: dict[str, str] | None = None,
    ) -> CommitResult:
        """Upsert *main*, its candidates and their relationships atomically.

        Raises:
            TransactionConflictError: the database was locked or the time
                budget ran out; nothing was committed.
            DatabaseError: any other storage failure.
        """
        audio_links = audio_links or {}
        self._deadline = time.monotonic() + self._config.transaction_timeout
        try:
            with self._transaction():
                with ThreadPoolExecutor(max_workers=self._config.max_workers) as pool:
                    return self._store(pool, main, candidates, audio_links)
        except sqlite3.OperationalError as e:
            if _is_conflict(e):
                raise TransactionConflictError(
                    f"Transaction for {main.text!r} aborted: {e}"
                ) from e
            raise DatabaseError(f"Storing {main.text!r} failed: {e}") from e
        except (sqlite3.Error, UnicodeError) as e:
            raise DatabaseError(f"Storing {main.text!r} failed: {e}") from e

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _store(
        self,
        pool: ThreadPoolExecutor,
        main: MainEntry,
        candidates: Sequence[CandidateEntity],
        audio_links: dict[str, str],
    ) -> CommitResult:
        language = self._config.language
        source = main.source.value
        frequency = safe_frequency(
            self._frequency, main.text, language, main.part_of_speech.value
        )
        with self._lock:
            word_id = _db.upsert_word(
                self._conn, main.text, language,
                phonetic=main.phonetic,
                etymology=main.etymology,
                is_highlighted=main.is_highlighted,
                source_entity_id=main.source_entity_id,
            )
            sense_id = _db.upsert_sense(
                self._conn, word_id, main.part_of_speech.value, main.variant,
                source=source, phonetic=main.phonetic, frequency=frequency,
            )
            self._link_audio(sense_id, main.audio_urls, audio_links)
        logger.debug(f"Stored main entry {main.text!r} (word {word_id}, sense {sense_id})")

        definition_ids = self._store_definitions(sense_id, main.definitions, source, pool)
        self._check_deadline()

        index = EntityIndex(
            StoredEntity(word_id, sense_id, main.part_of_speech, main.text)
        )

        def store_candidate(item: tuple[int, CandidateEntity]) -> tuple[int, StoredEntity]:
            position, candidate = item
            return position, self._store_candidate(candidate, source, audio_links)

        stored = self._run_batches(
            pool, store_candidate, list(enumerate(candidates)),
            self._config.write_batch_size,
        )
        for position, entity in stored:
            index.add(position, entity)

        resolution = resolve_relationships(
            candidates, index,
            ensure_sense=lambda wid, pos, entity: self._ensure_sense(wid, pos, entity, source),
        )
        self._check_deadline()

        self._run_batches(
            pool, self._insert_word_relation, resolution.word_level,
            self._config.relationship_batch_size,
        )
        self._run_batches(
            pool, self._insert_sense_relation, resolution.sense_level,
            self._config.relationship_batch_size,
        )

        return CommitResult(
            word_id=word_id,
            sense_id=sense_id,
            definitions=self._summaries(definition_ids),
            candidate_count=len(candidates),
            relationship_count=len(resolution),
            skipped_relationships=resolution.skipped,
        )

    def _store_candidate(
        self,
        candidate: CandidateEntity,
        source: str,
        audio_links: dict[str, str],
    ) -> StoredEntity:
        language = self._config.language
        frequency = safe_frequency(
            self._frequency, candidate.text, language, candidate.part_of_speech.value
        )
        with self._lock:
            word_id = _db.upsert_word(
                self._conn, candidate.text, language,
                phonetic=candidate.phonetic,
                etymology=candidate.etymology,
            )
            sense_id = _db.upsert_sense(
                self._conn, word_id, candidate.part_of_speech.value, "",
                candidate.is_plural,
                source=source, phonetic=candidate.phonetic, frequency=frequency,
            )
            self._link_audio(sense_id, candidate.audio_urls, audio_links)
        self._store_definitions(sense_id, candidate.definitions, source)
        return StoredEntity(word_id, sense_id, candidate.part_of_speech, candidate.text)

    def _store_definitions(
        self,
        sense_id: int,
        drafts: Iterable[DefinitionDraft],
        source: str,
        pool: ThreadPoolExecutor | None = None,
    ) -> list[int]:
        """Upsert definitions of a sense and their examples.

        With a *pool*, each definition's examples are written in concurrent
        batches; candidate workers pass none and write them in turn.
        """
        language = self._config.language
        ids: list[int] = []
        for i, draft in enumerate(drafts):
            with self._lock:
                definition_id = _db.upsert_definition(
                    self._conn, draft.text, language, source,
                    subject_status_labels=draft.subject_status_labels,
                    general_labels=draft.general_labels,
                    grammatical_note=draft.grammatical_note,
                    usage_note=draft.usage_note,
                    is_in_short_def=draft.is_in_short_def,
                )
                _db.link_sense_definition(self._conn, sense_id, definition_id, i == 0)
            ids.append(definition_id)

            def store_example(example, definition_id=definition_id):
                with self._lock:
                    return _db.upsert_example(
                        self._conn, definition_id, example.text, language,
                        example.grammatical_note,
                    )

            if pool is not None:
                self._run_batches(
                    pool, store_example, list(draft.examples),
                    self._config.write_batch_size,
                )
            else:
                for example in draft.examples:
                    store_example(example)
        return ids

    def _ensure_sense(
        self,
        word_id: int,
        pos: PartOfSpeech,
        entity: StoredEntity,
        source: str,
    ) -> int:
        frequency = safe_frequency(
            self._frequency, entity.text, self._config.language, pos.value
        )
        with self._lock:
            sense_id = _db.upsert_sense(
                self._conn, word_id, pos.value, source=source, frequency=frequency,
            )
        logger.debug(f"Using inferred {pos.value} sense {sense_id} for {entity.text!r}")
        return sense_id

    def _link_audio(
        self, sense_id: int, urls: Iterable[str], audio_links: dict[str, str]
    ) -> None:
        # caller holds the lock
        for url in urls:
            stored = audio_links.get(url)
            if stored:
                audio_id = _db.get_or_create_audio(self._conn, stored)
                _db.link_sense_audio(self._conn, sense_id, audio_id)

    def _insert_word_relation(self, rel: ResolvedRelationship) -> bool:
        with self._lock:
            return _db.insert_word_relation(
                self._conn, rel.source_id, rel.target_id,
                rel.relation_type.value, rel.description,
            )

    def _insert_sense_relation(self, rel: ResolvedRelationship) -> bool:
        with self._lock:
            return _db.insert_sense_relation(
                self._conn, rel.source_id, rel.target_id,
                rel.relation_type.value, rel.description,
            )

    def _summaries(self, definition_ids: Sequence[int]) -> tuple[DefinitionSummary, ...]:
        summaries = []
        with self._lock:
            for definition_id in definition_ids:
                row = self._conn.execute(
                    "SELECT d.rowid AS definition_rowid, d.text, i.rowid AS image_rowid, i.url, i.description "
                    "FROM definitions d LEFT JOIN images i ON i.rowid = d.image_rowid "
                    "WHERE d.rowid = ?",
                    (definition_id,),
                ).fetchone()
                image = (
                    ImageRef(row["image_rowid"], row["url"], row["description"])
                    if row["image_rowid"] is not None else None
                )
                summaries.append(DefinitionSummary(row["definition_rowid"], row["text"], image))
        return tuple(summaries)
