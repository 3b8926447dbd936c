"""DictionaryIngester — main entry point for the dictionary-ingest library."""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from dictionary_ingest import db as _db
from dictionary_ingest import history as _hist
from dictionary_ingest.candidates import (
    CandidateEntity,
    MainEntry,
    build_candidates,
    extract_main_entry,
)
from dictionary_ingest.collaborators import (
    AudioDownloadService,
    BackfilledImage,
    DirectAudioLinks,
    FrequencyLookup,
    ImageBackfillService,
    NullFrequencyLookup,
    TranslationAugmentor,
    backfill_images,
    download_audio,
    run_translation_augmentation,
)
from dictionary_ingest.config import IngestConfig, load_config
from dictionary_ingest.document import ProviderDocument, load_documents
from dictionary_ingest.exceptions import (
    DictionaryIngestError,
    DocumentParseError,
    EntityNotFoundError,
)
from dictionary_ingest.models import (
    DefinitionModel,
    DefinitionSummary,
    ExampleModel,
    ImageRef,
    IngestRecord,
    IngestSummary,
    RelationModel,
    SenseModel,
    ValidationResult,
    WordModel,
)
from dictionary_ingest.persistence import CommitResult, PersistenceCoordinator
from dictionary_ingest.validator import validate_all

logger = logging.getLogger(__name__)

_UNPARSED_WORD = "(unparsed)"


class DictionaryIngester:
    """Normalizes provider documents into the dictionary graph.

    One ingester owns one SQLite connection. Documents are ingested one at
    a time; within a document, writes run on a bounded worker pool.

    Args:
        db_path: SQLite database file, or ``":memory:"``.
        config: an :class:`IngestConfig`, or anything :func:`load_config`
            accepts (YAML path, YAML text, mapping, ``None`` for defaults).
        frequency: frequency-rank lookup consulted for every sense.
        audio: service that downloads and stores pronunciation audio.
        images: post-commit image backfill; skipped when ``None``.
        translator: post-commit translation augmentation; skipped when ``None``.
    """

    def __init__(
        self,
        db_path: str | Path = ":memory:",
        config: IngestConfig | dict | str | Path | None = None,
        *,
        frequency: FrequencyLookup | None = None,
        audio: AudioDownloadService | None = None,
        images: ImageBackfillService | None = None,
        translator: TranslationAugmentor | None = None,
    ) -> None:
        self._config = config if isinstance(config, IngestConfig) else load_config(config)
        self._db_path = str(db_path)
        self._conn = _db.connect(db_path, timeout=self._config.busy_timeout)
        _db.check_schema_version(self._conn)
        _db.init_db(self._conn)
        # statement lock shared with worker threads; document lock
        # keeps one document's transaction open at a time
        self._lock = threading.Lock()
        self._document_lock = threading.Lock()
        self._frequency = frequency if frequency is not None else NullFrequencyLookup()
        self._audio = audio if audio is not None else DirectAudioLinks()
        self._images = images
        self._translator = translator
        self._persistence = PersistenceCoordinator(
            self._conn, self._lock, self._config, self._frequency
        )

    @property
    def config(self) -> IngestConfig:
        return self._config

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    def __enter__(self) -> DictionaryIngester:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def ingest(self, document: ProviderDocument | dict) -> IngestSummary:
        """Ingest one provider document.

        Raises:
            DocumentParseError: the document has no usable headword block.
            TransactionConflictError: the transaction was aborted (locked
                database or time budget exceeded); nothing was committed.
            DatabaseError: any other storage failure.
        """
        with self._lock:
            started_at = _hist.now(self._conn)
        try:
            doc = document if isinstance(document, ProviderDocument) else ProviderDocument(document)
        except DocumentParseError as e:
            with self._document_lock:
                self._record(_UNPARSED_WORD, _hist.FAILED, started_at, message=str(e))
            raise

        main = extract_main_entry(doc, self._config.audio_base_url)
        candidates = build_candidates(doc, main, self._config.audio_base_url)
        logger.info(f"Ingesting {main.text!r}: {len(candidates)} candidate(s)")

        audio_links = download_audio(self._audio, self._audio_items(main, candidates))

        with self._document_lock:
            try:
                result = self._persistence.commit(main, candidates, audio_links)
            except DictionaryIngestError as e:
                logger.error(f"Ingestion of {main.text!r} failed: {e}")
                self._record(
                    main.text, _hist.FAILED, started_at,
                    source_entity_id=main.source_entity_id, message=str(e),
                )
                raise
            self._record(
                main.text, _hist.COMMITTED, started_at,
                source_entity_id=main.source_entity_id,
                message=(
                    f"{len(result.definitions)} definition(s), "
                    f"{result.relationship_count} relationship(s)"
                ),
            )

        definitions = self._after_commit(main, result)
        return IngestSummary(
            word_id=result.word_id,
            sense_id=result.sense_id,
            word=main.text,
            definitions=definitions,
            candidate_count=result.candidate_count,
            relationship_count=result.relationship_count,
            skipped_relationships=result.skipped_relationships,
        )

    def ingest_many(self, documents: Iterable[ProviderDocument | dict]) -> list[IngestSummary]:
        """Ingest documents in order, continuing past failed ones.

        Retryable failures are retried up to ``max_retries`` times. Returns
        the summaries of the documents that were committed.
        """
        summaries: list[IngestSummary] = []
        for i, document in enumerate(documents):
            attempt = 0
            while True:
                try:
                    summaries.append(self.ingest(document))
                    break
                except DocumentParseError as e:
                    logger.error(f"Document #{i + 1} skipped: {e}")
                    break
                except DictionaryIngestError as e:
                    if getattr(e, "retryable", False) and attempt < self._config.max_retries:
                        attempt += 1
                        logger.warning(
                            f"Document #{i + 1} failed ({e}); "
                            f"retry {attempt}/{self._config.max_retries}"
                        )
                        continue
                    logger.error(f"Document #{i + 1} abandoned: {e}")
                    break
        return summaries

    def ingest_file(self, path: str | Path) -> list[IngestSummary]:
        """Ingest every entry of a JSON file of provider documents."""
        return self.ingest_many(load_documents(path))

    def _audio_items(
        self, main: MainEntry, candidates: list[CandidateEntity]
    ) -> list[tuple[str, str]]:
        items: list[tuple[str, str]] = []
        seen: set[str] = set()
        for text, urls in [(main.text, main.audio_urls)] + [
            (c.text, c.audio_urls) for c in candidates
        ]:
            for url in urls:
                if url not in seen:
                    seen.add(url)
                    items.append((url, text))
        return items

    def _record(
        self,
        word: str,
        status: str,
        started_at: str,
        *,
        source_entity_id: str | None = None,
        message: str | None = None,
    ) -> None:
        # a locked database must not mask the error being recorded
        try:
            with self._lock:
                _hist.record_run(
                    self._conn, word, status, started_at,
                    source_entity_id=source_entity_id, message=message,
                )
        except (sqlite3.Error, UnicodeError) as e:
            with self._lock:
                self._conn.rollback()
            logger.warning(f"Could not record {status} run for {word!r}: {e}")

    # ------------------------------------------------------------------
    # Post-commit collaborators
    # ------------------------------------------------------------------

    def _after_commit(
        self, main: MainEntry, result: CommitResult
    ) -> tuple[DefinitionSummary, ...]:
        definitions = result.definitions
        if self._images is not None:
            missing = [d.id for d in definitions if d.image is None]
            if missing:
                attached = backfill_images(
                    self._images, main.text, missing, self._store_image,
                    batch_size=self._config.image_batch_size,
                    delay=self._config.image_batch_delay,
                )
                definitions = tuple(
                    DefinitionSummary(d.id, d.text, attached.get(d.id, d.image))
                    for d in definitions
                )
        if self._translator is not None:
            run_translation_augmentation(
                self._translator, result.word_id, main.text,
                {
                    "phonetic": main.phonetic,
                    "stems": list(main.stems),
                    "definitions": [d.text for d in definitions],
                },
            )
        return definitions

    def _store_image(self, definition_id: int, image: BackfilledImage) -> ImageRef:
        with self._lock:
            try:
                image_id = _db.get_or_create_image(self._conn, image.url, image.description)
                _db.set_definition_image(self._conn, definition_id, image_id)
                self._conn.commit()
            except sqlite3.Error:
                self._conn.rollback()
                raise
        return ImageRef(image_id, image.url, image.description)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_word(self, text: str, variant: str = "") -> WordModel:
        row = _db.get_word_row(self._conn, text, self._config.language, variant)
        if row is None:
            raise EntityNotFoundError(f"Word not found: {text!r}")
        return _row_to_word(row)

    def get_word_by_id(self, word_id: int) -> WordModel:
        row = _db.get_word_row_by_rowid(self._conn, word_id)
        if row is None:
            raise EntityNotFoundError(f"Word not found: {word_id}")
        return _row_to_word(row)

    def get_senses(self, text: str, variant: str = "") -> list[SenseModel]:
        word = self.get_word(text, variant)
        return [_row_to_sense(r) for r in _db.get_sense_rows(self._conn, word.id)]

    def get_sense(self, sense_id: int) -> SenseModel:
        row = _db.get_sense_row(self._conn, sense_id)
        if row is None:
            raise EntityNotFoundError(f"Sense not found: {sense_id}")
        return _row_to_sense(row)

    def get_definitions(self, sense_id: int) -> list[DefinitionModel]:
        self.get_sense(sense_id)
        rows = self._conn.execute(
            "SELECT d.rowid AS definition_rowid, d.*, sd.is_primary, "
            "i.url AS image_url, i.description AS image_description "
            "FROM sense_definitions sd "
            "JOIN definitions d ON d.rowid = sd.definition_rowid "
            "LEFT JOIN images i ON i.rowid = d.image_rowid "
            "WHERE sd.sense_rowid = ? ORDER BY sd.rowid",
            (sense_id,),
        ).fetchall()
        return [
            DefinitionModel(
                id=r["definition_rowid"],
                text=r["text"],
                language=r["language"],
                source=r["source"],
                subject_status_labels=r["subject_status_labels"],
                general_labels=r["general_labels"],
                grammatical_note=r["grammatical_note"],
                usage_note=r["usage_note"],
                is_in_short_def=bool(r["is_in_short_def"]),
                is_primary=bool(r["is_primary"]),
                image=(
                    ImageRef(r["image_rowid"], r["image_url"], r["image_description"])
                    if r["image_rowid"] is not None else None
                ),
            )
            for r in rows
        ]

    def get_examples(self, definition_id: int) -> list[ExampleModel]:
        rows = self._conn.execute(
            "SELECT rowid, * FROM examples WHERE definition_rowid = ? ORDER BY rowid",
            (definition_id,),
        ).fetchall()
        return [
            ExampleModel(
                id=r["rowid"],
                definition_id=r["definition_rowid"],
                text=r["text"],
                language=r["language"],
                grammatical_note=r["grammatical_note"],
            )
            for r in rows
        ]

    def get_word_relations(
        self,
        text: str,
        relation_type: str | None = None,
        *,
        variant: str = "",
        incoming: bool = False,
    ) -> list[RelationModel]:
        word = self.get_word(text, variant)
        return self._relations("word_relations", word.id, relation_type, incoming)

    def get_sense_relations(
        self,
        sense_id: int,
        relation_type: str | None = None,
        *,
        incoming: bool = False,
    ) -> list[RelationModel]:
        self.get_sense(sense_id)
        return self._relations("sense_relations", sense_id, relation_type, incoming)

    def _relations(
        self,
        table: str,
        rowid: int,
        relation_type: str | None,
        incoming: bool,
    ) -> list[RelationModel]:
        column = "target_rowid" if incoming else "source_rowid"
        sql = (
            f"SELECT r.source_rowid, r.target_rowid, rt.type, r.description "
            f"FROM {table} r JOIN relation_types rt ON rt.rowid = r.type_rowid "
            f"WHERE r.{column} = ?"
        )
        params: list[Any] = [rowid]
        if relation_type is not None:
            sql += " AND rt.type = ?"
            params.append(relation_type)
        sql += " ORDER BY r.rowid"
        return [
            RelationModel(r["source_rowid"], r["target_rowid"], r["type"], r["description"])
            for r in self._conn.execute(sql, params).fetchall()
        ]

    def counts(self) -> dict[str, int]:
        """Row counts of the graph tables."""
        return {table: _db.count_rows(self._conn, table) for table in _db.COUNTED_TABLES}

    # ------------------------------------------------------------------
    # History and validation
    # ------------------------------------------------------------------

    def get_history(
        self,
        *,
        word: str | None = None,
        status: str | None = None,
        since: str | None = None,
        limit: int | None = None,
    ) -> list[IngestRecord]:
        return _hist.query_history(
            self._conn, word=word, status=status, since=since, limit=limit,
        )

    def validate(self) -> list[ValidationResult]:
        return validate_all(self._conn)


# ---------------------------------------------------------------------------
# Row conversion
# ---------------------------------------------------------------------------

def _row_to_word(row: Any) -> WordModel:
    return WordModel(
        id=row["rowid"],
        text=row["text"],
        language=row["language"],
        variant=row["variant"],
        phonetic=row["phonetic"],
        etymology=row["etymology"],
        frequency=row["frequency"],
        is_highlighted=bool(row["is_highlighted"]),
        source_entity_id=row["source_entity_id"],
    )


def _row_to_sense(row: Any) -> SenseModel:
    return SenseModel(
        id=row["rowid"],
        word_id=row["word_rowid"],
        part_of_speech=row["part_of_speech"],
        variant=row["variant"],
        is_plural=bool(row["is_plural"]),
        phonetic=row["phonetic"],
        frequency=row["frequency"],
        source=row["source"],
    )
