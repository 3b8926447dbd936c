"""External services consulted by the ingester, and their defaults.

Frequency lookup and audio storage are used while a document is being
stored; image backfill and translation augmentation run after commit.
Failures in any of them are logged per item and never fail an ingestion.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from dictionary_ingest.models import ImageRef

logger = logging.getLogger(__name__)


class AudioStatus(str, Enum):
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class AudioDownloadResult:
    url: str
    status: AudioStatus
    stored_url: str | None = None


@dataclass(frozen=True, slots=True)
class BackfilledImage:
    url: str
    description: str | None = None


class FrequencyLookup(Protocol):
    def get_frequency(self, word: str, language: str, category: str) -> int | None: ...


class AudioDownloadService(Protocol):
    def download_and_store(
        self, items: Sequence[tuple[str, str]]
    ) -> list[AudioDownloadResult]: ...


class ImageBackfillService(Protocol):
    def get_or_create_image(self, word: str, definition_id: int) -> BackfilledImage | None: ...


class TranslationAugmentor(Protocol):
    def augment(self, word_id: int, word_text: str, payload: dict[str, Any]) -> None: ...


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

class NullFrequencyLookup:
    """No frequency data."""

    def get_frequency(self, word: str, language: str, category: str) -> int | None:
        return None


class DirectAudioLinks:
    """Link provider audio URLs as they are, without downloading."""

    def download_and_store(
        self, items: Sequence[tuple[str, str]]
    ) -> list[AudioDownloadResult]:
        return [AudioDownloadResult(url, AudioStatus.SKIPPED, url) for url, _ in items]


# ---------------------------------------------------------------------------
# Isolating wrappers
# ---------------------------------------------------------------------------

def safe_frequency(
    lookup: FrequencyLookup, word: str, language: str, category: str
) -> int | None:
    """Frequency rank, or None if the lookup has none or fails."""
    try:
        return lookup.get_frequency(word, language, category)
    except Exception:
        logger.warning(f"Frequency lookup failed for {word!r} ({category})", exc_info=True)
        return None


def download_audio(
    service: AudioDownloadService, items: Sequence[tuple[str, str]]
) -> dict[str, str]:
    """Download audio and map each usable source URL to its stored URL.

    Failed items are left out, as is everything if the service raises.
    """
    if not items:
        return {}
    try:
        results = service.download_and_store(items)
    except Exception:
        logger.error(f"Audio download failed for {len(items)} file(s)", exc_info=True)
        return {}
    stored: dict[str, str] = {}
    for result in results:
        if result.status in (AudioStatus.SUCCESS, AudioStatus.SKIPPED) and result.stored_url:
            stored[result.url] = result.stored_url
        else:
            logger.warning(f"Audio {result.url} not stored ({result.status.value})")
    return stored


def backfill_images(
    service: ImageBackfillService,
    word: str,
    definition_ids: Sequence[int],
    store: Callable[[int, BackfilledImage], ImageRef],
    batch_size: int = 5,
    delay: float = 0.5,
    sleep: Callable[[float], None] = time.sleep,
) -> dict[int, ImageRef]:
    """Fetch images for definitions that lack one, a batch at a time.

    Items in a batch run concurrently; batches are separated by *delay*
    seconds. Each failure is logged and affects only its own definition.
    """
    attached: dict[int, ImageRef] = {}

    def one(definition_id: int) -> None:
        try:
            image = service.get_or_create_image(word, definition_id)
            if image is None:
                logger.warning(f"No image found for definition {definition_id}")
                return
            attached[definition_id] = store(definition_id, image)
        except Exception:
            logger.error(
                f"Error processing image for definition {definition_id}", exc_info=True
            )

    batches = [
        list(definition_ids[i:i + batch_size])
        for i in range(0, len(definition_ids), batch_size)
    ]
    with ThreadPoolExecutor(max_workers=batch_size) as pool:
        for i, batch in enumerate(batches):
            list(pool.map(one, batch))
            if i < len(batches) - 1 and delay > 0:
                sleep(delay)
    return attached


def run_translation_augmentation(
    augmentor: TranslationAugmentor,
    word_id: int,
    word_text: str,
    payload: dict[str, Any],
) -> bool:
    """Run the augmentor; return False (and log) if it raises."""
    try:
        augmentor.augment(word_id, word_text, payload)
    except Exception:
        logger.error(f"Translation augmentation failed for {word_text!r}", exc_info=True)
        return False
    return True
