"""Tests for collaborator isolation and post-commit services."""

import threading

from dictionary_ingest.collaborators import (
    AudioDownloadResult,
    AudioStatus,
    BackfilledImage,
    DirectAudioLinks,
    backfill_images,
    download_audio,
    run_translation_augmentation,
    safe_frequency,
)
from dictionary_ingest.models import ImageRef


class BrokenFrequency:
    def get_frequency(self, word, language, category):
        raise RuntimeError("frequency service down")


class MixedAudio:
    def download_and_store(self, items):
        return [
            AudioDownloadResult("a", AudioStatus.SUCCESS, "stored/a"),
            AudioDownloadResult("b", AudioStatus.SKIPPED, "stored/b"),
            AudioDownloadResult("c", AudioStatus.FAILED),
        ]


class BrokenAudio:
    def download_and_store(self, items):
        raise ConnectionError("no network")


class RecordingImages:
    def __init__(self, fail_for=()):
        self.fail_for = set(fail_for)
        self.calls = []
        self._lock = threading.Lock()

    def get_or_create_image(self, word, definition_id):
        with self._lock:
            self.calls.append(definition_id)
        if definition_id in self.fail_for:
            raise RuntimeError("rate limited")
        if definition_id == 0:
            return None
        return BackfilledImage(f"https://img.example/{definition_id}.png", word)


class TestFrequency:

    def test_failure_degrades_to_none(self, caplog):
        assert safe_frequency(BrokenFrequency(), "walk", "en", "verb") is None
        assert "Frequency lookup failed" in caplog.text


class TestAudio:

    def test_only_success_and_skipped_are_linked(self):
        links = download_audio(MixedAudio(), [("a", "w"), ("b", "w"), ("c", "w")])
        assert links == {"a": "stored/a", "b": "stored/b"}

    def test_service_failure_links_nothing(self):
        assert download_audio(BrokenAudio(), [("a", "w")]) == {}

    def test_no_items_skips_service(self):
        assert download_audio(BrokenAudio(), []) == {}

    def test_direct_links(self):
        results = DirectAudioLinks().download_and_store([("https://a/x.mp3", "x")])
        assert results == [AudioDownloadResult("https://a/x.mp3", AudioStatus.SKIPPED, "https://a/x.mp3")]


class TestImageBackfill:

    def _store(self, definition_id, image):
        return ImageRef(definition_id * 100, image.url, image.description)

    def test_batches_with_delay(self):
        sleeps = []
        service = RecordingImages()
        attached = backfill_images(
            service, "walk", [1, 2, 3, 4, 5, 6, 7], self._store,
            batch_size=3, delay=0.25, sleep=sleeps.append,
        )
        assert sorted(service.calls) == [1, 2, 3, 4, 5, 6, 7]
        assert sleeps == [0.25, 0.25]
        assert attached[3] == ImageRef(300, "https://img.example/3.png", "walk")

    def test_failures_are_isolated(self, caplog):
        service = RecordingImages(fail_for={2})
        attached = backfill_images(service, "walk", [0, 1, 2, 3], self._store, sleep=lambda s: None)
        assert set(attached) == {1, 3}
        assert "definition 2" in caplog.text

    def test_store_failure_is_isolated(self):
        def store(definition_id, image):
            if definition_id == 1:
                raise RuntimeError("disk full")
            return self._store(definition_id, image)

        attached = backfill_images(RecordingImages(), "walk", [1, 2], store, sleep=lambda s: None)
        assert set(attached) == {2}


class TestTranslation:

    def test_failure_returns_false(self):
        class Broken:
            def augment(self, word_id, word_text, payload):
                raise ValueError("bad payload")

        assert run_translation_augmentation(Broken(), 1, "walk", {}) is False

    def test_success(self):
        seen = []

        class Recorder:
            def augment(self, word_id, word_text, payload):
                seen.append((word_id, word_text, payload))

        assert run_translation_augmentation(Recorder(), 1, "walk", {"stems": ["walk"]})
        assert seen == [(1, "walk", {"stems": ["walk"]})]
