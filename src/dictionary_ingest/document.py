"""Typed access to one provider entry document."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from dictionary_ingest.exceptions import DocumentParseError
from dictionary_ingest.markup import (
    clean_headword,
    format_etymology,
    format_with_bc,
    strip_markup,
)
from dictionary_ingest.models import PartOfSpeech, SourceType

logger = logging.getLogger(__name__)

__all__ = [
    "DocumentParseError",
    "ProviderDocument",
    "audio_url",
    "load_documents",
    "map_part_of_speech",
    "map_source",
    "pronunciation_audio",
    "pronunciation_phonetic",
]

_POS_MAP = {
    "noun": PartOfSpeech.NOUN,
    "verb": PartOfSpeech.VERB,
    "phrasal verb": PartOfSpeech.PHRASAL_VERB,
    "adjective": PartOfSpeech.ADJECTIVE,
    "adverb": PartOfSpeech.ADVERB,
    "pronoun": PartOfSpeech.PRONOUN,
    "preposition": PartOfSpeech.PREPOSITION,
    "conjunction": PartOfSpeech.CONJUNCTION,
    "interjection": PartOfSpeech.INTERJECTION,
    "phrase": PartOfSpeech.PHRASE,
}

_SOURCE_MAP = {
    "learners": SourceType.MERRIAM_LEARNERS,
    "int_dict": SourceType.MERRIAM_INTERMEDIATE,
}


def map_part_of_speech(label: Any) -> PartOfSpeech:
    """Map a provider functional label to a category; unknown -> undefined."""
    if not isinstance(label, str) or not label:
        logger.warning("Missing functional label; using undefined")
        return PartOfSpeech.UNDEFINED
    pos = _POS_MAP.get(label.lower())
    if pos is None:
        logger.warning(f"Unknown part of speech {label!r}; using undefined")
        return PartOfSpeech.UNDEFINED
    return pos


def map_source(code: Any) -> SourceType:
    """Map a provider source code to a provenance; unknown -> user."""
    source = _SOURCE_MAP.get(code.lower()) if isinstance(code, str) else None
    if source is None:
        logger.warning(f"Unknown source type {code!r}; defaulting to user")
        return SourceType.USER
    return source


def audio_url(base_url: str, audio: str) -> str:
    """Build the download URL for a provider audio file name."""
    if audio.startswith("bix"):
        subdir = "bix"
    elif audio.startswith("gg"):
        subdir = "gg"
    elif not audio[0].isalpha():
        subdir = "number"
    else:
        subdir = audio[0]
    return f"{base_url.rstrip('/')}/{subdir}/{audio}.mp3"


def pronunciation_phonetic(*groups: Any) -> str | None:
    """First pronunciation's IPA, else its MW respelling, across the groups."""
    for prs in groups:
        if not isinstance(prs, list) or not prs or not isinstance(prs[0], dict):
            continue
        phonetic = prs[0].get("ipa") or prs[0].get("mw")
        if isinstance(phonetic, str) and phonetic:
            return phonetic
    return None


def pronunciation_audio(base_url: str, *groups: Any) -> list[str]:
    """Audio URLs of every pronunciation in the groups, in order."""
    urls: list[str] = []
    for prs in groups:
        if not isinstance(prs, list):
            continue
        for pr in prs:
            sound = pr.get("sound") if isinstance(pr, dict) else None
            audio = sound.get("audio") if isinstance(sound, dict) else None
            if isinstance(audio, str) and audio:
                url = audio_url(base_url, audio)
                if url not in urls:
                    urls.append(url)
    return urls


class ProviderDocument:
    """One provider entry, with the raw mapping kept for section walks."""

    def __init__(self, data: Any):
        if not isinstance(data, dict):
            raise DocumentParseError(
                f"Document root must be a mapping, got {type(data).__name__}"
            )
        hwi = data.get("hwi")
        if not isinstance(hwi, dict) or not isinstance(hwi.get("hw"), str):
            raise DocumentParseError("Document has no headword block ('hwi.hw')")
        headword = clean_headword(hwi["hw"])
        if not headword:
            raise DocumentParseError("Document headword is empty")
        self.data = data
        self.hwi = hwi
        self.headword = headword
        meta = data.get("meta")
        self.meta: dict = meta if isinstance(meta, dict) else {}

    def __repr__(self) -> str:
        return f"ProviderDocument({self.headword!r}, id={self.meta.get('id')!r})"

    def section(self, key: str) -> list:
        """A top-level list section, or [] when absent or malformed."""
        value = self.data.get(key)
        if value is None:
            return []
        if not isinstance(value, list):
            logger.warning(f"Section {key!r} of {self.headword!r} is not a list; skipped")
            return []
        return value

    @property
    def provider_id(self) -> str:
        value = self.meta.get("id")
        return value if isinstance(value, str) else self.headword

    @property
    def homograph(self) -> str:
        """Homograph number from the provider id (``walk:1`` -> ``1``)."""
        _, _, number = self.provider_id.partition(":")
        return number

    @property
    def source(self) -> SourceType:
        return map_source(self.meta.get("src"))

    @property
    def source_entity_id(self) -> str:
        return f"{self.source.value}-{self.provider_id}-{self.meta.get('uuid')}"

    @property
    def part_of_speech(self) -> PartOfSpeech:
        return map_part_of_speech(self.data.get("fl"))

    @property
    def functional_label(self) -> str | None:
        fl = self.data.get("fl")
        return fl if isinstance(fl, str) else None

    @property
    def is_highlighted(self) -> bool:
        return self.meta.get("highlight") == "yes"

    @property
    def phonetic(self) -> str | None:
        return pronunciation_phonetic(self.hwi.get("prs"), self.hwi.get("altprs"))

    def audio_urls(self, base_url: str) -> list[str]:
        return pronunciation_audio(base_url, self.hwi.get("prs"), self.hwi.get("altprs"))

    @property
    def etymology(self) -> str | None:
        return format_etymology(self.data.get("et"))

    @property
    def gram(self) -> str | None:
        gram = self.data.get("gram")
        return gram if isinstance(gram, str) and gram else None

    @property
    def labels(self) -> str | None:
        lbs = self.data.get("lbs")
        if isinstance(lbs, list):
            return ", ".join(v for v in lbs if isinstance(v, str) and v) or None
        return None

    @property
    def stems(self) -> list[str]:
        stems = self.meta.get("stems")
        return [s for s in stems if isinstance(s, str)] if isinstance(stems, list) else []

    def short_definition_keys(self) -> set[str]:
        """Markup-free short definitions (``app-shortdef`` preferred)."""
        app = self.meta.get("app-shortdef")
        app_defs = app.get("def") if isinstance(app, dict) else None
        if isinstance(app_defs, list):
            return {strip_markup(d) for d in app_defs if isinstance(d, str)}
        shortdef = self.data.get("shortdef")
        if isinstance(shortdef, str):
            shortdef = [shortdef]
        if isinstance(shortdef, list):
            return {strip_markup(format_with_bc(d)) for d in shortdef if isinstance(d, str)}
        return set()

    def word_lists(self, key: str) -> list[str]:
        """Flatten ``meta.syns`` / ``meta.ants`` (lists of lists of words)."""
        groups = self.meta.get(key)
        words: list[str] = []
        if not isinstance(groups, list):
            return words
        for group in groups:
            if isinstance(group, str):
                group = [group]
            if not isinstance(group, list):
                continue
            for word in group:
                if isinstance(word, str) and word.strip():
                    words.append(clean_headword(word))
        return words


def load_documents(path: str | Path) -> list[Any]:
    """Read the raw entries of a provider JSON file.

    A file holds one entry mapping or a list of them. Plain-string items
    (spelling suggestions) are dropped; everything else is returned as-is
    and checked when it is wrapped in a :class:`ProviderDocument`.
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    items = data if isinstance(data, list) else [data]
    entries = []
    for item in items:
        if isinstance(item, str):
            logger.info(f"Skipping suggestion {item!r} in {path}")
            continue
        entries.append(item)
    return entries
