"""Recursive walk over the provider's ``(kind, payload)`` definition nodes.

A definition body (``dt``) is a list of sibling nodes. The walk is a
single left-to-right pass; the only state is the grammatical note set by
a ``wsgram`` node, which is passed down explicitly and never outlives the
sibling list it was set in.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from dictionary_ingest.markup import (
    clean_text,
    is_cross_reference,
    is_reference_only,
    join_labels,
    strip_markup,
    strip_trailing_star,
)

logger = logging.getLogger(__name__)


class NodeKind(str, Enum):
    """Node kinds the walker interprets."""

    TEXT = "text"
    VIS = "vis"
    WSGRAM = "wsgram"
    UNS = "uns"
    SNOTE = "snote"
    NOTE_TEXT = "t"
    UNKNOWN = "unknown"


# Kinds the provider emits that carry nothing we store.
_IGNORED_KINDS = frozenset({
    "ca", "ri", "bnw", "urefs", "srefs", "snotebox", "gram", "dx", "dxnl",
    "artref", "rmsg", "wsgram_label",
})
_KNOWN_KINDS = {k.value: k for k in NodeKind if k is not NodeKind.UNKNOWN}


@dataclass(frozen=True, slots=True)
class Node:
    """One ``(kind, payload)`` pair."""

    kind: NodeKind
    name: str
    payload: Any


@dataclass(frozen=True, slots=True)
class ExtractedExample:
    text: str
    grammatical_note: str | None = None


@dataclass(frozen=True, slots=True)
class WalkResult:
    """What one definition body yields."""

    text: str | None
    raw_texts: tuple[str, ...]
    examples: tuple[ExtractedExample, ...]
    usage_texts: tuple[str, ...]

    @property
    def usage_note(self) -> str | None:
        if not self.usage_texts:
            return None
        return "; ".join(f"{i}: {t}" for i, t in enumerate(self.usage_texts, 1))


@dataclass(frozen=True, slots=True)
class ExtractedDefinition:
    """A definition with its labels, ready to become a stored row."""

    text: str
    raw_texts: tuple[str, ...]
    examples: tuple[ExtractedExample, ...]
    usage_note: str | None = None
    subject_status_labels: str | None = None
    general_labels: str | None = None
    grammatical_note: str | None = None
    phrasal_variants: tuple[str, ...] = ()


@dataclass
class _Collected:
    text: str | None = None
    raw_texts: list[str] = field(default_factory=list)
    examples: list[ExtractedExample] = field(default_factory=list)
    usage_texts: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Node parsing
# ---------------------------------------------------------------------------

def parse_node(item: Any) -> Node | None:
    """Turn a raw ``[kind, payload]`` pair into a Node, or None if malformed."""
    if not isinstance(item, (list, tuple)) or len(item) != 2:
        logger.warning(f"Skipping malformed node (expected [kind, payload]): {item!r:.80}")
        return None
    name, payload = item
    if not isinstance(name, str):
        logger.warning(f"Skipping node with non-string kind: {name!r:.40}")
        return None
    return Node(_KNOWN_KINDS.get(name, NodeKind.UNKNOWN), name, payload)


def _composite_note(note: str | None, gram: str | None) -> str | None:
    if note and gram:
        return f"{note} ({gram})"
    return note or gram or None


# ---------------------------------------------------------------------------
# Definition body walk
# ---------------------------------------------------------------------------

def walk_nodes(nodes: Any, grammatical_note: str | None = None) -> WalkResult:
    """Walk one definition body and return its text, examples and notes."""
    out = _Collected()
    if not isinstance(nodes, list):
        logger.warning(f"Definition body is not a list: {nodes!r:.80}")
        return WalkResult(None, (), (), ())
    _walk_siblings(nodes, grammatical_note, out)
    return WalkResult(
        text=out.text,
        raw_texts=tuple(out.raw_texts),
        examples=tuple(_dedupe_examples(out.examples)),
        usage_texts=tuple(out.usage_texts),
    )


def _walk_siblings(nodes: list, gram: str | None, out: _Collected) -> None:
    for item in nodes:
        node = parse_node(item)
        if node is None:
            continue
        if node.kind is NodeKind.WSGRAM:
            if isinstance(node.payload, str):
                gram = node.payload
            else:
                logger.warning(f"Ignoring non-string wsgram: {node.payload!r:.40}")
        elif node.kind is NodeKind.TEXT:
            _take_text(node.payload, out)
        elif node.kind is NodeKind.VIS:
            out.examples.extend(_illustrations(node.payload, gram))
        elif node.kind is NodeKind.UNS:
            _walk_usage_notes(node.payload, gram, out)
        elif node.kind is NodeKind.SNOTE:
            _walk_supplementary_note(node.payload, gram, out)
        elif node.kind is NodeKind.NOTE_TEXT:
            logger.debug("Ignoring note text outside a note body")
        elif node.name in _IGNORED_KINDS:
            logger.debug(f"Ignoring node kind {node.name!r}")
        else:
            logger.warning(f"Unrecognized node kind {node.name!r}; ignored")


def _take_text(payload: Any, out: _Collected) -> None:
    if not isinstance(payload, str):
        logger.warning(f"Ignoring non-string text payload: {payload!r:.40}")
        return
    out.raw_texts.append(payload)
    if out.text is not None or is_cross_reference(payload):
        return
    cleaned = clean_text(payload)
    if cleaned:
        out.text = cleaned


def _illustrations(payload: Any, note: str | None) -> list[ExtractedExample]:
    if not isinstance(payload, list):
        logger.warning(f"Ignoring vis payload that is not a list: {payload!r:.40}")
        return []
    examples = []
    for vis in payload:
        text = vis.get("t") if isinstance(vis, dict) else None
        if not isinstance(text, str):
            logger.warning(f"Ignoring verbal illustration without text: {vis!r:.60}")
            continue
        if is_reference_only(text):
            continue
        cleaned = clean_text(text)
        if cleaned:
            examples.append(ExtractedExample(cleaned, note))
    return examples


def _walk_usage_notes(payload: Any, gram: str | None, out: _Collected) -> None:
    """Walk a ``uns`` body: a list of node lists, one per usage paragraph."""
    if not isinstance(payload, list):
        logger.warning(f"Ignoring uns payload that is not a list: {payload!r:.40}")
        return
    for paragraph in payload:
        if not isinstance(paragraph, list):
            logger.warning(f"Ignoring malformed usage paragraph: {paragraph!r:.40}")
            continue
        usage_text: str | None = None
        for item in paragraph:
            node = parse_node(item)
            if node is None:
                continue
            if node.kind is NodeKind.TEXT:
                if not isinstance(node.payload, str):
                    logger.warning(f"Ignoring non-string usage text: {node.payload!r:.40}")
                    continue
                out.raw_texts.append(node.payload)
                usage_text = clean_text(node.payload) or usage_text
            elif node.kind is NodeKind.VIS:
                note = _composite_note(usage_text, gram)
                out.examples.extend(_illustrations(node.payload, note))
            elif node.kind is NodeKind.UNS:
                _walk_usage_notes(node.payload, _composite_note(usage_text, gram), out)
            elif node.name in _IGNORED_KINDS:
                logger.debug(f"Ignoring node kind {node.name!r} in usage note")
            else:
                logger.warning(f"Unrecognized node kind {node.name!r} in usage note; ignored")
        if usage_text:
            out.usage_texts.append(usage_text)


def _walk_supplementary_note(payload: Any, gram: str | None, out: _Collected) -> None:
    """Walk an ``snote`` body: ``t`` note text followed by ``vis`` nodes."""
    if not isinstance(payload, list):
        logger.warning(f"Ignoring snote payload that is not a list: {payload!r:.40}")
        return
    note_text: str | None = None
    for item in payload:
        node = parse_node(item)
        if node is None:
            continue
        if node.kind is NodeKind.NOTE_TEXT:
            if not isinstance(node.payload, str):
                logger.warning(f"Ignoring non-string note text: {node.payload!r:.40}")
                continue
            out.raw_texts.append(node.payload)
            note_text = clean_text(node.payload) or None
            if note_text:
                out.usage_texts.append(note_text)
        elif node.kind is NodeKind.VIS:
            out.examples.extend(_illustrations(node.payload, _composite_note(note_text, gram)))
        elif node.name in _IGNORED_KINDS:
            logger.debug(f"Ignoring node kind {node.name!r} in supplementary note")
        else:
            logger.warning(f"Unrecognized node kind {node.name!r} in supplementary note; ignored")


def _dedupe_examples(examples: Iterable[ExtractedExample]) -> list[ExtractedExample]:
    """Keep one example per text, preferring the one that carries a note."""
    unique: dict[str, ExtractedExample] = {}
    for ex in examples:
        existing = unique.get(ex.text)
        if existing is None or (not existing.grammatical_note and ex.grammatical_note):
            unique[ex.text] = ex
    return list(unique.values())


# ---------------------------------------------------------------------------
# Sense sequences
# ---------------------------------------------------------------------------

def _labels(value: Any) -> str | None:
    if isinstance(value, list):
        return ", ".join(v for v in value if isinstance(v, str) and v) or None
    return None


def _string(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def _phrasal_variants(*holders: Any) -> list[str]:
    found: list[str] = []
    for holder in holders:
        if isinstance(holder, dict):
            holder = holder.get("phrs")
        if not isinstance(holder, list):
            continue
        for entry in holder:
            pva = entry.get("pva") if isinstance(entry, dict) else None
            if isinstance(pva, str) and pva:
                cleaned = strip_trailing_star(pva)
                if cleaned and cleaned not in found:
                    found.append(cleaned)
    return found


def _sense_bodies(kind: str, data: Any) -> list[dict]:
    """Flatten one sense-sequence node into the sense dicts it contains."""
    if kind in ("sense", "sdsense"):
        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed {kind} node: {data!r:.40}")
            return []
        bodies = [data]
        divided = data.get("sdsense")
        if isinstance(divided, dict):
            bodies.append(divided)
        return bodies
    if kind == "bs":
        inner = data.get("sense") if isinstance(data, dict) else None
        return _sense_bodies("sense", inner) if inner is not None else []
    if kind == "pseq":
        flattened: list[dict] = []
        if isinstance(data, list):
            for item in data:
                node = parse_node(item)
                if node is not None:
                    flattened.extend(_sense_bodies(node.name, node.payload))
        return flattened
    if kind in _IGNORED_KINDS:
        logger.debug(f"Ignoring sense sequence node {kind!r}")
    else:
        logger.warning(f"Unrecognized sense sequence node {kind!r}; ignored")
    return []


def walk_sense_sequence(
    sseq: Any,
    entry_gram: str | None = None,
    entry_labels: str | None = None,
) -> list[ExtractedDefinition]:
    """Walk a sense sequence into definitions.

    A ``sen`` node holds override labels for the next sense that yields a
    definition. A later ``sen`` replaces a pending one outright; the
    override is cleared once used and never crosses into the next
    sequence item.
    """
    if not isinstance(sseq, list):
        logger.warning(f"Sense sequence is not a list: {sseq!r:.60}")
        return []
    definitions: list[ExtractedDefinition] = []
    for group in sseq:
        if not isinstance(group, list):
            logger.warning(f"Ignoring malformed sense sequence item: {group!r:.60}")
            continue
        pending: dict | None = None
        for item in group:
            node = parse_node(item)
            if node is None:
                continue
            if node.name == "sen":
                pending = node.payload if isinstance(node.payload, dict) else None
                continue
            for body in _sense_bodies(node.name, node.payload):
                override = pending if pending is not None else body.get("sen")
                definition = _sense_definition(body, override, entry_gram, entry_labels)
                if definition is not None:
                    definitions.append(definition)
                    pending = None
    return definitions


def _sense_definition(
    body: dict,
    override: Any,
    entry_gram: str | None,
    entry_labels: str | None,
) -> ExtractedDefinition | None:
    dt = body.get("dt")
    if dt is None:
        return None
    result = walk_nodes(dt)
    text = result.text
    if not text and result.usage_texts:
        text = result.usage_texts[0]
    if not text:
        return None

    sen = override if isinstance(override, dict) else {}
    sphrasev = body.get("sphrasev") if isinstance(body.get("sphrasev"), dict) else {}
    return ExtractedDefinition(
        text=text,
        raw_texts=result.raw_texts,
        examples=result.examples,
        usage_note=result.usage_note,
        subject_status_labels=join_labels([
            _labels(sen.get("sls")),
            _labels(sphrasev.get("phsls")) or _labels(body.get("sls")),
        ]),
        general_labels=join_labels([
            _labels(sen.get("lbs")),
            entry_labels,
            _labels(body.get("lbs")),
        ]),
        grammatical_note=join_labels([
            entry_gram,
            _string(sen.get("bnote")),
            _string(sen.get("sgram")),
            _string(body.get("sgram")),
            _string(body.get("bnote")),
        ]),
        phrasal_variants=tuple(_phrasal_variants(
            sen.get("phrasev"), body.get("phrasev"), sphrasev,
        )),
    )


def walk_definitions(
    blocks: Any,
    entry_gram: str | None = None,
    entry_labels: str | None = None,
) -> list[ExtractedDefinition]:
    """Walk every ``def`` block of an entry, dropping repeated definition texts."""
    if blocks is None:
        return []
    if not isinstance(blocks, list):
        logger.warning(f"Definition blocks are not a list: {blocks!r:.60}")
        return []
    seen: set[str] = set()
    definitions: list[ExtractedDefinition] = []
    for block in blocks:
        if not isinstance(block, dict) or "sseq" not in block:
            continue
        for definition in walk_sense_sequence(block["sseq"], entry_gram, entry_labels):
            key = strip_markup(definition.text)
            if key in seen:
                continue
            seen.add(key)
            definitions.append(definition)
    return definitions


def mining_texts(definitions: Sequence[ExtractedDefinition]) -> list[str]:
    """All raw text payloads of the given definitions, in order."""
    return [t for d in definitions for t in d.raw_texts]
