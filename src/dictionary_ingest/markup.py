"""Text cleanup for provider markup.

Provider strings carry inline ``{tag}`` markup. Definitions and examples
keep only the italics pair ``{it}``/``{/it}``; reference tags collapse to
the word they point at; everything else is dropped.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

ITALIC_OPEN = "{it}"
ITALIC_CLOSE = "{/it}"

_CROSS_REFERENCE_MARKER = "{dx}"
_SYNONYM_REFERENCE_PREFIXES = ("{bc}{sx|", "{sx|")

_REFERENCE_TAG_RE = re.compile(
    r"\{(?:sx|dxt|a_link|d_link|i_link|et_link|mat)\|([^|}]*)[^}]*\}"
)
_QUOTE_TAG_RE = re.compile(r"\{(?:ldquo|rdquo)\}")
_NON_ITALIC_TAG_RE = re.compile(r"\{(?!/?it\})[^}]*\}")
_ANY_TAG_RE = re.compile(r"\{[^}]*\}")
_HOMOGRAPH_SUFFIX_RE = re.compile(r":\d+$")
_WHITESPACE_RE = re.compile(r"\s+")


def is_cross_reference(text: str) -> bool:
    """Check if a text payload is a cross-reference rather than content."""
    return text.startswith(_CROSS_REFERENCE_MARKER)


def is_reference_only(text: str) -> bool:
    """Check if an example payload is nothing but a reference to another word."""
    return is_cross_reference(text) or text.startswith(_SYNONYM_REFERENCE_PREFIXES)


def strip_homograph(text: str) -> str:
    """Drop a trailing homograph number (``walk:1`` -> ``walk``)."""
    return _HOMOGRAPH_SUFFIX_RE.sub("", text.strip()).strip()


def _collapse(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def _expand_references(text: str) -> str:
    text = _REFERENCE_TAG_RE.sub(lambda m: strip_homograph(m.group(1)), text)
    return _QUOTE_TAG_RE.sub('"', text)


def clean_text(text: str) -> str:
    """Normalize provider text, keeping only the italics markers."""
    text = _expand_references(text)
    return _collapse(_NON_ITALIC_TAG_RE.sub(" ", text))


def strip_markup(text: str) -> str:
    """Remove every tag, italics included."""
    text = _expand_references(text)
    return _collapse(_ANY_TAG_RE.sub(" ", text))


def format_with_bc(text: str) -> str:
    """Render a plain short definition the way the long form marks its clauses."""
    return " ".join("{bc}" + part.strip() for part in text.split(":"))


def italic(text: str) -> str:
    return f"{ITALIC_OPEN}{text}{ITALIC_CLOSE}"


def clean_headword(text: str) -> str:
    """Remove syllable-break asterisks from a headword."""
    return text.replace("*", "").strip()


def strip_trailing_star(text: str) -> str:
    """Remove a trailing asterisk from a run-on phrase."""
    return re.sub(r"\*$", "", text.strip())


def join_labels(parts: Iterable[str | None]) -> str | None:
    """Join the non-empty parts with ``" | "``; None if nothing is left."""
    kept = [p.strip() for p in parts if p and p.strip()]
    if not kept:
        return None
    return " | ".join(kept)


def format_etymology(items: object) -> str | None:
    """Flatten an etymology node list into plain text."""
    if not isinstance(items, list) or not items:
        return None
    texts = []
    for item in items:
        if isinstance(item, (list, tuple)) and len(item) >= 2 and isinstance(item[1], str):
            texts.append(item[1])
    result = strip_markup(" ".join(texts))
    return result or None
