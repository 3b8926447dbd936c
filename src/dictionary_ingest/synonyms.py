"""Synonym mining from inline cross-reference markup."""

from __future__ import annotations

import re

from dictionary_ingest.markup import clean_headword, strip_homograph

# "{dx}see {dxt|amble||}" and "{dx}see also {dxt|saunter:1||}"
_SEE_ALSO_RE = re.compile(r"\{dx\}\s*see(?:\s+also)?\s+\{dxt\|([^|}]+)")
# "{sx|stroll||}"
_SYNONYM_RE = re.compile(r"\{sx\|([^|}]+)")


def extract_pattern_synonyms(text: str, exclude: str | None = None) -> list[str]:
    """Return the words referenced by see-also and synonym markup in *text*.

    Homograph suffixes are stripped, order of first appearance is kept and
    duplicates are dropped. A match equal to *exclude* (the entity's own
    surface text) is skipped.
    """
    if not isinstance(text, str) or "{" not in text:
        return []
    found: list[str] = []
    matches = [(m.start(), m.group(1)) for m in _SEE_ALSO_RE.finditer(text)]
    matches += [(m.start(), m.group(1)) for m in _SYNONYM_RE.finditer(text)]
    for _, raw in sorted(matches):
        word = clean_headword(strip_homograph(raw))
        if not word or word == exclude or word in found:
            continue
        found.append(word)
    return found
