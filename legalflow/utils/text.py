"""Text normalization helpers for matching French and Arabic legal text.

Used for catalog lookups and vocabulary matching, never to rewrite the
text that entities are extracted from: spans must keep pointing into the
original OCR output.
"""

import re
import unicodedata

_ARABIC_DIACRITICS = re.compile(r"[\u0640\u0610-\u061A\u064B-\u065F\u0670\u06D6-\u06ED]")
_APOSTROPHES = str.maketrans({"\u2019": "'", "\u2018": "'", "`": "'"})
_ARABIC_SCRIPT = re.compile(r"[\u0600-\u06FF]")
_LATIN_SCRIPT = re.compile(r"[A-Za-zÀ-ÿ]")


def fold_accents(text: str) -> str:
    """Strip Latin diacritics (``é`` -> ``e``) while leaving Arabic letters intact."""
    decomposed = unicodedata.normalize("NFD", text)
    kept = [
        ch
        for ch in decomposed
        if not (unicodedata.combining(ch) and not _is_arabic_mark(ch))
    ]
    return unicodedata.normalize("NFC", "".join(kept))


def _is_arabic_mark(ch: str) -> bool:
    return "\u0600" <= ch <= "\u06ff"


def normalize_key(text: str) -> str:
    """Normalize text into a comparison key.

    Lowercases, folds Latin accents, unifies apostrophes, removes Arabic
    diacritics and tatweel, unifies alif/ya/ta marbuta variants and
    collapses whitespace.

    Args:
        text: Raw text.

    Returns:
        Normalized key; empty string for empty input.
    """
    if not text:
        return ""
    normalized = text.translate(_APOSTROPHES)
    normalized = _ARABIC_DIACRITICS.sub("", normalized)
    normalized = (
        normalized.replace("أ", "ا")
        .replace("إ", "ا")
        .replace("آ", "ا")
        .replace("ى", "ي")
        .replace("ة", "ه")
    )
    normalized = fold_accents(normalized).lower()
    return " ".join(normalized.split())


def detect_language(text: str) -> str:
    """Detect the script mix of a text.

    Returns:
        ``"ar"``, ``"fr"``, ``"mixed"`` or ``"unknown"``.
    """
    has_arabic = bool(_ARABIC_SCRIPT.search(text))
    has_latin = bool(_LATIN_SCRIPT.search(text))
    if has_arabic and has_latin:
        return "mixed"
    if has_arabic:
        return "ar"
    if has_latin:
        return "fr"
    return "unknown"


def collapse_whitespace(text: str) -> str:
    return " ".join(text.split())


_ACCENT_CLASSES = {
    "a": "[aàâä]",
    "c": "[cç]",
    "e": "[eéèêë]",
    "i": "[iîï]",
    "o": "[oôö]",
    "u": "[uùûü]",
}


def flexible_pattern(term: str) -> str:
    """Build a regex that matches ``term`` regardless of accents and spacing.

    ``"Ministère de l'Éducation"`` matches ``"ministere de l’education"`` as
    well as the original spelling. Arabic text is escaped unchanged. The
    result carries no flags; callers compile it with ``re.IGNORECASE``.
    """
    parts: list[str] = []
    for ch in fold_accents(term.translate(_APOSTROPHES)).lower():
        if ch.isspace():
            if not parts or parts[-1] != r"\s+":
                parts.append(r"\s+")
        elif ch == "'":
            parts.append(r"['’]?\s*")
        else:
            parts.append(_ACCENT_CLASSES.get(ch, re.escape(ch)))
    return "".join(parts)
