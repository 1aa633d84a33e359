"""Vocabulary lists: institutions, month names, status and keyword tables.

Loaded once from YAML and consulted read-only by the extractor (to build
month and institution alternations) and by the mapping strategies.
"""

import difflib
import re
from functools import cached_property
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict

from legalflow.utils.logger import get_logger
from legalflow.utils.text import flexible_pattern, normalize_key

logger = get_logger(__name__)

DEFAULT_VOCABULARY_PATH = Path(__file__).parent / "data" / "vocabulary.yaml"

_FUZZY_CUTOFF = 0.85


class Institution(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    aliases: tuple[str, ...] = ()

    @property
    def spellings(self) -> tuple[str, ...]:
        return (self.name, *self.aliases)


class HijriMonth(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    variants: tuple[str, ...] = ()


class StatusKeywords(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: str
    patterns: tuple[str, ...] = ()


class DomainKeywords(BaseModel):
    model_config = ConfigDict(frozen=True)

    domain: str
    keywords: tuple[str, ...] = ()


class CategoryKeywords(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: str
    keywords: tuple[str, ...] = ()


class DifficultyKeywords(BaseModel):
    model_config = ConfigDict(frozen=True)

    level: str
    keywords: tuple[str, ...] = ()


def _keyword_hit(keywords: tuple[str, ...], normalized_text: str) -> bool:
    for keyword in keywords:
        key = re.escape(normalize_key(keyword))
        if re.search(rf"(?<!\w){key}(?!\w)", normalized_text):
            return True
    return False


class Vocabulary(BaseModel):
    """Read-only vocabulary tables with the lookups built on them."""

    model_config = ConfigDict(frozen=True)

    version: str = "1.0"
    institutions: tuple[Institution, ...] = ()
    gregorian_months: tuple[str, ...] = ()
    hijri_months: tuple[HijriMonth, ...] = ()
    status_keywords: tuple[StatusKeywords, ...] = ()
    domains: tuple[DomainKeywords, ...] = ()
    procedure_categories: tuple[CategoryKeywords, ...] = ()
    difficulty_levels: tuple[DifficultyKeywords, ...] = ()

    # -- regex fragments -------------------------------------------------

    def gregorian_month_pattern(self) -> str:
        return alternation(self.gregorian_months)

    def hijri_month_pattern(self) -> str:
        return alternation(
            [variant for month in self.hijri_months for variant in (month.name, *month.variants)]
        )

    def institution_pattern(self) -> str:
        return alternation(
            [spelling for inst in self.institutions for spelling in inst.spellings]
        )

    # -- month lookups ---------------------------------------------------

    def gregorian_month_number(self, token: str) -> int | None:
        """Return the 1-based month number for a French month name."""
        key = normalize_key(token)
        for index, month in enumerate(self.gregorian_months):
            if normalize_key(month) == key:
                return index + 1
        return None

    def hijri_month_name(self, token: str) -> str | None:
        """Return the canonical Hijri month name for any known spelling."""
        key = normalize_key(token)
        for month in self.hijri_months:
            if key in {normalize_key(v) for v in (month.name, *month.variants)}:
                return month.name
        return None

    # -- institutions ----------------------------------------------------

    @cached_property
    def _institution_regexes(self) -> list[tuple[str, re.Pattern[str]]]:
        return [
            (
                inst.name,
                re.compile(rf"(?<!\w)(?:{alternation(inst.spellings)})(?!\w)", re.IGNORECASE),
            )
            for inst in self.institutions
        ]

    def resolve_institution(self, text: str) -> str | None:
        """Resolve free text to a canonical institution name.

        Tries an exact normalized match on names and aliases, then a
        known spelling contained in the text, then a close fuzzy match.

        Args:
            text: Institution text as found in the document.

        Returns:
            Canonical name, or ``None`` if nothing in the list fits.
        """
        key = normalize_key(text)
        if not key:
            return None
        by_key: dict[str, str] = {}
        for inst in self.institutions:
            for spelling in inst.spellings:
                by_key.setdefault(normalize_key(spelling), inst.name)
        if key in by_key:
            return by_key[key]

        found = self.find_institution(text)
        if found is not None:
            return found[0]

        close = difflib.get_close_matches(key, list(by_key), n=1, cutoff=_FUZZY_CUTOFF)
        if close:
            logger.debug("Fuzzy institution match %r -> %r", text, by_key[close[0]])
            return by_key[close[0]]
        return None

    def find_institution(self, text: str) -> tuple[str, int] | None:
        """Earliest occurrence of a known institution in ``text``.

        Returns:
            ``(canonical name, offset)`` or ``None``.
        """
        if not text:
            return None
        best: tuple[int, int, str] | None = None
        for name, regex in self._institution_regexes:
            match = regex.search(text)
            if match is None:
                continue
            candidate = (match.start(), -len(match.group(0)), name)
            if best is None or candidate[:2] < best[:2]:
                best = candidate
        if best is None:
            return None
        return best[2], best[0]

    # -- keyword tables --------------------------------------------------

    def match_status(self, text: str, allowed: tuple[str, ...] = ()) -> str | None:
        """First status (in table order) whose keyword occurs in ``text``.

        Args:
            text: Document text.
            allowed: If given, statuses outside this set are skipped.
        """
        for entry in self.status_keywords:
            if allowed and entry.status not in allowed:
                continue
            if any(re.search(p, text, re.IGNORECASE) for p in entry.patterns):
                return entry.status
        return None

    def infer_domain(self, text: str) -> str | None:
        normalized = normalize_key(text)
        return next(
            (d.domain for d in self.domains if _keyword_hit(d.keywords, normalized)), None
        )

    def infer_category(self, text: str) -> str | None:
        normalized = normalize_key(text)
        return next(
            (
                c.category
                for c in self.procedure_categories
                if _keyword_hit(c.keywords, normalized)
            ),
            None,
        )

    def infer_difficulty(self, text: str) -> str | None:
        normalized = normalize_key(text)
        return next(
            (
                d.level
                for d in self.difficulty_levels
                if _keyword_hit(d.keywords, normalized)
            ),
            None,
        )


def alternation(terms) -> str:
    """Accent-tolerant alternation of ``terms``, longest first."""
    unique = sorted({t for t in terms if t}, key=lambda t: (-len(t), t))
    return "|".join(flexible_pattern(t) for t in unique)


def load_vocabulary(path: str | Path | None = None) -> Vocabulary:
    """Load the vocabulary from YAML.

    Args:
        path: Override file; the packaged vocabulary is used when ``None``.

    Returns:
        Parsed vocabulary.

    Raises:
        FileNotFoundError: If an explicit path does not exist.
    """
    vocab_path = Path(path) if path else DEFAULT_VOCABULARY_PATH
    with open(vocab_path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    vocabulary = Vocabulary(**data)
    logger.debug(
        "Loaded vocabulary from %s (%d institutions)",
        vocab_path,
        len(vocabulary.institutions),
    )
    return vocabulary
