"""Coarse structure of a legal text: header, title and articles."""

import re

from legalflow.catalog.models import EntityKind
from legalflow.catalog.registry import NUMBER_PLACEHOLDER, TemplateRegistry
from legalflow.catalog.vocabulary import alternation
from legalflow.utils.logger import get_logger
from legalflow.utils.text import collapse_whitespace

from .entities import Article, DocumentStructure, ExtractedEntity

logger = get_logger(__name__)

_MIN_TITLE_LENGTH = 10
_NOT_A_TITLE = re.compile(r"^\s*(?:vu\b|article\b|art\.|المادة)", re.IGNORECASE)


class DocumentStructureAnalyzer:
    """Finds the declared type, number and title of a legal text.

    The header is the first line that starts with a known type name
    followed by a number (``Décret exécutif n° 23-145``) or a date
    (``Arrêté du 5 mai 2020``).

    Args:
        registry: Template registry whose type names and aliases are
            recognised in headers.
    """

    def __init__(self, registry: TemplateRegistry) -> None:
        self.registry = registry
        self._header = self._build_header_regex()

    def _build_header_regex(self) -> re.Pattern[str]:
        names = [
            name
            for template in self.registry.templates
            for name in (template.type_name, *template.aliases)
        ]
        return re.compile(
            rf"^[ \t]*(?P<type>{alternation(names)})"
            rf"(?:\s+{NUMBER_PLACEHOLDER}\s*(?P<number>\d{{1,6}}(?:\s?[-/]\s?\d{{1,4}})?)|\s+du\s+\d)",
            re.IGNORECASE | re.MULTILINE,
        )

    def analyze(
        self, text: str, entities: list[ExtractedEntity] | None = None
    ) -> DocumentStructure:
        """Build the document skeleton.

        Args:
            text: Raw document text.
            entities: Extracted entities; article entities become the
                article list.

        Returns:
            Document structure. Every attribute may be empty.
        """
        structure = DocumentStructure()
        header = self._header.search(text or "")
        if header:
            line_end = text.find("\n", header.start())
            line = text[header.start() : line_end if line_end != -1 else len(text)]
            structure.title = collapse_whitespace(line) or None

            declared = collapse_whitespace(header.group("type"))
            template = self.registry.find(declared)
            structure.declared_type = template.type_name if template else declared
            if header.group("number"):
                structure.declared_number = re.sub(r"\s", "", header.group("number"))
        else:
            structure.title = self._first_title_line(text or "")

        structure.articles = [
            Article(
                number=e.value,
                content=collapse_whitespace(e.metadata.get("article_content", "")),
            )
            for e in entities or []
            if e.kind == EntityKind.ARTICLE
        ]

        logger.debug(
            "Structure: type=%s number=%s articles=%d",
            structure.declared_type,
            structure.declared_number,
            len(structure.articles),
        )
        return structure

    @staticmethod
    def _first_title_line(text: str) -> str | None:
        for line in text.splitlines():
            candidate = collapse_whitespace(line)
            if len(candidate) >= _MIN_TITLE_LENGTH and not _NOT_A_TITLE.match(candidate):
                return candidate
        return None
