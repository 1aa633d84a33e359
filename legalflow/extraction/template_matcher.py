"""Document type detection.

Identifies the document type by matching the text against the
identifying patterns of every template in the registry.
"""

import re
from dataclasses import dataclass

from legalflow.catalog.registry import TemplateRegistry
from legalflow.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class TemplateMatch:
    """Result of matching a document against the template catalog."""

    template_id: str
    type_name: str
    confidence: float
    position: int
    matched_patterns: int


class TemplateMatcher:
    """Picks the template whose identifying patterns fit a text best.

    The template whose identifying patterns match earliest in the text
    wins. Ties go to the template with more matching patterns, then to
    the one declared first in the catalog.

    Args:
        registry: Template registry to match against.
    """

    def __init__(self, registry: TemplateRegistry) -> None:
        self.registry = registry

    def match_template(self, text: str) -> TemplateMatch | None:
        """Find the best matching template for the given text.

        Args:
            text: Document text.

        Returns:
            Best matching template, or ``None`` if no identifying
            pattern matches.
        """
        best_match: TemplateMatch | None = None
        best_key: tuple[int, int, int] | None = None

        for order, template in enumerate(self.registry.templates):
            positions = [
                m.start()
                for m in (
                    re.search(p, text, re.IGNORECASE | re.MULTILINE)
                    for p in template.identifying_patterns
                )
                if m is not None
            ]
            if not positions:
                continue

            key = (min(positions), -len(positions), order)
            if best_key is None or key < best_key:
                best_key = key
                best_match = TemplateMatch(
                    template_id=template.id,
                    type_name=template.type_name,
                    confidence=len(positions) / len(template.identifying_patterns),
                    position=min(positions),
                    matched_patterns=len(positions),
                )

        if best_match:
            logger.info(
                "Matched template '%s' (confidence=%.2f)",
                best_match.template_id,
                best_match.confidence,
            )
        else:
            logger.debug("No template matched")
        return best_match
