"""Maps extracted entities onto a target form schema."""

import re

from legalflow.catalog.models import FormField, FormSchema
from legalflow.catalog.registry import TemplateRegistry
from legalflow.extraction.entities import DocumentStructure, ExtractedEntity
from legalflow.utils.config import MappingConfig
from legalflow.utils.logger import get_logger

from .models import (
    FieldMapping,
    FieldSuggestion,
    MappingResult,
    compute_overall_confidence,
    compute_unmapped,
)
from .strategies import KIND_STRATEGIES, STRATEGIES, MappingContext, map_by_rules, suggest

logger = get_logger(__name__)


class FieldMapper:
    """Fills form fields from entities, document structure and raw text.

    Fields are visited in schema order. A field is tried with its named
    strategy, then with the strategy for its kind, then with its own
    extraction rules; the first one that yields a value wins. Unmapped
    fields may receive a suggestion instead.

    Args:
        registry: Template registry (canonical type names, vocabulary).
        config: Mapping settings.
    """

    def __init__(
        self, registry: TemplateRegistry, config: MappingConfig | None = None
    ) -> None:
        self.registry = registry
        self.config = config or MappingConfig()

    def map(
        self,
        entities: list[ExtractedEntity],
        structure: DocumentStructure | None,
        schema: FormSchema,
        text: str = "",
    ) -> MappingResult:
        """Map entities onto ``schema``.

        Args:
            entities: Extracted entities; strategies see them in source
                order, so the earliest candidate wins.
            structure: Document skeleton; an empty one is used when ``None``.
            schema: Target form schema.
            text: Raw document text for text-level strategies.

        Returns:
            Mapping result. Never raises for malformed input: a strategy
            that fails leaves its field unmapped.
        """
        ctx = MappingContext(
            entities=sorted(entities or [], key=lambda e: e.span[0]),
            structure=structure or DocumentStructure(),
            schema=schema,
            text=text or "",
            registry=self.registry,
            config=self.config,
        )

        mapped: list[FieldMapping] = []
        suggestions: list[FieldSuggestion] = []
        for form_field in schema.fields:
            mapping = self._map_field(ctx, form_field)
            if mapping is not None:
                mapped.append(mapping)
                continue
            suggestion = self._suggest(ctx, form_field)
            if suggestion is not None:
                suggestions.append(suggestion)

        result = MappingResult(
            mapped_fields=mapped,
            unmapped_data=compute_unmapped(ctx.entities, mapped),
            suggestions=suggestions,
            overall_confidence=compute_overall_confidence(mapped, schema),
        )
        logger.info(
            "Mapped %d/%d fields (%d suggestions, confidence=%.2f)",
            len(mapped),
            len(schema.fields),
            len(suggestions),
            result.overall_confidence,
        )
        return result

    def _map_field(self, ctx: MappingContext, form_field: FormField) -> FieldMapping | None:
        candidates = [
            STRATEGIES.get(form_field.name),
            KIND_STRATEGIES.get(form_field.kind),
            map_by_rules,
        ]
        for strategy in candidates:
            if strategy is None:
                continue
            try:
                mapping = strategy(ctx, form_field)
            except (AttributeError, IndexError, KeyError, TypeError, ValueError, re.error) as exc:
                logger.warning("Strategy for field '%s' failed: %s", form_field.name, exc)
                continue
            if mapping is not None:
                logger.debug(
                    "Field '%s' <- %r (%s, %.2f)",
                    form_field.name,
                    mapping.value[:60],
                    mapping.source,
                    mapping.confidence,
                )
                return mapping
        return None

    def _suggest(self, ctx: MappingContext, form_field: FormField) -> FieldSuggestion | None:
        try:
            return suggest(ctx, form_field)
        except (AttributeError, IndexError, KeyError, TypeError, ValueError, re.error) as exc:
            logger.warning("Suggestion for field '%s' failed: %s", form_field.name, exc)
            return None
