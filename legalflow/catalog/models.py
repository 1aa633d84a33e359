"""Catalog models: document-type templates and their form schemas.

Templates are parsed from YAML into frozen pydantic models so a malformed
catalog fails at start-up instead of in the middle of a mapping run.
"""

import re
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class FieldKind(StrEnum):
    """Input kinds a form field can have."""

    TEXT = "text"
    TEXTAREA = "textarea"
    SELECT = "select"
    DATE = "date"
    NUMBER = "number"
    CHECKBOX = "checkbox"


class EntityKind(StrEnum):
    """Kinds of entities the extractor produces."""

    NUMBER = "number"
    DATE = "date"
    INSTITUTION = "institution"
    ARTICLE = "article"
    REFERENCE = "reference"
    TEXT_BLOCK = "text_block"


_FLAG_NAMES = {
    "IGNORECASE": re.IGNORECASE,
    "MULTILINE": re.MULTILINE,
    "DOTALL": re.DOTALL,
}


def _check_regex(pattern: str) -> str:
    try:
        re.compile(pattern)
    except re.error as exc:
        raise ValueError(f"Invalid regular expression {pattern!r}: {exc}") from exc
    return pattern


def parse_rule(rule: str) -> list[tuple[str, str]]:
    """Split ``required|regex:^a|b$`` into ``[("required", ""), ("regex", "^a|b$")]``.

    A ``regex:`` part consumes the rest of the string, so the pattern may
    itself contain ``|``.
    """
    parts: list[tuple[str, str]] = []
    remaining = rule
    while remaining:
        if remaining.startswith("regex:"):
            parts.append(("regex", remaining[len("regex:") :]))
            break
        head, _, remaining = remaining.partition("|")
        name, _, argument = head.partition(":")
        if name.strip():
            parts.append((name.strip(), argument))
    return parts


class FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class FieldValidation(FrozenModel):
    """Value constraints attached to a form field."""

    pattern: str | None = None
    min_length: int | None = None
    max_length: int | None = None

    @field_validator("pattern")
    @classmethod
    def _valid_pattern(cls, value: str | None) -> str | None:
        return _check_regex(value) if value else value


class FormField(FrozenModel):
    """A single field of a target form."""

    name: str
    label: str = ""
    kind: FieldKind = FieldKind.TEXT
    required: bool = False
    extraction_rules: tuple[str, ...] = ()
    validation: FieldValidation | None = None
    options: tuple[str, ...] = ()

    @field_validator("extraction_rules")
    @classmethod
    def _valid_rules(cls, rules: tuple[str, ...]) -> tuple[str, ...]:
        for rule in rules:
            _check_regex(rule)
        return rules


class FormSection(FrozenModel):
    """An ordered group of fields."""

    id: str
    title: str = ""
    required: bool = False
    fields: tuple[FormField, ...] = ()


class FormSchema(FrozenModel):
    """Ordered sections of a target form.

    Field names are unique across the whole schema.
    """

    sections: tuple[FormSection, ...] = ()

    @model_validator(mode="after")
    def _unique_field_names(self) -> "FormSchema":
        seen: set[str] = set()
        for section in self.sections:
            for form_field in section.fields:
                if form_field.name in seen:
                    raise ValueError(f"Duplicate field name in schema: {form_field.name}")
                seen.add(form_field.name)
        return self

    @property
    def fields(self) -> list[FormField]:
        """All fields in declaration order."""
        return [f for section in self.sections for f in section.fields]

    @property
    def required_fields(self) -> list[FormField]:
        return [f for f in self.fields if f.required]

    def get_field(self, name: str) -> FormField | None:
        return next((f for f in self.fields if f.name == name), None)

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]


class EntityPattern(FrozenModel):
    """A regex that produces entities of one kind.

    ``confidence`` is assigned by the pattern author and becomes the
    confidence of every entity the pattern yields. ``group`` selects the
    capture group holding the entity value (0 for the whole match, or a
    group name). ``metadata`` is copied onto every entity, e.g. the
    relation a reference pattern stands for.
    """

    name: str
    kind: EntityKind
    pattern: str
    confidence: float = Field(default=0.8, ge=0.0, le=1.0)
    group: int | str = 0
    flags: tuple[str, ...] = ("IGNORECASE",)
    metadata: dict[str, str] = Field(default_factory=dict)

    @field_validator("pattern")
    @classmethod
    def _valid_pattern(cls, value: str) -> str:
        return _check_regex(value)

    @field_validator("flags")
    @classmethod
    def _known_flags(cls, flags: tuple[str, ...]) -> tuple[str, ...]:
        unknown = [f for f in flags if f not in _FLAG_NAMES]
        if unknown:
            raise ValueError(f"Unknown regex flags: {unknown}")
        return flags

    def compile(self) -> re.Pattern[str]:
        combined = 0
        for flag in self.flags:
            combined |= _FLAG_NAMES[flag]
        return re.compile(self.pattern, combined)


class ValidationRule(FrozenModel):
    """Template-level rule, e.g. ``required|regex:^\\d{2}-\\d{3}$``."""

    field: str
    rule: str
    message: str

    @field_validator("rule")
    @classmethod
    def _valid_regex_arguments(cls, rule: str) -> str:
        for name, argument in parse_rule(rule):
            if name == "regex":
                _check_regex(argument)
        return rule


class DocumentTypeTemplate(FrozenModel):
    """Static description of one document type."""

    id: str
    type_name: str
    code: str = ""
    description: str = ""
    aliases: tuple[str, ...] = ()
    identifying_patterns: tuple[str, ...] = ()
    entity_patterns: tuple[EntityPattern, ...] = ()
    form_schema: FormSchema = Field(default_factory=FormSchema)
    institution_patterns: tuple[str, ...] = ()
    validation_rules: tuple[ValidationRule, ...] = ()

    @field_validator("identifying_patterns")
    @classmethod
    def _valid_identifiers(cls, patterns: tuple[str, ...]) -> tuple[str, ...]:
        for pattern in patterns:
            _check_regex(pattern)
        return patterns
