"""Validation rules that gate approval of a mapped record.

Checks required fields, schema patterns and lengths, select options, the
template's own rule strings (``required|regex:...``), publication dates in
the future and implausibly short document type strings.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from legalflow.catalog.models import DocumentTypeTemplate, FieldKind, FormSchema, parse_rule
from legalflow.utils.config import WorkflowConfig
from legalflow.utils.logger import get_logger

logger = get_logger(__name__)

DATE_FORMATS: list[str] = ["%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y"]

FUTURE_DATE_FIELDS = ("publication_date",)


@dataclass
class ValidationResult:
    """Result of a single field validation check."""

    field_name: str
    is_valid: bool
    message: str
    rule_name: str


@dataclass
class ValidationReport:
    """Aggregated validation report for a record."""

    all_valid: bool
    results: list[ValidationResult]

    @property
    def violations(self) -> list[ValidationResult]:
        return [r for r in self.results if not r.is_valid]


def _parse_date(value: Any) -> date | None:
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(str(value), fmt).date()
        except ValueError:
            continue
    return None


def _present(value: Any) -> bool:
    return value is not None and bool(str(value).strip())


class RulesEngine:
    """Validation rules engine for mapped records.

    Template rule strings are ``|``-separated; each part is a rule name
    with an optional ``:argument`` (``required|regex:^\\d{2}-\\d{3}$``).

    Args:
        config: Workflow settings (minimum type string length).
        today: Callable returning the current date; injectable for tests.
    """

    def __init__(
        self,
        config: WorkflowConfig | None = None,
        today: Callable[[], date] | None = None,
    ) -> None:
        self.config = config or WorkflowConfig()
        self.today = today or date.today
        self._validators: dict[str, Callable[[str, Any, str, str], ValidationResult]] = {
            "required": self._validate_required,
            "regex": self._validate_regex,
            "date": self._validate_date,
            "numeric": self._validate_numeric,
        }

    def validate(
        self,
        fields: dict[str, Any],
        schema: FormSchema,
        template: DocumentTypeTemplate | None = None,
    ) -> ValidationReport:
        """Validate a record against its schema and template rules.

        Args:
            fields: Field name to value.
            schema: Form schema of the record.
            template: Template providing extra rules; ``None`` for
                documents of unknown type.

        Returns:
            Validation report. ``all_valid`` is False if any check fails.
        """
        results: list[ValidationResult] = []

        for form_field in schema.fields:
            results.extend(self._check_field(form_field, fields.get(form_field.name)))

        for rule in template.validation_rules if template else ():
            value = fields.get(rule.field)
            for name, argument in parse_rule(rule.rule):
                validator = self._validators.get(name)
                if validator is None:
                    logger.warning("Unknown rule type: %s", name)
                    continue
                results.append(validator(rule.field, value, argument, rule.message))

        results.extend(self._check_publication_date(fields))
        results.extend(self._check_type(fields))

        all_valid = all(r.is_valid for r in results)
        logger.info(
            "Validation for %s: %s (%d checks)",
            template.id if template else "unknown",
            "PASSED" if all_valid else "FAILED",
            len(results),
        )
        return ValidationReport(all_valid=all_valid, results=results)

    def _check_field(self, form_field, value: Any) -> list[ValidationResult]:
        name = form_field.name
        if not _present(value):
            if form_field.required:
                return [ValidationResult(name, False, f"Champ requis manquant: {form_field.label or name}", "required")]
            return []

        results: list[ValidationResult] = []
        text = str(value)
        rules = form_field.validation
        if rules is not None:
            if rules.pattern and not re.search(rules.pattern, text):
                results.append(
                    ValidationResult(name, False, f"Format invalide pour {name}: {text}", "pattern")
                )
            if rules.min_length is not None and len(text) < rules.min_length:
                results.append(
                    ValidationResult(name, False, f"{name} trop court (min {rules.min_length})", "min_length")
                )
            if rules.max_length is not None and len(text) > rules.max_length:
                results.append(
                    ValidationResult(name, False, f"{name} trop long (max {rules.max_length})", "max_length")
                )
        if form_field.kind == FieldKind.SELECT and form_field.options and text not in form_field.options:
            results.append(
                ValidationResult(name, False, f"Valeur non autorisée pour {name}: {text}", "options")
            )
        if form_field.kind == FieldKind.DATE and _parse_date(text) is None:
            results.append(ValidationResult(name, False, f"Date invalide pour {name}: {text}", "date"))
        return results

    def _check_publication_date(self, fields: dict[str, Any]) -> list[ValidationResult]:
        results: list[ValidationResult] = []
        for name in FUTURE_DATE_FIELDS:
            parsed = _parse_date(fields.get(name)) if _present(fields.get(name)) else None
            if parsed is not None and parsed > self.today():
                results.append(
                    ValidationResult(name, False, f"Date dans le futur: {parsed.isoformat()}", "future_date")
                )
        return results

    def _check_type(self, fields: dict[str, Any]) -> list[ValidationResult]:
        value = fields.get("type")
        if _present(value) and len(str(value).strip()) < self.config.min_type_length:
            return [
                ValidationResult("type", False, f"Type de document non reconnu: {value}", "type_length")
            ]
        return []

    def _validate_required(self, field_name: str, value: Any, argument: str, message: str) -> ValidationResult:
        """Check that a field is present and non-empty."""
        if _present(value):
            return ValidationResult(field_name, True, "Required field present", "required")
        return ValidationResult(field_name, False, message, "required")

    def _validate_regex(self, field_name: str, value: Any, argument: str, message: str) -> ValidationResult:
        """Check a present value against the rule's regex."""
        if not _present(value):
            return ValidationResult(field_name, True, "No value to validate", "regex")
        if re.search(argument, str(value)):
            return ValidationResult(field_name, True, "Matches pattern", "regex")
        return ValidationResult(field_name, False, message, "regex")

    def _validate_date(self, field_name: str, value: Any, argument: str, message: str) -> ValidationResult:
        if not _present(value):
            return ValidationResult(field_name, True, "No value to validate", "date")
        if _parse_date(value) is not None:
            return ValidationResult(field_name, True, "Valid date", "date")
        return ValidationResult(field_name, False, message, "date")

    def _validate_numeric(self, field_name: str, value: Any, argument: str, message: str) -> ValidationResult:
        if not _present(value):
            return ValidationResult(field_name, True, "No value to validate", "numeric")
        if re.fullmatch(r"\d+(?:[-/]\d+)?", str(value).strip()):
            return ValidationResult(field_name, True, "Numeric value", "numeric")
        return ValidationResult(field_name, False, message, "numeric")
