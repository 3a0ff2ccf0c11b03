"""Rule-table validation of application records.

Validation never raises for bad input: every failing leaf is collected into a
``ValidationReport`` so the wizard can show all problems in one pass.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

from app.formatting import field_label, parse_amount, parse_iso_date, parse_month
from app.record import ApplicationRecord
from app.rules import COMPLETE_RULES, MINIMAL_RULES, FieldRule, Repeated, rule_for_path

logger = logging.getLogger(__name__)

GENERAL_SECTION = "general"


@dataclass
class ValidationReport:
    is_valid: bool
    errors: dict[str, Any] = field(default_factory=dict)
    summary: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"isValid": self.is_valid, "errors": self.errors, "summary": self.summary}


def _as_dict(record: ApplicationRecord | Mapping[str, Any] | None) -> dict[str, Any]:
    if isinstance(record, ApplicationRecord):
        return record.to_dict()
    return dict(record or {})


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


def _type_ok(kind: str, value: Any) -> bool:
    if kind == "boolean":
        return isinstance(value, bool)
    if kind == "date":
        return parse_iso_date(value) is not None
    if kind == "month":
        return parse_month(value) is not None
    if kind == "number":
        amount = parse_amount(value)
        return amount is not None and amount >= 0
    return isinstance(value, (str, int, float)) and not isinstance(value, bool)


def check_value(rule: FieldRule, value: Any, record: Mapping[str, Any], key: str) -> str | None:
    """Return the error message for one leaf, or None when it passes."""
    if _is_empty(value):
        required = rule.required or (rule.required_if is not None and rule.required_if(record))
        if required:
            return rule.message or f"{field_label(key)} is required"
        return None

    if not _type_ok(rule.kind, value):
        return rule.message or f"{field_label(key)} must be a valid {rule.kind}"

    text = value if isinstance(value, str) else str(value)
    if rule.min_length is not None and len(text) < rule.min_length:
        return rule.message or f"Minimum length is {rule.min_length} characters"
    if rule.max_length is not None and len(text) > rule.max_length:
        return rule.message or f"Maximum length is {rule.max_length} characters"

    pattern = rule.compiled_pattern()
    if pattern is not None and not pattern.fullmatch(text):
        return rule.message or "Invalid format"

    if rule.choices is not None and value not in rule.choices:
        return rule.message or f"Value must be one of: {', '.join(rule.choices)}"

    if rule.check is not None and not rule.check(value, record):
        return rule.message or "Invalid value"
    return None


class _Tally:
    def __init__(self) -> None:
        self.sections: dict[str, dict[str, int]] = {}

    def add(self, section: str, failed: bool) -> None:
        entry = self.sections.setdefault(section, {"fieldCount": 0, "errorCount": 0})
        entry["fieldCount"] += 1
        if failed:
            entry["errorCount"] += 1

    def summary(self) -> dict[str, Any]:
        total = sum(s["fieldCount"] for s in self.sections.values())
        invalid = sum(s["errorCount"] for s in self.sections.values())
        return {
            "totalFields": total,
            "validFields": total - invalid,
            "invalidFields": invalid,
            "sections": {
                name: {**counts, "isValid": counts["errorCount"] == 0}
                for name, counts in self.sections.items()
            },
        }


def _walk(
    table: Mapping[str, Any],
    node: Any,
    record: Mapping[str, Any],
    tally: _Tally,
    section: str | None,
) -> dict[str, Any]:
    errors: dict[str, Any] = {}
    node = node if isinstance(node, Mapping) else {}
    for key, rule in table.items():
        value = node.get(key)
        current = section or (GENERAL_SECTION if isinstance(rule, FieldRule) else key)

        if isinstance(rule, FieldRule):
            message = check_value(rule, value, record, key)
            tally.add(current, message is not None)
            if message is not None:
                errors[key] = message
        elif isinstance(rule, Repeated):
            items = value if isinstance(value, list) else []
            item_errors = {}
            for index, item in enumerate(items):
                sub = _walk(rule.item_rules, item, record, tally, current)
                if sub:
                    item_errors[str(index)] = sub
            if not items:
                tally.sections.setdefault(current, {"fieldCount": 0, "errorCount": 0})
            if item_errors:
                errors[key] = item_errors
        else:
            sub = _walk(rule, value, record, tally, current)
            if sub:
                errors[key] = sub
    return errors


def validate(
    record: ApplicationRecord | Mapping[str, Any] | None,
    rules: Mapping[str, Any] = COMPLETE_RULES,
) -> ValidationReport:
    """Check every leaf of *rules* against *record* and collect all failures."""
    data = _as_dict(record)
    tally = _Tally()
    errors = _walk(rules, data, data, tally, None)
    summary = tally.summary()
    if errors:
        logger.info(
            "Validation failed: %d of %d fields invalid",
            summary["invalidFields"], summary["totalFields"],
        )
    return ValidationReport(is_valid=not errors, errors=errors, summary=summary)


def validate_minimal(record: ApplicationRecord | Mapping[str, Any] | None) -> ValidationReport:
    """Only the critical paths needed to produce a basic form."""
    return validate(record, MINIMAL_RULES)


def _with_value(record: dict[str, Any], path: str, value: Any) -> dict[str, Any]:
    updated = copy.deepcopy(record)
    node: Any = updated
    keys = path.split(".")
    for key in keys[:-1]:
        if isinstance(node, list) and key.isdigit() and int(key) < len(node):
            node = node[int(key)]
            continue
        if not isinstance(node, dict):
            return updated
        if not isinstance(node.get(key), (dict, list)):
            node[key] = {}
        node = node[key]
    if isinstance(node, dict):
        node[keys[-1]] = value
    return updated


def validate_field(
    path: str,
    value: Any,
    record: ApplicationRecord | Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Validate a single leaf in the context of the rest of the record.

    Returns ``{"path", "known", "isValid", "error"}``. Paths without a rule
    are reported as valid with ``known`` set to False.
    """
    rule = rule_for_path(path)
    if rule is None:
        return {"path": path, "known": False, "isValid": True, "error": None}
    context = _with_value(_as_dict(record), path, value)
    message = check_value(rule, value, context, path.rsplit(".", 1)[-1])
    return {"path": path, "known": True, "isValid": message is None, "error": message}
