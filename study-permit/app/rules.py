"""Declarative rule tables for the IMM 1294 application record.

A rule table is a nested mapping that mirrors the record: inner mappings are
sections, ``FieldRule`` values are leaves and ``Repeated`` marks a list
section whose items share one set of rules. Cross-field checks are named
predicates that receive the value under test plus the whole raw record.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from types import MappingProxyType
from typing import Any, Callable, Mapping

from app.formatting import (
    add_months,
    age_in_years,
    parse_amount,
    parse_iso_date,
)

LIVING_COST_CAD = 10_000
MIN_AGE = 16
MAX_AGE = 100
PASSPORT_VALIDITY_MONTHS = 6
START_DATE_LEAD_MONTHS = 3

NAME_PATTERN = r"^[a-zA-Z\s\-']+$"
EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"
DLI_PATTERN = r"^O\d{9,11}$"
PASSPORT_PATTERN = r"^[A-Z0-9]+$"
UCI_PATTERN = r"^[A-Z0-9]{8,10}$"

SEX_CHOICES = ("Male", "Female", "Another gender")
MARITAL_CHOICES = ("Single", "Married", "Common-law", "Divorced", "Separated", "Widowed", "Annulled")
LANGUAGE_ABILITY_CHOICES = ("English", "French", "Both", "Neither")
FUNDING_SOURCE_CHOICES = ("self", "family", "scholarship", "loan", "sponsor", "other")
EDUCATION_LEVEL_CHOICES = ("secondary", "diploma", "bachelor", "master", "phd", "other")

Check = Callable[[Any, Mapping[str, Any]], bool]
Condition = Callable[[Mapping[str, Any]], bool]


@dataclass(frozen=True)
class FieldRule:
    required: bool = False
    kind: str = "string"  # string | boolean | date | month | number
    min_length: int | None = None
    max_length: int | None = None
    pattern: str | None = None
    choices: tuple[str, ...] | None = None
    check: Check | None = None
    required_if: Condition | None = None
    message: str | None = None

    def compiled_pattern(self) -> re.Pattern[str] | None:
        return _compile(self.pattern) if self.pattern else None


@dataclass(frozen=True)
class Repeated:
    """A list section; ``item_rules`` apply to every item."""

    item_rules: Mapping[str, Any]


_PATTERN_CACHE: dict[str, re.Pattern[str]] = {}


def _compile(pattern: str) -> re.Pattern[str]:
    if pattern not in _PATTERN_CACHE:
        _PATTERN_CACHE[pattern] = re.compile(pattern)
    return _PATTERN_CACHE[pattern]


def _today() -> date:
    return date.today()


def lookup(record: Mapping[str, Any] | None, path: str, default: Any = None) -> Any:
    """Resolve a dotted path in a raw record; missing steps yield *default*."""
    node: Any = record or {}
    for key in path.split("."):
        if not isinstance(node, Mapping) or key not in node:
            return default
        node = node[key]
    return default if node is None else node


def _flag(record: Mapping[str, Any], path: str, default: bool = False) -> bool:
    value = lookup(record, path)
    if value is None or value == "":
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    return bool(value)


# -- Value predicates: (value, record) -> bool --------------------------------

def age_between_16_and_100(value: Any, record: Mapping[str, Any]) -> bool:
    birth = parse_iso_date(value)
    if birth is None:
        return False
    return MIN_AGE <= age_in_years(birth, _today()) <= MAX_AGE


def not_in_future(value: Any, record: Mapping[str, Any]) -> bool:
    d = parse_iso_date(value)
    return d is not None and d <= _today()


def passport_valid_six_months(value: Any, record: Mapping[str, Any]) -> bool:
    expiry = parse_iso_date(value)
    if expiry is None:
        return False
    issue = parse_iso_date(lookup(record, "passportInfo.issueDate"))
    if issue is not None and expiry <= issue:
        return False
    return expiry > add_months(_today(), PASSPORT_VALIDITY_MONTHS)


def marriage_after_birth(value: Any, record: Mapping[str, Any]) -> bool:
    married_on = parse_iso_date(value)
    if married_on is None:
        return False
    birth = parse_iso_date(lookup(record, "personalInfo.dateOfBirth"))
    if birth is not None and married_on <= birth:
        return False
    return married_on <= _today()


def start_date_three_months_out(value: Any, record: Mapping[str, Any]) -> bool:
    start = parse_iso_date(value)
    return start is not None and start >= add_months(_today(), START_DATE_LEAD_MONTHS)


def end_after_start(value: Any, record: Mapping[str, Any]) -> bool:
    end = parse_iso_date(value)
    if end is None:
        return False
    start = parse_iso_date(lookup(record, "studyDetails.duration.from"))
    return start is None or end > start


def funds_cover_tuition_and_living(value: Any, record: Mapping[str, Any]) -> bool:
    funds = parse_amount(value)
    if funds is None:
        return False
    tuition = parse_amount(lookup(record, "studyDetails.costs.tuition")) or 0.0
    return funds >= tuition + LIVING_COST_CAD


# -- Guards: (record) -> bool -------------------------------------------------

def national_id_held(record: Mapping[str, Any]) -> bool:
    return _flag(record, "nationalIdInfo.hasDocument")


def us_pr_held(record: Mapping[str, Any]) -> bool:
    return _flag(record, "usPRInfo.isPermanentResident")


def married_or_common_law(record: Mapping[str, Any]) -> bool:
    return lookup(record, "maritalInfo.status") in ("Married", "Common-law")


def previously_married(record: Mapping[str, Any]) -> bool:
    return _flag(record, "maritalInfo.previouslyMarried")


def has_other_names(record: Mapping[str, Any]) -> bool:
    return _flag(record, "personalInfo.hasOtherNames")


def residence_differs(record: Mapping[str, Any]) -> bool:
    return not _flag(record, "contactInfo.residentialSameAsMailing", default=True)


def applying_elsewhere(record: Mapping[str, Any]) -> bool:
    return not _flag(record, "personalInfo.applyingFrom.sameAsCurrent", default=True)


def has_post_secondary(record: Mapping[str, Any]) -> bool:
    return _flag(record, "educationHistory.hasPostSecondary")


def expenses_paid_by_other(record: Mapping[str, Any]) -> bool:
    return str(lookup(record, "studyDetails.expensesPaidBy", "")).strip().lower() == "other"


def health_concern(record: Mapping[str, Any]) -> bool:
    return _flag(record, "backgroundInfo.health.tuberculosis") or _flag(
        record, "backgroundInfo.health.physicalMentalDisorder"
    )


def immigration_concern(record: Mapping[str, Any]) -> bool:
    return any(
        _flag(record, f"backgroundInfo.immigration.{key}")
        for key in ("overstayed", "refusedVisa", "previousApplication")
    )


def has_criminal_record(record: Mapping[str, Any]) -> bool:
    return _flag(record, "backgroundInfo.criminal.hasRecord")


def served_in_military(record: Mapping[str, Any]) -> bool:
    return _flag(record, "backgroundInfo.military.served")


# -- Tables --------------------------------------------------------------------

def _freeze(table: Mapping[str, Any]) -> Mapping[str, Any]:
    frozen: dict[str, Any] = {}
    for key, value in table.items():
        if isinstance(value, Mapping):
            frozen[key] = _freeze(value)
        elif isinstance(value, Repeated):
            frozen[key] = Repeated(_freeze(value.item_rules))
        else:
            frozen[key] = value
    return MappingProxyType(frozen)


_DATE = FieldRule(kind="date", message="Please enter a valid date (YYYY-MM-DD)")
_MONTH = FieldRule(kind="month", message="Please enter a valid month (YYYY-MM)")
_BOOL = FieldRule(kind="boolean")


def _residence_rules() -> dict[str, Any]:
    return {
        "country": FieldRule(required=True, min_length=2, message="Country is required"),
        "status": FieldRule(required=True, min_length=2, message="Immigration status is required"),
        "from": _DATE,
        "to": _DATE,
    }


def _address_rules(condition: Condition | None = None) -> dict[str, Any]:
    return {
        "streetName": FieldRule(min_length=2, required_if=condition, message="Street name is required"),
        "city": FieldRule(min_length=2, required_if=condition, message="City/Town is required"),
        "country": FieldRule(min_length=2, required_if=condition, message="Country is required"),
        "postalCode": FieldRule(max_length=12, message="Postal code must be at most 12 characters"),
    }


COMPLETE_RULES: Mapping[str, Any] = _freeze({
    "uci": FieldRule(pattern=UCI_PATTERN, message="UCI must be 8-10 alphanumeric characters"),
    "serviceLanguage": FieldRule(
        required=True, choices=("English", "French"),
        message="Service language must be English or French",
    ),
    "personalInfo": {
        "familyName": FieldRule(
            required=True, min_length=2, max_length=50, pattern=NAME_PATTERN,
            message="Family name must contain only letters, spaces, hyphens, and apostrophes",
        ),
        "givenNames": FieldRule(
            required=True, min_length=2, max_length=50, pattern=NAME_PATTERN,
            message="Given name(s) must contain only letters, spaces, hyphens, and apostrophes",
        ),
        "hasOtherNames": _BOOL,
        "otherNames": {
            "familyName": FieldRule(
                pattern=NAME_PATTERN, required_if=has_other_names,
                message="Other family name is required when you have used other names",
            ),
            "givenNames": FieldRule(pattern=NAME_PATTERN, message="Other given names contain invalid characters"),
        },
        "sex": FieldRule(required=True, choices=SEX_CHOICES, message="Please select your sex"),
        "dateOfBirth": FieldRule(
            required=True, kind="date", check=age_between_16_and_100,
            message="Applicant must be between 16 and 100 years old",
        ),
        "placeOfBirth": {
            "city": FieldRule(required=True, min_length=2, message="City/Town of birth is required"),
            "country": FieldRule(required=True, min_length=2, message="Country of birth is required"),
        },
        "citizenship": FieldRule(required=True, min_length=2, message="Citizenship is required"),
        "currentResidence": _residence_rules(),
        "previousResidences": Repeated(_residence_rules()),
        "applyingFrom": {
            "sameAsCurrent": _BOOL,
            "country": FieldRule(
                min_length=2, required_if=applying_elsewhere,
                message="Country you are applying from is required",
            ),
            "status": FieldRule(
                min_length=2, required_if=applying_elsewhere,
                message="Status in the country you are applying from is required",
            ),
        },
    },
    "maritalInfo": {
        "status": FieldRule(required=True, choices=MARITAL_CHOICES, message="Please select your marital status"),
        "dateOfMarriage": FieldRule(
            kind="date", check=marriage_after_birth, required_if=married_or_common_law,
            message="Marriage date must be after birth date and not in the future",
        ),
        "spouse": {
            "familyName": FieldRule(
                pattern=NAME_PATTERN, required_if=married_or_common_law,
                message="Spouse's family name is required",
            ),
            "givenNames": FieldRule(
                pattern=NAME_PATTERN, required_if=married_or_common_law,
                message="Spouse's given name(s) are required",
            ),
        },
        "previouslyMarried": _BOOL,
        "previousSpouse": {
            "familyName": FieldRule(
                pattern=NAME_PATTERN, required_if=previously_married,
                message="Previous spouse's family name is required",
            ),
            "givenNames": FieldRule(pattern=NAME_PATTERN, message="Previous spouse's given names contain invalid characters"),
            "dateOfBirth": _DATE,
            "from": _DATE,
            "to": _DATE,
        },
    },
    "languageInfo": {
        "nativeLanguage": FieldRule(required=True, min_length=2, message="Native language is required"),
        "communicateInEnglishFrench": FieldRule(
            required=True, choices=LANGUAGE_ABILITY_CHOICES,
            message="Please select your ability to communicate in English and/or French",
        ),
        "languageTest": _BOOL,
    },
    "passportInfo": {
        "number": FieldRule(
            required=True, min_length=6, max_length=15, pattern=PASSPORT_PATTERN,
            message="Passport number must be alphanumeric and uppercase",
        ),
        "countryOfIssue": FieldRule(required=True, min_length=2, message="Passport issuing country is required"),
        "issueDate": FieldRule(
            required=True, kind="date", check=not_in_future,
            message="Passport issue date cannot be in the future",
        ),
        "expiryDate": FieldRule(
            required=True, kind="date", check=passport_valid_six_months,
            message="Passport must be valid for at least 6 months from today",
        ),
        "taiwanPassport": _BOOL,
        "israeliPassport": _BOOL,
    },
    "nationalIdInfo": {
        "hasDocument": _BOOL,
        "documentNumber": FieldRule(
            min_length=5, required_if=national_id_held,
            message="Document number is required when you have a national ID",
        ),
        "issueDate": _DATE,
        "expiryDate": _DATE,
    },
    "usPRInfo": {
        "isPermanentResident": _BOOL,
        "uscisNumber": FieldRule(
            min_length=8, required_if=us_pr_held,
            message="USCIS number is required for US permanent residents",
        ),
        "expiryDate": _DATE,
    },
    "contactInfo": {
        "mailingAddress": _address_rules(),
        "residentialSameAsMailing": _BOOL,
        "residentialAddress": _address_rules(residence_differs),
        "email": FieldRule(required=True, pattern=EMAIL_PATTERN, message="Please enter a valid email address"),
    },
    "studyDetails": {
        "schoolName": FieldRule(required=True, min_length=3, message="School name is required"),
        "levelOfStudy": FieldRule(required=True, min_length=2, message="Level of study is required"),
        "fieldOfStudy": FieldRule(required=True, min_length=2, message="Field of study is required"),
        "dliNumber": FieldRule(
            required=True, pattern=DLI_PATTERN,
            message='DLI number must start with "O" followed by 9-11 digits',
        ),
        "duration": {
            "from": FieldRule(
                required=True, kind="date", check=start_date_three_months_out,
                message="Program start date must be at least 3 months from today",
            ),
            "to": FieldRule(
                required=True, kind="date", check=end_after_start,
                message="Program end date must be after the start date",
            ),
        },
        "costs": {
            "tuition": FieldRule(kind="number", message="Tuition must be a positive amount"),
            "roomAndBoard": FieldRule(kind="number", message="Room and board must be a positive amount"),
            "other": FieldRule(kind="number", message="Other costs must be a positive amount"),
        },
        "fundsAvailable": FieldRule(
            required=True, kind="number", check=funds_cover_tuition_and_living,
            message="Available funds must cover tuition plus CAD $10,000 for living expenses",
        ),
        "fundingSource": FieldRule(
            choices=FUNDING_SOURCE_CHOICES,
            message="Funding source must be one of: " + ", ".join(FUNDING_SOURCE_CHOICES),
        ),
        "expensesPaidBy": FieldRule(required=True, min_length=2, message="Please specify who will pay your expenses"),
        "expensesPaidByOther": FieldRule(
            min_length=2, required_if=expenses_paid_by_other,
            message="Please describe who else will pay your expenses",
        ),
    },
    "educationHistory": {
        "hasPostSecondary": FieldRule(
            required=True, kind="boolean",
            message="Please indicate if you have post-secondary education",
        ),
        "highestEducation": {
            "level": FieldRule(
                choices=EDUCATION_LEVEL_CHOICES,
                message="Education level must be one of: " + ", ".join(EDUCATION_LEVEL_CHOICES),
            ),
            "from": FieldRule(kind="month", required_if=has_post_secondary, message="Education start month is required (YYYY-MM)"),
            "to": FieldRule(kind="month", required_if=has_post_secondary, message="Education end month is required (YYYY-MM)"),
            "schoolName": FieldRule(
                min_length=2, required_if=has_post_secondary,
                message="Name of school or facility is required",
            ),
        },
    },
    "employmentHistory": Repeated({
        "from": FieldRule(required=True, kind="month", message="Start month is required (YYYY-MM)"),
        "to": _MONTH,
        "occupation": FieldRule(required=True, min_length=2, message="Occupation is required"),
        "companyName": FieldRule(min_length=2, message="Company name must be at least 2 characters"),
    }),
    "backgroundInfo": {
        "health": {
            "details": FieldRule(required_if=health_concern, message="Please give details of your medical history"),
        },
        "immigration": {
            "details": FieldRule(required_if=immigration_concern, message="Please give details of your immigration history"),
        },
        "criminal": {
            "details": FieldRule(required_if=has_criminal_record, message="Please give details of the offence"),
        },
        "military": {
            "details": FieldRule(required_if=served_in_military, message="Please give dates and places of service"),
        },
    },
})


def _required(message: str, **kwargs: Any) -> FieldRule:
    return FieldRule(required=True, message=message, **kwargs)


MINIMAL_RULES: Mapping[str, Any] = _freeze({
    "personalInfo": {
        "familyName": _required("Family name is required"),
        "givenNames": _required("Given name(s) is required"),
        "dateOfBirth": _required("Date of birth is required"),
        "sex": _required("Sex is required"),
        "citizenship": _required("Citizenship is required"),
    },
    "passportInfo": {
        "number": _required("Passport number is required"),
        "countryOfIssue": _required("Passport country of issue is required"),
        "issueDate": _required("Passport issue date is required"),
        "expiryDate": _required("Passport expiry date is required"),
    },
    "contactInfo": {
        "email": _required("Email is required"),
    },
    "studyDetails": {
        "schoolName": _required("School name is required"),
        "dliNumber": _required("DLI number is required"),
        "levelOfStudy": _required("Level of study is required"),
        "fieldOfStudy": _required("Field of study is required"),
    },
    "languageInfo": {
        "nativeLanguage": _required("Native language is required"),
    },
    "maritalInfo": {
        "status": _required("Marital status is required"),
    },
})


def iter_rule_paths(table: Mapping[str, Any], prefix: str = ""):
    """Yield ``(path, rule)`` for every leaf; list sections use ``path[].leaf``."""
    for key, value in table.items():
        path = f"{prefix}{key}"
        if isinstance(value, FieldRule):
            yield path, value
        elif isinstance(value, Repeated):
            yield from iter_rule_paths(value.item_rules, f"{path}[].")
        else:
            yield from iter_rule_paths(value, f"{path}.")


def rule_for_path(path: str, table: Mapping[str, Any] = COMPLETE_RULES) -> FieldRule | None:
    """Find the leaf rule for a dotted path; list indices (``.0.``) are accepted."""
    node: Any = table
    for key in path.split("."):
        if isinstance(node, Repeated):
            if key.isdigit() or key == "[]":
                node = node.item_rules
                continue
            node = node.item_rules
        if not isinstance(node, Mapping) or key not in node:
            return None
        node = node[key]
    return node if isinstance(node, FieldRule) else None
