"""Date arithmetic and display formatting shared by rules, layout and reports."""

from __future__ import annotations

import calendar
import re
from datetime import date

from app.errors import RenderError

_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")

YES_NO = {True: "Yes", False: "No"}


def parse_iso_date(value: object) -> date | None:
    """Parse ``YYYY-MM-DD`` (optionally followed by a time part).

    Returns None for empty or malformed input.
    """
    if not isinstance(value, str) or len(value.strip()) < 10:
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


def parse_month(value: object) -> tuple[int, int] | None:
    """Parse ``YYYY-MM`` into (year, month); full dates are accepted too."""
    if not isinstance(value, str):
        return None
    m = _MONTH_RE.match(value.strip())
    if m:
        year, month = int(m.group(1)), int(m.group(2))
        return (year, month) if 1 <= month <= 12 else None
    d = parse_iso_date(value)
    return (d.year, d.month) if d else None


def parse_amount(value: object) -> float | None:
    """Parse a money amount such as ``"35000"``, ``"35,000.50"`` or ``35000``."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, str):
        return None
    cleaned = value.strip().replace(",", "").replace("$", "")
    if not cleaned:
        return None
    try:
        return float(cleaned)
    except ValueError:
        return None


def add_months(start: date, months: int) -> date:
    """Shift *start* by whole months, clamping to the last day of the month."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(start.day, last_day))


def age_in_years(birth: date, today: date) -> float:
    """Fractional age, using a 365.25-day year."""
    return (today - birth).days / 365.25


def calendar_age(birth: date, today: date) -> int:
    """Age in completed years (birthday-based)."""
    age = today.year - birth.year
    if (today.month, today.day) < (birth.month, birth.day):
        age -= 1
    return age


# -- Display formatting --------------------------------------------------------
# Each formatter returns "" for empty input and raises RenderError for values
# that are present but malformed.

def format_date(value: object, path: str = "") -> str:
    if value in (None, ""):
        return ""
    d = parse_iso_date(value)
    if d is None:
        raise RenderError(path, value, "expected YYYY-MM-DD")
    return d.isoformat()


def format_month(value: object, path: str = "") -> str:
    if value in (None, ""):
        return ""
    parsed = parse_month(value)
    if parsed is None:
        raise RenderError(path, value, "expected YYYY-MM")
    return f"{parsed[0]:04d}-{parsed[1]:02d}"


def format_currency(value: object, path: str = "") -> str:
    if value in (None, ""):
        return ""
    amount = parse_amount(value)
    if amount is None:
        raise RenderError(path, value, "expected an amount")
    return f"CAD ${amount:,.2f}"


def format_bool(value: object) -> str:
    return YES_NO.get(bool(value), "No")


def format_checkbox(checked: bool) -> str:
    return "[X]" if checked else "[ ]"


FUNDING_SOURCE_LABELS: dict[str, str] = {
    "self": "Personal Savings",
    "family": "Family Support",
    "scholarship": "Scholarship/Grant",
    "loan": "Education Loan",
    "sponsor": "Sponsor",
    "other": "Other",
}

EDUCATION_LEVEL_LABELS: dict[str, str] = {
    "secondary": "Secondary School",
    "diploma": "Diploma/Certificate",
    "bachelor": "Bachelor's Degree",
    "master": "Master's Degree",
    "phd": "Doctoral Degree (PhD)",
    "other": "Other",
}


def format_choice(value: object, labels: dict[str, str]) -> str:
    if value in (None, ""):
        return ""
    return labels.get(str(value), str(value))


_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def split_camel(key: str) -> str:
    """``"dliNumber"`` -> ``"dli Number"``; callers choose the casing."""
    return _CAMEL_BOUNDARY.sub(" ", key).replace("_", " ").strip()


def field_label(key: str) -> str:
    """Sentence-case label for a record key, e.g. ``"Family name"``."""
    words = split_camel(key)
    return words[:1].upper() + words[1:].lower() if words else key
