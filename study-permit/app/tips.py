"""Field guidance for the application wizard.

Static tips cover the fields applicants most often get wrong. When AI tips
are requested and an Anthropic key is configured, Claude writes a tailored
tip; any failure of that call falls back to the static tip.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))
from shared.claude_client import ExternalServiceError, generate_text

from app.config import Settings, get_settings
from app.formatting import parse_amount, split_camel
from app.rules import lookup
from app.validator import validate_field

logger = logging.getLogger(__name__)

FUNDS_BUFFER_WARNING_CAD = 20_000

STATIC_TIPS: dict[str, dict[str, Any]] = {
    "dli": {
        "title": "What is a DLI Number?",
        "tip": (
            "A Designated Learning Institution (DLI) number is a unique identifier assigned by the "
            'Canadian government to approved schools. It starts with the letter "O" followed by '
            "9 to 11 digits (e.g., O19391173552). You can find your institution's DLI number on their "
            "official website or in your Letter of Acceptance."
        ),
        "example": "O19391173552",
    },
    "letterOfAcceptance": {
        "title": "Letter of Acceptance Requirements",
        "tip": (
            "Your Letter of Acceptance must be an official document from a Designated Learning "
            "Institution (DLI) in Canada. It should include the program name, start date, duration, "
            "tuition fees and the DLI number, and be signed by an authorized official of the institution."
        ),
        "keyPoints": [
            "Must be from a DLI",
            "Include program details",
            "Signed and official",
            "Recent (within last 6 months)",
        ],
    },
    "proofOfFunds": {
        "title": "Proof of Financial Support",
        "tip": (
            "You need to prove you have enough money to pay for tuition fees for your first year, "
            "living expenses (CAD $10,000 for 12 months) and return transportation for you and any "
            "family members coming with you. Acceptable documents include bank statements, "
            "scholarship letters and sponsor affidavits."
        ),
        "minimumRequired": "Tuition + CAD $10,000",
        "acceptableDocuments": [
            "Bank statements (last 4-6 months)",
            "Scholarship award letters",
            "Education loan approval",
            "Sponsor affidavit with financial proof",
        ],
    },
    "studyPlan": {
        "title": "Statement of Purpose / Study Plan",
        "tip": (
            "Your study plan should explain why you want to study in Canada, why you chose this "
            "program and institution, how it fits your previous education and career goals, and why "
            "you will return to your home country after completing your studies. Be honest and specific."
        ),
        "whatToInclude": [
            "Why this program?",
            "Why this institution?",
            "Career goals",
            "How it connects to previous education",
            "Reasons to return home",
        ],
    },
    "passport": {
        "title": "Passport Requirements",
        "tip": (
            "Your passport must be valid for the entire duration of your intended stay in Canada. "
            "This service requires at least 6 months of validity from today. If your passport expires "
            "soon, renew it before applying."
        ),
        "requirements": [
            "Valid for entire stay",
            "At least 6 months validity",
            "Clear, readable bio page",
            "All pages with stamps/visas",
        ],
    },
    "uci": {
        "title": "Unique Client Identifier (UCI)",
        "tip": (
            "If you have applied to come to Canada before, your UCI is printed on previous IRCC "
            "documents such as a visa counterfoil or a letter. It is 8 to 10 characters long. Leave "
            "it blank if this is your first application."
        ),
        "example": "12345678",
    },
    "expensesPaidBy": {
        "title": "Who Will Pay Your Expenses",
        "tip": (
            "State who is paying for your studies and living costs: yourself, your parents, another "
            "sponsor or a scholarship body. The documents in your proof of funds must match this answer."
        ),
        "options": ["Myself", "Parents", "Other"],
    },
    "maritalStatus": {
        "title": "Marital Status",
        "tip": (
            "Choose your status on the day you submit the application. Common-law means you have "
            "lived with your partner in a conjugal relationship for at least one continuous year."
        ),
        "options": ["Single", "Married", "Common-law", "Divorced", "Separated", "Widowed", "Annulled"],
    },
}

# Tip keys used by the wizard, and the record path each one validates
FIELD_PATHS: dict[str, str] = {
    "dli": "studyDetails.dliNumber",
    "email": "contactInfo.email",
    "passport": "passportInfo.number",
    "proofOfFunds": "studyDetails.fundsAvailable",
    "uci": "uci",
    "expensesPaidBy": "studyDetails.expensesPaidBy",
    "maritalStatus": "maritalInfo.status",
}

_AI_SYSTEM_PROMPT = "You are a helpful Canadian immigration expert assistant."

_AI_USER_PROMPT = """You are an expert on Canadian immigration and IRCC study permit applications.

Field: {field_name}
Context: {context}

Provide clear, concise guidance for this field in the study permit application. Include:
1. What this field means
2. What information should be provided
3. Common mistakes to avoid
4. Any IRCC-specific requirements

Keep the response under 200 words and be practical and helpful."""


def format_field_name(field_name: str) -> str:
    """``"letterOfAcceptance"`` -> ``"Letter Of Acceptance"``."""
    words = split_camel(field_name)
    return words[:1].upper() + words[1:]


def _generic_tip(field_name: str) -> dict[str, str]:
    return {
        "title": f"Guidance for {format_field_name(field_name)}",
        "tip": (
            "Please ensure this field is filled accurately and completely. "
            "Refer to IRCC guidelines for specific requirements."
        ),
        "note": "Enable AI tips in settings for more detailed guidance.",
    }


def _ai_context(record: Mapping[str, Any] | None) -> dict[str, Any]:
    # Study and funding answers only; names and document numbers stay local
    record = record or {}
    return {
        "citizenship": lookup(record, "personalInfo.citizenship", ""),
        "levelOfStudy": lookup(record, "studyDetails.levelOfStudy", ""),
        "fieldOfStudy": lookup(record, "studyDetails.fieldOfStudy", ""),
        "province": lookup(record, "studyDetails.schoolAddress.province", ""),
        "fundingSource": lookup(record, "studyDetails.fundingSource", ""),
    }


def _ai_tip(field_name: str, record: Mapping[str, Any] | None, settings: Settings) -> dict[str, str]:
    context = ", ".join(f"{k}={v}" for k, v in _ai_context(record).items() if v) or "none"
    text = generate_text(
        _AI_SYSTEM_PROMPT,
        _AI_USER_PROMPT.format(field_name=field_name, context=context),
        api_key=settings.anthropic_api_key,
        model=settings.ai_model,
        max_tokens=settings.ai_tip_max_tokens,
        timeout=settings.ai_tip_timeout,
    )
    return {
        "title": f"AI Guidance: {format_field_name(field_name)}",
        "tip": text,
        "generatedAt": datetime.now(timezone.utc).isoformat(),
    }


def get_tip(
    field_name: str,
    record: Mapping[str, Any] | None = None,
    use_ai: bool = False,
    settings: Settings | None = None,
) -> dict[str, Any]:
    """Return ``{"tip", "staticTip", "source"}`` for one wizard field.

    ``source`` is ``"ai"``, ``"static"`` or ``"generic"``.
    """
    settings = settings or get_settings()
    static_tip = STATIC_TIPS.get(field_name)

    if use_ai and settings.ai_enabled:
        try:
            return {"tip": _ai_tip(field_name, record, settings), "staticTip": static_tip, "source": "ai"}
        except ExternalServiceError as exc:
            logger.warning("AI tip for %s unavailable, using static tip: %s", field_name, exc)

    if static_tip is not None:
        return {"tip": static_tip, "staticTip": static_tip, "source": "static"}
    return {"tip": _generic_tip(field_name), "staticTip": None, "source": "generic"}


def _suggestions(field_name: str, value: Any, validation: dict[str, Any]) -> list[dict[str, str]]:
    suggestions: list[dict[str, str]] = []
    if not validation["isValid"] and validation["errors"]:
        suggestions.append({"type": "error", "message": validation["errors"][0]})

    if field_name == "dli" and value in (None, ""):
        suggestions.append({
            "type": "info",
            "message": "You can find your institution's DLI number on their website or in your acceptance letter",
        })

    if field_name == "proofOfFunds":
        amount = parse_amount(value)
        if amount is not None and amount < FUNDS_BUFFER_WARNING_CAD:
            suggestions.append({
                "type": "warning",
                "message": "Consider showing additional funds. IRCC recommends having extra financial buffer.",
            })
    return suggestions


def field_feedback(field_name: str, value: Any, record: Mapping[str, Any] | None = None) -> dict[str, Any]:
    """Live feedback for one field: validation result, tip and suggestions.

    *field_name* is either a tip key (``"dli"``) or a record path
    (``"studyDetails.dliNumber"``).
    """
    path = FIELD_PATHS.get(field_name, field_name)
    result = validate_field(path, value, record)
    errors: list[str] = []
    if result["error"]:
        errors.append(result["error"])
    elif not result["known"] and value in (None, ""):
        errors.append(f"{format_field_name(field_name)} is required")

    validation = {"isValid": not errors, "errors": errors, "warnings": []}
    if field_name == "proofOfFunds":
        tuition = parse_amount(lookup(record, "studyDetails.costs.tuition"))
        if tuition is None:
            validation["warnings"].append("Enter your tuition so the funds check can include it")

    return {
        "path": path,
        "validation": validation,
        "tip": STATIC_TIPS.get(field_name),
        "suggestions": _suggestions(field_name, value, validation),
    }
