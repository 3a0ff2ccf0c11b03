"""Supporting-document checklist derived from an application record.

Part of the Study Permit Forms service.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date

from app.formatting import EDUCATION_LEVEL_LABELS, calendar_age, parse_amount, parse_iso_date, parse_month
from app.record import ApplicationRecord


@dataclass
class ChecklistEntry:
    """A single document the applicant should gather."""

    id: str
    title: str
    description: str
    category: str
    required: bool = True
    tips: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


ENGLISH_SPEAKING_COUNTRIES = frozenset({
    "canada", "usa", "united states", "uk", "united kingdom",
    "australia", "new zealand", "ireland",
})

SPONSORED_FUNDING = frozenset({"family", "sponsor"})
DEGREE_LEVELS = frozenset({"bachelor", "master", "phd"})
POLICE_CERTIFICATE_AGE = 18
WORK_EXPERIENCE_YEARS = 2


# ---------------------------------------------------------------------------
# Entry definitions
# ---------------------------------------------------------------------------

def _application_form() -> ChecklistEntry:
    return ChecklistEntry(
        id="application_form",
        title="IMM 1294 - Application for Study Permit",
        description="Completed and signed application form generated from this system",
        category="Application Forms",
        tips=[
            "Ensure all fields are filled accurately",
            "Sign and date the form",
            "Keep a copy for your records",
        ],
    )


def _acceptance_letter(school_name: str) -> ChecklistEntry:
    return ChecklistEntry(
        id="letter_of_acceptance",
        title="Letter of Acceptance from DLI",
        description=f"Original Letter of Acceptance from {school_name or 'your designated learning institution'}",
        category="Education Documents",
        tips=[
            "Must be from a Designated Learning Institution (DLI)",
            "Must include program details, start date, and duration",
            "Should be signed by an authorized official",
        ],
    )


def _passport() -> ChecklistEntry:
    return ChecklistEntry(
        id="passport",
        title="Valid Passport",
        description="Copy of passport information page showing passport number, issue and expiry dates",
        category="Identity Documents",
        tips=[
            "Passport must be valid for duration of intended stay",
            "Include all pages with stamps or visas",
            "Ensure passport photo is clear and readable",
        ],
    )


def _passport_photos() -> ChecklistEntry:
    return ChecklistEntry(
        id="passport_photo",
        title="Passport-sized Photographs",
        description="2 recent passport-sized photos (35mm x 45mm) taken within last 6 months",
        category="Identity Documents",
        tips=[
            "White or light-colored background",
            "Face must be clearly visible",
            "No hats or sunglasses (unless for religious reasons)",
            "Write name and date of birth on the back",
        ],
    )


def _proof_of_funds(funds: float) -> ChecklistEntry:
    return ChecklistEntry(
        id="proof_of_funds",
        title="Proof of Financial Support",
        description=f"Evidence of CAD ${funds:,.0f} to cover tuition and living expenses",
        category="Financial Documents",
        tips=[
            "Bank statements for past 4 months",
            "Proof of paid tuition fees (if applicable)",
            "Scholarship letters (if applicable)",
            "Must show sufficient funds for first year + CAD $10,000",
        ],
    )


def _sponsor_documents() -> ChecklistEntry:
    return ChecklistEntry(
        id="sponsor_documents",
        title="Sponsor Documents",
        description="Financial documents from your sponsor",
        category="Financial Documents",
        tips=[
            "Sponsor's bank statements (4-6 months)",
            "Proof of relationship to sponsor",
            "Sponsor's employment letter or business proof",
            "Notarized affidavit of support",
        ],
    )


def _scholarship_letter() -> ChecklistEntry:
    return ChecklistEntry(
        id="scholarship_letter",
        title="Scholarship Award Letter",
        description="Official scholarship or financial aid award letter",
        category="Financial Documents",
        tips=[
            "Must be on official letterhead",
            "Include scholarship amount and duration",
            "Specify terms and conditions",
        ],
    )


def _loan_documents() -> ChecklistEntry:
    return ChecklistEntry(
        id="loan_documents",
        title="Education Loan Documentation",
        description="Proof of approved education loan",
        category="Financial Documents",
        tips=[
            "Loan approval letter from bank",
            "Loan amount and repayment terms",
            "Disbursement schedule",
        ],
    )


def _transcripts() -> ChecklistEntry:
    return ChecklistEntry(
        id="transcripts",
        title="Official Academic Transcripts",
        description="Transcripts from all post-secondary institutions attended",
        category="Education Documents",
        tips=[
            "Must be official/sealed transcripts",
            "Include all years of study",
            "Translate if not in English or French (with certified translation)",
        ],
    )


def _degree_certificate(level: str) -> ChecklistEntry:
    return ChecklistEntry(
        id="degree_certificate",
        title="Degree Certificate",
        description=f"Your {EDUCATION_LEVEL_LABELS.get(level, level)} certificate",
        category="Education Documents",
        tips=[
            "Original or certified copy",
            "Translate if not in English or French",
        ],
    )


def _language_test() -> ChecklistEntry:
    return ChecklistEntry(
        id="language_test",
        title="Language Test Results",
        description="IELTS, TOEFL, or other approved language test results",
        category="Language Documents",
        tips=[
            "Test must be taken within last 2 years",
            "Must meet minimum score requirements of your institution",
            "IELTS Academic or TOEFL iBT are most commonly accepted",
        ],
    )


def _study_plan() -> ChecklistEntry:
    return ChecklistEntry(
        id="statement_of_purpose",
        title="Statement of Purpose / Study Plan",
        description="Explanation of why you want to study in Canada and your future plans",
        category="Supporting Documents",
        required=False,
        tips=[
            "Explain your study goals",
            "How this program fits your career plans",
            "Why you chose this institution",
            "Why you will return to your home country after studies",
        ],
    )


def _resume() -> ChecklistEntry:
    return ChecklistEntry(
        id="resume",
        title="Curriculum Vitae (CV)",
        description="Current resume or CV",
        category="Supporting Documents",
        required=False,
        tips=[
            "Include education history",
            "Work experience (if any)",
            "Skills and achievements",
            "Volunteer work or extracurricular activities",
        ],
    )


def _employment_letters() -> ChecklistEntry:
    return ChecklistEntry(
        id="employment_letter",
        title="Employment Letters",
        description="Letters from current and previous employers",
        category="Supporting Documents",
        required=False,
        tips=[
            "On company letterhead",
            "Include job title, duties, and duration",
            "Signed by supervisor or HR",
        ],
    )


def _medical_exam() -> ChecklistEntry:
    return ChecklistEntry(
        id="medical_exam",
        title="Medical Examination",
        description="Upfront medical exam results from panel physician",
        category="Medical Documents",
        required=False,
        tips=[
            "Not always required but recommended for faster processing",
            "Must be done by IRCC-approved panel physician",
            "Valid for 12 months from date of exam",
            "Physician will upload results directly to IRCC",
        ],
    )


def _police_certificate() -> ChecklistEntry:
    return ChecklistEntry(
        id="police_certificate",
        title="Police Certificate",
        description="Police clearance certificate from country of residence",
        category="Background Documents",
        required=False,
        tips=[
            "Required if you lived in a country for 6+ months since age 18",
            "Must be issued within last 6 months",
            "Translated if not in English or French",
        ],
    )


def _digital_photo() -> ChecklistEntry:
    return ChecklistEntry(
        id="digital_photo",
        title="Digital Photo",
        description="Digital photo meeting IRCC specifications for online submission",
        category="Identity Documents",
        tips=[
            "File size: 240 KB or less",
            "Minimum dimensions: 420 x 540 pixels",
            "JPEG format",
            "Clear, recent photo (within 6 months)",
        ],
    )


# ---------------------------------------------------------------------------
# Derivation
# ---------------------------------------------------------------------------

def _years_since_graduation(record: ApplicationRecord, today: date) -> int | None:
    graduated = parse_month(record.education_history.highest_education.to)
    if graduated is None:
        return None
    return today.year - graduated[0]


def derive_checklist(record: ApplicationRecord, today: date | None = None) -> list[ChecklistEntry]:
    """Build the document checklist for *record*.

    Missing answers simply leave their conditional entries out. Required
    entries come first, then entries are ordered by category name.
    """
    today = today or date.today()
    study = record.study_details
    funding = study.funding_source.strip().lower()

    entries = [
        _application_form(),
        _acceptance_letter(study.school_name),
        _passport(),
        _passport_photos(),
        _proof_of_funds(parse_amount(study.funds_available) or 0.0),
    ]

    if funding in SPONSORED_FUNDING:
        entries.append(_sponsor_documents())
    if funding == "scholarship":
        entries.append(_scholarship_letter())
    if funding == "loan":
        entries.append(_loan_documents())

    entries.append(_transcripts())

    level = record.education_history.highest_education.level.strip().lower()
    if level in DEGREE_LEVELS:
        entries.append(_degree_certificate(level))

    if record.personal_info.citizenship.strip().lower() not in ENGLISH_SPEAKING_COUNTRIES:
        entries.append(_language_test())

    entries.extend([_study_plan(), _resume()])

    years = _years_since_graduation(record, today)
    if years is not None and years >= WORK_EXPERIENCE_YEARS:
        entries.append(_employment_letters())

    entries.append(_medical_exam())

    birth = parse_iso_date(record.personal_info.date_of_birth)
    if birth is not None and calendar_age(birth, today) >= POLICE_CERTIFICATE_AGE:
        entries.append(_police_certificate())

    entries.append(_digital_photo())

    # sorted() is stable, so definition order is kept within a category
    return sorted(entries, key=lambda e: (not e.required, e.category))


def checklist_summary(entries: list[ChecklistEntry]) -> dict:
    """Totals plus a per-category required/optional breakdown."""
    breakdown: dict[str, dict[str, int]] = {}
    for entry in entries:
        counts = breakdown.setdefault(entry.category, {"required": 0, "optional": 0, "total": 0})
        counts["total"] += 1
        counts["required" if entry.required else "optional"] += 1

    required = sum(1 for e in entries if e.required)
    return {
        "totalDocuments": len(entries),
        "requiredDocuments": required,
        "optionalDocuments": len(entries) - required,
        "categories": len(breakdown),
        "categoryBreakdown": breakdown,
    }
