"""Paginated, render-target-agnostic layout of an IMM 1294 application.

The engine walks the record section by section with a running cursor that
starts at the top margin and moves down by each block's fixed height. A
block that would cross the bottom margin opens a new page; continuation
pages repeat an applicant banner. The resulting ``PageModel`` is a list of
positioned, styled text blocks that the PDF, XFDF and HTML adapters share.

Coordinates follow the PDF convention: origin at the bottom-left corner, y
decreasing as content moves down the page.
"""

from __future__ import annotations

import logging
import textwrap
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Iterator

from app.errors import RenderError
from app.formatting import (
    EDUCATION_LEVEL_LABELS,
    FUNDING_SOURCE_LABELS,
    format_bool,
    format_choice,
    format_currency,
    format_date,
    format_month,
)
from app.record import ApplicationRecord

logger = logging.getLogger(__name__)

# US Letter dimensions in points
PAGE_WIDTH = 612
PAGE_HEIGHT = 792
MARGIN_LEFT = 50
MARGIN_RIGHT = 562
MARGIN_TOP = 742
MARGIN_BOTTOM = 60
CONTENT_WIDTH = MARGIN_RIGHT - MARGIN_LEFT

MAX_VALUE_LINES = 40
CELL_GAP = 8
BLOCK_SPACING = 6
HEADER_HEIGHT = 22


@dataclass(frozen=True)
class TextStyle:
    font: str
    size: float
    color: tuple[float, float, float] = (0, 0, 0)
    leading: float = 10

    @property
    def bold(self) -> bool:
        return self.font == "hebo"


LABEL_STYLE = TextStyle("helv", 8, leading=10)
VALUE_STYLE = TextStyle("helv", 9, color=(0, 0.2, 0.5), leading=11)
HEADING_STYLE = TextStyle("hebo", 11, leading=13)
TITLE_STYLE = TextStyle("hebo", 14, leading=16)
CHROME_STYLE = TextStyle("helv", 9, leading=11)
CHROME_BOLD_STYLE = TextStyle("hebo", 9, leading=11)
HEADER_FILL = (0.85, 0.85, 0.85)

FOOTER_LINES = (
    "This form is for information purposes only and does not constitute legal advice.",
    "For official IMM 1294 form, visit: canada.ca/study-permit",
)

SECTION_TITLES: dict[str, str] = {
    "personal": "PERSONAL DETAILS",
    "marital": "MARITAL STATUS",
    "language": "LANGUAGES",
    "passport": "PASSPORT",
    "national_id": "NATIONAL IDENTITY DOCUMENT",
    "us_pr": "US PERMANENT RESIDENT CARD",
    "contact": "CONTACT INFORMATION",
    "study": "DETAILS OF INTENDED STUDY IN CANADA",
    "education": "EDUCATION",
    "employment": "EMPLOYMENT",
    "background": "BACKGROUND INFORMATION",
}

# Sections grouped onto the printed form's pages; each group starts a page.
FORM_PAGES: tuple[tuple[str, ...], ...] = (
    ("personal",),
    ("marital",),
    ("language", "passport", "national_id", "us_pr"),
    ("contact",),
    ("study",),
    ("education", "employment"),
    ("background",),
)

ALL_SECTIONS = frozenset(SECTION_TITLES)
BASIC_SECTIONS = frozenset({"personal", "marital", "language", "passport", "contact", "study", "education"})

OVERFLOW_MODES = ("paginate", "truncate")


# ---------------------------------------------------------------------------
# Page model
# ---------------------------------------------------------------------------

@dataclass
class Block:
    """One positioned piece of text.

    ``kind`` is one of header, field, text, banner or chrome. Field and
    banner blocks carry a ``value`` drawn at (``value_x``, ``value_y``).
    ``y`` is the first baseline; ``top`` and ``height`` bound the block.
    """

    kind: str
    x: float
    y: float
    text: str = ""
    style: TextStyle = LABEL_STYLE
    value: str | None = None
    value_x: float | None = None
    value_y: float | None = None
    value_style: TextStyle = VALUE_STYLE
    path: str = ""
    section: str = ""
    top: float = 0
    height: float = 0
    background: tuple[float, float, float, float] | None = None  # x, y, width, height
    background_color: tuple[float, float, float] = HEADER_FILL

    @property
    def bottom(self) -> float:
        return self.top - self.height


@dataclass
class Page:
    number: int
    blocks: list[Block] = field(default_factory=list)


@dataclass
class PageModel:
    width: float = PAGE_WIDTH
    height: float = PAGE_HEIGHT
    margins: dict[str, float] = field(default_factory=lambda: {
        "left": MARGIN_LEFT, "right": MARGIN_RIGHT, "top": MARGIN_TOP, "bottom": MARGIN_BOTTOM,
    })
    pages: list[Page] = field(default_factory=list)
    truncated: dict[str, int] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    @property
    def page_count(self) -> int:
        return len(self.pages)

    @property
    def is_truncated(self) -> bool:
        return bool(self.truncated)

    def blocks(self, *kinds: str) -> Iterator[Block]:
        """Blocks in reading order, optionally filtered by kind."""
        for page in self.pages:
            for block in page.blocks:
                if not kinds or block.kind in kinds:
                    yield block

    def fields(self) -> Iterator[Block]:
        return self.blocks("field")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class LayoutOptions:
    overflow: str = "paginate"
    max_previous_residences: int | None = None
    max_employment_rows: int | None = None
    sections: frozenset[str] | None = None

    def __post_init__(self) -> None:
        if self.overflow not in OVERFLOW_MODES:
            raise ValueError(f"overflow must be one of {OVERFLOW_MODES}, got {self.overflow!r}")
        if self.sections is not None:
            unknown = set(self.sections) - ALL_SECTIONS
            if unknown:
                raise ValueError(f"Unknown layout sections: {', '.join(sorted(unknown))}")

    @classmethod
    def from_settings(cls, settings: Any, **overrides: Any) -> LayoutOptions:
        values = {
            "overflow": settings.layout_overflow,
            "max_previous_residences": settings.max_previous_residences,
            "max_employment_rows": settings.max_employment_rows,
        }
        values.update(overrides)
        return cls(**values)

    def includes(self, section: str) -> bool:
        return self.sections is None or section in self.sections


# ---------------------------------------------------------------------------
# Cells and value formatting
# ---------------------------------------------------------------------------

Formatter = Callable[[Any, str], str]


def _text(value: Any, path: str) -> str:
    return "" if value in (None, "") else str(value)


def _yes_no(value: Any, path: str) -> str:
    return format_bool(value)


def _funding(value: Any, path: str) -> str:
    return format_choice(value, FUNDING_SOURCE_LABELS)


def _education_level(value: Any, path: str) -> str:
    return format_choice(value, EDUCATION_LEVEL_LABELS)


@dataclass(frozen=True)
class Cell:
    label: str
    path: str
    raw: Any
    formatter: Formatter = _text


def _wrap(text: str, width: float, style: TextStyle) -> list[str]:
    # Helvetica averages roughly half an em per character
    chars = max(1, int(width / (style.size * 0.5)))
    lines: list[str] = []
    for paragraph in text.split("\n"):
        lines.extend(textwrap.wrap(paragraph, chars) or [""])
    return lines or [""]


# ---------------------------------------------------------------------------
# Composer
# ---------------------------------------------------------------------------

class _Composer:
    """Owns the cursor and the page list while a record is laid out."""

    def __init__(self, record: ApplicationRecord, options: LayoutOptions) -> None:
        self.record = record
        self.options = options
        self.model = PageModel()
        self.page: Page | None = None
        self.y = MARGIN_TOP
        self.section = ""
        self._pending_header: str | None = None
        self._content_on_page = False
        self.new_page()

    # -- pages ----------------------------------------------------------------

    def new_page(self) -> None:
        self.page = Page(number=len(self.model.pages) + 1)
        self.model.pages.append(self.page)
        self.y = MARGIN_TOP
        self._content_on_page = False
        if self.page.number > 1:
            self._banner()

    def start_form_page(self) -> None:
        if self._content_on_page:
            self.new_page()

    def fits(self, height: float) -> bool:
        return self.y - height >= MARGIN_BOTTOM

    def ensure(self, height: float) -> None:
        """Make room for a block of *height*, keeping a pending header with it."""
        extra = HEADER_HEIGHT if self._pending_header else 0
        if not self.fits(height + extra):
            self.new_page()
        if self._pending_header:
            self._place_header(self._pending_header)

    def _emit(self, block: Block, content: bool = True) -> None:
        self.page.blocks.append(block)
        if content:
            self._content_on_page = True

    def _banner(self) -> None:
        personal = self.record.personal_info
        baseline = self.y - CHROME_BOLD_STYLE.size
        for x, label, value, value_x, path in (
            (MARGIN_LEFT, "Applicant Name (Family, Given):", self.record.applicant_name, MARGIN_LEFT + 150,
             "personalInfo.familyName"),
            (MARGIN_LEFT + 330, "Date of Birth:", self._format(format_date, personal.date_of_birth,
             "personalInfo.dateOfBirth"), MARGIN_LEFT + 400, "personalInfo.dateOfBirth"),
        ):
            self._emit(Block(
                kind="banner", x=x, y=baseline, text=label, style=CHROME_BOLD_STYLE,
                value=value, value_x=value_x, value_y=baseline, path=path,
                top=self.y, height=24,
            ), content=False)
        self.y -= 24

    # -- value formatting ------------------------------------------------------

    def _format(self, formatter: Formatter, raw: Any, path: str) -> str:
        try:
            return formatter(raw, path)
        except RenderError as exc:
            message = f"{path}: {exc.reason or 'malformed value'}, printed as entered"
            self.model.warnings.append(message)
            logger.warning("Render fallback for %s", path)
            return "" if raw is None else str(raw)

    # -- blocks ---------------------------------------------------------------

    def title(self) -> None:
        self._emit(Block(kind="chrome", x=MARGIN_LEFT, y=self.y, text="Government of Canada",
                         style=HEADING_STYLE, top=self.y, height=12), content=False)
        self._emit(Block(kind="chrome", x=MARGIN_RIGHT - 170, y=self.y, text="PROTECTED WHEN COMPLETED - B",
                         style=CHROME_BOLD_STYLE, top=self.y, height=12), content=False)
        self.y -= 30
        for line in ("APPLICATION FOR STUDY PERMIT", "MADE OUTSIDE OF CANADA"):
            self._emit(Block(kind="text", x=MARGIN_LEFT, y=self.y, text=line, style=TITLE_STYLE,
                             top=self.y + TITLE_STYLE.size, height=TITLE_STYLE.leading), content=False)
            self.y -= TITLE_STYLE.leading
        self.y -= 12

    def header(self, section: str) -> None:
        # Placed together with the section's first block, never alone at a page end
        self.section = section
        self._pending_header = section

    def _place_header(self, section: str) -> None:
        self._pending_header = None
        baseline = self.y - 12
        self._emit(Block(
            kind="header", x=MARGIN_LEFT, y=baseline, text=SECTION_TITLES[section],
            style=HEADING_STYLE, section=section, top=self.y, height=HEADER_HEIGHT,
            background=(MARGIN_LEFT - 5, baseline - 4, CONTENT_WIDTH, 16),
        ))
        self.y -= HEADER_HEIGHT

    def note(self, text: str) -> None:
        lines = _wrap(text, CONTENT_WIDTH, LABEL_STYLE)
        height = len(lines) * LABEL_STYLE.leading + 4
        self.ensure(height)
        self._emit(Block(
            kind="text", x=MARGIN_LEFT, y=self.y - LABEL_STYLE.size, text="\n".join(lines),
            section=self.section, top=self.y, height=height,
        ))
        self.y -= height

    def question(self, label: str, path: str, raw: Any) -> None:
        value_x = MARGIN_RIGHT - 50
        lines = _wrap(label, value_x - MARGIN_LEFT - CELL_GAP, LABEL_STYLE)
        height = len(lines) * LABEL_STYLE.leading + BLOCK_SPACING
        self.ensure(height)
        baseline = self.y - LABEL_STYLE.size
        self._emit(Block(
            kind="field", x=MARGIN_LEFT, y=baseline, text="\n".join(lines),
            value=self._format(_yes_no, raw, path), value_x=value_x, value_y=baseline,
            path=path, section=self.section, top=self.y, height=height,
        ))
        self.y -= height

    def _measure_row(self, cells: list[Cell]) -> tuple[list[tuple[Cell, list[str], list[str]]], float]:
        width = CONTENT_WIDTH / len(cells)
        measured = []
        height = 0.0
        for cell in cells:
            label_lines = _wrap(cell.label, width - CELL_GAP, LABEL_STYLE)
            value = self._format(cell.formatter, cell.raw, cell.path)
            value_lines = _wrap(value, width - CELL_GAP, VALUE_STYLE)
            if len(value_lines) > MAX_VALUE_LINES:
                value_lines = value_lines[:MAX_VALUE_LINES - 1] + ["..."]
                self.model.warnings.append(f"{cell.path}: value shortened to fit the page")
            measured.append((cell, label_lines, value_lines))
            cell_height = len(label_lines) * LABEL_STYLE.leading + len(value_lines) * VALUE_STYLE.leading
            height = max(height, cell_height + BLOCK_SPACING)
        return measured, height

    def _place_row(self, measured: list[tuple[Cell, list[str], list[str]]], height: float) -> None:
        width = CONTENT_WIDTH / len(measured)
        for i, (cell, label_lines, value_lines) in enumerate(measured):
            x = MARGIN_LEFT + i * width
            label_y = self.y - LABEL_STYLE.size
            value_y = self.y - len(label_lines) * LABEL_STYLE.leading - VALUE_STYLE.size
            self._emit(Block(
                kind="field", x=x, y=label_y, text="\n".join(label_lines),
                value="\n".join(value_lines), value_x=x, value_y=value_y,
                path=cell.path, section=self.section, top=self.y, height=height,
            ))
        self.y -= height

    def row(self, *cells: Cell) -> None:
        measured, height = self._measure_row(list(cells))
        self.ensure(height)
        self._place_row(measured, height)

    def repeated(self, list_path: str, groups: list[list[list[Cell]]], limit: int | None) -> None:
        """Lay out one row-group per list item.

        Items past *limit* are dropped. In truncate mode, items are also
        dropped once the current page cannot hold the next one. A group
        taller than a whole page is split between its rows.
        """
        dropped = 0
        if limit is not None and len(groups) > limit:
            dropped = len(groups) - limit
            groups = groups[:limit]

        for index, rows in enumerate(groups):
            measured_rows = [self._measure_row(cells) for cells in rows]
            total = sum(h for _, h in measured_rows)
            if self._pending_header:
                total += HEADER_HEIGHT
            if not self.fits(total):
                if self.options.overflow == "truncate":
                    dropped += len(groups) - index
                    break
                self.new_page()
            for measured, height in measured_rows:
                self.ensure(height)
                self._place_row(measured, height)

        if dropped:
            self.model.truncated[list_path] = dropped
            logger.warning("Layout dropped %d row(s) of %s", dropped, list_path)

    def footer(self) -> None:
        height = len(FOOTER_LINES) * CHROME_STYLE.leading + 10
        self.ensure(height)
        self.y -= 10
        for line in FOOTER_LINES:
            self._emit(Block(kind="chrome", x=MARGIN_LEFT, y=self.y - CHROME_STYLE.size, text=line,
                             style=CHROME_STYLE, top=self.y, height=CHROME_STYLE.leading), content=False)
            self.y -= CHROME_STYLE.leading

    def number_pages(self) -> None:
        total = len(self.model.pages)
        for page in self.model.pages:
            page.blocks.append(Block(
                kind="chrome", x=MARGIN_RIGHT - 70, y=PAGE_HEIGHT - 30,
                text=f"PAGE {page.number} OF {total}", style=CHROME_STYLE,
                top=PAGE_HEIGHT - 30 + CHROME_STYLE.size, height=CHROME_STYLE.leading,
            ))


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------

def _residence_cells(prefix: str, path: str, residence: Any) -> list[Cell]:
    return [
        Cell(f"{prefix}Country or Territory", f"{path}.country", residence.country),
        Cell("Status", f"{path}.status", residence.status),
        Cell("Other", f"{path}.other", residence.other),
        Cell("From", f"{path}.from", residence.from_, format_date),
        Cell("To", f"{path}.to", residence.to, format_date),
    ]


def _personal(c: _Composer, r: ApplicationRecord) -> None:
    p = r.personal_info
    c.header("personal")
    c.row(Cell("UCI", "uci", r.uci), Cell("I want service in", "serviceLanguage", r.service_language))
    c.row(
        Cell("1. Family name (as shown on passport or travel document)", "personalInfo.familyName", p.family_name),
        Cell("Given name(s) (as shown on passport or travel document)", "personalInfo.givenNames", p.given_names),
    )
    c.question("2. a) Have you ever used any other name (e.g. nickname, maiden name, alias)?",
               "personalInfo.hasOtherNames", p.has_other_names)
    if p.has_other_names:
        c.row(
            Cell("b) Other family name", "personalInfo.otherNames.familyName", p.other_names.family_name),
            Cell("Other given name(s)", "personalInfo.otherNames.givenNames", p.other_names.given_names),
        )
    c.row(
        Cell("3. Sex", "personalInfo.sex", p.sex),
        Cell("4. Date of birth", "personalInfo.dateOfBirth", p.date_of_birth, format_date),
    )
    c.row(
        Cell("5. Place of birth: City/Town", "personalInfo.placeOfBirth.city", p.place_of_birth.city),
        Cell("Country or Territory", "personalInfo.placeOfBirth.country", p.place_of_birth.country),
    )
    c.row(Cell("6. Citizenship", "personalInfo.citizenship", p.citizenship))
    c.row(*_residence_cells("7. Current residence: ", "personalInfo.currentResidence", p.current_residence))
    c.note("8. Previous countries or territories of residence: during the past five years have you lived in "
           "any country or territory other than your country of citizenship or current country of residence "
           "for more than six months?")
    groups = [
        [_residence_cells(f"Residence {i + 1}: ", f"personalInfo.previousResidences.{i}", res)]
        for i, res in enumerate(p.previous_residences)
    ]
    c.repeated("personalInfo.previousResidences", groups, c.options.max_previous_residences)
    c.question("9. Are you applying from your current country or territory of residence?",
               "personalInfo.applyingFrom.sameAsCurrent", p.applying_from.same_as_current)
    if not p.applying_from.same_as_current:
        c.row(*_residence_cells("Applying from: ", "personalInfo.applyingFrom", p.applying_from))


def _marital(c: _Composer, r: ApplicationRecord) -> None:
    m = r.marital_info
    c.header("marital")
    c.row(Cell("10. a) Your current marital status", "maritalInfo.status", m.status))
    if m.status in ("Married", "Common-law"):
        c.row(Cell("b) Date you were married or entered into the common-law relationship",
                   "maritalInfo.dateOfMarriage", m.date_of_marriage, format_date))
        c.row(
            Cell("c) Spouse/Common-law partner family name", "maritalInfo.spouse.familyName", m.spouse.family_name),
            Cell("Given name(s)", "maritalInfo.spouse.givenNames", m.spouse.given_names),
        )
    c.question("11. a) Have you previously been married or in a common-law relationship?",
               "maritalInfo.previouslyMarried", m.previously_married)
    if m.previously_married:
        ps = m.previous_spouse
        c.row(
            Cell("b) Previous spouse family name", "maritalInfo.previousSpouse.familyName", ps.family_name),
            Cell("Given name(s)", "maritalInfo.previousSpouse.givenNames", ps.given_names),
            Cell("Date of birth", "maritalInfo.previousSpouse.dateOfBirth", ps.date_of_birth, format_date),
        )
        c.row(
            Cell("Type of relationship", "maritalInfo.previousSpouse.relationshipType", ps.relationship_type),
            Cell("From", "maritalInfo.previousSpouse.from", ps.from_, format_date),
            Cell("To", "maritalInfo.previousSpouse.to", ps.to, format_date),
        )


def _language(c: _Composer, r: ApplicationRecord) -> None:
    lang = r.language_info
    c.header("language")
    c.row(
        Cell("12. a) Native language/mother tongue", "languageInfo.nativeLanguage", lang.native_language),
        Cell("b) Are you able to communicate in English and/or French?",
             "languageInfo.communicateInEnglishFrench", lang.communicate_in_english_french),
    )
    c.row(Cell("c) In which language are you most at ease?", "languageInfo.mostAtEase", lang.most_at_ease))
    c.question("d) Have you taken a test from a designated testing agency to assess your proficiency "
               "in English or French?", "languageInfo.languageTest", lang.language_test)


def _passport(c: _Composer, r: ApplicationRecord) -> None:
    pp = r.passport_info
    c.header("passport")
    c.row(
        Cell("13. a) Passport number", "passportInfo.number", pp.number),
        Cell("b) Country or territory of issue", "passportInfo.countryOfIssue", pp.country_of_issue),
    )
    c.row(
        Cell("c) Issue date", "passportInfo.issueDate", pp.issue_date, format_date),
        Cell("d) Expiry date", "passportInfo.expiryDate", pp.expiry_date, format_date),
    )
    c.question("e) Will you use a passport issued by the Ministry of Foreign Affairs in Taiwan that "
               "includes your personal identification number?", "passportInfo.taiwanPassport", pp.taiwan_passport)
    c.question("f) Will you use a National Israeli passport?", "passportInfo.israeliPassport", pp.israeli_passport)


def _national_id(c: _Composer, r: ApplicationRecord) -> None:
    nid = r.national_id_info
    c.header("national_id")
    c.question("14. a) Do you have a national identity document?", "nationalIdInfo.hasDocument", nid.has_document)
    if nid.has_document:
        c.row(
            Cell("b) Document number", "nationalIdInfo.documentNumber", nid.document_number),
            Cell("Country or territory of issue", "nationalIdInfo.countryOfIssue", nid.country_of_issue),
        )
        c.row(
            Cell("Issue date", "nationalIdInfo.issueDate", nid.issue_date, format_date),
            Cell("Expiry date", "nationalIdInfo.expiryDate", nid.expiry_date, format_date),
        )


def _us_pr(c: _Composer, r: ApplicationRecord) -> None:
    pr = r.us_pr_info
    c.header("us_pr")
    c.question("15. a) Are you a lawful permanent resident of the United States with a valid alien "
               "registration card (green card)?", "usPRInfo.isPermanentResident", pr.is_permanent_resident)
    if pr.is_permanent_resident:
        c.row(
            Cell("b) Document number (USCIS)", "usPRInfo.uscisNumber", pr.uscis_number),
            Cell("Expiry date", "usPRInfo.expiryDate", pr.expiry_date, format_date),
        )


def _address_rows(c: _Composer, path: str, address: Any, with_po_box: bool) -> None:
    first = [
        Cell("Apt/Unit", f"{path}.aptUnit", address.apt_unit),
        Cell("Street no.", f"{path}.streetNo", address.street_no),
        Cell("Street name", f"{path}.streetName", address.street_name),
    ]
    if with_po_box:
        first.insert(0, Cell("P.O. box", f"{path}.poBox", address.po_box))
    c.row(*first)
    c.row(
        Cell("City/Town", f"{path}.city", address.city),
        Cell("Country or Territory", f"{path}.country", address.country),
        Cell("Province/State", f"{path}.provinceState", address.province_state),
        Cell("Postal code", f"{path}.postalCode", address.postal_code),
        Cell("District", f"{path}.district", address.district),
    )


def _phone_row(c: _Composer, label: str, path: str, phone: Any, with_type: bool) -> None:
    cells = [
        Cell("Canada/US", f"{path}.isCanadaUS", phone.is_canada_us, _yes_no),
        Cell("Country code", f"{path}.countryCode", phone.country_code),
        Cell("No.", f"{path}.number", phone.number),
        Cell("Ext.", f"{path}.ext", phone.ext),
    ]
    if with_type:
        cells.insert(0, Cell(f"{label}: Type", f"{path}.type", phone.type))
    else:
        cells[0] = Cell(f"{label}: Canada/US", f"{path}.isCanadaUS", phone.is_canada_us, _yes_no)
    c.row(*cells)


def _contact(c: _Composer, r: ApplicationRecord) -> None:
    ci = r.contact_info
    c.header("contact")
    c.note("16. Current mailing address")
    _address_rows(c, "contactInfo.mailingAddress", ci.mailing_address, with_po_box=True)
    c.question("17. Is your residential address the same as your mailing address?",
               "contactInfo.residentialSameAsMailing", ci.residential_same_as_mailing)
    if not ci.residential_same_as_mailing:
        _address_rows(c, "contactInfo.residentialAddress", ci.residential_address, with_po_box=False)
    _phone_row(c, "18. Telephone no.", "contactInfo.telephone", ci.telephone, with_type=True)
    if ci.alternate_telephone.number:
        _phone_row(c, "Alternate telephone no.", "contactInfo.alternateTelephone", ci.alternate_telephone,
                   with_type=True)
    if ci.fax.number:
        _phone_row(c, "19. Fax no.", "contactInfo.fax", ci.fax, with_type=False)
    c.row(Cell("20. Email address", "contactInfo.email", ci.email))


def _study(c: _Composer, r: ApplicationRecord) -> None:
    s = r.study_details
    c.header("study")
    c.row(
        Cell("21. a) Name of school", "studyDetails.schoolName", s.school_name),
        Cell("b) Level of study", "studyDetails.levelOfStudy", s.level_of_study),
    )
    c.row(
        Cell("c) Field of study", "studyDetails.fieldOfStudy", s.field_of_study),
        Cell("Program name", "studyDetails.programName", s.program_name),
    )
    c.row(
        Cell("d) School address: Province", "studyDetails.schoolAddress.province", s.school_address.province),
        Cell("City/Town", "studyDetails.schoolAddress.city", s.school_address.city),
        Cell("Address", "studyDetails.schoolAddress.address", s.school_address.address),
    )
    c.row(
        Cell("e) Designated learning institution (DLI) number", "studyDetails.dliNumber", s.dli_number),
        Cell("Student ID", "studyDetails.studentId", s.student_id),
    )
    c.row(
        Cell("f) Duration of study: From", "studyDetails.duration.from", s.duration.from_, format_date),
        Cell("To", "studyDetails.duration.to", s.duration.to, format_date),
    )
    c.row(
        Cell("g) Cost of studies: Tuition", "studyDetails.costs.tuition", s.costs.tuition, format_currency),
        Cell("Room and board", "studyDetails.costs.roomAndBoard", s.costs.room_and_board, format_currency),
        Cell("Other", "studyDetails.costs.other", s.costs.other, format_currency),
    )
    c.row(
        Cell("h) Funds available for my stay", "studyDetails.fundsAvailable", s.funds_available, format_currency),
        Cell("Funding source", "studyDetails.fundingSource", s.funding_source, _funding),
        Cell("i) My expenses will be paid by", "studyDetails.expensesPaidBy", s.expenses_paid_by),
    )
    if s.expenses_paid_by.strip().lower() == "other":
        c.row(Cell("Other (specify)", "studyDetails.expensesPaidByOther", s.expenses_paid_by_other))
    c.row(
        Cell("j) Provincial attestation letter (PAL) number", "studyDetails.pal.documentNumber",
             s.pal.document_number),
        Cell("PAL expiry date", "studyDetails.pal.expiryDate", s.pal.expiry_date, format_date),
    )
    if s.school_address.province.strip().lower() in ("quebec", "québec", "qc"):
        c.row(
            Cell("k) Quebec acceptance certificate (CAQ) number", "studyDetails.caq.certificateNumber",
                 s.caq.certificate_number),
            Cell("CAQ expiry date", "studyDetails.caq.expiryDate", s.caq.expiry_date, format_date),
        )


def _education(c: _Composer, r: ApplicationRecord) -> None:
    ed = r.education_history
    he = ed.highest_education
    path = "educationHistory.highestEducation"
    c.header("education")
    c.question("22. Have you had any post-secondary education (including university, college or "
               "apprenticeship training)?", "educationHistory.hasPostSecondary", ed.has_post_secondary)
    if ed.has_post_secondary:
        c.row(
            Cell("Highest level", f"{path}.level", he.level, _education_level),
            Cell("From (YYYY-MM)", f"{path}.from", he.from_, format_month),
            Cell("To (YYYY-MM)", f"{path}.to", he.to, format_month),
        )
        c.row(
            Cell("Field of study and level", f"{path}.fieldAndLevel", he.field_and_level),
            Cell("Name of school/facility", f"{path}.schoolName", he.school_name),
        )
        c.row(
            Cell("City/Town", f"{path}.city", he.city),
            Cell("Country or Territory", f"{path}.country", he.country),
            Cell("Province/State", f"{path}.provinceState", he.province_state),
        )


def _employment(c: _Composer, r: ApplicationRecord) -> None:
    c.header("employment")
    c.note("23. Provide details of your employment history for the past 10 years. If retired or "
           "unemployed, indicate this in the occupation field.")
    groups = []
    for i, job in enumerate(r.employment_history):
        path = f"employmentHistory.{i}"
        groups.append([
            [
                Cell(f"Position {i + 1}: From", f"{path}.from", job.from_, format_month),
                Cell("To", f"{path}.to", job.to, format_month),
                Cell("Occupation", f"{path}.occupation", job.occupation),
                Cell("Company/Employer", f"{path}.companyName", job.company_name),
            ],
            [
                Cell("City/Town", f"{path}.city", job.city),
                Cell("Country or Territory", f"{path}.country", job.country),
                Cell("Province/State", f"{path}.provinceState", job.province_state),
            ],
        ])
    c.repeated("employmentHistory", groups, c.options.max_employment_rows)


def _background(c: _Composer, r: ApplicationRecord) -> None:
    b = r.background_info
    c.header("background")
    c.question("24. a) Within the past two years, have you or a family member ever had tuberculosis of "
               "the lungs or been in close contact with a person with tuberculosis?",
               "backgroundInfo.health.tuberculosis", b.health.tuberculosis)
    c.question("b) Do you have any physical or mental disorder that would require social and/or health "
               "services during your stay in Canada?",
               "backgroundInfo.health.physicalMentalDisorder", b.health.physical_mental_disorder)
    if b.health.tuberculosis or b.health.physical_mental_disorder:
        c.row(Cell("Details", "backgroundInfo.health.details", b.health.details))
    c.question("25. a) Have you ever remained beyond the validity of your status, attended school "
               "without authorization or worked without authorization in Canada?",
               "backgroundInfo.immigration.overstayed", b.immigration.overstayed)
    c.question("b) Have you ever been refused a visa or permit, denied entry or ordered to leave "
               "Canada or any other country or territory?",
               "backgroundInfo.immigration.refusedVisa", b.immigration.refused_visa)
    c.question("c) Have you previously applied to enter or remain in Canada?",
               "backgroundInfo.immigration.previousApplication", b.immigration.previous_application)
    if b.immigration.overstayed or b.immigration.refused_visa or b.immigration.previous_application:
        c.row(Cell("Details", "backgroundInfo.immigration.details", b.immigration.details))
    c.question("26. Have you ever committed, been arrested for, been charged with or convicted of any "
               "criminal offence in any country or territory?",
               "backgroundInfo.criminal.hasRecord", b.criminal.has_record)
    if b.criminal.has_record:
        c.row(Cell("Details", "backgroundInfo.criminal.details", b.criminal.details))
    c.question("27. Did you serve in any military, militia, or civil defence unit or serve in a security "
               "organization or police force?", "backgroundInfo.military.served", b.military.served)
    if b.military.served:
        c.row(Cell("Dates of service and countries or territories where you served",
                   "backgroundInfo.military.details", b.military.details))
    c.question("28. Are you, or have you ever been a member or associated with any political party, or "
               "other group or organization which has engaged in or advocated violence?",
               "backgroundInfo.political.memberOfParty", b.political.member_of_party)
    c.question("29. Have you ever witnessed or participated in the ill treatment of prisoners or "
               "civilians, looting or desecration of religious buildings?",
               "backgroundInfo.warCrimes.witnessed", b.war_crimes.witnessed)


_SECTION_BUILDERS: dict[str, Callable[[_Composer, ApplicationRecord], None]] = {
    "personal": _personal,
    "marital": _marital,
    "language": _language,
    "passport": _passport,
    "national_id": _national_id,
    "us_pr": _us_pr,
    "contact": _contact,
    "study": _study,
    "education": _education,
    "employment": _employment,
    "background": _background,
}


def layout(record: ApplicationRecord, options: LayoutOptions | None = None) -> PageModel:
    """Lay *record* out into fixed-size pages."""
    options = options or LayoutOptions()
    composer = _Composer(record, options)
    composer.title()
    for group in FORM_PAGES:
        selected = [name for name in group if options.includes(name)]
        if not selected:
            continue
        composer.start_form_page()
        for name in selected:
            _SECTION_BUILDERS[name](composer, record)
    composer.footer()
    composer.number_pages()
    return composer.model
