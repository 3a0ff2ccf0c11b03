"""Shared fixtures for all tests."""

from __future__ import annotations

import copy
from datetime import date
from unittest.mock import patch

import pytest

import app.rules as rules_mod
from app.record import ApplicationRecord

# Every date-relative rule is evaluated against this day
REFERENCE_DATE = date(2026, 1, 15)

COMPLETE_FORM: dict = {
    "uci": "",
    "serviceLanguage": "English",
    "personalInfo": {
        "familyName": "Smith",
        "givenNames": "John Michael",
        "hasOtherNames": False,
        "otherNames": {"familyName": "", "givenNames": ""},
        "sex": "Male",
        "dateOfBirth": "1995-03-15",
        "placeOfBirth": {"city": "Mumbai", "country": "India"},
        "citizenship": "India",
        "currentResidence": {"country": "India", "status": "Citizen", "other": "", "from": "1995-03-15", "to": ""},
        "previousResidences": [],
        "applyingFrom": {"sameAsCurrent": True, "country": "", "status": "", "other": "", "from": "", "to": ""},
    },
    "maritalInfo": {
        "status": "Single",
        "dateOfMarriage": "",
        "spouse": {"familyName": "", "givenNames": ""},
        "previouslyMarried": False,
        "previousSpouse": {
            "familyName": "", "givenNames": "", "dateOfBirth": "",
            "relationshipType": "", "from": "", "to": "",
        },
    },
    "languageInfo": {
        "nativeLanguage": "Hindi",
        "communicateInEnglishFrench": "English",
        "mostAtEase": "English",
        "languageTest": True,
    },
    "passportInfo": {
        "number": "K1234567",
        "countryOfIssue": "India",
        "issueDate": "2020-01-10",
        "expiryDate": "2030-01-09",
        "taiwanPassport": False,
        "israeliPassport": False,
    },
    "nationalIdInfo": {"hasDocument": False, "documentNumber": "", "countryOfIssue": "", "issueDate": "", "expiryDate": ""},
    "usPRInfo": {"isPermanentResident": False, "uscisNumber": "", "expiryDate": ""},
    "contactInfo": {
        "mailingAddress": {
            "poBox": "", "aptUnit": "4B", "streetNo": "123", "streetName": "Main Street",
            "city": "Mumbai", "country": "India", "provinceState": "Maharashtra",
            "postalCode": "400001", "district": "",
        },
        "residentialSameAsMailing": True,
        "telephone": {"type": "Cellular", "isCanadaUS": False, "countryCode": "91", "number": "9876543210", "ext": ""},
        "alternateTelephone": {"type": "", "isCanadaUS": False, "countryCode": "", "number": "", "ext": ""},
        "fax": {"isCanadaUS": False, "countryCode": "", "number": "", "ext": ""},
        "email": "john.smith@example.com",
    },
    "studyDetails": {
        "schoolName": "University of Toronto",
        "levelOfStudy": "Master's",
        "fieldOfStudy": "Computer Science",
        "programName": "Master of Science in Computer Science",
        "schoolAddress": {"province": "Ontario", "city": "Toronto", "address": "27 King's College Circle"},
        "dliNumber": "O19391173552",
        "studentId": "1008765432",
        "duration": {"from": "2026-09-01", "to": "2028-08-31"},
        "costs": {"tuition": "35000", "roomAndBoard": "12000", "other": "2000"},
        "fundsAvailable": "60000",
        "fundingSource": "family",
        "expensesPaidBy": "Parents",
        "expensesPaidByOther": "",
        "pal": {"documentNumber": "", "expiryDate": ""},
        "caq": {"certificateNumber": "", "expiryDate": ""},
    },
    "educationHistory": {
        "hasPostSecondary": True,
        "highestEducation": {
            "level": "bachelor",
            "from": "2014-09",
            "to": "2018-05",
            "fieldAndLevel": "Bachelor of Engineering, Computer Engineering",
            "schoolName": "University of Mumbai",
            "city": "Mumbai",
            "country": "India",
            "provinceState": "Maharashtra",
        },
    },
    "employmentHistory": [
        {
            "from": "2018-06",
            "to": "2023-12",
            "occupation": "Software Developer",
            "companyName": "Tech Solutions Pvt Ltd",
            "city": "Bangalore",
            "country": "India",
            "provinceState": "Karnataka",
        },
    ],
    "backgroundInfo": {
        "health": {"tuberculosis": False, "physicalMentalDisorder": False, "details": ""},
        "immigration": {"overstayed": False, "refusedVisa": False, "previousApplication": False, "details": ""},
        "criminal": {"hasRecord": False, "details": ""},
        "military": {"served": False, "details": ""},
        "political": {"memberOfParty": False},
        "warCrimes": {"witnessed": False},
    },
}


@pytest.fixture(autouse=True)
def _frozen_today():
    """Pin the validator's notion of today so date rules are deterministic."""
    with patch.object(rules_mod, "_today", lambda: REFERENCE_DATE):
        yield REFERENCE_DATE


@pytest.fixture()
def complete_form() -> dict:
    """A fully valid wizard payload (a fresh deep copy per test)."""
    return copy.deepcopy(COMPLETE_FORM)


@pytest.fixture()
def complete_record(complete_form) -> ApplicationRecord:
    return ApplicationRecord.from_dict(complete_form)


@pytest.fixture()
def minimal_form() -> dict:
    """Only the critical fields the basic form generator needs."""
    return {
        "personalInfo": {
            "familyName": "Garcia",
            "givenNames": "Maria",
            "dateOfBirth": "2001-07-04",
            "sex": "Female",
            "citizenship": "Mexico",
        },
        "passportInfo": {
            "number": "G12345678",
            "countryOfIssue": "Mexico",
            "issueDate": "2022-02-01",
            "expiryDate": "2032-01-31",
        },
        "contactInfo": {"email": "maria@example.com"},
        "studyDetails": {
            "schoolName": "McGill University",
            "dliNumber": "O19359011033",
            "levelOfStudy": "Bachelor's",
            "fieldOfStudy": "Biology",
        },
        "languageInfo": {"nativeLanguage": "Spanish"},
        "maritalInfo": {"status": "Single"},
    }


def set_path(data: dict, path: str, value) -> dict:
    """Set a dotted path in a nested dict (list indices allowed) and return it."""
    node = data
    keys = path.split(".")
    for key in keys[:-1]:
        node = node[int(key)] if isinstance(node, list) else node.setdefault(key, {})
    if isinstance(node, list):
        node[int(keys[-1])] = value
    else:
        node[keys[-1]] = value
    return data


def get_path(data: dict, path: str):
    node = data
    for key in path.split("."):
        if not isinstance(node, dict) or key not in node:
            return None
        node = node[key]
    return node


def make_form_pdf(text_fields: list[str], checkboxes: list[str] = ()) -> bytes:
    """Build a one-page AcroForm PDF with the given widget names."""
    import pymupdf

    doc = pymupdf.open()
    page = doc.new_page()
    y = 50
    for name, kind in [(n, pymupdf.PDF_WIDGET_TYPE_TEXT) for n in text_fields] + [
        (n, pymupdf.PDF_WIDGET_TYPE_CHECKBOX) for n in checkboxes
    ]:
        widget = pymupdf.Widget()
        widget.field_name = name
        widget.field_type = kind
        widget.rect = pymupdf.Rect(50, y, 300 if kind == pymupdf.PDF_WIDGET_TYPE_TEXT else 64, y + 14)
        if kind == pymupdf.PDF_WIDGET_TYPE_TEXT:
            widget.field_value = ""
        page.add_widget(widget)
        y += 24
    data = doc.tobytes()
    doc.close()
    return data


def read_widget_values(pdf_bytes: bytes) -> dict:
    import pymupdf

    doc = pymupdf.open(stream=pdf_bytes, filetype="pdf")
    values = {w.field_name: w.field_value for page in doc for w in (page.widgets() or [])}
    doc.close()
    return values
