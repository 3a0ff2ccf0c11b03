"""Tests for study-permit/app/validator.py and the rule predicates."""

from __future__ import annotations

from datetime import timedelta

import pytest

from app.formatting import add_months
from app.record import ApplicationRecord
from app.rules import COMPLETE_RULES, MINIMAL_RULES, FieldRule, iter_rule_paths
from app.validator import validate, validate_field, validate_minimal
from conftest import REFERENCE_DATE, get_path, set_path

DLI_ERROR = 'DLI number must start with "O" followed by 9-11 digits'
PASSPORT_ERROR = "Passport must be valid for at least 6 months from today"
FUNDS_ERROR = "Available funds must cover tuition plus CAD $10,000 for living expenses"


def _error_at(report, path: str):
    return get_path(report.errors, path)


# ── Whole-record validation ──────────────────────────────────────────────


class TestValidate:
    def test_complete_record_is_valid(self, complete_form):
        report = validate(complete_form)
        assert report.is_valid, report.errors
        assert report.errors == {}
        assert report.summary["invalidFields"] == 0
        assert report.summary["validFields"] == report.summary["totalFields"]

    def test_accepts_typed_record(self, complete_record):
        assert validate(complete_record).is_valid

    def test_idempotent(self, complete_form):
        set_path(complete_form, "contactInfo.email", "not-an-email")
        assert validate(complete_form) == validate(complete_form)

    def test_collects_every_failure(self, complete_form):
        set_path(complete_form, "studyDetails.dliNumber", "123456789")
        set_path(complete_form, "contactInfo.email", "john@")
        set_path(complete_form, "personalInfo.sex", "M")
        report = validate(complete_form)
        assert not report.is_valid
        assert _error_at(report, "studyDetails.dliNumber") == DLI_ERROR
        assert _error_at(report, "contactInfo.email") == "Please enter a valid email address"
        assert _error_at(report, "personalInfo.sex") == "Please select your sex"
        assert report.summary["invalidFields"] == 3

    def test_section_summary(self, complete_form):
        set_path(complete_form, "passportInfo.number", "k12")
        sections = validate(complete_form).summary["sections"]
        assert sections["passportInfo"]["isValid"] is False
        assert sections["passportInfo"]["errorCount"] == 1
        assert sections["studyDetails"]["isValid"] is True
        assert sections["general"]["fieldCount"] == 2

    def test_empty_record_reports_required_fields(self):
        report = validate({})
        assert _error_at(report, "personalInfo.familyName")
        assert _error_at(report, "serviceLanguage") == "Service language must be English or French"
        # optional leaves stay quiet
        assert _error_at(report, "uci") is None

    def test_wrong_type_fails(self, complete_form):
        set_path(complete_form, "educationHistory.hasPostSecondary", "maybe")
        report = validate(complete_form)
        assert _error_at(report, "educationHistory.hasPostSecondary")


# ── Completeness ─────────────────────────────────────────────────────────


class TestCompleteness:
    @pytest.mark.parametrize(
        "path",
        [p for p, rule in iter_rule_paths(COMPLETE_RULES) if rule.required and "[]" not in p],
    )
    def test_blank_required_leaf_is_reported(self, complete_form, path):
        set_path(complete_form, path, "")
        report = validate(complete_form)
        assert _error_at(report, path), f"{path} missing from error map"

    def test_only_failing_leaf_is_reported(self, complete_form):
        set_path(complete_form, "languageInfo.communicateInEnglishFrench", "Spanish")
        report = validate(complete_form)
        assert report.errors == {
            "languageInfo": {
                "communicateInEnglishFrench": "Please select your ability to communicate in English and/or French",
            },
        }


# ── Cross-field rules ────────────────────────────────────────────────────


class TestPassportExpiry:
    def test_exactly_six_months_out_fails(self, complete_form):
        expiry = add_months(REFERENCE_DATE, 6)
        set_path(complete_form, "passportInfo.expiryDate", expiry.isoformat())
        assert _error_at(validate(complete_form), "passportInfo.expiryDate") == PASSPORT_ERROR

    def test_one_day_past_six_months_passes(self, complete_form):
        expiry = add_months(REFERENCE_DATE, 6) + timedelta(days=1)
        set_path(complete_form, "passportInfo.expiryDate", expiry.isoformat())
        assert _error_at(validate(complete_form), "passportInfo.expiryDate") is None

    def test_expiry_before_issue_fails(self, complete_form):
        set_path(complete_form, "passportInfo.issueDate", "2025-01-01")
        set_path(complete_form, "passportInfo.expiryDate", "2024-12-31")
        assert _error_at(validate(complete_form), "passportInfo.expiryDate") == PASSPORT_ERROR

    def test_fails_regardless_of_other_fields(self):
        report = validate({"passportInfo": {"expiryDate": REFERENCE_DATE.isoformat()}})
        assert _error_at(report, "passportInfo.expiryDate") == PASSPORT_ERROR

    def test_future_issue_date_fails(self, complete_form):
        set_path(complete_form, "passportInfo.issueDate", (REFERENCE_DATE + timedelta(days=1)).isoformat())
        assert _error_at(validate(complete_form), "passportInfo.issueDate") == "Passport issue date cannot be in the future"


class TestFunds:
    @pytest.mark.parametrize("funds, ok", [("45000", True), ("44999.99", False), ("45,000", True), ("lots", False)])
    def test_funds_cover_tuition_plus_living(self, complete_form, funds, ok):
        set_path(complete_form, "studyDetails.fundsAvailable", funds)
        error = _error_at(validate(complete_form), "studyDetails.fundsAvailable")
        assert (error is None) is ok

    def test_tuition_missing_needs_living_costs_only(self, complete_form):
        set_path(complete_form, "studyDetails.costs.tuition", "")
        set_path(complete_form, "studyDetails.fundsAvailable", "10000")
        assert validate(complete_form).is_valid

    def test_error_message(self, complete_form):
        set_path(complete_form, "studyDetails.fundsAvailable", "20000")
        assert _error_at(validate(complete_form), "studyDetails.fundsAvailable") == FUNDS_ERROR


class TestAgeAndDates:
    @pytest.mark.parametrize("years, ok", [(15, False), (17, True), (99, True), (101, False)])
    def test_age_bounds(self, complete_form, years, ok):
        born = REFERENCE_DATE.replace(year=REFERENCE_DATE.year - years)
        set_path(complete_form, "personalInfo.dateOfBirth", born.isoformat())
        error = _error_at(validate(complete_form), "personalInfo.dateOfBirth")
        assert (error is None) is ok

    def test_start_date_three_months_out(self, complete_form):
        start = add_months(REFERENCE_DATE, 3)
        set_path(complete_form, "studyDetails.duration.from", start.isoformat())
        assert _error_at(validate(complete_form), "studyDetails.duration.from") is None

        set_path(complete_form, "studyDetails.duration.from", (start - timedelta(days=1)).isoformat())
        assert _error_at(validate(complete_form), "studyDetails.duration.from") == (
            "Program start date must be at least 3 months from today"
        )

    def test_end_before_start_fails(self, complete_form):
        set_path(complete_form, "studyDetails.duration.to", "2026-08-01")
        assert _error_at(validate(complete_form), "studyDetails.duration.to")

    def test_marriage_date_after_birth(self, complete_form):
        set_path(complete_form, "maritalInfo.status", "Married")
        set_path(complete_form, "maritalInfo.spouse", {"familyName": "Patel", "givenNames": "Asha"})
        set_path(complete_form, "maritalInfo.dateOfMarriage", "1990-01-01")
        assert _error_at(validate(complete_form), "maritalInfo.dateOfMarriage")

        set_path(complete_form, "maritalInfo.dateOfMarriage", "2022-06-18")
        assert validate(complete_form).is_valid


# ── Conditional requirements ─────────────────────────────────────────────


class TestRequiredIf:
    def test_national_id_number_needed_when_held(self, complete_form):
        set_path(complete_form, "nationalIdInfo.hasDocument", True)
        report = validate(complete_form)
        assert _error_at(report, "nationalIdInfo.documentNumber") == (
            "Document number is required when you have a national ID"
        )

    def test_national_id_number_ignored_when_not_held(self, complete_form):
        set_path(complete_form, "nationalIdInfo.documentNumber", "")
        assert validate(complete_form).is_valid

    def test_uscis_number_length(self, complete_form):
        set_path(complete_form, "usPRInfo.isPermanentResident", True)
        set_path(complete_form, "usPRInfo.uscisNumber", "1234")
        assert _error_at(validate(complete_form), "usPRInfo.uscisNumber")

    def test_spouse_required_when_married(self, complete_form):
        set_path(complete_form, "maritalInfo.status", "Common-law")
        report = validate(complete_form)
        assert _error_at(report, "maritalInfo.spouse.familyName")
        assert _error_at(report, "maritalInfo.dateOfMarriage")

    def test_residential_address_when_different(self, complete_form):
        set_path(complete_form, "contactInfo.residentialSameAsMailing", False)
        report = validate(complete_form)
        assert _error_at(report, "contactInfo.residentialAddress.city") == "City/Town is required"

    def test_background_details_when_answered_yes(self, complete_form):
        set_path(complete_form, "backgroundInfo.criminal.hasRecord", True)
        assert _error_at(validate(complete_form), "backgroundInfo.criminal.details")


# ── Repeated sections ────────────────────────────────────────────────────


class TestRepeated:
    def test_errors_keyed_by_item_index(self, complete_form):
        complete_form["employmentHistory"].append({"from": "2024-13", "occupation": ""})
        report = validate(complete_form)
        assert _error_at(report, "employmentHistory.1.from") == "Start month is required (YYYY-MM)"
        assert _error_at(report, "employmentHistory.1.occupation") == "Occupation is required"
        assert _error_at(report, "employmentHistory.0") is None

    def test_previous_residence_items(self, complete_form):
        complete_form["personalInfo"]["previousResidences"] = [{"country": "UAE", "status": "", "from": "2019-01-01"}]
        report = validate(complete_form)
        assert _error_at(report, "personalInfo.previousResidences.0.status") == "Immigration status is required"


# ── DLI format ───────────────────────────────────────────────────────────


class TestDli:
    @pytest.mark.parametrize("dli", ["123456789", "O12345678", "o123456789", "O123456789012", "O12345678A"])
    def test_malformed(self, complete_form, dli):
        set_path(complete_form, "studyDetails.dliNumber", dli)
        assert _error_at(validate(complete_form), "studyDetails.dliNumber") == DLI_ERROR

    @pytest.mark.parametrize("dli", ["O123456789\n", "O19391173552\n", " O123456789"])
    def test_stray_whitespace_rejected(self, complete_form, dli):
        set_path(complete_form, "studyDetails.dliNumber", dli)
        assert _error_at(validate(complete_form), "studyDetails.dliNumber") == DLI_ERROR

    def test_trailing_newline_in_passport_number(self, complete_form):
        set_path(complete_form, "passportInfo.number", "K1234567\n")
        report = validate(complete_form)
        assert _error_at(report, "passportInfo.number") == "Passport number must be alphanumeric and uppercase"
        assert not report.is_valid

    @pytest.mark.parametrize("dli", ["O123456789", "O19391173552"])
    def test_well_formed(self, complete_form, dli):
        set_path(complete_form, "studyDetails.dliNumber", dli)
        assert validate(complete_form).is_valid


# ── Minimal mode ─────────────────────────────────────────────────────────


class TestMinimal:
    def test_sixteen_critical_paths(self):
        report = validate_minimal({})
        assert report.summary["totalFields"] == 16
        assert report.summary["invalidFields"] == 16
        assert _error_at(report, "personalInfo.familyName") == "Family name is required"
        assert _error_at(report, "maritalInfo.status") == "Marital status is required"

    def test_partial_record_passes(self, minimal_form):
        assert validate_minimal(minimal_form).is_valid

    def test_full_rules_still_fail_partial_record(self, minimal_form):
        assert not validate(minimal_form).is_valid

    def test_same_walk_as_full_rules(self, minimal_form):
        assert {p for p, _ in iter_rule_paths(MINIMAL_RULES)} <= {p for p, _ in iter_rule_paths(COMPLETE_RULES)}


# ── Single field ─────────────────────────────────────────────────────────


class TestValidateField:
    def test_invalid_value(self):
        result = validate_field("studyDetails.dliNumber", "123456789")
        assert result == {"path": "studyDetails.dliNumber", "known": True, "isValid": False, "error": DLI_ERROR}

    def test_uses_record_context(self, complete_form):
        ok = validate_field("passportInfo.expiryDate", "2029-01-01", complete_form)
        assert ok["isValid"]
        bad = validate_field("passportInfo.issueDate", "2031-01-01", complete_form)
        assert bad["error"] == "Passport issue date cannot be in the future"

    def test_value_overrides_record(self, complete_form):
        result = validate_field("studyDetails.costs.tuition", "90000", complete_form)
        assert result["isValid"]
        funds = validate_field("studyDetails.fundsAvailable", "60000", set_path(complete_form, "studyDetails.costs.tuition", "90000"))
        assert not funds["isValid"]

    def test_repeated_item_path(self):
        assert validate_field("employmentHistory.0.from", "June 2020")["isValid"] is False

    def test_unknown_path(self):
        result = validate_field("studyDetails.favouriteColour", "blue")
        assert result["known"] is False
        assert result["isValid"] is True

    def test_accepts_typed_record(self, complete_form):
        record = ApplicationRecord.from_dict(complete_form)
        assert validate_field("contactInfo.email", "x@y.z", record)["isValid"]


def test_rules_are_read_only():
    with pytest.raises(TypeError):
        COMPLETE_RULES["uci"] = FieldRule()
