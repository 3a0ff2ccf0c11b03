"""Tests for shared/pdf_forms.py — widget listing and AcroForm filling."""

from __future__ import annotations

import pytest

from conftest import make_form_pdf, read_widget_values
from shared.pdf_forms import FormFillError, extract_form_fields, fill_pdf_form


@pytest.fixture()
def form_pdf() -> bytes:
    return make_form_pdf(["FamilyName", "GivenName"], checkboxes=["AliasIndicator", "Married"])


# ── extract_form_fields ──────────────────────────────────────────────────


class TestExtractFormFields:
    def test_lists_every_widget(self, form_pdf):
        fields = extract_form_fields(form_pdf)
        assert [f["name"] for f in fields] == ["FamilyName", "GivenName", "AliasIndicator", "Married"]
        assert [f["field_type"] for f in fields] == ["text", "text", "checkbox", "checkbox"]
        assert all(f["page_number"] == 0 for f in fields)
        assert len(fields[0]["rect"]) == 4

    def test_plain_pdf_has_no_fields(self):
        import pymupdf

        doc = pymupdf.open()
        doc.new_page()
        data = doc.tobytes()
        doc.close()
        assert extract_form_fields(data) == []


# ── fill_pdf_form ────────────────────────────────────────────────────────


class TestFillPdfForm:
    def test_text_values(self, form_pdf):
        filled = fill_pdf_form(form_pdf, {"FamilyName": "Smith", "GivenName": "John Michael"})
        values = read_widget_values(filled)
        assert values["FamilyName"] == "Smith"
        assert values["GivenName"] == "John Michael"

    def test_checkbox_values(self, form_pdf):
        filled = fill_pdf_form(form_pdf, {"AliasIndicator": "Yes", "Married": "No"})
        values = read_widget_values(filled)
        assert values["AliasIndicator"] not in ("Off", "", False)
        assert values["Married"] in ("Off", "", False)

    def test_unknown_names_are_ignored(self, form_pdf, caplog):
        filled = fill_pdf_form(form_pdf, {"FamilyName": "Smith", "NoSuchField": "x"})
        assert read_widget_values(filled)["FamilyName"] == "Smith"
        assert "1 mapped field(s) not found" in caplog.text

    def test_no_form_fields(self):
        import pymupdf

        doc = pymupdf.open()
        doc.new_page()
        data = doc.tobytes()
        doc.close()
        with pytest.raises(FormFillError, match="no fillable form fields"):
            fill_pdf_form(data, {"FamilyName": "Smith"})

    def test_password_protected(self, form_pdf):
        import pymupdf

        doc = pymupdf.open(stream=form_pdf, filetype="pdf")
        encrypted = doc.tobytes(encryption=pymupdf.PDF_ENCRYPT_AES_256, owner_pw="owner", user_pw="user")
        doc.close()
        with pytest.raises(FormFillError, match="password protected"):
            fill_pdf_form(encrypted, {"FamilyName": "Smith"})
