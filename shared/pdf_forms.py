"""AcroForm helpers: list the fillable widgets of a PDF and fill them.

All pymupdf imports are lazy.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

_WIDGET_TYPES = {0: "text", 1: "checkbox", 2: "select", 3: "combo"}
_FALSE_STRINGS = ("", "false", "no", "off", "0")


class FormFillError(Exception):
    """The PDF cannot be filled (encrypted, or it has no form fields)."""


def extract_form_fields(pdf_bytes: bytes) -> list[dict]:
    """List the AcroForm widgets of a PDF.

    Returns one dict per distinct field name with keys: name, field_type,
    page_number, rect, options, value.
    """
    import pymupdf  # lazy import

    doc = pymupdf.open(stream=pdf_bytes, filetype="pdf")
    fields: list[dict] = []
    seen_names: set[str] = set()

    for page_num in range(len(doc)):
        page = doc[page_num]
        for widget in page.widgets() or []:
            fname = widget.field_name or ""
            if not fname or fname in seen_names:
                continue
            seen_names.add(fname)
            fields.append({
                "name": fname,
                "field_type": _WIDGET_TYPES.get(widget.field_type, "text"),
                "page_number": page_num,
                "rect": list(widget.rect) if widget.rect else [0, 0, 0, 0],
                "options": list(widget.choice_values or []),
                "value": widget.field_value,
            })

    doc.close()
    return fields


def fill_pdf_form(pdf_bytes: bytes, field_values: dict[str, str]) -> bytes:
    """Fill a PDF form's AcroForm fields and return the completed PDF bytes.

    Args:
        pdf_bytes: Raw bytes of the blank PDF template.
        field_values: Mapping of PDF field name -> value to fill.

    Raises:
        FormFillError: the template is password protected or has no fields.
    """
    import pymupdf  # lazy import

    doc = pymupdf.open(stream=pdf_bytes, filetype="pdf")
    if doc.needs_pass:
        doc.close()
        raise FormFillError("PDF template is password protected; use the XFDF export instead")
    if not doc.is_form_pdf:
        doc.close()
        raise FormFillError("PDF template has no fillable form fields")

    filled_names: set[str] = set()
    for page in doc:
        for widget in page.widgets() or []:
            fname = widget.field_name or ""
            if fname not in field_values:
                continue
            val = field_values[fname]
            if widget.field_type == 1:  # checkbox
                widget.field_value = str(val).strip().lower() not in _FALSE_STRINGS
            else:
                widget.field_value = str(val)
            widget.update()
            filled_names.add(fname)

    unmatched = set(field_values) - filled_names
    if unmatched:
        logger.warning("%d mapped field(s) not found in PDF template", len(unmatched))

    filled = doc.tobytes(deflate=True, garbage=3)
    doc.close()
    return filled
