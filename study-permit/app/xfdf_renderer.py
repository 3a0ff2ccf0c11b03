"""XFDF export: the laid-out field values as an XML import file.

Adobe Reader can import the file into the official PDF even when the PDF
itself is protected against programmatic filling.
"""

from __future__ import annotations

from app.layout import SECTION_TITLES, PageModel

XFDF_NAMESPACE = "http://ns.adobe.com/xfdf/"

_ESCAPES = (("&", "&amp;"), ("<", "&lt;"), (">", "&gt;"), ('"', "&quot;"), ("'", "&apos;"))


def escape_xml(text: str) -> str:
    for char, entity in _ESCAPES:
        text = text.replace(char, entity)
    return text


def _field_name(block, mapping: dict[str, str] | None) -> str:
    if mapping is not None:
        return mapping.get(block.path, "")
    label = " ".join(block.text.split())
    section = SECTION_TITLES.get(block.section, block.section)
    return f"{section} - {label}"


def render_xfdf(model: PageModel, pdf_file_name: str, mapping: dict[str, str] | None = None) -> str:
    """Serialise the field blocks of *model* as XFDF.

    With a *mapping*, only mapped paths are exported, under their official
    field names. Without one, every field is exported as
    ``"<section> - <label>"``. Empty values are skipped.
    """
    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        f'<xfdf xmlns="{XFDF_NAMESPACE}" xml:space="preserve">',
        "  <fields>",
    ]
    for block in model.fields():
        name = _field_name(block, mapping)
        value = (block.value or "").replace("\n", " ")
        if not name or not value:
            continue
        lines.append(f'    <field name="{escape_xml(name)}">')
        lines.append(f"      <value>{escape_xml(value)}</value>")
        lines.append("    </field>")
    lines.append("  </fields>")
    lines.append(f'  <f href="{escape_xml(pdf_file_name)}"/>')
    lines.append("</xfdf>")
    return "\n".join(lines) + "\n"
