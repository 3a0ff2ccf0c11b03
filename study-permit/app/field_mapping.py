"""Mapping from record paths to the official form's AcroForm field names."""

from __future__ import annotations

import json
import sys
from functools import lru_cache
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))
from shared.pdf_forms import extract_form_fields

from app.errors import MissingTemplateError

_MAPPING_HINT = (
    "Export the field names of the official IMM 1294 PDF and save them as "
    '{"fieldMapping": {"<record path>": "<pdf field name>"}}'
)
_TEMPLATE_HINT = "Download imm1294e.pdf from canada.ca and place it in the templates directory"


@lru_cache(maxsize=8)
def _read_mapping(path: str, mtime: float) -> dict[str, str]:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    mapping = data.get("fieldMapping", data) if isinstance(data, dict) else {}
    return {str(k): str(v) for k, v in mapping.items() if v}


def load_field_mapping(path: Path | str) -> dict[str, str]:
    """Load ``{record path: pdf field name}``; re-read only when the file changes."""
    path = Path(path)
    if not path.is_file():
        raise MissingTemplateError(path, _MAPPING_HINT)
    return dict(_read_mapping(str(path), path.stat().st_mtime))


def mapped_values(model, mapping: dict[str, str]) -> dict[str, str]:
    """Pair each mapped PDF field name with its laid-out value."""
    values: dict[str, str] = {}
    for block in model.fields():
        name = mapping.get(block.path)
        if name:
            values[name] = (block.value or "").replace("\n", " ")
    return values


def load_template(path: Path | str) -> bytes:
    """Read the official PDF template, raising MissingTemplateError if absent."""
    path = Path(path)
    if not path.is_file():
        raise MissingTemplateError(path, _TEMPLATE_HINT)
    return path.read_bytes()


def template_field_report(pdf_bytes: bytes, mapping: dict[str, str]) -> dict:
    """Compare the template's AcroForm fields with the current mapping.

    ``fieldMapping`` keeps the entries whose PDF field exists, ``staleMappings``
    the ones that point at a missing field, and ``unmappedFields`` lists the
    template fields nothing maps to yet. Used to build and refresh
    field-mapping.json when a new form revision is published.
    """
    fields = extract_form_fields(pdf_bytes)
    names = {f["name"] for f in fields}
    targets = set(mapping.values())
    return {
        "fields": fields,
        "fieldMapping": {path: name for path, name in mapping.items() if name in names},
        "staleMappings": {path: name for path, name in mapping.items() if name not in names},
        "unmappedFields": [f["name"] for f in fields if f["name"] not in targets],
    }
