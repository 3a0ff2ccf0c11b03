"""FastAPI backend for the Study Permit Forms service.

Provides endpoints for validating IMM 1294 application data, deriving the
supporting-document checklist, generating the application as a PDF, XFDF
import file or printable HTML summary, and serving field tips.
"""

from __future__ import annotations

import logging
import re
import time
import traceback
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from app.checklist import checklist_summary, derive_checklist
from app.config import get_settings
from app.errors import MissingTemplateError, StudyPermitError
from app.field_mapping import load_field_mapping, load_template, template_field_report
from app.html_renderer import render_html
from app.layout import BASIC_SECTIONS, LayoutOptions, PageModel, layout
from app.pdf_renderer import render_pdf, render_template_pdf
from app.record import ApplicationRecord
from app.tips import STATIC_TIPS, field_feedback, get_tip
from app.validator import ValidationReport, validate, validate_minimal
from app.xfdf_renderer import render_xfdf

_settings = get_settings()
logging.basicConfig(
    level=getattr(logging, _settings.log_level.upper(), logging.INFO),
    format="[%(asctime)s] [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)

_STARTED = time.monotonic()

app = FastAPI(title="Study Permit Forms API")
app.add_middleware(
    CORSMiddleware,
    allow_origins=[_settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------

class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class FormDataRequest(_CamelModel):
    """Payload carrying the wizard's application record."""

    form_data: dict[str, Any] | None = Field(None, alias="formData")


class TipRequest(_CamelModel):
    """Payload for looking up guidance on one field."""

    field_name: str = Field("", alias="fieldName")
    form_data: dict[str, Any] | None = Field(None, alias="formData")
    use_ai: bool = Field(False, alias="useAI")


class FieldCheckRequest(_CamelModel):
    """Payload for live validation of one field."""

    field_name: str = Field("", alias="fieldName")
    value: Any = None
    form_data: dict[str, Any] | None = Field(None, alias="formData")


# ---------------------------------------------------------------------------
# Error envelopes
# ---------------------------------------------------------------------------

def _error(status_code: int, error: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": error, **extra})


def _server_error(error: str, exc: Exception) -> JSONResponse:
    extra: dict[str, Any] = {"message": str(exc)}
    if get_settings().is_development:
        extra["stack"] = "".join(traceback.format_exception(exc))
    return _error(500, error, **extra)


@app.exception_handler(MissingTemplateError)
async def _missing_template(request: Request, exc: MissingTemplateError) -> JSONResponse:
    logger.error("Missing template for %s: %s", request.url.path, exc.path)
    return _server_error("Required template file is missing", exc)


@app.exception_handler(StudyPermitError)
async def _pipeline_error(request: Request, exc: StudyPermitError) -> JSONResponse:
    logger.error("Document generation failed for %s: %s", request.url.path, exc)
    return _server_error("Failed to generate document", exc)


@app.exception_handler(ValidationError)
async def _bad_shape(request: Request, exc: ValidationError) -> JSONResponse:
    details = exc.errors(include_url=False, include_context=False, include_input=False)
    return _error(400, "Form data has an unexpected shape", details=details)


@app.exception_handler(Exception)
async def _unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s", request.url.path)
    return _server_error("Internal server error", exc)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _invalid(report: ValidationReport) -> JSONResponse:
    return _error(400, "Validation failed", errors=report.errors, validation=report.to_dict())


def _missing_form_data() -> JSONResponse:
    return _error(400, "Form data is required")


def _layout_options(**overrides: Any) -> LayoutOptions:
    return LayoutOptions.from_settings(get_settings(), **overrides)


def _file_stem(record: ApplicationRecord, prefix: str) -> str:
    name = "_".join(p for p in (record.personal_info.family_name, record.personal_info.given_names) if p)
    safe = re.sub(r"[^A-Za-z0-9_-]+", "_", name).strip("_")
    return f"{prefix}_{safe}" if safe else prefix


def _document_response(content: bytes | str, media_type: str, filename: str, model: PageModel,
                       inline: bool = False) -> Response:
    disposition = "inline" if inline else "attachment"
    headers = {"Content-Disposition": f'{disposition}; filename="{filename}"'}
    if model.is_truncated:
        headers["X-Layout-Truncated"] = ";".join(f"{path}={n}" for path, n in model.truncated.items())
    return Response(content=content, media_type=media_type, headers=headers)


# ---------------------------------------------------------------------------
# PDF endpoints
# ---------------------------------------------------------------------------

@app.post("/pdf/generate")
def generate_template_pdf(request: FormDataRequest | None = None) -> Response:
    """Fill the official IMM 1294 template with a fully validated record."""
    if request is None or not request.form_data:
        return _missing_form_data()
    report = validate(request.form_data)
    if not report.is_valid:
        return _invalid(report)

    settings = get_settings()
    record = ApplicationRecord.from_dict(request.form_data)
    mapping = load_field_mapping(settings.field_mapping_path)
    model = layout(record, _layout_options())
    pdf_bytes = render_template_pdf(model, settings.pdf_template_path, mapping)
    return _document_response(pdf_bytes, "application/pdf", f"{_file_stem(record, 'IMM1294')}.pdf", model)


@app.post("/pdf/generate-form")
def generate_basic_form(request: FormDataRequest | None = None) -> Response:
    """Draw a basic form from a partially complete record (critical fields only)."""
    if request is None or not request.form_data:
        return _missing_form_data()
    report = validate_minimal(request.form_data)
    if not report.is_valid:
        return _invalid(report)

    record = ApplicationRecord.from_dict(request.form_data)
    model = layout(record, _layout_options(sections=BASIC_SECTIONS))
    return _document_response(render_pdf(model), "application/pdf",
                              f"{_file_stem(record, 'IMM1294_Basic')}.pdf", model)


@app.post("/pdf/generate-complete-form")
def generate_complete_form(request: FormDataRequest | None = None) -> Response:
    """Draw every section of a fully validated record."""
    if request is None or not request.form_data:
        return _missing_form_data()
    report = validate(request.form_data)
    if not report.is_valid:
        return _invalid(report)

    record = ApplicationRecord.from_dict(request.form_data)
    model = layout(record, _layout_options())
    return _document_response(render_pdf(model), "application/pdf",
                              f"{_file_stem(record, 'IMM1294_Complete')}.pdf", model)


@app.post("/pdf/generate-xfdf")
def generate_xfdf(request: FormDataRequest | None = None) -> Response:
    """Export field values as XFDF for import into the official PDF."""
    if request is None or not request.form_data:
        return _missing_form_data()
    report = validate(request.form_data)
    if not report.is_valid:
        return _invalid(report)

    settings = get_settings()
    record = ApplicationRecord.from_dict(request.form_data)
    mapping = load_field_mapping(settings.field_mapping_path)
    model = layout(record, _layout_options())
    xfdf = render_xfdf(model, settings.pdf_template_name, mapping)
    return _document_response(xfdf, "application/vnd.adobe.xfdf",
                              f"{_file_stem(record, 'IMM1294')}.xfdf", model)


@app.post("/pdf/generate-summary")
def generate_summary(request: FormDataRequest | None = None) -> Response:
    """Printable HTML summary for manual transcription."""
    if request is None or not request.form_data:
        return _missing_form_data()
    report = validate(request.form_data)
    if not report.is_valid:
        return _invalid(report)

    record = ApplicationRecord.from_dict(request.form_data)
    model = layout(record, _layout_options())
    return _document_response(render_html(model), "text/html",
                              f"{_file_stem(record, 'IMM1294_Summary')}.html", model, inline=True)


@app.post("/pdf/validate")
def validate_form(request: FormDataRequest | None = None) -> Any:
    """Run the full rule table and return the report (never a 400 for invalid data)."""
    if request is None or not request.form_data:
        return _missing_form_data()
    return {"success": True, "validation": validate(request.form_data).to_dict()}


@app.post("/pdf/checklist")
def document_checklist(request: FormDataRequest | None = None) -> Any:
    """Derive the supporting-document checklist for the record."""
    if request is None or not request.form_data:
        return _missing_form_data()
    entries = derive_checklist(ApplicationRecord.from_dict(request.form_data))
    return {
        "success": True,
        "checklist": [e.to_dict() for e in entries],
        "summary": checklist_summary(entries),
    }


@app.get("/pdf/template-fields")
def template_fields() -> dict[str, Any]:
    """List the official template's AcroForm fields against the current mapping."""
    settings = get_settings()
    template = load_template(settings.pdf_template_path)
    try:
        mapping = load_field_mapping(settings.field_mapping_path)
    except MissingTemplateError:
        mapping = {}
    report = template_field_report(template, mapping)
    logger.info(
        "Template has %d field(s), %d unmapped, %d stale mapping(s)",
        len(report["fields"]), len(report["unmappedFields"]), len(report["staleMappings"]),
    )
    return {"success": True, **report}


@app.get("/pdf/test")
def pdf_capabilities() -> dict[str, Any]:
    settings = get_settings()
    return {
        "success": True,
        "message": "PDF routes are working",
        "templateAvailable": settings.pdf_template_path.is_file(),
        "fieldMappingAvailable": settings.field_mapping_path.is_file(),
        "endpoints": [
            "POST /pdf/generate",
            "POST /pdf/generate-form",
            "POST /pdf/generate-complete-form",
            "POST /pdf/generate-xfdf",
            "POST /pdf/generate-summary",
            "POST /pdf/validate",
            "POST /pdf/checklist",
            "GET /pdf/template-fields",
        ],
    }


# ---------------------------------------------------------------------------
# Tips endpoints
# ---------------------------------------------------------------------------

@app.post("/tips/get-tips")
def tips_for_field(request: TipRequest) -> Any:
    """Static or AI guidance for one field."""
    if not request.field_name:
        return _error(400, "Field name is required")
    result = get_tip(request.field_name, request.form_data, use_ai=request.use_ai, settings=get_settings())
    return {"success": True, **result}


@app.post("/tips/validate-field")
def tips_validate_field(request: FieldCheckRequest) -> Any:
    """Live validation feedback and suggestions for one field."""
    if not request.field_name:
        return _error(400, "Field name is required")
    return {"success": True, **field_feedback(request.field_name, request.value, request.form_data)}


@app.get("/tips/all")
def all_tips() -> dict[str, Any]:
    return {"success": True, "tips": STATIC_TIPS, "aiAvailable": get_settings().ai_enabled}


@app.get("/tips/test")
def tips_test() -> dict[str, Any]:
    return {
        "success": True,
        "message": "Tips routes are working",
        "aiEnabled": get_settings().ai_enabled,
        "availableStaticTips": list(STATIC_TIPS),
    }


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

@app.get("/health")
def health() -> dict[str, Any]:
    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": round(time.monotonic() - _STARTED, 3),
        "environment": get_settings().environment,
    }
