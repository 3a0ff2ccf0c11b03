"""PDF output: draw a PageModel from scratch, or fill the official template.

All pymupdf imports are lazy.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))
from shared.pdf_forms import FormFillError, fill_pdf_form

from app.errors import RenderError
from app.field_mapping import load_template, mapped_values
from app.layout import PageModel, TextStyle

logger = logging.getLogger(__name__)


def _draw_lines(page, x: float, y: float, text: str, style: TextStyle, page_height: float) -> None:
    """Draw newline-separated *text* with its first baseline at PDF-space (x, y)."""
    for i, line in enumerate(text.split("\n")):
        if not line:
            continue
        baseline = page_height - (y - i * style.leading)
        page.insert_text((x, baseline), line, fontsize=style.size, fontname=style.font, color=style.color)


def render_pdf(model: PageModel) -> bytes:
    """Draw every page of *model* into a new PDF and return its bytes."""
    import pymupdf  # lazy import

    doc = pymupdf.open()
    for page_model in model.pages:
        page = doc.new_page(width=model.width, height=model.height)
        for block in page_model.blocks:
            if block.background is not None:
                x, y, w, h = block.background
                rect = pymupdf.Rect(x, model.height - (y + h), x + w, model.height - y)
                page.draw_rect(rect, color=None, fill=block.background_color)
            if block.text:
                _draw_lines(page, block.x, block.y, block.text, block.style, model.height)
            if block.value:
                _draw_lines(page, block.value_x, block.value_y, block.value, block.value_style, model.height)

    result = doc.tobytes(deflate=True, garbage=3)
    doc.close()
    return result


def render_template_pdf(model: PageModel, template_path: Path | str, mapping: dict[str, str]) -> bytes:
    """Fill the official IMM 1294 AcroForm with the laid-out values.

    Raises:
        MissingTemplateError: the template PDF is not on disk.
        RenderError: the template cannot be filled (e.g. it is encrypted).
    """
    template_path = Path(template_path)
    template = load_template(template_path)
    values = mapped_values(model, mapping)
    logger.info("Filling %s with %d mapped value(s)", template_path.name, len(values))
    try:
        return fill_pdf_form(template, values)
    except FormFillError as exc:
        raise RenderError(str(template_path), template_path.name, str(exc)) from exc
