"""Printable HTML report of a laid-out application.

Used for side-by-side manual transcription into the official form. Section
grouping and field order follow the PageModel exactly; page chrome is left
out because the browser paginates on print.
"""

from __future__ import annotations

from datetime import date
from html import escape

from app.layout import PageModel

_STYLE = """
body { font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; max-width: 900px;
       margin: 40px auto; padding: 20px; background: #f5f5f5; }
.container { background: white; padding: 40px; border-radius: 10px; box-shadow: 0 2px 10px rgba(0,0,0,0.1); }
h1 { color: #2c3e50; border-bottom: 3px solid #3498db; padding-bottom: 15px; }
h2 { color: #34495e; background: #ecf0f1; padding: 12px 20px; border-left: 4px solid #3498db; margin-top: 30px; }
.field { margin: 8px 0; padding: 10px 15px; background: #f8f9fa; border-radius: 5px;
         display: grid; grid-template-columns: 300px 1fr; gap: 20px; }
.field-label { font-weight: 600; color: #555; }
.field-value { color: #003380; font-weight: 500; white-space: pre-wrap; }
.empty-value { color: #999; font-style: italic; }
.note { color: #555; font-size: 0.9em; margin: 12px 0; }
.instructions { background: #fff3cd; border-left: 4px solid #ffc107; padding: 15px 20px; }
.footer { margin-top: 40px; color: #777; font-size: 0.85em; }
@media print { body { background: white; margin: 0; } .container { box-shadow: none; }
               h2 { page-break-after: avoid; } .field { page-break-inside: avoid; } }
"""


def _text(value: str) -> str:
    return escape(" ".join(value.split()))


def render_html(model: PageModel, generated_on: date | None = None) -> str:
    """Render the header, text and field blocks of *model* as one HTML page."""
    generated_on = generated_on or date.today()
    parts = [
        "<!DOCTYPE html>",
        '<html lang="en">',
        "<head>",
        '<meta charset="UTF-8">',
        '<meta name="viewport" content="width=device-width, initial-scale=1.0">',
        "<title>IMM 1294 Form Data Summary</title>",
        f"<style>{_STYLE}</style>",
        "</head>",
        "<body>",
        '<div class="container">',
        "<h1>IMM 1294 - Application for Study Permit: Data Summary</h1>",
        '<div class="instructions">Open the official IMM 1294 form in Adobe Reader and copy each value '
        "below into the matching field.</div>",
    ]

    open_section = False
    for block in model.blocks("header", "field", "text"):
        if not block.section:
            continue
        if block.kind == "header":
            if open_section:
                parts.append("</section>")
            parts.append(f'<section data-section="{escape(block.section)}">')
            parts.append(f"<h2>{escape(block.text)}</h2>")
            open_section = True
        elif block.kind == "text":
            parts.append(f'<p class="note">{_text(block.text)}</p>')
        else:
            value = block.value or ""
            rendered = (
                f'<span class="field-value">{escape(value.replace(chr(10), " "))}</span>'
                if value else '<span class="empty-value">(not provided)</span>'
            )
            parts.append(
                f'<div class="field" data-path="{escape(block.path)}">'
                f'<span class="field-label">{_text(block.text)}</span>{rendered}</div>'
            )
    if open_section:
        parts.append("</section>")

    parts.extend([
        f'<p class="footer">Generated {generated_on.isoformat()}. This form is for information purposes '
        "only and does not constitute legal advice.</p>",
        "</div>",
        "</body>",
        "</html>",
    ])
    return "\n".join(parts) + "\n"
