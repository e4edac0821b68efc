"""Render tailored resume markup to a one-column A4 PDF using fpdf2."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fpdf import FPDF

from qfix.core.errors import RenderError
from qfix.rendering.latex import (
    Block,
    Bullets,
    Centered,
    Heading,
    Line,
    Paragraph,
    Spacer,
    Table,
    parse,
)

logger = logging.getLogger(__name__)

PAGE_FORMAT = "A4"
MARGIN_MM = 19.05  # 0.75in
FONT = "Times"
BODY_PT = 11
NAME_PT = 18
HEADING_PT = {1: 14, 2: 12}
LINE_HEIGHT = 1.4
PT_TO_MM = 25.4 / 72

# Fixed so identical markup yields identical bytes.
_CREATION_DATE = datetime(2000, 1, 1, tzinfo=timezone.utc)

# Times is Latin-1 only. Replace common Unicode characters.
_UNICODE_REPLACEMENTS = {
    "\u2014": "-",    # em-dash
    "\u2013": "-",    # en-dash
    "\u2018": "'",    # left single quote
    "\u2019": "'",    # right single quote
    "\u201c": '"',    # left double quote
    "\u201d": '"',    # right double quote
    "\u2026": "...",  # ellipsis
    "\u2022": "-",    # bullet
    "\u00a0": " ",    # non-breaking space
}


def _sanitize(text: str) -> str:
    """Replace Unicode characters unsupported by Times with ASCII fallbacks."""
    for char, replacement in _UNICODE_REPLACEMENTS.items():
        text = text.replace(char, replacement)
    return text.encode("latin-1", "replace").decode("latin-1")


def _line_height(size_pt: float) -> float:
    return size_pt * LINE_HEIGHT * PT_TO_MM


def _new_pdf() -> FPDF:
    """Create a new FPDF instance with the resume page geometry."""
    pdf = FPDF(format=PAGE_FORMAT, unit="mm")
    pdf.creation_date = _CREATION_DATE
    pdf.set_margins(MARGIN_MM, MARGIN_MM, MARGIN_MM)
    pdf.set_auto_page_break(auto=True, margin=MARGIN_MM)
    pdf.add_page()
    pdf.set_font(FONT, "", BODY_PT)
    return pdf


def _write_line(pdf: FPDF, line: Line, size: float, align: str = "L") -> None:
    h = _line_height(size)
    pdf.set_font(FONT, "", size)
    if line.right:
        right_w = min(pdf.get_string_width(_sanitize(line.right)) + 2, pdf.epw / 2)
        if pdf.will_page_break(h):
            pdf.add_page()
        top = pdf.get_y()
        # Right part sits on the first line; the left part wraps beside it.
        pdf.set_x(pdf.l_margin + pdf.epw - right_w)
        pdf.cell(right_w, h, _sanitize(line.right), align="R", markdown=True)
        pdf.set_xy(pdf.l_margin, top)
        pdf.multi_cell(pdf.epw - right_w, h, _sanitize(line.left), markdown=True,
                       new_x="LMARGIN", new_y="NEXT")
    else:
        pdf.multi_cell(0, h, _sanitize(line.left), align=align, markdown=True,
                       new_x="LMARGIN", new_y="NEXT")


def _add_centered(pdf: FPDF, block: Centered) -> None:
    for line in block.lines:
        size = NAME_PT if line.large else BODY_PT
        _write_line(pdf, Line(left=line.left), size, align="C")
    pdf.ln(3)


def _add_heading(pdf: FPDF, block: Heading) -> None:
    size = HEADING_PT.get(block.level, BODY_PT)
    pdf.ln(2)
    pdf.set_font(FONT, "B", size)
    pdf.cell(0, _line_height(size), _sanitize(block.text), new_x="LMARGIN", new_y="NEXT")
    if block.level == 1:
        y = pdf.get_y()
        pdf.line(pdf.l_margin, y, pdf.w - pdf.r_margin, y)
    pdf.ln(1.5)
    pdf.set_font(FONT, "", BODY_PT)


def _add_bullets(pdf: FPDF, block: Bullets) -> None:
    h = _line_height(BODY_PT)
    pdf.set_font(FONT, "", BODY_PT)
    for item in block.items:
        indent = 4 + item.level * 6
        marker = f"{item.number}." if item.number is not None else "-"
        pdf.set_x(pdf.l_margin + indent)
        pdf.cell(5, h, marker)
        pdf.multi_cell(0, h, _sanitize(item.text), markdown=True,
                       new_x="LMARGIN", new_y="NEXT")
    pdf.ln(1)


def _add_table(pdf: FPDF, block: Table) -> None:
    h = _line_height(BODY_PT)
    pdf.set_font(FONT, "B", BODY_PT)
    label_w = max(pdf.get_string_width(_sanitize(row[0])) for row in block.rows) + 4
    label_w = min(label_w, pdf.epw * 0.4)
    for row in block.rows:
        pdf.set_font(FONT, "B", BODY_PT)
        pdf.cell(label_w, h, _sanitize(row[0]), markdown=True)
        pdf.set_font(FONT, "", BODY_PT)
        rest = " ".join(cell for cell in row[1:] if cell)
        pdf.multi_cell(0, h, _sanitize(rest), markdown=True,
                       new_x="LMARGIN", new_y="NEXT")
    pdf.ln(1)


def _add_paragraph(pdf: FPDF, block: Paragraph) -> None:
    for line in block.lines:
        _write_line(pdf, line, BODY_PT)
    pdf.ln(1)


def _add_block(pdf: FPDF, block: Block) -> None:
    if isinstance(block, Centered):
        _add_centered(pdf, block)
    elif isinstance(block, Heading):
        _add_heading(pdf, block)
    elif isinstance(block, Bullets):
        _add_bullets(pdf, block)
    elif isinstance(block, Table):
        _add_table(pdf, block)
    elif isinstance(block, Paragraph):
        _add_paragraph(pdf, block)
    elif isinstance(block, Spacer):
        pdf.ln(block.height_pt * PT_TO_MM)


def render_pdf(markup: str) -> tuple[bytes, int]:
    """Render resume markup to PDF bytes and return them with the page count.

    Raises ``RenderError`` for structurally invalid markup or if fpdf2 fails.
    """
    blocks = parse(markup)
    pdf = _new_pdf()
    try:
        for block in blocks:
            _add_block(pdf, block)
        page_count = pdf.page_no()
        document = bytes(pdf.output())
    except Exception as exc:
        raise RenderError(f"PDF layout failed: {exc}") from exc
    logger.debug("Rendered %d blocks to %d page(s), %d bytes", len(blocks), page_count, len(document))
    return document, page_count
