"""Rendering: convert tailored resume markup to PDF."""

from qfix.rendering.latex import parse, validate
from qfix.rendering.pdf_renderer import render_pdf

__all__ = ["parse", "render_pdf", "validate"]
