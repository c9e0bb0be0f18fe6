"""PDF generation service: laid-out Documents to HTML (Jinja2) to PDF (WeasyPrint)."""

import logging
from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from src.core.exceptions import PdfGenerationUnavailableError
from src.core.pdf.formatting import hex_color
from src.core.pdf.layout import (
    CELL_PADDING,
    LINE_SPACING,
    PT_TO_MM,
    Cell,
    Document,
    LineItem,
    RectItem,
    Row,
    TableItem,
    TextItem,
)

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent.parent.parent / "templates" / "pdf"

# Distance from the top of a line box to the baseline, as a fraction of font size
ASCENT = 0.8


def _mm(value: float) -> str:
    return f"{value:.2f}mm"


def _text_style(item: TextItem, page_width: float) -> str:
    size_mm = item.size * PT_TO_MM
    parts = [
        f"top:{_mm(item.y - ASCENT * size_mm)}",
        f"font-size:{item.size:g}pt",
        f"color:{hex_color(item.color)}",
    ]
    if item.align == "right":
        parts.append(f"right:{_mm(page_width - item.x)}")
        parts.append("text-align:right")
    elif item.align == "center":
        parts.append(f"left:{_mm(item.x - 100)}")
        parts.append(f"width:{_mm(200)}")
        parts.append("text-align:center")
    else:
        parts.append(f"left:{_mm(item.x)}")
    if item.bold:
        parts.append("font-weight:bold")
    if item.italic:
        parts.append("font-style:italic")
    return ";".join(parts)


def _rect_style(item: RectItem) -> str:
    parts = [
        f"left:{_mm(item.x)}",
        f"top:{_mm(item.y)}",
        f"width:{_mm(item.w)}",
        f"height:{_mm(item.h)}",
    ]
    if item.fill:
        parts.append(f"background:{hex_color(item.fill)}")
    if item.stroke:
        parts.append(f"border:{_mm(item.stroke_width)} solid {hex_color(item.stroke)}")
    if item.radius:
        parts.append(f"border-radius:{_mm(item.radius)}")
    return ";".join(parts)


def _line_style(item: LineItem) -> str:
    return ";".join(
        [
            f"left:{_mm(min(item.x1, item.x2))}",
            f"top:{_mm(item.y1 - item.width / 2)}",
            f"width:{_mm(abs(item.x2 - item.x1))}",
            f"border-top:{_mm(item.width)} solid {hex_color(item.color)}",
        ]
    )


def _cell_style(cell: Cell, row: Row, table: TableItem) -> str:
    parts = [
        f"left:{_mm(cell.x)}",
        f"top:{_mm(row.y)}",
        f"width:{_mm(cell.w)}",
        f"height:{_mm(row.h)}",
        f"padding:{_mm(CELL_PADDING)}",
        f"font-size:{table.font_size:g}pt",
        f"line-height:{LINE_SPACING:g}",
        f"color:{hex_color(cell.color)}",
        f"text-align:{cell.align}",
    ]
    if cell.fill:
        parts.append(f"background:{hex_color(cell.fill)}")
    if table.grid:
        parts.append("border:0.2mm solid #e2e8f0")
    if cell.bold:
        parts.append("font-weight:bold")
    return ";".join(parts)


def _kind(item) -> str:
    if isinstance(item, TextItem):
        return "text"
    if isinstance(item, RectItem):
        return "rect"
    if isinstance(item, LineItem):
        return "line"
    if isinstance(item, TableItem):
        return "table"
    raise TypeError(f"Unknown layout item: {item!r}")


class PDFService:
    """Generate PDF documents from laid-out Documents via Jinja2 and WeasyPrint."""

    def __init__(self) -> None:
        self._env = Environment(
            loader=FileSystemLoader(str(TEMPLATE_DIR)),
            autoescape=True,
        )
        self._env.filters["text_style"] = _text_style
        self._env.filters["rect_style"] = _rect_style
        self._env.filters["line_style"] = _line_style
        self._env.globals["cell_style"] = _cell_style
        self._env.filters["item_kind"] = _kind

    def render_html(self, document: Document) -> str:
        """Deterministic HTML for a document (same Document, same string)."""
        template = self._env.get_template("document.html")
        return template.render(document=document)

    def render_pdf(self, document: Document) -> bytes:
        """Render document to PDF bytes."""
        try:
            from weasyprint import HTML
        except (OSError, ImportError) as e:
            raise PdfGenerationUnavailableError(
                f"PDF generation unavailable (WeasyPrint/system libs). On macOS: brew install pango glib. {e!s}"
            ) from e
        html_content = self.render_html(document)
        try:
            return HTML(string=html_content).write_pdf()
        except Exception as e:
            logger.exception("WeasyPrint failed for %s", document.file_name)
            raise PdfGenerationUnavailableError(str(e)) from e


pdf_service = PDFService()
