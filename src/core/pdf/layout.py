"""
Block layout for financial documents.

A document is a list of blocks (title, info block, cards, tables, notes...).
Every block knows its own height for a given content width, so the
LayoutEngine can stack them onto A4 pages without overlap, move a block that
does not fit to the next page, and split tables row by row (repeating the
header row). Header band and footer are drawn on every page once the page
count is known.

All coordinates are millimetres from the top-left corner of the page. Text
items carry the baseline y, like a PDF canvas.
"""

from dataclasses import dataclass

from src.core.pdf.formatting import COLORS, Color

A4_PORTRAIT = (210.0, 297.0)
A4_LANDSCAPE = (297.0, 210.0)

MARGIN = 14.0
HEADER_HEIGHT = 42.0
CONTENT_TOP = 50.0
FOOTER_RULE_OFFSET = 22.0
FOOTER_TEXT_OFFSET = 15.0
FOOTER_GAP = 4.0

PT_TO_MM = 0.3528
# Average glyph width of Helvetica-like fonts, as a fraction of the font size
CHAR_WIDTH_EM = 0.5
CELL_PADDING = 1.6
LINE_SPACING = 1.25


# --- Positioned items ---


@dataclass(frozen=True)
class TextItem:
    x: float
    y: float
    text: str
    size: float = 9.0
    color: Color = COLORS["dark"]
    bold: bool = False
    italic: bool = False
    align: str = "left"  # left | center | right (x is the anchor)


@dataclass(frozen=True)
class RectItem:
    x: float
    y: float
    w: float
    h: float
    fill: Color | None = None
    stroke: Color | None = None
    stroke_width: float = 0.0
    radius: float = 0.0


@dataclass(frozen=True)
class LineItem:
    x1: float
    y1: float
    x2: float
    y2: float
    color: Color = COLORS["border"]
    width: float = 0.3


@dataclass(frozen=True)
class Cell:
    x: float
    w: float
    lines: tuple[str, ...]
    align: str = "left"
    fill: Color | None = None
    color: Color = COLORS["dark"]
    bold: bool = False


@dataclass(frozen=True)
class Row:
    y: float
    h: float
    cells: tuple[Cell, ...]
    header: bool = False


@dataclass(frozen=True)
class TableItem:
    x: float
    y: float
    w: float
    font_size: float
    rows: tuple[Row, ...]
    grid: bool = True


Item = TextItem | RectItem | LineItem | TableItem


@dataclass(frozen=True)
class Page:
    number: int
    width: float
    height: float
    items: tuple[Item, ...]


@dataclass(frozen=True)
class Document:
    kind: str
    title: str
    number: str
    file_name: str
    orientation: str
    pages: tuple[Page, ...]

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def texts(self) -> list[str]:
        """All visible text in reading order (page by page)."""
        out: list[str] = []
        for page in self.pages:
            for item in page.items:
                if isinstance(item, TextItem):
                    out.append(item.text)
                elif isinstance(item, TableItem):
                    for row in item.rows:
                        for cell in row.cells:
                            out.append(" ".join(cell.lines))
        return out


# --- Text measurement ---


def line_height(size: float) -> float:
    return size * PT_TO_MM * LINE_SPACING


def wrap_text(text: str, width: float, size: float) -> tuple[str, ...]:
    """Greedy word wrap using the average glyph width; long words are cut."""
    max_chars = max(1, int(width / (size * PT_TO_MM * CHAR_WIDTH_EM)))
    lines: list[str] = []
    current = ""
    for word in str(text).split():
        while len(word) > max_chars:
            if current:
                lines.append(current)
                current = ""
            lines.append(word[:max_chars])
            word = word[max_chars:]
        candidate = f"{current} {word}" if current else word
        if len(candidate) <= max_chars:
            current = candidate
        else:
            lines.append(current)
            current = word
    if current or not lines:
        lines.append(current)
    return tuple(lines)


# --- Blocks ---


class Block:
    """Something stacked vertically in the content area."""

    space_after: float = 6.0
    keep_with_next: bool = False

    def height(self, width: float) -> float:
        raise NotImplementedError

    def min_height(self, width: float) -> float:
        """Smallest piece that can start a page (whole block unless splittable)."""
        return self.height(width)

    def draw(self, x: float, y: float, width: float) -> list[Item]:
        raise NotImplementedError


class Spacer(Block):
    def __init__(self, size: float):
        self.size = size
        self.space_after = 0.0

    def height(self, width: float) -> float:
        return self.size

    def draw(self, x: float, y: float, width: float) -> list[Item]:
        return []


class TitleBlock(Block):
    """Document title with a smaller subtitle line under it."""

    def __init__(self, title: str, subtitle: str, subtitle_color: Color = COLORS["muted"]):
        self.title = title
        self.subtitle = subtitle
        self.subtitle_color = subtitle_color
        self.space_after = 4.0

    def height(self, width: float) -> float:
        return 14.0

    def draw(self, x: float, y: float, width: float) -> list[Item]:
        return [
            TextItem(x, y + 5, self.title, size=14, bold=True),
            TextItem(x, y + 12, self.subtitle, size=8.5, color=self.subtitle_color),
        ]


@dataclass
class InfoItem:
    label: str
    value: str | None
    highlight: bool = False


class InfoBlock(Block):
    """Two-column key/value panel; height grows with the longer column."""

    ROW = 7.0

    def __init__(self, left: list[InfoItem], right: list[InfoItem]):
        self.left = left
        self.right = right

    @property
    def rows(self) -> int:
        return max(len(self.left), len(self.right), 1)

    def height(self, width: float) -> float:
        return self.rows * self.ROW + 10

    def draw(self, x: float, y: float, width: float) -> list[Item]:
        items: list[Item] = [
            RectItem(x, y, width, self.height(width), fill=COLORS["light"], radius=3)
        ]
        mid = x + width / 2
        for column, label_x, value_x in (
            (self.left, x + 6, x + 46),
            (self.right, mid + 6, mid + 52),
        ):
            row_y = y + 9
            for info in column:
                items.append(
                    TextItem(label_x, row_y, f"{info.label}:", size=8.5, color=COLORS["muted"], bold=True)
                )
                items.append(
                    TextItem(
                        value_x,
                        row_y,
                        str(info.value) if info.value not in (None, "") else "-",
                        size=8.5,
                        color=COLORS["primary"] if info.highlight else COLORS["dark"],
                        bold=info.highlight,
                    )
                )
                row_y += self.ROW
        return items


@dataclass
class Card:
    label: str
    value: str
    fill: Color
    value_color: Color


class CardsBlock(Block):
    """Equal-width rounded summary cards in one row."""

    GAP = 4.0

    def __init__(self, cards: list[Card], card_height: float = 16.0):
        self.cards = cards
        self.card_height = card_height

    def height(self, width: float) -> float:
        return self.card_height

    def draw(self, x: float, y: float, width: float) -> list[Item]:
        n = len(self.cards)
        card_w = (width - self.GAP * (n - 1)) / n
        items: list[Item] = []
        for i, card in enumerate(self.cards):
            cx = x + i * (card_w + self.GAP)
            items.append(RectItem(cx, y, card_w, self.card_height, fill=card.fill, radius=3))
            items.append(TextItem(cx + 6, y + 6, card.label.upper(), size=8, color=COLORS["muted"], bold=True))
            items.append(TextItem(cx + 6, y + 13, card.value, size=12, color=card.value_color, bold=True))
        return items


class StatsBand(Block):
    """Row of solid coloured stat tiles with white text."""

    def __init__(self, stats: list[tuple[str, str, Color]]):
        self.stats = stats
        self.space_after = 8.0

    def height(self, width: float) -> float:
        return 20.0

    def draw(self, x: float, y: float, width: float) -> list[Item]:
        col_w = width / len(self.stats)
        items: list[Item] = []
        for i, (label, value, color) in enumerate(self.stats):
            sx = x + i * col_w
            items.append(RectItem(sx, y, col_w - 4, 20, fill=color, radius=3))
            items.append(TextItem(sx + 5, y + 7, label, size=7, color=COLORS["white"]))
            items.append(TextItem(sx + 5, y + 16, value, size=11, color=COLORS["white"], bold=True))
        return items


class SectionTitle(Block):
    """Heading with a coloured accent; always kept with the block after it."""

    keep_with_next = True

    def __init__(self, title: str, color: Color = COLORS["primary"]):
        self.title = title
        self.color = color
        self.space_after = 2.0

    def height(self, width: float) -> float:
        return 7.0

    def draw(self, x: float, y: float, width: float) -> list[Item]:
        return [
            RectItem(x, y + 1, 4, 6, fill=self.color, radius=2),
            TextItem(x + 6, y + 6, self.title, size=11, bold=True),
        ]


class TextLines(Block):
    """Plain lines of text, one per row."""

    def __init__(
        self,
        lines: list[str],
        size: float = 8.5,
        color: Color = COLORS["muted"],
        bold: bool = False,
        step: float = 5.0,
    ):
        self.lines = lines
        self.size = size
        self.color = color
        self.bold = bold
        self.step = step

    def height(self, width: float) -> float:
        return len(self.lines) * self.step + 1

    def draw(self, x: float, y: float, width: float) -> list[Item]:
        return [
            TextItem(x, y + (i + 1) * self.step - 1, line, size=self.size, color=self.color, bold=self.bold)
            for i, line in enumerate(self.lines)
        ]


class AmountBox(Block):
    """Large centred amount inside an outlined box."""

    def __init__(self, label: str, value: str, color: Color = COLORS["success"]):
        self.label = label
        self.value = value
        self.color = color
        self.space_after = 8.0

    def height(self, width: float) -> float:
        return 28.0

    def draw(self, x: float, y: float, width: float) -> list[Item]:
        center = x + width / 2
        return [
            RectItem(
                x, y, width, 28,
                fill=COLORS["amount_box"], stroke=self.color, stroke_width=0.5, radius=4,
            ),
            TextItem(center, y + 9, self.label, size=10, color=COLORS["muted"], align="center"),
            TextItem(center, y + 22, self.value, size=22, color=self.color, bold=True, align="center"),
        ]


class SignatureBlock(Block):
    """Right-aligned signatory lines with a signing rule."""

    def __init__(self, title: str, subtitle: str):
        self.title = title
        self.subtitle = subtitle

    def height(self, width: float) -> float:
        return 18.0

    def draw(self, x: float, y: float, width: float) -> list[Item]:
        right = x + width
        return [
            LineItem(right - 56, y + 6, right, y + 6),
            TextItem(right, y + 11, self.title, size=8.5, color=COLORS["muted"], bold=True, align="right"),
            TextItem(right, y + 17, self.subtitle, size=8.5, color=COLORS["muted"], align="right"),
        ]


@dataclass
class Column:
    header: str
    width: float | None = None
    align: str = "left"
    bold: bool = False


@dataclass
class TableCell:
    text: str
    fill: Color | None = None
    color: Color | None = None
    bold: bool | None = None


class TableBlock(Block):
    """
    Grid table with a header row.

    Column widths are the fixed widths plus an equal share of what is left of
    the table width. Cells wrap their text; a row is as tall as its tallest
    cell. Tables split across pages between rows and repeat the header row.
    """

    def __init__(
        self,
        columns: list[Column],
        rows: list[list[TableCell | str]],
        font_size: float = 8.5,
        header_fill: Color = COLORS["primary"],
        header_color: Color = COLORS["white"],
        stripe: Color | None = COLORS["stripe"],
        width: float | None = None,
        grid: bool = True,
    ):
        self.columns = columns
        self.rows = [[c if isinstance(c, TableCell) else TableCell(str(c)) for c in row] for row in rows]
        self.font_size = font_size
        self.header_fill = header_fill
        self.header_color = header_color
        self.stripe = stripe
        self.width = width
        self.grid = grid
        self.space_after = 8.0
        # Stripe parity continues across page splits
        self._row_offset = 0

    def table_width(self, width: float) -> float:
        return min(self.width, width) if self.width else width

    def column_widths(self, width: float) -> list[float]:
        total = self.table_width(width)
        fixed = sum(c.width for c in self.columns if c.width)
        flexible = [c for c in self.columns if not c.width]
        share = (total - fixed) / len(flexible) if flexible else 0.0
        return [c.width if c.width else share for c in self.columns]

    def _row_height(self, texts: list[str], widths: list[float]) -> float:
        lines = max(
            len(wrap_text(text, w - 2 * CELL_PADDING, self.font_size))
            for text, w in zip(texts, widths)
        )
        return lines * line_height(self.font_size) + 2 * CELL_PADDING + 1

    def _header_height(self, widths: list[float]) -> float:
        return self._row_height([c.header for c in self.columns], widths)

    def _body_heights(self, widths: list[float]) -> list[float]:
        return [self._row_height([c.text for c in row], widths) for row in self.rows]

    def height(self, width: float) -> float:
        widths = self.column_widths(width)
        return self._header_height(widths) + sum(self._body_heights(widths))

    def min_height(self, width: float) -> float:
        widths = self.column_widths(width)
        heights = self._body_heights(widths)
        return self._header_height(widths) + (heights[0] if heights else 0.0)

    def split(self, available: float, width: float) -> tuple["TableBlock | None", "TableBlock | None"]:
        """Rows that fit in available height, and the remainder (header repeated)."""
        widths = self.column_widths(width)
        used = self._header_height(widths)
        count = 0
        for h in self._body_heights(widths):
            if used + h > available:
                break
            used += h
            count += 1
        if count == 0 and self.rows:
            return None, self
        if count == len(self.rows):
            return self, None
        return self._slice(0, count), self._slice(count, len(self.rows))

    def _slice(self, start: int, end: int) -> "TableBlock":
        part = TableBlock.__new__(TableBlock)
        part.__dict__.update(self.__dict__)
        part.rows = self.rows[start:end]
        part._row_offset = self._row_offset + start
        return part

    def draw(self, x: float, y: float, width: float) -> list[Item]:
        widths = self.column_widths(width)
        lefts = [x + sum(widths[:i]) for i in range(len(widths))]
        pad = 2 * CELL_PADDING

        rows: list[Row] = []
        header_h = self._header_height(widths)
        rows.append(
            Row(
                y=y,
                h=header_h,
                header=True,
                cells=tuple(
                    Cell(
                        x=lx,
                        w=w,
                        lines=wrap_text(col.header, w - pad, self.font_size),
                        align=col.align,
                        fill=self.header_fill,
                        color=self.header_color,
                        bold=True,
                    )
                    for lx, w, col in zip(lefts, widths, self.columns)
                ),
            )
        )

        row_y = y + header_h
        for index, (row, h) in enumerate(zip(self.rows, self._body_heights(widths))):
            striped = self.stripe if (self._row_offset + index) % 2 == 1 else None
            cells = []
            for lx, w, col, cell in zip(lefts, widths, self.columns, row):
                cells.append(
                    Cell(
                        x=lx,
                        w=w,
                        lines=wrap_text(cell.text, w - pad, self.font_size),
                        align=col.align,
                        fill=cell.fill or striped,
                        color=cell.color or COLORS["dark"],
                        bold=col.bold if cell.bold is None else cell.bold,
                    )
                )
            rows.append(Row(y=row_y, h=h, cells=tuple(cells)))
            row_y += h

        return [
            TableItem(
                x=x,
                y=y,
                w=self.table_width(width),
                font_size=self.font_size,
                rows=tuple(rows),
                grid=self.grid,
            )
        ]


# --- Page furniture ---


@dataclass
class HeaderBand:
    """Coloured band with the institution block and the document badge."""

    school: dict[str, str]
    badge: str
    number: str

    def draw(self, page_width: float) -> list[Item]:
        contact = " | ".join(
            v for v in (self.school.get("address"), self.school.get("phone"), self.school.get("email")) if v
        )
        badge_center = page_width - 43
        items: list[Item] = [
            RectItem(0, 0, page_width, HEADER_HEIGHT, fill=COLORS["primary"]),
            TextItem(MARGIN, 16, self.school.get("name", ""), size=18, color=COLORS["white"], bold=True),
            TextItem(MARGIN, 24, contact, size=8, color=COLORS["white"]),
            RectItem(page_width - 72, 8, 58, 26, fill=COLORS["white"], radius=3),
            TextItem(badge_center, 19, self.badge, size=10, color=COLORS["primary"], bold=True, align="center"),
        ]
        if self.number:
            items.append(TextItem(badge_center, 28, self.number, size=7, color=COLORS["muted"], align="center"))
        return items


@dataclass
class Footer:
    """Rule, contextual note, generation stamp and page counter."""

    note: str
    generated: str

    def draw(self, page_width: float, page_height: float, number: int, total: int) -> list[Item]:
        rule_y = page_height - FOOTER_RULE_OFFSET
        text_y = page_height - FOOTER_TEXT_OFFSET
        return [
            LineItem(MARGIN, rule_y, page_width - MARGIN, rule_y),
            TextItem(MARGIN, text_y, self.note, size=7.5, color=COLORS["muted"], italic=True),
            TextItem(
                page_width - MARGIN,
                text_y,
                f"Generated on {self.generated} | Page {number} of {total}",
                size=7.5,
                color=COLORS["muted"],
                italic=True,
                align="right",
            ),
        ]


@dataclass
class LayoutEngine:
    """Stacks blocks onto pages of a fixed size."""

    orientation: str
    header: HeaderBand
    footer: Footer
    margin: float = MARGIN

    @property
    def page_size(self) -> tuple[float, float]:
        return A4_LANDSCAPE if self.orientation == "landscape" else A4_PORTRAIT

    @property
    def content_width(self) -> float:
        return self.page_size[0] - 2 * self.margin

    @property
    def content_bottom(self) -> float:
        return self.page_size[1] - FOOTER_RULE_OFFSET - FOOTER_GAP

    def layout(self, blocks: list[Block]) -> list[Page]:
        width = self.content_width
        bottom = self.content_bottom
        pages: list[list[Item]] = [[]]
        y = CONTENT_TOP

        def new_page() -> float:
            pages.append([])
            return CONTENT_TOP

        queue = list(blocks)
        while queue:
            block = queue.pop(0)
            fresh = y == CONTENT_TOP

            needed = block.min_height(width)
            if block.keep_with_next and queue:
                needed = block.height(width) + block.space_after + queue[0].min_height(width)

            if isinstance(block, TableBlock):
                if y + needed > bottom and not fresh:
                    y = new_page()
                head, rest = block.split(bottom - y, width)
                if head is None:
                    # A single row taller than a page: place it anyway
                    head, rest = block._slice(0, 1), block._slice(1, len(block.rows))
                    rest = rest if rest.rows else None
                pages[-1].extend(head.draw(self.margin, y, width))
                if rest is not None:
                    y = new_page()
                    queue.insert(0, rest)
                    continue
                y += head.height(width) + block.space_after
                continue

            if y + needed > bottom and not fresh:
                y = new_page()
            pages[-1].extend(block.draw(self.margin, y, width))
            y += block.height(width) + block.space_after

        page_w, page_h = self.page_size
        total = len(pages)
        return [
            Page(
                number=i + 1,
                width=page_w,
                height=page_h,
                items=tuple(
                    self.header.draw(page_w)
                    + content
                    + self.footer.draw(page_w, page_h, i + 1, total)
                ),
            )
            for i, content in enumerate(pages)
        ]
