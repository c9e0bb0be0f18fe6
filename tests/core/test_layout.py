from src.core.pdf.layout import (
    CONTENT_TOP,
    Column,
    Footer,
    HeaderBand,
    LayoutEngine,
    SectionTitle,
    Spacer,
    TableBlock,
    TableItem,
    TextItem,
    TextLines,
    wrap_text,
)

SCHOOL = {"name": "Test School", "address": "1 Road", "phone": "123", "email": "a@b.c"}


def _engine(orientation: str = "portrait") -> LayoutEngine:
    return LayoutEngine(
        orientation=orientation,
        header=HeaderBand(school=SCHOOL, badge="RECEIPT", number="RCP-2030-000001"),
        footer=Footer(note="note", generated="01/01/2030 10:00"),
    )


def _table(rows: int) -> TableBlock:
    return TableBlock(
        columns=[Column("#", 10), Column("Name"), Column("Amount", align="right")],
        rows=[[str(i), f"Student {i}", "1,000"] for i in range(rows)],
    )


def _tables(page) -> list[TableItem]:
    return [item for item in page.items if isinstance(item, TableItem)]


class TestWrapText:
    def test_short_text_single_line(self):
        assert wrap_text("Tuition Fee", 100, 9) == ("Tuition Fee",)

    def test_wraps_on_words(self):
        lines = wrap_text("one two three four five six", 10, 9)
        assert len(lines) > 1
        assert " ".join(lines) == "one two three four five six"

    def test_cuts_long_words(self):
        lines = wrap_text("x" * 50, 10, 9)
        assert len(lines) > 1
        assert "".join(lines) == "x" * 50

    def test_empty_text(self):
        assert wrap_text("", 50, 9) == ("",)


class TestTableBlock:
    def test_column_widths_share_remaining_space(self):
        widths = _table(1).column_widths(110)
        assert widths == [10, 50, 50]

    def test_split_repeats_nothing_when_everything_fits(self):
        table = _table(3)
        head, rest = table.split(1000, 180)
        assert head is table
        assert rest is None

    def test_split_between_rows(self):
        table = _table(30)
        head, rest = table.split(60, 180)
        assert head is not None and rest is not None
        assert len(head.rows) + len(rest.rows) == 30
        assert rest._row_offset == len(head.rows)

    def test_stripe_parity_survives_split(self):
        table = _table(10)
        _, rest = table.split(30, 180)
        drawn = rest.draw(0, 0, 180)[0]
        first_body = drawn.rows[1]
        expected = table.stripe if rest._row_offset % 2 == 1 else None
        assert first_body.cells[0].fill == expected


class TestLayoutEngine:
    def test_single_page(self):
        pages = _engine().layout([TextLines(["hello"])])
        assert len(pages) == 1
        texts = [i.text for i in pages[0].items if isinstance(i, TextItem)]
        assert "hello" in texts
        assert "Generated on 01/01/2030 10:00 | Page 1 of 1" in texts

    def test_long_table_spills_with_header_on_every_page(self):
        pages = _engine().layout([_table(120)])
        assert len(pages) > 1
        body_rows = 0
        for page in pages:
            tables = _tables(page)
            assert len(tables) == 1
            assert tables[0].rows[0].header is True
            body_rows += len(tables[0].rows) - 1
        assert body_rows == 120

    def test_page_counter_uses_final_total(self):
        pages = _engine().layout([_table(120)])
        total = len(pages)
        for page in pages:
            texts = [i.text for i in page.items if isinstance(i, TextItem)]
            assert f"Generated on 01/01/2030 10:00 | Page {page.number} of {total}" in texts

    def test_content_stays_above_footer(self):
        engine = _engine()
        pages = engine.layout([_table(120)])
        for page in pages:
            for table in _tables(page):
                last = table.rows[-1]
                assert last.y + last.h <= engine.content_bottom + 0.01

    def test_section_title_moves_with_next_block(self):
        engine = _engine()
        filler = Spacer(engine.content_bottom - CONTENT_TOP - 10)
        pages = engine.layout([filler, SectionTitle("Fee Components"), TextLines(["a", "b", "c"])])
        assert len(pages) == 2
        second = [i.text for i in pages[1].items if isinstance(i, TextItem)]
        assert "Fee Components" in second
        assert "a" in second

    def test_landscape_page_size(self):
        page = _engine("landscape").layout([TextLines(["x"])])[0]
        assert (page.width, page.height) == (297.0, 210.0)
