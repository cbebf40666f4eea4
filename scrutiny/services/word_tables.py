"""
WordprocessingML table markup for the generated report.

Two kinds of blocks are produced here:

- the deeds table (``{{table}}``, ``{{table2}}`` ...): five fixed base columns
  with user-defined extra columns inserted after any of them, one header row and
  one row per deed;
- the document-details block (``{{table1}}``): one heading plus a three-column
  table per property document.

Markup is built with python-docx's ``OxmlElement`` and serialized with lxml, so
every block is a standalone ``<w:tbl>``/``<w:p>`` fragment ready to be spliced
into ``word/document.xml``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from lxml import etree

from scrutiny.models.database_models import ColumnPosition
from scrutiny.services.placeholders import format_date_dmy, resolve
from scrutiny.services.template_catalog import TemplateCatalog

logger = logging.getLogger(__name__)

FONT_NAME = "Cambria"
FONT_SIZE = 24  # half-points, i.e. 12pt
TABLE_WIDTH = 9000
EXTRA_COLUMN_WIDTH = 1200
CELL_MARGIN = 100
HEADER_FILL = "FFFFFF"
MISSING_VALUE = "-"

# Values keyed by deed id, then column name
ColumnValues = Mapping[Any, Mapping[str, str]]


@dataclass(frozen=True)
class BaseColumn:
    position: ColumnPosition
    header: str
    width: int


BASE_COLUMNS: Tuple[BaseColumn, ...] = (
    BaseColumn(ColumnPosition.SNO, "Sno", 600),
    BaseColumn(ColumnPosition.DATE, "Date", 1500),
    BaseColumn(ColumnPosition.DNO, "D.No", 1300),
    BaseColumn(ColumnPosition.PARTICULARS, "Particulars of Deed", 4500),
    BaseColumn(ColumnPosition.NATURE, "Nature of Doc", 1100),
)


@dataclass(frozen=True)
class ExtraColumn:
    """User-defined column shown after the base column at ``position``."""

    name: str
    position: ColumnPosition

    def __post_init__(self) -> None:
        # Accept raw strings from the store; unknown anchors fail here, not mid-table
        object.__setattr__(self, "position", ColumnPosition(self.position))


@dataclass(frozen=True)
class TableColumn:
    key: str
    header: str
    width: int
    is_extra: bool = False


def layout_columns(extra_columns: Sequence[ExtraColumn] = ()) -> List[TableColumn]:
    """
    Interleave the base columns with the extra ones.

    Each base column is followed by the extra columns anchored to it, in the
    order they were added.
    """
    columns: List[TableColumn] = []
    for base in BASE_COLUMNS:
        columns.append(TableColumn(base.position.value, base.header, base.width))
        for extra in extra_columns:
            if extra.position is base.position:
                columns.append(TableColumn(extra.name, extra.name, EXTRA_COLUMN_WIDTH, True))
    return columns


# ---------------------------------------------------------------------------
# Element helpers
# ---------------------------------------------------------------------------

def _el(tag: str, **attrs: Any):
    element = OxmlElement(tag)
    for name, value in attrs.items():
        element.set(qn(f"w:{name}"), str(value))
    return element


def make_run(text: str, bold: bool = False, underline: bool = False, size: int = FONT_SIZE):
    run = OxmlElement("w:r")
    r_pr = OxmlElement("w:rPr")
    if bold:
        r_pr.append(OxmlElement("w:b"))
    if underline:
        r_pr.append(_el("w:u", val="single"))
    r_pr.append(_el("w:rFonts", ascii=FONT_NAME, hAnsi=FONT_NAME))
    r_pr.append(_el("w:sz", val=size))
    run.append(r_pr)

    t = OxmlElement("w:t")
    t.text = text
    if text != text.strip():
        t.set(qn("xml:space"), "preserve")
    run.append(t)
    return run


def make_paragraph(
    *runs,
    align: Optional[str] = None,
    space_before: Optional[int] = None,
    space_after: Optional[int] = None,
):
    p = OxmlElement("w:p")
    if align or space_before is not None or space_after is not None:
        p_pr = OxmlElement("w:pPr")
        if space_before is not None or space_after is not None:
            spacing = OxmlElement("w:spacing")
            if space_before is not None:
                spacing.set(qn("w:before"), str(space_before))
            if space_after is not None:
                spacing.set(qn("w:after"), str(space_after))
            p_pr.append(spacing)
        if align:
            p_pr.append(_el("w:jc", val=align))
        p.append(p_pr)
    for run in runs:
        p.append(run)
    return p


def _cell(
    width: Optional[int],
    paragraphs: Iterable,
    *,
    shaded: bool = False,
    grid_span: Optional[int] = None,
    margin_v: int = CELL_MARGIN,
    margin_h: int = CELL_MARGIN,
):
    tc = OxmlElement("w:tc")
    tc_pr = OxmlElement("w:tcPr")
    if width is not None:
        tc_pr.append(_el("w:tcW", w=width, type="dxa"))
    if grid_span:
        tc_pr.append(_el("w:gridSpan", val=grid_span))
    if shaded:
        tc_pr.append(_el("w:shd", val="clear", color="auto", fill=HEADER_FILL))
    tc_mar = OxmlElement("w:tcMar")
    for side, size in (("top", margin_v), ("left", margin_h), ("bottom", margin_v), ("right", margin_h)):
        tc_mar.append(_el(f"w:{side}", w=size, type="dxa"))
    tc_pr.append(tc_mar)
    tc.append(tc_pr)
    for p in paragraphs:
        tc.append(p)
    return tc


def _table(widths: Sequence[int], outer_border: int = 8):
    tbl = OxmlElement("w:tbl")
    tbl_pr = OxmlElement("w:tblPr")
    tbl_pr.append(_el("w:tblW", w=TABLE_WIDTH, type="dxa"))
    borders = OxmlElement("w:tblBorders")
    for side in ("top", "left", "bottom", "right", "insideH", "insideV"):
        size = 8 if side.startswith("inside") else outer_border
        borders.append(_el(f"w:{side}", val="single", sz=size, space=0, color="000000"))
    tbl_pr.append(borders)
    tbl_pr.append(_el("w:tblLayout", type="fixed"))
    tbl.append(tbl_pr)

    grid = OxmlElement("w:tblGrid")
    for width in widths:
        grid.append(_el("w:gridCol", w=width))
    tbl.append(grid)
    return tbl


def to_xml(element) -> str:
    return etree.tostring(element, encoding="unicode")


# ---------------------------------------------------------------------------
# Deeds table
# ---------------------------------------------------------------------------

def tabulable_deeds(deeds: Iterable[Any], catalog: TemplateCatalog) -> List[Any]:
    """Deeds whose type has a non-blank preview template, in their original order."""
    return [
        deed for deed in deeds
        if deed.deed_type and catalog.preview_for(deed.deed_type).strip()
    ]


def deed_particulars(deed: Any, catalog: TemplateCatalog) -> str:
    """Particulars text of a deed from its type's preview template."""
    return resolve(catalog.preview_for(deed.deed_type), deed)


def _deed_row_values(
    serial: int,
    deed: Any,
    columns: Sequence[TableColumn],
    column_values: ColumnValues,
    catalog: TemplateCatalog,
) -> List[str]:
    base = {
        ColumnPosition.SNO.value: str(serial),
        ColumnPosition.DATE.value: format_date_dmy(deed.date),
        ColumnPosition.DNO.value: deed.document_number or MISSING_VALUE,
        ColumnPosition.PARTICULARS.value: deed_particulars(deed, catalog),
        ColumnPosition.NATURE.value: deed.nature_of_doc or MISSING_VALUE,
    }
    stored = column_values.get(deed.id) or {}
    return [
        (stored.get(column.key) or MISSING_VALUE) if column.is_extra else base[column.key]
        for column in columns
    ]


def build_deeds_table(
    deeds: Sequence[Any],
    extra_columns: Sequence[ExtraColumn],
    column_values: ColumnValues,
    catalog: TemplateCatalog,
):
    """
    Build the deeds ``<w:tbl>`` element.

    Args:
        deeds:          Deeds to list, already filtered with ``tabulable_deeds``.
        extra_columns:  Extra column definitions in insertion order.
        column_values:  ``{deed_id: {column_name: value}}``; gaps render as ``-``.
        catalog:        Source of the preview templates for the particulars column.

    Every row, header included, has ``5 + len(extra_columns)`` cells.
    """
    columns = layout_columns(extra_columns)
    tbl = _table([column.width for column in columns])

    header = OxmlElement("w:tr")
    for column in columns:
        align = "center" if column.key == ColumnPosition.SNO.value and not column.is_extra else None
        header.append(
            _cell(column.width, [make_paragraph(make_run(column.header, bold=True), align=align)], shaded=True)
        )
    tbl.append(header)

    for serial, deed in enumerate(deeds, start=1):
        row = OxmlElement("w:tr")
        values = _deed_row_values(serial, deed, columns, column_values, catalog)
        for column, value in zip(columns, values):
            align = "center" if column.key == ColumnPosition.SNO.value and not column.is_extra else None
            row.append(_cell(column.width, [make_paragraph(make_run(value), align=align)]))
        tbl.append(row)

    logger.debug("Built deeds table: %d rows x %d columns", len(deeds), len(columns))
    return tbl


def synthesize_deeds_table(
    deeds: Sequence[Any],
    extra_columns: Sequence[ExtraColumn],
    column_values: ColumnValues,
    catalog: TemplateCatalog,
) -> str:
    """Serialized deeds table; see ``build_deeds_table``."""
    return to_xml(build_deeds_table(deeds, extra_columns, column_values, catalog))


# ---------------------------------------------------------------------------
# Document details (property schedule) block
# ---------------------------------------------------------------------------

DETAIL_WIDTHS = (700, 4150, 4150)

PROPERTY_ROWS = (
    ("i", "Survey No", "survey_no", "(Survey No)"),
    ("ii", "As per Revenue Record", "as_per_revenue_record", "(As per Revenue Record)"),
    ("iii", "Total Extent", "total_extent", "(Total Extent)"),
    ("iv", "Plot No", "plot_no", "(Plot No)"),
    (
        "v",
        "Location",
        "location",
        "(Location like name of the place, village, city registration, sub-district etc.)",
    ),
)

BOUNDARY_ROWS = (
    ("North By:", "north_by", "(North By)"),
    ("South By:", "south_by", "(South By)"),
    ("East By:", "east_by", "(East By)"),
    ("West By:", "west_by", "(West By)"),
)

MEASUREMENT_ROWS = (
    ("vi", "North - East West", "north_measurement", "30 ft"),
    ("vii", "South - East West", "south_measurement", "30 ft"),
    ("viii", "East - South North", "east_measurement", "40 ft"),
    ("ix", "West - South North", "west_measurement", "40 ft"),
)


def _value(detail: Any, attr: str, fallback: str) -> str:
    return getattr(detail, attr, None) or fallback


def _detail_row(
    numeral: str,
    label: str,
    value: str,
    *,
    centered: bool,
    margin_v: int = 220,
    total: bool = False,
):
    # The closing total row is larger and fully bold.
    align = "center" if centered else None
    size = 26 if total else FONT_SIZE
    row = OxmlElement("w:tr")
    cells = (
        (DETAIL_WIDTHS[0], make_run(numeral, bold=True, size=size), "center"),
        (DETAIL_WIDTHS[1], make_run(label, bold=True, size=size), align),
        (DETAIL_WIDTHS[2], make_run(value, bold=total, size=size), align),
    )
    for width, run, cell_align in cells:
        row.append(
            _cell(width, [make_paragraph(run, align=cell_align)], shaded=True, margin_v=margin_v, margin_h=150)
        )
    return row


def _spanning_row(paragraphs):
    row = OxmlElement("w:tr")
    row.append(_cell(None, paragraphs, shaded=True, grid_span=3, margin_v=280, margin_h=150))
    return row


def build_document_details(detail: Any) -> List:
    """Heading paragraph and schedule table for one property document."""
    heading = make_paragraph(
        make_run(f"As per Doc No : {_value(detail, 'doc_no', '(As per Doc No)')}"),
        align="center",
        space_before=280,
        space_after=160,
    )

    tbl = _table(DETAIL_WIDTHS, outer_border=12)
    for numeral, label, attr, fallback in PROPERTY_ROWS:
        tbl.append(_detail_row(numeral, label, _value(detail, attr, fallback), centered=False))

    boundaries = [
        make_paragraph(
            make_run(
                f"Boundaries for {_value(detail, 'total_extent_sq_ft', '(Total Extent)')} Sq.Ft of land",
                bold=True,
                underline=True,
                size=26,
            ),
            space_after=140,
        )
    ]
    for index, (label, attr, fallback) in enumerate(BOUNDARY_ROWS):
        is_last = index == len(BOUNDARY_ROWS) - 1
        boundaries.append(
            make_paragraph(
                make_run(label, bold=True),
                make_run(f" {_value(detail, attr, fallback)}"),
                space_after=None if is_last else 100,
            )
        )
    tbl.append(_spanning_row(boundaries))
    tbl.append(
        _spanning_row([
            make_paragraph(make_run("Measurement Details", bold=True, underline=True, size=26), space_after=140)
        ])
    )

    for numeral, label, attr, fallback in MEASUREMENT_ROWS:
        tbl.append(_detail_row(numeral, label, _value(detail, attr, fallback), centered=True))

    for label, value in (getattr(detail, "custom_measurements", None) or {}).items():
        tbl.append(_detail_row("", str(label), str(value or ""), centered=True, margin_v=200))

    tbl.append(
        _detail_row(
            "x",
            "Total Extent",
            _value(detail, "total_extent_sq_ft", "1200 Sq.Ft"),
            centered=True,
            margin_v=240,
            total=True,
        )
    )
    return [heading, tbl]


def build_document_details_tables(details: Sequence[Any]) -> str:
    """Serialized details blocks, two empty paragraphs between documents."""
    parts: List[str] = []
    for index, detail in enumerate(details):
        if index > 0:
            parts.append(to_xml(make_paragraph(make_run(""))))
            parts.append(to_xml(make_paragraph(make_run(""))))
        parts.extend(to_xml(element) for element in build_document_details(detail))
    return "".join(parts)


def column_values_by_deed(rows: Iterable[Any]) -> Dict[Any, Dict[str, str]]:
    """Group stored extra-column values as ``{deed_id: {column_name: value}}``."""
    grouped: Dict[Any, Dict[str, str]] = {}
    for row in rows:
        grouped.setdefault(row.deed_id, {})[row.column_name] = row.value
    return grouped
