"""Tests for deeds-table and document-details markup."""
from types import SimpleNamespace

import pytest
from docx.oxml.ns import qn

from scrutiny.services.template_catalog import TemplateCatalog
from scrutiny.services.word_tables import (
    ExtraColumn,
    build_deeds_table,
    build_document_details,
    layout_columns,
    synthesize_deeds_table,
    tabulable_deeds,
)


def _deed(id, deed_type="Sale Deed", **fields):
    defaults = dict(
        executed_by="Ravi",
        in_favour_of="Sita",
        date="2001-03-15",
        document_number=f"{id}/2001",
        nature_of_doc="Original",
        custom_fields={},
    )
    defaults.update(fields)
    return SimpleNamespace(id=id, deed_type=deed_type, **defaults)


def _catalog(**previews):
    rows = [
        SimpleNamespace(deed_type=deed_type, preview_template=template, custom_placeholders={})
        for deed_type, template in previews.items()
    ]
    return TemplateCatalog(rows, [])


@pytest.fixture
def catalog():
    return _catalog(**{
        "Sale Deed": "{deedType} executed by {executedBy} in favour of {inFavourOf}",
        "Release": "",
        "Partition": "{extent}",
    })


def _rows(tbl):
    return tbl.findall(qn("w:tr"))


def _cell_texts(row):
    return ["".join(t.text or "" for t in tc.iter(qn("w:t"))) for tc in row.findall(qn("w:tc"))]


def test_base_layout_without_extra_columns():
    headers = [c.header for c in layout_columns()]
    assert headers == ["Sno", "Date", "D.No", "Particulars of Deed", "Nature of Doc"]


def test_extra_columns_follow_anchor_in_insertion_order():
    columns = layout_columns([
        ExtraColumn("Remarks", "nature"),
        ExtraColumn("Location", "date"),
        ExtraColumn("Village", "date"),
        ExtraColumn("Book", "sno"),
    ])
    assert [c.header for c in columns] == [
        "Sno", "Book", "Date", "Location", "Village", "D.No",
        "Particulars of Deed", "Nature of Doc", "Remarks",
    ]
    assert [c.width for c in columns if c.is_extra] == [1200, 1200, 1200, 1200]


def test_unknown_anchor_rejected():
    with pytest.raises(ValueError):
        ExtraColumn("Bad", "footer")


@pytest.mark.parametrize("k", [0, 1, 3])
def test_every_row_has_five_plus_k_cells(catalog, k):
    extras = [ExtraColumn(f"Col{i}", "particulars") for i in range(k)]
    deeds = [_deed(1), _deed(2), _deed(3)]
    tbl = build_deeds_table(deeds, extras, {}, catalog)

    rows = _rows(tbl)
    assert len(rows) == 1 + len(deeds)
    for row in rows:
        assert len(row.findall(qn("w:tc"))) == 5 + k
    assert len(tbl.find(qn("w:tblGrid")).findall(qn("w:gridCol"))) == 5 + k


def test_data_rows_keep_input_order(catalog):
    deeds = [_deed(7, executed_by="C"), _deed(3, executed_by="A"), _deed(5, executed_by="B")]
    rows = _rows(build_deeds_table(deeds, [], {}, catalog))[1:]
    assert [_cell_texts(r)[0] for r in rows] == ["1", "2", "3"]
    assert [_cell_texts(r)[2] for r in rows] == ["7/2001", "3/2001", "5/2001"]


def test_data_row_values(catalog):
    rows = _rows(build_deeds_table([_deed(1, nature_of_doc="")], [], {}, catalog))
    assert _cell_texts(rows[0])[0] == "Sno"
    assert _cell_texts(rows[1]) == [
        "1",
        "15/03/2001",
        "1/2001",
        "Sale Deed executed by Ravi in favour of Sita",
        "-",
    ]


def test_deeds_without_preview_template_filtered_out(catalog):
    deeds = [
        _deed(1),
        _deed(2, deed_type="Release"),
        _deed(3, deed_type="Partition"),
        _deed(4, deed_type=""),
        _deed(5, deed_type="Unknown"),
    ]
    kept = tabulable_deeds(deeds, catalog)
    assert [d.id for d in kept] == [1, 3]

    rows = _rows(build_deeds_table(kept, [], {}, catalog))
    assert len(rows) == 3
    assert _cell_texts(rows[1])[0] == "1"
    assert _cell_texts(rows[2])[0] == "2"
    assert _cell_texts(rows[2])[3] == ""


def test_missing_extra_value_renders_dash(catalog):
    extras = [ExtraColumn("Location", "date")]
    rows = _rows(build_deeds_table([_deed(1)], extras, {}, catalog))
    assert _cell_texts(rows[0])[2] == "Location"
    assert _cell_texts(rows[1])[2] == "-"


def test_extra_value_looked_up_by_deed_and_column(catalog):
    extras = [ExtraColumn("Location", "date"), ExtraColumn("Remarks", "nature")]
    values = {2: {"Location": "Kolar"}, 1: {"Remarks": "Verified"}}
    rows = _rows(build_deeds_table([_deed(1), _deed(2)], extras, values, catalog))
    assert _cell_texts(rows[1])[2] == "-"
    assert _cell_texts(rows[1])[-1] == "Verified"
    assert _cell_texts(rows[2])[2] == "Kolar"
    assert _cell_texts(rows[2])[-1] == "-"


def test_header_cells_bold_and_shaded(catalog):
    header = _rows(build_deeds_table([_deed(1)], [], {}, catalog))[0]
    for tc in header.findall(qn("w:tc")):
        assert tc.find(f"{qn('w:tcPr')}/{qn('w:shd')}").get(qn("w:fill")) == "FFFFFF"
        assert tc.find(f".//{qn('w:rPr')}/{qn('w:b')}") is not None


def test_synthesized_markup_is_a_table_block(catalog):
    xml = synthesize_deeds_table([_deed(1)], [], {}, catalog)
    assert xml.startswith("<w:tbl")
    assert xml.endswith("</w:tbl>")
    assert 'w:type="fixed"' in xml


def test_document_details_fall_back_to_labels():
    detail = SimpleNamespace(doc_no="", survey_no="12/3", location="", custom_measurements={"Diagonal": "50 ft"})
    heading, tbl = build_document_details(detail)

    assert "".join(t.text for t in heading.iter(qn("w:t"))) == "As per Doc No : (As per Doc No)"
    texts = [_cell_texts(row) for row in _rows(tbl)]
    assert texts[0] == ["i", "Survey No", "12/3"]
    assert texts[3] == ["iv", "Plot No", "(Plot No)"]
    assert ["", "Diagonal", "50 ft"] in texts
    assert texts[-1] == ["x", "Total Extent", "1200 Sq.Ft"]


def _run_props(row):
    return [tc.find(f".//{qn('w:rPr')}") for tc in row.findall(qn("w:tc"))]


def _margin_top(row):
    return row.find(f".//{qn('w:tcMar')}/{qn('w:top')}").get(qn("w:w"))


def test_document_details_section_formatting():
    detail = SimpleNamespace(total_extent_sq_ft="2400", custom_measurements={})
    _, tbl = build_document_details(detail)
    rows = _rows(tbl)

    boundaries, measurement = rows[5], rows[6]
    for row, text in ((boundaries, "Boundaries for 2400 Sq.Ft of land"), (measurement, "Measurement Details")):
        assert _cell_texts(row)[0].startswith(text)
        assert _margin_top(row) == "280"
        r_pr = _run_props(row)[0]
        assert r_pr.find(qn("w:b")) is not None
        assert r_pr.find(qn("w:u")).get(qn("w:val")) == "single"
        assert r_pr.find(qn("w:sz")).get(qn("w:val")) == "26"

    total = rows[-1]
    assert _cell_texts(total) == ["x", "Total Extent", "2400"]
    assert _margin_top(total) == "240"
    for r_pr in _run_props(total):
        assert r_pr.find(qn("w:b")) is not None
        assert r_pr.find(qn("w:sz")).get(qn("w:val")) == "26"

    survey = rows[0]
    assert _margin_top(survey) == "220"
    assert _run_props(survey)[0].find(qn("w:sz")).get(qn("w:val")) == "24"
    assert _run_props(survey)[0].find(qn("w:u")) is None
