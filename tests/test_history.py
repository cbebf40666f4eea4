"""Tests for history-of-title assembly."""
from types import SimpleNamespace

from scrutiny.services.history import assemble_history, history_to_paragraphs
from scrutiny.services.template_catalog import TemplateCatalog


def _deed(deed_type, **fields):
    defaults = dict(
        executed_by="Ravi",
        in_favour_of="Sita",
        date="2001-03-15",
        document_number="10/2001",
        nature_of_doc="Original",
        custom_fields={},
    )
    defaults.update(fields)
    return SimpleNamespace(deed_type=deed_type, **defaults)


def _catalog(**histories):
    rows = [
        SimpleNamespace(deed_type=deed_type, template_content=template)
        for deed_type, template in histories.items()
    ]
    return TemplateCatalog([], rows)


def test_untyped_deed_skipped_without_consuming_serial():
    catalog = _catalog(X="{serialNo}. {deedType} dated {date} by {executedBy}")
    deeds = [_deed("X"), _deed("")]
    assert assemble_history(deeds, catalog) == "1. X dated 15/03/2001 by Ravi"


def test_serial_counts_typed_deeds_without_template():
    catalog = _catalog(X="{serialNo}. {deedType}")
    deeds = [_deed(""), _deed("Y"), _deed("X")]
    assert assemble_history(deeds, catalog) == "2. X"


def test_paragraphs_joined_by_blank_line_in_order():
    catalog = _catalog(Sale="{serialNo}: sale to {inFavourOf}", Gift="{serialNo}: gift of {extent}")
    deeds = [
        _deed("Sale", in_favour_of="A"),
        _deed("gift ", custom_fields={"extent": "1 acre"}),
        _deed("SALE", in_favour_of="B"),
    ]
    assert assemble_history(deeds, catalog) == (
        "1: sale to A\n\n2: gift of 1 acre\n\n3: sale to B"
    )


def test_no_history_templates_gives_empty_text():
    assert assemble_history([_deed("X")], _catalog()) == ""


def test_history_paragraphs_are_justified():
    xml = history_to_paragraphs("first\n\nsecond")
    assert xml.count("</w:p>") == 3
    assert xml.count('w:val="both"') == 3
    assert ">first<" in xml and ">second<" in xml
