"""Tests for Word template parsing."""
import io
import zipfile

import pytest

from scrutiny.exceptions import TemplateArchiveError
from scrutiny.services.template_parser import (
    CONTROL_TAG_WARNING,
    TemplateParser,
    merge_split_runs,
    normalize_table_markers,
)


def test_detects_form_fields_and_markers(make_docx):
    data = make_docx([
        "Report for {clientName}",
        "Dated {date} at { village name }",
        "{{table}}",
        "{{table1}}",
        "{$history}",
        "Signed {clientName}",
    ])
    parsed = TemplateParser().parse(data)

    assert parsed.placeholders == ["clientName", "village name"]
    assert parsed.markers == ["table", "table1", "$history"]
    assert parsed.warnings == []
    assert "Report for {clientName}" in parsed.text


def test_placeholder_split_across_runs(make_docx):
    data = make_docx([["Client: {client", "Na", "me}"], ["{{tab", "le2}}"]])
    parsed = TemplateParser().parse(data)

    assert parsed.placeholders == ["clientName"]
    assert parsed.markers == ["table2"]


def test_control_tags_produce_warning(make_docx):
    data = make_docx(["{#deeds}{name}{/deeds}", "{owner}"])
    parsed = TemplateParser().parse(data)

    assert parsed.warnings == [CONTROL_TAG_WARNING]
    assert parsed.placeholders == ["name", "owner"]


def test_reserved_names_not_offered_as_fields(make_docx):
    data = make_docx(["{sno} {deed} {deedInfo} {deeds} {history} {table3} {owner}"])
    assert TemplateParser().parse(data).placeholders == ["owner"]


def test_non_zip_rejected():
    with pytest.raises(TemplateArchiveError):
        TemplateParser().parse(b"not a word document")


def test_archive_without_document_part_rejected():
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("word/styles.xml", "<w:styles/>")
    with pytest.raises(TemplateArchiveError):
        TemplateParser().parse(buffer.getvalue())


def test_document_part_not_utf8_rejected():
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("word/document.xml", b"<w:document>\xff\xfe{name}</w:document>")
    with pytest.raises(TemplateArchiveError, match="not UTF-8"):
        TemplateParser().parse(buffer.getvalue())


def test_merge_split_runs_across_run_properties():
    xml = (
        "<w:p><w:r><w:t>{client</w:t></w:r><w:proofErr w:type=\"spellStart\"/>"
        "<w:r><w:rPr><w:b/></w:rPr><w:t xml:space=\"preserve\">Name}</w:t></w:r></w:p>"
    )
    assert merge_split_runs(xml) == "<w:p><w:r><w:t>{clientName}</w:t></w:r></w:p>"


def test_normalize_table_markers():
    assert normalize_table_markers("{{Table}} {{table4}} {{other}}") == "{table} {table4} {{other}}"
