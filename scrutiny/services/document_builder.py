"""
Report generation: fills a Word template and returns the new ``.docx`` bytes.

Order of operations on ``word/document.xml``:

1. merge split runs and normalise ``{{tableN}}`` markers to ``{tableN}``;
2. substitute the form field values;
3. splice the deeds tables, the document-details block and the history
   paragraphs in place of their markers;
4. write the archive back with every other part untouched.

Form values go in before the tables so that text coming out of deed templates
is never treated as a form field.
"""
from __future__ import annotations

import io
import logging
import re
import zipfile
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence
from xml.sax.saxutils import escape

from scrutiny.models.database_models import TableType
from scrutiny.services.history import assemble_history, history_to_paragraphs
from scrutiny.services.template_catalog import TemplateCatalog
from scrutiny.services.template_parser import (
    CONTROL_SIGILS,
    DOCUMENT_PART,
    EXCLUDED_FORM_FIELDS,
    merge_split_runs,
    normalize_table_markers,
    read_document_xml,
)
from scrutiny.services.word_tables import (
    ColumnValues,
    ExtraColumn,
    build_document_details_tables,
    synthesize_deeds_table,
    tabulable_deeds,
)

logger = logging.getLogger(__name__)

# Closes the paragraph holding a marker and reopens one after the spliced block
BLOCK_OPEN = "</w:t></w:r></w:p>"
BLOCK_CLOSE = '<w:p><w:r><w:t xml:space="preserve">'

_FIELD_IN_TEXT = re.compile(r"\{([^{}<>]+)\}")

NO_DEEDS_MESSAGE = "No deeds added yet"
NO_DOCUMENTS_MESSAGE = "No document details added yet"

# Deed tables that fall back to one document-details block when empty:
# table type -> (document index, message when that document is missing too)
DOCUMENT_FALLBACKS = {
    TableType.TABLE2.value: (0, NO_DOCUMENTS_MESSAGE),
    TableType.TABLE3.value: (1, "No second document added yet"),
    TableType.TABLE4.value: (2, "No third document added yet"),
}


@dataclass
class DeedTableInput:
    """Everything needed to draw one deeds table."""

    deeds: Sequence[Any] = ()
    columns: Sequence[ExtraColumn] = ()
    values: ColumnValues = field(default_factory=dict)


@dataclass
class GenerationInput:
    form_values: Mapping[str, str]
    catalog: TemplateCatalog
    tables: Mapping[str, DeedTableInput] = field(default_factory=dict)
    documents: Sequence[Any] = ()
    form_fields: Sequence[str] = ()


def _escape_value(value: str) -> str:
    # Line breaks become Word breaks inside the same run
    escaped = escape(value)
    return escaped.replace("\n", '</w:t><w:br/><w:t xml:space="preserve">')


def render_form_fields(
    xml: str, values: Mapping[str, Any], known_fields: Sequence[str] = ()
) -> str:
    """
    Replace ``{field}`` tokens of the body with form values.

    Fields detected in the template but left blank render empty; control tags,
    markers and tokens that are not form fields are kept as they are.
    """
    known = set(known_fields)

    def _replace(match: re.Match) -> str:
        key = match.group(1).strip()
        if key.startswith(CONTROL_SIGILS) or key.lower() in EXCLUDED_FORM_FIELDS:
            return match.group(0)
        if key in values:
            value = values[key]
            return _escape_value("" if value is None else str(value))
        if key in known:
            return ""
        return match.group(0)

    return _FIELD_IN_TEXT.sub(_replace, xml)


def _marker_pattern(name: str) -> re.Pattern:
    return re.compile(re.escape("{" + name + "}"), re.IGNORECASE)


def has_marker(xml: str, name: str) -> bool:
    return _marker_pattern(name).search(xml) is not None


def splice_block(xml: str, name: str, block: str) -> str:
    """Put *block* where ``{name}`` stands, as a sibling of the enclosing paragraph."""
    replacement = BLOCK_OPEN + block + BLOCK_CLOSE
    return _marker_pattern(name).sub(lambda _m: replacement, xml)


def replace_marker_text(xml: str, name: str, text: str) -> str:
    replacement = escape(text)
    return _marker_pattern(name).sub(lambda _m: replacement, xml)


def rewrite_archive(template: bytes, document_xml: str) -> bytes:
    """Copy *template* with its main document part replaced."""
    output = io.BytesIO()
    with zipfile.ZipFile(io.BytesIO(template)) as source, zipfile.ZipFile(
        output, "w", zipfile.ZIP_DEFLATED
    ) as target:
        for info in source.infolist():
            if info.filename == DOCUMENT_PART:
                target.writestr(info, document_xml.encode("utf-8"))
            else:
                target.writestr(info, source.read(info.filename))
    return output.getvalue()


class DocumentBuilder:
    """Fills uploaded Word templates with form values, deeds tables and history."""

    def build(self, template: bytes, data: GenerationInput) -> bytes:
        """
        Generate the report.

        Raises:
            TemplateArchiveError: the template has no readable document part.
        """
        xml = read_document_xml(template)
        xml = normalize_table_markers(merge_split_runs(xml))
        xml = render_form_fields(xml, data.form_values, data.form_fields)

        xml = self._splice_deed_tables(xml, data)
        xml = self._splice_document_details(xml, data.documents)
        xml = self._splice_history(xml, data)

        return rewrite_archive(template, xml)

    def _splice_deed_tables(self, xml: str, data: GenerationInput) -> str:
        for table_type in TableType:
            name = table_type.value
            if not has_marker(xml, name):
                continue

            table = data.tables.get(name) or DeedTableInput()
            rows = tabulable_deeds(table.deeds, data.catalog)
            if rows:
                block = synthesize_deeds_table(rows, table.columns, table.values, data.catalog)
                xml = splice_block(xml, name, block)
                logger.info("Spliced {%s}: %d deed row(s)", name, len(rows))
                continue

            fallback = DOCUMENT_FALLBACKS.get(name)
            if fallback is None:
                xml = replace_marker_text(xml, name, NO_DEEDS_MESSAGE)
                continue

            index, message = fallback
            if len(data.documents) > index:
                block = build_document_details_tables([data.documents[index]])
                xml = splice_block(xml, name, block)
            else:
                xml = replace_marker_text(xml, name, message)
        return xml

    def _splice_document_details(self, xml: str, documents: Sequence[Any]) -> str:
        if not has_marker(xml, "table1"):
            return xml
        if not documents:
            return replace_marker_text(xml, "table1", NO_DOCUMENTS_MESSAGE)
        return splice_block(xml, "table1", build_document_details_tables(documents))

    def _splice_history(self, xml: str, data: GenerationInput) -> str:
        if not has_marker(xml, "$history"):
            return xml
        main = data.tables.get(TableType.TABLE.value) or DeedTableInput()
        text = assemble_history(main.deeds, data.catalog)
        if not text:
            return replace_marker_text(xml, "$history", "")
        return splice_block(xml, "$history", history_to_paragraphs(text))
