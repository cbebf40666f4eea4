"""
Word template parsing.

Reads ``word/document.xml`` out of an uploaded ``.docx``, glues runs that
Word split in the middle of a placeholder, and reports the form fields,
document markers and unsupported control tags found in the body.
"""
from __future__ import annotations

import html
import io
import logging
import re
import zipfile
from dataclasses import dataclass, field
from typing import List

import aiofiles

from scrutiny.exceptions import TemplateArchiveError

logger = logging.getLogger(__name__)

DOCUMENT_PART = "word/document.xml"

# Run boundary between two text nodes, optionally with the second run's
# properties and Word's spell-check bookmarks in between
_RUN_BOUNDARY = re.compile(
    r"</w:t></w:r>(?:<w:proofErr[^>]*/>)*"
    r"<w:r(?:\s[^>]*)?>(?:<w:rPr>(?:(?!</w:rPr>).)*</w:rPr>)?<w:t(?:\s[^>]*)?>",
    re.DOTALL,
)
_PARAGRAPH_OPEN = re.compile(r"<w:p(?:\s[^>]*)?>")
_TAG = re.compile(r"<[^>]+>")
_FORM_FIELD = re.compile(r"\{([^{}]+)\}")
_CONTROL_TAG = re.compile(r"\{[#/^].+?\}")
_DOUBLE_TABLE = re.compile(r"\{\{(table[1-4]?)\}\}", re.IGNORECASE)
_HISTORY_MARKER = re.compile(r"\{\$history\}", re.IGNORECASE)

TABLE_MARKERS = ("table", "table1", "table2", "table3", "table4")
HISTORY_MARKER = "$history"

# Filled by the deeds tables and the history block, never offered as form fields
EXCLUDED_FORM_FIELDS = frozenset(
    {"sno", "date", "deed", "deedinfo", "deeds", "history", HISTORY_MARKER, *TABLE_MARKERS}
)
CONTROL_SIGILS = ("#", "/", "^", "$")

CONTROL_TAG_WARNING = (
    "Template uses unsupported loop/control tags. Use {{table}} for the deeds table."
)


@dataclass
class ParsedTemplate:
    """
    Output of the TemplateParser.

    Attributes:
        text:          Readable body text, one line per paragraph.
        placeholders:  Form field names in order of first appearance.
        markers:       Table/history markers present (``table``, ``table1`` ...,
                       ``$history``).
        warnings:      Non-fatal problems to show the user.
    """

    text: str
    placeholders: List[str] = field(default_factory=list)
    markers: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def read_document_xml(data: bytes) -> str:
    """Return the main document part of a ``.docx`` archive as text."""
    try:
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            raw = archive.read(DOCUMENT_PART)
    except zipfile.BadZipFile as exc:
        raise TemplateArchiveError("File is not a valid .docx archive.") from exc
    except KeyError as exc:
        raise TemplateArchiveError(f"Invalid .docx: missing {DOCUMENT_PART}") from exc
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise TemplateArchiveError(f"Invalid .docx: {DOCUMENT_PART} is not UTF-8 encoded") from exc


def merge_split_runs(xml: str) -> str:
    """Join adjacent runs so placeholders typed across runs become contiguous."""
    return _RUN_BOUNDARY.sub("", xml)


def normalize_table_markers(xml: str) -> str:
    """``{{table}}`` -> ``{table}``, likewise for ``table1`` .. ``table4``."""
    return _DOUBLE_TABLE.sub(lambda m: "{" + m.group(1).lower() + "}", xml)


def body_text(xml: str) -> str:
    """Readable text of the body markup: paragraphs become lines, tags are dropped."""
    text = _PARAGRAPH_OPEN.sub("\n", xml)
    text = _TAG.sub("", text)
    text = html.unescape(text)
    return text.replace("“", '"').replace("”", '"').replace("‘", "'").replace("’", "'")


def detect_form_fields(text: str) -> List[str]:
    fields: dict = {}
    for match in _FORM_FIELD.finditer(text):
        key = match.group(1).strip()
        if not key or key.startswith(CONTROL_SIGILS):
            continue
        if key.lower() in EXCLUDED_FORM_FIELDS:
            continue
        fields.setdefault(key, None)
    return list(fields)


def detect_markers(text: str) -> List[str]:
    markers = []
    normalized = normalize_table_markers(text).lower()
    for name in TABLE_MARKERS:
        if "{" + name + "}" in normalized:
            markers.append(name)
    if _HISTORY_MARKER.search(text):
        markers.append(HISTORY_MARKER)
    return markers


class TemplateParser:
    """Parses uploaded Word templates into ParsedTemplate objects."""

    def parse(self, data: bytes) -> ParsedTemplate:
        """
        Parse template bytes.

        Raises:
            TemplateArchiveError: not a zip archive, or no document part.
        """
        xml = merge_split_runs(read_document_xml(data))
        text = body_text(xml)

        warnings: List[str] = []
        control_tags = _CONTROL_TAG.findall(text)
        if control_tags:
            logger.warning("Unsupported control tags detected: %s", control_tags)
            warnings.append(CONTROL_TAG_WARNING)

        parsed = ParsedTemplate(
            text=text,
            placeholders=detect_form_fields(text),
            markers=detect_markers(text),
            warnings=warnings,
        )
        logger.info(
            "Template parsed: %d field(s), markers=%s",
            len(parsed.placeholders),
            parsed.markers,
        )
        return parsed

    async def parse_file(self, file_path: str) -> ParsedTemplate:
        async with aiofiles.open(file_path, "rb") as fh:
            data = await fh.read()
        return self.parse(data)
