"""
History-of-title narrative assembly.

Each deed of the main table is rendered through its type's history template
and the paragraphs are joined in table order.  The result replaces the
``{$history}`` marker of the Word template.
"""
from __future__ import annotations

import logging
from typing import Any, List, Sequence

from scrutiny.services.placeholders import resolve
from scrutiny.services.template_catalog import TemplateCatalog
from scrutiny.services.word_tables import make_paragraph, make_run, to_xml

logger = logging.getLogger(__name__)

PARAGRAPH_SEPARATOR = "\n\n"


def assemble_history(deeds: Sequence[Any], catalog: TemplateCatalog) -> str:
    """
    Join the resolved history paragraphs of *deeds*.

    Deeds without a type are skipped and do not take a serial number; deeds
    whose type has no history template take a serial number but add no text.
    ``{serialNo}`` is the 1-based position among typed deeds and ``{date}``
    is rendered as DD/MM/YYYY.
    """
    parts: List[str] = []
    serial = 0
    for deed in deeds:
        if not deed.deed_type:
            continue
        serial += 1

        template = catalog.history_for(deed.deed_type)
        if not template:
            logger.debug("No history template for deed type %r", deed.deed_type)
            continue

        text = resolve(template, deed, format_dates=True, serial_no=serial)
        if text:
            parts.append(text)

    return PARAGRAPH_SEPARATOR.join(parts)


def history_to_paragraphs(text: str) -> str:
    """One justified Cambria 12pt paragraph per line of *text*."""
    return "".join(
        to_xml(make_paragraph(make_run(line), align="both")) for line in text.split("\n")
    )
