"""
Placeholder resolution for deed particulars and history-of-title text.

Templates carry flat ``{name}`` tokens.  A token is replaced when its name is
one of the deed's fixed fields or a key of the extra-values map; anything else
is left in the output verbatim, so a template with a typo still renders and the
broken token stays visible to the reader.

Matching rules
--------------
- ``deedType``, ``date``, ``documentNumber``, ``natureOfDoc``: exact case.
- ``executedBy``, ``inFavourOf``: any case (older templates were authored
  inconsistently); the value falls back to the custom field of the same name.
- ``extent``, ``surveyNo``: read from the custom fields, empty when missing.
- Everything else: the extra-values map, compared case-insensitively.
- ``table``, ``table1`` .. ``table4`` and ``history`` are document markers and
  are never substituted.
"""
from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

# Word characters only, so control tags like {#items} or {$history} never match
PLACEHOLDER_PATTERN = re.compile(r"\{([A-Za-z0-9_]+)\}")

RESERVED_NAMES = frozenset({"table", "table1", "table2", "table3", "table4", "history"})

# Fixed fields matched with exact case: token -> deed attribute
FIXED_FIELDS: Dict[str, str] = {
    "deedType": "deed_type",
    "date": "date",
    "documentNumber": "document_number",
    "natureOfDoc": "nature_of_doc",
}

# Legacy party names matched in any case: lowercased token -> (attribute, custom key)
LEGACY_FIELDS: Dict[str, tuple] = {
    "executedby": ("executed_by", "executedBy"),
    "infavourof": ("in_favour_of", "inFavourOf"),
}

CONVENIENCE_FIELDS = ("extent", "surveyNo")

SERIAL_FIELD = "serialNo"

# Never offered as per-deed custom fields; the deed row or the table supplies them
EXCLUDED_EXTRA_FIELDS = frozenset({"deedType", "date", "documentNumber", "natureOfDoc", SERIAL_FIELD})


def extract_placeholders(template: Optional[str]) -> List[str]:
    """Return the distinct ``{name}`` tokens of *template* in order of appearance."""
    if not template:
        return []
    seen: Dict[str, None] = {}
    for match in PLACEHOLDER_PATTERN.finditer(template):
        seen.setdefault(match.group(1), None)
    return list(seen)


def derive_extra_keys(*templates: Optional[str]) -> List[str]:
    """
    Union of the placeholders of *templates*, minus the fixed deed fields.

    This is the declared custom-field key set of a deed type: the preview and
    history templates together decide which extra values a deed can carry.
    """
    keys: Dict[str, None] = {}
    for template in templates:
        for name in extract_placeholders(template):
            if name not in EXCLUDED_EXTRA_FIELDS:
                keys.setdefault(name, None)
    return list(keys)


def format_date_dmy(value: Any) -> str:
    """Render an ISO date as DD/MM/YYYY; ``-`` when empty, unchanged when unparseable."""
    if not value:
        return "-"
    text = str(value).strip()
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        try:
            parsed = datetime.strptime(text[:10], "%Y-%m-%d")
        except ValueError:
            return text
    return parsed.strftime("%d/%m/%Y")


def _as_text(value: Any) -> str:
    return "" if value is None else str(value)


def resolve(
    template: Optional[str],
    deed: Any,
    extra_values: Optional[Mapping[str, Any]] = None,
    *,
    format_dates: bool = False,
    serial_no: Optional[int] = None,
) -> str:
    """
    Substitute the deed's values into *template*.

    Args:
        template:      Text with ``{name}`` tokens.
        deed:          Object exposing the deed attributes (``deed_type``,
                       ``executed_by``, ``in_favour_of``, ``date``,
                       ``document_number``, ``nature_of_doc``, ``custom_fields``).
        extra_values:  Open key/value map for the remaining tokens; defaults to
                       the deed's ``custom_fields``.
        format_dates:  Render ``{date}`` as DD/MM/YYYY instead of the raw value.
        serial_no:     Value for ``{serialNo}``; the token is left alone when None.

    Returns:
        The substituted text. Unknown tokens are kept as written.
    """
    if not template:
        return ""

    custom: Mapping[str, Any] = getattr(deed, "custom_fields", None) or {}
    if extra_values is None:
        extra_values = custom

    # First spelling wins when a key appears in several cases
    extras: Dict[str, str] = {}
    for key, value in extra_values.items():
        extras.setdefault(str(key).lower(), _as_text(value))

    def _lookup(name: str) -> Optional[str]:
        lowered = name.lower()
        if lowered in RESERVED_NAMES:
            return None
        if name == SERIAL_FIELD and serial_no is not None:
            return str(serial_no)

        attr = FIXED_FIELDS.get(name)
        if attr is not None:
            value = getattr(deed, attr, None)
            if attr == "date" and format_dates:
                return format_date_dmy(value)
            return _as_text(value)

        legacy = LEGACY_FIELDS.get(lowered)
        if legacy is not None:
            attr, custom_key = legacy
            return _as_text(getattr(deed, attr, None) or custom.get(custom_key))

        if name in CONVENIENCE_FIELDS:
            return _as_text(custom.get(name))

        return extras.get(lowered)

    def _replace(match: re.Match) -> str:
        value = _lookup(match.group(1))
        return match.group(0) if value is None else value

    return PLACEHOLDER_PATTERN.sub(_replace, template)


def unresolved_placeholders(text: str, names: Iterable[str] = ()) -> List[str]:
    """Tokens still present in *text*, optionally restricted to *names*."""
    found = extract_placeholders(text)
    wanted = set(names)
    return [name for name in found if not wanted or name in wanted]
