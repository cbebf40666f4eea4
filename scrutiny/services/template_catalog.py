"""
Lookup of preview and history templates by deed type.

The catalog is built once per request.  At construction it derives, for every
deed type, the set of custom-field keys its templates declare, so callers check
a deed's custom fields against an explicit contract instead of re-scanning
template text on every access.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from scrutiny.exceptions import UnknownCustomFieldError
from scrutiny.models.database_models import DeedTemplate, HistoryTemplate
from scrutiny.services.placeholders import derive_extra_keys

logger = logging.getLogger(__name__)


def normalize_deed_type(deed_type: Optional[str]) -> str:
    """Templates are keyed case- and whitespace-insensitively."""
    return str(deed_type or "").strip().lower()


@dataclass
class TemplateEntry:
    """Templates and derived custom-field keys of one deed type."""

    deed_type: str
    preview_template: str = ""
    history_template: str = ""
    defaults: Dict[str, str] = field(default_factory=dict)
    extra_keys: List[str] = field(default_factory=list)


class TemplateCatalog:
    """Preview/history templates indexed by normalized deed type."""

    def __init__(
        self,
        preview_templates: Iterable[Any] = (),
        history_templates: Iterable[Any] = (),
    ) -> None:
        self._entries: Dict[str, TemplateEntry] = {}

        for row in preview_templates:
            entry = self._entry(row.deed_type)
            entry.preview_template = row.preview_template or ""
            entry.defaults = {
                str(k): "" if v is None else str(v)
                for k, v in (row.custom_placeholders or {}).items()
            }

        for row in history_templates:
            self._entry(row.deed_type).history_template = row.template_content or ""

        for entry in self._entries.values():
            entry.extra_keys = derive_extra_keys(entry.preview_template, entry.history_template)

    @classmethod
    async def load(cls, db: AsyncSession) -> "TemplateCatalog":
        """Read both template stores."""
        previews = (await db.execute(select(DeedTemplate))).scalars().all()
        histories = (await db.execute(select(HistoryTemplate))).scalars().all()
        logger.debug(
            "Loaded %d preview and %d history templates", len(previews), len(histories)
        )
        return cls(previews, histories)

    def _entry(self, deed_type: str) -> TemplateEntry:
        key = normalize_deed_type(deed_type)
        if key not in self._entries:
            self._entries[key] = TemplateEntry(deed_type=str(deed_type).strip())
        return self._entries[key]

    def get(self, deed_type: Optional[str]) -> Optional[TemplateEntry]:
        return self._entries.get(normalize_deed_type(deed_type))

    def preview_for(self, deed_type: Optional[str]) -> str:
        entry = self.get(deed_type)
        return entry.preview_template if entry else ""

    def history_for(self, deed_type: Optional[str]) -> str:
        entry = self.get(deed_type)
        return entry.history_template if entry else ""

    def extra_keys(self, deed_type: Optional[str]) -> List[str]:
        entry = self.get(deed_type)
        return list(entry.extra_keys) if entry else []

    def initial_custom_fields(self, deed_type: Optional[str]) -> Dict[str, str]:
        """Custom fields for a deed that just switched to *deed_type*."""
        entry = self.get(deed_type)
        if entry is None:
            return {}
        return {key: entry.defaults.get(key, "") for key in entry.extra_keys}

    def validate_custom_fields(self, deed_type: Optional[str], keys: Iterable[str]) -> None:
        """
        Raise UnknownCustomFieldError for keys the deed type's templates do not declare.
        """
        allowed = set(self.extra_keys(deed_type))
        unknown = {key for key in keys if key not in allowed}
        if unknown:
            raise UnknownCustomFieldError(str(deed_type or ""), unknown)
