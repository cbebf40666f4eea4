"""
Report generation endpoints.

POST /generate - fill a stored Word template and download the .docx
POST /history  - history-of-title narrative of the main deeds table
"""
from __future__ import annotations

import logging
import os
import re

import aiofiles
from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from scrutiny.config import settings
from scrutiny.database import get_db
from scrutiny.exceptions import TemplateArchiveError
from scrutiny.models.database_models import TableType
from scrutiny.models.schemas import GenerateRequest, HistoryResponse
from scrutiny.routers.templates import get_template_or_404
from scrutiny.services import records
from scrutiny.services.document_builder import DocumentBuilder, GenerationInput
from scrutiny.services.history import assemble_history
from scrutiny.services.template_catalog import TemplateCatalog

logger = logging.getLogger(__name__)

router = APIRouter()

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

_UNSAFE_FILENAME = re.compile(r"[^A-Za-z0-9._ -]+")


def _download_name(requested: str | None) -> str:
    name = _UNSAFE_FILENAME.sub("_", (requested or "").strip()) or settings.DEFAULT_DOCUMENT_NAME
    if not name.lower().endswith(".docx"):
        name += ".docx"
    return name


@router.post("/generate")
async def generate_document(
    body: GenerateRequest,
    db: AsyncSession = Depends(get_db),
) -> Response:
    """
    Fill the template with the form values, the deeds tables, the document
    details and the history narrative. Returns the ``.docx`` as an attachment.
    """
    template = await get_template_or_404(db, body.template_id)
    if not os.path.exists(template.file_path):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"File for template {template.id} is missing from storage.",
        )

    async with aiofiles.open(template.file_path, "rb") as fh:
        template_bytes = await fh.read()

    data = GenerationInput(
        form_values=body.placeholders,
        catalog=await TemplateCatalog.load(db),
        tables=await records.load_all_tables(db),
        documents=body.documents,
        form_fields=template.placeholders or [],
    )

    try:
        content = DocumentBuilder().build(template_bytes, data)
    except TemplateArchiveError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        )

    file_name = _download_name(body.file_name)
    logger.info(
        "Generated %r from template id=%d (%s bytes)", file_name, template.id, f"{len(content):,}"
    )
    return Response(
        content=content,
        media_type=DOCX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{file_name}"'},
    )


@router.post("/history", response_model=HistoryResponse)
async def build_history(db: AsyncSession = Depends(get_db)) -> HistoryResponse:
    """Narrative text that would replace ``{$history}``."""
    deeds = await records.list_deeds(db, TableType.TABLE.value)
    catalog = await TemplateCatalog.load(db)
    return HistoryResponse(
        history=assemble_history(deeds, catalog),
        deed_count=sum(1 for d in deeds if d.deed_type),
    )
