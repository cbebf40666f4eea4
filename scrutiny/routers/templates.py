"""
Word template upload and management endpoints.

POST   /upload  - store a .docx and detect its form fields and markers
GET    /        - list templates
GET    /{id}    - template detail with detected placeholders
DELETE /{id}    - delete template record and file from disk
"""
from __future__ import annotations

import logging
import os
import uuid
from pathlib import Path
from typing import List, Optional

import aiofiles
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from scrutiny.config import settings
from scrutiny.database import get_db
from scrutiny.exceptions import TemplateArchiveError
from scrutiny.models.database_models import DocumentTemplate
from scrutiny.models.schemas import DocumentTemplateResponse
from scrutiny.services.template_parser import TemplateParser

logger = logging.getLogger(__name__)

router = APIRouter()


def _safe_remove(path: str) -> None:
    try:
        if path and os.path.exists(path):
            os.remove(path)
    except OSError as exc:
        logger.warning("Could not remove file %r: %s", path, exc)


async def get_template_or_404(db: AsyncSession, template_id: int) -> DocumentTemplate:
    result = await db.execute(select(DocumentTemplate).where(DocumentTemplate.id == template_id))
    template = result.scalar_one_or_none()
    if template is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Template {template_id} not found.",
        )
    return template


@router.post(
    "/upload",
    response_model=DocumentTemplateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_template(
    file: UploadFile = File(...),
    template_name: Optional[str] = Form(None),
    db: AsyncSession = Depends(get_db),
) -> DocumentTemplateResponse:
    """
    Upload a Word template and detect its placeholders.

    - Only ``.docx`` is accepted; size capped by MAX_FILE_SIZE
    - Stored under UPLOAD_DIR with a UUID filename
    - Unsupported control tags produce warnings, not errors
    """
    if not file.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Upload must include a filename.",
        )

    file_ext = Path(file.filename).suffix.lower()
    if file_ext not in settings.SUPPORTED_FILE_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=(
                f"Unsupported file type '{file_ext}'. "
                f"Accepted: {', '.join(settings.SUPPORTED_FILE_TYPES)}"
            ),
        )

    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    stored_name = f"{uuid.uuid4().hex}{file_ext}"
    file_path = os.path.join(settings.UPLOAD_DIR, stored_name)
    file_size = 0

    # Stream to disk while enforcing the size limit
    async with aiofiles.open(file_path, "wb") as out:
        while True:
            chunk = await file.read(1024 * 1024)
            if not chunk:
                break
            file_size += len(chunk)
            if file_size > settings.MAX_FILE_SIZE:
                await out.close()
                _safe_remove(file_path)
                raise HTTPException(
                    status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                    detail=(
                        f"File exceeds the {settings.MAX_FILE_SIZE // (1024 * 1024)} MB "
                        "size limit."
                    ),
                )
            await out.write(chunk)

    logger.info("Saved %r -> %s (%s bytes)", file.filename, file_path, f"{file_size:,}")

    try:
        parsed = await TemplateParser().parse_file(file_path)
    except TemplateArchiveError as exc:
        _safe_remove(file_path)
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        )

    template = DocumentTemplate(
        template_name=(template_name or "").strip() or Path(file.filename).stem,
        file_name=file.filename,
        file_path=file_path,
        placeholders=parsed.placeholders,
        markers=parsed.markers,
        warnings=parsed.warnings,
    )
    db.add(template)
    await db.flush()

    logger.info(
        "Template %r stored as id=%d with %d placeholder(s)",
        template.template_name,
        template.id,
        len(parsed.placeholders),
    )
    return DocumentTemplateResponse.model_validate(template)


@router.get("/", response_model=List[DocumentTemplateResponse])
async def list_templates(db: AsyncSession = Depends(get_db)) -> List[DocumentTemplateResponse]:
    result = await db.execute(
        select(DocumentTemplate).order_by(DocumentTemplate.created_at.desc(), DocumentTemplate.id.desc())
    )
    return [DocumentTemplateResponse.model_validate(t) for t in result.scalars().all()]


@router.get("/{template_id}", response_model=DocumentTemplateResponse)
async def get_template(
    template_id: int,
    db: AsyncSession = Depends(get_db),
) -> DocumentTemplateResponse:
    return DocumentTemplateResponse.model_validate(await get_template_or_404(db, template_id))


@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_template(
    template_id: int,
    db: AsyncSession = Depends(get_db),
) -> None:
    """Delete the template record and its stored file."""
    template = await get_template_or_404(db, template_id)
    file_path = template.file_path
    await db.delete(template)
    await db.flush()
    _safe_remove(file_path)
    logger.info("Deleted template id=%d", template_id)
