"""
Particulars (preview) templates, one per deed type.

PUT    /api/deed-templates               create or replace by deed type
GET    /api/deed-templates               list
GET    /api/deed-templates/{id}          detail with declared custom-field keys
DELETE /api/deed-templates/{id}          delete
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from scrutiny.database import get_db
from scrutiny.models.database_models import DeedTemplate
from scrutiny.models.schemas import DeedTemplateResponse, DeedTemplateUpsert
from scrutiny.services.template_catalog import TemplateCatalog, normalize_deed_type

logger = logging.getLogger(__name__)

router = APIRouter()


def _to_response(row: DeedTemplate, catalog: TemplateCatalog) -> DeedTemplateResponse:
    response = DeedTemplateResponse.model_validate(row)
    response.extra_keys = catalog.extra_keys(row.deed_type)
    return response


async def _get_template_or_404(db: AsyncSession, template_id: int) -> DeedTemplate:
    result = await db.execute(select(DeedTemplate).where(DeedTemplate.id == template_id))
    row = result.scalar_one_or_none()
    if row is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Deed template {template_id} not found.",
        )
    return row


@router.put("", response_model=DeedTemplateResponse)
async def upsert_deed_template(
    body: DeedTemplateUpsert,
    db: AsyncSession = Depends(get_db),
) -> DeedTemplateResponse:
    """Create the template for a deed type, or replace it when the type already has one."""
    deed_type = body.deed_type.strip()
    if not deed_type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Deed type must not be blank.",
        )

    result = await db.execute(
        select(DeedTemplate).where(func.lower(DeedTemplate.deed_type) == normalize_deed_type(deed_type))
    )
    row = result.scalar_one_or_none()
    if row is None:
        row = DeedTemplate(deed_type=deed_type)
        db.add(row)
        logger.info("Creating deed template for %r", deed_type)
    else:
        logger.info("Replacing deed template for %r", row.deed_type)

    row.preview_template = body.preview_template
    row.custom_placeholders = dict(body.custom_placeholders)
    await db.flush()

    catalog = await TemplateCatalog.load(db)
    return _to_response(row, catalog)


@router.get("", response_model=List[DeedTemplateResponse])
async def list_deed_templates(db: AsyncSession = Depends(get_db)) -> List[DeedTemplateResponse]:
    result = await db.execute(select(DeedTemplate).order_by(DeedTemplate.deed_type))
    catalog = await TemplateCatalog.load(db)
    return [_to_response(row, catalog) for row in result.scalars().all()]


@router.get("/{template_id}", response_model=DeedTemplateResponse)
async def get_deed_template(
    template_id: int,
    db: AsyncSession = Depends(get_db),
) -> DeedTemplateResponse:
    row = await _get_template_or_404(db, template_id)
    catalog = await TemplateCatalog.load(db)
    return _to_response(row, catalog)


@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_deed_template(
    template_id: int,
    db: AsyncSession = Depends(get_db),
) -> None:
    row = await _get_template_or_404(db, template_id)
    await db.delete(row)
    await db.flush()
    logger.info("Deleted deed template id=%d (%r)", template_id, row.deed_type)
