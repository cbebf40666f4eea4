"""
History-of-title templates, one per deed type.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from scrutiny.database import get_db
from scrutiny.models.database_models import HistoryTemplate
from scrutiny.models.schemas import HistoryTemplateResponse, HistoryTemplateUpsert
from scrutiny.services.template_catalog import normalize_deed_type

logger = logging.getLogger(__name__)

router = APIRouter()


async def _get_template_or_404(db: AsyncSession, template_id: int) -> HistoryTemplate:
    result = await db.execute(select(HistoryTemplate).where(HistoryTemplate.id == template_id))
    row = result.scalar_one_or_none()
    if row is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"History template {template_id} not found.",
        )
    return row


@router.put("", response_model=HistoryTemplateResponse)
async def upsert_history_template(
    body: HistoryTemplateUpsert,
    db: AsyncSession = Depends(get_db),
) -> HistoryTemplateResponse:
    deed_type = body.deed_type.strip()
    if not deed_type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Deed type must not be blank.",
        )

    result = await db.execute(
        select(HistoryTemplate).where(
            func.lower(HistoryTemplate.deed_type) == normalize_deed_type(deed_type)
        )
    )
    row = result.scalar_one_or_none()
    if row is None:
        row = HistoryTemplate(deed_type=deed_type)
        db.add(row)
    row.template_content = body.template_content
    await db.flush()

    logger.info("Saved history template for %r", row.deed_type)
    return HistoryTemplateResponse.model_validate(row)


@router.get("", response_model=List[HistoryTemplateResponse])
async def list_history_templates(
    db: AsyncSession = Depends(get_db),
) -> List[HistoryTemplateResponse]:
    result = await db.execute(select(HistoryTemplate).order_by(HistoryTemplate.deed_type))
    return [HistoryTemplateResponse.model_validate(row) for row in result.scalars().all()]


@router.get("/{template_id}", response_model=HistoryTemplateResponse)
async def get_history_template(
    template_id: int,
    db: AsyncSession = Depends(get_db),
) -> HistoryTemplateResponse:
    return HistoryTemplateResponse.model_validate(await _get_template_or_404(db, template_id))


@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_history_template(
    template_id: int,
    db: AsyncSession = Depends(get_db),
) -> None:
    row = await _get_template_or_404(db, template_id)
    await db.delete(row)
    await db.flush()
    logger.info("Deleted history template id=%d", template_id)
