"""
Drafts: saved form values and document details with a snapshot of every deeds table.

Restoring a draft replaces all current deeds with its snapshot.
"""
import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from scrutiny.database import get_db
from scrutiny.models.database_models import Deed, Draft, TableType
from scrutiny.models.schemas import (
    DraftCreate,
    DraftResponse,
    DraftRestoreResponse,
    DraftUpdate,
)
from scrutiny.routers.templates import get_template_or_404
from scrutiny.services import records

logger = logging.getLogger(__name__)

router = APIRouter()


async def _get_draft_or_404(db: AsyncSession, draft_id: int) -> Draft:
    result = await db.execute(select(Draft).where(Draft.id == draft_id))
    draft = result.scalar_one_or_none()
    if draft is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Draft {draft_id} not found.",
        )
    return draft


async def _check_template(db: AsyncSession, template_id: Optional[int]) -> None:
    if template_id is not None:
        await get_template_or_404(db, template_id)


@router.post("", response_model=DraftResponse, status_code=status.HTTP_201_CREATED)
async def save_draft(
    body: DraftCreate,
    db: AsyncSession = Depends(get_db),
) -> DraftResponse:
    """Save the form state together with the current deeds of every table."""
    await _check_template(db, body.template_id)

    draft = Draft(
        draft_name=body.draft_name.strip(),
        template_id=body.template_id,
        placeholders=dict(body.placeholders),
        documents=[d.model_dump(by_alias=True) for d in body.documents],
        deeds=await records.snapshot_deeds(db),
    )
    db.add(draft)
    await db.flush()

    logger.info(
        "Saved draft id=%d %r with %d deed(s)",
        draft.id,
        draft.draft_name,
        sum(len(rows) for rows in draft.deeds.values()),
    )
    return DraftResponse.model_validate(draft)


@router.get("", response_model=List[DraftResponse])
async def list_drafts(db: AsyncSession = Depends(get_db)) -> List[DraftResponse]:
    """Drafts, most recently updated first."""
    result = await db.execute(select(Draft).order_by(Draft.updated_at.desc(), Draft.id.desc()))
    return [DraftResponse.model_validate(d) for d in result.scalars().all()]


@router.get("/{draft_id}", response_model=DraftResponse)
async def get_draft(
    draft_id: int,
    db: AsyncSession = Depends(get_db),
) -> DraftResponse:
    return DraftResponse.model_validate(await _get_draft_or_404(db, draft_id))


@router.put("/{draft_id}", response_model=DraftResponse)
async def update_draft(
    draft_id: int,
    body: DraftUpdate,
    db: AsyncSession = Depends(get_db),
) -> DraftResponse:
    """Overwrite the given fields and take a fresh snapshot of the deeds."""
    draft = await _get_draft_or_404(db, draft_id)
    changes = body.model_dump(exclude_unset=True)

    if changes.get("draft_name"):
        draft.draft_name = body.draft_name.strip()
    if "template_id" in changes:
        await _check_template(db, body.template_id)
        draft.template_id = body.template_id
    if body.placeholders is not None:
        draft.placeholders = dict(body.placeholders)
    if body.documents is not None:
        draft.documents = [d.model_dump(by_alias=True) for d in body.documents]
    draft.deeds = await records.snapshot_deeds(db)

    await db.flush()
    await db.refresh(draft)
    logger.info("Updated draft id=%d", draft.id)
    return DraftResponse.model_validate(draft)


@router.post("/{draft_id}/restore", response_model=DraftRestoreResponse)
async def restore_draft(
    draft_id: int,
    db: AsyncSession = Depends(get_db),
) -> DraftRestoreResponse:
    """Replace every current deed with the draft's snapshot, table by table."""
    draft = await _get_draft_or_404(db, draft_id)
    snapshot = draft.deeds or {}

    await records.delete_deeds(db)

    restored: Dict[str, int] = {}
    for table_type in TableType:
        rows = snapshot.get(table_type.value) or []
        # One flush per deed keeps insertion order in created_at/id
        for row in rows:
            fields = {name: row.get(name) for name in records.DEED_FIELDS if name in row}
            fields["custom_fields"] = dict(fields.get("custom_fields") or {})
            db.add(Deed(table_type=table_type.value, **fields))
            await db.flush()
        restored[table_type.value] = len(rows)

    logger.info("Restored draft id=%d: %s", draft.id, restored)
    return DraftRestoreResponse(draft_id=draft.id, restored=restored)


@router.delete("/{draft_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_draft(
    draft_id: int,
    db: AsyncSession = Depends(get_db),
) -> None:
    draft = await _get_draft_or_404(db, draft_id)
    await db.delete(draft)
    await db.flush()
    logger.info("Deleted draft id=%d", draft_id)
