"""
Deed endpoints.

Route summary
-------------
POST   /api/deeds                        create a deed row
GET    /api/deeds?table_type=table       list deeds of one table
GET    /api/deeds/{deed_id}              deed detail
PATCH  /api/deeds/{deed_id}              update fixed fields
PATCH  /api/deeds/{deed_id}/custom-fields  merge custom field values
GET    /api/deeds/{deed_id}/preview      particulars as rendered in the table
DELETE /api/deeds/{deed_id}              delete a deed
DELETE /api/deeds?table_type=table       delete every deed (of one table)
POST   /api/deeds/copy                   copy deeds between tables
"""
import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from scrutiny.database import get_db
from scrutiny.exceptions import UnknownCustomFieldError
from scrutiny.models.database_models import Deed
from scrutiny.models.schemas import (
    CustomFieldsUpdate,
    DeedCopyRequest,
    DeedCopyResponse,
    DeedCreate,
    DeedPreviewResponse,
    DeedResponse,
    DeedUpdate,
    DeleteAllResponse,
    TableTypeSchema,
)
from scrutiny.services import records
from scrutiny.services.placeholders import RESERVED_NAMES, unresolved_placeholders
from scrutiny.services.template_catalog import TemplateCatalog, normalize_deed_type
from scrutiny.services.word_tables import deed_particulars, tabulable_deeds

logger = logging.getLogger(__name__)

router = APIRouter()


async def _get_deed_or_404(db: AsyncSession, deed_id: int) -> Deed:
    deed = await records.get_deed(db, deed_id)
    if deed is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Deed {deed_id} not found.",
        )
    return deed


def _unknown_fields(exc: UnknownCustomFieldError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))


@router.post("", response_model=DeedResponse, status_code=status.HTTP_201_CREATED)
async def create_deed(
    body: DeedCreate,
    db: AsyncSession = Depends(get_db),
) -> DeedResponse:
    """Add a deed row. The date defaults to today; custom fields start from the type's defaults."""
    catalog = await TemplateCatalog.load(db)
    custom_fields = catalog.initial_custom_fields(body.deed_type)
    if body.custom_fields:
        try:
            catalog.validate_custom_fields(body.deed_type, body.custom_fields)
        except UnknownCustomFieldError as exc:
            raise _unknown_fields(exc)
        custom_fields.update(body.custom_fields)

    deed = Deed(
        table_type=body.table_type.value,
        deed_type=body.deed_type,
        executed_by=body.executed_by,
        in_favour_of=body.in_favour_of,
        date=body.date or date.today().isoformat(),
        document_number=body.document_number,
        nature_of_doc=body.nature_of_doc,
        custom_fields=custom_fields,
    )
    db.add(deed)
    await db.flush()

    logger.info("Created deed id=%d in %s (type=%r)", deed.id, deed.table_type, deed.deed_type)
    return DeedResponse.model_validate(deed)


@router.get("", response_model=List[DeedResponse])
async def list_deeds(
    table_type: TableTypeSchema = Query(TableTypeSchema.TABLE),
    db: AsyncSession = Depends(get_db),
) -> List[DeedResponse]:
    """Deeds of one table in the order they were added."""
    deeds = await records.list_deeds(db, table_type.value)
    return [DeedResponse.model_validate(d) for d in deeds]


@router.delete("", response_model=DeleteAllResponse)
async def delete_all_deeds(
    table_type: Optional[TableTypeSchema] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> DeleteAllResponse:
    """Delete every deed of one table, or of all tables when no table is given."""
    deleted = await records.delete_deeds(db, table_type.value if table_type else None)
    return DeleteAllResponse(deleted=deleted)


@router.post("/copy", response_model=DeedCopyResponse)
async def copy_deeds(
    body: DeedCopyRequest,
    db: AsyncSession = Depends(get_db),
) -> DeedCopyResponse:
    """
    Copy the deeds of one table into another.

    Deeds already present in the target (same type, parties, date and
    document number) are skipped.
    """
    if body.source == body.target:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Source and target tables must differ.",
        )

    source = await records.list_deeds(db, body.source.value)
    existing = {records.deed_identity(d) for d in await records.list_deeds(db, body.target.value)}

    copies: List[Deed] = []
    for deed in source:
        identity = records.deed_identity(deed)
        if identity in existing:
            continue
        existing.add(identity)
        copy = Deed(table_type=body.target.value, **records.deed_snapshot(deed))
        db.add(copy)
        copies.append(copy)
    await db.flush()

    skipped = len(source) - len(copies)
    logger.info(
        "Copied %d deed(s) from %s to %s, skipped %d duplicate(s)",
        len(copies), body.source.value, body.target.value, skipped,
    )
    return DeedCopyResponse(
        copied=len(copies),
        skipped=skipped,
        deeds=[DeedResponse.model_validate(d) for d in copies],
    )


@router.get("/{deed_id}", response_model=DeedResponse)
async def get_deed(
    deed_id: int,
    db: AsyncSession = Depends(get_db),
) -> DeedResponse:
    return DeedResponse.model_validate(await _get_deed_or_404(db, deed_id))


@router.patch("/{deed_id}", response_model=DeedResponse)
async def update_deed(
    deed_id: int,
    body: DeedUpdate,
    db: AsyncSession = Depends(get_db),
) -> DeedResponse:
    """
    Update fixed fields. Switching the deed type resets the custom fields to
    the new type's declared keys and defaults.
    """
    deed = await _get_deed_or_404(db, deed_id)
    changes = body.model_dump(exclude_unset=True, exclude_none=True)

    new_type = changes.get("deed_type")
    if new_type is not None and normalize_deed_type(new_type) != normalize_deed_type(deed.deed_type):
        catalog = await TemplateCatalog.load(db)
        deed.custom_fields = catalog.initial_custom_fields(new_type)

    for name, value in changes.items():
        setattr(deed, name, value)
    await db.flush()
    await db.refresh(deed)

    return DeedResponse.model_validate(deed)


@router.patch("/{deed_id}/custom-fields", response_model=DeedResponse)
async def update_custom_fields(
    deed_id: int,
    body: CustomFieldsUpdate,
    db: AsyncSession = Depends(get_db),
) -> DeedResponse:
    """Merge values into the deed's custom fields; keys must be declared by its templates."""
    deed = await _get_deed_or_404(db, deed_id)
    catalog = await TemplateCatalog.load(db)
    try:
        catalog.validate_custom_fields(deed.deed_type, body.custom_fields)
    except UnknownCustomFieldError as exc:
        raise _unknown_fields(exc)

    # Reassign so the JSON column is flagged dirty
    deed.custom_fields = {**(deed.custom_fields or {}), **body.custom_fields}
    await db.flush()
    await db.refresh(deed)

    return DeedResponse.model_validate(deed)


@router.get("/{deed_id}/preview", response_model=DeedPreviewResponse)
async def preview_deed(
    deed_id: int,
    db: AsyncSession = Depends(get_db),
) -> DeedPreviewResponse:
    """Particulars of the deed, plus any placeholders its values did not fill."""
    deed = await _get_deed_or_404(db, deed_id)
    catalog = await TemplateCatalog.load(db)

    particulars = deed_particulars(deed, catalog)
    unresolved = [
        name for name in unresolved_placeholders(particulars)
        if name.lower() not in RESERVED_NAMES
    ]
    return DeedPreviewResponse(
        deed_id=deed.id,
        deed_type=deed.deed_type,
        particulars=particulars,
        unresolved=unresolved,
        included_in_table=bool(tabulable_deeds([deed], catalog)),
    )


@router.delete("/{deed_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_deed(
    deed_id: int,
    db: AsyncSession = Depends(get_db),
) -> None:
    deed = await _get_deed_or_404(db, deed_id)
    await records.delete_deed_values(db, [deed.id])
    await db.delete(deed)
    await db.flush()
    logger.info("Deleted deed id=%d", deed_id)
