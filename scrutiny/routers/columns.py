"""
User-defined extra columns of the deeds tables.

GET    /api/tables/{table_type}/columns                  list columns
POST   /api/tables/{table_type}/columns                  add a column
DELETE /api/tables/{table_type}/columns/{name}           remove a column and its values
GET    /api/tables/{table_type}/columns/values           every stored value of the table
PUT    /api/tables/{table_type}/columns/{name}/values    set one deed's value
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from scrutiny.database import get_db
from scrutiny.models.database_models import CustomColumn, CustomColumnValue
from scrutiny.models.schemas import (
    ColumnCreate,
    ColumnResponse,
    ColumnValueResponse,
    ColumnValueSet,
    TableTypeSchema,
)
from scrutiny.services import records

logger = logging.getLogger(__name__)

router = APIRouter()


async def _get_column_or_404(db: AsyncSession, table_type: str, name: str) -> CustomColumn:
    result = await db.execute(
        select(CustomColumn).where(
            CustomColumn.table_type == table_type,
            CustomColumn.name == name,
        )
    )
    column = result.scalar_one_or_none()
    if column is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Column {name!r} not found in {table_type}.",
        )
    return column


@router.get("/{table_type}/columns", response_model=List[ColumnResponse])
async def list_columns(
    table_type: TableTypeSchema,
    db: AsyncSession = Depends(get_db),
) -> List[ColumnResponse]:
    """Extra columns of a table in the order they were added."""
    columns = await records.list_columns(db, table_type.value)
    return [ColumnResponse.model_validate(c) for c in columns]


@router.post(
    "/{table_type}/columns",
    response_model=ColumnResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_column(
    table_type: TableTypeSchema,
    body: ColumnCreate,
    db: AsyncSession = Depends(get_db),
) -> ColumnResponse:
    """Add an extra column after one of the base columns. Names are unique per table."""
    name = body.name.strip()
    if not name:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Column name must not be blank.",
        )

    existing = await records.list_columns(db, table_type.value)
    if any(c.name.lower() == name.lower() for c in existing):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Column already exists")

    column = CustomColumn(table_type=table_type.value, name=name, position=body.position.value)
    db.add(column)
    await db.flush()

    logger.info("Added column %r after %s in %s", name, column.position, table_type.value)
    return ColumnResponse.model_validate(column)


@router.get("/{table_type}/columns/values", response_model=List[ColumnValueResponse])
async def list_column_values(
    table_type: TableTypeSchema,
    db: AsyncSession = Depends(get_db),
) -> List[ColumnValueResponse]:
    values = await records.list_column_values(db, table_type.value)
    return [ColumnValueResponse.model_validate(v) for v in values]


@router.delete("/{table_type}/columns/{name}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_column(
    table_type: TableTypeSchema,
    name: str,
    db: AsyncSession = Depends(get_db),
) -> None:
    column = await _get_column_or_404(db, table_type.value, name)
    await db.execute(
        delete(CustomColumnValue).where(
            CustomColumnValue.table_type == table_type.value,
            CustomColumnValue.column_name == column.name,
        )
    )
    await db.delete(column)
    await db.flush()
    logger.info("Removed column %r from %s", name, table_type.value)


@router.put("/{table_type}/columns/{name}/values", response_model=ColumnValueResponse)
async def set_column_value(
    table_type: TableTypeSchema,
    name: str,
    body: ColumnValueSet,
    db: AsyncSession = Depends(get_db),
) -> ColumnValueResponse:
    """Set the value of one extra column for one deed, replacing any previous value."""
    column = await _get_column_or_404(db, table_type.value, name)
    if await records.get_deed(db, body.deed_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Deed {body.deed_id} not found.",
        )

    result = await db.execute(
        select(CustomColumnValue).where(
            CustomColumnValue.table_type == table_type.value,
            CustomColumnValue.column_name == column.name,
            CustomColumnValue.deed_id == body.deed_id,
        )
    )
    row = result.scalar_one_or_none()
    if row is None:
        row = CustomColumnValue(
            table_type=table_type.value,
            column_name=column.name,
            deed_id=body.deed_id,
        )
        db.add(row)
    row.value = body.value
    await db.flush()

    return ColumnValueResponse.model_validate(row)
