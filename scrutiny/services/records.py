"""
Queries over the deed and column stores shared by the routers.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from scrutiny.models.database_models import (
    CustomColumn,
    CustomColumnValue,
    Deed,
    TableType,
)
from scrutiny.services.document_builder import DeedTableInput
from scrutiny.services.word_tables import ExtraColumn, column_values_by_deed

logger = logging.getLogger(__name__)

# Deed attributes carried by copies and draft snapshots
DEED_FIELDS = (
    "deed_type",
    "executed_by",
    "in_favour_of",
    "date",
    "document_number",
    "nature_of_doc",
    "custom_fields",
)


def _table_filter(table_type: str):
    if table_type == TableType.TABLE.value:
        return or_(Deed.table_type == table_type, Deed.table_type.is_(None))
    return Deed.table_type == table_type


async def list_deeds(db: AsyncSession, table_type: str = TableType.TABLE.value) -> List[Deed]:
    """Deeds of one table in insertion order."""
    result = await db.execute(
        select(Deed)
        .where(_table_filter(table_type))
        .order_by(Deed.created_at, Deed.id)
    )
    return list(result.scalars().all())


async def get_deed(db: AsyncSession, deed_id: int) -> Optional[Deed]:
    result = await db.execute(select(Deed).where(Deed.id == deed_id))
    return result.scalar_one_or_none()


async def list_columns(db: AsyncSession, table_type: str) -> List[CustomColumn]:
    result = await db.execute(
        select(CustomColumn)
        .where(CustomColumn.table_type == table_type)
        .order_by(CustomColumn.created_at, CustomColumn.id)
    )
    return list(result.scalars().all())


async def load_columns(db: AsyncSession, table_type: str) -> List[ExtraColumn]:
    return [ExtraColumn(c.name, c.position) for c in await list_columns(db, table_type)]


async def list_column_values(db: AsyncSession, table_type: str) -> List[CustomColumnValue]:
    result = await db.execute(
        select(CustomColumnValue)
        .where(CustomColumnValue.table_type == table_type)
        .order_by(CustomColumnValue.id)
    )
    return list(result.scalars().all())


async def load_column_values(db: AsyncSession, table_type: str) -> Dict[Any, Dict[str, str]]:
    return column_values_by_deed(await list_column_values(db, table_type))


async def load_table_input(db: AsyncSession, table_type: str) -> DeedTableInput:
    """Deeds, extra columns and their values for one table."""
    return DeedTableInput(
        deeds=await list_deeds(db, table_type),
        columns=await load_columns(db, table_type),
        values=await load_column_values(db, table_type),
    )


async def load_all_tables(db: AsyncSession) -> Dict[str, DeedTableInput]:
    return {t.value: await load_table_input(db, t.value) for t in TableType}


def deed_identity(deed: Any) -> Tuple[str, str, str, str, str]:
    """Fields that identify the same deed across tables."""
    return (
        deed.deed_type or "",
        deed.executed_by or "",
        deed.in_favour_of or "",
        deed.date or "",
        deed.document_number or "",
    )


def deed_snapshot(deed: Deed) -> Dict[str, Any]:
    data = {name: getattr(deed, name) for name in DEED_FIELDS}
    data["custom_fields"] = dict(deed.custom_fields or {})
    return data


async def snapshot_deeds(db: AsyncSession) -> Dict[str, List[Dict[str, Any]]]:
    """Every table's deeds as plain dicts, keyed by table type."""
    return {
        t.value: [deed_snapshot(deed) for deed in await list_deeds(db, t.value)]
        for t in TableType
    }


async def delete_deed_values(db: AsyncSession, deed_ids: List[int]) -> None:
    # Values are removed explicitly; not every backend enforces the FK cascade
    if deed_ids:
        await db.execute(delete(CustomColumnValue).where(CustomColumnValue.deed_id.in_(deed_ids)))


async def delete_deeds(db: AsyncSession, table_type: Optional[str] = None) -> int:
    """Delete the deeds of one table, or of every table when *table_type* is None."""
    query = select(Deed.id)
    if table_type is not None:
        query = query.where(_table_filter(table_type))
    deed_ids = list((await db.execute(query)).scalars().all())
    if not deed_ids:
        return 0

    await delete_deed_values(db, deed_ids)
    await db.execute(delete(Deed).where(Deed.id.in_(deed_ids)))
    logger.info("Deleted %d deed(s) from %s", len(deed_ids), table_type or "all tables")
    return len(deed_ids)
