"""
SQLAlchemy ORM models for the Scrutiny database.
Deeds, their templates, uploaded Word templates, drafts and extra table columns.
"""
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    ForeignKey,
    JSON,
    UniqueConstraint,
)
from datetime import datetime, timezone
import enum

from scrutiny.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Enums
class TableType(str, enum.Enum):
    """Deed tables a template can reference ({{table}}, {{table2}} ...)."""

    TABLE = "table"
    TABLE2 = "table2"
    TABLE3 = "table3"
    TABLE4 = "table4"


class ColumnPosition(str, enum.Enum):
    """Base columns of a deeds table after which extra columns may be inserted."""

    SNO = "sno"
    DATE = "date"
    DNO = "dno"
    PARTICULARS = "particulars"
    NATURE = "nature"


# Models
class Deed(Base):
    """One scrutinized legal document (a row of a deeds table)."""

    __tablename__ = "deeds"

    id = Column(Integer, primary_key=True, index=True)
    # NULL is treated as the main table for rows written before table types existed
    table_type = Column(String(20), nullable=True, index=True)
    deed_type = Column(String(255), nullable=False, default="")
    executed_by = Column(Text, nullable=False, default="")
    in_favour_of = Column(Text, nullable=False, default="")
    date = Column(String(32), nullable=False, default="")  # ISO date as entered
    document_number = Column(String(255), nullable=False, default="")
    nature_of_doc = Column(String(255), nullable=False, default="")
    custom_fields = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)


class DeedTemplate(Base):
    """Particulars (preview) template for one deed type."""

    __tablename__ = "deed_templates"

    id = Column(Integer, primary_key=True, index=True)
    deed_type = Column(String(255), nullable=False, unique=True, index=True)
    preview_template = Column(Text, nullable=True)
    custom_placeholders = Column(JSON, nullable=True)  # placeholder -> default value
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)


class HistoryTemplate(Base):
    """History-of-title narrative template for one deed type."""

    __tablename__ = "history_templates"

    id = Column(Integer, primary_key=True, index=True)
    deed_type = Column(String(255), nullable=False, unique=True, index=True)
    template_content = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)


class DocumentTemplate(Base):
    """Uploaded Word template with the placeholders detected in its body."""

    __tablename__ = "document_templates"

    id = Column(Integer, primary_key=True, index=True)
    template_name = Column(String(255), nullable=False)
    file_name = Column(String(255), nullable=False)
    file_path = Column(String(512), nullable=False)
    placeholders = Column(JSON, nullable=False, default=list)  # detected form fields
    markers = Column(JSON, nullable=False, default=list)  # table / history markers present
    warnings = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)


class Draft(Base):
    """Saved form values, document details and a snapshot of every deeds table."""

    __tablename__ = "drafts"

    id = Column(Integer, primary_key=True, index=True)
    template_id = Column(
        Integer, ForeignKey("document_templates.id", ondelete="SET NULL"), nullable=True, index=True
    )
    draft_name = Column(String(255), nullable=False)
    placeholders = Column(JSON, nullable=False, default=dict)
    documents = Column(JSON, nullable=False, default=list)
    deeds = Column(JSON, nullable=False, default=dict)  # table type -> list of deed dicts
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)


class CustomColumn(Base):
    """User-defined extra column of a deeds table."""

    __tablename__ = "custom_columns"
    __table_args__ = (UniqueConstraint("table_type", "name", name="uq_custom_column_name"),)

    id = Column(Integer, primary_key=True, index=True)
    table_type = Column(String(20), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    position = Column(String(20), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)


class CustomColumnValue(Base):
    """Cell value of an extra column for one deed."""

    __tablename__ = "custom_column_values"
    __table_args__ = (
        UniqueConstraint("table_type", "column_name", "deed_id", name="uq_custom_column_value"),
    )

    id = Column(Integer, primary_key=True, index=True)
    table_type = Column(String(20), nullable=False, index=True)
    column_name = Column(String(255), nullable=False)
    deed_id = Column(Integer, ForeignKey("deeds.id", ondelete="CASCADE"), nullable=False, index=True)
    value = Column(Text, nullable=False, default="")
