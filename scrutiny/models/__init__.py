"""Database and schema models for Scrutiny."""
from scrutiny.models.database_models import (
    Deed,
    DeedTemplate,
    HistoryTemplate,
    DocumentTemplate,
    Draft,
    CustomColumn,
    CustomColumnValue,
    TableType,
    ColumnPosition,
)
from scrutiny.models.schemas import (
    DeedCreate,
    DeedResponse,
    DeedTemplateResponse,
    HistoryTemplateResponse,
    DocumentTemplateResponse,
    ColumnResponse,
    DraftResponse,
    DocumentDetail,
    HealthCheckResponse,
)

__all__ = [
    # Database models
    "Deed",
    "DeedTemplate",
    "HistoryTemplate",
    "DocumentTemplate",
    "Draft",
    "CustomColumn",
    "CustomColumnValue",
    "TableType",
    "ColumnPosition",
    # Pydantic schemas
    "DeedCreate",
    "DeedResponse",
    "DeedTemplateResponse",
    "HistoryTemplateResponse",
    "DocumentTemplateResponse",
    "ColumnResponse",
    "DraftResponse",
    "DocumentDetail",
    "HealthCheckResponse",
]
