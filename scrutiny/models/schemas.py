"""
Pydantic schemas for request/response validation.
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Dict, Any
from datetime import datetime
from enum import Enum


# Enums (matching database enums)
class TableTypeSchema(str, Enum):
    """Deed tables a template can reference."""

    TABLE = "table"
    TABLE2 = "table2"
    TABLE3 = "table3"
    TABLE4 = "table4"


class ColumnPositionSchema(str, Enum):
    """Base columns an extra column can follow."""

    SNO = "sno"
    DATE = "date"
    DNO = "dno"
    PARTICULARS = "particulars"
    NATURE = "nature"


# Deed Schemas
class DeedCreate(BaseModel):
    """Schema for adding a deed row; every field may be filled in later."""

    table_type: TableTypeSchema = TableTypeSchema.TABLE
    deed_type: str = ""
    executed_by: str = ""
    in_favour_of: str = ""
    date: Optional[str] = None  # ISO date, today when omitted
    document_number: str = ""
    nature_of_doc: str = ""
    custom_fields: Optional[Dict[str, str]] = None


class DeedUpdate(BaseModel):
    """Partial update of a deed's fixed fields."""

    deed_type: Optional[str] = None
    executed_by: Optional[str] = None
    in_favour_of: Optional[str] = None
    date: Optional[str] = None
    document_number: Optional[str] = None
    nature_of_doc: Optional[str] = None


class CustomFieldsUpdate(BaseModel):
    """Values merged into a deed's custom fields."""

    custom_fields: Dict[str, str]


class DeedResponse(BaseModel):
    """Schema for deed responses."""

    id: int
    table_type: Optional[str] = None
    deed_type: str
    executed_by: str
    in_favour_of: str
    date: str
    document_number: str
    nature_of_doc: str
    custom_fields: Dict[str, Any] = {}
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DeedPreviewResponse(BaseModel):
    """Particulars text of a deed as it will appear in the table."""

    deed_id: int
    deed_type: str
    particulars: str
    unresolved: List[str] = []
    included_in_table: bool


class DeedCopyRequest(BaseModel):
    """Copy every deed of one table into another."""

    source: TableTypeSchema
    target: TableTypeSchema


class DeedCopyResponse(BaseModel):
    copied: int
    skipped: int
    deeds: List[DeedResponse] = []


class DeleteAllResponse(BaseModel):
    deleted: int


# Template Schemas
class DeedTemplateUpsert(BaseModel):
    """Create or replace the particulars template of a deed type."""

    deed_type: str = Field(..., min_length=1, max_length=255)
    preview_template: str = ""
    custom_placeholders: Dict[str, str] = {}


class DeedTemplateResponse(BaseModel):
    id: int
    deed_type: str
    preview_template: Optional[str] = None
    custom_placeholders: Optional[Dict[str, Any]] = None
    extra_keys: List[str] = []
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class HistoryTemplateUpsert(BaseModel):
    """Create or replace the history-of-title template of a deed type."""

    deed_type: str = Field(..., min_length=1, max_length=255)
    template_content: str = ""


class HistoryTemplateResponse(BaseModel):
    id: int
    deed_type: str
    template_content: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DocumentTemplateResponse(BaseModel):
    """Uploaded Word template with its detected form fields."""

    id: int
    template_name: str
    file_name: str
    placeholders: List[str] = []
    markers: List[str] = []
    warnings: List[str] = []
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# Extra Column Schemas
class ColumnCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    position: ColumnPositionSchema


class ColumnResponse(BaseModel):
    id: int
    table_type: str
    name: str
    position: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ColumnValueSet(BaseModel):
    deed_id: int
    value: str = ""


class ColumnValueResponse(BaseModel):
    id: int
    table_type: str
    column_name: str
    deed_id: int
    value: str

    model_config = ConfigDict(from_attributes=True)


# Document Details (property schedule) Schemas
class DocumentDetail(BaseModel):
    """One property document of the {{table1}} schedule; camelCase accepted."""

    doc_no: str = Field("", alias="docNo")
    survey_no: str = Field("", alias="surveyNo")
    as_per_revenue_record: str = Field("", alias="asPerRevenueRecord")
    total_extent: str = Field("", alias="totalExtent")
    plot_no: str = Field("", alias="plotNo")
    location: str = ""
    total_extent_sq_ft: str = Field("", alias="totalExtentSqFt")
    north_by: str = Field("", alias="northBy")
    south_by: str = Field("", alias="southBy")
    east_by: str = Field("", alias="eastBy")
    west_by: str = Field("", alias="westBy")
    north_measurement: str = Field("", alias="northMeasurement")
    south_measurement: str = Field("", alias="southMeasurement")
    east_measurement: str = Field("", alias="eastMeasurement")
    west_measurement: str = Field("", alias="westMeasurement")
    custom_measurements: Dict[str, str] = Field(default_factory=dict, alias="customMeasurements")

    model_config = ConfigDict(populate_by_name=True)


# Draft Schemas
class DraftCreate(BaseModel):
    draft_name: str = Field(..., min_length=1, max_length=255)
    template_id: Optional[int] = None
    placeholders: Dict[str, str] = {}
    documents: List[DocumentDetail] = []


class DraftUpdate(BaseModel):
    draft_name: Optional[str] = Field(None, min_length=1, max_length=255)
    template_id: Optional[int] = None
    placeholders: Optional[Dict[str, str]] = None
    documents: Optional[List[DocumentDetail]] = None


class DraftResponse(BaseModel):
    id: int
    draft_name: str
    template_id: Optional[int] = None
    placeholders: Dict[str, Any] = {}
    documents: List[Dict[str, Any]] = []
    deeds: Dict[str, List[Dict[str, Any]]] = {}
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DraftRestoreResponse(BaseModel):
    draft_id: int
    restored: Dict[str, int]


# Generation Schemas
class GenerateRequest(BaseModel):
    """Fill a stored Word template with form values, deeds and documents."""

    template_id: int
    placeholders: Dict[str, str] = {}
    documents: List[DocumentDetail] = []
    file_name: Optional[str] = None


class HistoryResponse(BaseModel):
    history: str
    deed_count: int


# Health Schema
class HealthCheckResponse(BaseModel):
    """Schema for health check response."""

    status: str
    database: str
    timestamp: datetime
