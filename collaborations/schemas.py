from datetime import date
from ninja import Schema
from pydantic import ConfigDict, Field


class WireSchema(Schema):
    """Schema serialised with camelCase keys, built with snake_case names."""
    model_config = ConfigDict(populate_by_name=True)


class AssignmentRecord(Schema):
    """One employee assignment period; the four fields form its natural key."""
    employee_id: int
    project_id: int
    date_from: date
    date_to: date


class BatchResult(Schema):
    """Outcome of writing one batch of assignment records."""
    written: int = 0
    failed: int = 0


class UploadSummarySchema(WireSchema):
    """Response schema for the CSV upload endpoint."""
    processed_rows: int = Field(0, alias="processedRows")
    rows_with_error: int = Field(0, alias="rowsWithError")
    write_errors: int = Field(0, alias="writeErrors")
    message: str = "CSV processing completed"


class LongestCollaborationSchema(WireSchema):
    """Response schema for the longest collaboration endpoint."""
    emp1_id: int = Field(0, alias="emp1Id")
    emp2_id: int = Field(0, alias="emp2Id")
    total_days: int = Field(0, alias="totalDays")


class ErrorSchema(Schema):
    """Envelope returned for handled errors."""
    success: bool = False
    status: int
    message: str
    error: str
