from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional
from datetime import date, datetime
from decimal import Decimal


def _blank_to_none(v):
    # Multipart clients send "" for fields the user left empty
    if isinstance(v, str) and not v.strip():
        return None
    return v


class ReimbursementHeader(BaseModel):
    """Header fields of a submission, after normalization."""
    model_config = ConfigDict(extra="ignore")

    department_id: Optional[int] = None
    cost_center_id: Optional[int] = None
    project_id: Optional[int] = None
    description: Optional[str] = None

    @field_validator("department_id", "cost_center_id", "project_id", "description", mode="before")
    @classmethod
    def empty_strings_are_missing(cls, v):
        return _blank_to_none(v)


class ReimbursementItemCreate(BaseModel):
    """One line item, typed. Built only after the required-field and amount checks passed."""
    model_config = ConfigDict(extra="ignore")

    expense_category_id: Optional[int] = None
    expense_type: str = Field(..., max_length=50)
    amount: Decimal = Field(..., gt=0)
    description: Optional[str] = None
    expense_date: date
    meal_type: Optional[str] = Field(None, max_length=50)
    people_count: Optional[int] = Field(None, ge=0)
    travel_purpose: Optional[str] = Field(None, max_length=255)
    lodging_city: Optional[str] = Field(None, max_length=255)

    @field_validator(
        "expense_category_id", "description", "meal_type",
        "people_count", "travel_purpose", "lodging_city",
        mode="before",
    )
    @classmethod
    def empty_strings_are_missing(cls, v):
        return _blank_to_none(v)


class ReimbursementItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    reimbursement_id: int
    expense_category_id: Optional[int] = None
    expense_category_name: Optional[str] = None
    expense_type: str
    amount: Decimal
    description: Optional[str] = None
    expense_date: date
    meal_type: Optional[str] = None
    people_count: Optional[int] = None
    travel_purpose: Optional[str] = None
    lodging_city: Optional[str] = None
    status: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("status", mode="before")
    @classmethod
    def status_value(cls, v):
        return getattr(v, "value", v)


class ReimbursementAttachmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    reimbursement_item_id: Optional[int] = None
    file_name: str
    file_path: str
    file_size: Optional[int] = None
    file_type: Optional[str] = None
    created_at: Optional[datetime] = None


class ReimbursementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    department_id: Optional[int] = None
    cost_center_id: Optional[int] = None
    project_id: Optional[int] = None
    department_name: Optional[str] = None
    cost_center_name: Optional[str] = None
    project_name: Optional[str] = None
    request_date: Optional[date] = None
    description: Optional[str] = None
    total_amount: Decimal
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("status", mode="before")
    @classmethod
    def status_value(cls, v):
        return getattr(v, "value", v)
