"""Pydantic schemas for payloads entering the engine."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from gig_ledger.calculators.types import GigStatus, OtherExpenseLine
from gig_ledger.errors import ValidationFailure


class OtherExpenseItem(BaseModel):
    """One itemised non-parking expense reported with a payment."""

    amount: Decimal = Field(ge=0)
    reimbursed_amount: Decimal = Field(default=Decimal("0"), ge=0)
    business_purpose: str = Field(default="Gig expense", min_length=1)
    category: str = Field(default="Gig Supplies", min_length=1)

    def to_line(self) -> OtherExpenseLine:
        return OtherExpenseLine(
            amount=self.amount,
            reimbursed_amount=self.reimbursed_amount,
            business_purpose=self.business_purpose,
            category=self.category,
        )


class PaymentPayload(BaseModel):
    """Schema for the "got paid" transition."""

    model_config = ConfigDict(extra="forbid")

    total_received: Decimal = Field(gt=0)
    parking_spent: Decimal = Field(default=Decimal("0"), ge=0)
    parking_reimbursed: Decimal = Field(default=Decimal("0"), ge=0)
    other_expenses: list[OtherExpenseItem] = Field(default_factory=list)
    other_reimbursed: Decimal = Field(default=Decimal("0"), ge=0)
    mileage: int = Field(default=0, ge=0)
    tax_percentage: int | None = Field(default=None, ge=0, le=100)
    payment_method: str | None = None


class GigPatch(BaseModel):
    """Non-date fields that may be changed on every day-row of a booking."""

    model_config = ConfigDict(extra="forbid")

    gig_type: str | None = Field(default=None, min_length=1)
    event_name: str | None = Field(default=None, min_length=1)
    client_name: str | None = Field(default=None, min_length=1)
    expected_pay: Decimal | None = Field(default=None, ge=0)
    actual_pay: Decimal | None = None
    tips: Decimal | None = Field(default=None, ge=0)
    payment_method: str | None = None
    status: GigStatus | None = None
    duties: str | None = None
    notes: str | None = None
    tax_percentage: int | None = Field(default=None, ge=0, le=100)
    mileage: int | None = Field(default=None, ge=0)
    parking_expense: Decimal | None = Field(default=None, ge=0)
    other_expenses: Decimal | None = Field(default=None, ge=0)
    total_received: Decimal | None = Field(default=None, ge=0)
    reimbursed_parking: Decimal | None = Field(default=None, ge=0)
    reimbursed_other: Decimal | None = Field(default=None, ge=0)
    unreimbursed_parking: Decimal | None = Field(default=None, ge=0)
    unreimbursed_other: Decimal | None = Field(default=None, ge=0)

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value: Any) -> Any:
        if isinstance(value, str):
            return GigStatus.normalize(value)
        return value

    def changes(self) -> dict[str, Any]:
        """Only the fields the caller actually set."""
        data = self.model_dump(exclude_unset=True)
        if isinstance(data.get("status"), GigStatus):
            data["status"] = data["status"].value
        return data


class GigCreate(BaseModel):
    """Schema for booking a gig over one or more days."""

    gig_type: str = Field(min_length=1)
    event_name: str = Field(default="Event", min_length=1)
    client_name: str = Field(min_length=1)
    start_date: dt.date
    end_date: dt.date | None = None
    expected_pay: Decimal | None = Field(default=None, ge=0)
    tips: Decimal | None = Field(default=None, ge=0)
    payment_method: str | None = "Cash"
    status: GigStatus = GigStatus.UPCOMING
    duties: str | None = None
    notes: str | None = None
    tax_percentage: int | None = Field(default=None, ge=0, le=100)
    mileage: int | None = Field(default=None, ge=0)
    parking_expense: Decimal | None = Field(default=None, ge=0)
    other_expenses: Decimal | None = Field(default=None, ge=0)

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value: Any) -> Any:
        if isinstance(value, str):
            return GigStatus.normalize(value)
        return value

    def row_fields(self) -> dict[str, Any]:
        """Column values shared by every day-row of the booking."""
        data = self.model_dump(exclude={"start_date", "end_date"})
        data["status"] = self.status.value
        return data


class ExpenseCreate(BaseModel):
    """Schema for a standalone business expense."""

    date: dt.date
    amount: Decimal = Field(ge=0)
    merchant: str | None = None
    business_purpose: str = Field(min_length=1)
    category: str = Field(min_length=1)
    gig_id: int | None = None
    # May exceed amount; tolerated and reported as a negative deduction
    reimbursed_amount: Decimal = Field(default=Decimal("0"), ge=0)


def parse(model: type[BaseModel], data: BaseModel | dict[str, Any], what: str) -> Any:
    """Validate ``data`` into ``model``, raising ValidationFailure on error."""
    if isinstance(data, model):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_unset=True)
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise ValidationFailure.from_pydantic(exc, what) from exc
