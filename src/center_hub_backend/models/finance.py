'''

'''
from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field

from ..database.db_enums import (
    InvoiceStatusEnum,
    PaymentMethodEnum,
    PaymentStatusEnum,
    LedgerEntryTypeEnum,
    GenerationStatusEnum
)

# --- 1. API Input Models (for POST/PUT) ---

class InvoiceGenerationRequest(BaseModel):
    """
    Validates the request body for the monthly invoice batch.
    """
    center_id: UUID
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000, le=2100)

class PaymentCreate(BaseModel):
    """
    Validates the request body for recording a payment against an invoice.
    Non-positive amounts are rejected here, before any database access.
    """
    invoice_id: UUID
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    payment_method: PaymentMethodEnum = PaymentMethodEnum.CASH
    reference_number: Optional[str] = None
    notes: Optional[str] = None

class OverdueRequest(BaseModel):
    center_id: UUID
    as_of: Optional[date] = None

class FeeHeadingCreate(BaseModel):
    center_id: UUID
    name: str = Field(..., min_length=1)
    description: Optional[str] = None

class FeeStructureItemInput(BaseModel):
    fee_heading_id: UUID
    amount: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)

class FeeStructureCreate(BaseModel):
    center_id: UUID
    name: str = Field(..., min_length=1)
    grade: Optional[str] = None
    items: list[FeeStructureItemInput] = Field(default_factory=list)

class FeeAssignmentCreate(BaseModel):
    student_id: UUID
    fee_structure_id: UUID

class CustomFeeCreate(BaseModel):
    student_id: UUID
    amount: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    effective_from: date
    description: Optional[str] = None

class ExpenseCategoryCreate(BaseModel):
    center_id: UUID
    name: str = Field(..., min_length=1)
    description: Optional[str] = None

class ExpenseCreate(BaseModel):
    center_id: UUID
    expense_category_id: UUID
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    expense_date: date
    description: Optional[str] = None
    reference_number: Optional[str] = None
    payment_method: PaymentMethodEnum = PaymentMethodEnum.CASH


# --- 2. API Output Models (for GET) ---

class InvoiceGenerationResult(BaseModel):
    success: bool = True
    invoices_generated: int
    status: GenerationStatusEnum
    errors: Optional[list[str]] = None

class InvoiceItemRead(BaseModel):
    id: UUID
    fee_heading_id: UUID
    amount: Decimal

    model_config = ConfigDict(from_attributes=True)

class InvoiceRead(BaseModel):
    id: UUID
    center_id: UUID
    student_id: UUID
    invoice_number: str
    invoice_date: date
    due_date: date
    total_amount: Decimal
    paid_amount: Decimal
    remaining_amount: Decimal
    status: InvoiceStatusEnum

    model_config = ConfigDict(from_attributes=True)

class InvoiceDetailRead(InvoiceRead):
    items: list[InvoiceItemRead] = Field(default_factory=list)

class InvoiceTotals(BaseModel):
    """The invoice totals after a payment was applied."""
    id: UUID
    status: InvoiceStatusEnum
    paid_amount: Decimal
    remaining_amount: Decimal

class PaymentRead(BaseModel):
    id: UUID
    center_id: UUID
    student_id: UUID
    invoice_id: UUID
    amount: Decimal
    payment_date: date
    payment_method: PaymentMethodEnum
    reference_number: Optional[str] = None
    notes: Optional[str] = None
    status: PaymentStatusEnum

    model_config = ConfigDict(from_attributes=True)

class PaymentRecordResult(BaseModel):
    success: bool = True
    payment: PaymentRead
    invoice: InvoiceTotals

class GenerationLogRead(BaseModel):
    id: UUID
    center_id: UUID
    generation_date: date
    invoices_generated: int
    status: GenerationStatusEnum
    error_message: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

class LedgerEntryRead(BaseModel):
    id: UUID
    center_id: UUID
    student_id: Optional[UUID] = None
    entry_type: LedgerEntryTypeEnum
    reference_id: Optional[UUID] = None
    reference_table: Optional[str] = None
    amount: Decimal
    entry_date: date
    description: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

class FeeHeadingRead(BaseModel):
    id: UUID
    center_id: UUID
    name: str
    description: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

class FeeStructureItemRead(BaseModel):
    id: UUID
    fee_heading_id: UUID
    amount: Decimal
    is_active: bool

    model_config = ConfigDict(from_attributes=True)

class FeeStructureRead(BaseModel):
    id: UUID
    center_id: UUID
    name: str
    grade: Optional[str] = None
    is_active: bool
    items: list[FeeStructureItemRead] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)

    @computed_field
    @property
    def total_amount(self) -> Decimal:
        return sum((item.amount for item in self.items if item.is_active), Decimal('0.00'))

class FeeAssignmentRead(BaseModel):
    id: UUID
    student_id: UUID
    fee_structure_id: UUID
    is_active: bool

    model_config = ConfigDict(from_attributes=True)

class CustomFeeRead(BaseModel):
    id: UUID
    student_id: UUID
    amount: Decimal
    effective_from: date
    description: Optional[str] = None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)

class ExpenseCategoryRead(BaseModel):
    id: UUID
    center_id: UUID
    name: str
    description: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

class ExpenseRead(BaseModel):
    id: UUID
    center_id: UUID
    expense_category_id: UUID
    amount: Decimal
    expense_date: date
    description: Optional[str] = None
    reference_number: Optional[str] = None
    payment_method: PaymentMethodEnum
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

class FinanceSummary(BaseModel):
    """
    Headline figures for a center's finance dashboard.
    """
    center_id: UUID
    total_revenue: Decimal
    total_paid: Decimal
    total_expenses: Decimal
    invoices_pending: int

    @computed_field
    @property
    def total_dues(self) -> Decimal:
        return self.total_revenue - self.total_paid

    @computed_field
    @property
    def net_balance(self) -> Decimal:
        return self.total_paid - self.total_expenses
