'''

'''
import calendar
from typing import Optional, Annotated
from uuid import UUID
from decimal import Decimal
from datetime import date
from fastapi import Depends, HTTPException, status
from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import (
    UserRole,
    InvoiceStatusEnum,
    PaymentStatusEnum,
    LedgerEntryTypeEnum,
    GenerationStatusEnum
)
from ..models import finance as finance_models
from ..common.exceptions import InvoicePeriodAlreadyGeneratedError
from ..common.logger import log
from ..common.config import settings
from .user_service import CenterScopedService, UserService

ZERO = Decimal('0.00')


def billing_period_dates(month: int, year: int, due_day: int) -> tuple[date, date]:
    """
    Returns (invoice_date, due_date) for a billing month.
    The invoice is dated the first of the month and falls due on
    `due_day` of the following month, clamped to that month's length.
    """
    invoice_date = date(year, month, 1)
    if month == 12:
        due_year, due_month = year + 1, 1
    else:
        due_year, due_month = year, month + 1
    last_day = calendar.monthrange(due_year, due_month)[1]
    due_date = date(due_year, due_month, min(max(due_day, 1), last_day))
    return invoice_date, due_date


def build_invoice_number(center_id: UUID, month: int, year: int, index: int, prefix: str = "INV") -> str:
    """Deterministic number: prefix, center id head, period and 1-based sequence."""
    return f"{prefix}-{str(center_id)[:8]}-{year}{month:02d}-{index + 1:05d}"


def status_after_payment(remaining_amount: Decimal) -> InvoiceStatusEnum:
    return InvoiceStatusEnum.PAID if remaining_amount == 0 else InvoiceStatusEnum.PARTIAL


# --- Service 1: Monthly Invoice Generation ---

class InvoiceGenerationService(CenterScopedService):
    """
    Generates the monthly invoice batch for one center.
    One student's failure never aborts the batch; each student's writes
    run inside their own savepoint so they land completely or not at all.
    """
    def __init__(self, db: Annotated[AsyncSession, Depends(get_db_session)]):
        super().__init__(db)

    async def _claim_generation_log(self, center_id: UUID, month: int, year: int) -> db_models.InvoiceGenerationLogs:
        """
        Returns the period's log row, locked for this run.

        A successful period is refused. A partial one is handed back so the
        run can finish it. A first run inserts the row before billing, so a
        concurrent first run for the same period fails on the unique
        (center_id, generation_date) constraint.
        """
        stmt = select(db_models.InvoiceGenerationLogs).filter(
            db_models.InvoiceGenerationLogs.center_id == center_id,
            db_models.InvoiceGenerationLogs.generation_date == date(year, month, 1)
        ).with_for_update()
        generation_log = (await self.db.execute(stmt)).scalars().first()

        if generation_log is None:
            generation_log = db_models.InvoiceGenerationLogs(
                center_id=center_id,
                generation_date=date(year, month, 1),
                invoices_generated=0,
                status=GenerationStatusEnum.PARTIAL.value
            )
            self.db.add(generation_log)
            try:
                await self.db.flush()
            except IntegrityError:
                raise InvoicePeriodAlreadyGeneratedError(center_id, month, year)
            return generation_log

        if generation_log.status == GenerationStatusEnum.SUCCESS.value:
            raise InvoicePeriodAlreadyGeneratedError(center_id, month, year)

        log.info(f"Resuming partial invoice run for center {center_id}, period {year}-{month:02d}")
        return generation_log

    async def _get_billed_student_ids(self, center_id: UUID, invoice_date: date) -> set[UUID]:
        stmt = select(db_models.Invoices.student_id).filter(
            db_models.Invoices.center_id == center_id,
            db_models.Invoices.invoice_date == invoice_date
        )
        result = await self.db.execute(stmt)
        return set(result.scalars().all())

    async def _get_active_assignment(self, student_id: UUID) -> Optional[db_models.StudentFeeAssignments]:
        stmt = select(db_models.StudentFeeAssignments).filter(
            db_models.StudentFeeAssignments.student_id == student_id,
            db_models.StudentFeeAssignments.is_active.is_(True)
        ).order_by(db_models.StudentFeeAssignments.created_at.desc())
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def _get_active_structure_items(self, fee_structure_id: UUID) -> list[db_models.FeeStructureItems]:
        stmt = select(db_models.FeeStructureItems).filter(
            db_models.FeeStructureItems.fee_structure_id == fee_structure_id,
            db_models.FeeStructureItems.is_active.is_(True)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def _get_custom_fee_total(self, student_id: UUID, invoice_date: date) -> Decimal:
        stmt = select(func.coalesce(func.sum(db_models.StudentCustomFees.amount), 0)).filter(
            db_models.StudentCustomFees.student_id == student_id,
            db_models.StudentCustomFees.is_active.is_(True),
            db_models.StudentCustomFees.effective_from <= invoice_date
        )
        result = await self.db.execute(stmt)
        return Decimal(str(result.scalar_one()))

    async def _create_student_invoice(
        self,
        student: db_models.Students,
        assignment: db_models.StudentFeeAssignments,
        invoice_number: str,
        invoice_date: date,
        due_date: date
    ) -> db_models.Invoices:
        """Writes the invoice, its item snapshot and its ledger entry."""
        items = await self._get_active_structure_items(assignment.fee_structure_id)
        total = sum((item.amount for item in items), ZERO)
        total += await self._get_custom_fee_total(student.id, invoice_date)

        invoice = db_models.Invoices(
            center_id=student.center_id,
            student_id=student.id,
            invoice_number=invoice_number,
            invoice_date=invoice_date,
            due_date=due_date,
            total_amount=total,
            paid_amount=ZERO,
            remaining_amount=total,
            status=InvoiceStatusEnum.DUE.value
        )
        self.db.add(invoice)
        await self.db.flush()

        self.db.add_all([
            db_models.InvoiceItems(
                invoice_id=invoice.id,
                fee_heading_id=item.fee_heading_id,
                amount=item.amount
            )
            for item in items
        ])
        self.db.add(db_models.LedgerEntries(
            center_id=student.center_id,
            student_id=student.id,
            entry_type=LedgerEntryTypeEnum.INVOICE.value,
            reference_id=invoice.id,
            reference_table='invoices',
            amount=total,
            entry_date=invoice_date,
            description=f"Monthly invoice for {calendar.month_name[invoice_date.month]} {invoice_date.year}"
        ))
        await self.db.flush()
        return invoice

    async def generate_monthly_invoices(
        self,
        data: finance_models.InvoiceGenerationRequest,
        current_user: db_models.Users
    ) -> finance_models.InvoiceGenerationResult:
        log.info(f"User {current_user.id} generating invoices for center {data.center_id}, period {data.year}-{data.month:02d}")

        await self._get_center_or_404(data.center_id)
        self._authorize_center(current_user, data.center_id)

        try:
            generation_log = await self._claim_generation_log(data.center_id, data.month, data.year)
        except InvoicePeriodAlreadyGeneratedError as e:
            log.warning(str(e))
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

        invoice_date, due_date = billing_period_dates(data.month, data.year, settings.INVOICE_DUE_DAY)

        stmt = select(db_models.Students).filter(
            db_models.Students.center_id == data.center_id
        ).order_by(db_models.Students.name, db_models.Students.id)
        students = list((await self.db.execute(stmt)).scalars().all())
        already_billed = await self._get_billed_student_ids(data.center_id, invoice_date)

        invoices_generated = 0
        errors: list[str] = []

        for index, student in enumerate(students):
            student_id = student.id
            if student_id in already_billed:
                continue
            assignment = await self._get_active_assignment(student_id)
            if not assignment:
                errors.append(f"No fee structure for student {student_id}")
                continue

            invoice_number = build_invoice_number(
                data.center_id, data.month, data.year, index, settings.INVOICE_NUMBER_PREFIX
            )
            try:
                async with self.db.begin_nested():
                    await self._create_student_invoice(student, assignment, invoice_number, invoice_date, due_date)
                invoices_generated += 1
            except Exception as e:
                log.error(f"Invoice generation failed for student {student_id}: {e}", exc_info=True)
                errors.append(f"Error for student {student_id}: {e}")

        generation_status = GenerationStatusEnum.PARTIAL if errors else GenerationStatusEnum.SUCCESS
        # The log keeps the period's running total across resumed runs.
        generation_log.invoices_generated += invoices_generated
        generation_log.status = generation_status.value
        generation_log.error_message = "; ".join(errors) if errors else None
        await self.db.flush()

        if errors:
            log.warning(f"Invoice batch for center {data.center_id} finished with {len(errors)} error(s).")
        log.info(f"Generated {invoices_generated} invoice(s) for center {data.center_id}.")

        return finance_models.InvoiceGenerationResult(
            invoices_generated=invoices_generated,
            status=generation_status,
            errors=errors or None
        )

    async def list_generation_logs(self, center_id: UUID, current_user: db_models.Users) -> list[finance_models.GenerationLogRead]:
        self._authorize_center(current_user, center_id)
        stmt = select(db_models.InvoiceGenerationLogs).filter(
            db_models.InvoiceGenerationLogs.center_id == center_id
        ).order_by(db_models.InvoiceGenerationLogs.generation_date.desc())
        result = await self.db.execute(stmt)
        return [finance_models.GenerationLogRead.model_validate(row) for row in result.scalars().all()]


# --- Service 2: Invoice Reads and Status Maintenance ---

class InvoiceService(CenterScopedService):
    def __init__(
        self,
        db: Annotated[AsyncSession, Depends(get_db_session)],
        user_service: Annotated[UserService, Depends(UserService)]
    ):
        super().__init__(db)
        self.user_service = user_service

    async def _authorize_invoice_read(self, current_user: db_models.Users, invoice: db_models.Invoices) -> None:
        """
        Managers see their center's invoices, parents their children's,
        students their own.
        """
        if current_user.role == UserRole.PARENT.value:
            if invoice.student_id in await self.user_service.get_linked_student_ids(current_user.id):
                return
        elif current_user.role == UserRole.STUDENT.value:
            if invoice.student_id == current_user.student_id:
                return
        else:
            self._authorize_center(current_user, invoice.center_id)
            return

        log.warning(f"SECURITY: User {current_user.id} tried to access unrelated invoice {invoice.id}.")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to view this invoice."
        )

    async def list_invoices(
        self,
        current_user: db_models.Users,
        center_id: Optional[UUID] = None,
        invoice_status: Optional[InvoiceStatusEnum] = None,
        student_id: Optional[UUID] = None
    ) -> list[finance_models.InvoiceRead]:
        log.info(f"User {current_user.id} listing invoices (center={center_id}, status={invoice_status}, student={student_id})")
        stmt = select(db_models.Invoices)

        if current_user.role == UserRole.PARENT.value:
            child_ids = await self.user_service.get_linked_student_ids(current_user.id)
            if student_id and student_id not in child_ids:
                raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You can only view your own children's invoices.")
            stmt = stmt.filter(db_models.Invoices.student_id.in_([student_id] if student_id else child_ids))
        elif current_user.role == UserRole.STUDENT.value:
            stmt = stmt.filter(db_models.Invoices.student_id == current_user.student_id)
        else:
            if center_id is None:
                center_id = current_user.center_id
            if center_id is None:
                self._authorize(current_user, [UserRole.ADMIN])
            else:
                self._authorize_center(current_user, center_id)
                stmt = stmt.filter(db_models.Invoices.center_id == center_id)
            if student_id:
                stmt = stmt.filter(db_models.Invoices.student_id == student_id)

        if invoice_status:
            stmt = stmt.filter(db_models.Invoices.status == invoice_status.value)

        stmt = stmt.order_by(db_models.Invoices.invoice_date.desc(), db_models.Invoices.invoice_number)
        result = await self.db.execute(stmt)
        return [finance_models.InvoiceRead.model_validate(inv) for inv in result.scalars().all()]

    async def get_invoice(self, invoice_id: UUID, current_user: db_models.Users) -> finance_models.InvoiceDetailRead:
        log.info(f"User {current_user.id} fetching invoice {invoice_id}")
        stmt = select(db_models.Invoices).options(
            selectinload(db_models.Invoices.items)
        ).filter(db_models.Invoices.id == invoice_id)
        invoice = (await self.db.execute(stmt)).scalars().first()
        if not invoice:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invoice not found.")
        await self._authorize_invoice_read(current_user, invoice)
        return finance_models.InvoiceDetailRead.model_validate(invoice)

    async def mark_overdue(self, data: finance_models.OverdueRequest, current_user: db_models.Users) -> int:
        """
        Moves unpaid invoices whose due date has passed to 'overdue'.
        Returns the number of invoices updated.
        """
        self._authorize_center(current_user, data.center_id)
        as_of = data.as_of or date.today()
        log.info(f"Marking overdue invoices for center {data.center_id} as of {as_of}")

        stmt = update(db_models.Invoices).where(
            db_models.Invoices.center_id == data.center_id,
            db_models.Invoices.status.in_([InvoiceStatusEnum.DUE.value, InvoiceStatusEnum.PARTIAL.value]),
            db_models.Invoices.due_date < as_of
        ).values(status=InvoiceStatusEnum.OVERDUE.value).execution_options(synchronize_session="evaluate")
        result = await self.db.execute(stmt)
        return result.rowcount or 0


# --- Service 3: Payments ---

class PaymentService(CenterScopedService):
    """
    Records payments against invoices. The payment insert, the invoice
    totals update and the ledger entry share the request transaction.
    """
    def __init__(self, db: Annotated[AsyncSession, Depends(get_db_session)]):
        super().__init__(db)

    async def record_payment(
        self,
        data: finance_models.PaymentCreate,
        current_user: db_models.Users
    ) -> finance_models.PaymentRecordResult:
        log.info(f"User {current_user.id} recording payment of {data.amount} for invoice {data.invoice_id}")

        stmt = select(db_models.Invoices).filter(
            db_models.Invoices.id == data.invoice_id
        ).with_for_update()
        invoice = (await self.db.execute(stmt)).scalars().first()
        if not invoice:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invoice not found.")

        self._authorize_center(current_user, invoice.center_id)

        if data.amount > invoice.remaining_amount:
            log.warning(f"Rejected overpayment of {data.amount} on invoice {invoice.id} (remaining {invoice.remaining_amount}).")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Payment amount exceeds the remaining balance of {invoice.remaining_amount}."
            )

        try:
            payment = db_models.Payments(
                center_id=invoice.center_id,
                student_id=invoice.student_id,
                invoice_id=invoice.id,
                amount=data.amount,
                payment_date=date.today(),
                payment_method=data.payment_method.value,
                reference_number=data.reference_number,
                notes=data.notes,
                status=PaymentStatusEnum.COMPLETED.value,
                created_by=current_user.id
            )
            self.db.add(payment)

            invoice.paid_amount = invoice.paid_amount + data.amount
            invoice.remaining_amount = invoice.remaining_amount - data.amount
            invoice.status = status_after_payment(invoice.remaining_amount).value
            await self.db.flush()

            self.db.add(db_models.LedgerEntries(
                center_id=invoice.center_id,
                student_id=invoice.student_id,
                entry_type=LedgerEntryTypeEnum.PAYMENT.value,
                reference_id=payment.id,
                reference_table='payments',
                amount=data.amount,
                entry_date=payment.payment_date,
                description=f"Payment received - Ref: {data.reference_number or 'N/A'}"
            ))
            await self.db.flush()
        except Exception as e:
            log.error(f"Error recording payment for invoice {data.invoice_id}: {e}", exc_info=True)
            raise

        log.info(f"Payment {payment.id} recorded; invoice {invoice.id} is now '{invoice.status}'.")
        return finance_models.PaymentRecordResult(
            payment=finance_models.PaymentRead.model_validate(payment),
            invoice=finance_models.InvoiceTotals(
                id=invoice.id,
                status=invoice.status,
                paid_amount=invoice.paid_amount,
                remaining_amount=invoice.remaining_amount
            )
        )

    async def list_payments(
        self,
        center_id: UUID,
        current_user: db_models.Users,
        invoice_id: Optional[UUID] = None
    ) -> list[finance_models.PaymentRead]:
        self._authorize_center(current_user, center_id)
        stmt = select(db_models.Payments).filter(db_models.Payments.center_id == center_id)
        if invoice_id:
            stmt = stmt.filter(db_models.Payments.invoice_id == invoice_id)
        stmt = stmt.order_by(db_models.Payments.created_at.desc())
        result = await self.db.execute(stmt)
        return [finance_models.PaymentRead.model_validate(p) for p in result.scalars().all()]


# --- Service 4: Fee Setup ---

class FeeSetupService(CenterScopedService):
    """Fee headings, fee structures and per-student fee assignments."""
    def __init__(self, db: Annotated[AsyncSession, Depends(get_db_session)]):
        super().__init__(db)

    async def _get_student_or_404(self, student_id: UUID) -> db_models.Students:
        student = await self.db.get(db_models.Students, student_id)
        if not student:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student not found.")
        return student

    async def create_heading(self, data: finance_models.FeeHeadingCreate, current_user: db_models.Users) -> finance_models.FeeHeadingRead:
        await self._get_center_or_404(data.center_id)
        self._authorize_center(current_user, data.center_id)
        heading = db_models.FeeHeadings(**data.model_dump())
        self.db.add(heading)
        await self.db.flush()
        return finance_models.FeeHeadingRead.model_validate(heading)

    async def list_headings(self, center_id: UUID, current_user: db_models.Users) -> list[finance_models.FeeHeadingRead]:
        self._authorize_center(current_user, center_id)
        stmt = select(db_models.FeeHeadings).filter(
            db_models.FeeHeadings.center_id == center_id
        ).order_by(db_models.FeeHeadings.name)
        result = await self.db.execute(stmt)
        return [finance_models.FeeHeadingRead.model_validate(h) for h in result.scalars().all()]

    async def create_structure(self, data: finance_models.FeeStructureCreate, current_user: db_models.Users) -> finance_models.FeeStructureRead:
        log.info(f"User {current_user.id} creating fee structure '{data.name}' for center {data.center_id}")
        await self._get_center_or_404(data.center_id)
        self._authorize_center(current_user, data.center_id)

        heading_ids = {item.fee_heading_id for item in data.items}
        if heading_ids:
            stmt = select(db_models.FeeHeadings.id).filter(
                db_models.FeeHeadings.id.in_(heading_ids),
                db_models.FeeHeadings.center_id == data.center_id
            )
            found = set((await self.db.execute(stmt)).scalars().all())
            if found != heading_ids:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Every fee heading must belong to the same center."
                )

        structure = db_models.FeeStructures(
            center_id=data.center_id,
            name=data.name,
            grade=data.grade,
            is_active=True,
            items=[
                db_models.FeeStructureItems(fee_heading_id=item.fee_heading_id, amount=item.amount, is_active=True)
                for item in data.items
            ]
        )
        self.db.add(structure)
        await self.db.flush()
        return finance_models.FeeStructureRead.model_validate(structure)

    async def list_structures(self, center_id: UUID, current_user: db_models.Users) -> list[finance_models.FeeStructureRead]:
        self._authorize_center(current_user, center_id)
        stmt = select(db_models.FeeStructures).options(
            selectinload(db_models.FeeStructures.items)
        ).filter(
            db_models.FeeStructures.center_id == center_id
        ).order_by(db_models.FeeStructures.name)
        result = await self.db.execute(stmt)
        return [finance_models.FeeStructureRead.model_validate(s) for s in result.scalars().all()]

    async def assign_structure(self, data: finance_models.FeeAssignmentCreate, current_user: db_models.Users) -> finance_models.FeeAssignmentRead:
        """
        Gives a student a fee structure. Any previously active assignment
        is deactivated so a student has at most one.
        """
        student = await self._get_student_or_404(data.student_id)
        self._authorize_center(current_user, student.center_id)

        structure = await self.db.get(db_models.FeeStructures, data.fee_structure_id)
        if not structure or structure.center_id != student.center_id:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Fee structure not found.")

        await self.db.execute(
            update(db_models.StudentFeeAssignments).where(
                db_models.StudentFeeAssignments.student_id == student.id,
                db_models.StudentFeeAssignments.is_active.is_(True)
            ).values(is_active=False).execution_options(synchronize_session="fetch")
        )
        assignment = db_models.StudentFeeAssignments(
            student_id=student.id,
            fee_structure_id=structure.id,
            is_active=True
        )
        self.db.add(assignment)
        await self.db.flush()
        log.info(f"Assigned fee structure {structure.id} to student {student.id}")
        return finance_models.FeeAssignmentRead.model_validate(assignment)

    async def add_custom_fee(self, data: finance_models.CustomFeeCreate, current_user: db_models.Users) -> finance_models.CustomFeeRead:
        student = await self._get_student_or_404(data.student_id)
        self._authorize_center(current_user, student.center_id)
        fee = db_models.StudentCustomFees(
            student_id=student.id,
            amount=data.amount,
            effective_from=data.effective_from,
            description=data.description,
            is_active=True
        )
        self.db.add(fee)
        await self.db.flush()
        return finance_models.CustomFeeRead.model_validate(fee)


# --- Service 5: Expenses ---

class ExpenseService(CenterScopedService):
    def __init__(self, db: Annotated[AsyncSession, Depends(get_db_session)]):
        super().__init__(db)

    async def create_category(self, data: finance_models.ExpenseCategoryCreate, current_user: db_models.Users) -> finance_models.ExpenseCategoryRead:
        await self._get_center_or_404(data.center_id)
        self._authorize_center(current_user, data.center_id)
        category = db_models.ExpenseCategories(**data.model_dump())
        self.db.add(category)
        await self.db.flush()
        return finance_models.ExpenseCategoryRead.model_validate(category)

    async def list_categories(self, center_id: UUID, current_user: db_models.Users) -> list[finance_models.ExpenseCategoryRead]:
        self._authorize_center(current_user, center_id)
        stmt = select(db_models.ExpenseCategories).filter(
            db_models.ExpenseCategories.center_id == center_id
        ).order_by(db_models.ExpenseCategories.name)
        result = await self.db.execute(stmt)
        return [finance_models.ExpenseCategoryRead.model_validate(c) for c in result.scalars().all()]

    async def create_expense(self, data: finance_models.ExpenseCreate, current_user: db_models.Users) -> finance_models.ExpenseRead:
        """
        Records an expense and its ledger entry.
        """
        log.info(f"User {current_user.id} recording expense of {data.amount} for center {data.center_id}")
        self._authorize_center(current_user, data.center_id)

        category = await self.db.get(db_models.ExpenseCategories, data.expense_category_id)
        if not category or category.center_id != data.center_id:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Expense category not found.")

        try:
            expense = db_models.Expenses(
                center_id=data.center_id,
                expense_category_id=category.id,
                amount=data.amount,
                expense_date=data.expense_date,
                description=data.description,
                reference_number=data.reference_number,
                payment_method=data.payment_method.value,
                created_by=current_user.id
            )
            self.db.add(expense)
            await self.db.flush()

            self.db.add(db_models.LedgerEntries(
                center_id=data.center_id,
                entry_type=LedgerEntryTypeEnum.EXPENSE.value,
                reference_id=expense.id,
                reference_table='expenses',
                amount=data.amount,
                entry_date=data.expense_date,
                description=data.description or f"Expense - {category.name}"
            ))
            await self.db.flush()
        except Exception as e:
            log.error(f"Error recording expense for center {data.center_id}: {e}", exc_info=True)
            raise

        return finance_models.ExpenseRead.model_validate(expense)

    async def list_expenses(self, center_id: UUID, current_user: db_models.Users) -> list[finance_models.ExpenseRead]:
        self._authorize_center(current_user, center_id)
        stmt = select(db_models.Expenses).filter(
            db_models.Expenses.center_id == center_id
        ).order_by(db_models.Expenses.expense_date.desc())
        result = await self.db.execute(stmt)
        return [finance_models.ExpenseRead.model_validate(e) for e in result.scalars().all()]

    async def delete_expense(self, expense_id: UUID, current_user: db_models.Users) -> bool:
        expense = await self.db.get(db_models.Expenses, expense_id)
        if not expense:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Expense not found.")
        self._authorize_center(current_user, expense.center_id)
        log.info(f"User {current_user.id} deleting expense {expense_id}")
        await self.db.delete(expense)
        await self.db.flush()
        return True


# --- Service 6: Financial Summary ---

class FinancialSummaryService(CenterScopedService):
    def __init__(self, db: Annotated[AsyncSession, Depends(get_db_session)]):
        super().__init__(db)

    async def get_summary(self, center_id: UUID, current_user: db_models.Users) -> finance_models.FinanceSummary:
        log.info(f"Building finance summary for center {center_id}")
        self._authorize_center(current_user, center_id)

        try:
            invoice_stmt = select(
                func.coalesce(func.sum(db_models.Invoices.total_amount), 0),
                func.coalesce(func.sum(db_models.Invoices.paid_amount), 0)
            ).filter(db_models.Invoices.center_id == center_id)
            total_revenue, total_paid = (await self.db.execute(invoice_stmt)).one()

            pending_stmt = select(func.count(db_models.Invoices.id)).filter(
                db_models.Invoices.center_id == center_id,
                db_models.Invoices.status.in_([InvoiceStatusEnum.DUE.value, InvoiceStatusEnum.OVERDUE.value])
            )
            invoices_pending = (await self.db.execute(pending_stmt)).scalar_one()

            expense_stmt = select(func.coalesce(func.sum(db_models.Expenses.amount), 0)).filter(
                db_models.Expenses.center_id == center_id
            )
            total_expenses = (await self.db.execute(expense_stmt)).scalar_one()
        except Exception as e:
            log.error(f"Error building finance summary for center {center_id}: {e}", exc_info=True)
            raise

        return finance_models.FinanceSummary(
            center_id=center_id,
            total_revenue=Decimal(str(total_revenue)),
            total_paid=Decimal(str(total_paid)),
            total_expenses=Decimal(str(total_expenses)),
            invoices_pending=invoices_pending
        )
