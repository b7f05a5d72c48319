'''
API endpoints for invoicing, payments, fee setup, expenses and the
finance summary.
'''
from typing import Annotated
from uuid import UUID
from fastapi import APIRouter, Depends, status, Query

from ..database import models as db_models
from ..database.db_enums import InvoiceStatusEnum
from ..models import finance as finance_models
from ..services.security import verify_token_and_get_user
from ..services.finance_service import (
    InvoiceGenerationService,
    InvoiceService,
    PaymentService,
    FeeSetupService,
    ExpenseService,
    FinancialSummaryService
)


class InvoicesAPI:
    """
    Endpoints for the monthly invoice batch and invoice reads.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/finance",
            tags=["Invoices"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        self.router.add_api_route(
                "/invoices/generate",
                self.generate_invoices,
                methods=["POST"],
                response_model=finance_models.InvoiceGenerationResult)
        self.router.add_api_route(
                "/invoices/mark-overdue",
                self.mark_overdue,
                methods=["POST"])
        self.router.add_api_route(
                "/invoices",
                self.list_invoices,
                methods=["GET"],
                response_model=list[finance_models.InvoiceRead])
        self.router.add_api_route(
                "/invoices/{invoice_id}",
                self.get_invoice,
                methods=["GET"],
                response_model=finance_models.InvoiceDetailRead)
        self.router.add_api_route(
                "/generation-logs",
                self.list_generation_logs,
                methods=["GET"],
                response_model=list[finance_models.GenerationLogRead])

    async def generate_invoices(
        self,
        request_data: finance_models.InvoiceGenerationRequest,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        generation_service: Annotated[InvoiceGenerationService, Depends(InvoiceGenerationService)]
    ):
        """
        Generates one invoice per student of the center for the given month.
        A period can only be generated once (409 on repeat).
        """
        return await generation_service.generate_monthly_invoices(request_data, current_user)

    async def mark_overdue(
        self,
        request_data: finance_models.OverdueRequest,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        invoice_service: Annotated[InvoiceService, Depends(InvoiceService)]
    ):
        updated = await invoice_service.mark_overdue(request_data, current_user)
        return {"success": True, "invoices_updated": updated}

    async def list_invoices(
        self,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        invoice_service: Annotated[InvoiceService, Depends(InvoiceService)],
        center_id: Annotated[UUID | None, Query(description="Center to list (defaults to the user's center)")] = None,
        invoice_status: Annotated[InvoiceStatusEnum | None, Query(alias="status")] = None,
        student_id: Annotated[UUID | None, Query(description="Optional filter for Student ID")] = None
    ):
        return await invoice_service.list_invoices(
            current_user,
            center_id=center_id,
            invoice_status=invoice_status,
            student_id=student_id
        )

    async def get_invoice(
        self,
        invoice_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        invoice_service: Annotated[InvoiceService, Depends(InvoiceService)]
    ):
        return await invoice_service.get_invoice(invoice_id, current_user)

    async def list_generation_logs(
        self,
        center_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        generation_service: Annotated[InvoiceGenerationService, Depends(InvoiceGenerationService)]
    ):
        return await generation_service.list_generation_logs(center_id, current_user)


class PaymentsAPI:
    def __init__(self):
        self.router = APIRouter(
            prefix="/finance",
            tags=["Payments"]
        )
        self._register_routes()

    def _register_routes(self):
        self.router.add_api_route(
                "/payments",
                self.record_payment,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=finance_models.PaymentRecordResult)
        self.router.add_api_route(
                "/payments",
                self.list_payments,
                methods=["GET"],
                response_model=list[finance_models.PaymentRead])

    async def record_payment(
        self,
        payment_data: finance_models.PaymentCreate,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        payment_service: Annotated[PaymentService, Depends(PaymentService)]
    ):
        """
        Records a payment against an invoice and returns the new invoice totals.
        The amount may not exceed the invoice's remaining balance.
        """
        return await payment_service.record_payment(payment_data, current_user)

    async def list_payments(
        self,
        center_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        payment_service: Annotated[PaymentService, Depends(PaymentService)],
        invoice_id: Annotated[UUID | None, Query(description="Optional filter for Invoice ID")] = None
    ):
        return await payment_service.list_payments(center_id, current_user, invoice_id=invoice_id)


class FeeSetupAPI:
    """Endpoints for fee headings, fee structures and student fee assignments."""
    def __init__(self):
        self.router = APIRouter(
            prefix="/finance",
            tags=["Fee Setup"]
        )
        self._register_routes()

    def _register_routes(self):
        self.router.add_api_route(
                "/fee-headings",
                self.create_heading,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=finance_models.FeeHeadingRead)
        self.router.add_api_route(
                "/fee-headings",
                self.list_headings,
                methods=["GET"],
                response_model=list[finance_models.FeeHeadingRead])
        self.router.add_api_route(
                "/fee-structures",
                self.create_structure,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=finance_models.FeeStructureRead)
        self.router.add_api_route(
                "/fee-structures",
                self.list_structures,
                methods=["GET"],
                response_model=list[finance_models.FeeStructureRead])
        self.router.add_api_route(
                "/fee-assignments",
                self.assign_structure,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=finance_models.FeeAssignmentRead)
        self.router.add_api_route(
                "/custom-fees",
                self.add_custom_fee,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=finance_models.CustomFeeRead)

    async def create_heading(
        self,
        heading_data: finance_models.FeeHeadingCreate,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        fee_service: Annotated[FeeSetupService, Depends(FeeSetupService)]
    ):
        return await fee_service.create_heading(heading_data, current_user)

    async def list_headings(
        self,
        center_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        fee_service: Annotated[FeeSetupService, Depends(FeeSetupService)]
    ):
        return await fee_service.list_headings(center_id, current_user)

    async def create_structure(
        self,
        structure_data: finance_models.FeeStructureCreate,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        fee_service: Annotated[FeeSetupService, Depends(FeeSetupService)]
    ):
        return await fee_service.create_structure(structure_data, current_user)

    async def list_structures(
        self,
        center_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        fee_service: Annotated[FeeSetupService, Depends(FeeSetupService)]
    ):
        return await fee_service.list_structures(center_id, current_user)

    async def assign_structure(
        self,
        assignment_data: finance_models.FeeAssignmentCreate,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        fee_service: Annotated[FeeSetupService, Depends(FeeSetupService)]
    ):
        """
        Assigns a fee structure to a student, replacing any active assignment.
        """
        return await fee_service.assign_structure(assignment_data, current_user)

    async def add_custom_fee(
        self,
        fee_data: finance_models.CustomFeeCreate,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        fee_service: Annotated[FeeSetupService, Depends(FeeSetupService)]
    ):
        return await fee_service.add_custom_fee(fee_data, current_user)


class ExpensesAPI:
    def __init__(self):
        self.router = APIRouter(
            prefix="/finance",
            tags=["Expenses"]
        )
        self._register_routes()

    def _register_routes(self):
        self.router.add_api_route(
                "/expense-categories",
                self.create_category,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=finance_models.ExpenseCategoryRead)
        self.router.add_api_route(
                "/expense-categories",
                self.list_categories,
                methods=["GET"],
                response_model=list[finance_models.ExpenseCategoryRead])
        self.router.add_api_route(
                "/expenses",
                self.create_expense,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=finance_models.ExpenseRead)
        self.router.add_api_route(
                "/expenses",
                self.list_expenses,
                methods=["GET"],
                response_model=list[finance_models.ExpenseRead])
        self.router.add_api_route(
                "/expenses/{expense_id}",
                self.delete_expense,
                methods=["DELETE"],
                status_code=status.HTTP_204_NO_CONTENT)
        self.router.add_api_route(
                "/summary",
                self.get_summary,
                methods=["GET"],
                response_model=finance_models.FinanceSummary)

    async def create_category(
        self,
        category_data: finance_models.ExpenseCategoryCreate,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        expense_service: Annotated[ExpenseService, Depends(ExpenseService)]
    ):
        return await expense_service.create_category(category_data, current_user)

    async def list_categories(
        self,
        center_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        expense_service: Annotated[ExpenseService, Depends(ExpenseService)]
    ):
        return await expense_service.list_categories(center_id, current_user)

    async def create_expense(
        self,
        expense_data: finance_models.ExpenseCreate,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        expense_service: Annotated[ExpenseService, Depends(ExpenseService)]
    ):
        """
        Records an expense; a matching ledger entry is written with it.
        """
        return await expense_service.create_expense(expense_data, current_user)

    async def list_expenses(
        self,
        center_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        expense_service: Annotated[ExpenseService, Depends(ExpenseService)]
    ):
        return await expense_service.list_expenses(center_id, current_user)

    async def delete_expense(
        self,
        expense_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        expense_service: Annotated[ExpenseService, Depends(ExpenseService)]
    ):
        await expense_service.delete_expense(expense_id, current_user)

    async def get_summary(
        self,
        center_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        summary_service: Annotated[FinancialSummaryService, Depends(FinancialSummaryService)]
    ):
        """
        Revenue, collections, dues, expenses and net balance for one center.
        """
        return await summary_service.get_summary(center_id, current_user)


# Instantiate the classes and export their routers
invoices_api = InvoicesAPI()
payments_api = PaymentsAPI()
fee_setup_api = FeeSetupAPI()
expenses_api = ExpensesAPI()

router = APIRouter()
router.include_router(invoices_api.router)
router.include_router(payments_api.router)
router.include_router(fee_setup_api.router)
router.include_router(expenses_api.router)
