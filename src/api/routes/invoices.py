"""Invoice API Routes

Administrative FastAPI routes for invoice issuance and lifecycle management.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlmodel.ext.asyncio.session import AsyncSession

from libs.result import Error
from src.api.error import ClientError
from src.api.schemas.invoice_request import IssueInvoiceRequestSchema, UpdateInvoiceStatusRequestSchema
from src.app.services.secret_store import SecretStore
from src.app.use_cases.invoices import (
    DeleteInvoice,
    DeleteInvoiceResponseDTO,
    GetInvoice,
    InvoiceResponseDTO,
    IssueInvoice,
    IssueInvoiceCommandDTO,
    ListInvoices,
    ListInvoicesResponseDTO,
    RedeliverPaidEvent,
    RedeliverResponseDTO,
    UpdateInvoiceStatus,
    UpdateInvoiceStatusCommandDTO,
)
from src.adapter.repositories import (
    SqlAlchemyDerivationCounterRepository,
    SqlAlchemyInvoiceEventRepository,
    SqlAlchemyInvoiceRepository,
)
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.depends import get_chain, get_secret_store, get_session
from src.domain.asset import Chain
from src.domain.errors import InvoicingError
from src.domain.invoice import InvoiceStatus

router = APIRouter(prefix="/invoices", tags=["Invoices"])

ERROR_STATUS_CODES = {
    "INVOICE_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "INVOICE_STATUS_CONFLICT": status.HTTP_409_CONFLICT,
    "DUPLICATE_INVOICE": status.HTTP_409_CONFLICT,
    "INVALID_SEED": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "ISSUE_INVOICE_FAILED": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "GET_INVOICE_FAILED": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "LIST_INVOICES_FAILED": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "UPDATE_INVOICE_FAILED": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "DELETE_INVOICE_FAILED": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "REDELIVER_FAILED": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _error_response(code: str, message: str, description: str) -> dict:
    return {
        "description": description,
        "content": {"application/json": {"example": {"error": {"code": code, "message": message}}}},
    }


def _raise_client_error(error: Error):
    raise ClientError(error, status_code=ERROR_STATUS_CODES.get(error.code, status.HTTP_400_BAD_REQUEST))


@router.post(
    "",
    response_model=InvoiceResponseDTO,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: _error_response("INVALID_AMOUNT", "Requested amount must be greater than zero", "Invalid request"),
    },
)
async def issue_invoice(
    request: IssueInvoiceRequestSchema,
    session: AsyncSession = Depends(get_session),
    secret_store: SecretStore = Depends(get_secret_store),
    chain: Chain = Depends(get_chain),
):
    """
    Issue a new invoice with a freshly derived deposit address.

    **Request body:**
    - `asset_family` (optional): `native` (default) or `token`
    - `requested_amount` (required): decimal string in whole units
    - `token_identifier` (token only): contract address or mint
    - `token_symbol` (optional): display symbol

    **Returns:**
    - 201: Invoice issued, with its payment descriptor
    - 400: Invalid amount or asset parameters
    """
    try:
        seed = secret_store.get_seed_material()
    except (InvoicingError, OSError) as e:
        _raise_client_error(Error(code="INVALID_SEED", message="Seed material unavailable", reason=str(e)))

    uow = SqlAlchemyUnitOfWork(session)
    invoice_repo = SqlAlchemyInvoiceRepository(session)
    counter_repo = SqlAlchemyDerivationCounterRepository(session)

    command = IssueInvoiceCommandDTO(
        asset_family=request.asset_family,
        requested_amount=request.requested_amount,
        token_identifier=request.token_identifier,
        token_symbol=request.token_symbol,
    )

    use_case = IssueInvoice(uow, invoice_repo, counter_repo, seed, chain)
    result = await use_case.execute(command)

    if result.is_err():
        _raise_client_error(result.error)

    return result.value


@router.get(
    "",
    response_model=ListInvoicesResponseDTO,
    status_code=status.HTTP_200_OK,
    responses={
        400: _error_response("INVALID_PAGINATION", "limit must be 1-100 and offset >= 0", "Invalid pagination"),
    },
)
async def list_invoices(
    status_filter: Optional[InvoiceStatus] = Query(default=None, alias="status"),
    limit: int = Query(default=50, description="Page size (1-100)"),
    offset: int = Query(default=0, description="Number of invoices to skip"),
    session: AsyncSession = Depends(get_session),
):
    """
    List invoices, newest first, optionally filtered by status.

    **Query parameters:**
    - `status` (optional): pending, paid, swept or cancelled
    - `limit` (optional): 1-100, default 50
    - `offset` (optional): default 0
    """
    use_case = ListInvoices(SqlAlchemyInvoiceRepository(session))
    result = await use_case.execute(status=status_filter, limit=limit, offset=offset)

    if result.is_err():
        _raise_client_error(result.error)

    return result.value


@router.get(
    "/{invoice_id}",
    response_model=InvoiceResponseDTO,
    status_code=status.HTTP_200_OK,
    responses={
        404: _error_response("INVOICE_NOT_FOUND", "Invoice with ID abc not found", "Invoice not found"),
    },
)
async def get_invoice(invoice_id: str, session: AsyncSession = Depends(get_session)):
    """Get one invoice with its payment descriptor."""
    use_case = GetInvoice(SqlAlchemyInvoiceRepository(session))
    result = await use_case.execute(invoice_id)

    if result.is_err():
        _raise_client_error(result.error)

    return result.value


@router.put(
    "/{invoice_id}/status",
    response_model=InvoiceResponseDTO,
    status_code=status.HTTP_200_OK,
    responses={
        400: _error_response(
            "INVALID_STATUS_TRANSITION",
            "Invalid status transition: cannot change from 'paid' to 'cancelled'",
            "Transition not allowed",
        ),
        404: _error_response("INVOICE_NOT_FOUND", "Invoice with ID abc not found", "Invoice not found"),
        409: _error_response(
            "INVOICE_STATUS_CONFLICT", "Invoice status changed concurrently", "Concurrent modification"
        ),
    },
)
async def update_invoice_status(
    invoice_id: str,
    request: UpdateInvoiceStatusRequestSchema,
    session: AsyncSession = Depends(get_session),
):
    """
    Change an invoice's status.

    Only pending -> cancelled and cancelled -> pending are allowed here; paid
    and swept are reached through the watcher and sweeper only.
    """
    uow = SqlAlchemyUnitOfWork(session)
    use_case = UpdateInvoiceStatus(uow, SqlAlchemyInvoiceRepository(session))
    result = await use_case.execute(
        UpdateInvoiceStatusCommandDTO(invoice_id=invoice_id, status=request.status)
    )

    if result.is_err():
        _raise_client_error(result.error)

    return result.value


@router.delete(
    "/{invoice_id}",
    response_model=DeleteInvoiceResponseDTO,
    status_code=status.HTTP_200_OK,
    responses={
        400: _error_response(
            "INVOICE_NOT_DELETABLE", "Only pending or cancelled invoices can be deleted", "Not deletable"
        ),
        404: _error_response("INVOICE_NOT_FOUND", "Invoice with ID abc not found", "Invoice not found"),
    },
)
async def delete_invoice(invoice_id: str, session: AsyncSession = Depends(get_session)):
    """Delete a pending or cancelled invoice."""
    uow = SqlAlchemyUnitOfWork(session)
    use_case = DeleteInvoice(uow, SqlAlchemyInvoiceRepository(session))
    result = await use_case.execute(invoice_id)

    if result.is_err():
        _raise_client_error(result.error)

    return result.value


@router.post(
    "/{invoice_id}/redeliver",
    response_model=RedeliverResponseDTO,
    status_code=status.HTTP_202_ACCEPTED,
    responses={
        400: _error_response("INVOICE_NOT_PAID", "Invoice abc is not paid", "Invoice not paid"),
        404: _error_response("INVOICE_NOT_FOUND", "Invoice with ID abc not found", "Invoice not found"),
    },
)
async def redeliver_paid_event(invoice_id: str, session: AsyncSession = Depends(get_session)):
    """
    Queue a paid invoice for another sweep attempt.

    Used when a sweep exhausted its delivery attempts and the invoice is
    stuck in paid.
    """
    uow = SqlAlchemyUnitOfWork(session)
    use_case = RedeliverPaidEvent(
        uow, SqlAlchemyInvoiceRepository(session), SqlAlchemyInvoiceEventRepository(session)
    )
    result = await use_case.execute(invoice_id)

    if result.is_err():
        _raise_client_error(result.error)

    return result.value
