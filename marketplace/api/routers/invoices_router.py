from uuid import UUID

from fastapi import APIRouter, Depends, status

from marketplace.core.auth import CurrentUser, require_admin, require_seller
from marketplace.api.deps import get_invoice_generator, get_lifecycle_manager
from marketplace.schemas.invoice import InvoiceRead, MarkInvoicePaid
from marketplace.services.invoices.generator import InvoiceGenerator
from marketplace.services.invoices.lifecycle import InvoiceLifecycleManager

router = APIRouter()

@router.get("/seller/invoices/{invoice_id}", response_model=InvoiceRead)
async def get_seller_invoice(
    invoice_id: UUID,
    current_user: CurrentUser = Depends(require_seller),
    lifecycle: InvoiceLifecycleManager = Depends(get_lifecycle_manager),
):
    return await lifecycle.get_invoice(invoice_id, seller_id=current_user.id)

@router.get("/admin/invoices/{invoice_id}", response_model=InvoiceRead)
async def get_invoice(
    invoice_id: UUID,
    _: CurrentUser = Depends(require_admin),
    lifecycle: InvoiceLifecycleManager = Depends(get_lifecycle_manager),
):
    return await lifecycle.get_invoice(invoice_id)

@router.put("/admin/invoices/{invoice_id}/mark-paid", response_model=InvoiceRead)
async def mark_invoice_paid(
    invoice_id: UUID,
    payload: MarkInvoicePaid,
    _: CurrentUser = Depends(require_admin),
    lifecycle: InvoiceLifecycleManager = Depends(get_lifecycle_manager),
):
    """
    Record a seller's payment and settle every order on the invoice.
    """
    return await lifecycle.mark_paid_by_admin(invoice_id, payload.payment_notes)

@router.post(
    "/admin/invoices/generate-for-seller/{seller_id}",
    response_model=InvoiceRead,
    status_code=status.HTTP_201_CREATED,
)
async def generate_invoice_for_seller(
    seller_id: UUID,
    _: CurrentUser = Depends(require_admin),
    generator: InvoiceGenerator = Depends(get_invoice_generator),
):
    """
    Invoice all of a seller's unsettled delivered COD orders now.
    """
    return await generator.generate_for_specific_seller(seller_id)
