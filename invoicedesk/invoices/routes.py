"""
Consultant invoice routes — /api/invoices

GET    /api/invoices              own invoices, newest first
GET    /api/invoices/{id}         detail with consultant display fields
PATCH  /api/invoices/{id}         edit an unsent draft
GET    /api/invoices/{id}/pdf     stored PDF for sent/paid, otherwise rendered
POST   /api/invoices/{id}/send    email the invoice to finance
"""
from __future__ import annotations

import logging
from urllib.parse import quote

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from invoicedesk import store
from invoicedesk.auth import Session, get_session
from invoicedesk.database import get_db
from invoicedesk.invoices.pdf_generator import CompanyInfo
from invoicedesk.invoices.schemas import (
    InvoiceDetail,
    InvoiceDraftUpdate,
    InvoiceList,
    SendRequest,
    SendResponse,
)
from invoicedesk.invoices.sender import send_invoice
from invoicedesk.invoices.service import build_detail, get_invoice_for, list_details, load_pdf, update_draft
from invoicedesk.invoices.storage import DocumentStore
from invoicedesk.notifications.mailer import GmailClient
from invoicedesk.results import unwrap

router = APIRouter(prefix="/api/invoices", tags=["invoices"])
logger = logging.getLogger(__name__)


def attachment_disposition(filename: str) -> str:
    """
    Content-Disposition for a download whose name may be non-ASCII.
    Headers go out as latin-1, so the exact name travels RFC 5987-encoded and
    filename= carries an ASCII approximation for older clients.
    """
    fallback = "".join(
        ch for ch in filename if " " <= ch <= "~" and ch not in "\"\\"
    ) or "invoice.pdf"
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"


# ---------------------------------------------------------------------------
# app.state clients — built once in the lifespan, swapped for fakes in tests
# ---------------------------------------------------------------------------

def get_mailer(request: Request) -> GmailClient:
    return request.app.state.mailer


def get_documents(request: Request) -> DocumentStore:
    return request.app.state.documents


def get_company() -> CompanyInfo:
    return CompanyInfo.from_settings()


@router.get("", response_model=InvoiceList)
async def list_my_invoices(
    session: Session = Depends(get_session),
    db: AsyncSession = Depends(get_db),
) -> InvoiceList:
    """Empty list until the caller has completed onboarding."""
    if not session.consultant_id:
        return InvoiceList(invoices=[])
    return InvoiceList(invoices=await list_details(db, consultant_id=session.consultant_id))


@router.get("/{invoice_id}", response_model=InvoiceDetail)
async def get_my_invoice(
    invoice_id: str,
    session: Session = Depends(get_session),
    db: AsyncSession = Depends(get_db),
) -> InvoiceDetail:
    invoice = await unwrap(await get_invoice_for(db, session, invoice_id))
    consultant = await store.get_consultant_by_id(db, invoice.consultant_id)
    return build_detail(invoice, consultant)


@router.patch("/{invoice_id}", response_model=InvoiceDetail)
async def patch_my_invoice(
    invoice_id: str,
    body: InvoiceDraftUpdate,
    session: Session = Depends(get_session),
    db: AsyncSession = Depends(get_db),
) -> InvoiceDetail:
    """
    Returns:
        200: updated invoice
        400: VALIDATION_ERROR — LOP days exceed working days
        409: CONFLICT — invoice already sent or paid
    """
    invoice = await unwrap(await get_invoice_for(db, session, invoice_id))
    invoice = await unwrap(await update_draft(db, invoice, body))
    consultant = await store.get_consultant_by_id(db, invoice.consultant_id)
    return build_detail(invoice, consultant)


@router.get("/{invoice_id}/pdf")
async def download_invoice_pdf(
    invoice_id: str,
    session: Session = Depends(get_session),
    db: AsyncSession = Depends(get_db),
    documents: DocumentStore = Depends(get_documents),
    company: CompanyInfo = Depends(get_company),
):
    """Stream the invoice PDF. Owners and admins only."""
    invoice = await unwrap(await get_invoice_for(db, session, invoice_id, allow_admin=True))
    pdf_buffer = await unwrap(await load_pdf(db, invoice, documents, company))
    return StreamingResponse(
        pdf_buffer,
        media_type="application/pdf",
        headers={"Content-Disposition": attachment_disposition(f"{invoice.invoice_no}.pdf")},
    )


@router.post("/{invoice_id}/send", response_model=SendResponse)
async def post_send_invoice(
    invoice_id: str,
    body: SendRequest,
    session: Session = Depends(get_session),
    db: AsyncSession = Depends(get_db),
    mailer: GmailClient = Depends(get_mailer),
    documents: DocumentStore = Depends(get_documents),
    company: CompanyInfo = Depends(get_company),
) -> SendResponse:
    """
    Returns:
        200: {success, invoice_no, sent_to, sent_from, pdf_path, sent_at}
        403: FORBIDDEN — not the caller's invoice
        409: CONFLICT — already sent or paid
        502: UPSTREAM_ERROR — mail provider failed; invoice left in 'error'
    """
    outcome = await unwrap(
        await send_invoice(db, session, invoice_id, body.access_token, mailer, documents, company),
        db,
    )
    invoice = outcome.invoice
    return SendResponse(
        invoice_no=invoice.invoice_no,
        sent_to=outcome.sent_to,
        sent_from=outcome.sent_from,
        pdf_path=invoice.pdf_path,
        sent_at=invoice.sent_at,
    )
