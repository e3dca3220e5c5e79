"""
Admin invoice routes — /api/admin/invoices, /api/admin/reminders

Bank account numbers are masked to their last 4 digits in every admin view.
"""
from __future__ import annotations

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from invoicedesk import store
from invoicedesk.auth import Session, require_admin
from invoicedesk.config import settings
from invoicedesk.database import get_db
from invoicedesk.invoices.pdf_generator import CompanyInfo
from invoicedesk.invoices.routes import get_company, get_mailer
from invoicedesk.invoices.schemas import (
    InvoiceDetail,
    InvoiceList,
    ReminderRequest,
    ReminderResponse,
    StatusUpdateRequest,
)
from invoicedesk.invoices.sender import send_reminder
from invoicedesk.invoices.service import build_detail, get_admin_invoice, list_details
from invoicedesk.invoices.status import transition
from invoicedesk.notifications.mailer import GmailClient
from invoicedesk.results import unwrap

router = APIRouter(prefix="/api/admin", tags=["admin"])
logger = logging.getLogger(__name__)


@router.get("/invoices", response_model=InvoiceList)
async def list_all_invoices(
    status: Optional[Literal["pending", "sent", "paid", "error"]] = None,
    session: Session = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> InvoiceList:
    return InvoiceList(invoices=await list_details(db, status=status, mask=True))


@router.get("/invoices/{invoice_id}", response_model=InvoiceDetail)
async def get_any_invoice(
    invoice_id: str,
    session: Session = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> InvoiceDetail:
    invoice = await unwrap(await get_admin_invoice(db, invoice_id))
    consultant = await store.get_consultant_by_id(db, invoice.consultant_id)
    return build_detail(invoice, consultant, mask=True)


@router.patch("/invoices/{invoice_id}", response_model=InvoiceDetail)
async def patch_invoice_status(
    invoice_id: str,
    body: StatusUpdateRequest,
    session: Session = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> InvoiceDetail:
    """
    Returns:
        200: updated invoice
        409: CONFLICT — transition not allowed (e.g. paid -> pending)
    """
    invoice = await unwrap(await get_admin_invoice(db, invoice_id))
    invoice = await unwrap(transition(invoice, body.status))
    await db.flush()
    consultant = await store.get_consultant_by_id(db, invoice.consultant_id)
    return build_detail(invoice, consultant, mask=True)


@router.post("/reminders", response_model=ReminderResponse)
async def post_reminder(
    body: ReminderRequest,
    session: Session = Depends(require_admin),
    mailer: GmailClient = Depends(get_mailer),
    company: CompanyInfo = Depends(get_company),
) -> ReminderResponse:
    sent_to = await unwrap(await send_reminder(
        session,
        to=body.email,
        name=body.name,
        period=body.period,
        access_token=body.access_token,
        mailer=mailer,
        company=company,
        app_url=settings.app_url,
    ))
    return ReminderResponse(sent_to=sent_to)
