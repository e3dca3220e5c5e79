"""
service.py — Invoice lookups, detail views, draft edits and PDF retrieval.

Ownership rule: a consultant sees only invoices whose consultant_id equals
their own bound identifier. Admin views go through the same builders with
mask=True so account numbers never leave the server in full.
"""
from __future__ import annotations

import logging
from io import BytesIO
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from invoicedesk import store
from invoicedesk.auth import Session
from invoicedesk.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from invoicedesk.importer.schemas import InvoiceOut
from invoicedesk.invoices.pdf_generator import CompanyInfo, generate_invoice_pdf, resolve_bank
from invoicedesk.invoices.schemas import BankDetails, InvoiceDetail, InvoiceDraftUpdate, mask_account
from invoicedesk.invoices.storage import DocumentStore
from invoicedesk.models.consultant import ConsultantORM
from invoicedesk.models.invoice import InvoiceORM, InvoiceStatus
from invoicedesk.results import Err, Ok, Result

logger = logging.getLogger(__name__)

EDITABLE_STATUSES = (InvoiceStatus.pending.value, InvoiceStatus.error.value)


def build_detail(
    invoice: InvoiceORM,
    consultant: Optional[ConsultantORM],
    mask: bool = False,
) -> InvoiceDetail:
    """Invoice plus consultant display fields; bank account masked for admin views."""
    base = InvoiceDetail(
        **InvoiceOut.model_validate(invoice).model_dump(),
        gross_amount=invoice.gross_amount,
    )
    if consultant is None:
        bank = BankDetails(
            beneficiary=invoice.bank_beneficiary,
            bank_name=invoice.bank_name,
            account_number=invoice.bank_account,
            ifsc=invoice.bank_ifsc,
        )
        return base.model_copy(update={"bank": _masked(bank) if mask else bank})

    bank = BankDetails(**resolve_bank(invoice, consultant))
    return base.model_copy(update={
        "consultant_name": consultant.name,
        "consultant_email": None if consultant.is_placeholder else consultant.email,
        "consultant_pan": consultant.pan,
        "consultant_gstin": consultant.gstin,
        "bank": _masked(bank) if mask else bank,
    })


def _masked(bank: BankDetails) -> BankDetails:
    return bank.model_copy(update={"account_number": mask_account(bank.account_number)})


async def list_details(
    db: AsyncSession,
    consultant_id: Optional[str] = None,
    status: Optional[str] = None,
    mask: bool = False,
) -> list[InvoiceDetail]:
    invoices = await store.list_invoices(db, consultant_id=consultant_id, status=status)
    consultants = await store.list_consultants_by_ids(
        db, sorted({inv.consultant_id for inv in invoices})
    )
    return [build_detail(inv, consultants.get(inv.consultant_id), mask=mask) for inv in invoices]


async def get_invoice_for(
    db: AsyncSession,
    session: Session,
    invoice_id: str,
    allow_admin: bool = False,
    lock: bool = False,
) -> Result[InvoiceORM]:
    """
    Fetch an invoice the caller may see. lock=True holds the row until commit.

    Returns:
        Err(NotFoundError) — no such invoice
        Err(ForbiddenError) — invoice belongs to another consultant
    """
    invoice = await store.get_invoice(db, invoice_id, lock=lock)
    if invoice is None:
        return Err(NotFoundError(f"Invoice {invoice_id} not found"))
    if allow_admin and session.is_admin:
        return Ok(invoice)
    if not session.consultant_id or invoice.consultant_id != session.consultant_id:
        logger.info("Invoice access refused invoice_id=%s", invoice_id)
        return Err(ForbiddenError("You can only access your own invoices"))
    return Ok(invoice)


async def get_admin_invoice(db: AsyncSession, invoice_id: str) -> Result[InvoiceORM]:
    invoice = await store.get_invoice(db, invoice_id)
    if invoice is None:
        return Err(NotFoundError(f"Invoice {invoice_id} not found"))
    return Ok(invoice)


async def update_draft(
    db: AsyncSession,
    invoice: InvoiceORM,
    payload: InvoiceDraftUpdate,
) -> Result[InvoiceORM]:
    """
    Apply consultant edits to an unsent invoice.
    net_payable_days is recomputed as working_days - lop_days.
    """
    if invoice.status not in EDITABLE_STATUSES:
        return Err(ConflictError(
            f"Invoice {invoice.invoice_no} is {invoice.status} and can no longer be edited"
        ))

    for field, value in payload.model_dump(exclude_none=True).items():
        setattr(invoice, field, value)

    if invoice.lop_days > invoice.working_days:
        return Err(ValidationError(
            "LOP days cannot exceed working days",
            [{"field": "lop_days", "issue": "must not exceed working_days"}],
        ))
    invoice.net_payable_days = invoice.working_days - invoice.lop_days

    await db.flush()
    logger.info("Invoice draft updated invoice_id=%s", invoice.id)
    return Ok(invoice)


async def load_pdf(
    db: AsyncSession,
    invoice: InvoiceORM,
    documents: DocumentStore,
    company: CompanyInfo,
) -> Result[BytesIO]:
    """
    The stored copy for sent/paid invoices that have one; otherwise a fresh render.
    A missing stored object falls back to rendering.
    """
    if invoice.pdf_path and invoice.status in (InvoiceStatus.sent.value, InvoiceStatus.paid.value):
        stored = await documents.download(invoice.pdf_path)
        if isinstance(stored, Ok):
            return Ok(BytesIO(stored.value))
        logger.warning(
            "Stored PDF unavailable, rendering instead invoice_id=%s code=%s",
            invoice.id,
            stored.error.code,
        )

    consultant = await store.get_consultant_by_id(db, invoice.consultant_id)
    if consultant is None:
        return Err(NotFoundError(f"Consultant {invoice.consultant_id} not found"))
    return Ok(generate_invoice_pdf(invoice, consultant, company))
