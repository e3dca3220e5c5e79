"""
sender.py — Email an invoice to finance, and send admin reminders.

send_invoice flow:
  1. Load the invoice, check ownership and that it may still move to 'sent'
  2. Render the PDF (reportlab, in memory)
  3. Store it at "{consultant_id}/{invoice_no}.pdf" — failure is logged, not fatal
  4. Send the email with the PDF attached through the consultant's Gmail token
  5. Success: status 'sent', sent_at, pdf_path
     Provider failure: status 'error' (kept after rollback), UpstreamError

Re-sending an invoice that is already sent or paid is a ConflictError and
never calls the mail provider.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from invoicedesk import store
from invoicedesk.auth import Session
from invoicedesk.errors import NotFoundError, UpstreamError
from invoicedesk.invoices.pdf_generator import CompanyInfo, generate_invoice_pdf
from invoicedesk.invoices.service import get_invoice_for
from invoicedesk.invoices.status import can_transition, transition
from invoicedesk.invoices.storage import DocumentStore, invoice_pdf_path
from invoicedesk.models.invoice import InvoiceORM, InvoiceStatus
from invoicedesk.notifications.mailer import GmailClient, build_invoice_email, build_reminder_email
from invoicedesk.results import Err, Ok, Result

logger = logging.getLogger(__name__)


@dataclass
class SendOutcome:
    invoice: InvoiceORM
    sent_to: str
    sent_from: str


async def send_invoice(
    db: AsyncSession,
    session: Session,
    invoice_id: str,
    access_token: str,
    mailer: GmailClient,
    documents: DocumentStore,
    company: CompanyInfo,
) -> Result[SendOutcome]:
    """
    Returns:
        Ok(SendOutcome)
        Err(NotFoundError | ForbiddenError) — lookup / ownership
        Err(ConflictError) — already sent or paid
        Err(UpstreamError) — mail provider failed; invoice is now 'error'
    """
    found = await get_invoice_for(db, session, invoice_id, lock=True)
    if isinstance(found, Err):
        return found
    invoice = found.value

    if not can_transition(invoice.status, InvoiceStatus.sent.value):
        # Surfaces the "already sent" conflict without touching the mail provider
        return transition(invoice, InvoiceStatus.sent.value)

    consultant = await store.get_consultant_by_id(db, invoice.consultant_id)
    if consultant is None:
        return Err(NotFoundError(f"Consultant {invoice.consultant_id} not found"))

    pdf_bytes = generate_invoice_pdf(invoice, consultant, company).getvalue()

    pdf_path: Optional[str] = None
    stored = await documents.upload(
        invoice_pdf_path(invoice.consultant_id, invoice.invoice_no), pdf_bytes
    )
    if isinstance(stored, Ok):
        pdf_path = stored.value
    else:
        logger.warning("PDF not stored, sending anyway invoice_id=%s", invoice.id)

    sender_name = consultant.name or session.display_name or session.email
    message = build_invoice_email(
        sender_name=sender_name,
        sender_email=session.email,
        to=company.finance_email,
        invoice_no=invoice.invoice_no,
        billing_period=invoice.billing_period,
        net_payable=invoice.net_payable,
        pdf_bytes=pdf_bytes,
    )
    sent = await mailer.send(access_token, message)
    if isinstance(sent, Err):
        transition(invoice, InvoiceStatus.error.value)
        await db.flush()
        logger.error("Invoice send failed invoice_id=%s", invoice.id)
        return Err(UpstreamError(f"Failed to send invoice email: {sent.error.message}"))

    invoice.sent_at = datetime.now(timezone.utc)
    invoice.pdf_path = pdf_path
    moved = transition(invoice, InvoiceStatus.sent.value)
    if isinstance(moved, Err):
        return moved
    await db.flush()

    logger.info("Invoice sent invoice_id=%s consultant_id=%s", invoice.id, invoice.consultant_id)
    return Ok(SendOutcome(invoice=invoice, sent_to=company.finance_email, sent_from=session.email))


async def send_reminder(
    session: Session,
    to: str,
    name: str,
    period: str,
    access_token: str,
    mailer: GmailClient,
    company: CompanyInfo,
    app_url: str,
) -> Result[str]:
    """Ok(recipient) once the provider accepts the reminder."""
    message = build_reminder_email(
        sender_email=session.email,
        sender_name=session.display_name,
        to=to,
        name=name,
        period=period,
        app_url=app_url,
        company=company.name,
    )
    sent = await mailer.send(access_token, message)
    if isinstance(sent, Err):
        return Err(UpstreamError(f"Failed to send reminder: {sent.error.message}"))
    logger.info("Reminder sent period=%s", period)
    return Ok(to)
