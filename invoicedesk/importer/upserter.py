"""
upserter.py — Idempotent insert-or-update of invoices from validated rows.

Keyed by (consultant_id, invoice_no). Re-uploading the same sheet leaves every
invoice in the same final state: same key, same amounts, status 'pending'.
"""
from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from invoicedesk import store
from invoicedesk.importer.schemas import ImportRow
from invoicedesk.models.invoice import InvoiceORM, InvoiceStatus
from invoicedesk.results import Ok, Result

logger = logging.getLogger(__name__)

# Columns copied verbatim from the sheet on every upsert
OVERWRITE_FIELDS = [
    "billing_period",
    "professional_fee",
    "incentive",
    "variable",
    "tds",
    "reimbursement",
    "total_days",
    "working_days",
    "lop_days",
    "net_payable_days",
    "bank_beneficiary",
    "bank_name",
    "bank_account",
    "bank_ifsc",
]


def _copy_row(invoice: InvoiceORM, row: ImportRow) -> None:
    for field in OVERWRITE_FIELDS:
        setattr(invoice, field, getattr(row, field))
    invoice.status = InvoiceStatus.pending.value
    invoice.sent_at = None
    invoice.pdf_path = None


async def upsert_invoices(
    db: AsyncSession,
    rows: list[ImportRow],
) -> Result[list[InvoiceORM]]:
    """
    Upsert one invoice per row. Every consultant_id must already exist
    (reconcile_consultants runs first).

    A key repeated inside one sheet resolves to the last row for that key.
    Returns the affected invoices in sheet order (one entry per distinct key).
    """
    affected: dict[tuple[str, str], InvoiceORM] = {}
    inserted = 0

    for row in rows:
        key = (row.consultant_id, row.invoice_no)
        invoice = affected.get(key)
        if invoice is None:
            invoice = await store.get_invoice_by_key(db, *key)
        if invoice is None:
            invoice = InvoiceORM(consultant_id=row.consultant_id, invoice_no=row.invoice_no)
            _copy_row(invoice, row)
            await store.add_invoice(db, invoice)
            inserted += 1
        else:
            _copy_row(invoice, row)
        affected[key] = invoice

    await db.flush()
    logger.info("Upserted invoices inserted=%d updated=%d", inserted, len(affected) - inserted)
    return Ok(list(affected.values()))
