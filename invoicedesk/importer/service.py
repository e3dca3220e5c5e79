"""
service.py — The spreadsheet import pipeline.

    text -> parse_csv -> validate_rows -> reconcile_consultants -> upsert_invoices

Each step returns a Result; the first Err short-circuits the pipeline and the
route rolls the request transaction back, so a rejected sheet writes nothing.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from invoicedesk.importer.parser import parse_csv, validate_rows
from invoicedesk.importer.reconciler import reconcile_consultants
from invoicedesk.importer.schemas import ImportRow, ReconcileReport
from invoicedesk.importer.upserter import upsert_invoices
from invoicedesk.models.invoice import InvoiceORM
from invoicedesk.results import Err, Ok, Result

logger = logging.getLogger(__name__)


@dataclass
class ImportOutcome:
    rows: list[ImportRow]
    report: ReconcileReport
    invoices: list[InvoiceORM]


async def import_payroll(db: AsyncSession, text: str) -> Result[ImportOutcome]:
    parsed = parse_csv(text)
    if isinstance(parsed, Err):
        return parsed

    validated = validate_rows(parsed.value)
    if isinstance(validated, Err):
        return validated
    rows = validated.value

    reconciled = await reconcile_consultants(db, rows)
    if isinstance(reconciled, Err):
        return reconciled

    upserted = await upsert_invoices(db, rows)
    if isinstance(upserted, Err):
        return upserted

    logger.info("Payroll import complete rows=%d invoices=%d", len(rows), len(upserted.value))
    return Ok(ImportOutcome(rows=rows, report=reconciled.value, invoices=upserted.value))
