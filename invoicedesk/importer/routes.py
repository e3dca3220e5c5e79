"""
Importer HTTP routes — POST /api/admin/upload

Admin-only. Accepts the monthly payroll CSV as a multipart upload, reconciles
consultants, upserts invoices and returns the stored rows for display.
Unknown consultant IDs get a placeholder consultant so they can sign in later
and find their invoice already waiting.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from invoicedesk.auth import Session, require_admin
from invoicedesk.config import settings
from invoicedesk.database import get_db
from invoicedesk.errors import ValidationError
from invoicedesk.importer.schemas import InvoiceOut, UploadResponse
from invoicedesk.importer.service import import_payroll
from invoicedesk.results import unwrap

router = APIRouter(prefix="/api/admin", tags=["importer"])
logger = logging.getLogger(__name__)


@router.post("/upload", response_model=UploadResponse)
async def upload_payroll_csv(
    file: UploadFile = File(...),
    session: Session = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> UploadResponse:
    """
    Import the payroll spreadsheet.

    Returns:
        200: {count, rows, placeholders_created, note?}
        400: VALIDATION_ERROR — missing columns or invalid lines (nothing written)
        409: CONFLICT — an identifier in the sheet belongs to another account
    """
    # Step 1: Read all bytes first, size check before anything else
    contents = await file.read()
    if len(contents) > settings.max_upload_bytes:
        raise ValidationError(
            f"File size exceeds maximum allowed {settings.max_upload_bytes // 1024} KB"
        ).as_http()

    # Step 2: Content check (NOT file.content_type — spoofable). A CSV is text.
    if b"\x00" in contents[:2048]:
        raise ValidationError("Unsupported file type. Upload a CSV export.").as_http()

    try:
        text = contents.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise ValidationError("CSV must be UTF-8 encoded").as_http()

    # Step 3: Parse → validate → reconcile → upsert
    outcome = await unwrap(await import_payroll(db, text))

    placeholders = outcome.report.placeholders_created
    note = None
    if placeholders:
        note = (
            f"{len(placeholders)} consultant(s) haven't signed in yet — invoices created "
            f"and will be visible once they log in: {', '.join(placeholders)}"
        )

    logger.info(
        "Payroll CSV uploaded rows=%d placeholders=%d",
        len(outcome.rows),
        len(placeholders),
    )
    return UploadResponse(
        count=len(outcome.rows),
        rows=[InvoiceOut.model_validate(inv) for inv in outcome.invoices],
        placeholders_created=len(placeholders),
        note=note,
    )
