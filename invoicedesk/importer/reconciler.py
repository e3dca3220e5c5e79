"""
reconciler.py — Match imported rows to consultant records.

For each distinct consultant_id in the batch (first-seen order, one at a time):

  unknown id, row has email, email row exists   -> attach id + profile to that row
  unknown id, row has email, no email row       -> insert a real consultant
  unknown id, row has no email                  -> insert a placeholder
  known placeholder                             -> update profile, take the real email if given
  known, real email differs from the row email  -> conflict (whole import fails)
  known, same email (or row has none)           -> update profile fields only

Identifiers arrive upper-cased from the parser. is_admin is never written here. Empty cells never blank stored profile data.
Each identifier's lookups take row locks so a concurrent import or onboarding
for the same identifier waits for this transaction.
"""
from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from invoicedesk import store
from invoicedesk.errors import IdentifierConflict
from invoicedesk.importer.schemas import ImportRow, ReconcileReport
from invoicedesk.models.consultant import ConsultantORM, placeholder_email
from invoicedesk.results import Err, Ok, Result

logger = logging.getLogger(__name__)


def first_row_per_consultant(rows: Iterable[ImportRow]) -> dict[str, ImportRow]:
    """First row seen for each identifier; dict order is first-seen order."""
    chosen: dict[str, ImportRow] = {}
    for row in rows:
        chosen.setdefault(row.consultant_id, row)
    return chosen


def _email_local_part(email: str) -> str:
    return email.split("@", 1)[0]


def _apply_profile(consultant: ConsultantORM, row: ImportRow) -> None:
    if row.name:
        consultant.name = row.name
    if row.pan:
        consultant.pan = row.pan
    if row.gstin:
        consultant.gstin = row.gstin


async def _reconcile_unknown(
    db: AsyncSession,
    consultant_id: str,
    row: ImportRow,
    report: ReconcileReport,
) -> bool:
    """Handle an identifier with no consultant row. Returns False on conflict."""
    if row.email:
        by_email = await store.get_consultant_by_email(db, row.email, lock=True)
        if by_email is not None:
            if by_email.consultant_id and by_email.consultant_id != consultant_id:
                logger.warning(
                    "Import conflict: email already bound consultant_id=%s row_id=%s",
                    by_email.consultant_id,
                    consultant_id,
                )
                return False
            by_email.consultant_id = consultant_id
            _apply_profile(by_email, row)
            await db.flush()
            report.consultants_updated.append(consultant_id)
            return True

        await store.add_consultant(
            db,
            ConsultantORM(
                consultant_id=consultant_id,
                email=row.email,
                name=row.name or _email_local_part(row.email),
                pan=row.pan or None,
                gstin=row.gstin or None,
            ),
        )
        report.consultants_created.append(consultant_id)
        return True

    await store.add_consultant(
        db,
        ConsultantORM(
            consultant_id=consultant_id,
            email=placeholder_email(consultant_id),
            name=row.name or consultant_id,
            pan=row.pan or None,
            gstin=row.gstin or None,
        ),
    )
    report.placeholders_created.append(consultant_id)
    return True


async def _claim_placeholder(
    db: AsyncSession,
    placeholder: ConsultantORM,
    row: ImportRow,
) -> bool:
    """Move a real address from the sheet onto a placeholder. False on conflict."""
    holder = await store.get_consultant_by_email(db, row.email, lock=True)
    if holder is not None:
        if holder.consultant_id:
            return False
        # identifier-less row from first login: the placeholder supersedes it
        await store.delete_consultant(db, holder)
    placeholder.email = row.email
    if not row.name and placeholder.name == placeholder.consultant_id:
        placeholder.name = _email_local_part(row.email)
    return True


async def reconcile_consultants(
    db: AsyncSession,
    rows: list[ImportRow],
) -> Result[ReconcileReport]:
    """
    Make sure every identifier in rows has exactly one consultant record.

    Returns Ok(ReconcileReport) or Err(IdentifierConflict) naming every identifier
    whose sheet address contradicts an existing real binding. On Err the caller
    must roll back; rows for other identifiers may already have been flushed.
    """
    report = ReconcileReport()
    conflicts: list[str] = []

    for consultant_id, row in first_row_per_consultant(rows).items():
        existing = await store.get_consultant_by_id(db, consultant_id, lock=True)

        if existing is None:
            if not await _reconcile_unknown(db, consultant_id, row, report):
                conflicts.append(consultant_id)
            continue

        if existing.is_placeholder:
            _apply_profile(existing, row)
            if row.email and not await _claim_placeholder(db, existing, row):
                conflicts.append(consultant_id)
                continue
            await db.flush()
            report.consultants_updated.append(consultant_id)
            continue

        if row.email and existing.email != row.email:
            logger.warning("Import conflict: consultant_id=%s already claimed", consultant_id)
            conflicts.append(consultant_id)
            continue

        _apply_profile(existing, row)
        await db.flush()
        report.consultants_updated.append(consultant_id)

    if conflicts:
        return Err(IdentifierConflict(conflicts))

    logger.info(
        "Reconciled consultants placeholders=%d created=%d updated=%d",
        len(report.placeholders_created),
        len(report.consultants_created),
        len(report.consultants_updated),
    )
    return Ok(report)
