"""
store.py — Data access facade for InvoiceDesk.

Provides a consistent, high-level API over the consultants and invoices tables.
Components use these functions; routes never build SQLAlchemy queries directly.

Design principles:
  - All functions are async and accept an AsyncSession parameter
  - No raw SQL: ORM-only queries
  - flush() only — the get_db() dependency owns commit / rollback
  - Logs identifiers only — never bank accounts, PAN or amounts
  - lock=True adds SELECT ... FOR UPDATE (a no-op on SQLite) so check-then-act
    sequences on one identifier are serialised inside the request transaction
"""
import logging
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from invoicedesk.models.consultant import ConsultantORM
from invoicedesk.models.invoice import InvoiceORM

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Consultant operations
# ---------------------------------------------------------------------------

async def get_consultant_by_id(
    db: AsyncSession,
    consultant_id: str,
    lock: bool = False,
) -> Optional[ConsultantORM]:
    """Look up a consultant by business identifier. None if absent."""
    stmt = select(ConsultantORM).where(ConsultantORM.consultant_id == consultant_id)
    if lock:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def get_consultant_by_email(
    db: AsyncSession,
    email: str,
    lock: bool = False,
) -> Optional[ConsultantORM]:
    """Look up a consultant by contact address. None if absent."""
    stmt = select(ConsultantORM).where(ConsultantORM.email == email)
    if lock:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def list_consultants_by_ids(
    db: AsyncSession,
    consultant_ids: Sequence[str],
) -> dict[str, ConsultantORM]:
    """Map consultant_id -> row for the given identifiers (missing ids omitted)."""
    if not consultant_ids:
        return {}
    result = await db.execute(
        select(ConsultantORM).where(ConsultantORM.consultant_id.in_(list(consultant_ids)))
    )
    return {row.consultant_id: row for row in result.scalars().all()}


async def add_consultant(db: AsyncSession, consultant: ConsultantORM) -> ConsultantORM:
    db.add(consultant)
    await db.flush()
    logger.info("Inserted consultant consultant_id=%s", consultant.consultant_id)
    return consultant


async def delete_consultant(db: AsyncSession, consultant: ConsultantORM) -> None:
    await db.delete(consultant)
    await db.flush()
    logger.info("Deleted consultant row id=%s", consultant.id)


# ---------------------------------------------------------------------------
# Invoice operations
# ---------------------------------------------------------------------------

async def get_invoice(
    db: AsyncSession,
    invoice_id: str,
    lock: bool = False,
) -> Optional[InvoiceORM]:
    """Retrieve one invoice by surrogate id. None if absent (caller returns 404)."""
    stmt = select(InvoiceORM).where(InvoiceORM.id == invoice_id)
    if lock:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def get_invoice_by_key(
    db: AsyncSession,
    consultant_id: str,
    invoice_no: str,
) -> Optional[InvoiceORM]:
    """Retrieve one invoice by its natural key (consultant_id, invoice_no)."""
    result = await db.execute(
        select(InvoiceORM).where(
            InvoiceORM.consultant_id == consultant_id,
            InvoiceORM.invoice_no == invoice_no,
        )
    )
    return result.scalar_one_or_none()


async def list_invoices(
    db: AsyncSession,
    consultant_id: Optional[str] = None,
    status: Optional[str] = None,
) -> list[InvoiceORM]:
    """
    List invoices newest first.
    consultant_id=None lists every consultant's invoices (admin view).
    """
    stmt = select(InvoiceORM)
    if consultant_id is not None:
        stmt = stmt.where(InvoiceORM.consultant_id == consultant_id)
    if status is not None:
        stmt = stmt.where(InvoiceORM.status == status)
    stmt = stmt.order_by(InvoiceORM.created_at.desc(), InvoiceORM.invoice_no.desc())
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def add_invoice(db: AsyncSession, invoice: InvoiceORM) -> InvoiceORM:
    db.add(invoice)
    await db.flush()
    return invoice
