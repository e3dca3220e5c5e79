"""
models/invoice.py — SQLAlchemy ORM model for monthly consultant invoices.

Table: invoices
Natural key: (consultant_id, invoice_no), enforced by a unique constraint.

Net payable is NOT a column. It is always recomputed from its components:
    professional_fee + incentive + variable - tds + reimbursement
"""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from invoicedesk.database import Base


class InvoiceStatus(str, Enum):
    pending = "pending"
    sent = "sent"
    paid = "paid"
    error = "error"


def _money():
    return mapped_column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)


def _days():
    return mapped_column(Integer, nullable=False, default=0)


class InvoiceORM(Base):
    """
    ORM model for one invoice.

    bank_*: optional per-invoice overrides taken from the spreadsheet. The PDF
            falls back to the consultant's saved bank details when absent.
    pdf_path: storage object key of the document sent to finance.
    """
    __tablename__ = "invoices"
    __table_args__ = (
        UniqueConstraint("consultant_id", "invoice_no", name="uq_invoices_consultant_invoice_no"),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    consultant_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("consultants.consultant_id", onupdate="CASCADE"),
        nullable=False,
        index=True,
    )
    invoice_no: Mapped[str] = mapped_column(String(64), nullable=False)
    billing_period: Mapped[str] = mapped_column(String(64), nullable=False)

    professional_fee: Mapped[float] = _money()
    incentive: Mapped[float] = _money()
    variable: Mapped[float] = _money()
    tds: Mapped[float] = _money()
    reimbursement: Mapped[float] = _money()

    total_days: Mapped[int] = _days()
    working_days: Mapped[int] = _days()
    lop_days: Mapped[int] = _days()
    net_payable_days: Mapped[int] = _days()

    bank_beneficiary: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    bank_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    bank_account: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    bank_ifsc: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    status: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default=InvoiceStatus.pending.value,
        comment="pending | sent | paid | error",
    )
    pdf_path: Mapped[Optional[str]] = mapped_column(String(300), nullable=True)
    sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    @property
    def gross_amount(self) -> float:
        return (self.professional_fee or 0) + (self.incentive or 0) + (self.variable or 0)

    @property
    def net_payable(self) -> float:
        return self.gross_amount - (self.tds or 0) + (self.reimbursement or 0)
