"""
models/consultant.py — SQLAlchemy ORM model for consultant profiles.

Table: consultants

email is the binding key to the identity provider (unique, never null).
consultant_id is the business-assigned code; it is NULL for a row auto-provisioned
at first login and until onboarding supplies it.

Placeholder rows are created by the spreadsheet import for identifiers nobody has
claimed yet. They carry a sentinel address: pending-<id>@placeholder.internal
"""
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from invoicedesk.database import Base

PLACEHOLDER_PREFIX = "pending-"
PLACEHOLDER_DOMAIN = "@placeholder.internal"


def placeholder_email(consultant_id: str) -> str:
    """Deterministic sentinel address for an unclaimed identifier."""
    return f"{PLACEHOLDER_PREFIX}{consultant_id.strip().lower()}{PLACEHOLDER_DOMAIN}"


def is_placeholder_email(email: Optional[str]) -> bool:
    return bool(email) and email.startswith(PLACEHOLDER_PREFIX) and email.endswith(PLACEHOLDER_DOMAIN)


class ConsultantORM(Base):
    """
    ORM model for a consultant.

    is_admin is only ever set out-of-band (SQL / admin tooling); neither the
    import nor onboarding writes it.
    """
    __tablename__ = "consultants"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    consultant_id: Mapped[Optional[str]] = mapped_column(
        String(64),
        unique=True,
        nullable=True,
        comment="Business identifier, e.g. C001. NULL until onboarding.",
    )
    email: Mapped[str] = mapped_column(
        String(320),
        unique=True,
        nullable=False,
        comment="Login address from the identity provider, or a placeholder sentinel",
    )
    name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    pan: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    gstin: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    bank_beneficiary: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    bank_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    bank_account: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    bank_ifsc: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
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
    def is_placeholder(self) -> bool:
        return is_placeholder_email(self.email)
