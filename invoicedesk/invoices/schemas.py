"""
schemas.py — Invoice listing, detail, status and send contracts.

Admin views mask every bank account number to its last 4 digits.
Consultant views of their own invoices are unmasked.
"""
from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from invoicedesk.importer.schemas import InvoiceOut


def mask_account(account: Optional[str]) -> Optional[str]:
    """'123456789012' -> '********9012'. Short or empty values are fully masked."""
    if not account:
        return account
    account = account.strip()
    if len(account) <= 4:
        return "*" * len(account)
    return "*" * (len(account) - 4) + account[-4:]


class BankDetails(BaseModel):
    beneficiary: Optional[str] = None
    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    ifsc: Optional[str] = None


class InvoiceDetail(InvoiceOut):
    """Invoice plus the consultant display fields the UI and PDF need."""

    gross_amount: float
    consultant_name: Optional[str] = None
    consultant_email: Optional[str] = None
    consultant_pan: Optional[str] = None
    consultant_gstin: Optional[str] = None
    bank: BankDetails = Field(default_factory=BankDetails)


class InvoiceList(BaseModel):
    invoices: List[InvoiceDetail]


class InvoiceDraftUpdate(BaseModel):
    """
    Consultant edits to a pending draft. Omitted fields keep their value;
    net_payable_days is always recomputed as working_days - lop_days.
    """
    model_config = ConfigDict(extra="forbid")

    professional_fee: Optional[float] = Field(default=None, ge=0)
    incentive: Optional[float] = Field(default=None, ge=0)
    variable: Optional[float] = Field(default=None, ge=0)
    tds: Optional[float] = Field(default=None, ge=0)
    reimbursement: Optional[float] = Field(default=None, ge=0)
    working_days: Optional[int] = Field(default=None, ge=0)
    lop_days: Optional[int] = Field(default=None, ge=0)


class StatusUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: Literal["pending", "sent", "paid"]


class SendRequest(BaseModel):
    """access_token: the consultant's mail-provider OAuth token (gmail.send scope)."""
    model_config = ConfigDict(extra="forbid")

    access_token: str = Field(..., min_length=1)


class SendResponse(BaseModel):
    success: bool = True
    invoice_no: str
    sent_to: str
    sent_from: str
    pdf_path: Optional[str] = None
    sent_at: datetime


class ReminderRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    email: str = Field(..., min_length=3, max_length=320)
    name: str = Field(..., min_length=1, max_length=200)
    period: str = Field(..., min_length=1, max_length=64)
    access_token: str = Field(..., min_length=1)


class ReminderResponse(BaseModel):
    success: bool = True
    sent_to: str


__all__ = [
    "mask_account",
    "BankDetails",
    "InvoiceDetail",
    "InvoiceList",
    "InvoiceDraftUpdate",
    "StatusUpdateRequest",
    "SendRequest",
    "SendResponse",
    "ReminderRequest",
    "ReminderResponse",
]
