"""
schemas.py — Importer Pydantic v2 data contracts.

Defines:
  - ImportRow        one typed spreadsheet line (output of the parser)
  - ReconcileReport  what the consultant reconciler did per identifier
  - InvoiceOut       invoice as returned to the admin UI after an upload
  - UploadResponse   POST /api/admin/upload response body

Monetary fields are INR, non-negative. Day counts are whole days.
"""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ImportRow(BaseModel):
    """A single parsed data line. line_no is the 1-based line in the source file."""

    line_no: int

    # --- Consultant profile ---
    consultant_id: str = ""
    email: str = ""
    name: str = ""
    pan: str = ""
    gstin: str = ""

    # --- Invoice identity ---
    invoice_no: str = ""
    billing_period: str = ""

    # --- Monetary components ---
    professional_fee: float = 0.0
    incentive: float = 0.0
    variable: float = 0.0
    tds: float = 0.0
    reimbursement: float = 0.0

    # --- Day counts ---
    total_days: int = 0
    working_days: int = 0
    lop_days: int = 0
    net_payable_days: int = 0

    # --- Optional bank overrides ---
    bank_beneficiary: Optional[str] = None
    bank_name: Optional[str] = None
    bank_account: Optional[str] = None
    bank_ifsc: Optional[str] = None

    # Amounts that could not be read as non-negative numbers
    negative_fields: List[str] = Field(default_factory=list)


class ReconcileReport(BaseModel):
    """Identifiers grouped by what the reconciler did with them."""

    placeholders_created: List[str] = Field(default_factory=list)
    consultants_created: List[str] = Field(default_factory=list)
    consultants_updated: List[str] = Field(default_factory=list)


class InvoiceOut(BaseModel):
    """Invoice row as displayed after import and in listings."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    consultant_id: str
    invoice_no: str
    billing_period: str
    professional_fee: float
    incentive: float
    variable: float
    tds: float
    reimbursement: float
    total_days: int
    working_days: int
    lop_days: int
    net_payable_days: int
    net_payable: float
    status: str
    pdf_path: Optional[str] = None
    sent_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class UploadResponse(BaseModel):
    count: int
    rows: List[InvoiceOut]
    placeholders_created: int
    note: Optional[str] = None


__all__ = [
    "ImportRow",
    "ReconcileReport",
    "InvoiceOut",
    "UploadResponse",
]
