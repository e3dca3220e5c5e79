"""
parser.py — Payroll spreadsheet (CSV) row parser.

parse_csv(text) checks the header eagerly and returns a lazy, single-pass
stream of ImportRow objects. validate_rows() then drains that stream and
rejects the whole batch if any line lacks required values.

Header normalisation:
  "Variable / Bonus / Referral" -> "variable_bonus_referral" -> alias -> "variable"
  "TDS @ 10%"                   -> "tds_10"                  -> alias -> "tds"

Numbers are permissive: an unreadable amount or day count becomes 0.
"""
from __future__ import annotations

import csv
import io
import logging
import math
import re
from dataclasses import dataclass
from typing import Iterator

from invoicedesk.errors import InvalidRows, MissingColumns, ValidationError
from invoicedesk.importer.schemas import ImportRow
from invoicedesk.results import Err, Ok, Result

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Column constants
# ---------------------------------------------------------------------------

REQUIRED_COLUMNS = [
    "consultant_id",
    "invoice_no",
    "billing_period",
    "professional_fee",
    "tds",
    "total_days",
    "working_days",
    "net_payable_days",
]

# Per-row values that must be non-empty whenever their column is present
ROW_REQUIRED = ["consultant_id", "invoice_no", "billing_period"]
ROW_REQUIRED_IF_PRESENT = ["email", "pan"]

MONEY_FIELDS = ["professional_fee", "incentive", "variable", "tds", "reimbursement"]
DAY_FIELDS = ["total_days", "working_days", "lop_days", "net_payable_days"]
TEXT_FIELDS = [
    "consultant_id", "email", "name", "pan", "gstin", "invoice_no", "billing_period",
]
BANK_FIELDS = ["bank_beneficiary", "bank_name", "bank_account", "bank_ifsc"]

# Mirrors the column widths in models/consultant.py and models/invoice.py
MAX_LENGTHS = {
    "consultant_id": 64,
    "email": 320,
    "name": 200,
    "pan": 20,
    "gstin": 20,
    "invoice_no": 64,
    "billing_period": 64,
    "bank_beneficiary": 200,
    "bank_name": 200,
    "bank_account": 64,
    "bank_ifsc": 20,
}

COLUMN_ALIASES = {
    # identity
    "consultant_code": "consultant_id",
    "consultant": "consultant_id",
    "emp_id": "consultant_id",
    "email_id": "email",
    "email_address": "email",
    "contact_email": "email",
    "consultant_name": "name",
    "full_name": "name",
    "pan_no": "pan",
    "pan_number": "pan",
    "gst": "gstin",
    "gst_no": "gstin",
    # invoice identity
    "invoice_number": "invoice_no",
    "invoice": "invoice_no",
    "period": "billing_period",
    "month": "billing_period",
    # money
    "fee": "professional_fee",
    "professional_fees": "professional_fee",
    "incentives": "incentive",
    "variable_bonus_referral": "variable",
    "variable_bonus": "variable",
    "bonus": "variable",
    "tds_10": "tds",
    "tax_withheld": "tds",
    "reimbursements": "reimbursement",
    # days
    "lop": "lop_days",
    "leave_without_pay": "lop_days",
    "leave_without_pay_days": "lop_days",
    "net_days": "net_payable_days",
    # bank
    "beneficiary": "bank_beneficiary",
    "beneficiary_name": "bank_beneficiary",
    "account_number": "bank_account",
    "account_no": "bank_account",
    "bank_account_number": "bank_account",
    "ifsc": "bank_ifsc",
    "ifsc_code": "bank_ifsc",
}

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def normalize_header(token: str) -> str:
    """Lower-case, collapse punctuation/whitespace runs to '_', then apply aliases."""
    key = _NON_ALNUM.sub("_", token.strip().lstrip("\ufeff").lower()).strip("_")
    return COLUMN_ALIASES.get(key, key)


def _to_float(raw: str) -> float:
    text = raw.strip().replace(",", "")
    if not text:
        return 0.0
    try:
        value = float(text)
    except ValueError:
        return 0.0
    if math.isnan(value) or math.isinf(value):
        return 0.0
    return value


def _to_int(raw: str) -> int:
    text = raw.strip().replace(",", "")
    if not text:
        return 0
    try:
        return int(text)
    except ValueError:
        pass
    try:
        value = float(text)
    except ValueError:
        return 0
    if math.isnan(value) or math.isinf(value):
        return 0
    return int(value)


def _has_line_break(value) -> bool:
    return bool(value) and ("\n" in value or "\r" in value)


def _build_row(line_no: int, record: dict[str, str]) -> ImportRow:
    values: dict = {"line_no": line_no}
    for field in TEXT_FIELDS:
        values[field] = record.get(field, "").strip()
    values["consultant_id"] = values["consultant_id"].upper()
    values["email"] = values["email"].lower()
    values["pan"] = values["pan"].upper()
    values["gstin"] = values["gstin"].upper()

    negative: list[str] = []
    for field in MONEY_FIELDS:
        amount = _to_float(record.get(field, ""))
        if amount < 0:
            negative.append(field)
        values[field] = amount
    for field in DAY_FIELDS:
        days = _to_int(record.get(field, ""))
        if days < 0:
            negative.append(field)
        values[field] = days
    for field in BANK_FIELDS:
        values[field] = record.get(field, "").strip() or None
    values["negative_fields"] = negative
    return ImportRow(**values)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

@dataclass
class ParsedCsv:
    """
    columns: normalised header names, in file order.
    rows:    lazy single-pass iterator — consuming it twice yields nothing the second time.
    """
    columns: list[str]
    rows: Iterator[ImportRow]


def _iter_rows(reader, columns: list[str]) -> Iterator[ImportRow]:
    for values in reader:
        if not any(v.strip() for v in values):
            continue
        record = {
            col: (values[i] if i < len(values) else "")
            for i, col in enumerate(columns)
        }
        yield _build_row(reader.line_num, record)


def parse_csv(text: str) -> Result[ParsedCsv]:
    """
    Parse raw delimited text whose first line is the header.

    Returns:
        Ok(ParsedCsv) with a lazy row iterator, or
        Err(MissingColumns) listing every required column absent from the header, or
        Err(ValidationError) when there is no header at all.
    """
    reader = csv.reader(io.StringIO(text.lstrip("\ufeff")))
    header: list[str] = []
    for values in reader:
        if any(v.strip() for v in values):
            header = values
            break
    if not header:
        return Err(ValidationError("CSV must have a header row and at least one data row"))

    columns = [normalize_header(token) for token in header]
    missing = [col for col in REQUIRED_COLUMNS if col not in columns]
    if missing:
        logger.info("CSV rejected: missing columns=%s", missing)
        return Err(MissingColumns(missing))

    return Ok(ParsedCsv(columns=columns, rows=_iter_rows(reader, columns)))


def validate_rows(parsed: ParsedCsv) -> Result[list[ImportRow]]:
    """
    Drain the row stream and check every line.

    Collects all violations before failing, so the admin sees every bad line in
    one response. Nothing is written by the caller if this returns Err.
    """
    rows = list(parsed.rows)
    if not rows:
        return Err(ValidationError("CSV must have a header row and at least one data row"))

    required = ROW_REQUIRED + [c for c in ROW_REQUIRED_IF_PRESENT if c in parsed.columns]
    issues: dict[int, str] = {}
    first_email: dict[str, str] = {}

    for row in rows:
        missing = [field for field in required if not getattr(row, field)]
        if missing:
            issues[row.line_no] = f"missing {', '.join(missing)}"
            continue
        if row.negative_fields:
            issues[row.line_no] = f"negative value in {', '.join(row.negative_fields)}"
            continue
        broken = [field for field in MAX_LENGTHS if _has_line_break(getattr(row, field))]
        if broken:
            issues[row.line_no] = f"line break in {', '.join(broken)}"
            continue
        too_long = [
            field for field, limit in MAX_LENGTHS.items()
            if len(getattr(row, field) or "") > limit
        ]
        if too_long:
            issues[row.line_no] = f"value too long in {', '.join(too_long)}"
            continue
        if row.email:
            seen = first_email.setdefault(row.consultant_id, row.email)
            if seen != row.email:
                issues[row.line_no] = (
                    f"email {row.email} conflicts with {seen} for {row.consultant_id}"
                )

    if issues:
        line_numbers = sorted(issues)
        logger.info("CSV rejected: invalid lines=%s", line_numbers)
        return Err(InvalidRows(line_numbers, issues))

    return Ok(rows)
