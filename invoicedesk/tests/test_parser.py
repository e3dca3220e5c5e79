"""
Payroll CSV parser tests — header normalisation, required columns, row checks.

Pure functions: no database, no app.
"""
from __future__ import annotations

import pytest

from invoicedesk.errors import InvalidRows, MissingColumns, ValidationError
from invoicedesk.importer.parser import normalize_header, parse_csv, validate_rows
from invoicedesk.results import Err, Ok

HEADER = (
    "consultant_id,invoice_no,billing_period,professional_fee,tds,"
    "total_days,working_days,net_payable_days"
)


def _parse_and_validate(text: str):
    parsed = parse_csv(text)
    assert isinstance(parsed, Ok), parsed
    return validate_rows(parsed.value)


# ===========================================================================
# Header normalisation
# ===========================================================================

@pytest.mark.parametrize(
    "raw,expected",
    [
        ("Consultant ID", "consultant_id"),
        ("  Invoice No ", "invoice_no"),
        ("Variable / Bonus / Referral", "variable"),
        ("TDS @ 10%", "tds"),
        ("LOP", "lop_days"),
        ("Email ID", "email"),
        ("IFSC Code", "bank_ifsc"),
        ("\ufeffconsultant_id", "consultant_id"),
        ("Something Else", "something_else"),
    ],
)
def test_normalize_header(raw: str, expected: str) -> None:
    assert normalize_header(raw) == expected


# ===========================================================================
# Header checks
# ===========================================================================

def test_scenario_row_parses() -> None:
    result = _parse_and_validate(HEADER + "\nC001,INV-1,Jan'26,1000,100,30,30,30\n")
    assert isinstance(result, Ok)
    [row] = result.value
    assert row.consultant_id == "C001"
    assert row.invoice_no == "INV-1"
    assert row.billing_period == "Jan'26"
    assert row.professional_fee == 1000.0
    assert row.tds == 100.0
    assert row.incentive == 0.0
    assert row.net_payable_days == 30
    assert row.email == ""
    assert row.line_no == 2


def test_missing_columns_listed() -> None:
    result = parse_csv("consultant_id,invoice_no,billing_period\nC001,INV-1,Jan\n")
    assert isinstance(result, Err)
    assert isinstance(result.error, MissingColumns)
    assert result.error.columns == [
        "professional_fee", "tds", "total_days", "working_days", "net_payable_days",
    ]
    assert "professional_fee" in result.error.message


def test_empty_text_rejected() -> None:
    result = parse_csv("")
    assert isinstance(result, Err)
    assert isinstance(result.error, ValidationError)


def test_header_only_rejected() -> None:
    result = _parse_and_validate(HEADER + "\n")
    assert isinstance(result, Err)
    assert not isinstance(result.error, InvalidRows)
    assert "at least one data row" in result.error.message


def test_aliased_headers_accepted() -> None:
    text = (
        "Consultant ID,Invoice Number,Billing Period,Professional Fee,TDS @ 10%,"
        "Total Days,Working Days,LOP,Net Payable Days,Variable / Bonus / Referral\n"
        "C002,INV-7,Feb'26,\"2,500\",250,28,28,2,26,300\n"
    )
    result = _parse_and_validate(text)
    assert isinstance(result, Ok)
    [row] = result.value
    assert row.professional_fee == 2500.0
    assert row.variable == 300.0
    assert row.lop_days == 2


# ===========================================================================
# Row checks
# ===========================================================================

def test_blank_lines_skipped_and_line_numbers_kept() -> None:
    text = HEADER + "\n\nC001,INV-1,Jan,1000,100,30,30,30\n,,,,,,,\nC002,INV-2,Jan,10,1,30,30,30\n"
    result = _parse_and_validate(text)
    assert isinstance(result, Ok)
    assert [r.line_no for r in result.value] == [3, 5]


def test_missing_required_values_reported_per_line() -> None:
    text = (
        HEADER + "\n"
        "C001,INV-1,Jan,1000,100,30,30,30\n"
        ",INV-2,Jan,1000,100,30,30,30\n"
        "C003,,,1000,100,30,30,30\n"
    )
    result = _parse_and_validate(text)
    assert isinstance(result, Err)
    assert isinstance(result.error, InvalidRows)
    assert result.error.line_numbers == [3, 4]
    assert "3, 4" in result.error.message
    assert result.error.details[1]["issue"] == "missing invoice_no, billing_period"


def test_email_required_only_when_column_present() -> None:
    text = (
        HEADER + ",email\n"
        "C001,INV-1,Jan,1000,100,30,30,30,a@x.com\n"
        "C002,INV-2,Jan,1000,100,30,30,30,\n"
    )
    result = _parse_and_validate(text)
    assert isinstance(result, Err)
    assert result.error.line_numbers == [3]


def test_negative_amount_rejected() -> None:
    result = _parse_and_validate(HEADER + "\nC001,INV-1,Jan,-1000,100,30,30,30\n")
    assert isinstance(result, Err)
    assert "professional_fee" in result.error.details[0]["issue"]


def test_unreadable_number_becomes_zero() -> None:
    result = _parse_and_validate(HEADER + "\nC001,INV-1,Jan,n/a,100,30,abc,30\n")
    assert isinstance(result, Ok)
    assert result.value[0].professional_fee == 0.0
    assert result.value[0].working_days == 0


def test_conflicting_emails_for_one_identifier_rejected() -> None:
    text = (
        HEADER + ",email\n"
        "C001,INV-1,Jan,1000,100,30,30,30,a@x.com\n"
        "C001,INV-2,Feb,1000,100,30,30,30,B@x.com\n"
    )
    result = _parse_and_validate(text)
    assert isinstance(result, Err)
    assert result.error.line_numbers == [3]


def test_text_fields_normalised() -> None:
    text = HEADER + ",email,pan\nC001,INV-1,Jan,1000,100,30,30,30, A@X.COM ,abcde1234f\n"
    result = _parse_and_validate(text)
    assert isinstance(result, Ok)
    assert result.value[0].email == "a@x.com"
    assert result.value[0].pan == "ABCDE1234F"


def test_consultant_id_upper_cased() -> None:
    result = _parse_and_validate(HEADER + "\nc001,INV-1,Jan,1000,100,30,30,30\n")
    assert isinstance(result, Ok)
    assert result.value[0].consultant_id == "C001"


def test_line_break_inside_quoted_field_rejected() -> None:
    text = (
        HEADER + "\n"
        "C001,INV-1,\"Jan\n26\",1000,100,30,30,30\n"
        "C002,INV-2,Jan,1000,100,30,30,30\n"
    )
    result = _parse_and_validate(text)
    assert isinstance(result, Err)
    assert isinstance(result.error, InvalidRows)
    # csv.reader reports the line the record ends on
    assert result.error.line_numbers == [3]
    assert result.error.details[0]["issue"] == "line break in billing_period"


@pytest.mark.parametrize(
    "extra_header,line,column",
    [
        ("", "C001," + "I" * 65 + ",Jan,1000,100,30,30,30", "invoice_no"),
        (",pan", "C001,INV-1,Jan,1000,100,30,30,30," + "P" * 21, "pan"),
        (",IFSC Code", "C001,INV-1,Jan,1000,100,30,30,30," + "H" * 21, "bank_ifsc"),
    ],
)
def test_values_longer_than_their_column_rejected(extra_header: str, line: str, column: str) -> None:
    text = HEADER + extra_header + "\n" + line + "\n"
    result = _parse_and_validate(text)
    assert isinstance(result, Err)
    assert isinstance(result.error, InvalidRows)
    assert result.error.details[0]["issue"] == f"value too long in {column}"
