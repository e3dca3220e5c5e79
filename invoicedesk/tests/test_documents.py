"""
PDF rendering and email building tests.

The mail and storage clients are exercised against httpx.MockTransport, so no
network is touched.
"""
from __future__ import annotations

import base64
import email
import json

import httpx
import pytest

from invoicedesk.errors import NotFoundError, UpstreamError
from invoicedesk.invoices.pdf_generator import (
    CompanyInfo,
    amount_in_words,
    format_inr,
    generate_invoice_pdf,
    resolve_bank,
)
from invoicedesk.invoices.storage import DocumentStore, invoice_pdf_path
from invoicedesk.models.consultant import ConsultantORM
from invoicedesk.models.invoice import InvoiceORM
from invoicedesk.notifications.mailer import GmailClient, build_invoice_email, build_reminder_email
from invoicedesk.results import Err, Ok

COMPANY = CompanyInfo(name="Acme Pvt Ltd", address="1 Main Road", finance_email="finance@acme.test")


def _consultant() -> ConsultantORM:
    return ConsultantORM(
        consultant_id="C001",
        email="ravi@example.com",
        name="Ravi Kumar",
        pan="ABCDE1234F",
        bank_beneficiary="Ravi Kumar",
        bank_name="HDFC Bank",
        bank_account="001122334455",
        bank_ifsc="HDFC0001234",
    )


def _invoice(**overrides) -> InvoiceORM:
    fields = dict(
        id="inv-1",
        consultant_id="C001",
        invoice_no="INV-1",
        billing_period="Jan'26",
        professional_fee=100000.0,
        incentive=5000.0,
        variable=0.0,
        tds=10500.0,
        reimbursement=1200.0,
        total_days=31,
        working_days=31,
        lop_days=0,
        net_payable_days=31,
    )
    fields.update(overrides)
    return InvoiceORM(**fields)


# ===========================================================================
# Amount helpers
# ===========================================================================

@pytest.mark.parametrize(
    "amount,words",
    [
        (0, "Zero"),
        (900, "Nine Hundred"),
        (1100, "One Thousand One Hundred"),
        (95700, "Ninety Five Thousand Seven Hundred"),
        (125000, "One Lakh Twenty Five Thousand"),
        (23456789, "Two Crore Thirty Four Lakh Fifty Six Thousand Seven Hundred Eighty Nine"),
        (-50, "Minus Fifty"),
    ],
)
def test_amount_in_words_indian_numbering(amount: float, words: str) -> None:
    assert amount_in_words(amount) == words


@pytest.mark.parametrize(
    "amount,text",
    [(900, "900"), (1234567.5, "12,34,567.50"), (100000, "1,00,000"), (-1500, "-1,500")],
)
def test_format_inr(amount: float, text: str) -> None:
    assert format_inr(amount) == text


# ===========================================================================
# PDF
# ===========================================================================

def test_generate_invoice_pdf_returns_rewound_buffer() -> None:
    buffer = generate_invoice_pdf(_invoice(), _consultant(), COMPANY)
    assert buffer.tell() == 0
    assert buffer.read(5) == b"%PDF-"


def test_invoice_bank_override_wins() -> None:
    bank = resolve_bank(_invoice(bank_account="777788889999"), _consultant())
    assert bank["account_number"] == "777788889999"
    assert bank["bank_name"] == "HDFC Bank"


# ===========================================================================
# Email builders
# ===========================================================================

def test_invoice_email_has_subject_body_and_attachment() -> None:
    msg = build_invoice_email(
        sender_name="Ravi Kumar",
        sender_email="ravi@example.com",
        to="finance@acme.test",
        invoice_no="INV-1",
        billing_period="Jan'26",
        net_payable=95700.0,
        pdf_bytes=b"%PDF-1.4 test",
    )
    assert msg["Subject"] == "Invoice INV-1 - Ravi Kumar - Jan'26"
    assert msg["To"] == "finance@acme.test"
    assert "ravi@example.com" in msg["From"]
    body = msg.get_body(preferencelist=("plain",)).get_content()
    assert "Net Payable: Rs. 95,700.00" in body
    [attachment] = list(msg.iter_attachments())
    assert attachment.get_filename() == "INV-1.pdf"
    assert attachment.get_content() == b"%PDF-1.4 test"


def test_invoice_email_headers_fold_line_breaks() -> None:
    msg = build_invoice_email(
        sender_name="Ravi\nKumar",
        sender_email="ravi@example.com",
        to="finance@acme.test",
        invoice_no="INV-1",
        billing_period="Jan\r\n26",
        net_payable=100.0,
        pdf_bytes=b"%PDF-1.4 test",
    )
    assert msg["Subject"] == "Invoice INV-1 - Ravi Kumar - Jan 26"
    assert "Ravi Kumar" in msg["From"]


def test_reminder_email_escapes_html() -> None:
    msg = build_reminder_email(
        sender_email="admin@acme.test",
        to="ravi@example.com",
        name="<Ravi>",
        period="Jan'26",
        app_url="https://portal.test",
        company="Acme Pvt Ltd",
    )
    assert msg["Subject"] == "Reminder: Please submit your invoice for Jan'26"
    html_body = msg.get_body(preferencelist=("html",)).get_content()
    assert "&lt;Ravi&gt;" in html_body
    assert 'href="https://portal.test"' in html_body


# ===========================================================================
# HTTP clients
# ===========================================================================

@pytest.mark.asyncio
async def test_gmail_client_posts_base64url_raw_message() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["Authorization"]
        seen["raw"] = json.loads(request.content)["raw"]
        return httpx.Response(200, json={"id": "abc123"})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        client = GmailClient(http, "https://mail.test/send")
        msg = build_reminder_email(
            sender_email="admin@acme.test", to="ravi@example.com", name="Ravi",
            period="Jan'26", app_url="https://portal.test", company="Acme",
        )
        result = await client.send("tok-1", msg)

    assert isinstance(result, Ok)
    assert result.value == "abc123"
    assert seen["auth"] == "Bearer tok-1"
    assert "=" not in seen["raw"]
    padded = seen["raw"] + "=" * (-len(seen["raw"]) % 4)
    parsed = email.message_from_bytes(base64.urlsafe_b64decode(padded))
    assert parsed["To"] == "ravi@example.com"


@pytest.mark.asyncio
async def test_gmail_client_maps_rejection_to_upstream_error() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(401, json={"error": "bad"}))
    async with httpx.AsyncClient(transport=transport) as http:
        result = await GmailClient(http, "https://mail.test/send").send(
            "expired", build_reminder_email(
                sender_email="a@acme.test", to="b@acme.test", name="B",
                period="Jan", app_url="https://portal.test", company="Acme",
            ),
        )
    assert isinstance(result, Err)
    assert isinstance(result.error, UpstreamError)
    assert "Sign in again" in result.error.message


@pytest.mark.asyncio
async def test_document_store_upload_and_download() -> None:
    objects: dict[str, bytes] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path.split("/object/invoices/", 1)[1]
        if request.method == "POST":
            assert request.headers["x-upsert"] == "true"
            objects[path] = request.content
            return httpx.Response(200, json={"Key": path})
        if path in objects:
            return httpx.Response(200, content=objects[path])
        return httpx.Response(404, json={"error": "not found"})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        store = DocumentStore(http, "https://storage.test/storage/v1/", "invoices", "svc-key")
        path = invoice_pdf_path("C001", "INV-1")
        assert path == "C001/INV-1.pdf"

        uploaded = await store.upload(path, b"%PDF-data")
        assert isinstance(uploaded, Ok)
        assert uploaded.value == "C001/INV-1.pdf"

        downloaded = await store.download(path)
        assert isinstance(downloaded, Ok)
        assert downloaded.value == b"%PDF-data"

        missing = await store.download("C001/INV-2.pdf")
        assert isinstance(missing, Err)
        assert isinstance(missing.error, NotFoundError)
