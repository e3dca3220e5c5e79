"""
pdf_generator.py — InvoiceDesk invoice PDF renderer.

Builds a one-page A4 invoice using reportlab PLATYPUS.
Output is a BytesIO buffer (no temp file on disk).

Entry point:
    generate_invoice_pdf(invoice, consultant, company) -> BytesIO

CRITICAL: buffer.seek(0) is called after doc.build(story) — reportlab leaves the
buffer position at the end after writing. Skipping seek(0) produces a 0-byte
attachment / download.

PDF sections, top to bottom:
  1. Header (Invoice, invoice number, billing period badge)
  2. From / Bill To
  3. Service days summary
  4. Payment details table
  5. Net payable bar + amount in words
  6. Bank details (invoice override, else consultant's saved details)
  7. Signature line
  8. Footer (drawn on the page canvas)

Amounts print as "Rs." — the base-14 Helvetica font has no rupee glyph.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from io import BytesIO
from xml.sax.saxutils import escape

from reportlab.lib.colors import HexColor, white
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from invoicedesk.config import settings
from invoicedesk.models.consultant import ConsultantORM
from invoicedesk.models.invoice import InvoiceORM

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Colour constants
# ---------------------------------------------------------------------------

INK = HexColor("#111111")
MUTED = HexColor("#777777")
RULE = HexColor("#F0F0F0")
PANEL = HexColor("#F8F8F8")
ACCENT = HexColor("#E85D04")   # Billing period badge
DEDUCTION = HexColor("#DC2626")  # TDS row


@dataclass(frozen=True)
class CompanyInfo:
    name: str
    address: str
    finance_email: str

    @classmethod
    def from_settings(cls) -> "CompanyInfo":
        return cls(
            name=settings.company_name,
            address=settings.company_address,
            finance_email=settings.finance_email,
        )


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

_ONES = [
    "", "One", "Two", "Three", "Four", "Five", "Six", "Seven", "Eight", "Nine", "Ten",
    "Eleven", "Twelve", "Thirteen", "Fourteen", "Fifteen", "Sixteen", "Seventeen",
    "Eighteen", "Nineteen",
]
_TENS = ["", "", "Twenty", "Thirty", "Forty", "Fifty", "Sixty", "Seventy", "Eighty", "Ninety"]

# Indian numbering: crore = 1,00,00,000; lakh = 1,00,000
_SCALES = [(10_000_000, "Crore"), (100_000, "Lakh"), (1_000, "Thousand"), (100, "Hundred")]


def amount_in_words(amount: float) -> str:
    """
    Whole-rupee amount in Indian English words.
        900       -> "Nine Hundred"
        1_25_000  -> "One Lakh Twenty Five Thousand"
    """
    n = int(round(amount))
    if n == 0:
        return "Zero"
    if n < 0:
        return "Minus " + amount_in_words(-n)
    if n < 20:
        return _ONES[n]
    if n < 100:
        return _TENS[n // 10] + (" " + _ONES[n % 10] if n % 10 else "")
    for scale, label in _SCALES:
        if n >= scale:
            head = amount_in_words(n // scale) + " " + label
            rest = n % scale
            return head + (" " + amount_in_words(rest) if rest else "")
    return ""  # unreachable: every n >= 100 matches a scale


def format_inr(amount: float) -> str:
    """Indian digit grouping: 1234567.5 -> '12,34,567.50', 900 -> '900'."""
    negative = amount < 0
    amount = abs(amount)
    whole = int(amount)
    paise = int(round((amount - whole) * 100))
    if paise == 100:
        whole, paise = whole + 1, 0
    digits = str(whole)
    if len(digits) > 3:
        head, tail = digits[:-3], digits[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        digits = ",".join(groups) + "," + tail
    text = f"{digits}.{paise:02d}" if paise else digits
    return f"-{text}" if negative else text


# ---------------------------------------------------------------------------
# Private section builders
# ---------------------------------------------------------------------------

def _build_header(invoice: InvoiceORM, styles) -> Table:
    title = ParagraphStyle("inv_title", parent=styles["Heading1"], fontSize=26, textColor=INK)
    number = ParagraphStyle("inv_no", parent=styles["Normal"], fontName="Courier", textColor=MUTED)
    badge = ParagraphStyle(
        "badge", parent=styles["Normal"], fontName="Helvetica-Bold", textColor=white, alignment=1,
    )
    label = ParagraphStyle("badge_label", parent=styles["Normal"], fontSize=8, textColor=MUTED, alignment=2)

    badge_cell = Table([[Paragraph(escape(invoice.billing_period), badge)]], colWidths=[40 * mm])
    badge_cell.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, -1), ACCENT),
        ("TOPPADDING", (0, 0), (-1, -1), 4),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
    ]))

    t = Table(
        [[Paragraph("Invoice", title), badge_cell],
         [Paragraph(escape(invoice.invoice_no), number), Paragraph("Billing Period", label)]],
        colWidths=[125 * mm, 45 * mm],
    )
    t.setStyle(TableStyle([
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("ALIGN", (1, 0), (1, -1), "RIGHT"),
        ("LINEBELOW", (0, -1), (-1, -1), 1, RULE),
        ("BOTTOMPADDING", (0, -1), (-1, -1), 8),
    ]))
    return t


def _build_parties(consultant: ConsultantORM, company: CompanyInfo, styles) -> Table:
    section = ParagraphStyle("section", parent=styles["Normal"], fontSize=8, textColor=MUTED,
                             fontName="Helvetica-Bold")
    bold = ParagraphStyle("party", parent=styles["Normal"], fontName="Helvetica-Bold")
    mono = ParagraphStyle("mono", parent=styles["Normal"], fontName="Courier", fontSize=9)

    from_lines = [
        Paragraph("FROM", section),
        Paragraph(escape(consultant.name or ""), bold),
        Paragraph(f"PAN: {escape(consultant.pan or '—')}", mono),
    ]
    if consultant.gstin:
        from_lines.append(Paragraph(f"GSTIN: {escape(consultant.gstin)}", mono))
    from_lines.append(Paragraph(f"ID: {escape(consultant.consultant_id or '')}", mono))

    bill_lines = [
        Paragraph("BILL TO", section),
        Paragraph(escape(company.name), bold),
        Paragraph(escape(company.address), styles["Normal"]),
    ]

    t = Table([[from_lines, bill_lines]], colWidths=[85 * mm, 85 * mm])
    t.setStyle(TableStyle([("VALIGN", (0, 0), (-1, -1), "TOP")]))
    return t


def _build_days_table(invoice: InvoiceORM) -> Table:
    data = [
        [str(invoice.total_days), str(invoice.working_days),
         str(invoice.lop_days), str(invoice.net_payable_days)],
        ["Total Days", "Working Days", "LOP Days", "Net Payable Days"],
    ]
    t = Table(data, colWidths=[42.5 * mm] * 4)
    t.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, -1), PANEL),
        ("BOX", (0, 0), (-1, -1), 0.5, RULE),
        ("ALIGN", (0, 0), (-1, -1), "CENTER"),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, 0), 16),
        ("FONTSIZE", (0, 1), (-1, 1), 8),
        ("TEXTCOLOR", (0, 1), (-1, 1), MUTED),
        ("TOPPADDING", (0, 0), (-1, -1), 6),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
    ]))
    return t


def _build_payment_table(invoice: InvoiceORM) -> Table:
    """
    Description | Amount (Rs.). TDS is shown in brackets and red; the total row
    (fee + incentive + variable) is bold.
    """
    data = [
        ["DESCRIPTION", "AMOUNT (Rs.)"],
        ["Professional Fee", format_inr(invoice.professional_fee)],
        ["Incentive", format_inr(invoice.incentive)],
        ["Variable / Bonus / Referral", format_inr(invoice.variable)],
        ["Total Amount", format_inr(invoice.gross_amount)],
        ["TDS @ 10%", f"({format_inr(invoice.tds)})"],
        ["Reimbursement", format_inr(invoice.reimbursement)],
    ]
    t = Table(data, colWidths=[120 * mm, 50 * mm])
    t.setStyle(TableStyle([
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, 0), 8),
        ("TEXTCOLOR", (0, 0), (-1, 0), MUTED),
        ("LINEBELOW", (0, 0), (-1, 0), 1.5, INK),
        ("LINEBELOW", (0, 1), (-1, -1), 0.5, RULE),
        ("FONTNAME", (1, 1), (1, -1), "Courier"),
        ("ALIGN", (1, 0), (1, -1), "RIGHT"),
        ("FONTNAME", (0, 4), (0, 4), "Helvetica-Bold"),
        ("FONTNAME", (1, 4), (1, 4), "Courier-Bold"),
        ("TEXTCOLOR", (0, 5), (-1, 5), DEDUCTION),
        ("TOPPADDING", (0, 0), (-1, -1), 5),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 5),
    ]))
    return t


def _build_net_bar(invoice: InvoiceORM) -> Table:
    t = Table(
        [["Net Payable", f"Rs. {format_inr(invoice.net_payable)}"]],
        colWidths=[100 * mm, 70 * mm],
    )
    t.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, -1), INK),
        ("TEXTCOLOR", (0, 0), (-1, -1), white),
        ("FONTNAME", (0, 0), (0, 0), "Helvetica-Bold"),
        ("FONTNAME", (1, 0), (1, 0), "Courier-Bold"),
        ("FONTSIZE", (0, 0), (0, 0), 12),
        ("FONTSIZE", (1, 0), (1, 0), 14),
        ("ALIGN", (1, 0), (1, 0), "RIGHT"),
        ("TOPPADDING", (0, 0), (-1, -1), 9),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 9),
        ("LEFTPADDING", (0, 0), (-1, -1), 12),
        ("RIGHTPADDING", (0, 0), (-1, -1), 12),
    ]))
    return t


def resolve_bank(invoice: InvoiceORM, consultant: ConsultantORM) -> dict[str, str | None]:
    """Spreadsheet bank details win; fall back to the consultant's saved details."""
    return {
        "beneficiary": invoice.bank_beneficiary or consultant.bank_beneficiary,
        "bank_name": invoice.bank_name or consultant.bank_name,
        "account_number": invoice.bank_account or consultant.bank_account,
        "ifsc": invoice.bank_ifsc or consultant.bank_ifsc,
    }


def _build_bank_table(invoice: InvoiceORM, consultant: ConsultantORM) -> Table:
    bank = resolve_bank(invoice, consultant)
    data = [
        ["Beneficiary Name", "Bank Name"],
        [bank["beneficiary"] or "—", bank["bank_name"] or "—"],
        ["Account Number", "IFSC Code"],
        [bank["account_number"] or "—", bank["ifsc"] or "—"],
    ]
    t = Table(data, colWidths=[85 * mm, 85 * mm])
    t.setStyle(TableStyle([
        ("FONTSIZE", (0, 0), (-1, 0), 8),
        ("FONTSIZE", (0, 2), (-1, 2), 8),
        ("TEXTCOLOR", (0, 0), (-1, 0), MUTED),
        ("TEXTCOLOR", (0, 2), (-1, 2), MUTED),
        ("FONTNAME", (0, 1), (-1, 1), "Courier"),
        ("FONTNAME", (0, 3), (-1, 3), "Courier"),
        ("BOTTOMPADDING", (0, 1), (-1, 1), 8),
    ]))
    return t


def _build_signature() -> Table:
    t = Table([[""], ["Consultant Signature"]], colWidths=[55 * mm], rowHeights=[16 * mm, None])
    t.setStyle(TableStyle([
        ("LINEBELOW", (0, 0), (0, 0), 0.5, HexColor("#CCCCCC")),
        ("ALIGN", (0, 1), (0, 1), "CENTER"),
        ("FONTSIZE", (0, 1), (0, 1), 8),
        ("TEXTCOLOR", (0, 1), (0, 1), MUTED),
    ]))
    t.hAlign = "RIGHT"
    return t


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------

def generate_invoice_pdf(
    invoice: InvoiceORM,
    consultant: ConsultantORM,
    company: CompanyInfo,
) -> BytesIO:
    """
    Render the invoice as an A4 PDF.

    Args:
        invoice: the invoice row (net payable is recomputed, never read from storage).
        consultant: owner of the invoice — name, PAN, GSTIN, fallback bank details.
        company: the billed company.

    Returns:
        BytesIO buffer at position 0.
    """
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=20 * mm,
        rightMargin=20 * mm,
        topMargin=18 * mm,
        bottomMargin=20 * mm,
        title=f"Invoice {invoice.invoice_no}",
        author=consultant.name or "",
    )
    styles = getSampleStyleSheet()
    section = ParagraphStyle("section_label", parent=styles["Normal"], fontSize=8,
                             textColor=MUTED, fontName="Helvetica-Bold")
    words = ParagraphStyle("words", parent=styles["Normal"], fontSize=9, textColor=MUTED,
                           fontName="Helvetica-Oblique")

    footer_text = f"{company.name}  ·  Generated via Invoice Portal  ·  {invoice.invoice_no}"

    def _draw_footer(canvas, _doc) -> None:
        canvas.saveState()
        canvas.setFont("Helvetica", 7)
        canvas.setFillColor(HexColor("#AAAAAA"))
        canvas.drawCentredString(A4[0] / 2, 10 * mm, footer_text)
        canvas.restoreState()

    story = [
        _build_header(invoice, styles),
        Spacer(1, 6 * mm),
        _build_parties(consultant, company, styles),
        Spacer(1, 6 * mm),
        Paragraph("SERVICE DAYS SUMMARY", section),
        Spacer(1, 2 * mm),
        _build_days_table(invoice),
        Spacer(1, 6 * mm),
        Paragraph("PAYMENT DETAILS", section),
        Spacer(1, 2 * mm),
        _build_payment_table(invoice),
        Spacer(1, 4 * mm),
        _build_net_bar(invoice),
        Spacer(1, 2 * mm),
        Paragraph(f"{amount_in_words(invoice.net_payable)} Rupees Only", words),
        Spacer(1, 6 * mm),
        Paragraph("BANK DETAILS", section),
        Spacer(1, 2 * mm),
        _build_bank_table(invoice, consultant),
        Spacer(1, 8 * mm),
        _build_signature(),
    ]

    doc.build(story, onFirstPage=_draw_footer, onLaterPages=_draw_footer)
    buffer.seek(0)  # MANDATORY: reset position before anyone reads

    logger.info("Invoice PDF generated invoice_id=%s", invoice.id)
    return buffer
