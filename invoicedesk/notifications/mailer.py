"""
mailer.py — Outbound mail through the Gmail users.messages.send API.

Mail is sent from the signed-in consultant's (or admin's) own mailbox using the
OAuth access token their browser session obtained with the gmail.send scope.
Messages are built with the standard library EmailMessage and posted as
{"raw": <base64url MIME>}.

Builders:
    build_invoice_email(...)   plain-text body + PDF attachment, to finance
    build_reminder_email(...)  HTML reminder asking a consultant to submit
"""
from __future__ import annotations

import base64
import html
import logging
from email.message import EmailMessage
from email.utils import formataddr
from typing import Optional

import httpx

from invoicedesk.errors import UpstreamError
from invoicedesk.results import Err, Ok, Result

logger = logging.getLogger(__name__)


class GmailClient:
    def __init__(self, http: httpx.AsyncClient, send_url: str) -> None:
        self._http = http
        self._send_url = send_url

    async def send(self, access_token: str, message: EmailMessage) -> Result[str]:
        """
        Post one MIME message. Ok(provider message id) on success.
        Any transport failure or non-2xx answer is an UpstreamError.
        """
        raw = base64.urlsafe_b64encode(message.as_bytes()).decode("ascii").rstrip("=")
        try:
            response = await self._http.post(
                self._send_url,
                json={"raw": raw},
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except httpx.HTTPError as exc:
            logger.error("Mail provider unreachable: %s", type(exc).__name__)
            return Err(UpstreamError("Mail provider is unavailable"))

        if response.status_code >= 300:
            logger.error("Mail provider rejected message status=%d", response.status_code)
            if response.status_code in (401, 403):
                return Err(UpstreamError(
                    "Mail provider rejected the access token. Sign in again and retry."
                ))
            return Err(UpstreamError(f"Mail provider returned {response.status_code}"))

        try:
            message_id = response.json().get("id", "")
        except ValueError:
            message_id = ""
        logger.info("Mail sent provider_id=%s", message_id)
        return Ok(message_id)


def _format_amount(amount: float) -> str:
    return f"{amount:,.2f}"


def _one_line(value: str) -> str:
    """Collapse whitespace runs, line breaks included, so the value is header-safe."""
    return " ".join(value.split())


def build_invoice_email(
    *,
    sender_name: str,
    sender_email: str,
    to: str,
    invoice_no: str,
    billing_period: str,
    net_payable: float,
    pdf_bytes: bytes,
) -> EmailMessage:
    msg = EmailMessage()
    msg["From"] = formataddr((_one_line(sender_name), sender_email))
    msg["To"] = to
    msg["Subject"] = _one_line(f"Invoice {invoice_no} - {sender_name} - {billing_period}")
    msg.set_content(
        "Dear Finance Team,\n\n"
        f"Please find attached my invoice for {billing_period}.\n\n"
        f"Invoice No: {invoice_no}\n"
        f"Consultant: {sender_name}\n"
        f"Net Payable: Rs. {_format_amount(net_payable)}\n\n"
        "Regards,\n"
        f"{sender_name}\n"
    )
    msg.add_attachment(
        pdf_bytes,
        maintype="application",
        subtype="pdf",
        filename=_one_line(f"{invoice_no}.pdf"),
    )
    return msg


_REMINDER_HTML = """\
<div style="font-family: Arial, sans-serif; max-width: 560px; margin: 0 auto; color: #111;">
  <p>Hi {name},</p>
  <p>Your invoice for <strong>{period}</strong> is pending. Please log in to the
  invoice portal, review the amounts and submit it to finance.</p>
  <p style="margin: 28px 0;">
    <a href="{app_url}" style="background: #111; color: #fff; padding: 10px 20px;
       text-decoration: none; border-radius: 6px;">Submit Invoice</a>
  </p>
  <p>Thanks,<br>Finance Team</p>
  <hr style="border: none; border-top: 1px solid #eee;">
  <p style="font-size: 11px; color: #999;">{company}</p>
</div>
"""


def build_reminder_email(
    *,
    sender_email: str,
    to: str,
    name: str,
    period: str,
    app_url: str,
    company: str,
    sender_name: Optional[str] = None,
) -> EmailMessage:
    msg = EmailMessage()
    msg["From"] = formataddr((_one_line(sender_name or company), sender_email))
    msg["To"] = to
    msg["Subject"] = _one_line(f"Reminder: Please submit your invoice for {period}")
    msg.set_content(
        f"Hi {name},\n\nYour invoice for {period} is pending. "
        f"Please submit it at {app_url}.\n\nThanks,\nFinance Team\n"
    )
    msg.add_alternative(
        _REMINDER_HTML.format(
            name=html.escape(name),
            period=html.escape(period),
            app_url=html.escape(app_url, quote=True),
            company=html.escape(company),
        ),
        subtype="html",
    )
    return msg
