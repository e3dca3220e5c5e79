"""
status.py — Invoice status state machine.

    pending -> sent | paid | error
    error   -> sent | paid | error | pending   (retry through send, or admin reset)
    sent    -> paid
    paid    -> (terminal)

Re-importing a sheet is not a transition: the upserter overwrites the row and
resets it to pending.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone

from invoicedesk.errors import ConflictError
from invoicedesk.models.invoice import InvoiceORM, InvoiceStatus
from invoicedesk.results import Err, Ok, Result

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[InvoiceStatus, frozenset[InvoiceStatus]] = {
    InvoiceStatus.pending: frozenset({InvoiceStatus.sent, InvoiceStatus.paid, InvoiceStatus.error}),
    InvoiceStatus.error: frozenset({
        InvoiceStatus.sent, InvoiceStatus.paid, InvoiceStatus.error, InvoiceStatus.pending,
    }),
    InvoiceStatus.sent: frozenset({InvoiceStatus.paid}),
    InvoiceStatus.paid: frozenset(),
}


def can_transition(current: str, target: str) -> bool:
    return InvoiceStatus(target) in ALLOWED_TRANSITIONS[InvoiceStatus(current)]


def transition(invoice: InvoiceORM, target: str) -> Result[InvoiceORM]:
    """
    Move invoice to target status in memory (caller flushes).
    Entering 'sent' stamps sent_at if the sender has not already done so.
    """
    current = invoice.status
    if not can_transition(current, target):
        if current == target:
            message = f"Invoice {invoice.invoice_no} is already {current}"
        else:
            message = f"Invoice {invoice.invoice_no} cannot move from {current} to {target}"
        return Err(ConflictError(message))

    invoice.status = InvoiceStatus(target).value
    if target == InvoiceStatus.sent.value and invoice.sent_at is None:
        invoice.sent_at = datetime.now(timezone.utc)
    logger.info("Invoice status id=%s %s -> %s", invoice.id, current, target)
    return Ok(invoice)
