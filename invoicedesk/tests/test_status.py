"""
Invoice status state machine tests.
"""
from __future__ import annotations

from dataclasses import dataclass

import pytest

from invoicedesk.errors import ConflictError
from invoicedesk.invoices.status import can_transition, transition
from invoicedesk.models.invoice import InvoiceORM
from invoicedesk.results import Err, Ok


@dataclass
class TransitionCase:
    current: str
    target: str
    allowed: bool


CASES = [
    TransitionCase("pending", "sent", True),
    TransitionCase("pending", "paid", True),
    TransitionCase("pending", "error", True),
    TransitionCase("pending", "pending", False),
    TransitionCase("error", "sent", True),
    TransitionCase("error", "error", True),
    TransitionCase("error", "paid", True),
    TransitionCase("error", "pending", True),
    TransitionCase("sent", "paid", True),
    TransitionCase("sent", "sent", False),
    TransitionCase("sent", "pending", False),
    TransitionCase("sent", "error", False),
    TransitionCase("paid", "sent", False),
    TransitionCase("paid", "pending", False),
    TransitionCase("paid", "paid", False),
]


def _invoice(status: str) -> InvoiceORM:
    return InvoiceORM(consultant_id="C001", invoice_no="INV-1", billing_period="Jan'26", status=status)


@pytest.mark.parametrize("case", CASES, ids=lambda c: f"{c.current}->{c.target}")
def test_transition_table(case: TransitionCase) -> None:
    assert can_transition(case.current, case.target) is case.allowed


def test_entering_sent_stamps_sent_at() -> None:
    invoice = _invoice("pending")
    result = transition(invoice, "sent")
    assert isinstance(result, Ok)
    assert invoice.status == "sent"
    assert invoice.sent_at is not None


def test_rejected_transition_leaves_invoice_untouched() -> None:
    invoice = _invoice("sent")
    result = transition(invoice, "sent")
    assert isinstance(result, Err)
    assert isinstance(result.error, ConflictError)
    assert result.error.message == "Invoice INV-1 is already sent"
    assert invoice.status == "sent"


def test_paid_is_terminal() -> None:
    result = transition(_invoice("paid"), "pending")
    assert isinstance(result, Err)
    assert "cannot move from paid to pending" in result.error.message
