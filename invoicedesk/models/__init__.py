"""
models/__init__.py — imports all ORM models so Alembic's env.py
sees them via Base.metadata when generating migrations.

Import order matters: invoices reference consultants.consultant_id.
"""
from invoicedesk.models.consultant import ConsultantORM
from invoicedesk.models.invoice import InvoiceORM, InvoiceStatus

__all__ = ["ConsultantORM", "InvoiceORM", "InvoiceStatus"]
