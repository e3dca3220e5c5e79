"""InvoiceDesk — payroll invoicing portal backend."""
