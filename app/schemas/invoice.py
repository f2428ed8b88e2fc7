# app/schemas/invoice.py
import uuid

from sqlmodel import SQLModel


class InvoiceGenerate(SQLModel):
    order_id: uuid.UUID | None = None


class InvoiceIssued(SQLModel):
    invoice_id: uuid.UUID
    invoice_no: str


class InvoiceDocument(SQLModel):
    """
    Printable invoice. `pdf_url` is a data: URL of the same HTML that the
    client prints to PDF.
    """

    html: str
    pdf_url: str
    order_id: uuid.UUID
    invoice_no: str
