# app/repositories/invoice_repo.py
import uuid
from datetime import date

from sqlalchemy import func
from sqlmodel import Session, select

from app.models.invoice import Invoice


class InvoiceRepository:
    """
    Data access layer for invoices. No commits here.
    """

    def get_by_order(self, session: Session, order_id: uuid.UUID) -> Invoice | None:
        stmt = select(Invoice).where(Invoice.order_id == order_id)
        return session.exec(stmt).first()

    def count_for_day(self, session: Session, day: date) -> int:
        stmt = select(func.count()).select_from(Invoice).where(Invoice.issue_date == day)
        value = session.exec(stmt).one()
        return int(value or 0)

    def create(self, session: Session, invoice: Invoice) -> Invoice:
        session.add(invoice)
        session.flush()
        session.refresh(invoice)
        return invoice
