# app/services/invoice_service.py
import logging
import uuid
from datetime import datetime, timezone
from html import escape
from urllib.parse import quote

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from app.core.config import get_settings
from app.core.errors import Forbidden, NotFound
from app.models.invoice import Invoice
from app.models.order import Order, OrderItem
from app.models.user import User
from app.repositories.invoice_repo import InvoiceRepository
from app.repositories.order_repo import OrderRepository
from app.repositories.user_repo import UserRepository
from app.schemas.invoice import InvoiceDocument

logger = logging.getLogger(__name__)

# two orders issued in the same instant can compute the same day sequence
ISSUE_ATTEMPTS = 2


def format_invoice_no(day, sequence: int) -> str:
    """
    INV-YYYYMMDD-NNNN. The sequence is zero-padded to four digits and
    widens past 9999 instead of wrapping.
    """
    return f"INV-{day:%Y%m%d}-{sequence:04d}"


class InvoiceService:
    """
    Issues one invoice per order and renders it as printable HTML.

    Numbering is per UTC calendar day: the n-th invoice issued on a day
    gets sequence n.
    """

    def __init__(
        self,
        invoice_repo: InvoiceRepository,
        order_repo: OrderRepository,
        user_repo: UserRepository,
    ):
        self.invoice_repo = invoice_repo
        self.order_repo = order_repo
        self.user_repo = user_repo

    def issue_invoice(
        self,
        session: Session,
        order_id: uuid.UUID,
        now: datetime | None = None,
    ) -> Invoice:
        """
        Return the order's invoice, creating it on first call.

        Idempotent: later calls return the stored invoice unchanged.
        If a concurrent request for the same order inserts first, the
        winner's row is returned. If another order took the same number,
        the sequence is recomputed and the insert retried once.
        """
        now = now or datetime.now(timezone.utc)
        day = now.date()

        for attempt in range(1, ISSUE_ATTEMPTS + 1):
            order = self.order_repo.get_by_id(session, order_id)
            if not order:
                raise NotFound("Order not found")

            existing = self.invoice_repo.get_by_order(session, order_id)
            if existing:
                return existing

            sequence = self.invoice_repo.count_for_day(session, day) + 1
            invoice = Invoice(
                order_id=order_id,
                invoice_no=format_invoice_no(day, sequence),
                issue_date=day,
                sequence=sequence,
                issued_at=now,
            )
            try:
                invoice = self.invoice_repo.create(session, invoice)
                order.invoice_id = invoice.id
                self.order_repo.update_order(session, order)
                session.commit()
                break
            except IntegrityError:
                session.rollback()
                existing = self.invoice_repo.get_by_order(session, order_id)
                if existing is not None:
                    return existing
                if attempt == ISSUE_ATTEMPTS:
                    raise
                logger.warning(
                    "Invoice number %s already taken, retrying for order %s",
                    format_invoice_no(day, sequence),
                    order_id,
                )

        session.refresh(invoice)
        logger.info("Issued invoice %s for order %s", invoice.invoice_no, order_id)
        return invoice

    def get_invoice_document(
        self,
        session: Session,
        order_id: uuid.UUID,
        actor: User,
    ) -> InvoiceDocument:
        """
        Owner or admin. Issues the invoice if needed and renders it.
        """
        order = self.order_repo.get_by_id(session, order_id)
        if not order:
            raise NotFound("Order not found")
        if not actor.is_admin and order.user_id != actor.id:
            raise Forbidden()

        invoice = self.issue_invoice(session, order_id)
        session.refresh(order)
        items = self.order_repo.list_items_for_order(session, order_id)
        customer = (
            self.user_repo.get_by_id(session, order.user_id) if order.user_id else None
        )

        html = render_invoice_html(order, items, invoice, customer)
        return InvoiceDocument(
            html=html,
            pdf_url="data:text/html;charset=UTF-8," + quote(html),
            order_id=order.id,
            invoice_no=invoice.invoice_no,
        )


def _money(value: float) -> str:
    return f"₹{value:,.2f}"


def render_invoice_html(
    order: Order,
    items: list[OrderItem],
    invoice: Invoice,
    customer: User | None = None,
) -> str:
    """
    Build a self-contained HTML invoice the browser can print to PDF.
    All order text is escaped.
    """
    store = escape(get_settings().STORE_NAME)
    order_date = order.created_at.strftime("%d/%m/%Y")
    invoice_date = invoice.issued_at.strftime("%d/%m/%Y")

    rows = "".join(
        "<tr>"
        f"<td>{idx}</td>"
        f"<td>{escape(it.title)}{' (' + escape(it.size) + ')' if it.size else ''}</td>"
        f'<td class="c">{it.quantity}</td>'
        f'<td class="r">{_money(it.price)}</td>'
        f'<td class="r">{_money(it.price * it.quantity)}</td>'
        "</tr>"
        for idx, it in enumerate(items, start=1)
    )

    summary = [("Subtotal", _money(order.subtotal or order.total))]
    if order.discount:
        summary.append(("Discount", "-" + _money(order.discount)))
    if order.tax:
        summary.append(("Tax", _money(order.tax)))
    if order.shipping:
        summary.append(("Shipping", _money(order.shipping)))
    summary_html = "".join(
        f'<div class="row"><span>{label}:</span><span>{value}</span></div>'
        for label, value in summary
    )

    txn = (
        f"<strong>Transaction ID:</strong> {escape(order.upi_txn_id)}<br>"
        if order.upi_txn_id
        else ""
    )
    email = escape(customer.email) if customer else "N/A"

    return f"""<!DOCTYPE html>
<html>
<head>
<meta charset="UTF-8">
<title>Invoice {escape(invoice.invoice_no)}</title>
<style>
body {{ font-family: Arial, sans-serif; color: #333; padding: 20px; }}
.container {{ max-width: 800px; margin: 0 auto; }}
.header {{ display: flex; justify-content: space-between; border-bottom: 2px solid #f0f0f0; }}
table {{ width: 100%; border-collapse: collapse; margin: 20px 0; }}
th, td {{ padding: 8px; border-bottom: 1px solid #ddd; font-size: 13px; text-align: left; }}
.c {{ text-align: center; }}
.r {{ text-align: right; }}
.summary {{ margin-left: auto; width: 300px; }}
.row {{ display: flex; justify-content: space-between; padding: 6px 0; }}
.total {{ font-weight: bold; border-top: 2px solid #333; }}
</style>
</head>
<body>
<div class="container">
<div class="header">
<h1>{store}</h1>
<div><h2>Invoice {escape(invoice.invoice_no)}</h2><p>Order #{str(order.id)[:8]}</p></div>
</div>
<div>
<h3>Bill To</h3>
<p><strong>{escape(order.name or 'N/A')}</strong><br>
{escape(order.address)}<br>
{escape(order.city)}, {escape(order.state)} {escape(order.pincode)}<br>
Phone: {escape(order.phone or 'N/A')}<br>
Email: {email}</p>
</div>
<div>
<h3>Invoice Details</h3>
<p><strong>Invoice Date:</strong> {invoice_date}<br>
<strong>Order Date:</strong> {order_date}<br>
<strong>Payment Method:</strong> {escape(order.payment_method)}<br>
{txn}<strong>Status:</strong> {escape(order.status)}</p>
</div>
<table>
<thead><tr><th>#</th><th>Item Description</th><th class="c">Qty</th><th class="r">Price</th><th class="r">Total</th></tr></thead>
<tbody>{rows}</tbody>
</table>
<div class="summary">
{summary_html}
<div class="row total"><span>Total Amount:</span><span>{_money(order.total)}</span></div>
</div>
<p>Thank you for your order! If you have any questions, please contact us.</p>
</div>
</body>
</html>
"""
