# app/routers/admin.py
import uuid

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from app.core.auth import require_admin
from app.core.errors import ValidationError
from app.database import get_session
from app.repositories.invoice_repo import InvoiceRepository
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.repositories.site_setting_repo import SiteSettingRepository
from app.repositories.stats_repo import StatsRepository
from app.repositories.user_repo import UserRepository
from app.schemas.common import Envelope, ok
from app.schemas.invoice import InvoiceGenerate, InvoiceIssued
from app.schemas.mail import MailSent, NotifyUsersRequest
from app.schemas.order import AdminOrderDetail
from app.schemas.site_setting import (
    ContactSettingsUpdate,
    HomeSettingsUpdate,
    SiteSettingsRead,
)
from app.schemas.stats import StatsOverview
from app.services.inventory_service import InventoryLedger
from app.services.invoice_service import InvoiceService
from app.services.mail_service import MailService
from app.services.order_service import OrderService
from app.services.site_setting_service import SiteSettingService
from app.services.stats_service import DEFAULT_RANGE, StatsService

# Every route here is admin-only.
router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    dependencies=[Depends(require_admin)],
)

user_repo = UserRepository()
stats_service = StatsService(StatsRepository())
invoice_service = InvoiceService(InvoiceRepository(), OrderRepository(), user_repo)
settings_service = SiteSettingService(SiteSettingRepository())
mail_service = MailService(user_repo)
order_service = OrderService(OrderRepository(), user_repo, InventoryLedger(ProductRepository()))


@router.get("/stats/overview", response_model=Envelope[StatsOverview])
def get_stats_overview(
    range_key: str = Query(DEFAULT_RANGE, alias="range"),
    session: Session = Depends(get_session),
):
    """
    Aggregated statistics for the admin dashboard.

    Query params (optional):
      - range: 7d | 30d | 90d, length of the daily series (default 30d;
        unknown values fall back to the default)

    Totals and month figures exclude cancelled orders from revenue.
    """
    return ok(stats_service.get_overview(session, range_key))


@router.get("/orders/{order_id}", response_model=Envelope[AdminOrderDetail])
def get_order_detail(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    Order detail for the admin order page. Shipping city and pincode
    fall back to values parsed from the address.
    """
    return ok(order_service.get_admin_detail(session, order_id))


@router.post("/invoices/generate", response_model=Envelope[InvoiceIssued])
def generate_invoice(
    payload: InvoiceGenerate,
    session: Session = Depends(get_session),
):
    """
    Issue the order's invoice number (idempotent).
    """
    if payload.order_id is None:
        raise ValidationError("Missing order_id")
    invoice = invoice_service.issue_invoice(session, payload.order_id)
    return ok(InvoiceIssued(invoice_id=invoice.id, invoice_no=invoice.invoice_no))


@router.patch("/settings/home", response_model=Envelope[SiteSettingsRead])
def update_home_settings(
    payload: HomeSettingsUpdate,
    session: Session = Depends(get_session),
):
    """
    Replace the announcement ticker and optionally the new-arrivals limit.
    `version` must match the stored version (409 otherwise).
    """
    return ok(settings_service.update_home(session, payload), "Home settings saved")


@router.patch("/settings/contact", response_model=Envelope[SiteSettingsRead])
def update_contact_settings(
    payload: ContactSettingsUpdate,
    session: Session = Depends(get_session),
):
    return ok(settings_service.update_contact(session, payload), "Contact settings saved")


@router.post("/notify", response_model=Envelope[MailSent])
def notify_users(
    payload: NotifyUsersRequest,
    session: Session = Depends(get_session),
):
    """
    Email a message to the selected users. Without SMTP configured the
    send is simulated and reported as such.
    """
    result, message = mail_service.notify_users(session, payload)
    return ok(result, message)
