# app/services/inventory_service.py
import logging
import uuid

from sqlmodel import Session

from app.core.errors import InsufficientStock
from app.models.product import Product
from app.repositories.product_repo import ProductRepository

logger = logging.getLogger(__name__)


class InventoryLedger:
    """
    Stock counters per product, scalar or per size.

    Responsibilities:
      - reserve(): atomic "decrement if enough" on the right counter
      - release(): give units back (cancellation restock)

    Neither method commits. The caller owns the transaction, so several
    reservations for one order either all land or all roll back.

    Unmanaged lines are no-ops:
      - unknown product id
      - per-size product without a size, or with a size it does not track
    """

    def __init__(self, product_repo: ProductRepository):
        self.product_repo = product_repo

    def _managed_counter(
        self,
        session: Session,
        product_id: uuid.UUID | None,
        size: str | None,
    ) -> tuple[Product | None, str | None]:
        """
        Resolve which counter a line maps to.

        Returns (product, size_code); product is None when the line is
        not under managed inventory. size_code is None for scalar mode.
        """
        if product_id is None:
            return None, None
        product = self.product_repo.get_by_id(session, product_id)
        if product is None:
            return None, None
        if not product.track_inventory_by_size:
            return product, None
        if not size or self.product_repo.get_size(session, product_id, size) is None:
            return None, None
        return product, size

    def reserve(
        self,
        session: Session,
        product_id: uuid.UUID | None,
        size: str | None,
        quantity: int,
    ) -> None:
        """
        Decrement stock for one line.

        Raises:
            InsufficientStock: when the counter is below `quantity`;
            nothing is written for this line.
        """
        product, size_code = self._managed_counter(session, product_id, size)
        if product is None:
            return

        if size_code is None:
            reserved = self.product_repo.try_decrement_stock(session, product.id, quantity)
        else:
            reserved = self.product_repo.try_decrement_size(
                session, product.id, size_code, quantity
            )

        if not reserved:
            available = self.available(session, product.id, size_code)
            logger.info(
                "Stock rejected for product %s size %s: requested %s, available %s",
                product.id,
                size_code,
                quantity,
                available,
            )
            raise InsufficientStock(
                product_id=product.id,
                size=size_code,
                available=available,
                title=product.title,
            )

    def release(
        self,
        session: Session,
        product_id: uuid.UUID | None,
        size: str | None,
        quantity: int,
    ) -> None:
        product, size_code = self._managed_counter(session, product_id, size)
        if product is None:
            return
        if size_code is None:
            self.product_repo.increment_stock(session, product.id, quantity)
        else:
            self.product_repo.increment_size(session, product.id, size_code, quantity)

    def available(
        self,
        session: Session,
        product_id: uuid.UUID,
        size: str | None,
    ) -> int:
        if size is None:
            product = self.product_repo.get_by_id(session, product_id)
            if product is not None:
                session.refresh(product)
            return product.stock if product else 0
        row = self.product_repo.get_size(session, product_id, size)
        if row is not None:
            session.refresh(row)
        return row.qty if row else 0
