# app/repositories/product_repo.py
import uuid

from sqlalchemy import update
from sqlmodel import Session, select

from app.models.product import Product, ProductSize


class ProductRepository:
    """
    Data access layer for Product & ProductSize.

    - Pure DB operations (CRUD + queries).
    - Stock counters are only changed through the conditional updates
      below; the check and the decrement happen in one statement.
    - Stock methods never commit: reservations for one order share the
      caller's transaction.
    """

    # ----- Products -----

    def get_by_id(self, session: Session, product_id: uuid.UUID) -> Product | None:
        return session.get(Product, product_id)

    def get_by_slug(self, session: Session, slug: str) -> Product | None:
        stmt = select(Product).where(Product.slug == slug)
        return session.exec(stmt).first()

    def list_products(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        only_active: bool = True,
    ) -> list[Product]:
        stmt = select(Product)
        if only_active:
            stmt = stmt.where(Product.is_active == True)  # noqa: E712
        stmt = stmt.order_by(Product.created_at.desc()).offset(skip).limit(limit)
        return session.exec(stmt).all()

    def create(self, session: Session, product: Product) -> Product:
        session.add(product)
        session.flush()
        session.refresh(product)
        return product

    def update(self, session: Session, product: Product) -> Product:
        session.add(product)
        session.flush()
        session.refresh(product)
        return product

    # ----- Sizes -----

    def list_sizes(self, session: Session, product_id: uuid.UUID) -> list[ProductSize]:
        stmt = (
            select(ProductSize)
            .where(ProductSize.product_id == product_id)
            .order_by(ProductSize.code)
        )
        return session.exec(stmt).all()

    def get_size(
        self,
        session: Session,
        product_id: uuid.UUID,
        code: str,
    ) -> ProductSize | None:
        stmt = select(ProductSize).where(
            ProductSize.product_id == product_id,
            ProductSize.code == code,
        )
        return session.exec(stmt).first()

    def upsert_size(
        self,
        session: Session,
        product_id: uuid.UUID,
        code: str,
        qty: int,
    ) -> ProductSize:
        row = self.get_size(session, product_id, code)
        if row is None:
            row = ProductSize(product_id=product_id, code=code, qty=qty)
        else:
            row.qty = qty
        session.add(row)
        session.flush()
        return row

    # ----- Stock counters -----

    def try_decrement_stock(
        self,
        session: Session,
        product_id: uuid.UUID,
        quantity: int,
    ) -> bool:
        """
        stock -= quantity, only if stock >= quantity.

        Returns False when the guard fails (nothing is written).
        """
        stmt = (
            update(Product)
            .where(Product.id == product_id, Product.stock >= quantity)
            .values(stock=Product.stock - quantity)
        )
        return session.exec(stmt).rowcount == 1

    def try_decrement_size(
        self,
        session: Session,
        product_id: uuid.UUID,
        code: str,
        quantity: int,
    ) -> bool:
        stmt = (
            update(ProductSize)
            .where(
                ProductSize.product_id == product_id,
                ProductSize.code == code,
                ProductSize.qty >= quantity,
            )
            .values(qty=ProductSize.qty - quantity)
        )
        return session.exec(stmt).rowcount == 1

    def increment_stock(
        self,
        session: Session,
        product_id: uuid.UUID,
        quantity: int,
    ) -> None:
        stmt = (
            update(Product)
            .where(Product.id == product_id)
            .values(stock=Product.stock + quantity)
        )
        session.exec(stmt)

    def increment_size(
        self,
        session: Session,
        product_id: uuid.UUID,
        code: str,
        quantity: int,
    ) -> None:
        stmt = (
            update(ProductSize)
            .where(
                ProductSize.product_id == product_id,
                ProductSize.code == code,
            )
            .values(qty=ProductSize.qty + quantity)
        )
        session.exec(stmt)
