# app/services/product_service.py
import re
import uuid

from sqlmodel import Session

from app.core.errors import NotFound, ValidationError
from app.models.product import Product
from app.repositories.product_repo import ProductRepository
from app.schemas.product import (
    InventoryUpdate,
    ProductCreate,
    ProductRead,
    ProductUpdate,
    SizeStock,
)


class ProductService:
    """
    Business logic for the product catalogue.

    Responsibilities:
      - slug generation & uniqueness
      - choosing the inventory mode at creation (scalar vs per-size)
      - admin stock corrections (enforced at router via require_admin)

    Order-time stock changes go through InventoryLedger, not here.
    """

    def __init__(self, repo: ProductRepository):
        self.repo = repo

    # ----- Helpers -----

    @staticmethod
    def _slugify(raw: str) -> str:
        """
        Basic slugification:
          - lowercase
          - non-alphanumeric -> '-'
          - collapse multiple '-'
          - strip leading/trailing '-'
        """
        value = raw.strip().lower()
        value = re.sub(r"[^a-z0-9]+", "-", value)
        value = re.sub(r"-+", "-", value)
        value = value.strip("-")
        return value or "product"

    def _ensure_unique_slug(self, session: Session, base_slug: str) -> str:
        """
        Ensure slug is unique by appending -2, -3, ... if needed.
        """
        slug = base_slug
        i = 2
        while self.repo.get_by_slug(session, slug) is not None:
            slug = f"{base_slug}-{i}"
            i += 1
        return slug

    def _to_read(self, session: Session, product: Product) -> ProductRead:
        sizes = self.repo.list_sizes(session, product.id) if product.track_inventory_by_size else []
        return ProductRead(
            id=product.id,
            title=product.title,
            slug=product.slug,
            description=product.description,
            price=product.price,
            stock=product.stock,
            track_inventory_by_size=product.track_inventory_by_size,
            sizes=[SizeStock(code=s.code, qty=s.qty) for s in sizes],
            is_active=product.is_active,
            created_at=product.created_at,
        )

    def _get_or_404(self, session: Session, product_id: uuid.UUID) -> Product:
        product = self.repo.get_by_id(session, product_id)
        if not product:
            raise NotFound("Product not found")
        return product

    # ----- Products -----

    def list_products(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        only_active: bool = True,
    ) -> list[ProductRead]:
        products = self.repo.list_products(session, skip=skip, limit=limit, only_active=only_active)
        return [self._to_read(session, p) for p in products]

    def get_product(self, session: Session, product_id: uuid.UUID) -> ProductRead:
        return self._to_read(session, self._get_or_404(session, product_id))

    def create_product(
        self,
        session: Session,
        payload: ProductCreate,
    ) -> ProductRead:
        """
        Create a new product with a unique slug.

        - If slug is provided => slugify & ensure unique.
        - Else => slugify from title & ensure unique.
        - `sizes` present => per-size inventory.
        """
        raw_slug = payload.slug or payload.title
        slug = self._ensure_unique_slug(session, self._slugify(raw_slug))
        by_size = payload.sizes is not None

        product = Product(
            title=payload.title,
            slug=slug,
            description=payload.description,
            price=payload.price,
            stock=0 if by_size else payload.stock,
            track_inventory_by_size=by_size,
            is_active=payload.is_active,
        )
        product = self.repo.create(session, product)

        for size in payload.sizes or []:
            self.repo.upsert_size(session, product.id, size.code, size.qty)

        session.commit()
        session.refresh(product)
        return self._to_read(session, product)

    def update_product(
        self,
        session: Session,
        product_id: uuid.UUID,
        payload: ProductUpdate,
    ) -> ProductRead:
        product = self._get_or_404(session, product_id)

        for field, value in payload.model_dump(exclude_none=True).items():
            setattr(product, field, value)

        self.repo.update(session, product)
        session.commit()
        session.refresh(product)
        return self._to_read(session, product)

    def set_inventory(
        self,
        session: Session,
        product_id: uuid.UUID,
        payload: InventoryUpdate,
    ) -> ProductRead:
        """
        Overwrite stock counters (admin correction / restock delivery).
        The payload must match the product's inventory mode.
        """
        product = self._get_or_404(session, product_id)

        if product.track_inventory_by_size:
            if payload.sizes is None:
                raise ValidationError("This product tracks stock per size; send `sizes`")
            for size in payload.sizes:
                self.repo.upsert_size(session, product.id, size.code, size.qty)
        else:
            if payload.stock is None:
                raise ValidationError("This product tracks a single stock count; send `stock`")
            product.stock = payload.stock
            self.repo.update(session, product)

        session.commit()
        session.refresh(product)
        return self._to_read(session, product)
