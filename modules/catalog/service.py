"""
Catalog Module - Service Layer
================================
Product lookups used by pricing and inventory.
"""

from typing import Optional

from sqlalchemy.orm import Session, joinedload

from common.exceptions import ValidationError
from modules.catalog.models import Product


class CatalogService:

    def get_by_id(self, db: Session, product_id: int) -> Optional[Product]:
        return (
            db.query(Product)
            .options(joinedload(Product.inventory))
            .filter(Product.id == product_id)
            .first()
        )

    def create_product(
        self,
        db: Session,
        name: str,
        base_price: int,
        autoship_eligible: bool = False,
        published: bool = True,
        sku: Optional[str] = None,
    ) -> Product:
        if not name or not name.strip():
            raise ValidationError("Product name is required", field="name")
        if base_price is None or base_price < 0:
            raise ValidationError("Base price must be >= 0", field="base_price")
        product = Product(
            name=name.strip(),
            sku=sku,
            base_price=int(base_price),
            autoship_eligible=autoship_eligible,
            published=published,
        )
        db.add(product)
        db.flush()
        return product


# Singleton
catalog_service = CatalogService()
