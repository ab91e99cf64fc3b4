"""
Catalog Module - Models
========================
Product: sellable item with a whole-rupiah base price.
"""

from sqlalchemy import (
    Column, Integer, String, BigInteger, Boolean, DateTime, CheckConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from config.database import Base


# ==========================================
# 📦 Product
# ==========================================

class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    sku = Column(String(64), unique=True, nullable=True)
    base_price = Column(BigInteger, nullable=False)  # IDR, whole units
    autoship_eligible = Column(Boolean, default=False, nullable=False)
    published = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    inventory = relationship("Inventory", back_populates="product", uselist=False, cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("base_price >= 0", name="ck_product_base_price"),
    )

    def __repr__(self):
        return f"<Product {self.name}>"

    @property
    def stock_quantity(self) -> int:
        return self.inventory.stock_quantity if self.inventory else 0
