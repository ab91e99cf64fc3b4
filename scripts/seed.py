"""
Storefront - Database Seeder
==============================
Seeds products, stock levels and sample discounts for local testing.

Usage:
    python scripts/seed.py          # Seed (idempotent)
    python scripts/seed.py --reset  # Drop all data and reseed

Seeded:
  1. Products (autoship-eligible and one-time only)
  2. Opening stock
  3. Sample discounts (global autoship, promo, stacked fixed)
"""

import sys
import os
from datetime import timedelta

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config.database import SessionLocal, Base, engine
from common.helpers import now_utc
from modules.catalog.models import Product
from modules.catalog.service import catalog_service
from modules.discount.models import Discount
from modules.discount.service import discount_service
from modules.inventory.service import inventory_service


PRODUCTS = [
    # (sku, name, base_price, autoship_eligible, opening_stock)
    ("KIB-SAL-2K", "Salmon Kibble 2kg", 185_000, True, 120),
    ("KIB-CHK-5K", "Chicken Kibble 5kg", 410_000, True, 60),
    ("LIT-CLM-10", "Clumping Litter 10L", 95_000, True, 200),
    ("TRT-DEN-07", "Dental Treats (7 pcs)", 48_000, False, 8),
    ("TOY-ROPE-M", "Rope Toy Medium", 35_000, False, 0),
]


def ensure_tables():
    print("[0/3] Ensuring all tables exist...")
    Base.metadata.create_all(bind=engine)
    print("  + All tables OK\n")


def seed():
    db = SessionLocal()
    try:
        print("=" * 50)
        print("  Storefront Pricing - Seeder")
        print("=" * 50)

        ensure_tables()

        # ==========================================
        # 1. Products
        # ==========================================
        print("[1/3] Products")
        products = {}
        for sku, name, price, autoship, _ in PRODUCTS:
            existing = db.query(Product).filter(Product.sku == sku).first()
            if existing:
                products[sku] = existing
                print(f"  = exists: {sku}")
                continue
            products[sku] = catalog_service.create_product(
                db, name=name, base_price=price, autoship_eligible=autoship, sku=sku,
            )
            print(f"  + {sku}: {name} (Rp {price:,})".replace(",", "."))

        # ==========================================
        # 2. Opening stock
        # ==========================================
        print("\n[2/3] Opening stock")
        for sku, _, _, _, stock in PRODUCTS:
            product = products[sku]
            current = inventory_service.get_stock(db, product.id)
            if current or not stock:
                print(f"  = {sku}: {current}")
                continue
            inventory_service.add_stock(db, product.id, stock)
            print(f"  + {sku}: {stock}")

        # ==========================================
        # 3. Discounts
        # ==========================================
        print("\n[3/3] Discounts")
        now = now_utc()
        discounts = [
            {
                "name": "Autoship 5%",
                "kind": "autoship",
                "discount_type": "percentage",
                "value": 5,
                "stack_policy": "stack",
                "applies_to_all_products": True,
            },
            {
                "name": "Kibble Week 10%",
                "kind": "promo",
                "discount_type": "percentage",
                "value": 10,
                "stack_policy": "best_only",
                "starts_at": now - timedelta(days=1),
                "ends_at": now + timedelta(days=6),
                "product_ids": [products["KIB-SAL-2K"].id, products["KIB-CHK-5K"].id],
            },
            {
                "name": "Rp 25.000 off orders over Rp 500.000",
                "kind": "promo",
                "discount_type": "fixed",
                "value": 25_000,
                "stack_policy": "stack",
                "min_order_subtotal": 500_000,
                "usage_limit": 500,
                "applies_to_all_products": True,
            },
        ]
        for data in discounts:
            if db.query(Discount).filter(Discount.name == data["name"]).first():
                print(f"  = exists: {data['name']}")
                continue
            discount = discount_service.create_discount(db, data)
            print(f"  + #{discount.id} {discount.name} ({discount.discount_display}, {discount.stack_policy})")

        db.commit()
        print("\nSeed complete.")

    except Exception as e:
        db.rollback()
        print(f"\nSeed failed: {e}")
        raise
    finally:
        db.close()


def reset_and_seed():
    """Drop all tables and recreate + seed."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    print("All tables recreated")
    seed()


if __name__ == "__main__":
    if "--reset" in sys.argv:
        confirm = input("This will DELETE ALL DATA. Type 'yes' to confirm: ")
        if confirm.strip().lower() == "yes":
            reset_and_seed()
        else:
            print("Aborted.")
    else:
        seed()
