"""
Storefront - Centralized Configuration
=======================================
All environment variables and constants are loaded here.
No other module should call os.getenv() directly.
"""

import os
import sys
from dotenv import load_dotenv

load_dotenv()


# ==========================================
# 🗄️ Database
# ==========================================
DB_USER = os.getenv("DB_USER")
DB_PASSWORD = os.getenv("DB_PASSWORD")
DB_HOST = os.getenv("DB_HOST", "localhost")
DB_PORT = os.getenv("DB_PORT", "5432")
DB_NAME = os.getenv("DB_NAME")

DATABASE_URL = os.getenv("DATABASE_URL")

if not DATABASE_URL:
    if not all([DB_USER, DB_PASSWORD, DB_HOST, DB_NAME]):
        print("[ERROR] Critical: Database config missing in .env (DATABASE_URL or DB_USER, DB_PASSWORD, DB_HOST, DB_NAME)")
        sys.exit(1)
    DATABASE_URL = f"postgresql://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}"


# ==========================================
# 🔐 Security
# ==========================================
ADMIN_API_KEY = os.getenv("ADMIN_API_KEY", "")


# ==========================================
# 💰 Pricing
# ==========================================
CURRENCY_CODE = "IDR"
MAX_QUOTE_QUANTITY = int(os.getenv("MAX_QUOTE_QUANTITY") or "999")
MAX_CART_LINES = int(os.getenv("MAX_CART_LINES") or "100")


# ==========================================
# 📦 Inventory
# ==========================================
LOW_STOCK_THRESHOLD = int(os.getenv("LOW_STOCK_THRESHOLD") or "10")


# ==========================================
# 🔧 App
# ==========================================
DEBUG = os.getenv("DEBUG", "false").lower() == "true"
