# backend/crm/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/crm.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///crm.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Listing caps (the old screens loaded at most this many documents)
    ORDERS_LIST_LIMIT = 200
    PRODUCTS_LIST_LIMIT = 300

    # Post missing revenue for PAID orders every time the ledger is listed
    RECONCILE_ON_LEDGER_LOAD = True
