"""
Application configuration, read once from the environment at import.
"""

import os

DB_PATH = os.getenv("REQ_DB_PATH", "data/requisition.sqlite")
EXPORT_DIR = os.getenv("REQ_EXPORT_DIR", "exports")

# seconds between order list refreshes when no push channel is available
POLL_SECONDS = float(os.getenv("REQ_POLL_SECONDS", "5"))

DEFAULT_PRICING_MODE = os.getenv("REQ_DEFAULT_PRICING_MODE", "SPECIAL").upper()

DEBUG = bool(os.getenv("DEBUG"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("LOG_FILE")
