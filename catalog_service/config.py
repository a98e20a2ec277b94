import os

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 3000))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# "csv" or "airtable"
CATALOG_BACKEND = os.getenv("CATALOG_BACKEND", "csv").lower()
CATALOG_CSV_PATH = os.getenv("CATALOG_CSV_PATH", "data/items.csv")

AIRTABLE_PAT = os.getenv("AIRTABLE_PAT")
AIRTABLE_BASE_ID = os.getenv("AIRTABLE_BASE_ID")
AIRTABLE_TABLE = os.getenv("AIRTABLE_TABLE", "Items")
AIRTABLE_VIEW = os.getenv("AIRTABLE_VIEW", "Grid view")
AIRTABLE_API_URL = os.getenv("AIRTABLE_API_URL", "https://api.airtable.com/v0")
AIRTABLE_TIMEOUT_MS = int(os.getenv("AIRTABLE_TIMEOUT_MS", 10000))

DISCORD_WEBHOOK_URL = os.getenv("DISCORD_WEBHOOK_URL")
NOTIFY_TIMEOUT_MS = int(os.getenv("NOTIFY_TIMEOUT_MS", 5000))
NOTIFY_CURRENCY = os.getenv("NOTIFY_CURRENCY", "CHF")

# 0 disables the watcher
WATCH_INTERVAL_MS = int(os.getenv("WATCH_INTERVAL_MS", 500))

STATIC_DIR = os.getenv("STATIC_DIR", "public")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
