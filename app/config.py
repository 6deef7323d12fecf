import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./tradietrack.db")

# Connection pool (ignored for SQLite)
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "20"))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "30"))
DB_POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", "30"))
DB_POOL_RECYCLE = int(os.getenv("DB_POOL_RECYCLE", "300"))
DB_LOG_SLOW_QUERIES = os.getenv("DB_LOG_SLOW_QUERIES", "true").lower() == "true"
DB_SLOW_QUERY_THRESHOLD = float(os.getenv("DB_SLOW_QUERY_THRESHOLD", "1.0"))

# Tenant resolution - the upstream gateway authenticates and forwards the tenant id
TENANT_HEADER = os.getenv("TENANT_HEADER", "X-Tenant-ID")

# Australian GST, applied to quote and invoice subtotals when enabled
GST_RATE = os.getenv("GST_RATE", "0.10")

# Recurring documents
RECURRING_INVOICE_DUE_DAYS = int(os.getenv("RECURRING_INVOICE_DUE_DAYS", "14"))
# Max occurrences materialized per entity in a single run (catch-up after downtime)
RECURRENCE_MAX_CATCH_UP = int(os.getenv("RECURRENCE_MAX_CATCH_UP", "12"))

# What to do when no active template exists for a (family, purpose):
#   system_default - fall back to the built-in template for that purpose
#   none           - treat it as a missing template (TemplateNotFoundError)
TEMPLATE_FALLBACK_MODE = os.getenv("TEMPLATE_FALLBACK_MODE", "system_default").lower()

# Outbound email/SMS gateway. When unset, notifications are only logged.
NOTIFICATION_GATEWAY_URL = os.getenv("NOTIFICATION_GATEWAY_URL")
NOTIFICATION_GATEWAY_TOKEN = os.getenv("NOTIFICATION_GATEWAY_TOKEN")
NOTIFICATION_TIMEOUT_SECONDS = float(os.getenv("NOTIFICATION_TIMEOUT_SECONDS", "30"))
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "TradieTrack <noreply@tradietrack.com.au>")

# Background worker
REDIS_URL = os.getenv("REDIS_URL")

# CORS
ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS", "http://localhost:5173,http://localhost:3000"
).split(",")
