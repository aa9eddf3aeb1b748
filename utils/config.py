"""Settings read from the environment (and a .env file, if present)."""
import os
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

load_dotenv()  # Searches for .env in current dir and parent dirs

MONGODB_URI = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
DB_NAME = os.getenv("DB_NAME", "finance_tracker")
MONGO_TIMEOUT_MS = int(os.getenv("MONGO_TIMEOUT_MS", "5000"))

TRANSACTIONS_COLLECTION = "transactions"
BUDGETS_COLLECTION = "budgets"

# Timezone used to decide which month a transaction belongs to
DISPLAY_TIMEZONE = ZoneInfo(os.getenv("DISPLAY_TIMEZONE", "UTC"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
ALLOWED_ORIGINS = [origin.strip() for origin in os.getenv("ALLOWED_ORIGINS", "*").split(",") if origin.strip()]

RATE_LIMIT = os.getenv("RATE_LIMIT", "100/minute")
RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"

PORT = int(os.getenv("PORT", "8000"))
