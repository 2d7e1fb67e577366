# rental_jobs/config.py
import os
from dotenv import load_dotenv

# cargar variables de entorno del .env antes de leer nada
load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# ====== storage ======
AZURE_STORAGE_CONNECTION_STRING = os.getenv("AZURE_STORAGE_CONNECTION_STRING")
TABLE_PREFIX = os.getenv("TABLE_PREFIX", "")
# Azure Table Storage no admite más de 100 operaciones por transacción
STORE_BATCH_LIMIT = int(os.getenv("STORE_BATCH_LIMIT", "100"))

# ====== service bus ======
AZURE_SERVICE_BUS_CONNECTION_STRING = os.getenv("AZURE_SERVICE_BUS_CONNECTION_STRING")
ACCOUNT_EVENTS_QUEUE = os.getenv("ACCOUNT_EVENTS_QUEUE", "account-events")
PUSH_QUEUE = os.getenv("PUSH_QUEUE", "push-outbox")

# ====== auth ======
JWT_SECRET = os.getenv("JWT_SECRET", "change-me")
JWT_ALG = os.getenv("JWT_ALG", "HS256")
JOBS_API_KEY = os.getenv("JOBS_API_KEY")

# ====== jobs ======
EXPIRY_LOOKAHEAD_DAYS = int(os.getenv("EXPIRY_LOOKAHEAD_DAYS", "15"))
NOTIFICATION_RETENTION_DAYS = int(os.getenv("NOTIFICATION_RETENTION_DAYS", "30"))
FANOUT_CONCURRENCY = int(os.getenv("FANOUT_CONCURRENCY", "10"))
EXPIRY_PUSH_ENABLED = _env_bool("EXPIRY_PUSH_ENABLED")
SCHEDULER_ENABLED = _env_bool("SCHEDULER_ENABLED")
JOB_INTERVAL_HOURS = float(os.getenv("JOB_INTERVAL_HOURS", "24"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
