import os
from pathlib import Path

# --- Environment ---
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
IS_PRODUCTION = ENVIRONMENT == "production"

PROJECT_ROOT_FROM_CONFIG = Path(__file__).resolve().parent.parent

# --- Database ---
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///demo_hub.db")

# --- Authentication ---
# IMPORTANT: Change this in production!
SECRET_KEY = os.getenv("SECRET_KEY", "development-secret-key-CHANGE-ME")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "720"))

# Seed admin account, created on startup when no admin exists.
ADMIN_NAME = os.getenv("ADMIN_NAME", "Administrator")
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@example.com")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "Adm1nDemoHub!")

# --- Demo credentials encryption ---
# Any string; a 32 byte AES key is derived from it.
ENCRYPTION_KEY = os.getenv("ENCRYPTION_KEY")

# --- Outbound webhooks ---
WEBHOOK_URL = os.getenv("WEBHOOK_URL")
WEBHOOK_TOKEN = os.getenv("WEBHOOK_TOKEN")
WEBHOOK_TIMEOUT_SECONDS = float(os.getenv("WEBHOOK_TIMEOUT_SECONDS", "5"))

# --- File storage ---
UPLOAD_DIR = Path(os.getenv("UPLOAD_DIR", str(PROJECT_ROOT_FROM_CONFIG / "uploads")))
UPLOAD_URL_PREFIX = "/uploads"
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "")

MB = 1024 * 1024
DEFAULT_STORAGE_LIMIT_BYTES = 25 * 1024 * MB  # 25 GB per user
MAX_FILE_SIZE_IMAGE = 10 * MB
MAX_FILE_SIZE_VIDEO = 100 * MB

# --- Rate limiting ---
# Any limits storage URI, e.g. redis://localhost:6379 for multi-worker deployments.
RATE_LIMIT_STORAGE_URI = os.getenv("RATE_LIMIT_STORAGE_URI", "memory://")
RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() not in ("0", "false", "no")


if __name__ == '__main__':
    print("--- Configuration Settings ---")
    print(f"Environment: {ENVIRONMENT}")
    print(f"Database URL: {DATABASE_URL}")
    print(f"Admin email: {ADMIN_EMAIL}")
    print(f"Admin password: (not shown)")
    print(f"Encryption key configured: {bool(ENCRYPTION_KEY)}")
    print(f"Webhook URL: {WEBHOOK_URL or '(disabled)'}")
    print(f"Upload directory: {UPLOAD_DIR}")
    print("--- End of Configuration ---")
