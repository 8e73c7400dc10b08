import os
from pathlib import Path
from dotenv import load_dotenv

# Force-load .env (Windows-safe, reload-safe)
BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(dotenv_path=BASE_DIR / ".env")

DATABASE_URL = os.getenv("DATABASE_URL")

JWT_SECRET = os.getenv("JWT_SECRET")
JWT_ALGORITHM = "HS256"
JWT_EXPIRE_MINUTES = int(os.getenv("JWT_EXPIRE_MINUTES", "60"))

SYNCPAYMENTS_CLIENT_ID = os.getenv("SYNCPAYMENTS_CLIENT_ID")
SYNCPAYMENTS_CLIENT_SECRET = os.getenv("SYNCPAYMENTS_CLIENT_SECRET")
SYNCPAYMENTS_BASE_URL = os.getenv("SYNCPAYMENTS_BASE_URL", "https://api.syncpayments.com.br")
SYNCPAYMENTS_TIMEOUT = float(os.getenv("SYNCPAYMENTS_TIMEOUT", "15"))

MEDIA_ROOT = Path(os.getenv("MEDIA_ROOT", str(BASE_DIR / "media")))
MEDIA_BASE_URL = os.getenv("MEDIA_BASE_URL", "/media")

ADMIN_EMAIL = os.getenv("ADMIN_EMAIL")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

AGE_COOKIE = "age_verified"
AGE_GATE_EXIT_URL = "https://google.com"

CHECKOUT_MAX_SESSIONS = int(os.getenv("CHECKOUT_MAX_SESSIONS", "1000"))
