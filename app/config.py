import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./challenge.db")

# Frontend base URL for links in emails and CORS defaults
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

# Resend Email Configuration
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "Fittrah Moms <noreply@fittrahmoms.com>")
EMAIL_REPLY_TO = os.getenv("EMAIL_REPLY_TO")
COACH_IMAGE_URL = os.getenv("COACH_IMAGE_URL", "https://www.fittrahmoms.com/Meriem.jpeg")

# Admin authentication (Firebase / Google ID tokens)
FIREBASE_PROJECT_ID = os.getenv("FIREBASE_PROJECT_ID")
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "").strip().lower()

# Meta Pixel / Conversions API
META_PIXEL_ID = os.getenv("META_PIXEL_ID")
META_CAPI_ACCESS_TOKEN = os.getenv("META_CAPI_ACCESS_TOKEN")
META_TEST_EVENT_CODE = os.getenv("META_TEST_EVENT_CODE")
META_API_VERSION = os.getenv("META_API_VERSION", "v18.0")

# Rate limiting on public write endpoints
RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"

# Used only when the settings row has to be created on first start
DEFAULT_CHALLENGE_CAPACITY = int(os.getenv("DEFAULT_CHALLENGE_CAPACITY", "50"))
