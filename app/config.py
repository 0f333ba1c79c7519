import os
from pathlib import Path

from dotenv import load_dotenv

# .env lives next to the app/ package
backend_dir = Path(__file__).resolve().parent.parent
env_path = backend_dir / ".env"
if env_path.exists():
    load_dotenv(dotenv_path=env_path)
else:
    load_dotenv()

# Database
MONGO_URI = os.getenv("MONGO_URI") or os.getenv("MONGODB_URI")
DATABASE_NAME = os.getenv("DATABASE_NAME", "becopy")

# Tokens & secrets
JWT_SECRET = os.getenv("JWT_SECRET", "super_secret_random_key_CHANGE_THIS")
JWT_ALGORITHM = "HS256"
JWT_EXPIRE_DAYS = 1
ADMIN_SECRET_KEY = os.getenv("ADMIN_SECRET_KEY")

# One-time codes
OTP_EXPIRE_MINUTES = int(os.getenv("OTP_EXPIRE_MINUTES", 10))
OTP_MAX_ATTEMPTS = int(os.getenv("OTP_MAX_ATTEMPTS", 5))
AUTH_STATE_EXPIRE_MINUTES = int(os.getenv("AUTH_STATE_EXPIRE_MINUTES", 10))

# Third parties
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4")
TALKJS_APP_ID = os.getenv("TALKJS_APP_ID") or os.getenv("NEXT_PUBLIC_TALKJS_APP_ID")
TALKJS_SECRET_KEY = os.getenv("TALKJS_SECRET_KEY")
TALKJS_API_URL = os.getenv("TALKJS_API_URL", "https://api.talkjs.com/v1")
HTTP_TIMEOUT_SECONDS = float(os.getenv("HTTP_TIMEOUT_SECONDS", 5))

# Web
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")
ALLOWED_ORIGINS = [o.strip() for o in os.getenv("ALLOWED_ORIGINS", "").split(",") if o.strip()]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Geo
DEFAULT_RADIUS_KM = float(os.getenv("DEFAULT_RADIUS_KM", 250))
