import os
from pathlib import Path
from dotenv import load_dotenv
from fastapi.security import HTTPBearer

BASE_DIR = Path(__file__).resolve().parent.parent  # -> project root

# Load .env explicitly from project root
load_dotenv(BASE_DIR / ".env")


class Settings:
    PROJECT_NAME = "Navodaya Connect"

    ENVIRONMENT = os.getenv("ENVIRONMENT", "development").lower()
    DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{BASE_DIR / 'navodaya.db'}")

    JWT_SECRET = os.getenv("JWT_SECRET", "change-me")
    ALGORITHM = os.getenv("ALGORITHM", "HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24 * 7))

    OTP_EXPIRE_MINUTES = int(os.getenv("OTP_EXPIRE_MINUTES", 10))
    OTP_DEFAULT_CHANNEL = os.getenv("OTP_DEFAULT_CHANNEL", "whatsapp")
    DEV_DEFAULT_OTP = os.getenv("DEV_DEFAULT_OTP", "123456")

    SMS_PROVIDER = os.getenv("SMS_PROVIDER", "mock").lower()
    TWILIO_ACCOUNT_SID = os.getenv("TWILIO_ACCOUNT_SID", "")
    TWILIO_AUTH_TOKEN = os.getenv("TWILIO_AUTH_TOKEN", "")
    TWILIO_FROM_NUMBER = os.getenv("TWILIO_FROM_NUMBER", "")
    MSG91_API_KEY = os.getenv("MSG91_API_KEY", "")
    MSG91_SENDER_ID = os.getenv("MSG91_SENDER_ID", "")
    MSG91_TEMPLATE_ID = os.getenv("MSG91_TEMPLATE_ID", "")
    MSG91_WHATSAPP_TEMPLATE_ID = os.getenv("MSG91_WHATSAPP_TEMPLATE_ID", "")

    GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID")
    GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET")
    GOOGLE_REDIRECT_URI = os.getenv("GOOGLE_REDIRECT_URI")
    FACEBOOK_APP_ID = os.getenv("FACEBOOK_APP_ID")
    FACEBOOK_APP_SECRET = os.getenv("FACEBOOK_APP_SECRET")
    FACEBOOK_REDIRECT_URI = os.getenv("FACEBOOK_REDIRECT_URI")

    # Client-side session manager
    API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000")
    API_TIMEOUT_SECONDS = float(os.getenv("API_TIMEOUT_SECONDS", 20))
    AUTH_ENTRY_POINT = os.getenv("AUTH_ENTRY_POINT", "/auth")
    ONBOARDING_STORE_FILE = os.getenv("ONBOARDING_STORE_FILE", str(BASE_DIR / ".navodaya" / "onboarding.json"))

    bearer_scheme = HTTPBearer(auto_error=False)
    cors_origins = [
        origin.strip()
        for origin in os.getenv("CORS_ORIGINS", "*").split(",")
        if origin.strip()
    ]

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"


settings = Settings()
