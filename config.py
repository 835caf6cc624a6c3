# config.py
import os
from dotenv import load_dotenv

load_dotenv()


def _csv(value: str):
    return [part.strip() for part in value.split(",") if part.strip()]


class Settings:
    PROJECT_NAME: str = "Trendy Fashion API"

    # --- Database ---
    MONGODB_URI: str = os.getenv("MONGODB_URI")
    MONGODB_DB: str = os.getenv("MONGODB_DB", "trendy_fashion")

    # --- Auth ---
    JWT_SECRET: str = os.getenv("JWT_SECRET", "changeme")
    JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
    ACCESS_TOKEN_EXPIRE_DAYS: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_DAYS", "30"))

    # --- Payment gateway ---
    RAZORPAY_KEY_ID: str = os.getenv("RAZORPAY_KEY_ID")
    RAZORPAY_KEY_SECRET: str = os.getenv("RAZORPAY_KEY_SECRET")
    RAZORPAY_API_URL: str = os.getenv("RAZORPAY_API_URL", "https://api.razorpay.com/v1")
    PAYMENT_CURRENCY: str = os.getenv("PAYMENT_CURRENCY", "INR")

    # --- Server ---
    CORS_ORIGINS: list = _csv(os.getenv("CORS_ORIGINS", "*"))
    PORT: int = int(os.getenv("PORT", "5000"))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # --- Storefront client ---
    STOREFRONT_API_URL: str = os.getenv("STOREFRONT_API_URL", "http://localhost:5000")
    STOREFRONT_STORAGE_PATH: str = os.getenv("STOREFRONT_STORAGE_PATH", ".storefront.json")


settings = Settings()
