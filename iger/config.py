"""
Central configuration for the iGer backend.

Values come from the environment (a local .env is loaded first) and are
exposed as module constants. Read them as ``config.NAME`` at call time so
tests can override them.
"""

import logging
import os

from dotenv import load_dotenv


# --- Load .env ---

load_dotenv()


# --- Gemini (chat assistant) ---

GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
CHAT_MAX_OUTPUT_TOKENS = 300
CHAT_TEMPERATURE = 0.7

# --- Fish freshness classifier (Hugging Face Space) ---

FISH_CLASSIFIER_URL = os.getenv("FISH_CLASSIFIER_URL", "https://iger-fish-freshness.hf.space/predict")
MAX_IMAGE_SIZE = 5 * 1024 * 1024  # 5MB
ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/webp"}

# --- Geocoding (OpenStreetMap Nominatim) ---

NOMINATIM_URL = os.getenv("NOMINATIM_URL", "https://nominatim.openstreetmap.org")
GEOCODER_USER_AGENT = os.getenv("GEOCODER_USER_AGENT", "IGER-App/1.0")
GEOCODE_CACHE_TTL = int(os.getenv("GEOCODE_CACHE_TTL", 3600))

# --- Appwrite (auth sessions) ---

APPWRITE_ENDPOINT = os.getenv("APPWRITE_ENDPOINT", "https://fra.cloud.appwrite.io/v1")
APPWRITE_PROJECT_ID = os.getenv("APPWRITE_PROJECT_ID")
SESSION_CACHE_TTL = int(os.getenv("SESSION_CACHE_TTL", 60))

# --- HTTP & server ---

HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", 30))
CORS_ALLOW_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ALLOW_ORIGINS", "*").split(",") if origin.strip()]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def configure_logging(level: str = None) -> None:
    logging.basicConfig(
        level=level or LOG_LEVEL,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
