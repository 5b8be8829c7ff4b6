"""Configuration module: environment variables and constants."""

import os
from pathlib import Path

from dotenv import load_dotenv

# .env lives at the project root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# --- Supabase ---
SUPABASE_URL: str = os.getenv("SUPABASE_URL", "")
SUPABASE_SECRET_KEY: str = os.getenv("SUPABASE_SECRET_KEY", "")
SUPABASE_ANON_KEY: str = os.getenv("SUPABASE_ANON_KEY", "") or SUPABASE_SECRET_KEY
SUPABASE_SCHEMA: str = os.getenv("SUPABASE_SCHEMA", "public")

# --- Edge Functions ---
METRICS_FUNCTION = "get-keyword-data"
DOMAIN_FUNCTION = "check-domain-availability"
CHECKOUT_FUNCTION = "create-checkout"

# --- CLI sign-in ---
NICHEFINDER_EMAIL: str = os.getenv("NICHEFINDER_EMAIL", "")
NICHEFINDER_PASSWORD: str = os.getenv("NICHEFINDER_PASSWORD", "")

# --- Search ---
MAX_RESULTS = 10
CITY_SAMPLE_SIZE = 20
NICHE_SAMPLE_SIZE = 20
SINGLE_CITY_NICHE_SAMPLE_SIZE = 50

# --- Keyword metrics ---
METRICS_CALL_DELAY = 1.0  # seconds, after every successful call
METRICS_TIMEOUT = 15  # seconds
FALLBACK_VOLUME_MIN = 100
FALLBACK_VOLUME_MAX = 5100  # exclusive
FALLBACK_CPC_CENTS_MIN = 100
FALLBACK_CPC_CENTS_MAX = 1600  # exclusive

# --- Domain availability ---
DOMAIN_TLDS = ("com", "net", "org")
DOMAIN_TIMEOUT = 10  # seconds
REGISTRATION_URL_TEMPLATE = (
    "https://www.namecheap.com/domains/registration/results/?domain={domain}"
)

# --- Credits ---
CREDIT_UPDATE_ATTEMPTS = 3
CREDIT_PACKAGES = {
    # package -> (price id, credits per unit, price per unit in USD)
    "base": ("base-package", 100, 37.00),
    "additional": ("additional-credits", 1, 0.75),
}
CHECKOUT_TIMEOUT = 15  # seconds

# --- Payment verification polling ---
PAYMENT_VERIFY_ATTEMPTS = 5
PAYMENT_VERIFY_BASE_DELAY = 2.0  # seconds
PAYMENT_VERIFY_MAX_MULTIPLIER = 3

# --- Logging ---
LOG_DIR = Path(__file__).resolve().parent.parent / "logs"
LOG_DIR.mkdir(exist_ok=True)
