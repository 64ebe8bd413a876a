"""
Application configuration using python-dotenv.

This module loads environment variables from .env file into os.environ
for use throughout the application.
"""

import os
import pathlib
from dotenv import load_dotenv


# Determine if we're running in a test environment
# Don't load .env file during testing to ensure predictable test behavior
is_testing = os.getenv("PYTEST_VERSION") is not None or "pytest" in os.getenv("_", "")

# Load .env file into os.environ (only outside of testing)
if not is_testing:
    possible_paths = [
        pathlib.Path(__file__).parent.parent.parent / ".env",  # repository root (when run from src)
        pathlib.Path.cwd() / ".env",  # .env in current directory
    ]

    for env_path in possible_paths:
        if env_path.exists():
            load_dotenv(env_path)
            break


def _get_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# Configuration constants with defaults
# These match the environment variables defined in .env.example
def get_database_url():
    """Get the database URL from environment."""
    return os.getenv(
        "DATABASE_URL",
        "postgresql+psycopg2://localhost/clinic_care_dev"
    )

DATABASE_URL = get_database_url()
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

# Payment gateway (PayOS)
PAYOS_API_URL = os.getenv("PAYOS_API_URL", "https://api-merchant.payos.vn")
PAYOS_CLIENT_ID = os.getenv("PAYOS_CLIENT_ID", "")
PAYOS_API_KEY = os.getenv("PAYOS_API_KEY", "")
PAYOS_CHECKSUM_KEY = os.getenv("PAYOS_CHECKSUM_KEY", "")
PAYOS_PARTNER_CODE = os.getenv("PAYOS_PARTNER_CODE", "")
PAYOS_CANCEL_URL = os.getenv("PAYOS_CANCEL_URL", f"{FRONTEND_URL}/payment/cancel")
PAYOS_RETURN_URL = os.getenv("PAYOS_RETURN_URL", f"{FRONTEND_URL}/payment/success")

# Bank account shown on bank-transfer QR codes (VietQR)
BANK_ID = os.getenv("BANK_ID", "")
BANK_ACCOUNT_NO = os.getenv("BANK_ACCOUNT_NO", "")
BANK_ACCOUNT_NAME = os.getenv("BANK_ACCOUNT_NAME", "")
BANK_QR_TEMPLATE = os.getenv("BANK_QR_TEMPLATE", "compact2")

# Outbound email (SMTP). Email delivery is disabled when SMTP_HOST is empty.
SMTP_HOST = os.getenv("SMTP_HOST", "")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
SMTP_USERNAME = os.getenv("SMTP_USERNAME", "")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD", "")
SMTP_USE_TLS = _get_bool("SMTP_USE_TLS", "true")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "Clinic Care <no-reply@clinic-care.local>")
EMAIL_TEMPLATE_DIR = os.getenv("EMAIL_TEMPLATE_DIR", "email_templates")

# Work schedules
# "skip": conflicting doctor/shift pairs are left out of a bulk creation
# "reject": any conflict rejects the whole bulk creation
SCHEDULE_CONFLICT_POLICY = os.getenv("SCHEDULE_CONFLICT_POLICY", "skip").strip().lower()
