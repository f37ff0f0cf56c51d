import os
from typing import List
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

def parse_list_env(env_var: str, default: List[str] = None) -> List[str]:
    """Parse comma-separated environment variable into list"""
    if default is None:
        default = []

    value = os.getenv(env_var, "")
    if not value.strip():
        return default

    return [item.strip() for item in value.split(",") if item.strip()]

def parse_bool_env(env_var: str, default: bool = False) -> bool:
    """Parse boolean environment variable"""
    return os.getenv(env_var, str(default)).lower() in ("true", "1", "yes", "on")

def parse_int_env(env_var: str, default: int, minimum: int = None, maximum: int = None) -> int:
    """Parse integer environment variable, clamped to an optional range"""
    try:
        value = int(os.getenv(env_var, str(default)))
    except ValueError:
        value = default
    if minimum is not None:
        value = max(minimum, value)
    if maximum is not None:
        value = min(maximum, value)
    return value

class TimecardConfig:
    """Timecard calculation defaults from Environment"""

    # Applied when a calculation request does not say otherwise
    APPLY_BREAK_GRACE_PERIOD = parse_bool_env("APPLY_BREAK_GRACE_PERIOD", True)
    DEFAULT_BREAK_MINUTES = parse_int_env("DEFAULT_BREAK_MINUTES", 30, minimum=0, maximum=120)

    # Roles allowed to edit any timecard and write admin notes
    ADMIN_ROLES = parse_list_env("TIMECARD_ADMIN_ROLES", ["admin", "in_house"])

class ServerConfig:
    """Server Configuration from Environment"""

    # Server settings
    HOST = os.getenv("TIMECARD_HOST", "0.0.0.0")
    PORT = int(os.getenv("TIMECARD_PORT", "8000"))
    WORKERS = int(os.getenv("TIMECARD_WORKERS", "1"))
    LOG_LEVEL = os.getenv("TIMECARD_LOG_LEVEL", "info")

    # Optional TLS, both files must exist
    SSL_CERT_FILE = os.getenv("SSL_CERT_FILE", "")
    SSL_KEY_FILE = os.getenv("SSL_KEY_FILE", "")

    # Security settings, empty secret disables the API key check
    API_SECRET = os.getenv("TIMECARD_API_SECRET", "")

    # Database settings
    DATABASE_PATH = os.getenv("DATABASE_PATH", "timecards.db")

    # Development settings
    SEED_TEST_DATA = parse_bool_env("SEED_TEST_DATA", False)
    ENABLE_API_DOCS = parse_bool_env("ENABLE_API_DOCS", True)

    # CORS settings
    CORS_ORIGINS = parse_list_env("CORS_ORIGINS", ["*"])
    CORS_ALLOW_CREDENTIALS = parse_bool_env("CORS_ALLOW_CREDENTIALS", True)

    # App metadata
    APP_NAME = os.getenv("APP_NAME", "Timecard Server")
    APP_VERSION = os.getenv("APP_VERSION", "1.0.0")
    APP_DESCRIPTION = os.getenv("APP_DESCRIPTION", "Timecard calculation, break resolution and submission validation")
