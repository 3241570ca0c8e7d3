import os
import logging
from pydantic import BaseModel, Field
from typing import List
from dotenv import load_dotenv

load_dotenv()


class LeavePolicySettings(BaseModel):
    # Requests of at least this many days escalate (Manager always, Employee with monthly volume)
    escalation_duration_days: int = int(os.getenv("LEAVE_ESCALATION_DURATION_DAYS", "5"))
    # Approved leaves per month after which long Employee requests go to Admin
    monthly_approved_leave_limit: int = int(os.getenv("LEAVE_MONTHLY_APPROVED_LIMIT", "5"))
    # Manager/Employee leaves strictly longer than this can be decided by Admin
    admin_approval_threshold_days: int = int(os.getenv("LEAVE_ADMIN_APPROVAL_THRESHOLD_DAYS", "5"))
    default_paid_balance: int = int(os.getenv("LEAVE_DEFAULT_PAID_BALANCE", "12"))
    default_sick_balance: int = int(os.getenv("LEAVE_DEFAULT_SICK_BALANCE", "8"))
    # Compared against last_login, which is stored in UTC
    latecomer_hour: int = int(os.getenv("LATECOMER_HOUR", "10"))
    upcoming_window_days: int = 7


class Config(BaseModel):
    app_name: str = "Leavedesk"
    environment: str = os.getenv("APP_ENV", "development")
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
    api_prefix: str = "/api"

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./leavedesk.db")

    # Auth
    secret_key: str = os.getenv("SECRET_KEY", "dev-only-insecure-key-DO-NOT-USE-IN-PROD")
    jwt_algorithm: str = os.getenv("JWT_ALGORITHM", "HS256")
    access_token_expire_minutes: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

    # Leave rules
    leave: LeavePolicySettings = LeavePolicySettings()

    version: str = "1.0.0"
    request_id_header: str = "X-Request-ID"

    cors_origins: List[str] = Field(
        default_factory=lambda: [
            o.strip()
            for o in os.getenv(
                "CORS_ORIGINS",
                "http://localhost:3000,http://127.0.0.1:3000",
            ).split(",")
            if o.strip()
        ]
    )

settings = Config()

# --- Startup Validation for Production ---
_logger = logging.getLogger(__name__)
if settings.environment not in ("development", "testing"):
    if "dev-only" in settings.secret_key or "change-it" in settings.secret_key:
        raise RuntimeError(
            "FATAL: SECRET_KEY must be set for non-development environments. "
            "Set it as an environment variable."
        )
else:
    if "dev-only" in settings.secret_key:
        _logger.warning("⚠ Using insecure default SECRET_KEY — only acceptable in development.")
