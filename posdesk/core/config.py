import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int, min_value: int | None = None) -> int:
    raw = os.getenv(name)
    if raw is None:
        value = default
    else:
        try:
            value = int(raw)
        except ValueError:
            value = default
    if min_value is not None:
        return max(min_value, value)
    return value


@dataclass(frozen=True)
class Settings:
    app_name: str
    secret_key: str
    algorithm: str
    access_token_expire_minutes: int
    issuer: str
    cors_origins: tuple[str, ...]
    database_url: str
    database_sslmode: str
    sql_echo: bool
    log_level: str
    tenant_header: str
    default_admin_email: str
    default_admin_password: str
    default_reorder_level: int
    expiry_warning_days: int
    loyalty_points_divisor: int


settings = Settings(
    app_name=os.getenv("APP_NAME", "POS Desk API"),
    secret_key=os.getenv("SECRET_KEY", "CHANGE_ME_IN_PRODUCTION_32_CHAR_MIN_SECRET_KEY"),
    algorithm=os.getenv("ALGORITHM", "HS256"),
    access_token_expire_minutes=_env_int("ACCESS_TOKEN_EXPIRE_MINUTES", 720, min_value=1),
    issuer=os.getenv("TOKEN_ISSUER", "posdesk-api"),
    cors_origins=tuple(
        origin.strip().rstrip("/")
        for origin in os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",")
        if origin.strip()
    ),
    database_url=os.getenv("DATABASE_URL", "sqlite:///./posdesk.db"),
    database_sslmode=os.getenv("DATABASE_SSLMODE", "").strip(),
    sql_echo=_env_bool("SQL_ECHO", False),
    log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
    tenant_header=os.getenv("TENANT_HEADER", "X-Tenant-Schema"),
    default_admin_email=os.getenv("DEFAULT_ADMIN_EMAIL", "admin@posystem.com"),
    default_admin_password=os.getenv("DEFAULT_ADMIN_PASSWORD", "admin123"),
    default_reorder_level=_env_int("LOW_STOCK_DEFAULT_REORDER_LEVEL", 5, min_value=0),
    expiry_warning_days=_env_int("EXPIRY_WARNING_DAYS", 30, min_value=1),
    loyalty_points_divisor=_env_int("LOYALTY_POINTS_DIVISOR", 10, min_value=1),
)
