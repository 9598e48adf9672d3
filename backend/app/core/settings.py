import os


def _getenv(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None:
        return default
    value = value.strip()
    return value if value else default


def _getenv_bool(name: str, default: bool = False) -> bool:
    raw = _getenv(name)
    if raw is None:
        return default
    return raw.lower() in {"1", "true", "yes", "y", "on"}


def _getenv_csv_set(name: str) -> set[str]:
    raw = _getenv(name)
    if raw is None:
        return set()
    parts = [p.strip().lower() for p in raw.split(",")]
    return {p for p in parts if p}


def _getenv_float(name: str, default: float) -> float:
    raw = _getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


class Settings:
    def __init__(self) -> None:
        self.environment = (_getenv("ENVIRONMENT", "development") or "development").lower()
        self.log_level = (_getenv("LOG_LEVEL", "INFO") or "INFO").upper()
        self.database_url = _getenv("DATABASE_URL", "sqlite:///./sql_app.db") or "sqlite:///./sql_app.db"
        self.db_auto_create = _getenv_bool("DB_AUTO_CREATE", default=True)
        self.cors_allow_origins = _getenv("CORS_ALLOW_ORIGINS")
        self.frontend_url = _getenv("FRONTEND_URL", "http://localhost:3000") or "http://localhost:3000"

        self.auth_secret = _getenv("AUTH_SECRET") or _getenv("NEXTAUTH_SECRET")
        self.auth_jwt_audience = _getenv("AUTH_JWT_AUD")
        self.admin_emails = _getenv_csv_set("ADMIN_EMAILS")

        self.razorpay_key_id = _getenv("RAZORPAY_KEY_ID")
        self.razorpay_key_secret = _getenv("RAZORPAY_KEY_SECRET")
        self.razorpay_webhook_secret = _getenv("RAZORPAY_WEBHOOK_SECRET")
        self.razorpay_public_key_id = _getenv("NEXT_PUBLIC_RAZORPAY_KEY_ID") or self.razorpay_key_id
        self.razorpay_api_base = (
            _getenv("RAZORPAY_API_BASE", "https://api.razorpay.com/v1") or "https://api.razorpay.com/v1"
        ).rstrip("/")
        self.currency = (_getenv("PAYMENT_CURRENCY", "INR") or "INR").upper()

        self.four_day_price = _getenv_float("FOUR_DAY_PRICE", 199.0)
        self.six_month_price = _getenv_float("SIX_MONTH_PRICE", 699.0)
        self.free_access_days = int(_getenv("FREE_ACCESS_DAYS", "30") or "30")

        self.content_timezone = _getenv("CONTENT_TIMEZONE", "Asia/Kolkata") or "Asia/Kolkata"
        self.countdown_tick_s = _getenv_float("COUNTDOWN_TICK_S", 1.0)

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def razorpay_mode(self) -> str:
        key = self.razorpay_key_id or ""
        return "live" if key.startswith("rzp_live_") else "test"

    def resolved_cors_origins(self) -> list[str]:
        raw = self.cors_allow_origins
        if raw is None:
            return ["http://localhost:3000", "http://localhost:8000"]
        if raw.strip() == "*":
            return ["*"]
        origins = [o.strip() for o in raw.split(",") if o.strip()]
        return origins


settings = Settings()
