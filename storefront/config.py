import os
from datetime import timedelta


def _flag(name, default="true"):
    return os.environ.get(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Config:
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JSON_SORT_KEYS = False
    TESTING = False

    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", "dev-secret-change-me")
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(days=1)
    REFRESH_TOKEN_TTL_DAYS = int(os.environ.get("REFRESH_TOKEN_TTL_DAYS", "7"))
    PASSWORD_RESET_TTL_MINUTES = int(os.environ.get("PASSWORD_RESET_TTL_MINUTES", "30"))

    # Stripe
    STRIPE_SECRET_KEY = os.environ.get("STRIPE_SECRET_KEY", "")
    STRIPE_PUBLISHABLE_KEY = os.environ.get("STRIPE_PUBLISHABLE_KEY", "")
    STRIPE_WEBHOOK_SECRET = os.environ.get("STRIPE_WEBHOOK_SECRET", "")
    STRIPE_DEFAULT_CURRENCY = os.environ.get("STRIPE_DEFAULT_CURRENCY", "usd")

    # Payment reconciliation
    PAYMENT_SYNC_ENABLED = _flag("PAYMENT_SYNC_ENABLED")
    # background thread in create_app; enable on one serving process only
    PAYMENT_SYNC_AUTOSTART = _flag("PAYMENT_SYNC_AUTOSTART", "false")
    PAYMENT_SYNC_INTERVAL_SECONDS = int(os.environ.get("PAYMENT_SYNC_INTERVAL_SECONDS", "300"))
    PAYMENT_SYNC_BATCH_SIZE = int(os.environ.get("PAYMENT_SYNC_BATCH_SIZE", "50"))
    PAYMENT_STALE_AFTER_HOURS = int(os.environ.get("PAYMENT_STALE_AFTER_HOURS", "24"))
    PAYMENT_POLL_AFTER_MINUTES = int(os.environ.get("PAYMENT_POLL_AFTER_MINUTES", "60"))

    # "db" is the only catalog backend shipped
    PRODUCT_SOURCE = os.environ.get("PRODUCT_SOURCE", "db")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_JSON = _flag("LOG_JSON")

    @staticmethod
    def init_app(app):
        if not os.getenv("DATABASE_URL"):
            os.makedirs(app.instance_path, exist_ok=True)
            app.config["SQLALCHEMY_DATABASE_URI"] = f"sqlite:///{os.path.join(app.instance_path, 'app.db')}"
        else:
            app.config["SQLALCHEMY_DATABASE_URI"] = os.getenv("DATABASE_URL")


class TestingConfig(Config):
    TESTING = True
    JWT_SECRET_KEY = "test-secret-key-with-enough-length-for-hs256"
    STRIPE_SECRET_KEY = "sk_test_dummy"
    STRIPE_PUBLISHABLE_KEY = "pk_test_dummy"
    STRIPE_WEBHOOK_SECRET = "whsec_test_secret"
    PAYMENT_SYNC_ENABLED = True
    PAYMENT_SYNC_AUTOSTART = False
    LOG_JSON = False
    LOG_LEVEL = "WARNING"

    @staticmethod
    def init_app(app):
        app.config["SQLALCHEMY_DATABASE_URI"] = "sqlite://"
