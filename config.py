"""Environment-aware configuration for the RedLens API."""
import os
import tempfile
from datetime import timedelta
from urllib.parse import quote_plus


def _database_uri() -> str:
    db_url = os.getenv("DATABASE_URL")
    if db_url:
        return db_url
    # The MySQL deployment is described by the DB_* variables from .env.
    db_host = os.getenv("DB_HOST")
    if db_host:
        user = quote_plus(os.getenv("DB_USER", "root"))
        password = quote_plus(os.getenv("DB_PASSWORD", ""))
        name = os.getenv("DB_NAME", "redlens")
        return f"mysql+pymysql://{user}:{password}@{db_host}/{name}?charset=utf8mb4"
    return os.getenv(
        "SQLITE_URL",
        f"sqlite:///{os.path.join(os.getcwd(), 'instance', 'redlens.db')}",
    )


class BaseConfig:
    def __init__(self) -> None:
        self.SECRET_KEY = os.getenv("SECRET_KEY") or os.getenv("JWT_SECRET") or "dev-secret-key-change-me"
        self.SQLALCHEMY_DATABASE_URI = _database_uri()
        self.SQLALCHEMY_TRACK_MODIFICATIONS = False
        if self.SQLALCHEMY_DATABASE_URI.startswith("sqlite"):
            self.SQLALCHEMY_ENGINE_OPTIONS = {}
        else:
            self.SQLALCHEMY_ENGINE_OPTIONS = {
                "pool_size": int(os.getenv("DB_POOL_SIZE", 10)),
                "max_overflow": int(os.getenv("DB_MAX_OVERFLOW", 0)),
                "pool_timeout": int(os.getenv("DB_POOL_TIMEOUT", 30)),
                "pool_recycle": int(os.getenv("DB_POOL_RECYCLE", 1800)),
                "pool_pre_ping": True,
            }
        self.SESSION_COOKIE_HTTPONLY = True
        self.REMEMBER_COOKIE_HTTPONLY = True
        self.SESSION_COOKIE_SAMESITE = "Lax"
        self.PERMANENT_SESSION_LIFETIME = timedelta(days=7)
        # JSON bodies are validated with FlaskForm; there are no HTML forms to protect.
        self.WTF_CSRF_ENABLED = False
        self.JSON_SORT_KEYS = False
        self.PORT = int(os.getenv("PORT", 4000))
        self.CORS_ALLOWED_ORIGINS = os.getenv(
            "CORS_ALLOWED_ORIGINS", "http://localhost:3000,http://localhost:5173"
        )
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        self.LOG_DIR = os.getenv("LOG_DIR", os.path.join(os.getcwd(), "logs"))
        self.DEFAULT_ADMIN_EMAIL = os.getenv("DEFAULT_ADMIN_EMAIL", "")
        self.DEFAULT_ADMIN_PASSWORD = os.getenv("DEFAULT_ADMIN_PASSWORD", "")
        self.BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", 10))
        self.USER_ID_MAX_ATTEMPTS = int(os.getenv("USER_ID_MAX_ATTEMPTS", 20))
        self.CRIMES_PAGE_LIMIT = int(os.getenv("CRIMES_PAGE_LIMIT", 100))
        self.CRIMES_MAX_PAGE_LIMIT = int(os.getenv("CRIMES_MAX_PAGE_LIMIT", 500))
        self.SAFETY_SCORE_DEFAULT_DAYS = int(os.getenv("SAFETY_SCORE_DEFAULT_DAYS", 30))
        self.SAFETY_SCORE_CRIME_CEILING = int(os.getenv("SAFETY_SCORE_CRIME_CEILING", 10))
        self.HOTSPOT_DEFAULT_DAYS = int(os.getenv("HOTSPOT_DEFAULT_DAYS", 30))
        self.HOTSPOT_DEFAULT_RADIUS_METERS = int(os.getenv("HOTSPOT_DEFAULT_RADIUS_METERS", 500))
        self.HOTSPOT_MIN_CRIMES = int(os.getenv("HOTSPOT_MIN_CRIMES", 3))
        self.HOTSPOT_HIGH_RISK_CRIMES = int(os.getenv("HOTSPOT_HIGH_RISK_CRIMES", 10))
        self.HOTSPOT_MEDIUM_RISK_CRIMES = int(os.getenv("HOTSPOT_MEDIUM_RISK_CRIMES", 5))
        self.REPORT_EXPORT_DIR = os.getenv(
            "REPORT_EXPORT_DIR",
            os.path.join(os.getcwd(), "instance", "report_exports"),
        )


class DevelopmentConfig(BaseConfig):
    def __init__(self) -> None:
        super().__init__()
        self.DEBUG = True
        self.ENV = "development"
        self.SESSION_COOKIE_SECURE = False
        self.REMEMBER_COOKIE_SECURE = False


class ProductionConfig(BaseConfig):
    def __init__(self) -> None:
        super().__init__()
        self.DEBUG = False
        self.ENV = "production"
        self.SESSION_COOKIE_SECURE = os.getenv("SESSION_COOKIE_SECURE", "true").lower() == "true"
        self.REMEMBER_COOKIE_SECURE = self.SESSION_COOKIE_SECURE


class TestingConfig(BaseConfig):
    def __init__(self) -> None:
        super().__init__()
        self.TESTING = True
        self.DEBUG = False
        self.ENV = "testing"
        self.SQLALCHEMY_DATABASE_URI = "sqlite://"
        self.SQLALCHEMY_ENGINE_OPTIONS = {}
        self.SESSION_COOKIE_SECURE = False
        self.BCRYPT_ROUNDS = 4
        self.DEFAULT_ADMIN_EMAIL = ""
        self.DEFAULT_ADMIN_PASSWORD = ""
        self.LOG_LEVEL = "WARNING"
        self.LOG_DIR = os.path.join(tempfile.gettempdir(), "redlens-test-logs")
        self.REPORT_EXPORT_DIR = os.path.join(tempfile.gettempdir(), "redlens-test-exports")
