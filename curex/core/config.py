# curex/core/config.py
import os
from decimal import Decimal
from typing import List
from urllib.parse import quote_plus

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


def _split_csv(value: str) -> List[str]:
    return [v.strip() for v in (value or "").split(",") if v.strip()]


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes"}


def _database_url() -> str:
    url = os.getenv("DATABASE_URL", "").strip()
    if url:
        return url
    driver = os.getenv("DB_DRIVER", "pymysql")
    user = os.getenv("MYSQL_USER", "curex_user")
    password = os.getenv("MYSQL_PASSWORD", "curex")
    host = os.getenv("MYSQL_HOST", "localhost")
    port = os.getenv("MYSQL_PORT", "3306")
    db_name = os.getenv("MYSQL_DB", "curex40")
    return (f"mysql+{driver}://{quote_plus(user)}:{quote_plus(password)}"
            f"@{host}:{port}/{db_name}?charset=utf8mb4")


class Settings(BaseModel):
    PROJECT_NAME: str = os.getenv("PROJECT_NAME", "CureX40 API")
    API_V1_STR: str = os.getenv("API_V1_STR", "/api/v1")
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

    # when true, 500 responses carry the raw exception text
    DEBUG: bool = _flag("APP_DEBUG")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # CORS (env takes priority)
    BACKEND_CORS_ORIGINS: List[str] = _split_csv(
        os.getenv(
            "CORS_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000",
        ))

    # ---------- Database ----------
    SQLALCHEMY_DATABASE_URI: str = _database_url()

    # ---------- Security ----------
    JWT_SECRET: str = os.getenv("JWT_SECRET", "change-this")
    JWT_ALG: str = os.getenv("JWT_ALG", "HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(
        os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))
    BCRYPT_ROUNDS: int = int(os.getenv("BCRYPT_ROUNDS", "12"))

    # ---------- Pricing (DZD) ----------
    CURRENCY: str = os.getenv("CURRENCY", "DZD")
    TAX_RATE: Decimal = Decimal(os.getenv("TAX_RATE", "0.19"))
    FREE_SHIPPING_THRESHOLD: Decimal = Decimal(
        os.getenv("FREE_SHIPPING_THRESHOLD", "1000"))
    SHIPPING_COST: Decimal = Decimal(os.getenv("SHIPPING_COST", "200"))
    DELIVERY_FEE: Decimal = Decimal(os.getenv("DELIVERY_FEE", "500"))

    # ---------- Inventory ----------
    LOW_STOCK_THRESHOLD: int = int(os.getenv("LOW_STOCK_THRESHOLD", "10"))


settings = Settings()
