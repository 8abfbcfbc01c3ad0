import logging
import os
from dataclasses import dataclass
from decimal import Decimal
from functools import lru_cache


TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in TRUE_VALUES


@dataclass(frozen=True)
class Settings:
    database_url: str
    sql_echo: bool
    log_level: str
    secret_key: str
    access_token_expire_minutes: int
    balance_tolerance: Decimal
    allow_reversal_of_reversal: bool
    cors_origins: tuple[str, ...]


@lru_cache
def get_settings() -> Settings:
    origins = os.getenv("CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173")
    return Settings(
        database_url=os.getenv("DATABASE_URL", "sqlite:///./erp_ledger.db"),
        sql_echo=_env_flag("SQL_ECHO", "false"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        secret_key=os.getenv("SECRET_KEY", "erp-ledger-dev-secret"),
        access_token_expire_minutes=int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 12))),
        balance_tolerance=Decimal(os.getenv("LEDGER_BALANCE_TOLERANCE", "0.00")),
        allow_reversal_of_reversal=_env_flag("LEDGER_ALLOW_REVERSAL_OF_REVERSAL", "true"),
        cors_origins=tuple(origin.strip() for origin in origins.split(",") if origin.strip()),
    )


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=level or get_settings().log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
