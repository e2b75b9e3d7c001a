from __future__ import annotations
from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _csv(raw: str) -> List[str]:
    return [p.strip() for p in (raw or "").split(",") if p.strip()]


class Settings(BaseSettings):
    # App
    APP_TITLE: str = "product-api"
    APP_VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"
    ROOT_PATH: str = ""
    DISABLE_DOCS: bool = False

    # DB
    DATABASE_URL: str = Field("sqlite:///./app.db", description="postgresql+psycopg://appuser:<PASS>@db:5432/appdb")
    DB_ECHO: bool = False
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_RECYCLE: int = 1800  # sec
    DB_POOL_TIMEOUT: int = 30    # sec
    DB_POOL_LIFO: bool = True
    DB_USE_NULLPOOL: bool = False
    DB_DISABLE_PRE_PING: bool = False
    SQLALCHEMY_CREATE_ALL: bool = False

    # Worker pool pentru apelurile blocante către DB
    STORE_WORKERS: int = Field(8, ge=1)
    LIST_BATCH_SIZE: int = Field(100, ge=1)

    # HTTP
    MAX_BODY_SIZE_BYTES: int = 0  # 0 = dezactivat
    CORS_ORIGINS: str = ""
    TRUSTED_HOSTS: str = ""
    ENABLE_HSTS: bool = False

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    @field_validator("DATABASE_URL")
    @classmethod
    def _url_nonempty(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("DATABASE_URL este gol. Setează o valoare validă.")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return (v or "INFO").strip().upper()

    @property
    def cors_origins(self) -> List[str]:
        return _csv(self.CORS_ORIGINS)

    @property
    def trusted_hosts(self) -> List[str]:
        return _csv(self.TRUSTED_HOSTS)

    @property
    def root_path(self) -> str | None:
        return self.ROOT_PATH.strip() or None


@lru_cache
def get_settings() -> Settings:
    return Settings()
