# product_api/database.py
from __future__ import annotations

from contextlib import contextmanager
from typing import Callable, Generator

from sqlalchemy import MetaData, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import NullPool, StaticPool

from product_api.core.settings import Settings

SessionFactory = Callable[[], Session]

# -----------------------------
# Helpers
# -----------------------------
_MEMORY_URLS = {"sqlite://", "sqlite:///:memory:", "sqlite+pysqlite:///:memory:"}


def mask_url(url: str) -> str:
    if "://" not in url:
        return url
    scheme, rest = url.split("://", 1)
    if "@" not in rest or ":" not in rest.split("@", 1)[0]:
        return url
    creds, tail = rest.split("@", 1)
    user = creds.split(":", 1)[0]
    return f"{scheme}://{user}:***@{tail}"


# -----------------------------
# Naming convention pentru constrângeri
# -----------------------------
NAMING_CONVENTION = {
    "ix": "ix_%(table_name)s_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=NAMING_CONVENTION)
Base = declarative_base(metadata=metadata)


# -----------------------------
# Engine factory
# -----------------------------
def _build_engine_kwargs(settings: Settings) -> dict:
    url = settings.DATABASE_URL
    kwargs: dict = {
        "echo": settings.DB_ECHO,
        "pool_pre_ping": not settings.DB_DISABLE_PRE_PING,
    }

    if url.startswith("sqlite"):
        # SQLite: conexiunea trece între thread-urile din worker pool
        kwargs["connect_args"] = {"check_same_thread": False}
        # In-memory → StaticPool (altfel fiecare conexiune are DB separat)
        if url in _MEMORY_URLS:
            kwargs["poolclass"] = StaticPool
        else:
            kwargs["poolclass"] = NullPool
    elif settings.DB_USE_NULLPOOL:
        # pgbouncer în transaction pooling
        kwargs["poolclass"] = NullPool
    else:
        kwargs.update(
            {
                "pool_size": settings.DB_POOL_SIZE,
                "max_overflow": settings.DB_MAX_OVERFLOW,
                "pool_recycle": settings.DB_POOL_RECYCLE,
                "pool_timeout": settings.DB_POOL_TIMEOUT,
                "pool_use_lifo": settings.DB_POOL_LIFO,
            }
        )
    return kwargs


def build_engine(settings: Settings) -> Engine:
    return create_engine(settings.DATABASE_URL, **_build_engine_kwargs(settings))


def build_session_factory(engine: Engine) -> sessionmaker:
    # expire_on_commit=False → obiectele rămân utilizabile după commit (evită re-load imediat)
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@contextmanager
def session_scope(factory: SessionFactory) -> Generator[Session, None, None]:
    """
    O sesiune per apel: commit la succes, rollback la excepție,
    conexiunea se întoarce în pool pe orice cale de ieșire.
    """
    db: Session = factory()
    try:
        yield db
        db.commit()
    except BaseException:
        db.rollback()
        raise
    finally:
        db.close()


def init_db(engine: Engine) -> None:
    """
    Creează tabelele din modele. Util în prototip/CI;
    în producție schema vine din tool-ul de migrări.
    """
    from product_api.models import product  # noqa: F401
    Base.metadata.create_all(bind=engine)


__all__ = [
    "Base",
    "SessionFactory",
    "build_engine",
    "build_session_factory",
    "session_scope",
    "init_db",
    "mask_url",
]
