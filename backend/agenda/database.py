from datetime import datetime, timezone

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import NullPool
from sqlalchemy.types import DateTime, TypeDecorator

from .config import settings


def _connect_args(url: str) -> dict:
    # SQLite: la sessione può passare tra i thread del pool di FastAPI
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


def _make_engine(url: str, app_env: str):
    # In sviluppo: nessun pool -> connessione chiusa subito dopo ogni request
    if app_env.lower() != "prod":
        return create_engine(
            url,
            future=True,
            pool_pre_ping=True,
            poolclass=NullPool,
            connect_args=_connect_args(url),
        )

    # In produzione: pool minimo e prudente
    return create_engine(
        url,
        future=True,
        pool_pre_ping=True,
        pool_size=1,
        max_overflow=0,
        pool_recycle=1800,
        connect_args=_connect_args(url),
    )


engine = _make_engine(settings.DB_URL, settings.APP_ENV)

SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    expire_on_commit=False,
    future=True,
)

Base = declarative_base()


class UTCDateTime(TypeDecorator):
    """
    Istante sempre in UTC.
    In scrittura accetta solo datetime con tzinfo e li converte in UTC;
    in lettura restituisce datetime aware (UTC), anche su SQLite che perde l'offset.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError("Atteso un datetime con timezone")
        value = value.astimezone(timezone.utc)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value: datetime | None, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()  # importantissimo per rilasciare la connessione
