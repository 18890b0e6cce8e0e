from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

from dbadmin.core.config import settings


def _engine_kwargs(uri: str) -> dict:
    if not uri.startswith("sqlite"):
        return {"pool_pre_ping": True}
    kwargs: dict = {"connect_args": {"check_same_thread": False}}
    if uri in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool
    return kwargs


engine = create_engine(
    settings.PROFILE_DATABASE_URI, **_engine_kwargs(settings.PROFILE_DATABASE_URI)
)


def init_db() -> None:
    # Profile storage is a single table; create it if missing
    from dbadmin import models  # noqa: F401

    SQLModel.metadata.create_all(engine)
