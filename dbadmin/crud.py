import uuid
from datetime import datetime, timezone
from typing import Any

from sqlmodel import Session, select

from dbadmin.core.security import decrypt_value, encrypt_value
from dbadmin.models import ConnectionConfig, ConnectionProfile
from dbadmin.schemas import ConnectionCreate, ConnectionUpdate


def create_profile(*, session: Session, profile_in: ConnectionCreate) -> ConnectionProfile:
    data = profile_in.model_dump(exclude={"password"})
    db_obj = ConnectionProfile.model_validate(
        data, update={"password": encrypt_value(profile_in.password or "")}
    )
    session.add(db_obj)
    session.commit()
    session.refresh(db_obj)
    return db_obj


def update_profile(
    *, session: Session, db_profile: ConnectionProfile, profile_in: ConnectionUpdate
) -> ConnectionProfile:
    data: dict[str, Any] = {
        k: v
        for k, v in profile_in.model_dump(exclude_unset=True, exclude={"password"}).items()
        if v is not None or k == "database"
    }
    if profile_in.password is not None:
        data["password"] = encrypt_value(profile_in.password)
    data["updated_at"] = datetime.now(timezone.utc)
    db_profile.sqlmodel_update(data)
    session.add(db_profile)
    session.commit()
    session.refresh(db_profile)
    return db_profile


def get_profile(*, session: Session, profile_id: uuid.UUID | str) -> ConnectionProfile | None:
    try:
        key = profile_id if isinstance(profile_id, uuid.UUID) else uuid.UUID(str(profile_id))
    except ValueError:
        return None
    return session.get(ConnectionProfile, key)


def list_profiles(*, session: Session) -> list[ConnectionProfile]:
    stmt = select(ConnectionProfile).order_by(ConnectionProfile.created_at)
    return list(session.exec(stmt).all())


def delete_profile(*, session: Session, db_profile: ConnectionProfile) -> None:
    session.delete(db_profile)
    session.commit()


def profile_to_config(profile: ConnectionProfile) -> ConnectionConfig:
    """Decrypt the stored password into a registry ``ConnectionConfig``."""
    return profile.to_config(decrypt_value(profile.password))
