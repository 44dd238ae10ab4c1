"""
Database abstraction for Postgres and an in-memory test implementation.
"""

from __future__ import annotations

import secrets
import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    create_engine,
    delete,
    select,
)
from sqlalchemy.orm import Session, declarative_base, sessionmaker


class DbClient(Protocol):
    """Interface for database access."""

    def get_user(self, user_id: str) -> Optional["UserRecord"]:
        ...

    def get_user_by_email(self, email: str) -> Optional["UserRecord"]:
        ...

    def upsert_user(
        self, email: str, name: str | None = None, is_admin: bool | None = None
    ) -> "UserRecord":
        ...

    def create_session(self, user_id: str, expires_at: float) -> "SessionRecord":
        ...

    def get_session(self, token: str) -> Optional["SessionRecord"]:
        ...

    def delete_session(self, token: str) -> None:
        ...

    def delete_expired_sessions(self, now: float) -> int:
        ...

    def get_site_settings(self, keys: list[str]) -> dict[str, Optional[str]]:
        ...

    def save_site_setting(self, key: str, value: Optional[str]) -> None:
        ...

    def create_project(self, project: "ProjectRecord") -> "ProjectRecord":
        ...

    def get_project(self, project_id: str) -> Optional["ProjectRecord"]:
        ...

    def delete_project(self, project_id: str) -> bool:
        ...

    def update_project(
        self, project_id: str, changes: dict
    ) -> Optional["ProjectRecord"]:
        ...

    def reorder_projects(self, project_ids: list[str]) -> None:
        ...

    def list_projects(self) -> list["ProjectRecord"]:
        ...

    def list_project_folders(self) -> list[str]:
        ...


@dataclass
class UserRecord:
    id: str
    email: str
    name: Optional[str] = None
    is_admin: bool = False
    created_at: float = field(default_factory=lambda: time.time())


@dataclass
class SessionRecord:
    token: str
    user_id: str
    expires_at: float

    def is_expired(self, now: float | None = None) -> bool:
        return (now if now is not None else time.time()) >= self.expires_at


@dataclass
class ProjectRecord:
    title: str
    description: str = ""
    tags: list[str] = field(default_factory=list)
    cloudinary_folder: Optional[str] = None
    image_public_ids: list[str] = field(default_factory=list)
    sort_order: int = 0
    date_is_month_only: bool = False
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: float = field(default_factory=lambda: time.time())

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "tags": list(self.tags),
            "cloudinaryFolder": self.cloudinary_folder,
            "imagePublicIds": list(self.image_public_ids),
            "sortOrder": self.sort_order,
            "dateIsMonthOnly": self.date_is_month_only,
            "createdAt": self.created_at,
        }


def _new_session_token() -> str:
    return secrets.token_urlsafe(32)


def _project_sort_key(project: ProjectRecord) -> tuple:
    return (project.sort_order, -project.created_at)


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.users: Dict[str, UserRecord] = {}
        self.sessions: Dict[str, SessionRecord] = {}
        self.site_settings: Dict[str, Optional[str]] = {}
        self.projects: Dict[str, ProjectRecord] = {}

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.users.clear()
        self.sessions.clear()
        self.site_settings.clear()
        self.projects.clear()

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        return self.users.get(user_id)

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        for user in self.users.values():
            if user.email == email:
                return user
        return None

    def upsert_user(
        self, email: str, name: str | None = None, is_admin: bool | None = None
    ) -> UserRecord:
        user = self.get_user_by_email(email)
        if user is None:
            user = UserRecord(id=uuid.uuid4().hex, email=email)
            self.users[user.id] = user
        if name:
            user.name = name
        if is_admin is not None:
            user.is_admin = is_admin
        return user

    def create_session(self, user_id: str, expires_at: float) -> SessionRecord:
        record = SessionRecord(
            token=_new_session_token(), user_id=user_id, expires_at=expires_at
        )
        self.sessions[record.token] = record
        return record

    def get_session(self, token: str) -> Optional[SessionRecord]:
        return self.sessions.get(token)

    def delete_session(self, token: str) -> None:
        self.sessions.pop(token, None)

    def delete_expired_sessions(self, now: float) -> int:
        expired = [t for t, s in self.sessions.items() if s.is_expired(now)]
        for token in expired:
            del self.sessions[token]
        return len(expired)

    def get_site_settings(self, keys: list[str]) -> dict[str, Optional[str]]:
        return {k: self.site_settings[k] for k in keys if k in self.site_settings}

    def save_site_setting(self, key: str, value: Optional[str]) -> None:
        self.site_settings[key] = value

    def create_project(self, project: ProjectRecord) -> ProjectRecord:
        self.projects[project.id] = project
        return project

    def get_project(self, project_id: str) -> Optional[ProjectRecord]:
        return self.projects.get(project_id)

    def delete_project(self, project_id: str) -> bool:
        return self.projects.pop(project_id, None) is not None

    def update_project(self, project_id: str, changes: dict) -> Optional[ProjectRecord]:
        project = self.projects.get(project_id)
        if project is None:
            return None
        for name, value in changes.items():
            setattr(project, name, value)
        return project

    def reorder_projects(self, project_ids: list[str]) -> None:
        for index, project_id in enumerate(project_ids):
            if project_id in self.projects:
                self.projects[project_id].sort_order = index

    def list_projects(self) -> list[ProjectRecord]:
        return sorted(self.projects.values(), key=_project_sort_key)

    def list_project_folders(self) -> list[str]:
        return [
            p.cloudinary_folder
            for p in self.projects.values()
            if p.cloudinary_folder is not None
        ]


class PostgresDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for PostgresDbClient")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def _to_user_record(self, row: "UserRow") -> UserRecord:
        return UserRecord(
            id=row.id,
            email=row.email,
            name=row.name,
            is_admin=bool(row.is_admin),
            created_at=row.created_at,
        )

    def _to_project_record(self, row: "ProjectRow") -> ProjectRecord:
        return ProjectRecord(
            id=row.id,
            title=row.title,
            description=row.description or "",
            tags=list(row.tags or []),
            cloudinary_folder=row.cloudinary_folder,
            image_public_ids=list(row.image_public_ids or []),
            sort_order=row.sort_order,
            date_is_month_only=bool(row.date_is_month_only),
            created_at=row.created_at,
        )

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        with self.Session() as session:
            row = session.get(UserRow, user_id)
            return self._to_user_record(row) if row else None

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        with self.Session() as session:
            stmt = select(UserRow).where(UserRow.email == email)
            row = session.execute(stmt).scalar_one_or_none()
            return self._to_user_record(row) if row else None

    def upsert_user(
        self, email: str, name: str | None = None, is_admin: bool | None = None
    ) -> UserRecord:
        with self.Session() as session:
            stmt = select(UserRow).where(UserRow.email == email)
            row = session.execute(stmt).scalar_one_or_none()
            if row is None:
                row = UserRow(
                    id=uuid.uuid4().hex,
                    email=email,
                    is_admin=False,
                    created_at=time.time(),
                )
                session.add(row)
            if name:
                row.name = name
            if is_admin is not None:
                row.is_admin = is_admin
            session.commit()
            session.refresh(row)
            return self._to_user_record(row)

    def create_session(self, user_id: str, expires_at: float) -> SessionRecord:
        with self.Session() as session:
            row = SessionRow(
                token=_new_session_token(), user_id=user_id, expires_at=expires_at
            )
            session.add(row)
            session.commit()
            return SessionRecord(
                token=row.token, user_id=row.user_id, expires_at=row.expires_at
            )

    def get_session(self, token: str) -> Optional[SessionRecord]:
        with self.Session() as session:
            row = session.get(SessionRow, token)
            if not row:
                return None
            return SessionRecord(
                token=row.token, user_id=row.user_id, expires_at=row.expires_at
            )

    def delete_session(self, token: str) -> None:
        with self.Session() as session:
            row = session.get(SessionRow, token)
            if row:
                session.delete(row)
                session.commit()

    def delete_expired_sessions(self, now: float) -> int:
        with self.Session() as session:
            result = session.execute(delete(SessionRow).where(SessionRow.expires_at <= now))
            session.commit()
            return result.rowcount or 0

    def get_site_settings(self, keys: list[str]) -> dict[str, Optional[str]]:
        if not keys:
            return {}
        with self.Session() as session:
            stmt = select(SiteSettingRow).where(SiteSettingRow.key.in_(keys))
            return {row.key: row.value for row in session.execute(stmt).scalars()}

    def save_site_setting(self, key: str, value: Optional[str]) -> None:
        with self.Session() as session:
            existing = session.get(SiteSettingRow, key)
            if existing:
                existing.value = value
            else:
                session.add(SiteSettingRow(key=key, value=value))
            session.commit()

    def create_project(self, project: ProjectRecord) -> ProjectRecord:
        with self.Session() as session:
            session.add(
                ProjectRow(
                    id=project.id,
                    title=project.title,
                    description=project.description,
                    tags=list(project.tags),
                    cloudinary_folder=project.cloudinary_folder,
                    image_public_ids=list(project.image_public_ids),
                    sort_order=project.sort_order,
                    date_is_month_only=project.date_is_month_only,
                    created_at=project.created_at,
                )
            )
            session.commit()
        return project

    def get_project(self, project_id: str) -> Optional[ProjectRecord]:
        with self.Session() as session:
            row = session.get(ProjectRow, project_id)
            return self._to_project_record(row) if row else None

    def delete_project(self, project_id: str) -> bool:
        with self.Session() as session:
            row = session.get(ProjectRow, project_id)
            if not row:
                return False
            session.delete(row)
            session.commit()
            return True

    def update_project(self, project_id: str, changes: dict) -> Optional[ProjectRecord]:
        with self.Session() as session:
            row = session.get(ProjectRow, project_id)
            if not row:
                return None
            for name, value in changes.items():
                setattr(row, name, list(value) if isinstance(value, list) else value)
            session.commit()
            session.refresh(row)
            return self._to_project_record(row)

    def reorder_projects(self, project_ids: list[str]) -> None:
        with self.Session() as session:
            for index, project_id in enumerate(project_ids):
                row = session.get(ProjectRow, project_id)
                if row:
                    row.sort_order = index
            session.commit()

    def list_projects(self) -> list[ProjectRecord]:
        with self.Session() as session:
            stmt = select(ProjectRow).order_by(
                ProjectRow.sort_order.asc(), ProjectRow.created_at.desc()
            )
            return [
                self._to_project_record(row) for row in session.execute(stmt).scalars()
            ]

    def list_project_folders(self) -> list[str]:
        with self.Session() as session:
            stmt = select(ProjectRow.cloudinary_folder).where(
                ProjectRow.cloudinary_folder != None  # noqa: E711
            )
            return list(session.execute(stmt).scalars())


Base = declarative_base()


class UserRow(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    email = Column(String, nullable=False, unique=True, index=True)
    name = Column(String, nullable=True)
    is_admin = Column(Boolean, nullable=False, default=False)
    created_at = Column(Float, nullable=False)


class SessionRow(Base):
    __tablename__ = "sessions"

    token = Column(String, primary_key=True)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    expires_at = Column(Float, nullable=False)


class SiteSettingRow(Base):
    __tablename__ = "site_settings"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=True)


class ProjectRow(Base):
    __tablename__ = "projects"

    id = Column(String, primary_key=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    tags = Column(JSON, nullable=False, default=list)
    cloudinary_folder = Column(String, nullable=True, index=True)
    image_public_ids = Column(JSON, nullable=False, default=list)
    sort_order = Column(Integer, nullable=False, default=0)
    date_is_month_only = Column(Boolean, nullable=False, default=False)
    created_at = Column(Float, nullable=False)
