"""
Database abstraction for Postgres and an in-memory test implementation.

Profiles are stored as JSON documents. A handful of fields are mirrored into
plain columns so the SQL client can filter on them.
"""

from __future__ import annotations

import threading
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Iterable, Optional, Protocol, Sequence

from sqlalchemy import (
    JSON,
    Column,
    Float,
    ForeignKey,
    String,
    UniqueConstraint,
    create_engine,
    func,
    or_,
    select,
)
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

STARTUP = "startup"
INVESTOR = "investor"
ROLES = (STARTUP, INVESTOR)

# Fields callers may never write through a profile payload.
PROTECTED_FIELDS = ("_id", "id", "userId", "user_id", "createdAt", "updatedAt")

LISTING_FIELDS = (
    "startupName",
    "tagline",
    "founderName",
    "location",
    "stage",
    "industry",
    "problem",
    "solution",
    "traction",
    "profilePicture",
    "coverImage",
    "funding",
    "socialLinks",
    "techStack",
    "valueProp",
    "market",
    "revenueModel",
    "fundUsage",
    "prevFunding",
    "website",
    "phone",
    "teamSize",
    "createdAt",
)


class DuplicateEmailError(Exception):
    """Raised when a user is created with an email that is already taken."""


class DuplicateConnectionError(Exception):
    """Raised when an investor already has a connection with a startup."""


class ConnectionStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


_last_ts = 0.0
_clock_lock = threading.Lock()


def _now() -> float:
    # Strictly increasing across threads so newest-first ordering is stable.
    global _last_ts
    with _clock_lock:
        _last_ts = max(time.time(), _last_ts + 1e-6)
        return _last_ts


def _isoformat(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


def strip_protected_fields(payload: dict) -> dict:
    return {k: v for k, v in payload.items() if k not in PROTECTED_FIELDS}


def investor_sectors(data: dict) -> list[str]:
    """Return an investor's sectors whether stored as a list or a comma string."""
    sectors = data.get("preferredSectors") or data.get("sectors") or []
    if isinstance(sectors, str):
        sectors = sectors.split(",")
    elif not isinstance(sectors, (list, tuple)):
        # Profiles are free-form; a lone number or flag counts as one sector.
        sectors = [sectors]
    return [str(s).strip() for s in sectors if str(s).strip()]


class DbClient(Protocol):
    """Interface for database access."""

    def create_user(
        self, name: str, email: str, password_hash: str, role: str
    ) -> "UserRecord":
        ...

    def get_user(self, user_id: str) -> Optional["UserRecord"]:
        ...

    def get_user_by_email(self, email: str) -> Optional["UserRecord"]:
        ...

    def update_user_password(self, user_id: str, password_hash: str) -> None:
        ...

    def create_profile(self, role: str, user_id: str, data: dict) -> dict:
        ...

    def get_profile(self, role: str, user_id: str) -> Optional[dict]:
        ...

    def get_profile_by_id(self, role: str, profile_id: str) -> Optional[dict]:
        ...

    def update_profile(
        self, role: str, user_id: str, updates: dict
    ) -> Optional[dict]:
        ...

    def list_startups(self, filters: "StartupFilter") -> list[dict]:
        ...

    def find_startups(
        self, industries: Sequence[str] | None = None, limit: int = 5
    ) -> list[dict]:
        ...

    def find_investors(self, sector: str | None = None, limit: int = 5) -> list[dict]:
        ...

    def create_connection(
        self, investor_id: str, startup_id: str, message: str | None = None
    ) -> "ConnectionRecord":
        ...

    def get_connection(self, connection_id: str) -> Optional["ConnectionRecord"]:
        ...

    def list_connections(
        self, *, investor_id: str | None = None, startup_id: str | None = None
    ) -> list["ConnectionRecord"]:
        ...

    def update_connection_status(
        self, connection_id: str, status: ConnectionStatus
    ) -> Optional["ConnectionRecord"]:
        ...


@dataclass
class UserRecord:
    user_id: str
    name: str
    email: str
    password_hash: str
    role: str
    created_at: float = field(default_factory=_now)

    def as_dict(self) -> dict:
        return {
            "_id": self.user_id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "createdAt": _isoformat(self.created_at),
        }


@dataclass
class ProfileRecord:
    profile_id: str
    user_id: Optional[str]
    data: dict
    created_at: float = field(default_factory=_now)
    updated_at: float = field(default_factory=_now)

    def as_dict(self) -> dict:
        doc = {"_id": self.profile_id, "userId": self.user_id}
        doc.update(self.data)
        doc["createdAt"] = _isoformat(self.created_at)
        doc["updatedAt"] = _isoformat(self.updated_at)
        return doc


@dataclass
class ConnectionRecord:
    connection_id: str
    investor_id: str
    startup_id: str
    status: ConnectionStatus
    message: Optional[str] = None
    created_at: float = field(default_factory=_now)
    updated_at: float = field(default_factory=_now)

    def as_dict(self) -> dict:
        return {
            "_id": self.connection_id,
            "investorId": self.investor_id,
            "startupId": self.startup_id,
            "status": self.status.value,
            "message": self.message,
            "createdAt": _isoformat(self.created_at),
            "updatedAt": _isoformat(self.updated_at),
        }


@dataclass
class StartupFilter:
    """Conjunctive listing filter. Empty values and "all" match everything."""

    industry: Optional[str] = None
    stage: Optional[str] = None
    location: Optional[str] = None
    search: Optional[str] = None

    def __post_init__(self):
        for name in ("industry", "stage"):
            value = getattr(self, name)
            if not value or value == "all":
                setattr(self, name, None)
        self.location = self.location or None
        self.search = self.search or None

    def matches(self, data: dict) -> bool:
        if self.industry is not None and data.get("industry") != self.industry:
            return False
        if self.stage is not None and data.get("stage") != self.stage:
            return False
        if self.location is not None and not _icontains(
            data.get("location"), self.location
        ):
            return False
        if self.search is not None and not any(
            _icontains(data.get(key), self.search)
            for key in ("startupName", "tagline", "problem")
        ):
            return False
        return True


def _icontains(value, needle) -> bool:
    return isinstance(value, str) and str(needle).lower() in value.lower()


def listing_row(profile: dict, user: UserRecord) -> dict:
    """Project a startup document to the public listing shape."""
    row = {"_id": profile["_id"]}
    for key in LISTING_FIELDS:
        if key in profile:
            row[key] = profile[key]
    row["userId"] = {"_id": user.user_id, "name": user.name, "email": user.email}
    row["coverImage"] = row.get("coverImage") or ""
    row["profilePicture"] = row.get("profilePicture") or "/default-avatar.png"
    return row


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.users: Dict[str, UserRecord] = {}
        self.profiles: Dict[str, Dict[str, ProfileRecord]] = {
            role: {} for role in ROLES
        }
        self.connections: Dict[str, ConnectionRecord] = {}

    def create_user(
        self, name: str, email: str, password_hash: str, role: str
    ) -> UserRecord:
        if self.get_user_by_email(email):
            raise DuplicateEmailError(email)
        record = UserRecord(
            user_id=uuid.uuid4().hex,
            name=name,
            email=email,
            password_hash=password_hash,
            role=role,
            created_at=_now(),
        )
        self.users[record.user_id] = record
        return record

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        return self.users.get(user_id)

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        for user in self.users.values():
            if user.email == email:
                return user
        return None

    def update_user_password(self, user_id: str, password_hash: str) -> None:
        user = self.users.get(user_id)
        if user:
            user.password_hash = password_hash

    def create_profile(self, role: str, user_id: str, data: dict) -> dict:
        now = _now()
        record = ProfileRecord(
            profile_id=uuid.uuid4().hex,
            user_id=user_id,
            data=strip_protected_fields(data),
            created_at=now,
            updated_at=now,
        )
        self.profiles[role][record.profile_id] = record
        return record.as_dict()

    def _profile_for_user(self, role: str, user_id: str) -> Optional[ProfileRecord]:
        for record in self.profiles[role].values():
            if record.user_id == user_id:
                return record
        return None

    def get_profile(self, role: str, user_id: str) -> Optional[dict]:
        record = self._profile_for_user(role, user_id)
        return record.as_dict() if record else None

    def get_profile_by_id(self, role: str, profile_id: str) -> Optional[dict]:
        record = self.profiles[role].get(profile_id)
        return record.as_dict() if record else None

    def update_profile(
        self, role: str, user_id: str, updates: dict
    ) -> Optional[dict]:
        record = self._profile_for_user(role, user_id)
        if not record:
            return None
        record.data.update(strip_protected_fields(updates))
        record.updated_at = _now()
        return record.as_dict()

    def _newest_first(self, records: Iterable) -> list:
        return sorted(records, key=lambda r: r.created_at, reverse=True)

    def _oldest_first(self, records: Iterable) -> list:
        return sorted(records, key=lambda r: r.created_at)

    def list_startups(self, filters: StartupFilter) -> list[dict]:
        rows: list[dict] = []
        for record in self._newest_first(self.profiles[STARTUP].values()):
            user = self.users.get(record.user_id) if record.user_id else None
            if user is None or not filters.matches(record.data):
                continue
            rows.append(listing_row(record.as_dict(), user))
        return rows

    def find_startups(
        self, industries: Sequence[str] | None = None, limit: int = 5
    ) -> list[dict]:
        wanted = {str(i).lower() for i in industries} if industries else None
        results: list[dict] = []
        for record in self._oldest_first(self.profiles[STARTUP].values()):
            industry = str(record.data.get("industry") or "").lower()
            if wanted is not None and industry not in wanted:
                continue
            results.append(record.as_dict())
            if len(results) >= limit:
                break
        return results

    def find_investors(self, sector: str | None = None, limit: int = 5) -> list[dict]:
        results: list[dict] = []
        for record in self._oldest_first(self.profiles[INVESTOR].values()):
            if sector and not any(
                _icontains(s, sector) for s in investor_sectors(record.data)
            ):
                continue
            results.append(record.as_dict())
            if len(results) >= limit:
                break
        return results

    def create_connection(
        self, investor_id: str, startup_id: str, message: str | None = None
    ) -> ConnectionRecord:
        for existing in self.connections.values():
            if existing.investor_id == investor_id and existing.startup_id == startup_id:
                raise DuplicateConnectionError(startup_id)
        now = _now()
        record = ConnectionRecord(
            connection_id=uuid.uuid4().hex,
            investor_id=investor_id,
            startup_id=startup_id,
            status=ConnectionStatus.PENDING,
            message=message,
            created_at=now,
            updated_at=now,
        )
        self.connections[record.connection_id] = record
        return record

    def get_connection(self, connection_id: str) -> Optional[ConnectionRecord]:
        return self.connections.get(connection_id)

    def list_connections(
        self, *, investor_id: str | None = None, startup_id: str | None = None
    ) -> list[ConnectionRecord]:
        items = [
            c
            for c in self.connections.values()
            if (investor_id is None or c.investor_id == investor_id)
            and (startup_id is None or c.startup_id == startup_id)
        ]
        return self._newest_first(items)

    def update_connection_status(
        self, connection_id: str, status: ConnectionStatus
    ) -> Optional[ConnectionRecord]:
        record = self.connections.get(connection_id)
        if not record:
            return None
        record.status = status
        record.updated_at = _now()
        return record


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

    @staticmethod
    def _row_model(role: str):
        if role == STARTUP:
            return StartupRow
        if role == INVESTOR:
            return InvestorRow
        raise ValueError(f"Unknown role: {role}")

    def _to_user_record(self, row: "UserRow") -> UserRecord:
        return UserRecord(
            user_id=row.user_id,
            name=row.name,
            email=row.email,
            password_hash=row.password_hash,
            role=row.role,
            created_at=row.created_at,
        )

    def _to_profile_record(self, row) -> ProfileRecord:
        return ProfileRecord(
            profile_id=row.profile_id,
            user_id=row.user_id,
            data=dict(row.data or {}),
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def _to_connection_record(self, row: "ConnectionRow") -> ConnectionRecord:
        return ConnectionRecord(
            connection_id=row.connection_id,
            investor_id=row.investor_id,
            startup_id=row.startup_id,
            status=ConnectionStatus(row.status),
            message=row.message,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def create_user(
        self, name: str, email: str, password_hash: str, role: str
    ) -> UserRecord:
        with self.Session() as session:
            row = UserRow(
                user_id=uuid.uuid4().hex,
                name=name,
                email=email,
                password_hash=password_hash,
                role=role,
                created_at=_now(),
            )
            session.add(row)
            try:
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise DuplicateEmailError(email) from e
            return self._to_user_record(row)

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        with self.Session() as session:
            row = session.get(UserRow, user_id)
            return self._to_user_record(row) if row else None

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        with self.Session() as session:
            stmt = select(UserRow).where(UserRow.email == email)
            row = session.execute(stmt).scalar_one_or_none()
            return self._to_user_record(row) if row else None

    def update_user_password(self, user_id: str, password_hash: str) -> None:
        with self.Session() as session:
            row = session.get(UserRow, user_id)
            if not row:
                return
            row.password_hash = password_hash
            session.commit()

    def create_profile(self, role: str, user_id: str, data: dict) -> dict:
        model = self._row_model(role)
        now = _now()
        with self.Session() as session:
            row = model(
                profile_id=uuid.uuid4().hex,
                user_id=user_id,
                created_at=now,
                updated_at=now,
            )
            row.apply(strip_protected_fields(data))
            session.add(row)
            session.commit()
            return self._to_profile_record(row).as_dict()

    def get_profile(self, role: str, user_id: str) -> Optional[dict]:
        model = self._row_model(role)
        with self.Session() as session:
            stmt = select(model).where(model.user_id == user_id).limit(1)
            row = session.execute(stmt).scalar_one_or_none()
            return self._to_profile_record(row).as_dict() if row else None

    def get_profile_by_id(self, role: str, profile_id: str) -> Optional[dict]:
        model = self._row_model(role)
        with self.Session() as session:
            row = session.get(model, profile_id)
            return self._to_profile_record(row).as_dict() if row else None

    def update_profile(
        self, role: str, user_id: str, updates: dict
    ) -> Optional[dict]:
        model = self._row_model(role)
        with self.Session() as session:
            stmt = select(model).where(model.user_id == user_id).limit(1)
            row = session.execute(stmt).scalar_one_or_none()
            if not row:
                return None
            merged = dict(row.data or {})
            merged.update(strip_protected_fields(updates))
            row.apply(merged)
            row.updated_at = _now()
            session.commit()
            return self._to_profile_record(row).as_dict()

    def list_startups(self, filters: StartupFilter) -> list[dict]:
        stmt = select(StartupRow, UserRow).join(
            UserRow, StartupRow.user_id == UserRow.user_id
        )
        if filters.industry is not None:
            stmt = stmt.where(StartupRow.industry == filters.industry)
        if filters.stage is not None:
            stmt = stmt.where(StartupRow.stage == filters.stage)
        if filters.location is not None:
            stmt = stmt.where(
                StartupRow.location.icontains(filters.location, autoescape=True)
            )
        if filters.search is not None:
            stmt = stmt.where(
                or_(
                    StartupRow.startup_name.icontains(filters.search, autoescape=True),
                    StartupRow.tagline.icontains(filters.search, autoescape=True),
                    StartupRow.problem.icontains(filters.search, autoescape=True),
                )
            )
        stmt = stmt.order_by(StartupRow.created_at.desc())
        with self.Session() as session:
            rows = session.execute(stmt).all()
            return [
                listing_row(
                    self._to_profile_record(startup).as_dict(),
                    self._to_user_record(user),
                )
                for startup, user in rows
            ]

    def find_startups(
        self, industries: Sequence[str] | None = None, limit: int = 5
    ) -> list[dict]:
        stmt = select(StartupRow)
        if industries:
            stmt = stmt.where(
                func.lower(StartupRow.industry).in_([str(i).lower() for i in industries])
            )
        stmt = stmt.order_by(StartupRow.created_at.asc()).limit(limit)
        with self.Session() as session:
            rows = session.execute(stmt).scalars().all()
            return [self._to_profile_record(row).as_dict() for row in rows]

    def find_investors(self, sector: str | None = None, limit: int = 5) -> list[dict]:
        stmt = select(InvestorRow)
        if sector:
            stmt = stmt.where(
                InvestorRow.sectors_text.icontains(sector, autoescape=True)
            )
        stmt = stmt.order_by(InvestorRow.created_at.asc()).limit(limit)
        with self.Session() as session:
            rows = session.execute(stmt).scalars().all()
            return [self._to_profile_record(row).as_dict() for row in rows]

    def create_connection(
        self, investor_id: str, startup_id: str, message: str | None = None
    ) -> ConnectionRecord:
        now = _now()
        with self.Session() as session:
            row = ConnectionRow(
                connection_id=uuid.uuid4().hex,
                investor_id=investor_id,
                startup_id=startup_id,
                status=ConnectionStatus.PENDING.value,
                message=message,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            try:
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise DuplicateConnectionError(startup_id) from e
            return self._to_connection_record(row)

    def get_connection(self, connection_id: str) -> Optional[ConnectionRecord]:
        with self.Session() as session:
            row = session.get(ConnectionRow, connection_id)
            return self._to_connection_record(row) if row else None

    def list_connections(
        self, *, investor_id: str | None = None, startup_id: str | None = None
    ) -> list[ConnectionRecord]:
        stmt = select(ConnectionRow)
        if investor_id is not None:
            stmt = stmt.where(ConnectionRow.investor_id == investor_id)
        if startup_id is not None:
            stmt = stmt.where(ConnectionRow.startup_id == startup_id)
        stmt = stmt.order_by(ConnectionRow.created_at.desc())
        with self.Session() as session:
            rows = session.execute(stmt).scalars().all()
            return [self._to_connection_record(row) for row in rows]

    def update_connection_status(
        self, connection_id: str, status: ConnectionStatus
    ) -> Optional[ConnectionRecord]:
        with self.Session() as session:
            row = session.get(ConnectionRow, connection_id)
            if not row:
                return None
            row.status = status.value
            row.updated_at = _now()
            session.commit()
            return self._to_connection_record(row)


Base = declarative_base()


class UserRow(Base):
    __tablename__ = "users"

    user_id = Column(String, primary_key=True)
    name = Column(String, nullable=False, default="")
    email = Column(String, nullable=False, unique=True, index=True)
    password_hash = Column(String, nullable=False)
    role = Column(String, nullable=False, index=True)
    created_at = Column(Float, nullable=False)


class StartupRow(Base):
    __tablename__ = "startups"

    profile_id = Column(String, primary_key=True)
    user_id = Column(String, ForeignKey("users.user_id"), nullable=True, index=True)
    data = Column(JSON, nullable=False)
    startup_name = Column(String, nullable=True)
    tagline = Column(String, nullable=True)
    problem = Column(String, nullable=True)
    industry = Column(String, nullable=True, index=True)
    stage = Column(String, nullable=True, index=True)
    location = Column(String, nullable=True)
    created_at = Column(Float, nullable=False, index=True)
    updated_at = Column(Float, nullable=False)

    def apply(self, data: dict) -> None:
        self.data = data
        self.startup_name = _as_text(data.get("startupName"))
        self.tagline = _as_text(data.get("tagline"))
        self.problem = _as_text(data.get("problem"))
        self.industry = _as_text(data.get("industry"))
        self.stage = _as_text(data.get("stage"))
        self.location = _as_text(data.get("location"))


class InvestorRow(Base):
    __tablename__ = "investors"

    profile_id = Column(String, primary_key=True)
    user_id = Column(String, ForeignKey("users.user_id"), nullable=True, index=True)
    data = Column(JSON, nullable=False)
    sectors_text = Column(String, nullable=True)
    created_at = Column(Float, nullable=False, index=True)
    updated_at = Column(Float, nullable=False)

    def apply(self, data: dict) -> None:
        self.data = data
        self.sectors_text = ",".join(investor_sectors(data))


class ConnectionRow(Base):
    __tablename__ = "connections"
    __table_args__ = (UniqueConstraint("investor_id", "startup_id"),)

    connection_id = Column(String, primary_key=True)
    investor_id = Column(String, nullable=False, index=True)
    startup_id = Column(String, nullable=False, index=True)
    status = Column(String, nullable=False, default=ConnectionStatus.PENDING.value)
    message = Column(String, nullable=True)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)


def _as_text(value) -> Optional[str]:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)
