from collections.abc import Generator
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import clubhours_api.models  # noqa: F401
from clubhours_api.api import work_hours as work_hours_api
from clubhours_api.core import rate_limit
from clubhours_api.core.config import get_settings
from clubhours_api.core.errors import DirectoryUnavailable, NoSuchProfile
from clubhours_api.core.security import SessionClaims
from clubhours_api.db.session import get_db
from clubhours_api.main import app
from clubhours_api.models.base import Base
from clubhours_api.services import ledger
from clubhours_api.services.auth_flow import get_reset_notifier
from clubhours_api.services.credentials import normalize_email
from clubhours_api.services.directory import FamilyUnit, ProfileRecord, get_directory, sort_profiles

# 接口测试统一使用的“今天”。
TODAY = date(2026, 6, 15)


class FakeDirectory:
    """内存版成员目录，接口与 DirectoryClient 一致。"""

    def __init__(self) -> None:
        self.profiles: dict[str, ProfileRecord] = {}
        self.unavailable = False
        self.calls: list[str] = []

    def add(
        self,
        profile_id: str,
        first_name: str,
        last_name: str,
        email: str,
        *,
        family: str | None = None,
        birth_date: date | None = None,
        required_hours: Decimal = Decimal("8"),
    ) -> ProfileRecord:
        profile = ProfileRecord(
            profile_id=profile_id,
            first_name=first_name,
            last_name=last_name,
            email=email,
            family_unit_id=family,
            birth_date=birth_date,
            required_hours_per_year=required_hours,
        )
        self.profiles[profile_id] = profile
        return profile

    def _check(self, call: str) -> None:
        self.calls.append(call)
        if self.unavailable:
            raise DirectoryUnavailable(reason="test_outage")

    def resolve(self, email: str) -> list[ProfileRecord]:
        self._check("resolve")
        normalized = normalize_email(email)
        matched = [p for p in self.profiles.values() if normalize_email(p.email) == normalized]
        if not matched:
            raise NoSuchProfile(reason="email_not_in_directory")
        return sort_profiles(matched)

    def get_profile(self, profile_id: str) -> ProfileRecord:
        self._check("get_profile")
        if profile_id not in self.profiles:
            raise NoSuchProfile(reason="not_found_in_directory")
        return self.profiles[profile_id]

    def family_of(self, profile_id: str) -> FamilyUnit:
        profile = self.get_profile(profile_id)
        if profile.family_unit_id is None:
            return FamilyUnit(family_unit_id=None, members=(profile,))
        members = [p for p in self.profiles.values() if p.family_unit_id == profile.family_unit_id]
        return FamilyUnit(family_unit_id=profile.family_unit_id, members=tuple(sort_profiles(members)))


class CapturingNotifier:
    """记录投递内容，供断言使用。"""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, str]] = []

    def send_reset(self, email: str, token: str, profile_id: str) -> None:
        self.sent.append((email, token, profile_id))


@pytest.fixture(autouse=True)
def _test_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    monkeypatch.setenv("CH_AUTH_JWT_SECRET", "unit-test-secret-key-at-least-32-bytes")
    monkeypatch.setenv("CH_AUTH_JWT_ALGORITHMS", "HS256")
    monkeypatch.setenv("CH_AUTH_PASSWORD_HASH_ITERATIONS", "1000")
    monkeypatch.setenv("CH_DB_AUTO_CREATE_SCHEMA", "false")
    monkeypatch.setenv("CH_RATE_LIMIT_ENABLED", "false")
    get_settings.cache_clear()
    rate_limit.reset()
    yield
    get_settings.cache_clear()
    rate_limit.reset()


@pytest.fixture
def sqlite_engine():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(sqlite_engine) -> Generator[Session, None, None]:
    session = sessionmaker(bind=sqlite_engine, autoflush=False, autocommit=False, class_=Session)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def file_session_factory(tmp_path):
    """文件型 SQLite，每个线程可持有独立连接，用于并发用例。"""
    engine = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'clubhours.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autoflush=False, autocommit=False, class_=Session)
    engine.dispose()


@pytest.fixture
def fake_directory() -> FakeDirectory:
    return FakeDirectory()


@pytest.fixture
def reset_notifier() -> CapturingNotifier:
    return CapturingNotifier()


@pytest.fixture
def make_claims():
    def _make(profile_id: str, email: str = "member@example.com") -> SessionClaims:
        now = datetime.now(timezone.utc)
        return SessionClaims(profile_id=profile_id, email=email, issued_at=now, expires_at=now + timedelta(hours=1))

    return _make


@pytest.fixture
def api_client(
    monkeypatch: pytest.MonkeyPatch,
    sqlite_engine,
    fake_directory: FakeDirectory,
    reset_notifier: CapturingNotifier,
) -> Generator[TestClient, None, None]:
    monkeypatch.setattr(ledger, "local_today", lambda: TODAY)
    monkeypatch.setattr(work_hours_api, "local_today", lambda: TODAY)
    testing_session_local = sessionmaker(bind=sqlite_engine, autoflush=False, autocommit=False, class_=Session)

    def override_get_db() -> Generator[Session, None, None]:
        db = testing_session_local()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides.clear()
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_directory] = lambda: fake_directory
    app.dependency_overrides[get_reset_notifier] = lambda: reset_notifier
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()
